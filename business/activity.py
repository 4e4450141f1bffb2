"""
Friends' activity feed.

Adding an item writes a denormalised snapshot into the activity collection
so the feed can be read without joining wishlist items. Snapshots are kept
in sync best-effort: failures are logged and never fail the item write.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Tuple

from business.sync.batch import chunked
from business.sync.cache import QueryCache, query_keys
from database.documents.activity import (
    ActivityItem,
    activity_feed_query,
    delete_activity,
    insert_activity,
    list_activity_for_item,
    update_activity_fields,
)
from database.documents.store import DocumentStore
from database.documents.users import User
from database.documents.wishlist_item import WishlistItem
from utils.constants import ACTIVITY_PAGE_SIZE, BIRTHDAY_WINDOW_DAYS, FEED_FRIEND_CHUNK_SIZE
from utils.database import doc_to_model

logger = logging.getLogger(__name__)

# (createdAt, id) of the last activity on a page
ActivityCursor = Tuple[Any, ...]


@dataclass
class ActivityWithUser:
    activity: ActivityItem
    user: User


@dataclass
class ActivityPage:
    activities: List[ActivityWithUser]
    next_cursor: Optional[ActivityCursor] = None


@dataclass
class UpcomingBirthday:
    user: User
    date: date
    days_until: int


def build_snapshot(item: WishlistItem) -> ActivityItem:
    return ActivityItem(
        id="",
        user_id=item.owner_id,
        type="item_added",
        wishlist_item_id=item.id,
        item_name=item.name,
        item_description=item.description,
        item_images=list(item.images),
        item_price=item.price,
        item_currency=item.currency,
        item_links=list(item.links),
        created_at=item.created_at,
    )


def _snapshot_fields(item: WishlistItem) -> Dict[str, Any]:
    snapshot = build_snapshot(item).to_document()
    return {
        key: value
        for key, value in snapshot.items()
        if key.startswith("item")
    }


def record_item_added(store: DocumentStore, item: WishlistItem) -> Optional[ActivityItem]:
    try:
        return insert_activity(store, build_snapshot(item))
    except Exception as e:
        logger.error(f"Error recording activity for item {item.id}: {e}")
        return None


def sync_item_snapshot(store: DocumentStore, item: WishlistItem) -> int:
    """Copy the item's current fields into its activity snapshots; returns how many were updated."""
    updated = 0
    try:
        fields = _snapshot_fields(item)
        for activity in list_activity_for_item(store, item.id):
            update_activity_fields(store, activity.id, fields)
            updated += 1
    except Exception as e:
        logger.warning(f"Error syncing activity snapshot for item {item.id}: {e}")
    return updated


def delete_item_snapshots(store: DocumentStore, item_id: str) -> int:
    deleted = 0
    for activity in list_activity_for_item(store, item_id):
        delete_activity(store, activity.id)
        deleted += 1
    return deleted


def fetch_activity_page(
    store: DocumentStore,
    friends: Sequence[User],
    cursor: Optional[ActivityCursor] = None,
    page_size: int = ACTIVITY_PAGE_SIZE,
) -> ActivityPage:
    """
    One page of friends' activity, newest first.

    The friend id filter accepts at most ``FEED_FRIEND_CHUNK_SIZE`` ids, so
    friends are queried in chunks and the chunk results merged. Each chunk
    is asked for a full page past ``cursor``; the merged result therefore
    holds every candidate for the page.
    """
    friends_by_id = {friend.id: friend for friend in friends}
    if not friends_by_id:
        return ActivityPage(activities=[])

    merged: Dict[str, ActivityItem] = {}
    for chunk in chunked(list(friends_by_id), FEED_FRIEND_CHUNK_SIZE):
        query = activity_feed_query(chunk, page_size).start_after(cursor)
        for doc in store.query(query):
            merged[doc.id] = doc_to_model(doc, ActivityItem)

    ordered = sorted(merged.values(), key=lambda a: a.id)
    ordered.sort(key=lambda a: a.created_at, reverse=True)
    page = ordered[:page_size]

    activities: List[ActivityWithUser] = []
    for activity in page:
        user = friends_by_id.get(activity.user_id)
        if user is None:
            continue
        activities.append(ActivityWithUser(activity=activity, user=user))

    next_cursor = None
    if len(page) == page_size:
        last = page[-1]
        next_cursor = (last.to_document()["createdAt"], last.id)
    return ActivityPage(activities=activities, next_cursor=next_cursor)


@dataclass
class ActivityFeed:
    """Accumulated pages of a user's activity feed."""

    store: DocumentStore
    user_id: str
    friends: Sequence[User]
    cache: Optional[QueryCache] = None
    page_size: int = ACTIVITY_PAGE_SIZE
    pages: List[ActivityPage] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.cache is not None:
            cached = self.cache.get(query_keys.activity_feed(self.user_id))
            if cached is not None:
                self.pages = list(cached)

    @property
    def activities(self) -> List[ActivityWithUser]:
        return [entry for page in self.pages for entry in page.activities]

    @property
    def has_next_page(self) -> bool:
        if not self.pages:
            return bool(self.friends)
        return self.pages[-1].next_cursor is not None

    def fetch_next_page(self) -> ActivityPage:
        cursor = self.pages[-1].next_cursor if self.pages else None
        if self.pages and cursor is None:
            return ActivityPage(activities=[])
        page = fetch_activity_page(self.store, self.friends, cursor, self.page_size)
        self.pages.append(page)
        self._remember()
        return page

    def refetch(self) -> List[ActivityWithUser]:
        """Drop accumulated pages and load the first one again."""
        self.pages = []
        self.fetch_next_page()
        return self.activities

    def _remember(self) -> None:
        if self.cache is not None:
            self.cache.set(query_keys.activity_feed(self.user_id), list(self.pages))


def _next_occurrence(birthday: date, today: date) -> date:
    def in_year(year: int) -> date:
        try:
            return birthday.replace(year=year)
        except ValueError:
            # 29 February outside a leap year
            return date(year, 2, 28)

    upcoming = in_year(today.year)
    if upcoming < today:
        upcoming = in_year(today.year + 1)
    return upcoming


def upcoming_birthdays(
    friends: Sequence[User],
    today: Optional[date] = None,
    window_days: int = BIRTHDAY_WINDOW_DAYS,
) -> List[UpcomingBirthday]:
    """Friends whose birthday falls within ``window_days`` of ``today``, soonest first."""
    today = today or date.today()
    results: List[UpcomingBirthday] = []
    for friend in friends:
        if friend.birthday is None:
            continue
        occurrence = _next_occurrence(friend.birthday, today)
        days_until = (occurrence - today).days
        if days_until <= window_days:
            results.append(UpcomingBirthday(user=friend, date=occurrence, days_until=days_until))
    results.sort(key=lambda b: b.days_until)
    return results
