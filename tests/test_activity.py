from datetime import date, datetime, timedelta, timezone

from business import activity as activity_service
from business import friendship as friendship_service
from database.documents.activity import ActivityItem, insert_activity


def _befriend(session_for, a, b):
    request = friendship_service.send_request(session_for(a), b.id)
    friendship_service.accept_request(session_for(b), request.id)


def _activity(store, user, name, created_at):
    return insert_activity(
        store,
        ActivityItem(
            id="",
            user_id=user.id,
            wishlist_item_id=f"item-{name}",
            item_name=name,
            created_at=created_at,
        ),
    )


def test_feed_pages_newest_first_across_friend_chunks(store, make_user, session_for):
    me = make_user()
    friends = [make_user() for _ in range(12)]
    for friend in friends:
        _befriend(session_for, me, friend)

    start = datetime(2024, 5, 1, tzinfo=timezone.utc)
    # One activity per friend, the last friends being the most recent
    for index, friend in enumerate(friends):
        _activity(store, friend, f"gift-{index}", start + timedelta(minutes=index))
    stranger = make_user()
    _activity(store, stranger, "not-a-friend", start + timedelta(hours=1))

    friend_users = friendship_service.list_friends(session_for(me))
    first = activity_service.fetch_activity_page(store, friend_users, page_size=5)
    assert [a.activity.item_name for a in first.activities] == [f"gift-{i}" for i in (11, 10, 9, 8, 7)]
    assert first.next_cursor is not None

    second = activity_service.fetch_activity_page(store, friend_users, first.next_cursor, page_size=5)
    assert [a.activity.item_name for a in second.activities] == [f"gift-{i}" for i in (6, 5, 4, 3, 2)]

    third = activity_service.fetch_activity_page(store, friend_users, second.next_cursor, page_size=5)
    assert [a.activity.item_name for a in third.activities] == ["gift-1", "gift-0"]
    assert third.next_cursor is None
    assert all(entry.user.id != stranger.id for entry in first.activities + second.activities)


def test_feed_without_friends_is_empty(store):
    page = activity_service.fetch_activity_page(store, [])
    assert page.activities == []
    assert page.next_cursor is None


def test_activity_feed_accumulates_pages(store, make_user, session_for):
    me, friend = make_user(), make_user()
    _befriend(session_for, me, friend)
    start = datetime(2024, 5, 1, tzinfo=timezone.utc)
    for index in range(3):
        _activity(store, friend, f"gift-{index}", start + timedelta(minutes=index))

    feed = activity_service.ActivityFeed(store, me.id, [friend], page_size=2)
    assert feed.has_next_page

    feed.fetch_next_page()
    feed.fetch_next_page()
    assert [a.activity.item_name for a in feed.activities] == ["gift-2", "gift-1", "gift-0"]
    assert not feed.has_next_page

    _activity(store, friend, "gift-3", start + timedelta(minutes=10))
    refreshed = feed.refetch()
    assert [a.activity.item_name for a in refreshed] == ["gift-3", "gift-2"]


def test_upcoming_birthdays(make_user):
    today = date(2024, 12, 20)
    soon = make_user(birthday=date(1990, 12, 25))
    new_year = make_user(birthday=date(1992, 1, 5))
    today_friend = make_user(birthday=date(2000, 12, 20))
    make_user(birthday=date(1990, 6, 1))
    no_birthday = make_user()

    friends = [soon, new_year, today_friend, no_birthday]
    result = activity_service.upcoming_birthdays(friends, today)

    assert [(b.user.id, b.days_until) for b in result] == [
        (today_friend.id, 0),
        (soon.id, 5),
        (new_year.id, 16),
    ]
    assert result[2].date == date(2025, 1, 5)


def test_leap_day_birthday(make_user):
    leap = make_user(birthday=date(2000, 2, 29))

    result = activity_service.upcoming_birthdays([leap], date(2023, 2, 10))

    assert result[0].date == date(2023, 2, 28)
    assert result[0].days_until == 18
