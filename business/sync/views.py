"""
Concrete live views used by the UI layer.

Each factory returns an unstarted view; call ``start()`` (or use it as a
context manager) to subscribe and ``stop()`` when the screen goes away.
"""
import logging
from typing import Callable, List, Optional, Union

from business.errors import ValidationError
from business.friendship import (
    FriendRequestWithUser,
    FriendshipStatusResult,
    accept_request,
    cancel_request,
    derive_status_from,
    reject_request,
    send_request,
)
from business.session import Session
from business.sync.batch import fetch_users_batch
from business.sync.cache import QueryCache, query_keys
from business.sync.live import EmptyView, LiveView
from business.sync.optimistic import OptimisticValue
from business.wishlist import delete_item
from database.documents.folder import Folder, folders_by_owner_query
from database.documents.friendship import (
    FriendRequest,
    Friendship,
    friendships_query,
    pending_requests_query,
)
from database.documents.purchase import Purchase, purchases_by_owner_query
from database.documents.store import Document, Subscription
from database.documents.users import User
from database.documents.wishlist_item import WishlistItem, items_by_owner_query
from utils.database import doc_to_model

logger = logging.getLogger(__name__)


def _user_key(user: User):
    return [(query_keys.user(user.id), user)]


def friends_view(session: Session, cache: QueryCache) -> LiveView[User]:
    """The session user's friends, most recent friendship first."""

    def project(docs: List[Document]) -> List[User]:
        friendships = sorted(
            (doc_to_model(doc, Friendship) for doc in docs),
            key=lambda f: f.created_at,
            reverse=True,
        )
        friend_ids = [f.other_party(session.user_id) for f in friendships]
        users = fetch_users_batch(session.store, friend_ids)
        return [users[friend_id] for friend_id in friend_ids if friend_id in users]

    return LiveView(
        session.store,
        cache,
        query_keys.friends(session.user_id),
        friendships_query(session.user_id),
        project,
        entity_keys=_user_key,
    )


def friend_requests_view(session: Session, cache: QueryCache) -> LiveView[FriendRequestWithUser]:
    """Pending requests addressed to the session user, with the sender resolved."""

    def project(docs: List[Document]) -> List[FriendRequestWithUser]:
        requests = [doc_to_model(doc, FriendRequest) for doc in docs]
        users = fetch_users_batch(session.store, [r.from_user_id for r in requests])
        results = []
        for request in requests:
            sender = users.get(request.from_user_id)
            if sender is None:
                logger.warning(f"Sender {request.from_user_id} of friend request {request.id} not found")
                continue
            results.append(FriendRequestWithUser(request=request, user=sender))
        return results

    return LiveView(
        session.store,
        cache,
        query_keys.friend_requests(session.user_id),
        pending_requests_query(to_user_id=session.user_id),
        project,
        key_of=lambda entry: entry.request.id,
        entity_keys=lambda entry: _user_key(entry.user),
    )


def accept_request_optimistic(
    view: LiveView[FriendRequestWithUser], session: Session, request_id: str
) -> Friendship:
    return view.run_optimistic(request_id, lambda: accept_request(session, request_id))


def reject_request_optimistic(view: LiveView[FriendRequestWithUser], session: Session, request_id: str) -> None:
    view.run_optimistic(request_id, lambda: reject_request(session, request_id))


def wishlist_view(session: Session, cache: QueryCache, owner_id: str) -> LiveView[WishlistItem]:
    def project(docs: List[Document]) -> List[WishlistItem]:
        return [doc_to_model(doc, WishlistItem) for doc in docs]

    return LiveView(
        session.store,
        cache,
        query_keys.wishlist(owner_id),
        items_by_owner_query(owner_id),
        project,
        entity_keys=lambda item: [(query_keys.wishlist_item(item.id), item)],
    )


def delete_item_optimistic(view: LiveView[WishlistItem], session: Session, item_id: str) -> None:
    view.run_optimistic(item_id, lambda: delete_item(session, item_id))


def folders_view(session: Session, cache: QueryCache, owner_id: str) -> LiveView[Folder]:
    def project(docs: List[Document]) -> List[Folder]:
        return [doc_to_model(doc, Folder) for doc in docs]

    return LiveView(
        session.store,
        cache,
        query_keys.folders(owner_id),
        folders_by_owner_query(owner_id),
        project,
        entity_keys=lambda folder: [(query_keys.folder(folder.id), folder)],
    )


def purchases_view(
    session: Session, cache: QueryCache, item_owner_id: str
) -> Union[LiveView[Purchase], EmptyView[Purchase]]:
    """Claims on ``item_owner_id``'s items. The owner gets a view that never subscribes."""
    cache_key = query_keys.purchases_by_owner(item_owner_id)
    if item_owner_id == session.user_id:
        return EmptyView(cache_key)

    def project(docs: List[Document]) -> List[Purchase]:
        return [doc_to_model(doc, Purchase) for doc in docs]

    return LiveView(
        session.store,
        cache,
        cache_key,
        purchases_by_owner_query(item_owner_id),
        project,
    )


def _same_status(server: Optional[FriendshipStatusResult], overlay: FriendshipStatusResult) -> bool:
    return server is not None and server.status == overlay.status


class LiveFriendshipStatus:
    """
    Friendship status between the session user and one other user.

    Three subscriptions feed it: friendships of the viewer, pending requests
    viewer -> target and pending requests target -> viewer. The status is
    derived again whenever any of them fires.
    """

    def __init__(self, session: Session, cache: QueryCache, target_id: str):
        if target_id == session.user_id:
            raise ValidationError("Friendship status requires two different users")
        self._session = session
        self._cache = cache
        self.target_id = target_id
        self.cache_key = query_keys.friendship_status(session.user_id, target_id)

        cached = cache.get(self.cache_key)
        self._value: OptimisticValue[FriendshipStatusResult] = OptimisticValue(cached, agrees=_same_status)
        self.loading = cached is None

        self._friendships: Optional[List[Friendship]] = None
        self._sent: Optional[List[FriendRequest]] = None
        self._received: Optional[List[FriendRequest]] = None
        self._subscriptions: List[Subscription] = []
        self._listeners: List[Callable[[Optional[FriendshipStatusResult]], None]] = []

    def start(self) -> "LiveFriendshipStatus":
        if self._subscriptions:
            return self
        store = self._session.store
        viewer_id = self._session.user_id
        self._subscriptions = [
            store.subscribe(friendships_query(viewer_id), self._on_friendships),
            store.subscribe(pending_requests_query(viewer_id, self.target_id), self._on_sent),
            store.subscribe(pending_requests_query(self.target_id, viewer_id), self._on_received),
        ]
        return self

    def stop(self) -> None:
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions = []

    def __enter__(self) -> "LiveFriendshipStatus":
        return self.start()

    def __exit__(self, *exc) -> None:
        self.stop()

    @property
    def status(self) -> Optional[FriendshipStatusResult]:
        return self._value.value

    @property
    def phase(self):
        return self._value.phase

    def on_change(self, listener: Callable[[Optional[FriendshipStatusResult]], None]) -> None:
        self._listeners.append(listener)

    def _emit(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self.status)
            except Exception as e:
                logger.error(f"Friendship status listener failed: {e}")

    def _on_friendships(self, docs: List[Document]) -> None:
        friendships = [doc_to_model(doc, Friendship) for doc in docs]
        self._friendships = [f for f in friendships if self.target_id in f.users]
        self._recompute()

    def _on_sent(self, docs: List[Document]) -> None:
        self._sent = [doc_to_model(doc, FriendRequest) for doc in docs]
        self._recompute()

    def _on_received(self, docs: List[Document]) -> None:
        self._received = [doc_to_model(doc, FriendRequest) for doc in docs]
        self._recompute()

    def _recompute(self) -> None:
        if self._friendships is None or self._sent is None or self._received is None:
            return
        result = derive_status_from(
            self._session.user_id,
            self.target_id,
            self._friendships,
            self._sent + self._received,
        )
        self.loading = False
        self._cache.set(self.cache_key, result)
        self._value.receive(result)
        self._emit()

    def _run_optimistic(self, overlay: FriendshipStatusResult, mutation: Callable[[], object]):
        self._value.apply(overlay)
        self._emit()
        try:
            result = mutation()
        except Exception as e:
            logger.warning(f"Optimistic status change to {overlay.status} reverted: {e}")
            self._value.revert()
            self._emit()
            raise
        self._value.confirm()
        self._emit()
        return result

    def send(self) -> FriendRequest:
        return self._run_optimistic(
            FriendshipStatusResult("pending_sent"),
            lambda: send_request(self._session, self.target_id),
        )

    def cancel(self) -> None:
        current = self.status
        if current is None or current.status != "pending_sent" or current.request_id is None:
            raise ValidationError("There is no pending request to cancel")
        request_id = current.request_id
        self._run_optimistic(
            FriendshipStatusResult("none"),
            lambda: cancel_request(self._session, request_id),
        )
