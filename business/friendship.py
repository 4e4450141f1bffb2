"""
Friend request / friendship lifecycle.

States per unordered pair of users: none, pending (one direction) and
friends. The status is never stored; it is derived from the friendship and
pending friend request documents every time it is needed.
"""
import logging
from dataclasses import dataclass
from typing import Iterable, List, Literal, Optional

from business.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    RequestAlreadyResolvedError,
    ValidationError,
)
from business.session import Session
from business.sync.batch import fetch_users_batch
from database.documents.friendship import (
    FriendRequest,
    Friendship,
    delete_friend_request,
    delete_friendship,
    friendship_id,
    get_friend_request,
    get_friendship,
    insert_friend_request,
    list_friendships_for_user,
    list_pending_requests,
    update_friend_request_status,
    upsert_friendship,
)
from database.documents.store import DocumentReader
from database.documents.users import User, get_user_by_id, list_users
from utils.constants import MIN_SEARCH_LENGTH

logger = logging.getLogger(__name__)

FriendshipStatus = Literal["none", "friends", "pending_sent", "pending_received"]


@dataclass(frozen=True)
class FriendshipStatusResult:
    status: FriendshipStatus
    request_id: Optional[str] = None


@dataclass
class UserWithFriendship:
    user: User
    status: Optional[FriendshipStatus]
    request_id: Optional[str] = None


@dataclass
class FriendRequestWithUser:
    request: FriendRequest
    user: User


def derive_status_from(
    viewer_id: str,
    target_id: str,
    friendships: Iterable[Friendship],
    requests: Iterable[FriendRequest],
) -> FriendshipStatusResult:
    """
    Derive the status of ``target_id`` as seen by ``viewer_id``.

    Checked in order: a friendship containing both ids, a pending request
    viewer -> target, a pending request target -> viewer. Requests that are
    not pending are ignored. When duplicate pending requests exist the
    earliest one is reported.
    """
    for friendship in friendships:
        if viewer_id in friendship.users and target_id in friendship.users:
            return FriendshipStatusResult("friends")

    pending = sorted(
        (r for r in requests if r.status == "pending"),
        key=lambda r: (r.created_at, r.id),
    )
    for request in pending:
        if request.from_user_id == viewer_id and request.to_user_id == target_id:
            return FriendshipStatusResult("pending_sent", request.id)
    for request in pending:
        if request.from_user_id == target_id and request.to_user_id == viewer_id:
            return FriendshipStatusResult("pending_received", request.id)
    return FriendshipStatusResult("none")


def derive_status(reader: DocumentReader, viewer_id: str, target_id: str) -> FriendshipStatusResult:
    """Fresh status lookup against the store (or an open transaction)."""
    if viewer_id == target_id:
        raise ValidationError("Friendship status requires two different users")

    friendship = get_friendship(reader, viewer_id, target_id)
    if friendship:
        return FriendshipStatusResult("friends")

    sent = list_pending_requests(reader, from_user_id=viewer_id, to_user_id=target_id)
    if sent:
        return FriendshipStatusResult("pending_sent", sent[0].id)

    received = list_pending_requests(reader, from_user_id=target_id, to_user_id=viewer_id)
    if received:
        return FriendshipStatusResult("pending_received", received[0].id)

    return FriendshipStatusResult("none")


def send_request(session: Session, to_user_id: str) -> FriendRequest:
    """
    Send a friend request from the session user to ``to_user_id``.

    The status is re-derived inside a store transaction right before the
    insert, so two concurrent sends for the same pair cannot both insert.
    Sending again while a request is already pending returns that request.

    Returns:
        The pending friend request
    """
    if to_user_id == session.user_id:
        raise ValidationError("Cannot add yourself as a friend")

    if get_user_by_id(session.store, to_user_id) is None:
        raise NotFoundError("User not found")

    with session.store.transaction() as txn:
        current = derive_status(txn, session.user_id, to_user_id)
        if current.status == "friends":
            raise ConflictError("You are already friends")
        if current.status == "pending_received":
            raise ConflictError("Friend request already pending from this user")
        if current.status == "pending_sent":
            existing = get_friend_request(txn, current.request_id)
            logger.info(
                f"Friend request {current.request_id} from {session.user_id} to {to_user_id} already pending"
            )
            return existing
        request = insert_friend_request(txn, session.user_id, to_user_id)

    logger.info(f"Friend request {request.id} sent from {session.user_id} to {to_user_id}")
    return request


def accept_request(session: Session, request_id: str, from_user_id: Optional[str] = None) -> Friendship:
    """
    Accept a pending request addressed to the session user.

    The request status is re-read inside a store transaction, and the
    request update and the friendship write (with its deterministic id)
    commit together, so a concurrent reject or cancel is never overwritten.
    An accepted request whose friendship is missing is completed instead of
    rejected, so a retry after an interrupted accept converges.
    """
    request = get_friend_request(session.store, request_id)
    if request is None:
        raise NotFoundError("Friend request not found")
    if request.to_user_id != session.user_id:
        raise AuthorizationError("Only the recipient can accept a friend request")
    if from_user_id is not None and request.from_user_id != from_user_id:
        raise ValidationError("Friend request sender does not match")

    with session.store.transaction() as txn:
        current = get_friend_request(txn, request_id)
        if current is None:
            # Cancelled by the sender in the meantime
            raise NotFoundError("Friend request not found")
        if current.status == "rejected":
            raise RequestAlreadyResolvedError("Friend request already rejected")
        if current.status == "accepted":
            if get_friendship(txn, current.from_user_id, current.to_user_id):
                raise RequestAlreadyResolvedError("Friend request already accepted")
            logger.warning(f"Completing friendship for accepted request {request_id}")
        else:
            update_friend_request_status(txn, request_id, "accepted")
        friendship = upsert_friendship(txn, current.from_user_id, current.to_user_id)

    logger.info(f"Friend request {request_id} accepted, friendship {friendship.id} created")
    return friendship


def reject_request(session: Session, request_id: str) -> None:
    request = get_friend_request(session.store, request_id)
    if request is None:
        raise NotFoundError("Friend request not found")
    if request.to_user_id != session.user_id:
        raise AuthorizationError("Only the recipient can reject a friend request")

    with session.store.transaction() as txn:
        current = get_friend_request(txn, request_id)
        if current is None:
            raise NotFoundError("Friend request not found")
        if current.status != "pending":
            raise RequestAlreadyResolvedError(f"Friend request already {current.status}")
        update_friend_request_status(txn, request_id, "rejected")
    logger.info(f"Friend request {request_id} rejected")


def cancel_request(session: Session, request_id: str) -> None:
    """Delete a pending request sent by the session user. Missing requests are ignored."""
    request = get_friend_request(session.store, request_id)
    if request is None:
        logger.info(f"Friend request {request_id} already gone")
        return
    if request.from_user_id != session.user_id:
        raise AuthorizationError("Only the sender can cancel a friend request")

    with session.store.transaction() as txn:
        current = get_friend_request(txn, request_id)
        if current is None:
            logger.info(f"Friend request {request_id} already gone")
            return
        if current.status != "pending":
            raise RequestAlreadyResolvedError(f"Friend request already {current.status}")
        delete_friend_request(txn, request_id)
    logger.info(f"Friend request {request_id} cancelled")


def remove_friend(session: Session, friend_id: str) -> None:
    """Delete the friendship with ``friend_id``. Removing a missing friendship is a no-op."""
    delete_friendship(session.store, session.user_id, friend_id)
    logger.info(f"Friendship {friendship_id(session.user_id, friend_id)} removed by {session.user_id}")


def list_friends(session: Session) -> List[User]:
    friendships = sorted(
        list_friendships_for_user(session.store, session.user_id),
        key=lambda f: f.created_at,
        reverse=True,
    )
    friend_ids = [f.other_party(session.user_id) for f in friendships]
    users = fetch_users_batch(session.store, friend_ids)
    return [users[friend_id] for friend_id in friend_ids if friend_id in users]


def _with_users(requests: List[FriendRequest], users: dict, attr: str) -> List[FriendRequestWithUser]:
    results: List[FriendRequestWithUser] = []
    for request in requests:
        user = users.get(getattr(request, attr))
        if user is None:
            logger.warning(f"User {getattr(request, attr)} for friend request {request.id} not found")
            continue
        results.append(FriendRequestWithUser(request=request, user=user))
    return results


def list_incoming_requests(session: Session) -> List[FriendRequestWithUser]:
    requests = list_pending_requests(session.store, to_user_id=session.user_id)
    users = fetch_users_batch(session.store, [r.from_user_id for r in requests])
    return _with_users(requests, users, "from_user_id")


def list_outgoing_requests(session: Session) -> List[FriendRequestWithUser]:
    requests = list_pending_requests(session.store, from_user_id=session.user_id)
    users = fetch_users_batch(session.store, [r.to_user_id for r in requests])
    return _with_users(requests, users, "to_user_id")


def search_users(session: Session, term: str) -> List[UserWithFriendship]:
    """
    Case-insensitive substring search over username, first and last name.

    The session user is never part of the results. Each match carries its
    derived friendship status.
    """
    needle = term.strip().lower()
    if len(needle) < MIN_SEARCH_LENGTH:
        return []

    matches = [
        user
        for user in list_users(session.store)
        if user.id != session.user_id
        and (
            needle in user.username.lower()
            or needle in (user.first_name or "").lower()
            or needle in (user.last_name or "").lower()
        )
    ]
    if not matches:
        return []

    friendships = list_friendships_for_user(session.store, session.user_id)
    requests = list_pending_requests(session.store, from_user_id=session.user_id) + list_pending_requests(
        session.store, to_user_id=session.user_id
    )

    results: List[UserWithFriendship] = []
    for user in matches:
        status = derive_status_from(session.user_id, user.id, friendships, requests)
        results.append(UserWithFriendship(user=user, status=status.status, request_id=status.request_id))
    return results


def get_user_profile(session: Session, user_id: str) -> UserWithFriendship:
    user = get_user_by_id(session.store, user_id)
    if user is None:
        raise NotFoundError("User not found")
    if user_id == session.user_id:
        return UserWithFriendship(user=user, status=None)
    status = derive_status(session.store, session.user_id, user_id)
    return UserWithFriendship(user=user, status=status.status, request_id=status.request_id)
