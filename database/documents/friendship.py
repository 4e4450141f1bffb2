import logging
from typing import List, Literal, Optional, Tuple

from pydantic import field_validator

from database.documents.collections import COLLECTION_FRIEND_REQUESTS, COLLECTION_FRIENDSHIPS
from database.documents.store import DocumentReader, DocumentStore, Query
from utils.database import Record, Timestamp, doc_to_model, optional_doc_to_model, utcnow

logger = logging.getLogger(__name__)

FriendRequestStatus = Literal["pending", "accepted", "rejected"]


class FriendRequest(Record):
    from_user_id: str
    to_user_id: str
    status: FriendRequestStatus
    created_at: Timestamp


class Friendship(Record):
    users: Tuple[str, str]
    created_at: Timestamp

    @field_validator("users", mode="before")
    @classmethod
    def _sort_users(cls, value):
        return tuple(sorted(value))

    def other_party(self, user_id: str) -> str:
        return self.users[1] if self.users[0] == user_id else self.users[0]


def normalize_pair(a: str, b: str) -> Tuple[str, str]:
    # Deterministic ordering shared by both parties
    return (a, b) if str(a) < str(b) else (b, a)


def friendship_id(a: str, b: str) -> str:
    return "_".join(normalize_pair(a, b))


def get_friendship(reader: DocumentReader, user_id: str, friend_user_id: str) -> Optional[Friendship]:
    doc = reader.get(COLLECTION_FRIENDSHIPS, friendship_id(user_id, friend_user_id))
    return optional_doc_to_model(doc, Friendship)


def friendships_query(user_id: str) -> Query:
    return Query(COLLECTION_FRIENDSHIPS).where("users", "array-contains", user_id)


def list_friendships_for_user(reader: DocumentReader, user_id: str) -> List[Friendship]:
    return [doc_to_model(doc, Friendship) for doc in reader.query(friendships_query(user_id))]


def upsert_friendship(writer, user_id: str, friend_user_id: str) -> Friendship:
    """Write the friendship document; both parties converge on the same id."""
    a, b = normalize_pair(user_id, friend_user_id)
    friendship = Friendship(id=friendship_id(a, b), users=(a, b), created_at=utcnow())
    writer.set(COLLECTION_FRIENDSHIPS, friendship.id, friendship.to_document())
    return friendship


def delete_friendship(store: DocumentStore, user_id: str, friend_user_id: str) -> None:
    try:
        store.delete(COLLECTION_FRIENDSHIPS, friendship_id(user_id, friend_user_id))
    except Exception as e:
        logger.error(f"Error deleting friendship ({user_id},{friend_user_id}): {e}")
        raise


def get_friend_request(reader: DocumentReader, request_id: str) -> Optional[FriendRequest]:
    return optional_doc_to_model(reader.get(COLLECTION_FRIEND_REQUESTS, request_id), FriendRequest)


def pending_requests_query(
    from_user_id: Optional[str] = None, to_user_id: Optional[str] = None
) -> Query:
    query = Query(COLLECTION_FRIEND_REQUESTS)
    if from_user_id is not None:
        query = query.where("fromUserId", "==", from_user_id)
    if to_user_id is not None:
        query = query.where("toUserId", "==", to_user_id)
    return query.where("status", "==", "pending").order_by("createdAt")


def list_pending_requests(
    reader: DocumentReader,
    from_user_id: Optional[str] = None,
    to_user_id: Optional[str] = None,
) -> List[FriendRequest]:
    docs = reader.query(pending_requests_query(from_user_id, to_user_id))
    return [doc_to_model(doc, FriendRequest) for doc in docs]


def insert_friend_request(writer, from_user_id: str, to_user_id: str) -> FriendRequest:
    request = FriendRequest(
        id="",
        from_user_id=from_user_id,
        to_user_id=to_user_id,
        status="pending",
        created_at=utcnow(),
    )
    request_id = writer.add(COLLECTION_FRIEND_REQUESTS, request.to_document())
    return request.model_copy(update={"id": request_id})


def update_friend_request_status(
    writer, request_id: str, status: FriendRequestStatus
) -> None:
    writer.update(COLLECTION_FRIEND_REQUESTS, request_id, {"status": status})


def delete_friend_request(writer, request_id: str) -> None:
    try:
        writer.delete(COLLECTION_FRIEND_REQUESTS, request_id)
    except Exception as e:
        logger.error(f"Error deleting friend request {request_id}: {e}")
        raise
