import logging
from datetime import date
from typing import Dict, List, Optional, Sequence

from pydantic import Field, field_validator

from database.documents.collections import COLLECTION_USERS
from database.documents.store import MAX_IN_FILTER_VALUES, DocumentStore, Query
from utils.database import Record, Timestamp, birthday_to_date, doc_to_model, optional_doc_to_model

logger = logging.getLogger(__name__)


class User(Record):
    email: str
    username: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    photo_url: Optional[str] = Field(default=None, alias="photoURL")
    birthday: Optional[date] = None
    created_at: Timestamp

    @field_validator("birthday", mode="before")
    @classmethod
    def _coerce_birthday(cls, value):
        return birthday_to_date(value)

    @field_validator("username", "email", mode="before")
    @classmethod
    def _lowercase(cls, value):
        return value.lower() if isinstance(value, str) else value


def get_user_by_id(store: DocumentStore, user_id: str) -> Optional[User]:
    try:
        return optional_doc_to_model(store.get(COLLECTION_USERS, user_id), User)
    except Exception as e:
        logger.error(f"Error getting user {user_id}: {e}")
        raise


def get_users_by_ids(store: DocumentStore, user_ids: Sequence[str]) -> Dict[str, User]:
    """Point-read at most ``MAX_IN_FILTER_VALUES`` users; callers chunk larger sets."""
    if len(user_ids) > MAX_IN_FILTER_VALUES:
        raise ValueError(f"At most {MAX_IN_FILTER_VALUES} user ids per lookup")
    docs = store.get_many(COLLECTION_USERS, user_ids)
    return {doc.id: doc_to_model(doc, User) for doc in docs}


def get_user_by_username(store: DocumentStore, username: str) -> Optional[User]:
    docs = store.query(
        Query(COLLECTION_USERS).where("username", "==", username.lower()).limit(1)
    )
    return doc_to_model(docs[0], User) if docs else None


def list_users(store: DocumentStore) -> List[User]:
    return [doc_to_model(doc, User) for doc in store.query(Query(COLLECTION_USERS))]


def save_user(store: DocumentStore, user: User) -> User:
    try:
        store.set(COLLECTION_USERS, user.id, user.to_document())
        return user
    except Exception as e:
        logger.error(f"Error saving user {user.id}: {e}")
        raise


def update_user_fields(store: DocumentStore, user_id: str, fields: dict) -> Optional[User]:
    if fields:
        store.update(COLLECTION_USERS, user_id, fields)
    return get_user_by_id(store, user_id)
