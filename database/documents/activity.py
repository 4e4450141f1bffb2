import logging
from typing import Any, List, Literal, Optional, Sequence

from pydantic import model_validator

from database.documents.collections import COLLECTION_ACTIVITY
from database.documents.store import DocumentReader, DocumentStore, Query
from utils.database import Record, Timestamp, doc_to_model

logger = logging.getLogger(__name__)


class ActivityItem(Record):
    user_id: str
    type: Literal["item_added"] = "item_added"
    wishlist_item_id: str
    item_name: str
    item_description: Optional[str] = None
    item_images: List[str] = []
    item_price: Optional[float] = None
    item_currency: Optional[str] = None
    item_links: List[str] = []
    created_at: Timestamp

    @model_validator(mode="before")
    @classmethod
    def _migrate_legacy_fields(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        legacy_link = data.pop("itemLink", None)
        if not data.get("itemLinks"):
            data["itemLinks"] = [legacy_link] if legacy_link else []
        if data.get("itemImages") is None:
            data["itemImages"] = []
        return data


def activity_feed_query(user_ids: Sequence[str], page_size: int) -> Query:
    return (
        Query(COLLECTION_ACTIVITY)
        .where("userId", "in", list(user_ids))
        .order_by("createdAt", descending=True)
        .limit(page_size)
    )


def list_activity_for_item(reader: DocumentReader, wishlist_item_id: str) -> List[ActivityItem]:
    docs = reader.query(
        Query(COLLECTION_ACTIVITY).where("wishlistItemId", "==", wishlist_item_id)
    )
    return [doc_to_model(doc, ActivityItem) for doc in docs]


def insert_activity(store: DocumentStore, activity: ActivityItem) -> ActivityItem:
    activity_id = store.add(COLLECTION_ACTIVITY, activity.to_document())
    return activity.model_copy(update={"id": activity_id})


def update_activity_fields(store: DocumentStore, activity_id: str, fields: dict) -> None:
    store.update(COLLECTION_ACTIVITY, activity_id, fields)


def delete_activity(store: DocumentStore, activity_id: str) -> None:
    store.delete(COLLECTION_ACTIVITY, activity_id)
