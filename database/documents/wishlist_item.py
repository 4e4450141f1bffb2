import logging
from typing import Any, List, Literal, Optional, Union

from pydantic import model_validator

from database.documents.collections import COLLECTION_WISHLIST_ITEMS
from database.documents.store import DocumentReader, DocumentStore, Query
from utils.database import Record, Timestamp, doc_to_model, optional_doc_to_model

logger = logging.getLogger(__name__)

Currency = Literal["ARS", "USD"]


class WishlistItem(Record):
    owner_id: str
    name: str
    images: List[str] = []
    price: Optional[float] = None
    currency: Optional[Currency] = None
    description: Optional[str] = None
    links: List[str] = []
    priority: Union[int, float]
    folder_ids: List[str] = []
    created_at: Timestamp
    updated_at: Timestamp

    @model_validator(mode="before")
    @classmethod
    def _migrate_legacy_fields(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        # Older documents stored a single "link" and null arrays
        legacy_link = data.pop("link", None)
        if not data.get("links"):
            data["links"] = [legacy_link] if legacy_link else []
        for key in ("images", "folderIds"):
            if data.get(key) is None:
                data[key] = []
        return data


def get_item(reader: DocumentReader, item_id: str) -> Optional[WishlistItem]:
    return optional_doc_to_model(reader.get(COLLECTION_WISHLIST_ITEMS, item_id), WishlistItem)


def items_by_owner_query(owner_id: str) -> Query:
    return (
        Query(COLLECTION_WISHLIST_ITEMS)
        .where("ownerId", "==", owner_id)
        .order_by("priority")
    )


def items_in_folder_query(owner_id: str, folder_id: str) -> Query:
    return (
        Query(COLLECTION_WISHLIST_ITEMS)
        .where("ownerId", "==", owner_id)
        .where("folderIds", "array-contains", folder_id)
    )


def list_items_by_owner(reader: DocumentReader, owner_id: str) -> List[WishlistItem]:
    return [doc_to_model(doc, WishlistItem) for doc in reader.query(items_by_owner_query(owner_id))]


def list_items_in_folder(reader: DocumentReader, owner_id: str, folder_id: str) -> List[WishlistItem]:
    docs = reader.query(items_in_folder_query(owner_id, folder_id))
    return [doc_to_model(doc, WishlistItem) for doc in docs]


def insert_item(store: DocumentStore, item: WishlistItem) -> WishlistItem:
    try:
        item_id = store.add(COLLECTION_WISHLIST_ITEMS, item.to_document())
        return item.model_copy(update={"id": item_id})
    except Exception as e:
        logger.error(f"Error creating wishlist item for {item.owner_id}: {e}")
        raise


def update_item_fields(store: DocumentStore, item_id: str, fields: dict) -> None:
    try:
        store.update(COLLECTION_WISHLIST_ITEMS, item_id, fields)
    except Exception as e:
        logger.error(f"Error updating wishlist item {item_id}: {e}")
        raise


def delete_item(store: DocumentStore, item_id: str) -> None:
    try:
        store.delete(COLLECTION_WISHLIST_ITEMS, item_id)
    except Exception as e:
        logger.error(f"Error deleting wishlist item {item_id}: {e}")
        raise
