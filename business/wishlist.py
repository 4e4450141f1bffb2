"""
Wishlist items.

Items belong to exactly one owner; every mutation checks ownership before
touching the store. Priority orders the wishlist ascending and starts as the
creation time in milliseconds, so new items land at the end until the owner
reorders.
"""
import logging
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import urlparse

from pydantic import BaseModel

from business.activity import delete_item_snapshots, record_item_added, sync_item_snapshot
from business.errors import AuthorizationError, NotFoundError, ValidationError
from business.session import Session
from business.sync.batch import chunked
from database.documents.collections import COLLECTION_WISHLIST_ITEMS
from database.documents.folder import get_folder
from database.documents.purchase import delete_purchase, list_purchases_for_item
from database.documents.store import (
    MAX_IN_FILTER_VALUES,
    ArrayRemove,
    ArrayUnion,
    DocumentNotFoundError,
    DocumentStore,
)
from database.documents.wishlist_item import (
    Currency,
    WishlistItem,
    get_item,
    insert_item,
    list_items_by_owner,
    update_item_fields,
)
from database.documents.wishlist_item import delete_item as delete_item_document
from utils.constants import MAX_ITEM_IMAGES
from utils.database import epoch_millis, utcnow

logger = logging.getLogger(__name__)


class ItemData(BaseModel):
    name: str
    images: List[str] = []
    price: Optional[float] = None
    currency: Optional[Currency] = None
    description: Optional[str] = None
    links: List[str] = []
    folder_ids: List[str] = []


class ItemChanges(BaseModel):
    """Partial update; only fields that were explicitly set are written."""

    name: Optional[str] = None
    images: Optional[List[str]] = None
    price: Optional[float] = None
    currency: Optional[Currency] = None
    description: Optional[str] = None
    links: Optional[List[str]] = None


def _is_absolute_http_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def validate_item(
    name: str,
    images: Sequence[str],
    links: Sequence[str],
    price: Optional[float],
    currency: Optional[str],
) -> None:
    if not name or not name.strip():
        raise ValidationError("Item name is required")
    if len(images) > MAX_ITEM_IMAGES:
        raise ValidationError(f"An item can have at most {MAX_ITEM_IMAGES} images")
    for link in links:
        if not _is_absolute_http_url(link):
            raise ValidationError(f"Invalid link: {link}")
    if price is not None and price < 0:
        raise ValidationError("Price cannot be negative")
    if currency is not None and price is None:
        raise ValidationError("Currency requires a price")


def _check_folders_owned(session: Session, folder_ids: Sequence[str]) -> None:
    for folder_id in folder_ids:
        folder = get_folder(session.store, folder_id)
        if folder is None:
            raise NotFoundError(f"Folder {folder_id} not found")
        if folder.owner_id != session.user_id:
            raise AuthorizationError("You can only use your own folders")


def get_owned_item(session: Session, item_id: str) -> WishlistItem:
    """The item, provided the session user owns it."""
    item = get_item(session.store, item_id)
    if item is None:
        raise NotFoundError("Item not found")
    if item.owner_id != session.user_id:
        raise AuthorizationError("You can only modify your own items")
    return item


def get_wishlist_item(store: DocumentStore, item_id: str) -> WishlistItem:
    item = get_item(store, item_id)
    if item is None:
        raise NotFoundError("Item not found")
    return item


def list_items(store: DocumentStore, owner_id: str) -> List[WishlistItem]:
    return list_items_by_owner(store, owner_id)


def create_item(session: Session, data: ItemData) -> WishlistItem:
    links = [link.strip() for link in data.links if link and link.strip()]
    validate_item(data.name, data.images, links, data.price, data.currency)
    _check_folders_owned(session, data.folder_ids)

    now = utcnow()
    item = WishlistItem(
        id="",
        owner_id=session.user_id,
        name=data.name.strip(),
        images=list(data.images),
        price=data.price,
        currency=data.currency,
        description=data.description or None,
        links=links,
        priority=epoch_millis(now),
        folder_ids=list(dict.fromkeys(data.folder_ids)),
        created_at=now,
        updated_at=now,
    )
    item = insert_item(session.store, item)
    logger.info(f"Wishlist item {item.id} created by {session.user_id}")

    record_item_added(session.store, item)
    return item


def update_item(session: Session, item_id: str, changes: ItemChanges) -> WishlistItem:
    item = get_owned_item(session, item_id)

    update = changes.model_dump(exclude_unset=True)
    if "links" in update and update["links"] is not None:
        update["links"] = [link.strip() for link in update["links"] if link and link.strip()]
    for key in ("images", "links"):
        if key in update and update[key] is None:
            update[key] = []
    if "description" in update:
        update["description"] = update["description"] or None
    if "name" in update and update["name"] is not None:
        update["name"] = update["name"].strip()
    update["updated_at"] = utcnow()

    updated = item.model_copy(update=update)
    validate_item(updated.name, updated.images, updated.links, updated.price, updated.currency)

    document = updated.to_document()
    fields: Dict[str, Any] = {
        WishlistItem.model_fields[name].alias: document[WishlistItem.model_fields[name].alias]
        for name in update
    }
    try:
        update_item_fields(session.store, item_id, fields)
    except DocumentNotFoundError:
        raise NotFoundError("Item not found")
    logger.info(f"Wishlist item {item_id} updated")

    sync_item_snapshot(session.store, updated)
    return updated


def delete_item(session: Session, item_id: str) -> None:
    """
    Delete an item and clean up what refers to it.

    The item itself is deleted first. Activity snapshots, purchase claims
    and stored images are removed afterwards; each of those steps is logged
    on failure and does not undo the delete.
    """
    item = get_owned_item(session, item_id)

    delete_item_document(session.store, item_id)
    logger.info(f"Wishlist item {item_id} deleted by {session.user_id}")

    try:
        removed = delete_item_snapshots(session.store, item_id)
        logger.info(f"Removed {removed} activity entries for item {item_id}")
    except Exception as e:
        logger.error(f"Error removing activity for item {item_id}: {e}")

    try:
        for purchase in list_purchases_for_item(session.store, item_id):
            delete_purchase(session.store, purchase.id)
    except Exception as e:
        logger.error(f"Error removing purchases for item {item_id}: {e}")

    if item.images:
        if session.storage is None:
            logger.warning(f"No image storage configured, {len(item.images)} images of item {item_id} kept")
        else:
            try:
                session.storage.delete_images(item.images)
            except Exception as e:
                logger.error(f"Error removing images for item {item_id}: {e}")


def reorder_items(session: Session, item_ids: Sequence[str]) -> None:
    """
    Set every listed item's priority to its index in ``item_ids``.

    All priorities are written in one atomic batch, so readers see either
    the old order or the new one.
    """
    if len(set(item_ids)) != len(item_ids):
        raise ValidationError("Duplicate items in new order")

    found = {}
    for chunk in chunked(list(item_ids), MAX_IN_FILTER_VALUES):
        for doc in session.store.get_many(COLLECTION_WISHLIST_ITEMS, chunk):
            found[doc.id] = doc
    for item_id in item_ids:
        doc = found.get(item_id)
        if doc is None:
            raise NotFoundError(f"Item {item_id} not found")
        if doc.get("ownerId") != session.user_id:
            raise AuthorizationError("You can only reorder your own items")

    batch = session.store.batch()
    for index, item_id in enumerate(item_ids):
        batch.update(COLLECTION_WISHLIST_ITEMS, item_id, {"priority": index})
    try:
        batch.commit()
    except DocumentNotFoundError:
        raise NotFoundError("An item was deleted while reordering")
    logger.info(f"Reordered {len(item_ids)} items for {session.user_id}")


def set_item_folders(session: Session, item_id: str, folder_ids: Sequence[str]) -> WishlistItem:
    item = get_owned_item(session, item_id)
    folder_ids = list(dict.fromkeys(folder_ids))
    _check_folders_owned(session, folder_ids)

    now = utcnow()
    updated = item.model_copy(update={"folder_ids": folder_ids, "updated_at": now})
    update_item_fields(
        session.store,
        item_id,
        {"folderIds": folder_ids, "updatedAt": updated.to_document()["updatedAt"]},
    )
    return updated


def add_item_to_folder(session: Session, item_id: str, folder_id: str) -> None:
    get_owned_item(session, item_id)
    _check_folders_owned(session, [folder_id])
    update_item_fields(session.store, item_id, {"folderIds": ArrayUnion(folder_id)})


def remove_item_from_folder(session: Session, item_id: str, folder_id: str) -> None:
    get_owned_item(session, item_id)
    update_item_fields(session.store, item_id, {"folderIds": ArrayRemove(folder_id)})
