import logging
from typing import List, Sequence

from business.errors import AuthorizationError, NotFoundError, ValidationError
from business.session import Session
from database.documents.folder import Folder
from database.documents.folder import delete_folder as delete_folder_document
from database.documents.folder import get_folder as get_folder_document
from database.documents.folder import insert_folder, list_folders_by_owner, update_folder_fields
from database.documents.store import ArrayRemove, DocumentNotFoundError, DocumentStore
from database.documents.wishlist_item import WishlistItem, list_items_in_folder, update_item_fields
from utils.database import utcnow

logger = logging.getLogger(__name__)

MAX_FOLDER_NAME_LENGTH = 50


def _clean_name(name: str) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("Folder name is required")
    if len(cleaned) > MAX_FOLDER_NAME_LENGTH:
        raise ValidationError(f"Folder name must be at most {MAX_FOLDER_NAME_LENGTH} characters")
    return cleaned


def get_folder(store: DocumentStore, folder_id: str) -> Folder:
    folder = get_folder_document(store, folder_id)
    if folder is None:
        raise NotFoundError("Folder not found")
    return folder


def get_owned_folder(session: Session, folder_id: str) -> Folder:
    folder = get_folder(session.store, folder_id)
    if folder.owner_id != session.user_id:
        raise AuthorizationError("You can only modify your own folders")
    return folder


def list_folders(store: DocumentStore, owner_id: str) -> List[Folder]:
    """Folders of ``owner_id``, newest first."""
    return list_folders_by_owner(store, owner_id)


def create_folder(session: Session, name: str) -> Folder:
    now = utcnow()
    folder = Folder(
        id="",
        owner_id=session.user_id,
        name=_clean_name(name),
        item_order=[],
        created_at=now,
        updated_at=now,
    )
    folder = insert_folder(session.store, folder)
    logger.info(f"Folder {folder.id} created by {session.user_id}")
    return folder


def rename_folder(session: Session, folder_id: str, name: str) -> Folder:
    folder = get_owned_folder(session, folder_id)
    renamed = folder.model_copy(update={"name": _clean_name(name), "updated_at": utcnow()})
    document = renamed.to_document()
    update_folder_fields(
        session.store,
        folder_id,
        {"name": document["name"], "updatedAt": document["updatedAt"]},
    )
    return renamed


def delete_folder(session: Session, folder_id: str) -> None:
    """
    Delete a folder after removing it from every item that references it.

    Items are updated one by one and any failure aborts before the folder
    is deleted, so a folder never disappears while items still point to it.
    A retry picks up the remaining items.
    """
    get_owned_folder(session, folder_id)

    members = list_items_in_folder(session.store, session.user_id, folder_id)
    for item in members:
        try:
            update_item_fields(session.store, item.id, {"folderIds": ArrayRemove(folder_id)})
        except DocumentNotFoundError:
            # Deleted concurrently, nothing left to detach
            continue

    delete_folder_document(session.store, folder_id)
    logger.info(f"Folder {folder_id} deleted, detached {len(members)} items")


def reorder_folder_items(session: Session, folder_id: str, item_ids: Sequence[str]) -> Folder:
    folder = get_owned_folder(session, folder_id)
    if len(set(item_ids)) != len(item_ids):
        raise ValidationError("Duplicate items in new order")

    reordered = folder.model_copy(update={"item_order": list(item_ids), "updated_at": utcnow()})
    document = reordered.to_document()
    update_folder_fields(
        session.store,
        folder_id,
        {"itemOrder": document["itemOrder"], "updatedAt": document["updatedAt"]},
    )
    return reordered


def sort_by_item_order(folder: Folder, items: Sequence[WishlistItem]) -> List[WishlistItem]:
    """Order items as listed in ``folder.item_order``; unlisted items follow in priority order."""
    position = {item_id: index for index, item_id in enumerate(folder.item_order)}
    unlisted = len(position)
    return sorted(items, key=lambda item: (position.get(item.id, unlisted), item.priority, item.id))


def list_folder_items(store: DocumentStore, folder: Folder) -> List[WishlistItem]:
    items = list_items_in_folder(store, folder.owner_id, folder.id)
    return sort_by_item_order(folder, items)
