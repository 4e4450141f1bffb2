import logging
from typing import List, Optional

from database.documents.collections import COLLECTION_FOLDERS
from database.documents.store import DocumentReader, DocumentStore, Query
from utils.database import Record, Timestamp, doc_to_model, optional_doc_to_model

logger = logging.getLogger(__name__)


class Folder(Record):
    owner_id: str
    name: str
    item_order: List[str] = []
    created_at: Timestamp
    updated_at: Timestamp


def get_folder(reader: DocumentReader, folder_id: str) -> Optional[Folder]:
    return optional_doc_to_model(reader.get(COLLECTION_FOLDERS, folder_id), Folder)


def folders_by_owner_query(owner_id: str) -> Query:
    return (
        Query(COLLECTION_FOLDERS)
        .where("ownerId", "==", owner_id)
        .order_by("createdAt", descending=True)
    )


def list_folders_by_owner(reader: DocumentReader, owner_id: str) -> List[Folder]:
    return [doc_to_model(doc, Folder) for doc in reader.query(folders_by_owner_query(owner_id))]


def insert_folder(store: DocumentStore, folder: Folder) -> Folder:
    try:
        folder_id = store.add(COLLECTION_FOLDERS, folder.to_document())
        return folder.model_copy(update={"id": folder_id})
    except Exception as e:
        logger.error(f"Error creating folder for {folder.owner_id}: {e}")
        raise


def update_folder_fields(store: DocumentStore, folder_id: str, fields: dict) -> None:
    try:
        store.update(COLLECTION_FOLDERS, folder_id, fields)
    except Exception as e:
        logger.error(f"Error updating folder {folder_id}: {e}")
        raise


def delete_folder(store: DocumentStore, folder_id: str) -> None:
    try:
        store.delete(COLLECTION_FOLDERS, folder_id)
    except Exception as e:
        logger.error(f"Error deleting folder {folder_id}: {e}")
        raise
