import logging
from typing import List, Optional

from database.documents.collections import COLLECTION_PURCHASES
from database.documents.store import DocumentExistsError, DocumentReader, DocumentStore, Query
from utils.database import Record, Timestamp, doc_to_model, optional_doc_to_model

logger = logging.getLogger(__name__)


class Purchase(Record):
    item_id: str
    item_owner_id: str
    buyer_id: str
    buyer_name: str
    created_at: Timestamp


def purchase_id(item_id: str) -> str:
    # One claim per item: the item id doubles as the claim id
    return item_id


def get_purchase(reader: DocumentReader, purchase_id_: str) -> Optional[Purchase]:
    return optional_doc_to_model(reader.get(COLLECTION_PURCHASES, purchase_id_), Purchase)


def purchases_by_owner_query(item_owner_id: str) -> Query:
    return Query(COLLECTION_PURCHASES).where("itemOwnerId", "==", item_owner_id)


def list_purchases_by_owner(reader: DocumentReader, item_owner_id: str) -> List[Purchase]:
    docs = reader.query(purchases_by_owner_query(item_owner_id))
    return [doc_to_model(doc, Purchase) for doc in docs]


def list_purchases_for_item(reader: DocumentReader, item_id: str) -> List[Purchase]:
    docs = reader.query(Query(COLLECTION_PURCHASES).where("itemId", "==", item_id))
    return [doc_to_model(doc, Purchase) for doc in docs]


def insert_purchase(store: DocumentStore, purchase: Purchase) -> Purchase:
    """Insert-only write; raises ``DocumentExistsError`` when the item is already claimed."""
    try:
        store.create(COLLECTION_PURCHASES, purchase.id, purchase.to_document())
        return purchase
    except DocumentExistsError:
        raise
    except Exception as e:
        logger.error(f"Error creating purchase for item {purchase.item_id}: {e}")
        raise


def delete_purchase(store: DocumentStore, purchase_id_: str) -> None:
    try:
        store.delete(COLLECTION_PURCHASES, purchase_id_)
    except Exception as e:
        logger.error(f"Error deleting purchase {purchase_id_}: {e}")
        raise
