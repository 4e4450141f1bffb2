"""
Purchase coordination ledger.

Friends claim items off a wishlist so two people do not buy the same gift.
The owner of an item must never learn that it was claimed: every read path
that could be reached with the owner's session returns nothing.
"""
import logging
from dataclasses import dataclass
from typing import List, Literal, Optional, Sequence

from business.errors import AlreadyPurchasedError, AuthorizationError, NotFoundError, ValidationError
from business.session import Session
from database.documents.purchase import (
    Purchase,
    get_purchase,
    insert_purchase,
    list_purchases_by_owner,
    purchase_id,
)
from database.documents.purchase import delete_purchase as delete_purchase_document
from database.documents.store import DocumentExistsError
from database.documents.users import User
from database.documents.wishlist_item import WishlistItem, get_item
from utils.database import utcnow

logger = logging.getLogger(__name__)

PurchaseState = Literal["claimable", "bought_by_you", "bought_by_other"]


@dataclass
class PurchaseView:
    state: PurchaseState
    purchase_id: Optional[str] = None
    buyer_name: Optional[str] = None


def buyer_display_name(user: User) -> str:
    full_name = f"{user.first_name or ''} {user.last_name or ''}".strip()
    if full_name:
        return full_name
    if user.username:
        return user.username
    return "Someone"


def create_purchase(session: Session, item_id: str, item_owner_id: str) -> Purchase:
    """
    Claim ``item_id`` for the session user.

    The claim id is derived from the item id and written insert-only, so
    only the first of two concurrent claims succeeds.

    Raises:
        AuthorizationError: The caller owns the item
        NotFoundError: The item does not exist
        ValidationError: ``item_owner_id`` does not own the item
        AlreadyPurchasedError: Someone already claimed the item
    """
    if item_owner_id == session.user_id:
        raise AuthorizationError("You cannot buy your own item")

    item = get_item(session.store, item_id)
    if item is None:
        raise NotFoundError("Item not found")
    if item.owner_id != item_owner_id:
        raise ValidationError("Item owner does not match")

    purchase = Purchase(
        id=purchase_id(item_id),
        item_id=item_id,
        item_owner_id=item_owner_id,
        buyer_id=session.user_id,
        buyer_name=buyer_display_name(session.user),
        created_at=utcnow(),
    )
    try:
        insert_purchase(session.store, purchase)
    except DocumentExistsError:
        raise AlreadyPurchasedError("This item was already bought")

    logger.info(f"Item {item_id} claimed by {session.user_id}")
    return purchase


def delete_purchase(session: Session, purchase_id_: str, item_owner_id: Optional[str] = None) -> None:
    """
    Withdraw a claim. Only the buyer may do so; a missing claim is a no-op.

    The item owner gets that same no-op whether or not the item was claimed.
    """
    purchase = get_purchase(session.store, purchase_id_)
    if purchase is None or purchase.item_owner_id == session.user_id:
        logger.info(f"No purchase {purchase_id_} for {session.user_id} to cancel")
        return
    if purchase.buyer_id != session.user_id:
        raise AuthorizationError("Only the buyer can cancel a purchase")
    if item_owner_id is not None and purchase.item_owner_id != item_owner_id:
        raise ValidationError("Item owner does not match")

    delete_purchase_document(session.store, purchase_id_)
    logger.info(f"Purchase {purchase_id_} cancelled by {session.user_id}")


def list_purchases(session: Session, item_owner_id: str) -> List[Purchase]:
    """Claims on ``item_owner_id``'s items; always empty for the owner."""
    if item_owner_id == session.user_id:
        return []
    return list_purchases_by_owner(session.store, item_owner_id)


def purchase_for_item(purchases: Sequence[Purchase], item_id: str) -> Optional[Purchase]:
    # Earliest claim wins when more than one exists for an item
    candidates = [p for p in purchases if p.item_id == item_id]
    if not candidates:
        return None
    return min(candidates, key=lambda p: (p.created_at, p.id))


def is_purchased(purchases: Sequence[Purchase], item_id: str) -> bool:
    return purchase_for_item(purchases, item_id) is not None


def item_purchase_view(
    session: Session, item: WishlistItem, purchases: Sequence[Purchase]
) -> Optional[PurchaseView]:
    """Purchase state of ``item`` as the session user may see it; ``None`` for the owner."""
    if item.owner_id == session.user_id:
        return None
    purchase = purchase_for_item(purchases, item.id)
    if purchase is None:
        return PurchaseView(state="claimable")
    if purchase.buyer_id == session.user_id:
        return PurchaseView(state="bought_by_you", purchase_id=purchase.id, buyer_name=purchase.buyer_name)
    return PurchaseView(state="bought_by_other", purchase_id=purchase.id, buyer_name=purchase.buyer_name)
