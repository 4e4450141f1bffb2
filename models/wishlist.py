from dataclasses import asdict
from datetime import datetime
from typing import List, Literal, Optional, Union

from pydantic import BaseModel

from business.purchases import PurchaseView
from database.documents.wishlist_item import WishlistItem

PurchaseStateValue = Literal["claimable", "bought_by_you", "bought_by_other"]


class ItemPurchaseState(BaseModel):
    state: PurchaseStateValue
    purchase_id: Optional[str] = None
    buyer_name: Optional[str] = None


class WishlistItemResponse(BaseModel):
    id: str
    owner_id: str
    name: str
    images: List[str]
    price: Optional[float]
    currency: Optional[str]
    description: Optional[str]
    links: List[str]
    priority: Union[int, float]
    folder_ids: List[str]
    created_at: datetime
    updated_at: datetime
    # Absent for the owner
    purchase: Optional[ItemPurchaseState] = None


class WishlistResponse(BaseModel):
    owner_id: str
    items: List[WishlistItemResponse]


class ReorderItemsRequest(BaseModel):
    item_ids: List[str]


class ItemFoldersRequest(BaseModel):
    folder_ids: List[str]


def item_response(item: WishlistItem, purchase: Optional[PurchaseView] = None) -> WishlistItemResponse:
    return WishlistItemResponse(
        id=item.id,
        owner_id=item.owner_id,
        name=item.name,
        images=item.images,
        price=item.price,
        currency=item.currency,
        description=item.description,
        links=item.links,
        priority=item.priority,
        folder_ids=item.folder_ids,
        created_at=item.created_at,
        updated_at=item.updated_at,
        purchase=ItemPurchaseState(**asdict(purchase)) if purchase else None,
    )
