import logging
from typing import List

from fastapi import APIRouter, Depends, status

from business import purchases as purchase_service
from business import wishlist as wishlist_service
from business.session import Session
from business.wishlist import ItemChanges, ItemData
from models.wishlist import (
    ItemFoldersRequest,
    ReorderItemsRequest,
    WishlistItemResponse,
    WishlistResponse,
    item_response,
)
from utils.middlewares.auth_user import get_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/wishlist", tags=["Wishlist"])


@router.post("/items", response_model=WishlistItemResponse, status_code=status.HTTP_201_CREATED)
async def create_item(
    payload: ItemData,
    session: Session = Depends(get_session),
) -> WishlistItemResponse:
    item = wishlist_service.create_item(session, payload)
    return item_response(item)


@router.get("/items/{item_id}", response_model=WishlistItemResponse)
async def get_item(
    item_id: str,
    session: Session = Depends(get_session),
) -> WishlistItemResponse:
    item = wishlist_service.get_wishlist_item(session.store, item_id)
    purchases = purchase_service.list_purchases(session, item.owner_id)
    return item_response(item, purchase_service.item_purchase_view(session, item, purchases))


@router.patch("/items/{item_id}", response_model=WishlistItemResponse)
async def update_item(
    item_id: str,
    payload: ItemChanges,
    session: Session = Depends(get_session),
) -> WishlistItemResponse:
    item = wishlist_service.update_item(session, item_id, payload)
    return item_response(item)


@router.delete("/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_item(
    item_id: str,
    session: Session = Depends(get_session),
) -> None:
    wishlist_service.delete_item(session, item_id)


@router.put("/items/{item_id}/folders", response_model=WishlistItemResponse)
async def set_item_folders(
    item_id: str,
    payload: ItemFoldersRequest,
    session: Session = Depends(get_session),
) -> WishlistItemResponse:
    item = wishlist_service.set_item_folders(session, item_id, payload.folder_ids)
    return item_response(item)


@router.put("/order", status_code=status.HTTP_204_NO_CONTENT)
async def reorder_items(
    payload: ReorderItemsRequest,
    session: Session = Depends(get_session),
) -> None:
    wishlist_service.reorder_items(session, payload.item_ids)


@router.get("/{owner_id}", response_model=WishlistResponse)
async def get_wishlist(
    owner_id: str,
    session: Session = Depends(get_session),
) -> WishlistResponse:
    """
    Items of ``owner_id`` ordered by priority.

    Friends see the purchase state of every item; the owner never does.
    """
    items = wishlist_service.list_items(session.store, owner_id)
    purchases = purchase_service.list_purchases(session, owner_id)
    responses: List[WishlistItemResponse] = [
        item_response(item, purchase_service.item_purchase_view(session, item, purchases))
        for item in items
    ]
    return WishlistResponse(owner_id=owner_id, items=responses)
