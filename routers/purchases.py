import logging

from fastapi import APIRouter, Depends, Query, status

from business import purchases as purchase_service
from business.session import Session
from database.documents.purchase import Purchase
from models.purchase import PurchaseCreate, PurchaseListResponse, PurchaseResponse
from utils.middlewares.auth_user import get_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/purchases", tags=["Purchases"])


def _purchase_response(purchase: Purchase) -> PurchaseResponse:
    return PurchaseResponse(
        id=purchase.id,
        item_id=purchase.item_id,
        item_owner_id=purchase.item_owner_id,
        buyer_id=purchase.buyer_id,
        buyer_name=purchase.buyer_name,
        created_at=purchase.created_at,
    )


@router.get("", response_model=PurchaseListResponse)
async def list_purchases(
    owner_id: str = Query(...),
    session: Session = Depends(get_session),
) -> PurchaseListResponse:
    purchases = purchase_service.list_purchases(session, owner_id)
    return PurchaseListResponse(purchases=[_purchase_response(p) for p in purchases])


@router.post("", response_model=PurchaseResponse, status_code=status.HTTP_201_CREATED)
async def create_purchase(
    payload: PurchaseCreate,
    session: Session = Depends(get_session),
) -> PurchaseResponse:
    purchase = purchase_service.create_purchase(session, payload.item_id, payload.item_owner_id)
    return _purchase_response(purchase)


@router.delete("/{purchase_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_purchase(
    purchase_id: str,
    session: Session = Depends(get_session),
) -> None:
    purchase_service.delete_purchase(session, purchase_id)
