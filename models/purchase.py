from datetime import datetime
from typing import List

from pydantic import BaseModel


class PurchaseCreate(BaseModel):
    item_id: str
    item_owner_id: str


class PurchaseResponse(BaseModel):
    id: str
    item_id: str
    item_owner_id: str
    buyer_id: str
    buyer_name: str
    created_at: datetime


class PurchaseListResponse(BaseModel):
    purchases: List[PurchaseResponse]
