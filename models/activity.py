from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel

from models.user import UserSummary


class ActivityResponse(BaseModel):
    id: str
    type: Literal["item_added"]
    user: UserSummary
    wishlist_item_id: str
    item_name: str
    item_description: Optional[str]
    item_images: List[str]
    item_price: Optional[float]
    item_currency: Optional[str]
    item_links: List[str]
    created_at: datetime


class ActivityCursor(BaseModel):
    created_at: str
    id: str


class ActivityPageResponse(BaseModel):
    activities: List[ActivityResponse]
    next_cursor: Optional[ActivityCursor] = None


class UpcomingBirthdayResponse(BaseModel):
    user: UserSummary
    next_date: date
    days_until: int


class UpcomingBirthdaysResponse(BaseModel):
    birthdays: List[UpcomingBirthdayResponse]
