from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel

from models.user import FriendshipStatusValue, UserSummary


class FriendListResponse(BaseModel):
    friends: List[UserSummary]


class FriendRequestResponse(BaseModel):
    id: str
    from_user_id: str
    to_user_id: str
    status: Literal["pending", "accepted", "rejected"]
    created_at: datetime
    user: Optional[UserSummary] = None


class FriendRequestListResponse(BaseModel):
    incoming: List[FriendRequestResponse]
    outgoing: List[FriendRequestResponse]


class FriendRequestCreate(BaseModel):
    to_user_id: str


class FriendshipResponse(BaseModel):
    id: str
    users: List[str]
    created_at: datetime


class FriendshipStatusResponse(BaseModel):
    user_id: str
    status: FriendshipStatusValue
    request_id: Optional[str] = None
