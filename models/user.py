from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field

from business.user import display_name
from database.documents.users import User

FriendshipStatusValue = Literal["none", "friends", "pending_sent", "pending_received"]


class UserSummary(BaseModel):
    id: str
    username: str
    first_name: Optional[str]
    last_name: Optional[str]
    display_name: str
    photo_url: Optional[str]
    birthday: Optional[date]


class MeResponse(UserSummary):
    email: EmailStr
    created_at: datetime


class UserProfileResponse(BaseModel):
    user: UserSummary
    friendship_status: Optional[FriendshipStatusValue]
    request_id: Optional[str] = None


class UserSearchResponse(BaseModel):
    results: List[UserProfileResponse]


class UsernameAvailabilityResponse(BaseModel):
    username: str
    available: bool


class RegisterRequest(BaseModel):
    username: str = Field(min_length=1)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    birthday: Optional[date] = None


class UpdateProfileRequest(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    birthday: Optional[date] = None
    photo_url: Optional[str] = None


def user_summary(user: User) -> UserSummary:
    return UserSummary(
        id=user.id,
        username=user.username,
        first_name=user.first_name,
        last_name=user.last_name,
        display_name=display_name(user),
        photo_url=user.photo_url,
        birthday=user.birthday,
    )
