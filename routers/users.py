import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from business import friendship as friendship_service
from business import user as user_service
from business.session import Session
from database.documents.store import DocumentStore
from database.documents.users import User, get_user_by_username
from models.auth_user import AuthUser
from models.user import (
    MeResponse,
    RegisterRequest,
    UpdateProfileRequest,
    UsernameAvailabilityResponse,
    UserProfileResponse,
    UserSearchResponse,
    user_summary,
)
from utils.middlewares.auth_user import get_current_user, get_session, get_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


def _me(user: User) -> MeResponse:
    return MeResponse(**user_summary(user).model_dump(), email=user.email, created_at=user.created_at)


def _profile(entry: friendship_service.UserWithFriendship) -> UserProfileResponse:
    return UserProfileResponse(
        user=user_summary(entry.user),
        friendship_status=entry.status,
        request_id=entry.request_id,
    )


@router.post("/register", response_model=MeResponse, status_code=status.HTTP_201_CREATED)
async def register(
    payload: RegisterRequest,
    current_user: AuthUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
) -> MeResponse:
    if not current_user.email:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Token carries no email")
    user = user_service.register_user(
        store,
        current_user.id,
        current_user.email,
        payload.username,
        first_name=payload.first_name,
        last_name=payload.last_name,
        birthday=payload.birthday,
    )
    return _me(user)


@router.get("/me", response_model=MeResponse)
async def get_me(session: Session = Depends(get_session)) -> MeResponse:
    return _me(session.user)


@router.patch("/me", response_model=MeResponse)
async def update_me(
    payload: UpdateProfileRequest,
    session: Session = Depends(get_session),
) -> MeResponse:
    changes = payload.model_dump(exclude_unset=True)
    logger.info(f"Updating profile of {session.user_id}: {sorted(changes)}")
    user = user_service.update_profile(session, **changes)
    return _me(user)


@router.get("/username-available", response_model=UsernameAvailabilityResponse)
async def username_available(
    username: str = Query(..., min_length=1),
    current_user: AuthUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
) -> UsernameAvailabilityResponse:
    normalized = user_service.validate_username(username)
    return UsernameAvailabilityResponse(
        username=normalized,
        available=user_service.check_username_available(store, normalized),
    )


@router.get("/search", response_model=UserSearchResponse)
async def search(
    q: str = Query(""),
    session: Session = Depends(get_session),
) -> UserSearchResponse:
    results = friendship_service.search_users(session, q)
    return UserSearchResponse(results=[_profile(entry) for entry in results])


@router.get("/by-username/{username}", response_model=UserProfileResponse)
async def get_profile_by_username(
    username: str,
    session: Session = Depends(get_session),
) -> UserProfileResponse:
    user = get_user_by_username(session.store, username)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return _profile(friendship_service.get_user_profile(session, user.id))


@router.get("/{user_id}", response_model=UserProfileResponse)
async def get_profile(
    user_id: str,
    session: Session = Depends(get_session),
) -> UserProfileResponse:
    return _profile(friendship_service.get_user_profile(session, user_id))
