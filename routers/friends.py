import logging
from typing import List

from fastapi import APIRouter, Depends, status

from business import friendship as friendship_service
from business.session import Session
from database.documents.friendship import FriendRequest
from models.friend import (
    FriendListResponse,
    FriendRequestCreate,
    FriendRequestListResponse,
    FriendRequestResponse,
    FriendshipResponse,
    FriendshipStatusResponse,
)
from models.user import user_summary
from utils.middlewares.auth_user import get_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/friends", tags=["Friends"])


def _request_response(request: FriendRequest, user=None) -> FriendRequestResponse:
    return FriendRequestResponse(
        id=request.id,
        from_user_id=request.from_user_id,
        to_user_id=request.to_user_id,
        status=request.status,
        created_at=request.created_at,
        user=user_summary(user) if user else None,
    )


def _with_users(entries: List[friendship_service.FriendRequestWithUser]) -> List[FriendRequestResponse]:
    return [_request_response(entry.request, entry.user) for entry in entries]


@router.get("", response_model=FriendListResponse)
async def list_friends(session: Session = Depends(get_session)) -> FriendListResponse:
    friends = friendship_service.list_friends(session)
    return FriendListResponse(friends=[user_summary(friend) for friend in friends])


@router.get("/requests", response_model=FriendRequestListResponse)
async def list_friend_requests(session: Session = Depends(get_session)) -> FriendRequestListResponse:
    return FriendRequestListResponse(
        incoming=_with_users(friendship_service.list_incoming_requests(session)),
        outgoing=_with_users(friendship_service.list_outgoing_requests(session)),
    )


@router.post("/requests", response_model=FriendRequestResponse, status_code=status.HTTP_201_CREATED)
async def send_friend_request(
    payload: FriendRequestCreate,
    session: Session = Depends(get_session),
) -> FriendRequestResponse:
    request = friendship_service.send_request(session, payload.to_user_id)
    return _request_response(request)


@router.post("/requests/{request_id}/accept", response_model=FriendshipResponse)
async def accept_friend_request(
    request_id: str,
    session: Session = Depends(get_session),
) -> FriendshipResponse:
    friendship = friendship_service.accept_request(session, request_id)
    return FriendshipResponse(
        id=friendship.id,
        users=list(friendship.users),
        created_at=friendship.created_at,
    )


@router.post("/requests/{request_id}/reject", status_code=status.HTTP_204_NO_CONTENT)
async def reject_friend_request(
    request_id: str,
    session: Session = Depends(get_session),
) -> None:
    friendship_service.reject_request(session, request_id)


@router.delete("/requests/{request_id}", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_friend_request(
    request_id: str,
    session: Session = Depends(get_session),
) -> None:
    friendship_service.cancel_request(session, request_id)


@router.get("/status/{user_id}", response_model=FriendshipStatusResponse)
async def get_friendship_status(
    user_id: str,
    session: Session = Depends(get_session),
) -> FriendshipStatusResponse:
    result = friendship_service.derive_status(session.store, session.user_id, user_id)
    return FriendshipStatusResponse(user_id=user_id, status=result.status, request_id=result.request_id)


@router.delete("/{friend_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_friend(
    friend_id: str,
    session: Session = Depends(get_session),
) -> None:
    friendship_service.remove_friend(session, friend_id)
