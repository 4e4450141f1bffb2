import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from business import activity as activity_service
from business.friendship import list_friends
from business.session import Session
from models.activity import (
    ActivityCursor,
    ActivityPageResponse,
    ActivityResponse,
    UpcomingBirthdayResponse,
    UpcomingBirthdaysResponse,
)
from models.user import user_summary
from utils.middlewares.auth_user import get_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/activity", tags=["Activity"])


def _activity_response(entry: activity_service.ActivityWithUser) -> ActivityResponse:
    activity = entry.activity
    return ActivityResponse(
        id=activity.id,
        type=activity.type,
        user=user_summary(entry.user),
        wishlist_item_id=activity.wishlist_item_id,
        item_name=activity.item_name,
        item_description=activity.item_description,
        item_images=activity.item_images,
        item_price=activity.item_price,
        item_currency=activity.item_currency,
        item_links=activity.item_links,
        created_at=activity.created_at,
    )


@router.get("/feed", response_model=ActivityPageResponse)
async def get_feed(
    after_created_at: Optional[str] = Query(None),
    after_id: Optional[str] = Query(None),
    session: Session = Depends(get_session),
) -> ActivityPageResponse:
    if (after_created_at is None) != (after_id is None):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="after_created_at and after_id must be given together",
        )
    cursor = (after_created_at, after_id) if after_id is not None else None

    friends = list_friends(session)
    page = activity_service.fetch_activity_page(session.store, friends, cursor)

    next_cursor = None
    if page.next_cursor is not None:
        next_cursor = ActivityCursor(created_at=page.next_cursor[0], id=page.next_cursor[1])
    return ActivityPageResponse(
        activities=[_activity_response(entry) for entry in page.activities],
        next_cursor=next_cursor,
    )


@router.get("/birthdays", response_model=UpcomingBirthdaysResponse)
async def get_upcoming_birthdays(session: Session = Depends(get_session)) -> UpcomingBirthdaysResponse:
    birthdays = activity_service.upcoming_birthdays(list_friends(session), date.today())
    return UpcomingBirthdaysResponse(
        birthdays=[
            UpcomingBirthdayResponse(
                user=user_summary(b.user),
                next_date=b.date,
                days_until=b.days_until,
            )
            for b in birthdays
        ]
    )
