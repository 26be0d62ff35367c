from __future__ import annotations

from datetime import date, datetime

from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import BaseModel

from drc_loyalty.db.repo.notifications_repo import NotificationsRepo
from drc_loyalty.db.session import SessionLocal

from .deps import require_shopper_user_id

router = APIRouter(prefix="/notifications", tags=["notifications"])


class NotificationResponse(BaseModel):
    id: int
    title: str
    message: str
    type: str
    read: bool
    expires_for_date: date | None = None
    created_at: datetime


@router.get("/me", response_model=list[NotificationResponse])
async def list_my_notifications(
    request: Request,
    limit: int = Query(default=50, ge=1, le=200),
) -> list[NotificationResponse]:
    user_id = require_shopper_user_id(request)
    async with SessionLocal.begin() as session:
        notifications = await NotificationsRepo.list_by_user(session, user_id=user_id, limit=limit)

    return [
        NotificationResponse(
            id=notification.id,
            title=notification.title,
            message=notification.message,
            type=notification.notification_type,
            read=notification.read,
            expires_for_date=notification.expires_for_date,
            created_at=notification.created_at,
        )
        for notification in notifications
    ]


@router.post("/{notification_id}/read")
async def mark_notification_read(notification_id: int, request: Request) -> dict[str, bool]:
    user_id = require_shopper_user_id(request)
    async with SessionLocal.begin() as session:
        updated = await NotificationsRepo.mark_read(
            session,
            user_id=user_id,
            notification_id=notification_id,
        )

    if updated == 0:
        raise HTTPException(status_code=404, detail={"code": "E_NOTIFICATION_NOT_FOUND"})
    return {"read": True}
