"""Member inbox endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from codeclub.auth.dependencies import get_current_user
from codeclub.database import get_session
from codeclub.db.models import Notification, User
from codeclub.errors import NotFoundError
from codeclub.social import notification_service as inbox
from codeclub.social.schemas import (
    NotificationListResponse,
    NotificationResponse,
    UnreadCountResponse,
)

router = APIRouter(prefix="/api/v1/notifications", tags=["Notifications"])


def _to_response(n: Notification) -> NotificationResponse:
    return NotificationResponse(
        id=n.id,
        type=n.type,
        title=n.title,
        message=n.message,
        link=n.link,
        read=n.is_read,
        timestamp=n.created_at,
    )


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    unread_only: bool = Query(False),
    type: str | None = Query(None, description="submission, skill, organization, announcement or system"),  # noqa: A002
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    notifications, total = await inbox.get_notifications(db, user.id, page, per_page, unread_only, type)
    return NotificationListResponse(
        notifications=[_to_response(n) for n in notifications],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    return UnreadCountResponse(unread_count=await inbox.get_unread_count(db, user.id))


@router.post("/read-all")
async def mark_all_read(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    count = await inbox.mark_all_as_read(db, user.id)
    await db.commit()
    return {"detail": f"Marked {count} notifications as read"}


@router.post("/{notification_id}/read")
async def mark_read(
    notification_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    if not await inbox.mark_as_read(db, user.id, notification_id):
        raise NotFoundError("Notification not found")
    await db.commit()
    return {"detail": "Notification marked as read"}
