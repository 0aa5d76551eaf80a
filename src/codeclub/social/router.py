"""Announcement endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from codeclub.auth.dependencies import get_current_user, get_optional_user
from codeclub.database import get_session
from codeclub.db.models import Announcement, User
from codeclub.social.announcement_service import (
    create_announcement,
    list_announcements,
    publish_announcement,
)
from codeclub.social.schemas import AnnouncementResponse, CreateAnnouncementRequest

router = APIRouter(prefix="/api/v1", tags=["Announcements"])


def _response(a: Announcement) -> AnnouncementResponse:
    return AnnouncementResponse(
        id=a.id,
        title=a.title,
        content=a.content,
        author_id=a.author_id,
        organization_id=a.organization_id,
        is_published=a.is_published,
        published_at=a.published_at,
    )


@router.get("/announcements", response_model=list[AnnouncementResponse])
async def get_announcements(
    organization_id: str | None = Query(None),
    limit: int = Query(20, ge=1, le=100),
    user: User | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_session),
):
    """Published announcements visible to the caller."""
    return [_response(a) for a in await list_announcements(db, user, organization_id, limit)]


@router.post("/announcements", response_model=AnnouncementResponse, status_code=201)
async def post_announcement(
    body: CreateAnnouncementRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Draft or publish an announcement."""
    announcement = await create_announcement(
        db, user, body.title, body.content, body.organization_id, body.publish
    )
    await db.commit()
    return _response(announcement)


@router.post("/announcements/{announcement_id}/publish", response_model=AnnouncementResponse)
async def publish(
    announcement_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Publish a drafted announcement."""
    announcement = await publish_announcement(db, announcement_id, user)
    await db.commit()
    return _response(announcement)
