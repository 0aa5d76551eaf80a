"""Administrative announcements, site-wide or scoped to one organization."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from sqlalchemy import or_, select

from codeclub.db.base import utcnow
from codeclub.db.models import Announcement, OrganizationMember, User
from codeclub.errors import NotFoundError, PermissionDenied
from codeclub.identity.service import require_leader_or_admin, require_organization

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


async def create_announcement(
    db: AsyncSession,
    author: User,
    title: str,
    content: str,
    organization_id: str | None = None,
    publish: bool = False,
) -> Announcement:
    """
    Draft (or immediately publish) an announcement.

    Site-wide announcements need a system admin; organization announcements
    need a leader of that organization.
    """
    if organization_id is None:
        if not author.is_admin:
            raise PermissionDenied("Only administrators can post site-wide announcements")
    else:
        await require_organization(db, organization_id)
        await require_leader_or_admin(db, author, organization_id)

    now = utcnow()
    announcement = Announcement(
        title=title,
        content=content,
        author_id=author.id,
        organization_id=organization_id,
        is_published=publish,
        published_at=now if publish else None,
        created_at=now,
        updated_at=now,
    )
    db.add(announcement)
    await db.flush()
    logger.info("announcement_created", announcement_id=announcement.id, published=publish)
    return announcement


async def publish_announcement(db: AsyncSession, announcement_id: str, editor: User) -> Announcement:
    announcement = await db.get(Announcement, announcement_id)
    if announcement is None:
        raise NotFoundError(f"Announcement {announcement_id} not found")
    if announcement.organization_id is None:
        if not editor.is_admin:
            raise PermissionDenied("Only administrators can publish site-wide announcements")
    else:
        await require_leader_or_admin(db, editor, announcement.organization_id)

    if not announcement.is_published:
        now = utcnow()
        announcement.is_published = True
        announcement.published_at = now
        announcement.updated_at = now
        await db.flush()
    return announcement


async def list_announcements(
    db: AsyncSession,
    user: User | None,
    organization_id: str | None = None,
    limit: int = 20,
) -> list[Announcement]:
    """Published announcements visible to the user, newest first.

    Site-wide announcements are visible to everyone; organization ones to its
    members only.
    """
    query = select(Announcement).where(Announcement.is_published.is_(True))
    if organization_id is not None:
        query = query.where(Announcement.organization_id == organization_id)

    if user is None:
        query = query.where(Announcement.organization_id.is_(None))
    elif not user.is_admin:
        member_orgs = select(OrganizationMember.organization_id).where(OrganizationMember.user_id == user.id)
        query = query.where(
            or_(Announcement.organization_id.is_(None), Announcement.organization_id.in_(member_orgs))
        )

    result = await db.execute(query.order_by(Announcement.published_at.desc()).limit(limit))
    return list(result.scalars())
