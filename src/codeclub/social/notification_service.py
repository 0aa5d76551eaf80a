"""In-app notification inbox.

Rows are written by the events that matter to a member (a verdict on their
submission, a skill achieved, an announcement) and read back by the
notifications API. Push or email delivery is out of scope; a delivery
service can poll this table.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import func, select, update

from codeclub.db.base import utcnow
from codeclub.db.models import Notification

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from codeclub.db.models import Submission

logger = logging.getLogger(__name__)

VALID_TYPES = {"submission", "skill", "organization", "announcement", "system"}


async def create_notification(
    db: AsyncSession,
    user_id: str,
    type_: str,
    title: str,
    message: str | None = None,
    link: str | None = None,
) -> Notification:
    if type_ not in VALID_TYPES:
        msg = f"Invalid notification type: {type_}. Must be one of {sorted(VALID_TYPES)}"
        raise ValueError(msg)

    notification = Notification(
        user_id=user_id,
        type=type_,
        title=title,
        message=message,
        link=link,
        is_read=False,
        created_at=utcnow(),
    )
    db.add(notification)
    await db.flush()
    logger.debug("Notification %s (%s) queued for user %s", notification.id, type_, user_id)
    return notification


async def notify_verdict(db: AsyncSession, submission: Submission) -> Notification:
    """Tell the author that their submission got its verdict."""
    message = None
    if submission.execution_time is not None:
        message = f"Ran in {submission.execution_time} ms"
    return await create_notification(
        db,
        submission.user_id,
        "submission",
        title=f"Submission judged: {submission.status}",
        message=message,
        link=f"/submissions/{submission.id}",
    )


async def notify_skill_achieved(db: AsyncSession, user_id: str, skill_name: str) -> Notification:
    return await create_notification(
        db,
        user_id,
        "skill",
        title=f'Skill achieved: "{skill_name}"',
        link="/skills",
    )


async def get_notifications(
    db: AsyncSession,
    user_id: str,
    page: int = 1,
    per_page: int = 20,
    unread_only: bool = False,
    type_: str | None = None,
) -> tuple[list[Notification], int]:
    """One page of the user's inbox, newest first, plus the filtered total."""
    query = select(Notification).where(Notification.user_id == user_id)
    if unread_only:
        query = query.where(Notification.is_read.is_(False))
    if type_ is not None:
        query = query.where(Notification.type == type_)

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar_one()
    result = await db.execute(
        query.order_by(Notification.created_at.desc(), Notification.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    return list(result.scalars()), total


async def mark_as_read(db: AsyncSession, user_id: str, notification_id: str) -> bool:
    """Mark one notification read. False when the id is not in the user's inbox."""
    result = await db.execute(
        update(Notification)
        .where(Notification.id == notification_id, Notification.user_id == user_id)
        .values(is_read=True)
    )
    return result.rowcount > 0


async def mark_all_as_read(db: AsyncSession, user_id: str) -> int:
    result = await db.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.is_read.is_(False))
        .values(is_read=True)
    )
    return result.rowcount


async def get_unread_count(db: AsyncSession, user_id: str) -> int:
    result = await db.execute(
        select(func.count(Notification.id)).where(
            Notification.user_id == user_id,
            Notification.is_read.is_(False),
        )
    )
    return result.scalar_one()
