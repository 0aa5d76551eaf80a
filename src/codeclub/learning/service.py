"""External learning logs: study done outside the platform, with tags and attachments.

Attachments hold a URL to an already-stored file; uploading is not handled here.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import select

from codeclub.db.base import utcnow
from codeclub.db.models import ExternalLearning, ExternalLearningAttachment, ExternalLearningTag, Tag
from codeclub.identity.service import require_user
from codeclub.problems.service import get_or_create_tags

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


async def create_learning_log(
    db: AsyncSession,
    user_id: str,
    title: str,
    url: str | None = None,
    source: str | None = None,
    description: str | None = None,
    studied_at: datetime | None = None,
    duration_minutes: int | None = None,
    tags: list[str] | None = None,
    attachments: list[dict[str, str | None]] | None = None,
) -> ExternalLearning:
    """Log an external learning activity."""
    await require_user(db, user_id)
    if duration_minutes is not None and duration_minutes < 0:
        msg = "Duration cannot be negative"
        raise ValueError(msg)

    now = utcnow()
    log = ExternalLearning(
        user_id=user_id,
        title=title,
        url=url,
        source=source,
        description=description,
        studied_at=studied_at or now,
        duration_minutes=duration_minutes,
        created_at=now,
    )
    db.add(log)
    await db.flush()

    for tag in await get_or_create_tags(db, tags or []):
        db.add(ExternalLearningTag(external_learning_id=log.id, tag_id=tag.id))
    for attachment in attachments or []:
        db.add(
            ExternalLearningAttachment(
                external_learning_id=log.id,
                file_name=attachment["file_name"],
                file_url=attachment["file_url"],
                content_type=attachment.get("content_type"),
                created_at=now,
            )
        )
    await db.flush()
    return log


async def list_learning_logs(db: AsyncSession, user_id: str, limit: int = 50) -> list[ExternalLearning]:
    """The user's logs, most recently studied first."""
    result = await db.execute(
        select(ExternalLearning)
        .where(ExternalLearning.user_id == user_id)
        .order_by(ExternalLearning.studied_at.desc())
        .limit(limit)
    )
    return list(result.scalars())


async def get_log_details(
    db: AsyncSession, log_ids: list[str]
) -> tuple[dict[str, list[str]], dict[str, list[ExternalLearningAttachment]]]:
    """Batch-load tag names and attachments keyed by log id."""
    tags: dict[str, list[str]] = {i: [] for i in log_ids}
    attachments: dict[str, list[ExternalLearningAttachment]] = {i: [] for i in log_ids}
    if not log_ids:
        return tags, attachments

    tag_rows = await db.execute(
        select(ExternalLearningTag.external_learning_id, Tag.name)
        .join(Tag, Tag.id == ExternalLearningTag.tag_id)
        .where(ExternalLearningTag.external_learning_id.in_(log_ids))
        .order_by(Tag.name)
    )
    for log_id, name in tag_rows.all():
        tags[log_id].append(name)

    attachment_rows = await db.execute(
        select(ExternalLearningAttachment)
        .where(ExternalLearningAttachment.external_learning_id.in_(log_ids))
        .order_by(ExternalLearningAttachment.created_at)
    )
    for a in attachment_rows.scalars():
        attachments[a.external_learning_id].append(a)
    return tags, attachments
