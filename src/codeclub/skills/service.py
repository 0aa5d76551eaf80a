"""Skill taxonomy and per-user achievement tracking.

Achievement is permanent: progress only ever moves from not-achieved to
achieved, and `achieved_at` is stamped once at that transition.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from codeclub.db.base import utcnow
from codeclub.db.guards import flush_or_conflict
from codeclub.db.models import SKILL_REQUIREMENTS, Skill, SkillCategory, SkillProgress
from codeclub.errors import NotFoundError
from codeclub.identity.service import require_user
from codeclub.social.notification_service import notify_skill_achieved

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


# --- Taxonomy ---


async def create_category(
    db: AsyncSession, name: str, description: str | None = None, sort_order: int = 0
) -> SkillCategory:
    category = SkillCategory(name=name, description=description, sort_order=sort_order)
    db.add(category)
    await flush_or_conflict(db, f"Skill category '{name}' already exists")
    return category


async def create_skill(
    db: AsyncSession,
    category_id: str,
    name: str,
    level: int = 1,
    requirement: str = "NONE",
    description: str | None = None,
) -> Skill:
    if requirement not in SKILL_REQUIREMENTS:
        msg = f"Unknown skill requirement: {requirement}"
        raise ValueError(msg)
    if await db.get(SkillCategory, category_id) is None:
        raise NotFoundError(f"Skill category {category_id} not found")

    skill = Skill(
        category_id=category_id,
        name=name,
        level=level,
        requirement=requirement,
        description=description,
    )
    db.add(skill)
    await flush_or_conflict(db, f"Skill '{name}' already exists in this category")
    return skill


async def list_categories(db: AsyncSession) -> list[SkillCategory]:
    result = await db.execute(select(SkillCategory).order_by(SkillCategory.sort_order, SkillCategory.name))
    return list(result.scalars())


async def list_skills(db: AsyncSession, category_id: str | None = None) -> list[Skill]:
    query = select(Skill)
    if category_id is not None:
        query = query.where(Skill.category_id == category_id)
    result = await db.execute(query.order_by(Skill.level, Skill.name))
    return list(result.scalars())


# --- Progress ---


async def _locked_progress(db: AsyncSession, user_id: str, skill_id: str) -> SkillProgress | None:
    result = await db.execute(
        select(SkillProgress)
        .where(SkillProgress.user_id == user_id, SkillProgress.skill_id == skill_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def mark_achieved(db: AsyncSession, user_id: str, skill_id: str) -> tuple[SkillProgress, bool]:
    """
    Record that a user achieved a skill.

    Creates the progress row if missing, flips a not-achieved row, and does
    nothing for an already achieved one.

    Returns:
        Tuple of (progress, changed). `changed` is False for the no-op case.

    Raises:
        NotFoundError: Unknown user or skill.
    """
    await require_user(db, user_id)
    skill = await db.get(Skill, skill_id)
    if skill is None:
        raise NotFoundError(f"Skill {skill_id} not found")
    skill_name = skill.name

    now = utcnow()
    progress = await _locked_progress(db, user_id, skill_id)
    if progress is None:
        progress = SkillProgress(
            user_id=user_id,
            skill_id=skill_id,
            is_achieved=True,
            achieved_at=now,
            created_at=now,
            updated_at=now,
        )
        db.add(progress)
        try:
            await db.flush()
        except IntegrityError:
            # Lost the insert race: another writer created the row first
            await db.rollback()
            progress = await _locked_progress(db, user_id, skill_id)
            if progress is None:
                raise
        else:
            await _notify_achieved(db, user_id, skill_name, skill_id)
            return progress, True

    if progress.is_achieved:
        return progress, False

    progress.is_achieved = True
    progress.achieved_at = now
    progress.updated_at = now
    await db.flush()
    await _notify_achieved(db, user_id, skill_name, skill_id)
    return progress, True


async def _notify_achieved(db: AsyncSession, user_id: str, skill_name: str, skill_id: str) -> None:
    logger.info("skill_achieved", user_id=user_id, skill_id=skill_id)
    await notify_skill_achieved(db, user_id, skill_name)


async def list_progress(db: AsyncSession, user_id: str) -> list[tuple[Skill, SkillProgress | None]]:
    """Every skill with the user's progress row, if any."""
    result = await db.execute(
        select(Skill, SkillProgress)
        .outerjoin(
            SkillProgress,
            (SkillProgress.skill_id == Skill.id) & (SkillProgress.user_id == user_id),
        )
        .order_by(Skill.level, Skill.name)
    )
    return [(skill, progress) for skill, progress in result.all()]
