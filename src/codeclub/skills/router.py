"""Skill taxonomy and progress endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from codeclub.auth.dependencies import get_admin_user, get_current_user
from codeclub.database import get_session
from codeclub.db.models import Skill, SkillProgress, User
from codeclub.skills import service
from codeclub.skills.schemas import (
    AchieveResponse,
    CategoryResponse,
    CreateCategoryRequest,
    CreateSkillRequest,
    SkillProgressResponse,
    SkillResponse,
)

router = APIRouter(prefix="/api/v1", tags=["Skills"])


def _skill(s: Skill) -> SkillResponse:
    return SkillResponse(
        id=s.id,
        category_id=s.category_id,
        name=s.name,
        description=s.description,
        level=s.level,
        requirement=s.requirement,
    )


def _achieve(progress: SkillProgress, changed: bool) -> AchieveResponse:
    return AchieveResponse(
        skill_id=progress.skill_id,
        user_id=progress.user_id,
        is_achieved=progress.is_achieved,
        achieved_at=progress.achieved_at,
        changed=changed,
    )


@router.get("/skills/categories", response_model=list[CategoryResponse])
async def list_categories(db: AsyncSession = Depends(get_session)):
    return [
        CategoryResponse(id=c.id, name=c.name, description=c.description, sort_order=c.sort_order)
        for c in await service.list_categories(db)
    ]


@router.post("/skills/categories", response_model=CategoryResponse, status_code=201)
async def create_category(
    body: CreateCategoryRequest,
    _admin: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_session),
):
    category = await service.create_category(db, body.name, body.description, body.sort_order)
    await db.commit()
    return CategoryResponse(
        id=category.id, name=category.name, description=category.description, sort_order=category.sort_order
    )


@router.get("/skills", response_model=list[SkillResponse])
async def list_skills(
    category_id: str | None = Query(None),
    db: AsyncSession = Depends(get_session),
):
    return [_skill(s) for s in await service.list_skills(db, category_id)]


@router.post("/skills", response_model=SkillResponse, status_code=201)
async def create_skill(
    body: CreateSkillRequest,
    _admin: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_session),
):
    try:
        skill = await service.create_skill(
            db, body.category_id, body.name, body.level, body.requirement, body.description
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return _skill(skill)


@router.get("/users/me/skills", response_model=list[SkillProgressResponse])
async def my_progress(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Every skill with the caller's achievement state."""
    rows = await service.list_progress(db, user.id)
    return [
        SkillProgressResponse(
            skill=_skill(skill),
            is_achieved=bool(progress and progress.is_achieved),
            achieved_at=progress.achieved_at if progress else None,
        )
        for skill, progress in rows
    ]


@router.post("/users/me/skills/{skill_id}/achieve", response_model=AchieveResponse)
async def achieve_skill(
    skill_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Self-report a skill as achieved. Idempotent."""
    progress, changed = await service.mark_achieved(db, user.id, skill_id)
    await db.commit()
    return _achieve(progress, changed)


@router.post("/admin/users/{user_id}/skills/{skill_id}/achieve", response_model=AchieveResponse, tags=["Admin"])
async def grant_skill(
    user_id: str,
    skill_id: str,
    _admin: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_session),
):
    """Record a skill achievement on a user's behalf."""
    progress, changed = await service.mark_achieved(db, user_id, skill_id)
    await db.commit()
    return _achieve(progress, changed)
