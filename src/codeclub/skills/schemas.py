"""Pydantic schemas for skill endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class CreateCategoryRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=64)
    description: str | None = None
    sort_order: int = 0


class CategoryResponse(BaseModel):
    id: str
    name: str
    description: str | None = None
    sort_order: int


class CreateSkillRequest(BaseModel):
    category_id: str
    name: str = Field(..., min_length=1, max_length=128)
    level: int = Field(1, ge=1)
    requirement: str = Field("NONE", pattern="^(NONE|BASIC|ADVANCED)$")
    description: str | None = None


class SkillResponse(BaseModel):
    id: str
    category_id: str
    name: str
    description: str | None = None
    level: int
    requirement: str


class SkillProgressResponse(BaseModel):
    skill: SkillResponse
    is_achieved: bool
    achieved_at: datetime | None = None


class AchieveResponse(BaseModel):
    skill_id: str
    user_id: str
    is_achieved: bool
    achieved_at: datetime | None = None
    changed: bool
