"""Pydantic schemas for user and organization endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class UserResponse(BaseModel):
    id: str
    email: str
    name: str
    display_name: str | None = None
    grade: str | None = None
    icon_url: str | None = None
    system_role: str
    created_at: datetime


class UpdateProfileRequest(BaseModel):
    display_name: str | None = Field(None, min_length=1, max_length=64)
    grade: str | None = Field(None, max_length=32)
    icon_url: str | None = None


class CreateOrganizationRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=128)
    description: str | None = None
    icon_url: str | None = None


class OrganizationResponse(BaseModel):
    id: str
    name: str
    description: str | None = None
    icon_url: str | None = None
    role: str | None = None  # Requesting user's role, when a member


class AddMemberRequest(BaseModel):
    user_id: str
    role: str = Field("MEMBER", pattern="^(LEADER|MEMBER)$")


class MemberResponse(BaseModel):
    user_id: str
    name: str
    display_name: str | None = None
    role: str
    joined_at: datetime
