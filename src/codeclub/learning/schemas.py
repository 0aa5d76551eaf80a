"""Pydantic schemas for external learning logs."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class AttachmentIn(BaseModel):
    file_name: str = Field(..., min_length=1, max_length=255)
    file_url: str = Field(..., min_length=1)
    content_type: str | None = None


class CreateLearningLogRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    url: str | None = None
    source: str | None = Field(None, max_length=64)
    description: str | None = None
    studied_at: datetime | None = None
    duration_minutes: int | None = Field(None, ge=0)
    tags: list[str] = Field(default_factory=list)
    attachments: list[AttachmentIn] = Field(default_factory=list)


class AttachmentResponse(BaseModel):
    id: str
    file_name: str
    file_url: str
    content_type: str | None = None


class LearningLogResponse(BaseModel):
    id: str
    title: str
    url: str | None = None
    source: str | None = None
    description: str | None = None
    studied_at: datetime
    duration_minutes: int | None = None
    tags: list[str] = []
    attachments: list[AttachmentResponse] = []
