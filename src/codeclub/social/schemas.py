"""Pydantic schemas for notification and announcement endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


# --- Notifications ---


class NotificationResponse(BaseModel):
    id: str
    type: str
    title: str
    message: str | None = None
    link: str | None = None
    read: bool
    timestamp: datetime


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse]
    total: int
    page: int
    per_page: int


class UnreadCountResponse(BaseModel):
    unread_count: int


# --- Announcements ---


class CreateAnnouncementRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=1)
    organization_id: str | None = None
    publish: bool = False


class AnnouncementResponse(BaseModel):
    id: str
    title: str
    content: str
    author_id: str
    organization_id: str | None = None
    is_published: bool
    published_at: datetime | None = None
