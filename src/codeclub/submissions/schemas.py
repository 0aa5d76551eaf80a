"""Pydantic schemas for submissions and judge callbacks."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SubmitRequest(BaseModel):
    code: str = Field(..., min_length=1)
    language: str = Field(..., min_length=1, max_length=32)
    organization_id: str | None = None


class CaseResult(BaseModel):
    """Outcome of one test case as reported by the judge."""

    model_config = ConfigDict(extra="allow")

    position: int
    status: str
    execution_time: int | None = None
    memory_usage: float | None = None
    message: str | None = None


class Verdict(BaseModel):
    status: str = Field(..., min_length=1, max_length=48)
    execution_time: int | None = Field(None, ge=0, description="Milliseconds")
    memory_usage: float | None = Field(None, ge=0, description="Megabytes")
    error_message: str | None = None
    test_results: list[CaseResult] = Field(default_factory=list)
    score: float | None = None


class SubmissionCreatedResponse(BaseModel):
    id: str
    status: str
    created_at: datetime


class SubmissionResponse(BaseModel):
    id: str
    user_id: str
    problem_id: str
    organization_id: str | None = None
    language: str
    status: str
    execution_time: int | None = None
    memory_usage: float | None = None
    error_message: str | None = None
    test_results: list[dict[str, Any]] = []
    score: float | None = None
    problem_version: int
    created_at: datetime
    judged_at: datetime | None = None
    code: str | None = None  # Only returned to the author and admins


class SubmissionListResponse(BaseModel):
    submissions: list[SubmissionResponse]
    total: int
    page: int
    per_page: int


class FastestEntryResponse(BaseModel):
    submission_id: str
    user_id: str
    language: str
    execution_time: int | None = None
    memory_usage: float | None = None
    created_at: datetime


class ReconcileResponse(BaseModel):
    corrected: list[str]
