"""Pydantic schemas for the problem catalog."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"


class TestCaseDraft(BaseModel):
    input: str = ""
    expected_output: str = ""
    is_example: bool = False
    is_hidden: bool = True


class ProblemCreate(BaseModel):
    slug: str = Field(..., min_length=1, max_length=128, pattern=SLUG_PATTERN)
    title: str = Field(..., min_length=1, max_length=255)
    difficulty_level: int = Field(1, ge=1, le=5)
    content: dict[str, Any] = Field(default_factory=dict)
    constraints: dict[str, Any] = Field(default_factory=dict)
    time_limit: int | None = Field(None, gt=0, description="Milliseconds")
    memory_limit: int | None = Field(None, gt=0, description="Megabytes")
    is_public: bool = False
    is_archived: bool = False
    test_cases: list[TestCaseDraft] = Field(default_factory=list)
    sample_codes: dict[str, str] = Field(default_factory=dict, description="language -> starter code")
    tags: list[str] = Field(default_factory=list)


class ProblemUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=255)
    difficulty_level: int | None = Field(None, ge=1, le=5)
    content: dict[str, Any] | None = None
    constraints: dict[str, Any] | None = None
    time_limit: int | None = Field(None, gt=0)
    memory_limit: int | None = Field(None, gt=0)
    is_public: bool | None = None
    is_archived: bool | None = None
    sample_codes: dict[str, str] | None = None
    tags: list[str] | None = None


class VisibilityRequest(BaseModel):
    is_public: bool
    is_archived: bool


class TestCaseResponse(BaseModel):
    id: str
    position: int
    input: str
    expected_output: str
    is_example: bool
    is_hidden: bool


class ProblemSummaryResponse(BaseModel):
    id: str
    slug: str
    title: str
    organization_id: str
    difficulty_level: int
    is_public: bool
    is_archived: bool
    version: int
    submit_count: int
    accept_count: int
    tags: list[str] = []


class ProblemDetailResponse(ProblemSummaryResponse):
    content: dict[str, Any]
    constraints: dict[str, Any]
    time_limit: int
    memory_limit: int
    examples: list[TestCaseResponse] = []
    sample_codes: dict[str, str] = {}
    updated_at: datetime
    updated_by_id: str | None = None


class ProblemListResponse(BaseModel):
    problems: list[ProblemSummaryResponse]
    total: int
    page: int
    per_page: int
