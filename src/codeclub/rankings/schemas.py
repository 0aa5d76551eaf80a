"""Pydantic response models for ranking endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel


class RankingSnapshotResponse(BaseModel):
    id: str
    type: str
    target_id: str | None = None
    created_at: datetime
    data: dict[str, Any]


class SnapshotHistoryEntry(BaseModel):
    id: str
    created_at: datetime
    total_participants: int


class SnapshotHistoryResponse(BaseModel):
    type: str
    target_id: str | None = None
    snapshots: list[SnapshotHistoryEntry]


class AggregationResponse(BaseModel):
    snapshots_written: int
