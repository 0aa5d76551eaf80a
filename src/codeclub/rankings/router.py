"""Ranking endpoints: current snapshot, history and a manual refresh."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from codeclub.auth.dependencies import get_admin_user, get_optional_user
from codeclub.database import get_session
from codeclub.db.models import RankingSnapshot, User
from codeclub.problems.service import get_problem_for_user
from codeclub.rankings.schemas import (
    AggregationResponse,
    RankingSnapshotResponse,
    SnapshotHistoryEntry,
    SnapshotHistoryResponse,
)
from codeclub.rankings.service import get_current_ranking, list_snapshot_history, run_ranking_aggregation

router = APIRouter(prefix="/api/v1", tags=["Rankings"])


def _response(snapshot: RankingSnapshot) -> RankingSnapshotResponse:
    return RankingSnapshotResponse(
        id=snapshot.id,
        type=snapshot.type,
        target_id=snapshot.target_id,
        created_at=snapshot.created_at,
        data=snapshot.data,
    )


@router.get("/rankings/global", response_model=RankingSnapshotResponse)
async def global_ranking(db: AsyncSession = Depends(get_session)):
    """Current global ranking (latest snapshot)."""
    snapshot = await get_current_ranking(db, "global")
    if snapshot is None:
        raise HTTPException(status_code=404, detail="No ranking computed yet")
    return _response(snapshot)


@router.get("/rankings/problems/{slug}", response_model=RankingSnapshotResponse)
async def problem_ranking(
    slug: str,
    user: User | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_session),
):
    """Current ranking for one problem."""
    problem = await get_problem_for_user(db, slug, user)
    snapshot = await get_current_ranking(db, "problem", problem.id)
    if snapshot is None:
        raise HTTPException(status_code=404, detail="No ranking computed yet")
    return _response(snapshot)


@router.get("/rankings/history", response_model=SnapshotHistoryResponse)
async def ranking_history(
    type: str = Query("global", pattern="^(global|problem)$"),  # noqa: A002
    target_id: str | None = Query(None),
    limit: int = Query(20, ge=1, le=100),
    _admin: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_session),
):
    """Snapshot history for a scope, newest first (admins)."""
    try:
        snapshots = await list_snapshot_history(db, type, target_id, limit)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return SnapshotHistoryResponse(
        type=type,
        target_id=target_id,
        snapshots=[
            SnapshotHistoryEntry(
                id=s.id,
                created_at=s.created_at,
                total_participants=s.data.get("total_participants", 0),
            )
            for s in snapshots
        ],
    )


@router.post("/admin/rankings/refresh", response_model=AggregationResponse, tags=["Admin"])
async def refresh_rankings(
    _admin: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_session),
):
    """Run one aggregation pass now instead of waiting for the worker."""
    written = await run_ranking_aggregation(db)
    await db.commit()
    return AggregationResponse(snapshots_written=written)
