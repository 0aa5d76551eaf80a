"""Ranking snapshots: append-only rollups computed from submission history.

Snapshots are never updated or deleted. The newest row for a
(type, target_id) scope is the current ranking; older rows are history.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import case, func, select

from codeclub.config import get_settings
from codeclub.db.base import utcnow
from codeclub.db.models import SNAPSHOT_TYPES, Problem, RankingSnapshot, Submission, User
from codeclub.problems.service import require_problem
from codeclub.rankings.ranking import rank_global_entries, rank_problem_entries
from codeclub.submissions.verdicts import ACCEPTED, PENDING

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


def _check_scope(type_: str, target_id: str | None) -> None:
    if type_ not in SNAPSHOT_TYPES:
        msg = f"Unknown ranking type: {type_}"
        raise ValueError(msg)
    if type_ == "global" and target_id is not None:
        msg = "Global rankings have no target id"
        raise ValueError(msg)
    if type_ == "problem" and target_id is None:
        msg = "Problem rankings need a target id"
        raise ValueError(msg)


async def get_display_names(db: AsyncSession, user_ids: list[str]) -> dict[str, str]:
    """Batch-load display names for ranking enrichment."""
    if not user_ids:
        return {}
    result = await db.execute(select(User.id, User.display_name, User.name).where(User.id.in_(user_ids)))
    return {row.id: row.display_name or row.name for row in result}


async def compute_problem_ranking(db: AsyncSession, problem_id: str) -> list[dict[str, Any]]:
    """Per-user best accepted result for one problem, ranked."""
    accepted = Submission.status == ACCEPTED
    result = await db.execute(
        select(
            Submission.user_id,
            func.max(case((accepted, func.coalesce(Submission.score, 0.0)))).label("best_score"),
            func.min(case((accepted, Submission.execution_time))).label("best_time"),
            func.min(case((accepted, Submission.created_at))).label("accepted_at"),
            func.count(Submission.id).label("attempts"),
        )
        .where(Submission.problem_id == problem_id, Submission.status != PENDING)
        .group_by(Submission.user_id)
        .having(func.sum(case((accepted, 1), else_=0)) > 0)
    )
    rows = [
        {
            "user_id": r.user_id,
            "best_score": r.best_score,
            "best_time": r.best_time,
            "accepted_at": r.accepted_at,
            "attempts": r.attempts,
        }
        for r in result
    ]
    return rank_problem_entries(rows)


async def compute_global_ranking(db: AsyncSession) -> list[dict[str, Any]]:
    """Problems solved and summed best scores per user, ranked."""
    per_problem = (
        select(
            Submission.user_id,
            Submission.problem_id,
            func.max(func.coalesce(Submission.score, 0.0)).label("best_score"),
            func.min(Submission.created_at).label("first_accepted_at"),
        )
        .where(Submission.status == ACCEPTED)
        .group_by(Submission.user_id, Submission.problem_id)
        .subquery()
    )
    result = await db.execute(
        select(
            per_problem.c.user_id,
            func.count(per_problem.c.problem_id).label("solved"),
            func.sum(per_problem.c.best_score).label("total_score"),
            func.max(per_problem.c.first_accepted_at).label("last_solved_at"),
        ).group_by(per_problem.c.user_id)
    )
    rows = [
        {
            "user_id": r.user_id,
            "solved": r.solved,
            "total_score": r.total_score,
            "last_solved_at": r.last_solved_at,
        }
        for r in result
    ]
    return rank_global_entries(rows)


async def _append_snapshot(
    db: AsyncSession,
    type_: str,
    target_id: str | None,
    entries: list[dict[str, Any]],
    now: datetime | None,
) -> RankingSnapshot:
    now = now or utcnow()
    max_entries = get_settings().ranking_max_entries
    names = await get_display_names(db, [e["user_id"] for e in entries[:max_entries]])
    payload = {
        "generated_at": now.isoformat(),
        "total_participants": len(entries),
        "entries": [
            {**e, "display_name": names.get(e["user_id"], "")}
            for e in entries[:max_entries]
        ],
    }
    snapshot = RankingSnapshot(type=type_, target_id=target_id, data=payload, created_at=now)
    db.add(snapshot)
    await db.flush()
    logger.info(
        "ranking_snapshot_created",
        type=type_,
        target_id=target_id,
        participants=len(entries),
        snapshot_id=snapshot.id,
    )
    return snapshot


async def create_problem_snapshot(
    db: AsyncSession, problem_id: str, now: datetime | None = None
) -> RankingSnapshot:
    await require_problem(db, problem_id)
    entries = await compute_problem_ranking(db, problem_id)
    return await _append_snapshot(db, "problem", problem_id, entries, now)


async def create_global_snapshot(db: AsyncSession, now: datetime | None = None) -> RankingSnapshot:
    entries = await compute_global_ranking(db)
    return await _append_snapshot(db, "global", None, entries, now)


async def run_ranking_aggregation(db: AsyncSession, now: datetime | None = None) -> int:
    """Append one snapshot per non-archived problem plus the global one.

    Returns the number of snapshots written.
    """
    now = now or utcnow()
    result = await db.execute(select(Problem.id).where(Problem.is_archived.is_(False)).order_by(Problem.id))
    problem_ids = [row[0] for row in result]

    for problem_id in problem_ids:
        await create_problem_snapshot(db, problem_id, now)
    await create_global_snapshot(db, now)
    return len(problem_ids) + 1


def _scope_filter(type_: str, target_id: str | None):  # noqa: ANN202
    if target_id is None:
        return (RankingSnapshot.type == type_, RankingSnapshot.target_id.is_(None))
    return (RankingSnapshot.type == type_, RankingSnapshot.target_id == target_id)


async def get_current_ranking(
    db: AsyncSession, type_: str, target_id: str | None = None
) -> RankingSnapshot | None:
    """The newest snapshot for the scope, or None if none was taken yet."""
    _check_scope(type_, target_id)
    result = await db.execute(
        select(RankingSnapshot)
        .where(*_scope_filter(type_, target_id))
        .order_by(RankingSnapshot.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def list_snapshot_history(
    db: AsyncSession, type_: str, target_id: str | None = None, limit: int = 20
) -> list[RankingSnapshot]:
    _check_scope(type_, target_id)
    result = await db.execute(
        select(RankingSnapshot)
        .where(*_scope_filter(type_, target_id))
        .order_by(RankingSnapshot.created_at.desc())
        .limit(limit)
    )
    return list(result.scalars())
