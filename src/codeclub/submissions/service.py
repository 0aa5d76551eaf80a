"""Submission records and verdict application.

A submission is created pending and receives exactly one terminal verdict
from the external judge. The verdict write and the problem's cached
submit/accept counters change in the same transaction, under row locks on
the submission and then the problem (always in that order).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from sqlalchemy import case, func, select

from codeclub.config import get_settings
from codeclub.db.base import utcnow
from codeclub.db.models import Problem, Submission, User
from codeclub.errors import AlreadyJudgedError, IncompleteProblemError, NotFoundError, PermissionDenied
from codeclub.identity.service import is_member
from codeclub.problems.service import can_view, count_test_cases
from codeclub.submissions.verdicts import (
    ACCEPTED,
    PENDING,
    is_accepted,
    is_known,
    normalize_status,
    normalize_verdict,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from codeclub.submissions.schemas import Verdict

logger = structlog.get_logger()


async def get_submission(db: AsyncSession, submission_id: str) -> Submission:
    submission = await db.get(Submission, submission_id)
    if submission is None:
        raise NotFoundError(f"Submission {submission_id} not found")
    return submission


async def record_submission(
    db: AsyncSession,
    user: User,
    problem: Problem,
    code: str,
    language: str,
    organization_id: str | None = None,
) -> Submission:
    """
    Persist a pending submission and return it. Judging happens elsewhere.

    The organization context defaults to the problem's owner when the user
    is a member of it.

    Raises:
        ValueError: Empty language or oversized code.
        PermissionDenied: The user cannot see the problem, it is archived, or
            the organization context is not one of the user's.
        IncompleteProblemError: The problem has no test cases to judge against.
    """
    language = language.strip().lower()
    if not language:
        msg = "Language is required"
        raise ValueError(msg)
    if len(code) > get_settings().max_code_length:
        msg = "Code exceeds maximum length"
        raise ValueError(msg)

    if not await can_view(db, problem, user):
        raise PermissionDenied("This problem is private to its organization")
    if problem.is_archived:
        raise PermissionDenied("Archived problems do not accept submissions")
    if await count_test_cases(db, problem.id) == 0:
        raise IncompleteProblemError("Problem has no test cases")

    if organization_id is not None:
        if not await is_member(db, user.id, organization_id):
            raise PermissionDenied("Not a member of this organization")
    elif await is_member(db, user.id, problem.organization_id):
        organization_id = problem.organization_id

    submission = Submission(
        user_id=user.id,
        problem_id=problem.id,
        organization_id=organization_id,
        code=code,
        language=language,
        status=PENDING,
        test_results=[],
        problem_version=problem.version,
        created_at=utcnow(),
    )
    db.add(submission)
    await db.flush()

    logger.info(
        "submission_recorded",
        submission_id=submission.id,
        user_id=user.id,
        problem_id=problem.id,
        language=language,
    )
    return submission


async def apply_verdict(db: AsyncSession, submission_id: str, verdict: Verdict) -> Submission:
    """
    Write the terminal verdict of a pending submission and bump problem counters.

    submit_count always grows by one; accept_count grows by one only for an
    accepted verdict. Nothing is written if the submission is already judged.

    Raises:
        NotFoundError: Unknown submission.
        AlreadyJudgedError: The submission already carries a verdict.
        ValueError: The verdict status is empty, malformed or 'pending'.
    """
    status = normalize_verdict(verdict.status)

    result = await db.execute(
        select(Submission)
        .where(Submission.id == submission_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    submission = result.scalar_one_or_none()
    if submission is None:
        raise NotFoundError(f"Submission {submission_id} not found")
    if submission.status != PENDING:
        raise AlreadyJudgedError(f"Submission {submission_id} was already judged as '{submission.status}'")

    result = await db.execute(
        select(Problem)
        .where(Problem.id == submission.problem_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    problem = result.scalar_one()

    submission.status = status
    submission.execution_time = verdict.execution_time
    submission.memory_usage = verdict.memory_usage
    submission.error_message = verdict.error_message
    submission.test_results = [r.model_dump() for r in verdict.test_results]
    submission.score = verdict.score
    submission.judged_at = utcnow()

    problem.submit_count += 1
    if is_accepted(status):
        problem.accept_count += 1

    try:
        await db.flush()
    except Exception:
        await db.rollback()
        raise

    if not is_known(status):
        logger.warning("unknown_verdict_status", submission_id=submission_id, status=status)
    logger.info(
        "verdict_applied",
        submission_id=submission_id,
        problem_id=problem.id,
        status=status,
        submit_count=problem.submit_count,
        accept_count=problem.accept_count,
    )
    return submission


async def list_submissions(
    db: AsyncSession,
    user_id: str | None = None,
    problem_id: str | None = None,
    status: str | None = None,
    page: int = 1,
    per_page: int = 50,
) -> tuple[list[Submission], int]:
    """Submissions matching the filter, newest first."""
    query = select(Submission)
    if user_id is not None:
        query = query.where(Submission.user_id == user_id)
    if problem_id is not None:
        query = query.where(Submission.problem_id == problem_id)
    if status is not None:
        query = query.where(Submission.status == normalize_status(status))

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar_one()
    result = await db.execute(
        query.order_by(Submission.created_at.desc()).offset((page - 1) * per_page).limit(per_page)
    )
    return list(result.scalars()), total


async def fastest_accepted(db: AsyncSession, problem_id: str, limit: int = 10) -> list[Submission]:
    """Accepted submissions ordered by execution time, earliest first on ties."""
    result = await db.execute(
        select(Submission)
        .where(
            Submission.problem_id == problem_id,
            Submission.status == ACCEPTED,
            Submission.execution_time.is_not(None),
        )
        .order_by(Submission.execution_time.asc(), Submission.created_at.asc())
        .limit(limit)
    )
    return list(result.scalars())


async def reconcile_problem_counters(db: AsyncSession, problem_id: str | None = None) -> list[str]:
    """
    Recompute submit/accept counters from the submissions table.

    Counters track judged submissions, so pending rows are excluded.
    Returns the ids of problems whose counters had drifted.
    """
    counts_query = (
        select(
            Submission.problem_id,
            func.count(Submission.id).label("submitted"),
            func.sum(case((Submission.status == ACCEPTED, 1), else_=0)).label("accepted"),
        )
        .where(Submission.status != PENDING)
        .group_by(Submission.problem_id)
    )
    problems_query = select(Problem).with_for_update().execution_options(populate_existing=True)
    if problem_id is not None:
        counts_query = counts_query.where(Submission.problem_id == problem_id)
        problems_query = problems_query.where(Problem.id == problem_id)

    problems = list((await db.execute(problems_query.order_by(Problem.id))).scalars())
    counts = {row.problem_id: (row.submitted, int(row.accepted or 0)) for row in await db.execute(counts_query)}

    corrected: list[str] = []
    for problem in problems:
        submitted, accepted = counts.get(problem.id, (0, 0))
        if problem.submit_count != submitted or problem.accept_count != accepted:
            logger.warning(
                "problem_counter_drift",
                problem_id=problem.id,
                cached_submit=problem.submit_count,
                cached_accept=problem.accept_count,
                actual_submit=submitted,
                actual_accept=accepted,
            )
            problem.submit_count = submitted
            problem.accept_count = accepted
            corrected.append(problem.id)

    await db.flush()
    return corrected
