"""Submission endpoints and the judge verdict callback."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from codeclub.auth.dependencies import get_admin_user, get_current_user, get_optional_user, verify_judge_token
from codeclub.database import get_session
from codeclub.db.models import Submission, User
from codeclub.errors import PermissionDenied
from codeclub.problems.service import get_problem_for_user
from codeclub.social.notification_service import notify_verdict
from codeclub.submissions import service
from codeclub.submissions.schemas import (
    FastestEntryResponse,
    ReconcileResponse,
    SubmissionCreatedResponse,
    SubmissionListResponse,
    SubmissionResponse,
    SubmitRequest,
    Verdict,
)

router = APIRouter(prefix="/api/v1", tags=["Submissions"])


def _response(s: Submission, include_code: bool = False) -> SubmissionResponse:
    return SubmissionResponse(
        id=s.id,
        user_id=s.user_id,
        problem_id=s.problem_id,
        organization_id=s.organization_id,
        language=s.language,
        status=s.status,
        execution_time=s.execution_time,
        memory_usage=s.memory_usage,
        error_message=s.error_message,
        test_results=s.test_results or [],
        score=s.score,
        problem_version=s.problem_version,
        created_at=s.created_at,
        judged_at=s.judged_at,
        code=s.code if include_code else None,
    )


@router.post("/problems/{slug}/submissions", response_model=SubmissionCreatedResponse, status_code=202)
async def submit(
    slug: str,
    body: SubmitRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Record a submission; the verdict arrives later via the judge callback."""
    problem = await get_problem_for_user(db, slug, user)
    try:
        submission = await service.record_submission(
            db, user, problem, body.code, body.language, body.organization_id
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return SubmissionCreatedResponse(id=submission.id, status=submission.status, created_at=submission.created_at)


@router.get("/submissions", response_model=SubmissionListResponse)
async def list_submissions(
    user_id: str | None = Query(None),
    problem_id: str | None = Query(None),
    status: str | None = Query(None),
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Submissions, newest first. Non-admins only see their own."""
    if not user.is_admin:
        if user_id is not None and user_id != user.id:
            raise PermissionDenied("Cannot list another user's submissions")
        user_id = user.id
    submissions, total = await service.list_submissions(db, user_id, problem_id, status, page, per_page)
    return SubmissionListResponse(
        submissions=[_response(s) for s in submissions],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/submissions/{submission_id}", response_model=SubmissionResponse)
async def get_submission(
    submission_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """A single submission with its code (author and admins only)."""
    submission = await service.get_submission(db, submission_id)
    if submission.user_id != user.id and not user.is_admin:
        raise PermissionDenied("Not your submission")
    return _response(submission, include_code=True)


@router.get("/problems/{slug}/fastest", response_model=list[FastestEntryResponse])
async def fastest_solutions(
    slug: str,
    limit: int = Query(10, ge=1, le=100),
    user: User | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_session),
):
    """Fastest accepted solutions for a problem."""
    problem = await get_problem_for_user(db, slug, user)
    submissions = await service.fastest_accepted(db, problem.id, limit)
    return [
        FastestEntryResponse(
            submission_id=s.id,
            user_id=s.user_id,
            language=s.language,
            execution_time=s.execution_time,
            memory_usage=s.memory_usage,
            created_at=s.created_at,
        )
        for s in submissions
    ]


@router.post(
    "/judge/submissions/{submission_id}/verdict",
    response_model=SubmissionResponse,
    dependencies=[Depends(verify_judge_token)],
    tags=["Judge"],
)
async def apply_verdict(
    submission_id: str,
    body: Verdict,
    db: AsyncSession = Depends(get_session),
):
    """Judge callback: apply the terminal verdict exactly once."""
    try:
        submission = await service.apply_verdict(db, submission_id, body)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    await notify_verdict(db, submission)
    await db.commit()
    return _response(submission)


@router.post("/admin/problems/reconcile-counters", response_model=ReconcileResponse, tags=["Admin"])
async def reconcile_counters(
    problem_id: str | None = Query(None),
    _admin: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_session),
):
    """Recompute cached submit/accept counters from the submissions table."""
    corrected = await service.reconcile_problem_counters(db, problem_id)
    await db.commit()
    return ReconcileResponse(corrected=corrected)
