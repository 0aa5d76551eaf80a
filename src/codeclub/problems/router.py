"""Problem catalog endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from codeclub.auth.dependencies import get_current_user, get_optional_user, verify_judge_token
from codeclub.database import get_session
from codeclub.db.models import Problem, TestCase, User
from codeclub.problems import service
from codeclub.problems.schemas import (
    ProblemCreate,
    ProblemDetailResponse,
    ProblemListResponse,
    ProblemSummaryResponse,
    ProblemUpdate,
    TestCaseDraft,
    TestCaseResponse,
    VisibilityRequest,
)

router = APIRouter(prefix="/api/v1", tags=["Problems"])


def _summary(problem: Problem, tags: list[str]) -> ProblemSummaryResponse:
    return ProblemSummaryResponse(
        id=problem.id,
        slug=problem.slug,
        title=problem.title,
        organization_id=problem.organization_id,
        difficulty_level=problem.difficulty_level,
        is_public=problem.is_public,
        is_archived=problem.is_archived,
        version=problem.version,
        submit_count=problem.submit_count,
        accept_count=problem.accept_count,
        tags=tags,
    )


def _test_case(case: TestCase) -> TestCaseResponse:
    return TestCaseResponse(
        id=case.id,
        position=case.position,
        input=case.input,
        expected_output=case.expected_output,
        is_example=case.is_example,
        is_hidden=case.is_hidden,
    )


async def _detail(db: AsyncSession, problem: Problem) -> ProblemDetailResponse:
    tags = await service.get_problem_tag_names(db, [problem.id])
    examples = await service.get_examples(db, problem.id)
    summary = _summary(problem, tags.get(problem.id, []))
    return ProblemDetailResponse(
        **summary.model_dump(),
        content=problem.content,
        constraints=problem.constraints,
        time_limit=problem.time_limit,
        memory_limit=problem.memory_limit,
        examples=[_test_case(c) for c in examples],
        sample_codes=await service.get_sample_codes(db, problem.id),
        updated_at=problem.updated_at,
        updated_by_id=problem.updated_by_id,
    )


@router.get("/problems", response_model=ProblemListResponse)
async def list_problems(
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=100),
    organization_id: str | None = Query(None),
    tag: str | None = Query(None),
    user: User | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_session),
):
    """Visible, non-archived problems."""
    problems, total = await service.list_visible(db, user, page, per_page, organization_id, tag)
    tags = await service.get_problem_tag_names(db, [p.id for p in problems])
    return ProblemListResponse(
        problems=[_summary(p, tags.get(p.id, [])) for p in problems],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/problems/{slug}", response_model=ProblemDetailResponse)
async def get_problem(
    slug: str,
    user: User | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_session),
):
    """Problem statement with example test cases. Hidden cases are never exposed."""
    problem = await service.get_problem_for_user(db, slug, user)
    return await _detail(db, problem)


@router.post("/organizations/{organization_id}/problems", response_model=ProblemDetailResponse, status_code=201)
async def create_problem(
    organization_id: str,
    body: ProblemCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Author a problem for an organization (leaders and admins)."""
    try:
        problem = await service.create_problem(db, organization_id, user, body)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return await _detail(db, problem)


@router.patch("/problems/{problem_id}", response_model=ProblemDetailResponse)
async def revise_problem(
    problem_id: str,
    body: ProblemUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Edit a problem; bumps its version."""
    try:
        problem = await service.revise_problem(db, problem_id, body, user)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return await _detail(db, problem)


@router.post("/problems/{problem_id}/test-cases", response_model=TestCaseResponse, status_code=201)
async def add_test_case(
    problem_id: str,
    body: TestCaseDraft,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Append a test case; bumps the problem version."""
    case = await service.add_test_case(db, problem_id, body, user)
    await db.commit()
    return _test_case(case)


@router.put("/problems/{problem_id}/visibility", response_model=ProblemSummaryResponse)
async def set_visibility(
    problem_id: str,
    body: VisibilityRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Publish, unpublish or archive a problem."""
    problem = await service.set_visibility(db, problem_id, body.is_public, body.is_archived, user)
    await db.commit()
    tags = await service.get_problem_tag_names(db, [problem.id])
    return _summary(problem, tags.get(problem.id, []))


@router.get(
    "/judge/problems/{problem_id}/test-cases",
    response_model=list[TestCaseResponse],
    dependencies=[Depends(verify_judge_token)],
    tags=["Judge"],
)
async def judge_test_cases(
    problem_id: str,
    db: AsyncSession = Depends(get_session),
):
    """Full test case set for the external judge, hidden cases included."""
    cases = await service.get_judge_test_cases(db, problem_id)
    return [_test_case(c) for c in cases]
