"""Problem catalog: authoring, revision, visibility and tagging.

Slugs share one namespace across all organizations. A problem without test
cases may exist only as a private, archived draft; making it public or
un-archiving it requires at least one test case.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError

from codeclub.config import get_settings
from codeclub.db.base import utcnow
from codeclub.db.guards import flush_or_conflict
from codeclub.db.models import (
    OrganizationMember,
    Problem,
    ProblemSampleCode,
    ProblemTag,
    Submission,
    Tag,
    TestCase,
    User,
)
from codeclub.errors import (
    ConstraintViolation,
    DuplicateSlugError,
    IncompleteProblemError,
    NotFoundError,
    PermissionDenied,
)
from codeclub.identity.service import is_member, require_leader_or_admin, require_organization

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from codeclub.problems.schemas import ProblemCreate, ProblemUpdate, TestCaseDraft

logger = structlog.get_logger()


# --- Lookups ---


async def get_problem_by_slug(db: AsyncSession, slug: str) -> Problem | None:
    result = await db.execute(select(Problem).where(Problem.slug == slug))
    return result.scalar_one_or_none()


async def require_problem(db: AsyncSession, problem_id: str) -> Problem:
    problem = await db.get(Problem, problem_id)
    if problem is None:
        raise NotFoundError(f"Problem {problem_id} not found")
    return problem


async def _lock_problem(db: AsyncSession, problem_id: str) -> Problem:
    """Load a problem with a row lock, refreshing any cached copy."""
    result = await db.execute(
        select(Problem)
        .where(Problem.id == problem_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    problem = result.scalar_one_or_none()
    if problem is None:
        raise NotFoundError(f"Problem {problem_id} not found")
    return problem


async def count_test_cases(db: AsyncSession, problem_id: str) -> int:
    result = await db.execute(select(func.count(TestCase.id)).where(TestCase.problem_id == problem_id))
    return result.scalar_one()


def _ensure_publishable(test_case_count: int, is_public: bool, is_archived: bool) -> None:
    if test_case_count == 0 and (is_public or not is_archived):
        msg = "A problem needs at least one test case before it can be public or un-archived"
        raise IncompleteProblemError(msg)


# --- Tags ---


def normalize_tag(name: str) -> str:
    return " ".join(name.strip().lower().split())


async def get_or_create_tags(db: AsyncSession, names: list[str]) -> list[Tag]:
    """Resolve tag names against the shared vocabulary, creating missing ones."""
    wanted = sorted({normalize_tag(n) for n in names if n.strip()})
    if not wanted:
        return []

    result = await db.execute(select(Tag).where(Tag.name.in_(wanted)))
    found = {t.name: t for t in result.scalars()}
    for name in wanted:
        if name not in found:
            tag = Tag(name=name)
            db.add(tag)
            found[name] = tag
    await flush_or_conflict(db, "A tag with this name was created concurrently, retry the request")
    return [found[n] for n in wanted]


async def set_problem_tags(db: AsyncSession, problem_id: str, names: list[str]) -> list[Tag]:
    """Replace the problem's tag set."""
    tags = await get_or_create_tags(db, names)
    await db.execute(delete(ProblemTag).where(ProblemTag.problem_id == problem_id))
    for tag in tags:
        db.add(ProblemTag(problem_id=problem_id, tag_id=tag.id))
    await db.flush()
    return tags


async def get_problem_tag_names(db: AsyncSession, problem_ids: list[str]) -> dict[str, list[str]]:
    """Batch-load tag names keyed by problem id."""
    if not problem_ids:
        return {}
    result = await db.execute(
        select(ProblemTag.problem_id, Tag.name)
        .join(Tag, Tag.id == ProblemTag.tag_id)
        .where(ProblemTag.problem_id.in_(problem_ids))
        .order_by(Tag.name)
    )
    tags: dict[str, list[str]] = {pid: [] for pid in problem_ids}
    for problem_id, name in result.all():
        tags[problem_id].append(name)
    return tags


def normalize_sample_codes(sample_codes: dict[str, str]) -> dict[str, str]:
    """Key starter code by lower-cased language; two spellings of one language collide."""
    normalized: dict[str, str] = {}
    for language, code in sample_codes.items():
        key = language.strip().lower()
        if not key:
            msg = "Sample code language is required"
            raise ValueError(msg)
        if key in normalized:
            raise ConstraintViolation(f"Sample code for '{key}' given more than once")
        normalized[key] = code
    return normalized


async def _set_sample_codes(db: AsyncSession, problem_id: str, sample_codes: dict[str, str]) -> None:
    await db.execute(delete(ProblemSampleCode).where(ProblemSampleCode.problem_id == problem_id))
    for language, code in sample_codes.items():
        db.add(ProblemSampleCode(problem_id=problem_id, language=language, code=code))
    await flush_or_conflict(db, "Sample code language already present")


async def get_sample_codes(db: AsyncSession, problem_id: str) -> dict[str, str]:
    result = await db.execute(
        select(ProblemSampleCode)
        .where(ProblemSampleCode.problem_id == problem_id)
        .order_by(ProblemSampleCode.language)
    )
    return {s.language: s.code for s in result.scalars()}


# --- Authoring ---


async def create_problem(
    db: AsyncSession,
    organization_id: str,
    author: User,
    draft: ProblemCreate,
) -> Problem:
    """
    Create a problem at version 1.

    Raises:
        PermissionDenied: If the author is neither an admin nor a leader of the organization.
        IncompleteProblemError: If the draft is public or un-archived without test cases.
        DuplicateSlugError: If the slug is taken by any organization.
    """
    await require_organization(db, organization_id)
    await require_leader_or_admin(db, author, organization_id)
    _ensure_publishable(len(draft.test_cases), draft.is_public, draft.is_archived)
    sample_codes = normalize_sample_codes(draft.sample_codes)

    settings = get_settings()
    now = utcnow()
    problem = Problem(
        slug=draft.slug,
        title=draft.title,
        organization_id=organization_id,
        difficulty_level=draft.difficulty_level,
        content=draft.content,
        constraints=draft.constraints,
        time_limit=draft.time_limit or settings.default_time_limit_ms,
        memory_limit=draft.memory_limit or settings.default_memory_limit_mb,
        is_public=draft.is_public,
        is_archived=draft.is_archived,
        version=1,
        submit_count=0,
        accept_count=0,
        created_by_id=author.id,
        created_at=now,
        updated_at=now,
    )
    db.add(problem)

    # The unique index decides slug ownership; concurrent creators race on it.
    try:
        await db.flush()
    except IntegrityError as exc:
        await db.rollback()
        if await get_problem_by_slug(db, draft.slug) is not None:
            raise DuplicateSlugError(f"Slug '{draft.slug}' is already in use") from exc
        raise ConstraintViolation("Problem violates a database constraint") from exc

    for position, case in enumerate(draft.test_cases, start=1):
        db.add(
            TestCase(
                problem_id=problem.id,
                position=position,
                input=case.input,
                expected_output=case.expected_output,
                is_example=case.is_example,
                is_hidden=case.is_hidden,
            )
        )
    await db.flush()

    if sample_codes:
        await _set_sample_codes(db, problem.id, sample_codes)
    if draft.tags:
        await set_problem_tags(db, problem.id, draft.tags)

    logger.info("problem_created", problem_id=problem.id, slug=problem.slug, organization_id=organization_id)
    return problem


async def revise_problem(
    db: AsyncSession,
    problem_id: str,
    patch: ProblemUpdate,
    editor: User,
) -> Problem:
    """
    Apply a content edit and bump the problem version.

    Existing submissions keep pointing at the same problem id; each records
    the version it was judged against in `problem_version`.
    """
    problem = await _lock_problem(db, problem_id)
    await require_leader_or_admin(db, editor, problem.organization_id)

    sample_codes = None if patch.sample_codes is None else normalize_sample_codes(patch.sample_codes)
    changes = patch.model_dump(exclude_unset=True, exclude={"tags", "sample_codes"})
    is_public = changes.get("is_public", problem.is_public)
    is_archived = changes.get("is_archived", problem.is_archived)
    if is_public != problem.is_public or is_archived != problem.is_archived:
        _ensure_publishable(await count_test_cases(db, problem_id), is_public, is_archived)

    for field, value in changes.items():
        if value is not None:
            setattr(problem, field, value)

    if patch.tags is not None:
        await set_problem_tags(db, problem_id, patch.tags)
    if sample_codes is not None:
        await _set_sample_codes(db, problem_id, sample_codes)

    problem.version += 1
    problem.updated_by_id = editor.id
    problem.updated_at = utcnow()
    await db.flush()

    logger.info("problem_revised", problem_id=problem_id, version=problem.version, editor_id=editor.id)
    return problem


async def add_test_case(
    db: AsyncSession,
    problem_id: str,
    case: TestCaseDraft,
    editor: User,
) -> TestCase:
    """Append a test case at the next position. Counts as a content edit."""
    problem = await _lock_problem(db, problem_id)
    await require_leader_or_admin(db, editor, problem.organization_id)

    result = await db.execute(
        select(func.coalesce(func.max(TestCase.position), 0)).where(TestCase.problem_id == problem_id)
    )
    test_case = TestCase(
        problem_id=problem_id,
        position=result.scalar_one() + 1,
        input=case.input,
        expected_output=case.expected_output,
        is_example=case.is_example,
        is_hidden=case.is_hidden,
    )
    db.add(test_case)
    await flush_or_conflict(db, "Test case position already taken")

    problem.version += 1
    problem.updated_by_id = editor.id
    problem.updated_at = utcnow()
    await db.flush()
    return test_case


async def set_visibility(
    db: AsyncSession,
    problem_id: str,
    is_public: bool,
    is_archived: bool,
    editor: User,
) -> Problem:
    """Publish, hide or archive a problem. Not a content edit: version is unchanged."""
    problem = await _lock_problem(db, problem_id)
    await require_leader_or_admin(db, editor, problem.organization_id)
    _ensure_publishable(await count_test_cases(db, problem_id), is_public, is_archived)

    problem.is_public = is_public
    problem.is_archived = is_archived
    problem.updated_by_id = editor.id
    problem.updated_at = utcnow()
    await db.flush()
    logger.info("problem_visibility_changed", problem_id=problem_id, is_public=is_public, is_archived=is_archived)
    return problem


# --- Visibility ---


async def can_view(db: AsyncSession, problem: Problem, user: User | None) -> bool:
    """Public problems, members of the owning organization, and admins."""
    if problem.is_public:
        return True
    if user is None:
        return False
    if user.is_admin:
        return True
    return await is_member(db, user.id, problem.organization_id)


async def visible_problem(db: AsyncSession, problem: Problem, user: User | None) -> Problem | None:
    """Return the problem if the user may see it, else None."""
    return problem if await can_view(db, problem, user) else None


async def has_submitted(db: AsyncSession, user_id: str, problem_id: str) -> bool:
    result = await db.execute(
        select(Submission.id)
        .where(Submission.user_id == user_id, Submission.problem_id == problem_id)
        .limit(1)
    )
    return result.first() is not None


async def get_problem_for_user(db: AsyncSession, slug: str, user: User | None) -> Problem:
    """
    Resolve a problem by slug for direct access.

    Archived problems stay addressable for admins, members of the owning
    organization, and users who submitted to them before.

    Raises:
        NotFoundError: Unknown slug, or archived and not addressable by this user.
        PermissionDenied: The user cannot see a private problem.
    """
    problem = await get_problem_by_slug(db, slug)
    if problem is None:
        raise NotFoundError(f"Problem '{slug}' not found")
    if await visible_problem(db, problem, user) is None:
        raise PermissionDenied("This problem is private to its organization")

    if problem.is_archived:
        addressable = user is not None and (
            user.is_admin
            or await is_member(db, user.id, problem.organization_id)
            or await has_submitted(db, user.id, problem.id)
        )
        if not addressable:
            raise NotFoundError(f"Problem '{slug}' not found")
    return problem


async def list_visible(
    db: AsyncSession,
    user: User | None,
    page: int = 1,
    per_page: int = 50,
    organization_id: str | None = None,
    tag: str | None = None,
) -> tuple[list[Problem], int]:
    """Default listing: visible, non-archived problems, newest first."""
    query = select(Problem).where(Problem.is_archived.is_(False))

    if user is None:
        query = query.where(Problem.is_public.is_(True))
    elif not user.is_admin:
        member_orgs = select(OrganizationMember.organization_id).where(OrganizationMember.user_id == user.id)
        query = query.where(or_(Problem.is_public.is_(True), Problem.organization_id.in_(member_orgs)))

    if organization_id is not None:
        query = query.where(Problem.organization_id == organization_id)
    if tag:
        query = query.where(
            Problem.id.in_(
                select(ProblemTag.problem_id)
                .join(Tag, Tag.id == ProblemTag.tag_id)
                .where(Tag.name == normalize_tag(tag))
            )
        )

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar_one()
    result = await db.execute(
        query.order_by(Problem.created_at.desc()).offset((page - 1) * per_page).limit(per_page)
    )
    return list(result.scalars()), total


async def get_examples(db: AsyncSession, problem_id: str) -> list[TestCase]:
    """Test cases shown publicly as samples."""
    result = await db.execute(
        select(TestCase)
        .where(TestCase.problem_id == problem_id, TestCase.is_example.is_(True))
        .order_by(TestCase.position)
    )
    return list(result.scalars())


async def get_judge_test_cases(db: AsyncSession, problem_id: str) -> list[TestCase]:
    """Every test case of a problem, in order, for the external judge."""
    await require_problem(db, problem_id)
    result = await db.execute(
        select(TestCase).where(TestCase.problem_id == problem_id).order_by(TestCase.position)
    )
    return list(result.scalars())

