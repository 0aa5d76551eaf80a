"""Builders for test data. All of them flush but never commit."""

from __future__ import annotations

from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession

from codeclub.auth.jwt import create_access_token
from codeclub.database import get_session
from codeclub.db.models import Organization, Problem, User
from codeclub.identity.service import add_member, create_organization, create_user
from codeclub.problems.schemas import ProblemCreate, TestCaseDraft
from codeclub.problems.service import create_problem


@asynccontextmanager
async def open_session() -> AsyncIterator[AsyncSession]:
    """A session outside any fixture, for seeding data before HTTP calls."""
    async for session in get_session():
        yield session


async def make_user(db: AsyncSession, email: str, admin: bool = False, name: str | None = None) -> User:
    return await create_user(
        db,
        email=email,
        name=name or email.split("@")[0],
        system_role="SYSTEM_ADMIN" if admin else "USER",
    )


async def make_org(db: AsyncSession, name: str, leader: User, members: list[User] | None = None) -> Organization:
    org = await create_organization(db, name, leader)
    for member in members or []:
        await add_member(db, org.id, member.id)
    return org


def problem_draft(slug: str, cases: int = 2, is_public: bool = True, **overrides: object) -> ProblemCreate:
    fields: dict[str, object] = {
        "slug": slug,
        "title": slug.replace("-", " ").title(),
        "content": {"statement": f"Solve {slug}"},
        "is_public": is_public,
        "test_cases": [
            TestCaseDraft(input=f"{i}\n", expected_output=f"{i * 2}\n", is_example=(i == 1))
            for i in range(1, cases + 1)
        ],
    }
    fields.update(overrides)
    return ProblemCreate(**fields)


async def make_problem(
    db: AsyncSession,
    org: Organization,
    author: User,
    slug: str,
    cases: int = 2,
    is_public: bool = True,
    **overrides: object,
) -> Problem:
    return await create_problem(db, org.id, author, problem_draft(slug, cases, is_public, **overrides))


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.system_role)}"}
