"""Tests for the background unit-of-work helper."""

from __future__ import annotations

import pytest
from sqlalchemy import select

from codeclub.database import session_scope
from codeclub.db.models import User
from tests.factories import make_user

pytestmark = pytest.mark.asyncio


async def test_scope_commits_on_success(database: None) -> None:
    async with session_scope() as db:
        await make_user(db, "kept@example.com")

    async with session_scope() as db:
        emails = (await db.execute(select(User.email))).scalars().all()
    assert emails == ["kept@example.com"]


async def test_scope_rolls_back_on_error(database: None) -> None:
    with pytest.raises(RuntimeError, match="boom"):
        async with session_scope() as db:
            await make_user(db, "lost@example.com")
            raise RuntimeError("boom")

    async with session_scope() as db:
        assert (await db.execute(select(User.id))).first() is None
