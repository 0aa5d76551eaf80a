"""Shared test fixtures.

Tests run against an in-memory SQLite database (aiosqlite) created from the
ORM metadata; Redis is left uninitialised, so rate limiting is bypassed
unless a test installs its own client.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

os.environ["CODECLUB_DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CODECLUB_JUDGE_TOKEN"] = "test-judge-token"
os.environ["CODECLUB_AUTH_GATEWAY_TOKEN"] = "test-gateway-token"
os.environ["CODECLUB_LOG_FORMAT"] = "console"

from codeclub.config import get_settings  # noqa: E402
from codeclub.database import close_db, get_engine, get_session, init_db  # noqa: E402
from codeclub.db import models  # noqa: E402, F401
from codeclub.db.base import Base  # noqa: E402
from codeclub.main import create_app  # noqa: E402

get_settings.cache_clear()

JUDGE_HEADERS = {"X-Judge-Token": "test-judge-token"}
GATEWAY_HEADERS = {"X-Auth-Gateway-Token": "test-gateway-token"}


@pytest_asyncio.fixture
async def database() -> AsyncGenerator[None, None]:
    """Fresh schema per test."""
    get_settings.cache_clear()
    await init_db(get_settings().database_url)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await close_db()


@pytest_asyncio.fixture
async def db_session(database: None) -> AsyncGenerator[AsyncSession, None]:
    """A direct database session for service-level tests."""
    async for session in get_session():
        yield session


@pytest_asyncio.fixture
async def client(database: None) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to a fresh app (lifespan is not run)."""
    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
