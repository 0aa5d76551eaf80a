"""Helpers for writes guarded by database constraints."""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from codeclub.errors import ConstraintViolation


async def flush_or_conflict(db: AsyncSession, detail: str) -> None:
    """Flush pending inserts, turning a constraint failure into ConstraintViolation.

    The session is rolled back on failure, so callers must commit any work
    they want to keep before a guarded insert.
    """
    try:
        await db.flush()
    except IntegrityError as exc:
        await db.rollback()
        raise ConstraintViolation(detail) from exc
