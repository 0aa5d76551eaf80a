"""System-wide key/value settings stored in the database."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import select

from codeclub.db.base import utcnow
from codeclub.db.models import SystemSetting

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


async def get_setting(db: AsyncSession, key: str, default: Any = None) -> Any:  # noqa: ANN401
    result = await db.execute(select(SystemSetting.value).where(SystemSetting.key == key))
    row = result.first()
    return row[0] if row is not None else default


async def set_setting(
    db: AsyncSession,
    key: str,
    value: Any,  # noqa: ANN401
    updated_by_id: str | None = None,
    description: str | None = None,
) -> SystemSetting:
    """Create or overwrite a setting."""
    result = await db.execute(select(SystemSetting).where(SystemSetting.key == key).with_for_update())
    setting = result.scalar_one_or_none()
    if setting is None:
        setting = SystemSetting(key=key)
        db.add(setting)
    setting.value = value
    if description is not None:
        setting.description = description
    setting.updated_by_id = updated_by_id
    setting.updated_at = utcnow()
    await db.flush()
    logger.info("system_setting_updated", key=key, updated_by=updated_by_id)
    return setting


async def list_settings(db: AsyncSession) -> list[SystemSetting]:
    result = await db.execute(select(SystemSetting).order_by(SystemSetting.key))
    return list(result.scalars())
