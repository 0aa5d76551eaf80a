"""Admin endpoints for system settings."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from codeclub.auth.dependencies import get_admin_user
from codeclub.database import get_session
from codeclub.db.models import SystemSetting, User
from codeclub.system.service import list_settings, set_setting

router = APIRouter(prefix="/api/v1/admin", tags=["Admin"])


class SettingUpdateRequest(BaseModel):
    value: Any = None
    description: str | None = None


class SettingResponse(BaseModel):
    key: str
    value: Any = None
    description: str | None = None
    updated_at: datetime


def _response(s: SystemSetting) -> SettingResponse:
    return SettingResponse(key=s.key, value=s.value, description=s.description, updated_at=s.updated_at)


@router.get("/settings", response_model=list[SettingResponse])
async def get_settings_list(
    _admin: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_session),
):
    return [_response(s) for s in await list_settings(db)]


@router.put("/settings/{key}", response_model=SettingResponse)
async def put_setting(
    key: str,
    body: SettingUpdateRequest,
    admin: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_session),
):
    setting = await set_setting(db, key, body.value, admin.id, body.description)
    await db.commit()
    return _response(setting)
