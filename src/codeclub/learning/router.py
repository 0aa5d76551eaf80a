"""External learning log endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from codeclub.auth.dependencies import get_current_user
from codeclub.database import get_session
from codeclub.db.models import ExternalLearning, ExternalLearningAttachment, User
from codeclub.learning.schemas import AttachmentResponse, CreateLearningLogRequest, LearningLogResponse
from codeclub.learning.service import create_learning_log, get_log_details, list_learning_logs

router = APIRouter(prefix="/api/v1", tags=["Learning"])


def _response(
    log: ExternalLearning, tags: list[str], attachments: list[ExternalLearningAttachment]
) -> LearningLogResponse:
    return LearningLogResponse(
        id=log.id,
        title=log.title,
        url=log.url,
        source=log.source,
        description=log.description,
        studied_at=log.studied_at,
        duration_minutes=log.duration_minutes,
        tags=tags,
        attachments=[
            AttachmentResponse(id=a.id, file_name=a.file_name, file_url=a.file_url, content_type=a.content_type)
            for a in attachments
        ],
    )


@router.get("/users/me/learning", response_model=list[LearningLogResponse])
async def my_learning_logs(
    limit: int = Query(50, ge=1, le=200),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    logs = await list_learning_logs(db, user.id, limit)
    tags, attachments = await get_log_details(db, [log.id for log in logs])
    return [_response(log, tags[log.id], attachments[log.id]) for log in logs]


@router.post("/users/me/learning", response_model=LearningLogResponse, status_code=201)
async def add_learning_log(
    body: CreateLearningLogRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    log = await create_learning_log(
        db,
        user.id,
        body.title,
        url=body.url,
        source=body.source,
        description=body.description,
        studied_at=body.studied_at,
        duration_minutes=body.duration_minutes,
        tags=body.tags,
        attachments=[a.model_dump() for a in body.attachments],
    )
    await db.commit()
    tags, attachments = await get_log_details(db, [log.id])
    return _response(log, tags[log.id], attachments[log.id])
