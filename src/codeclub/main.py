"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from codeclub.auth.router import router as auth_router
from codeclub.config import get_settings
from codeclub.database import close_db, init_db
from codeclub.health.router import router as health_router
from codeclub.identity.router import router as identity_router
from codeclub.learning.router import router as learning_router
from codeclub.middleware import setup_middleware
from codeclub.problems.router import router as problems_router
from codeclub.rankings.router import router as rankings_router
from codeclub.redis_client import close_redis, init_redis
from codeclub.skills.router import router as skills_router
from codeclub.social.notification_router import router as notification_router
from codeclub.social.router import router as announcement_router
from codeclub.submissions.router import router as submissions_router
from codeclub.system.router import router as system_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Open the database and Redis pools for the life of the process."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)
    logger.info("startup", environment=settings.environment, version=settings.app_version)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title="CodeClub API",
        description="Problems, submissions, rankings and skill tracking for programming clubs",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(auth_router)
    app.include_router(identity_router)
    app.include_router(problems_router)
    app.include_router(submissions_router)
    app.include_router(rankings_router)
    app.include_router(skills_router)
    app.include_router(notification_router)
    app.include_router(announcement_router)
    app.include_router(learning_router)
    app.include_router(system_router)

    return app


app = create_app()
