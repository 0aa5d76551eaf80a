"""Ranking aggregation arq worker: periodic snapshot appends.

Run with: arq codeclub.rankings.worker.WorkerSettings
"""

from __future__ import annotations

import logging

from arq import cron
from arq.connections import RedisSettings

from codeclub.config import get_settings
from codeclub.database import close_db, init_db, session_scope
from codeclub.rankings.service import run_ranking_aggregation

logger = logging.getLogger(__name__)


async def refresh_rankings(ctx: dict) -> int:  # type: ignore[type-arg]
    """Append fresh problem and global snapshots. Returns snapshots written."""
    try:
        async with session_scope() as db:
            written = await run_ranking_aggregation(db)
    except Exception:
        logger.exception("Ranking aggregation failed")
        raise
    logger.info("Ranking aggregation wrote %d snapshots", written)
    return written


async def rankings_startup(ctx: dict) -> None:  # type: ignore[type-arg]
    """Initialize the DB connection on worker startup."""
    settings = get_settings()
    await init_db(settings.database_url)
    logger.info("Ranking worker started")


async def rankings_shutdown(ctx: dict) -> None:  # type: ignore[type-arg]
    await close_db()
    logger.info("Ranking worker shut down")


def _cron_minutes(interval: int) -> set[int]:
    interval = max(1, min(interval, 60))
    return set(range(0, 60, interval))


class WorkerSettings:
    """arq worker settings for ranking aggregation."""

    functions = [refresh_rankings]
    cron_jobs = [
        cron(refresh_rankings, minute=_cron_minutes(get_settings().ranking_interval_minutes), run_at_startup=True),
    ]
    redis_settings = RedisSettings.from_dsn(get_settings().redis_url)
    on_startup = rankings_startup
    on_shutdown = rankings_shutdown
    max_jobs = 1
    job_timeout = 300  # 5 minutes max per aggregation pass
