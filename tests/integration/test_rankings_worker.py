"""Tests for the arq ranking worker."""

from __future__ import annotations

import pytest

from codeclub.rankings.service import get_current_ranking
from codeclub.rankings.worker import WorkerSettings, _cron_minutes, refresh_rankings
from tests.factories import make_org, make_problem, make_user, open_session


def test_cron_minutes_from_interval() -> None:
    assert _cron_minutes(15) == {0, 15, 30, 45}
    assert _cron_minutes(0) == set(range(60))
    assert _cron_minutes(120) == {0}


def test_worker_settings_registers_job() -> None:
    assert refresh_rankings in WorkerSettings.functions
    assert WorkerSettings.max_jobs == 1


@pytest.mark.asyncio
async def test_refresh_commits_snapshots(database: None) -> None:
    async with open_session() as db:
        leader = await make_user(db, "leader@example.com")
        org = await make_org(db, "Club", leader)
        problem = await make_problem(db, org, leader, "p")
        problem_id = problem.id
        await db.commit()

    written = await refresh_rankings({})
    assert written == 2

    async with open_session() as db:
        assert await get_current_ranking(db, "global") is not None
        assert await get_current_ranking(db, "problem", problem_id) is not None
