"""Middleware tests: request id, rate limiting, CORS and error bodies."""

from __future__ import annotations

from typing import Any

import pytest
from httpx import AsyncClient

from codeclub.middleware import rate_limit


class _Pipeline:
    def __init__(self, store: dict[str, int]) -> None:
        self.store = store
        self.ops: list[tuple[str, str]] = []

    def incr(self, key: str) -> None:
        self.ops.append(("incr", key))

    def expire(self, key: str, _seconds: int) -> None:
        self.ops.append(("expire", key))

    async def execute(self) -> list[Any]:
        results: list[Any] = []
        for op, key in self.ops:
            if op == "incr":
                self.store[key] = self.store.get(key, 0) + 1
                results.append(self.store[key])
            else:
                results.append(True)
        return results


class _CountingRedis:
    """Just enough of a Redis client for the limiter's INCR/EXPIRE pipeline."""

    def __init__(self) -> None:
        self.store: dict[str, int] = {}

    def pipeline(self) -> _Pipeline:
        return _Pipeline(self.store)


@pytest.fixture
def fake_redis(monkeypatch: pytest.MonkeyPatch) -> _CountingRedis:
    redis = _CountingRedis()
    monkeypatch.setattr(rate_limit, "get_redis", lambda: redis)
    return redis


@pytest.mark.asyncio
async def test_request_id_generated(client: AsyncClient) -> None:
    response = await client.get("/health")
    assert len(response.headers["x-request-id"]) == 36


@pytest.mark.asyncio
async def test_request_id_preserved(client: AsyncClient) -> None:
    response = await client.get("/health", headers={"X-Request-Id": "test-abc-123"})
    assert response.headers["x-request-id"] == "test-abc-123"


@pytest.mark.asyncio
async def test_no_redis_means_no_limit_headers(client: AsyncClient) -> None:
    response = await client.get("/api/v1/problems")
    assert response.status_code == 200
    assert "x-ratelimit-limit" not in response.headers


@pytest.mark.asyncio
async def test_rate_limit_headers(client: AsyncClient, fake_redis: _CountingRedis) -> None:
    response = await client.get("/api/v1/problems")
    assert response.headers["x-ratelimit-limit"] == "100"
    assert response.headers["x-ratelimit-remaining"] == "99"
    assert all(key.startswith("codeclub:ratelimit:") for key in fake_redis.store)


@pytest.mark.asyncio
async def test_rate_limit_blocks_excess(client: AsyncClient, fake_redis: _CountingRedis) -> None:
    for _ in range(100):
        await client.get("/api/v1/problems")
    response = await client.get("/api/v1/problems")
    assert response.status_code == 429
    assert response.headers["retry-after"] == "60"
    assert response.headers["x-ratelimit-remaining"] == "0"


@pytest.mark.asyncio
async def test_probes_and_judge_exempt(client: AsyncClient, fake_redis: _CountingRedis) -> None:
    for _ in range(150):
        assert (await client.get("/health")).status_code == 200
    response = await client.get(
        "/api/v1/judge/problems/missing/test-cases", headers={"X-Judge-Token": "test-judge-token"}
    )
    assert response.status_code == 404
    assert fake_redis.store == {}


@pytest.mark.asyncio
async def test_cors_preflight(client: AsyncClient) -> None:
    response = await client.options(
        "/health",
        headers={"Origin": "http://localhost:5173", "Access-Control-Request-Method": "GET"},
    )
    assert response.headers["access-control-allow-origin"] == "http://localhost:5173"


@pytest.mark.asyncio
async def test_404_returns_json(client: AsyncClient) -> None:
    response = await client.get("/nonexistent-path")
    assert response.status_code == 404
    assert response.json() == {"detail": "Not Found"}
