"""Health probes and cross-cutting middleware behavior."""

from __future__ import annotations

import pytest

from academy.config import get_settings


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    @pytest.mark.asyncio
    async def test_ready(self, client):
        response = await client.get("/ready")
        assert response.status_code == 200
        assert response.json() == {"status": "ready", "checks": {"database": "ok", "redis": "disabled"}}

    @pytest.mark.asyncio
    async def test_version(self, client):
        response = await client.get("/version")
        assert response.json()["version"] == get_settings().app_version


class TestMiddleware:
    @pytest.mark.asyncio
    async def test_security_headers(self, client):
        response = await client.get("/health")
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"

    @pytest.mark.asyncio
    async def test_request_id_generated(self, client):
        response = await client.get("/health")
        assert response.headers["X-Request-Id"]

    @pytest.mark.asyncio
    async def test_request_id_propagated(self, client):
        response = await client.get("/health", headers={"X-Request-Id": "trace-123"})
        assert response.headers["X-Request-Id"] == "trace-123"

    @pytest.mark.asyncio
    async def test_unknown_route_is_json_404(self, client):
        response = await client.get("/api/nope")
        assert response.status_code == 404
        assert response.json() == {"detail": "Not Found"}

    @pytest.mark.asyncio
    async def test_rate_limit_per_path_group(self, client):
        limit = get_settings().rate_limit_register
        statuses = [(await client.post("/api/register", json={})).status_code for _ in range(limit + 1)]
        assert 429 not in statuses[:limit]
        assert statuses[-1] == 429
        # Other groups keep their own budget
        assert (await client.get("/api/achievements")).status_code == 200

    @pytest.mark.asyncio
    async def test_rate_limit_headers(self, client):
        response = await client.get("/api/achievements")
        assert response.headers["X-RateLimit-Limit"] == str(get_settings().rate_limit_requests)
        assert response.headers["X-RateLimit-Remaining"] == str(get_settings().rate_limit_requests - 1)

    @pytest.mark.asyncio
    async def test_health_is_not_rate_limited(self, client):
        for _ in range(3):
            response = await client.get("/health")
        assert "X-RateLimit-Limit" not in response.headers

    @pytest.mark.asyncio
    async def test_cors_preflight(self, client):
        response = await client.options(
            "/api/leaderboard",
            headers={"Origin": "http://localhost:3000", "Access-Control-Request-Method": "GET"},
        )
        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "http://localhost:3000"
