"""Tests for health, readiness and version endpoints."""

import pytest


@pytest.mark.asyncio
class TestHealth:
    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    async def test_ready(self, client):
        response = await client.get("/ready")
        assert response.status_code == 200
        assert response.json() == {"status": "ready", "checks": {"database": "ok", "redis": "ok"}}

    async def test_ready_degraded_when_redis_down(self, client, redis_client, monkeypatch):
        async def broken_ping():
            raise ConnectionError("redis unavailable")

        monkeypatch.setattr(redis_client, "ping", broken_ping)
        response = await client.get("/ready")
        assert response.status_code == 503
        body = response.json()
        assert body["status"] == "degraded"
        assert body["checks"]["redis"].startswith("error:")

    async def test_version(self, client):
        response = await client.get("/version")
        assert response.json() == {"service": "noizlabs-api", "version": "0.1.0", "environment": "development"}
