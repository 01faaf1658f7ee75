"""Tests for health, readiness and version endpoints."""

from coinledger import redis_client

from conftest import UnavailableRedis


class TestHealth:
    async def test_health(self, client):
        resp = await client.get("/health")

        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "OK"
        assert "timestamp" in body

    async def test_ready(self, client):
        resp = await client.get("/ready")

        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "ready"
        assert body["checks"] == {"database": "ok", "redis": "ok"}

    async def test_version(self, client):
        resp = await client.get("/version")

        assert resp.status_code == 200
        assert resp.json()["version"] == "0.1.0"

    async def test_ready_degraded_without_redis(self, client, monkeypatch):
        monkeypatch.setattr(redis_client, "_pool", UnavailableRedis())

        resp = await client.get("/ready")

        assert resp.status_code == 200
        assert resp.json()["status"] == "degraded"
        assert resp.json()["checks"]["redis"] == "unavailable"
