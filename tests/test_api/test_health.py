"""
Tests for the health endpoint.
"""

from unittest.mock import AsyncMock


class TestHealthCheck:
    async def test_healthy_without_token(self, client) -> None:
        response = await client.get("/api/v1/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["services"]["redis"] == "connected"
        assert body["services"]["drafting"] == "configured"
        assert body["services"]["email"] == "SimulatedEmailSender"
        assert body["version"] == "1.0.0"

    async def test_degraded_when_redis_down(self, client, redis_client) -> None:
        redis_client.ping = AsyncMock(return_value=False)

        response = await client.get("/api/v1/health")

        assert response.status_code == 200
        assert response.json()["status"] == "degraded"
        assert response.json()["services"]["redis"] == "disconnected"
