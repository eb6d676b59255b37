"""
Tests for liveness and readiness endpoints
"""
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from app.core.config import settings
from app.domain.services.health_service import configuration_flags


class TestLivenessProbe:

    async def test_liveness_returns_healthy(self, test_client: httpx.AsyncClient) -> None:
        response = await test_client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "service": settings.APP_NAME}


class TestReadinessProbe:

    async def test_ready_without_redis(self, test_client: httpx.AsyncClient) -> None:
        response = await test_client.get("/health/ready")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["redis"] == "not_configured"
        assert data["idempotency"] == "memory"
        assert data["configured"]["telegram"] is True

    async def test_degraded_when_redis_down(self, test_client: httpx.AsyncClient) -> None:
        with patch(
            "app.domain.services.health_service._check_redis",
            new_callable=AsyncMock,
            return_value="error: redis_unavailable",
        ):
            response = await test_client.get("/health/ready")

        assert response.status_code == 503
        assert response.json()["status"] == "degraded"

    async def test_redis_ping(self, test_client: httpx.AsyncClient, fake_redis) -> None:
        async def _get_fake_redis():
            return fake_redis

        with patch.object(settings, "REDIS_URL", "redis://localhost:6379/0"), \
             patch("app.domain.services.health_service.get_redis", _get_fake_redis):
            response = await test_client.get("/health/ready")

        assert response.status_code == 200
        assert response.json()["redis"] == "ok"
        assert response.json()["idempotency"] == "redis"

    @pytest.mark.unit
    def test_configuration_flags_hide_values(self) -> None:
        flags = configuration_flags()

        assert flags == {
            "telegram": True,
            "order_webhook_token": True,
            "tinkoff": False,
            "green_api": False,
        }
