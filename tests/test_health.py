"""Integration tests for health check endpoints."""

from unittest.mock import MagicMock

from httpx import AsyncClient

from product_search import __version__
from product_search.api.app import app
from product_search.api.services import SearchServices


class TestHealthEndpoint:
    """Tests for /health endpoint."""

    async def test_health_returns_status(self, client: AsyncClient) -> None:
        """Health endpoint returns healthy status with version."""
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["version"] == __version__
        assert "T" in data["timestamp"]


class TestReadinessEndpoint:
    """Tests for /health/ready endpoint."""

    async def test_readiness_without_services(self, client: AsyncClient) -> None:
        """Only the config check is reported before startup."""
        response = await client.get("/health/ready")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ready"
        assert data["checks"] == {"config": "ok"}

    async def test_readiness_reports_components(self, client: AsyncClient) -> None:
        """Unconfigured search makes the service not ready."""
        app.state.services = SearchServices(sync=MagicMock())
        try:
            response = await client.get("/health/ready")
        finally:
            del app.state.services

        data = response.json()
        assert data["status"] == "not_ready"
        assert data["checks"]["search"] == "not_configured"
        assert data["checks"]["sync"] == "ok"


class TestLivenessEndpoint:
    """Tests for /health/live endpoint."""

    async def test_liveness_returns_alive(self, client: AsyncClient) -> None:
        """Liveness endpoint returns alive status."""
        response = await client.get("/health/live")

        assert response.status_code == 200
        assert response.json()["status"] == "alive"
