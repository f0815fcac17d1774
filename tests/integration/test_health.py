"""Integration tests for health check endpoints."""

from unittest.mock import MagicMock, patch

from fastapi.testclient import TestClient


class TestHealthEndpoint:
    """Tests for /health endpoint."""

    def test_health_returns_200(self, client: TestClient) -> None:
        """Test that /health endpoint returns 200 status."""
        response = client.get("/health")
        assert response.status_code == 200

    def test_health_returns_healthy_status(self, client: TestClient) -> None:
        """Test that /health endpoint returns healthy status and version."""
        data = client.get("/health").json()

        assert data["status"] == "healthy"
        assert data["version"] == "0.1.0"
        assert data["timestamp"] is not None


class TestReadinessEndpoint:
    """Tests for /health/ready endpoint."""

    def test_readiness_returns_200_when_healthy(self, client: TestClient) -> None:
        """Test that /health/ready returns 200 when the database and cache respond."""
        response = client.get("/health/ready")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_readiness_includes_database_and_cache_checks(self, client: TestClient) -> None:
        """Test that both dependencies are reported with latency."""
        data = client.get("/health/ready").json()

        checks = {check["name"]: check for check in data["checks"]}
        assert set(checks) == {"database", "cache"}
        assert checks["database"]["latency_ms"] is not None

    def test_readiness_returns_503_when_cache_unhealthy(
        self, client: TestClient, mock_redis: MagicMock
    ) -> None:
        """Test that an unreachable cache makes the service not ready."""
        mock_redis.ping.side_effect = ConnectionError("Connection refused")

        response = client.get("/health/ready")

        assert response.status_code == 503
        data = response.json()
        assert data["status"] == "unhealthy"
        cache_check = next(c for c in data["checks"] if c["name"] == "cache")
        assert cache_check["healthy"] is False
        assert cache_check["error"] == "Connection refused"

    def test_readiness_returns_503_when_database_unhealthy(self, client: TestClient) -> None:
        """Test that /health/ready returns 503 when the database is unhealthy."""
        with patch(
            "src.api.routes.health.check_database_connection",
            return_value={"healthy": False, "error": "Connection timeout"},
        ):
            response = client.get("/health/ready")

        assert response.status_code == 503
        db_check = next(c for c in response.json()["checks"] if c["name"] == "database")
        assert db_check["error"] == "Connection timeout"


class TestErrorResponseSchema:
    """Tests for error response schema compliance."""

    def test_404_returns_error_response_format(self, client: TestClient) -> None:
        """Test that unknown routes return 404."""
        response = client.get("/nonexistent-endpoint")
        assert response.status_code == 404

        data = response.json()
        assert "error" in data or "detail" in data
