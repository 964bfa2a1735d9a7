"""
Integration tests for liveness, readiness and metrics endpoints.
"""

from fastapi.testclient import TestClient

from compliance_gateway.config import Settings
from compliance_gateway.main import create_app


class TestHealthEndpoints:
    """Test probes exposed to the orchestrator."""

    def test_liveness(self, test_client: TestClient):
        response = test_client.get("/healthz")

        assert response.status_code == 200
        assert response.json()["status"] == "alive"

    def test_readiness(self, test_client: TestClient):
        response = test_client.get("/readyz")

        data = response.json()
        assert response.status_code == 200
        assert data["status"] == "ready"
        assert set(data["checks"]) == {"signing", "time_zone", "sweeper"}

    def test_readiness_before_startup(self, settings: Settings):
        # Without entering the client context the lifespan never runs
        client = TestClient(create_app(settings))

        response = client.get("/readyz")

        assert response.status_code == 503
        assert response.json()["reason"] == "health_checker_not_initialized"

    def test_metrics(self, test_client: TestClient):
        test_client.get("/healthz")

        response = test_client.get("/metrics")

        assert response.status_code == 200
        assert "http_requests_total" in response.text
        assert "compliance_gateway_service_info" in response.text

    def test_root(self, test_client: TestClient):
        assert test_client.get("/").json()["service"] == "Compliance Gateway"
