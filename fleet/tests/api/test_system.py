"""
Tests for the system router and for application-wide error handling.
"""

from unittest.mock import AsyncMock

from fastapi import FastAPI
from fastapi.testclient import TestClient

from fleet.api.errors import INTERNAL_ERROR_REASON
from fleet.api.routers.system import API_VERSION
from fleet.repos.memory import MemoryBoatRepository


class TestHealthEndpoint:
    def test_health_check(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["version"] == API_VERSION
        assert data["storage_backend"] in ("memory", "minio")
        assert "timestamp" in data


class TestErrorHandling:
    def test_unexpected_error_is_a_500_with_error_body(
        self, app: FastAPI, boat_repo: MemoryBoatRepository
    ) -> None:
        boat_repo.get = AsyncMock(  # type: ignore[method-assign]
            side_effect=RuntimeError("storage exploded")
        )

        with TestClient(app, raise_server_exceptions=False) as client:
            response = client.get("/boats/1")

        assert response.status_code == 500
        assert response.json() == {"Error": INTERNAL_ERROR_REASON}

    def test_invalid_json_body(self, client: TestClient) -> None:
        response = client.post(
            "/boats",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert "Error" in response.json()

    def test_wildcard_accept_is_allowed(self, client: TestClient) -> None:
        response = client.get("/boats", headers={"Accept": "application/*"})
        assert response.status_code == 200
