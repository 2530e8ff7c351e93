"""Tests for the momentum API endpoints."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import status
from fastapi.testclient import TestClient

from app.core.exceptions import ExternalProviderError, PersistenceError
from app.services import momentum_service

from tests.conftest import EVALUATION_DATE


@pytest.fixture
def wired(mocker, controller, momentum_store):
    """Route the service through in-memory collaborators."""
    mocker.patch.object(momentum_service, "build_controller", return_value=controller)
    mocker.patch.object(momentum_service, "momentum_repo", momentum_store)
    return controller


class TestComputeEndpoint:
    """Tests for POST /momentum/compute."""

    def test_compute_returns_ranked_records(self, client: TestClient, wired):
        response = client.post(
            "/momentum/compute", json={"start_date": "2024-01-01", "end_date": "2024-07-01"}
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "completed"
        assert data["evaluation_date"] == EVALUATION_DATE.isoformat()
        assert [r["symbol"] for r in data["records"]][0] == "AAA"
        assert data["summary"]["count"] == 3

    @pytest.mark.parametrize(
        "payload",
        [
            {"start_date": "2024-13-01", "end_date": "2024-07-01"},
            {"start_date": "01/01/2024", "end_date": "2024-07-01"},
            {"start_date": "2024-07-01", "end_date": "2024-01-01"},
        ],
    )
    def test_invalid_dates_return_400(self, client: TestClient, wired, payload):
        response = client.post("/momentum/compute", json=payload)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "INVALID_INPUT"

    def test_missing_field_is_422(self, client: TestClient, wired):
        response = client.post("/momentum/compute", json={"start_date": "2024-01-01"})
        assert response.status_code == 422

    def test_price_source_down_returns_503(self, client: TestClient, mocker):
        controller = MagicMock()
        controller.run = AsyncMock(side_effect=ExternalProviderError("price_history", None))
        mocker.patch.object(momentum_service, "build_controller", return_value=controller)

        response = client.post(
            "/momentum/compute", json={"start_date": "2024-01-01", "end_date": "2024-07-01"}
        )

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert response.json()["error"] == "EXTERNAL_SERVICE_ERROR"

    def test_write_failure_returns_503(self, client: TestClient, mocker):
        controller = MagicMock()
        controller.run = AsyncMock(side_effect=PersistenceError())
        mocker.patch.object(momentum_service, "build_controller", return_value=controller)

        response = client.post(
            "/momentum/compute", json={"start_date": "2024-01-01", "end_date": "2024-07-01"}
        )

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert response.json()["error"] == "PERSISTENCE_ERROR"

    def test_timeout_returns_504(self, client: TestClient, mocker):
        async def slow_run(start, end):
            import asyncio

            await asyncio.sleep(5)

        controller = MagicMock()
        controller.run = slow_run
        mocker.patch.object(momentum_service, "build_controller", return_value=controller)
        mocker.patch.object(momentum_service.settings, "recompute_timeout_seconds", 0.01)

        response = client.post(
            "/momentum/compute", json={"start_date": "2024-01-01", "end_date": "2024-07-01"}
        )

        assert response.status_code == status.HTTP_504_GATEWAY_TIMEOUT

    def test_request_id_is_echoed(self, client: TestClient, wired):
        response = client.post(
            "/momentum/compute",
            json={"start_date": "2024-07-01", "end_date": "2024-01-01"},
            headers={"X-Request-ID": "abc-123"},
        )
        assert response.headers["X-Request-ID"] == "abc-123"


class TestRankingEndpoints:
    """Tests for the stored ranking endpoints."""

    def test_ranking_after_compute(self, client: TestClient, wired):
        client.post("/momentum/compute", json={"start_date": "2024-01-01", "end_date": "2024-07-01"})

        response = client.get("/momentum/ranking", params={"limit": 2})

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["evaluation_date"] == "2024-07-01"
        assert len(data["records"]) == 2

    def test_ranking_without_data_is_404(self, client: TestClient, wired):
        response = client.get("/momentum/ranking")
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_dates(self, client: TestClient, wired):
        client.post("/momentum/compute", json={"start_date": "2024-01-01", "end_date": "2024-07-01"})

        response = client.get("/momentum/dates")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["dates"][0]["record_count"] == 3

    def test_relative_ranking(self, client: TestClient, wired):
        client.post("/momentum/compute", json={"start_date": "2024-01-01", "end_date": "2024-07-01"})

        response = client.post(
            "/momentum/ranking/relative",
            json={"evaluation_date": "2024-07-01", "weights": {"return_rate": 1.0, "rsi": 1.0}},
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["bounded"] is False
        assert len(data["results"]) == 3

    def test_relative_ranking_rejects_negative_weights(self, client: TestClient, wired):
        response = client.post(
            "/momentum/ranking/relative",
            json={"evaluation_date": "2024-07-01", "weights": {"return_rate": -1.0}},
        )
        assert response.status_code == 422
