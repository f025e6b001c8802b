"""Tests for the HTTP API."""

import pytest
from fastapi.testclient import TestClient

from parceltrack.carriers import CARRIERS
from parceltrack.server import create_app
from parceltrack.tracking.errors import UNSUPPORTED_MESSAGE


@pytest.fixture
def client(fake_adapter, orchestrator_for, make_event):
    """API client whose chain is one scripted source plus synthetic."""
    source = fake_adapter("lotte-api", events=[make_event("집하", 5), make_event("이동중", 2)])
    app = create_app(orchestrator_for(source))
    with TestClient(app) as client:
        yield client


class TestTrackEndpoint:
    """Tests for POST /api/track."""

    def test_track_success(self, client):
        response = client.post("/api/track", json={"carrier": "lotte", "trackingNumber": "309912345678"})

        assert response.status_code == 200
        data = response.json()
        assert data["carrier"] == "lotte"
        assert data["carrierName"] == "롯데택배"
        assert data["currentStatus"] == "in_transit"
        assert data["source"] == "lotte-api"
        assert data["degraded"] is False
        assert len(data["progresses"]) == 2
        assert data["progresses"][0]["status"] == "in_transit"

    def test_missing_fields(self, client):
        response = client.post("/api/track", json={"carrier": "lotte"})

        assert response.status_code == 400
        assert response.json() == {"error": "Both carrier and trackingNumber are required"}

    def test_unsupported_carrier(self, client):
        response = client.post("/api/track", json={"carrier": "fedex", "trackingNumber": "1"})

        assert response.status_code == 400
        assert response.json() == {"error": "Unsupported carrier: fedex"}

    def test_invalid_json(self, client):
        response = client.post(
            "/api/track",
            content=b"carrier=lotte",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert "error" in response.json()

    def test_non_object_body(self, client):
        response = client.post("/api/track", json=["lotte", "1"])

        assert response.status_code == 400
        assert response.json() == {"error": "Request body must be a JSON object"}


class TestSyntheticOnlyCarrier:
    """Tests for carriers without a real source."""

    def test_degraded_result(self, config, clock):
        from parceltrack.tracking.orchestrator import DeadlineOrchestrator

        app = create_app(DeadlineOrchestrator(config, clock=clock))
        with TestClient(app) as client:
            response = client.post("/api/track", json={"carrier": "honam", "trackingNumber": "123"})

        assert response.status_code == 200
        data = response.json()
        assert data["degraded"] is True
        assert data["error"] == UNSUPPORTED_MESSAGE
        assert data["source"] == "synthetic"


class TestInfoEndpoints:
    """Tests for carrier listing and health check."""

    def test_carriers(self, client):
        response = client.get("/api/carriers")

        assert response.status_code == 200
        carriers = {c["id"]: c for c in response.json()["carriers"]}
        assert len(carriers) == len(CARRIERS)
        assert carriers["cjkoreaexpress"]["realtime"] is True
        assert carriers["cjkoreaexpress"]["name"] == "CJ대한통운"
        assert carriers["honam"]["realtime"] is False

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
