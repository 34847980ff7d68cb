"""
API Tests
=========

Tests for the FastAPI service surface.

The TestClient context manager runs the application lifespan, so the
capture session and its evaluation loop are live during each test.
"""

import base64

import pytest
from fastapi.testclient import TestClient


@pytest.fixture
def client():
    """Provide a TestClient with the lifespan running."""
    from capture_agent.main import app

    with TestClient(app) as test_client:
        yield test_client


class TestServiceEndpoints:
    """Tests for info, health and readiness endpoints."""

    def test_root(self, client):
        """Service information is reported."""
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["service"] == "DocCaptureAgent"

    def test_health(self, client):
        """Liveness probe always answers."""
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_ready(self, client):
        """The evaluation loop is running after startup."""
        response = client.get("/ready")

        assert response.status_code == 200
        assert response.json()["session_running"] is True

    def test_metrics(self, client):
        """Metrics expose session and buffer counters."""
        response = client.get("/metrics")

        assert response.status_code == 200
        body = response.json()
        assert "frames_analyzed" in body["session"]
        assert "stale_completions" in body["session"]
        assert "samples_evicted" in body["session"]
        assert "frames_discarded" in body["session"]
        assert "cleared_count" in body["buffer"]
        assert body["buffer"]["maxsize"] >= 1


class TestFramesEndpoint:
    """Tests for POST /frames."""

    def test_push_valid_frame(self, client, sample_frame_message):
        """A decodable frame is accepted into the buffer."""
        response = client.post("/frames", json=sample_frame_message)

        assert response.status_code == 200
        assert response.json()["frame_id"] == 100

    def test_push_undecodable_frame(self, client, sample_frame_message):
        """An image that cannot be decoded is rejected with 422."""
        sample_frame_message["image"] = base64.b64encode(b"garbage").decode("ascii")

        response = client.post("/frames", json=sample_frame_message)

        assert response.status_code == 422

    def test_push_missing_fields(self, client):
        """Schema violations are rejected with 422."""
        response = client.post("/frames", json={"frame_id": 1})

        assert response.status_code == 422


class TestAnalyzeEndpoint:
    """Tests for POST /analyze."""

    def test_analyze_png(self, client, png_bytes):
        """A uniform PNG scores its gray level."""
        image = base64.b64encode(png_bytes(120)).decode("ascii")

        response = client.post("/analyze", json={"image": image})

        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True
        assert body["metrics"]["brightness"] == pytest.approx(120.0)

    def test_analyze_garbage(self, client):
        """Undecodable input is reported, not raised."""
        image = base64.b64encode(b"garbage").decode("ascii")

        response = client.post("/analyze", json={"image": image})

        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is False
        assert body["error"].startswith("decode_failure")

    def test_analyze_invalid_base64(self, client):
        """Malformed base64 is a decode failure."""
        response = client.post("/analyze", json={"image": "***"})

        assert response.status_code == 200
        assert response.json()["ok"] is False


class TestSessionEndpoints:
    """Tests for status, reset and region endpoints."""

    def test_status(self, client):
        """Status reports the current session."""
        response = client.get("/status")

        assert response.status_code == 200
        body = response.json()
        assert body["session_id"] == 1
        assert body["capture_state"] in (
            "ANALYZING", "OPTIMAL", "READY", "CAPTURING", "DONE",
        )

    def test_reset_bumps_session(self, client):
        """Reset starts a new session id."""
        response = client.post("/reset")

        assert response.status_code == 200
        assert response.json() == {"session_id": 2, "capture_state": "ANALYZING"}
        assert client.get("/status").json()["session_id"] == 2

    def test_region_update(self, client):
        """A guide inside the viewport is accepted."""
        response = client.post("/region", json={
            "guide": {"x": 40, "y": 300, "width": 640, "height": 402, "space": "DISPLAY"},
            "viewport": {"width": 720, "height": 1280},
        })

        assert response.status_code == 200
        assert response.json()["updated"] is True

    def test_region_outside_viewport(self, client):
        """A guide extending past the viewport is rejected."""
        response = client.post("/region", json={
            "guide": {"x": 600, "y": 0, "width": 640, "height": 402},
            "viewport": {"width": 720, "height": 1280},
        })

        assert response.status_code == 422

    def test_status_websocket(self, client):
        """The status stream pushes a snapshot on connect."""
        with client.websocket_connect("/ws/status") as websocket:
            body = websocket.receive_json()

        assert body["session_id"] >= 1
        assert "verdict" in body
