"""
Test Configuration
==================

Pytest fixtures and test configuration for DocCaptureAgent.

Frames are synthesized with numpy; encoded payloads go through
cv2.imencode so they exercise the real decoder.
"""

import base64

import cv2
import numpy as np
import pytest


@pytest.fixture
def make_frame():
    """Factory for uniform frames: make_frame(value, width, height, color)."""
    from capture_agent.stream.frame import Frame

    def _make(value=120, width=64, height=48, color=True, frame_id=0, timestamp=0.0):
        shape = (height, width, 3) if color else (height, width)
        pixels = np.full(shape, value, dtype=np.uint8)
        return Frame(frame_id=frame_id, timestamp=timestamp, pixels=pixels)

    return _make


@pytest.fixture
def checkerboard_pixels():
    """64x64 grayscale checkerboard of 4px squares (0 / 255)."""
    yy, xx = np.indices((64, 64))
    return (((yy // 4) + (xx // 4)) % 2 * 255).astype(np.uint8)


@pytest.fixture
def png_bytes():
    """Factory for PNG-encoded uniform BGR images."""

    def _encode(value=120, width=64, height=48):
        pixels = np.full((height, width, 3), value, dtype=np.uint8)
        ok, buffer = cv2.imencode(".png", pixels)
        assert ok
        return buffer.tobytes()

    return _encode


@pytest.fixture
def sample_frame_message(png_bytes):
    """Provide a sample FrameMessage payload for testing."""
    return {
        "source": "CameraBridge",
        "frame_id": 100,
        "timestamp": 1707321234.567,
        "image": base64.b64encode(png_bytes(120)).decode("ascii"),
    }


@pytest.fixture
def make_metrics():
    """Factory for Metrics with only the policy-relevant fields varied."""
    from capture_agent.models.metrics import Metrics

    def _make(brightness=120.0, glare=0.0, timestamp=0.0, sharpness=10.0):
        return Metrics(
            brightness=brightness,
            glare_percentage=glare,
            glare_area=0.0,
            sharpness=sharpness,
            contrast=1.0,
            noise_ratio=1.0,
            timestamp=timestamp,
        )

    return _make


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock():
    """Provide a manually advanced clock."""
    return FakeClock()
