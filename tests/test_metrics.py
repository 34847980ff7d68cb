"""
Metric Tests
============

Tests for per-frame quality metrics.
"""

import cv2
import numpy as np
import pytest


class TestUniformFrames:
    """A uniform frame of intensity v has brightness v and no texture."""

    @pytest.mark.parametrize("value", [0, 20, 120, 200, 255])
    def test_uniform_color_frame(self, make_frame, value):
        """BGR frame with equal channels scores exactly v."""
        from capture_agent.quality.metrics import compute_metrics

        metrics = compute_metrics(make_frame(value, color=True))

        assert metrics.brightness == pytest.approx(value)
        assert metrics.contrast == 0.0
        assert metrics.sharpness == 0.0
        assert metrics.noise_ratio == 0.0

    def test_uniform_grayscale_frame(self, make_frame):
        """Grayscale frames are scored without conversion."""
        from capture_agent.quality.metrics import brightness, noise_ratio

        frame = make_frame(77, color=False)

        assert brightness(frame) == pytest.approx(77.0)
        assert noise_ratio(frame) == 0.0

    def test_metrics_carry_frame_timestamp(self, make_frame):
        """Metrics are stamped with the source frame timestamp."""
        from capture_agent.quality.metrics import compute_metrics

        metrics = compute_metrics(make_frame(120, timestamp=12.5))

        assert metrics.timestamp == 12.5


class TestGlare:
    """Tests for glare percentage and glare area."""

    def test_no_glare_below_threshold(self, make_frame):
        """Pixels below the threshold never count as glare."""
        from capture_agent.quality.metrics import glare_area, glare_percentage

        frame = make_frame(239)

        assert glare_percentage(frame) == 0.0
        assert glare_area(frame) == 0.0

    def test_full_glare(self, make_frame):
        """Threshold is inclusive: a frame at 240 is 100% glare."""
        from capture_agent.quality.metrics import glare_area, glare_percentage

        frame = make_frame(240, width=20, height=10)

        assert glare_percentage(frame) == pytest.approx(100.0)
        assert glare_area(frame) == 200.0

    def test_glare_patch(self):
        """A 20x20 highlight on a 100x100 frame is 4% glare."""
        from capture_agent.quality.metrics import glare_area, glare_percentage
        from capture_agent.stream.frame import Frame

        pixels = np.full((100, 100), 50, dtype=np.uint8)
        pixels[10:30, 10:30] = 255
        frame = Frame(frame_id=1, timestamp=0.0, pixels=pixels)

        assert glare_percentage(frame) == pytest.approx(4.0)
        assert glare_area(frame) == 400.0

    def test_small_specks_ignored_by_area(self):
        """Components below min_area are excluded from glare_area only."""
        from capture_agent.quality.metrics import glare_area, glare_percentage
        from capture_agent.stream.frame import Frame

        pixels = np.zeros((100, 100), dtype=np.uint8)
        pixels[5:10, 5:10] = 255
        pixels[50:55, 50:55] = 255
        frame = Frame(frame_id=1, timestamp=0.0, pixels=pixels)

        assert glare_percentage(frame) == pytest.approx(0.5)
        assert glare_area(frame) == 0.0
        assert glare_area(frame, min_area=25) == 50.0

    def test_custom_threshold(self, make_frame):
        """The threshold parameter moves the glare cutoff."""
        from capture_agent.quality.metrics import glare_percentage

        frame = make_frame(200)

        assert glare_percentage(frame, threshold=200) == pytest.approx(100.0)
        assert glare_percentage(frame, threshold=201) == 0.0


class TestSharpness:
    """Tests for Laplacian-variance sharpness."""

    def test_checkerboard_sharper_than_blurred(self, checkerboard_pixels):
        """Blurring a high-frequency pattern lowers sharpness."""
        from capture_agent.quality.metrics import sharpness
        from capture_agent.stream.frame import Frame

        sharp = Frame(frame_id=0, timestamp=0.0, pixels=checkerboard_pixels)
        blurred = Frame(
            frame_id=1,
            timestamp=0.0,
            pixels=cv2.GaussianBlur(checkerboard_pixels, (9, 9), 3),
        )

        assert sharpness(sharp) > sharpness(blurred) > 0.0

    def test_flat_frame_has_zero_sharpness(self, make_frame):
        """A flat frame has no edges."""
        from capture_agent.quality.metrics import sharpness

        assert sharpness(make_frame(128)) == 0.0


class TestContrastAndNoise:
    """Tests for contrast and noise ratio."""

    def test_two_level_frame(self):
        """Half 100 / half 200: std 50, mean/std 3."""
        from capture_agent.quality.metrics import contrast, noise_ratio
        from capture_agent.stream.frame import Frame

        pixels = np.full((10, 10), 100, dtype=np.uint8)
        pixels[:, 5:] = 200
        frame = Frame(frame_id=0, timestamp=0.0, pixels=pixels)

        assert contrast(frame) == pytest.approx(50.0)
        assert noise_ratio(frame) == pytest.approx(3.0)

    def test_noise_ratio_never_nan(self, make_frame):
        """Zero variance yields 0, never NaN or Inf."""
        from capture_agent.quality.metrics import noise_ratio

        value = noise_ratio(make_frame(0))

        assert value == 0.0
        assert np.isfinite(value)


class TestInvalidFrames:
    """Tests for frame validation."""

    def test_empty_frame_rejected(self):
        """Metric functions reject zero-area frames."""
        from capture_agent.quality.metrics import brightness, compute_metrics
        from capture_agent.stream.frame import Frame, InvalidFrameError

        frame = Frame(frame_id=3, timestamp=0.0, pixels=np.zeros((0, 10), dtype=np.uint8))

        assert frame.is_empty
        with pytest.raises(InvalidFrameError):
            brightness(frame)
        with pytest.raises(InvalidFrameError):
            compute_metrics(frame)

    def test_wrong_dtype_rejected(self):
        """Frames must be uint8."""
        from capture_agent.stream.frame import Frame, InvalidFrameError

        with pytest.raises(InvalidFrameError):
            Frame(frame_id=0, timestamp=0.0, pixels=np.zeros((4, 4), dtype=np.float32))

    def test_wrong_channel_count_rejected(self):
        """Only grayscale or 3-channel BGR is accepted."""
        from capture_agent.stream.frame import Frame, InvalidFrameError

        with pytest.raises(InvalidFrameError):
            Frame(frame_id=0, timestamp=0.0, pixels=np.zeros((4, 4, 4), dtype=np.uint8))

    def test_single_channel_squeezed(self):
        """(H, W, 1) frames are treated as grayscale."""
        from capture_agent.stream.frame import Frame

        frame = Frame(frame_id=0, timestamp=0.0, pixels=np.zeros((4, 6, 1), dtype=np.uint8))

        assert not frame.is_color
        assert (frame.width, frame.height) == (6, 4)

    def test_pixels_are_read_only(self, make_frame):
        """Frames expose a read-only view of their pixels."""
        frame = make_frame(10)

        with pytest.raises(ValueError):
            frame.pixels[0, 0, 0] = 1
