"""
Frame Quality Metrics
=====================

Scalar quality metrics computed from a single decoded frame.

All functions are pure: they take a Frame, never mutate it, and return
a float. A zero-area frame raises InvalidFrameError instead of yielding
a sentinel value.

Key Metrics:
    - Brightness: mean grayscale intensity, raw [0, 255]
    - Glare percentage: share of pixels at/above a threshold, [0, 100]
    - Glare area: area of connected bright blobs above a minimum size
    - Sharpness: variance of the Laplacian response
    - Contrast: standard deviation of grayscale intensity
    - Noise ratio: mean / stddev (0 for a flat frame)

Formulas:
    sharpness   = Var(∇²I)                 (population variance)
    contrast    = σ(I)
    noise_ratio = μ(I) / σ(I), or 0 when σ(I) == 0
"""

import logging

import cv2
import numpy as np

from capture_agent.models.metrics import Metrics
from capture_agent.stream.frame import Frame, InvalidFrameError


logger = logging.getLogger(__name__)


DEFAULT_GLARE_THRESHOLD = 240
DEFAULT_MIN_GLARE_AREA = 100


def to_grayscale(frame: Frame) -> np.ndarray:
    """
    Grayscale derivation of a frame.

    Args:
        frame: Grayscale or BGR frame

    Returns:
        2-D uint8 array (H, W). For grayscale frames this is the frame's
        own read-only buffer, not a copy.

    Raises:
        InvalidFrameError: If the frame has zero area
    """
    if frame.is_empty:
        raise InvalidFrameError(
            f"Frame {frame.frame_id} has zero area ({frame.width}x{frame.height})"
        )

    if frame.is_color:
        return cv2.cvtColor(frame.pixels, cv2.COLOR_BGR2GRAY)
    return frame.pixels


def brightness(frame: Frame) -> float:
    """
    Mean grayscale intensity in raw units [0, 255].

    A uniform frame of intensity v returns exactly v.
    """
    return _brightness(to_grayscale(frame))


def glare_percentage(frame: Frame, threshold: int = DEFAULT_GLARE_THRESHOLD) -> float:
    """
    Percentage of pixels at or above the glare threshold.

    Args:
        frame: Frame to score
        threshold: Grayscale level considered specular highlight (0-255)

    Returns:
        Percentage in [0, 100]
    """
    return _glare_percentage(to_grayscale(frame), threshold)


def glare_area(
    frame: Frame,
    threshold: int = DEFAULT_GLARE_THRESHOLD,
    min_area: int = DEFAULT_MIN_GLARE_AREA,
) -> float:
    """
    Total area of connected highlight regions.

    The grayscale frame is binarized at `threshold`; 8-connected
    components smaller than `min_area` pixels are ignored as specks.

    Args:
        frame: Frame to score
        threshold: Grayscale level considered specular highlight (0-255)
        min_area: Minimum component area (pixels) counted as glare

    Returns:
        Summed area in pixels
    """
    return _glare_area(to_grayscale(frame), threshold, min_area)


def sharpness(frame: Frame) -> float:
    """
    Laplacian variance (higher = sharper).

    A flat frame returns 0.
    """
    return _sharpness(to_grayscale(frame))


def contrast(frame: Frame) -> float:
    """Standard deviation of grayscale intensity."""
    return _contrast(to_grayscale(frame))


def noise_ratio(frame: Frame) -> float:
    """
    Signal-to-noise proxy: mean / stddev of grayscale intensity.

    Returns 0.0 for a zero-variance frame, never NaN or Inf.
    """
    return _noise_ratio(to_grayscale(frame))


def compute_metrics(
    frame: Frame,
    glare_threshold: int = DEFAULT_GLARE_THRESHOLD,
    min_glare_area: int = DEFAULT_MIN_GLARE_AREA,
) -> Metrics:
    """
    Compute every metric for a frame with a single grayscale conversion.

    Args:
        frame: Frame to score
        glare_threshold: Grayscale level considered specular highlight
        min_glare_area: Minimum component area counted in glare_area

    Returns:
        Metrics stamped with the frame timestamp

    Raises:
        InvalidFrameError: If the frame has zero area
    """
    gray = to_grayscale(frame)

    return Metrics(
        brightness=_brightness(gray),
        glare_percentage=_glare_percentage(gray, glare_threshold),
        glare_area=_glare_area(gray, glare_threshold, min_glare_area),
        sharpness=_sharpness(gray),
        contrast=_contrast(gray),
        noise_ratio=_noise_ratio(gray),
        timestamp=frame.timestamp,
    )


# =============================================================================
# Grayscale kernels
# =============================================================================

def _brightness(gray: np.ndarray) -> float:
    return float(np.mean(gray))


def _glare_percentage(gray: np.ndarray, threshold: int) -> float:
    bright = int(np.count_nonzero(gray >= threshold))
    return 100.0 * bright / gray.size


def _glare_area(gray: np.ndarray, threshold: int, min_area: int) -> float:
    # THRESH_BINARY keeps pixels strictly above thresh, so shift by one to
    # match the inclusive ">= threshold" used by the percentage metric
    _, binary = cv2.threshold(gray, threshold - 1, 255, cv2.THRESH_BINARY)
    count, _, stats, _ = cv2.connectedComponentsWithStats(binary, connectivity=8)

    # Label 0 is the background
    areas = stats[1:count, cv2.CC_STAT_AREA]
    return float(areas[areas >= min_area].sum())


def _sharpness(gray: np.ndarray) -> float:
    laplacian = cv2.Laplacian(gray, cv2.CV_64F)
    return float(laplacian.var())


def _contrast(gray: np.ndarray) -> float:
    return float(np.std(gray))


def _noise_ratio(gray: np.ndarray) -> float:
    std = float(np.std(gray))
    if std == 0.0:
        return 0.0
    return float(np.mean(gray)) / std
