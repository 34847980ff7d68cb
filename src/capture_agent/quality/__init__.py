"""
Quality Module
==============

Frame quality scoring.

Components:
    - metrics: Pure metric functions over a Frame
    - analyzer: Stateless one-shot scoring of an encoded image
    - selection: Sharpest-of-N pass over a finished burst
"""

from capture_agent.quality.metrics import (
    DEFAULT_GLARE_THRESHOLD,
    DEFAULT_MIN_GLARE_AREA,
    brightness,
    compute_metrics,
    contrast,
    glare_area,
    glare_percentage,
    noise_ratio,
    sharpness,
    to_grayscale,
)
from capture_agent.quality.analyzer import analyze_image
from capture_agent.quality.selection import SharpnessScope, pick_sharpest

__all__ = [
    "DEFAULT_GLARE_THRESHOLD",
    "DEFAULT_MIN_GLARE_AREA",
    "brightness",
    "compute_metrics",
    "contrast",
    "glare_area",
    "glare_percentage",
    "noise_ratio",
    "sharpness",
    "to_grayscale",
    "analyze_image",
    "SharpnessScope",
    "pick_sharpest",
]
