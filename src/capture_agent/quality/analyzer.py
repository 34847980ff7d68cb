"""
One-Shot Image Analysis
=======================

Stateless quality scoring of an arbitrary image buffer, independent of
any live capture session. This is the service-side counterpart of the
mobile method-channel call that returns quality metrics for a supplied
image.

Design Rules:
    - Never raises for bad input; failures become AnalyzeResult(ok=False)
    - Decodes through the shared image decoder
"""

import logging

from capture_agent.models.output import AnalyzeResult
from capture_agent.quality.metrics import (
    DEFAULT_GLARE_THRESHOLD,
    DEFAULT_MIN_GLARE_AREA,
    compute_metrics,
)
from capture_agent.stream.frame import InvalidFrameError
from capture_agent.stream.image_decoder import ImageDecodeError, decode_image_bytes


logger = logging.getLogger(__name__)


def analyze_image(
    data: bytes,
    glare_threshold: int = DEFAULT_GLARE_THRESHOLD,
    min_glare_area: int = DEFAULT_MIN_GLARE_AREA,
) -> AnalyzeResult:
    """
    Decode an encoded image and compute its quality metrics.

    Args:
        data: Encoded image bytes (JPEG, PNG, ...)
        glare_threshold: Grayscale level considered specular highlight
        min_glare_area: Minimum component area counted in glare_area

    Returns:
        AnalyzeResult with metrics on success, or ok=False and an error
        description when the bytes cannot be decoded or scored
    """
    try:
        frame = decode_image_bytes(data)
    except ImageDecodeError as e:
        logger.warning(f"analyze_image: decode failed: {e}")
        return AnalyzeResult(ok=False, error=f"decode_failure: {e}")

    try:
        metrics = compute_metrics(
            frame,
            glare_threshold=glare_threshold,
            min_glare_area=min_glare_area,
        )
    except InvalidFrameError as e:
        logger.warning(f"analyze_image: invalid frame: {e}")
        return AnalyzeResult(
            ok=False,
            width=frame.width,
            height=frame.height,
            error=f"invalid_frame: {e}",
        )

    logger.debug(
        f"analyze_image: {frame.width}x{frame.height} -> {metrics.to_dict()}"
    )
    return AnalyzeResult(
        ok=True,
        metrics=metrics,
        width=frame.width,
        height=frame.height,
    )
