"""
Burst Selection
===============

Sharpest-of-N post-pass over the frames of a finished burst.

Scope:
    "frame"  sharpness of the whole captured image
    "roi"    sharpness of the guide region only (mapped per capture)

Completions without a frame, or whose region cannot be extracted, are
not candidates.
"""

import logging
from enum import Enum
from typing import Optional, Sequence, Tuple

from capture_agent.capture.backend import CaptureCompletion
from capture_agent.geometry.regions import InvalidRegionError, RegionMapper
from capture_agent.quality.metrics import sharpness
from capture_agent.stream.frame import InvalidFrameError


logger = logging.getLogger(__name__)


class SharpnessScope(str, Enum):
    """Region over which capture sharpness is compared."""

    FRAME = "frame"
    ROI = "roi"


def pick_sharpest(
    completions: Sequence[CaptureCompletion],
    scope: SharpnessScope = SharpnessScope.FRAME,
    mapper: Optional[RegionMapper] = None,
) -> Optional[Tuple[CaptureCompletion, float]]:
    """
    Select the successful completion with the highest sharpness.

    Args:
        completions: Completions of a burst (failures are ignored)
        scope: Whole frame or guide region
        mapper: Region mapper used when scope is ROI

    Returns:
        (completion, sharpness) of the winner, or None if no completion
        carries a scorable frame. Ties keep the earliest slot.
    """
    if scope == SharpnessScope.ROI and mapper is None:
        raise ValueError("ROI scope requires a region mapper")

    best: Optional[Tuple[CaptureCompletion, float]] = None

    for completion in completions:
        if not completion.succeeded or completion.frame is None:
            continue

        frame = completion.frame
        try:
            if scope == SharpnessScope.ROI:
                frame = mapper.extract(frame)
            score = sharpness(frame)
        except (InvalidRegionError, InvalidFrameError) as e:
            logger.warning(
                f"Skipping {completion.artifact_id} in sharpest pass: {e}"
            )
            continue

        if best is None or score > best[1]:
            best = (completion, score)

    return best
