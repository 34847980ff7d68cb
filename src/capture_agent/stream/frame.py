"""
Frame Data Model
=================

Internal frame representation for the analysis pipeline.

This module defines the typed Frame class that is passed from the
ingestion layer (decoder, WebSocket consumer, HTTP push) to the metric
functions and the capture session.

Design Rules:
    - This is the ONLY frame format passed to downstream stages
    - Pixels are decoded (grayscale or BGR), uint8
    - Pixel data is exposed read-only; nothing downstream mutates it
    - A frame is discarded after metrics extraction (no retention)
"""

from dataclasses import dataclass

import numpy as np


class InvalidFrameError(ValueError):
    """Raised when a frame is empty or has an unusable pixel layout."""
    pass


@dataclass(frozen=True, slots=True)
class Frame:
    """
    Decoded camera frame.

    Immutable (frozen) and backed by a read-only view of the pixel array,
    so the metric pipeline can never modify the caller's image.

    Attributes:
        frame_id: Monotonically increasing frame counter from the source
        timestamp: Capture timestamp in seconds
        pixels: np.ndarray of shape (H, W) grayscale or (H, W, 3) BGR, uint8

    Note:
        Zero-area frames can be constructed (a camera callback may hand
        one over), but every metric function rejects them.
    """

    frame_id: int
    timestamp: float
    pixels: np.ndarray

    def __post_init__(self) -> None:
        """Validate layout and freeze the pixel buffer."""
        pixels = np.asarray(self.pixels)

        if pixels.dtype != np.uint8:
            raise InvalidFrameError(
                f"Invalid dtype for frame {self.frame_id}: {pixels.dtype}"
            )
        if pixels.ndim == 3 and pixels.shape[2] == 1:
            pixels = pixels[:, :, 0]
        if pixels.ndim not in (2, 3) or (pixels.ndim == 3 and pixels.shape[2] != 3):
            raise InvalidFrameError(
                f"Invalid image shape for frame {self.frame_id}: {pixels.shape}"
            )

        view = pixels.view()
        view.flags.writeable = False
        object.__setattr__(self, "pixels", view)

    @property
    def width(self) -> int:
        """Frame width in pixels."""
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        """Frame height in pixels."""
        return int(self.pixels.shape[0])

    @property
    def is_color(self) -> bool:
        """Whether the frame carries BGR samples."""
        return self.pixels.ndim == 3

    @property
    def is_empty(self) -> bool:
        """Whether the frame has zero area."""
        return self.width == 0 or self.height == 0

    def __repr__(self) -> str:
        """Compact repr that doesn't dump the pixels."""
        return (
            f"Frame(frame_id={self.frame_id}, "
            f"timestamp={self.timestamp:.3f}, "
            f"size={self.width}x{self.height}, "
            f"color={self.is_color})"
        )
