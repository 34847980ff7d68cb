"""
Region Mapping
==============

Maps the guide overlay from display space to frame space and crops
frames to it.

This module handles:
    - Scaling a DISPLAY rect into a differently-sized FRAME
    - Clamping the scaled rect inside the frame
    - Cropping a frame to a FRAME rect
    - Computing the centered ID-card guide rect for a viewport

The preview viewport and the captured frame rarely share a resolution
(or even an aspect ratio), so x and y are scaled independently.

Example:
    from capture_agent.geometry import RegionMapper, guide_rect_for_viewport

    viewport = Size(width=720, height=1280)
    mapper = RegionMapper(guide_rect_for_viewport(viewport), viewport)

    roi_frame = mapper.extract(frame)
"""

import logging
from typing import Optional

from capture_agent.models.geometry import CoordinateSpace, Rect, Size
from capture_agent.stream.frame import Frame


logger = logging.getLogger(__name__)


# ISO/IEC 7810 ID-1 card: 85.60 x 53.98 mm
ID_CARD_ASPECT_RATIO = 1.59


class InvalidRegionError(ValueError):
    """Raised when a region cannot be mapped into or cropped from a frame."""
    pass


def map_display_rect_to_frame(rect: Rect, viewport: Size, frame_size: Size) -> Rect:
    """
    Map a display-space rect into frame space.

    Edges are scaled independently per axis and rounded, then clamped to
    the frame.

    Args:
        rect: Rect in DISPLAY space
        viewport: Size of the preview viewport the rect was measured in
        frame_size: Size of the frame to map into

    Returns:
        Rect in FRAME space lying fully inside the frame

    Raises:
        InvalidRegionError: If the rect is not in DISPLAY space, is
            degenerate, extends beyond the viewport, or collapses to zero
            width/height after mapping
    """
    if rect.space != CoordinateSpace.DISPLAY:
        raise InvalidRegionError(
            f"Expected a DISPLAY rect, got {rect.space.value}"
        )

    if rect.width <= 0 or rect.height <= 0:
        raise InvalidRegionError(
            f"Degenerate region {rect.width}x{rect.height}"
        )

    if (
        rect.x < 0 or rect.y < 0
        or rect.right > viewport.width
        or rect.bottom > viewport.height
    ):
        raise InvalidRegionError(
            f"Region ({rect.x},{rect.y},{rect.width},{rect.height}) extends "
            f"beyond viewport {viewport.width}x{viewport.height}"
        )

    scale_x = frame_size.width / viewport.width
    scale_y = frame_size.height / viewport.height

    left = round(rect.x * scale_x)
    top = round(rect.y * scale_y)
    right = round(rect.right * scale_x)
    bottom = round(rect.bottom * scale_y)

    # Clamp rounding overshoot
    left = min(max(left, 0), frame_size.width)
    top = min(max(top, 0), frame_size.height)
    right = min(max(right, 0), frame_size.width)
    bottom = min(max(bottom, 0), frame_size.height)

    if right - left <= 0 or bottom - top <= 0:
        raise InvalidRegionError(
            f"Region collapses to {right - left}x{bottom - top} in a "
            f"{frame_size.width}x{frame_size.height} frame"
        )

    return Rect(
        x=left,
        y=top,
        width=right - left,
        height=bottom - top,
        space=CoordinateSpace.FRAME,
    )


def crop_to_region(frame: Frame, rect: Rect) -> Frame:
    """
    Crop a frame to a FRAME-space rect.

    The result shares pixel memory with the input (read-only view).

    Raises:
        InvalidRegionError: If the rect is not in FRAME space or does not
            lie fully inside the frame
    """
    if rect.space != CoordinateSpace.FRAME:
        raise InvalidRegionError(
            f"Expected a FRAME rect, got {rect.space.value}"
        )

    if (
        rect.width <= 0 or rect.height <= 0
        or rect.x < 0 or rect.y < 0
        or rect.right > frame.width
        or rect.bottom > frame.height
    ):
        raise InvalidRegionError(
            f"Region ({rect.x},{rect.y},{rect.width},{rect.height}) is outside "
            f"frame {frame.frame_id} ({frame.width}x{frame.height})"
        )

    return Frame(
        frame_id=frame.frame_id,
        timestamp=frame.timestamp,
        pixels=frame.pixels[rect.y:rect.bottom, rect.x:rect.right],
    )


def guide_rect_for_viewport(
    viewport: Size,
    aspect_ratio: float = ID_CARD_ASPECT_RATIO,
    fill_ratio: float = 0.85,
) -> Rect:
    """
    Centered guide rect with a fixed aspect ratio.

    Returns the largest rect of `aspect_ratio` (width / height) that fits
    inside `fill_ratio` of the viewport on both axes.

    Raises:
        ValueError: If aspect_ratio or fill_ratio is out of range
    """
    if aspect_ratio <= 0:
        raise ValueError("aspect_ratio must be positive")
    if not 0 < fill_ratio <= 1:
        raise ValueError("fill_ratio must be in (0, 1]")

    max_width = viewport.width * fill_ratio
    max_height = viewport.height * fill_ratio

    width = max_width
    height = width / aspect_ratio
    if height > max_height:
        height = max_height
        width = height * aspect_ratio

    width_px = max(1, int(width))
    height_px = max(1, int(height))

    return Rect(
        x=(viewport.width - width_px) // 2,
        y=(viewport.height - height_px) // 2,
        width=width_px,
        height=height_px,
        space=CoordinateSpace.DISPLAY,
    )


class RegionMapper:
    """
    Session-owned region-of-interest context.

    Holds the guide rect and the viewport it was measured in, decoupled
    from any UI lifecycle. A mapper without a guide rect passes frames
    through unchanged.

    Attributes:
        guide_rect: Guide overlay in DISPLAY space, or None for full frame
        viewport: Viewport size the guide rect was measured in
    """

    def __init__(
        self,
        guide_rect: Optional[Rect] = None,
        viewport: Optional[Size] = None,
    ) -> None:
        """
        Initialize region mapper.

        Args:
            guide_rect: Guide overlay in DISPLAY space
            viewport: Viewport size; required when guide_rect is given
        """
        if guide_rect is not None and viewport is None:
            raise ValueError("viewport is required with a guide rect")

        self.guide_rect = guide_rect
        self.viewport = viewport

        if guide_rect is not None:
            logger.info(
                f"RegionMapper initialized: guide=({guide_rect.x},{guide_rect.y},"
                f"{guide_rect.width}x{guide_rect.height}) in "
                f"{viewport.width}x{viewport.height} viewport"
            )

    @classmethod
    def full_frame(cls) -> "RegionMapper":
        """Mapper that analyzes the whole frame."""
        return cls()

    @property
    def is_full_frame(self) -> bool:
        """Whether frames are passed through unchanged."""
        return self.guide_rect is None

    def frame_rect(self, frame: Frame) -> Rect:
        """
        Guide rect mapped into the given frame.

        Raises:
            InvalidRegionError: If the frame is empty or mapping fails
        """
        if frame.is_empty:
            raise InvalidRegionError(f"Frame {frame.frame_id} has zero area")

        if self.guide_rect is None:
            return Rect(
                x=0, y=0, width=frame.width, height=frame.height,
                space=CoordinateSpace.FRAME,
            )

        return map_display_rect_to_frame(
            self.guide_rect,
            self.viewport,
            Size(width=frame.width, height=frame.height),
        )

    def extract(self, frame: Frame) -> Frame:
        """
        Map the guide rect into the frame and crop to it.

        Raises:
            InvalidRegionError: If the region cannot be mapped or cropped
        """
        if self.guide_rect is None:
            return frame
        return crop_to_region(frame, self.frame_rect(frame))
