"""
Geometry Module
===============

Region-of-interest handling for the guide overlay.

This module maps the guide rect drawn in the preview viewport onto
captured frames, which usually have a different resolution.
"""

from capture_agent.geometry.regions import (
    ID_CARD_ASPECT_RATIO,
    InvalidRegionError,
    RegionMapper,
    crop_to_region,
    guide_rect_for_viewport,
    map_display_rect_to_frame,
)

__all__ = [
    "ID_CARD_ASPECT_RATIO",
    "InvalidRegionError",
    "RegionMapper",
    "crop_to_region",
    "guide_rect_for_viewport",
    "map_display_rect_to_frame",
]
