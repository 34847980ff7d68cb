"""
Geometry Models
===============

Axis-aligned rectangles and sizes for region-of-interest handling.

Coordinate Spaces:
    DISPLAY and FRAME are two distinct unit systems. The guide overlay
    is positioned in DISPLAY pixels (the preview viewport), while the
    metric pipeline works in FRAME pixels (the captured image, usually
    a different resolution). Every Rect carries its space so the two
    can never be mixed silently; only the region mapper converts between
    them.

Example:
    guide = Rect(x=40, y=300, width=640, height=402, space=CoordinateSpace.DISPLAY)
    viewport = Size(width=720, height=1280)
"""

from enum import Enum

from pydantic import BaseModel, Field


class CoordinateSpace(str, Enum):
    """
    Unit system of a Rect.

    Attributes:
        DISPLAY: Preview viewport pixels (where the overlay is drawn)
        FRAME: Captured frame pixels (where metrics are computed)
    """

    DISPLAY = "DISPLAY"
    FRAME = "FRAME"


class Size(BaseModel):
    """
    Width and height of a viewport or frame.

    Attributes:
        width: Horizontal extent in pixels
        height: Vertical extent in pixels
    """

    width: int = Field(..., gt=0, description="Width in pixels")
    height: int = Field(..., gt=0, description="Height in pixels")

    class Config:
        """Pydantic model configuration."""

        frozen = True


class Rect(BaseModel):
    """
    Axis-aligned integer rectangle in a declared coordinate space.

    Origin is top-left, X increases rightward, Y increases downward.
    Width and height may be zero or negative when describing degenerate
    input; the region mapper rejects such rects.

    Attributes:
        x: Left edge
        y: Top edge
        width: Horizontal extent
        height: Vertical extent
        space: Coordinate space the values are expressed in
    """

    x: int = Field(..., description="Left edge (pixels)")
    y: int = Field(..., description="Top edge (pixels)")
    width: int = Field(..., description="Horizontal extent (pixels)")
    height: int = Field(..., description="Vertical extent (pixels)")
    space: CoordinateSpace = Field(
        default=CoordinateSpace.DISPLAY,
        description="Coordinate space of this rect",
    )

    class Config:
        """Pydantic model configuration."""

        frozen = True

    @property
    def right(self) -> int:
        """Exclusive right edge."""
        return self.x + self.width

    @property
    def bottom(self) -> int:
        """Exclusive bottom edge."""
        return self.y + self.height

    @property
    def area(self) -> int:
        """Area in pixels (0 for degenerate rects)."""
        return max(0, self.width) * max(0, self.height)
