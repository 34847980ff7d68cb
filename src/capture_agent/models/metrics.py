"""
Quality Metrics Model
=====================

Per-frame quality record produced by the metric pipeline.

Units:
    brightness        raw grayscale mean, [0, 255]
    glare_percentage  percent of pixels at/above the glare threshold, [0, 100]
    glare_area        pixels in bright components >= min_glare_area
    sharpness         variance of the Laplacian response (>= 0)
    contrast          standard deviation of grayscale intensity (>= 0)
    noise_ratio       mean / stddev, 0 when stddev is 0

The readiness thresholds are expressed in the same units: brightness in
raw [0, 255] and glare as a percentage. glare_area is reported for
observability only.
"""

from pydantic import BaseModel, Field


class Metrics(BaseModel):
    """
    Immutable quality metrics for one frame.

    Produced fresh per frame and never mutated after creation.
    """

    brightness: float = Field(
        ...,
        ge=0.0,
        le=255.0,
        description="Mean grayscale intensity (0-255)",
    )

    glare_percentage: float = Field(
        ...,
        ge=0.0,
        le=100.0,
        description="Percent of pixels at or above the glare threshold",
    )

    glare_area: float = Field(
        default=0.0,
        ge=0.0,
        description="Total area (px) of bright components above the minimum area",
    )

    sharpness: float = Field(
        ...,
        ge=0.0,
        description="Laplacian variance (higher = sharper)",
    )

    contrast: float = Field(
        ...,
        ge=0.0,
        description="Standard deviation of grayscale intensity",
    )

    noise_ratio: float = Field(
        ...,
        ge=0.0,
        description="Mean / stddev of grayscale intensity (0 when flat)",
    )

    timestamp: float = Field(
        default=0.0,
        description="Timestamp of the source frame",
    )

    class Config:
        """Pydantic model configuration."""

        frozen = True

    def to_dict(self) -> dict:
        """Rounded export for logging and API responses."""
        return {
            "brightness": round(self.brightness, 2),
            "glare_percentage": round(self.glare_percentage, 3),
            "glare_area": round(self.glare_area, 1),
            "sharpness": round(self.sharpness, 2),
            "contrast": round(self.contrast, 2),
            "noise_ratio": round(self.noise_ratio, 3),
        }
