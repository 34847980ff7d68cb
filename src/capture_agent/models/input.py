"""
Input Message Schemas
=====================

Pydantic models for payloads received from the camera bridge.

The FrameMessage model validates incoming frame messages (WebSocket
stream or HTTP push). AnalyzeRequest carries a one-shot image for
quality scoring, mirroring the mobile method-channel call. RegionUpdate
reports where the guide overlay was laid out.

Input Contract (from the camera bridge):
    {
        "source": "CameraBridge",
        "frame_id": 1234,
        "timestamp": 1707321234.567,
        "image": "<base64 JPEG or PNG>"
    }

Example:
    from capture_agent.models.input import FrameMessage

    raw = await websocket.recv()
    message = FrameMessage.model_validate_json(raw)
"""

from pydantic import BaseModel, Field

from capture_agent.models.geometry import Rect, Size


class FrameMessage(BaseModel):
    """
    Schema for frame messages received from the camera bridge.

    Attributes:
        source: Identifier of the sending bridge
        frame_id: Monotonically increasing frame counter
        timestamp: Capture timestamp in seconds
        image: Base64-encoded JPEG/PNG frame data
    """

    source: str = Field(
        default="CameraBridge",
        description="Source identifier of the camera bridge",
    )

    frame_id: int = Field(
        ...,
        ge=0,
        description="Monotonically increasing frame counter from source",
    )

    timestamp: float = Field(
        ...,
        ge=0,
        description="Capture timestamp in seconds",
    )

    image: str = Field(
        ...,
        min_length=1,
        description="Base64-encoded JPEG/PNG frame data",
    )

    class Config:
        """Pydantic model configuration."""

        json_schema_extra = {
            "example": {
                "source": "CameraBridge",
                "frame_id": 1234,
                "timestamp": 1707321234.567,
                "image": "/9j/4AAQSkZJRg...",
            }
        }


class AnalyzeRequest(BaseModel):
    """
    One-shot quality analysis request.

    Attributes:
        image: Base64-encoded image buffer to score
    """

    image: str = Field(
        ...,
        description="Base64-encoded image to score",
    )


class RegionUpdate(BaseModel):
    """
    Guide overlay position reported by the host UI after layout.

    Attributes:
        guide: Guide rect in DISPLAY space
        viewport: Size of the preview viewport the guide was measured in
    """

    guide: Rect = Field(..., description="Guide rect in display space")
    viewport: Size = Field(..., description="Preview viewport size")
