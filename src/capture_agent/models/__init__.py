"""
Data Models
===========

Pydantic models for the capture agent.

This module re-exports all data models for convenient access.

Models:
    Input:
        - FrameMessage: Schema for frames pushed by the camera bridge
        - AnalyzeRequest: One-shot analysis request
        - RegionUpdate: Guide overlay position from the host UI

    Geometry:
        - CoordinateSpace, Size, Rect: ROI primitives

    Metrics:
        - Metrics: Per-frame quality record

    State:
        - Verdict, CaptureState: Enums of the readiness machine
        - WindowAggregate: Statistics of one drained window
        - SessionState: Full immutable session state

    Output:
        - AnalyzeResult, CaptureOutcome, SessionStatus
"""

from capture_agent.models.input import AnalyzeRequest, FrameMessage, RegionUpdate
from capture_agent.models.geometry import CoordinateSpace, Rect, Size
from capture_agent.models.metrics import Metrics
from capture_agent.models.state import CaptureState, SessionState, Verdict, WindowAggregate
from capture_agent.models.output import (
    AnalyzeResult,
    BurstProgress,
    CaptureOutcome,
    SessionStatus,
)
from capture_agent.models.reason_codes import ReasonCode

__all__ = [
    # Input
    "FrameMessage",
    "AnalyzeRequest",
    "RegionUpdate",
    # Geometry
    "CoordinateSpace",
    "Size",
    "Rect",
    # Metrics
    "Metrics",
    # State
    "Verdict",
    "CaptureState",
    "WindowAggregate",
    "SessionState",
    "ReasonCode",
    # Output
    "AnalyzeResult",
    "BurstProgress",
    "CaptureOutcome",
    "SessionStatus",
]
