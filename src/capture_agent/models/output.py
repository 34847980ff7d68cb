"""
Output Models
=============

This module defines the output contract of the capture agent.

Output Contract (GET /status, WS /ws/status):
    {
        "timestamp": 1770500938.284,
        "session_id": 3,
        "capture_state": "CAPTURING",
        "verdict": "OPTIMAL",
        "aggregate": {
            "sample_count": 28,
            "mean_brightness": 121.4,
            "mean_glare": 0.8,
            "max_glare": 1.9
        },
        "burst": {"requested": 5, "successes": 2, "failures": 1},
        "outcome": null
    }

Design Rules:
    - `verdict` drives the status text of the host UI
    - `outcome` is set once the burst is DONE and cleared on reset
    - AnalyzeResult never carries an exception; failures are an error string
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from capture_agent.models.metrics import Metrics
from capture_agent.models.state import CaptureState, Verdict, WindowAggregate


class AnalyzeResult(BaseModel):
    """
    Result of one-shot image analysis.

    Attributes:
        ok: Whether the image was decoded and scored
        metrics: Quality metrics when ok
        width: Decoded image width
        height: Decoded image height
        error: Error description when not ok
    """

    ok: bool = Field(..., description="Whether analysis succeeded")
    metrics: Optional[Metrics] = Field(default=None)
    width: Optional[int] = Field(default=None, ge=0)
    height: Optional[int] = Field(default=None, ge=0)
    error: Optional[str] = Field(default=None)


class BurstProgress(BaseModel):
    """Counters of the active burst."""

    requested: int = Field(default=0, ge=0)
    successes: int = Field(default=0, ge=0)
    failures: int = Field(default=0, ge=0)


class CaptureOutcome(BaseModel):
    """
    Final result of a burst capture.

    Attributes:
        session_id: Session the burst belonged to
        requested: Number of captures requested
        successes: Successful completions
        failures: Failed completions
        artifacts: Kept artifact ids (only the sharpest when selection is on)
        selected_artifact: Artifact chosen by the sharpest-of-N pass
        selected_sharpness: Sharpness score of the selected artifact
    """

    session_id: int = Field(..., ge=1)
    requested: int = Field(..., ge=0)
    successes: int = Field(..., ge=0)
    failures: int = Field(..., ge=0)
    artifacts: List[str] = Field(default_factory=list)
    selected_artifact: Optional[str] = Field(default=None)
    selected_sharpness: Optional[float] = Field(default=None, ge=0.0)


class SessionStatus(BaseModel):
    """
    Snapshot of the capture session for the host UI.

    Attributes:
        timestamp: When the snapshot was taken
        session_id: Current session id
        capture_state: Current capture state
        verdict: Current verdict
        aggregate: Aggregate behind the verdict
        burst: Progress of the active burst
        outcome: Outcome of the finished burst, if any
    """

    timestamp: float = Field(..., description="Snapshot timestamp")
    session_id: int = Field(..., ge=1)
    capture_state: CaptureState
    verdict: Verdict
    aggregate: Optional[WindowAggregate] = Field(default=None)
    burst: BurstProgress = Field(default_factory=BurstProgress)
    outcome: Optional[CaptureOutcome] = Field(default=None)

    class Config:
        """Pydantic model configuration."""

        json_schema_extra = {
            "example": {
                "timestamp": 1770500938.284,
                "session_id": 3,
                "capture_state": "CAPTURING",
                "verdict": "OPTIMAL",
                "aggregate": {
                    "sample_count": 28,
                    "mean_brightness": 121.4,
                    "mean_glare": 0.8,
                    "max_glare": 1.9,
                },
                "burst": {"requested": 5, "successes": 2, "failures": 1},
                "outcome": None,
            }
        }
