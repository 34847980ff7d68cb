"""
Session State Models
====================

This module defines the internal state representation for the capture
session.

Core Concepts:
    - Verdict: Lighting/glare classification of the latest window
    - CaptureState: Discrete session states of the readiness machine
    - WindowAggregate: Statistics of one drained ReadinessWindow
    - SessionState: Full immutable session state, copied on every transition

Transitions:
    ANALYZING → OPTIMAL:   verdict is OPTIMAL (debounce timer starts)
    OPTIMAL → ANALYZING:   any other verdict (debounce cancelled)
    OPTIMAL → READY:       debounce timer fired with verdict still OPTIMAL
    READY → CAPTURING:     capture requested from the collaborator
    CAPTURING → DONE:      successes + failures == burst size
    any → ANALYZING:       reset

Example:
    from capture_agent.models.state import CaptureState, SessionState

    state = SessionState(session_id=1, state_entered_at=time.monotonic())
    assert state.capture_state == CaptureState.ANALYZING
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class Verdict(str, Enum):
    """
    Classification of the current lighting/glare condition.

    Attributes:
        ANALYZING: No samples in the last window yet
        TOO_DARK: Mean brightness below the low threshold
        TOO_BRIGHT: Mean brightness above the high threshold
        GLARE_DETECTED: Glare percentage above the glare threshold
        OPTIMAL: Lighting is suitable for capture
    """

    ANALYZING = "ANALYZING"
    TOO_DARK = "TOO_DARK"
    TOO_BRIGHT = "TOO_BRIGHT"
    GLARE_DETECTED = "GLARE_DETECTED"
    OPTIMAL = "OPTIMAL"


class CaptureState(str, Enum):
    """
    Discrete states of the capture-readiness machine.

    Attributes:
        ANALYZING: Scoring frames, conditions not yet optimal
        OPTIMAL: Conditions optimal, debounce timer pending
        READY: Conditions held through debounce, capture about to start
        CAPTURING: Capture requested, waiting for completions
        DONE: All burst slots reported
    """

    ANALYZING = "ANALYZING"
    OPTIMAL = "OPTIMAL"
    READY = "READY"
    CAPTURING = "CAPTURING"
    DONE = "DONE"


class WindowAggregate(BaseModel):
    """
    Aggregate of one drained readiness window.

    Attributes:
        sample_count: Number of metrics samples aggregated
        mean_brightness: Mean of per-frame brightness (0-255)
        mean_glare: Mean of per-frame glare percentage
        max_glare: Max of per-frame glare percentage
    """

    sample_count: int = Field(default=0, ge=0)
    mean_brightness: float = Field(default=0.0, ge=0.0)
    mean_glare: float = Field(default=0.0, ge=0.0)
    max_glare: float = Field(default=0.0, ge=0.0)

    class Config:
        """Pydantic model configuration."""

        frozen = True

    @property
    def is_empty(self) -> bool:
        """Whether the window held no samples."""
        return self.sample_count == 0


class SessionState(BaseModel):
    """
    Full internal state of a capture session.

    Instances are never mutated; the policy returns a model_copy with
    updates for every transition.

    Attributes:
        session_id: Identifier tagging the current session and its bursts
        capture_state: Current discrete state
        verdict: Last computed verdict
        last_aggregate: Aggregate the last verdict was computed from
        state_entered_at: Timestamp the current state was entered
        debounce_generation: Incremented each time OPTIMAL is entered
        burst_size: Captures requested for the active burst
        successes: Successful completions reported so far
        failures: Failed completions reported so far
        artifacts: Artifact ids of successful completions
        total_ticks: Evaluation ticks processed in this session
    """

    session_id: int = Field(default=1, ge=1)

    capture_state: CaptureState = Field(
        default=CaptureState.ANALYZING,
        description="Current discrete capture state",
    )

    verdict: Verdict = Field(
        default=Verdict.ANALYZING,
        description="Last computed verdict",
    )

    last_aggregate: Optional[WindowAggregate] = Field(
        default=None,
        description="Aggregate the last verdict was computed from",
    )

    state_entered_at: float = Field(
        default=0.0,
        description="Timestamp when the current state was entered",
    )

    debounce_generation: int = Field(
        default=0,
        ge=0,
        description="Incremented on each entry to OPTIMAL",
    )

    burst_size: int = Field(default=0, ge=0)
    successes: int = Field(default=0, ge=0)
    failures: int = Field(default=0, ge=0)
    artifacts: List[str] = Field(default_factory=list)

    total_ticks: int = Field(default=0, ge=0)

    class Config:
        """Pydantic model configuration."""

        frozen = True
        use_enum_values = False

    @property
    def completions(self) -> int:
        """Completions reported for the active burst."""
        return self.successes + self.failures
