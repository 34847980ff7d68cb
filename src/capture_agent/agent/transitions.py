"""
State Transition Logic
======================

Deterministic capture-readiness policy with a debounce window.

This module implements the rules for moving between capture states:
    ANALYZING → OPTIMAL → READY → CAPTURING → DONE

Key Features:
    - Explicit threshold-based verdict classification
    - Debounce gated by a timer generation, not frame counts
    - Burst completion counting (failures counted, never retried)
    - Pure functions of (SessionState, input): every call returns a new
      SessionState copy plus a TransitionResult
    - Machine-readable reason codes

Classification (units: brightness raw 0-255, glare percent 0-100):
    no samples                        → ANALYZING
    mean_brightness < brightness_low  → TOO_DARK
    mean_brightness > brightness_high → TOO_BRIGHT
    glare statistic > glare_high      → GLARE_DETECTED
    otherwise                         → OPTIMAL

Timers and side effects (starting the debounce timer, calling the capture
collaborator) live in the session; this module only decides.
"""

import logging
import time
from dataclasses import dataclass
from typing import Optional, Tuple

from capture_agent.capture.backend import CaptureCompletion
from capture_agent.models.reason_codes import ReasonCode
from capture_agent.models.state import CaptureState, SessionState, Verdict, WindowAggregate


logger = logging.getLogger(__name__)


@dataclass
class ReadinessThresholds:
    """
    Thresholds and timing for the readiness policy.

    Loaded from configuration file.
    """

    # Brightness thresholds (raw 0-255 mean)
    brightness_low: float = 81.0
    brightness_high: float = 155.0

    # Glare threshold (percent of pixels) and which window statistic it reads
    glare_high: float = 20.0
    glare_statistic: str = "mean"

    # Timing (seconds)
    debounce_sec: float = 2.0

    # Photos per capture request
    burst_count: int = 1

    def __post_init__(self) -> None:
        """Validate invariants."""
        if self.brightness_low >= self.brightness_high:
            raise ValueError("brightness_low must be below brightness_high")
        if self.glare_statistic not in ("mean", "max"):
            raise ValueError("glare_statistic must be 'mean' or 'max'")
        if self.debounce_sec < 0:
            raise ValueError("debounce_sec must be non-negative")
        if self.burst_count < 1:
            raise ValueError("burst_count must be >= 1")


@dataclass
class TransitionResult:
    """Result of a policy evaluation."""

    previous_state: CaptureState
    new_state: CaptureState
    verdict: Verdict
    reason_code: ReasonCode

    @property
    def transition_occurred(self) -> bool:
        """Whether the capture state changed."""
        return self.previous_state != self.new_state

    def __repr__(self) -> str:
        return (
            f"TransitionResult({self.previous_state.value} → {self.new_state.value}, "
            f"{self.verdict.value}, {self.reason_code.value})"
        )


class ReadinessPolicy:
    """
    Deterministic capture-readiness policy.

    Entering OPTIMAL bumps `debounce_generation`; the session starts a
    timer tagged with that generation. When the timer fires, only a
    matching generation with the state still OPTIMAL moves to READY, so
    a timer from a cancelled window can never promote a later one.
    """

    def __init__(self, thresholds: ReadinessThresholds) -> None:
        """
        Initialize readiness policy.

        Args:
            thresholds: Configured threshold values
        """
        self.thresholds = thresholds
        logger.info(
            f"ReadinessPolicy initialized: "
            f"brightness=[{thresholds.brightness_low}, {thresholds.brightness_high}], "
            f"glare>{thresholds.glare_high}% ({thresholds.glare_statistic}), "
            f"debounce={thresholds.debounce_sec}s, burst={thresholds.burst_count}"
        )

    def classify(self, aggregate: Optional[WindowAggregate]) -> Verdict:
        """
        Classify a window aggregate into a verdict.

        Args:
            aggregate: Aggregate of the drained window (None = no samples)

        Returns:
            Verdict for the window
        """
        th = self.thresholds

        if aggregate is None or aggregate.is_empty:
            return Verdict.ANALYZING

        if aggregate.mean_brightness < th.brightness_low:
            return Verdict.TOO_DARK
        if aggregate.mean_brightness > th.brightness_high:
            return Verdict.TOO_BRIGHT

        glare = (
            aggregate.max_glare if th.glare_statistic == "max"
            else aggregate.mean_glare
        )
        if glare > th.glare_high:
            return Verdict.GLARE_DETECTED

        return Verdict.OPTIMAL

    def evaluate(
        self,
        state: SessionState,
        aggregate: Optional[WindowAggregate],
        current_time: Optional[float] = None,
    ) -> Tuple[SessionState, TransitionResult]:
        """
        Evaluate one tick's aggregate.

        Args:
            state: Current session state
            aggregate: Aggregate of the drained window
            current_time: Current timestamp (defaults to time.monotonic())

        Returns:
            Tuple of (updated_session_state, transition_result)
        """
        if current_time is None:
            current_time = time.monotonic()

        verdict = self.classify(aggregate)
        current = state.capture_state
        update = {
            "verdict": verdict,
            "last_aggregate": aggregate,
            "total_ticks": state.total_ticks + 1,
        }

        if current == CaptureState.ANALYZING:
            if verdict == Verdict.OPTIMAL:
                update.update({
                    "capture_state": CaptureState.OPTIMAL,
                    "state_entered_at": current_time,
                    "debounce_generation": state.debounce_generation + 1,
                })
                reason = ReasonCode.OPTIMAL_DETECTED
            elif verdict == Verdict.ANALYZING:
                reason = ReasonCode.NO_SAMPLES
            else:
                reason = ReasonCode.CONDITIONS_NOT_OPTIMAL

        elif current == CaptureState.OPTIMAL:
            if verdict == Verdict.OPTIMAL:
                reason = ReasonCode.DEBOUNCE_PENDING
            else:
                update.update({
                    "capture_state": CaptureState.ANALYZING,
                    "state_entered_at": current_time,
                })
                reason = ReasonCode.DEBOUNCE_CANCELLED

        else:
            # READY, CAPTURING and DONE only report the verdict
            reason = ReasonCode.CAPTURE_IN_PROGRESS

        return self._result(state, state.model_copy(update=update), reason)

    def debounce_elapsed(
        self,
        state: SessionState,
        generation: int,
        current_time: Optional[float] = None,
    ) -> Tuple[SessionState, TransitionResult]:
        """
        Handle expiry of the debounce timer.

        Args:
            state: Current session state
            generation: Debounce generation the timer was started for
            current_time: Current timestamp

        Returns:
            Tuple of (updated_session_state, transition_result)
        """
        if current_time is None:
            current_time = time.monotonic()

        if (
            state.capture_state != CaptureState.OPTIMAL
            or state.debounce_generation != generation
        ):
            return self._result(state, state, ReasonCode.DEBOUNCE_STALE)

        new_state = state.model_copy(update={
            "capture_state": CaptureState.READY,
            "state_entered_at": current_time,
        })
        return self._result(state, new_state, ReasonCode.DEBOUNCE_ELAPSED)

    def begin_capture(
        self,
        state: SessionState,
        current_time: Optional[float] = None,
    ) -> Tuple[SessionState, TransitionResult]:
        """
        Move READY → CAPTURING for a burst of `burst_count` photos.

        Raises:
            ValueError: If the session is not READY
        """
        if current_time is None:
            current_time = time.monotonic()

        if state.capture_state != CaptureState.READY:
            raise ValueError(
                f"Cannot begin capture from {state.capture_state.value}"
            )

        new_state = state.model_copy(update={
            "capture_state": CaptureState.CAPTURING,
            "state_entered_at": current_time,
            "burst_size": self.thresholds.burst_count,
            "successes": 0,
            "failures": 0,
            "artifacts": [],
        })
        return self._result(state, new_state, ReasonCode.CAPTURE_REQUESTED)

    def record_completion(
        self,
        state: SessionState,
        completion: CaptureCompletion,
        current_time: Optional[float] = None,
    ) -> Tuple[SessionState, TransitionResult]:
        """
        Count one burst completion.

        The burst is done once successes + failures == burst_size.
        Completions arriving outside CAPTURING are ignored.

        Returns:
            Tuple of (updated_session_state, transition_result)
        """
        if current_time is None:
            current_time = time.monotonic()

        if state.capture_state != CaptureState.CAPTURING:
            logger.debug(
                f"Ignoring {completion!r} in state {state.capture_state.value}"
            )
            return self._result(state, state, ReasonCode.CAPTURE_IN_PROGRESS)

        if completion.succeeded:
            update = {
                "successes": state.successes + 1,
                "artifacts": [*state.artifacts, completion.artifact_id],
            }
        else:
            update = {"failures": state.failures + 1}

        new_state = state.model_copy(update=update)

        if new_state.completions >= new_state.burst_size:
            new_state = new_state.model_copy(update={
                "capture_state": CaptureState.DONE,
                "state_entered_at": current_time,
            })
            return self._result(state, new_state, ReasonCode.BURST_COMPLETE)

        return self._result(state, new_state, ReasonCode.CAPTURE_PROGRESS)

    def reset(
        self,
        state: SessionState,
        current_time: Optional[float] = None,
    ) -> Tuple[SessionState, TransitionResult]:
        """
        Start a fresh session: clears captures and bumps the session id.

        The debounce generation keeps counting so timers from the old
        session cannot match.
        """
        if current_time is None:
            current_time = time.monotonic()

        new_state = SessionState(
            session_id=state.session_id + 1,
            state_entered_at=current_time,
            debounce_generation=state.debounce_generation,
        )
        return self._result(state, new_state, ReasonCode.SESSION_RESET)

    def _result(
        self,
        old: SessionState,
        new: SessionState,
        reason: ReasonCode,
    ) -> Tuple[SessionState, TransitionResult]:
        result = TransitionResult(
            previous_state=old.capture_state,
            new_state=new.capture_state,
            verdict=new.verdict,
            reason_code=reason,
        )
        if result.transition_occurred:
            logger.info(
                f"Capture state: {old.capture_state.value} → {new.capture_state.value} "
                f"(reason: {reason.value}, session: {new.session_id})"
            )
        return new, result
