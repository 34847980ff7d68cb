"""
Reason Codes
============

Fixed set of machine-readable reason codes for session transitions.

Each transition result carries exactly ONE reason code that explains
why the session is in its current capture state.
"""

from enum import Enum


class ReasonCode(str, Enum):
    """
    Machine-readable transition explanation codes.

    Attributes:
        NO_SAMPLES: Window was empty at the tick
        CONDITIONS_NOT_OPTIMAL: Verdict is not OPTIMAL, keep analyzing
        OPTIMAL_DETECTED: Verdict became OPTIMAL, debounce started
        DEBOUNCE_PENDING: Verdict still OPTIMAL, waiting for the timer
        DEBOUNCE_CANCELLED: Verdict left OPTIMAL during debounce
        DEBOUNCE_ELAPSED: Timer fired with OPTIMAL held, session READY
        DEBOUNCE_STALE: Timer fired for a superseded debounce window
        CAPTURE_REQUESTED: Burst requested from the capture collaborator
        CAPTURE_PROGRESS: A completion was recorded, burst not finished
        BURST_COMPLETE: Every slot reported, session DONE
        CAPTURE_IN_PROGRESS: Tick during CAPTURING/DONE, state held
        SESSION_RESET: Session reset to ANALYZING
    """

    NO_SAMPLES = "NO_SAMPLES"
    CONDITIONS_NOT_OPTIMAL = "CONDITIONS_NOT_OPTIMAL"

    OPTIMAL_DETECTED = "OPTIMAL_DETECTED"
    DEBOUNCE_PENDING = "DEBOUNCE_PENDING"
    DEBOUNCE_CANCELLED = "DEBOUNCE_CANCELLED"
    DEBOUNCE_ELAPSED = "DEBOUNCE_ELAPSED"
    DEBOUNCE_STALE = "DEBOUNCE_STALE"

    CAPTURE_REQUESTED = "CAPTURE_REQUESTED"
    CAPTURE_PROGRESS = "CAPTURE_PROGRESS"
    BURST_COMPLETE = "BURST_COMPLETE"
    CAPTURE_IN_PROGRESS = "CAPTURE_IN_PROGRESS"

    SESSION_RESET = "SESSION_RESET"
