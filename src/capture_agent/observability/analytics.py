"""
Analytics Module
================

Operational counters for a capture session.

This module tracks analytics for observability ONLY.
Counters do NOT influence readiness decisions.

NO AGENT IMPORTS.
"""

import logging
from collections import Counter
from typing import Dict


logger = logging.getLogger(__name__)


class SessionAnalytics:
    """Counters for CaptureSession observability."""

    __slots__ = (
        "frames_analyzed",
        "frames_invalid",
        "regions_invalid",
        "frames_discarded",
        "samples_evicted",
        "samples_expired",
        "ticks",
        "verdict_counts",
        "captures_requested",
        "capture_successes",
        "capture_failures",
        "stale_completions",
        "resets",
    )

    def __init__(self) -> None:
        self.frames_analyzed: int = 0
        self.frames_invalid: int = 0
        self.regions_invalid: int = 0
        self.frames_discarded: int = 0
        self.samples_evicted: int = 0
        self.samples_expired: int = 0
        self.ticks: int = 0
        self.verdict_counts: Counter = Counter()
        self.captures_requested: int = 0
        self.capture_successes: int = 0
        self.capture_failures: int = 0
        self.stale_completions: int = 0
        self.resets: int = 0

    @property
    def frames_skipped(self) -> int:
        """Frames skipped for an invalid frame or region."""
        return self.frames_invalid + self.regions_invalid

    def to_dict(self) -> Dict[str, object]:
        """Export counters as dict."""
        return {
            "frames_analyzed": self.frames_analyzed,
            "frames_skipped": self.frames_skipped,
            "frames_invalid": self.frames_invalid,
            "regions_invalid": self.regions_invalid,
            "frames_discarded": self.frames_discarded,
            "samples_evicted": self.samples_evicted,
            "samples_expired": self.samples_expired,
            "ticks": self.ticks,
            "verdict_counts": dict(self.verdict_counts),
            "captures_requested": self.captures_requested,
            "capture_successes": self.capture_successes,
            "capture_failures": self.capture_failures,
            "stale_completions": self.stale_completions,
            "resets": self.resets,
        }
