"""
Readiness Window
================

Bounded, time-ordered store of recent per-frame metrics.

This window:
    - Receives one Metrics sample per analyzed frame
    - Is drained wholesale on every evaluation tick (no per-sample lookup)
    - Enforces a maximum sample count (oldest evicted on overflow)
    - Drops samples older than max_age_sec when drained (by arrival time)

Aggregation:
    mean_brightness = mean(brightness_i)
    mean_glare      = mean(glare_percentage_i)
    max_glare       = max(glare_percentage_i)

The window itself is not synchronized; the capture session guards it
with its lock.
"""

import logging
from collections import deque
from typing import Deque, List, Optional, Sequence, Tuple

from capture_agent.models.metrics import Metrics
from capture_agent.models.state import WindowAggregate


logger = logging.getLogger(__name__)


def aggregate_metrics(samples: Sequence[Metrics]) -> WindowAggregate:
    """
    Aggregate a batch of metrics samples.

    Args:
        samples: Metrics drained from a window

    Returns:
        WindowAggregate (sample_count=0 for an empty batch)
    """
    if not samples:
        return WindowAggregate()

    count = len(samples)
    return WindowAggregate(
        sample_count=count,
        mean_brightness=sum(s.brightness for s in samples) / count,
        mean_glare=sum(s.glare_percentage for s in samples) / count,
        max_glare=max(s.glare_percentage for s in samples),
    )


class ReadinessWindow:
    """
    Sliding window of metrics between evaluation ticks.

    Attributes:
        max_samples: Maximum samples retained (oldest evicted first)
        max_age_sec: Maximum sample age at drain time (None = unbounded)

    Example:
        window = ReadinessWindow(max_samples=90, max_age_sec=2.0)

        window.append(metrics, now)
        ...
        samples = window.drain(now)
    """

    def __init__(
        self,
        max_samples: int = 90,
        max_age_sec: Optional[float] = None,
    ) -> None:
        """
        Initialize readiness window.

        Args:
            max_samples: Maximum samples kept between ticks. Must be >= 1.
            max_age_sec: Samples older than this at drain time are dropped
        """
        if max_samples < 1:
            raise ValueError("max_samples must be >= 1")
        if max_age_sec is not None and max_age_sec <= 0:
            raise ValueError("max_age_sec must be positive")

        self.max_samples = max_samples
        self.max_age_sec = max_age_sec

        self._samples: Deque[Tuple[float, Metrics]] = deque(maxlen=max_samples)
        self._evicted_count: int = 0
        self._expired_count: int = 0

    def __len__(self) -> int:
        return len(self._samples)

    @property
    def evicted_count(self) -> int:
        """Samples evicted because the window was full."""
        return self._evicted_count

    @property
    def expired_count(self) -> int:
        """Samples dropped for exceeding max_age_sec."""
        return self._expired_count

    def append(self, sample: Metrics, arrived_at: float) -> None:
        """
        Append a sample, evicting the oldest if the window is full.

        Args:
            sample: Metrics of one analyzed frame
            arrived_at: Session-clock time the sample was produced
        """
        if len(self._samples) == self.max_samples:
            self._evicted_count += 1
        self._samples.append((arrived_at, sample))

    def drain(self, now: Optional[float] = None) -> List[Metrics]:
        """
        Remove and return every sample.

        Args:
            now: Current timestamp, used for age eviction

        Returns:
            Samples in arrival order, excluding expired ones
        """
        entries = list(self._samples)
        self._samples.clear()

        if self.max_age_sec is not None and now is not None:
            cutoff = now - self.max_age_sec
            fresh = [e for e in entries if e[0] >= cutoff]
            expired = len(entries) - len(fresh)
            if expired:
                self._expired_count += expired
                logger.debug(f"Dropped {expired} expired samples at drain")
            entries = fresh

        return [sample for _, sample in entries]

    def clear(self) -> int:
        """
        Discard every sample.

        Returns:
            Number of samples cleared.
        """
        cleared = len(self._samples)
        self._samples.clear()
        return cleared
