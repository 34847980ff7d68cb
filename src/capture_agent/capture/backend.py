"""
Capture Backend
===============

Abstraction over the photo-capture collaborator.

This module provides the CaptureBackend protocol and MockCaptureBackend
implementation. The real camera lives outside this service; it is
reached through an object that accepts a burst request and streams back
one completion per slot.

Design Rules:
    - One CaptureCompletion per requested slot, success or failure
    - Failures are data (error string), not exceptions
    - Completions may carry the captured Frame for the sharpest-of-N pass
    - Mock provides deterministic output for development and tests
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import AsyncIterator, Callable, Collection, Optional, Protocol

from capture_agent.stream.frame import Frame


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CaptureCompletion:
    """
    Report of one burst slot.

    Attributes:
        slot_index: Zero-based position within the burst
        artifact_id: Identifier of the stored photo on success
        error: Failure description on failure
        frame: Captured pixels, when the collaborator provides them
    """

    slot_index: int
    artifact_id: Optional[str] = None
    error: Optional[str] = None
    frame: Optional[Frame] = None

    def __post_init__(self) -> None:
        """Validate invariants."""
        if self.slot_index < 0:
            raise ValueError("slot_index must be non-negative")
        if self.artifact_id is None and self.error is None:
            raise ValueError("completion needs an artifact_id or an error")

    @property
    def succeeded(self) -> bool:
        """Whether the slot produced an artifact."""
        return self.artifact_id is not None and self.error is None

    @classmethod
    def failure(cls, slot_index: int, error: str) -> "CaptureCompletion":
        """Build a failed completion."""
        return cls(slot_index=slot_index, error=error)

    def __repr__(self) -> str:
        status = self.artifact_id if self.succeeded else f"error={self.error!r}"
        return f"CaptureCompletion(slot={self.slot_index}, {status})"


class CaptureBackend(Protocol):
    """
    Protocol for capture collaborators.

    All implementations must provide `request_capture`, returning an
    async iterator that yields exactly one CaptureCompletion per slot.
    """

    def request_capture(self, count: int) -> AsyncIterator[CaptureCompletion]:
        """
        Trigger a burst of `count` captures.

        Args:
            count: Number of photos to take

        Returns:
            Async iterator of completions, one per slot
        """
        ...


class MockCaptureBackend:
    """
    Deterministic mock capture collaborator.

    Produces artifact ids of the form `{prefix}-{burst}-{slot}`. Slots
    listed in `fail_slots` report a failure instead. When a frame source
    is given, each successful completion carries the frame it returns
    (e.g. the latest buffered camera frame).

    Attributes:
        prefix: Artifact id prefix
        fail_slots: Slot indices that fail
        delay_sec: Simulated time per capture
        bursts_requested: Number of bursts requested so far
    """

    def __init__(
        self,
        prefix: str = "capture",
        fail_slots: Collection[int] = (),
        delay_sec: float = 0.0,
        frame_source: Optional[Callable[[], Optional[Frame]]] = None,
    ) -> None:
        """
        Initialize mock capture backend.

        Args:
            prefix: Artifact id prefix
            fail_slots: Slot indices that report a failure
            delay_sec: Seconds to wait before each completion
            frame_source: Callable returning the frame to attach, if any
        """
        if delay_sec < 0:
            raise ValueError("delay_sec must be non-negative")

        self.prefix = prefix
        self.fail_slots = frozenset(fail_slots)
        self.delay_sec = delay_sec
        self.frame_source = frame_source
        self.bursts_requested: int = 0

        logger.info(
            f"MockCaptureBackend initialized: prefix={prefix}, "
            f"fail_slots={sorted(self.fail_slots)}, delay={delay_sec}s"
        )

    async def request_capture(self, count: int) -> AsyncIterator[CaptureCompletion]:
        """Yield one completion per slot, honoring fail_slots."""
        if count < 1:
            raise ValueError("count must be >= 1")

        self.bursts_requested += 1
        burst = self.bursts_requested

        for slot in range(count):
            if self.delay_sec > 0:
                await asyncio.sleep(self.delay_sec)

            if slot in self.fail_slots:
                yield CaptureCompletion.failure(slot, "simulated capture failure")
                continue

            frame = self.frame_source() if self.frame_source else None
            yield CaptureCompletion(
                slot_index=slot,
                artifact_id=f"{self.prefix}-{burst}-{slot}",
                frame=frame,
            )
