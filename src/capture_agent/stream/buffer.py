"""
Frame Buffer
=============

Latest-wins hand-off between frame producers and the capture session.

Producers (the WebSocket consumer, POST /frames) run at camera rate; the
session scores one frame at a time. The buffer therefore never holds a
backlog: with the default single slot a new frame replaces the one that
has not been scored yet.

Design Rules:
    - Bounded (default one slot); overflow drops the oldest pending frame
    - Remembers the latest frame for the capture backend
    - clear() empties it when a session is reset
    - Does NOT process or modify frames
"""

import asyncio
import logging
from typing import Optional

from capture_agent.stream.frame import Frame


logger = logging.getLogger(__name__)


class FrameBuffer:
    """
    Bounded latest-wins frame slot.

    Attributes:
        maxsize: Number of pending frames kept
        dropped_count: Frames replaced before they were scored
        cleared_count: Frames discarded by clear()

    Example:
        buffer = FrameBuffer()

        # Camera side
        await buffer.put(frame)

        # Session side
        frame = await buffer.get(timeout=0.5)
    """

    def __init__(self, maxsize: int = 1) -> None:
        if maxsize < 1:
            raise ValueError("maxsize must be >= 1")

        self._maxsize = maxsize
        self._pending: asyncio.Queue[Frame] = asyncio.Queue(maxsize=maxsize)
        self._latest: Optional[Frame] = None
        self._received: int = 0
        self._dropped: int = 0
        self._cleared: int = 0

    @property
    def maxsize(self) -> int:
        return self._maxsize

    @property
    def size(self) -> int:
        """Frames waiting to be scored."""
        return self._pending.qsize()

    @property
    def dropped_count(self) -> int:
        return self._dropped

    @property
    def cleared_count(self) -> int:
        return self._cleared

    @property
    def latest(self) -> Optional[Frame]:
        """Newest frame received since the last clear(), scored or not."""
        return self._latest

    def put_nowait(self, frame: Frame) -> bool:
        """
        Offer a frame, replacing the oldest pending one when full.

        Returns:
            False if a pending frame was dropped to make room
        """
        self._received += 1
        self._latest = frame

        replaced = self._pending.full()
        if replaced:
            stale = self._pending.get_nowait()
            self._dropped += 1
            logger.debug(
                f"Frame {stale.frame_id} replaced by {frame.frame_id} "
                f"before scoring ({self._dropped} dropped)"
            )

        self._pending.put_nowait(frame)
        return not replaced

    async def put(self, frame: Frame) -> bool:
        """Coroutine form of put_nowait for producer tasks."""
        return self.put_nowait(frame)

    async def get(self, timeout: Optional[float] = None) -> Optional[Frame]:
        """
        Wait for the next pending frame.

        Args:
            timeout: Seconds to wait; None waits indefinitely

        Returns:
            The frame, or None when the timeout expires first
        """
        if timeout is None:
            return await self._pending.get()
        try:
            return await asyncio.wait_for(self._pending.get(), timeout=timeout)
        except asyncio.TimeoutError:
            return None

    def clear(self) -> int:
        """
        Discard pending frames and forget the latest one.

        Called when a session is reset so a frame from the previous session is
        neither scored nor attached to a capture.

        Returns:
            Number of pending frames discarded
        """
        discarded = 0
        while not self._pending.empty():
            self._pending.get_nowait()
            discarded += 1

        self._latest = None
        self._cleared += discarded
        if discarded:
            logger.debug(f"Discarded {discarded} pending frame(s)")
        return discarded

    def metrics(self) -> dict:
        """Counters for GET /metrics."""
        return {
            "size": self.size,
            "maxsize": self._maxsize,
            "received": self._received,
            "dropped_count": self._dropped,
            "cleared_count": self._cleared,
        }
