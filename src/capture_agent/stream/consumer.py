"""
Frame Consumer
===============

WebSocket client for consuming frames from a camera bridge.

This module provides the FrameConsumer class which:
    - Connects to the bridge's frame WebSocket
    - Receives and validates FrameMessage payloads
    - Checks frame_id / timestamp ordering
    - Decodes the base64 image into a Frame
    - Handles reconnection with backoff
    - Pushes decoded frames into a FrameBuffer

Design Rules:
    - Logs ordering warnings but continues processing
    - Drops (and counts) messages that fail to parse or decode
    - Reconnects automatically on disconnect
    - Exposes metrics for health monitoring
"""

import asyncio
import logging
from typing import Optional

from pydantic import ValidationError
from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import (
    ConnectionClosed,
    ConnectionClosedError,
    ConnectionClosedOK,
)

from capture_agent.models.input import FrameMessage
from capture_agent.stream.buffer import FrameBuffer
from capture_agent.stream.frame import Frame
from capture_agent.stream.image_decoder import ImageDecodeError, decode_image_b64


logger = logging.getLogger(__name__)


class FrameConsumerMetrics:
    """Metrics for FrameConsumer observability."""

    __slots__ = (
        "frames_received",
        "reconnect_count",
        "last_frame_id",
        "last_timestamp",
        "validation_warnings",
        "parse_errors",
        "decode_errors",
    )

    def __init__(self) -> None:
        self.frames_received: int = 0
        self.reconnect_count: int = 0
        self.last_frame_id: int = -1
        self.last_timestamp: float = 0.0
        self.validation_warnings: int = 0
        self.parse_errors: int = 0
        self.decode_errors: int = 0

    def to_dict(self) -> dict:
        """Export metrics as dict."""
        return {
            "frames_received": self.frames_received,
            "reconnect_count": self.reconnect_count,
            "last_frame_id": self.last_frame_id,
            "last_timestamp": self.last_timestamp,
            "validation_warnings": self.validation_warnings,
            "parse_errors": self.parse_errors,
            "decode_errors": self.decode_errors,
        }


class FrameConsumer:
    """
    WebSocket consumer for camera bridge frames.

    Attributes:
        url: WebSocket URL to connect to
        buffer: FrameBuffer to push frames into
        connected: Whether currently connected
        metrics: Operational metrics

    Example:
        buffer = FrameBuffer()
        consumer = FrameConsumer(
            url="ws://localhost:8765/ws/frames",
            buffer=buffer,
            reconnect_backoff_ms=500,
        )

        task = asyncio.create_task(consumer.run())

        # Later, stop gracefully
        await consumer.stop()
        await task
    """

    def __init__(
        self,
        url: str,
        buffer: FrameBuffer,
        reconnect_backoff_ms: int = 500,
        max_reconnect_attempts: int = 0,
    ) -> None:
        """
        Initialize frame consumer.

        Args:
            url: WebSocket URL of the camera bridge
            buffer: FrameBuffer to push decoded frames into
            reconnect_backoff_ms: Backoff between reconnect attempts
            max_reconnect_attempts: Max attempts (0 = unlimited)
        """
        self.url = url
        self.buffer = buffer
        self.reconnect_backoff_ms = reconnect_backoff_ms
        self.max_reconnect_attempts = max_reconnect_attempts

        self._websocket: Optional[ClientConnection] = None
        self._connected: bool = False
        self._running: bool = False
        self._stop_event: asyncio.Event = asyncio.Event()

        self.metrics = FrameConsumerMetrics()

    @property
    def connected(self) -> bool:
        """Whether currently connected to the camera bridge."""
        return self._connected

    async def run(self) -> None:
        """
        Start consuming frames.

        Runs indefinitely, reconnecting on disconnect.
        Call stop() to terminate gracefully.
        """
        self._running = True
        self._stop_event.clear()

        logger.info(f"FrameConsumer starting, connecting to {self.url}")

        while self._running:
            try:
                await self._connect_and_consume()
            except Exception as e:
                if not self._running:
                    break

                logger.error(f"Connection error: {e}")
                self._connected = False

                if (
                    self.max_reconnect_attempts > 0
                    and self.metrics.reconnect_count >= self.max_reconnect_attempts
                ):
                    logger.error(
                        f"Max reconnect attempts ({self.max_reconnect_attempts}) exceeded"
                    )
                    break

                self.metrics.reconnect_count += 1
                backoff_sec = self.reconnect_backoff_ms / 1000.0
                logger.info(
                    f"Reconnecting in {backoff_sec:.1f}s "
                    f"(attempt {self.metrics.reconnect_count})"
                )

                try:
                    await asyncio.wait_for(
                        self._stop_event.wait(),
                        timeout=backoff_sec
                    )
                    break
                except asyncio.TimeoutError:
                    pass

        logger.info("FrameConsumer stopped")

    async def stop(self) -> None:
        """
        Stop consuming gracefully.

        Signals the run loop to exit and closes the connection.
        """
        logger.info("FrameConsumer stopping...")
        self._running = False
        self._stop_event.set()

        if self._websocket:
            try:
                await self._websocket.close()
            except ConnectionClosed as e:
                logger.debug(f"Connection already closed: {e}")

        self._connected = False

    async def _connect_and_consume(self) -> None:
        """Connect to WebSocket and consume messages until disconnect."""
        async with connect(
            self.url,
            ping_interval=20,
            ping_timeout=10,
            close_timeout=5,
            max_size=None,
        ) as ws:
            self._websocket = ws
            self._connected = True
            logger.info(f"Connected to camera bridge: {self.url}")

            try:
                async for message in ws:
                    if not self._running:
                        break

                    frame = self.handle_message(message)
                    if frame is not None:
                        await self.buffer.put(frame)

            except ConnectionClosedOK:
                logger.info("Connection closed normally")
            except ConnectionClosedError as e:
                logger.warning(f"Connection closed with error: {e}")
                raise
            finally:
                self._connected = False
                self._websocket = None

    def handle_message(self, raw) -> Optional[Frame]:
        """
        Parse, validate and decode one raw WebSocket message.

        Ordering violations are logged and counted but do not reject the
        frame.

        Args:
            raw: Raw JSON text (or bytes) from the WebSocket

        Returns:
            Decoded Frame, or None if the message was dropped
        """
        try:
            message = FrameMessage.model_validate_json(raw)
        except ValidationError as e:
            self.metrics.parse_errors += 1
            logger.error(f"Invalid frame message: {e.error_count()} error(s)")
            return None

        self._check_ordering(message)

        try:
            frame = decode_image_b64(
                message.image,
                frame_id=message.frame_id,
                timestamp=message.timestamp,
            )
        except ImageDecodeError as e:
            self.metrics.decode_errors += 1
            logger.warning(f"Dropping frame {message.frame_id}: {e}")
            return None

        self.metrics.frames_received += 1
        self.metrics.last_frame_id = message.frame_id
        self.metrics.last_timestamp = message.timestamp
        return frame

    def _check_ordering(self, message: FrameMessage) -> None:
        if self.metrics.last_frame_id >= 0:
            expected_id = self.metrics.last_frame_id + 1
            if message.frame_id != expected_id:
                self.metrics.validation_warnings += 1
                if message.frame_id < expected_id:
                    logger.warning(
                        f"Frame ID went backwards: got {message.frame_id}, "
                        f"expected {expected_id}"
                    )
                else:
                    logger.debug(
                        f"Frame ID gap: got {message.frame_id}, expected {expected_id} "
                        f"(gap of {message.frame_id - expected_id} frames)"
                    )

        if self.metrics.last_timestamp > 0 and message.timestamp < self.metrics.last_timestamp:
            self.metrics.validation_warnings += 1
            logger.warning(
                f"Timestamp went backwards: got {message.timestamp:.3f}, "
                f"previous was {self.metrics.last_timestamp:.3f}"
            )
