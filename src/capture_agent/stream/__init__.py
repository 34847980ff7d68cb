"""
Stream Module
=============

Frame ingestion and buffering components.

This module provides the ingestion layer for the capture agent:
    - Frame: Typed frame data model (decoded pixels)
    - FrameBuffer: Async-safe latest-wins buffer (drops oldest on overflow)
    - FrameConsumer: WebSocket client with validation and reconnection
    - decode_image_bytes / decode_image_b64: Encoded image → Frame

Example:
    from capture_agent.stream import FrameBuffer, FrameConsumer

    buffer = FrameBuffer()
    consumer = FrameConsumer(url="ws://localhost:8765/ws/frames", buffer=buffer)

    task = asyncio.create_task(consumer.run())

    while True:
        frame = await buffer.get()
        await session.submit_frame(frame)
"""

from capture_agent.stream.frame import Frame, InvalidFrameError
from capture_agent.stream.buffer import FrameBuffer
from capture_agent.stream.consumer import FrameConsumer, FrameConsumerMetrics
from capture_agent.stream.image_decoder import (
    ImageDecodeError,
    decode_image_b64,
    decode_image_bytes,
    encode_frame_png,
)


__all__ = [
    "Frame",
    "InvalidFrameError",
    "FrameBuffer",
    "FrameConsumer",
    "FrameConsumerMetrics",
    "ImageDecodeError",
    "decode_image_b64",
    "decode_image_bytes",
    "encode_frame_png",
]
