"""
Stream Tests
============

Tests for the latest-wins frame buffer and WebSocket message handling.
"""

import asyncio
import base64
import json


class TestFrameBuffer:
    """Tests for FrameBuffer."""

    def test_latest_frame_wins(self, make_frame):
        """A single-slot buffer keeps only the newest frame."""
        from capture_agent.stream import FrameBuffer

        async def scenario():
            buffer = FrameBuffer()
            first = await buffer.put(make_frame(frame_id=1))
            second = await buffer.put(make_frame(frame_id=2))
            frame = await buffer.get(timeout=0.1)
            return buffer, first, second, frame

        buffer, first, second, frame = asyncio.run(scenario())

        assert first is True
        assert second is False
        assert frame.frame_id == 2
        assert buffer.dropped_count == 1
        assert buffer.latest.frame_id == 2

    def test_get_times_out(self):
        """An empty buffer returns None after the timeout."""
        from capture_agent.stream import FrameBuffer

        async def scenario():
            return await FrameBuffer().get(timeout=0.01)

        assert asyncio.run(scenario()) is None

    def test_metrics(self, make_frame):
        """Buffer metrics count puts and drops."""
        from capture_agent.stream import FrameBuffer

        buffer = FrameBuffer(maxsize=2)
        for i in range(3):
            buffer.put_nowait(make_frame(frame_id=i))

        metrics = buffer.metrics()

        assert metrics["size"] == 2
        assert metrics["received"] == 3
        assert metrics["dropped_count"] == 1

    def test_clear_discards_pending_and_latest(self, make_frame):
        """clear() empties the slot and forgets the latest frame."""
        from capture_agent.stream import FrameBuffer

        async def scenario():
            buffer = FrameBuffer(maxsize=2)
            await buffer.put(make_frame(frame_id=1))
            await buffer.put(make_frame(frame_id=2))
            discarded = buffer.clear()
            frame = await buffer.get(timeout=0.01)
            return buffer, discarded, frame

        buffer, discarded, frame = asyncio.run(scenario())

        assert discarded == 2
        assert frame is None
        assert buffer.latest is None
        assert buffer.cleared_count == 2
        assert buffer.metrics()["cleared_count"] == 2


class TestFrameConsumerMessages:
    """Tests for FrameConsumer.handle_message."""

    def _consumer(self):
        from capture_agent.stream import FrameBuffer, FrameConsumer

        return FrameConsumer(url="ws://localhost:1/ws/frames", buffer=FrameBuffer())

    def test_valid_message_decoded(self, sample_frame_message):
        """A valid message becomes a decoded Frame."""
        consumer = self._consumer()

        frame = consumer.handle_message(json.dumps(sample_frame_message))

        assert frame.frame_id == 100
        assert frame.width == 64
        assert consumer.metrics.frames_received == 1
        assert consumer.metrics.last_frame_id == 100

    def test_malformed_json_counted(self):
        """Unparseable messages are dropped and counted."""
        consumer = self._consumer()

        assert consumer.handle_message("{not json") is None
        assert consumer.metrics.parse_errors == 1

    def test_missing_fields_counted(self):
        """Messages missing required fields are dropped."""
        consumer = self._consumer()

        assert consumer.handle_message(json.dumps({"frame_id": 1})) is None
        assert consumer.metrics.parse_errors == 1

    def test_undecodable_image_counted(self, sample_frame_message):
        """Valid JSON with a broken image is a decode error."""
        consumer = self._consumer()
        sample_frame_message["image"] = base64.b64encode(b"garbage").decode("ascii")

        assert consumer.handle_message(json.dumps(sample_frame_message)) is None
        assert consumer.metrics.decode_errors == 1
        assert consumer.metrics.frames_received == 0

    def test_ordering_warnings(self, sample_frame_message):
        """Out-of-order ids and timestamps are flagged but accepted."""
        consumer = self._consumer()

        consumer.handle_message(json.dumps(sample_frame_message))
        sample_frame_message["frame_id"] = 99
        sample_frame_message["timestamp"] -= 1.0
        frame = consumer.handle_message(json.dumps(sample_frame_message))

        assert frame is not None
        assert consumer.metrics.validation_warnings == 2
