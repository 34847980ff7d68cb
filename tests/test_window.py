"""
Readiness Window Tests
======================

Tests for metrics buffering and aggregation between ticks.
"""

import pytest


class TestAggregateMetrics:
    """Tests for aggregate_metrics."""

    def test_empty_batch(self):
        """No samples yields an empty aggregate."""
        from capture_agent.signals import aggregate_metrics

        aggregate = aggregate_metrics([])

        assert aggregate.is_empty
        assert aggregate.sample_count == 0

    def test_means_and_max(self, make_metrics):
        """Brightness and glare are averaged; max glare is kept."""
        from capture_agent.signals import aggregate_metrics

        aggregate = aggregate_metrics([
            make_metrics(brightness=100.0, glare=10.0),
            make_metrics(brightness=120.0, glare=30.0),
            make_metrics(brightness=140.0, glare=5.0),
        ])

        assert aggregate.sample_count == 3
        assert aggregate.mean_brightness == pytest.approx(120.0)
        assert aggregate.mean_glare == pytest.approx(15.0)
        assert aggregate.max_glare == pytest.approx(30.0)


class TestReadinessWindow:
    """Tests for ReadinessWindow."""

    def test_drain_returns_arrival_order_and_empties(self, make_metrics):
        """Drain hands back every sample once."""
        from capture_agent.signals import ReadinessWindow

        window = ReadinessWindow()
        for i in range(3):
            window.append(make_metrics(brightness=float(100 + i)), arrived_at=float(i))

        samples = window.drain(now=3.0)

        assert [s.brightness for s in samples] == [100.0, 101.0, 102.0]
        assert len(window) == 0
        assert window.drain(now=4.0) == []

    def test_oldest_evicted_when_full(self, make_metrics):
        """Capacity bound evicts the oldest samples first."""
        from capture_agent.signals import ReadinessWindow

        window = ReadinessWindow(max_samples=2)
        for i in range(5):
            window.append(make_metrics(brightness=float(i)), arrived_at=float(i))

        samples = window.drain()

        assert [s.brightness for s in samples] == [3.0, 4.0]
        assert window.evicted_count == 3

    def test_expired_samples_dropped_at_drain(self, make_metrics):
        """Samples older than max_age_sec are not aggregated."""
        from capture_agent.signals import ReadinessWindow

        window = ReadinessWindow(max_age_sec=1.0)
        window.append(make_metrics(brightness=10.0), arrived_at=100.0)
        window.append(make_metrics(brightness=20.0), arrived_at=100.8)
        window.append(make_metrics(brightness=30.0), arrived_at=101.5)

        samples = window.drain(now=101.6)

        assert [s.brightness for s in samples] == [20.0, 30.0]
        assert window.expired_count == 1

    def test_clear(self, make_metrics):
        """Clear discards buffered samples."""
        from capture_agent.signals import ReadinessWindow

        window = ReadinessWindow()
        window.append(make_metrics(), arrived_at=0.0)
        window.append(make_metrics(), arrived_at=0.1)

        assert window.clear() == 2
        assert len(window) == 0

    def test_invalid_bounds(self):
        """Bounds must be positive."""
        from capture_agent.signals import ReadinessWindow

        with pytest.raises(ValueError):
            ReadinessWindow(max_samples=0)
        with pytest.raises(ValueError):
            ReadinessWindow(max_age_sec=0.0)
