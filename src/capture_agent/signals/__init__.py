"""
Signals Module
==============

Temporal aggregation of per-frame metrics between evaluation ticks.
"""

from capture_agent.signals.readiness_window import ReadinessWindow, aggregate_metrics

__all__ = [
    "ReadinessWindow",
    "aggregate_metrics",
]
