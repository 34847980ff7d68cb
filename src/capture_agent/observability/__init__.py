"""
Observability Module
====================

Session counters exposed through the /metrics endpoint.

Analytics are observability-only and MUST NOT influence readiness
decisions.
"""

from capture_agent.observability.analytics import SessionAnalytics

__all__ = [
    "SessionAnalytics",
]
