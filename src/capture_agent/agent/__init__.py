"""
Agent Module
============

Deterministic capture-readiness state machine.

This module implements the core agent logic:
    - transitions.py: Verdict classification and readiness transition rules
    - graph.py: LangGraph workflow for one evaluation tick
    - session.py: Async session owning timers, bursts and reset

Key Design Decisions:
    - LangGraph is used for STRUCTURE, not LLM reasoning
    - All transitions are deterministic and inspectable
    - Debounce is gated by a timer generation, not frame counts
    - Completions are tagged with a session id; stale ones are discarded
"""

from capture_agent.agent.graph import ReadinessGraph, create_readiness_graph
from capture_agent.agent.session import CaptureSession, SessionConfig
from capture_agent.agent.transitions import (
    ReadinessPolicy,
    ReadinessThresholds,
    TransitionResult,
)

__all__ = [
    "CaptureSession",
    "SessionConfig",
    "ReadinessGraph",
    "create_readiness_graph",
    "ReadinessPolicy",
    "ReadinessThresholds",
    "TransitionResult",
]
