"""
Capture Module
==============

Photo-capture collaborator abstraction.

The session treats the camera as a pluggable black box: it asks for a
burst of N photos and consumes one completion per slot.

Components:
    - CaptureBackend: Protocol for capture collaborators
    - CaptureCompletion: Per-slot success/failure report
    - MockCaptureBackend: Deterministic mock for development and testing
"""

from capture_agent.capture.backend import (
    CaptureBackend,
    CaptureCompletion,
    MockCaptureBackend,
)

__all__ = [
    "CaptureBackend",
    "CaptureCompletion",
    "MockCaptureBackend",
]
