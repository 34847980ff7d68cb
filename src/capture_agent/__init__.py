"""
DocCaptureAgent
===============

Frame-quality scoring and capture-readiness agent for document photos.

This package scores camera frames (brightness, glare, sharpness, contrast,
noise) inside the guide overlay, decides when lighting has stayed good
long enough to shoot, and drives a burst capture through a pluggable
capture backend.

Components:
    - quality: Per-frame metrics and one-shot image analysis
    - geometry: Guide overlay mapping from display to frame space
    - signals: Readiness window between evaluation ticks
    - agent: Readiness policy, LangGraph tick workflow, capture session
    - capture: Capture backend protocol and mock
    - stream: Frame decoding, buffering and WebSocket ingestion

Example:
    from capture_agent.quality import analyze_image

    result = analyze_image(open("card.jpg", "rb").read())
    print(result.metrics.brightness, result.metrics.glare_percentage)

    # The service is started via the FastAPI application
    # See main.py for entry point
"""

__version__ = "0.1.0"
__author__ = "DocCapture Project"

__all__ = [
    "__version__",
]
