"""
DocCaptureAgent Main Application
================================

FastAPI entry point for the document capture-readiness agent.

Frames arrive by HTTP push (POST /frames) or, when enabled, from a camera
bridge WebSocket. The capture session scores each frame, evaluates
readiness once per tick, and requests a burst from the capture backend
once conditions have stayed OPTIMAL for the debounce window.

Endpoints:
    GET  /          - Service information
    GET  /health    - Liveness probe (is process alive?)
    GET  /ready     - Readiness probe (evaluation loop running?)
    GET  /metrics   - Session, buffer and stream counters
    GET  /status    - Current verdict, capture state and last outcome
    POST /frames    - Push one base64 frame
    POST /analyze   - One-shot quality analysis of a base64 image
    POST /region    - Report the guide overlay position
    POST /reset     - Start a new capture session
    WS   /ws/status - Real-time status stream
"""

import asyncio
import base64
import binascii
import logging
import os
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from capture_agent.config import RegionConfig, Settings, settings
from capture_agent.agent import CaptureSession, SessionConfig, create_readiness_graph
from capture_agent.capture import MockCaptureBackend
from capture_agent.geometry import (
    InvalidRegionError,
    RegionMapper,
    guide_rect_for_viewport,
    map_display_rect_to_frame,
)
from capture_agent.models import (
    AnalyzeRequest,
    AnalyzeResult,
    CaptureOutcome,
    CoordinateSpace,
    FrameMessage,
    Rect,
    RegionUpdate,
    Size,
    Verdict,
)
from capture_agent.quality import analyze_image
from capture_agent.stream import (
    FrameBuffer,
    FrameConsumer,
    ImageDecodeError,
    decode_image_b64,
)


logger = logging.getLogger(__name__)


# =============================================================================
# Global State
# =============================================================================

_shutdown_flag: bool = False

_frame_buffer: Optional[FrameBuffer] = None
_frame_consumer: Optional[FrameConsumer] = None
_consumer_task: Optional[asyncio.Task] = None

_session: Optional[CaptureSession] = None
_processing_task: Optional[asyncio.Task] = None

_startup_time: float = 0.0
_frames_pushed: int = 0
_push_decode_errors: int = 0


# =============================================================================
# Getters
# =============================================================================

def get_frame_buffer() -> Optional[FrameBuffer]:
    return _frame_buffer

def get_frame_consumer() -> Optional[FrameConsumer]:
    return _frame_consumer

def get_session() -> Optional[CaptureSession]:
    return _session


# =============================================================================
# Component Factories
# =============================================================================

def create_region_mapper(region: RegionConfig) -> RegionMapper:
    """Build the guide-region mapper from the region config section."""
    if region.mode == "full_frame":
        return RegionMapper.full_frame()

    viewport = Size(width=region.viewport_width, height=region.viewport_height)

    if region.mode == "guide":
        guide = guide_rect_for_viewport(
            viewport,
            aspect_ratio=region.aspect_ratio,
            fill_ratio=region.fill_ratio,
        )
    else:
        guide = Rect(
            x=region.x,
            y=region.y,
            width=region.width,
            height=region.height,
            space=CoordinateSpace.DISPLAY,
        )

    # Rejects guides that extend beyond the viewport
    map_display_rect_to_frame(guide, viewport, viewport)
    return RegionMapper(guide, viewport)


def create_capture_session(
    config: Settings,
    buffer: FrameBuffer,
) -> CaptureSession:
    """Wire the readiness graph, mock capture backend and session."""
    graph = create_readiness_graph(config.model_dump())

    backend = MockCaptureBackend(
        delay_sec=config.capture.mock_delay_sec,
        frame_source=lambda: buffer.latest,
    )

    session_config = SessionConfig(
        tick_interval_sec=config.timing.tick_interval_sec,
        glare_threshold=config.quality.glare_threshold,
        min_glare_area=config.quality.min_glare_area,
        window_max_samples=config.timing.window_max_samples,
        window_max_age_sec=config.timing.window_max_age_sec,
        pick_sharpest=config.capture.pick_sharpest,
        sharpness_scope=config.capture.sharpness_scope,
    )

    return CaptureSession(
        graph=graph,
        backend=backend,
        config=session_config,
        mapper=create_region_mapper(config.region),
        buffer=buffer,
        on_verdict_changed=_on_verdict_changed,
        on_capture_complete=_on_capture_complete,
    )


def _on_verdict_changed(verdict: Verdict) -> None:
    logger.info(f"Verdict changed: {verdict.value}")


def _on_capture_complete(outcome: CaptureOutcome) -> None:
    logger.info(
        f"Capture complete (session {outcome.session_id}): "
        f"{outcome.successes}/{outcome.requested} ok, artifacts={outcome.artifacts}"
    )


# =============================================================================
# Lifespan Management
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager with graceful shutdown."""
    global _frame_buffer, _frame_consumer, _consumer_task
    global _session, _processing_task, _startup_time, _shutdown_flag

    _shutdown_flag = False
    _startup_time = time.time()
    logger.info(f"Starting {settings.agent.name} {settings.agent.version}")

    port = int(os.environ.get("PORT", settings.server.port))
    logger.info(f"Configured port: {port}")

    _frame_buffer = FrameBuffer(maxsize=settings.stream.max_queue_size)

    if settings.stream.enabled:
        logger.info(f"Stream URL: {settings.stream.url}")
        _frame_consumer = FrameConsumer(
            url=settings.stream.url,
            buffer=_frame_buffer,
            reconnect_backoff_ms=settings.stream.reconnect_backoff_ms,
            max_reconnect_attempts=settings.stream.max_reconnect_attempts,
        )
        _consumer_task = asyncio.create_task(
            _frame_consumer.run(),
            name="frame_consumer"
        )
    else:
        logger.info("Stream consumer disabled; accepting frames via POST /frames")

    _session = create_capture_session(settings, _frame_buffer)
    _processing_task = asyncio.create_task(
        _session.run(_frame_buffer),
        name="capture_session"
    )

    logger.info("All components started")

    yield

    logger.info("Shutting down gracefully...")
    _shutdown_flag = True

    if _session:
        await _session.close()

    if _processing_task:
        _processing_task.cancel()
        try:
            await _processing_task
        except asyncio.CancelledError:
            pass

    if _frame_consumer:
        await _frame_consumer.stop()

    if _consumer_task:
        try:
            await asyncio.wait_for(_consumer_task, timeout=5.0)
        except asyncio.TimeoutError:
            _consumer_task.cancel()
            try:
                await _consumer_task
            except asyncio.CancelledError:
                pass

    logger.info("Shutdown complete")


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="DocCaptureAgent",
    description="Frame-quality scoring and capture-readiness agent",
    version=settings.agent.version,
    lifespan=lifespan,
)


# =============================================================================
# HTTP Endpoints
# =============================================================================

@app.get("/")
async def root() -> JSONResponse:
    """Service information endpoint."""
    return JSONResponse({
        "service": "DocCaptureAgent",
        "version": settings.agent.version,
        "name": settings.agent.name,
        "status": "running",
        "stream_enabled": settings.stream.enabled,
        "burst_count": settings.capture.burst_count,
    })


@app.get("/health")
async def health() -> JSONResponse:
    """
    Liveness probe - is the process alive?

    Always returns 200 if the service is running.
    """
    return JSONResponse({
        "status": "healthy",
        "uptime_seconds": round(time.time() - _startup_time, 1),
    })


@app.get("/ready")
async def ready() -> JSONResponse:
    """
    Readiness probe - is the evaluation loop running?

    Returns 503 if not ready.
    """
    session = get_session()
    consumer = get_frame_consumer()

    session_running = session is not None and session.is_running
    stream_connected = consumer.connected if consumer else False

    body = {
        "session_running": session_running,
        "stream_enabled": settings.stream.enabled,
        "stream_connected": stream_connected,
    }

    if session_running:
        return JSONResponse({"status": "ready", **body})
    return JSONResponse({"status": "not_ready", **body}, status_code=503)


@app.get("/metrics")
async def metrics() -> JSONResponse:
    """Detailed metrics for observability."""
    session = get_session()
    buffer = get_frame_buffer()
    consumer = get_frame_consumer()

    stream_metrics = {}
    if consumer:
        stream_metrics = {
            "stream_connected": consumer.connected,
            **consumer.metrics.to_dict(),
        }

    return JSONResponse({
        "uptime_seconds": round(time.time() - _startup_time, 1),
        "frames_pushed": _frames_pushed,
        "push_decode_errors": _push_decode_errors,
        "buffer": buffer.metrics() if buffer else {},
        "session": session.analytics.to_dict() if session else {},
        "stream": stream_metrics,
    })


@app.get("/status")
async def status() -> JSONResponse:
    """Current session status."""
    session = get_session()
    if session is None:
        return JSONResponse(
            {"error": "Session not initialized"},
            status_code=503,
        )
    return JSONResponse(session.status().model_dump(mode="json"))


@app.post("/frames")
async def push_frame(message: FrameMessage) -> JSONResponse:
    """
    Push one frame into the evaluation buffer.

    Returns 422 if the image cannot be decoded.
    """
    global _frames_pushed, _push_decode_errors

    buffer = get_frame_buffer()
    if buffer is None:
        raise HTTPException(status_code=503, detail="Frame buffer not initialized")

    try:
        frame = decode_image_b64(
            message.image,
            frame_id=message.frame_id,
            timestamp=message.timestamp,
        )
    except ImageDecodeError as e:
        _push_decode_errors += 1
        logger.warning(f"Rejected pushed frame {message.frame_id}: {e}")
        raise HTTPException(status_code=422, detail=str(e))

    accepted = await buffer.put(frame)
    _frames_pushed += 1

    return JSONResponse({
        "accepted": True,
        "frame_id": frame.frame_id,
        "replaced_pending": not accepted,
    })


@app.post("/analyze", response_model=AnalyzeResult)
async def analyze(request: AnalyzeRequest) -> AnalyzeResult:
    """
    One-shot quality analysis.

    Never fails on bad image data; the result carries ok=False instead.
    """
    try:
        data = base64.b64decode(request.image, validate=True)
    except (binascii.Error, ValueError) as e:
        return AnalyzeResult(ok=False, error=f"decode_failure: invalid base64: {e}")

    return analyze_image(
        data,
        glare_threshold=settings.quality.glare_threshold,
        min_glare_area=settings.quality.min_glare_area,
    )


@app.post("/region")
async def update_region(update: RegionUpdate) -> JSONResponse:
    """
    Report where the guide overlay was laid out.

    Returns 422 if the guide is not a DISPLAY rect inside the viewport.
    """
    session = get_session()
    if session is None:
        raise HTTPException(status_code=503, detail="Session not initialized")

    try:
        map_display_rect_to_frame(update.guide, update.viewport, update.viewport)
    except InvalidRegionError as e:
        raise HTTPException(status_code=422, detail=str(e))

    session.set_region(RegionMapper(update.guide, update.viewport))
    return JSONResponse({"updated": True})


@app.post("/reset")
async def reset() -> JSONResponse:
    """Discard the current capture and start a new session."""
    session = get_session()
    if session is None:
        raise HTTPException(status_code=503, detail="Session not initialized")

    state = await session.reset()
    return JSONResponse({
        "session_id": state.session_id,
        "capture_state": state.capture_state.value,
    })


# =============================================================================
# WebSocket Endpoints
# =============================================================================

@app.websocket("/ws/status")
async def status_stream(websocket: WebSocket) -> None:
    """WebSocket endpoint for real-time session status."""
    await websocket.accept()
    logger.info("Client connected to /ws/status")

    try:
        while not _shutdown_flag:
            session = get_session()
            if session:
                await websocket.send_json(session.status().model_dump(mode="json"))

            # Wait out the push interval, but notice a client disconnect
            try:
                message = await asyncio.wait_for(websocket.receive(), timeout=1.0)
            except asyncio.TimeoutError:
                continue
            if message["type"] == "websocket.disconnect":
                break

    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.warning(f"WebSocket error: {e}")
    finally:
        logger.info("Client disconnected from /ws/status")


# =============================================================================
# Main Entry Point
# =============================================================================

def run() -> None:
    """Console entry point."""
    import uvicorn

    port = int(os.environ.get("PORT", settings.server.port))

    uvicorn.run(
        "capture_agent.main:app",
        host=settings.server.host,
        port=port,
        reload=False,
    )


if __name__ == "__main__":
    run()
