#!/usr/bin/env python3
"""
Capture Session Simulation Script
=================================

Standalone script to exercise the capture pipeline without a camera.

This script:
    1. Synthesizes a scene that moves through lighting phases
       (too dark → glare → good light)
    2. Encodes each frame to PNG and decodes it back, like a bridge would
    3. Feeds frames to a CaptureSession at a fixed FPS
    4. Logs verdict changes and the final burst outcome

Usage:
    python scripts/simulate_session.py
    python scripts/simulate_session.py --burst-count 5 --pick-sharpest
    python scripts/simulate_session.py --phase-sec 3 --debounce-sec 1.5
"""

import argparse
import asyncio
import logging
import os
import sys
import time

import numpy as np

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from capture_agent.agent import CaptureSession, SessionConfig, create_readiness_graph
from capture_agent.capture import MockCaptureBackend
from capture_agent.models import CaptureOutcome, CaptureState, Verdict
from capture_agent.stream import Frame, FrameBuffer, decode_image_bytes, encode_frame_png


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
)
logger = logging.getLogger(__name__)


PHASES = ("dark", "glare", "good")


def synthesize_frame(phase: str, frame_id: int, rng: np.random.Generator) -> Frame:
    """
    Render a 320x240 card-on-table scene for a lighting phase.

    Args:
        phase: One of PHASES
        frame_id: Frame counter
        rng: Noise source

    Returns:
        Frame decoded from a PNG round trip
    """
    base = {"dark": 35, "glare": 100, "good": 120}[phase]
    pixels = np.full((240, 320), base, dtype=np.int16)

    # Card with printed text lines
    pixels[60:180, 60:260] = base + 40
    for row in range(80, 170, 12):
        pixels[row:row + 4, 80:240] = base - 30

    if phase == "glare":
        pixels[60:180, 70:250] = 255

    pixels += rng.integers(-4, 5, size=pixels.shape, dtype=np.int16)
    bgr = np.repeat(np.clip(pixels, 0, 255).astype(np.uint8)[:, :, None], 3, axis=2)

    raw = Frame(frame_id=frame_id, timestamp=time.time(), pixels=bgr)
    return decode_image_bytes(encode_frame_png(raw), frame_id=frame_id, timestamp=raw.timestamp)


async def run_simulation(
    fps: float,
    phase_sec: float,
    burst_count: int,
    debounce_sec: float,
    tick_sec: float,
    pick_sharpest: bool,
    timeout_sec: float,
) -> dict:
    """
    Run the simulation.

    Returns:
        Final summary dict
    """
    logger.info("=" * 60)
    logger.info("Capture Session Simulation")
    logger.info("=" * 60)
    logger.info(f"FPS: {fps}, phase length: {phase_sec}s")
    logger.info(f"Burst: {burst_count}, debounce: {debounce_sec}s, tick: {tick_sec}s")
    logger.info("=" * 60)

    graph = create_readiness_graph({
        "timing": {"debounce_sec": debounce_sec},
        "capture": {"burst_count": burst_count},
    })

    buffer = FrameBuffer()
    verdict_log = []
    outcomes = []

    def on_verdict(verdict: Verdict) -> None:
        verdict_log.append(verdict)
        logger.info(f"  Verdict → {verdict.value}")

    session = CaptureSession(
        graph=graph,
        backend=MockCaptureBackend(prefix="sim", delay_sec=0.1, frame_source=lambda: buffer.latest),
        config=SessionConfig(tick_interval_sec=tick_sec, pick_sharpest=pick_sharpest),
        on_verdict_changed=on_verdict,
        on_capture_complete=outcomes.append,
    )

    session_task = asyncio.create_task(session.run(buffer))
    rng = np.random.default_rng(7)

    start_time = time.time()
    frame_id = 0

    try:
        while session.state.capture_state != CaptureState.DONE:
            elapsed = time.time() - start_time
            if elapsed >= timeout_sec:
                logger.warning(f"Timeout ({timeout_sec}s) reached before capture")
                break

            phase = PHASES[min(int(elapsed // phase_sec), len(PHASES) - 1)]
            await buffer.put(synthesize_frame(phase, frame_id, rng))
            frame_id += 1
            await asyncio.sleep(1.0 / fps)

    except KeyboardInterrupt:
        logger.info("Simulation interrupted by user")
    finally:
        await session.close()
        try:
            await asyncio.wait_for(session_task, timeout=5.0)
        except asyncio.TimeoutError:
            session_task.cancel()

    total_time = time.time() - start_time
    analytics = session.analytics.to_dict()
    outcome: CaptureOutcome = outcomes[0] if outcomes else None

    logger.info("=" * 60)
    logger.info("FINAL SUMMARY")
    logger.info("=" * 60)
    logger.info(f"Total runtime: {total_time:.1f} seconds")
    logger.info(f"Frames produced: {frame_id}")
    logger.info(f"Frames analyzed: {analytics['frames_analyzed']}")
    logger.info(f"Buffer drops: {buffer.dropped_count}")
    logger.info(f"Verdicts: {' → '.join(v.value for v in verdict_log)}")
    if outcome:
        logger.info(f"Artifacts: {outcome.artifacts}")
        logger.info(f"Successes/failures: {outcome.successes}/{outcome.failures}")
        logger.info("✅ Capture completed")
    else:
        logger.error("❌ No capture completed")
    logger.info("=" * 60)

    return {
        "duration": total_time,
        "frames_produced": frame_id,
        "verdicts": [v.value for v in verdict_log],
        "analytics": analytics,
        "captured": outcome is not None,
    }


def main():
    parser = argparse.ArgumentParser(
        description="Simulate a capture session over synthetic lighting phases"
    )
    parser.add_argument("--fps", type=float, default=15.0, help="Frames per second (default: 15)")
    parser.add_argument(
        "--phase-sec",
        type=float,
        default=2.0,
        help="Seconds per lighting phase (default: 2)",
    )
    parser.add_argument("--burst-count", type=int, default=3, help="Photos per capture (default: 3)")
    parser.add_argument(
        "--debounce-sec",
        type=float,
        default=float(os.environ.get("CAPTURE_DEBOUNCE_SEC", 1.0)),
        help="Debounce window in seconds (default: 1)",
    )
    parser.add_argument("--tick-sec", type=float, default=0.5, help="Tick interval (default: 0.5)")
    parser.add_argument("--pick-sharpest", action="store_true", help="Keep only the sharpest photo")
    parser.add_argument("--timeout", type=float, default=30.0, help="Give up after N seconds")

    args = parser.parse_args()

    result = asyncio.run(run_simulation(
        fps=args.fps,
        phase_sec=args.phase_sec,
        burst_count=args.burst_count,
        debounce_sec=args.debounce_sec,
        tick_sec=args.tick_sec,
        pick_sharpest=args.pick_sharpest,
        timeout_sec=args.timeout,
    ))

    sys.exit(0 if result["captured"] else 1)


if __name__ == "__main__":
    main()
