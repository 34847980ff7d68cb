"""
Capture Session
===============

Asynchronous orchestration of one capture-readiness session.

This module ties the pieces together:
    - Frames are scored (guide region → metrics) and appended to the
      readiness window
    - Every tick drains the window and runs the evaluation graph
    - Entering OPTIMAL starts a debounce timer; leaving OPTIMAL cancels it
    - A fired timer moves the session to READY and requests a burst from
      the capture collaborator (CAPTURING)
    - Completions are counted until the burst is DONE
    - reset() starts a new session id; late completions tagged with an
      old id are discarded

Concurrency:
    Everything runs on one asyncio event loop. A single asyncio.Lock
    serializes window appends, ticks, debounce expiry, completion reports
    and reset, so a timer or a late completion can never race a verdict
    or a reset. Callbacks are dispatched after the lock is released.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Set

from capture_agent.agent.graph import ReadinessGraph
from capture_agent.agent.transitions import TransitionResult
from capture_agent.capture.backend import CaptureBackend, CaptureCompletion
from capture_agent.geometry.regions import InvalidRegionError, RegionMapper
from capture_agent.models.metrics import Metrics
from capture_agent.models.output import BurstProgress, CaptureOutcome, SessionStatus
from capture_agent.models.reason_codes import ReasonCode
from capture_agent.models.state import CaptureState, SessionState, Verdict
from capture_agent.observability.analytics import SessionAnalytics
from capture_agent.quality.metrics import (
    DEFAULT_GLARE_THRESHOLD,
    DEFAULT_MIN_GLARE_AREA,
    compute_metrics,
)
from capture_agent.quality.selection import SharpnessScope, pick_sharpest
from capture_agent.signals.readiness_window import ReadinessWindow
from capture_agent.stream.buffer import FrameBuffer
from capture_agent.stream.frame import Frame, InvalidFrameError


logger = logging.getLogger(__name__)


VerdictCallback = Callable[[Verdict], None]
OutcomeCallback = Callable[[CaptureOutcome], None]


@dataclass
class SessionConfig:
    """
    Session-level settings that are not readiness thresholds.

    Loaded from configuration file.
    """

    tick_interval_sec: float = 1.0

    # Metric parameters
    glare_threshold: int = DEFAULT_GLARE_THRESHOLD
    min_glare_area: int = DEFAULT_MIN_GLARE_AREA

    # Window bounds
    window_max_samples: int = 90
    window_max_age_sec: Optional[float] = None

    # Sharpest-of-N post-pass
    pick_sharpest: bool = False
    sharpness_scope: SharpnessScope = SharpnessScope.FRAME

    def __post_init__(self) -> None:
        """Validate invariants."""
        if self.tick_interval_sec <= 0:
            raise ValueError("tick_interval_sec must be positive")
        self.sharpness_scope = SharpnessScope(self.sharpness_scope)


class CaptureSession:
    """
    Capture-readiness session.

    Attributes:
        graph: Evaluation graph (policy + thresholds)
        backend: Capture collaborator
        config: Session settings
        mapper: Guide-region context
        buffer: Frame buffer the loop reads from
        analytics: Operational counters

    Example:
        session = CaptureSession(
            graph=ReadinessGraph(ReadinessThresholds(burst_count=3)),
            backend=MockCaptureBackend(),
            on_capture_complete=lambda outcome: print(outcome.artifacts),
        )

        task = asyncio.create_task(session.run(buffer))
        ...
        await session.close()
    """

    def __init__(
        self,
        graph: ReadinessGraph,
        backend: CaptureBackend,
        config: Optional[SessionConfig] = None,
        mapper: Optional[RegionMapper] = None,
        buffer: Optional[FrameBuffer] = None,
        clock: Callable[[], float] = time.monotonic,
        on_verdict_changed: Optional[VerdictCallback] = None,
        on_capture_complete: Optional[OutcomeCallback] = None,
    ) -> None:
        """
        Initialize capture session.

        Args:
            graph: Evaluation graph
            backend: Capture collaborator
            config: Session settings (defaults if None)
            mapper: Guide-region mapper (full frame if None)
            buffer: Frame buffer to clear on reset (run() also sets it)
            clock: Monotonic time source for ticks and state timestamps
            on_verdict_changed: Called with the new verdict when it changes
            on_capture_complete: Called with the outcome when a burst is DONE
        """
        self.graph = graph
        self.backend = backend
        self.config = config or SessionConfig()
        self.mapper = mapper or RegionMapper.full_frame()
        self.on_verdict_changed = on_verdict_changed
        self.on_capture_complete = on_capture_complete
        self.buffer = buffer
        self.analytics = SessionAnalytics()

        self._clock = clock
        self._lock = asyncio.Lock()
        self._window = ReadinessWindow(
            max_samples=self.config.window_max_samples,
            max_age_sec=self.config.window_max_age_sec,
        )
        self._state = SessionState(session_id=1, state_entered_at=clock())

        self._debounce_task: Optional[asyncio.Task] = None
        self._background: Set[asyncio.Task] = set()
        self._completions: List[CaptureCompletion] = []
        self._reported_slots: Set[int] = set()
        self._outcome: Optional[CaptureOutcome] = None
        self._running: bool = False

        logger.info(
            f"CaptureSession initialized: tick={self.config.tick_interval_sec}s, "
            f"roi={'full frame' if self.mapper.is_full_frame else 'guide rect'}, "
            f"pick_sharpest={self.config.pick_sharpest}"
        )

    # =========================================================================
    # Read-only accessors
    # =========================================================================

    @property
    def state(self) -> SessionState:
        """Current session state."""
        return self._state

    @property
    def outcome(self) -> Optional[CaptureOutcome]:
        """Outcome of the finished burst, if any."""
        return self._outcome

    @property
    def window_size(self) -> int:
        """Samples currently waiting for the next tick."""
        return len(self._window)

    @property
    def is_running(self) -> bool:
        """Whether the evaluation loop is active."""
        return self._running

    def current_verdict(self) -> Verdict:
        """Verdict computed at the last tick."""
        return self._state.verdict

    def status(self) -> SessionStatus:
        """Snapshot for the host UI."""
        state = self._state
        return SessionStatus(
            timestamp=time.time(),
            session_id=state.session_id,
            capture_state=state.capture_state,
            verdict=state.verdict,
            aggregate=state.last_aggregate,
            burst=BurstProgress(
                requested=state.burst_size,
                successes=state.successes,
                failures=state.failures,
            ),
            outcome=self._outcome,
        )

    def set_region(self, mapper: RegionMapper) -> None:
        """Replace the guide-region context (e.g. after an overlay relayout)."""
        self.mapper = mapper
        logger.info("Guide region updated")

    # =========================================================================
    # Frame intake
    # =========================================================================

    async def submit_frame(self, frame: Frame) -> Optional[Metrics]:
        """
        Score a frame and append its metrics to the window.

        Invalid frames and unmappable regions are skipped; the window is
        left unchanged.

        Args:
            frame: Decoded camera frame

        Returns:
            The appended Metrics, or None if the frame was skipped
        """
        try:
            if frame.is_empty:
                raise InvalidFrameError(f"Frame {frame.frame_id} has zero area")
            region = self.mapper.extract(frame)
            metrics = compute_metrics(
                region,
                glare_threshold=self.config.glare_threshold,
                min_glare_area=self.config.min_glare_area,
            )
        except InvalidFrameError as e:
            self.analytics.frames_invalid += 1
            logger.debug(f"Skipping frame: {e}")
            return None
        except InvalidRegionError as e:
            self.analytics.regions_invalid += 1
            logger.debug(f"Skipping frame {frame.frame_id}: {e}")
            return None

        async with self._lock:
            self._window.append(metrics, self._clock())
            self.analytics.frames_analyzed += 1
            self.analytics.samples_evicted = self._window.evicted_count

        return metrics

    # =========================================================================
    # Evaluation
    # =========================================================================

    async def tick(self) -> TransitionResult:
        """
        Drain the window and evaluate readiness.

        Returns:
            Transition result of the tick
        """
        notifications: List[Callable[[], None]] = []

        async with self._lock:
            now = self._clock()
            samples = self._window.drain(now)
            self.analytics.samples_expired = self._window.expired_count
            previous_verdict = self._state.verdict

            self._state, result = self.graph.process(self._state, samples, now)

            self.analytics.ticks += 1
            self.analytics.verdict_counts[result.verdict.value] += 1

            if result.reason_code == ReasonCode.OPTIMAL_DETECTED:
                self._start_debounce(self._state.session_id, self._state.debounce_generation)
            elif result.reason_code == ReasonCode.DEBOUNCE_CANCELLED:
                self._cancel_debounce()

            if result.verdict != previous_verdict:
                notifications.append(self._verdict_notification(result.verdict))

        self._dispatch(notifications)
        return result

    def _start_debounce(self, session_id: int, generation: int) -> None:
        self._cancel_debounce()
        self._debounce_task = self._spawn(
            self._debounce(session_id, generation),
            name=f"debounce-{session_id}-{generation}",
        )

    def _cancel_debounce(self) -> None:
        if self._debounce_task is not None and not self._debounce_task.done():
            self._debounce_task.cancel()
            logger.debug("Debounce timer cancelled")
        self._debounce_task = None

    async def _debounce(self, session_id: int, generation: int) -> None:
        """Debounce timer body: promote OPTIMAL → READY → CAPTURING."""
        await asyncio.sleep(self.graph.thresholds.debounce_sec)

        async with self._lock:
            if self._state.session_id != session_id:
                return

            self._debounce_task = None
            self._state, result = self.graph.policy.debounce_elapsed(
                self._state, generation, self._clock()
            )
            if result.new_state == CaptureState.READY:
                self._begin_capture()

    def _begin_capture(self) -> None:
        """READY → CAPTURING. Caller holds the lock."""
        self._state, _ = self.graph.policy.begin_capture(self._state, self._clock())
        self._completions = []
        self._reported_slots = set()
        self._outcome = None
        self.analytics.captures_requested += 1

        session_id = self._state.session_id
        self._spawn(
            self._run_capture(session_id, self._state.burst_size),
            name=f"capture-{session_id}",
        )

    # =========================================================================
    # Capture completions
    # =========================================================================

    async def _run_capture(self, session_id: int, count: int) -> None:
        """Drive the collaborator's completion stream into report_capture."""
        logger.info(f"Requesting burst of {count} (session {session_id})")
        reported: Set[int] = set()
        error: Optional[str] = None

        try:
            async for completion in self.backend.request_capture(count):
                reported.add(completion.slot_index)
                await self.report_capture(session_id, completion)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Capture collaborator failed (session {session_id}): {e}")
            error = f"collaborator error: {e}"

        # Every slot must report so the burst always reaches DONE
        for slot in range(count):
            if slot not in reported:
                await self.report_capture(
                    session_id,
                    CaptureCompletion.failure(slot, error or "no completion reported"),
                )

    async def report_capture(self, session_id: int, completion: CaptureCompletion) -> bool:
        """
        Record one burst completion.

        Push-based collaborators may call this directly.

        Args:
            session_id: Session id the burst was requested under
            completion: Slot report

        Returns:
            True if the completion was counted, False if it was discarded
            (stale session, not capturing, or duplicate slot)
        """
        notifications: List[Callable[[], None]] = []

        async with self._lock:
            if session_id != self._state.session_id:
                self.analytics.stale_completions += 1
                logger.debug(
                    f"Discarding stale {completion!r} "
                    f"(session {session_id}, current {self._state.session_id})"
                )
                return False

            if (
                self._state.capture_state != CaptureState.CAPTURING
                or completion.slot_index in self._reported_slots
                or completion.slot_index >= self._state.burst_size
            ):
                logger.warning(
                    f"Discarding unexpected {completion!r} in "
                    f"{self._state.capture_state.value}"
                )
                return False

            self._reported_slots.add(completion.slot_index)
            self._completions.append(completion)

            if completion.succeeded:
                self.analytics.capture_successes += 1
            else:
                self.analytics.capture_failures += 1
                logger.warning(f"Capture slot {completion.slot_index} failed: {completion.error}")

            self._state, result = self.graph.policy.record_completion(
                self._state, completion, self._clock()
            )

            if result.reason_code == ReasonCode.BURST_COMPLETE:
                self._outcome = self._build_outcome()
                notifications.append(self._outcome_notification(self._outcome))

        self._dispatch(notifications)
        return True

    def _build_outcome(self) -> CaptureOutcome:
        """Assemble the burst outcome. Caller holds the lock."""
        state = self._state
        artifacts = list(state.artifacts)
        selected: Optional[str] = None
        selected_sharpness: Optional[float] = None

        if self.config.pick_sharpest:
            best = pick_sharpest(
                self._completions,
                scope=self.config.sharpness_scope,
                mapper=self.mapper,
            )
            if best is not None:
                completion, selected_sharpness = best
                selected = completion.artifact_id
                artifacts = [selected]
                logger.info(
                    f"Sharpest of {state.successes}: {selected} "
                    f"(sharpness={selected_sharpness:.1f})"
                )

        # Captured frames are not retained past the outcome
        self._completions = []

        logger.info(
            f"Burst complete (session {state.session_id}): "
            f"{state.successes} ok, {state.failures} failed, artifacts={artifacts}"
        )

        return CaptureOutcome(
            session_id=state.session_id,
            requested=state.burst_size,
            successes=state.successes,
            failures=state.failures,
            artifacts=artifacts,
            selected_artifact=selected,
            selected_sharpness=selected_sharpness,
        )

    # =========================================================================
    # Reset / lifecycle
    # =========================================================================

    async def reset(self) -> SessionState:
        """
        Clear all captured state and return to ANALYZING.

        Cancels a pending debounce timer. Frames still waiting in the
        buffer belong to the old session and are discarded. A burst still
        in flight keeps running, but its completions carry the old session
        id and are discarded.

        Returns:
            The fresh session state
        """
        notifications: List[Callable[[], None]] = []

        async with self._lock:
            previous_verdict = self._state.verdict

            self._cancel_debounce()
            self._window.clear()
            if self.buffer is not None:
                self.analytics.frames_discarded += self.buffer.clear()
            self._completions = []
            self._reported_slots = set()
            self._outcome = None
            self._state, _ = self.graph.policy.reset(self._state, self._clock())
            self.analytics.resets += 1

            if previous_verdict != self._state.verdict:
                notifications.append(self._verdict_notification(self._state.verdict))

            state = self._state

        self._dispatch(notifications)
        return state

    async def run(self, buffer: FrameBuffer) -> None:
        """
        Evaluation loop: consume frames from the buffer and tick on schedule.

        Runs until stop() or close() is called.
        """
        self.buffer = buffer
        interval = self.config.tick_interval_sec
        self._running = True
        next_tick = self._clock() + interval

        logger.info("Capture evaluation loop started")

        while self._running:
            try:
                timeout = max(0.0, next_tick - self._clock())
                frame = await buffer.get(timeout=timeout)
                if not self._running:
                    break
                if frame is not None:
                    await self.submit_frame(frame)

                now = self._clock()
                if now >= next_tick:
                    await self.tick()
                    next_tick += interval
                    if next_tick <= now:
                        # Fell behind; do not burst through missed ticks
                        next_tick = now + interval

            except asyncio.CancelledError:
                logger.info("Capture evaluation loop cancelled")
                break
            except Exception as e:
                logger.error(f"Evaluation loop error: {e}")
                await asyncio.sleep(0.1)

        self._running = False
        logger.info("Capture evaluation loop stopped")

    def stop(self) -> None:
        """Signal the evaluation loop to exit."""
        self._running = False

    async def close(self) -> None:
        """Stop the loop and cancel the debounce timer and any capture task."""
        self.stop()
        tasks = list(self._background)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._debounce_task = None
        logger.info("CaptureSession closed")

    # =========================================================================
    # Helpers
    # =========================================================================

    def _spawn(self, coro, name: str) -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    def _verdict_notification(self, verdict: Verdict) -> Callable[[], None]:
        def notify() -> None:
            if self.on_verdict_changed is not None:
                self.on_verdict_changed(verdict)
        return notify

    def _outcome_notification(self, outcome: CaptureOutcome) -> Callable[[], None]:
        def notify() -> None:
            if self.on_capture_complete is not None:
                self.on_capture_complete(outcome)
        return notify

    def _dispatch(self, notifications: List[Callable[[], None]]) -> None:
        for notify in notifications:
            try:
                notify()
            except Exception as e:
                logger.error(f"Session callback failed: {e}")
