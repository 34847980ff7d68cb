"""
Readiness Policy Tests
======================

Tests for verdict classification and capture state transitions.
"""

import pytest


def _aggregate(brightness=120.0, mean_glare=0.0, max_glare=None, count=10):
    from capture_agent.models import WindowAggregate

    return WindowAggregate(
        sample_count=count,
        mean_brightness=brightness,
        mean_glare=mean_glare,
        max_glare=mean_glare if max_glare is None else max_glare,
    )


def _optimal_state(policy):
    """Drive a fresh session into OPTIMAL."""
    from capture_agent.models import SessionState

    state, _ = policy.evaluate(SessionState(), _aggregate(), current_time=1.0)
    return state


def _capturing_state(burst_count):
    """Drive a fresh session into CAPTURING for a burst."""
    from capture_agent.agent.transitions import ReadinessPolicy, ReadinessThresholds

    policy = ReadinessPolicy(ReadinessThresholds(burst_count=burst_count))
    state = _optimal_state(policy)
    state, _ = policy.debounce_elapsed(state, state.debounce_generation, current_time=3.0)
    state, _ = policy.begin_capture(state, current_time=3.0)
    return policy, state


class TestThresholds:
    """Tests for ReadinessThresholds."""

    def test_defaults(self):
        """Verify default thresholds are set."""
        from capture_agent.agent.transitions import ReadinessThresholds

        thresholds = ReadinessThresholds()

        assert thresholds.brightness_low == 81.0
        assert thresholds.brightness_high == 155.0
        assert thresholds.glare_high == 20.0
        assert thresholds.debounce_sec == 2.0
        assert thresholds.burst_count == 1

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"brightness_low": 200.0},
            {"glare_statistic": "median"},
            {"debounce_sec": -1.0},
            {"burst_count": 0},
        ],
    )
    def test_invalid_thresholds(self, kwargs):
        """Inconsistent thresholds are rejected."""
        from capture_agent.agent.transitions import ReadinessThresholds

        with pytest.raises(ValueError):
            ReadinessThresholds(**kwargs)


class TestClassify:
    """Tests for verdict classification."""

    @pytest.mark.parametrize(
        "brightness, glare, expected",
        [
            (80.9, 0.0, "TOO_DARK"),
            (81.0, 0.0, "OPTIMAL"),
            (155.0, 0.0, "OPTIMAL"),
            (155.1, 0.0, "TOO_BRIGHT"),
            (120.0, 20.0, "OPTIMAL"),
            (120.0, 20.1, "GLARE_DETECTED"),
            (20.0, 90.0, "TOO_DARK"),
        ],
    )
    def test_boundaries(self, brightness, glare, expected):
        """Thresholds are strict; brightness is checked before glare."""
        from capture_agent.agent.transitions import ReadinessPolicy, ReadinessThresholds

        policy = ReadinessPolicy(ReadinessThresholds())

        assert policy.classify(_aggregate(brightness, glare)).value == expected

    def test_no_samples_is_analyzing(self):
        """An empty window keeps the verdict at ANALYZING."""
        from capture_agent.agent.transitions import ReadinessPolicy, ReadinessThresholds
        from capture_agent.models import Verdict

        policy = ReadinessPolicy(ReadinessThresholds())

        assert policy.classify(None) == Verdict.ANALYZING
        assert policy.classify(_aggregate(count=0)) == Verdict.ANALYZING

    def test_max_glare_statistic(self):
        """With glare_statistic=max a single glary frame is enough."""
        from capture_agent.agent.transitions import ReadinessPolicy, ReadinessThresholds
        from capture_agent.models import Verdict

        aggregate = _aggregate(mean_glare=5.0, max_glare=30.0)

        mean_policy = ReadinessPolicy(ReadinessThresholds(glare_statistic="mean"))
        max_policy = ReadinessPolicy(ReadinessThresholds(glare_statistic="max"))

        assert mean_policy.classify(aggregate) == Verdict.OPTIMAL
        assert max_policy.classify(aggregate) == Verdict.GLARE_DETECTED


class TestEvaluate:
    """Tests for per-tick evaluation."""

    def test_optimal_enters_debounce(self):
        """ANALYZING → OPTIMAL bumps the debounce generation."""
        from capture_agent.agent.transitions import ReadinessPolicy, ReadinessThresholds
        from capture_agent.models import CaptureState, ReasonCode, SessionState

        policy = ReadinessPolicy(ReadinessThresholds())
        state, result = policy.evaluate(SessionState(), _aggregate(), current_time=5.0)

        assert result.new_state == CaptureState.OPTIMAL
        assert result.reason_code == ReasonCode.OPTIMAL_DETECTED
        assert state.debounce_generation == 1
        assert state.state_entered_at == 5.0

    def test_same_aggregate_is_idempotent(self):
        """Repeating an OPTIMAL window neither restarts nor advances debounce."""
        from capture_agent.agent.transitions import ReadinessPolicy, ReadinessThresholds
        from capture_agent.models import CaptureState, ReasonCode

        policy = ReadinessPolicy(ReadinessThresholds())
        state = _optimal_state(policy)

        again, result = policy.evaluate(state, _aggregate(), current_time=2.0)

        assert again.capture_state == CaptureState.OPTIMAL
        assert again.debounce_generation == state.debounce_generation
        assert again.state_entered_at == state.state_entered_at
        assert again.verdict == state.verdict
        assert result.reason_code == ReasonCode.DEBOUNCE_PENDING

    def test_non_optimal_cancels_debounce(self):
        """OPTIMAL → ANALYZING when conditions degrade."""
        from capture_agent.agent.transitions import ReadinessPolicy, ReadinessThresholds
        from capture_agent.models import CaptureState, ReasonCode, Verdict

        policy = ReadinessPolicy(ReadinessThresholds())
        state = _optimal_state(policy)

        state, result = policy.evaluate(state, _aggregate(brightness=20.0), current_time=1.5)

        assert state.capture_state == CaptureState.ANALYZING
        assert state.verdict == Verdict.TOO_DARK
        assert result.reason_code == ReasonCode.DEBOUNCE_CANCELLED

    def test_input_state_not_mutated(self):
        """Evaluation returns a copy and leaves the input untouched."""
        from capture_agent.agent.transitions import ReadinessPolicy, ReadinessThresholds
        from capture_agent.models import CaptureState, SessionState

        policy = ReadinessPolicy(ReadinessThresholds())
        original = SessionState()

        policy.evaluate(original, _aggregate(), current_time=1.0)

        assert original.capture_state == CaptureState.ANALYZING
        assert original.total_ticks == 0

    def test_capturing_ignores_verdicts(self):
        """Verdict changes during a burst never leave CAPTURING."""
        from capture_agent.models import CaptureState, ReasonCode, Verdict

        policy, state = _capturing_state(burst_count=2)

        state, result = policy.evaluate(state, _aggregate(brightness=250.0), current_time=4.0)

        assert state.capture_state == CaptureState.CAPTURING
        assert state.verdict == Verdict.TOO_BRIGHT
        assert result.reason_code == ReasonCode.CAPTURE_IN_PROGRESS


class TestDebounce:
    """Tests for debounce expiry."""

    def test_matching_generation_promotes_to_ready(self):
        """A timer for the live OPTIMAL window promotes to READY."""
        from capture_agent.agent.transitions import ReadinessPolicy, ReadinessThresholds
        from capture_agent.models import CaptureState, ReasonCode

        policy = ReadinessPolicy(ReadinessThresholds())
        state = _optimal_state(policy)

        state, result = policy.debounce_elapsed(state, state.debounce_generation, current_time=3.0)

        assert state.capture_state == CaptureState.READY
        assert result.reason_code == ReasonCode.DEBOUNCE_ELAPSED

    def test_cancelled_timer_is_stale(self):
        """A timer that fires after cancellation changes nothing."""
        from capture_agent.agent.transitions import ReadinessPolicy, ReadinessThresholds
        from capture_agent.models import CaptureState, ReasonCode

        policy = ReadinessPolicy(ReadinessThresholds())
        state = _optimal_state(policy)
        generation = state.debounce_generation
        state, _ = policy.evaluate(state, _aggregate(brightness=20.0), current_time=1.5)

        after, result = policy.debounce_elapsed(state, generation, current_time=3.0)

        assert after.capture_state == CaptureState.ANALYZING
        assert result.reason_code == ReasonCode.DEBOUNCE_STALE

    def test_old_generation_cannot_promote_new_window(self):
        """Re-entering OPTIMAL invalidates the earlier timer."""
        from capture_agent.agent.transitions import ReadinessPolicy, ReadinessThresholds
        from capture_agent.models import CaptureState

        policy = ReadinessPolicy(ReadinessThresholds())
        state = _optimal_state(policy)
        first_generation = state.debounce_generation
        state, _ = policy.evaluate(state, _aggregate(brightness=20.0), current_time=1.5)
        state, _ = policy.evaluate(state, _aggregate(), current_time=2.0)

        stale, _ = policy.debounce_elapsed(state, first_generation, current_time=3.0)
        fresh, _ = policy.debounce_elapsed(state, state.debounce_generation, current_time=4.0)

        assert stale.capture_state == CaptureState.OPTIMAL
        assert fresh.capture_state == CaptureState.READY


class TestBurst:
    """Tests for burst completion counting."""

    def test_begin_capture_requires_ready(self):
        """Capture cannot start outside READY."""
        from capture_agent.agent.transitions import ReadinessPolicy, ReadinessThresholds
        from capture_agent.models import SessionState

        policy = ReadinessPolicy(ReadinessThresholds())

        with pytest.raises(ValueError):
            policy.begin_capture(SessionState())

    def test_burst_of_five_with_two_failures(self):
        """DONE exactly at the 5th completion with 3 artifacts."""
        from capture_agent.capture import CaptureCompletion
        from capture_agent.models import CaptureState, ReasonCode

        policy, state = _capturing_state(burst_count=5)
        assert state.burst_size == 5

        completions = [
            CaptureCompletion(slot_index=0, artifact_id="a0"),
            CaptureCompletion.failure(1, "camera busy"),
            CaptureCompletion(slot_index=2, artifact_id="a2"),
            CaptureCompletion.failure(3, "camera busy"),
            CaptureCompletion(slot_index=4, artifact_id="a4"),
        ]

        for completion in completions[:4]:
            state, result = policy.record_completion(state, completion, current_time=4.0)
            assert state.capture_state == CaptureState.CAPTURING
            assert result.reason_code == ReasonCode.CAPTURE_PROGRESS

        state, result = policy.record_completion(state, completions[4], current_time=5.0)

        assert state.capture_state == CaptureState.DONE
        assert result.reason_code == ReasonCode.BURST_COMPLETE
        assert state.successes == 3
        assert state.failures == 2
        assert state.artifacts == ["a0", "a2", "a4"]

    def test_all_failures_still_done(self):
        """A burst where every slot fails completes with no artifacts."""
        from capture_agent.capture import CaptureCompletion
        from capture_agent.models import CaptureState

        policy, state = _capturing_state(burst_count=2)

        for slot in range(2):
            state, _ = policy.record_completion(
                state, CaptureCompletion.failure(slot, "io error"), current_time=4.0
            )

        assert state.capture_state == CaptureState.DONE
        assert state.artifacts == []

    def test_completion_outside_capturing_ignored(self):
        """Completions are only counted while CAPTURING."""
        from capture_agent.agent.transitions import ReadinessPolicy, ReadinessThresholds
        from capture_agent.capture import CaptureCompletion
        from capture_agent.models import SessionState

        policy = ReadinessPolicy(ReadinessThresholds())
        state = SessionState()

        after, result = policy.record_completion(
            state, CaptureCompletion(slot_index=0, artifact_id="x")
        )

        assert after == state
        assert not result.transition_occurred

    def test_completion_requires_artifact_or_error(self):
        """A completion must report an artifact or an error."""
        from capture_agent.capture import CaptureCompletion

        with pytest.raises(ValueError):
            CaptureCompletion(slot_index=0)


class TestReset:
    """Tests for session reset."""

    def test_reset_clears_and_bumps_session(self):
        """Reset returns to ANALYZING under a new session id."""
        from capture_agent.capture import CaptureCompletion
        from capture_agent.models import CaptureState, ReasonCode, Verdict

        policy, state = _capturing_state(burst_count=1)
        state, _ = policy.record_completion(
            state, CaptureCompletion(slot_index=0, artifact_id="a0"), current_time=4.0
        )
        generation = state.debounce_generation

        state, result = policy.reset(state, current_time=10.0)

        assert state.session_id == 2
        assert state.capture_state == CaptureState.ANALYZING
        assert state.verdict == Verdict.ANALYZING
        assert state.artifacts == []
        assert state.debounce_generation == generation
        assert result.reason_code == ReasonCode.SESSION_RESET


class TestSessionStateImmutability:
    """Tests for the frozen session state model."""

    def test_assignment_rejected(self):
        """Fields cannot be reassigned in place."""
        from pydantic import ValidationError

        from capture_agent.models import CaptureState, SessionState

        state = SessionState()

        with pytest.raises(ValidationError):
            state.capture_state = CaptureState.DONE

    def test_transition_returns_new_instance(self):
        """Transitions leave the input state untouched."""
        from capture_agent.agent.transitions import ReadinessPolicy, ReadinessThresholds
        from capture_agent.models import CaptureState, SessionState

        policy = ReadinessPolicy(ReadinessThresholds())
        before = SessionState()

        after, _ = policy.evaluate(before, _aggregate(), current_time=1.0)

        assert after is not before
        assert before.capture_state == CaptureState.ANALYZING
        assert after.capture_state == CaptureState.OPTIMAL
