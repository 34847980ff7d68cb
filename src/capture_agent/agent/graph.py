"""
Evaluation Graph Definition
===========================

LangGraph workflow for one readiness evaluation tick.

LangGraph is used for CONTROL FLOW only, not LLM reasoning.

Graph Structure:
    START → aggregate_window → evaluate_readiness → END

    aggregate_window:
        Reduces the drained metrics samples to a WindowAggregate.
    evaluate_readiness:
        Applies the ReadinessPolicy to the aggregate and the current
        SessionState, producing the next SessionState and a result.

Design Philosophy:
    - Deterministic transitions
    - No LLM calls
    - The graph holds no session state between ticks; the caller owns
      SessionState and passes it in on every invocation
"""

import logging
import time
from typing import Any, Dict, List, Optional, Tuple, TypedDict

from langgraph.graph import StateGraph, END

from capture_agent.agent.transitions import (
    ReadinessPolicy,
    ReadinessThresholds,
    TransitionResult,
)
from capture_agent.models.metrics import Metrics
from capture_agent.models.state import SessionState, WindowAggregate
from capture_agent.signals.readiness_window import aggregate_metrics


logger = logging.getLogger(__name__)


class EvaluationGraphState(TypedDict):
    """
    State passed through the evaluation graph.

    Attributes:
        session_state: Session state before the tick (replaced by the node)
        samples: Metrics drained from the readiness window
        aggregate: Window aggregate computed by the first node
        result: Transition result produced by the policy
        timestamp: Tick timestamp
    """
    session_state: SessionState
    samples: List[Metrics]
    aggregate: Optional[WindowAggregate]
    result: Optional[TransitionResult]
    timestamp: float


class ReadinessGraph:
    """
    LangGraph-based evaluator for capture readiness.

    Each tick:
    - Aggregates the drained window
    - Classifies it into a Verdict
    - Applies the readiness transition rules
    """

    def __init__(
        self,
        thresholds: Optional[ReadinessThresholds] = None,
        log_every_n_ticks: int = 10,
    ) -> None:
        """
        Initialize the evaluation graph.

        Args:
            thresholds: Readiness thresholds (uses defaults if None)
            log_every_n_ticks: Log a summary every N ticks
        """
        self.thresholds = thresholds or ReadinessThresholds()
        self.policy = ReadinessPolicy(self.thresholds)
        self.log_every_n_ticks = log_every_n_ticks

        self._graph = self._build_graph()

        logger.info("ReadinessGraph initialized")

    def _build_graph(self):
        """Build the LangGraph workflow."""
        workflow = StateGraph(EvaluationGraphState)

        workflow.add_node("aggregate_window", self._aggregate_window_node)
        workflow.add_node("evaluate_readiness", self._evaluate_readiness_node)

        workflow.set_entry_point("aggregate_window")
        workflow.add_edge("aggregate_window", "evaluate_readiness")
        workflow.add_edge("evaluate_readiness", END)

        return workflow.compile()

    def _aggregate_window_node(self, state: EvaluationGraphState) -> Dict[str, Any]:
        """Reduce drained samples to a WindowAggregate."""
        return {"aggregate": aggregate_metrics(state.get("samples") or [])}

    def _evaluate_readiness_node(self, state: EvaluationGraphState) -> Dict[str, Any]:
        """
        Apply the readiness policy.

        This is the core decision node. It:
        1. Classifies the aggregate into a Verdict
        2. Applies the transition rules
        3. Emits the next SessionState
        """
        session_state = state["session_state"]
        aggregate = state.get("aggregate")
        current_time = state.get("timestamp", time.monotonic())

        new_session_state, result = self.policy.evaluate(
            session_state, aggregate, current_time
        )

        if new_session_state.total_ticks % self.log_every_n_ticks == 0:
            summary = (
                f"brightness={aggregate.mean_brightness:.1f}, "
                f"glare={aggregate.mean_glare:.2f}%/{aggregate.max_glare:.2f}%, "
                f"samples={aggregate.sample_count}"
                if aggregate is not None else "no aggregate"
            )
            logger.info(
                f"Readiness [tick {new_session_state.total_ticks}]: "
                f"state={result.new_state.value}, "
                f"verdict={result.verdict.value}, {summary}"
            )

        return {
            "session_state": new_session_state,
            "result": result,
        }

    def process(
        self,
        session_state: SessionState,
        samples: List[Metrics],
        timestamp: Optional[float] = None,
    ) -> Tuple[SessionState, TransitionResult]:
        """
        Evaluate one tick.

        This is the main entry point for tick-by-tick processing.

        Args:
            session_state: Current session state
            samples: Metrics drained from the readiness window
            timestamp: Tick timestamp (defaults to now)

        Returns:
            Tuple of (next_session_state, transition_result)
        """
        if timestamp is None:
            timestamp = time.monotonic()

        output = self._graph.invoke({
            "session_state": session_state,
            "samples": list(samples),
            "aggregate": None,
            "result": None,
            "timestamp": timestamp,
        })

        return output["session_state"], output["result"]


def create_readiness_graph(config: Dict[str, Any]) -> ReadinessGraph:
    """
    Create the evaluation graph from a configuration mapping.

    Args:
        config: Mapping with optional "thresholds", "timing" and "capture"
            sections, shaped like config.yaml

    Returns:
        Configured ReadinessGraph
    """
    thresholds_config = config.get("thresholds", {})
    timing_config = config.get("timing", {})
    capture_config = config.get("capture", {})

    thresholds = ReadinessThresholds(
        brightness_low=thresholds_config.get("brightness_low", 81.0),
        brightness_high=thresholds_config.get("brightness_high", 155.0),
        glare_high=thresholds_config.get("glare_high", 20.0),
        glare_statistic=thresholds_config.get("glare_statistic", "mean"),
        debounce_sec=timing_config.get("debounce_sec", 2.0),
        burst_count=capture_config.get("burst_count", 1),
    )

    return ReadinessGraph(thresholds=thresholds)
