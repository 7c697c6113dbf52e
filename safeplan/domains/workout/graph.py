from __future__ import annotations

from typing import Any, Dict

from langgraph.graph import START, END, StateGraph
from loguru import logger

from safeplan.core.audit import append_event, best_effort_append
from safeplan.core.execution import GraphExecutor
from safeplan.domains.workout.errors import SafetyEngineError
from safeplan.domains.workout.nodes import WorkoutGenerationNodes
from safeplan.domains.workout.state import (
    WorkoutGenerationResult,
    WorkoutGraphState,
    init_workout_state,
    to_workout_result,
)
from safeplan.domains.workout.stores import WorkoutServices


def build_generation_graph(nodes: WorkoutGenerationNodes):
    """Build the generation graph (LangGraph StateGraph)."""
    builder = StateGraph(WorkoutGraphState)

    builder.add_node("load_context", nodes.node_context)
    builder.add_node("normalize", nodes.node_normalize)
    builder.add_node("retrieval", nodes.node_retrieval)
    builder.add_node("load_history", nodes.node_history)
    builder.add_node("generate", nodes.node_generate)
    builder.add_node("validate", nodes.node_validate)
    builder.add_node("fallback", nodes.node_fallback)
    builder.add_node("finalize", nodes.node_finalize)

    builder.add_edge(START, "load_context")
    builder.add_edge("load_context", "normalize")
    builder.add_edge("normalize", "retrieval")
    builder.add_edge("retrieval", "load_history")
    builder.add_edge("load_history", "generate")
    builder.add_edge("generate", "validate")

    # Unsafe or missing candidate never reaches finalize directly
    builder.add_conditional_edges(
        "validate",
        nodes.route_after_validate,
        {
            "finalize": "finalize",
            "fallback": "fallback",
        },
    )
    builder.add_edge("fallback", "finalize")
    builder.add_edge("finalize", END)

    return builder.compile()


class GenerationPipeline:
    """Generation entry point: one compiled graph per set of collaborators."""

    def __init__(self, services: WorkoutServices) -> None:
        self.services = services
        self._graph = None

    @property
    def graph(self):
        if self._graph is None:
            self._graph = build_generation_graph(WorkoutGenerationNodes(self.services))
        return self._graph

    def run(self, raw_input: Dict[str, Any]) -> WorkoutGenerationResult:
        init_state = init_workout_state(raw_input)
        init_state["audit"] = append_event(
            init_state.get("audit", {"events": []}),
            "pipeline_start",
            {"user_id": raw_input.get("user_id")},
        )

        try:
            return GraphExecutor.execute(self.graph, init_state, to_workout_result)
        except SafetyEngineError as e:
            logger.info(f"[PIPELINE] request {init_state['request_id']} failed: {e.code} {e.message}")
            best_effort_append(self.services.audit_log, {
                "kind": "generation",
                "request_id": init_state["request_id"],
                "user_id": raw_input.get("user_id"),
                "method": None,
                "success": False,
                "error_code": e.code,
                "error_message": e.message,
            })
            raise


def run_workout_generation_pipeline(raw_input: Dict[str, Any], services: WorkoutServices) -> WorkoutGenerationResult:
    """Main entry point for workout generation."""
    return GenerationPipeline(services).run(raw_input)
