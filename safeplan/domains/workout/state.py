from __future__ import annotations

from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field

from langchain_core.documents import Document

from safeplan.core.state import BaseGraphState, BaseResult, generate_request_id
from safeplan.domains.workout.schemas import (
    HistorySession,
    LibraryExercise,
    SafetyReport,
    UserPreferences,
    UserSafetyContext,
    WorkoutConstraints,
    WorkoutPlan,
)


class WorkoutGraphState(BaseGraphState, total=False):
    """Generation pipeline state"""
    preferences: UserPreferences
    context: UserSafetyContext
    constraints: WorkoutConstraints
    eligible: List[LibraryExercise]
    documents: List[Document]
    history: List[HistorySession]
    candidate: Optional[WorkoutPlan]
    candidate_report: Optional[SafetyReport]
    generation_error: Optional[Dict[str, Any]]
    fallback_reason: Optional[str]
    final_plan: Optional[WorkoutPlan]
    final_report: Optional[SafetyReport]


@dataclass
class WorkoutGenerationResult(BaseResult):
    """Generation pipeline result"""
    plan: Optional[WorkoutPlan] = None
    report: Optional[SafetyReport] = None
    constraints: Optional[WorkoutConstraints] = None
    context: Optional[UserSafetyContext] = None
    fallback_reason: Optional[str] = None
    eligible_count: int = 0


def init_workout_state(raw_input: Dict[str, Any]) -> WorkoutGraphState:
    """Initialize generation graph state"""
    return WorkoutGraphState(
        request_id=generate_request_id(),
        raw_input=raw_input,
        user_id=raw_input.get("user_id"),
        eligible=[],
        documents=[],
        history=[],
        candidate=None,
        candidate_report=None,
        generation_error=None,
        fallback_reason=None,
        final_plan=None,
        final_report=None,
        warnings=[],
        audit={"events": []},
    )


def to_workout_result(state: WorkoutGraphState) -> WorkoutGenerationResult:
    """Convert graph state to result"""
    return WorkoutGenerationResult(
        request_id=state["request_id"],
        plan=state.get("final_plan"),
        report=state.get("final_report"),
        constraints=state.get("constraints"),
        context=state.get("context"),
        fallback_reason=state.get("fallback_reason"),
        eligible_count=len(state.get("eligible") or []),
        warnings=state.get("warnings", []),
        audit=state.get("audit", {"events": []}),
    )
