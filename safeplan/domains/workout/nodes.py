from __future__ import annotations

from typing import Any, Dict

from loguru import logger
from pydantic import ValidationError

from safeplan.core.audit import append_event, best_effort_append
from safeplan.domains.workout.errors import ConstraintValidationError, GenerationError, SafetyEngineError
from safeplan.domains.workout.schemas import UserPreferences
from safeplan.domains.workout.state import WorkoutGraphState
from safeplan.domains.workout.stores import InMemoryExerciseLibrary, WorkoutServices
from safeplan.domains.workout.services.constraints import constraints_summary, normalize
from safeplan.domains.workout.services.context import load_recent_sessions, load_user_context, preferences_for
from safeplan.domains.workout.services.fallback import generate_fallback
from safeplan.domains.workout.services.formatting import plan_summary
from safeplan.domains.workout.services.generation import generate_candidate
from safeplan.domains.workout.services.library import eligible_to_documents, get_eligible
from safeplan.domains.workout.services.safety import validate_workout_safety


class WorkoutGenerationNodes:
    """Graph nodes bound to one set of collaborators."""

    def __init__(self, services: WorkoutServices) -> None:
        self.services = services

    @property
    def envelope(self):
        return self.services.envelope

    def node_context(self, state: WorkoutGraphState) -> Dict[str, Any]:
        raw = state["raw_input"]
        try:
            prefs = UserPreferences.model_validate(raw.get("preferences") or {})
        except ValidationError as e:
            raise ConstraintValidationError(
                "Invalid preferences",
                {"fields": sorted({".".join(str(p) for p in err.get("loc", ())) for err in e.errors()})},
            ) from e

        context = load_user_context(self.services.profiles, state.get("user_id"), prefs)
        prefs = preferences_for(prefs, context)

        audit = append_event(state["audit"], "context_done", {
            "experience_level": context.experience_level,
            "injury_count": len(context.injury_history),
            "medical_count": len(context.medical_conditions),
        })
        return {"preferences": prefs, "context": context, "audit": audit}

    def node_normalize(self, state: WorkoutGraphState) -> Dict[str, Any]:
        constraints = normalize(state["raw_input"].get("constraints") or {}, state["preferences"], self.envelope)
        audit = append_event(state["audit"], "normalize_done", {"constraints": constraints_summary(constraints)})
        return {"constraints": constraints, "audit": audit}

    def node_retrieval(self, state: WorkoutGraphState) -> Dict[str, Any]:
        eligible = get_eligible(
            state["constraints"],
            self.services.library,
            self.envelope,
            avoid_exercises=state["preferences"].avoid_exercises,
        )
        documents = eligible_to_documents(eligible)

        logger.info(f"[PIPELINE] eligible_sample_ids={[ex.id for ex in eligible[:10]]}")

        audit = append_event(state["audit"], "retrieval_done", {"eligible_count": len(eligible)})
        return {"eligible": eligible, "documents": documents, "audit": audit}

    def node_history(self, state: WorkoutGraphState) -> Dict[str, Any]:
        history = load_recent_sessions(self.services.history, state.get("user_id"))

        audit = append_event(state["audit"], "history_done", {"session_count": len(history)})
        return {"history": history, "audit": audit}

    def node_generate(self, state: WorkoutGraphState) -> Dict[str, Any]:
        llm = self.services.llm
        if llm is None:
            audit = append_event(state["audit"], "generate_skipped", {"reason": "no_generator"})
            return {"candidate": None, "generation_error": {"error": "NO_GENERATOR"}, "audit": audit}

        try:
            candidate = generate_candidate(
                llm=llm,
                constraints=state["constraints"],
                preferences=state["preferences"],
                eligible=state["eligible"],
                history=state.get("history") or [],
                context=state["context"],
                envelope=self.envelope,
                documents=state.get("documents"),
            )
        except GenerationError as e:
            audit = append_event(state["audit"], "generate_failed", e.to_dict())
            return {"candidate": None, "generation_error": e.to_dict(), "audit": audit}

        audit = append_event(state["audit"], "generate_done", plan_summary(candidate))
        return {"candidate": candidate, "generation_error": None, "audit": audit}

    def node_validate(self, state: WorkoutGraphState) -> Dict[str, Any]:
        candidate = state.get("candidate")
        if candidate is None:
            return {"fallback_reason": "generation_failed"}

        snapshot = InMemoryExerciseLibrary(state["eligible"])
        report = validate_workout_safety(candidate, state["context"], snapshot, self.envelope)

        audit = append_event(state["audit"], "validate_done", {
            "is_safe": report.is_safe,
            "risk_level": report.risk_level,
            "safety_score": report.safety_score,
            "violations": len(report.violations),
        })

        if not report.is_safe:
            logger.info(f"[PIPELINE] candidate rejected: score={report.safety_score} risk={report.risk_level}")
            return {"candidate_report": report, "fallback_reason": "unsafe_candidate", "audit": audit}

        return {
            "candidate_report": report,
            "final_plan": candidate,
            "final_report": report,
            "audit": audit,
        }

    def route_after_validate(self, state: WorkoutGraphState) -> str:
        """Accept a validated candidate, otherwise substitute the template plan."""
        if state.get("final_plan") is not None:
            return "finalize"
        return "fallback"

    def node_fallback(self, state: WorkoutGraphState) -> Dict[str, Any]:
        plan = generate_fallback(state["constraints"], state["eligible"], self.envelope, state["context"])
        snapshot = InMemoryExerciseLibrary(state["eligible"])
        report = validate_workout_safety(plan, state["context"], snapshot, self.envelope)

        if not report.is_safe:
            logger.error(f"[FALLBACK] template plan failed validation: {[v.description for v in report.violations]}")
            raise SafetyEngineError(
                "Unable to produce a safe workout",
                {"violations": [v.model_dump() for v in report.violations]},
            )

        warnings = list(state.get("warnings", []))
        warnings.append({"type": "fallback_used", "detail": state.get("fallback_reason")})
        if not plan.exercises:
            logger.warning(f"[FALLBACK] no eligible bodyweight exercise for request {state['request_id']}")
            warnings.append({"type": "empty_plan", "detail": "no eligible bodyweight exercises"})
        audit = append_event(state["audit"], "fallback_done", plan_summary(plan))
        return {"final_plan": plan, "final_report": report, "warnings": warnings, "audit": audit}

    def node_finalize(self, state: WorkoutGraphState) -> Dict[str, Any]:
        plan = state["final_plan"]
        report = state["final_report"]
        record = {
            "kind": "generation",
            "request_id": state["request_id"],
            "user_id": state.get("user_id"),
            "method": plan.generated_by,
            "success": True,
            "workout_id": plan.id,
            "fallback_reason": state.get("fallback_reason"),
            "empty_plan": not plan.exercises,
            "risk_level": report.risk_level,
            "safety_score": report.safety_score,
            "is_safe": report.is_safe,
            "constraints": constraints_summary(state["constraints"]),
            "error_message": (state.get("generation_error") or {}).get("message"),
        }
        persisted = best_effort_append(self.services.audit_log, record)

        audit = append_event(state["audit"], "pipeline_end", {
            "generated_by": plan.generated_by,
            "fallback_reason": state.get("fallback_reason"),
            "audit_persisted": persisted,
        })
        return {"audit": audit}
