from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import ValidationError

from safeplan.core.audit import best_effort_append
from safeplan.domains.workout.contract import VALIDATION_TYPES
from safeplan.domains.workout.errors import ConstraintValidationError, StoreError
from safeplan.domains.workout.schemas import PlanExercise, SafetyReport, UserSafetyContext, WorkoutPlan
from safeplan.domains.workout.stores import WorkoutServices
from safeplan.domains.workout.services.context import load_recent_sessions, load_user_context
from safeplan.domains.workout.services.progression import validate_progression_safety
from safeplan.domains.workout.services.safety import validate_exercise_safety, validate_workout_safety


def _parse(model, payload: Any, field_name: str):
    if payload is None:
        raise ConstraintValidationError(f"{field_name} is required", {"fields": [field_name]})
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        fields = sorted({
            ".".join([field_name, *[str(p) for p in err.get("loc", ())]]) for err in e.errors()
        })
        raise ConstraintValidationError(f"Invalid {field_name}", {"fields": fields}) from e


def _audit_record(user_id: Optional[str], validation_type: str, report: SafetyReport) -> Dict[str, Any]:
    return {
        "kind": "validation",
        "user_id": user_id,
        "validation_type": validation_type,
        "risk_level": report.risk_level,
        "safety_score": report.safety_score,
        "is_safe": report.is_safe,
        "violations_count": len(report.violations),
        "critical_violations": report.count("critical"),
    }


def run_safety_validation(request: Dict[str, Any], services: WorkoutServices) -> SafetyReport:
    """
    Standalone validation: workout, exercise or progression mode.

    The stored profile (when `user_id` is given) is merged with the
    request's `user_context`. Outcomes are audited best-effort.
    """
    validation_type = request.get("validation_type")
    if validation_type not in VALIDATION_TYPES:
        raise ConstraintValidationError(
            "validation_type must be one of: " + ", ".join(VALIDATION_TYPES),
            {"fields": ["validation_type"]},
        )

    user_id = request.get("user_id")
    override = None
    if request.get("user_context") is not None:
        override = _parse(UserSafetyContext, request.get("user_context"), "user_context")
    context = load_user_context(services.profiles, user_id, override)
    env = services.envelope

    if validation_type == "workout":
        plan = _parse(WorkoutPlan, request.get("workout_plan"), "workout_plan")
        report = validate_workout_safety(plan, context, services.library, env)
    elif validation_type == "exercise":
        exercise = _parse(PlanExercise, request.get("exercise_suggestion"), "exercise_suggestion")
        report = validate_exercise_safety(exercise, context, services.library, env)
    else:
        if not user_id:
            raise ConstraintValidationError("user_id is required for progression validation", {"fields": ["user_id"]})
        if services.history is None:
            raise StoreError("Workout history store is not configured")
        sessions = load_recent_sessions(services.history, user_id)
        report = validate_progression_safety(sessions, context, env)

    best_effort_append(services.audit_log, _audit_record(user_id, validation_type, report))
    return report
