from __future__ import annotations

from typing import Any, Dict, Iterable, List

from safeplan.domains.workout.schemas import PlanExercise, WorkoutPlan


DEFAULT_BODY_WEIGHT_KG = 70
DEFAULT_INTENSITY = 3


def estimate_calories(exercises: Iterable[PlanExercise], body_weight_kg: float = DEFAULT_BODY_WEIGHT_KG) -> int:
    """
    Rough MET-based estimate: METs = intensity x 2, kcal = METs x kg x hours.

    Only timed work (duration_seconds) counts.
    """
    total = 0.0
    for ex in exercises:
        minutes = (ex.duration_seconds or 0) / 60
        mets = (ex.intensity or DEFAULT_INTENSITY) * 2
        total += mets * body_weight_kg * (minutes / 60)
    return int(round(total))


def equipment_needed(exercises: Iterable[PlanExercise]) -> List[str]:
    out: List[str] = []
    for ex in exercises:
        for e in ex.equipment:
            if e not in out:
                out.append(e)
    return out


def plan_summary(plan: WorkoutPlan) -> Dict[str, Any]:
    """Compact shape used in audit records."""
    return {
        "workout_id": plan.id,
        "generated_by": plan.generated_by,
        "duration": plan.duration_minutes,
        "difficulty": plan.difficulty_level,
        "equipment": list(plan.equipment_needed),
        "exercise_count": len(plan.exercises),
        "total_sets": sum(ex.sets for ex in plan.exercises),
    }
