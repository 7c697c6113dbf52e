from __future__ import annotations

from typing import List, Optional, Set

from loguru import logger

from safeplan.domains.workout.contract import BLOCKING_SEVERITIES, canonicalize_name
from safeplan.domains.workout.envelope import SafetyEnvelope, load_envelope
from safeplan.domains.workout.schemas import (
    LibraryExercise,
    PlanExercise,
    UserSafetyContext,
    WorkoutConstraints,
    WorkoutPlan,
)
from safeplan.domains.workout.services.formatting import estimate_calories
from safeplan.domains.workout.services.safety import check_exercise
from safeplan.domains.workout.stores import InMemoryExerciseLibrary


MAX_FALLBACK_EXERCISES = 5
FALLBACK_SETS = 3
FALLBACK_REPS = 15
FALLBACK_MAX_INTENSITY = 3
FALLBACK_MIN_RATING = 4
FALLBACK_SAFETY_NOTE = "Bodyweight exercise - stop if you feel pain or discomfort"


def _avoided_names(context: UserSafetyContext, envelope: SafetyEnvelope) -> Set[str]:
    out: Set[str] = set()
    for injury in context.injury_history:
        out.update(canonicalize_name(x) for x in envelope.avoid_exercises_for(injury))
    return out


def _to_plan_exercise(ex: LibraryExercise, constraints: WorkoutConstraints, envelope: SafetyEnvelope) -> PlanExercise:
    return PlanExercise(
        id=ex.id,
        name=ex.name,
        category=ex.category,
        muscle_groups=list(ex.muscle_groups),
        sets=min(FALLBACK_SETS, envelope.max_sets_per_exercise),
        reps=min(FALLBACK_REPS, envelope.max_reps_per_set),
        duration_seconds=0,
        rest_seconds=envelope.rest_for_category("strength"),
        intensity=min(constraints.difficulty_level, FALLBACK_MAX_INTENSITY),
        equipment=["bodyweight"],
        safety_notes=FALLBACK_SAFETY_NOTE,
    )


def generate_fallback(
    constraints: WorkoutConstraints,
    eligible: List[LibraryExercise],
    envelope: Optional[SafetyEnvelope] = None,
    context: Optional[UserSafetyContext] = None,
) -> WorkoutPlan:
    """
    Deterministic bodyweight workout built from the eligible set.

    Only exercises that pass exercise-mode checks for this user are used, so
    the result validates as safe. May contain zero exercises.
    """
    env = envelope or load_envelope()
    ctx = context or UserSafetyContext()
    snapshot = InMemoryExerciseLibrary(eligible)
    avoided = _avoided_names(ctx, env)
    max_session_sets = env.max_sets_per_session(ctx.experience_level)

    exercises: List[PlanExercise] = []
    total_sets = 0
    for ex in eligible:
        if len(exercises) >= MAX_FALLBACK_EXERCISES:
            break
        if "bodyweight" not in ex.equipment or ex.safety_rating < FALLBACK_MIN_RATING:
            continue
        if env.is_blacklisted(ex.name) or canonicalize_name(ex.name) in avoided:
            continue

        item = _to_plan_exercise(ex, constraints, env)
        if total_sets + item.sets > max_session_sets:
            break
        findings = check_exercise(item, ctx, snapshot, env)
        if any(v.severity in BLOCKING_SEVERITIES for v in findings.violations):
            continue

        exercises.append(item)
        total_sets += item.sets

    logger.info(f"[FALLBACK] template plan with {len(exercises)} exercises")

    return WorkoutPlan(
        title="Safe Bodyweight Workout",
        description="A safe, library-based bodyweight workout generated as a fallback",
        duration_minutes=constraints.duration_minutes,
        difficulty_level=min(constraints.difficulty_level, FALLBACK_MAX_INTENSITY),
        exercises=exercises,
        equipment_needed=["bodyweight"],
        generated_by="template",
        calories_estimate=estimate_calories(exercises),
        tags=["safe", "bodyweight", "fallback"],
        safety_notes=[FALLBACK_SAFETY_NOTE],
    )
