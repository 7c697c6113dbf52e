# safeplan/domains/workout/services/safety.py
"""
Safety validator.

Pure scoring / classification over a plan, a single exercise or a training
history. Library lookups go through any object with `get(exercise_id)`; the
orchestrator passes a snapshot of the eligible set so the validator never
re-reads the store mid-request.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Union

from loguru import logger

from safeplan.domains.workout import rules
from safeplan.domains.workout.contract import (
    BLOCKING_SEVERITIES,
    canonicalize_name,
    canonicalize_token,
    resolve_experience_level,
)
from safeplan.domains.workout.envelope import SafetyEnvelope, load_envelope
from safeplan.domains.workout.errors import StoreError
from safeplan.domains.workout.schemas import (
    LibraryExercise,
    PlanExercise,
    SafetyModification,
    SafetyReport,
    SafetyViolation,
    UserSafetyContext,
    WorkoutPlan,
)


SEVERITY_PENALTY = {"critical": 30, "error": 15, "warning": 5}


# ============================================================
# Shared scoring
# ============================================================

def calculate_safety_score(violations: Iterable[SafetyViolation]) -> int:
    score = 100
    for v in violations:
        score -= SEVERITY_PENALTY.get(v.severity, 0)
    return max(0, score)


def determine_risk_level(violations: List[SafetyViolation], score: int) -> str:
    has_critical = any(v.severity == "critical" for v in violations)
    errors = sum(1 for v in violations if v.severity == "error")

    if has_critical or score < 40:
        return "very_high"
    if errors > 1 or score < 60:
        return "high"
    if errors >= 1 or score < 80:
        return "medium"
    return "low"


def is_safe(violations: Iterable[SafetyViolation]) -> bool:
    return not any(v.severity in BLOCKING_SEVERITIES for v in violations)


def advisory_recommendations(
    score: int,
    violations: List[SafetyViolation],
    context: UserSafetyContext,
) -> List[str]:
    out: List[str] = []
    if score < 80:
        out.append(rules.RECOMMEND_SUPERVISION)
    if any(v.severity == "critical" for v in violations):
        out.append(rules.RECOMMEND_DO_NOT_PERFORM)
    if context.injury_history:
        out.append(rules.RECOMMEND_WARM_UP)
        out.append(rules.RECOMMEND_STOP_ON_PAIN)
    return out


def build_report(
    violations: List[SafetyViolation],
    context: UserSafetyContext,
    modifications: Optional[List[SafetyModification]] = None,
    contraindications: Optional[List[str]] = None,
    extra_recommendations: Iterable[str] = (),
) -> SafetyReport:
    score = calculate_safety_score(violations)
    recommendations = advisory_recommendations(score, violations, context)
    for r in extra_recommendations:
        if r not in recommendations:
            recommendations.append(r)
    return SafetyReport(
        is_safe=is_safe(violations),
        risk_level=determine_risk_level(violations, score),
        safety_score=score,
        violations=list(violations),
        recommendations=recommendations,
        modifications=list(modifications or []),
        contraindications=_dedupe(contraindications or []),
    )


def _dedupe(items: Iterable[str]) -> List[str]:
    out: List[str] = []
    for x in items:
        if x not in out:
            out.append(x)
    return out


def _lookup(library: Any, exercise_id: str) -> Optional[LibraryExercise]:
    try:
        return library.get(exercise_id)
    except StoreError:
        raise
    except Exception as e:
        raise StoreError("Failed to read exercise library", {"exercise_id": exercise_id, "reason": str(e)}) from e


# ============================================================
# Exercise mode
# ============================================================

@dataclass
class ExerciseFindings:
    found: bool = True
    name: str = ""
    violations: List[SafetyViolation] = field(default_factory=list)
    modifications: List[SafetyModification] = field(default_factory=list)


def _not_in_library(exercise: PlanExercise) -> SafetyViolation:
    return SafetyViolation(
        type="exercise",
        severity="critical",
        description="Exercise not found in approved library",
        affected_exercise=exercise.name or exercise.id,
        recommendation="Only use exercises from the approved exercise library",
    )


def _injury_matches(injuries: List[str], needle: str) -> bool:
    # Free-text substring match: over- and under-matches by nature
    needle = canonicalize_token(needle)
    return bool(needle) and any(needle in canonicalize_token(i) for i in injuries)


def check_exercise(
    exercise: PlanExercise,
    context: UserSafetyContext,
    library: Any,
    envelope: SafetyEnvelope,
) -> ExerciseFindings:
    lib = _lookup(library, exercise.id)
    if lib is None:
        return ExerciseFindings(found=False, violations=[_not_in_library(exercise)])

    name = lib.name or exercise.name
    out = ExerciseFindings(name=name)
    level = resolve_experience_level(context.experience_level)
    injuries = list(context.injury_history)

    if lib.safety_rating < envelope.min_safety_rating:
        out.violations.append(SafetyViolation(
            type="exercise",
            severity="error",
            description=f"Exercise has low safety rating ({lib.safety_rating}/5)",
            affected_exercise=name,
            recommendation=f"Choose a safer alternative with rating {envelope.min_safety_rating} or higher",
        ))

    hits = [c for c in lib.contraindications if _injury_matches(injuries, c)]
    if hits:
        out.violations.append(SafetyViolation(
            type="medical",
            severity="critical",
            description=f"Exercise contraindicated due to injury history: {', '.join(hits)}",
            affected_exercise=name,
            recommendation="Choose alternative exercise without contraindications",
        ))

    cap = envelope.difficulty_cap(level)
    if lib.difficulty_level > cap:
        out.violations.append(SafetyViolation(
            type="exercise",
            severity="warning",
            description=f"Exercise difficulty ({lib.difficulty_level}) may be too high for {level} level",
            affected_exercise=name,
            recommendation="Consider starting with an easier variation",
        ))

    if exercise.sets > envelope.max_sets_per_exercise:
        out.violations.append(SafetyViolation(
            type="volume",
            severity="warning",
            description=f"{name}: {exercise.sets} sets may be excessive",
            affected_exercise=name,
            recommendation="Consider reducing sets to 3-5 for optimal recovery",
        ))
        out.modifications.append(SafetyModification(
            exercise_id=exercise.id,
            modification_type="reduce_sets",
            original_value=exercise.sets,
            suggested_value=min(rules.SUGGESTED_MAX_SETS, exercise.sets),
            reason="Reduce volume for better recovery",
        ))

    if exercise.reps > envelope.max_reps_per_set:
        out.violations.append(SafetyViolation(
            type="volume",
            severity="warning",
            description=f"{name}: {exercise.reps} reps is very high",
            affected_exercise=name,
            recommendation="High rep ranges may compromise form",
        ))

    high_risk = envelope.high_risk_rule(name)
    if high_risk:
        # zero / missing intensity is not checked
        if exercise.intensity:
            limit = min(float(high_risk["max_rpe"]), envelope.max_rpe(level))
            if exercise.intensity > limit:
                out.violations.append(SafetyViolation(
                    type="intensity",
                    severity="error",
                    description=f"{name}: Intensity ({exercise.intensity}) exceeds safe limit ({limit}) for this exercise",
                    affected_exercise=name,
                    recommendation=f"Reduce intensity to {limit} or below",
                ))
                out.modifications.append(SafetyModification(
                    exercise_id=exercise.id,
                    modification_type="reduce_weight",
                    original_value=exercise.intensity,
                    suggested_value=limit,
                    reason="Safety limit for high-risk exercise",
                ))

        contra = [
            c for c in high_risk.get("contraindications") or ()
            if _injury_matches(injuries, c.replace("_injury", ""))
        ]
        if contra:
            out.violations.append(SafetyViolation(
                type="medical",
                severity="critical",
                description=f"{name}: Contraindicated due to {', '.join(contra)}",
                affected_exercise=name,
                recommendation="Replace with safer alternative exercise",
            ))

    return out


def validate_exercise_safety(
    exercise: Union[PlanExercise, dict],
    context: Optional[UserSafetyContext],
    library: Any,
    envelope: Optional[SafetyEnvelope] = None,
) -> SafetyReport:
    env = envelope or load_envelope()
    ctx = context or UserSafetyContext()
    ex = exercise if isinstance(exercise, PlanExercise) else PlanExercise.model_validate(exercise)

    findings = check_exercise(ex, ctx, library, env)
    if not findings.found:
        # Terminal: no partial credit for unapproved movements
        logger.info(f"[SAFETY] exercise {ex.id} not in library")
        return SafetyReport(
            is_safe=False,
            risk_level="very_high",
            safety_score=0,
            violations=findings.violations,
            recommendations=[rules.RECOMMEND_APPROVED_ONLY],
        )

    report = build_report(findings.violations, ctx, modifications=findings.modifications)
    logger.info(f"[SAFETY] exercise {ex.id} score={report.safety_score} risk={report.risk_level}")
    return report


# ============================================================
# Workout mode
# ============================================================

def validate_workout_safety(
    plan: Union[WorkoutPlan, dict],
    context: Optional[UserSafetyContext],
    library: Any,
    envelope: Optional[SafetyEnvelope] = None,
) -> SafetyReport:
    env = envelope or load_envelope()
    ctx = context or UserSafetyContext()
    p = plan if isinstance(plan, WorkoutPlan) else WorkoutPlan.model_validate(plan)
    level = resolve_experience_level(ctx.experience_level)

    violations: List[SafetyViolation] = []
    modifications: List[SafetyModification] = []
    contraindications: List[str] = []

    # 1) Session volume
    total_sets = sum(ex.sets for ex in p.exercises)
    max_sets = env.max_sets_per_session(level)
    if total_sets > max_sets:
        violations.append(SafetyViolation(
            type="volume",
            severity="error",
            description=f"Total workout volume ({total_sets} sets) exceeds safe limit for {level} ({max_sets} sets)",
            recommendation=f"Reduce total sets to {max_sets} or split into multiple sessions",
        ))

    # 2) Duration
    if p.duration_minutes > rules.LONG_WORKOUT_MINUTES:
        violations.append(SafetyViolation(
            type="volume",
            severity="warning",
            description=f"Workout duration ({p.duration_minutes} minutes) is very long",
            recommendation="Consider splitting into shorter sessions to maintain form and focus",
        ))

    # 3) Every exercise, nested
    library_names: Dict[str, str] = {}
    for ex in p.exercises:
        findings = check_exercise(ex, ctx, library, env)
        violations.extend(findings.violations)
        modifications.extend(findings.modifications)
        if findings.found:
            library_names[ex.id] = findings.name

    # 4) Injury restriction lists
    for injury in ctx.injury_history:
        avoid = {canonicalize_name(x) for x in env.avoid_exercises_for(injury)}
        if not avoid:
            continue
        for ex in p.exercises:
            name = library_names.get(ex.id) or ex.name
            if canonicalize_name(name) in avoid:
                violations.append(SafetyViolation(
                    type="medical",
                    severity="critical",
                    description=f"Exercise {name} is contraindicated for {injury} injury",
                    affected_exercise=name,
                    recommendation=f"Replace with safer alternative for {injury} recovery",
                ))

    # 5) Medical conditions (informational)
    for condition in ctx.medical_conditions:
        contraindications.extend(env.medical_contraindications.get(canonicalize_token(condition)) or ())

    report = build_report(violations, ctx, modifications=modifications, contraindications=contraindications)
    logger.info(
        f"[SAFETY] workout {p.id} score={report.safety_score} risk={report.risk_level} "
        f"safe={report.is_safe} violations={len(report.violations)}"
    )
    return report
