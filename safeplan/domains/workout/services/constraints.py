from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union

from loguru import logger
from pydantic import ValidationError

from safeplan.domains.workout import rules
from safeplan.domains.workout.contract import canonicalize_token, is_valid_experience_level
from safeplan.domains.workout.envelope import SafetyEnvelope, load_envelope
from safeplan.domains.workout.errors import ConstraintValidationError
from safeplan.domains.workout.schemas import UserPreferences, WorkoutConstraints


@dataclass
class InjuryRiskAssessment:
    risk: str = "low"
    factors: List[str] = field(default_factory=list)


def assess_injury_risk(injuries: List[str], constraints: WorkoutConstraints) -> InjuryRiskAssessment:
    """
    Heuristic risk of a request given the user's injury history.

    medium: any injury mentions a sensitive body region.
    high:   hard session with any injury, or risky equipment with more than
            one injury.
    """
    out = InjuryRiskAssessment()
    injuries = [canonicalize_token(i) for i in injuries or [] if canonicalize_token(i)]

    sensitive = [i for i in injuries if any(k in i for k in rules.INJURY_RISK_KEYWORDS)]
    if sensitive:
        out.factors.append(f"High-risk injury history: {', '.join(sensitive)}")
        out.risk = "medium"

    if constraints.difficulty_level >= rules.HIGH_DIFFICULTY_WITH_INJURY and injuries:
        out.factors.append("High intensity workout with injury history")
        out.risk = "high"

    equipment = set(constraints.equipment_available or [])
    if equipment & rules.RISKY_EQUIPMENT and len(injuries) > 1:
        out.factors.append("High-risk equipment with multiple injury history")
        out.risk = "high"

    return out


def _coerce_constraints(raw: Union[WorkoutConstraints, Mapping[str, Any]]) -> WorkoutConstraints:
    if isinstance(raw, WorkoutConstraints):
        return raw
    try:
        return WorkoutConstraints.model_validate(dict(raw or {}))
    except ValidationError as e:
        fields = sorted({".".join(str(p) for p in err.get("loc", ())) for err in e.errors()})
        raise ConstraintValidationError(
            "Invalid workout constraints",
            {"fields": fields, "errors": [err.get("msg") for err in e.errors()]},
        ) from e


def normalize(
    constraints: Union[WorkoutConstraints, Mapping[str, Any]],
    preferences: Optional[UserPreferences] = None,
    envelope: Optional[SafetyEnvelope] = None,
) -> WorkoutConstraints:
    """
    Validate a generation request against the safety envelope.

    Returns the canonical constraints or raises ConstraintValidationError.
    Nothing downstream runs for a rejected request.
    """
    env = envelope or load_envelope()
    prefs = preferences or UserPreferences()
    c = _coerce_constraints(constraints)

    # 1) Range
    if not (5 <= c.duration_minutes <= 180):
        raise ConstraintValidationError(
            "Duration must be between 5 and 180 minutes",
            {"fields": ["duration_minutes"], "duration_minutes": c.duration_minutes},
        )
    if c.duration_minutes > env.max_duration_minutes:
        raise ConstraintValidationError(
            f"Duration cannot exceed {env.max_duration_minutes} minutes",
            {"fields": ["duration_minutes"], "max_duration_minutes": env.max_duration_minutes},
        )
    if not (1 <= c.difficulty_level <= 5):
        raise ConstraintValidationError(
            "Difficulty level must be between 1 and 5",
            {"fields": ["difficulty_level"], "difficulty_level": c.difficulty_level},
        )

    # 2) Equipment
    unsafe = [e for e in c.equipment_available if not env.is_equipment_allowed(e)]
    if unsafe:
        logger.info(f"[SAFETY] rejected equipment: {unsafe}")
        raise ConstraintValidationError(
            f"Unsafe equipment: {', '.join(unsafe)}",
            {
                "fields": ["equipment_available"],
                "unsafe_equipment": unsafe,
                "allowed_equipment": sorted(env.allowed_equipment),
            },
        )

    # 3) Experience vs requested difficulty
    level = prefs.experience_level
    if level and is_valid_experience_level(level):
        max_intensity = int(env.intensity_limits[level])
        if c.difficulty_level > max_intensity:
            raise ConstraintValidationError(
                f"Difficulty level {c.difficulty_level} exceeds safe limit for {level} level",
                {"fields": ["difficulty_level"], "experience_level": level, "max_intensity": max_intensity},
            )

    # 4) Injury heuristic
    if prefs.injury_history:
        assessment = assess_injury_risk(prefs.injury_history, c)
        if assessment.risk == "high":
            logger.info(f"[SAFETY] injury risk high: {assessment.factors}")
            raise ConstraintValidationError(
                "Workout constraints pose high risk given injury history",
                {"risk_factors": assessment.factors},
                code="SAFETY_VIOLATION",
            )

    return c


def constraints_summary(c: WorkoutConstraints) -> Dict[str, Any]:
    return {
        "duration": c.duration_minutes,
        "difficulty": c.difficulty_level,
        "equipment": c.equipment_or_default(),
    }
