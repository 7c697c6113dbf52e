from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, FrozenSet, Mapping, Optional, Tuple

from safeplan.domains.workout import rules
from safeplan.domains.workout.contract import canonicalize_name, canonicalize_token, resolve_experience_level


@dataclass(frozen=True)
class SafetyEnvelope:
    """
    Process-wide numeric and category limits no plan may exceed.

    Loaded once and passed into every component. Tests build variants with
    dataclasses.replace() instead of mutating shared state.
    """

    max_duration_minutes: int = rules.MAX_DURATION_MINUTES
    max_sets_per_exercise: int = rules.MAX_SETS_PER_EXERCISE
    max_reps_per_set: int = rules.MAX_REPS_PER_SET
    max_weight_progression: float = rules.MAX_WEIGHT_PROGRESSION
    allowed_equipment: FrozenSet[str] = rules.ALLOWED_EQUIPMENT
    required_rest_periods: Mapping[str, int] = field(default_factory=lambda: rules.REQUIRED_REST_PERIODS)
    default_rest_seconds: int = rules.DEFAULT_REST_SECONDS
    intensity_limits: Mapping[str, int] = field(default_factory=lambda: rules.INTENSITY_LIMITS)
    exercise_blacklist: FrozenSet[str] = rules.EXERCISE_BLACKLIST
    injury_restrictions: Mapping[str, Any] = field(default_factory=lambda: rules.INJURY_RESTRICTIONS)
    medical_contraindications: Mapping[str, Tuple[str, ...]] = field(
        default_factory=lambda: rules.MEDICAL_CONTRAINDICATIONS
    )
    volume_limits: Mapping[str, Any] = field(default_factory=lambda: rules.VOLUME_LIMITS)
    experience_intensity_limits: Mapping[str, Any] = field(
        default_factory=lambda: rules.EXPERIENCE_INTENSITY_LIMITS
    )
    experience_difficulty_cap: Mapping[str, int] = field(default_factory=lambda: rules.EXPERIENCE_DIFFICULTY_CAP)
    high_risk_exercises: Mapping[str, Any] = field(default_factory=lambda: rules.HIGH_RISK_EXERCISES)
    min_safety_rating: int = rules.MIN_SAFETY_RATING
    weekly_volume_increase_max: float = rules.WEEKLY_VOLUME_INCREASE_MAX

    # -----------------------------
    # Lookups
    # -----------------------------
    def rest_for_category(self, category: Optional[str]) -> int:
        return int(self.required_rest_periods.get(canonicalize_token(category), self.default_rest_seconds))

    def is_blacklisted(self, name: str) -> bool:
        return canonicalize_name(name) in self.exercise_blacklist

    def is_equipment_allowed(self, equipment: str) -> bool:
        return canonicalize_token(equipment) in self.allowed_equipment

    def max_sets_per_session(self, experience_level: Optional[str]) -> int:
        lvl = resolve_experience_level(experience_level)
        return int(self.volume_limits[lvl]["max_sets_per_session"])

    def max_rpe(self, experience_level: Optional[str]) -> float:
        lvl = resolve_experience_level(experience_level)
        return float(self.experience_intensity_limits[lvl]["max_rpe"])

    def difficulty_cap(self, experience_level: Optional[str]) -> int:
        lvl = resolve_experience_level(experience_level)
        return int(self.experience_difficulty_cap[lvl])

    def high_risk_rule(self, name: str) -> Optional[Mapping[str, Any]]:
        return self.high_risk_exercises.get(canonicalize_name(name))

    def avoid_exercises_for(self, injury: str) -> Tuple[str, ...]:
        entry = self.injury_restrictions.get(canonicalize_token(injury))
        if not entry:
            return ()
        return tuple(entry.get("avoid_exercises") or ())


@lru_cache(maxsize=1)
def load_envelope() -> SafetyEnvelope:
    """Return the process-wide default envelope."""
    return SafetyEnvelope()
