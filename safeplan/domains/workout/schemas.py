from __future__ import annotations

import time
import uuid
from datetime import datetime, timezone
from typing import Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from safeplan.domains.workout.contract import (
    DEFAULT_EQUIPMENT,
    canonicalize_token,
    canonicalize_tokens,
)


ExperienceLevel = Literal["beginner", "intermediate", "advanced"]
ViolationType = Literal["volume", "intensity", "exercise", "progression", "medical"]
Severity = Literal["warning", "error", "critical"]
RiskLevel = Literal["low", "medium", "high", "very_high"]
ModificationType = Literal["replace", "reduce_sets", "reduce_reps", "reduce_weight", "add_rest"]
GeneratedBy = Literal["llm", "template"]


def generate_workout_id() -> str:
    return f"workout_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _items(v: Any) -> List[Any]:
    if v is None:
        return []
    if isinstance(v, str):
        return v.split(",")
    if not isinstance(v, (list, tuple, set)):
        raise ValueError("must be a list of strings")
    return list(v)


def _token_list(v: Any) -> List[str]:
    return canonicalize_tokens(_items(v))


# ============================================================
# Request side
# ============================================================

class WorkoutConstraints(BaseModel):
    model_config = ConfigDict(extra="ignore")

    duration_minutes: int = Field(ge=5, le=180)
    difficulty_level: int = Field(ge=1, le=5)
    equipment_available: List[str] = Field(default_factory=list)
    muscle_groups_focus: Optional[List[str]] = None
    limitations: Optional[List[str]] = None
    goals: Optional[List[str]] = None

    @field_validator("equipment_available", mode="before")
    @classmethod
    def _canon_equipment(cls, v: Any) -> List[str]:
        return _token_list(v)

    @field_validator("muscle_groups_focus", mode="before")
    @classmethod
    def _canon_focus(cls, v: Any) -> Optional[List[str]]:
        if v is None:
            return None
        return _token_list(v) or None

    def equipment_or_default(self) -> List[str]:
        return list(self.equipment_available) or list(DEFAULT_EQUIPMENT)


class UserPreferences(BaseModel):
    model_config = ConfigDict(extra="ignore")

    experience_level: Optional[ExperienceLevel] = None
    injury_history: List[str] = Field(default_factory=list)
    medical_conditions: List[str] = Field(default_factory=list)
    avoid_exercises: List[str] = Field(default_factory=list)
    focus_areas: List[str] = Field(default_factory=list)
    workout_style: Optional[str] = None

    @field_validator("experience_level", mode="before")
    @classmethod
    def _canon_level(cls, v: Any) -> Optional[str]:
        s = canonicalize_token(v)
        return s or None

    @field_validator("injury_history", "medical_conditions", "focus_areas", mode="before")
    @classmethod
    def _canon_lists(cls, v: Any) -> List[str]:
        return _token_list(v)

    @field_validator("avoid_exercises", mode="before")
    @classmethod
    def _keep_names(cls, v: Any) -> List[str]:
        return [str(x).strip() for x in _items(v) if str(x or "").strip()]


class UserSafetyContext(BaseModel):
    model_config = ConfigDict(extra="ignore")

    injury_history: List[str] = Field(default_factory=list)
    limitations: List[str] = Field(default_factory=list)
    experience_level: Optional[ExperienceLevel] = None
    medical_conditions: List[str] = Field(default_factory=list)
    age: Optional[int] = Field(default=None, ge=0, le=130)

    @field_validator("experience_level", mode="before")
    @classmethod
    def _canon_level(cls, v: Any) -> Optional[str]:
        s = canonicalize_token(v)
        return s or None

    @field_validator("injury_history", "limitations", "medical_conditions", mode="before")
    @classmethod
    def _canon_lists(cls, v: Any) -> List[str]:
        return _token_list(v)


# ============================================================
# Library / history snapshots
# ============================================================

class LibraryExercise(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    category: str = "strength"
    movement_pattern: str = ""
    muscle_groups: List[str] = Field(default_factory=list)
    equipment: List[str] = Field(default_factory=list)
    safety_rating: int = Field(ge=1, le=5)
    difficulty_level: int = Field(ge=1, le=5)
    contraindications: List[str] = Field(default_factory=list)
    is_compound: bool = False

    @field_validator("id", mode="before")
    @classmethod
    def _id_str(cls, v: Any) -> str:
        return str(v)

    @field_validator("equipment", "muscle_groups", mode="before")
    @classmethod
    def _canon_lists(cls, v: Any) -> List[str]:
        return _token_list(v)


class HistoryExercise(BaseModel):
    name: str = ""
    sets: int = 0
    reps: int = 0
    intensity: Optional[float] = None


class HistorySession(BaseModel):
    completed_at: datetime
    exercises: List[HistoryExercise] = Field(default_factory=list)

    @property
    def volume(self) -> int:
        return sum(int(ex.sets or 0) * int(ex.reps or 0) for ex in self.exercises)


# ============================================================
# Plans
# ============================================================

class PlanExercise(BaseModel):
    """One exercise in a plan. Also the payload of exercise-mode validation."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str = ""
    category: str = ""
    muscle_groups: List[str] = Field(default_factory=list)
    sets: int = Field(default=0, ge=0)
    reps: int = Field(default=0, ge=0)
    weight: Optional[float] = Field(default=None, ge=0)
    duration_seconds: int = Field(default=0, ge=0)
    rest_seconds: int = Field(default=60, ge=0)
    intensity: Optional[float] = Field(default=None, ge=0, le=10)
    equipment: List[str] = Field(default_factory=list)
    safety_notes: str = ""

    @field_validator("id", mode="before")
    @classmethod
    def _id_str(cls, v: Any) -> str:
        return str(v)


class WorkoutPlan(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = Field(default_factory=generate_workout_id)
    title: str = ""
    description: str = ""
    duration_minutes: int = Field(ge=0)
    difficulty_level: int = Field(default=1, ge=1, le=5)
    exercises: List[PlanExercise] = Field(default_factory=list)
    equipment_needed: List[str] = Field(default_factory=list)
    generated_by: Optional[GeneratedBy] = None
    calories_estimate: int = 0
    tags: List[str] = Field(default_factory=list)
    safety_notes: List[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow)


# ============================================================
# Generator output boundary (strict)
# ============================================================

class GeneratedExercise(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    category: str = ""
    sets: int = Field(ge=1)
    reps: int = Field(ge=0)
    duration_seconds: int = Field(default=0, ge=0)
    rest_seconds: int = Field(default=60, ge=0)
    intensity: float = Field(default=3, ge=1, le=10)
    equipment: List[str] = Field(default_factory=list)
    safety_notes: str = ""

    @field_validator("id", mode="before")
    @classmethod
    def _id_str(cls, v: Any) -> str:
        return str(v)


class GeneratedPlan(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str = Field(min_length=1)
    description: str = ""
    duration_minutes: int = Field(ge=1)
    difficulty_level: int = Field(ge=1, le=5)
    exercises: List[GeneratedExercise] = Field(min_length=1)
    equipment_needed: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    safety_notes: List[str] = Field(default_factory=list)


class ParsedPlan(BaseModel):
    ok: Literal[True] = True
    plan: GeneratedPlan


class ParseError(BaseModel):
    ok: Literal[False] = False
    reason: str
    errors: List[str] = Field(default_factory=list)


ParseResult = Union[ParsedPlan, ParseError]


# ============================================================
# Safety report
# ============================================================

class SafetyViolation(BaseModel):
    type: ViolationType
    severity: Severity
    description: str
    affected_exercise: Optional[str] = None
    recommendation: str = ""


class SafetyModification(BaseModel):
    exercise_id: str
    modification_type: ModificationType
    original_value: Any = None
    suggested_value: Any = None
    reason: str = ""


class SafetyReport(BaseModel):
    is_safe: bool
    risk_level: RiskLevel
    safety_score: int = Field(ge=0, le=100)
    violations: List[SafetyViolation] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    modifications: List[SafetyModification] = Field(default_factory=list)
    contraindications: List[str] = Field(default_factory=list)

    def count(self, severity: str) -> int:
        return sum(1 for v in self.violations if v.severity == severity)
