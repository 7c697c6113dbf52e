# safeplan/domains/workout/rules.py
"""
Static safety rule tables.

Every table is a read-only mapping so it can be audited on its own and
shared by all requests. Scoring logic never embeds these values inline; it
reads them through the SafetyEnvelope.
"""
from __future__ import annotations

from types import MappingProxyType
from typing import Any, Mapping


def _freeze(table: Mapping[str, Any]) -> Mapping[str, Any]:
    out = {}
    for k, v in table.items():
        if isinstance(v, dict):
            v = _freeze(v)
        elif isinstance(v, list):
            v = tuple(v)
        out[k] = v
    return MappingProxyType(out)


# ------------------------------
# Envelope scalars
# ------------------------------
MAX_DURATION_MINUTES = 120
MAX_SETS_PER_EXERCISE = 6
MAX_REPS_PER_SET = 30
MAX_WEIGHT_PROGRESSION = 1.2  # x previous load

# Plan-level thresholds used by workout/exercise mode
LONG_WORKOUT_MINUTES = 120
SUGGESTED_MAX_SETS = 5
MIN_SAFETY_RATING = 3
WEEKLY_VOLUME_INCREASE_MAX = 0.10
PROGRESSION_WINDOW_DAYS = 30
PROGRESSION_SESSION_LIMIT = 20
INTENSITY_TREND_SESSIONS = 5
INTENSITY_TREND_MIN_INCREASES = 3
DEFAULT_SESSION_INTENSITY = 5

ALLOWED_EQUIPMENT = frozenset({
    "bodyweight",
    "dumbbell",
    "barbell",
    "kettlebell",
    "resistance_band",
    "cable",
    "machine",
    "suspension_trainer",
    "medicine_ball",
})

# Minimum seconds of rest between sets per exercise category
REQUIRED_REST_PERIODS = _freeze({
    "strength": 60,
    "power": 120,
    "endurance": 30,
    "flexibility": 15,
})
DEFAULT_REST_SECONDS = 60

# Max requested difficulty (1-5) per experience level
INTENSITY_LIMITS = _freeze({
    "beginner": 3,
    "intermediate": 4,
    "advanced": 5,
})

# Max library difficulty_level per experience level (exercise mode)
EXPERIENCE_DIFFICULTY_CAP = _freeze({
    "beginner": 3,
    "intermediate": 4,
    "advanced": 5,
})

# Movements that need in-person supervision
EXERCISE_BLACKLIST = frozenset({
    "clean_and_jerk",
    "snatch",
    "behind_the_neck_press",
    "upright_row_wide_grip",
    "bench_press_to_neck",
    "leg_press_deep_range",
})


# ------------------------------
# Volume / intensity tables
# ------------------------------
VOLUME_LIMITS = _freeze({
    "beginner": {"max_sets_per_muscle_per_week": 10, "max_sets_per_session": 16},
    "intermediate": {"max_sets_per_muscle_per_week": 16, "max_sets_per_session": 20},
    "advanced": {"max_sets_per_muscle_per_week": 22, "max_sets_per_session": 25},
})

# RPE scale
EXPERIENCE_INTENSITY_LIMITS = _freeze({
    "beginner": {"max_rpe": 7, "recommended_max": 6},
    "intermediate": {"max_rpe": 8.5, "recommended_max": 7.5},
    "advanced": {"max_rpe": 9.5, "recommended_max": 8.5},
})

HIGH_RISK_EXERCISES = _freeze({
    "deadlift": {"max_rpe": 8, "requires_warmup": True, "min_rest_minutes": 3},
    "squat": {"max_rpe": 8.5, "requires_warmup": True, "min_rest_minutes": 3},
    "bench_press": {"max_rpe": 8.5, "requires_spotter": True, "min_rest_minutes": 2},
    "overhead_press": {"max_rpe": 8, "contraindications": ["shoulder_injury", "neck_injury"]},
})


# ------------------------------
# Medical tables
# ------------------------------
INJURY_RISK_KEYWORDS = ("lower_back", "knee", "shoulder", "neck")
RISKY_EQUIPMENT = frozenset({"barbell", "heavy_weights"})
HIGH_DIFFICULTY_WITH_INJURY = 4

MEDICAL_CONTRAINDICATIONS = _freeze({
    "hypertension": ["high_intensity_cardio", "valsalva_exercises"],
    "diabetes": ["long_fasting_workouts", "extreme_endurance"],
    "pregnancy": ["supine_exercises", "high_impact", "core_twisting"],
    "cardiac_issues": ["max_heart_rate_exceeded", "isometric_holds"],
    "osteoporosis": ["spinal_flexion", "high_impact_jumping"],
})

INJURY_RESTRICTIONS = _freeze({
    "lower_back": {
        "avoid_exercises": ["good_morning", "jefferson_curl", "toe_touch"],
        "modify_exercises": ["deadlift", "squat", "row"],
        "max_spinal_load": 0.8,
    },
    "knee": {
        "avoid_exercises": ["deep_squat", "jumping_lunges", "high_box_jumps"],
        "max_knee_angle": 90,
        "impact_restrictions": True,
    },
    "shoulder": {
        "avoid_exercises": ["behind_neck_press", "upright_row", "dips"],
        "max_overhead_angle": 150,
        "avoid_internal_rotation": True,
    },
    "neck": {
        "avoid_exercises": ["neck_bridge", "heavy_shrugs", "front_squats"],
        "avoid_compression": True,
        "max_rotation": 45,
    },
})


# ------------------------------
# Advisory text
# ------------------------------
RECOMMEND_SUPERVISION = "Consider working with a qualified trainer"
RECOMMEND_DO_NOT_PERFORM = "Do not perform this workout without modifications"
RECOMMEND_WARM_UP = "Prioritize proper warm-up and mobility work"
RECOMMEND_STOP_ON_PAIN = "Stop immediately if you experience pain"
RECOMMEND_APPROVED_ONLY = "Use only approved exercises"

PROGRESSION_RECOMMENDATIONS = (
    "Follow the 10% rule: increase volume by no more than 10% per week",
    "Allow at least one full recovery day between intense sessions",
)
BEGINNER_PROGRESSION_RECOMMENDATION = "Focus on form and consistency before increasing intensity"
