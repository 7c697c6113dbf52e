# safeplan/domains/workout/contract.py
from __future__ import annotations

from typing import Any, Iterable, List, Tuple


# ============================================================
# Taxonomy / Enums (single source of truth)
# ============================================================

EXPERIENCE_LEVELS: Tuple[str, ...] = ("beginner", "intermediate", "advanced")
EXPERIENCE_LEVEL_SET = set(EXPERIENCE_LEVELS)
DEFAULT_EXPERIENCE_LEVEL = "intermediate"

VIOLATION_TYPES: Tuple[str, ...] = ("volume", "intensity", "exercise", "progression", "medical")
SEVERITIES: Tuple[str, ...] = ("warning", "error", "critical")
BLOCKING_SEVERITIES = frozenset({"critical", "error"})

RISK_LEVELS: Tuple[str, ...] = ("low", "medium", "high", "very_high")

MODIFICATION_TYPES: Tuple[str, ...] = ("replace", "reduce_sets", "reduce_reps", "reduce_weight", "add_rest")

VALIDATION_TYPES: Tuple[str, ...] = ("workout", "exercise", "progression")

GENERATED_BY: Tuple[str, ...] = ("llm", "template")

EXERCISE_CATEGORIES: Tuple[str, ...] = ("strength", "power", "endurance", "flexibility", "cardio")

DEFAULT_EQUIPMENT: Tuple[str, ...] = ("bodyweight",)


# ============================================================
# Helpers
# ============================================================

def canonicalize_token(value: Any) -> str:
    """Lower-case, trimmed token. Used for equipment, injuries, conditions."""
    return str(value or "").strip().lower()


def canonicalize_name(value: Any) -> str:
    """
    Canonical exercise key: "Bench Press" / "bench-press" -> "bench_press".

    Rule tables (blacklist, injury avoid lists, high-risk table) are keyed by
    this form.
    """
    s = canonicalize_token(value)
    for ch in (" ", "-"):
        s = s.replace(ch, "_")
    while "__" in s:
        s = s.replace("__", "_")
    return s


def canonicalize_tokens(values: Iterable[Any]) -> List[str]:
    """Canonicalize and de-duplicate, keeping first-seen order."""
    out: List[str] = []
    seen: set[str] = set()
    for v in values or []:
        t = canonicalize_token(v)
        if t and t not in seen:
            out.append(t)
            seen.add(t)
    return out


def is_valid_experience_level(level: Any) -> bool:
    return canonicalize_token(level) in EXPERIENCE_LEVEL_SET


def resolve_experience_level(level: Any) -> str:
    lvl = canonicalize_token(level)
    return lvl if lvl in EXPERIENCE_LEVEL_SET else DEFAULT_EXPERIENCE_LEVEL
