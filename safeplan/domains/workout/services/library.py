from __future__ import annotations

from typing import Any, Iterable, List, Optional

from langchain_core.documents import Document
from loguru import logger

from safeplan.domains.workout.contract import canonicalize_name
from safeplan.domains.workout.envelope import SafetyEnvelope, load_envelope
from safeplan.domains.workout.errors import NoEligibleExercisesError, StoreError
from safeplan.domains.workout.schemas import LibraryExercise, WorkoutConstraints


def _is_eligible(
    ex: LibraryExercise,
    equipment: set,
    max_difficulty: int,
    focus: set,
    avoid: set,
    env: SafetyEnvelope,
) -> bool:
    if ex.safety_rating < env.min_safety_rating:
        return False
    if env.is_blacklisted(ex.name):
        return False
    if canonicalize_name(ex.name) in avoid:
        return False
    if not equipment.intersection(ex.equipment):
        return False
    if ex.difficulty_level > max_difficulty:
        return False
    if focus and not focus.intersection(ex.muscle_groups):
        return False
    return True


def get_eligible(
    constraints: WorkoutConstraints,
    library_store: Any,
    envelope: Optional[SafetyEnvelope] = None,
    avoid_exercises: Iterable[str] = (),
) -> List[LibraryExercise]:
    """
    Narrow the approved library to exercises eligible for this request.

    The store query is treated as a coarse pre-filter; every predicate is
    re-applied here so a permissive store can never widen the set.
    Raises NoEligibleExercisesError on an empty result.
    """
    env = envelope or load_envelope()
    equipment = set(constraints.equipment_or_default())
    focus = set(constraints.muscle_groups_focus or [])
    avoid = {canonicalize_name(x) for x in avoid_exercises or [] if x}

    try:
        rows = library_store.query_eligible(
            min_safety_rating=env.min_safety_rating,
            equipment=sorted(equipment),
            max_difficulty=constraints.difficulty_level,
            muscle_groups=sorted(focus) or None,
        )
    except StoreError:
        raise
    except Exception as e:
        raise StoreError("Failed to retrieve exercise library", {"reason": str(e)}) from e

    eligible = [
        ex for ex in rows or []
        if _is_eligible(ex, equipment, constraints.difficulty_level, focus, avoid, env)
    ]
    eligible.sort(key=lambda ex: (-ex.safety_rating, ex.name.lower()))

    logger.info(f"[PIPELINE] eligible_count={len(eligible)} (store returned {len(rows or [])})")

    if not eligible:
        raise NoEligibleExercisesError(
            "No suitable exercises found for the given constraints",
            {
                "equipment": sorted(equipment),
                "difficulty_level": constraints.difficulty_level,
                "muscle_groups_focus": sorted(focus),
            },
        )
    return eligible


def eligible_to_documents(eligible: List[LibraryExercise]) -> List[Document]:
    """Convert the eligible set to LangChain Documents for prompt building"""
    docs: List[Document] = []
    for ex in eligible:
        # page_content kept short to save tokens
        text = (
            f"{ex.name}\nCategory: {ex.category}\nMuscles: {', '.join(ex.muscle_groups)}\n"
            f"Equipment: {', '.join(ex.equipment)}\nSafety: {ex.safety_rating}/5"
        )
        meta = {
            "id": ex.id,
            "name": ex.name,
            "category": ex.category,
            "muscle_groups": list(ex.muscle_groups),
            "equipment": list(ex.equipment),
            "safety_rating": ex.safety_rating,
            "difficulty_level": ex.difficulty_level,
        }
        docs.append(Document(page_content=text, metadata=meta))
    return docs
