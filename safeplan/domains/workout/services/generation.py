from __future__ import annotations

import json
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from typing import Any, Callable, List, Optional, TypeVar

from langchain_core.documents import Document
from loguru import logger
from pydantic import ValidationError

from safeplan.domains.workout.envelope import SafetyEnvelope, load_envelope
from safeplan.domains.workout.errors import GenerationError
from safeplan.domains.workout.schemas import (
    GeneratedExercise,
    GeneratedPlan,
    HistorySession,
    LibraryExercise,
    ParsedPlan,
    ParseError,
    ParseResult,
    PlanExercise,
    UserPreferences,
    UserSafetyContext,
    WorkoutConstraints,
    WorkoutPlan,
)
from safeplan.domains.workout.services.formatting import equipment_needed, estimate_calories
from safeplan.domains.workout.services.library import eligible_to_documents


T = TypeVar("T")

DEFAULT_TIMEOUT_SECONDS = 30.0
RECENT_EXERCISE_LIMIT = 15
MAX_PROMPT_EXERCISES = 60

SYSTEM_PROMPT = (
    "You are a certified fitness trainer and exercise physiologist specializing in safe, "
    "evidence-based workout design. You MUST:\n"
    "1. ONLY use exercises from the provided library, no exceptions\n"
    "2. Follow all safety constraints strictly\n"
    "3. Consider the user's injury history and limitations\n"
    "4. Include appropriate rest periods\n"
    "5. Scale intensity appropriately for the user's level\n"
    "6. Return valid JSON only, no additional text"
)


# ============================================================
# Prompt
# ============================================================

def recent_exercise_names(history: List[HistorySession], limit: int = RECENT_EXERCISE_LIMIT) -> List[str]:
    """Distinct exercise names from recent sessions, newest first."""
    out: List[str] = []
    ordered = sorted(history or [], key=lambda s: s.completed_at, reverse=True)
    for session in ordered:
        for ex in session.exercises:
            name = (ex.name or "").strip()
            if name and name not in out:
                out.append(name)
            if len(out) >= limit:
                return out
    return out


def _format_exercise_lines_from_docs(documents: List[Document], max_items: int = MAX_PROMPT_EXERCISES) -> str:
    lines: List[str] = []
    for d in documents[:max_items]:
        m = d.metadata or {}
        parts = [f"id={m.get('id')}", str(m.get("name", ""))]
        if m.get("category"):
            parts.append(f"category={m['category']}")
        muscles = m.get("muscle_groups") or []
        if muscles:
            parts.append(f"muscles={','.join(map(str, muscles))}")
        equipment = m.get("equipment") or []
        if equipment:
            parts.append(f"equip={','.join(map(str, equipment))}")
        parts.append(f"safety={m.get('safety_rating')}/5")
        lines.append(" | ".join(parts))
    return "\n".join(lines)


def _build_prompt(
    constraints: WorkoutConstraints,
    preferences: UserPreferences,
    context: UserSafetyContext,
    documents: List[Document],
    recent_names: List[str],
    envelope: SafetyEnvelope,
) -> str:
    level = context.experience_level or preferences.experience_level or "intermediate"
    focus = list(constraints.muscle_groups_focus or []) or list(preferences.focus_areas)
    limitations = list(context.limitations) or list(constraints.limitations or [])
    rest_rules = ", ".join(f"{k}={v}s" for k, v in envelope.required_rest_periods.items())

    parts: List[str] = []
    parts.append("Generate a safe, effective workout plan with these STRICT requirements.")
    parts.append("")
    parts.append("SAFETY CONSTRAINTS (MANDATORY):")
    parts.append(f"- Maximum {envelope.max_sets_per_exercise} sets per exercise")
    parts.append(f"- Maximum {envelope.max_reps_per_set} reps per set")
    parts.append(f"- Minimum rest periods: {rest_rules}")
    parts.append("- ONLY use exercises from the library below, by exact id and name")
    parts.append("")
    parts.append("WORKOUT REQUIREMENTS:")
    parts.append(f"- Duration: {constraints.duration_minutes} minutes")
    parts.append(f"- Difficulty: {constraints.difficulty_level}/5")
    parts.append(f"- Equipment: {', '.join(constraints.equipment_or_default())}")
    parts.append(f"- Focus areas: {', '.join(focus) or 'Full body'}")
    parts.append(f"- User level: {level}")
    if constraints.goals:
        parts.append(f"- Goals: {', '.join(constraints.goals)}")
    parts.append("")
    parts.append("USER PROFILE:")
    parts.append(f"- Injury history: {', '.join(context.injury_history) or 'None reported'}")
    parts.append(f"- Limitations: {', '.join(limitations) or 'None reported'}")
    parts.append(f"- Recent exercises (avoid repetition): {', '.join(recent_names) or 'None'}")
    parts.append("")
    parts.append("AVAILABLE LIBRARY EXERCISES (USE ONLY THESE):")
    parts.append(_format_exercise_lines_from_docs(documents))
    parts.append("")
    parts.append("Return ONLY this JSON format:")
    parts.append(json.dumps(
        {
            "title": "Safe Workout Title",
            "description": "Brief description emphasizing safety",
            "duration_minutes": constraints.duration_minutes,
            "difficulty_level": constraints.difficulty_level,
            "exercises": [
                {
                    "id": "exercise_id_from_library",
                    "name": "Exact exercise name from library",
                    "category": "category",
                    "sets": 3,
                    "reps": 12,
                    "duration_seconds": 0,
                    "rest_seconds": 90,
                    "intensity": 3,
                    "equipment": ["required_equipment"],
                    "safety_notes": "Specific safety considerations",
                }
            ],
            "equipment_needed": ["equipment"],
            "tags": ["tag"],
            "safety_notes": ["note"],
        },
        ensure_ascii=False,
    ))
    return "\n".join(parts)


# ============================================================
# Parse (untrusted boundary)
# ============================================================

def parse_generated_plan(text: Any, eligible: List[LibraryExercise]) -> ParseResult:
    if not isinstance(text, str) or not text.strip():
        return ParseError(reason="empty_response")

    try:
        data = json.loads(text)
    except (TypeError, ValueError) as e:
        return ParseError(reason="invalid_json", errors=[str(e)])

    if not isinstance(data, dict):
        return ParseError(reason="not_an_object", errors=[type(data).__name__])

    try:
        plan = GeneratedPlan.model_validate(data)
    except ValidationError as e:
        errs = [f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg')}" for err in e.errors()]
        return ParseError(reason="schema_mismatch", errors=errs)

    allowed = {ex.id for ex in eligible}
    unknown = [ex.id for ex in plan.exercises if ex.id not in allowed]
    if unknown:
        return ParseError(reason="exercise_not_in_library", errors=unknown)

    return ParsedPlan(plan=plan)


# ============================================================
# Clamps
# ============================================================

def clamp_exercise(gen: GeneratedExercise, source: LibraryExercise, envelope: SafetyEnvelope) -> PlanExercise:
    """Build a plan exercise: identity from the library, numbers from the generator, clamped."""
    return PlanExercise(
        id=source.id,
        name=source.name,
        category=source.category,
        muscle_groups=list(source.muscle_groups),
        sets=min(gen.sets, envelope.max_sets_per_exercise),
        reps=min(gen.reps, envelope.max_reps_per_set),
        duration_seconds=gen.duration_seconds,
        rest_seconds=max(gen.rest_seconds, envelope.rest_for_category(source.category)),
        intensity=gen.intensity,
        equipment=list(source.equipment),
        safety_notes=gen.safety_notes,
    )


def build_plan(
    parsed: GeneratedPlan,
    eligible: List[LibraryExercise],
    constraints: WorkoutConstraints,
    envelope: SafetyEnvelope,
) -> WorkoutPlan:
    by_id = {ex.id: ex for ex in eligible}
    exercises = [clamp_exercise(g, by_id[g.id], envelope) for g in parsed.exercises]
    return WorkoutPlan(
        title=parsed.title,
        description=parsed.description,
        duration_minutes=constraints.duration_minutes,
        difficulty_level=min(parsed.difficulty_level, constraints.difficulty_level),
        exercises=exercises,
        equipment_needed=equipment_needed(exercises),
        generated_by="llm",
        calories_estimate=estimate_calories(exercises),
        tags=list(parsed.tags),
        safety_notes=list(parsed.safety_notes),
    )


# ============================================================
# Call
# ============================================================

def call_with_timeout(fn: Callable[[], T], timeout_seconds: float) -> T:
    """
    Run `fn` on a worker thread and stop waiting after `timeout_seconds`.

    The worker is abandoned on timeout; its result is discarded.
    """
    pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="safeplan-llm")
    future = pool.submit(fn)
    try:
        return future.result(timeout=timeout_seconds)
    finally:
        pool.shutdown(wait=False, cancel_futures=True)


def _timeout_for(llm: Any) -> float:
    cfg = getattr(llm, "cfg", None)
    return float(getattr(cfg, "timeout_seconds", None) or DEFAULT_TIMEOUT_SECONDS)


def generate_candidate(
    llm: Any,
    constraints: WorkoutConstraints,
    preferences: UserPreferences,
    eligible: List[LibraryExercise],
    history: Optional[List[HistorySession]] = None,
    context: Optional[UserSafetyContext] = None,
    envelope: Optional[SafetyEnvelope] = None,
    documents: Optional[List[Document]] = None,
    timeout_seconds: Optional[float] = None,
) -> WorkoutPlan:
    """
    One round trip to the text generator. Any failure raises GenerationError.
    """
    env = envelope or load_envelope()
    ctx = context or UserSafetyContext()
    docs = documents if documents is not None else eligible_to_documents(eligible)
    prompt = _build_prompt(
        constraints=constraints,
        preferences=preferences,
        context=ctx,
        documents=docs,
        recent_names=recent_exercise_names(history or []),
        envelope=env,
    )
    timeout = timeout_seconds if timeout_seconds is not None else _timeout_for(llm)

    try:
        text = call_with_timeout(lambda: llm.generate_json_text(prompt, system=SYSTEM_PROMPT), timeout)
    except FutureTimeoutError as e:
        logger.warning(f"[LLM] generation timed out after {timeout}s")
        raise GenerationError("Generation timed out", {"timeout_seconds": timeout}) from e
    except Exception as e:
        logger.warning(f"[LLM] generation failed: {e}")
        raise GenerationError("Generation failed", {"reason": str(e)}) from e

    result = parse_generated_plan(text, eligible)
    if isinstance(result, ParseError):
        logger.warning(f"[LLM] unusable output: {result.reason} {result.errors[:5]}")
        raise GenerationError("Generated plan failed schema validation", result.model_dump())

    return build_plan(result.plan, eligible, constraints, env)
