from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence

from typing_extensions import Protocol

from safeplan.domains.workout.envelope import SafetyEnvelope, load_envelope
from safeplan.domains.workout.schemas import (
    HistorySession,
    LibraryExercise,
    UserSafetyContext,
)


# ============================================================
# Collaborator contracts
# ============================================================

class ExerciseLibraryStore(Protocol):
    def query_eligible(
        self,
        min_safety_rating: int,
        equipment: Sequence[str],
        max_difficulty: int,
        muscle_groups: Optional[Sequence[str]] = None,
    ) -> List[LibraryExercise]:
        ...

    def get(self, exercise_id: str) -> Optional[LibraryExercise]:
        ...


class UserProfileStore(Protocol):
    def get_context(self, user_id: str) -> Optional[UserSafetyContext]:
        ...


class WorkoutHistoryStore(Protocol):
    def recent_sessions(self, user_id: str, days: int, limit: int = 20) -> List[HistorySession]:
        """Completed sessions in the last `days` days, newest first."""
        ...


class AuditLogStore(Protocol):
    def append(self, record: Dict[str, Any]) -> None:
        ...


class TextGenerator(Protocol):
    def generate_json_text(self, prompt: str, system: Optional[str] = None) -> str:
        ...


# ============================================================
# In-memory implementations (tests, scripts)
# ============================================================

class InMemoryExerciseLibrary:
    def __init__(self, exercises: Iterable[LibraryExercise] = ()) -> None:
        self._by_id: Dict[str, LibraryExercise] = {}
        for ex in exercises:
            self._by_id[ex.id] = ex

    def add(self, exercise: LibraryExercise) -> None:
        self._by_id[exercise.id] = exercise

    def all(self) -> List[LibraryExercise]:
        return list(self._by_id.values())

    def query_eligible(
        self,
        min_safety_rating: int,
        equipment: Sequence[str],
        max_difficulty: int,
        muscle_groups: Optional[Sequence[str]] = None,
    ) -> List[LibraryExercise]:
        equip = set(equipment or [])
        focus = set(muscle_groups or [])
        out: List[LibraryExercise] = []
        for ex in self._by_id.values():
            if ex.safety_rating < min_safety_rating:
                continue
            if ex.difficulty_level > max_difficulty:
                continue
            if not equip.intersection(ex.equipment):
                continue
            if focus and not focus.intersection(ex.muscle_groups):
                continue
            out.append(ex)
        return out

    def get(self, exercise_id: str) -> Optional[LibraryExercise]:
        return self._by_id.get(str(exercise_id))


class InMemoryUserProfiles:
    def __init__(self, profiles: Optional[Dict[str, UserSafetyContext]] = None) -> None:
        self._profiles = dict(profiles or {})

    def set(self, user_id: str, context: UserSafetyContext) -> None:
        self._profiles[user_id] = context

    def get_context(self, user_id: str) -> Optional[UserSafetyContext]:
        return self._profiles.get(user_id)


class InMemoryWorkoutHistory:
    def __init__(self, sessions: Optional[Dict[str, List[HistorySession]]] = None) -> None:
        self._sessions: Dict[str, List[HistorySession]] = {k: list(v) for k, v in (sessions or {}).items()}

    def add(self, user_id: str, session: HistorySession) -> None:
        self._sessions.setdefault(user_id, []).append(session)

    def recent_sessions(self, user_id: str, days: int, limit: int = 20) -> List[HistorySession]:
        since = datetime.now(timezone.utc) - timedelta(days=days)
        rows = [s for s in self._sessions.get(user_id, []) if _aware(s.completed_at) >= since]
        rows.sort(key=lambda s: _aware(s.completed_at), reverse=True)
        return rows[:limit]


class InMemoryAuditLog:
    def __init__(self) -> None:
        self.records: List[Dict[str, Any]] = []

    def append(self, record: Dict[str, Any]) -> None:
        self.records.append(dict(record))


def _aware(dt: datetime) -> datetime:
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=timezone.utc)


# ============================================================
# Collaborator bundle
# ============================================================

@dataclass
class WorkoutServices:
    """Everything a pipeline run needs from the outside world."""

    library: ExerciseLibraryStore
    profiles: Optional[UserProfileStore] = None
    history: Optional[WorkoutHistoryStore] = None
    audit_log: Optional[AuditLogStore] = None
    llm: Optional[TextGenerator] = None
    envelope: SafetyEnvelope = field(default_factory=load_envelope)
