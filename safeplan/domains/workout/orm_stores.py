from __future__ import annotations

from datetime import timedelta
from typing import Any, Dict, List, Optional, Sequence

from django.db import DatabaseError
from django.utils import timezone

from safeplan.domains.workout.envelope import SafetyEnvelope, load_envelope
from safeplan.domains.workout.errors import StoreError
from safeplan.domains.workout.schemas import HistorySession, LibraryExercise, UserSafetyContext
from safeplan.domains.workout.stores import TextGenerator, WorkoutServices


class DjangoExerciseLibrary:
    """
    Library store over the Exercise table.

    Rating and difficulty are filtered in SQL. JSON list overlap is applied in
    Python so the query runs on SQLite as well as Postgres.
    """

    def query_eligible(
        self,
        min_safety_rating: int,
        equipment: Sequence[str],
        max_difficulty: int,
        muscle_groups: Optional[Sequence[str]] = None,
    ) -> List[LibraryExercise]:
        from safeplan.models import Exercise

        equip = set(equipment or [])
        focus = set(muscle_groups or [])
        try:
            rows = list(
                Exercise.objects.filter(
                    safety_rating__gte=min_safety_rating,
                    difficulty_level__lte=max_difficulty,
                ).order_by("id")
            )
        except DatabaseError as e:
            raise StoreError("Failed to retrieve exercise library", {"reason": str(e)}) from e

        out: List[LibraryExercise] = []
        for row in rows:
            ex = row.to_library_exercise()
            if not equip.intersection(ex.equipment):
                continue
            if focus and not focus.intersection(ex.muscle_groups):
                continue
            out.append(ex)
        return out

    def get(self, exercise_id: str) -> Optional[LibraryExercise]:
        from safeplan.models import Exercise

        key = str(exercise_id or "").strip()
        if not key.isdigit():
            return None
        try:
            row = Exercise.objects.filter(pk=int(key)).first()
        except DatabaseError as e:
            raise StoreError("Failed to read exercise library", {"exercise_id": key, "reason": str(e)}) from e
        return row.to_library_exercise() if row else None


class DjangoUserProfiles:
    def get_context(self, user_id: str) -> Optional[UserSafetyContext]:
        from safeplan.models import UserSafetyProfile

        try:
            row = UserSafetyProfile.objects.filter(user_id=str(user_id)).first()
        except DatabaseError as e:
            raise StoreError("Failed to read user profile", {"user_id": user_id, "reason": str(e)}) from e
        return row.to_context() if row else None


class DjangoWorkoutHistory:
    def recent_sessions(self, user_id: str, days: int, limit: int = 20) -> List[HistorySession]:
        from safeplan.models import WorkoutSession

        since = timezone.now() - timedelta(days=days)
        try:
            rows = list(
                WorkoutSession.objects.filter(
                    user_id=str(user_id),
                    status=WorkoutSession.Status.COMPLETED,
                    completed_at__gte=since,
                )
                .order_by("-completed_at")
                .prefetch_related("exercises")[:limit]
            )
        except DatabaseError as e:
            raise StoreError("Failed to read workout history", {"user_id": user_id, "reason": str(e)}) from e
        return [row.to_history() for row in rows]


class DjangoAuditLog:
    COLUMNS = (
        "request_id",
        "user_id",
        "success",
        "method",
        "validation_type",
        "risk_level",
        "safety_score",
        "is_safe",
        "error_message",
    )

    def append(self, record: Dict[str, Any]) -> None:
        from safeplan.models import GenerationAuditLog

        fields: Dict[str, Any] = {}
        for name in self.COLUMNS:
            value = record.get(name)
            if value is None:
                continue
            fields[name] = value
        GenerationAuditLog.objects.create(kind=record.get("kind") or "generation", payload=record, **fields)


def build_orm_services(
    llm: Optional[TextGenerator] = None,
    envelope: Optional[SafetyEnvelope] = None,
) -> WorkoutServices:
    return WorkoutServices(
        library=DjangoExerciseLibrary(),
        profiles=DjangoUserProfiles(),
        history=DjangoWorkoutHistory(),
        audit_log=DjangoAuditLog(),
        llm=llm,
        envelope=envelope or load_envelope(),
    )
