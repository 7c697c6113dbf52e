"""Shared fixtures: a small approved library, in-memory stores and a scripted generator."""

from datetime import datetime, timedelta, timezone
from typing import Callable, List

import pytest

from safeplan.domains.workout.envelope import load_envelope
from safeplan.domains.workout.schemas import LibraryExercise, UserSafetyContext
from safeplan.domains.workout.stores import (
    InMemoryAuditLog,
    InMemoryExerciseLibrary,
    InMemoryUserProfiles,
    InMemoryWorkoutHistory,
    WorkoutServices,
)
from tests.factories import FakeTextGenerator, gen_exercise, make_library, plan_json


@pytest.fixture
def library_rows() -> List[LibraryExercise]:
    """The approved library as plain snapshots."""
    return make_library()


@pytest.fixture
def library(library_rows) -> InMemoryExerciseLibrary:
    return InMemoryExerciseLibrary(library_rows)


@pytest.fixture
def envelope():
    return load_envelope()


@pytest.fixture
def profiles() -> InMemoryUserProfiles:
    store = InMemoryUserProfiles()
    store.set("u-back", UserSafetyContext(injury_history=["lower_back"], experience_level="intermediate"))
    store.set("u-beginner", UserSafetyContext(experience_level="beginner"))
    return store


@pytest.fixture
def history() -> InMemoryWorkoutHistory:
    return InMemoryWorkoutHistory()


@pytest.fixture
def audit_log() -> InMemoryAuditLog:
    return InMemoryAuditLog()


@pytest.fixture
def good_generator() -> FakeTextGenerator:
    """Returns a plan over bodyweight exercises with out-of-envelope numbers."""
    return FakeTextGenerator(response=plan_json([
        gen_exercise("1", "Push-up", sets=10, reps=50, rest_seconds=10),
        gen_exercise("2", "Bodyweight Squat", sets=4, reps=15),
        gen_exercise("3", "Plank", category="endurance", sets=3, reps=0, duration_seconds=45, rest_seconds=20),
    ]))


@pytest.fixture
def services(library, profiles, history, audit_log, good_generator, envelope) -> WorkoutServices:
    return WorkoutServices(
        library=library,
        profiles=profiles,
        history=history,
        audit_log=audit_log,
        llm=good_generator,
        envelope=envelope,
    )


@pytest.fixture
def now() -> datetime:
    # Wednesday
    return datetime(2026, 10, 14, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def days_ago(now) -> Callable[[float], datetime]:
    def _at(days: float) -> datetime:
        return now - timedelta(days=days)
    return _at
