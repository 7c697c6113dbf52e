"""Django-backed stores and a full pipeline run over the database."""

from datetime import timedelta

import pytest
from django.utils import timezone

from safeplan.domains.workout import run_safety_validation, run_workout_generation_pipeline
from safeplan.domains.workout.orm_stores import (
    DjangoAuditLog,
    DjangoExerciseLibrary,
    DjangoUserProfiles,
    DjangoWorkoutHistory,
    build_orm_services,
)
from safeplan.models import Exercise, GenerationAuditLog, SessionExercise, UserSafetyProfile, WorkoutSession
from tests.factories import LIBRARY_ROWS, FakeTextGenerator, gen_exercise, plan_json

pytestmark = pytest.mark.django_db


@pytest.fixture
def exercises():
    """The shared library rows persisted, keyed by name."""
    out = {}
    for row in LIBRARY_ROWS:
        fields = {k: v for k, v in row.items() if k != "id"}
        out[row["name"]] = Exercise.objects.create(**fields)
    return out


def _completed(user_id, days_ago, *items, status=WorkoutSession.Status.COMPLETED):
    s = WorkoutSession.objects.create(user_id=user_id, status=status, completed_at=timezone.now() - timedelta(days=days_ago))
    for order, (name, sets, reps) in enumerate(items):
        SessionExercise.objects.create(session=s, name=name, sets=sets, reps=reps, order=order)
    return s


def test_library_query_filters(exercises):
    rows = DjangoExerciseLibrary().query_eligible(min_safety_rating=3, equipment=["bodyweight"], max_difficulty=2)
    names = {ex.name for ex in rows}

    assert "Push-up" in names
    assert "Good Morning" in names
    assert "Kipping Pull-up" not in names
    assert "Lunge" in names
    assert "Box Jump" not in names
    assert "Deadlift" not in names


def test_library_query_muscle_focus(exercises):
    rows = DjangoExerciseLibrary().query_eligible(3, ["bodyweight"], 5, muscle_groups=["core"])
    assert {ex.name for ex in rows} == {"Plank", "Mountain Climber"}


def test_library_get(exercises):
    store = DjangoExerciseLibrary()
    push_up = exercises["Push-up"]

    found = store.get(str(push_up.pk))
    assert found.name == "Push-up"
    assert found.id == str(push_up.pk)
    assert store.get("push-up") is None
    assert store.get("999999") is None


def test_profile_store():
    UserSafetyProfile.objects.create(user_id="u-7", experience_level="beginner", injury_history=["knee"], age=41)

    ctx = DjangoUserProfiles().get_context("u-7")

    assert ctx.experience_level == "beginner"
    assert ctx.injury_history == ["knee"]
    assert ctx.age == 41
    assert DjangoUserProfiles().get_context("nobody") is None


def test_history_store_recent_completed_only():
    _completed("u-1", 2, ("Squat", 3, 10))
    _completed("u-1", 9, ("Squat", 3, 8), ("Plank", 2, 0))
    _completed("u-1", 45, ("Squat", 3, 5))
    _completed("u-1", 1, ("Squat", 3, 10), status=WorkoutSession.Status.PLANNED)
    _completed("u-2", 1, ("Lunge", 3, 10))

    sessions = DjangoWorkoutHistory().recent_sessions("u-1", days=30)

    assert len(sessions) == 2
    assert sessions[0].completed_at > sessions[1].completed_at
    assert [ex.name for ex in sessions[1].exercises] == ["Squat", "Plank"]
    assert sessions[1].volume == 24


def test_audit_log_append():
    DjangoAuditLog().append({
        "kind": "validation",
        "user_id": "u-1",
        "validation_type": "exercise",
        "risk_level": "low",
        "safety_score": 95,
        "is_safe": True,
        "violations_count": 1,
    })

    row = GenerationAuditLog.objects.get()
    assert row.kind == "validation"
    assert row.safety_score == 95
    assert row.method == ""
    assert row.payload["violations_count"] == 1


def test_generation_over_database(exercises):
    push_up, plank = exercises["Push-up"], exercises["Plank"]
    llm = FakeTextGenerator(response=plan_json([
        gen_exercise(str(push_up.pk), "Push-up", sets=4, reps=12),
        gen_exercise(str(plank.pk), "Plank", sets=3, reps=0, duration_seconds=60),
    ]))
    UserSafetyProfile.objects.create(user_id="u-9", experience_level="intermediate")
    _completed("u-9", 3, ("Lunge", 3, 12))

    result = run_workout_generation_pipeline(
        {"constraints": {"duration_minutes": 30, "difficulty_level": 2, "equipment_available": ["bodyweight"]},
         "user_id": "u-9"},
        build_orm_services(llm=llm),
    )

    assert result.plan.generated_by == "llm"
    assert [ex.name for ex in result.plan.exercises] == ["Push-up", "Plank"]
    assert "Recent exercises (avoid repetition): Lunge" in llm.prompts[0]

    row = GenerationAuditLog.objects.get(kind="generation")
    assert row.success is True
    assert row.method == "llm"
    assert row.user_id == "u-9"
    assert row.request_id == result.request_id


def test_validation_over_database(exercises):
    UserSafetyProfile.objects.create(user_id="u-3", injury_history=["lower_back"])
    good_morning = exercises["Good Morning"]

    report = run_safety_validation(
        {
            "validation_type": "workout",
            "user_id": "u-3",
            "workout_plan": {"duration_minutes": 30, "exercises": [{"id": good_morning.pk, "sets": 3, "reps": 10}]},
        },
        build_orm_services(),
    )

    assert report.is_safe is False
    assert report.violations[0].affected_exercise == "Good Morning"
    assert GenerationAuditLog.objects.filter(kind="validation", is_safe=False).count() == 1
