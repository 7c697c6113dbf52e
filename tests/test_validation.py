"""Standalone validation entry point."""

from datetime import datetime, time, timedelta, timezone

import pytest

from safeplan.domains.workout import ConstraintValidationError, StoreError, run_safety_validation
from safeplan.domains.workout.schemas import HistoryExercise
from safeplan.domains.workout.services.progression import week_start
from tests.factories import BrokenAuditLog, session


PLAN_WITH_GOOD_MORNING = {
    "title": "Posterior chain",
    "duration_minutes": 40,
    "exercises": [
        {"id": "4", "name": "Glute Bridge", "sets": 3, "reps": 12},
        {"id": "7", "name": "Good Morning", "sets": 3, "reps": 10},
    ],
}


def test_invalid_validation_type(services):
    with pytest.raises(ConstraintValidationError) as exc:
        run_safety_validation({"validation_type": "nutrition"}, services)
    assert exc.value.details["fields"] == ["validation_type"]


def test_workout_mode_merges_stored_profile(services, audit_log):
    anonymous = run_safety_validation({"validation_type": "workout", "workout_plan": PLAN_WITH_GOOD_MORNING}, services)
    with_profile = run_safety_validation(
        {"validation_type": "workout", "workout_plan": PLAN_WITH_GOOD_MORNING, "user_id": "u-back"},
        services,
    )

    assert anonymous.is_safe is True
    assert with_profile.is_safe is False
    assert with_profile.count("critical") == 1

    record = audit_log.records[-1]
    assert record["kind"] == "validation"
    assert record["validation_type"] == "workout"
    assert record["user_id"] == "u-back"
    assert record["critical_violations"] == 1
    assert record["is_safe"] is False


def test_request_context_is_unioned_with_profile(services):
    report = run_safety_validation(
        {
            "validation_type": "exercise",
            "user_id": "u-back",
            "user_context": {"injury_history": ["knee"]},
            "exercise_suggestion": {"id": "13", "name": "Box Jump", "sets": 3, "reps": 8},
        },
        services,
    )

    assert report.is_safe is False
    assert report.violations[0].type == "medical"


def test_exercise_mode_unknown_id(services):
    report = run_safety_validation(
        {"validation_type": "exercise", "exercise_suggestion": {"id": "404", "name": "Dragon Flag"}},
        services,
    )

    assert (report.is_safe, report.risk_level, report.safety_score) == (False, "very_high", 0)


def test_malformed_payload_names_fields(services):
    with pytest.raises(ConstraintValidationError) as exc:
        run_safety_validation(
            {"validation_type": "workout", "workout_plan": {"duration_minutes": -5, "exercises": []}},
            services,
        )
    assert "workout_plan.duration_minutes" in exc.value.details["fields"]


def test_missing_payload(services):
    with pytest.raises(ConstraintValidationError) as exc:
        run_safety_validation({"validation_type": "exercise"}, services)
    assert exc.value.details["fields"] == ["exercise_suggestion"]


def test_progression_requires_user(services):
    with pytest.raises(ConstraintValidationError):
        run_safety_validation({"validation_type": "progression"}, services)


def test_progression_without_history_store(services):
    services.history = None
    with pytest.raises(StoreError):
        run_safety_validation({"validation_type": "progression", "user_id": "u-1"}, services)


def test_progression_mode_reads_history(services, history):
    this_week = datetime.combine(week_start(datetime.now(timezone.utc).date()), time(0, 0), tzinfo=timezone.utc)
    history.add("u-1", session(this_week - timedelta(days=7), HistoryExercise(name="Squat", sets=10, reps=100)))
    history.add("u-1", session(this_week, HistoryExercise(name="Squat", sets=12, reps=100)))
    history.add("u-2", session(this_week, HistoryExercise(name="Squat", sets=1, reps=1)))

    report = run_safety_validation({"validation_type": "progression", "user_id": "u-1"}, services)

    assert report.is_safe is False
    assert [(v.type, v.severity) for v in report.violations] == [("progression", "error")]


def test_audit_failure_does_not_fail_validation(services):
    services.audit_log = BrokenAuditLog()

    report = run_safety_validation({"validation_type": "workout", "workout_plan": PLAN_WITH_GOOD_MORNING}, services)

    assert report.is_safe is True


def test_scalar_user_context_list_is_rejected(services):
    with pytest.raises(ConstraintValidationError) as exc:
        run_safety_validation(
            {
                "validation_type": "exercise",
                "user_context": {"injury_history": 5},
                "exercise_suggestion": {"id": "1", "name": "Push-up"},
            },
            services,
        )

    assert exc.value.details["fields"] == ["user_context.injury_history"]
