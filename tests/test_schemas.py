"""Request and report models."""

import pytest
from pydantic import ValidationError

from safeplan.domains.workout.schemas import (
    SafetyReport,
    SafetyViolation,
    UserPreferences,
    UserSafetyContext,
    WorkoutConstraints,
)


def _violation(severity):
    return SafetyViolation(type="exercise", severity=severity, description=f"{severity} finding")


def test_report_counts_by_severity():
    report = SafetyReport(
        is_safe=False,
        risk_level="very_high",
        safety_score=0,
        violations=[_violation("critical"), _violation("warning"), _violation("critical")],
    )

    assert report.count("critical") == 2
    assert report.count("warning") == 1
    assert report.count("error") == 0
    assert SafetyReport(is_safe=True, risk_level="low", safety_score=100).count("critical") == 0


def test_list_fields_accept_comma_strings():
    prefs = UserPreferences(injury_history="Knee, lower_back", avoid_exercises="Burpee, Box Jump")

    assert prefs.injury_history == ["knee", "lower_back"]
    assert prefs.avoid_exercises == ["Burpee", "Box Jump"]


@pytest.mark.parametrize(
    "model, data, field",
    [
        (UserSafetyContext, {"injury_history": 5}, "injury_history"),
        (UserSafetyContext, {"limitations": True}, "limitations"),
        (UserPreferences, {"avoid_exercises": 7}, "avoid_exercises"),
        (UserPreferences, {"focus_areas": {"core": 1}}, "focus_areas"),
        (WorkoutConstraints, {"duration_minutes": 30, "difficulty_level": 2, "equipment_available": 3},
         "equipment_available"),
    ],
)
def test_scalar_list_fields_are_validation_errors(model, data, field):
    with pytest.raises(ValidationError) as exc:
        model.model_validate(data)

    assert [err["loc"] for err in exc.value.errors()] == [(field,)]
