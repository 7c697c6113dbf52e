"""Progression mode: weekly volume and intensity trend over recent history."""

from datetime import date, datetime, timezone

from safeplan.domains.workout.schemas import HistoryExercise, UserSafetyContext
from safeplan.domains.workout.services.progression import (
    intensity_rising_too_fast,
    session_intensity,
    sessions_in_window,
    validate_progression_safety,
    week_start,
    weekly_increase,
    weekly_volumes,
)
from tests.factories import session


def _at(day, hour=18):
    return datetime(2026, 10, day, hour, 0, tzinfo=timezone.utc)


def _volume_session(day, sets_x_reps, intensity=None):
    return session(
        _at(day),
        *[HistoryExercise(name=f"ex{i}", sets=s, reps=r, intensity=intensity) for i, (s, r) in enumerate(sets_x_reps)],
    )


def test_week_starts_on_sunday():
    assert week_start(date(2026, 10, 4)) == date(2026, 10, 4)  # Sunday
    assert week_start(date(2026, 10, 10)) == date(2026, 10, 4)  # Saturday
    assert week_start(date(2026, 10, 12)) == date(2026, 10, 11)


def test_twenty_percent_weekly_jump_is_an_error(now):
    sessions = [
        _volume_session(5, [(5, 100), (5, 100)]),  # week of Oct 4: 1000
        _volume_session(12, [(6, 100), (6, 100)]),  # week of Oct 11: 1200
    ]

    report = validate_progression_safety(sessions, UserSafetyContext(), now=now)

    assert report.is_safe is False
    assert [(v.type, v.severity) for v in report.violations] == [("progression", "error")]
    assert "20.0%" in report.violations[0].description
    assert report.safety_score == 85
    assert report.risk_level == "medium"


def test_ten_percent_weekly_increase_is_allowed(now):
    sessions = [
        _volume_session(6, [(10, 100)]),
        _volume_session(13, [(11, 100)]),
    ]

    report = validate_progression_safety(sessions, UserSafetyContext(), now=now)

    assert report.is_safe is True
    assert report.violations == []


def test_only_last_two_weeks_compared(now):
    sessions = [
        _volume_session(1, [(1, 100)]),
        _volume_session(5, [(10, 100)]),
        _volume_session(12, [(9, 100)]),
    ]
    report = validate_progression_safety(sessions, UserSafetyContext(), now=now)
    assert report.violations == []


def test_sessions_outside_window_are_ignored(now):
    old = session(datetime(2026, 8, 1, tzinfo=timezone.utc), HistoryExercise(name="a", sets=1, reps=1))
    future = session(datetime(2026, 11, 1, tzinfo=timezone.utc), HistoryExercise(name="a", sets=1, reps=1))
    recent = _volume_session(12, [(3, 10)])

    assert sessions_in_window([old, future, recent], now=now) == [recent]


def test_window_is_oldest_first_and_capped(now):
    rows = [_volume_session(day, [(1, 1)]) for day in range(1, 14)]
    picked = sessions_in_window(list(reversed(rows)), now=now, limit=5)

    assert [s.completed_at.day for s in picked] == [9, 10, 11, 12, 13]


def test_weekly_increase_from_zero_previous_is_zero():
    assert weekly_increase([(date(2026, 10, 4), 0), (date(2026, 10, 11), 500)]) == 0.0
    assert weekly_increase([(date(2026, 10, 4), 500)]) == 0.0


def test_weekly_volumes_bucket_by_week():
    sessions = [_volume_session(5, [(2, 10)]), _volume_session(9, [(3, 10)]), _volume_session(11, [(1, 10)])]
    assert weekly_volumes(sessions) == [(date(2026, 10, 4), 50), (date(2026, 10, 11), 10)]


def test_session_intensity_defaults_missing_values():
    s = session(_at(5), HistoryExercise(name="a", intensity=7), HistoryExercise(name="b"))
    assert session_intensity(s) == 6.0
    assert session_intensity(session(_at(5))) == 0.0


def test_three_consecutive_rises_is_a_warning(now):
    sessions = [_volume_session(day, [(1, 10)], intensity=i) for day, i in zip(range(5, 10), [4, 5, 6, 7, 8])]

    assert intensity_rising_too_fast(sessions) is True
    report = validate_progression_safety(sessions, UserSafetyContext(), now=now)

    assert report.is_safe is True
    assert [(v.type, v.severity) for v in report.violations] == [("progression", "warning")]
    assert report.safety_score == 95


def test_interrupted_rise_is_not_a_trend():
    sessions = [_volume_session(day, [(1, 10)], intensity=i) for day, i in zip(range(5, 10), [4, 5, 4, 5, 6])]
    assert intensity_rising_too_fast(sessions) is False


def test_empty_history_is_safe_with_guidance():
    report = validate_progression_safety([], UserSafetyContext(experience_level="beginner"))

    assert report.is_safe is True
    assert report.safety_score == 100
    assert report.recommendations[0].startswith("Follow the 10% rule")
    assert "Focus on form and consistency before increasing intensity" in report.recommendations
