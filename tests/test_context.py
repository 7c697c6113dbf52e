"""User context merge and history loading."""

import pytest

from safeplan.domains.workout.errors import StoreError
from safeplan.domains.workout.schemas import UserPreferences, UserSafetyContext
from safeplan.domains.workout.services.context import (
    load_recent_sessions,
    load_user_context,
    merge_context,
    preferences_for,
)
from safeplan.domains.workout.stores import InMemoryWorkoutHistory
from tests.factories import BrokenProfiles, session


class BrokenHistory:
    def recent_sessions(self, user_id, days, limit=20):
        raise OSError("history db down")


def test_merge_unions_lists_and_prefers_override_scalars():
    profile = UserSafetyContext(
        injury_history=["lower_back"],
        limitations=["no_jumping"],
        experience_level="beginner",
        medical_conditions=["asthma"],
        age=52,
    )
    override = UserSafetyContext(injury_history=["Knee", "lower_back"], experience_level="intermediate")

    merged = merge_context(profile, override)

    assert merged.injury_history == ["lower_back", "knee"]
    assert merged.limitations == ["no_jumping"]
    assert merged.medical_conditions == ["asthma"]
    assert merged.experience_level == "intermediate"
    assert merged.age == 52


def test_merge_with_preferences_keeps_profile_level():
    profile = UserSafetyContext(experience_level="advanced")
    merged = merge_context(profile, UserPreferences(injury_history=["wrist"]))

    assert merged.experience_level == "advanced"
    assert merged.injury_history == ["wrist"]


def test_merge_without_profile():
    assert merge_context(None, None) == UserSafetyContext()


def test_preferences_follow_merged_context():
    prefs = UserPreferences(focus_areas=["core"], avoid_exercises=["Burpee"])
    ctx = UserSafetyContext(experience_level="beginner", injury_history=["knee"])

    out = preferences_for(prefs, ctx)

    assert out.experience_level == "beginner"
    assert out.injury_history == ["knee"]
    assert out.focus_areas == ["core"]
    assert out.avoid_exercises == ["Burpee"]


def test_load_user_context_reads_profile(profiles):
    ctx = load_user_context(profiles, "u-back", UserPreferences(injury_history=["knee"]))
    assert ctx.injury_history == ["lower_back", "knee"]
    assert load_user_context(profiles, None, None) == UserSafetyContext()


def test_profile_failure_wrapped():
    with pytest.raises(StoreError) as exc:
        load_user_context(BrokenProfiles(), "u-1")
    assert exc.value.details["user_id"] == "u-1"


def test_recent_sessions(days_ago):
    history = InMemoryWorkoutHistory()
    history.add("u-1", session(days_ago(0)))

    assert load_recent_sessions(history, None) == []
    assert load_recent_sessions(None, "u-1") == []
    with pytest.raises(StoreError):
        load_recent_sessions(BrokenHistory(), "u-1")
