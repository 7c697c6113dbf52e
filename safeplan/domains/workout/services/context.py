from __future__ import annotations

from typing import Any, List, Optional, Union

from safeplan.domains.workout import rules
from safeplan.domains.workout.contract import canonicalize_tokens
from safeplan.domains.workout.errors import StoreError
from safeplan.domains.workout.schemas import HistorySession, UserPreferences, UserSafetyContext


Override = Union[UserSafetyContext, UserPreferences, None]


def _union(*lists: Optional[List[str]]) -> List[str]:
    merged: List[str] = []
    for xs in lists:
        merged.extend(xs or [])
    return canonicalize_tokens(merged)


def merge_context(profile: Optional[UserSafetyContext], override: Override = None) -> UserSafetyContext:
    """
    Merge the stored profile with a request-supplied override.

    List fields are the union of both sides. Scalar fields take the override
    when it is set, else the stored value.
    """
    p = profile or UserSafetyContext()
    if override is None:
        return p.model_copy()

    limitations: List[str] = list(getattr(override, "limitations", None) or [])
    age = getattr(override, "age", None)

    return UserSafetyContext(
        injury_history=_union(p.injury_history, override.injury_history),
        limitations=_union(p.limitations, limitations),
        experience_level=override.experience_level or p.experience_level,
        medical_conditions=_union(p.medical_conditions, override.medical_conditions),
        age=age if age is not None else p.age,
    )


def preferences_for(preferences: Optional[UserPreferences], context: UserSafetyContext) -> UserPreferences:
    """Request preferences with injury / experience / medical filled from the merged context."""
    prefs = preferences or UserPreferences()
    return prefs.model_copy(
        update={
            "experience_level": context.experience_level,
            "injury_history": list(context.injury_history),
            "medical_conditions": list(context.medical_conditions),
        }
    )


def load_user_context(profile_store: Any, user_id: Optional[str], override: Override = None) -> UserSafetyContext:
    """Read the stored profile for `user_id` (if any) and merge the override into it."""
    profile: Optional[UserSafetyContext] = None
    if user_id and profile_store is not None:
        try:
            profile = profile_store.get_context(user_id)
        except StoreError:
            raise
        except Exception as e:
            raise StoreError("Failed to read user profile", {"user_id": user_id, "reason": str(e)}) from e
    return merge_context(profile, override)


def load_recent_sessions(history_store: Any, user_id: Optional[str]) -> List[HistorySession]:
    """Completed sessions in the progression window; empty for anonymous requests."""
    if not user_id or history_store is None:
        return []
    try:
        return list(history_store.recent_sessions(
            user_id,
            days=rules.PROGRESSION_WINDOW_DAYS,
            limit=rules.PROGRESSION_SESSION_LIMIT,
        ))
    except StoreError:
        raise
    except Exception as e:
        raise StoreError("Failed to read workout history", {"user_id": user_id, "reason": str(e)}) from e
