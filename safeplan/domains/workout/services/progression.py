from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

from loguru import logger

from safeplan.domains.workout import rules
from safeplan.domains.workout.envelope import SafetyEnvelope, load_envelope
from safeplan.domains.workout.schemas import HistorySession, SafetyReport, SafetyViolation, UserSafetyContext
from safeplan.domains.workout.services.safety import build_report


def _utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def week_start(d: date) -> date:
    """Sunday on or before `d`."""
    return d - timedelta(days=(d.weekday() + 1) % 7)


def sessions_in_window(
    sessions: List[HistorySession],
    now: Optional[datetime] = None,
    window_days: int = rules.PROGRESSION_WINDOW_DAYS,
    limit: int = rules.PROGRESSION_SESSION_LIMIT,
) -> List[HistorySession]:
    """Sessions completed in the window, oldest first."""
    now = _utc(now or datetime.now(timezone.utc))
    since = now - timedelta(days=window_days)
    rows = [s for s in sessions or [] if since <= _utc(s.completed_at) <= now]
    rows.sort(key=lambda s: _utc(s.completed_at), reverse=True)
    rows = rows[:limit]
    rows.reverse()
    return rows


def weekly_volumes(sessions: List[HistorySession]) -> List[Tuple[date, int]]:
    buckets: Dict[date, int] = {}
    for s in sessions:
        key = week_start(_utc(s.completed_at).date())
        buckets[key] = buckets.get(key, 0) + s.volume
    return sorted(buckets.items())


def weekly_increase(volumes: List[Tuple[date, int]]) -> float:
    if len(volumes) < 2:
        return 0.0
    previous, latest = volumes[-2][1], volumes[-1][1]
    if previous <= 0:
        return 0.0
    return max(0.0, (latest - previous) / previous)


def session_intensity(session: HistorySession) -> float:
    if not session.exercises:
        return 0.0
    total = sum(
        ex.intensity if ex.intensity else rules.DEFAULT_SESSION_INTENSITY
        for ex in session.exercises
    )
    return total / len(session.exercises)


def intensity_rising_too_fast(sessions: List[HistorySession]) -> bool:
    """Mean intensity strictly increased in at least 3 consecutive sessions of the last 5."""
    recent = sessions[-rules.INTENSITY_TREND_SESSIONS:]
    run = best = 0
    previous = 0.0
    for s in recent:
        current = session_intensity(s)
        if previous > 0 and current > previous:
            run += 1
        else:
            run = 0
        best = max(best, run)
        previous = current
    return best >= rules.INTENSITY_TREND_MIN_INCREASES


def validate_progression_safety(
    sessions: List[HistorySession],
    context: Optional[UserSafetyContext] = None,
    envelope: Optional[SafetyEnvelope] = None,
    now: Optional[datetime] = None,
) -> SafetyReport:
    env = envelope or load_envelope()
    ctx = context or UserSafetyContext()
    window = sessions_in_window(sessions, now=now)

    violations: List[SafetyViolation] = []
    if window:
        increase = weekly_increase(weekly_volumes(window))
        if increase > env.weekly_volume_increase_max:
            violations.append(SafetyViolation(
                type="progression",
                severity="error",
                description=(
                    f"Weekly volume increase ({increase * 100:.1f}%) exceeds safe limit "
                    f"({env.weekly_volume_increase_max * 100:g}%)"
                ),
                recommendation="Reduce training volume increase to prevent overreaching",
            ))

        if intensity_rising_too_fast(window):
            violations.append(SafetyViolation(
                type="progression",
                severity="warning",
                description="Intensity increasing too rapidly",
                recommendation="Allow more time for adaptation between intensity increases",
            ))

    extra = list(rules.PROGRESSION_RECOMMENDATIONS)
    if ctx.experience_level == "beginner":
        extra.append(rules.BEGINNER_PROGRESSION_RECOMMENDATION)

    report = build_report(violations, ctx, extra_recommendations=extra)
    logger.info(
        f"[SAFETY] progression sessions={len(window)} score={report.safety_score} risk={report.risk_level}"
    )
    return report
