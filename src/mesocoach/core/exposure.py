"""
Exercise exposure: how recently and how often each exercise was trained.

Exposure feeds the rotation-novelty score.  The map is keyed by exercise
*name* so that renamed-id duplicates in the library share one history.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Literal

from .config import (
    EXPOSURE_WINDOWS_WEEKS,
    TREND_LOOKBACK_SESSIONS,
    TREND_MIN_SESSIONS,
    TREND_SLOPE_THRESHOLD_PCT,
)
from .exercises.base import Exercise
from .metrics import estimate_1rm, linear_slope
from .models import PerformedExercise, WorkoutHistoryEntry

Trend = Literal["improving", "stalled", "declining"]


@dataclass
class ExerciseExposure:
    exercise_id: str
    name: str
    last_used: str  # YYYY-MM-DD
    weeks_ago: int
    usage_counts: dict[int, int] = field(default_factory=dict)  # window weeks -> sessions
    trend: Trend = "improving"


def _days_between(earlier: str, later: str) -> int:
    a = datetime.strptime(earlier, "%Y-%m-%d")
    b = datetime.strptime(later, "%Y-%m-%d")
    return (b - a).days


def _session_strength(performed: PerformedExercise) -> float:
    """Best-set e1RM; reps for unloaded work."""
    best = 0.0
    for s in performed.sets:
        if s.skipped or s.reps <= 0:
            continue
        if s.load:
            best = max(best, estimate_1rm(s.load, s.reps))
        else:
            best = max(best, float(s.reps))
    return best


def classify_trend(values: list[float]) -> Trend:
    """
    Classify a chronological strength series.

    Fewer than 3 points reads as "improving" (new exercises are not
    penalized).  Otherwise the least-squares slope over the last 6 points
    relative to the first of them: ≥ +2.5% improving, ≤ −2.5% declining.
    """
    if len(values) < TREND_MIN_SESSIONS:
        return "improving"
    window = values[-TREND_LOOKBACK_SESSIONS:]
    baseline = window[0]
    if baseline <= 0:
        return "stalled"
    pct = linear_slope(window) / baseline * 100
    if pct >= TREND_SLOPE_THRESHOLD_PCT:
        return "improving"
    if pct <= -TREND_SLOPE_THRESHOLD_PCT:
        return "declining"
    return "stalled"


def build_exposure(
    history: Iterable[WorkoutHistoryEntry],
    library: dict[str, Exercise],
    as_of: str,
) -> dict[str, ExerciseExposure]:
    """
    Build the exposure map from performed history up to *as_of*.

    Args:
        history: Logged workouts (any order)
        library: Exercise lookup by id, used for display names
        as_of: Reference date (YYYY-MM-DD); later entries are ignored

    Returns:
        {exercise name: ExerciseExposure}
    """
    performed = sorted(
        (e for e in history if e.is_performed and e.date <= as_of),
        key=lambda e: e.date,
    )

    dates_by_name: dict[str, list[str]] = {}
    strength_by_name: dict[str, list[float]] = {}
    ids_by_name: dict[str, str] = {}

    for entry in performed:
        for ex in entry.exercises:
            exercise = library.get(ex.exercise_id)
            name = exercise.name if exercise is not None else ex.exercise_id
            ids_by_name.setdefault(name, ex.exercise_id)
            dates_by_name.setdefault(name, []).append(entry.date)
            strength_by_name.setdefault(name, []).append(_session_strength(ex))

    exposure: dict[str, ExerciseExposure] = {}
    for name, dates in dates_by_name.items():
        last = dates[-1]
        ages = [_days_between(d, as_of) for d in dates]
        exposure[name] = ExerciseExposure(
            exercise_id=ids_by_name[name],
            name=name,
            last_used=last,
            weeks_ago=_days_between(last, as_of) // 7,
            usage_counts={w: sum(1 for a in ages if a < w * 7) for w in EXPOSURE_WINDOWS_WEEKS},
            trend=classify_trend(strength_by_name[name]),
        )
    return exposure
