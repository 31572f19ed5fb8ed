"""
Pure metric computation functions.

All functions are pure and typed for testability.
"""

from typing import Sequence

from .config import (
    EFFECTIVE_RPE_MIN,
    HIGH_VARIANCE_MIN_SETS,
    HIGH_VARIANCE_THRESHOLD,
    LOAD_ROUNDING_STEP,
    OUTLIER_TRIM_RANGE,
)
from .models import PerformedSet

BRZYCKI_MAX_REPS = 36  # The formula diverges at 37 reps


def estimate_1rm(load: float, reps: int) -> float:
    """
    Estimate a one-rep max with the Brzycki formula.

    e1RM = load × 36 / (37 − reps)

    Args:
        load: Load lifted for the set
        reps: Reps performed (clamped to 1..36)

    Returns:
        Estimated one-rep max, 0.0 for an empty set
    """
    if reps <= 0 or load <= 0:
        return 0.0
    r = min(reps, BRZYCKI_MAX_REPS)
    return load * 36 / (37 - r)


def round_to_step(value: float, step: float = LOAD_ROUNDING_STEP) -> float:
    """Round a load to the nearest plate step (0.5 by default), halves up."""
    if step <= 0:
        return value
    return int(value / step + 0.5) * step


def qualifying_sets(sets: Sequence[PerformedSet]) -> list[PerformedSet]:
    """
    Working sets that carry a progression signal.

    A set qualifies when it was not skipped, has reps and a recorded load,
    and, if an RPE was logged, it is at least 6.  Warm-ups and feeler sets
    fall below the RPE floor; sets logged without an RPE still count.

    Returns:
        Qualifying sets ordered by set_index
    """
    result = [
        s
        for s in sets
        if not s.skipped
        and s.reps > 0
        and s.load is not None
        and (s.rpe is None or s.rpe >= EFFECTIVE_RPE_MIN)
    ]
    return sorted(result, key=lambda s: s.set_index)


def trim_load_outliers(sets: Sequence[PerformedSet]) -> tuple[list[PerformedSet], bool]:
    """
    Drop sets whose load is far from the session median.

    Only applies to noisy sessions: at least four sets whose load spread is
    20% or more of the median.  Sets within 15% of the median are kept.  If
    trimming would leave nothing, the input is returned unchanged.

    Returns:
        (kept sets, whether the session was treated as high-variance)
    """
    loads = [s.load for s in sets if s.load is not None]
    mid = median(loads)
    if len(loads) < HIGH_VARIANCE_MIN_SETS or not mid or mid <= 0:
        return list(sets), False
    if (max(loads) - min(loads)) / mid < HIGH_VARIANCE_THRESHOLD:
        return list(sets), False
    kept = [s for s in sets if s.load is not None and abs(s.load - mid) / mid <= OUTLIER_TRIM_RANGE]
    return (kept or list(sets)), True


def top_set_load(sets: Sequence[PerformedSet]) -> float | None:
    """Load of the chronologically first set (lowest set_index)."""
    if not sets:
        return None
    return min(sets, key=lambda s: s.set_index).load


def modal_load(sets: Sequence[PerformedSet]) -> float | None:
    """
    Most frequent load among *sets*.

    Ties are broken, in order, by:
        1. highest occurrence count
        2. latest set index at which the load appears
        3. highest load value

    Returns:
        Modal load, or None for an empty sequence
    """
    stats: dict[float, tuple[int, int]] = {}
    for s in sets:
        if s.load is None:
            continue
        count, latest = stats.get(s.load, (0, 0))
        stats[s.load] = (count + 1, max(latest, s.set_index))
    if not stats:
        return None
    return max(stats, key=lambda load: (stats[load][0], stats[load][1], load))


def modal_value(values: Sequence[float]) -> float | None:
    """Most frequent value; ties go to the higher value."""
    if not values:
        return None
    counts: dict[float, int] = {}
    for v in values:
        counts[v] = counts.get(v, 0) + 1
    return max(counts, key=lambda v: (counts[v], v))


def median(values: Sequence[float]) -> float | None:
    """Median of *values*, None when empty."""
    if not values:
        return None
    ordered = sorted(values)
    mid = len(ordered) // 2
    if len(ordered) % 2:
        return float(ordered[mid])
    return (ordered[mid - 1] + ordered[mid]) / 2


def linear_slope(values: Sequence[float]) -> float:
    """
    Least-squares slope of *values* against their index (0, 1, 2, ...).

    Returns 0.0 for fewer than two points.
    """
    n = len(values)
    if n < 2:
        return 0.0
    mean_x = (n - 1) / 2
    mean_y = sum(values) / n
    num = sum((i - mean_x) * (y - mean_y) for i, y in enumerate(values))
    den = sum((i - mean_x) ** 2 for i in range(n))
    return num / den if den else 0.0


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))
