"""
Readiness signals and the fatigue score.

The fatigue score is a 0-1 freshness value (1 = fully fresh) mixed from
three components: wearable physiology, subjective check-in, and recent
performance.  Signals expire after READINESS_STALENESS_HOURS.
"""

from datetime import datetime, timedelta
from typing import Iterable

from .config import (
    FATIGUE_WEIGHTS_WITH_WEARABLE,
    FATIGUE_WEIGHTS_WITHOUT_WEARABLE,
    HRV_BASELINE_MS,
    READINESS_STALENESS_HOURS,
    STRAIN_OVERREACH_THRESHOLD,
    STRAIN_PENALTY,
)
from .landmarks import normalize_muscle
from .metrics import clamp
from .models import (
    FatigueScore,
    PerformanceSignals,
    ReadinessSignal,
    SubjectiveReadiness,
    WearableReadiness,
)

STALENESS_WINDOW = timedelta(hours=READINESS_STALENESS_HOURS)


def latest_signal(signals: Iterable[ReadinessSignal]) -> ReadinessSignal | None:
    return max(signals, key=lambda s: s.timestamp, default=None)


def signal_age(signal: ReadinessSignal, now: datetime) -> timedelta:
    """Age of a signal; future timestamps count as zero."""
    return max(timedelta(0), now - signal.timestamp)


def is_fresh(signal: ReadinessSignal, now: datetime) -> bool:
    """A signal exactly at the 48-hour boundary is still usable."""
    return signal_age(signal, now) <= STALENESS_WINDOW


def format_age(age: timedelta) -> str:
    """Human-readable age: "just now", "45 minutes ago", "6 hours ago", "2 days ago"."""
    minutes = int(age.total_seconds() // 60)
    if minutes < 1:
        return "just now"
    if minutes < 60:
        return f"{minutes} minute{'s' if minutes != 1 else ''} ago"
    hours = minutes // 60
    if hours < 48:
        return f"{hours} hour{'s' if hours != 1 else ''} ago"
    days = hours // 24
    return f"{days} days ago"


def wearable_component(w: WearableReadiness) -> float:
    strain_factor = 1 - STRAIN_PENALTY if w.strain > STRAIN_OVERREACH_THRESHOLD else 1.0
    return clamp(
        clamp(w.recovery / 100) * 0.4
        + strain_factor * 0.2
        + min(1.0, max(0.0, w.hrv) / HRV_BASELINE_MS) * 0.2
        + clamp(w.sleep_quality / 100) * 0.2
    )


def subjective_component(s: SubjectiveReadiness) -> float:
    return clamp((s.readiness - 1) / 4 * 0.6 + (s.motivation - 1) / 4 * 0.4)


def performance_component(p: PerformanceSignals) -> float:
    """Positive RPE deviation (sessions felt harder than planned) and stalls lower the score."""
    return clamp(
        clamp(0.5 - p.rpe_deviation / 4) * 0.5
        + (1 - min(0.3, p.stall_count * 0.1)) * 0.3
        + clamp(p.volume_compliance_rate) * 0.2
    )


def per_muscle_fatigue(soreness: dict[str, int]) -> dict[str, float]:
    """Soreness 1 (none) → 1.0, 2 → 0.5, 3 (very sore) → 0.0."""
    return {normalize_muscle(m): clamp(1 - (level - 1) / 2) for m, level in soreness.items()}


def compute_fatigue_score(signal: ReadinessSignal) -> FatigueScore:
    """Weighted freshness score from whichever components the signal carries."""
    weights = dict(
        FATIGUE_WEIGHTS_WITH_WEARABLE if signal.wearable is not None else FATIGUE_WEIGHTS_WITHOUT_WEARABLE
    )
    components = {
        "wearable": wearable_component(signal.wearable) if signal.wearable is not None else 0.0,
        "subjective": subjective_component(signal.subjective),
        "performance": performance_component(signal.performance),
    }
    overall = clamp(sum(weights[k] * components[k] for k in components))
    return FatigueScore(
        overall=overall,
        per_muscle=per_muscle_fatigue(signal.subjective.soreness),
        weights=weights,
        components=components,
    )


def fatigue_label(overall: float) -> str:
    if overall > 0.8:
        return "very fresh"
    if overall > 0.6:
        return "recovered"
    if overall > 0.4:
        return "moderately fatigued"
    return "significantly fatigued"
