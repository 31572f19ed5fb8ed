"""
Progression and confidence engine.

Per exercise: find the most recent performed session containing it (within
42 days), keep only qualifying sets, resolve an anchor load, weigh how far
the session can be trusted, and decide whether to add load or hold.

Triggers:
    double_progression  rep target met at manageable effort → load goes up
    hold                qualifying history exists but the rep target is not
                        met yet (or effort is too high) → load held
    deload              an active deload decision overrides progression
    readiness_scale     autoregulation scaled the prescribed intensity
    insufficient_data   no performed session in the window, or none of its
                        sets qualify → default load

"No history at all" and "history exists but flat" are deliberately two
different triggers (insufficient_data vs hold).
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal, Sequence

from .config import (
    ANOMALY_CONFIDENCE,
    CONFIDENCE_BY_SELECTION_MODE,
    FULL_CONFIDENCE_SESSIONS,
    LOAD_INCREMENT_BY_EQUIPMENT,
    MANUAL_LOAD_REGRESSION_FRACTION,
    MANUAL_RPE10_FRACTION,
    PATH_HOLD_RPE,
    PROGRESSION_RECENCY_DAYS,
    SAMPLE_CONFIDENCE_BY_SESSIONS,
)
from .engine.config_loader import ModelConfig, resolve_default_load
from .exercises.base import Exercise
from .metrics import (
    median,
    modal_load,
    modal_value,
    qualifying_sets,
    round_to_step,
    top_set_load,
    trim_load_outliers,
)
from .models import PerformedSet, WorkoutHistoryEntry

ProgressionTrigger = Literal[
    "double_progression",
    "hold",
    "deload",
    "readiness_scale",
    "insufficient_data",
]

PROGRESSION_TRIGGERS: tuple[str, ...] = (
    "double_progression",
    "hold",
    "deload",
    "readiness_scale",
    "insufficient_data",
)


@dataclass(frozen=True)
class ConfidenceAssessment:
    confidence: float
    selection_mode: str
    anomalies: tuple[str, ...] = ()


@dataclass
class ProgressionDecision:
    """Load/rep decision for one exercise, with its reasoning."""

    exercise_id: str
    trigger: ProgressionTrigger
    next_load: float
    target_reps: int
    anchor_load: float | None = None
    path: str | None = None
    confidence: float = 1.0
    sample_confidence: float = 1.0
    anomalies: tuple[str, ...] = ()
    source_date: str | None = None
    last_set: PerformedSet | None = None
    decision_trace: list[str] = field(default_factory=list)


@dataclass
class SetSummary:
    reps: int | None = None
    load: float | None = None
    rpe: float | None = None
    date: str | None = None


@dataclass
class ProgressionDeltas:
    load: float | None = None
    load_pct: float | None = None
    reps: int | None = None
    rpe: float | None = None


@dataclass
class ProgressionReceipt:
    exercise_id: str
    last_performed: SetSummary | None
    today: SetSummary
    deltas: ProgressionDeltas
    trigger: ProgressionTrigger
    confidence: float = 1.0
    anomalies: tuple[str, ...] = ()
    decision_trace: list[str] = field(default_factory=list)


# =============================================================================
# HISTORY LOOKUP
# =============================================================================


def _days_before(date: str, as_of: str) -> int:
    return (datetime.strptime(as_of, "%Y-%m-%d") - datetime.strptime(date, "%Y-%m-%d")).days


def _recent_entries(
    exercise_id: str,
    history: Sequence[WorkoutHistoryEntry],
    as_of: str,
) -> list[WorkoutHistoryEntry]:
    """Performed entries containing the exercise within the recency window, oldest first.

    Entries sharing a date keep their logging order, so the last one wins.
    """
    entries = [
        e
        for e in history
        if e.is_performed
        and e.find(exercise_id) is not None
        and 0 <= _days_before(e.date, as_of) <= PROGRESSION_RECENCY_DAYS
    ]
    return sorted(entries, key=lambda e: e.date)


def find_recent_performance(
    exercise_id: str,
    history: Sequence[WorkoutHistoryEntry],
    as_of: str,
) -> WorkoutHistoryEntry | None:
    """Most recent performed session containing *exercise_id*, or None."""
    entries = _recent_entries(exercise_id, history, as_of)
    return entries[-1] if entries else None


def sample_confidence(exercise_id: str, history: Sequence[WorkoutHistoryEntry], as_of: str) -> float:
    """0.8 with one qualifying session in the window, 0.9 with two, 1.0 with three or more."""
    sessions = sum(
        1
        for e in _recent_entries(exercise_id, history, as_of)
        if qualifying_sets(e.find(exercise_id).sets)  # type: ignore[union-attr]
    )
    if sessions >= FULL_CONFIDENCE_SESSIONS:
        return 1.0
    return SAMPLE_CONFIDENCE_BY_SESSIONS.get(sessions, SAMPLE_CONFIDENCE_BY_SESSIONS[1])


# =============================================================================
# ANCHOR & CONFIDENCE
# =============================================================================


def resolve_anchor_load(sets: Sequence[PerformedSet], is_main_lift: bool) -> float | None:
    """
    Anchor load from qualifying sets.

    Main lifts anchor on the first working set by set index (the top set,
    never a back-off or modal value).  Accessories anchor on the modal load
    with the count → latest set index → higher load tie-break.
    """
    if is_main_lift:
        return top_set_load(sets)
    return modal_load(sets)


def _latest_intent_modal_load(
    exercise_id: str,
    history: Sequence[WorkoutHistoryEntry],
    before: WorkoutHistoryEntry,
) -> float | None:
    latest: WorkoutHistoryEntry | None = None
    for entry in history:
        if entry is before or not entry.is_performed or entry.selection_mode != "intent":
            continue
        if entry.date > before.date or entry.find(exercise_id) is None:
            continue
        if latest is None or entry.date >= latest.date:
            latest = entry
    if latest is None:
        return None
    return modal_load(qualifying_sets(latest.find(exercise_id).sets))  # type: ignore[union-attr]


def assess_confidence(
    exercise_id: str,
    entry: WorkoutHistoryEntry,
    sets: Sequence[PerformedSet],
    history: Sequence[WorkoutHistoryEntry],
) -> ConfidenceAssessment:
    """
    Trust in a session's numbers, from how it was entered.

    INTENT (engine-generated) 1.0; other non-manual modes 0.8; MANUAL 0.7,
    or 0.3 when the logged sets look synthetic or implausible.
    """
    mode = entry.selection_mode
    base = CONFIDENCE_BY_SELECTION_MODE.get(mode, CONFIDENCE_BY_SELECTION_MODE["auto"])
    if mode != "manual":
        return ConfidenceAssessment(confidence=base, selection_mode=mode)

    anomalies: list[str] = []
    rpes = [s.rpe for s in sets if s.rpe is not None]
    if len(rpes) >= 2 and len(set(rpes)) == 1:
        anomalies.append("uniform_rpe_synthetic")
    if rpes and sum(1 for r in rpes if r >= 10) > MANUAL_RPE10_FRACTION * len(rpes):
        anomalies.append("rpe10_majority")
    intent_load = _latest_intent_modal_load(exercise_id, history, entry)
    manual_load = modal_load(sets)
    if (
        intent_load
        and manual_load is not None
        and manual_load < intent_load * (1 - MANUAL_LOAD_REGRESSION_FRACTION)
    ):
        anomalies.append("load_regression_vs_intent")

    if anomalies:
        return ConfidenceAssessment(ANOMALY_CONFIDENCE, mode, tuple(anomalies))
    return ConfidenceAssessment(base, mode)


def load_increment(exercise: Exercise) -> float:
    """Smallest sensible jump: 5 for barbell lifts, 2.5 otherwise."""
    for kind in ("barbell", "dumbbell", "cable"):
        if kind in exercise.equipment:
            return LOAD_INCREMENT_BY_EQUIPMENT[kind]
    return LOAD_INCREMENT_BY_EQUIPMENT["other"]


# =============================================================================
# DECISION
# =============================================================================


def _fmt(value: float | None) -> str:
    if value is None:
        return "n/a"
    return f"{value:g}"


def decide_progression(
    exercise: Exercise,
    is_main_lift: bool,
    rep_range: tuple[int, int],
    history: Sequence[WorkoutHistoryEntry],
    as_of: str,
    deload_active: bool = False,
    config: ModelConfig | None = None,
) -> ProgressionDecision:
    """
    Decide today's load and rep target for one exercise.

    Paths, first match wins:
        1. bodyweight anchor (load 0)          → hold load, add reps
        2. modal RPE ≥ 9                        → hold
        3. median reps ≥ range top, RPE ≤ 8     → add increment × confidence
        4. RPE 7-8, reps below range top        → hold, build reps
        5. anything else                        → hold

    A noisy session (four or more sets, load spread ≥ 20% of the median) has
    its outlier sets trimmed first.  Main lifts still anchor on the untrimmed
    top set; the trimmed sets feed the accessory modal load, modal RPE and
    median reps.

    An active deload keeps the anchor load and reports trigger "deload".
    """
    low, high = rep_range
    entry = find_recent_performance(exercise.exercise_id, history, as_of)
    performed = entry.find(exercise.exercise_id) if entry is not None else None
    sets = qualifying_sets(performed.sets) if performed is not None else []

    if entry is None or not sets:
        default = resolve_default_load(exercise, config)
        trace = [
            (
                f"No qualifying sets in the last {PROGRESSION_RECENCY_DAYS} days"
                if entry is not None
                else f"No performed session in the last {PROGRESSION_RECENCY_DAYS} days"
            ),
            f"Default load {_fmt(default)} from equipment ({', '.join(exercise.equipment) or 'none'})",
        ]
        return ProgressionDecision(
            exercise_id=exercise.exercise_id,
            trigger="deload" if deload_active else "insufficient_data",
            next_load=default,
            target_reps=low,
            source_date=entry.date if entry is not None else None,
            decision_trace=trace,
        )

    effective, high_variance = trim_load_outliers(sets)
    anchor = resolve_anchor_load(sets if is_main_lift else effective, is_main_lift) or 0.0
    assessment = assess_confidence(exercise.exercise_id, entry, sets, history)
    samples = sample_confidence(exercise.exercise_id, history, as_of)
    scale = assessment.confidence * samples
    rpe = modal_value([s.rpe for s in effective if s.rpe is not None])
    reps_median = median([s.reps for s in effective]) or 0.0
    anchor_set = (
        min(sets, key=lambda s: s.set_index)
        if is_main_lift
        else max((s for s in effective if s.load == anchor), key=lambda s: s.set_index)
    )

    trace: list[str] = []
    if high_variance:
        loads = [s.load for s in sets if s.load is not None]
        trace.append(
            f"High intra-session load variance ({_fmt(min(loads))}-{_fmt(max(loads))}): "
            f"trimmed {len(sets) - len(effective)} outlier set(s) before anchoring"
        )
    trace += [
        f"Anchor load={_fmt(anchor)}, modal RPE={_fmt(rpe)}, "
        f"median reps={_fmt(reps_median)}, rep-range top={high}",
        f"Progression confidence scale={scale:.2f}",
    ]
    if assessment.anomalies:
        trace.append(
            f"Manual entry anomalies: {', '.join(assessment.anomalies)} "
            f"(confidence {assessment.confidence:g})"
        )

    build_reps = max(low, min(high, int(reps_median) + 1))
    decision = ProgressionDecision(
        exercise_id=exercise.exercise_id,
        trigger="hold",
        next_load=anchor,
        target_reps=build_reps,
        anchor_load=anchor,
        confidence=assessment.confidence,
        sample_confidence=samples,
        anomalies=assessment.anomalies,
        source_date=entry.date,
        last_set=anchor_set,
        decision_trace=trace,
    )

    if anchor <= 0:
        decision.path = "path_1"
        trace.append("Path 1 fired: bodyweight anchor, progress reps only")
    elif rpe is not None and rpe >= PATH_HOLD_RPE:
        decision.path = "path_2"
        decision.target_reps = max(low, min(high, int(reps_median)))
        trace.append(f"Path 2 fired: modal RPE {_fmt(rpe)} ≥ {_fmt(PATH_HOLD_RPE)}, hold load")
    elif reps_median >= high and (rpe is None or rpe <= 8):
        step = load_increment(exercise) * scale
        decision.path = "path_3"
        decision.trigger = "double_progression"
        decision.next_load = round_to_step(anchor + step)
        decision.target_reps = low
        trace.append(
            f"Path 3 fired: rep target {high} met, load {_fmt(anchor)} → {_fmt(decision.next_load)}"
        )
    elif rpe is not None and 7 <= rpe <= 8:
        decision.path = "path_4"
        trace.append(f"Path 4 fired: reps below {high} at RPE {_fmt(rpe)}, hold load and build reps")
    else:
        decision.path = "path_5"
        trace.append("Path 5 fired: no progression signal, hold load")

    if deload_active:
        decision.trigger = "deload"
        decision.next_load = anchor
        decision.target_reps = low
        trace.append("Deload active: load held at anchor, progression suspended")

    return decision


def build_receipt(
    decision: ProgressionDecision,
    today: SetSummary,
    trigger: ProgressionTrigger | None = None,
    extra_trace: Sequence[str] = (),
) -> ProgressionReceipt:
    """Compare the last performed anchor set with today's prescribed top set."""
    last = None
    if decision.last_set is not None:
        s = decision.last_set
        last = SetSummary(reps=s.reps, load=s.load, rpe=s.rpe, date=decision.source_date)

    deltas = ProgressionDeltas()
    if last is not None:
        if last.load is not None and today.load is not None:
            deltas.load = round(today.load - last.load, 2)
            if last.load > 0:
                deltas.load_pct = round((today.load - last.load) / last.load * 100, 1)
        if last.reps is not None and today.reps is not None:
            deltas.reps = today.reps - last.reps
        if last.rpe is not None and today.rpe is not None:
            deltas.rpe = round(today.rpe - last.rpe, 1)

    return ProgressionReceipt(
        exercise_id=decision.exercise_id,
        last_performed=last,
        today=today,
        deltas=deltas,
        trigger=trigger or decision.trigger,
        confidence=decision.confidence,
        anomalies=decision.anomalies,
        decision_trace=[*decision.decision_trace, *extra_trace],
    )
