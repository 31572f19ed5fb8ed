"""
Weekly volume accounting and periodization context.

Weekly volume is counted inside the current training-block week (entries
snapshot the block id and lifecycle week they were logged under).  When no
block exists the window falls back to the trailing seven days.

Direct sets come from an exercise's primary muscles, indirect sets from its
secondary muscles; effective volume = direct + 0.3 × indirect.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Iterable, Literal

from .config import (
    APPROACHING_MAV_FRACTION,
    DELOAD_READINESS_MIN_MUSCLES,
    DELOAD_READINESS_MRV_FRACTION,
    INDIRECT_SET_MULTIPLIER,
    VOLUME_RAMP_STEP,
    VolumeLandmark,
)
from .exercises.base import Exercise
from .landmarks import normalize_muscle
from .lifecycle import current_week, weekly_volume_target
from .models import TrainingBlock, WorkoutHistoryEntry

ComplianceStatus = Literal[
    "OVER_MAV",
    "AT_MAV",
    "APPROACHING_MAV",
    "OVER_TARGET",
    "ON_TARGET",
    "APPROACHING_TARGET",
    "UNDER_MEV",
]

# Severity descending
COMPLIANCE_SEVERITY: tuple[ComplianceStatus, ...] = (
    "OVER_MAV",
    "AT_MAV",
    "APPROACHING_MAV",
    "OVER_TARGET",
    "ON_TARGET",
    "APPROACHING_TARGET",
    "UNDER_MEV",
)


@dataclass(frozen=True)
class VolumeWindow:
    """
    Entries counted towards "this week".

    Either a block week (block_id + week) or, without a block, an inclusive
    date range.
    """

    block_id: str | None = None
    week: int | None = None
    start_date: str | None = None
    end_date: str | None = None

    def contains(self, entry: WorkoutHistoryEntry) -> bool:
        if self.block_id is not None:
            return entry.block_id == self.block_id and entry.block_week == self.week
        if self.start_date is not None and self.end_date is not None:
            return self.start_date <= entry.date <= self.end_date
        return False


@dataclass
class WeeklyVolume:
    direct: dict[str, float] = field(default_factory=dict)
    indirect: dict[str, float] = field(default_factory=dict)

    def effective(self, muscle: str) -> float:
        return self.direct.get(muscle, 0.0) + self.indirect.get(muscle, 0.0) * INDIRECT_SET_MULTIPLIER

    def muscles(self) -> set[str]:
        return set(self.direct) | set(self.indirect)


@dataclass
class VolumeContext:
    """Per-muscle weekly target / actual / effective-actual maps."""

    weekly_target: dict[str, int] = field(default_factory=dict)
    weekly_actual: dict[str, float] = field(default_factory=dict)
    effective_actual: dict[str, float] = field(default_factory=dict)

    def deficit(self, muscle: str) -> float:
        return max(0.0, self.weekly_target.get(muscle, 0) - self.effective_actual.get(muscle, 0.0))


@dataclass(frozen=True)
class DeloadReadiness:
    recommended: bool
    urgent: bool
    muscles_near_mrv: tuple[str, ...]


@dataclass(frozen=True)
class MuscleVolumeCompliance:
    """projected_total = sets_logged_before_session + sets_prescribed_this_session"""

    muscle: str
    sets_logged_before_session: float
    sets_prescribed_this_session: float
    projected_total: float
    weekly_target: int
    mev: int
    mav: int
    status: ComplianceStatus


def resolve_volume_window(
    block: TrainingBlock | None,
    as_of: str,
) -> VolumeWindow:
    """Current block week if a block exists, else the seven days ending *as_of*."""
    if block is not None:
        return VolumeWindow(block_id=block.block_id, week=current_week(block))
    end = datetime.strptime(as_of, "%Y-%m-%d")
    start = end - timedelta(days=6)
    return VolumeWindow(start_date=start.strftime("%Y-%m-%d"), end_date=as_of)


def count_weekly_volume(
    history: Iterable[WorkoutHistoryEntry],
    library: dict[str, Exercise],
    window: VolumeWindow,
) -> WeeklyVolume:
    """
    Count completed, non-skipped sets per muscle inside *window*.

    Only performed entries (completed or partial) count.  Exercises missing
    from the library are ignored.
    """
    volume = WeeklyVolume()
    for entry in history:
        if not entry.is_performed or not window.contains(entry):
            continue
        for performed in entry.exercises:
            exercise = library.get(performed.exercise_id)
            if exercise is None:
                continue
            done = sum(1 for s in performed.sets if not s.skipped)
            if done == 0:
                continue
            for muscle in exercise.primary_muscles:
                volume.direct[muscle] = volume.direct.get(muscle, 0.0) + done
            for muscle in exercise.secondary_muscles:
                volume.indirect[muscle] = volume.indirect.get(muscle, 0.0) + done
    return volume


def build_volume_context(
    weekly: WeeklyVolume,
    muscles: Iterable[str],
    landmarks: dict[str, VolumeLandmark],
    week: int,
    is_deload: bool,
    ramp_step: int | None = None,
) -> VolumeContext:
    """
    Volume context restricted to *muscles* (the intent-relevant set).

    *landmarks* must hold a landmark for every muscle in *muscles*.
    """
    step = VOLUME_RAMP_STEP if ramp_step is None else ramp_step
    context = VolumeContext()
    for muscle in muscles:
        key = normalize_muscle(muscle)
        context.weekly_target[key] = weekly_volume_target(landmarks[key], week, is_deload, step)
        context.weekly_actual[key] = weekly.direct.get(key, 0.0)
        context.effective_actual[key] = weekly.effective(key)
    return context


def assess_deload_readiness(
    effective_actual: dict[str, float],
    landmarks: dict[str, VolumeLandmark],
    block: TrainingBlock | None,
) -> DeloadReadiness:
    """
    Deload is recommended when ≥2 tracked muscles sit at ≥85% of MRV, and
    urgent when that coincides with the block's final accumulation week.
    """
    near = tuple(
        sorted(
            muscle
            for muscle, sets in effective_actual.items()
            if muscle in landmarks
            and landmarks[muscle].mrv > 0
            and sets >= DELOAD_READINESS_MRV_FRACTION * landmarks[muscle].mrv
        )
    )
    recommended = len(near) >= DELOAD_READINESS_MIN_MUSCLES
    final_week = block is not None and block.state == "accumulating" and current_week(block) >= max(
        1, block.duration_weeks - 1
    )
    return DeloadReadiness(recommended=recommended, urgent=recommended and final_week, muscles_near_mrv=near)


def classify_compliance(
    projected_total: float,
    weekly_target: int,
    landmark: VolumeLandmark,
) -> ComplianceStatus:
    """First matching rule in severity order wins."""
    mav = landmark.mav
    if projected_total > mav:
        return "OVER_MAV"
    if projected_total == mav:
        return "AT_MAV"
    if projected_total > APPROACHING_MAV_FRACTION * mav:
        return "APPROACHING_MAV"
    if projected_total > weekly_target:
        return "OVER_TARGET"
    if projected_total == weekly_target:
        return "ON_TARGET"
    if projected_total >= landmark.mev:
        return "APPROACHING_TARGET"
    return "UNDER_MEV"


def volume_compliance(
    prior_direct: dict[str, float],
    prescribed_direct: dict[str, float],
    weekly_targets: dict[str, int],
    landmarks: dict[str, VolumeLandmark],
) -> list[MuscleVolumeCompliance]:
    """
    Per-muscle compliance rows for muscles trained this session, sorted by
    severity (OVER_MAV first, UNDER_MEV last), then by muscle name.
    """
    rows: list[MuscleVolumeCompliance] = []
    for muscle, prescribed in prescribed_direct.items():
        if prescribed <= 0 or muscle not in landmarks:
            continue
        landmark = landmarks[muscle]
        prior = prior_direct.get(muscle, 0.0)
        projected = prior + prescribed
        target = weekly_targets.get(muscle, landmark.mev)
        rows.append(
            MuscleVolumeCompliance(
                muscle=muscle,
                sets_logged_before_session=prior,
                sets_prescribed_this_session=prescribed,
                projected_total=projected,
                weekly_target=target,
                mev=landmark.mev,
                mav=landmark.mav,
                status=classify_compliance(projected, target, landmark),
            )
        )
    rows.sort(key=lambda r: (COMPLIANCE_SEVERITY.index(r.status), r.muscle))
    return rows


def week_to_date_compliance(
    weekly: WeeklyVolume,
    landmarks: dict[str, VolumeLandmark],
    week: int,
    is_deload: bool,
    ramp_step: int | None = None,
) -> list[MuscleVolumeCompliance]:
    """Compliance of the sets already logged this week, for every muscle in *landmarks*."""
    context = build_volume_context(weekly, landmarks, landmarks, week, is_deload, ramp_step)
    rows = [
        MuscleVolumeCompliance(
            muscle=muscle,
            sets_logged_before_session=context.weekly_actual[muscle],
            sets_prescribed_this_session=0.0,
            projected_total=context.weekly_actual[muscle],
            weekly_target=context.weekly_target[muscle],
            mev=landmarks[muscle].mev,
            mav=landmarks[muscle].mav,
            status=classify_compliance(
                context.weekly_actual[muscle], context.weekly_target[muscle], landmarks[muscle]
            ),
        )
        for muscle in context.weekly_target
    ]
    rows.sort(key=lambda r: (COMPLIANCE_SEVERITY.index(r.status), r.muscle))
    return rows
