"""
Data models for mesocoach.

Dataclasses for the trainee context, logged history, readiness signals and
the plans the engine produces.  Dates on history entries are ISO strings
(YYYY-MM-DD); readiness signals carry full timestamps because their
staleness is measured in hours.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

from .exercises.base import Exercise

TrainingAge = Literal["beginner", "intermediate", "advanced"]
PrimaryGoal = Literal["hypertrophy", "strength", "fat_loss", "athleticism", "general_health"]
SecondaryGoal = Literal["posture", "conditioning", "injury_prevention", "strength", "none"]
SplitType = Literal["ppl", "upper_lower", "full_body", "custom"]
SessionIntent = Literal["push", "pull", "legs", "upper", "lower", "full_body", "body_part"]
SessionStatus = Literal["planned", "in_progress", "completed", "partial", "skipped"]
SelectionMode = Literal["intent", "auto", "bonus", "manual"]
BlockState = Literal["accumulating", "deloading", "completed"]
ExerciseRoleKind = Literal["core_compound", "accessory"]
WorkoutRole = Literal["warmup", "main", "accessory"]

PERFORMED_STATUSES: frozenset[str] = frozenset({"completed", "partial"})

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _check_date(value: str, name: str = "date") -> None:
    if not _DATE_RE.match(value):
        raise ValueError(f"{name} must be YYYY-MM-DD, got {value!r}")


# =============================================================================
# TRAINEE CONTEXT
# =============================================================================


@dataclass
class UserProfile:
    """Trainee profile consumed by the engine."""

    training_age: TrainingAge = "intermediate"
    injuries: list[str] = field(default_factory=list)  # Body parts
    bodyweight_kg: float | None = None

    def __post_init__(self) -> None:
        if self.training_age not in ("beginner", "intermediate", "advanced"):
            raise ValueError(f"Unknown training_age: {self.training_age}")
        if self.bodyweight_kg is not None and self.bodyweight_kg <= 0:
            raise ValueError("bodyweight_kg must be positive")


@dataclass
class Goals:
    primary: PrimaryGoal = "hypertrophy"
    secondary: SecondaryGoal = "none"

    def __post_init__(self) -> None:
        if self.primary not in ("hypertrophy", "strength", "fat_loss", "athleticism", "general_health"):
            raise ValueError(f"Unknown primary goal: {self.primary}")
        if self.secondary not in ("posture", "conditioning", "injury_prevention", "strength", "none"):
            raise ValueError(f"Unknown secondary goal: {self.secondary}")

    @property
    def is_strength_focused(self) -> bool:
        return self.primary == "strength"


@dataclass
class Constraints:
    """Scheduling and equipment constraints."""

    days_per_week: int = 3
    session_minutes: int = 60
    available_equipment: list[str] = field(default_factory=list)
    split_type: SplitType = "ppl"

    def __post_init__(self) -> None:
        if not 1 <= self.days_per_week <= 7:
            raise ValueError("days_per_week must be between 1 and 7")
        if self.session_minutes <= 0:
            raise ValueError("session_minutes must be positive")
        if self.split_type not in ("ppl", "upper_lower", "full_body", "custom"):
            raise ValueError(f"Unknown split_type: {self.split_type}")


@dataclass
class Preferences:
    favorite_exercise_ids: list[str] = field(default_factory=list)
    avoid_exercise_ids: list[str] = field(default_factory=list)


# =============================================================================
# TRAINING HISTORY
# =============================================================================


@dataclass
class PerformedSet:
    """
    One logged set.

    set_index is 1-based and orders sets chronologically within an exercise.
    load is None when the trainee did not record it.
    """

    set_index: int
    reps: int
    load: float | None = None
    rpe: float | None = None
    skipped: bool = False

    def __post_init__(self) -> None:
        if self.set_index < 1:
            raise ValueError("set_index must be >= 1")
        if self.reps < 0:
            raise ValueError("reps must be non-negative")
        if self.load is not None and self.load < 0:
            raise ValueError("load must be non-negative")
        if self.rpe is not None and not 0 <= self.rpe <= 10:
            raise ValueError("rpe must be between 0 and 10")


@dataclass
class PerformedExercise:
    exercise_id: str
    sets: list[PerformedSet] = field(default_factory=list)


@dataclass
class WorkoutHistoryEntry:
    """
    A logged (or planned) workout.

    block_id / block_week snapshot the training block and lifecycle week the
    session counted towards; they define the weekly volume window.
    """

    date: str
    status: SessionStatus
    exercises: list[PerformedExercise] = field(default_factory=list)
    selection_mode: SelectionMode = "intent"
    intent: SessionIntent | None = None
    workout_id: str = ""
    block_id: str | None = None
    block_week: int | None = None
    pain_flags: dict[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        _check_date(self.date)
        if self.block_week is not None and self.block_week < 1:
            raise ValueError("block_week must be >= 1")

    @property
    def is_performed(self) -> bool:
        return self.status in PERFORMED_STATUSES

    def exercise_ids(self) -> list[str]:
        return [e.exercise_id for e in self.exercises]

    def find(self, exercise_id: str) -> PerformedExercise | None:
        for performed in self.exercises:
            if performed.exercise_id == exercise_id:
                return performed
        return None


# =============================================================================
# TRAINING BLOCK
# =============================================================================


@dataclass
class ExerciseRole:
    """An exercise's role within a block for a given session intent."""

    exercise_id: str
    intent: SessionIntent
    role: ExerciseRoleKind
    added_in_week: int = 1


@dataclass
class TrainingBlock:
    """
    A mesocycle: accumulation weeks followed by a deload.

    Counters and state are mutated only by the lifecycle transition.
    rir_bands maps week number (1-5) to a (min, max) override pair.
    """

    block_id: str
    block_number: int = 1
    start_week: int = 1
    duration_weeks: int = 5
    sessions_per_week: int = 3
    state: BlockState = "accumulating"
    accumulation_sessions_completed: int = 0
    deload_sessions_completed: int = 0
    rir_bands: dict[int, tuple[int, int]] = field(default_factory=dict)
    volume_ramp_step: int | None = None
    roles: list[ExerciseRole] = field(default_factory=list)
    start_date: str | None = None

    def __post_init__(self) -> None:
        if self.state not in ("accumulating", "deloading", "completed"):
            raise ValueError(f"Unknown block state: {self.state}")
        if self.sessions_per_week < 1:
            raise ValueError("sessions_per_week must be >= 1")
        if self.accumulation_sessions_completed < 0 or self.deload_sessions_completed < 0:
            raise ValueError("session counters must be non-negative")
        if self.start_date is not None:
            _check_date(self.start_date, "start_date")


# =============================================================================
# READINESS
# =============================================================================


@dataclass
class WearableReadiness:
    """Physiological readiness from a wearable (recovery/sleep 0-100, strain 0-21)."""

    recovery: float
    strain: float
    hrv: float
    sleep_quality: float
    sleep_hours: float | None = None


@dataclass
class SubjectiveReadiness:
    readiness: int = 3  # 1=exhausted, 5=great
    motivation: int = 3  # 1=none, 5=eager
    soreness: dict[str, int] = field(default_factory=dict)  # muscle -> 1..3
    pain_flags: dict[str, int] = field(default_factory=dict)  # body part -> 0..3

    def __post_init__(self) -> None:
        for name in ("readiness", "motivation"):
            if not 1 <= getattr(self, name) <= 5:
                raise ValueError(f"{name} must be between 1 and 5")
        for muscle, level in self.soreness.items():
            if not 1 <= level <= 3:
                raise ValueError(f"soreness for {muscle} must be between 1 and 3")


@dataclass
class PerformanceSignals:
    rpe_deviation: float = 0.0  # avg(actual - expected RPE), positive = harder
    stall_count: int = 0
    volume_compliance_rate: float = 1.0  # 0-1


@dataclass
class ReadinessSignal:
    timestamp: datetime
    subjective: SubjectiveReadiness = field(default_factory=SubjectiveReadiness)
    performance: PerformanceSignals = field(default_factory=PerformanceSignals)
    wearable: WearableReadiness | None = None


@dataclass
class FatigueScore:
    """Overall freshness 0-1 (1 = fresh) with its component breakdown."""

    overall: float
    per_muscle: dict[str, float]
    weights: dict[str, float]
    components: dict[str, float]


# =============================================================================
# GENERATED PLAN
# =============================================================================


@dataclass
class WorkoutSet:
    set_index: int
    target_reps: int
    target_rep_range: tuple[int, int] | None = None
    target_rpe: float | None = None
    target_load: float | None = None
    rest_seconds: int = 0
    role: WorkoutRole = "accessory"
    is_back_off: bool = False


@dataclass
class WorkoutExercise:
    exercise: Exercise
    order_index: int
    is_main_lift: bool
    role: WorkoutRole
    sets: list[WorkoutSet] = field(default_factory=list)
    notes: str = ""


@dataclass
class WorkoutPlan:
    """A generated session: warm-up, main lifts, accessories."""

    workout_id: str
    scheduled_date: str
    intent: SessionIntent
    main_lifts: list[WorkoutExercise] = field(default_factory=list)
    accessories: list[WorkoutExercise] = field(default_factory=list)
    warmup: list[WorkoutExercise] = field(default_factory=list)
    estimated_minutes: int = 0
    notes: str = ""
    autoregulated: bool = False

    def working_exercises(self) -> list[WorkoutExercise]:
        """Main lifts then accessories (warm-up entries excluded)."""
        return [*self.main_lifts, *self.accessories]

    def find(self, exercise_id: str) -> WorkoutExercise | None:
        for entry in self.working_exercises():
            if entry.exercise.exercise_id == exercise_id:
                return entry
        return None


@dataclass(frozen=True)
class AutoregulationPolicy:
    """How aggressively the autoregulation pass may modify a plan."""

    aggressiveness: Literal["conservative", "moderate", "aggressive"] = "moderate"
    allow_up_regulation: bool = True
    allow_down_regulation: bool = True

    def __post_init__(self) -> None:
        if self.aggressiveness not in ("conservative", "moderate", "aggressive"):
            raise ValueError(f"Unknown aggressiveness: {self.aggressiveness}")
