"""
Configuration constants for the session-generation engine.

All adjustable parameters are centralized here for easy tuning.  User
overrides from ~/.mesocoach/model.yaml are applied through the resolve_*
functions in core/engine/config_loader.py, never by mutating these values.
"""

from dataclasses import dataclass
from typing import Final

# =============================================================================
# TRAINING BLOCK LIFECYCLE
# =============================================================================

ACCUMULATION_SESSION_THRESHOLD: Final[int] = 12  # Sessions before deload begins
DELOAD_SESSION_THRESHOLD: Final[int] = 3  # Deload sessions before block completes
ACCUMULATION_WEEKS: Final[int] = 4  # Week number is capped here while accumulating
DELOAD_WEEK: Final[int] = 5  # Week reported while deloading or completed
DEFAULT_SESSIONS_PER_WEEK: Final[int] = 3
DEFAULT_DURATION_WEEKS: Final[int] = 5  # 4 accumulation + 1 deload


@dataclass(frozen=True)
class RirBand:
    """Reps-in-reserve target range (inclusive)."""

    min: int
    max: int

    def __post_init__(self) -> None:
        if self.min < 0 or self.max < self.min:
            raise ValueError(f"Invalid RIR band {self.min}-{self.max}")

    @property
    def midpoint(self) -> float:
        return (self.min + self.max) / 2


DEFAULT_RIR_BANDS: Final[dict[int, RirBand]] = {
    1: RirBand(3, 4),
    2: RirBand(2, 3),
    3: RirBand(2, 3),
    4: RirBand(1, 2),
    5: RirBand(4, 6),
}
DELOAD_RIR_BAND: Final[RirBand] = RirBand(4, 6)  # Never overridable

# =============================================================================
# VOLUME RAMP (sets per week relative to MEV)
# =============================================================================

VOLUME_RAMP_STEP: Final[int] = 2  # week2 = mev+2, week3 = mev+4
DELOAD_VOLUME_FRACTION: Final[float] = 0.45  # Deload target = round(week4 * 0.45)
INDIRECT_SET_MULTIPLIER: Final[float] = 0.3  # Secondary-muscle set weighting
DELOAD_READINESS_MRV_FRACTION: Final[float] = 0.85
DELOAD_READINESS_MIN_MUSCLES: Final[int] = 2
APPROACHING_MAV_FRACTION: Final[float] = 0.85


@dataclass(frozen=True)
class VolumeLandmark:
    """Weekly set landmarks for one muscle, plus its recovery window."""

    mev: int
    mav: int
    mrv: int
    sra_hours: int = 48

    def __post_init__(self) -> None:
        if self.mev < 0 or self.mav < 0 or self.mrv < 0:
            raise ValueError("Landmarks must be non-negative")
        if self.sra_hours <= 0:
            raise ValueError("sra_hours must be positive")


# Intermediate-lifter landmarks (sets/week).  Keys are normalized muscle names.
VOLUME_LANDMARKS: Final[dict[str, VolumeLandmark]] = {
    "chest": VolumeLandmark(mev=10, mav=16, mrv=22, sra_hours=60),
    "lats": VolumeLandmark(mev=8, mav=16, mrv=24, sra_hours=60),
    "upper_back": VolumeLandmark(mev=6, mav=14, mrv=22, sra_hours=48),
    "front_delts": VolumeLandmark(mev=0, mav=7, mrv=14, sra_hours=48),
    "side_delts": VolumeLandmark(mev=8, mav=19, mrv=26, sra_hours=36),
    "rear_delts": VolumeLandmark(mev=4, mav=12, mrv=20, sra_hours=36),
    "quads": VolumeLandmark(mev=8, mav=18, mrv=26, sra_hours=72),
    "hamstrings": VolumeLandmark(mev=6, mav=16, mrv=24, sra_hours=72),
    "glutes": VolumeLandmark(mev=0, mav=8, mrv=16, sra_hours=72),
    "biceps": VolumeLandmark(mev=8, mav=17, mrv=26, sra_hours=36),
    "triceps": VolumeLandmark(mev=6, mav=12, mrv=20, sra_hours=48),
    "calves": VolumeLandmark(mev=8, mav=14, mrv=20, sra_hours=36),
    "core": VolumeLandmark(mev=0, mav=12, mrv=20, sra_hours=36),
    "lower_back": VolumeLandmark(mev=0, mav=4, mrv=10, sra_hours=72),
    "forearms": VolumeLandmark(mev=0, mav=6, mrv=12, sra_hours=36),
    "adductors": VolumeLandmark(mev=0, mav=8, mrv=16, sra_hours=48),
    "abductors": VolumeLandmark(mev=0, mav=6, mrv=12, sra_hours=36),
    "abs": VolumeLandmark(mev=0, mav=10, mrv=16, sra_hours=36),
}

FALLBACK_LANDMARK: Final[VolumeLandmark] = VolumeLandmark(mev=0, mav=10, mrv=15, sra_hours=48)

MUSCLE_SPLIT_MAP: Final[dict[str, str]] = {
    "chest": "push",
    "front_delts": "push",
    "side_delts": "push",
    "triceps": "push",
    "lats": "pull",
    "upper_back": "pull",
    "rear_delts": "pull",
    "biceps": "pull",
    "forearms": "pull",
    "quads": "legs",
    "hamstrings": "legs",
    "glutes": "legs",
    "calves": "legs",
    "adductors": "legs",
    "abductors": "legs",
    "core": "legs",
    "abs": "legs",
    "lower_back": "legs",
}

MUSCLE_ALIASES: Final[dict[str, str]] = {
    "lat": "lats",
    "latissimus_dorsi": "lats",
    "back": "upper_back",
    "mid_back": "upper_back",
    "rhomboids": "upper_back",
    "traps": "upper_back",
    "pecs": "chest",
    "quadriceps": "quads",
    "hams": "hamstrings",
    "glute": "glutes",
    "erectors": "lower_back",
    "obliques": "core",
    "abdominals": "abs",
}

# =============================================================================
# SELECTION OBJECTIVE
# =============================================================================

DEFAULT_SELECTION_WEIGHTS: Final[dict[str, float]] = {
    "deficit_fill": 0.35,
    "rotation_novelty": 0.22,
    "lengthened_bias": 0.20,
    "sfr_efficiency": 0.12,
    "movement_diversity": 0.07,
    "sra_readiness": 0.03,
    "user_preference": 0.01,
}

CONTINUITY_PREFERENCE_WEIGHT_CEILING: Final[float] = 0.35
CONTINUITY_ROTATION_WEIGHT_FLOOR: Final[float] = 0.01
CONTINUITY_SET_INCREMENT_PER_WEEK: Final[int] = 1

PAIN_SEVERITY_THRESHOLD: Final[int] = 2

MIN_EXERCISES: Final[int] = 3
MAX_EXERCISES: Final[int] = 6
MAX_EXERCISES_TEMPLATE: Final[int] = 8
MIN_MAIN_LIFTS: Final[int] = 1
MAX_MAIN_LIFTS: Final[int] = 3
MIN_ACCESSORIES: Final[int] = 2

MAX_DIRECT_SETS_PER_EXERCISE: Final[int] = 12  # Per-exercise working-set cap
MIN_PROPOSED_SETS: Final[int] = 2
DEFAULT_PROPOSED_SETS: Final[int] = 3
MAX_PROPOSED_SETS_BY_TRAINING_AGE: Final[dict[str, int]] = {
    "beginner": 4,
    "intermediate": 5,
    "advanced": 6,
}

ROTATION_TARGET_CADENCE_WEEKS: Final[int] = 3
DEFAULT_SFR_SCORE: Final[int] = 3
DEFAULT_LENGTH_POSITION_SCORE: Final[int] = 3
DEFAULT_SRA_HOURS: Final[int] = 48

# =============================================================================
# BEAM SEARCH
# =============================================================================

BEAM_WIDTH: Final[int] = 5
BEAM_MAX_DEPTH: Final[int] = 8

# =============================================================================
# PROGRESSION & CONFIDENCE
# =============================================================================

PROGRESSION_RECENCY_DAYS: Final[int] = 42  # Older history is treated as absent
EFFECTIVE_RPE_MIN: Final[float] = 6.0  # Sets below this are warm-ups/feelers
PATH_HOLD_RPE: Final[float] = 9.0  # Modal RPE at/above this holds load

# Load spread (max - min) / median at or above this marks a session as noisy;
# its sets farther than OUTLIER_TRIM_RANGE from the median load are trimmed.
HIGH_VARIANCE_THRESHOLD: Final[float] = 0.20
OUTLIER_TRIM_RANGE: Final[float] = 0.15
HIGH_VARIANCE_MIN_SETS: Final[int] = 4

CONFIDENCE_BY_SELECTION_MODE: Final[dict[str, float]] = {
    "intent": 1.0,
    "auto": 0.8,
    "bonus": 0.8,
    "manual": 0.7,
}
ANOMALY_CONFIDENCE: Final[float] = 0.3
MANUAL_RPE10_FRACTION: Final[float] = 0.5  # RPE 10 on more than this share is suspect
MANUAL_LOAD_REGRESSION_FRACTION: Final[float] = 0.5  # >50% below INTENT modal load

SAMPLE_CONFIDENCE_BY_SESSIONS: Final[dict[int, float]] = {1: 0.8, 2: 0.9}
FULL_CONFIDENCE_SESSIONS: Final[int] = 3

LOAD_INCREMENT_BY_EQUIPMENT: Final[dict[str, float]] = {
    "barbell": 5.0,
    "dumbbell": 2.5,
    "cable": 2.5,
    "other": 2.5,
}

# Default loads for exercises without trusted history, in priority order.
DEFAULT_LOAD_PRIORITY: Final[tuple[str, ...]] = ("barbell", "dumbbell", "cable")
DEFAULT_LOAD_BY_EQUIPMENT: Final[dict[str, float]] = {
    "barbell": 65.0,
    "dumbbell": 20.0,
    "cable": 40.0,
    "other": 30.0,
}

LOAD_ROUNDING_STEP: Final[float] = 0.5

# =============================================================================
# PRESCRIPTION
# =============================================================================

REP_RANGES_BY_GOAL: Final[dict[str, dict[str, tuple[int, int]]]] = {
    "hypertrophy": {"main": (6, 10), "accessory": (10, 15)},
    "strength": {"main": (3, 6), "accessory": (6, 10)},
    "fat_loss": {"main": (6, 10), "accessory": (12, 20)},
    "athleticism": {"main": (4, 8), "accessory": (8, 12)},
    "general_health": {"main": (8, 12), "accessory": (10, 15)},
}
DEFAULT_REP_RANGE: Final[tuple[int, int]] = (8, 12)

TARGET_RPE_BY_GOAL: Final[dict[str, float]] = {
    "hypertrophy": 7.5,
    "strength": 8.0,
    "fat_loss": 7.5,
    "athleticism": 7.5,
    "general_health": 7.0,
}
DEFAULT_TARGET_RPE: Final[float] = 7.5
DELOAD_RPE_CAP: Final[float] = 6.0

REST_SECONDS: Final[dict[str, int]] = {
    "main": 150,
    "accessory": 75,
    "warmup": 45,
}

BACK_OFF_MULTIPLIER: Final[float] = 0.9  # Main-lift back-off sets vs top set

# (fraction of top-set load, reps)
WARMUP_RAMP: Final[tuple[tuple[float, int], ...]] = ((0.5, 8), (0.7, 5), (0.85, 3))
WARMUP_RAMP_BEGINNER: Final[tuple[tuple[float, int], ...]] = ((0.6, 8), (0.8, 3))

WORK_SECONDS_PER_REP: Final[int] = 2
WORK_SECONDS_BASE: Final[int] = 10

# Reps assumed per set when estimating session time before loads are decided
SELECTION_REPS_ESTIMATE: Final[dict[str, int]] = {
    "main": 8,
    "accessory": 12,
}

# =============================================================================
# READINESS & AUTOREGULATION
# =============================================================================

READINESS_STALENESS_HOURS: Final[int] = 48  # Signals older than this are ignored

HRV_BASELINE_MS: Final[float] = 50.0
STRAIN_OVERREACH_THRESHOLD: Final[float] = 18.0
STRAIN_PENALTY: Final[float] = 0.2

FATIGUE_WEIGHTS_WITH_WEARABLE: Final[dict[str, float]] = {
    "wearable": 0.5,
    "subjective": 0.3,
    "performance": 0.2,
}
FATIGUE_WEIGHTS_WITHOUT_WEARABLE: Final[dict[str, float]] = {
    "wearable": 0.0,
    "subjective": 0.6,
    "performance": 0.4,
}

DELOAD_THRESHOLD: Final[float] = 0.3
SCALE_DOWN_THRESHOLD: Final[float] = 0.5
SCALE_UP_THRESHOLD: Final[float] = 0.85

SCALE_DOWN_FACTOR: Final[float] = 0.9
SCALE_UP_FACTOR: Final[float] = 1.05
SCALE_DOWN_RPE_DELTA: Final[float] = -1.0
SCALE_UP_RPE_DELTA: Final[float] = 0.5

DELOAD_INTENSITY_FACTOR: Final[float] = 0.6
DELOAD_VOLUME_FACTOR: Final[float] = 0.5
DELOAD_RIR: Final[int] = 4

MAX_SETS_TO_DROP: Final[int] = 2
MIN_SETS_PRESERVED: Final[int] = 2

DEFAULT_AUTOREGULATION_POLICY: Final[dict[str, object]] = {
    "aggressiveness": "moderate",
    "allow_up_regulation": True,
    "allow_down_regulation": True,
}

# =============================================================================
# EXPOSURE & SUBSTITUTION
# =============================================================================

EXPOSURE_WINDOWS_WEEKS: Final[tuple[int, ...]] = (4, 8, 12)
TREND_MIN_SESSIONS: Final[int] = 3
TREND_LOOKBACK_SESSIONS: Final[int] = 6
TREND_SLOPE_THRESHOLD_PCT: Final[float] = 2.5

SUBSTITUTION_TOP_N: Final[int] = 3
SUBSTITUTION_POOL_TTL_SECONDS: Final[float] = 300.0
