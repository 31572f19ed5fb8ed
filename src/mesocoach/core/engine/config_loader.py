"""
YAML → typed config loader and per-concern resolvers.

Model constants live in core/config.py.  A user may override a subset of
them in ``~/.mesocoach/model.yaml`` (the directory can be moved with the
MESOCOACH_HOME environment variable):

    rir_bands:
      week1: [3, 4]
    landmarks:
      chest: {mev: 8, mav: 14, mrv: 20, sra_hours: 60}
    selection_weights:
      deficit_fill: 0.40
    autoregulation:
      aggressiveness: aggressive
    default_loads:
      barbell: 45

Call sites never chain fallbacks inline; each concern has exactly one
``resolve_*`` function below with a documented precedence order.  The
generator loads the config once per run and passes it to every resolver so
a run sees one consistent snapshot.

If the user file exists but cannot be parsed, a warning is emitted and the
file is ignored.
"""

from __future__ import annotations

import os
import warnings
from pathlib import Path
from typing import Any

import yaml

from ..config import (
    DEFAULT_LOAD_BY_EQUIPMENT,
    DEFAULT_LOAD_PRIORITY,
    DEFAULT_REP_RANGE,
    DEFAULT_RIR_BANDS,
    DEFAULT_SELECTION_WEIGHTS,
    DEFAULT_TARGET_RPE,
    DELOAD_RIR_BAND,
    DELOAD_RPE_CAP,
    DELOAD_WEEK,
    REP_RANGES_BY_GOAL,
    TARGET_RPE_BY_GOAL,
    RirBand,
    VolumeLandmark,
)
from ..exercises.base import Exercise
from ..landmarks import lookup_landmark, normalize_muscle
from ..models import AutoregulationPolicy, TrainingBlock

ModelConfig = dict[str, Any]

# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a single YAML mapping; warn and return {} if it cannot be parsed."""
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except (OSError, yaml.YAMLError) as exc:
        warnings.warn(f"mesocoach: ignoring {path} ({exc})", stacklevel=2)
        return {}
    return data if isinstance(data, dict) else {}


def deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge *override* into *base* (non-destructive to base)."""
    result = dict(base)
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(result.get(k), dict):
            result[k] = deep_merge(result[k], v)
        else:
            result[k] = v
    return result


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def get_user_dir() -> Path:
    """Return the user data directory (MESOCOACH_HOME or ~/.mesocoach)."""
    override = os.environ.get("MESOCOACH_HOME")
    if override:
        return Path(override).expanduser()
    home = Path(os.environ.get("HOME", "~")).expanduser()
    return home / ".mesocoach"


def get_user_yaml_path() -> Path | None:
    """Return the user model.yaml if it exists, else None."""
    p = get_user_dir() / "model.yaml"
    return p if p.exists() else None


def load_model_config() -> ModelConfig:
    """
    Load user model overrides.

    Returns:
        Dict of config sections.  Empty dict if no user file is available.
    """
    user = get_user_yaml_path()
    if user is None:
        return {}
    return load_yaml_file(user)


def _section(config: ModelConfig | None, name: str) -> dict[str, Any]:
    if config is None:
        config = load_model_config()
    value = config.get(name)
    return value if isinstance(value, dict) else {}


def _band_from_pair(raw: Any) -> RirBand | None:
    if isinstance(raw, RirBand):
        return raw
    if isinstance(raw, dict) and "min" in raw and "max" in raw:
        return RirBand(int(raw["min"]), int(raw["max"]))
    if isinstance(raw, (list, tuple)) and len(raw) == 2:
        return RirBand(int(raw[0]), int(raw[1]))
    return None


def resolve_rir_band(
    week: int,
    block: TrainingBlock | None = None,
    config: ModelConfig | None = None,
) -> RirBand:
    """
    RIR target band for a lifecycle week.

    Precedence (highest first):
    1. Deload rule: week >= 5 or block state deloading/completed → 4-6, always
    2. Block-level ``rir_bands`` override for the week
    3. User YAML ``rir_bands.week<N>``
    4. Package DEFAULT_RIR_BANDS
    """
    if week >= DELOAD_WEEK or (block is not None and block.state != "accumulating"):
        return DELOAD_RIR_BAND

    if block is not None and week in block.rir_bands:
        band = _band_from_pair(block.rir_bands[week])
        if band is not None:
            return band

    user_band = _band_from_pair(_section(config, "rir_bands").get(f"week{week}"))
    if user_band is not None:
        return user_band

    return DEFAULT_RIR_BANDS.get(max(1, week), DEFAULT_RIR_BANDS[1])


def resolve_landmark_overrides(config: ModelConfig | None = None) -> dict[str, VolumeLandmark]:
    """Parse the user YAML ``landmarks`` section into VolumeLandmark values."""
    overrides: dict[str, VolumeLandmark] = {}
    for muscle, raw in _section(config, "landmarks").items():
        if not isinstance(raw, dict):
            continue
        try:
            overrides[normalize_muscle(str(muscle))] = VolumeLandmark(
                mev=int(raw["mev"]),
                mav=int(raw["mav"]),
                mrv=int(raw["mrv"]),
                sra_hours=int(raw.get("sra_hours", 48)),
            )
        except (KeyError, TypeError, ValueError) as exc:
            warnings.warn(f"mesocoach: ignoring landmark override for {muscle} ({exc})", stacklevel=2)
    return overrides


def resolve_landmark(muscle: str, config: ModelConfig | None = None) -> VolumeLandmark:
    """
    Volume landmark for a muscle.

    Precedence: user YAML ``landmarks.<muscle>`` > package table > fallback
    landmark (logged as a warning).
    """
    return lookup_landmark(muscle, resolve_landmark_overrides(config))


def resolve_selection_weights(
    overrides: dict[str, float] | None = None,
    config: ModelConfig | None = None,
) -> dict[str, float]:
    """
    Scoring weights for the seven selection components.

    Precedence: explicit overrides > user YAML ``selection_weights`` >
    DEFAULT_SELECTION_WEIGHTS.  The result is renormalized to sum to 1.0;
    unknown keys are ignored.
    """
    weights = dict(DEFAULT_SELECTION_WEIGHTS)
    for source in (_section(config, "selection_weights"), overrides or {}):
        for key, value in source.items():
            if key in weights:
                weights[key] = max(0.0, float(value))

    total = sum(weights.values())
    if total <= 0:
        return dict(DEFAULT_SELECTION_WEIGHTS)
    return {k: v / total for k, v in weights.items()}


def resolve_rep_range(exercise: Exercise, goal: str, is_main_lift: bool) -> tuple[int, int]:
    """
    Target rep range.

    Precedence: the exercise's own rep range intersected with the goal range
    for its role (when they overlap) > the exercise range > the goal range >
    DEFAULT_REP_RANGE.
    """
    goal_ranges = REP_RANGES_BY_GOAL.get(goal)
    goal_range = goal_ranges["main" if is_main_lift else "accessory"] if goal_ranges else None

    if exercise.rep_range is not None:
        if goal_range is not None:
            low = max(exercise.rep_range[0], goal_range[0])
            high = min(exercise.rep_range[1], goal_range[1])
            if low <= high:
                return (low, high)
        return exercise.rep_range

    return goal_range if goal_range is not None else DEFAULT_REP_RANGE


def resolve_target_rpe(goal: str, rir_band: RirBand | None = None, is_deload: bool = False) -> float:
    """
    Target RPE for working sets.

    Precedence: deload cap (6.0) > 10 - midpoint of the block RIR band >
    TARGET_RPE_BY_GOAL > DEFAULT_TARGET_RPE.
    """
    if is_deload:
        return DELOAD_RPE_CAP
    if rir_band is not None:
        return 10 - rir_band.midpoint
    return TARGET_RPE_BY_GOAL.get(goal, DEFAULT_TARGET_RPE)


def resolve_autoregulation_policy(
    overrides: dict[str, Any] | None = None,
    config: ModelConfig | None = None,
) -> AutoregulationPolicy:
    """
    Autoregulation policy.

    Precedence: explicit overrides > user YAML ``autoregulation`` > defaults.
    """
    merged = deep_merge(_section(config, "autoregulation"), overrides or {})
    defaults = AutoregulationPolicy()
    return AutoregulationPolicy(
        aggressiveness=merged.get("aggressiveness", defaults.aggressiveness),
        allow_up_regulation=bool(merged.get("allow_up_regulation", defaults.allow_up_regulation)),
        allow_down_regulation=bool(
            merged.get("allow_down_regulation", defaults.allow_down_regulation)
        ),
    )


def resolve_default_load(exercise: Exercise, config: ModelConfig | None = None) -> float:
    """
    Starting load for an exercise with no trusted history.

    Precedence:
    1. Any "bodyweight" equipment tag → 0, regardless of other tags
    2. First of barbell > dumbbell > cable present in the equipment list
    3. "other"
    Each equipment value comes from user YAML ``default_loads`` when set,
    else DEFAULT_LOAD_BY_EQUIPMENT.
    """
    if exercise.is_bodyweight:
        return 0.0

    user_loads = _section(config, "default_loads")

    def _load_for(kind: str) -> float:
        if kind in user_loads:
            return float(user_loads[kind])
        return DEFAULT_LOAD_BY_EQUIPMENT[kind]

    for kind in DEFAULT_LOAD_PRIORITY:
        if kind in exercise.equipment:
            return _load_for(kind)
    return _load_for("other")
