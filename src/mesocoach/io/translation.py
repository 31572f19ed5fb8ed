"""
Storage ↔ engine vocabulary translation.

Stored records use UPPERCASE enumerated values ("ACCUMULATING", "INTENT",
"PULL"); the engine uses lowercase literals.  Every enumerated field crosses
the boundary through the mapping tables below and nowhere else.  Unknown
values raise ValidationError instead of leaking into the engine.

Decision-provenance blobs (selection rationale, autoregulation log) are
stored as loose JSON.  They are parsed back into tagged variants here, and
malformed shapes are rejected.
"""

from dataclasses import dataclass, field
from typing import Any, Union

from ..core.autoregulation import (
    AutoregulationResult,
    DeloadTrigger,
    IntensityScale,
    Modification,
    VolumeReduction,
)
from ..core.selection.types import ExerciseRationale, SelectionOutput
from .serializers import ValidationError


class EnumTable:
    """Bidirectional, exhaustive mapping for one enumerated type."""

    def __init__(self, name: str, engine_to_storage: dict[str, str]):
        self.name = name
        self._to_storage = dict(engine_to_storage)
        self._to_engine = {v: k for k, v in engine_to_storage.items()}
        if len(self._to_engine) != len(self._to_storage):
            raise ValueError(f"{name}: storage values must be unique")

    @property
    def engine_values(self) -> tuple[str, ...]:
        return tuple(self._to_storage)

    def to_storage(self, value: str) -> str:
        try:
            return self._to_storage[value]
        except KeyError:
            raise ValidationError(f"Unknown {self.name} value: {value!r}") from None

    def to_engine(self, value: Any) -> str:
        if not isinstance(value, str) or value not in self._to_engine:
            raise ValidationError(
                f"Unknown stored {self.name}: {value!r}. "
                f"Expected one of {sorted(self._to_engine)}"
            )
        return self._to_engine[value]


BLOCK_STATE = EnumTable(
    "block state",
    {"accumulating": "ACCUMULATING", "deloading": "DELOADING", "completed": "COMPLETED"},
)
SESSION_STATUS = EnumTable(
    "session status",
    {
        "planned": "PLANNED",
        "in_progress": "IN_PROGRESS",
        "completed": "COMPLETED",
        "partial": "PARTIAL",
        "skipped": "SKIPPED",
    },
)
SELECTION_MODE = EnumTable(
    "selection mode",
    {"intent": "INTENT", "auto": "AUTO", "bonus": "BONUS", "manual": "MANUAL"},
)
EXERCISE_ROLE = EnumTable(
    "exercise role",
    {"core_compound": "CORE_COMPOUND", "accessory": "ACCESSORY"},
)
WORKOUT_INTENT = EnumTable(
    "workout intent",
    {
        "push": "PUSH",
        "pull": "PULL",
        "legs": "LEGS",
        "upper": "UPPER",
        "lower": "LOWER",
        "full_body": "FULL_BODY",
        "body_part": "BODY_PART",
    },
)
DELOAD_MODE = EnumTable(
    "deload mode",
    {"none": "NONE", "scheduled": "SCHEDULED", "reactive": "REACTIVE"},
)
PROGRESSION_TRIGGER = EnumTable(
    "progression trigger",
    {
        "double_progression": "DOUBLE_PROGRESSION",
        "hold": "HOLD",
        "deload": "DELOAD",
        "readiness_scale": "READINESS_SCALE",
        "insufficient_data": "INSUFFICIENT_DATA",
    },
)

ALL_TABLES: tuple[EnumTable, ...] = (
    BLOCK_STATE,
    SESSION_STATUS,
    SELECTION_MODE,
    EXERCISE_ROLE,
    WORKOUT_INTENT,
    DELOAD_MODE,
    PROGRESSION_TRIGGER,
)


# =============================================================================
# RECORD-LEVEL TRANSLATION
# =============================================================================


def _translate(record: dict[str, Any], fields: dict[str, EnumTable], to_storage: bool) -> dict[str, Any]:
    result = dict(record)
    for key, table in fields.items():
        if result.get(key) is None:
            continue
        result[key] = table.to_storage(result[key]) if to_storage else table.to_engine(result[key])
    return result


_WORKOUT_FIELDS = {"status": SESSION_STATUS, "selection_mode": SELECTION_MODE, "intent": WORKOUT_INTENT}
_BLOCK_FIELDS = {"state": BLOCK_STATE}
_ROLE_FIELDS = {"intent": WORKOUT_INTENT, "role": EXERCISE_ROLE}


def workout_to_storage(record: dict[str, Any]) -> dict[str, Any]:
    return _translate(record, _WORKOUT_FIELDS, to_storage=True)


def workout_from_storage(record: dict[str, Any]) -> dict[str, Any]:
    return _translate(record, _WORKOUT_FIELDS, to_storage=False)


def block_to_storage(record: dict[str, Any]) -> dict[str, Any]:
    result = _translate(record, _BLOCK_FIELDS, to_storage=True)
    result["roles"] = [_translate(r, _ROLE_FIELDS, True) for r in record.get("roles", [])]
    return result


def block_from_storage(record: dict[str, Any]) -> dict[str, Any]:
    result = _translate(record, _BLOCK_FIELDS, to_storage=False)
    result["roles"] = [_translate(r, _ROLE_FIELDS, False) for r in record.get("roles", [])]
    return result


# =============================================================================
# PROVENANCE BLOBS
# =============================================================================

_SELECTION_STEPS = ("pin", "anchor", "main_pick", "accessory_pick")


@dataclass
class SelectionRationale:
    strategy: str
    exercises: dict[str, ExerciseRationale] = field(default_factory=dict)


@dataclass
class AutoregulationLog:
    applied: bool
    action: str
    rationale: str
    fatigue_overall: float | None = None
    signal_age_hours: float | None = None
    modifications: list[Modification] = field(default_factory=list)


def _require(blob: Any, key: str, kinds: Union[type, tuple[type, ...]], where: str) -> Any:
    if not isinstance(blob, dict):
        raise ValidationError(f"{where}: expected an object, got {type(blob).__name__}")
    if key not in blob:
        raise ValidationError(f"{where}: missing '{key}'")
    value = blob[key]
    # bool is an int subclass; never accept it where a number is expected
    if isinstance(value, bool) and bool not in (kinds if isinstance(kinds, tuple) else (kinds,)):
        raise ValidationError(f"{where}: '{key}' has type bool")
    if not isinstance(value, kinds):
        raise ValidationError(f"{where}: '{key}' has type {type(value).__name__}")
    return value


def _optional_number(blob: dict, key: str, where: str) -> float | None:
    if blob.get(key) is None:
        return None
    return float(_require(blob, key, (int, float), where))


def selection_rationale_to_blob(output: SelectionOutput) -> dict[str, Any]:
    return {
        "strategy": output.strategy,
        "exercises": {
            exercise_id: {
                "score": r.score,
                "components": dict(r.components),
                "hard_filter_pass": r.hard_filter_pass,
                "selected_step": r.selected_step,
                "reason": r.reason,
            }
            for exercise_id, r in output.rationale.items()
        },
    }


def parse_selection_rationale(blob: Any) -> SelectionRationale:
    """
    Validate and parse a stored selection-rationale blob.

    Raises:
        ValidationError: On any missing key, wrong type or unknown step
    """
    strategy = _require(blob, "strategy", str, "selection rationale")
    raw = _require(blob, "exercises", dict, "selection rationale")
    exercises: dict[str, ExerciseRationale] = {}
    for exercise_id, item in raw.items():
        where = f"selection rationale[{exercise_id}]"
        components = _require(item, "components", dict, where)
        for name, value in components.items():
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValidationError(f"{where}: component '{name}' is not a number")
        step = _require(item, "selected_step", str, where)
        if step not in _SELECTION_STEPS:
            raise ValidationError(f"{where}: unknown selected_step {step!r}")
        exercises[exercise_id] = ExerciseRationale(
            score=float(_require(item, "score", (int, float), where)),
            components={k: float(v) for k, v in components.items()},
            hard_filter_pass=_require(item, "hard_filter_pass", bool, where),
            selected_step=step,  # type: ignore[arg-type]
            reason=_require(item, "reason", str, where),
        )
    return SelectionRationale(strategy=strategy, exercises=exercises)


def _modification_to_blob(mod: Modification) -> dict[str, Any]:
    if isinstance(mod, IntensityScale):
        return {
            "type": mod.type,
            "exercise_id": mod.exercise_id,
            "direction": mod.direction,
            "scalar": mod.scalar,
            "original_load": mod.original_load,
            "adjusted_load": mod.adjusted_load,
            "original_rpe": mod.original_rpe,
            "adjusted_rpe": mod.adjusted_rpe,
            "reason": mod.reason,
        }
    if isinstance(mod, VolumeReduction):
        return {
            "type": mod.type,
            "exercise_id": mod.exercise_id,
            "original_sets": mod.original_sets,
            "adjusted_sets": mod.adjusted_sets,
            "sets_cut": mod.sets_cut,
            "reason": mod.reason,
        }
    return {
        "type": mod.type,
        "exercise_id": mod.exercise_id,
        "original_sets": mod.original_sets,
        "adjusted_sets": mod.adjusted_sets,
        "original_load": mod.original_load,
        "adjusted_load": mod.adjusted_load,
        "adjusted_rpe": mod.adjusted_rpe,
        "reason": mod.reason,
    }


def _parse_modification(item: Any, index: int) -> Modification:
    where = f"autoregulation modification[{index}]"
    kind = _require(item, "type", str, where)
    exercise_id = _require(item, "exercise_id", str, where)
    reason = _require(item, "reason", str, where)
    if kind == "intensity_scale":
        direction = _require(item, "direction", str, where)
        if direction not in ("up", "down"):
            raise ValidationError(f"{where}: unknown direction {direction!r}")
        return IntensityScale(
            exercise_id=exercise_id,
            direction=direction,  # type: ignore[arg-type]
            scalar=float(_require(item, "scalar", (int, float), where)),
            original_load=_optional_number(item, "original_load", where),
            adjusted_load=_optional_number(item, "adjusted_load", where),
            original_rpe=_optional_number(item, "original_rpe", where),
            adjusted_rpe=_optional_number(item, "adjusted_rpe", where),
            reason=reason,
        )
    if kind == "volume_reduction":
        return VolumeReduction(
            exercise_id=exercise_id,
            original_sets=_require(item, "original_sets", int, where),
            adjusted_sets=_require(item, "adjusted_sets", int, where),
            sets_cut=_require(item, "sets_cut", int, where),
            reason=reason,
        )
    if kind == "deload_trigger":
        return DeloadTrigger(
            exercise_id=exercise_id,
            original_sets=_require(item, "original_sets", int, where),
            adjusted_sets=_require(item, "adjusted_sets", int, where),
            original_load=_optional_number(item, "original_load", where),
            adjusted_load=_optional_number(item, "adjusted_load", where),
            adjusted_rpe=float(_require(item, "adjusted_rpe", (int, float), where)),
            reason=reason,
        )
    raise ValidationError(f"{where}: unknown modification type {kind!r}")


def autoregulation_log_to_blob(result: AutoregulationResult) -> dict[str, Any]:
    return {
        "applied": result.applied,
        "action": result.action,
        "rationale": result.rationale,
        "fatigue_overall": result.fatigue.overall if result.fatigue is not None else None,
        "signal_age_hours": result.signal_age_hours,
        "modifications": [_modification_to_blob(m) for m in result.modifications],
    }


def parse_autoregulation_log(blob: Any) -> AutoregulationLog:
    """
    Validate and parse a stored autoregulation log.

    Raises:
        ValidationError: On any missing key, wrong type or unknown variant
    """
    where = "autoregulation log"
    mods = _require(blob, "modifications", list, where)
    return AutoregulationLog(
        applied=_require(blob, "applied", bool, where),
        action=_require(blob, "action", str, where),
        rationale=_require(blob, "rationale", str, where),
        fatigue_overall=_optional_number(blob, "fatigue_overall", where),
        signal_age_hours=_optional_number(blob, "signal_age_hours", where),
        modifications=[_parse_modification(m, i) for i, m in enumerate(mods)],
    )
