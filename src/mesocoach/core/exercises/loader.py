"""
YAML → Exercise loader.

Loads the bundled exercise library from ``src/mesocoach/exercises.yaml``.
The file holds a top-level ``exercises`` list; each item is a flat mapping
matching the Exercise schema.

User overrides: ``~/.mesocoach/exercises.yaml`` with the same layout.  An
entry whose exercise_id matches a bundled one is deep-merged over it, so
only changed keys need to be listed; unknown ids are added as new exercises.

Usage (internal, called by registry.py):
    from .loader import load_exercises_from_yaml
    exercises = load_exercises_from_yaml()   # dict or None on failure
"""

from __future__ import annotations

import warnings
from pathlib import Path
from typing import Any

from ..engine.config_loader import deep_merge, get_user_dir, load_yaml_file
from ..landmarks import normalize_muscle
from .base import Exercise

_REQUIRED_EXERCISE_FIELDS: frozenset[str] = frozenset(
    {
        "exercise_id",
        "name",
        "movement_patterns",
        "split_tags",
        "primary_muscles",
        "equipment",
    }
)


def _str_tuple(values: Any) -> tuple[str, ...]:
    if values is None:
        return ()
    if isinstance(values, str):
        return (values,)
    return tuple(str(v) for v in values)


def exercise_from_dict(d: dict) -> Exercise:
    """Convert a raw dict (from YAML) to an Exercise.

    Raises ValueError if any required field is absent or a value is invalid.
    """
    missing = _REQUIRED_EXERCISE_FIELDS - set(d)
    if missing:
        raise ValueError(f"Exercise missing fields: {sorted(missing)}")

    rep_range_raw = d.get("rep_range")
    rep_range = None
    if rep_range_raw is not None:
        if len(rep_range_raw) != 2:
            raise ValueError(f"rep_range must have two values, got {rep_range_raw}")
        rep_range = (int(rep_range_raw[0]), int(rep_range_raw[1]))

    return Exercise(
        exercise_id=str(d["exercise_id"]),
        name=str(d["name"]),
        movement_patterns=_str_tuple(d["movement_patterns"]),
        split_tags=_str_tuple(d["split_tags"]),
        primary_muscles=tuple(normalize_muscle(m) for m in _str_tuple(d["primary_muscles"])),
        secondary_muscles=tuple(
            normalize_muscle(m) for m in _str_tuple(d.get("secondary_muscles"))
        ),
        equipment=_str_tuple(d["equipment"]),
        stimulus_bias=_str_tuple(d.get("stimulus_bias")),
        is_main_lift_eligible=bool(d.get("is_main_lift_eligible", False)),
        is_compound=bool(d.get("is_compound", False)),
        has_weighted_variant=bool(d.get("has_weighted_variant", False)),
        sfr_score=int(d.get("sfr_score", 3)),
        length_position_score=int(d.get("length_position_score", 3)),
        fatigue_cost=int(d.get("fatigue_cost", 3)),
        rep_range=rep_range,
        contraindications=_str_tuple(d.get("contraindications")),
    )


def _get_bundled_library_path() -> Path | None:
    """Return path to the bundled exercises.yaml, or None if not found."""
    # loader.py lives at src/mesocoach/core/exercises/loader.py
    candidate = Path(__file__).parent.parent.parent / "exercises.yaml"
    return candidate if candidate.is_file() else None


def _get_user_library_path() -> Path | None:
    p = get_user_dir() / "exercises.yaml"
    return p if p.is_file() else None


def _entries_by_id(raw: dict) -> dict[str, dict]:
    entries = raw.get("exercises") or []
    result: dict[str, dict] = {}
    for entry in entries:
        if isinstance(entry, dict) and "exercise_id" in entry:
            result[str(entry["exercise_id"])] = entry
    return result


def load_exercises_from_path(path: Path) -> dict[str, Exercise]:
    """Load every valid exercise from one library file, skipping bad entries."""
    result: dict[str, Exercise] = {}
    for exercise_id, entry in _entries_by_id(load_yaml_file(path)).items():
        try:
            result[exercise_id] = exercise_from_dict(entry)
        except (ValueError, TypeError) as exc:
            warnings.warn(
                f"mesocoach: skipping exercise '{exercise_id}' in {path.name}: {exc}",
                stacklevel=2,
            )
    return result


def load_exercises_from_yaml() -> dict[str, Exercise] | None:
    """Return {exercise_id: Exercise} from the bundled library plus user overrides.

    Returns None (rather than raising) so the registry can report the
    failure with its own message.
    """
    bundled = _get_bundled_library_path()
    user = _get_user_library_path()
    if bundled is None and user is None:
        return None

    raw_entries: dict[str, dict] = {}
    if bundled is not None:
        raw_entries = _entries_by_id(load_yaml_file(bundled))

    if user is not None:
        for exercise_id, entry in _entries_by_id(load_yaml_file(user)).items():
            if exercise_id in raw_entries:
                raw_entries[exercise_id] = deep_merge(raw_entries[exercise_id], entry)
            else:
                raw_entries[exercise_id] = entry

    result: dict[str, Exercise] = {}
    for exercise_id, entry in raw_entries.items():
        try:
            result[exercise_id] = exercise_from_dict(entry)
        except (ValueError, TypeError) as exc:
            warnings.warn(
                f"mesocoach: skipping exercise '{exercise_id}': {exc}",
                stacklevel=2,
            )

    return result if result else None
