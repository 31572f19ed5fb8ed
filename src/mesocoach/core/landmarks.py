"""
Muscle naming and volume-landmark lookup.

Library entries, history and user overrides may spell muscles differently
("Upper Back", "upper-back", "rear_deltoids").  Everything inside the engine
uses the normalized snake_case form produced by normalize_muscle().
"""

import logging

from .config import (
    FALLBACK_LANDMARK,
    MUSCLE_ALIASES,
    MUSCLE_SPLIT_MAP,
    VOLUME_LANDMARKS,
    VolumeLandmark,
)

logger = logging.getLogger(__name__)


def normalize_muscle(name: str) -> str:
    """
    Normalize a muscle name to the engine vocabulary.

    Lower-cases, converts spaces and hyphens to underscores, maps
    ``*_deltoids`` to ``*_delts`` and applies MUSCLE_ALIASES.
    """
    key = name.strip().lower().replace("-", "_").replace(" ", "_")
    if key.endswith("_deltoids"):
        key = key[: -len("_deltoids")] + "_delts"
    return MUSCLE_ALIASES.get(key, key)


def split_for_muscle(muscle: str) -> str | None:
    """Return "push", "pull" or "legs" for a known muscle, else None."""
    return MUSCLE_SPLIT_MAP.get(normalize_muscle(muscle))


def lookup_landmark(
    muscle: str,
    overrides: dict[str, VolumeLandmark] | None = None,
) -> VolumeLandmark:
    """
    Landmark for a muscle: overrides, then the built-in table, then fallback.

    Unknown muscles get FALLBACK_LANDMARK and a warning; this never raises.
    """
    key = normalize_muscle(muscle)
    if overrides and key in overrides:
        return overrides[key]
    landmark = VOLUME_LANDMARKS.get(key)
    if landmark is None:
        logger.warning(
            "No volume landmark for muscle %r; using fallback mev=%d mav=%d mrv=%d",
            muscle,
            FALLBACK_LANDMARK.mev,
            FALLBACK_LANDMARK.mav,
            FALLBACK_LANDMARK.mrv,
        )
        return FALLBACK_LANDMARK
    return landmark


def tracked_muscles() -> list[str]:
    """Muscles with a built-in landmark, in table order."""
    return list(VOLUME_LANDMARKS)
