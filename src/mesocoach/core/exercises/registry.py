"""
Exercise registry.

The exercise library is loaded from the bundled ``exercises.yaml`` at
import time.  If loading fails (parse error, no valid entries), a
RuntimeError is raised; the engine cannot generate sessions without a
library.

User overrides: ``~/.mesocoach/exercises.yaml``.
"""

from .base import Exercise


def _build_registry() -> dict[str, Exercise]:
    from .loader import load_exercises_from_yaml

    loaded = load_exercises_from_yaml()
    if not loaded:
        raise RuntimeError(
            "mesocoach: no exercise definitions could be loaded from YAML. "
            "Check that src/mesocoach/exercises.yaml is present and valid."
        )
    return loaded


EXERCISE_REGISTRY: dict[str, Exercise] = _build_registry()


def get_exercise(exercise_id: str) -> Exercise:
    """
    Return the Exercise for the given exercise_id.

    Raises:
        ValueError: If exercise_id is not in the registry
    """
    if exercise_id not in EXERCISE_REGISTRY:
        valid = ", ".join(sorted(EXERCISE_REGISTRY))
        raise ValueError(f"Unknown exercise '{exercise_id}'. Valid IDs: {valid}")
    return EXERCISE_REGISTRY[exercise_id]


def get_library() -> list[Exercise]:
    """All registered exercises, in library order."""
    return list(EXERCISE_REGISTRY.values())
