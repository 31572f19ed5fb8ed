"""Session intent → relevant muscles and compatible exercises."""

from typing import Iterable

from .config import MUSCLE_SPLIT_MAP
from .exercises.base import Exercise
from .landmarks import normalize_muscle, tracked_muscles

SESSION_INTENTS: tuple[str, ...] = ("push", "pull", "legs", "upper", "lower", "full_body", "body_part")

_INTENT_SPLITS: dict[str, tuple[str, ...]] = {
    "push": ("push",),
    "pull": ("pull",),
    "legs": ("legs",),
    "upper": ("push", "pull"),
    "lower": ("legs",),
}


def intent_muscles(intent: str, target_muscles: Iterable[str] = ()) -> list[str]:
    """
    Muscles whose weekly volume a session of *intent* is responsible for.

    full_body covers every tracked muscle; body_part covers the targets
    (every tracked muscle when none are given).
    """
    if intent in _INTENT_SPLITS:
        splits = _INTENT_SPLITS[intent]
        return [m for m in tracked_muscles() if MUSCLE_SPLIT_MAP.get(m) in splits]
    if intent == "body_part":
        targets = [normalize_muscle(m) for m in target_muscles]
        return targets or tracked_muscles()
    if intent == "full_body":
        return tracked_muscles()
    raise ValueError(f"Unknown session intent: {intent}")


def is_intent_aligned(
    exercise: Exercise,
    intent: str,
    target_muscles: Iterable[str] = (),
) -> bool:
    """True when *exercise* belongs in a session of *intent*."""
    if intent in _INTENT_SPLITS:
        return any(tag in _INTENT_SPLITS[intent] for tag in exercise.split_tags)
    if intent == "body_part":
        targets = {normalize_muscle(m) for m in target_muscles}
        return not targets or any(m in targets for m in exercise.primary_muscles)
    return True


def intent_pool(
    library: Iterable[Exercise],
    intent: str,
    target_muscles: Iterable[str] = (),
) -> list[Exercise]:
    targets = list(target_muscles)
    return [e for e in library if is_intent_aligned(e, intent, targets)]
