"""
Exercise substitution suggestions.

The substitution pool is read through an injected TTLCache so repeated
lookups within a few minutes reuse one library snapshot.
"""

from dataclasses import dataclass
from typing import Callable, Iterable, Sequence

from .cache import TTLCache
from .config import SUBSTITUTION_TOP_N
from .exercises.base import Exercise
from .selection.objective import pain_conflicts
from .selection.optimizer import equipment_available

POOL_CACHE_KEY = "substitution_pool"


@dataclass(frozen=True)
class SubstituteSuggestion:
    exercise: Exercise
    score: float
    shared_patterns: tuple[str, ...]
    shared_primary_muscles: tuple[str, ...]


def substitution_pool(
    cache: TTLCache[list[Exercise]],
    loader: Callable[[], list[Exercise]],
    now: float | None = None,
) -> list[Exercise]:
    return cache.get_or_load(POOL_CACHE_KEY, loader, now)


def score_substitute(original: Exercise, candidate: Exercise) -> float:
    """
    shared patterns × 4 + shared primary muscles × 3 + shared stimulus × 2,
    plus the fatigue-cost saving (cheaper substitutes score higher).
    """
    patterns = set(original.movement_patterns) & set(candidate.movement_patterns)
    primary = set(original.primary_muscles) & set(candidate.primary_muscles)
    stimulus = set(original.stimulus_bias) & set(candidate.stimulus_bias)
    fatigue_delta = original.fatigue_cost - candidate.fatigue_cost
    return len(patterns) * 4 + len(primary) * 3 + len(stimulus) * 2 + fatigue_delta


def suggest_substitutes(
    original: Exercise,
    pool: Sequence[Exercise],
    pain_flags: dict[str, int] | None = None,
    available_equipment: Iterable[str] = (),
    top_n: int = SUBSTITUTION_TOP_N,
) -> list[SubstituteSuggestion]:
    """
    Rank alternatives to *original*.

    Candidates must share a split tag with it, pass the pain filter and use
    available equipment.  Only candidates sharing a movement pattern or a
    primary muscle are returned.  Ties break by exercise id.
    """
    available = set(available_equipment)
    blocked = pain_conflicts(pool, pain_flags or {})
    suggestions: list[SubstituteSuggestion] = []
    for candidate in pool:
        if candidate.exercise_id == original.exercise_id or candidate.exercise_id in blocked:
            continue
        if not set(candidate.split_tags) & set(original.split_tags):
            continue
        if not equipment_available(candidate, available):
            continue
        patterns = tuple(sorted(set(original.movement_patterns) & set(candidate.movement_patterns)))
        primary = tuple(sorted(set(original.primary_muscles) & set(candidate.primary_muscles)))
        if not patterns and not primary:
            continue
        suggestions.append(
            SubstituteSuggestion(
                exercise=candidate,
                score=score_substitute(original, candidate),
                shared_patterns=patterns,
                shared_primary_muscles=primary,
            )
        )
    suggestions.sort(key=lambda s: (-s.score, s.exercise.exercise_id))
    return suggestions[:top_n]
