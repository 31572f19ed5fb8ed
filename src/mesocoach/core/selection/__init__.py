"""Exercise selection: objective builder, beam-search optimizer, rationale."""

from .objective import build_selection_objective
from .optimizer import select_exercises
from .rationale import map_selection_result
from .types import SelectionObjective, SelectionOutput, SelectionResult

__all__ = [
    "SelectionObjective",
    "SelectionOutput",
    "SelectionResult",
    "build_selection_objective",
    "map_selection_result",
    "select_exercises",
]
