"""
Engine errors.

Generation fails fast: when one of these is raised no partial plan is
returned.  Degraded-but-valid outcomes (stale readiness, unknown muscles,
completed-block transitions) are logged instead of raised.
"""


class GenerationError(Exception):
    """Base class for session-generation failures."""


class MissingContextError(GenerationError):
    """Profile, goals or constraints were not supplied."""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(
            f"Cannot generate a session without: {', '.join(missing)}. "
            "Run 'mesocoach init' to create a profile."
        )


class NoCompatibleExercisesError(GenerationError):
    """Every exercise was excluded by equipment, avoid-list, pain or intent filters."""

    MESSAGE = "No compatible exercises found for the requested intent"

    def __init__(self, intent: str, excluded: dict[str, str] | None = None):
        self.intent = intent
        self.excluded = excluded or {}
        super().__init__(f"{self.MESSAGE} ({intent})")
