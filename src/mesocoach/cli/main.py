"""
CLI entry point using Typer.

Provides commands for session generation:
- init: Initialize profile, goals, constraints and the first block
- generate: Generate and explain a session for an intent
- substitutes: Rank alternatives for an exercise
- log-session: Log a performed session and advance the block
- checkin: Record a readiness check-in
- history: Display logged sessions
- status: Block state, week, RIR target and weekly volume
- explain: Provenance of the last generated plan
- reset-block: Restart the current block at week 1
"""

from .app import app
from .commands import analysis, planning, profile, sessions  # noqa: F401  (register commands)

__all__ = ["app"]

if __name__ == "__main__":
    app()
