"""Shared Typer app object, shared option types, and store utilities."""

import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.logging import RichHandler

from ..core.generator import GenerationContext
from ..io.history_store import TrainingStore, get_default_store
from ..io.serializers import ValidationError
from . import views

# Shared --data-dir option type used across all commands
DataDirOption = Annotated[
    Optional[Path],
    typer.Option("--data-dir", "-d", help="Data directory (default: $MESOCOACH_HOME or ~/.mesocoach)"),
]

app = typer.Typer(
    name="mesocoach",
    help="Adaptive hypertrophy session generator: block periodization, volume targets and autoregulation.",
    no_args_is_help=True,
)


@app.callback()
def main_callback(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show engine decision logging"),
    ] = False,
) -> None:
    """mesocoach: generate, log and explain training sessions."""
    if verbose:
        logging.basicConfig(
            level=logging.INFO,
            format="%(message)s",
            handlers=[RichHandler(console=views.console, show_path=False)],
        )


def get_store(data_dir: Path | None) -> TrainingStore:
    """Get the store for a data directory, or the default location."""
    if data_dir is None:
        return get_default_store()
    return TrainingStore(data_dir)


def require_store(data_dir: Path | None) -> TrainingStore:
    """Return an initialized store, or exit with a hint to run init."""
    store = get_store(data_dir)
    if not store.exists():
        views.print_error(f"History file not found: {store.history_path}")
        views.print_info("Run 'mesocoach init' first to create a profile.")
        raise typer.Exit(1)
    return store


def load_context(store: TrainingStore) -> GenerationContext:
    """Read everything a generation run needs from the store."""
    try:
        profile, goals, constraints, preferences = store.load_profile()
        return GenerationContext(
            profile=profile,
            goals=goals,
            constraints=constraints,
            preferences=preferences,
            history=tuple(store.load_history()),
            block=store.load_block(),
            readiness=tuple(store.load_readiness()),
        )
    except (FileNotFoundError, ValidationError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)


def split_list(raw: Optional[str]) -> list[str]:
    """'barbell, cable' -> ['barbell', 'cable']"""
    if not raw:
        return []
    return [item.strip() for item in raw.split(",") if item.strip()]
