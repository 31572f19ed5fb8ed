"""Planning commands: generate, substitutes."""

import json
import logging
from datetime import datetime
from typing import Annotated, Optional

import typer

from ...core.cache import TTLCache
from ...core.errors import GenerationError
from ...core.exercises.registry import get_exercise, get_library
from ...core.generator import generate_session, resolve_pain_flags
from ...core.intent import SESSION_INTENTS
from ...core.readiness import latest_signal
from ...core.substitution import substitution_pool, suggest_substitutes
from ...io.serializers import ValidationError, generated_session_to_dict, plan_to_dict
from ...io.translation import autoregulation_log_to_blob, selection_rationale_to_blob
from .. import views
from ..app import DataDirOption, app, load_context, require_store, split_list

logger = logging.getLogger(__name__)

_pool_cache: TTLCache[list] = TTLCache()


@app.command()
def generate(
    intent: Annotated[
        str,
        typer.Argument(help="push | pull | legs | upper | lower | full_body | body_part"),
    ],
    data_dir: DataDirOption = None,
    date: Annotated[
        Optional[str],
        typer.Option("--date", help="Session date YYYY-MM-DD (default: today)"),
    ] = None,
    muscles: Annotated[
        Optional[str],
        typer.Option("--muscles", "-m", help="Comma-separated target muscles for body_part"),
    ] = None,
    aggressiveness: Annotated[
        Optional[str],
        typer.Option("--aggressiveness", help="Autoregulation: conservative | moderate | aggressive"),
    ] = None,
    no_save: Annotated[
        bool,
        typer.Option("--no-save", help="Do not store this plan as the last plan"),
    ] = False,
    json_out: Annotated[
        bool,
        typer.Option("--json", "-j", help="Output as JSON for machine processing"),
    ] = False,
) -> None:
    """
    Generate today's session for an intent.

    Prints the plan together with the selection rationale, progression
    receipts, deload decision and cycle position.
    """
    if intent not in SESSION_INTENTS:
        views.print_error(f"Unknown intent '{intent}'. Valid: {', '.join(SESSION_INTENTS)}")
        raise typer.Exit(1)

    store = require_store(data_dir)
    context = load_context(store)

    now = datetime.now()
    if date is not None:
        try:
            datetime.strptime(date, "%Y-%m-%d")
        except ValueError:
            views.print_error(f"Invalid date: {date}. Expected YYYY-MM-DD")
            raise typer.Exit(1)

    policy_overrides = {"aggressiveness": aggressiveness} if aggressiveness else None
    try:
        session = generate_session(
            context,
            intent,
            as_of=date,
            now=now,
            target_muscles=split_list(muscles),
            policy_overrides=policy_overrides,
        )
    except (GenerationError, ValueError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if not no_save:
        store.save_last_plan(
            plan_to_dict(session.plan),
            selection_rationale_to_blob(session.selection),
            autoregulation_log_to_blob(session.autoregulation),
        )

    if json_out:
        print(json.dumps(generated_session_to_dict(session), indent=2))
        return

    views.print_generated(
        session.plan,
        session.selection,
        session.receipts,
        session.cycle,
        session.deload,
        session.autoregulation.rationale,
        session.volume_compliance,
    )


@app.command()
def substitutes(
    exercise_id: Annotated[
        str,
        typer.Argument(help="Exercise id to replace (e.g. barbell_row)"),
    ],
    data_dir: DataDirOption = None,
    top: Annotated[
        int,
        typer.Option("--top", "-n", help="Number of suggestions"),
    ] = 3,
) -> None:
    """
    Suggest alternatives for an exercise.

    Respects pain flags from the latest check-in and the profile's available
    equipment when a profile exists.
    """
    try:
        original = get_exercise(exercise_id)
    except ValueError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    pain_flags: dict[str, int] = {}
    equipment: list[str] = []
    store = require_store(data_dir)
    try:
        _, _, constraints, _ = store.load_profile()
        pain_flags = resolve_pain_flags(
            latest_signal(store.load_readiness()), store.load_history(), datetime.now()
        )
    except (FileNotFoundError, ValidationError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)
    if constraints is not None:
        equipment = constraints.available_equipment

    pool = substitution_pool(_pool_cache, get_library)
    suggestions = suggest_substitutes(original, pool, pain_flags, equipment, top_n=top)
    logger.info("%d substitutes for %s", len(suggestions), exercise_id)
    views.print_substitutes(original.name, suggestions)
