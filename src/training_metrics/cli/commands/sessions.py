"""Session commands: init, log-session, show-history."""

import uuid
from datetime import datetime, timezone
from typing import Annotated, Optional

import typer

from ...core.models import Session
from ...io.serializers import ValidationError, parse_exercise_string, parse_timestamp
from .. import views
from ..app import HistoryPathOption, app, get_store


@app.command()
def init(history_path: HistoryPathOption = None) -> None:
    """
    Create an empty history file (existing history is kept).
    """
    store = get_store(history_path)
    existed = store.exists()
    store.init()

    if existed:
        views.print_info(f"History already exists: {store.history_path}")
    else:
        views.print_success(f"Created history: {store.history_path}")


@app.command("log-session")
def log_session(
    exercises: Annotated[
        Optional[list[str]],
        typer.Option(
            "--exercise",
            "-x",
            help="Exercise as 'NAME: SETS', e.g. 'Back Squat: 100x5@8, 100x5'. Repeatable.",
        ),
    ] = None,
    name: Annotated[
        str,
        typer.Option("--name", "-n", help="Session name"),
    ] = "",
    date: Annotated[
        Optional[str],
        typer.Option("--date", "-d", help="Start time, ISO-8601 (default: now, UTC)"),
    ] = None,
    seed: Annotated[
        bool,
        typer.Option("--seed", help="Mark as sample/seed data"),
    ] = False,
    history_path: HistoryPathOption = None,
) -> None:
    """
    Log a completed session.
    """
    store = get_store(history_path)

    if not store.exists():
        views.print_error(f"History file not found: {store.history_path}")
        views.print_info("Run 'init' first to create the history file.")
        raise typer.Exit(1)

    if not exercises:
        views.print_error("Give at least one --exercise.")
        raise typer.Exit(1)

    try:
        started_at = parse_timestamp(date) if date else datetime.now(timezone.utc)
        parsed = [parse_exercise_string(text, position=i) for i, text in enumerate(exercises)]
    except ValidationError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    session = Session(
        started_at=started_at,
        name=name,
        exercises=parsed,
        is_seed=seed,
        id=str(uuid.uuid4()),
    )

    try:
        store.append_session(session)
    except (FileNotFoundError, ValidationError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    n_sets = sum(len(e.sets) for e in parsed)
    views.print_success(
        f"Logged {name or 'session'}: {len(parsed)} exercise(s), {n_sets} set(s)"
    )


@app.command("show-history")
def show_history(
    history_path: HistoryPathOption = None,
    include_seed: Annotated[
        bool,
        typer.Option("--include-seed/--no-seed", help="Show seed/sample sessions"),
    ] = True,
) -> None:
    """
    Display stored sessions.
    """
    store = get_store(history_path)

    try:
        sessions = store.load_history(include_seed=include_seed)
    except (FileNotFoundError, ValidationError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    views.print_history(sessions)
