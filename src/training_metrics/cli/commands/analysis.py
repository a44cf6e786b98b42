"""Analysis commands: metrics, context, chart, classify, e1rm."""

import json
from datetime import datetime
from typing import Annotated, Optional

import typer

from ...core.aggregator import filter_seed_sessions
from ...core.classifiers import classify_lift, classify_muscle_group
from ...core.config import MIN_SPAN_WEEKS, PREFERRED_LIFTS
from ...core.document import build_metrics_context, compute_metrics, render_json
from ...core.engine.config_loader import load_metrics_config
from ...core.estimator import estimate_1rm, round_half_away
from ...core.models import Session
from ...io.serializers import ValidationError, parse_timestamp
from .. import views
from ..app import HistoryPathOption, app, get_store

WeeksOption = Annotated[
    Optional[int],
    typer.Option(
        "--weeks", "-w", min=MIN_SPAN_WEEKS, help="Window length in ISO weeks (default: 26)"
    ),
]
IncludeSeedOption = Annotated[
    bool,
    typer.Option("--include-seed", help="Include seed/sample sessions"),
]
LatestOption = Annotated[
    Optional[str],
    typer.Option("--latest", help="End the window at this ISO-8601 time instead of the last session"),
]
JsonOption = Annotated[
    bool,
    typer.Option("--json", "-j", help="Output as JSON for machine processing"),
]


def _load(history_path, include_seed: bool, latest: str | None) -> tuple[list[Session], datetime | None]:
    """Load history with the seed gate applied, plus the parsed --latest value."""
    store = get_store(history_path)

    if not store.exists():
        views.print_error(f"History file not found: {store.history_path}")
        views.print_info("Run 'init' first to create the history file.")
        raise typer.Exit(1)

    try:
        sessions = store.load_history()
        latest_at = parse_timestamp(latest) if latest else None
    except (FileNotFoundError, ValidationError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    return filter_seed_sessions(sessions, include_seed), latest_at


@app.command()
def metrics(
    history_path: HistoryPathOption = None,
    weeks: WeeksOption = None,
    include_seed: IncludeSeedOption = False,
    latest: LatestOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    Compute the training-metrics document.
    """
    cfg = load_metrics_config()
    sessions, latest_at = _load(history_path, include_seed or cfg.include_seed_data, latest)

    document, state = compute_metrics(
        sessions,
        span_weeks=weeks if weeks is not None else cfg.span_weeks,
        latest=latest_at,
        lift_rules=cfg.lift_rules,
        muscle_group_rules=cfg.muscle_group_rules,
    )

    if json_out:
        print(render_json(document))
        return

    views.print_metrics(document, state)
    if state.exertion_out_of_range:
        views.print_warning(
            f"{state.exertion_out_of_range} set(s) had RPE outside 0-10; values were clamped."
        )


@app.command()
def context(
    history_path: HistoryPathOption = None,
    weeks: WeeksOption = None,
    include_seed: IncludeSeedOption = False,
    latest: LatestOption = None,
) -> None:
    """
    Print the METRICS_JSON block passed to the coaching chat.
    """
    cfg = load_metrics_config()
    # The seed gate is applied by build_metrics_context itself.
    sessions, latest_at = _load(history_path, True, latest)

    lines = build_metrics_context(
        sessions,
        span_weeks=weeks if weeks is not None else cfg.span_weeks,
        include_seed=include_seed or cfg.include_seed_data,
        latest=latest_at,
        lift_rules=cfg.lift_rules,
        muscle_group_rules=cfg.muscle_group_rules,
    )

    if not lines:
        views.print_info("No sessions to summarize.")
        return

    for line in lines:
        print(line)


@app.command()
def chart(
    history_path: HistoryPathOption = None,
    weeks: WeeksOption = None,
    include_seed: IncludeSeedOption = False,
    latest: LatestOption = None,
    lift: Annotated[
        Optional[str],
        typer.Option("--lift", "-l", help=f"Chart weekly e1RM for a lift: {', '.join(PREFERRED_LIFTS)}"),
    ] = None,
) -> None:
    """
    Show sessions per week (or a lift's weekly e1RM) as an ASCII chart.
    """
    if lift is not None and lift not in PREFERRED_LIFTS:
        views.print_error(f"Unknown lift '{lift}'. Valid: {', '.join(PREFERRED_LIFTS)}")
        raise typer.Exit(1)

    cfg = load_metrics_config()
    sessions, latest_at = _load(history_path, include_seed or cfg.include_seed_data, latest)

    document, state = compute_metrics(
        sessions,
        span_weeks=weeks if weeks is not None else cfg.span_weeks,
        latest=latest_at,
        lift_rules=cfg.lift_rules,
        muscle_group_rules=cfg.muscle_group_rules,
    )

    if lift is None:
        views.print_weekly_chart(
            state, document["consistency"]["sessions"], title="Sessions per week"
        )
        return

    if lift not in document["lifts"]:
        views.print_info(f"No {lift} sets in this window.")
        return

    views.print_weekly_chart(
        state, document["lifts"][lift]["e1rm"], title=f"{lift} weekly best e1RM (kg)"
    )


@app.command()
def classify(
    name: Annotated[str, typer.Argument(help="Exercise name, e.g. 'Romanian Deadlift'")],
    json_out: JsonOption = False,
) -> None:
    """
    Show the lift key and muscle group an exercise name maps to.
    """
    cfg = load_metrics_config()
    lift = classify_lift(name, cfg.lift_rules)
    muscle_group = classify_muscle_group(name, cfg.muscle_group_rules)

    if json_out:
        print(json.dumps({"name": name, "lift": lift, "muscle_group": muscle_group}))
        return

    views.print_classification(name, lift, muscle_group)


@app.command("e1rm")
def e1rm(
    weight: Annotated[float, typer.Option("--weight", "-w", help="Load in kg")],
    reps: Annotated[int, typer.Option("--reps", "-r", min=1, help="Reps performed")],
    json_out: JsonOption = False,
) -> None:
    """
    Estimated one-rep-max: weight × (1 + reps / 30).
    """
    value = estimate_1rm(weight, reps)
    if value is None:
        views.print_error("Weight and reps are required.")
        raise typer.Exit(1)

    if json_out:
        print(json.dumps({"e1rm_kg": round(value, 2), "rounded": round_half_away(value)}))
        return

    views.console.print(
        f"Estimated 1RM: [bold]{value:.1f} kg[/bold]  (weekly value: {round_half_away(value)})"
    )
