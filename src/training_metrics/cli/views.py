"""
CLI view formatters using Rich for pretty console output.

Handles table formatting and display of workout history and metrics.
"""

from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..core.ascii_plot import create_weekly_chart
from ..core.document import format_timestamp
from ..core.estimator import set_volume
from ..core.models import MetricsState, Session
from ..core.weeks import WeekWindow

console = Console()


def format_session_table(sessions: list[Session]) -> Table:
    """
    Create a Rich table for session history.

    Args:
        sessions: Sessions to display

    Returns:
        Rich Table object
    """
    table = Table(title="Workout History", show_header=True, header_style="bold")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Started (UTC)", style="cyan")
    table.add_column("Name")
    table.add_column("Exercises")
    table.add_column("Sets", justify="right")
    table.add_column("Volume kg", justify="right", style="bold")

    for i, session in enumerate(sessions, 1):
        names = ", ".join(escape(e.name) for e in session.exercises) or "-"
        n_sets = sum(len(e.sets) for e in session.exercises)
        volume = sum(
            set_volume(s.weight_kg, s.reps) for e in session.exercises for s in e.sets
        )
        name = escape(session.name) or "-"
        if session.is_seed:
            name += " [dim](seed)[/dim]"
        table.add_row(
            str(i),
            format_timestamp(session.started_at),
            name,
            names,
            str(n_sets),
            str(volume),
        )

    return table


def print_history(sessions: list[Session]) -> None:
    """
    Print session history to console.

    Args:
        sessions: Sessions to display
    """
    if not sessions:
        console.print("[yellow]No sessions recorded yet.[/yellow]")
        return

    console.print(format_session_table(sessions))


def _last_nonzero(values: list[int]) -> int:
    for v in reversed(values):
        if v:
            return v
    return 0


def print_metrics(document: dict[str, Any], state: MetricsState) -> None:
    """
    Print the metrics document as a set of Rich tables.

    Args:
        document: Output of build_metrics_document
        state: Aggregated state the document was built from
    """
    span = document["span_wks"]
    consistency = document["consistency"]

    console.print()
    if state.window_start is None or state.window_end is None:
        console.print("[yellow]No sessions in history.[/yellow]")
        return

    console.print(
        f"[bold]Window:[/bold] {state.window_start} → {state.window_end} "
        f"({span} ISO weeks, UTC)"
    )
    console.print(
        f"[bold]Weeks trained:[/bold] {consistency['wks_trained']}/{span}   "
        f"[bold]Sessions:[/bold] {sum(consistency['sessions'])}"
    )

    intensity = document["intensity"]
    table = Table(title="Intensity (sets)", show_header=True, header_style="bold")
    table.add_column("Easy (RIR ≥ 3)", justify="right", style="green")
    table.add_column("Moderate (RIR 1-2)", justify="right", style="yellow")
    table.add_column("Hard (RIR 0)", justify="right", style="red")
    table.add_row(str(intensity["easy"]), str(intensity["med"]), str(intensity["hard"]))
    console.print(table)

    table = Table(title="Muscle-group volume (kg)", show_header=True, header_style="bold")
    table.add_column("Group", style="cyan")
    table.add_column("Window total", justify="right")
    table.add_column("Latest week", justify="right", style="bold")
    for group, weekly in document["mg_vol"].items():
        table.add_row(group, str(sum(weekly)), str(weekly[-1]))
    console.print(table)

    if document["lifts"]:
        table = Table(title="Lifts", show_header=True, header_style="bold")
        table.add_column("Lift", style="cyan")
        table.add_column("Freq", justify="right")
        table.add_column("Volume kg", justify="right")
        table.add_column("Best e1RM", justify="right", style="bold")
        table.add_column("Latest e1RM", justify="right")
        table.add_column("Top sets")
        for key, lift in document["lifts"].items():
            top = ", ".join(f"{t['w']}×{t['r']} ({t['d'][:10]})" for t in lift["top"])
            table.add_row(
                key,
                str(lift["freq"]),
                str(sum(lift["vol"])),
                str(max(lift["e1rm"])),
                str(_last_nonzero(lift["e1rm"])),
                top or "-",
            )
        console.print(table)

    if document["prs"]:
        table = Table(title="Personal records", show_header=True, header_style="bold")
        table.add_column("Lift", style="cyan")
        table.add_column("Date", style="dim")
        table.add_column("Set", justify="right", style="bold")
        for pr in document["prs"]:
            table.add_row(pr["lift"], pr["date"][:10], f"{pr['w']} kg × {pr['r']}")
        console.print(table)

    console.print()


def print_weekly_chart(state: MetricsState, values: list[int], title: str) -> None:
    """Print an ASCII chart of one value per week of the window."""
    if state.window_start is None:
        console.print("[yellow]No sessions in history.[/yellow]")
        return
    window = WeekWindow(state.window_start, state.window_end, state.span_weeks)
    console.print(create_weekly_chart(window.week_starts(), values, title=title))


def print_classification(name: str, lift: str | None, muscle_group: str | None) -> None:
    """Print how an exercise name is classified."""
    console.print(f"[bold]{escape(name)}[/bold]")
    console.print(f"  Lift:         {lift or '[dim]none[/dim]'}")
    console.print(f"  Muscle group: {muscle_group or '[dim]none[/dim]'}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]{escape(message)}[/green]")


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[red]Error: {escape(message)}[/red]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]Warning: {escape(message)}[/yellow]")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[blue]{escape(message)}[/blue]")
