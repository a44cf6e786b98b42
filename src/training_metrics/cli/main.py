"""
CLI entry point using Typer.

Provides commands for workout history and metrics:
- init: Create the history file
- log-session: Log a completed session
- show-history: Display stored sessions
- metrics: Compute the metrics document
- context: Print the chat context block
- chart: Weekly ASCII chart
- classify: Show how an exercise name is classified
- e1rm: Estimated one-rep-max for a weight/reps pair
"""

from .app import app
from .commands import analysis, sessions  # noqa: F401  (registers commands)

if __name__ == "__main__":
    app()
