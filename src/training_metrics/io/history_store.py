"""
JSONL-based history storage for workout sessions.

Handles reading, writing, and managing the workout history file that
feeds the metrics engine.
"""

from pathlib import Path

from ..core.config import HISTORY_FILE_NAME
from ..core.engine.config_loader import get_app_dir
from ..core.models import Session
from ..core.weeks import to_utc
from .serializers import ValidationError, json_line_to_session, session_to_json_line


class HistoryStore:
    """
    Manages workout history stored in JSONL format.

    The history file contains one session object per line. Lines are kept
    in chronological order of ``started_at``.
    """

    def __init__(self, history_path: str | Path):
        """
        Initialize the history store.

        Args:
            history_path: Path to the JSONL history file
        """
        self.history_path = Path(history_path)

    def exists(self) -> bool:
        """Check if the history file exists."""
        return self.history_path.exists()

    def init(self) -> None:
        """
        Initialize empty history file if it doesn't exist.

        Creates parent directories if needed.
        """
        self.history_path.parent.mkdir(parents=True, exist_ok=True)

        if not self.history_path.exists():
            self.history_path.touch()

    def load_history(self, include_seed: bool = True) -> list[Session]:
        """
        Load all sessions from the history file.

        Args:
            include_seed: Keep sessions flagged as seed/sample data

        Returns:
            List of Session, sorted by start time

        Raises:
            FileNotFoundError: If history file doesn't exist
            ValidationError: If a line cannot be parsed
        """
        if not self.history_path.exists():
            raise FileNotFoundError(
                f"History file not found: {self.history_path}. Run 'init' first."
            )

        sessions: list[Session] = []

        with open(self.history_path, "r", encoding="utf-8") as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue

                try:
                    session = json_line_to_session(line)
                except ValidationError as e:
                    raise ValidationError(
                        f"Error parsing line {line_num} in {self.history_path}: {e}"
                    ) from e

                if include_seed or not session.is_seed:
                    sessions.append(session)

        sessions.sort(key=lambda s: to_utc(s.started_at))

        return sessions

    def append_session(self, session: Session) -> None:
        """
        Add a session to the history file.

        Maintains chronological order by inserting after any sessions that
        started at or before it.

        Args:
            session: Session to append
        """
        if not self.history_path.exists():
            raise FileNotFoundError(
                f"History file not found: {self.history_path}. Run 'init' first."
            )

        sessions = self.load_history()
        started = to_utc(session.started_at)

        insert_idx = len(sessions)
        for i, existing in enumerate(sessions):
            if started < to_utc(existing.started_at):
                insert_idx = i
                break

        sessions.insert(insert_idx, session)
        self._write_sessions(sessions)

    def _write_sessions(self, sessions: list[Session]) -> None:
        with open(self.history_path, "w", encoding="utf-8") as f:
            for session in sessions:
                f.write(session_to_json_line(session) + "\n")

    def clear_history(self) -> None:
        """
        Clear all history (dangerous - use with caution).
        """
        if self.history_path.exists():
            self.history_path.write_text("")


def get_default_history_path() -> Path:
    """Default history file: ~/.training-metrics/history.jsonl."""
    return get_app_dir() / HISTORY_FILE_NAME
