"""
JSON serialization for workout history models.

Handles conversion between dataclasses and JSON-compatible dicts, and
parsing of the compact set notation used on the command line.
"""

import json
import re
from datetime import datetime, timezone
from typing import Any

from ..core.document import format_timestamp
from ..core.models import Exercise, Session, SetEntry


class ValidationError(Exception):
    """Raised when data validation fails."""

    pass


def parse_timestamp(value: Any) -> datetime:
    """
    Parse an ISO-8601 timestamp or YYYY-MM-DD date.

    A trailing ``Z`` is accepted. Dates and naive timestamps are taken as
    UTC.

    Args:
        value: Timestamp string

    Returns:
        Timezone-aware datetime

    Raises:
        ValidationError: If the value is not a valid timestamp
    """
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"Invalid timestamp: {value!r}")

    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as e:
        raise ValidationError(
            f"Invalid timestamp: {value}. Expected ISO-8601, e.g. 2026-03-02T18:30:00Z"
        ) from e

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def validate_optional_number(value: Any, name: str) -> float | None:
    """
    Validate an optional numeric field.

    Args:
        value: Raw value (None allowed)
        name: Field name for error messages

    Returns:
        The value as float, or None

    Raises:
        ValidationError: If the value is present but not a number
    """
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{name} must be a number, got {value!r}")
    return float(value)


def validate_optional_reps(value: Any) -> int | None:
    """Validate an optional whole-number rep count."""
    number = validate_optional_number(value, "reps")
    if number is None:
        return None
    if not number.is_integer():
        raise ValidationError(f"reps must be a whole number, got {value!r}")
    return int(number)


def set_entry_to_dict(entry: SetEntry) -> dict[str, Any]:
    """Convert a SetEntry to a compact JSON-compatible dict (absent values omitted)."""
    d: dict[str, Any] = {"set_number": entry.set_number}
    if entry.weight_kg is not None:
        d["weight_kg"] = entry.weight_kg
    if entry.reps is not None:
        d["reps"] = entry.reps
    if entry.rpe is not None:
        d["rpe"] = entry.rpe
    d["is_logged"] = entry.is_logged
    if entry.id:
        d["id"] = entry.id
    return d


def dict_to_set_entry(data: dict[str, Any]) -> SetEntry:
    """
    Convert dict to SetEntry.

    Raises:
        ValidationError: If a numeric field has the wrong type
    """
    if not isinstance(data, dict):
        raise ValidationError(f"Set must be an object, got {type(data).__name__}")

    set_number = data.get("set_number", 0)
    if isinstance(set_number, bool) or not isinstance(set_number, int):
        raise ValidationError(f"set_number must be an integer, got {set_number!r}")

    return SetEntry(
        weight_kg=validate_optional_number(data.get("weight_kg"), "weight_kg"),
        reps=validate_optional_reps(data.get("reps")),
        rpe=validate_optional_number(data.get("rpe"), "rpe"),
        is_logged=bool(data.get("is_logged", False)),
        set_number=set_number,
        id=str(data.get("id", "")),
    )


def exercise_to_dict(exercise: Exercise) -> dict[str, Any]:
    d: dict[str, Any] = {
        "name": exercise.name,
        "position": exercise.position,
        "sets": [set_entry_to_dict(s) for s in exercise.sets],
    }
    if exercise.id:
        d["id"] = exercise.id
    return d


def dict_to_exercise(data: dict[str, Any]) -> Exercise:
    """
    Convert dict to Exercise.

    Raises:
        ValidationError: If the name is missing or sets are malformed
    """
    if not isinstance(data, dict):
        raise ValidationError(f"Exercise must be an object, got {type(data).__name__}")

    name = data.get("name")
    if not isinstance(name, str):
        raise ValidationError(f"Exercise name must be a string, got {name!r}")

    sets = data.get("sets", [])
    if not isinstance(sets, list):
        raise ValidationError(f"Exercise '{name}': sets must be a list")

    position = data.get("position", 0)
    if isinstance(position, bool) or not isinstance(position, int):
        raise ValidationError(f"Exercise '{name}': position must be an integer")

    return Exercise(
        name=name,
        position=position,
        sets=[dict_to_set_entry(s) for s in sets],
        id=str(data.get("id", "")),
    )


def session_to_dict(session: Session) -> dict[str, Any]:
    """
    Convert Session to JSON-compatible dict.

    Timestamps are written as UTC ISO-8601 strings.
    """
    return {
        "id": session.id,
        "name": session.name,
        "started_at": format_timestamp(session.started_at),
        "completed_at": (
            format_timestamp(session.completed_at) if session.completed_at else None
        ),
        "is_seed": session.is_seed,
        "exercises": [exercise_to_dict(e) for e in session.exercises],
    }


def dict_to_session(data: dict[str, Any]) -> Session:
    """
    Convert dict to Session.

    Raises:
        ValidationError: If data is invalid
    """
    if not isinstance(data, dict):
        raise ValidationError(f"Session must be an object, got {type(data).__name__}")
    if "started_at" not in data:
        raise ValidationError("Session is missing 'started_at'")

    started_at = parse_timestamp(data["started_at"])
    completed_raw = data.get("completed_at")
    completed_at = parse_timestamp(completed_raw) if completed_raw is not None else None

    exercises = data.get("exercises", [])
    if not isinstance(exercises, list):
        raise ValidationError("exercises must be a list")

    return Session(
        started_at=started_at,
        name=str(data.get("name", "")),
        exercises=[dict_to_exercise(e) for e in exercises],
        completed_at=completed_at,
        is_seed=bool(data.get("is_seed", False)),
        id=str(data.get("id", "")),
    )


def session_to_json_line(session: Session) -> str:
    """Serialize a session to a single JSON line (no trailing newline)."""
    return json.dumps(session_to_dict(session), separators=(",", ":"), ensure_ascii=False)


def json_line_to_session(line: str) -> Session:
    """
    Deserialize a JSON line to a Session.

    Raises:
        ValidationError: If JSON is invalid or data validation fails
    """
    try:
        data = json.loads(line.strip())
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid JSON: {e}") from e

    return dict_to_session(data)


_SET_PATTERN = re.compile(
    r"^(?:(?P<weight>-?\d+(?:\.\d+)?)\s*[xX×]\s*)?(?P<reps>\d+)"
    r"(?:\s*@\s*(?P<rpe>\d+(?:\.\d+)?))?$"
)


def parse_sets_string(sets_str: str) -> list[SetEntry]:
    """
    Parse a comma-separated sets string.

    Each set is ``WEIGHTxREPS`` with an optional ``@RPE`` suffix; a bare
    rep count logs a set without load.

    Examples:
        "100x5"             → 100 kg × 5
        "100x5@8, 102.5x3"  → 100 kg × 5 at RPE 8, then 102.5 kg × 3
        "12@9"              → 12 reps, no load, RPE 9

    Args:
        sets_str: Sets string to parse

    Returns:
        SetEntry list, numbered from 1, all marked logged

    Raises:
        ValidationError: If format is invalid
    """
    if not sets_str or not sets_str.strip():
        raise ValidationError("Sets string cannot be empty")

    sets: list[SetEntry] = []
    parts = [p.strip() for p in sets_str.split(",") if p.strip()]

    for part in parts:
        m = _SET_PATTERN.match(part)
        if m is None:
            raise ValidationError(
                f"Invalid set format: '{part}'.\n"
                f"Use: weightxreps[@rpe] (e.g. 100x5@8), or reps[@rpe] (e.g. 12)."
            )
        weight = float(m.group("weight")) if m.group("weight") is not None else None
        rpe = float(m.group("rpe")) if m.group("rpe") is not None else None
        if rpe is not None and rpe > 10:
            raise ValidationError(f"RPE must be between 0 and 10: {rpe}")

        sets.append(
            SetEntry(
                weight_kg=weight,
                reps=int(m.group("reps")),
                rpe=rpe,
                is_logged=True,
                set_number=len(sets) + 1,
            )
        )

    if not sets:
        raise ValidationError("No valid sets found in sets string")

    return sets


def parse_exercise_string(text: str, position: int = 0) -> Exercise:
    """
    Parse ``"NAME: SETS"`` into an Exercise, e.g. ``"Back Squat: 100x5@8, 100x5"``.

    Raises:
        ValidationError: If the name or sets are missing or invalid
    """
    name, sep, sets_str = text.rpartition(":")
    if not sep or not name.strip():
        raise ValidationError(
            f"Invalid exercise: '{text}'. Expected 'NAME: SETS', e.g. 'Bench Press: 80x5'"
        )
    return Exercise(name=name.strip(), position=position, sets=parse_sets_string(sets_str))
