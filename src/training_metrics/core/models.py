"""
Data models for training-metrics.

Input dataclasses mirror the records supplied by the workout store
(Session → Exercise → SetEntry). Aggregation dataclasses hold the state
accumulated by a single pass of the aggregator; they are created fresh on
every call and never shared.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Literal

LiftKey = Literal[
    "bench",
    "squat",
    "deadlift",
    "overhead_press",
    "row",
    "pullup",
    "romanian_deadlift",
]
MuscleGroup = Literal["quad", "hamstring", "pectoral", "back", "deltoid"]
Intensity = Literal["easy", "moderate", "hard"]

LIFT_KEYS: tuple[str, ...] = (
    "bench",
    "squat",
    "deadlift",
    "overhead_press",
    "row",
    "pullup",
    "romanian_deadlift",
)
MUSCLE_GROUPS: tuple[str, ...] = ("quad", "hamstring", "pectoral", "back", "deltoid")


@dataclass
class SetEntry:
    """
    A single logged set.

    Every numeric field is optional; a missing value simply contributes
    nothing to the aggregate that needs it. ``is_logged`` is carried for the
    current-state snapshot only and is ignored by the aggregator.
    """

    weight_kg: float | None = None
    reps: int | None = None
    rpe: float | None = None  # perceived exertion, nominal 0-10
    is_logged: bool = False
    set_number: int = 0
    id: str = ""


@dataclass
class Exercise:
    """An exercise occurrence within a session, with its sets in order."""

    name: str
    position: int = 0
    sets: list[SetEntry] = field(default_factory=list)
    id: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.name, str):
            raise ValueError(f"Exercise name must be a string, got {type(self.name)}")


@dataclass
class Session:
    """
    A workout session.

    ``started_at`` defines the week bucket. Naive datetimes are treated as
    UTC. ``is_seed`` marks sample data that callers usually exclude.
    """

    started_at: datetime
    name: str = ""
    exercises: list[Exercise] = field(default_factory=list)
    completed_at: datetime | None = None
    is_seed: bool = False
    id: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.started_at, datetime):
            raise ValueError(
                f"started_at must be a datetime, got {type(self.started_at)}"
            )
        if self.completed_at is not None and not isinstance(self.completed_at, datetime):
            raise ValueError(
                f"completed_at must be a datetime, got {type(self.completed_at)}"
            )


@dataclass
class TopSet:
    """Best set of one exercise occurrence, kept per lift."""

    date: datetime
    weight_kg: int  # rounded
    reps: int


@dataclass
class PersonalRecord:
    """Best-ever estimated 1RM seen for a lift within the scanned history."""

    lift: str
    date: datetime
    weight_kg: int  # rounded
    reps: int
    e1rm: float  # unrounded; used for strict comparisons


@dataclass
class LiftAggregate:
    """
    Per-lift accumulator.

    ``volume`` and ``e1rm`` have one slot per week of the window; ``freq``
    counts exercise occurrences across the whole window.
    """

    freq: int = 0
    volume: list[int] = field(default_factory=list)
    e1rm: list[int] = field(default_factory=list)
    top_sets: list[TopSet] = field(default_factory=list)

    @classmethod
    def for_span(cls, span_weeks: int) -> "LiftAggregate":
        """Create a zeroed aggregate sized to the window."""
        return cls(volume=[0] * span_weeks, e1rm=[0] * span_weeks)


@dataclass
class IntensityCounts:
    """Global effort-bin counters (not bucketed per week)."""

    easy: int = 0
    moderate: int = 0
    hard: int = 0

    def add(self, intensity: Intensity) -> None:
        setattr(self, intensity, getattr(self, intensity) + 1)


@dataclass
class MetricsState:
    """
    Everything the aggregator accumulates in one pass.

    ``window_start`` / ``window_end`` are the Monday (UTC) of the oldest and
    newest week buckets, or None when the history was empty.
    """

    span_weeks: int
    sessions_per_week: list[int]
    muscle_volume: dict[str, list[int]]
    intensity: IntensityCounts = field(default_factory=IntensityCounts)
    lifts: dict[str, LiftAggregate] = field(default_factory=dict)
    records: dict[str, PersonalRecord] = field(default_factory=dict)
    exertion_out_of_range: int = 0
    window_start: date | None = None
    window_end: date | None = None

    @classmethod
    def empty(cls, span_weeks: int) -> "MetricsState":
        """Zeroed state with every per-week array sized to the window."""
        return cls(
            span_weeks=span_weeks,
            sessions_per_week=[0] * span_weeks,
            muscle_volume={mg: [0] * span_weeks for mg in MUSCLE_GROUPS},
        )

    @property
    def weeks_trained(self) -> int:
        """Number of weeks in the window with at least one session."""
        return sum(1 for n in self.sessions_per_week if n > 0)

    def lift(self, key: str) -> LiftAggregate:
        """Return the accumulator for a lift, creating it on first use."""
        if key not in self.lifts:
            self.lifts[key] = LiftAggregate.for_span(self.span_weeks)
        return self.lifts[key]
