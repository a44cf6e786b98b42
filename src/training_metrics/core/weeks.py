"""
ISO-week bucketing in UTC.

Weeks start on Monday and are evaluated in UTC regardless of the local
timezone, so the same history always produces the same buckets.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone

from .config import DAYS_PER_WEEK, MIN_SPAN_WEEKS


def to_utc(timestamp: datetime) -> datetime:
    """Return ``timestamp`` in UTC; naive values are assumed to already be UTC."""
    if timestamp.tzinfo is None:
        return timestamp.replace(tzinfo=timezone.utc)
    return timestamp.astimezone(timezone.utc)


def iso_week_start(timestamp: datetime) -> date:
    """Monday (UTC calendar date) of the ISO week containing ``timestamp``."""
    day = to_utc(timestamp).date()
    return day - timedelta(days=day.weekday())


@dataclass(frozen=True)
class WeekWindow:
    """
    A trailing window of ``span_weeks`` ISO weeks ending at ``end_week``.

    Index 0 is the oldest week and ``span_weeks - 1`` the week containing
    the latest timestamp.
    """

    start_week: date
    end_week: date
    span_weeks: int

    @classmethod
    def ending_at(cls, latest: datetime, span_weeks: int) -> "WeekWindow":
        if span_weeks < MIN_SPAN_WEEKS:
            raise ValueError(f"span_weeks must be >= {MIN_SPAN_WEEKS}, got {span_weeks}")
        end_week = iso_week_start(latest)
        start_week = end_week - timedelta(weeks=span_weeks - 1)
        return cls(start_week=start_week, end_week=end_week, span_weeks=span_weeks)

    def index(self, timestamp: datetime) -> int | None:
        """Week offset of ``timestamp`` within the window, or None if outside."""
        offset = (iso_week_start(timestamp) - self.start_week).days // DAYS_PER_WEEK
        if offset < 0 or offset >= self.span_weeks:
            return None
        return offset

    def week_starts(self) -> list[date]:
        """Monday of every week in the window, oldest first."""
        return [self.start_week + timedelta(weeks=i) for i in range(self.span_weeks)]


def week_index(timestamp: datetime, span_weeks: int, latest: datetime) -> int | None:
    """
    Map ``timestamp`` to its week offset in the window ending at ``latest``.

    Args:
        timestamp: Moment to bucket
        span_weeks: Window length in weeks (>= 1)
        latest: Any moment within the final week of the window

    Returns:
        Integer in [0, span_weeks) or None when outside the window
    """
    return WeekWindow.ending_at(latest, span_weeks).index(timestamp)
