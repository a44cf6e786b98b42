"""
Single-pass aggregation over a workout history.

Walks sessions → exercises → sets once, filling a fresh MetricsState:
sessions per week, global intensity bins, per-muscle-group weekly volume,
per-lift frequency / weekly volume / weekly best e1RM / top sets, and the
best-ever e1RM per lift.

Tie-breaks:
  - best set within an exercise occurrence: strict ``>``, first set wins
  - weekly e1RM slot: max of the rounded best-set values in that week
  - personal record: strict ``>`` on the unrounded e1RM, earliest kept
"""

from datetime import datetime
from typing import Iterable

from .classifiers import (
    LIFT_RULES,
    MUSCLE_GROUP_RULES,
    RuleTable,
    classify_intensity,
    exertion_in_range,
)
from .config import DEFAULT_SPAN_WEEKS, MIN_SPAN_WEEKS, TOP_SETS_PER_LIFT
from .estimator import estimate_1rm, round_half_away, set_volume
from .models import Exercise, MetricsState, PersonalRecord, Session, SetEntry, TopSet
from .weeks import WeekWindow, to_utc


def filter_seed_sessions(sessions: Iterable[Session], include_seed: bool = False) -> list[Session]:
    """Drop sample/seed sessions unless ``include_seed`` is set."""
    return [s for s in sessions if include_seed or not s.is_seed]


def latest_start(sessions: Iterable[Session]) -> datetime | None:
    """
    Latest ``started_at`` in the history, or None if it is empty.

    Uses the maximum rather than the last element so that an unsorted
    history still gets the right window.
    """
    starts = [s.started_at for s in sessions]
    if not starts:
        return None
    return max(starts, key=to_utc)


def aggregate(
    sessions: Iterable[Session],
    span_weeks: int = DEFAULT_SPAN_WEEKS,
    latest: datetime | None = None,
    lift_rules: RuleTable = LIFT_RULES,
    muscle_group_rules: RuleTable = MUSCLE_GROUP_RULES,
) -> MetricsState:
    """
    Aggregate a workout history into a MetricsState.

    Args:
        sessions: Sessions, normally oldest first
        span_weeks: Window length in ISO weeks (>= 1)
        latest: End of the window; defaults to the latest session start
        lift_rules: Rule table for exercise name → lift key
        muscle_group_rules: Rule table for exercise name → muscle group

    Returns:
        Populated MetricsState (all-zero when there is nothing to aggregate)

    Raises:
        ValueError: If span_weeks < 1
    """
    if span_weeks < MIN_SPAN_WEEKS:
        raise ValueError(f"span_weeks must be >= {MIN_SPAN_WEEKS}, got {span_weeks}")

    history = list(sessions)
    state = MetricsState.empty(span_weeks)

    if latest is None:
        latest = latest_start(history)
    if latest is None:
        return state

    window = WeekWindow.ending_at(latest, span_weeks)
    state.window_start = window.start_week
    state.window_end = window.end_week

    for session in history:
        week = window.index(session.started_at)
        if week is None:
            continue
        state.sessions_per_week[week] += 1
        for exercise in session.exercises:
            _accumulate_exercise(
                state, session, exercise, week, lift_rules, muscle_group_rules
            )

    for agg in state.lifts.values():
        agg.top_sets.sort(key=lambda t: to_utc(t.date), reverse=True)
        del agg.top_sets[TOP_SETS_PER_LIFT:]

    return state


def _accumulate_exercise(
    state: MetricsState,
    session: Session,
    exercise: Exercise,
    week: int,
    lift_rules: RuleTable,
    muscle_group_rules: RuleTable,
) -> None:
    lift = lift_rules.classify(exercise.name)
    muscle_group = muscle_group_rules.classify(exercise.name)

    best_e1rm = 0.0
    best_set: SetEntry | None = None
    volume = 0

    for entry in exercise.sets:
        intensity = classify_intensity(entry.rpe)
        if intensity is not None:
            state.intensity.add(intensity)
            if not exertion_in_range(entry.rpe):
                state.exertion_out_of_range += 1

        volume += set_volume(entry.weight_kg, entry.reps)

        e1rm = estimate_1rm(entry.weight_kg, entry.reps)
        if e1rm is not None and e1rm > best_e1rm:
            best_e1rm = e1rm
            best_set = entry

    # Negative totals only come from assisted (negative) loads; skip them.
    if muscle_group is not None and volume > 0:
        state.muscle_volume[muscle_group][week] += volume

    if lift is None:
        return

    agg = state.lift(lift)
    agg.freq += 1
    agg.volume[week] += volume

    rounded = round_half_away(best_e1rm)
    if rounded > agg.e1rm[week]:
        agg.e1rm[week] = rounded

    if best_set is None:
        return

    weight = round_half_away(best_set.weight_kg)
    reps = int(best_set.reps)
    agg.top_sets.append(TopSet(date=session.started_at, weight_kg=weight, reps=reps))

    previous = state.records.get(lift)
    if previous is None or best_e1rm > previous.e1rm:
        state.records[lift] = PersonalRecord(
            lift=lift,
            date=session.started_at,
            weight_kg=weight,
            reps=reps,
            e1rm=best_e1rm,
        )
