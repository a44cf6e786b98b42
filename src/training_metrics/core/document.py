"""
Output documents for the coaching chat.

build_metrics_document turns a MetricsState into the fixed-schema metrics
document. Field names and nesting are consumed verbatim by the chat prompt,
so they must not change:

    u, span_wks, consistency{wks_trained, sessions}, intensity{easy, med, hard},
    mg_vol{quad, ham, pec, back, delt}, prs[{lift, date, w, r}],
    lifts{<key>: {freq, vol, e1rm, top[{d, w, r}]}}

The current-state snapshot is a separate, much smaller document describing
the workout in progress.
"""

import json
from datetime import datetime, timezone
from typing import Any, Iterable

from .aggregator import aggregate, filter_seed_sessions
from .classifiers import LIFT_RULES, MUSCLE_GROUP_RULES, RuleTable
from .config import (
    CURRENT_STATE_TYPE,
    DEFAULT_SPAN_WEEKS,
    EMPTY_DOCUMENT_JSON,
    METRICS_BLOCK_PREFIX,
    MUSCLE_GROUP_OUTPUT_KEYS,
    PREFERRED_LIFTS,
    UNIT_TAG,
)
from .estimator import is_number, round_half_away
from .models import Exercise, MetricsState, Session
from .weeks import to_utc


def format_timestamp(timestamp: datetime) -> str:
    """ISO-8601 in UTC with a trailing Z, e.g. ``2026-03-02T18:30:00Z``."""
    return to_utc(timestamp).strftime("%Y-%m-%dT%H:%M:%SZ")


def build_metrics_document(state: MetricsState) -> dict[str, Any]:
    """
    Assemble the metrics document from aggregated state.

    Every per-week array has exactly ``state.span_weeks`` entries. Lifts
    outside PREFERRED_LIFTS, and lifts without data, are left out of
    ``lifts``; ``prs`` covers every aggregated lift, most recent first.
    """
    records = sorted(state.records.values(), key=lambda pr: to_utc(pr.date), reverse=True)

    lifts: dict[str, Any] = {}
    for key in PREFERRED_LIFTS:
        agg = state.lifts.get(key)
        if agg is None:
            continue
        lifts[key] = {
            "freq": agg.freq,
            "vol": list(agg.volume),
            "e1rm": list(agg.e1rm),
            "top": [
                {"d": format_timestamp(t.date), "w": t.weight_kg, "r": t.reps}
                for t in agg.top_sets
            ],
        }

    return {
        "u": UNIT_TAG,
        "span_wks": state.span_weeks,
        "consistency": {
            "wks_trained": state.weeks_trained,
            "sessions": list(state.sessions_per_week),
        },
        "intensity": {
            "easy": state.intensity.easy,
            "med": state.intensity.moderate,
            "hard": state.intensity.hard,
        },
        "mg_vol": {
            out_key: list(state.muscle_volume[group])
            for group, out_key in MUSCLE_GROUP_OUTPUT_KEYS.items()
        },
        "prs": [
            {
                "lift": pr.lift,
                "date": format_timestamp(pr.date),
                "w": pr.weight_kg,
                "r": pr.reps,
            }
            for pr in records
        ],
        "lifts": lifts,
    }


def compute_metrics(
    sessions: Iterable[Session],
    span_weeks: int = DEFAULT_SPAN_WEEKS,
    latest: datetime | None = None,
    lift_rules: RuleTable = LIFT_RULES,
    muscle_group_rules: RuleTable = MUSCLE_GROUP_RULES,
) -> tuple[dict[str, Any], MetricsState]:
    """Aggregate ``sessions`` and build the document; returns (document, state)."""
    state = aggregate(
        sessions,
        span_weeks=span_weeks,
        latest=latest,
        lift_rules=lift_rules,
        muscle_group_rules=muscle_group_rules,
    )
    return build_metrics_document(state), state


def render_json(document: dict[str, Any]) -> str:
    """
    Compact JSON for a context document.

    Encoding failures (non-serializable or non-finite values) degrade to
    ``"{}"``; the chat treats an empty context as "no data".
    """
    try:
        return json.dumps(
            document, separators=(",", ":"), ensure_ascii=False, allow_nan=False
        )
    except (TypeError, ValueError):
        return EMPTY_DOCUMENT_JSON


def build_metrics_context(
    sessions: Iterable[Session],
    span_weeks: int = DEFAULT_SPAN_WEEKS,
    include_seed: bool = False,
    latest: datetime | None = None,
    lift_rules: RuleTable = LIFT_RULES,
    muscle_group_rules: RuleTable = MUSCLE_GROUP_RULES,
) -> list[str]:
    """
    Chat context lines carrying the metrics document.

    Returns an empty list when no (non-seed) sessions remain, otherwise a
    single ``METRICS_JSON:`` block.
    """
    history = filter_seed_sessions(sessions, include_seed)
    if not history:
        return []
    document, _ = compute_metrics(
        history,
        span_weeks=span_weeks,
        latest=latest,
        lift_rules=lift_rules,
        muscle_group_rules=muscle_group_rules,
    )
    return [METRICS_BLOCK_PREFIX + render_json(document)]


def build_current_state(
    session: Session,
    current_exercise: Exercise | None = None,
    rest_end_at: datetime | None = None,
    rest_total_seconds: int = 0,
    next_set_id: str | None = None,
    now: datetime | None = None,
) -> str:
    """
    Snapshot of the workout in progress, as compact JSON.

    Args:
        session: The active session
        current_exercise: Exercise the user is on, if any
        rest_end_at: When the running rest timer ends
        rest_total_seconds: Full length of that rest period
        next_set_id: Id of the set the user is about to perform
        now: Current time (defaults to the system clock, UTC)

    Returns:
        JSON string; ``"{}"`` if it cannot be encoded
    """
    if now is None:
        now = datetime.now(timezone.utc)

    doc: dict[str, Any] = {
        "type": CURRENT_STATE_TYPE,
        "workout_id": session.id,
        "workout_name": session.name,
        "started_at_iso": format_timestamp(session.started_at),
    }

    if current_exercise is not None:
        doc["exercise_id"] = current_exercise.id
        doc["exercise_name"] = current_exercise.name
        ordered = sorted(current_exercise.sets, key=lambda s: s.set_number)
        if next_set_id is not None and ordered:
            active = next((s for s in ordered if s.id == next_set_id), ordered[-1])
            active_doc: dict[str, Any] = {"set_number": active.set_number}
            if is_number(active.weight_kg):
                active_doc["weight_kg"] = round_half_away(active.weight_kg)
            if active.reps is not None:
                active_doc["reps"] = active.reps
            active_doc["is_logged"] = active.is_logged
            doc["active_set"] = active_doc

    if rest_end_at is not None and to_utc(rest_end_at) > to_utc(now):
        remaining = int((to_utc(rest_end_at) - to_utc(now)).total_seconds())
        doc["rest"] = {
            "remaining_seconds": max(0, remaining),
            "total_seconds": rest_total_seconds,
        }

    return render_json(doc)
