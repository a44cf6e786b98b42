"""
Integration tests for the metrics pipeline.

Each test runs the full path: Session list → aggregate → build_metrics_document
(or the context / current-state builders). Hand-computed expected values are
included in comments.

Calendar reference (all UTC):
  2026-03-02, 03-09, 03-16, 03-23, 03-30 are Mondays.
"""

import json
from datetime import datetime, timedelta, timezone

import pytest

from training_metrics.core.aggregator import aggregate, filter_seed_sessions, latest_start
from training_metrics.core.config import DEFAULT_SPAN_WEEKS
from training_metrics.core.document import (
    build_current_state,
    build_metrics_context,
    build_metrics_document,
    compute_metrics,
    format_timestamp,
    render_json,
)
from training_metrics.core.models import Exercise, Session, SetEntry


# ===========================================================================
# Helpers
# ===========================================================================

def _dt(text: str) -> datetime:
    return datetime.fromisoformat(text).replace(tzinfo=timezone.utc)


def _set(weight: float | None, reps: int | None, rpe: float | None = None) -> SetEntry:
    return SetEntry(weight_kg=weight, reps=reps, rpe=rpe)


def _ex(name: str, *sets: SetEntry) -> Exercise:
    return Exercise(name=name, sets=list(sets))


def _session(started: str, *exercises: Exercise, seed: bool = False) -> Session:
    return Session(started_at=_dt(started), exercises=list(exercises), is_seed=seed)


def _doc(sessions: list[Session], **kwargs) -> dict:
    document, _ = compute_metrics(sessions, **kwargs)
    return document


def _all_week_arrays(document: dict) -> list[list[int]]:
    arrays = [document["consistency"]["sessions"]]
    arrays.extend(document["mg_vol"].values())
    for lift in document["lifts"].values():
        arrays.extend([lift["vol"], lift["e1rm"]])
    return arrays


# ===========================================================================
# End-to-end scenario: three squat sessions in one week
# ===========================================================================

class TestThreeSquatSessions:
    """
    Mon/Wed/Fri of week 2026-03-02, one "Back Squat" each:
      100×5 → vol 500, e1rm 116.67
      102×5 → vol 510, e1rm 119.00
       98×6 → vol 588, e1rm 117.60
    """

    @pytest.fixture
    def document(self):
        sessions = [
            _session("2026-03-02T18:00", _ex("Back Squat", _set(100, 5))),
            _session("2026-03-04T18:00", _ex("Back Squat", _set(102, 5))),
            _session("2026-03-06T18:00", _ex("Back Squat", _set(98, 6))),
        ]
        return _doc(sessions)

    def test_weekly_volume_is_sum(self, document):
        assert document["lifts"]["squat"]["vol"][-1] == 500 + 510 + 588

    def test_weekly_e1rm_is_rounded_max(self, document):
        # round(max(116.67, 119.0, 117.6)) = 119
        assert document["lifts"]["squat"]["e1rm"][-1] == 119

    def test_frequency(self, document):
        assert document["lifts"]["squat"]["freq"] == 3

    def test_top_sets_two_most_recent(self, document):
        assert document["lifts"]["squat"]["top"] == [
            {"d": "2026-03-06T18:00:00Z", "w": 98, "r": 6},
            {"d": "2026-03-04T18:00:00Z", "w": 102, "r": 5},
        ]

    def test_consistency(self, document):
        assert document["consistency"]["sessions"][-1] == 3
        assert document["consistency"]["wks_trained"] == 1

    def test_quad_volume(self, document):
        assert document["mg_vol"]["quad"][-1] == 1598

    def test_personal_record(self, document):
        assert document["prs"] == [
            {"lift": "squat", "date": "2026-03-04T18:00:00Z", "w": 102, "r": 5}
        ]

    def test_shape(self, document):
        assert document["u"] == "local"
        assert document["span_wks"] == DEFAULT_SPAN_WEEKS
        for arr in _all_week_arrays(document):
            assert len(arr) == DEFAULT_SPAN_WEEKS


# ===========================================================================
# Tie-breaks
# ===========================================================================

class TestBestSetTieBreak:
    """80×15 and 60×30 both give exactly 120.0; the first set is kept."""

    def test_first_equal_set_wins(self):
        doc = _doc([_session("2026-03-02T10:00", _ex("Squat", _set(80, 15), _set(60, 30)))])
        assert doc["lifts"]["squat"]["top"][0]["w"] == 80
        assert doc["lifts"]["squat"]["top"][0]["r"] == 15

    def test_order_decides(self):
        doc = _doc([_session("2026-03-02T10:00", _ex("Squat", _set(60, 30), _set(80, 15)))])
        assert doc["lifts"]["squat"]["top"][0]["w"] == 60

    def test_strictly_better_later_set_wins(self):
        doc = _doc([_session("2026-03-02T10:00", _ex("Squat", _set(80, 15), _set(81, 15)))])
        assert doc["lifts"]["squat"]["top"][0]["w"] == 81


class TestWeeklyE1RMMax:
    """Two squat occurrences in one session: 110×3 (121.0) then 100×5 (116.67)."""

    def test_keeps_weekly_maximum(self):
        doc = _doc([
            _session(
                "2026-03-02T10:00",
                _ex("Front Squat", _set(110, 3)),
                _ex("Back Squat", _set(100, 5)),
            )
        ])
        squat = doc["lifts"]["squat"]
        assert squat["e1rm"][-1] == 121
        assert squat["freq"] == 2
        assert squat["vol"][-1] == 330 + 500

    def test_max_across_sessions_in_week(self):
        doc = _doc([
            _session("2026-03-02T10:00", _ex("Bench Press", _set(100, 5))),  # 116.67 → 117
            _session("2026-03-05T10:00", _ex("Bench Press", _set(90, 5))),   # 105
        ])
        assert doc["lifts"]["bench"]["e1rm"][-1] == 117


class TestPersonalRecords:

    def test_equal_value_does_not_replace(self):
        # week 1: 80×15 = 120.0; week 2: 60×30 = 120.0 → earliest kept
        doc = _doc([
            _session("2026-03-02T10:00", _ex("Squat", _set(80, 15))),
            _session("2026-03-09T10:00", _ex("Squat", _set(60, 30))),
        ])
        assert doc["prs"] == [{"lift": "squat", "date": "2026-03-02T10:00:00Z", "w": 80, "r": 15}]

    def test_strictly_greater_replaces(self):
        doc = _doc([
            _session("2026-03-02T10:00", _ex("Squat", _set(80, 15))),
            _session("2026-03-09T10:00", _ex("Squat", _set(60, 30))),
            _session("2026-03-16T10:00", _ex("Squat", _set(100, 10))),  # 133.3
        ])
        assert doc["prs"][0]["date"] == "2026-03-16T10:00:00Z"
        assert doc["prs"][0]["w"] == 100

    def test_lower_later_value_keeps_record(self):
        # 100×5 = 116.67, later 105×3 = 115.5 → earlier record stands
        doc = _doc([
            _session("2026-03-02T10:00", _ex("Bench Press", _set(100, 5))),
            _session("2026-03-09T10:00", _ex("Bench Press", _set(105, 3))),
        ])
        assert doc["prs"][0]["date"] == "2026-03-02T10:00:00Z"

    def test_one_per_lift_sorted_recent_first(self):
        doc = _doc([
            _session("2026-03-02T10:00", _ex("Bench Press", _set(100, 5))),
            _session("2026-03-09T10:00", _ex("Deadlift", _set(180, 3))),
            _session("2026-03-16T10:00", _ex("Back Squat", _set(140, 5))),
            _session("2026-03-17T10:00", _ex("Bench Press", _set(90, 5))),
        ])
        assert [pr["lift"] for pr in doc["prs"]] == ["squat", "deadlift", "bench"]


# ===========================================================================
# Classification routing
# ===========================================================================

class TestRomanianDeadlift:

    @pytest.fixture
    def document(self):
        return _doc([_session("2026-03-02T10:00", _ex("Romanian Deadlift", _set(100, 8)))])

    def test_not_reported_as_deadlift(self, document):
        assert "deadlift" not in document["lifts"]
        assert all(pr["lift"] != "deadlift" for pr in document["prs"])

    def test_not_emitted_in_lift_detail(self, document):
        assert "romanian_deadlift" not in document["lifts"]
        assert document["lifts"] == {}

    def test_personal_record_kept(self, document):
        assert document["prs"][0]["lift"] == "romanian_deadlift"

    def test_hamstring_volume(self, document):
        assert document["mg_vol"]["ham"][-1] == 800
        assert document["mg_vol"]["back"][-1] == 0


class TestUnclassifiedExercise:

    def test_counts_session_and_intensity_only(self):
        doc = _doc([_session("2026-03-02T10:00", _ex("Plank", _set(None, 60, rpe=8)))])
        assert doc["consistency"]["sessions"][-1] == 1
        assert doc["intensity"] == {"easy": 0, "med": 1, "hard": 0}
        assert doc["lifts"] == {}
        assert doc["prs"] == []
        assert all(sum(v) == 0 for v in doc["mg_vol"].values())


# ===========================================================================
# Intensity and out-of-range exertion
# ===========================================================================

class TestIntensityCounts:

    def test_bins_are_global(self):
        sessions = [
            _session("2026-02-02T10:00", _ex("Squat", _set(100, 5, rpe=7))),  # easy
            _session("2026-03-02T10:00", _ex("Squat", _set(100, 5, rpe=8.6), _set(100, 5, rpe=10))),
            _session("2026-03-04T10:00", _ex("Curl", _set(20, 10))),  # no rpe
        ]
        doc = _doc(sessions)
        assert doc["intensity"] == {"easy": 1, "med": 1, "hard": 1}

    def test_out_of_range_counted_and_clamped(self):
        _, state = compute_metrics([
            _session("2026-03-02T10:00", _ex("Squat", _set(100, 5, rpe=11), _set(100, 5, rpe=-1)))
        ])
        assert state.exertion_out_of_range == 2
        assert state.intensity.hard == 1
        assert state.intensity.easy == 1


# ===========================================================================
# Missing / partial data
# ===========================================================================

class TestMissingFields:

    def test_lift_without_usable_sets(self):
        doc = _doc([_session("2026-03-02T10:00", _ex("Bench Press", _set(None, 5), _set(80, None)))])
        bench = doc["lifts"]["bench"]
        assert bench["freq"] == 1
        assert bench["vol"][-1] == 0
        assert bench["e1rm"][-1] == 0
        assert bench["top"] == []
        assert doc["prs"] == []
        assert doc["mg_vol"]["pec"][-1] == 0

    def test_exercise_without_sets(self):
        doc = _doc([_session("2026-03-02T10:00", _ex("Deadlift"))])
        assert doc["lifts"]["deadlift"]["freq"] == 1
        assert doc["lifts"]["deadlift"]["top"] == []

    def test_zero_reps_has_no_e1rm(self):
        doc = _doc([_session("2026-03-02T10:00", _ex("Bench Press", _set(80, 0)))])
        assert doc["lifts"]["bench"]["e1rm"][-1] == 0
        assert doc["prs"] == []

    def test_non_finite_values_are_ignored(self):
        doc = _doc([
            _session(
                "2026-03-02T10:00",
                _ex("Bench Press", _set(float("nan"), 5, rpe=float("nan")), _set(80, 5)),
            )
        ])
        assert doc["lifts"]["bench"]["vol"][-1] == 400
        assert doc["intensity"] == {"easy": 0, "med": 0, "hard": 0}
        assert render_json(doc) != "{}"

    def test_overflowing_products_are_ignored(self):
        # 1e308 × 5 overflows the volume; 1.7e308 × (1 + 30/30) overflows the e1RM too
        doc = _doc([
            _session("2026-03-02T10:00", _ex("Back Squat", _set(1e308, 5))),
            _session("2026-03-04T10:00", _ex("Bench Press", _set(1.7e308, 30), _set(80, 5))),
        ])
        assert doc["lifts"]["squat"]["vol"][-1] == 0
        assert doc["mg_vol"]["quad"][-1] == 0
        assert doc["lifts"]["bench"]["vol"][-1] == 400
        assert doc["lifts"]["bench"]["e1rm"][-1] == 93
        assert doc["lifts"]["bench"]["top"] == [{"d": "2026-03-04T10:00:00Z", "w": 80, "r": 5}]
        assert render_json(doc) != "{}"


# ===========================================================================
# Window handling
# ===========================================================================

class TestWindow:

    def test_old_sessions_excluded(self):
        sessions = [
            _session("2026-03-02T10:00", _ex("Squat", _set(200, 5))),  # outside span 4
            _session("2026-03-09T10:00", _ex("Squat", _set(100, 5))),
            _session("2026-03-30T10:00", _ex("Squat", _set(100, 5))),
        ]
        doc = _doc(sessions, span_weeks=4)
        assert doc["consistency"]["sessions"] == [1, 0, 0, 1]
        assert doc["lifts"]["squat"]["freq"] == 2
        # The 200 kg set lies outside the window, so it is no PR
        assert doc["prs"][0]["w"] == 100

    def test_explicit_latest_excludes_later_sessions(self):
        sessions = [
            _session("2026-03-09T10:00", _ex("Squat", _set(100, 5))),
            _session("2026-04-06T10:00", _ex("Squat", _set(100, 5))),
        ]
        doc = _doc(sessions, span_weeks=4, latest=_dt("2026-03-30T00:00"))
        assert doc["consistency"]["sessions"] == [1, 0, 0, 0]

    def test_unsorted_input_uses_latest_timestamp(self):
        ordered = [
            _session("2026-03-02T10:00", _ex("Bench Press", _set(100, 5))),
            _session("2026-03-16T10:00", _ex("Back Squat", _set(140, 5))),
        ]
        shuffled = [ordered[1], ordered[0]]
        assert latest_start(shuffled) == _dt("2026-03-16T10:00")
        doc = _doc(shuffled, span_weeks=3)
        assert doc["consistency"]["sessions"] == [1, 0, 1]
        assert doc == _doc(ordered, span_weeks=3)

    def test_mixed_naive_and_aware_timestamps(self):
        sessions = [
            Session(started_at=datetime(2026, 3, 2, 10, 0), exercises=[]),
            _session("2026-03-09T10:00"),
        ]
        doc = _doc(sessions, span_weeks=2)
        assert doc["consistency"]["sessions"] == [1, 1]

    def test_weeks_trained_matches_nonzero_weeks(self):
        sessions = [
            _session("2026-03-02T10:00"),
            _session("2026-03-03T10:00"),
            _session("2026-03-16T10:00"),
            _session("2026-03-30T10:00"),
        ]
        doc = _doc(sessions, span_weeks=6)
        weekly = doc["consistency"]["sessions"]
        assert doc["consistency"]["wks_trained"] == sum(1 for n in weekly if n) == 3

    def test_span_below_one_rejected(self):
        with pytest.raises(ValueError):
            aggregate([], span_weeks=0)


class TestTopSetsCap:

    def test_capped_and_recent_first_across_weeks(self):
        sessions = [
            _session("2026-03-02T10:00", _ex("Barbell Row", _set(60, 8))),
            _session("2026-03-09T10:00", _ex("Barbell Row", _set(62.4, 8))),
            _session("2026-03-16T10:00", _ex("Barbell Row", _set(65, 8))),
        ]
        top = _doc(sessions)["lifts"]["row"]["top"]
        assert [t["w"] for t in top] == [65, 62]
        assert top[0]["d"] > top[1]["d"]


# ===========================================================================
# Document shape
# ===========================================================================

class TestEmptyHistory:

    def test_zeroed_document(self):
        doc, state = compute_metrics([], span_weeks=8)
        assert doc == {
            "u": "local",
            "span_wks": 8,
            "consistency": {"wks_trained": 0, "sessions": [0] * 8},
            "intensity": {"easy": 0, "med": 0, "hard": 0},
            "mg_vol": {k: [0] * 8 for k in ("quad", "ham", "pec", "back", "delt")},
            "prs": [],
            "lifts": {},
        }
        assert state.window_start is None

    def test_explicit_latest_without_sessions(self):
        doc = _doc([], span_weeks=3, latest=_dt("2026-03-02T00:00"))
        assert doc["consistency"]["sessions"] == [0, 0, 0]


class TestDocumentShape:

    @pytest.fixture
    def document(self):
        return _doc(
            [
                _session("2026-03-02T10:00", _ex("Pull-Up", _set(10, 8)), _ex("Bench Press", _set(80, 5))),
                _session("2026-03-04T10:00", _ex("Overhead Press", _set(50, 5)), _ex("Squat", _set(120, 5))),
                _session("2026-03-06T10:00", _ex("Deadlift", _set(160, 5)), _ex("Cable Row", _set(50, 12))),
            ],
            span_weeks=5,
        )

    def test_top_level_keys_in_order(self, document):
        assert list(document) == [
            "u", "span_wks", "consistency", "intensity", "mg_vol", "prs", "lifts",
        ]

    def test_mg_vol_keys_in_order(self, document):
        assert list(document["mg_vol"]) == ["quad", "ham", "pec", "back", "delt"]

    def test_lifts_follow_preferred_order(self, document):
        assert list(document["lifts"]) == [
            "squat", "bench", "deadlift", "overhead_press", "row", "pullup",
        ]
        assert list(document["lifts"]["squat"]) == ["freq", "vol", "e1rm", "top"]

    def test_every_week_array_has_span_length(self, document):
        for arr in _all_week_arrays(document):
            assert len(arr) == 5

    def test_back_volume_combines_rules(self, document):
        # deadlift 800 + row 600 + pull-up 80
        assert document["mg_vol"]["back"][-1] == 1480

    def test_idempotent(self):
        sessions = [_session("2026-03-02T10:00", _ex("Squat", _set(100, 5, rpe=8)))]
        first = render_json(_doc(sessions))
        second = render_json(_doc(sessions))
        assert first == second

    def test_build_from_state(self):
        state = aggregate([_session("2026-03-02T10:00", _ex("Squat", _set(100, 5)))], span_weeks=2)
        assert build_metrics_document(state)["lifts"]["squat"]["e1rm"] == [0, 117]


class TestRenderJson:

    def test_compact(self):
        assert render_json({"a": [1, 2]}) == '{"a":[1,2]}'

    def test_non_finite_falls_back_to_empty_object(self):
        assert render_json({"x": float("nan")}) == "{}"

    def test_unserializable_falls_back_to_empty_object(self):
        assert render_json({"x": object()}) == "{}"

    def test_format_timestamp_utc(self):
        local = datetime(2026, 3, 2, 20, 0, tzinfo=timezone(timedelta(hours=2)))
        assert format_timestamp(local) == "2026-03-02T18:00:00Z"


# ===========================================================================
# Chat context blocks
# ===========================================================================

class TestMetricsContext:

    def test_seed_sessions_excluded_by_default(self):
        sessions = [_session("2026-03-02T10:00", _ex("Squat", _set(100, 5)), seed=True)]
        assert build_metrics_context(sessions) == []

    def test_seed_sessions_included_on_request(self):
        sessions = [_session("2026-03-02T10:00", _ex("Squat", _set(100, 5)), seed=True)]
        lines = build_metrics_context(sessions, include_seed=True)
        assert len(lines) == 1
        assert lines[0].startswith("METRICS_JSON:\n")
        payload = json.loads(lines[0].split("\n", 1)[1])
        assert payload["lifts"]["squat"]["freq"] == 1

    def test_filter_seed_sessions(self):
        real = _session("2026-03-02T10:00")
        seed = _session("2026-03-03T10:00", seed=True)
        assert filter_seed_sessions([real, seed]) == [real]
        assert filter_seed_sessions([real, seed], include_seed=True) == [real, seed]


class TestCurrentState:

    @pytest.fixture
    def workout(self):
        bench = Exercise(
            name="Bench Press",
            id="e1",
            sets=[
                SetEntry(weight_kg=80.4, reps=5, set_number=2, id="s2"),
                SetEntry(weight_kg=80, reps=5, set_number=1, id="s1", is_logged=True),
            ],
        )
        session = Session(
            started_at=_dt("2026-03-02T18:00"), name="Push", exercises=[bench], id="w1"
        )
        return session, bench

    def test_session_fields(self, workout):
        session, _ = workout
        doc = json.loads(build_current_state(session, now=_dt("2026-03-02T18:30")))
        assert doc == {
            "type": "CURRENT_STATE_JSON",
            "workout_id": "w1",
            "workout_name": "Push",
            "started_at_iso": "2026-03-02T18:00:00Z",
        }

    def test_active_set_by_id(self, workout):
        session, bench = workout
        doc = json.loads(
            build_current_state(session, bench, next_set_id="s1", now=_dt("2026-03-02T18:30"))
        )
        assert doc["exercise_id"] == "e1"
        assert doc["exercise_name"] == "Bench Press"
        assert doc["active_set"] == {"set_number": 1, "weight_kg": 80, "reps": 5, "is_logged": True}

    def test_unknown_set_id_falls_back_to_last_set(self, workout):
        session, bench = workout
        doc = json.loads(
            build_current_state(session, bench, next_set_id="nope", now=_dt("2026-03-02T18:30"))
        )
        assert doc["active_set"]["set_number"] == 2
        assert doc["active_set"]["weight_kg"] == 80

    def test_no_active_set_without_next_id(self, workout):
        session, bench = workout
        doc = json.loads(build_current_state(session, bench, now=_dt("2026-03-02T18:30")))
        assert "active_set" not in doc

    def test_missing_weight_omitted(self):
        ex = Exercise(name="Pull-Up", sets=[SetEntry(reps=8, set_number=1, id="a")])
        session = Session(started_at=_dt("2026-03-02T18:00"), exercises=[ex])
        doc = json.loads(build_current_state(session, ex, next_set_id="a", now=_dt("2026-03-02T18:10")))
        assert doc["active_set"] == {"set_number": 1, "reps": 8, "is_logged": False}

    def test_rest_timer_running(self, workout):
        session, _ = workout
        now = _dt("2026-03-02T18:30")
        doc = json.loads(
            build_current_state(
                session, rest_end_at=now + timedelta(seconds=90), rest_total_seconds=120, now=now
            )
        )
        assert doc["rest"] == {"remaining_seconds": 90, "total_seconds": 120}

    def test_rest_timer_finished(self, workout):
        session, _ = workout
        now = _dt("2026-03-02T18:30")
        doc = json.loads(
            build_current_state(
                session, rest_end_at=now - timedelta(seconds=1), rest_total_seconds=120, now=now
            )
        )
        assert "rest" not in doc
