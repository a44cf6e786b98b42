"""
Configuration constants for the training-metrics engine.

All adjustable parameters are centralized here. Values that change the
output document's schema (keys, units, caps) must stay in sync with the
downstream chat consumer.
"""

from typing import Final

# =============================================================================
# TIME WINDOW
# =============================================================================

DEFAULT_SPAN_WEEKS: Final[int] = 26  # Trailing window length in ISO weeks
MIN_SPAN_WEEKS: Final[int] = 1
DAYS_PER_WEEK: Final[int] = 7

# =============================================================================
# INTENSITY (perceived exertion → reps in reserve)
# =============================================================================

RPE_SCALE_MAX: Final[int] = 10  # Nominal top of the exertion scale
RPE_SCALE_MIN: Final[int] = 0
EASY_RIR_MIN: Final[int] = 3  # rir >= 3 → easy
MODERATE_RIR_MIN: Final[int] = 1  # rir in {1, 2} → moderate, 0 → hard

# =============================================================================
# STRENGTH ESTIMATION
# =============================================================================

E1RM_REPS_DIVISOR: Final[float] = 30.0  # e1rm = weight * (1 + reps / 30)

# =============================================================================
# DOCUMENT SHAPE
# =============================================================================

UNIT_TAG: Final[str] = "local"
TOP_SETS_PER_LIFT: Final[int] = 2

# Lifts emitted under "lifts", in output order. romanian_deadlift is
# aggregated (and may appear in "prs") but is never emitted here.
PREFERRED_LIFTS: Final[tuple[str, ...]] = (
    "squat",
    "bench",
    "deadlift",
    "overhead_press",
    "row",
    "pullup",
)

# Internal muscle-group tag → key under "mg_vol", in output order.
MUSCLE_GROUP_OUTPUT_KEYS: Final[dict[str, str]] = {
    "quad": "quad",
    "hamstring": "ham",
    "pectoral": "pec",
    "back": "back",
    "deltoid": "delt",
}

# =============================================================================
# CHAT CONTEXT BLOCKS
# =============================================================================

METRICS_BLOCK_PREFIX: Final[str] = "METRICS_JSON:\n"
CURRENT_STATE_TYPE: Final[str] = "CURRENT_STATE_JSON"
EMPTY_DOCUMENT_JSON: Final[str] = "{}"

# =============================================================================
# STORAGE
# =============================================================================

APP_DIR_NAME: Final[str] = ".training-metrics"
HISTORY_FILE_NAME: Final[str] = "history.jsonl"
CONFIG_FILE_NAME: Final[str] = "config.yaml"
