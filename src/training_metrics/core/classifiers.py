"""
Exercise-name and effort classifiers.

Lift and muscle-group classification are driven by ordered rule tables:
each rule pairs a matcher (lower-cased substring / exact-name checks) with
a result tag, and the first matching rule wins. The tables are plain data
so they can be tested on their own and replaced from user configuration
without touching the aggregator.
"""

from dataclasses import dataclass
from typing import Any, Iterable

from .config import EASY_RIR_MIN, MODERATE_RIR_MIN, RPE_SCALE_MAX, RPE_SCALE_MIN
from .estimator import is_number, round_half_away
from .models import LIFT_KEYS, MUSCLE_GROUPS, Intensity


@dataclass(frozen=True)
class ClassificationRule:
    """
    One ``(matcher, result)`` row of a rule table.

    A name matches when it contains any ``contains`` fragment or equals any
    ``equals`` entry, and contains none of the ``excludes`` fragments.
    All comparisons are case-insensitive.
    """

    result: str
    contains: tuple[str, ...] = ()
    equals: tuple[str, ...] = ()
    excludes: tuple[str, ...] = ()

    def matches(self, name: str) -> bool:
        n = name.lower()
        hit = any(frag in n for frag in self.contains) or n.strip() in self.equals
        if not hit:
            return False
        return not any(frag in n for frag in self.excludes)


@dataclass(frozen=True)
class RuleTable:
    """Ordered rules; ``classify`` returns the result of the first match."""

    rules: tuple[ClassificationRule, ...]

    def classify(self, name: str) -> str | None:
        for rule in self.rules:
            if rule.matches(name):
                return rule.result
        return None

    @classmethod
    def from_dicts(cls, items: Iterable[dict[str, Any]], allowed: Iterable[str]) -> "RuleTable":
        """
        Build a table from raw dicts (as loaded from YAML).

        Each item needs ``result`` plus at least one of ``contains`` or
        ``equals``; ``excludes`` is optional. Fragments are lower-cased.

        Raises:
            ValueError: If a rule is malformed or names an unknown result
        """
        allowed_set = set(allowed)
        rules: list[ClassificationRule] = []
        for i, item in enumerate(items):
            if not isinstance(item, dict):
                raise ValueError(f"rule {i}: expected a mapping, got {type(item).__name__}")
            result = item.get("result")
            if result not in allowed_set:
                raise ValueError(
                    f"rule {i}: unknown result {result!r}. Valid: {sorted(allowed_set)}"
                )
            contains = _fragments(item.get("contains"), i, "contains")
            equals = _fragments(item.get("equals"), i, "equals")
            excludes = _fragments(item.get("excludes"), i, "excludes")
            if not contains and not equals:
                raise ValueError(f"rule {i}: needs 'contains' or 'equals'")
            rules.append(
                ClassificationRule(
                    result=result, contains=contains, equals=equals, excludes=excludes
                )
            )
        if not rules:
            raise ValueError("rule table is empty")
        return cls(rules=tuple(rules))


def _fragments(raw: Any, index: int, key: str) -> tuple[str, ...]:
    if raw is None:
        return ()
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, list) or not all(isinstance(f, str) and f for f in raw):
        raise ValueError(f"rule {index}: '{key}' must be a string or list of strings")
    return tuple(f.lower() for f in raw)


# =============================================================================
# BUILT-IN TABLES (evaluated top to bottom)
# =============================================================================

LIFT_RULES = RuleTable(
    rules=(
        ClassificationRule("romanian_deadlift", contains=("romanian",)),
        ClassificationRule("bench", contains=("bench",)),
        ClassificationRule("squat", contains=("squat",)),
        ClassificationRule("deadlift", contains=("deadlift",), excludes=("romanian",)),
        ClassificationRule("overhead_press", contains=("overhead press",), equals=("ohp",)),
        ClassificationRule("row", contains=("row",)),
        ClassificationRule("pullup", contains=("pull-up", "pullup")),
    )
)

MUSCLE_GROUP_RULES = RuleTable(
    rules=(
        ClassificationRule("quad", contains=("squat",)),
        ClassificationRule("hamstring", contains=("romanian",)),
        ClassificationRule("back", contains=("deadlift",)),
        ClassificationRule("pectoral", contains=("bench",)),
        ClassificationRule("deltoid", contains=("overhead press",)),
        ClassificationRule("back", contains=("row", "pull-up", "pullup")),
    )
)

VALID_LIFT_RESULTS: frozenset[str] = frozenset(LIFT_KEYS)
VALID_MUSCLE_GROUP_RESULTS: frozenset[str] = frozenset(MUSCLE_GROUPS)


def classify_lift(name: str, table: RuleTable = LIFT_RULES) -> str | None:
    """Canonical lift key for an exercise name, or None."""
    return table.classify(name)


def classify_muscle_group(name: str, table: RuleTable = MUSCLE_GROUP_RULES) -> str | None:
    """Primary muscle group for an exercise name, or None."""
    return table.classify(name)


# =============================================================================
# INTENSITY
# =============================================================================

def reps_in_reserve(rpe: float) -> int:
    """
    Reps in reserve from perceived exertion.

    rir = max(0, 10 - round(rpe)), with .5 rounded away from zero.
    """
    return max(0, RPE_SCALE_MAX - round_half_away(rpe))


def exertion_in_range(rpe: float) -> bool:
    """True when ``rpe`` lies on the nominal 0-10 scale."""
    return RPE_SCALE_MIN <= rpe <= RPE_SCALE_MAX


def classify_intensity(rpe: float | None) -> Intensity | None:
    """
    Effort bin for a set: easy (rir >= 3), moderate (rir 1-2) or hard (rir 0).

    Returns None when no exertion was recorded.
    """
    if not is_number(rpe):
        return None
    rir = reps_in_reserve(rpe)
    if rir >= EASY_RIR_MIN:
        return "easy"
    if rir >= MODERATE_RIR_MIN:
        return "moderate"
    return "hard"
