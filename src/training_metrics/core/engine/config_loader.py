"""
YAML → typed config loader.

Loads optional user settings from ~/.training-metrics/config.yaml and
merges them over the built-in defaults.

Usage:
    from training_metrics.core.engine.config_loader import load_metrics_config
    cfg = load_metrics_config()
    doc, state = compute_metrics(sessions, cfg.span_weeks,
                                 lift_rules=cfg.lift_rules,
                                 muscle_group_rules=cfg.muscle_group_rules)

Recognised sections:

    metrics:
      span_weeks: 12
      include_seed_data: false
    lift_rules:            # replaces the built-in lift table
      - {result: bench, contains: [bench, "chest press"]}
    muscle_group_rules:    # replaces the built-in muscle-group table
      - {result: quad, contains: [squat, "leg press"]}

A missing file yields the defaults. A file that cannot be parsed, or a
section with invalid values, is reported with a warning and ignored.
"""

from __future__ import annotations

import os
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from ..classifiers import (
    LIFT_RULES,
    MUSCLE_GROUP_RULES,
    VALID_LIFT_RESULTS,
    VALID_MUSCLE_GROUP_RESULTS,
    RuleTable,
)
from ..config import APP_DIR_NAME, CONFIG_FILE_NAME, DEFAULT_SPAN_WEEKS, MIN_SPAN_WEEKS


@dataclass(frozen=True)
class MetricsConfig:
    """Resolved settings used by the CLI and context builders."""

    span_weeks: int = DEFAULT_SPAN_WEEKS
    include_seed_data: bool = False
    lift_rules: RuleTable = LIFT_RULES
    muscle_group_rules: RuleTable = MUSCLE_GROUP_RULES


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a single YAML file; warn and return {} when it is unusable."""
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except (OSError, yaml.YAMLError) as exc:
        warnings.warn(f"training-metrics: ignoring {path} ({exc})", stacklevel=3)
        return {}
    if data is None:
        return {}
    if not isinstance(data, dict):
        warnings.warn(
            f"training-metrics: ignoring {path} (top level must be a mapping)",
            stacklevel=3,
        )
        return {}
    return data


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge *override* into *base* (non-destructive to base)."""
    result = dict(base)
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(result.get(k), dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _span_weeks(raw: Any) -> int:
    if isinstance(raw, bool) or not isinstance(raw, int) or raw < MIN_SPAN_WEEKS:
        warnings.warn(
            f"training-metrics: metrics.span_weeks must be an integer >= {MIN_SPAN_WEEKS}, "
            f"got {raw!r}; using {DEFAULT_SPAN_WEEKS}",
            stacklevel=3,
        )
        return DEFAULT_SPAN_WEEKS
    return raw


def _rule_table(raw: Any, name: str, default: RuleTable, allowed: frozenset[str]) -> RuleTable:
    if raw is None:
        return default
    if not isinstance(raw, list):
        warnings.warn(
            f"training-metrics: '{name}' must be a list of rules; using built-in table",
            stacklevel=3,
        )
        return default
    try:
        return RuleTable.from_dicts(raw, allowed)
    except ValueError as exc:
        warnings.warn(
            f"training-metrics: invalid '{name}' ({exc}); using built-in table",
            stacklevel=3,
        )
        return default


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def get_app_dir() -> Path:
    """Return ~/.training-metrics (not created)."""
    home = Path(os.environ.get("HOME", "~")).expanduser()
    return home / APP_DIR_NAME


def get_user_config_path() -> Path | None:
    """Return ~/.training-metrics/config.yaml if it exists, else None."""
    p = get_app_dir() / CONFIG_FILE_NAME
    return p if p.exists() else None


def load_raw_config(path: Path | None = None) -> dict[str, Any]:
    """
    Load the raw config mapping merged over the defaults.

    Args:
        path: Explicit config file; defaults to the user config if present

    Returns:
        Dict with at least a ``metrics`` section
    """
    config: dict[str, Any] = {
        "metrics": {
            "span_weeks": DEFAULT_SPAN_WEEKS,
            "include_seed_data": False,
        }
    }

    source = path if path is not None else get_user_config_path()
    if source is not None:
        user_cfg = _load_yaml_file(source)
        if user_cfg:
            config = _deep_merge(config, user_cfg)

    return config


def load_metrics_config(path: Path | None = None) -> MetricsConfig:
    """
    Resolve a MetricsConfig from defaults plus the optional YAML file.

    Never raises for bad file content; problems are reported via warnings.
    """
    raw = load_raw_config(path)
    metrics = raw.get("metrics")
    if not isinstance(metrics, dict):
        warnings.warn(
            "training-metrics: 'metrics' section must be a mapping; using defaults",
            stacklevel=2,
        )
        metrics = {}

    return MetricsConfig(
        span_weeks=_span_weeks(metrics.get("span_weeks", DEFAULT_SPAN_WEEKS)),
        include_seed_data=bool(metrics.get("include_seed_data", False)),
        lift_rules=_rule_table(
            raw.get("lift_rules"), "lift_rules", LIFT_RULES, VALID_LIFT_RESULTS
        ),
        muscle_group_rules=_rule_table(
            raw.get("muscle_group_rules"),
            "muscle_group_rules",
            MUSCLE_GROUP_RULES,
            VALID_MUSCLE_GROUP_RESULTS,
        ),
    )
