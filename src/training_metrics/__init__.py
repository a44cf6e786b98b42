"""Training-metrics aggregation engine for coaching-assistant context."""

__version__ = "0.1.0"
