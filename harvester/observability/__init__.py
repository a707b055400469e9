"""Observability layer - logging and metrics."""

from harvester.observability.logging import setup_logging
from harvester.observability.metrics import MetricsCollector, get_metrics

__all__ = ["setup_logging", "MetricsCollector", "get_metrics"]
