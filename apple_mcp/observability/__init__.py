"""Observability: structured logging and metrics."""

from .logging_config import setup_logging, JsonFormatter
from .metrics import MetricsCollector, get_metrics

__all__ = [
    "setup_logging",
    "JsonFormatter",
    "MetricsCollector",
    "get_metrics",
]
