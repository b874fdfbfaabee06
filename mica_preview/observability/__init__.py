"""Lightweight observability helpers for logging and metrics instrumentation."""

from __future__ import annotations

from .logging import configure_logging, get_logger, log_discarded_response
from .metrics import (
    EVALUATION_METRIC,
    emit_evaluation_metric,
    emit_metric,
    register_metric_listener,
    unregister_metric_listener,
)

__all__ = [
    "EVALUATION_METRIC",
    "configure_logging",
    "get_logger",
    "log_discarded_response",
    "emit_evaluation_metric",
    "emit_metric",
    "register_metric_listener",
    "unregister_metric_listener",
]
