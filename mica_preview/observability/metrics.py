"""Metric emission for preview evaluations."""

from __future__ import annotations

from threading import RLock
from typing import Callable, Dict, Optional

MetricListener = Callable[[str, Dict[str, float], Dict[str, str]], None]

EVALUATION_METRIC = "preview.evaluation"

# Outcomes reported with every completed evaluation.
EVALUATION_OUTCOMES = ("success", "error", "discarded")

_LISTENERS: list[MetricListener] = []
_LOCK = RLock()


def register_metric_listener(callback: MetricListener) -> None:
    """Register a listener called with ``(name, values, labels)`` for each metric."""

    with _LOCK:
        if callback not in _LISTENERS:
            _LISTENERS.append(callback)


def unregister_metric_listener(callback: MetricListener) -> None:
    with _LOCK:
        if callback in _LISTENERS:
            _LISTENERS.remove(callback)


def emit_metric(name: str, values: Optional[Dict[str, float]] = None, labels: Optional[Dict[str, str]] = None) -> None:
    payload = dict(values or {})
    tags = {str(key): str(value) for key, value in (labels or {}).items()}
    with _LOCK:
        listeners = list(_LISTENERS)
    for callback in listeners:
        try:
            callback(name, payload, tags)
        except Exception:
            # a broken listener must not fail the evaluation cycle
            continue


def emit_evaluation_metric(kind: str, outcome: str, duration: float) -> None:
    """Report one completed evaluation round trip.

    ``outcome`` is ``success`` or ``error`` for applied responses and
    ``discarded`` for responses that arrived after a newer request or after
    the session was closed.
    """

    if outcome not in EVALUATION_OUTCOMES:
        raise ValueError(f"Unknown evaluation outcome: {outcome}")
    emit_metric(
        EVALUATION_METRIC,
        values={"duration": max(duration, 0.0)},
        labels={"kind": kind, "outcome": outcome},
    )
