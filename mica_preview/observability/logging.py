"""Centralised logging helpers for the preview pipeline."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

_LOGGER_CACHE: Dict[str, logging.Logger] = {}

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def get_logger(name: str = "mica_preview") -> logging.Logger:
    """Return a cached :class:`logging.Logger` instance."""

    if name not in _LOGGER_CACHE:
        _LOGGER_CACHE[name] = logging.getLogger(name)
    return _LOGGER_CACHE[name]


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """Attach a console handler to the package logger at the given level name."""

    numeric_level = _LEVELS.get((level or "info").lower(), logging.INFO)
    package_logger = get_logger("mica_preview")
    package_logger.setLevel(numeric_level)
    if not package_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        package_logger.addHandler(handler)
        package_logger.propagate = False
    return package_logger


def log_discarded_response(
    *,
    kind: str,
    sequence: int,
    current: int,
    outcome: str,
    logger: Optional[logging.Logger] = None,
    extras: Optional[Dict[str, Any]] = None,
) -> None:
    """Emit a structured entry for an evaluation response that arrived too late."""

    payload: Dict[str, Any] = {
        "kind": kind,
        "sequence": sequence,
        "current_sequence": current,
        "outcome": outcome,
    }
    if extras:
        payload.update(extras)
    target_logger = logger or get_logger("mica_preview.session")
    target_logger.debug(
        "Discarding stale preview response",
        extra={"mica_event": "stale_response", "mica_data": payload},
    )
