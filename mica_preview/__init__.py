"""Live preview pipeline for Mica view and dashboard documents."""

from __future__ import annotations

__version__ = "0.1.0"

from .client import EvaluationClient, Navigator, PreviewResult
from .config import PreviewConfig, load_config
from .debounce import Debouncer
from .document import Document, DocumentKind, DocumentParser, parse_document
from .errors import (
    ApiError,
    ParseError,
    PreviewError,
    TransportError,
    UnauthorizedError,
    UnknownParameterError,
)
from .parameters import ParameterSchema, ParameterStore, extract_schema
from .request import PreviewRequest, build_request
from .session import PreviewSession, SessionPhase, SessionState

__all__ = [
    "__version__",
    "ApiError",
    "Debouncer",
    "Document",
    "DocumentKind",
    "DocumentParser",
    "EvaluationClient",
    "Navigator",
    "ParameterSchema",
    "ParameterStore",
    "ParseError",
    "PreviewConfig",
    "PreviewError",
    "PreviewRequest",
    "PreviewResult",
    "PreviewSession",
    "SessionPhase",
    "SessionState",
    "TransportError",
    "UnauthorizedError",
    "UnknownParameterError",
    "build_request",
    "extract_schema",
    "load_config",
    "parse_document",
]
