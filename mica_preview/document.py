"""Parsing of in-progress YAML sources into previewable documents."""

from __future__ import annotations

import copy
import datetime
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

from .errors import ParseError


class DocumentKind(str, Enum):
    """Kinds of documents the evaluation service can preview."""

    VIEW = "view"
    DASHBOARD = "dashboard"


# Checked in order; the first missing field is reported.
REQUIRED_FIELDS: Dict[DocumentKind, Tuple[str, ...]] = {
    DocumentKind.VIEW: ("data", "selector"),
    DocumentKind.DASHBOARD: ("view", "layout"),
}


@dataclass(frozen=True)
class Document:
    """A parsed, identity-free document ready to be previewed."""

    kind: DocumentKind
    body: Dict[str, Any] = field(default_factory=dict)

    @property
    def parameters(self) -> Any:
        return self.body.get("parameters")

    def to_json(self) -> Dict[str, Any]:
        return copy.deepcopy(self.body)


def _is_blank(value: Any) -> bool:
    if value is None or value is False:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value == 0
    return False


def _to_json_value(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(key): _to_json_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_json_value(item) for item in value]
    if isinstance(value, (datetime.date, datetime.datetime)):
        return value.isoformat()
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


def _yaml_error(exc: yaml.YAMLError) -> ParseError:
    mark = getattr(exc, "problem_mark", None)
    problem = getattr(exc, "problem", None)
    message = str(problem) if problem else str(exc)
    if mark is not None:
        return ParseError(message, line=mark.line + 1, column=mark.column + 1)
    return ParseError(message)


class DocumentParser:
    """Turns raw source text into a :class:`Document` of a fixed kind.

    ``parse`` returns ``None`` for empty input, which callers treat as
    "nothing to preview yet". Every other problem raises :class:`ParseError`.
    """

    def __init__(self, kind: DocumentKind = DocumentKind.VIEW) -> None:
        self.kind = DocumentKind(kind)

    def parse(self, raw_text: str) -> Optional[Document]:
        if len(raw_text) == 0:
            return None

        try:
            loaded = yaml.safe_load(raw_text)
        except yaml.YAMLError as exc:
            raise _yaml_error(exc) from exc

        if loaded is None:
            raise ParseError("document is empty")
        if not isinstance(loaded, Mapping):
            raise ParseError("document must be a mapping")

        body = _to_json_value(dict(loaded))
        for name in REQUIRED_FIELDS[self.kind]:
            if _is_blank(body.get(name)):
                raise ParseError(f"{name} is required")

        # previews must not depend on (or collide with) a persisted identity
        body.pop("id", None)
        return Document(kind=self.kind, body=body)


def parse_document(raw_text: str, kind: DocumentKind = DocumentKind.VIEW) -> Optional[Document]:
    """Convenience wrapper around :meth:`DocumentParser.parse`."""

    return DocumentParser(kind).parse(raw_text)


__all__ = ["Document", "DocumentKind", "DocumentParser", "REQUIRED_FIELDS", "parse_document"]
