"""Unified error model for the preview pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple


@dataclass(frozen=True)
class ErrorLocation:
    line: Optional[int] = None
    column: Optional[int] = None

    def describe(self) -> str:
        if self.line is not None and self.column is not None:
            return f"line {self.line}, column {self.column}"
        if self.line is not None:
            return f"line {self.line}"
        return "unknown location"


@dataclass(frozen=True)
class ValidationViolation:
    """A single entry of a structured validation-error response."""

    id: str
    message: str


class PreviewError(Exception):
    """Base class for all errors surfaced by the preview pipeline."""

    code: Optional[str] = None
    hint: Optional[str] = None

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        hint: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if hint is not None:
            self.hint = hint

    def format(self) -> str:
        components = [self.message]
        if self.code:
            components[-1] = f"{components[-1]} ({self.code})"
        if self.hint:
            components.append(f"Hint: {self.hint}")
        return " ".join(part for part in components if part)


class ParseError(PreviewError):
    """Raised when the source text cannot be turned into a previewable document."""

    code = "PARSE_ERROR"

    def __init__(
        self,
        message: str,
        *,
        line: Optional[int] = None,
        column: Optional[int] = None,
        **kwargs,
    ) -> None:
        super().__init__(message, **kwargs)
        self.location = ErrorLocation(line=line, column=column)
        self.line = line
        self.column = column

    def format(self) -> str:
        base = super().format()
        location_desc = self.location.describe()
        if location_desc == "unknown location":
            return base
        return f"{base} at {location_desc}"


class ApiError(PreviewError):
    """Raised when the evaluation service rejects a request."""

    code = "API_ERROR"

    def __init__(
        self,
        message: str,
        *,
        type: str = "unknown",
        status: Optional[int] = None,
        status_text: Optional[str] = None,
        violations: Sequence[ValidationViolation] = (),
        **kwargs,
    ) -> None:
        super().__init__(message, **kwargs)
        self.type = type
        self.status = status
        self.status_text = status_text
        self.violations: Tuple[ValidationViolation, ...] = tuple(violations)

    def format(self) -> str:
        lines = [self.message]
        for violation in self.violations:
            lines.append(f"{violation.id} property is invalid: {violation.message}")
        return "\n".join(lines)


class UnauthorizedError(ApiError):
    """Raised on HTTP 401; the caller is expected to re-authenticate."""

    code = "UNAUTHORIZED"


class TransportError(PreviewError):
    """Raised when the evaluation call itself fails (network, timeout, bad body)."""

    code = "TRANSPORT_ERROR"


class UnknownParameterError(PreviewError):
    """A parameter value exists for a name the current schema does not declare."""

    code = "UNKNOWN_PARAMETER"

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown parameter: {name}")
        self.name = name


class ConfigError(PreviewError):
    """Raised when configuration files or environment overrides are invalid."""

    code = "CONFIG_ERROR"


__all__ = [
    "ApiError",
    "ConfigError",
    "ErrorLocation",
    "ParseError",
    "PreviewError",
    "TransportError",
    "UnauthorizedError",
    "UnknownParameterError",
    "ValidationViolation",
]
