"""
Error handling for the mica-preview CLI.

Provides a small exception hierarchy for command-line problems and a single
formatter used by the entry point.
"""

from typing import Any, Dict, Optional


class CLIError(Exception):
    """
    Base exception for all CLI operations.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code
        hint: Optional suggestion for resolving the error
        context: Additional metadata about the error
    """

    def __init__(
        self,
        message: str,
        *,
        code: str,
        hint: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.hint = hint
        self.context = context or {}

    def __str__(self) -> str:
        return self.message


class CLIValidationError(CLIError):
    """
    Invalid command arguments or options.

    Raised when:
    - A ``--param`` value is not of the form NAME=VALUE
    - The source file does not exist
    """

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault('code', 'CLI_VALIDATION_ERROR')
        super().__init__(message, **kwargs)


def format_cli_error(exc: BaseException) -> str:
    """
    Format an exception for CLI display.

    Uses the exception's own ``format()`` when it has one (pipeline errors
    do), and appends the hint of CLI errors.

    Examples:
        >>> print(format_cli_error(CLIValidationError("Bad value", hint="Use NAME=VALUE")))
        Error: Bad value
        Hint: Use NAME=VALUE
    """
    formatter = getattr(exc, "format", None)
    if callable(formatter):
        return f"Error: {formatter()}"

    lines = [f"Error: {exc}"]
    hint = getattr(exc, "hint", None)
    if hint:
        lines.append(f"Hint: {hint}")
    return "\n".join(lines)
