"""
Pydantic models for the evaluation service's error bodies.

Two shapes are understood:
    - ``application/json``: ``{"type": ..., "message": ..., "payload": ...}``
    - ``application/vnd.concord-validation-errors-v1+json``: a list of
      ``{"id": ..., "message": ...}`` entries

Models ignore unknown fields so newer server versions stay readable.
"""

from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator


class ApiErrorBody(BaseModel):
    """Generic JSON error body returned by the service."""

    model_config = ConfigDict(extra="ignore")

    type: Optional[str] = "unknown"
    message: Optional[str] = None
    payload: Optional[Any] = None

    @field_validator("type", "message", mode="before")
    @classmethod
    def _strings_only(cls, value: Any) -> Optional[str]:
        # null or non-string values are treated as absent
        return value if isinstance(value, str) and value else None


class ViolationBody(BaseModel):
    """One entry of a structured validation-error list."""

    model_config = ConfigDict(extra="ignore")

    id: str = ""
    message: str = Field(min_length=1)


VIOLATION_LIST = TypeAdapter(List[ViolationBody])


__all__ = ["ApiErrorBody", "VIOLATION_LIST", "ViolationBody"]
