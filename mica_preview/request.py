"""Assembly of preview requests from a document and filtered parameter values."""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from .document import Document, DocumentKind

VIEW_PREVIEW_PATH = "/api/mica/v1/view/preview"
DASHBOARD_PREVIEW_PATH = "/api/mica/v1/dashboard/preview"


@dataclass(frozen=True)
class PreviewRequest:
    """Immutable payload for one evaluation call."""

    kind: DocumentKind
    document: Mapping[str, Any]
    parameters: Optional[Mapping[str, str]] = None
    limit: Optional[int] = None

    @property
    def path(self) -> str:
        if self.kind is DocumentKind.DASHBOARD:
            return DASHBOARD_PREVIEW_PATH
        return VIEW_PREVIEW_PATH

    def to_body(self) -> Dict[str, Any]:
        document = copy.deepcopy(dict(self.document))
        if self.kind is DocumentKind.DASHBOARD:
            return {"dashboard": document}
        body: Dict[str, Any] = {"view": document, "parameters": dict(self.parameters or {})}
        if self.limit is not None:
            body["limit"] = self.limit
        return body


def build_request(
    document: Document,
    filtered_values: Mapping[str, str],
    *,
    limit: Optional[int] = None,
) -> PreviewRequest:
    """Merge a parsed document with already-filtered parameter values.

    Dashboards are previewed without parameter substitution, so neither the
    values nor the row limit are attached to them.
    """

    if document.kind is DocumentKind.DASHBOARD:
        return PreviewRequest(kind=document.kind, document=document.to_json())
    return PreviewRequest(
        kind=document.kind,
        document=document.to_json(),
        parameters=dict(filtered_values),
        limit=limit,
    )


__all__ = ["DASHBOARD_PREVIEW_PATH", "PreviewRequest", "VIEW_PREVIEW_PATH", "build_request"]
