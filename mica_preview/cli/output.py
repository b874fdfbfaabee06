"""
Output formatting for preview results.

Renders a session's observable state as plain text: error banners, validation
warnings, the parameter form and either the JSON result of a view or the
table produced by a dashboard.
"""

import json
import sys
from typing import Any, List, Optional, Sequence, TextIO

from mica_preview.document import DocumentKind
from mica_preview.errors import UnknownParameterError
from mica_preview.parameters import ParameterField
from mica_preview.session import SessionState

TABLE_LAYOUT = "TABLE"


class DashboardRenderError(Exception):
    """Raised when a dashboard definition cannot be rendered as a table."""


def render_cell(value: Any) -> str:
    """Render one dashboard cell; scalars as text, everything else as JSON."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    return json.dumps(value)


def format_dashboard_table(payload: Any) -> List[str]:
    """
    Lay out a dashboard preview response as an aligned text table.

    Args:
        payload: The ``{dashboard, data}`` body returned by the service

    Returns:
        Lines of the table, header first

    Raises:
        DashboardRenderError: If the layout is unsupported or columns are missing
    """
    dashboard = payload.get("dashboard") if isinstance(payload, dict) else None
    if not isinstance(dashboard, dict):
        raise DashboardRenderError("Invalid dashboard response: 'dashboard' is missing")

    layout = dashboard.get("layout")
    if layout != TABLE_LAYOUT:
        raise DashboardRenderError(f"Unsupported layout: {layout}")

    table = dashboard.get("table")
    columns = table.get("columns") if isinstance(table, dict) else None
    if not isinstance(columns, list) or not columns:
        raise DashboardRenderError(
            "Invalid dashboard definition: 'table.columns' parameter is required for 'layout: TABLE' mode"
        )
    if not all(isinstance(column, dict) for column in columns):
        raise DashboardRenderError("Invalid dashboard definition: each entry of 'table.columns' must be an object")

    data = payload.get("data") or []
    if not isinstance(data, list) or not all(isinstance(row, list) for row in data):
        raise DashboardRenderError("Invalid dashboard response: 'data' must be a list of rows")

    headers = [str(column.get("title", "")) for column in columns]
    rows = []
    for row in data:
        rows.append([render_cell(row[idx]) if idx < len(row) else "" for idx in range(len(headers))])

    widths = [len(header) for header in headers]
    for row in rows:
        for idx, cell in enumerate(row):
            widths[idx] = max(widths[idx], len(cell))

    def _line(cells: Sequence[str]) -> str:
        return " | ".join(cell.ljust(widths[idx]) for idx, cell in enumerate(cells)).rstrip()

    lines = [_line(headers), "-+-".join("-" * width for width in widths)]
    lines.extend(_line(row) for row in rows)
    return lines


def print_parameter_form(
    fields: Sequence[ParameterField],
    unknown: Sequence[UnknownParameterError] = (),
    stream: Optional[TextIO] = None,
) -> None:
    out = stream or sys.stdout
    print("Parameters:", file=out)
    if not fields:
        print("  No parameters defined in the view.", file=out)
    for field in fields:
        marker = "*" if field.required else ""
        if field.problem:
            print(f"  {field.name}{marker}: {field.problem}", file=out)
        elif field.is_choice:
            print(f"  {field.name}{marker} = {field.value or '-'}  (one of: {', '.join(field.options)})", file=out)
        else:
            print(f"  {field.name}{marker} = {field.value}", file=out)
    for error in unknown:
        print(f"  [warning] {error.message}", file=out)


def print_state(
    state: SessionState,
    *,
    kind: DocumentKind,
    show_details: bool = False,
    stream: Optional[TextIO] = None,
) -> None:
    """
    Pretty-print a session snapshot.

    Errors are shown as banners above the last good result, which stays
    visible while the draft is broken.
    """
    out = stream or sys.stdout

    if state.active_error is not None:
        print(f"[error] {state.active_error.format()}", file=out)

    result = state.last_good_result
    if result is None:
        if state.active_error is None:
            print("No preview available yet.", file=out)
        return

    for idx, messages in enumerate(result.validation_messages):
        print(f"[warning] Validation error #{idx}:", file=out)
        for message in messages:
            print(f"  - {message}", file=out)

    if kind is DocumentKind.DASHBOARD:
        try:
            lines = format_dashboard_table(result.payload)
        except DashboardRenderError as exc:
            print(f"[error] Dashboard Error: {exc}", file=out)
            return
        for line in lines:
            print(line, file=out)
        return

    data = result.payload if show_details else result.data
    print(json.dumps(data, indent=2, sort_keys=False), file=out)
