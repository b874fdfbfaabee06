"""Tests for the mica-preview command line and its text output."""

import io
import json

import httpx
import pytest

from mica_preview.cli import build_parser, main, parse_parameters, run_preview
from mica_preview.cli.errors import CLIValidationError, format_cli_error
from mica_preview.cli.output import (
    DashboardRenderError,
    format_dashboard_table,
    print_parameter_form,
    print_state,
    render_cell,
)
from mica_preview.client import PreviewResult
from mica_preview.config import PreviewConfig
from mica_preview.document import DocumentKind
from mica_preview.errors import ParseError
from mica_preview.parameters import ParameterField
from mica_preview.session import SessionPhase, SessionState


def _dashboard_payload(layout="TABLE", columns=None):
    columns = columns if columns is not None else [{"title": "Name", "jsonPath": "$.name"}, {"title": "Up"}]
    return {
        "dashboard": {"layout": layout, "table": {"columns": columns}},
        "data": [["alpha", True], ["beta", {"n": 1}]],
    }


class TestOutput:
    def test_render_cell(self):
        assert render_cell("x") == "x"
        assert render_cell(3) == "3"
        assert render_cell(False) == "false"
        assert render_cell({"a": 1}) == '{"a": 1}'

    def test_dashboard_table(self):
        lines = format_dashboard_table(_dashboard_payload())
        assert lines[0].split(" | ") == ["Name ", "Up"]
        assert lines[2].startswith("alpha | true")
        assert lines[3] == 'beta  | {"n": 1}'

    def test_dashboard_unsupported_layout(self):
        with pytest.raises(DashboardRenderError, match="Unsupported layout: GRID"):
            format_dashboard_table(_dashboard_payload(layout="GRID"))

    def test_dashboard_requires_columns(self):
        with pytest.raises(DashboardRenderError, match="table.columns"):
            format_dashboard_table(_dashboard_payload(columns=[]))

    @pytest.mark.parametrize(
        "payload, message",
        [
            (_dashboard_payload(columns={"a": {"title": "A"}}), "table.columns"),
            (_dashboard_payload(columns=["Name"]), "must be an object"),
            ({"dashboard": {"layout": "TABLE", "table": "x"}, "data": []}, "table.columns"),
            (dict(_dashboard_payload(), data=["alpha"]), "list of rows"),
        ],
    )
    def test_dashboard_malformed_shapes(self, payload, message):
        with pytest.raises(DashboardRenderError, match=message):
            format_dashboard_table(payload)

    def test_state_reports_malformed_dashboard_as_banner(self):
        state = SessionState(
            phase=SessionPhase.SETTLED,
            last_good_result=PreviewResult(payload=_dashboard_payload(columns={"a": {"title": "A"}})),
        )
        out = io.StringIO()
        print_state(state, kind=DocumentKind.DASHBOARD, stream=out)
        assert "[error] Dashboard Error: Invalid dashboard definition" in out.getvalue()

    def test_state_shows_error_above_last_good_result(self):
        state = SessionState(
            phase=SessionPhase.SETTLED,
            last_good_result=PreviewResult(payload={"data": {"v": 1}}, validation_messages=[["bad"]]),
            active_error=ParseError("selector is required"),
        )
        out = io.StringIO()
        print_state(state, kind=DocumentKind.VIEW, stream=out)
        text = out.getvalue()
        assert text.index("[error] selector is required") < text.index("Validation error #0")
        assert "  - bad" in text
        assert json.loads(text[text.index("{"):]) == {"v": 1}

    def test_state_details_show_whole_payload(self):
        state = SessionState(last_good_result=PreviewResult(payload={"data": 1, "name": "v"}))
        out = io.StringIO()
        print_state(state, kind=DocumentKind.VIEW, show_details=True, stream=out)
        assert json.loads(out.getvalue()) == {"data": 1, "name": "v"}

    def test_parameter_form(self):
        out = io.StringIO()
        print_parameter_form(
            [
                ParameterField(name="limit", value="10", required=True),
                ParameterField(name="mode", value="", required=False, options=("a", "b")),
                ParameterField(name="n", value="", required=False, problem="Unknown type: integer"),
            ],
            stream=out,
        )
        text = out.getvalue()
        assert "limit* = 10" in text
        assert "mode = -  (one of: a, b)" in text
        assert "n: Unknown type: integer" in text


class TestArguments:
    def test_parse_parameters(self):
        assert parse_parameters(["a=1", "b=", "c=x=y"]) == {"a": "1", "b": "", "c": "x=y"}

    def test_parse_parameters_rejects_missing_equals(self):
        with pytest.raises(CLIValidationError) as excinfo:
            parse_parameters(["oops"])
        assert "Hint: Use --param NAME=VALUE" in format_cli_error(excinfo.value)

    def test_parser_accepts_view_options(self):
        args = build_parser().parse_args(["view", "v.yaml", "--param", "a=1", "--details"])
        assert args.command == "view"
        assert args.param == ["a=1"]
        assert args.details is True

    def test_missing_file_exits_with_error(self, tmp_path, capsys):
        code = main(["--log-level", "error", "view", str(tmp_path / "missing.yaml")])
        assert code == 2
        assert "does not exist" in capsys.readouterr().err


@pytest.mark.asyncio
async def test_run_preview_once(tmp_path, monkeypatch, capsys):
    source = tmp_path / "view.yaml"
    source.write_text(
        "id: v1\nselector: {entityKind: X}\ndata: {v: 1}\n"
        "parameters: {properties: {limit: {type: string}}}\n",
        encoding="utf-8",
    )
    seen = []

    def handler(request):
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={"data": {"rows": 3}})

    original = httpx.AsyncClient

    def _client_factory(*args, **kwargs):
        kwargs["transport"] = httpx.MockTransport(handler)
        return original(*args, **kwargs)

    monkeypatch.setattr(httpx, "AsyncClient", _client_factory)
    code = await run_preview(
        PreviewConfig(base_url="https://mica.example.com"),
        DocumentKind.VIEW,
        source,
        parameters={"limit": "10", "other": "x"},
    )

    assert code == 0
    assert seen == [
        {
            "view": {
                "selector": {"entityKind": "X"},
                "data": {"v": 1},
                "parameters": {"properties": {"limit": {"type": "string"}}},
            },
            "parameters": {"limit": "10"},
        }
    ]
    out = capsys.readouterr().out
    assert "limit = 10" in out
    assert "Unknown parameter: other" in out
    assert '"rows": 3' in out
