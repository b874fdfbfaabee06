"""Tests for preview request assembly."""

from mica_preview.document import DocumentKind, parse_document
from mica_preview.parameters import ParameterStore, extract_schema
from mica_preview.request import DASHBOARD_PREVIEW_PATH, VIEW_PREVIEW_PATH, build_request


def test_view_request_end_to_end(view_source):
    document = parse_document(view_source, DocumentKind.VIEW)
    store = ParameterStore()
    store.set_value("limit", "10")
    request = build_request(document, store.reconcile(extract_schema(document)))

    assert request.path == VIEW_PREVIEW_PATH
    assert request.to_body() == {
        "view": {
            "selector": {"entityKind": "X"},
            "data": {"v": 1},
            "parameters": {"properties": {"limit": {"type": "string"}}},
        },
        "parameters": {"limit": "10"},
    }


def test_view_request_always_has_parameters():
    document = parse_document("selector: {}\ndata: {}")
    assert build_request(document, {}).to_body()["parameters"] == {}


def test_view_request_carries_row_limit():
    document = parse_document("selector: {}\ndata: {}")
    assert build_request(document, {}, limit=-1).to_body()["limit"] == -1


def test_dashboard_request_never_has_parameters():
    document = parse_document("view: {name: v}\nlayout: TABLE", DocumentKind.DASHBOARD)
    request = build_request(document, {"limit": "10"}, limit=5)

    assert request.path == DASHBOARD_PREVIEW_PATH
    assert request.parameters is None
    assert request.to_body() == {"dashboard": {"view": {"name": "v"}, "layout": "TABLE"}}


def test_body_does_not_alias_document():
    document = parse_document("selector: {}\ndata: {v: 1}")
    request = build_request(document, {})
    body = request.to_body()
    body["view"]["data"]["v"] = 99
    assert request.document["data"]["v"] == 1
    assert document.body["data"]["v"] == 1
