"""Tests for twenty_mcp.mcp.utils: tool content formatting."""

import json

import pytest

from twenty_mcp.mcp.utils import build_content, coerce_number, error_hint, truncate_tool_text


def test_build_content_message_and_payload():
    result = build_content("Created Person", {"id": "p1"})
    message, body = result["content"][0]["text"].split("\n", 1)
    assert message == "Created Person"
    assert json.loads(body) == {"id": "p1"}
    assert "isError" not in result


def test_build_content_message_only():
    assert build_content("Deleted Person p1") == {"content": [{"type": "text", "text": "Deleted Person p1"}]}


def test_build_content_error_flag():
    assert build_content("Error: nope", is_error=True)["isError"] is True


@pytest.mark.parametrize("status", [500, 502, 503])
def test_server_error_hints(status):
    assert "retry" in error_hint(status)


def test_no_hint_for_unmapped_status():
    assert error_hint(418) is None
    assert error_hint(None) is None


def test_truncate_short_text_untouched():
    assert truncate_tool_text("short", "get_person", 100) == "short"


@pytest.mark.parametrize("value, expected", [
    ("12", 12),
    (3.5, 3.5),
    ("abc", 7),
    (None, 7),
    (float("inf"), 7),
    ("nan", 7),
])
def test_coerce_number(value, expected):
    assert coerce_number(value, 7) == expected
