"""Tests for the Twenty REST transport."""

from __future__ import annotations

import json
from typing import Any, Dict, Tuple
from urllib.parse import urlparse

import pytest
import requests

from twenty_mcp.sdk import TwentyClient
from twenty_mcp.sdk.errors import HttpError, TwentyConnectionError


def _requests_response(
    status_code: int,
    payload: Any,
    content_type: str = "application/json",
    reason: str = "",
) -> requests.Response:
    response = requests.Response()
    response.status_code = status_code
    response.reason = reason
    if payload is None:
        raw = b""
    elif isinstance(payload, (dict, list)):
        raw = json.dumps(payload).encode("utf-8")
    else:
        raw = str(payload).encode("utf-8")
    response._content = raw
    response.url = "https://api.twenty.com"
    if content_type:
        response.headers["Content-Type"] = content_type
    return response


class _StubSession:
    def __init__(self, mapping: Dict[Tuple[str, str], Any]):
        self.mapping = mapping
        self.calls = []
        self.headers: Dict[str, str] = {}
        self.closed = False

    def request(self, *, method: str, url: str, headers: Dict[str, str], json: Any, timeout: float):
        parsed = urlparse(url)
        key = (method.upper(), parsed.path)
        self.calls.append(
            {
                "method": method.upper(),
                "path": parsed.path,
                "query": parsed.query,
                "headers": headers,
                "json": json,
                "timeout": timeout,
            }
        )
        result = self.mapping[key]
        if isinstance(result, Exception):
            raise result
        return result

    def close(self) -> None:
        self.closed = True


def test_get_sends_bearer_and_decodes_json():
    stub = _StubSession({("GET", "/rest/people"): _requests_response(200, {"data": [{"id": "p1"}]})})
    client = TwentyClient("secret", base_url="https://crm.example.com/", timeout=7.5, session=stub)

    result = client.request("/rest/people?limit=5")

    assert result == {"data": [{"id": "p1"}]}
    call = stub.calls[0]
    assert call["headers"]["Authorization"] == "Bearer secret"
    assert call["headers"]["Content-Type"] == "application/json"
    assert call["query"] == "limit=5"
    assert call["json"] is None
    assert call["timeout"] == 7.5


def test_body_only_sent_for_write_methods():
    stub = _StubSession({
        ("POST", "/rest/notes"): _requests_response(201, {"id": "n1"}),
        ("DELETE", "/rest/notes/n1"): _requests_response(204, None, content_type=""),
    })
    client = TwentyClient("k", session=stub)

    assert client.request("/rest/notes", "post", {"title": "T"}) == {"id": "n1"}
    assert client.request("rest/notes/n1", "DELETE", {"ignored": True}) is None

    assert stub.calls[0]["method"] == "POST"
    assert stub.calls[0]["json"] == {"title": "T"}
    assert stub.calls[1]["json"] is None


def test_non_json_body_falls_back_to_text():
    stub = _StubSession({("GET", "/rest/ping"): _requests_response(200, "pong", content_type="text/plain")})
    assert TwentyClient("k", session=stub).request("/rest/ping") == "pong"


def test_http_error_carries_response_detail():
    body = {"messages": ["name must not be empty"]}
    stub = _StubSession({
        ("POST", "/rest/companies"): _requests_response(400, body, reason="Bad Request"),
    })
    client = TwentyClient("k", session=stub)

    with pytest.raises(HttpError) as excinfo:
        client.request("/rest/companies", "POST", {"name": ""})

    error = excinfo.value
    assert error.status == 400
    assert error.status_text == "Bad Request"
    assert error.body == body
    assert error.endpoint == "/rest/companies"
    assert error.method == "POST"
    assert error.headers["Content-Type"] == "application/json"
    payload = error.to_payload()
    assert payload["statusText"] == "Bad Request"
    assert payload["body"] == body


def test_http_error_with_text_body():
    stub = _StubSession({("GET", "/rest/people/x"): _requests_response(404, "missing", content_type="text/plain")})
    with pytest.raises(HttpError) as excinfo:
        TwentyClient("k", session=stub).request("/rest/people/x")
    assert excinfo.value.body == "missing"


def test_connection_error_is_wrapped():
    stub = _StubSession({("GET", "/rest/people"): requests.ConnectionError("refused")})
    with pytest.raises(TwentyConnectionError, match="API request failed"):
        TwentyClient("k", session=stub).request("/rest/people")


def test_invalid_base_url_rejected():
    with pytest.raises(ValueError):
        TwentyClient("k", base_url="ftp://example.com", session=_StubSession({}))


def test_context_manager_closes_owned_session_only():
    stub = _StubSession({})
    with TwentyClient("k", session=stub):
        pass
    assert stub.closed is False
