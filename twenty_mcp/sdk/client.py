"""
Twenty REST client.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests

from twenty_mcp.core.config import DEFAULT_BASE_URL, DEFAULT_REQUEST_TIMEOUT_SEC, normalize_base_url
from twenty_mcp.sdk.errors import HttpError, TwentyConnectionError

logger = logging.getLogger("Twenty.sdk.client")

BODY_METHODS = ("POST", "PUT", "PATCH")


def _decode_body(response: requests.Response) -> Any:
    content_type = response.headers.get("Content-Type", "") or ""
    if "application/json" in content_type:
        try:
            return response.json()
        except ValueError:
            return response.text
    text = response.text
    try:
        return response.json()
    except ValueError:
        return text


class TwentyClient:
    """
    Synchronous transport for the Twenty REST API.

    Usage:
        client = TwentyClient(api_key="...")
        people = client.request("/rest/people?limit=5")
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_REQUEST_TIMEOUT_SEC,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.base_url = normalize_base_url(base_url)
        self.timeout = timeout
        self._owns_session = session is None
        self._session = session or requests.Session()
        self._session.headers.setdefault("Accept", "application/json")

    def close(self) -> None:
        if self._owns_session:
            self._session.close()

    def __enter__(self) -> "TwentyClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _url(self, endpoint: str) -> str:
        if not endpoint.startswith("/"):
            endpoint = f"/{endpoint}"
        return f"{self.base_url}{endpoint}"

    def request(self, endpoint: str, method: str = "GET", body: Optional[Dict[str, Any]] = None) -> Any:
        """
        Issue one request. Returns the decoded body (None for 204) or raises
        HttpError for non-2xx responses. No retries.
        """
        method = method.upper()
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        json_body = body if body is not None and method in BODY_METHODS else None

        try:
            response = self._session.request(
                method=method,
                url=self._url(endpoint),
                headers=headers,
                json=json_body,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise TwentyConnectionError(f"API request failed: {exc}") from exc

        logger.debug("%s %s -> %s", method, endpoint, response.status_code)

        if not response.ok:
            parsed: Any = None
            if response.content:
                parsed = _decode_body(response)
            raise HttpError(
                f"HTTP {response.status_code}",
                status=response.status_code,
                status_text=response.reason,
                body=parsed,
                endpoint=endpoint,
                method=method,
                headers=dict(response.headers),
            )

        if response.status_code == 204 or not response.content:
            return None
        return _decode_body(response)
