"""
Twenty transport exceptions.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class TwentyError(RuntimeError):
    """Base class for errors raised by the Twenty MCP server."""


class TwentyConnectionError(TwentyError):
    """Raised when the Twenty API cannot be reached."""


class ResolutionError(TwentyError):
    """Raised before any network call for unknown objects or missing arguments."""


class HttpError(TwentyError):
    """Raised when the Twenty API answers with a non-2xx status."""

    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        status_text: Optional[str] = None,
        body: Optional[Any] = None,
        endpoint: Optional[str] = None,
        method: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        self.status = status
        self.status_text = status_text
        self.body = body
        self.endpoint = endpoint
        self.method = method
        self.headers = dict(headers or {})
        super().__init__(message)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "statusText": self.status_text,
            "endpoint": self.endpoint,
            "method": self.method,
            "body": self.body,
            "headers": self.headers,
        }
