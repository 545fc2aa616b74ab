"""
Twenty MCP Configuration
------------------------
Centralized configuration for the MCP server, loaded from environment
variables.
"""

import os
import logging
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

from pydantic import BaseModel, Field

logger = logging.getLogger("Twenty.Config")

DEFAULT_BASE_URL = "https://api.twenty.com"
DEFAULT_REQUEST_TIMEOUT_SEC = 30.0
DEFAULT_TOOL_RESPONSE_MAX_CHARS = 32768

METADATA_FILENAME = "rest-metadata-objects.json"
OPERATIONS_FILENAME = "available-operations.json"

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent

LOG_LEVELS = {
    "silent": logging.WARNING,
    "quiet": logging.WARNING,
    "info": logging.INFO,
    "verbose": logging.DEBUG,
}


def normalize_base_url(base_url: str) -> str:
    value = base_url.strip().rstrip("/")
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(f"Invalid Twenty base URL: {base_url!r}")
    return value


def resolve_schema_path(explicit: Optional[str] = None) -> Optional[str]:
    """
    Return the first existing schema export directory.

    Resolution order:
      1. Explicit argument (CLI --schema-path)
      2. SCHEMA_PATH environment variable
      3. ./schema, ./twenty-crm-schema-export
      4. <project root>/schema
    """
    candidates = [
        explicit,
        os.environ.get("SCHEMA_PATH"),
        os.path.join(os.getcwd(), "schema"),
        os.path.join(os.getcwd(), "twenty-crm-schema-export"),
        str(PROJECT_ROOT / "schema"),
    ]
    for candidate in candidates:
        if candidate and os.path.isdir(candidate):
            return candidate
    return None


def _parse_positive_float_env(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
        if value <= 0:
            raise ValueError
        return value
    except ValueError:
        logger.warning(
            "Invalid %s value '%s'; expected positive float. Using %s.",
            name,
            raw,
            default,
        )
        return default


def _parse_positive_int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
        if value <= 0:
            raise ValueError
        return value
    except ValueError:
        logger.warning(
            "Invalid %s value '%s'; expected positive integer. Using %s.",
            name,
            raw,
            default,
        )
        return default


def normalize_log_level(level: Optional[str]) -> str:
    candidate = (level or "").strip().lower()
    if candidate in LOG_LEVELS:
        return candidate
    return "info"


class TwentyConfig(BaseModel):
    """Root configuration for the Twenty MCP server."""
    api_key: Optional[str] = None
    base_url: str = DEFAULT_BASE_URL
    schema_path: Optional[str] = None
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT_SEC
    tool_response_max_chars: int = DEFAULT_TOOL_RESPONSE_MAX_CHARS
    log_level: str = "info"
    extra_objects: list[str] = Field(default_factory=list)

    @property
    def quiet(self) -> bool:
        return self.log_level in ("silent", "quiet")

    def require_api_key(self) -> str:
        if not self.api_key:
            raise ValueError("TWENTY_API_KEY environment variable is required")
        return self.api_key

    @classmethod
    def from_env(cls, schema_path: Optional[str] = None) -> "TwentyConfig":
        """
        Load configuration from environment variables.

        - TWENTY_API_KEY: Bearer token for the REST API
        - TWENTY_BASE_URL: API root (default https://api.twenty.com)
        - SCHEMA_PATH: Directory holding the schema export
        - TWENTY_REQUEST_TIMEOUT_SEC: Per-request timeout
        - TWENTY_MCP_TOOL_RESPONSE_MAX_CHARS: Tool text truncation limit
        - TWENTY_MCP_EXTRA_OBJECTS: Comma-separated objects to expose besides the core set
        - MCP_LOG_LEVEL: silent | quiet | info | verbose
        """
        extra = [
            name.strip()
            for name in os.environ.get("TWENTY_MCP_EXTRA_OBJECTS", "").split(",")
            if name.strip()
        ]
        return cls(
            api_key=os.environ.get("TWENTY_API_KEY") or None,
            base_url=normalize_base_url(os.environ.get("TWENTY_BASE_URL", DEFAULT_BASE_URL)),
            schema_path=resolve_schema_path(schema_path),
            request_timeout=_parse_positive_float_env(
                "TWENTY_REQUEST_TIMEOUT_SEC", DEFAULT_REQUEST_TIMEOUT_SEC
            ),
            tool_response_max_chars=_parse_positive_int_env(
                "TWENTY_MCP_TOOL_RESPONSE_MAX_CHARS", DEFAULT_TOOL_RESPONSE_MAX_CHARS
            ),
            log_level=normalize_log_level(os.environ.get("MCP_LOG_LEVEL")),
            extra_objects=extra,
        )
