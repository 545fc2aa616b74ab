import json
import logging
from typing import Any, Dict, Optional

from twenty_mcp.core.config import DEFAULT_TOOL_RESPONSE_MAX_CHARS
from twenty_mcp.sdk.errors import HttpError

logger = logging.getLogger("Twenty.mcp.utils")

ERROR_HINTS = {
    400: "Check the payload; use get_local_object_schema to confirm valid fields.",
    401: "Verify TWENTY_API_KEY value and permissions.",
    403: "Verify TWENTY_API_KEY value and permissions.",
    404: "Resource not found; confirm the ID and object type.",
    409: "Conflict detected; ensure the record is in a state that allows this change.",
    422: "Validation failed; inspect body for field errors and adjust the payload.",
    429: "Rate limit hit; wait briefly before retrying.",
    500: "Twenty CRM reported a server error; retry in a few moments.",
    502: "Twenty CRM reported a server error; retry in a few moments.",
    503: "Twenty CRM reported a server error; retry in a few moments.",
}


def error_hint(status: Optional[int]) -> Optional[str]:
    return ERROR_HINTS.get(status)


def _safe_json_dumps(payload: Any) -> str:
    try:
        return json.dumps(payload, indent=2)
    except (TypeError, ValueError):
        return json.dumps(str(payload), indent=2)


def truncate_tool_text(text: str, name: str, max_chars: int = DEFAULT_TOOL_RESPONSE_MAX_CHARS) -> str:
    """Apply the response length limit to tool text."""
    if len(text) > max_chars:
        logger.info("Truncating response for tool '%s' (%d -> %d chars)", name, len(text), max_chars)
        suffix = "\n\n[Response truncated due to size limits]"
        cutoff = max(0, max_chars - len(suffix))
        return text[:cutoff] + suffix
    return text


def build_content(message: Optional[str], data: Any = None, *, is_error: bool = False) -> Dict[str, Any]:
    """Tool result: a short message line followed by the serialized payload."""
    segments = []
    if message:
        segments.append(message)
    if data is not None:
        serialized = data if isinstance(data, str) else _safe_json_dumps(data)
        if serialized:
            segments.append(serialized)

    result: Dict[str, Any] = {"content": [{"type": "text", "text": "\n".join(segments)}]}
    if is_error:
        result["isError"] = True
    return result


def build_error_content(error: Exception) -> Dict[str, Any]:
    if isinstance(error, HttpError):
        payload = error.to_payload()
        hint = error_hint(error.status)
        if hint:
            payload["hint"] = hint
        return build_content(
            f"HTTP error {error.status} on {error.method} {error.endpoint}",
            payload,
            is_error=True,
        )
    return build_content(f"Error: {error}", is_error=True)


def coerce_number(value: Any, default: float) -> float:
    """Number(value) with a default for anything non-finite or non-numeric."""
    if isinstance(value, bool):
        return int(value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if number != number or number in (float("inf"), float("-inf")):
        return default
    return int(number) if number.is_integer() else number
