"""
List/search response normalization.

The REST API (and proxies in front of it) return records under different
keys and with different pagination shapes. `normalize_list_response` pulls
out a record list, a pagination block and a small summary; responses
without any record array are returned unmodified.
"""

from typing import Any, Dict, List, Optional

RECORD_KEYS = ("data", "items", "records")
PAGINATION_KEYS = ("nextCursor", "prevCursor", "hasNextPage", "hasPreviousPage", "total", "totalCount")
META_PAGINATION_KEYS = ("pagination", "page", "total", "count")
TOTAL_KEYS = ("totalCount", "total", "totalItems", "count")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def extract_records(response: Any) -> Optional[List[Any]]:
    if isinstance(response, list):
        return response
    if isinstance(response, dict):
        for key in RECORD_KEYS:
            if isinstance(response.get(key), list):
                return response[key]
    return None


def extract_pagination(response: Any) -> Optional[Dict[str, Any]]:
    if not isinstance(response, dict):
        return None

    page_info = response.get("pageInfo")
    if isinstance(page_info, dict):
        return page_info

    meta = response.get("meta")
    if isinstance(meta, dict) and any(key in meta for key in META_PAGINATION_KEYS):
        for key in ("pagination", "page"):
            if isinstance(meta.get(key), dict):
                return meta[key]
        return meta

    found = {key: response[key] for key in PAGINATION_KEYS if key in response}
    return found or None


def resolve_total(pagination: Any) -> Optional[float]:
    if not isinstance(pagination, dict):
        return None
    for key in TOTAL_KEYS:
        if _is_number(pagination.get(key)):
            return pagination[key]
    return None


def resolve_has_next(pagination: Any) -> Optional[bool]:
    if not isinstance(pagination, dict):
        return None
    for key in ("hasNextPage", "hasMore"):
        if isinstance(pagination.get(key), bool):
            return pagination[key]
    if "nextCursor" in pagination:
        return bool(pagination["nextCursor"])
    return None


def normalize_list_response(response: Any) -> Any:
    items = extract_records(response)
    if items is None:
        return response

    summary: Dict[str, Any] = {"count": len(items)}
    payload: Dict[str, Any] = {"items": items, "summary": summary}

    pagination = extract_pagination(response)
    if pagination:
        payload["pagination"] = pagination
        total = resolve_total(pagination)
        if total is not None:
            summary["total"] = total
        has_next = resolve_has_next(pagination)
        if has_next is not None:
            summary["hasNextPage"] = has_next

    payload["raw"] = response
    return payload
