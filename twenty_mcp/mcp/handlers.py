"""
Twenty MCP Tool Handlers
------------------------
Executes tool calls against the REST API. Every call reads one registry
snapshot up front, so a rebuild in between never mixes two schema versions
inside a single call. Failures are returned as error content; nothing
propagates past `ToolDispatcher.call`.
"""

import re
import time
import logging
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote, urlencode

from twenty_mcp.core.config import DEFAULT_TOOL_RESPONSE_MAX_CHARS
from twenty_mcp.core.types import ObjectContract
from twenty_mcp.mcp.definitions import (
    COMPOSITE_NOTE_TOOL,
    DEFAULT_LIST_LIMIT,
    DEFAULT_SEARCH_LIMIT,
    NOTE_TARGETS_KEY,
    NOTES_KEY,
    OPERATION_TYPES,
    ToolSynthesizer,
    default_search_objects,
)
from twenty_mcp.mcp.results import normalize_list_response
from twenty_mcp.mcp.sanitize import sanitize_payload
from twenty_mcp.mcp.utils import build_content, build_error_content, coerce_number, truncate_tool_text
from twenty_mcp.schema.registry import Registry
from twenty_mcp.schema.watcher import SchemaWatcher
from twenty_mcp.sdk.client import TwentyClient
from twenty_mcp.sdk.errors import HttpError, ResolutionError

logger = logging.getLogger("Twenty.mcp.handlers")

CRUD_TOOL_PATTERN = re.compile(r"^(create|get|update|list|delete)_(.+)$")
LIST_RESERVED_ARGS = ("limit", "offset", "search", "filters")


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _is_blank(value: Any) -> bool:
    return value is None or value == ""


def build_list_query(arguments: Dict[str, Any]) -> str:
    """
    Query string for a list call: limit and offset (numbers, with defaults on
    garbage), optional search, then filters merged over inline arguments.
    Blank values are skipped and list values repeat the parameter. A filter
    named limit, offset or search replaces the computed one.
    """
    limit = coerce_number(arguments.get("limit", DEFAULT_LIST_LIMIT), DEFAULT_LIST_LIMIT)
    offset = coerce_number(arguments.get("offset", 0), 0)
    pairs: List[Tuple[str, str]] = [("limit", _query_value(limit)), ("offset", _query_value(offset))]

    search = arguments.get("search")
    if search:
        pairs.append(("search", str(search)))

    merged = {key: value for key, value in arguments.items() if key not in LIST_RESERVED_ARGS}
    filters = arguments.get("filters")
    if isinstance(filters, dict):
        merged.update(filters)

    for key, value in merged.items():
        if _is_blank(value):
            continue
        if key in LIST_RESERVED_ARGS:
            pairs = [pair for pair in pairs if pair[0] != key]
        if isinstance(value, (list, tuple)):
            pairs.extend((key, _query_value(item)) for item in value if not _is_blank(item))
        else:
            pairs.append((key, _query_value(value)))

    return urlencode(pairs)


def extract_resource_id(response: Any) -> Optional[str]:
    """
    Find the created record's id: direct `id`, then `data`, then `record`,
    taking the first resolvable element of arrays. A wrapper dict holding a
    single nested object (`{"createNote": {...}}`) is unwrapped last.
    """
    if response is None or isinstance(response, bool):
        return None
    if isinstance(response, str):
        return response or None
    if isinstance(response, (int, float)):
        return str(response)
    if isinstance(response, list):
        for item in response:
            resolved = extract_resource_id(item)
            if resolved:
                return resolved
        return None
    if not isinstance(response, dict):
        return None

    if response.get("id"):
        return str(response["id"])
    for key in ("data", "record"):
        if key in response:
            resolved = extract_resource_id(response[key])
            if resolved:
                return resolved

    nested = [value for value in response.values() if isinstance(value, dict)]
    if len(response) == 1 and len(nested) == 1:
        return extract_resource_id(nested[0])
    return None


def build_note_target_requests(
    note_id: str,
    person_id: Any,
    company_id: Any = None,
    targets: Any = None,
) -> List[Dict[str, Any]]:
    """Link payloads for a new note, de-duplicated on their sorted key/value pairs."""
    requests: List[Dict[str, Any]] = []
    seen = set()

    def add(request: Dict[str, Any]) -> None:
        key = "|".join(f"{name}:{request[name]}" for name in sorted(request))
        if key in seen:
            return
        seen.add(key)
        requests.append(request)

    add({"noteId": note_id, "personId": person_id})
    if company_id:
        add({"noteId": note_id, "companyId": company_id})

    if isinstance(targets, list):
        for target in targets:
            if not isinstance(target, dict):
                continue
            request = {"noteId": note_id}
            for field in ("personId", "companyId", "workspaceMemberId"):
                if target.get(field):
                    request[field] = target[field]
            if len(request) > 1:
                add(request)

    return requests


def normalize_search_object_types(
    object_types: Any,
    default_limit: float,
    defaults: List[str],
) -> List[Dict[str, Any]]:
    configured = object_types if isinstance(object_types, list) and object_types else defaults

    entries = []
    for entry in configured:
        if isinstance(entry, str):
            entries.append({"name": entry, "limit": default_limit, "weight": 1})
        elif isinstance(entry, dict):
            name = entry.get("name") or entry.get("object") or entry.get("type")
            if not name or not isinstance(name, str):
                continue
            entries.append({
                "name": name,
                "limit": coerce_number(entry.get("limit", default_limit), default_limit),
                "weight": coerce_number(entry.get("weight", 1), 1),
            })

    merged: Dict[str, Dict[str, Any]] = {}
    for entry in entries:
        key = entry["name"].lower()
        existing = merged.get(key)
        if existing is None:
            merged[key] = entry
            continue
        merged[key] = {
            **existing,
            "limit": max(existing["limit"], entry["limit"]),
            "weight": max(existing["weight"], entry["weight"]),
        }

    return sorted(merged.values(), key=lambda item: (-item["weight"], item["name"]))


class ToolDispatcher:
    def __init__(
        self,
        client: TwentyClient,
        watcher: SchemaWatcher,
        max_chars: int = DEFAULT_TOOL_RESPONSE_MAX_CHARS,
    ):
        self.client = client
        self.watcher = watcher
        self.max_chars = max_chars
        self._tools_cache: Optional[Tuple[Registry, List[Dict[str, Any]]]] = None
        self._global_handlers = {
            "get_metadata_objects": self.get_metadata_objects,
            "get_object_metadata": self.get_object_metadata,
            "get_local_object_schema": self.get_local_object_schema,
            "get_available_operations": self.get_available_operations,
            "search_records": self.search_records,
            COMPOSITE_NOTE_TOOL: self.create_note_for_person,
        }

    @property
    def registry(self) -> Registry:
        return self.watcher.registry

    def list_tools(self) -> List[Dict[str, Any]]:
        """Tool descriptors for the current snapshot, rebuilt only when the snapshot changes."""
        registry = self.registry
        if self._tools_cache is None or self._tools_cache[0] is not registry:
            self._tools_cache = (registry, ToolSynthesizer(registry).build())
        return self._tools_cache[1]

    def call(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Run one tool call and return MCP content; errors come back as isError content."""
        arguments = arguments if isinstance(arguments, dict) else {}
        started = time.monotonic()
        outcome = "success"
        try:
            result = self._dispatch(name, arguments)
        except HttpError as exc:
            outcome = "http_error"
            logger.warning("Tool %s failed: HTTP %s on %s %s", name, exc.status, exc.method, exc.endpoint)
            result = build_error_content(exc)
        except Exception as exc:
            outcome = "error"
            logger.warning("Tool %s failed: %s", name, exc)
            logger.debug("Tool failure detail", exc_info=True)
            result = build_error_content(exc)

        for item in result.get("content", []):
            if item.get("type") == "text":
                item["text"] = truncate_tool_text(item["text"], name, self.max_chars)

        elapsed_ms = (time.monotonic() - started) * 1000.0
        logger.info("Tool call telemetry: name=%s outcome=%s elapsed_ms=%.1f", name, outcome, elapsed_ms)
        return result

    def _dispatch(self, name: str, arguments: Dict[str, Any]) -> Dict[str, Any]:
        handler = self._global_handlers.get(name)
        if handler is not None:
            return handler(arguments)

        match = CRUD_TOOL_PATTERN.match(name or "")
        if match:
            operation, object_name = match.groups()
            return self.handle_crud(operation, object_name, arguments)

        raise ResolutionError(f"Unknown tool: {name}")

    def _resolve(self, object_name: str, registry: Optional[Registry] = None) -> ObjectContract:
        contract = (registry or self.registry).resolve(object_name)
        if contract is None:
            raise ResolutionError(f'Unsupported object "{object_name}" in the current schema')
        return contract

    # CRUD

    def handle_crud(self, operation: str, object_name: str, arguments: Dict[str, Any]) -> Dict[str, Any]:
        contract = self._resolve(object_name)
        endpoint = f"/rest/{contract.name_plural}"
        singular = contract.display_singular

        if operation == "create":
            payload = sanitize_payload(arguments, contract)
            created = self.client.request(endpoint, "POST", payload)
            return build_content(f"Created {singular}", created)

        if operation == "get":
            record_id = self._require_id(arguments, f"{singular} retrieval")
            record = self.client.request(f"{endpoint}/{quote(record_id, safe='')}")
            return build_content(f"{singular} details", record)

        if operation == "update":
            record_id = self._require_id(arguments, f"{singular} update")
            changes = {key: value for key, value in arguments.items() if key != "id"}
            payload = sanitize_payload(changes, contract)
            updated = self.client.request(f"{endpoint}/{quote(record_id, safe='')}", "PUT", payload)
            return build_content(f"Updated {singular}", updated)

        if operation == "list":
            query = build_list_query(arguments)
            response = self.client.request(f"{endpoint}?{query}" if query else endpoint)
            return build_content(f"{contract.display_plural} list", normalize_list_response(response))

        if operation == "delete":
            record_id = self._require_id(arguments, f"{singular} deletion")
            self.client.request(f"{endpoint}/{quote(record_id, safe='')}", "DELETE")
            return build_content(f"Deleted {singular} {record_id}")

        raise ResolutionError(f"Unknown operation: {operation}")

    @staticmethod
    def _require_id(arguments: Dict[str, Any], purpose: str) -> str:
        record_id = arguments.get("id")
        if not record_id:
            raise ResolutionError(f'Missing "id" for {purpose}')
        return str(record_id)

    # Metadata

    def get_metadata_objects(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        store = self.watcher.store
        if store.loaded:
            objects = [obj.to_summary() for obj in store.active_objects()]
            return build_content("Active objects from local schema", {"objects": objects})

        result = self.client.request("/rest/metadata/objects")
        return build_content("Metadata objects", result)

    def get_object_metadata(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        object_name = arguments.get("objectName")
        if not object_name:
            raise ResolutionError("objectName is required")

        registry = self.registry
        store = self.watcher.store
        metadata = None
        contract = registry.resolve(object_name)
        if store.loaded:
            metadata = store.get_object(contract.name_plural if contract else object_name)

        if metadata is None:
            result = self.client.request(f"/rest/metadata/objects/{quote(str(object_name), safe='')}")
            return build_content(f"Metadata for {object_name}", result)

        contract = registry.resolve(metadata.name_plural)
        payload = {
            "nameSingular": metadata.name_singular,
            "namePlural": metadata.name_plural,
            "labelSingular": metadata.label_singular,
            "labelPlural": metadata.label_plural,
            "description": metadata.description,
            "required": list(contract.required) if contract else [],
            "fields": [field.to_summary() for field in metadata.fields],
        }
        if contract is not None and contract.relations:
            payload["relations"] = [relation.to_summary() for relation in contract.relations]

        return build_content(f"Metadata for {metadata.label_singular or metadata.name_singular}", payload)

    def get_local_object_schema(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        object_name = arguments.get("objectName")
        if not object_name:
            raise ResolutionError("objectName is required")

        contract = self.watcher.request_object(str(object_name))
        if contract is None:
            raise ResolutionError(f'Unknown object "{object_name}" in local schema export')

        payload = {
            "nameSingular": contract.name_singular,
            "namePlural": contract.name_plural,
            "labelSingular": contract.label_singular,
            "labelPlural": contract.label_plural,
            "description": contract.description,
            "required": list(contract.required),
            "properties": contract.properties,
        }
        return build_content(f"Local schema for {contract.display_singular}", payload)

    def get_available_operations(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        requested = arguments.get("type", "all")
        operation_type = requested.lower() if isinstance(requested, str) else "all"
        if operation_type not in OPERATION_TYPES:
            operation_type = "all"

        operations = self.watcher.store.get_operations(operation_type)
        if not operations:
            return build_content("No GraphQL operations found in the local schema export", {"operations": []})

        name_contains = arguments.get("nameContains")
        if name_contains:
            needle = str(name_contains).lower()
            operations = [op for op in operations if needle in op["name"].lower()]

        limit = arguments.get("limit")
        if isinstance(limit, (int, float)) and not isinstance(limit, bool) and limit > 0:
            operations = operations[: int(limit)]

        return build_content("Available operations", {"operations": operations})

    # Search

    def search_records(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        query = arguments.get("query")
        if not query:
            raise ResolutionError("query is required")

        registry = self.registry
        default_limit = coerce_number(arguments.get("limit", DEFAULT_SEARCH_LIMIT), DEFAULT_SEARCH_LIMIT)
        requests = normalize_search_object_types(
            arguments.get("objectTypes"), default_limit, default_search_objects(registry)
        )

        results: Dict[str, Any] = {}
        searched = set()
        for request in requests:
            contract = registry.resolve(request["name"])
            if contract is None:
                results[request["name"]] = {"error": "Unsupported object type"}
                continue

            endpoint_name = contract.name_plural
            if endpoint_name in searched:
                continue
            searched.add(endpoint_name)

            endpoint = (
                f"/rest/{endpoint_name}?search={quote(str(query), safe='')}"
                f"&limit={_query_value(request['limit'])}"
            )
            entry: Dict[str, Any] = {"limit": request["limit"], "weight": request["weight"]}
            try:
                entry["data"] = normalize_list_response(self.client.request(endpoint))
            except HttpError as exc:
                entry["error"] = {"status": exc.status, "body": exc.body}
            except Exception as exc:
                logger.warning("Search against %s failed: %s", endpoint_name, exc)
                entry["error"] = str(exc)
            results[endpoint_name] = entry

        if not searched:
            results["_error"] = "No supported object types available for search"

        return build_content(f'Search results for "{query}"', results)

    # Composite note creation

    def create_note_for_person(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        person_id = arguments.get("personId")
        note = arguments.get("note")
        if not person_id:
            raise ResolutionError("personId is required")
        if not isinstance(note, dict):
            raise ResolutionError("note object is required")

        registry = self.registry
        notes = registry.get(NOTES_KEY)
        if notes is None:
            raise ResolutionError("Notes schema unavailable; ensure schema export is loaded")
        note_targets = registry.get(NOTE_TARGETS_KEY)
        if note_targets is None:
            raise ResolutionError("noteTargets schema unavailable; cannot create note links")

        sanitized_note = sanitize_payload(note, notes)
        if not sanitized_note:
            raise ResolutionError("No note fields provided; specify title, body, or other fields")

        note_response = self.client.request(f"/rest/{notes.name_plural}", "POST", sanitized_note)
        note_id = extract_resource_id(note_response)
        if not note_id:
            raise ResolutionError("Unable to determine created note ID from response")

        link_requests = build_note_target_requests(
            note_id, person_id, arguments.get("companyId"), arguments.get("targets")
        )

        created = []
        for request in link_requests:
            payload = sanitize_payload(request, note_targets)
            response = self.client.request(f"/rest/{note_targets.name_plural}", "POST", payload)
            created.append(extract_resource_id(response) or payload)

        logger.debug("Created note %s with %d link(s)", note_id, len(created))
        return build_content(
            f"Created note {note_id} and linked {len(created)} target(s)",
            {"noteId": note_id, "createdTargets": created},
        )
