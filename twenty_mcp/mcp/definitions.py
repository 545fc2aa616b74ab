"""
Twenty MCP Tool Definitions
---------------------------
Synthesizes the tool list from a Registry snapshot: five CRUD tools per
compiled object plus the fixed cross-cutting tools.
"""

import copy
from typing import Any, Dict, List

from twenty_mcp.core.types import ObjectContract
from twenty_mcp.mcp.protocol import JSON_SCHEMA_2020_12
from twenty_mcp.schema.registry import Registry

CRUD_VERBS = ("create", "get", "update", "list", "delete")

DEFAULT_LIST_LIMIT = 20
DEFAULT_SEARCH_LIMIT = 10
FALLBACK_SEARCH_OBJECTS = ("people", "companies")

NOTES_KEY = "notes"
NOTE_TARGETS_KEY = "notetargets"
COMPOSITE_NOTE_TOOL = "create_note_for_person"

READ_ONLY_TOOLS = {
    "get_metadata_objects",
    "get_object_metadata",
    "get_local_object_schema",
    "get_available_operations",
    "search_records",
}

OPERATION_TYPES = ("all", "query", "mutation")


def tool_annotations(name: str) -> Dict[str, bool]:
    verb = name.split("_", 1)[0]
    read_only = name in READ_ONLY_TOOLS or verb in ("get", "list")
    return {
        "readOnlyHint": read_only,
        "destructiveHint": verb == "delete",
        "idempotentHint": read_only or verb in ("update", "delete"),
        "openWorldHint": True,
    }


def _id_property(contract: ObjectContract) -> Dict[str, Dict[str, Any]]:
    return {"id": {"type": "string", "description": f"{contract.display_singular} ID"}}


def default_search_objects(registry: Registry) -> List[str]:
    if len(registry):
        return [contract.name_plural for contract in registry.objects]
    return list(FALLBACK_SEARCH_OBJECTS)


class ToolSynthesizer:
    """Builds MCP tool descriptors for one registry snapshot."""

    def __init__(self, registry: Registry):
        self.registry = registry

    def crud_tools(self, contract: ObjectContract) -> List[Dict[str, Any]]:
        writable = copy.deepcopy(contract.writable_properties)
        create_required = [name for name in contract.required if name in writable]
        singular = contract.display_singular.lower()
        plural = contract.display_plural.lower()

        if contract.description:
            create_description = f"Create a new {singular} ({contract.description.strip()})"
        else:
            create_description = f"Create a new {singular} in Twenty CRM"

        return [
            {
                "name": f"create_{contract.name_singular}",
                "description": create_description,
                "inputSchema": {
                    "type": "object",
                    "properties": writable,
                    "required": create_required,
                    "additionalProperties": True,
                },
            },
            {
                "name": f"get_{contract.name_singular}",
                "description": f"Get a {singular} by ID",
                "inputSchema": {
                    "type": "object",
                    "properties": _id_property(contract),
                    "required": ["id"],
                },
            },
            {
                "name": f"update_{contract.name_singular}",
                "description": f"Update an existing {singular}",
                "inputSchema": {
                    "type": "object",
                    "properties": {**_id_property(contract), **copy.deepcopy(writable)},
                    "required": ["id"],
                    "additionalProperties": True,
                },
            },
            {
                "name": f"list_{contract.name_plural}",
                "description": f"List {plural} with optional filters",
                "inputSchema": {
                    "type": "object",
                    "properties": {
                        "limit": {
                            "type": "number",
                            "description": f"Number of results to return (default: {DEFAULT_LIST_LIMIT})",
                            "default": DEFAULT_LIST_LIMIT,
                        },
                        "offset": {
                            "type": "number",
                            "description": "Number of results to skip before starting the page (default: 0)",
                            "default": 0,
                        },
                        "search": {"type": "string", "description": f"Search term applied to {plural}"},
                        "filters": {
                            "type": "object",
                            "description": f"Additional key/value filters supported by the {contract.name_plural} REST endpoint",
                            "properties": copy.deepcopy(writable),
                            "additionalProperties": True,
                        },
                    },
                    "additionalProperties": True,
                },
            },
            {
                "name": f"delete_{contract.name_singular}",
                "description": f"Delete a {singular}",
                "inputSchema": {
                    "type": "object",
                    "properties": _id_property(contract),
                    "required": ["id"],
                },
            },
        ]

    def global_tools(self) -> List[Dict[str, Any]]:
        object_name = {"type": "string", "description": "Object name (plural or singular)"}
        tools = [
            {
                "name": "get_metadata_objects",
                "description": "List active object metadata from the local schema export (API fallback)",
                "inputSchema": {"type": "object", "properties": {}},
            },
            {
                "name": "get_object_metadata",
                "description": "Inspect metadata for a specific object (local schema first, API fallback)",
                "inputSchema": {
                    "type": "object",
                    "properties": {"objectName": dict(object_name)},
                    "required": ["objectName"],
                },
            },
            {
                "name": "get_local_object_schema",
                "description": "Return the generated tool schema for an object based on the local export",
                "inputSchema": {
                    "type": "object",
                    "properties": {"objectName": dict(object_name)},
                    "required": ["objectName"],
                },
            },
            {
                "name": "get_available_operations",
                "description": "List GraphQL operations detected in the exported schema files",
                "inputSchema": {
                    "type": "object",
                    "properties": {
                        "type": {
                            "type": "string",
                            "enum": list(OPERATION_TYPES),
                            "description": "Filter by GraphQL operation type",
                            "default": "all",
                        },
                        "nameContains": {
                            "type": "string",
                            "description": "Optional substring filter applied to operation names",
                        },
                        "limit": {"type": "number", "description": "Limit the number of returned operations"},
                    },
                },
            },
            {
                "name": "search_records",
                "description": "Search REST records across supported objects",
                "inputSchema": {
                    "type": "object",
                    "properties": {
                        "query": {"type": "string", "description": "Search query string"},
                        "objectTypes": {
                            "type": "array",
                            "description": "Object types to search; accepts strings or objects with { name, limit, weight }",
                            "items": {
                                "anyOf": [
                                    {"type": "string"},
                                    {
                                        "type": "object",
                                        "properties": {
                                            "name": dict(object_name),
                                            "limit": {"type": "number", "description": "Override per-object result limit"},
                                            "weight": {
                                                "type": "number",
                                                "description": "Priority weight; higher values searched first",
                                            },
                                        },
                                        "required": ["name"],
                                        "additionalProperties": False,
                                    },
                                ]
                            },
                            "default": default_search_objects(self.registry),
                        },
                        "limit": {
                            "type": "number",
                            "description": "Number of results per object type",
                            "default": DEFAULT_SEARCH_LIMIT,
                        },
                    },
                    "required": ["query"],
                },
            },
        ]

        notes = self.registry.get(NOTES_KEY)
        if notes is not None and self.registry.get(NOTE_TARGETS_KEY) is not None:
            tools.append(self._composite_note_tool(notes))
        return tools

    def _composite_note_tool(self, notes: ObjectContract) -> Dict[str, Any]:
        return {
            "name": COMPOSITE_NOTE_TOOL,
            "description": "Create a note and link it to a person (optionally additional targets)",
            "inputSchema": {
                "type": "object",
                "properties": {
                    "personId": {"type": "string", "description": "Person ID that receives the note"},
                    "note": {
                        "type": "object",
                        "description": notes.description or "Fields applied to the created note",
                        "properties": copy.deepcopy(notes.properties),
                        "required": list(notes.required),
                        "additionalProperties": True,
                    },
                    "companyId": {"type": "string", "description": "Optional company ID to link"},
                    "targets": {
                        "type": "array",
                        "description": 'Additional targets to link (e.g., {"personId":"..."})',
                        "items": {
                            "type": "object",
                            "properties": {
                                "personId": {"type": "string", "description": "Person ID"},
                                "companyId": {"type": "string", "description": "Company ID"},
                                "workspaceMemberId": {"type": "string", "description": "Workspace member ID"},
                            },
                            "additionalProperties": True,
                        },
                    },
                },
                "required": ["personId", "note"],
                "additionalProperties": False,
            },
        }

    def build(self) -> List[Dict[str, Any]]:
        """Full tool list with `$schema` and annotations attached."""
        tools: List[Dict[str, Any]] = []
        for contract in self.registry.objects:
            tools.extend(self.crud_tools(contract))
        tools.extend(self.global_tools())

        for tool in tools:
            schema = tool["inputSchema"]
            if "$schema" not in schema:
                schema["$schema"] = JSON_SCHEMA_2020_12
            tool["annotations"] = tool_annotations(tool["name"])
        return tools
