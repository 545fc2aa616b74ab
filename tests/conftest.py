"""Shared schema-export builders for the Twenty MCP tests."""

import json
from typing import Any, Dict, List, Optional

import pytest

from twenty_mcp.core.config import METADATA_FILENAME, OPERATIONS_FILENAME


def field(name: str, kind: str = "TEXT", **extra: Any) -> Dict[str, Any]:
    raw = {
        "name": name,
        "type": kind,
        "label": extra.pop("label", name[:1].upper() + name[1:]),
        "isActive": True,
        "isSystem": False,
        "isNullable": True,
        "defaultValue": None,
    }
    raw.update(extra)
    return raw


def relation_field(
    name: str,
    relation_type: str,
    target_singular: str,
    target_plural: str,
    **extra: Any,
) -> Dict[str, Any]:
    return field(
        name,
        "RELATION",
        relation={
            "type": relation_type,
            "targetObjectMetadata": {
                "nameSingular": target_singular,
                "namePlural": target_plural,
                "labelSingular": target_singular[:1].upper() + target_singular[1:],
                "labelPlural": target_plural[:1].upper() + target_plural[1:],
            },
        },
        **extra,
    )


def obj(
    singular: str,
    plural: str,
    fields: List[Dict[str, Any]],
    label_singular: Optional[str] = None,
    label_plural: Optional[str] = None,
    **extra: Any,
) -> Dict[str, Any]:
    raw = {
        "nameSingular": singular,
        "namePlural": plural,
        "labelSingular": label_singular or singular[:1].upper() + singular[1:],
        "labelPlural": label_plural or plural[:1].upper() + plural[1:],
        "description": None,
        "isActive": True,
        "isSystem": False,
        "isCustom": False,
        "fields": fields,
    }
    raw.update(extra)
    return raw


def build_metadata() -> Dict[str, Any]:
    """A small export shaped like Twenty's `rest-metadata-objects.json`."""
    return {
        "data": {
            "objects": [
                obj("person", "people", [
                    field("id", "UUID", isSystem=True),
                    field("name", "FULL_NAME"),
                    field("emails", "EMAILS"),
                    field("jobTitle", "TEXT", isNullable=False, defaultValue="''"),
                    field("city", "TEXT"),
                    field("createdAt", "DATE_TIME", isNullable=False, defaultValue="now"),
                    field("position", "POSITION"),
                    relation_field("company", "MANY_TO_ONE", "company", "companies"),
                    relation_field("noteTargets", "ONE_TO_MANY", "noteTarget", "noteTargets"),
                ], label_plural="People"),
                obj("company", "companies", [
                    field("name", "TEXT", isNullable=False),
                    field("domainName", "LINKS"),
                    field("linkedinLink", "LINKS"),
                    field("employees", "NUMBER"),
                    field("annualRecurringRevenue", "CURRENCY"),
                    field("address", "ADDRESS"),
                    field("idealCustomerProfile", "BOOLEAN", isNullable=False, defaultValue=False),
                    relation_field("people", "ONE_TO_MANY", "person", "people"),
                ], label_plural="Companies"),
                obj("note", "notes", [
                    field("title", "TEXT"),
                    field("bodyV2", "RICH_TEXT"),
                    relation_field("noteTargets", "ONE_TO_MANY", "noteTarget", "noteTargets"),
                ]),
                obj("noteTarget", "noteTargets", [
                    relation_field("note", "MANY_TO_ONE", "note", "notes"),
                    relation_field("person", "MANY_TO_ONE", "person", "people"),
                    relation_field("company", "MANY_TO_ONE", "company", "companies"),
                ], label_singular="Note Target", label_plural="Note Targets"),
                obj("task", "tasks", [
                    field("title", "TEXT"),
                    field("status", "SELECT", options=[
                        {"value": "TODO", "label": "To do"},
                        {"value": "IN_PROGRESS", "label": "In progress"},
                        {"value": "DONE", "label": "Done"},
                    ], defaultValue="'TODO'"),
                    field("dueAt", "DATE_TIME"),
                ]),
                obj("opportunity", "opportunities", [
                    field("name", "TEXT", isNullable=False),
                    field("amount", "CURRENCY"),
                    field("stage", "SELECT", options=[{"value": "NEW"}, {"value": "WON"}]),
                    field("tags", "MULTI_SELECT", options=[{"value": "hot"}, {"value": "cold"}]),
                    relation_field("pointOfContact", "MANY_TO_ONE", "person", "people"),
                ], label_plural="Opportunities"),
                obj("pet", "pets", [
                    field("species", "SELECT", options=[{"value": "DOG"}, {"value": "CAT"}]),
                ], isCustom=True),
                obj("workspaceMember", "workspaceMembers", [
                    field("userEmail", "TEXT"),
                ], isSystem=True),
            ]
        }
    }


def build_operations() -> Dict[str, Any]:
    return {
        "data": {
            "__schema": {
                "queryType": {"fields": [
                    {"name": "people", "description": "List people"},
                    {"name": "person", "description": None},
                    {"name": "companies"},
                ]},
                "mutationType": {"fields": [
                    {"name": "createPerson", "description": "Create a person"},
                    {"name": "createCompany"},
                ]},
            }
        }
    }


def write_export(directory, metadata: Any = None, operations: Any = None) -> None:
    directory.mkdir(parents=True, exist_ok=True)
    if metadata is not None:
        (directory / METADATA_FILENAME).write_text(json.dumps(metadata), encoding="utf-8")
    if operations is not None:
        (directory / OPERATIONS_FILENAME).write_text(json.dumps(operations), encoding="utf-8")


@pytest.fixture
def metadata_document() -> Dict[str, Any]:
    return build_metadata()


@pytest.fixture
def schema_dir(tmp_path):
    directory = tmp_path / "schema"
    write_export(directory, build_metadata(), build_operations())
    return directory


@pytest.fixture
def store(schema_dir):
    from twenty_mcp.schema.store import MetadataStore

    loaded = MetadataStore(str(schema_dir))
    assert loaded.load()
    return loaded


@pytest.fixture
def watcher(store):
    from twenty_mcp.schema.watcher import SchemaWatcher

    return SchemaWatcher(store)
