"""
Twenty MCP Schema Compiler
--------------------------
Turns one metadata object into an ObjectContract: JSON-schema properties per
field, the required set, relation descriptors with their flat-id aliases and
the writable subset used by create/update tools.

The shapes of complex field kinds (FULL_NAME, ADDRESS, CURRENCY, LINKS, ...)
are fixed here and are not read from the export.
"""

import re
import copy
import logging
from typing import Any, Dict, List, Optional

from twenty_mcp.core.types import Cardinality, FieldDescriptor, FieldKind, ObjectContract
from twenty_mcp.schema.relations import derive_alias
from twenty_mcp.schema.store import MetadataStore

logger = logging.getLogger("Twenty.schema.compiler")

AUTO_DEFAULT_TOKENS = frozenset({
    "now",
    "uuid",
    "incrementalposition",
    "currentuser",
    "autoincrement",
})
EMPTY_STRING_TOKENS = frozenset({"''", '""'})
_EDGE_QUOTES = re.compile(r"^['\"]|['\"]$")

READ_ONLY_FIELD_NAMES = frozenset({
    "createdAt",
    "updatedAt",
    "deletedAt",
    "createdBy",
    "updatedBy",
    "searchVector",
    "position",
})

TYPE_MAP: Dict[str, str] = {
    FieldKind.TEXT.value: "string",
    FieldKind.UUID.value: "string",
    FieldKind.EMAIL.value: "string",
    FieldKind.PHONE.value: "string",
    FieldKind.LINK.value: "string",
    FieldKind.SELECT.value: "string",
    FieldKind.RATING.value: "string",
    FieldKind.DATE.value: "string",
    FieldKind.DATE_TIME.value: "string",
    FieldKind.RICH_TEXT.value: "string",
    FieldKind.NUMBER.value: "number",
    FieldKind.NUMERIC.value: "number",
    FieldKind.POSITION.value: "number",
    FieldKind.BOOLEAN.value: "boolean",
    FieldKind.MULTI_SELECT.value: "array",
    FieldKind.ARRAY.value: "array",
    FieldKind.FULL_NAME.value: "object",
    FieldKind.ADDRESS.value: "object",
    FieldKind.CURRENCY.value: "object",
    FieldKind.LINKS.value: "object",
    FieldKind.ACTOR.value: "object",
    FieldKind.RAW_JSON.value: "object",
    FieldKind.EMAILS.value: "array",
    FieldKind.PHONES.value: "array",
    FieldKind.RELATION.value: "string",
}


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()


def _string(description: str) -> Dict[str, Any]:
    return {"type": "string", "description": description}


COMPLEX_SHAPES: Dict[str, Dict[str, Any]] = {
    FieldKind.FULL_NAME.value: {
        "type": "object",
        "properties": {
            "firstName": _string("First name"),
            "lastName": _string("Last name"),
            "middleName": _string("Middle name"),
            "prefix": _string("Name prefix (e.g., Dr.)"),
            "suffix": _string("Name suffix (e.g., Jr.)"),
        },
        "additionalProperties": False,
    },
    FieldKind.ADDRESS.value: {
        "type": "object",
        "properties": {
            "addressLine1": _string("Primary address line"),
            "addressLine2": _string("Secondary address line"),
            "city": _string("City or locality"),
            "state": _string("State or region"),
            "postalCode": _string("Postal or ZIP code"),
            "country": _string("Country code or name"),
        },
        "additionalProperties": False,
    },
    FieldKind.CURRENCY.value: {
        "type": "object",
        "properties": {
            "amount": {"type": "number", "description": "Monetary amount"},
            "currency": _string("Three-letter currency code (ISO 4217)"),
        },
        "required": ["amount", "currency"],
        "additionalProperties": False,
    },
    FieldKind.LINKS.value: {
        "type": "object",
        "properties": {
            "primaryLinkUrl": _string("Primary URL"),
            "primaryLinkLabel": _string("Label for the primary URL"),
            "secondaryLinks": {
                "type": ["array", "null"],
                "description": "Additional links",
                "items": {
                    "type": "object",
                    "properties": {
                        "url": _string("Link URL"),
                        "label": _string("Link label"),
                    },
                    "additionalProperties": True,
                },
            },
        },
        "additionalProperties": True,
    },
    FieldKind.EMAILS.value: {
        "type": "array",
        "items": {
            "type": "object",
            "properties": {
                "value": _string("Contact value"),
                "type": _string("Type label or category"),
                "primary": {"type": "boolean", "description": "Whether this is the primary contact value"},
            },
            "additionalProperties": True,
        },
    },
    FieldKind.ACTOR.value: {
        "type": "object",
        "properties": {
            "id": _string("User or system identifier"),
            "type": _string("Actor type (user, system, integration, etc.)"),
        },
        "additionalProperties": True,
    },
    FieldKind.MULTI_SELECT.value: {"type": "array", "items": {"type": "string"}},
    FieldKind.ARRAY.value: {"type": "array", "items": {"type": "string"}},
    FieldKind.RAW_JSON.value: {"type": "object", "additionalProperties": True},
}
COMPLEX_SHAPES[FieldKind.PHONES.value] = COMPLEX_SHAPES[FieldKind.EMAILS.value]


def map_field_type(kind: str) -> str:
    return TYPE_MAP.get(kind, "string")


def normalize_default_value(value: Any) -> Any:
    """
    Normalize an exported default. Server-computed tokens ("now", "uuid", ...)
    and containers that end up empty normalize to MISSING.
    """
    if value is None:
        return MISSING

    if isinstance(value, str):
        trimmed = value.strip()
        if trimmed in EMPTY_STRING_TOKENS:
            return ""
        stripped = _EDGE_QUOTES.sub("", trimmed)
        if stripped.lower() in AUTO_DEFAULT_TOKENS:
            return MISSING
        return stripped

    if isinstance(value, list):
        items = [normalize_default_value(item) for item in value]
        items = [item for item in items if item is not MISSING]
        return items if items else MISSING

    if isinstance(value, dict):
        normalized = {}
        for key, item in value.items():
            item = normalize_default_value(item)
            if item is not MISSING:
                normalized[key] = item
        return normalized if normalized else MISSING

    return value


def _option_values(options) -> List[Any]:
    values = []
    for option in options:
        if isinstance(option, dict):
            values.append(option.get("value"))
        else:
            values.append(option)
    return values


def _relation_property(field: FieldDescriptor) -> Dict[str, Any]:
    relation = field.relation
    if relation.cardinality == Cardinality.SINGLE:
        target = relation.target_label_singular or relation.target_name_singular or "record"
        return {"type": "string", "description": f"ID of the related {target}"}

    target = (
        relation.target_label_plural
        or relation.target_name_plural
        or f"{relation.target_label_singular or relation.target_name_singular or 'record'}s"
    )
    return {
        "type": "array",
        "items": {"type": "string"},
        "description": f"IDs of related {target}",
    }


def build_field_property(field: FieldDescriptor) -> Dict[str, Any]:
    """Structural type for one field."""
    if field.kind == FieldKind.RELATION and field.relation is not None:
        prop = _relation_property(field)
    elif field.kind in COMPLEX_SHAPES:
        prop = copy.deepcopy(COMPLEX_SHAPES[field.kind])
    else:
        prop = {"type": map_field_type(field.kind)}

    description = field.label or field.description
    if description and "description" not in prop:
        prop["description"] = description

    if field.options:
        values = _option_values(field.options)
        if prop.get("type") == "array" and isinstance(prop.get("items"), dict):
            prop["items"]["enum"] = values
        else:
            prop["enum"] = values

    default = normalize_default_value(field.default_value)
    if default is not MISSING:
        prop["default"] = default

    return prop


def _alias_property(field: FieldDescriptor) -> Dict[str, Any]:
    relation = field.relation
    if relation.cardinality == Cardinality.SINGLE:
        target = relation.target_label_singular or relation.target_name_singular or field.name
        return {"type": "string", "description": f"ID of the related {target}"}
    target = relation.target_label_plural or relation.target_name_plural or field.name
    return {
        "type": "array",
        "items": {"type": "string"},
        "description": f"IDs of related {target}",
    }


def field_participates(field: FieldDescriptor) -> bool:
    if not field.is_active or field.is_system:
        return False
    if field.kind == FieldKind.RELATION:
        return field.relation is not None and field.relation.cardinality is not None
    return True


def is_required(field: FieldDescriptor) -> bool:
    return field.nullable is False and field.default_value is None


def writable_properties(
    properties: Dict[str, Dict[str, Any]],
    fields=(),
) -> Dict[str, Dict[str, Any]]:
    """
    Properties a caller may set: system-managed timestamps, audit actors and
    ordering positions are dropped. Falls back to every property when nothing
    would remain.
    """
    position_fields = {f.name for f in fields if f.kind == FieldKind.POSITION}
    writable = {
        name: copy.deepcopy(definition)
        for name, definition in properties.items()
        if name not in READ_ONLY_FIELD_NAMES and name not in position_fields
    }
    if not writable:
        return copy.deepcopy(properties)
    return writable


class SchemaCompiler:
    def __init__(self, store: MetadataStore):
        self.store = store

    def compile(self, name: str) -> Optional[ObjectContract]:
        """Compile the named object; None means it is not in the export."""
        obj = self.store.get_object(name)
        if obj is None:
            return None

        fields = [field for field in obj.fields if field_participates(field)]
        selected = {field.name for field in fields}
        skipped = [
            field.name
            for field in obj.fields
            if field.kind == FieldKind.RELATION and field.is_active and not field.is_system
            and field.name not in selected
        ]
        if skipped:
            logger.debug(
                "Skipping relations with unknown type on %s: %s",
                obj.name_plural,
                ", ".join(skipped),
            )

        properties: Dict[str, Dict[str, Any]] = {}
        required: List[str] = []
        relations = []

        for field in fields:
            properties[field.name] = build_field_property(field)
            if is_required(field):
                required.append(field.name)

        for field in fields:
            if field.kind != FieldKind.RELATION:
                continue
            relation = field.relation
            relations.append(relation)
            if relation.alias and relation.alias not in properties:
                properties[relation.alias] = _alias_property(field)

        return ObjectContract(
            name_singular=obj.name_singular,
            name_plural=obj.name_plural,
            label_singular=obj.label_singular,
            label_plural=obj.label_plural,
            description=obj.description,
            properties=properties,
            required=tuple(required),
            relations=tuple(relations),
            fields=tuple(fields),
            writable_properties=writable_properties(properties, fields),
            source="metadata",
        )


__all__ = [
    "MISSING",
    "SchemaCompiler",
    "build_field_property",
    "derive_alias",
    "map_field_type",
    "normalize_default_value",
    "writable_properties",
]
