"""
Twenty MCP Metadata Store
-------------------------
Holds the imported schema export: the object/field metadata catalog and the
optional GraphQL operation catalog. Objects are parsed into frozen
ObjectMetadata records and indexed by plural, singular and label names.

Each artifact is tracked by an (mtime, size) signature so the watcher can
tell when the export on disk has changed.
"""

import os
import json
import logging
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

from twenty_mcp.core.config import METADATA_FILENAME, OPERATIONS_FILENAME
from twenty_mcp.core.types import FieldDescriptor, FieldKind, ObjectMetadata
from twenty_mcp.schema.relations import build_relation_info

logger = logging.getLogger("Twenty.schema.store")

CORE_OBJECTS = ("people", "companies", "notes", "tasks", "opportunities", "noteTargets")
OPERATION_TYPES = ("query", "mutation")


class FileSignature(NamedTuple):
    mtime_ns: int
    size: int


def _signature(path: str) -> FileSignature:
    stat = os.stat(path)
    return FileSignature(stat.st_mtime_ns, stat.st_size)


def _read_json(path: str) -> Any:
    with open(path, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _parse_field(raw: Dict[str, Any]) -> Optional[FieldDescriptor]:
    name = raw.get("name")
    if not isinstance(name, str) or not name:
        return None

    kind = raw.get("type") or FieldKind.TEXT.value
    relation = None
    if kind == FieldKind.RELATION:
        relation = build_relation_info(name, raw.get("relation"))

    options = raw.get("options")
    return FieldDescriptor(
        name=name,
        kind=str(kind),
        label=raw.get("label"),
        description=raw.get("description"),
        is_active=bool(raw.get("isActive", True)),
        is_system=bool(raw.get("isSystem", False)),
        is_custom=bool(raw.get("isCustom", False)),
        nullable=raw.get("isNullable", True) is not False,
        default_value=raw.get("defaultValue"),
        options=tuple(options) if isinstance(options, list) else None,
        relation=relation,
    )


def _parse_object(raw: Dict[str, Any]) -> Optional[ObjectMetadata]:
    singular = raw.get("nameSingular")
    plural = raw.get("namePlural")
    if not isinstance(singular, str) or not isinstance(plural, str) or not singular or not plural:
        return None

    fields = []
    for raw_field in raw.get("fields") or []:
        if not isinstance(raw_field, dict):
            continue
        parsed = _parse_field(raw_field)
        if parsed is not None:
            fields.append(parsed)

    return ObjectMetadata(
        name_singular=singular,
        name_plural=plural,
        label_singular=raw.get("labelSingular"),
        label_plural=raw.get("labelPlural"),
        description=raw.get("description"),
        is_active=bool(raw.get("isActive", True)),
        is_system=bool(raw.get("isSystem", False)),
        is_custom=bool(raw.get("isCustom", False)),
        fields=tuple(fields),
    )


def _raw_objects(document: Any) -> List[Dict[str, Any]]:
    """Locate the object list in `{data: {objects: [...]}}` and flatter variants."""
    if isinstance(document, dict):
        data = document.get("data")
        if isinstance(data, dict) and isinstance(data.get("objects"), list):
            return data["objects"]
        if isinstance(document.get("objects"), list):
            return document["objects"]
        return []
    if isinstance(document, list):
        return document
    return []


class MetadataStore:
    def __init__(self, schema_path: Optional[str] = None):
        self.schema_path = schema_path
        self.metadata: Optional[Any] = None
        self.operations: Optional[Any] = None
        self._objects: Tuple[ObjectMetadata, ...] = ()
        self._index: Dict[str, ObjectMetadata] = {}
        self._signatures: Dict[str, Optional[FileSignature]] = {
            "metadata": None,
            "operations": None,
        }

    @property
    def metadata_path(self) -> Optional[str]:
        if not self.schema_path:
            return None
        return os.path.join(self.schema_path, METADATA_FILENAME)

    @property
    def operations_path(self) -> Optional[str]:
        if not self.schema_path:
            return None
        return os.path.join(self.schema_path, OPERATIONS_FILENAME)

    @property
    def loaded(self) -> bool:
        return self.metadata is not None

    def load(self, force: bool = False) -> bool:
        """
        Read the export from disk. Unchanged artifacts are skipped unless
        `force` is set. Returns False when the export cannot be read; the
        previously loaded state is kept in that case.
        """
        if not self.schema_path:
            logger.error(
                "Failed to resolve schema path. Set SCHEMA_PATH or place the export under ./schema"
            )
            return False

        try:
            metadata_sig = _signature(self.metadata_path)
            if force or metadata_sig != self._signatures["metadata"]:
                document = _read_json(self.metadata_path)
                self._set_metadata(document)
                self._signatures["metadata"] = metadata_sig

            if not os.path.exists(self.operations_path):
                self.operations = None
                self._signatures["operations"] = None
            else:
                operations_sig = _signature(self.operations_path)
                if force or operations_sig != self._signatures["operations"]:
                    self.operations = _read_json(self.operations_path)
                    self._signatures["operations"] = operations_sig
            return True
        except (OSError, ValueError) as exc:
            logger.error("Failed to load schema files from %s: %s", self.schema_path, exc)
            return False

    def _set_metadata(self, document: Any) -> None:
        objects = []
        for raw in _raw_objects(document):
            if not isinstance(raw, dict):
                continue
            parsed = _parse_object(raw)
            if parsed is None:
                logger.debug("Skipping metadata object without names: %r", raw.get("id"))
                continue
            objects.append(parsed)

        index: Dict[str, ObjectMetadata] = {}
        # Plural/singular names take precedence over labels in the index.
        for obj in objects:
            if not obj.is_active:
                continue
            for key in (obj.name_plural, obj.name_singular):
                index.setdefault(key.lower(), obj)
        for obj in objects:
            if not obj.is_active:
                continue
            for key in (obj.label_plural, obj.label_singular):
                if key:
                    index.setdefault(key.lower(), obj)

        self.metadata = document
        self._objects = tuple(objects)
        self._index = index
        logger.debug("Indexed %d metadata objects", len(objects))

    def has_changed(self) -> bool:
        """Compare the export on disk against the signatures of the last load."""
        if not self.schema_path:
            return False

        try:
            metadata_sig = _signature(self.metadata_path)
            if self.metadata is None or self._signatures["metadata"] is None:
                return True
            if metadata_sig != self._signatures["metadata"]:
                return True

            if not os.path.exists(self.operations_path):
                return self._signatures["operations"] is not None

            if self._signatures["operations"] is None:
                return True
            return _signature(self.operations_path) != self._signatures["operations"]
        except OSError as exc:
            # Export removed or unreadable; a reload attempt will surface the error.
            if self.metadata is not None:
                return True
            logger.error("Schema change detection failed: %s", exc)
            return False

    def active_objects(self) -> List[ObjectMetadata]:
        active = [obj for obj in self._objects if obj.is_active and not obj.is_system]
        return sorted(active, key=lambda obj: (obj.label_plural or obj.name_plural).lower())

    def get_object(self, name: Optional[str]) -> Optional[ObjectMetadata]:
        if not name or self.metadata is None:
            return None
        return self._index.get(str(name).strip().lower())

    def get_operations(self, operation_type: str = "all") -> List[Dict[str, Any]]:
        if not isinstance(self.operations, dict):
            return []

        data = self.operations.get("data")
        schema = data.get("__schema") if isinstance(data, dict) else None
        if not isinstance(schema, dict):
            return []

        requested = OPERATION_TYPES if operation_type == "all" else (operation_type,)
        results = []
        for current in requested:
            root = schema.get("queryType" if current == "query" else "mutationType")
            field_list = root.get("fields") if isinstance(root, dict) else None
            if not isinstance(field_list, list):
                continue
            for field in field_list:
                if not isinstance(field, dict) or not field.get("name"):
                    continue
                results.append({
                    "name": field["name"],
                    "type": current,
                    "description": field.get("description") or None,
                })
        return results
