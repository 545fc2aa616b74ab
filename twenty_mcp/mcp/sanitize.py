"""
Twenty MCP Payload Sanitizer
----------------------------
Normalizes caller-supplied record payloads against a compiled contract
before they are sent to the REST API:

- relation fields (`company`, `noteTargets`) are rewritten to their flat id
  aliases (`companyId`, `noteTargetsIds`);
- alias keys are coerced to an id or id list;
- LINKS fields given as bare strings are wrapped in the LINKS shape;
- `id` is always dropped (it travels in the endpoint path).

Relation values arrive in many shapes. They are first classified into a
small tagged union and each variant is then resolved explicitly.
"""

import math
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Union

from twenty_mcp.core.types import Cardinality, ObjectContract, RelationInfo

logger = logging.getLogger("Twenty.mcp.sanitize")

LINK_KEYS = ("primaryLinkUrl", "primaryLinkLabel", "secondaryLinks")


# Relation value variants

@dataclass(frozen=True)
class NullRef:
    """Explicit null: clear the relation."""


@dataclass(frozen=True)
class IdRef:
    value: Any


@dataclass(frozen=True)
class IdListRef:
    items: Tuple[Any, ...]


@dataclass(frozen=True)
class ObjectRef:
    ref: Dict[str, Any]


@dataclass(frozen=True)
class ObjectRefList:
    ids: Tuple[Any, ...]


@dataclass(frozen=True)
class UnusableRef:
    raw: Any


RelationValue = Union[NullRef, IdRef, IdListRef, ObjectRef, ObjectRefList, UnusableRef]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def classify_relation_value(value: Any) -> RelationValue:
    if value is None:
        return NullRef()
    if isinstance(value, str) or _is_number(value):
        return IdRef(value)
    if isinstance(value, (list, tuple)):
        return IdListRef(tuple(value))
    if isinstance(value, dict):
        if isinstance(value.get("ids"), list):
            return ObjectRefList(tuple(value["ids"]))
        return ObjectRef(value)
    return UnusableRef(value)


def _scalar_id(value: Any) -> Optional[str]:
    if isinstance(value, str):
        trimmed = value.strip()
        return trimmed or None
    if _is_number(value) and math.isfinite(value):
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        return str(value)
    return None


def _object_id(ref: Dict[str, Any]) -> Optional[str]:
    for key in ("id", "value"):
        candidate = ref.get(key)
        if isinstance(candidate, str) and candidate.strip():
            return candidate.strip()
    return None


# Results of single-relation resolution besides a plain id string.
class _Clear:
    def __repr__(self) -> str:
        return "CLEAR"


class _Omit:
    def __repr__(self) -> str:
        return "OMIT"


CLEAR = _Clear()
OMIT = _Omit()


def resolve_single(value: RelationValue) -> Union[str, _Clear, _Omit]:
    """id string, CLEAR for explicit null, OMIT when nothing usable was given."""
    if isinstance(value, NullRef):
        return CLEAR
    if isinstance(value, IdRef):
        return _scalar_id(value.value) or OMIT
    if isinstance(value, ObjectRef):
        return _object_id(value.ref) or OMIT
    return OMIT


def _element_id(item: Any) -> Optional[str]:
    resolved = resolve_single(classify_relation_value(item))
    return resolved if isinstance(resolved, str) else None


def resolve_multiple(value: RelationValue) -> Union[list, _Omit]:
    """
    De-duplicated id list (first occurrence order). An explicit clear (null,
    [] or {ids: []}) yields []; input that produces no usable ids otherwise
    yields OMIT.
    """
    if isinstance(value, NullRef):
        return []

    if isinstance(value, IdListRef):
        candidates = value.items
        explicit_clear = not candidates
    elif isinstance(value, ObjectRefList):
        candidates = value.ids
        explicit_clear = not candidates
    elif isinstance(value, IdRef):
        candidates = (value.value,)
        explicit_clear = False
    elif isinstance(value, ObjectRef):
        candidates = (value.ref["id"] if value.ref.get("id") is not None else value.ref,)
        explicit_clear = False
    else:
        candidates = ()
        explicit_clear = False

    ids = []
    for candidate in candidates:
        resolved = _element_id(candidate)
        if resolved and resolved not in ids:
            ids.append(resolved)

    if ids:
        return ids
    return [] if explicit_clear else OMIT


def normalize_relation_value(value: Any, relation: RelationInfo):
    """Resolve a raw relation value; returns an id, None, a list or OMIT."""
    variant = classify_relation_value(value)
    if relation.cardinality == Cardinality.MULTIPLE:
        return resolve_multiple(variant)
    resolved = resolve_single(variant)
    if resolved is CLEAR:
        return None
    return resolved


def normalize_links_value(value: Any) -> Any:
    """Wrap a bare URL string in the LINKS shape; everything else passes through."""
    if value is None:
        return value
    if isinstance(value, dict) and any(key in value for key in LINK_KEYS):
        return value
    if isinstance(value, str):
        return {
            "primaryLinkUrl": value.strip(),
            "primaryLinkLabel": "",
            "secondaryLinks": None,
        }
    return value


class PayloadSanitizer:
    def __init__(self, contract: ObjectContract):
        self.contract = contract
        self.by_name: Dict[str, RelationInfo] = {}
        self.by_alias: Dict[str, RelationInfo] = {}
        for relation in contract.relations:
            self.by_name[relation.name] = relation
            if relation.alias:
                self.by_alias[relation.alias] = relation
        self.link_fields = frozenset(contract.link_fields)

    def sanitize(self, payload: Any) -> Dict[str, Any]:
        if not isinstance(payload, dict):
            return {}

        sanitized: Dict[str, Any] = {}
        for key, value in payload.items():
            if key in self.by_name:
                relation = self.by_name[key]
                target = relation.alias or relation.name
                self._assign(sanitized, target, normalize_relation_value(value, relation), relation)
                continue

            if key in self.by_alias:
                relation = self.by_alias[key]
                self._assign(sanitized, key, normalize_relation_value(value, relation), relation)
                continue

            if key in self.link_fields:
                sanitized[key] = normalize_links_value(value)
                continue

            sanitized[key] = value

        sanitized.pop("id", None)
        return sanitized

    def _assign(self, sanitized: Dict[str, Any], target: str, value: Any, relation: RelationInfo) -> None:
        if value is OMIT:
            if relation.cardinality == Cardinality.MULTIPLE:
                logger.warning(
                    "Dropping relation %s on %s: no usable ids in a non-empty value",
                    target,
                    self.contract.name_plural,
                )
            else:
                logger.debug("Dropping relation %s on %s: no usable id", target, self.contract.name_plural)
            return
        sanitized[target] = value


def sanitize_payload(payload: Any, contract: ObjectContract) -> Dict[str, Any]:
    return PayloadSanitizer(contract).sanitize(payload)
