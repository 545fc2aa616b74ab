"""
Relation cardinality and alias helpers shared by the store and the compiler.
"""

import re
from typing import Any, Dict, Optional

from twenty_mcp.core.types import Cardinality, RelationInfo

SINGLE_RELATION_TYPES = ("MANY_TO_ONE", "ONE_TO_ONE")
MULTIPLE_RELATION_TYPES = ("ONE_TO_MANY", "MANY_TO_MANY")

_SINGLE_SUFFIX = re.compile(r"Id$", re.IGNORECASE)
_MULTIPLE_SUFFIX = re.compile(r"Ids$", re.IGNORECASE)


def cardinality_for(relation_type: Optional[str]) -> Optional[Cardinality]:
    if relation_type in SINGLE_RELATION_TYPES:
        return Cardinality.SINGLE
    if relation_type in MULTIPLE_RELATION_TYPES:
        return Cardinality.MULTIPLE
    return None


def derive_alias(field_name: str, cardinality: Optional[Cardinality]) -> Optional[str]:
    """
    Flat identifier name for a relation field: company -> companyId,
    noteTargets -> noteTargetsIds. Names already carrying the suffix are
    returned unchanged.
    """
    if not field_name or cardinality is None:
        return None
    if cardinality == Cardinality.SINGLE:
        if _SINGLE_SUFFIX.search(field_name):
            return field_name
        return f"{field_name}Id"
    if _MULTIPLE_SUFFIX.search(field_name):
        return field_name
    return f"{field_name}Ids"


def build_relation_info(field_name: str, raw_relation: Optional[Dict[str, Any]]) -> Optional[RelationInfo]:
    """Parse the `relation` block of a raw RELATION field."""
    if not isinstance(raw_relation, dict):
        return None

    relation_type = raw_relation.get("type")
    cardinality = cardinality_for(relation_type)
    target = raw_relation.get("targetObjectMetadata") or {}
    if not isinstance(target, dict):
        target = {}

    return RelationInfo(
        name=field_name,
        relation_type=relation_type,
        cardinality=cardinality,
        alias=derive_alias(field_name, cardinality),
        target_name_singular=target.get("nameSingular"),
        target_name_plural=target.get("namePlural"),
        target_label_singular=target.get("labelSingular"),
        target_label_plural=target.get("labelPlural"),
    )
