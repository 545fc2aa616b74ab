from twenty_mcp.core.types import (
    Cardinality,
    FieldDescriptor,
    FieldKind,
    ObjectContract,
    ObjectMetadata,
    RelationInfo,
)

__all__ = [
    "Cardinality",
    "FieldDescriptor",
    "FieldKind",
    "ObjectContract",
    "ObjectMetadata",
    "RelationInfo",
]
