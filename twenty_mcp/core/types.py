"""
Twenty MCP Core Types
---------------------
Pydantic models and enums describing the imported CRM schema and the
contracts compiled from it.

Field, relation and contract models are frozen: a registry rebuild replaces
them wholesale instead of mutating them in place.
"""

from enum import Enum
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class FieldKind(str, Enum):
    TEXT = "TEXT"
    NUMBER = "NUMBER"
    NUMERIC = "NUMERIC"
    BOOLEAN = "BOOLEAN"
    DATE = "DATE"
    DATE_TIME = "DATE_TIME"
    SELECT = "SELECT"
    MULTI_SELECT = "MULTI_SELECT"
    RATING = "RATING"
    RELATION = "RELATION"
    FULL_NAME = "FULL_NAME"
    ADDRESS = "ADDRESS"
    CURRENCY = "CURRENCY"
    EMAIL = "EMAIL"
    EMAILS = "EMAILS"
    PHONE = "PHONE"
    PHONES = "PHONES"
    LINK = "LINK"
    LINKS = "LINKS"
    ACTOR = "ACTOR"
    ARRAY = "ARRAY"
    RAW_JSON = "RAW_JSON"
    RICH_TEXT = "RICH_TEXT"
    POSITION = "POSITION"
    UUID = "UUID"


class Cardinality(str, Enum):
    SINGLE = "single"
    MULTIPLE = "multiple"


class RelationInfo(BaseModel):
    """Relation descriptor attached to a RELATION field."""
    model_config = ConfigDict(frozen=True)

    name: str
    relation_type: Optional[str] = None
    cardinality: Optional[Cardinality] = None
    alias: Optional[str] = None
    target_name_singular: Optional[str] = None
    target_name_plural: Optional[str] = None
    target_label_singular: Optional[str] = None
    target_label_plural: Optional[str] = None

    def to_summary(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "alias": self.alias,
            "relationType": self.relation_type,
            "targetNameSingular": self.target_name_singular,
            "targetNamePlural": self.target_name_plural,
            "targetLabelSingular": self.target_label_singular,
            "targetLabelPlural": self.target_label_plural,
        }


class FieldDescriptor(BaseModel):
    """One field of an imported object, as read from the metadata export."""
    model_config = ConfigDict(frozen=True)

    name: str
    # Raw kind string; compare against FieldKind members (str enum).
    kind: str = FieldKind.TEXT.value
    label: Optional[str] = None
    description: Optional[str] = None
    is_active: bool = True
    is_system: bool = False
    is_custom: bool = False
    nullable: bool = True
    default_value: Any = None
    options: Optional[Tuple[Any, ...]] = None
    relation: Optional[RelationInfo] = None

    def to_summary(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.kind,
            "label": self.label,
            "description": self.description,
            "isNullable": self.nullable,
            "isCustom": self.is_custom,
            "isSystem": self.is_system,
            "defaultValue": self.default_value,
        }


class ObjectMetadata(BaseModel):
    """One object record of the metadata export with its ordered fields."""
    model_config = ConfigDict(frozen=True)

    name_singular: str
    name_plural: str
    label_singular: Optional[str] = None
    label_plural: Optional[str] = None
    description: Optional[str] = None
    is_active: bool = True
    is_system: bool = False
    is_custom: bool = False
    fields: Tuple[FieldDescriptor, ...] = ()

    def to_summary(self) -> Dict[str, Any]:
        return {
            "nameSingular": self.name_singular,
            "namePlural": self.name_plural,
            "labelSingular": self.label_singular,
            "labelPlural": self.label_plural,
            "isCustom": self.is_custom,
            "description": self.description,
        }


class ObjectContract(BaseModel):
    """
    Compiled description of one CRM object.

    `properties` and `writable_properties` hold JSON-schema fragments keyed by
    field name (relation aliases included). `fields` keeps the descriptors the
    contract was compiled from so the sanitizer can look up field kinds.
    """
    model_config = ConfigDict(frozen=True)

    name_singular: str
    name_plural: str
    label_singular: Optional[str] = None
    label_plural: Optional[str] = None
    description: Optional[str] = None
    properties: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    required: Tuple[str, ...] = ()
    relations: Tuple[RelationInfo, ...] = ()
    fields: Tuple[FieldDescriptor, ...] = ()
    writable_properties: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    source: str = "metadata"

    @property
    def plural_key(self) -> str:
        return self.name_plural.lower()

    @property
    def display_singular(self) -> str:
        return self.label_singular or self.name_singular

    @property
    def display_plural(self) -> str:
        return self.label_plural or self.name_plural

    @property
    def link_fields(self) -> Tuple[str, ...]:
        return tuple(f.name for f in self.fields if f.kind == FieldKind.LINKS)
