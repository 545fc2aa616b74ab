"""
Twenty MCP Object Registry
--------------------------
Builds the immutable lookup of compiled object contracts. A build either
compiles the core objects (plus any extra requested names) from the loaded
metadata, or, when no metadata is available or nothing compiles, registers
a fixed fallback set of minimal contracts. The two paths never mix within
one build.

Registration is first-wins per plural key; later duplicates are dropped.
"""

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from twenty_mcp.core.types import Cardinality, ObjectContract, RelationInfo
from twenty_mcp.schema.compiler import SchemaCompiler, writable_properties
from twenty_mcp.schema.store import CORE_OBJECTS, MetadataStore

logger = logging.getLogger("Twenty.schema.registry")

SOURCE_METADATA = "metadata"
SOURCE_FALLBACK = "fallback"

_FALLBACK_SINGULARS = {
    "people": "person",
    "companies": "company",
    "opportunities": "opportunity",
}


@dataclass(frozen=True)
class Registry:
    """Read-only snapshot of the compiled contracts and their name aliases."""
    contracts: Mapping[str, ObjectContract] = field(default_factory=lambda: MappingProxyType({}))
    aliases: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    source: str = SOURCE_FALLBACK

    @property
    def objects(self) -> List[ObjectContract]:
        return list(self.contracts.values())

    def __len__(self) -> int:
        return len(self.contracts)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.resolve(name) is not None

    def get(self, plural_key: str) -> Optional[ObjectContract]:
        return self.contracts.get(plural_key.lower())

    def resolve(self, name: Optional[str]) -> Optional[ObjectContract]:
        """Look up a contract by plural, singular or label name (case-insensitive)."""
        if name is None:
            return None
        normalized = str(name).strip().lower()
        if not normalized:
            return None
        plural_key = self.aliases.get(normalized)
        if plural_key is None:
            return None
        return self.contracts.get(plural_key)


class _RegistryDraft:
    def __init__(self):
        self.contracts: Dict[str, ObjectContract] = {}
        self.aliases: Dict[str, str] = {}

    def register(self, contract: Optional[ObjectContract]) -> bool:
        if contract is None or not contract.name_plural or not contract.name_singular:
            return False

        plural_key = contract.plural_key
        if plural_key in self.contracts:
            logger.debug("Ignoring duplicate registration for %s", contract.name_plural)
            return False

        self.contracts[plural_key] = contract
        self.aliases[plural_key] = plural_key
        self.aliases[contract.name_singular.lower()] = plural_key
        for label in (contract.label_singular, contract.label_plural):
            if label:
                self.aliases[label.lower()] = plural_key
        return True

    def freeze(self, source: str) -> Registry:
        return Registry(
            contracts=MappingProxyType(dict(self.contracts)),
            aliases=MappingProxyType(dict(self.aliases)),
            source=source,
        )


def fallback_singular(name_plural: str) -> str:
    if name_plural in _FALLBACK_SINGULARS:
        return _FALLBACK_SINGULARS[name_plural]
    if name_plural.endswith("s"):
        return name_plural[:-1]
    return name_plural


def _single_relation(name: str, singular: str, plural: str) -> RelationInfo:
    return RelationInfo(
        name=name,
        relation_type="MANY_TO_ONE",
        cardinality=Cardinality.SINGLE,
        alias=f"{name}Id",
        target_name_singular=singular,
        target_name_plural=plural,
        target_label_singular=singular.capitalize(),
        target_label_plural=plural.capitalize(),
    )


def _note_targets_fallback() -> Tuple[Dict[str, Dict], Tuple[RelationInfo, ...]]:
    properties = {
        "noteId": {"type": "string", "description": "ID of the note to link"},
        "personId": {"type": "string", "description": "Person ID to attach"},
        "companyId": {"type": "string", "description": "Optional company ID"},
    }
    relations = (
        _single_relation("note", "note", "notes"),
        _single_relation("person", "person", "people"),
        _single_relation("company", "company", "companies"),
    )
    return properties, relations


def fallback_contract(name_plural: str) -> ObjectContract:
    """Minimal stand-in contract used when no metadata can be compiled."""
    name_singular = fallback_singular(name_plural)
    label_singular = name_singular[:1].upper() + name_singular[1:]
    label_plural = name_plural[:1].upper() + name_plural[1:]

    properties: Dict[str, Dict] = {}
    relations: Tuple[RelationInfo, ...] = ()
    if name_plural == "noteTargets":
        properties, relations = _note_targets_fallback()

    return ObjectContract(
        name_singular=name_singular,
        name_plural=name_plural,
        label_singular=label_singular,
        label_plural=label_plural,
        description=f"Generic {label_plural.lower()} operations",
        properties=properties,
        required=(),
        relations=relations,
        fields=(),
        writable_properties=writable_properties(properties),
        source=SOURCE_FALLBACK,
    )


class RegistryBuilder:
    def __init__(self, store: MetadataStore, core_objects: Iterable[str] = CORE_OBJECTS):
        self.store = store
        self.compiler = SchemaCompiler(store)
        self.core_objects = tuple(core_objects)

    def build(self, extra_objects: Iterable[str] = ()) -> Registry:
        """Full rebuild: compile from metadata, or fall back wholesale."""
        names = list(self.core_objects)
        for name in extra_objects:
            if name not in names:
                names.append(name)

        if self.store.loaded:
            draft = _RegistryDraft()
            for name in names:
                draft.register(self.compiler.compile(name))
            if draft.contracts:
                return draft.freeze(SOURCE_METADATA)
            logger.warning("No objects compiled from schema metadata; using fallback registry")
        else:
            logger.warning("Schema metadata unavailable; using fallback registry")

        return self.build_fallback()

    def build_fallback(self) -> Registry:
        draft = _RegistryDraft()
        for name_plural in self.core_objects:
            draft.register(fallback_contract(name_plural))
        return draft.freeze(SOURCE_FALLBACK)
