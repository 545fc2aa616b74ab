from twenty_mcp.schema.compiler import SchemaCompiler, normalize_default_value
from twenty_mcp.schema.registry import Registry, RegistryBuilder
from twenty_mcp.schema.relations import derive_alias
from twenty_mcp.schema.store import CORE_OBJECTS, MetadataStore
from twenty_mcp.schema.watcher import SchemaWatcher

__all__ = [
    "CORE_OBJECTS",
    "MetadataStore",
    "Registry",
    "RegistryBuilder",
    "SchemaCompiler",
    "SchemaWatcher",
    "derive_alias",
    "normalize_default_value",
]
