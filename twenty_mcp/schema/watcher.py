"""
Twenty MCP Schema Watcher
-------------------------
Owns the current Registry snapshot and rebuilds it when the schema export
changes on disk. Rebuilds construct a new snapshot and swap the reference,
so readers only ever see a complete registry.
"""

import logging
import threading
from typing import Iterable, List, Optional

from twenty_mcp.core.types import ObjectContract
from twenty_mcp.schema.registry import Registry, RegistryBuilder
from twenty_mcp.schema.store import MetadataStore

logger = logging.getLogger("Twenty.schema.watcher")


class SchemaWatcher:
    def __init__(
        self,
        store: MetadataStore,
        builder: Optional[RegistryBuilder] = None,
        extra_objects: Iterable[str] = (),
    ):
        self.store = store
        self.builder = builder or RegistryBuilder(store)
        self._extra_objects: List[str] = list(extra_objects)
        self._lock = threading.RLock()
        self.rebuild_count = 0

        if not self.store.loaded and not self.store.load():
            logger.warning("Could not load schemas, using fallback mode")

        self._registry: Registry = Registry()
        self.rebuild(log=False)

    @property
    def registry(self) -> Registry:
        return self._registry

    @property
    def extra_objects(self) -> List[str]:
        return list(self._extra_objects)

    def rebuild(self, log: bool = True) -> Registry:
        with self._lock:
            registry = self.builder.build(self._extra_objects)
            self._registry = registry
            self.rebuild_count += 1
        if log:
            logger.info(
                "Schema registry rebuilt; tools refreshed (%d objects, source=%s)",
                len(registry),
                registry.source,
            )
        return registry

    def refresh_if_changed(self) -> bool:
        """Reload and rebuild when the export changed. Returns True on rebuild."""
        if not self.store.schema_path:
            return False

        with self._lock:
            if not self.store.loaded:
                if not self.store.load(force=True):
                    return False
                self.rebuild()
                return True

            if not self.store.has_changed():
                return False

            if not self.store.load(force=True):
                return False

            logger.info("Detected schema file changes; reloading export")
            self.rebuild()
            return True

    def force_reload(self) -> Registry:
        with self._lock:
            if not self.store.load(force=True):
                logger.warning("Forced schema reload failed; keeping previous metadata")
            return self.rebuild()

    def request_object(self, name: str) -> Optional[ObjectContract]:
        """
        Compile an object outside the current registry and, if it compiles,
        keep it in every later rebuild so its CRUD tools are exposed.
        """
        known = self._registry.resolve(name)
        if known is not None:
            return known

        contract = self.builder.compiler.compile(name)
        if contract is None:
            return None

        with self._lock:
            if contract.name_plural not in self._extra_objects:
                self._extra_objects.append(contract.name_plural)
            registry = self.rebuild()
        return registry.resolve(contract.name_plural) or contract
