# modresolve/core/cache.py
"""
Memoisation of root fan-out results and importable names.

Entries are keyed by a scope (the owning module or SDK) and published as
immutable tuples once a computation finishes. The cache never decides when it
is stale: whoever owns the project model calls invalidate() after changing it.
Two threads racing on one missing key may both compute and publish; the
results are identical, so the last write wins harmlessly.
"""
import threading
from typing import Dict, List, Optional, Tuple

import structlog

from modresolve.core.entities import Entity, FileSystemEntity
from modresolve.core.qualified_name import QualifiedName
from modresolve.exceptions import InvariantError

log = structlog.get_logger(__name__)

# ("module", name) or ("sdk", name)
Scope = Tuple[str, str]


def module_scope(name: str) -> Scope:
    return ("module", name)


def sdk_scope(name: str) -> Scope:
    return ("sdk", name)


class ResolutionCache:
    def __init__(self):
        self._lock = threading.Lock()
        self._modules: Dict[Scope, Dict[QualifiedName, Tuple[Entity, ...]]] = {}
        self._paths: Dict[Scope, Dict[FileSystemEntity, Optional[QualifiedName]]] = {}
        self.hits = 0
        self.misses = 0

    def get(self, scope: Scope, qualified_name: QualifiedName) -> Optional[List[Entity]]:
        with self._lock:
            entry = self._modules.get(scope, {}).get(qualified_name)
            if entry is None:
                self.misses += 1
                return None
            self.hits += 1
        return list(entry)

    def put(self, scope: Scope, qualified_name: QualifiedName, results: Tuple[Entity, ...]) -> None:
        if not isinstance(results, tuple):
            raise InvariantError(f"cache entries must be published as tuples, got {type(results).__name__}")
        with self._lock:
            self._modules.setdefault(scope, {})[qualified_name] = results
        log.debug("resolution_cached", scope=scope, name=str(qualified_name), count=len(results))

    def get_path(self, scope: Scope, target: FileSystemEntity) -> Tuple[bool, Optional[QualifiedName]]:
        # (found, value); value may legitimately be None (file not importable).
        with self._lock:
            paths = self._paths.get(scope, {})
            if target in paths:
                return True, paths[target]
        return False, None

    def put_path(self, scope: Scope, target: FileSystemEntity, qualified_name: Optional[QualifiedName]) -> None:
        with self._lock:
            self._paths.setdefault(scope, {})[target] = qualified_name

    def invalidate(self, scope: Optional[Scope] = None) -> None:
        with self._lock:
            if scope is None:
                self._modules.clear()
                self._paths.clear()
            else:
                self._modules.pop(scope, None)
                self._paths.pop(scope, None)
        log.info("resolution_cache_invalidated", scope=scope or "all")

    def __len__(self) -> int:
        with self._lock:
            return sum(len(entries) for entries in self._modules.values())


def scope_for(model, foothold) -> Optional[Scope]:
    """Cache scope of a foothold: its module, else the SDK owning it, else None (uncached)."""
    module = model.module_for(foothold)
    if module is not None:
        return module_scope(module.name)
    sdk = model.sdk_for(foothold)
    if sdk is not None:
        return sdk_scope(sdk.name)
    return None
