# modresolve/core/foreign.py
"""
The extension point for imports the native resolver cannot see.

Resolvers are injected as an ordered registry and consulted only after native
resolution failed. The first non-None answer wins; a resolver that raises is
logged and skipped so one broken resolver never breaks the others.
"""
from abc import ABC, abstractmethod
from importlib.machinery import EXTENSION_SUFFIXES
from typing import Any, Iterator, List, Optional, Sequence

import structlog

from modresolve.core.entities import DirectoryEntity, Entity, FileEntity
from modresolve.core.filesystem import FileSystem

log = structlog.get_logger(__name__)


class ForeignImportResolver(ABC):
    @abstractmethod
    def resolve_import_reference(
        self, import_element: Any, import_text: str, import_from: Optional[Entity]
    ) -> Optional[Entity]:
        """Resolves `import_text` (the dotted imported name) or returns None.

        `import_from` is what the from-module of the import resolved to, when
        it resolved at all.
        """


class ExtensionModuleResolver(ForeignImportResolver):
    """Finds compiled extension modules (``_speedups.cpython-312-x86_64-linux-gnu.so``, ``.pyd``)."""

    def __init__(self, fs: FileSystem, suffixes: Sequence[str] = tuple(EXTENSION_SUFFIXES)):
        self.fs = fs
        # longest first so ".cpython-312-x86_64-linux-gnu.so" is tried before ".so"
        self.suffixes = sorted(suffixes, key=len, reverse=True)

    def resolve_import_reference(self, import_element, import_text, import_from):
        if isinstance(import_from, FileEntity) and import_from.is_package_marker:
            import_from = import_from.parent
        if not isinstance(import_from, DirectoryEntity):
            return None
        name = import_text.split(".")[0]
        for suffix in self.suffixes:
            found = self.fs.find_file(import_from, name + suffix)
            if found is not None:
                return found
        return None


class ForeignImportRegistry:
    def __init__(self, resolvers: Sequence[ForeignImportResolver] = ()):
        self._resolvers: List[ForeignImportResolver] = list(resolvers)

    def register(self, resolver: ForeignImportResolver) -> None:
        self._resolvers.append(resolver)

    def __iter__(self) -> Iterator[ForeignImportResolver]:
        return iter(self._resolvers)

    def __len__(self) -> int:
        return len(self._resolvers)

    def resolve(self, import_element: Any, import_text: str, import_from: Optional[Entity]) -> Optional[Entity]:
        for resolver in self._resolvers:
            try:
                result = resolver.resolve_import_reference(import_element, import_text, import_from)
            except Exception:
                log.warning(
                    "foreign_import_resolver_failed",
                    resolver=type(resolver).__name__,
                    import_text=import_text,
                    exc_info=True,
                )
                continue
            if result is not None:
                log.debug("foreign_import_resolved", resolver=type(resolver).__name__, import_text=import_text)
                return result
        return None
