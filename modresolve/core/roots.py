# modresolve/core/roots.py
"""
Ordered enumeration of the search roots for a resolution foothold.

For a foothold inside a configured module the order is:

1. every content root, each followed by its declared source folders;
2. the project base directory, once, when the module declares no source
   folders at all (and the base directory is not already a content root);
3. the module's dependency entries in declared order, each contributing its
   source roots then its binary ("classes") roots.

A foothold outside every module only sees the SDK/library entries whose roots
contain it. Roots that no longer exist are skipped.
"""
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Set, Union

import structlog

from modresolve.core.entities import Entity, FileSystemEntity
from modresolve.core.project import Module, OrderEntry, ProjectModel, Sdk, entry_roots

log = structlog.get_logger(__name__)


class RootKind(Enum):
    CONTENT = "content"
    SOURCE = "source"
    PROJECT_BASE = "project_base"
    SDK = "sdk"
    LIBRARY = "library"


@dataclass(frozen=True)
class Root:
    location: Path
    kind: RootKind
    owner: Optional[str] = None

    def entity(self, model: ProjectModel) -> Optional[FileSystemEntity]:
        return model.fs.entity_for(self.location)

    def __str__(self) -> str:
        owner = f" ({self.owner})" if self.owner else ""
        return f"{self.location} [{self.kind.value}]{owner}"


# returns False to stop the enumeration.
RootVisitor = Callable[[Root], bool]


class RootEnumerator:
    def __init__(self, model: ProjectModel):
        self.model = model

    def visit(self, foothold: Union[Entity, Path], visitor: RootVisitor) -> None:
        module = self.model.module_for(foothold)
        if module is not None:
            self._visit_module_roots(module, visitor)
        else:
            self._visit_sdk_roots(foothold, visitor)

    def roots(self, foothold: Union[Entity, Path]) -> List[Root]:
        collected: List[Root] = []

        def collect(root: Root) -> bool:
            collected.append(root)
            return True

        self.visit(foothold, collect)
        return collected

    def _offer(self, root: Root, visitor: RootVisitor) -> bool:
        if not root.location.exists():
            log.debug("root_skipped_invalid", root=str(root.location), kind=root.kind.value)
            return True
        return visitor(root)

    def _visit_module_roots(self, module: Module, visitor: RootVisitor) -> None:
        source_entries_missing = True
        content_roots: Set[Path] = set()
        for content_root in module.content_roots:
            if not self._offer(Root(content_root, RootKind.CONTENT, module.name), visitor):
                return
            content_roots.add(content_root)
            for folder in module.source_folders_of(content_root):
                source_entries_missing = False
                if not self._offer(Root(folder, RootKind.SOURCE, module.name), visitor):
                    return
        if source_entries_missing:
            base_dir = self.model.base_dir
            if base_dir not in content_roots:
                if not self._offer(Root(base_dir, RootKind.PROJECT_BASE, module.name), visitor):
                    return
        for entry in module.dependencies:
            if not self._visit_order_entry(entry, visitor):
                return

    def _visit_sdk_roots(self, foothold: Union[Entity, Path], visitor: RootVisitor) -> None:
        for entry in self.model.order_entries_for(foothold):
            if not self._visit_order_entry(entry, visitor):
                break

    def _visit_order_entry(self, entry: OrderEntry, visitor: RootVisitor) -> bool:
        kind = RootKind.SDK if isinstance(entry, Sdk) else RootKind.LIBRARY
        for location in entry_roots(entry):
            if not self._offer(Root(location, kind, entry.name), visitor):
                return False
        return True
