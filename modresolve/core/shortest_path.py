# modresolve/core/shortest_path.py
"""
The inverse query: under which qualified name can a given file be imported?

Every root of the foothold is tried; among the roots containing the file the
name with the fewest components wins, earlier roots winning ties. A package's
``__init__.py`` is importable under its directory's name.
"""
import os
from typing import List, Optional, Union

import structlog

from modresolve.core.cache import ResolutionCache, scope_for
from modresolve.core.entities import Entity, FileEntity, FileSystemEntity
from modresolve.core.project import ProjectModel
from modresolve.core.qualified_name import QualifiedName
from modresolve.core.roots import Root, RootEnumerator

log = structlog.get_logger(__name__)


class PathChoosingVisitor:
    """Keeps the shortest relative path of the target among visited roots."""

    def __init__(self, model: ProjectModel, target: FileSystemEntity):
        self.model = model
        if isinstance(target, FileEntity) and target.is_package_marker:
            target = target.parent
        self.target = target
        self.result: Optional[List[str]] = None

    def visit_root(self, root: Root) -> bool:
        root_entity = root.entity(self.model)
        if root_entity is not None:
            parts = self.model.fs.relative_parts(self.target, root_entity)
            if parts is not None and (self.result is None or len(parts) < len(self.result)):
                if parts:
                    parts[-1] = os.path.splitext(parts[-1])[0]
                self.result = parts
        # the root itself is the target: nothing can be shorter.
        return self.result is None or len(self.result) > 0


class ShortestPathFinder:
    def __init__(self, model: ProjectModel, roots: RootEnumerator, cache: Optional[ResolutionCache] = None):
        self.model = model
        self.roots = roots
        self.cache = cache

    def find_shortest_importable_qname(
        self, foothold: Union[Entity, FileSystemEntity], target: FileSystemEntity
    ) -> Optional[QualifiedName]:
        scope = scope_for(self.model, foothold) if self.cache is not None else None
        if scope is not None:
            found, cached = self.cache.get_path(scope, target)
            if found:
                return cached
        chooser = PathChoosingVisitor(self.model, target)
        self.roots.visit(foothold, chooser.visit_root)
        result = QualifiedName(chooser.result) if chooser.result is not None else None
        log.debug("shortest_importable_name", target=str(target), name=str(result) if result is not None else None)
        if scope is not None:
            self.cache.put_path(scope, target, result)
        return result

    def find_shortest_importable_name(
        self, foothold: Union[Entity, FileSystemEntity], target: FileSystemEntity
    ) -> Optional[str]:
        qname = self.find_shortest_importable_qname(foothold, target)
        return str(qname) if qname is not None else None

    def importable_components(self, foothold: FileSystemEntity, target: FileSystemEntity) -> Optional[List[str]]:
        qname = self.find_shortest_importable_qname(foothold, target)
        return [c for c in qname.components if c is not None] if qname is not None else None
