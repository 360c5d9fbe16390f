# modresolve/core/import_resolver.py
"""
Resolution of import statements and the names they import.

This is the caller side of ModuleResolver: it picks the import context of a
statement, resolves it, disambiguates several candidates, and falls back to
the foreign import registry when native resolution finds nothing.
"""
from enum import Enum
from typing import List, Optional, Union

import structlog

from modresolve.core.entities import DirectoryEntity, DirectoryGroup, Entity, FileEntity
from modresolve.core.foreign import ForeignImportRegistry
from modresolve.core.imports import ImportElement, ImportKind, ImportStatement
from modresolve.core.module_resolver import ModuleResolver
from modresolve.core.qualified_name import QualifiedName
from modresolve.core.session import ResolutionSession

log = structlog.get_logger(__name__)


class ImportRole(Enum):
    NONE = "none"  # not inside an import
    AS_MODULE = "as_module"  # refers to a module: `import foo`, `from foo ...`, `from . import foo`
    AS_NAME = "as_name"  # refers to a name imported from a module: `from bar import foo`


def role_in_import(reference: object) -> ImportRole:
    if isinstance(reference, ImportStatement):
        # the source of `from foo import ...`
        return ImportRole.AS_MODULE
    if isinstance(reference, ImportElement):
        statement = reference.statement
        if statement.kind == ImportKind.IMPORT:
            return ImportRole.AS_MODULE
        if statement.source is None and statement.relative_level > 0:
            return ImportRole.AS_MODULE
        return ImportRole.AS_NAME
    return ImportRole.NONE


class ImportResolver:
    def __init__(self, modules: ModuleResolver, foreign: Optional[ForeignImportRegistry] = None):
        self.modules = modules
        self.fs = modules.fs
        self.foreign = foreign if foreign is not None else ForeignImportRegistry()

    def _marker_size(self, candidate: Entity) -> int:
        if isinstance(candidate, DirectoryGroup):
            candidate = candidate.directories[0] if candidate.directories else None
        if isinstance(candidate, DirectoryEntity):
            candidate = self.fs.marker_file(candidate)
        if isinstance(candidate, FileEntity):
            return self.fs.size(candidate)
        return 0

    def resolve_import_element(
        self, element: ImportElement, qualified_name: Optional[QualifiedName] = None
    ) -> Optional[Entity]:
        """The single entity `element` resolves to; a non-empty package marker wins over an empty one."""
        return self.choose_candidate(self.multi_resolve_import_element(element, qualified_name))

    def choose_candidate(self, candidates: List[Entity]) -> Optional[Entity]:
        if len(candidates) > 1:
            for candidate in candidates:
                if self._marker_size(candidate) > 0:
                    return candidate
        return candidates[0] if candidates else None

    def multi_resolve_import_element(
        self, element: ImportElement, qualified_name: Optional[QualifiedName] = None
    ) -> List[Entity]:
        qualified_name = qualified_name if qualified_name is not None else element.imported_name
        if qualified_name is None or len(qualified_name) == 0:
            return []
        file = element.file
        statement = element.statement
        absolute = self.modules.is_absolute_import_enabled(file)
        session = ResolutionSession()
        source = statement.source

        if statement.kind == ImportKind.FROM:
            level = statement.relative_level
            if level > 0 and source is None:
                # `from ... import foo`
                directory = self.modules.step_back_from(file, level)
                found = self.modules.resolve_child(directory, qualified_name.first, file, session=session)
                return [found] if found is not None else []
            if source is not None:
                # `from bar import foo` or `from ...bar import foo`
                for candidate in self.modules.resolve_module(source, file, absolute, level, session):
                    found = self.modules.resolve_child(candidate, qualified_name.first, file, session=session)
                    if found is not None:
                        return [found]
        else:
            return self.modules.resolve_module(qualified_name, file, absolute, 0, session)

        # native resolution failed
        if source is not None:
            import_from = self.modules.resolve_module(source, file, False, 0, session)
            result = self.foreign.resolve(element, qualified_name.join("."), import_from[0] if import_from else None)
            if result is not None:
                return [result]
            log.debug("import_element_unresolved", element=str(element), file=str(file), line=element.line)
        return []

    def resolve_from_import_source(self, statement: ImportStatement) -> Optional[Entity]:
        if statement.source is None:
            return None
        candidates = self._resolve_statement_source(statement, statement.source)
        return candidates[0] if candidates else None

    def _resolve_statement_source(self, statement: ImportStatement, qualified_name: QualifiedName) -> List[Entity]:
        absolute = self.modules.is_absolute_import_enabled(statement.file)
        return self.modules.resolve_module(qualified_name, statement.file, absolute, statement.relative_level)

    def resolve_import_reference(
        self, reference: Union[ImportElement, ImportStatement, None], qualified_name: Optional[QualifiedName]
    ) -> List[Entity]:
        """Resolves a (possibly partial) dotted reference written inside an import.

        For `import a.b.c` the reference `a.b` is resolved against the
        element; for `from a.b import c` the reference `a.b` (or a prefix of
        it) is resolved as the statement's source.
        """
        if reference is None or qualified_name is None:
            return []
        if not self.fs.is_valid(reference.file):
            return []
        if isinstance(reference, ImportElement):
            return self.multi_resolve_import_element(reference, qualified_name)
        if isinstance(reference, ImportStatement):
            return self._resolve_statement_source(reference, qualified_name)
        return []

    def role_in_import(self, reference: object) -> ImportRole:
        return role_in_import(reference)
