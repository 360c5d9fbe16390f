# modresolve/core/module_resolver.py
"""
Resolution of a full qualified module name under an import context.

Three strategies, picked by the context:

* relative (level > 0): step back through the package chain of the importing
  file, then walk the name component by component from there;
* absolute: resolve the name against every enumerated root ("fan-out") and
  collect every distinct hit, memoised per owning module or SDK;
* legacy implicit-relative (absolute imports disabled, level 0): the
  importing file's own directory first, the fan-out only when that misses.

Every call runs under a cycle marker in the ResolutionSession, so a package
``__init__.py`` re-exporting from itself cannot send resolution into a loop.
"""
from typing import List, Optional, Union

import structlog

from modresolve.config.settings import ImportStyle, ResolverConfig, is_python3
from modresolve.core.cache import ResolutionCache, scope_for
from modresolve.core.entities import (
    DirectoryEntity,
    DirectoryGroup,
    Entity,
    FileEntity,
    FileSystemEntity,
)
from modresolve.core.project import ProjectModel
from modresolve.core.qualified_name import QualifiedName
from modresolve.core.roots import Root, RootEnumerator
from modresolve.core.scope_resolver import ScopeResolver
from modresolve.core.session import ResolutionSession, module_marker
from modresolve.core.shortest_path import ShortestPathFinder
from modresolve.core.symbols import ModuleMember, SymbolTable

log = structlog.get_logger(__name__)


class ModuleResolver:
    def __init__(
        self,
        model: ProjectModel,
        cache: Optional[ResolutionCache] = None,
        symbols: Optional[SymbolTable] = None,
        follow_reexports: bool = True,
        import_style: ImportStyle = ImportStyle.AUTO,
    ):
        self.model = model
        self.fs = model.fs
        self.cache = cache
        self.import_style = import_style
        self.symbols = symbols or SymbolTable(model.fs)
        self.roots = RootEnumerator(model)
        self.paths = ShortestPathFinder(model, self.roots, cache)
        self.scopes = ScopeResolver(
            model,
            self.symbols,
            self.paths.importable_components,
            self._follow_binding if follow_reexports else None,
        )

    @classmethod
    def from_config(
        cls, config: ResolverConfig, model: ProjectModel, cache: Optional[ResolutionCache] = None
    ) -> "ModuleResolver":
        return cls(
            model,
            cache=cache,
            follow_reexports=config.follow_reexports,
            import_style=config.import_style,
        )

    # --- import context ---

    def is_absolute_import_enabled(self, file: Optional[FileEntity]) -> bool:
        if self.import_style == ImportStyle.ABSOLUTE:
            return True
        if self.import_style == ImportStyle.LEGACY:
            return False
        if file is None:
            return False
        if is_python3(self.model.language_level_for(file)):
            return True
        return self.symbols.has_future_feature(file, "absolute_import")

    def step_back_from(self, base: Optional[FileEntity], depth: int) -> Optional[DirectoryEntity]:
        """The directory `depth` package levels above `base`.

        Depth 1 is the directory holding `base`, depth 2 the one above it, and
        so on; every directory walked through must be a package. Depth 0 is
        the containing directory, package or not.
        """
        if base is None:
            return None
        if depth == 0:
            return base.parent
        result: Optional[DirectoryEntity] = base.parent
        count = 1
        while result is not None and self.fs.has_marker(result):
            if count >= depth:
                return result
            result = result.parent
            count += 1
        return None

    # --- module resolution ---

    def resolve_module(
        self,
        qualified_name: Optional[QualifiedName],
        source_file: Optional[FileEntity],
        absolute_import_enabled: bool,
        relative_level: int = 0,
        session: Optional[ResolutionSession] = None,
    ) -> List[Entity]:
        """Every candidate entity `qualified_name` may denote when imported from `source_file`."""
        if qualified_name is None or source_file is None or not qualified_name.is_valid:
            return []
        if relative_level == 0 and len(qualified_name) == 0:
            return []
        session = session or ResolutionSession()
        with session.guard(module_marker(qualified_name, relative_level)) as entered:
            if not entered:
                return []
            if relative_level > 0:
                # `from ...module import`
                directory = self.step_back_from(source_file, relative_level)
                module = self.resolve_module_at(directory, source_file, qualified_name, session)
                return [module] if module is not None else []
            if absolute_import_enabled:
                return self.resolve_modules_in_roots(qualified_name, source_file, session)
            module = self.resolve_module_at(source_file.parent, source_file, qualified_name, session)
            if module is not None:
                log.debug("resolved_implicit_relative", name=str(qualified_name), file=str(source_file))
                return [module]
            return self.resolve_modules_in_roots(qualified_name, source_file, session)

    def resolve_module_at(
        self,
        directory: Optional[DirectoryEntity],
        source_file: Optional[FileEntity],
        qualified_name: QualifiedName,
        session: Optional[ResolutionSession] = None,
    ) -> Optional[Entity]:
        if directory is None or source_file is None:
            return None
        if not self.fs.is_valid(directory):
            return None
        session = session or ResolutionSession()
        seeker: Optional[Entity] = directory
        for name in qualified_name:
            if name is None:
                return None
            seeker = self.scopes.resolve_child(seeker, name, source_file, file_only=True, session=session)
        return seeker

    def resolve_modules_in_roots(
        self,
        qualified_name: QualifiedName,
        foothold: Optional[FileSystemEntity],
        session: Optional[ResolutionSession] = None,
    ) -> List[Entity]:
        if foothold is None or not qualified_name.is_valid or not self.fs.is_valid(foothold):
            return []
        session = session or ResolutionSession()
        scope = scope_for(self.model, foothold) if self.cache is not None else None
        if scope is not None:
            cached = self.cache.get(scope, qualified_name)
            if cached is not None:
                return cached

        containing_file = foothold if isinstance(foothold, FileEntity) else None
        results: List[Entity] = []

        def visit_root(root: Root) -> bool:
            found = self.resolve_in_root(root, qualified_name, containing_file, session)
            if found is not None and found not in results:
                results.append(found)
            return True

        self.roots.visit(foothold, visit_root)
        log.debug("resolved_in_roots", name=str(qualified_name), candidates=len(results))
        if scope is not None:
            self.cache.put(scope, qualified_name, tuple(results))
        return results

    def resolve_in_root(
        self,
        root: Root,
        qualified_name: QualifiedName,
        containing_file: Optional[FileEntity],
        session: Optional[ResolutionSession] = None,
    ) -> Optional[Entity]:
        root_entity = root.entity(self.model)
        if root_entity is None:
            return None
        session = session or ResolutionSession()
        last = len(qualified_name) - 1
        current: Optional[Entity] = root_entity
        for index, name in enumerate(qualified_name):
            if name is None:
                return None
            current = self.scopes.resolve_child(
                current, name, containing_file, root=root_entity, file_only=index == last, session=session
            )
            if current is None:
                return None
        return current

    def resolve_module_in_roots(
        self, qualified_name: QualifiedName, foothold: Optional[FileSystemEntity]
    ) -> Optional[Entity]:
        candidates = self.resolve_modules_in_roots(qualified_name, foothold)
        return candidates[0] if candidates else None

    def resolve_in_current_dir(self, foothold: Optional[FileEntity], name: str) -> Optional[Entity]:
        if foothold is None:
            return None
        return self.scopes.resolve_child(foothold.parent, name, foothold, file_only=True)

    def resolve_in_roots(self, foothold: Optional[FileEntity], name: str) -> Optional[Entity]:
        """`name` in the importing file's directory, else the first root hit."""
        found = self.resolve_in_current_dir(foothold, name)
        if found is not None:
            return found
        return self.resolve_module_in_roots(QualifiedName.from_dotted(name), foothold)

    def resolve_namespace(
        self, qualified_name: QualifiedName, foothold: Optional[FileSystemEntity]
    ) -> Optional[DirectoryGroup]:
        """All directory candidates of `qualified_name` joined into one group, in root order."""
        directories = []
        for candidate in self.resolve_modules_in_roots(qualified_name, foothold):
            if isinstance(candidate, DirectoryEntity):
                directories.append(candidate)
            elif isinstance(candidate, DirectoryGroup):
                directories.extend(d for d in candidate.directories if d not in directories)
        if not directories:
            return None
        return DirectoryGroup(tuple(directories))

    # --- single-step lookups ---

    def resolve_child(
        self,
        parent: Optional[Entity],
        name: Optional[str],
        containing_file: Optional[FileEntity],
        root: Optional[FileSystemEntity] = None,
        file_only: bool = False,
        session: Optional[ResolutionSession] = None,
    ) -> Optional[Entity]:
        return self.scopes.resolve_child(parent, name, containing_file, root, file_only, session)

    def _follow_binding(
        self, file: FileEntity, member: ModuleMember, session: ResolutionSession
    ) -> Optional[Entity]:
        # the entity an import binding in `file` refers to.
        absolute = self.is_absolute_import_enabled(file)
        if member.import_name is None:
            # `import a.b as x` binds x to a.b; `import a.b` binds a
            candidates = self.resolve_module(
                QualifiedName.from_dotted(member.import_module or ""), file, absolute, 0, session
            )
            return candidates[0] if candidates else None
        if member.level > 0 and not member.import_module:
            # `from . import x`
            directory = self.step_back_from(file, member.level)
            return self.scopes.resolve_child(directory, member.import_name, file, session=session)
        sources = self.resolve_module(
            QualifiedName.from_dotted(member.import_module or ""), file, absolute, member.level, session
        )
        for source in sources:
            target = self.scopes.resolve_child(source, member.import_name, file, session=session)
            if target is not None:
                return target
        return None

    # --- inverse query ---

    def find_shortest_importable_qname(
        self, foothold: Union[Entity, FileSystemEntity], target: FileSystemEntity
    ) -> Optional[QualifiedName]:
        return self.paths.find_shortest_importable_qname(foothold, target)

    def find_shortest_importable_name(
        self, foothold: Union[Entity, FileSystemEntity], target: FileSystemEntity
    ) -> Optional[str]:
        return self.paths.find_shortest_importable_name(foothold, target)
