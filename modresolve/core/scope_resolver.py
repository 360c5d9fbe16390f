# modresolve/core/scope_resolver.py
"""
Single-step name lookup: one qualified-name component against one parent.

Every higher-level resolution is a chain of resolve_child() calls. A package
``__init__.py`` parent is treated both as a file and as its directory, and the
directory is searched first: a real submodule ``pkg/sub.py`` beats anything
``pkg/__init__.py`` binds under the name ``sub``.
"""
from pathlib import Path, PurePosixPath
from typing import Callable, List, Optional

import structlog

from modresolve.core.entities import (
    SOURCE_EXTENSION,
    DirectoryEntity,
    DirectoryGroup,
    Entity,
    FileEntity,
    FileSystemEntity,
    NameEntity,
)
from modresolve.core.project import ProjectModel
from modresolve.core.session import ResolutionSession, member_marker
from modresolve.core.symbols import ModuleMember, SymbolTable

log = structlog.get_logger(__name__)

# (file binding the name, its import binding, session) -> the entity it refers to
BindingFollower = Callable[[FileEntity, ModuleMember, ResolutionSession], Optional[Entity]]
# (foothold, target) -> shortest importable components, used for the skeleton overlay
ImportablePathFinder = Callable[[FileSystemEntity, FileSystemEntity], Optional[List[str]]]


class ScopeResolver:
    def __init__(
        self,
        model: ProjectModel,
        symbols: SymbolTable,
        importable_path: ImportablePathFinder,
        follow_binding: Optional[BindingFollower] = None,
    ):
        self.model = model
        self.fs = model.fs
        self.symbols = symbols
        self.importable_path = importable_path
        self.follow_binding = follow_binding

    def resolve_child(
        self,
        parent: Optional[Entity],
        name: Optional[str],
        containing_file: Optional[FileEntity],
        root: Optional[FileSystemEntity] = None,
        file_only: bool = False,
        session: Optional[ResolutionSession] = None,
    ) -> Optional[Entity]:
        """Finds `name` under `parent`, or None.

        Args:
            parent: what to look in; None gives None.
            name: the component to look for.
            containing_file: the file the lookup originates from; its own
                package marker is never searched for names.
            root: the root the caller started descending from, if any; it
                locates the skeleton overlay for SDK directories.
            file_only: only module files and packages count as hits.
            session: cycle markers of the current call chain.
        """
        if parent is None or name is None:
            return None
        session = session or ResolutionSession()

        if isinstance(parent, FileEntity):
            if parent.is_package_marker:
                result = self.resolve_in_directory(name, containing_file, parent.parent, root, file_only, session)
                if result is not None:
                    return result
            return self.element_named(parent, name, session)
        if isinstance(parent, DirectoryEntity):
            return self.resolve_in_directory(name, containing_file, parent, root, file_only, session)
        if isinstance(parent, DirectoryGroup):
            # file_only is not forwarded to group members.
            for directory in parent.directories:
                result = self.resolve_in_directory(name, containing_file, directory, root, False, session)
                if result is not None:
                    return result
            return None
        # a NameEntity has no children we can see.
        return None

    def resolve_in_directory(
        self,
        name: str,
        containing_file: Optional[FileEntity],
        directory: DirectoryEntity,
        root: Optional[FileSystemEntity],
        file_only: bool,
        session: ResolutionSession,
    ) -> Optional[Entity]:
        module = self.find_module_in_dir(directory, name)
        if module is not None:
            return module

        if self.model.is_in_sdk(directory):
            skeleton_dir = self.find_skeleton_dir(directory, root)
            if skeleton_dir is not None:
                skeleton_file = self.find_module_in_dir(skeleton_dir, name)
                if skeleton_file is not None:
                    log.debug("resolved_from_skeleton", name=name, file=str(skeleton_file))
                    return skeleton_file

        subdir = self.fs.find_subdirectory(directory, name)
        if subdir is not None and self.fs.has_marker(subdir):
            return subdir
        if file_only:
            return None

        # not a module, not a package: maybe a name bound in the directory's __init__.py
        init_file = self.fs.marker_file(directory)
        if init_file is None or init_file == containing_file:
            return None
        return self.element_named(init_file, name, session)

    def find_module_in_dir(self, directory: DirectoryEntity, name: str) -> Optional[FileEntity]:
        found = self.fs.find_file(directory, name + SOURCE_EXTENSION)
        # exact case only: Foo.py never answers for foo.
        if found is not None and found.stem == name:
            return found
        return None

    def find_skeleton_dir(self, directory: DirectoryEntity, root: Optional[FileSystemEntity]) -> Optional[DirectoryEntity]:
        relative: Optional[List[str]]
        if root is not None:
            relative = self.fs.relative_parts(directory, root)
        else:
            relative = self.importable_path(directory, directory)
        skeletons_root = self.model.skeletons_root_for(directory)
        if skeletons_root is None or relative is None:
            return None
        skeletons = self.fs.entity_for(Path(skeletons_root))
        if not isinstance(skeletons, DirectoryEntity):
            return None
        return self.fs.find_relative(skeletons, PurePosixPath(*relative))

    def element_named(self, file: FileEntity, name: str, session: ResolutionSession) -> Optional[Entity]:
        """What `name` means inside module `file`: a NameEntity, or the target of an import binding."""
        member = self.symbols.member(file, name)
        if member is None:
            return None
        binding = NameEntity(file, member.name, member.line, member.kind)
        if member.kind != "import" or self.follow_binding is None:
            return binding
        with session.guard(member_marker(str(file), name)) as entered:
            if not entered:
                return binding
            target = self.follow_binding(file, member, session)
        return target if target is not None else binding
