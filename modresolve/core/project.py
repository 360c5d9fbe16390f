# modresolve/core/project.py
"""
Project model: which module or SDK owns a file, and where its roots are.

The resolver core only reads this model. Building and mutating it is the job
of whoever embeds the resolver (the CLI builds it from configuration); after
changing it, that owner must also invalidate its ResolutionCache.
"""
import sys
import sysconfig
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Union

import structlog

from modresolve.config.settings import (
    DEFAULT_LANGUAGE_LEVEL,
    DEFAULT_MODULE_NAME,
    INTERPRETER_SDK_NAME,
    ResolverConfig,
)
from modresolve.core.entities import Entity, DirectoryGroup, NameEntity
from modresolve.core.filesystem import FileSystem
from modresolve.exceptions import ProjectModelError

log = structlog.get_logger(__name__)


def _dedupe(paths: Iterable[Path]) -> List[Path]:
    # insertion order preserved.
    return list(dict.fromkeys(paths))


def _is_under(path: Path, root: Path) -> bool:
    return path == root or root in path.parents


@dataclass
class Sdk:
    name: str
    version: str = DEFAULT_LANGUAGE_LEVEL
    sources: List[Path] = field(default_factory=list)
    classes: List[Path] = field(default_factory=list)
    skeletons: Optional[Path] = None

    def source_roots(self) -> List[Path]:
        return list(self.sources)

    def class_roots(self) -> List[Path]:
        # the skeleton overlay is part of the sdk's binary roots.
        roots = list(self.classes)
        if self.skeletons is not None:
            roots.append(self.skeletons)
        return roots


@dataclass
class Library:
    name: str
    sources: List[Path] = field(default_factory=list)
    classes: List[Path] = field(default_factory=list)

    def source_roots(self) -> List[Path]:
        return list(self.sources)

    def class_roots(self) -> List[Path]:
        return list(self.classes)


OrderEntry = Union[Sdk, Library]


def entry_roots(entry: OrderEntry) -> List[Path]:
    """Sources then classes roots of an order entry, de-duplicated."""
    return _dedupe(entry.source_roots() + entry.class_roots())


@dataclass
class Module:
    name: str
    content_roots: List[Path] = field(default_factory=list)
    source_roots: List[Path] = field(default_factory=list)
    dependencies: List[OrderEntry] = field(default_factory=list)
    sdk: Optional[Sdk] = None
    language_level: Optional[str] = None

    def source_folders_of(self, content_root: Path) -> List[Path]:
        return [s for s in self.source_roots if _is_under(s, content_root)]


def detect_interpreter_sdk() -> Sdk:
    """An Sdk describing the interpreter running this process."""
    paths = sysconfig.get_paths()
    classes = _dedupe(
        Path(paths[key]).resolve()
        for key in ("stdlib", "platstdlib", "purelib", "platlib")
        if paths.get(key)
    )
    version = f"{sys.version_info.major}.{sys.version_info.minor}"
    log.debug("interpreter_sdk_detected", version=version, roots=[str(c) for c in classes])
    return Sdk(name=INTERPRETER_SDK_NAME, version=version, classes=classes)


class ProjectModel:
    def __init__(
        self,
        base_dir: Path,
        language_level: str = DEFAULT_LANGUAGE_LEVEL,
        fs: Optional[FileSystem] = None,
    ):
        self.base_dir = Path(base_dir).resolve()
        self.language_level = language_level
        self.fs = fs or FileSystem()
        self.modules: List[Module] = []
        self.sdks: Dict[str, Sdk] = {}
        self.libraries: Dict[str, Library] = {}
        # registration order; the file classification index walks it.
        self._order_entries: List[OrderEntry] = []

    # --- building ---

    def add_sdk(self, sdk: Sdk) -> Sdk:
        if sdk.name in self.sdks or sdk.name in self.libraries:
            raise ProjectModelError(f"duplicate sdk/library name: {sdk.name}")
        sdk.sources = [Path(p).resolve() for p in sdk.sources]
        sdk.classes = [Path(p).resolve() for p in sdk.classes]
        if sdk.skeletons is not None:
            sdk.skeletons = Path(sdk.skeletons).resolve()
        self.sdks[sdk.name] = sdk
        self._order_entries.append(sdk)
        return sdk

    def add_library(self, library: Library) -> Library:
        if library.name in self.sdks or library.name in self.libraries:
            raise ProjectModelError(f"duplicate sdk/library name: {library.name}")
        library.sources = [Path(p).resolve() for p in library.sources]
        library.classes = [Path(p).resolve() for p in library.classes]
        self.libraries[library.name] = library
        self._order_entries.append(library)
        return library

    def add_module(
        self,
        name: str,
        content_roots: Sequence[Path],
        source_roots: Sequence[Path] = (),
        dependencies: Sequence[str] = (),
        sdk: Optional[str] = None,
        language_level: Optional[str] = None,
    ) -> Module:
        if any(m.name == name for m in self.modules):
            raise ProjectModelError(f"duplicate module name: {name}")
        resolved_deps: List[OrderEntry] = []
        for dep_name in dependencies:
            entry = self.sdks.get(dep_name) or self.libraries.get(dep_name)
            if entry is None:
                raise ProjectModelError(f"module '{name}' depends on unknown sdk/library '{dep_name}'")
            resolved_deps.append(entry)
        module_sdk: Optional[Sdk] = None
        if sdk is not None:
            module_sdk = self.sdks.get(sdk)
            if module_sdk is None:
                raise ProjectModelError(f"module '{name}' uses unknown sdk '{sdk}'")
            if module_sdk not in resolved_deps:
                resolved_deps.insert(0, module_sdk)
        module = Module(
            name=name,
            content_roots=[Path(p).resolve() for p in content_roots],
            source_roots=[Path(p).resolve() for p in source_roots],
            dependencies=resolved_deps,
            sdk=module_sdk,
            language_level=language_level,
        )
        self.modules.append(module)
        log.debug(
            "module_registered",
            module=name,
            content_roots=len(module.content_roots),
            source_roots=len(module.source_roots),
            dependencies=[d.name for d in resolved_deps],
        )
        return module

    @classmethod
    def from_config(cls, config: ResolverConfig, fs: Optional[FileSystem] = None) -> "ProjectModel":
        model = cls(config.base_dir, config.language_level, fs)
        for sdk_settings in config.sdks:
            model.add_sdk(Sdk(
                name=sdk_settings.name,
                version=sdk_settings.version,
                sources=list(sdk_settings.sources),
                classes=list(sdk_settings.classes),
                skeletons=sdk_settings.skeletons,
            ))
        if not model.sdks and config.use_interpreter_sdk:
            model.add_sdk(detect_interpreter_sdk())
        for lib_settings in config.libraries:
            model.add_library(Library(
                name=lib_settings.name,
                sources=list(lib_settings.sources),
                classes=list(lib_settings.classes),
            ))
        if config.modules:
            for m in config.modules:
                model.add_module(m.name, m.content_roots, m.source_roots, m.dependencies, m.sdk, m.language_level)
        else:
            # one implicit module spanning the base directory, depending on everything declared.
            default_sdk = next(iter(model.sdks), None)
            model.add_module(
                DEFAULT_MODULE_NAME,
                [model.base_dir],
                dependencies=[entry.name for entry in model._order_entries],
                sdk=default_sdk,
            )
        log.info(
            "project_model_built",
            base_dir=str(model.base_dir),
            modules=[m.name for m in model.modules],
            sdks=list(model.sdks),
            libraries=list(model.libraries),
        )
        return model

    # --- file classification ---

    @staticmethod
    def _disk_path(target: Union[Entity, Path]) -> Optional[Path]:
        if isinstance(target, Path):
            return target
        if isinstance(target, NameEntity):
            target = target.file
        if isinstance(target, DirectoryGroup):
            if not target.directories:
                return None
            target = target.directories[0]
        if target.archive is not None:
            return target.archive
        return Path(target.path)

    def module_for(self, target: Union[Entity, Path]) -> Optional[Module]:
        """The module whose content root most closely contains target."""
        path = self._disk_path(target)
        if path is None:
            return None
        best: Optional[Module] = None
        best_depth = -1
        for module in self.modules:
            for root in module.content_roots:
                if _is_under(path, root) and len(root.parts) > best_depth:
                    best, best_depth = module, len(root.parts)
        return best

    def order_entries_for(self, target: Union[Entity, Path]) -> List[OrderEntry]:
        """SDK and library entries having a root that contains target."""
        path = self._disk_path(target)
        if path is None:
            return []
        return [
            entry for entry in self._order_entries
            if any(_is_under(path, root) for root in entry_roots(entry))
        ]

    def sdk_for(self, target: Union[Entity, Path]) -> Optional[Sdk]:
        for entry in self.order_entries_for(target):
            if isinstance(entry, Sdk):
                return entry
        return None

    def is_in_sdk(self, target: Union[Entity, Path]) -> bool:
        return self.sdk_for(target) is not None

    def skeletons_root_for(self, target: Union[Entity, Path]) -> Optional[Path]:
        sdk = self.sdk_for(target)
        return sdk.skeletons if sdk is not None else None

    def language_level_for(self, target: Union[Entity, Path]) -> str:
        module = self.module_for(target)
        if module is not None:
            if module.language_level:
                return module.language_level
            if module.sdk is not None:
                return module.sdk.version
        sdk = self.sdk_for(target)
        if sdk is not None:
            return sdk.version
        return self.language_level
