# modresolve/core/entities.py
"""
Addressable things an import can resolve to.

Entity is a closed set of four frozen dataclasses:

- FileEntity: a file on disk or inside a zip archive
- DirectoryEntity: a directory on disk or inside a zip archive
- DirectoryGroup: several directories sharing one logical package name
- NameEntity: a name bound at the top level of a module file

Entries inside archives carry the archive path in ``archive`` and a
PurePosixPath relative to the archive root in ``path``.
"""
from dataclasses import dataclass
from pathlib import Path, PurePath
from typing import Optional, Tuple, Union

INIT_FILE_NAME = "__init__.py"
SOURCE_EXTENSION = ".py"
ARCHIVE_SUFFIXES = (".zip", ".egg", ".whl")


def _display(path: PurePath, archive: Optional[Path]) -> str:
    if archive is None:
        return str(path)
    inner = path.as_posix()
    return f"{archive}!/{'' if inner == '.' else inner}"


@dataclass(frozen=True)
class FileEntity:
    path: PurePath
    archive: Optional[Path] = None

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def stem(self) -> str:
        return self.path.stem

    @property
    def is_package_marker(self) -> bool:
        return self.path.name == INIT_FILE_NAME

    @property
    def is_source(self) -> bool:
        return self.path.suffix == SOURCE_EXTENSION

    @property
    def parent(self) -> "DirectoryEntity":
        return DirectoryEntity(self.path.parent, self.archive)

    def __str__(self) -> str:
        return _display(self.path, self.archive)


@dataclass(frozen=True)
class DirectoryEntity:
    path: PurePath
    archive: Optional[Path] = None

    @property
    def is_archive_root(self) -> bool:
        return self.archive is not None and not self.path.parts

    @property
    def name(self) -> str:
        if self.is_archive_root:
            return self.archive.name
        return self.path.name

    @property
    def parent(self) -> Optional["DirectoryEntity"]:
        if self.is_archive_root:
            # an archive sits in an ordinary directory on disk.
            return DirectoryEntity(self.archive.parent)
        if self.archive is None and self.path.parent == self.path:
            return None
        return DirectoryEntity(self.path.parent, self.archive)

    def __str__(self) -> str:
        return _display(self.path, self.archive)


@dataclass(frozen=True)
class DirectoryGroup:
    """Directories from different roots that make up one logical package."""
    directories: Tuple[DirectoryEntity, ...]

    @property
    def name(self) -> str:
        return self.directories[0].name if self.directories else ""

    def __str__(self) -> str:
        return "[" + ", ".join(str(d) for d in self.directories) + "]"


@dataclass(frozen=True)
class NameEntity:
    """A name bound at module level: a def, a class, an assignment or an import."""
    file: FileEntity
    name: str
    line: int
    kind: str

    def __str__(self) -> str:
        return f"{self.file}:{self.line}:{self.name}"


Entity = Union[FileEntity, DirectoryEntity, DirectoryGroup, NameEntity]
FileSystemEntity = Union[FileEntity, DirectoryEntity]
