# modresolve/core/filesystem.py
"""
The only code that touches the disk.

Lookups go through directory listings and compare names exactly, so the
model behaves case-sensitively on every host, including case-folding
filesystems where ``Path("foo.py").exists()`` would also find ``Foo.py``.

Zip archives (``.zip``, ``.egg``, ``.whl``) are browsed as directories. Each
archive's member list is indexed once and re-indexed when its mtime changes.
"""
import os
import threading
import zipfile
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Dict, List, Optional, Tuple

import structlog

from modresolve.core.entities import (
    ARCHIVE_SUFFIXES,
    INIT_FILE_NAME,
    DirectoryEntity,
    FileEntity,
    FileSystemEntity,
)
from modresolve.util import strip_utf8_bom

log = structlog.get_logger(__name__)


@dataclass
class _ArchiveIndex:
    mtime_ns: int
    # directory -> {child name: is_dir}
    listings: Dict[PurePosixPath, Dict[str, bool]] = field(default_factory=dict)
    sizes: Dict[PurePosixPath, int] = field(default_factory=dict)


def is_archive(path: Path) -> bool:
    return path.suffix.lower() in ARCHIVE_SUFFIXES and path.is_file() and zipfile.is_zipfile(path)


class FileSystem:
    def __init__(self):
        self._archives: Dict[Path, _ArchiveIndex] = {}
        self._lock = threading.Lock()

    # --- entity construction ---

    def entity_for(self, path: Path) -> Optional[FileSystemEntity]:
        """Map a disk path to an entity; a zip archive maps to its root directory."""
        path = Path(path).expanduser().resolve()
        if path.is_dir():
            return DirectoryEntity(path)
        if path.is_file():
            if is_archive(path):
                return DirectoryEntity(PurePosixPath(), path)
            return FileEntity(path)
        return None

    def file_for(self, path: Path) -> Optional[FileEntity]:
        entity = self.entity_for(path)
        return entity if isinstance(entity, FileEntity) else None

    # --- listings ---

    def _archive_index(self, archive: Path) -> Optional[_ArchiveIndex]:
        try:
            mtime_ns = archive.stat().st_mtime_ns
        except OSError:
            return None
        with self._lock:
            index = self._archives.get(archive)
            if index is not None and index.mtime_ns == mtime_ns:
                return index
        index = _ArchiveIndex(mtime_ns=mtime_ns)
        try:
            with zipfile.ZipFile(archive) as zf:
                for info in zf.infolist():
                    member = PurePosixPath(info.filename)
                    parts = member.parts
                    for depth in range(len(parts)):
                        parent = PurePosixPath(*parts[:depth])
                        child_is_dir = depth < len(parts) - 1 or info.is_dir()
                        children = index.listings.setdefault(parent, {})
                        children[parts[depth]] = children.get(parts[depth], False) or child_is_dir
                    if not info.is_dir():
                        index.sizes[member] = info.file_size
        except (OSError, zipfile.BadZipFile) as e:
            log.warning("archive_index_failed", archive=str(archive), error=str(e))
            return None
        log.debug("archive_indexed", archive=str(archive), directories=len(index.listings))
        with self._lock:
            self._archives[archive] = index
        return index

    def listing(self, directory: DirectoryEntity) -> Dict[str, bool]:
        """Child name -> is_dir for a directory; empty when it cannot be read."""
        if directory.archive is not None:
            index = self._archive_index(directory.archive)
            if index is None:
                return {}
            return index.listings.get(PurePosixPath(directory.path), {})
        children: Dict[str, bool] = {}
        try:
            with os.scandir(directory.path) as it:
                for entry in it:
                    try:
                        children[entry.name] = entry.is_dir()
                    except OSError:
                        children[entry.name] = False
        except OSError:
            return {}
        return children

    def find_file(self, directory: DirectoryEntity, name: str) -> Optional[FileEntity]:
        is_dir = self.listing(directory).get(name)
        if is_dir is None or is_dir:
            return None
        return FileEntity(directory.path / name, directory.archive)

    def find_subdirectory(self, directory: DirectoryEntity, name: str) -> Optional[DirectoryEntity]:
        if self.listing(directory).get(name):
            return DirectoryEntity(directory.path / name, directory.archive)
        return None

    def marker_file(self, directory: DirectoryEntity) -> Optional[FileEntity]:
        return self.find_file(directory, INIT_FILE_NAME)

    def has_marker(self, directory: DirectoryEntity) -> bool:
        return self.marker_file(directory) is not None

    def find_relative(self, directory: DirectoryEntity, relative: PurePosixPath) -> Optional[DirectoryEntity]:
        current: Optional[DirectoryEntity] = directory
        for part in relative.parts:
            if current is None:
                return None
            current = self.find_subdirectory(current, part)
        return current

    # --- validity and content ---

    def is_valid(self, entity: FileSystemEntity) -> bool:
        if entity.archive is None:
            path = Path(entity.path)
            return path.is_file() if isinstance(entity, FileEntity) else path.is_dir()
        if isinstance(entity, DirectoryEntity) and entity.is_archive_root:
            return self._archive_index(entity.archive) is not None
        parent = entity.parent
        if parent is None:
            return False
        is_dir = self.listing(parent).get(entity.path.name)
        return is_dir is not None and is_dir == isinstance(entity, DirectoryEntity)

    def size(self, file: FileEntity) -> int:
        if file.archive is not None:
            index = self._archive_index(file.archive)
            return index.sizes.get(PurePosixPath(file.path), 0) if index else 0
        try:
            return Path(file.path).stat().st_size
        except OSError:
            return 0

    def stamp(self, file: FileEntity) -> Tuple[int, int]:
        # (mtime_ns, size), used to key derived per-file caches.
        if file.archive is not None:
            index = self._archive_index(file.archive)
            return (index.mtime_ns if index else 0, self.size(file))
        try:
            st = Path(file.path).stat()
        except OSError:
            return (0, 0)
        return (st.st_mtime_ns, st.st_size)

    def read_bytes(self, file: FileEntity) -> Optional[bytes]:
        # raw source; ast.parse honours a BOM and a PEP 263 coding cookie itself.
        try:
            if file.archive is not None:
                with zipfile.ZipFile(file.archive) as zf:
                    return zf.read(PurePosixPath(file.path).as_posix())
            return Path(file.path).read_bytes()
        except (OSError, KeyError, zipfile.BadZipFile) as e:
            log.warning("failed_to_read_file", file=str(file), error=str(e))
            return None

    def read_text(self, file: FileEntity) -> Optional[str]:
        data = self.read_bytes(file)
        if data is None:
            return None
        return strip_utf8_bom(data).decode("utf-8", errors="replace")

    # --- containment ---

    def relative_parts(self, target: FileSystemEntity, root: FileSystemEntity) -> Optional[List[str]]:
        """Path components of target below root, [] when they are the same, None if outside."""
        if isinstance(root, FileEntity):
            return [] if target == root else None
        if target.archive != root.archive:
            return None
        root_parts = root.path.parts
        target_parts = target.path.parts
        if target_parts[: len(root_parts)] != root_parts:
            return None
        return list(target_parts[len(root_parts):])

    def contains(self, root: FileSystemEntity, target: FileSystemEntity) -> bool:
        return self.relative_parts(target, root) is not None
