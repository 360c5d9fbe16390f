# modresolve/core/session.py
"""
Per-call-chain resolution state.

A ResolutionSession carries the set of markers for resolutions currently in
progress. It is created by the outermost call and handed down explicitly, so
concurrent resolutions on other threads never see each other's markers.
"""
from contextlib import contextmanager
from typing import Iterator, Set

import structlog

from modresolve.core.qualified_name import QualifiedName

log = structlog.get_logger(__name__)


def module_marker(qualified_name: QualifiedName, relative_level: int) -> str:
    return f"{qualified_name.join('.')}#{relative_level}"


def member_marker(file_key: str, name: str) -> str:
    return f"{file_key}::{name}"


class ResolutionSession:
    def __init__(self):
        self._in_progress: Set[str] = set()

    def is_in_progress(self, marker: str) -> bool:
        return marker in self._in_progress

    @property
    def depth(self) -> int:
        return len(self._in_progress)

    @contextmanager
    def guard(self, marker: str) -> Iterator[bool]:
        """Yields False when marker is already in progress; otherwise marks it for the block."""
        if marker in self._in_progress:
            log.debug("resolution_cycle_detected", marker=marker)
            yield False
            return
        self._in_progress.add(marker)
        try:
            yield True
        finally:
            self._in_progress.discard(marker)
