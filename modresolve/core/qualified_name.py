# modresolve/core/qualified_name.py
"""
Dotted module names as immutable component sequences.

A component may be ``None``: that marks a name which came from broken source
(``from a..b import c`` style text) and which therefore can never resolve.
Resolution code treats such a name as an immediate miss, never as an error.
"""
from typing import Iterable, Iterator, Optional, Tuple


class QualifiedName:
    """An ordered, immutable sequence of identifier components (``a.b.c``)."""

    __slots__ = ("_components",)

    def __init__(self, components: Iterable[Optional[str]] = ()):
        self._components: Tuple[Optional[str], ...] = tuple(components)

    @classmethod
    def from_components(cls, *components: Optional[str]) -> "QualifiedName":
        return cls(components)

    @classmethod
    def from_dotted(cls, dotted: str) -> "QualifiedName":
        # "" is the empty name; an empty segment ("a..b") becomes a None component.
        if not dotted:
            return cls()
        return cls(part or None for part in dotted.split("."))

    @property
    def components(self) -> Tuple[Optional[str], ...]:
        return self._components

    @property
    def first(self) -> Optional[str]:
        return self._components[0] if self._components else None

    @property
    def last(self) -> Optional[str]:
        return self._components[-1] if self._components else None

    @property
    def is_valid(self) -> bool:
        return all(component is not None for component in self._components)

    def append(self, name: Optional[str]) -> "QualifiedName":
        return QualifiedName(self._components + (name,))

    def remove_last(self) -> "QualifiedName":
        return QualifiedName(self._components[:-1])

    def starts_with(self, prefix: "QualifiedName") -> bool:
        return self._components[: len(prefix)] == prefix.components

    def join(self, separator: str = ".") -> str:
        # None components render as empty segments, mirroring from_dotted.
        return separator.join(component or "" for component in self._components)

    def __len__(self) -> int:
        return len(self._components)

    def __iter__(self) -> Iterator[Optional[str]]:
        return iter(self._components)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, QualifiedName):
            return NotImplemented
        return self._components == other._components

    def __hash__(self) -> int:
        return hash(self._components)

    def __str__(self) -> str:
        return self.join(".")

    def __repr__(self) -> str:
        return f"QualifiedName({self.join('.')!r})"
