# modresolve/core/symbols.py
"""
Names bound at the top level of a module, read with Python's ast.

This answers "does module M bind name N" for package ``__init__.py`` files and
plain modules. Only syntactic bindings count: defs, classes, assignments,
for/with targets and imports, including those nested in module-level
if/try/with blocks. ``__all__`` is not consulted and star imports bind
nothing here.
"""
import ast
import threading
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Optional, Tuple, Union

import structlog

from modresolve.core.entities import FileEntity
from modresolve.core.filesystem import FileSystem

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ModuleMember:
    """A top-level binding."""
    name: str
    line: int
    kind: str  # "function", "class", "variable" or "import"
    # for imports: the module text ("" for `from . import x`), the imported name
    # (None for `import a.b`) and the relative level.
    import_module: Optional[str] = None
    import_name: Optional[str] = None
    level: int = 0


@dataclass(frozen=True)
class ModuleSymbols:
    members: Dict[str, ModuleMember] = field(default_factory=dict)
    future_features: FrozenSet[str] = frozenset()


class TopLevelBindingVisitor(ast.NodeVisitor):
    """Collects module-level bindings; does not descend into def or class bodies."""

    def __init__(self):
        self.members: Dict[str, ModuleMember] = {}
        self.future_features = set()

    def _bind(self, member: ModuleMember):
        # first binding wins, it is the one a reader jumps to.
        self.members.setdefault(member.name, member)

    def _bind_target(self, target: ast.AST, line: int):
        if isinstance(target, ast.Name):
            self._bind(ModuleMember(target.id, line, "variable"))
        elif isinstance(target, (ast.Tuple, ast.List)):
            for elt in target.elts:
                self._bind_target(elt, line)
        elif isinstance(target, ast.Starred):
            self._bind_target(target.value, line)

    def visit_FunctionDef(self, node: ast.FunctionDef):
        self._bind(ModuleMember(node.name, node.lineno, "function"))

    def visit_AsyncFunctionDef(self, node: ast.AsyncFunctionDef):
        self._bind(ModuleMember(node.name, node.lineno, "function"))

    def visit_ClassDef(self, node: ast.ClassDef):
        self._bind(ModuleMember(node.name, node.lineno, "class"))

    def visit_Assign(self, node: ast.Assign):
        for target in node.targets:
            self._bind_target(target, node.lineno)

    def visit_AnnAssign(self, node: ast.AnnAssign):
        # a bare annotation (`x: int`) binds nothing.
        if node.value is not None:
            self._bind_target(node.target, node.lineno)

    def visit_AugAssign(self, node: ast.AugAssign):
        self._bind_target(node.target, node.lineno)

    def visit_For(self, node: ast.For):
        self._bind_target(node.target, node.lineno)
        self.generic_visit(node)

    visit_AsyncFor = visit_For

    def visit_With(self, node: ast.With):
        for item in node.items:
            if item.optional_vars is not None:
                self._bind_target(item.optional_vars, node.lineno)
        self.generic_visit(node)

    visit_AsyncWith = visit_With

    def visit_Import(self, node: ast.Import):
        for alias in node.names:
            if alias.asname:
                self._bind(ModuleMember(alias.asname, node.lineno, "import", import_module=alias.name))
            else:
                # `import a.b` binds `a`
                top = alias.name.split(".")[0]
                self._bind(ModuleMember(top, node.lineno, "import", import_module=top))

    def visit_ImportFrom(self, node: ast.ImportFrom):
        if node.module == "__future__":
            self.future_features.update(alias.name for alias in node.names)
        for alias in node.names:
            if alias.name == "*":
                continue
            self._bind(ModuleMember(
                alias.asname or alias.name,
                node.lineno,
                "import",
                import_module=node.module or "",
                import_name=alias.name,
                level=node.level,
            ))


def collect_module_symbols(code: Union[str, bytes]) -> ModuleSymbols:
    try:
        tree = ast.parse(code)
    except (SyntaxError, ValueError) as e:
        log.debug("module_symbols_parse_failed", error=str(e))
        return ModuleSymbols()
    visitor = TopLevelBindingVisitor()
    visitor.visit(tree)
    return ModuleSymbols(members=visitor.members, future_features=frozenset(visitor.future_features))


class SymbolTable:
    """Per-file ModuleSymbols, re-read when a file's mtime or size changes."""

    def __init__(self, fs: FileSystem):
        self.fs = fs
        self._lock = threading.Lock()
        self._cache: Dict[FileEntity, Tuple[Tuple[int, int], ModuleSymbols]] = {}

    def symbols(self, file: FileEntity) -> ModuleSymbols:
        if not file.is_source:
            return ModuleSymbols()
        stamp = self.fs.stamp(file)
        with self._lock:
            cached = self._cache.get(file)
            if cached is not None and cached[0] == stamp:
                return cached[1]
        code = self.fs.read_bytes(file)
        symbols = collect_module_symbols(code) if code is not None else ModuleSymbols()
        with self._lock:
            self._cache[file] = (stamp, symbols)
        return symbols

    def member(self, file: FileEntity, name: str) -> Optional[ModuleMember]:
        return self.symbols(file).members.get(name)

    def has_future_feature(self, file: FileEntity, feature: str) -> bool:
        return feature in self.symbols(file).future_features
