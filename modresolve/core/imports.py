# modresolve/core/imports.py
"""
AST-based extraction of import statements from Python source.

Each ``import``/``from ... import`` statement becomes an ImportStatement;
each imported name in it an ImportElement. Imports nested in functions,
classes and conditionals are found too. No code is executed.
"""
import ast
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Union

import structlog

from modresolve.core.entities import FileEntity
from modresolve.core.filesystem import FileSystem
from modresolve.core.qualified_name import QualifiedName

log = structlog.get_logger(__name__)


class ImportKind(Enum):
    IMPORT = "import"  # import a.b [as c]
    FROM = "from"  # from [.]a import b [as c]


@dataclass(frozen=True)
class ImportStatement:
    file: FileEntity
    kind: ImportKind
    line: int
    source: Optional[QualifiedName] = None  # None for `import x` and `from . import x`
    relative_level: int = 0
    is_star: bool = False
    elements: List["ImportElement"] = field(default_factory=list, compare=False, hash=False, repr=False)

    @property
    def source_text(self) -> str:
        return "." * self.relative_level + (str(self.source) if self.source is not None else "")


@dataclass(frozen=True)
class ImportElement:
    """One imported name of an import statement."""
    statement: ImportStatement
    imported_name: QualifiedName
    alias: Optional[str] = None

    @property
    def file(self) -> FileEntity:
        return self.statement.file

    @property
    def line(self) -> int:
        return self.statement.line

    @property
    def text(self) -> str:
        return str(self.imported_name)

    @property
    def visible_name(self) -> str:
        if self.alias:
            return self.alias
        if self.statement.kind == ImportKind.IMPORT:
            return self.imported_name.first or ""
        return self.text

    def __str__(self) -> str:
        if self.statement.kind == ImportKind.IMPORT:
            rendered = f"import {self.text}"
        else:
            rendered = f"from {self.statement.source_text} import {self.text}"
        return rendered + (f" as {self.alias}" if self.alias else "")


class ImportVisitor(ast.NodeVisitor):
    """AST visitor to find all import statements in a Python file."""

    def __init__(self, file: FileEntity):
        self.file = file
        self.statements: List[ImportStatement] = []

    def visit_Import(self, node: ast.Import):
        statement = ImportStatement(self.file, ImportKind.IMPORT, node.lineno)
        for alias in node.names:
            statement.elements.append(ImportElement(statement, QualifiedName.from_dotted(alias.name), alias.asname))
        self.statements.append(statement)
        self.generic_visit(node)

    def visit_ImportFrom(self, node: ast.ImportFrom):
        # node.module is None for "from . import x" style imports
        source = QualifiedName.from_dotted(node.module) if node.module else None
        is_star = len(node.names) == 1 and node.names[0].name == "*"
        statement = ImportStatement(
            self.file, ImportKind.FROM, node.lineno, source=source, relative_level=node.level, is_star=is_star
        )
        if not is_star:
            for alias in node.names:
                statement.elements.append(ImportElement(statement, QualifiedName.from_dotted(alias.name), alias.asname))
        self.statements.append(statement)
        self.generic_visit(node)


def find_imports(code: Union[str, bytes], file: FileEntity) -> List[ImportStatement]:
    """Find all import statements in code; a file that does not parse has none."""
    try:
        tree = ast.parse(code)
    except (SyntaxError, ValueError) as e:
        log.debug("import_parse_failed", file=str(file), error=str(e))
        return []
    visitor = ImportVisitor(file)
    visitor.visit(tree)
    return visitor.statements


def extract_imports(fs: FileSystem, file: FileEntity) -> List[ImportStatement]:
    code = fs.read_bytes(file)
    if code is None:
        return []
    return find_imports(code, file)
