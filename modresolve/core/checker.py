# modresolve/core/checker.py
import logging as stdlib_logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional

import structlog
from rich.console import Console as RichConsole
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn

from modresolve.config.settings import ResolverConfig
from modresolve.core.discovery import discover_source_files
from modresolve.core.entities import Entity, FileEntity
from modresolve.core.import_resolver import ImportResolver, ImportRole, role_in_import
from modresolve.core.imports import ImportStatement, extract_imports

log = structlog.get_logger(__name__)


@dataclass
class ImportCheckResult:
    file: FileEntity
    line: int
    text: str  # the import as written, e.g. "from .core import X"
    role: ImportRole
    target: Optional[Entity] = None

    @property
    def resolved(self) -> bool:
        return self.target is not None


@dataclass
class CheckReport:
    results: List[ImportCheckResult] = field(default_factory=list)
    files_checked: int = 0

    @property
    def unresolved(self) -> List[ImportCheckResult]:
        return [r for r in self.results if not r.resolved]

    @property
    def resolved_count(self) -> int:
        return sum(1 for r in self.results if r.resolved)


class ImportChecker:
    # resolves every import of every discovered file and reports what did not resolve.
    def __init__(self, config: ResolverConfig, imports: ImportResolver):
        self.config = config
        self.imports = imports
        self.fs = imports.fs
        self.log = structlog.get_logger(f"{__name__}.{self.__class__.__name__}")

    def check_statement(self, statement: ImportStatement) -> List[ImportCheckResult]:
        results: List[ImportCheckResult] = []
        if statement.is_star:
            results.append(ImportCheckResult(
                statement.file,
                statement.line,
                f"from {statement.source_text} import *",
                role_in_import(statement),
                self.imports.resolve_from_import_source(statement),
            ))
        for element in statement.elements:
            results.append(ImportCheckResult(
                element.file,
                element.line,
                str(element),
                role_in_import(element),
                self.imports.resolve_import_element(element),
            ))
        return results

    def check_file(self, file: FileEntity) -> List[ImportCheckResult]:
        results: List[ImportCheckResult] = []
        for statement in extract_imports(self.fs, file):
            results.extend(self.check_statement(statement))
        unresolved = sum(1 for r in results if not r.resolved)
        if unresolved:
            self.log.debug("file_has_unresolved_imports", file=str(file), unresolved=unresolved)
        return results

    def run(self, seed_paths: Iterable[Path] = ()) -> CheckReport:
        app_log_level = stdlib_logging.getLogger("modresolve").getEffectiveLevel()
        progress_disabled = app_log_level > stdlib_logging.INFO or not sys.stderr.isatty()
        stderr_console = RichConsole(file=sys.stderr)
        report = CheckReport()

        with Progress(
            SpinnerColumn(), TextColumn("[bold blue]{task.description}"), BarColumn(),
            transient=True, disable=progress_disabled, console=stderr_console
        ) as progress:
            discover_task = progress.add_task("discovering source files...", total=None)
            paths = list(discover_source_files(self.config, seed_paths))
            progress.update(discover_task, completed=True, description=f"discovered {len(paths)} source files.")

            if paths:
                check_task = progress.add_task("resolving imports...", total=len(paths))
                for path in paths:
                    file = self.fs.file_for(path)
                    if file is not None:
                        report.results.extend(self.check_file(file))
                        report.files_checked += 1
                    progress.update(check_task, advance=1, description=f"resolving {path.name}")

        self.log.info(
            "import_check_finished",
            files=report.files_checked,
            imports=len(report.results),
            unresolved=len(report.unresolved),
        )
        return report
