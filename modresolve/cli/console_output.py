"""
Renders resolution results with rich: tables and data on stdout, summaries on stderr.
"""
import sys
from pathlib import Path
from typing import List, Optional

import click
import structlog
from rich.console import Console as RichConsole
from rich.table import Table

from modresolve.core.checker import CheckReport
from modresolve.core.entities import DirectoryEntity, DirectoryGroup, Entity, FileEntity, NameEntity
from modresolve.core.roots import Root

log = structlog.get_logger(__name__)


def entity_kind(entity: Entity) -> str:
    if isinstance(entity, FileEntity):
        return "package" if entity.is_package_marker else "module"
    if isinstance(entity, DirectoryEntity):
        return "package"
    if isinstance(entity, DirectoryGroup):
        return "namespace"
    if isinstance(entity, NameEntity):
        return entity.kind
    return "unknown"


def _display_path(entity_text: str, base_dir: Optional[Path]) -> str:
    if base_dir is None:
        return entity_text
    prefix = str(base_dir) + "/"
    return entity_text[len(prefix):] if entity_text.startswith(prefix) else entity_text


def print_candidates(
    name: str, candidates: List[Entity], chosen: Optional[Entity], base_dir: Optional[Path] = None,
    console: Optional[RichConsole] = None,
):
    console = console or RichConsole(file=sys.stdout)
    if not candidates:
        click.secho(f"'{name}' did not resolve.", fg="yellow", err=True)
        return
    table = Table(title=f"candidates for {name}", title_justify="left")
    table.add_column("", width=1)
    table.add_column("#", justify="right")
    table.add_column("kind")
    table.add_column("entity", overflow="fold")
    for index, candidate in enumerate(candidates, start=1):
        table.add_row(
            "*" if candidate == chosen else "",
            str(index),
            entity_kind(candidate),
            _display_path(str(candidate), base_dir),
        )
    console.print(table)


def print_roots(foothold: Path, roots: List[Root], console: Optional[RichConsole] = None):
    console = console or RichConsole(file=sys.stdout)
    table = Table(title=f"search roots for {foothold}", title_justify="left")
    table.add_column("#", justify="right")
    table.add_column("kind")
    table.add_column("owner")
    table.add_column("location", overflow="fold")
    for index, root in enumerate(roots, start=1):
        table.add_row(str(index), root.kind.value, root.owner or "", str(root.location))
    console.print(table)


def print_check_report(report: CheckReport, base_dir: Optional[Path] = None, console: Optional[RichConsole] = None):
    console = console or RichConsole(file=sys.stdout)
    unresolved = report.unresolved
    if unresolved:
        table = Table(title="unresolved imports", title_justify="left")
        table.add_column("file", overflow="fold")
        table.add_column("line", justify="right")
        table.add_column("import", overflow="fold")
        table.add_column("role")
        for result in unresolved:
            table.add_row(
                _display_path(str(result.file), base_dir), str(result.line), result.text, result.role.value
            )
        console.print(table)
    log.debug("check_report_rendered", unresolved=len(unresolved))
    click.secho("--- check summary ---", fg="cyan", err=True)
    click.echo(
        f"Files checked: {report.files_checked}, imports: {len(report.results)}, "
        f"resolved: {report.resolved_count}, unresolved: {len(unresolved)}",
        err=True,
    )
