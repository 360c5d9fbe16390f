# modresolve/cli/interface.py
import functools
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional

import click
from click_option_group import optgroup
import structlog

from modresolve import __version__ as app_version
from modresolve.cli.console_output import print_candidates, print_check_report, print_roots
from modresolve.config.loader import load_config
from modresolve.config.settings import ImportStyle, ResolverConfig
from modresolve.core.cache import ResolutionCache
from modresolve.core.checker import ImportChecker
from modresolve.core.entities import FileEntity
from modresolve.core.foreign import ExtensionModuleResolver, ForeignImportRegistry
from modresolve.core.import_resolver import ImportResolver
from modresolve.core.module_resolver import ModuleResolver
from modresolve.core.project import ProjectModel
from modresolve.core.qualified_name import QualifiedName
from modresolve.exceptions import ModResolveError
from modresolve.logging_setup import configure_logging, level_for_verbosity

log = structlog.get_logger(__name__)


@dataclass
class Runtime:
    # everything a command needs, built once per invocation.
    config: ResolverConfig
    model: ProjectModel
    cache: ResolutionCache
    modules: ModuleResolver
    imports: ImportResolver


def build_runtime(config: ResolverConfig) -> Runtime:
    model = ProjectModel.from_config(config)
    cache = ResolutionCache()
    modules = ModuleResolver.from_config(config, model, cache)
    foreign = ForeignImportRegistry([ExtensionModuleResolver(model.fs)])
    return Runtime(config, model, cache, modules, ImportResolver(modules, foreign))


def handle_cli_errors(func: Callable) -> Callable:
    # application errors exit 1 with a message; anything else is a bug.
    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        try:
            return func(*args, **kwargs)
        except click.exceptions.Exit as e: raise e
        except ModResolveError as e:
            log.error("handled_application_error_in_cli", error_type=type(e).__name__, message=str(e))
            click.secho(f"Error: {e}", fg="red", err=True)
            sys.exit(1)
        except click.ClickException as e:
            log.error("click_exception_in_cli", error_type=type(e).__name__, message=str(e))
            e.show(); sys.exit(e.exit_code)
        except Exception as e:
            log.critical("unexpected_critical_error_in_cli", message=str(e), exc_info=True)
            click.secho(f"Unexpected critical error: {e}. Please report this.", fg="red", err=True)
            sys.exit(1)
    return wrapper


def _runtime(ctx: click.Context) -> Runtime:
    state = ctx.find_object(dict)
    if state.get("runtime") is None:
        config = load_config(state.get("config_path"))
        for key, value in state.get("overrides", {}).items():
            setattr(config, key, value)
        state["runtime"] = build_runtime(config)
    return state["runtime"]


def _source_file(runtime: Runtime, path: Path) -> FileEntity:
    file = runtime.model.fs.file_for(path)
    if file is None:
        raise click.BadParameter(f"not a readable file: {path}")
    return file


@click.group(context_settings=dict(help_option_names=["-h", "--help"]))
@optgroup.group("Project Description", help="Where the modules, SDKs and libraries are declared.")
@optgroup.option("-c", "--config", "config_path", type=click.Path(exists=True, dir_okay=False, path_type=Path), default=None, help="Project TOML file. Default: .modresolve.toml, modresolve.toml or pyproject.toml in the working directory.")
@optgroup.option("--base-dir", "base_dir", type=click.Path(exists=True, file_okay=False, path_type=Path, resolve_path=True), default=None, help="Project base directory. Default: the directory of the project file, else the working directory.")
@optgroup.option("--import-style", "import_style_str", type=click.Choice(["auto", "absolute", "legacy"]), default=None, help="How plain imports are looked up. Default: auto (per file language level).")
@optgroup.option("--no-reexports", "no_reexports", is_flag=True, default=False, help="Do not follow names re-exported by package __init__ imports.")
@optgroup.group("Application Behavior", help="Logging and diagnostics.")
@optgroup.option("--verbose", "-v", "verbosity_level", count=True, help="Verbosity: -v info, -vv debug.")
@optgroup.option("--force-json-logs", "force_json_logs_cli", is_flag=True, default=False, help="Force JSON logs.")
@click.version_option(version=app_version, package_name="modresolve", prog_name="modresolve", help="Show version and exit.")
@click.pass_context
def main_cli_group(ctx: click.Context, **cli_params: Any):
    """modresolve: resolve Python imports to the files, packages and names
    they denote, across source roots, libraries and SDK skeletons."""

    log_level = level_for_verbosity(cli_params.get("verbosity_level", 0))
    configure_logging(log_level_str=log_level, force_json_logs=cli_params.get("force_json_logs_cli", False))

    log.debug("cli_command_invoked", params=cli_params)

    overrides = {}
    if cli_params.get("base_dir") is not None:
        overrides["base_dir"] = cli_params["base_dir"]
    if cli_params.get("import_style_str"):
        overrides["import_style"] = ImportStyle.from_string(cli_params["import_style_str"])
    if cli_params.get("no_reexports"):
        overrides["follow_reexports"] = False

    state = ctx.ensure_object(dict)
    state["config_path"] = cli_params.get("config_path")
    state["overrides"] = overrides


@main_cli_group.command("resolve")
@click.argument("name")
@click.option("-f", "--from", "from_file", required=True, type=click.Path(exists=True, dir_okay=False, path_type=Path, resolve_path=True), help="File the import is written in.")
@click.option("-l", "--level", "relative_level", type=click.IntRange(min=0), default=0, help="Relative level: 1 for 'from .', 2 for 'from ..'.")
@click.option("--absolute/--legacy", "absolute", default=None, help="Force absolute or legacy implicit-relative lookup. Default: decided by the file.")
@click.pass_context
@handle_cli_errors
def resolve_command(ctx: click.Context, name: str, from_file: Path, relative_level: int, absolute: Optional[bool]):
    """Resolve the module NAME as imported from a file."""
    runtime = _runtime(ctx)
    source = _source_file(runtime, from_file)
    if absolute is None:
        absolute = runtime.modules.is_absolute_import_enabled(source)
    qname = QualifiedName.from_dotted(name)
    candidates = runtime.modules.resolve_module(qname, source, absolute, relative_level)
    chosen = runtime.imports.choose_candidate(candidates)
    log.info("resolve_command_finished", name=name, candidates=len(candidates), absolute=absolute)
    print_candidates(name, candidates, chosen, runtime.model.base_dir)
    if not candidates:
        ctx.exit(1)


@main_cli_group.command("check")
@click.argument("paths", nargs=-1, type=click.Path(exists=True, path_type=Path))
@optgroup.group("Filtering Options", help="Control which files are checked.")
@optgroup.option("-e", "--exclude", "exclude_patterns", multiple=True, help="Glob patterns for files/directories to exclude.")
@optgroup.option("--no-ignore", "no_ignore", is_flag=True, default=False, help="Disable .gitignore file processing.")
@optgroup.option("--hidden", "hidden", is_flag=True, default=False, help="Include hidden files and directories.")
@click.option("--strict", is_flag=True, default=False, help="Exit with status 1 when any import is unresolved.")
@click.pass_context
@handle_cli_errors
def check_command(ctx: click.Context, paths, exclude_patterns, no_ignore: bool, hidden: bool, strict: bool):
    """Resolve every import in PATHS (default: the project base) and report the unresolved ones."""
    runtime = _runtime(ctx)
    config = runtime.config
    config.exclude_patterns = list(config.exclude_patterns) + list(exclude_patterns)
    config.no_ignore = config.no_ignore or no_ignore
    config.hidden = config.hidden or hidden

    report = ImportChecker(config, runtime.imports).run(paths)
    print_check_report(report, runtime.model.base_dir)
    log.info("resolution_cache_stats", entries=len(runtime.cache), hits=runtime.cache.hits, misses=runtime.cache.misses)
    if strict and report.unresolved:
        ctx.exit(1)


@main_cli_group.command("whereis")
@click.argument("target", type=click.Path(exists=True, path_type=Path, resolve_path=True))
@click.option("-f", "--from", "from_file", type=click.Path(exists=True, dir_okay=False, path_type=Path, resolve_path=True), default=None, help="Foothold whose roots are searched. Default: TARGET itself.")
@click.pass_context
@handle_cli_errors
def whereis_command(ctx: click.Context, target: Path, from_file: Optional[Path]):
    """Print the shortest qualified name TARGET can be imported under."""
    runtime = _runtime(ctx)
    target_entity = runtime.model.fs.entity_for(target)
    foothold = runtime.model.fs.entity_for(from_file) if from_file else target_entity
    name = runtime.modules.find_shortest_importable_name(foothold, target_entity) if target_entity else None
    if name is None:
        click.secho(f"{target} is not importable from any root.", fg="yellow", err=True)
        ctx.exit(1)
    click.echo(name if name else "<root>")


@main_cli_group.command("roots")
@click.argument("foothold", type=click.Path(exists=True, path_type=Path, resolve_path=True))
@click.pass_context
@handle_cli_errors
def roots_command(ctx: click.Context, foothold: Path):
    """List the search roots, in order, for imports written in FOOTHOLD."""
    runtime = _runtime(ctx)
    roots = runtime.modules.roots.roots(foothold)
    print_roots(foothold, roots)
