# modresolve/core/discovery.py
"""
Finds the Python source files to check.

Seed paths are files or directories; directories are walked with hidden
entries pruned, .gitignore rules honoured (every .gitignore from the file's
directory up to the filesystem root) and the configured exclude patterns
applied.
"""
import os
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Set

import pathspec
import structlog

from modresolve.config.settings import ResolverConfig
from modresolve.core.entities import SOURCE_EXTENSION
from modresolve.exceptions import DiscoveryError

log = structlog.get_logger(__name__)


def load_gitignore_patterns_from_file(gitignore_file_path: Path) -> Optional[pathspec.PathSpec]:
    # loads and compiles .gitignore patterns from a given file.
    if not gitignore_file_path.is_file():
        return None
    try:
        with gitignore_file_path.open("r", encoding="utf-8", errors="ignore") as f_obj:
            return pathspec.PathSpec.from_lines(pathspec.patterns.GitWildMatchPattern, f_obj)
    except (OSError, ValueError) as e:
        log.warning("failed_to_parse_gitignore_file", path=str(gitignore_file_path), error=str(e))
    return None


def compile_glob_patterns_to_spec(glob_patterns: List[str]) -> Optional[pathspec.PathSpec]:
    if not glob_patterns:
        return None
    try:
        return pathspec.PathSpec.from_lines(pathspec.patterns.GitWildMatchPattern, glob_patterns)
    except (TypeError, ValueError) as e:
        raise DiscoveryError(f"error compiling glob patterns {glob_patterns}: {e}")


def is_path_hidden(path_relative_to_root: Path, config: ResolverConfig) -> bool:
    if config.hidden:
        return False
    return any(part.startswith(".") and part not in (".", "..") for part in path_relative_to_root.parts)


def is_path_gitignored(
    absolute_path_item: Path,
    config: ResolverConfig,
    gitignore_specs_cache: Dict[Path, Optional[pathspec.PathSpec]],
) -> bool:
    # checks every .gitignore from the item's directory upwards.
    if config.no_ignore:
        return False

    current_dir_to_check = absolute_path_item.parent
    while True:
        if current_dir_to_check not in gitignore_specs_cache:
            gitignore_specs_cache[current_dir_to_check] = load_gitignore_patterns_from_file(
                current_dir_to_check / ".gitignore"
            )
        spec = gitignore_specs_cache[current_dir_to_check]
        if spec and spec.match_file(absolute_path_item.relative_to(current_dir_to_check).as_posix()):
            return True
        if current_dir_to_check.parent == current_dir_to_check:
            break
        current_dir_to_check = current_dir_to_check.parent
    return False


def _relative_to_base(path: Path, config: ResolverConfig) -> Path:
    try:
        return path.relative_to(config.base_dir)
    except ValueError:
        # a seed outside the project base is matched on its own name.
        return Path(path.name)


def resolve_seed_paths(raw_paths: Iterable[Path]) -> List[Path]:
    resolved: List[Path] = []
    for raw_path in raw_paths:
        try:
            abs_path = Path(raw_path).resolve(strict=True)
        except FileNotFoundError:
            log.warning("seed_path_not_found_skipped", path_str=str(raw_path))
            continue
        if abs_path not in resolved:
            resolved.append(abs_path)
    log.info("initial_seed_paths_resolved", count=len(resolved))
    return resolved


def discover_source_files(config: ResolverConfig, seed_paths: Iterable[Path] = ()) -> Iterator[Path]:
    """Yields the .py files under the seed paths (the project base by default), sorted per directory."""
    seeds = resolve_seed_paths(seed_paths or [config.base_dir])
    exclude_spec = compile_glob_patterns_to_spec(config.exclude_patterns)
    gitignore_cache: Dict[Path, Optional[pathspec.PathSpec]] = {}
    yielded_files: Set[Path] = set()

    def accepted(file_path: Path) -> bool:
        rel_path = _relative_to_base(file_path, config)
        if file_path.suffix != SOURCE_EXTENSION or file_path in yielded_files:
            return False
        if is_path_hidden(rel_path, config) or is_path_gitignored(file_path, config, gitignore_cache):
            return False
        return not (exclude_spec and exclude_spec.match_file(rel_path.as_posix()))

    for seed_path in seeds:
        # files given as arguments are checked even when hidden by their directory's rules.
        if seed_path.is_file():
            if seed_path.suffix == SOURCE_EXTENSION and seed_path not in yielded_files:
                yielded_files.add(seed_path)
                yield seed_path
            continue

        for root, dirs, files in os.walk(str(seed_path), topdown=True):
            dirs[:] = sorted(
                d for d in dirs
                if not is_path_hidden(_relative_to_base(Path(root, d), config), config)
                and not is_path_gitignored(Path(root, d), config, gitignore_cache)
            )
            for file_name in sorted(files):
                file_path = Path(root, file_name)
                if accepted(file_path):
                    yielded_files.add(file_path)
                    yield file_path
