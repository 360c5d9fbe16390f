# modresolve/config/loader.py
"""
Loads and merges the project description from TOML files.

The user file is read first, then the first project file found in the
working directory (or the file given explicitly). Paths are made absolute
against the directory of the file that declared them before merging, so a
user-level SDK and a project-level module can both use relative paths.
"""
import toml
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog

from modresolve.exceptions import ConfigError

from .settings import (
    ImportStyle,
    LibrarySettings,
    ModuleSettings,
    ResolverConfig,
    SdkSettings,
)

log = structlog.get_logger(__name__)

PROJECT_CONFIG_FILENAMES = [".modresolve.toml", "modresolve.toml", "pyproject.toml"]
USER_CONFIG_DIR = Path.home() / ".config" / "modresolve"
USER_CONFIG_FILE = USER_CONFIG_DIR / "config.toml"

# tables whose entries are merged key-wise instead of being replaced.
MERGED_TABLES = ("sdks", "libraries")

SCALAR_KEYS = {
    "language_level": "language_level",
    "follow_reexports": "follow_reexports",
    "use_interpreter_sdk": "use_interpreter_sdk",
    "exclude_patterns": "exclude_patterns",
    "hidden": "hidden",
    "no_ignore": "no_ignore",
}


def _absolute(value: Any, base: Path) -> Path:
    if not isinstance(value, str):
        raise ConfigError(f"expected a path string, got {value!r}")
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = base / path
    return path.resolve()


def _absolute_list(values: Any, base: Path, key: str) -> List[Path]:
    if values is None:
        return []
    if not isinstance(values, list):
        raise ConfigError(f"'{key}' must be a list of paths, got {values!r}")
    return [_absolute(v, base) for v in values]


def _normalize_paths(data: Dict[str, Any], base: Path) -> Dict[str, Any]:
    # rewrites every path-valued key of one file's data against that file's directory.
    if "base_dir" in data:
        data["base_dir"] = str(_absolute(data["base_dir"], base))
    for table in MERGED_TABLES:
        entries = data.get(table, {})
        if not isinstance(entries, dict):
            raise ConfigError(f"'{table}' must be a table, got {type(entries).__name__}")
        for name, entry in entries.items():
            if not isinstance(entry, dict):
                raise ConfigError(f"'{table}.{name}' must be a table")
            for key in ("sources", "classes"):
                if key in entry:
                    entry[key] = [str(p) for p in _absolute_list(entry[key], base, key)]
            if entry.get("skeletons"):
                entry["skeletons"] = str(_absolute(entry["skeletons"], base))
    modules = data.get("modules", [])
    if not isinstance(modules, list):
        raise ConfigError("'modules' must be an array of tables")
    for module in modules:
        if not isinstance(module, dict) or "name" not in module:
            raise ConfigError(f"every module needs a 'name', got {module!r}")
        for key in ("content_roots", "source_roots"):
            if key in module:
                module[key] = [str(p) for p in _absolute_list(module[key], base, key)]
    return data


def _load_toml_file_data(file_path: Path) -> Dict[str, Any]:
    if not file_path.is_file(): return {}
    log.debug("loading_toml_config_file", path=str(file_path))
    try:
        data = toml.load(file_path)
    except (toml.TomlDecodeError, OSError) as e:
        log.error("config_file_load_error", path=str(file_path), error=str(e))
        return {}
    if file_path.name == "pyproject.toml":
        data = data.get("tool", {}).get("modresolve", {})
    return _normalize_paths(data, file_path.parent) if data else {}


def load_and_merge_configs(explicit_path: Optional[Path] = None, cwd: Optional[Path] = None) -> Dict[str, Any]:
    cwd = cwd or Path.cwd()
    merged: Dict[str, Any] = {}
    if USER_CONFIG_FILE.is_file():
        log.info("loading_user_global_config", path=str(USER_CONFIG_FILE))
        merged.update(_load_toml_file_data(USER_CONFIG_FILE))

    if explicit_path is not None:
        if not explicit_path.is_file():
            raise ConfigError(f"config file not found: {explicit_path}")
        candidates = [explicit_path]
    else:
        candidates = [cwd / name for name in PROJECT_CONFIG_FILENAMES]

    for candidate in candidates:
        if not candidate.is_file():
            continue
        project_settings = _load_toml_file_data(candidate)
        if not project_settings:
            continue
        log.info("loading_project_local_config", path=str(candidate))
        project_settings.setdefault("base_dir", str(candidate.parent.resolve()))
        for table in MERGED_TABLES:
            combined = dict(merged.get(table, {}))
            combined.update(project_settings.pop(table, {}))
            if combined:
                merged[table] = combined
        merged.update(project_settings)
        break

    if not merged: log.debug("no_configuration_files_loaded")
    merged.setdefault("base_dir", str(cwd.resolve()))
    return merged


def build_config(data: Dict[str, Any]) -> ResolverConfig:
    """Turns merged TOML data into a ResolverConfig."""
    kwargs: Dict[str, Any] = {}
    if "base_dir" in data:
        kwargs["base_dir"] = Path(data["base_dir"])
    for toml_key, attr in SCALAR_KEYS.items():
        if toml_key in data:
            kwargs[attr] = data[toml_key]
    if "language_level" in kwargs:
        kwargs["language_level"] = str(kwargs["language_level"])
    kwargs["import_style"] = ImportStyle.from_string(data.get("import_style"))

    try:
        kwargs["sdks"] = [
            SdkSettings(
                name=name,
                version=str(entry.get("version", kwargs.get("language_level", "3"))),
                sources=[Path(p) for p in entry.get("sources", [])],
                classes=[Path(p) for p in entry.get("classes", [])],
                skeletons=Path(entry["skeletons"]) if entry.get("skeletons") else None,
            )
            for name, entry in data.get("sdks", {}).items()
        ]
        kwargs["libraries"] = [
            LibrarySettings(
                name=name,
                sources=[Path(p) for p in entry.get("sources", [])],
                classes=[Path(p) for p in entry.get("classes", [])],
            )
            for name, entry in data.get("libraries", {}).items()
        ]
        kwargs["modules"] = [
            ModuleSettings(
                name=entry["name"],
                content_roots=[Path(p) for p in entry.get("content_roots", [])],
                source_roots=[Path(p) for p in entry.get("source_roots", [])],
                dependencies=list(entry.get("dependencies", [])),
                sdk=entry.get("sdk"),
                language_level=str(entry["language_level"]) if "language_level" in entry else None,
            )
            for entry in data.get("modules", [])
        ]
    except (KeyError, TypeError, AttributeError) as e:
        raise ConfigError(f"invalid project description: {e!r}")

    config = ResolverConfig(**kwargs)
    log.debug(
        "resolver_config_built",
        modules=len(config.modules),
        sdks=len(config.sdks),
        libraries=len(config.libraries),
        import_style=config.import_style.value,
    )
    return config


def load_config(explicit_path: Optional[Path] = None, cwd: Optional[Path] = None) -> ResolverConfig:
    return build_config(load_and_merge_configs(explicit_path, cwd))
