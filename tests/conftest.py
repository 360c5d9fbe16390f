import zipfile
from pathlib import Path
from typing import Dict

import pytest

from modresolve.core.cache import ResolutionCache
from modresolve.core.filesystem import FileSystem
from modresolve.core.module_resolver import ModuleResolver
from modresolve.core.project import ProjectModel


def build_tree(root: Path, files: Dict[str, str]) -> Path:
    """Writes {relative path: content} under root; a path ending in '/' is an empty directory."""
    root.mkdir(parents=True, exist_ok=True)
    for rel, content in files.items():
        target = root / rel
        if rel.endswith("/"):
            target.mkdir(parents=True, exist_ok=True)
            continue
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content)
    return root.resolve()


def build_zip(archive: Path, files: Dict[str, str]) -> Path:
    archive.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(archive, "w") as zf:
        for rel, content in files.items():
            zf.writestr(rel, content)
    return archive.resolve()


@pytest.fixture
def fs() -> FileSystem:
    return FileSystem()


@pytest.fixture
def make_resolver(fs):
    """Builds a ModuleResolver over a model the test has configured."""
    def _make(model: ProjectModel, **kwargs) -> ModuleResolver:
        kwargs.setdefault("cache", ResolutionCache())
        return ModuleResolver(model, **kwargs)
    return _make


@pytest.fixture
def pkg_project(tmp_path: Path, fs):
    """root/pkg/__init__.py (non-empty) + root/pkg/sub.py, imported from root/main.py."""
    root = build_tree(tmp_path / "root", {
        "main.py": "import pkg.sub\n",
        "pkg/__init__.py": "VERSION = '1.0'\nsub = 'shadowed by the submodule'\n",
        "pkg/sub.py": "def helper():\n    return 1\n",
    })
    model = ProjectModel(root, fs=fs)
    model.add_module("main", [root])
    return model


@pytest.fixture
def write_tree():
    return build_tree


@pytest.fixture
def write_zip():
    return build_zip
