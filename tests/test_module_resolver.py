"""Tests for full qualified-name resolution: relative, absolute and legacy lookups."""
from pathlib import Path, PurePosixPath
from unittest.mock import patch

import pytest

from modresolve.config.settings import ImportStyle
from modresolve.core.cache import ResolutionCache, module_scope
from modresolve.core.entities import DirectoryEntity, DirectoryGroup, FileEntity, NameEntity
from modresolve.core.project import Library, ProjectModel
from modresolve.core.qualified_name import QualifiedName
from modresolve.core.session import ResolutionSession, module_marker
from modresolve.exceptions import InvariantError

Q = QualifiedName.from_dotted


class TestEndToEnd:
    def test_absolute_package_submodule(self, pkg_project, make_resolver):
        resolver = make_resolver(pkg_project)
        base = pkg_project.base_dir
        main = FileEntity(base / "main.py")
        assert resolver.resolve_module(Q("pkg.sub"), main, True, 0) == [FileEntity(base / "pkg" / "sub.py")]
        assert resolver.resolve_module(Q("pkg"), main, True, 0) == [DirectoryEntity(base / "pkg")]

    def test_invalid_and_empty_names_resolve_to_nothing(self, pkg_project, make_resolver):
        resolver = make_resolver(pkg_project)
        main = FileEntity(pkg_project.base_dir / "main.py")
        assert resolver.resolve_module(None, main, True, 0) == []
        assert resolver.resolve_module(Q("pkg..sub"), main, True, 0) == []
        assert resolver.resolve_module(QualifiedName.from_components("pkg", None), main, True, 1) == []
        assert resolver.resolve_module(QualifiedName(), main, True, 0) == []
        assert resolver.resolve_module(Q("pkg"), None, True, 0) == []

    def test_missing_component_aborts_the_root(self, pkg_project, make_resolver):
        resolver = make_resolver(pkg_project)
        main = FileEntity(pkg_project.base_dir / "main.py")
        assert resolver.resolve_module(Q("pkg.nothing.sub"), main, True, 0) == []

    def test_last_component_must_be_a_module(self, pkg_project, make_resolver):
        resolver = make_resolver(pkg_project)
        main = FileEntity(pkg_project.base_dir / "main.py")
        # VERSION is a name in pkg/__init__.py, not a module
        assert resolver.resolve_module(Q("pkg.VERSION"), main, True, 0) == []


class TestCacheAndCycles:
    def test_second_resolution_is_a_cache_hit(self, pkg_project, make_resolver):
        cache = ResolutionCache()
        resolver = make_resolver(pkg_project, cache=cache)
        main = FileEntity(pkg_project.base_dir / "main.py")
        first = resolver.resolve_module(Q("pkg.sub"), main, True, 0)
        with patch.object(resolver.roots, "visit", wraps=resolver.roots.visit) as visit_spy:
            second = resolver.resolve_module(Q("pkg.sub"), main, True, 0)
        assert second == first
        visit_spy.assert_not_called()
        assert cache.hits == 1

    def test_failed_lookup_is_cached_as_empty(self, pkg_project, make_resolver):
        cache = ResolutionCache()
        resolver = make_resolver(pkg_project, cache=cache)
        main = FileEntity(pkg_project.base_dir / "main.py")
        assert resolver.resolve_module(Q("missing"), main, True, 0) == []
        assert cache.get(module_scope("main"), Q("missing")) == []

    def test_cache_only_accepts_tuples(self):
        cache = ResolutionCache()
        with pytest.raises(InvariantError, match="published as tuples"):
            cache.put(module_scope("main"), Q("pkg"), [])
        assert cache.get(module_scope("main"), Q("pkg")) is None

    def test_invalidate_forces_enumeration(self, pkg_project, make_resolver):
        cache = ResolutionCache()
        resolver = make_resolver(pkg_project, cache=cache)
        main = FileEntity(pkg_project.base_dir / "main.py")
        resolver.resolve_module(Q("pkg"), main, True, 0)
        cache.invalidate()
        with patch.object(resolver.roots, "visit", wraps=resolver.roots.visit) as visit_spy:
            resolver.resolve_module(Q("pkg"), main, True, 0)
        assert visit_spy.call_count == 1

    def test_name_in_progress_resolves_to_nothing(self, pkg_project, make_resolver):
        resolver = make_resolver(pkg_project)
        main = FileEntity(pkg_project.base_dir / "main.py")
        session = ResolutionSession()
        with session.guard(module_marker(Q("pkg.sub"), 0)):
            assert resolver.resolve_module(Q("pkg.sub"), main, True, 0, session) == []
            assert resolver.resolve_module(Q("pkg"), main, True, 0, session) == [DirectoryEntity(pkg_project.base_dir / "pkg")]
        assert session.depth == 0

    def test_marker_removed_when_resolution_raises(self, pkg_project, make_resolver):
        resolver = make_resolver(pkg_project)
        main = FileEntity(pkg_project.base_dir / "main.py")
        session = ResolutionSession()
        with patch.object(resolver, "resolve_modules_in_roots", side_effect=RuntimeError("boom")):
            with pytest.raises(RuntimeError):
                resolver.resolve_module(Q("pkg"), main, True, 0, session)
        assert not session.is_in_progress(module_marker(Q("pkg"), 0))


class TestRelativeImports:
    @pytest.fixture
    def nested(self, tmp_path: Path, write_tree, fs):
        base = write_tree(tmp_path / "rel", {
            "top/__init__.py": "",
            "top/util.py": "",
            "top/inner/__init__.py": "",
            "top/inner/mod.py": "",
            "top/inner/sibling.py": "",
            "loose/pkg/__init__.py": "",
            "loose/pkg/mod.py": "",
        })
        model = ProjectModel(base, fs=fs)
        model.add_module("rel", [base])
        return model

    def test_step_back_walks_package_chain(self, nested, make_resolver):
        resolver = make_resolver(nested)
        base = nested.base_dir
        mod = FileEntity(base / "top" / "inner" / "mod.py")
        assert resolver.step_back_from(mod, 0) == DirectoryEntity(base / "top" / "inner")
        assert resolver.step_back_from(mod, 1) == DirectoryEntity(base / "top" / "inner")
        assert resolver.step_back_from(mod, 2) == DirectoryEntity(base / "top")
        # the project base has no __init__.py
        assert resolver.step_back_from(mod, 3) is None

    def test_step_back_fails_on_broken_chain(self, nested, make_resolver):
        resolver = make_resolver(nested)
        base = nested.base_dir
        mod = FileEntity(base / "loose" / "pkg" / "mod.py")
        assert resolver.step_back_from(mod, 1) == DirectoryEntity(base / "loose" / "pkg")
        assert resolver.step_back_from(mod, 2) is None
        assert resolver.resolve_module(Q("anything"), mod, True, 2) == []

    def test_relative_resolution(self, nested, make_resolver):
        resolver = make_resolver(nested)
        base = nested.base_dir
        mod = FileEntity(base / "top" / "inner" / "mod.py")
        assert resolver.resolve_module(Q("sibling"), mod, True, 1) == [FileEntity(base / "top" / "inner" / "sibling.py")]
        assert resolver.resolve_module(Q("util"), mod, True, 2) == [FileEntity(base / "top" / "util.py")]
        assert resolver.resolve_module(QualifiedName(), mod, True, 2) == [DirectoryEntity(base / "top")]
        assert resolver.resolve_module(Q("nope"), mod, True, 1) == []

    def test_legacy_prefers_containing_directory(self, tmp_path: Path, write_tree, fs, make_resolver):
        base = write_tree(tmp_path / "legacy", {
            "json.py": "# top-level json\n",
            "app/__init__.py": "",
            "app/json.py": "# shadows the top-level module\n",
            "app/views.py": "import json\n",
        })
        model = ProjectModel(base, fs=fs)
        model.add_module("legacy", [base])
        resolver = make_resolver(model)
        views = FileEntity(base / "app" / "views.py")
        assert resolver.resolve_module(Q("json"), views, False, 0) == [FileEntity(base / "app" / "json.py")]
        assert resolver.resolve_module(Q("json"), views, True, 0) == [FileEntity(base / "json.py")]
        # nothing local: legacy falls back to the roots
        assert resolver.resolve_module(Q("app"), views, False, 0) == [DirectoryEntity(base / "app")]


class TestImportContext:
    def test_language_level_and_future_import(self, tmp_path: Path, write_tree, fs, make_resolver):
        base = write_tree(tmp_path / "levels", {
            "py2/old.py": "import os\n",
            "py2/future.py": "from __future__ import absolute_import\n",
            "py3/new.py": "",
        })
        model = ProjectModel(base, fs=fs)
        model.add_module("py2", [base / "py2"], language_level="2.7")
        model.add_module("py3", [base / "py3"])
        resolver = make_resolver(model)
        assert not resolver.is_absolute_import_enabled(FileEntity(base / "py2" / "old.py"))
        assert resolver.is_absolute_import_enabled(FileEntity(base / "py2" / "future.py"))
        assert resolver.is_absolute_import_enabled(FileEntity(base / "py3" / "new.py"))

    def test_import_style_overrides_language_level(self, pkg_project, make_resolver):
        main = FileEntity(pkg_project.base_dir / "main.py")
        assert not make_resolver(pkg_project, import_style=ImportStyle.LEGACY).is_absolute_import_enabled(main)
        assert make_resolver(pkg_project, import_style=ImportStyle.ABSOLUTE).is_absolute_import_enabled(main)


class TestRootHelpers:
    @pytest.fixture
    def two_roots(self, tmp_path: Path, write_tree, fs):
        base = write_tree(tmp_path / "ns", {
            "first/nspkg/__init__.py": "",
            "first/nspkg/a.py": "",
            "second/nspkg/__init__.py": "",
            "second/nspkg/b.py": "",
            "first/main.py": "",
            "first/local.py": "",
        })
        model = ProjectModel(base, fs=fs)
        model.add_module("ns", [base / "first", base / "second"])
        return model

    def test_fan_out_collects_every_root(self, two_roots, make_resolver):
        resolver = make_resolver(two_roots)
        base = two_roots.base_dir
        main = FileEntity(base / "first" / "main.py")
        assert resolver.resolve_module(Q("nspkg"), main, True, 0) == [
            DirectoryEntity(base / "first" / "nspkg"),
            DirectoryEntity(base / "second" / "nspkg"),
        ]
        assert resolver.resolve_module_in_roots(Q("nspkg"), main) == DirectoryEntity(base / "first" / "nspkg")

    def test_resolve_namespace_groups_directories(self, two_roots, make_resolver):
        resolver = make_resolver(two_roots)
        base = two_roots.base_dir
        main = FileEntity(base / "first" / "main.py")
        group = resolver.resolve_namespace(Q("nspkg"), main)
        assert group == DirectoryGroup((DirectoryEntity(base / "first" / "nspkg"), DirectoryEntity(base / "second" / "nspkg")))
        assert resolver.resolve_child(group, "b", main) == FileEntity(base / "second" / "nspkg" / "b.py")
        assert resolver.resolve_namespace(Q("local"), main) is None

    def test_resolve_in_roots_tries_current_directory_first(self, two_roots, make_resolver):
        resolver = make_resolver(two_roots)
        base = two_roots.base_dir
        main = FileEntity(base / "first" / "main.py")
        assert resolver.resolve_in_current_dir(main, "local") == FileEntity(base / "first" / "local.py")
        assert resolver.resolve_in_roots(main, "local") == FileEntity(base / "first" / "local.py")
        assert resolver.resolve_in_current_dir(main, "nope") is None
        assert resolver.resolve_in_roots(main, "nspkg") == DirectoryEntity(base / "first" / "nspkg")


class TestReexports:
    @pytest.fixture
    def facade(self, tmp_path: Path, write_tree, fs):
        base = write_tree(tmp_path / "facade", {
            "main.py": "from engine import Engine\n",
            "engine/__init__.py": "from .core import Engine\nfrom . import helpers\nimport engine.core as core_mod\n",
            "engine/core.py": "class Engine:\n    pass\n",
            "engine/helpers.py": "",
            "loop_a/__init__.py": "from loop_b import thing\n",
            "loop_b/__init__.py": "from loop_a import thing\n",
        })
        model = ProjectModel(base, fs=fs)
        model.add_module("facade", [base])
        return model

    def test_reexported_class_resolves_to_its_definition(self, facade, make_resolver):
        resolver = make_resolver(facade)
        base = facade.base_dir
        main = FileEntity(base / "main.py")
        engine = resolver.resolve_module(Q("engine"), main, True, 0)[0]
        found = resolver.resolve_child(engine, "Engine", main)
        assert found == NameEntity(FileEntity(base / "engine" / "core.py"), "Engine", 1, "class")

    def test_reexported_module_alias(self, facade, make_resolver):
        resolver = make_resolver(facade)
        base = facade.base_dir
        main = FileEntity(base / "main.py")
        engine = DirectoryEntity(base / "engine")
        assert resolver.resolve_child(engine, "core_mod", main) == FileEntity(base / "engine" / "core.py")

    def test_reexports_can_be_disabled(self, facade, make_resolver):
        resolver = make_resolver(facade, follow_reexports=False)
        base = facade.base_dir
        engine = DirectoryEntity(base / "engine")
        found = resolver.resolve_child(engine, "Engine", FileEntity(base / "main.py"))
        assert found == NameEntity(FileEntity(base / "engine" / "__init__.py"), "Engine", 1, "import")

    def test_reexport_cycle_terminates(self, facade, make_resolver):
        resolver = make_resolver(facade)
        base = facade.base_dir
        found = resolver.resolve_child(DirectoryEntity(base / "loop_a"), "thing", FileEntity(base / "main.py"))
        assert isinstance(found, NameEntity)
        assert found.name == "thing"


class TestLibraryRoots:
    @pytest.fixture
    def vendored(self, tmp_path: Path, write_tree, write_zip, fs):
        base = write_tree(tmp_path / "vendored", {
            "app/main.py": "import vend.mod\n",
            "app/local.py": "",
        })
        archive = write_zip(tmp_path / "libs" / "vendor.zip", {
            "vend/__init__.py": "",
            "vend/mod.py": "def run():\n    pass\n",
        })
        model = ProjectModel(base, fs=fs)
        model.add_library(Library("vendor", classes=[tmp_path / "libs" / "missing", archive]))
        # the first content root was deleted after configuration
        model.add_module("app", [base / "gone", base / "app"], dependencies=["vendor"])
        return model, archive

    def test_missing_roots_are_skipped(self, vendored, make_resolver):
        model, archive = vendored
        base = model.base_dir
        main = FileEntity(base / "app" / "main.py")
        resolver = make_resolver(model)
        assert [r.location for r in resolver.roots.roots(main)] == [base / "app", base, archive]
        assert resolver.resolve_module(Q("local"), main, True, 0) == [FileEntity(base / "app" / "local.py")]

    def test_module_inside_zip_library(self, vendored, make_resolver):
        model, archive = vendored
        main = FileEntity(model.base_dir / "app" / "main.py")
        resolver = make_resolver(model)
        mod = FileEntity(PurePosixPath("vend/mod.py"), archive)
        assert resolver.resolve_module(Q("vend.mod"), main, True, 0) == [mod]
        assert resolver.resolve_module(Q("vend"), main, True, 0) == [DirectoryEntity(PurePosixPath("vend"), archive)]
        assert resolver.find_shortest_importable_name(main, mod) == "vend.mod"
