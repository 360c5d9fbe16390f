"""Tests for single-component lookups (resolve_child)."""
from pathlib import Path

import pytest

from modresolve.core.entities import DirectoryEntity, DirectoryGroup, FileEntity, NameEntity
from modresolve.core.project import ProjectModel, Sdk
from modresolve.core.qualified_name import QualifiedName


class TestResolveChild:
    def test_submodule_beats_name_bound_in_init(self, pkg_project, make_resolver):
        resolver = make_resolver(pkg_project)
        base = pkg_project.base_dir
        init = FileEntity(base / "pkg" / "__init__.py")
        main = FileEntity(base / "main.py")
        # pkg/__init__.py binds `sub` too; the file wins
        assert resolver.resolve_child(init, "sub", main) == FileEntity(base / "pkg" / "sub.py")

    def test_name_bound_in_init_when_no_submodule(self, pkg_project, make_resolver):
        resolver = make_resolver(pkg_project)
        base = pkg_project.base_dir
        init = FileEntity(base / "pkg" / "__init__.py")
        found = resolver.resolve_child(init, "VERSION", FileEntity(base / "main.py"))
        assert found == NameEntity(init, "VERSION", 1, "variable")

    def test_directory_falls_back_to_init_names_unless_file_only(self, pkg_project, make_resolver):
        resolver = make_resolver(pkg_project)
        base = pkg_project.base_dir
        pkg = DirectoryEntity(base / "pkg")
        main = FileEntity(base / "main.py")
        assert isinstance(resolver.resolve_child(pkg, "VERSION", main), NameEntity)
        assert resolver.resolve_child(pkg, "VERSION", main, file_only=True) is None

    def test_init_is_not_searched_from_itself(self, pkg_project, make_resolver):
        resolver = make_resolver(pkg_project)
        base = pkg_project.base_dir
        init = FileEntity(base / "pkg" / "__init__.py")
        assert resolver.resolve_child(DirectoryEntity(base / "pkg"), "VERSION", init) is None

    def test_case_mismatch_does_not_resolve(self, tmp_path: Path, write_tree, fs, make_resolver):
        base = write_tree(tmp_path / "case", {"Foo.py": "", "main.py": ""})
        model = ProjectModel(base, fs=fs)
        model.add_module("m", [base])
        resolver = make_resolver(model)
        main = FileEntity(base / "main.py")
        assert resolver.resolve_child(DirectoryEntity(base), "foo", main) is None
        assert resolver.resolve_child(DirectoryEntity(base), "Foo", main) == FileEntity(base / "Foo.py")

    def test_directory_without_marker_is_not_a_package(self, tmp_path: Path, write_tree, fs, make_resolver):
        base = write_tree(tmp_path / "nomarker", {"data/readme.txt": "", "main.py": ""})
        model = ProjectModel(base, fs=fs)
        resolver = make_resolver(model)
        assert resolver.resolve_child(DirectoryEntity(base), "data", FileEntity(base / "main.py")) is None

    def test_directory_group_first_member_wins(self, tmp_path: Path, write_tree, fs, make_resolver):
        base = write_tree(tmp_path / "group", {
            "one/ns/__init__.py": "",
            "two/ns/__init__.py": "",
            "two/ns/extra.py": "",
            "one/ns/shared.py": "",
            "two/ns/shared.py": "",
        })
        model = ProjectModel(base, fs=fs)
        resolver = make_resolver(model)
        group = DirectoryGroup((DirectoryEntity(base / "one" / "ns"), DirectoryEntity(base / "two" / "ns")))
        assert resolver.resolve_child(group, "shared", None) == FileEntity(base / "one" / "ns" / "shared.py")
        assert resolver.resolve_child(group, "extra", None) == FileEntity(base / "two" / "ns" / "extra.py")

    def test_none_parent_and_name_entity_parent(self, pkg_project, make_resolver):
        resolver = make_resolver(pkg_project)
        init = FileEntity(pkg_project.base_dir / "pkg" / "__init__.py")
        assert resolver.resolve_child(None, "x", None) is None
        assert resolver.resolve_child(NameEntity(init, "VERSION", 1, "variable"), "x", None) is None


class TestSkeletonOverlay:
    @pytest.fixture
    def sdk_project(self, tmp_path: Path, write_tree, fs):
        base = write_tree(tmp_path / "sk", {
            "proj/main.py": "import gi._gobject\n",
            "sdk/lib/gi/__init__.py": "",
            "sdk/lib/gi/overrides.py": "",
            "sdk/skeletons/gi/_gobject.py": "def type_name(t): ...\n",
            "sdk/skeletons/gi/overrides.py": "# stale skeleton\n",
        })
        model = ProjectModel(base / "proj", fs=fs)
        model.add_sdk(Sdk("py", classes=[base / "sdk" / "lib"], skeletons=base / "sdk" / "skeletons"))
        model.add_module("proj", [base / "proj"], sdk="py")
        return model

    def test_skeleton_supplies_binary_module(self, sdk_project, make_resolver):
        resolver = make_resolver(sdk_project)
        sdk_root = sdk_project.base_dir.parent / "sdk"
        main = FileEntity(sdk_project.base_dir / "main.py")
        gi = DirectoryEntity(sdk_root / "lib" / "gi")
        found = resolver.resolve_child(gi, "_gobject", main, root=DirectoryEntity(sdk_root / "lib"), file_only=True)
        assert found == FileEntity(sdk_root / "skeletons" / "gi" / "_gobject.py")

    def test_skeleton_located_without_root_hint(self, sdk_project, make_resolver):
        resolver = make_resolver(sdk_project)
        sdk_root = sdk_project.base_dir.parent / "sdk"
        gi = DirectoryEntity(sdk_root / "lib" / "gi")
        found = resolver.resolve_child(gi, "_gobject", None, file_only=True)
        assert found == FileEntity(sdk_root / "skeletons" / "gi" / "_gobject.py")

    def test_real_source_beats_skeleton(self, sdk_project, make_resolver):
        resolver = make_resolver(sdk_project)
        sdk_root = sdk_project.base_dir.parent / "sdk"
        gi = DirectoryEntity(sdk_root / "lib" / "gi")
        assert resolver.resolve_child(gi, "overrides", None) == FileEntity(sdk_root / "lib" / "gi" / "overrides.py")

    def test_fan_out_finds_skeleton_module(self, sdk_project, make_resolver):
        resolver = make_resolver(sdk_project)
        main = FileEntity(sdk_project.base_dir / "main.py")
        sdk_root = sdk_project.base_dir.parent / "sdk"
        candidates = resolver.resolve_module(QualifiedName.from_dotted("gi._gobject"), main, True, 0)
        assert candidates == [FileEntity(sdk_root / "skeletons" / "gi" / "_gobject.py")]
