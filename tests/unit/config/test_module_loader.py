"""
Unit tests for module descriptor loading.
"""

from dataclasses import FrozenInstanceError
from pathlib import Path

import pytest

from modgraph.config.module_loader import ModuleLoader, ModuleLoadError, module_directory


class TestModuleLoader:
    """Test suite for ModuleLoader."""

    @pytest.fixture
    def loader(self, project):
        return ModuleLoader(project)

    def test_load_all_fields(self, loader, write_module):
        write_module(
            "main.ini",
            target="app",
            sources="a.c b.cpp",
            submodules="lib/module.ini",
            libs="m, libz.a",
            prereqs="libfoo.a",
            cflags="-O2 -Wall",
            cxxflags="-std=c++17",
            defines="DEBUG VERSION=2",
            include_dirs="include\n    other",
        )

        module = loader.load(Path("main.ini"))

        assert module.path == Path("main.ini")
        assert module.directory == Path(".")
        assert module.target == "app"
        assert module.sources == ("a.c", "b.cpp")
        assert module.submodules == ("lib/module.ini",)
        assert module.libs == ("m", "libz.a")
        assert module.prereqs == ("libfoo.a",)
        assert module.cflags == ("-O2", "-Wall")
        assert module.cxxflags == ("-std=c++17",)
        assert module.defines == ("DEBUG", "VERSION=2")
        assert module.include_dirs == ("include", "other")
        assert module.project is None

    def test_defaults_empty(self, loader, write_module):
        write_module("main.ini")

        module = loader.load(Path("main.ini"))

        assert module.target is None
        assert module.sources == ()
        assert module.submodules == ()
        assert module.libs == ()
        assert module.prereqs == ()
        assert module.cflags == ()
        assert module.defines == ()

    def test_empty_target_means_inherit(self, loader, write_module):
        write_module("main.ini", target="")
        assert loader.load(Path("main.ini")).target is None

    def test_missing_module_section(self, loader, project):
        (project / "main.ini").write_text("[other]\nkey = value\n")
        module = loader.load(Path("main.ini"))
        assert module.sources == ()

    def test_unknown_keys_ignored(self, loader, write_module):
        write_module("main.ini", sources="a.c", colour="blue")
        assert loader.load(Path("main.ini")).sources == ("a.c",)

    def test_quoted_flags(self, loader, write_module):
        write_module("main.ini", cflags='-DNAME="hello world" -O2')
        assert loader.load(Path("main.ini")).cflags == ("-DNAME=hello world", "-O2")

    def test_submodule_directory(self, loader, write_module):
        write_module("lib/sub/module.ini", sources="x.c")

        module = loader.load(write_module("lib/module.ini").relative_to(loader.project_dir))

        assert module.directory == Path("lib")
        assert module.path == Path("lib/module.ini")

    def test_descriptor_is_immutable(self, loader, write_module):
        write_module("main.ini", target="app", sources="a.c")

        module = loader.load(Path("main.ini"))

        with pytest.raises(FrozenInstanceError):
            module.target = "other"  # type: ignore[misc]
        with pytest.raises(AttributeError):
            module.sources.append("b.c")  # type: ignore[attr-defined]
        assert module.sources == ("a.c",)

    def test_loads_are_independent(self, loader, write_module):
        write_module("main.ini", target="app", sources="a.c", defines="X")
        write_module("lib/module.ini", sources="b.c")

        first = loader.load(Path("main.ini"))
        second = loader.load(Path("lib/module.ini"))

        assert second.target is None
        assert second.defines == ()
        assert first.defines == ("X",)

    def test_project_section(self, loader, write_module):
        write_module("main.ini", project_section={"build_dir": "out", "defines": "A B"})

        module = loader.load(Path("main.ini"))

        assert module.project is not None
        assert module.project.build_dir == "out"
        assert module.project.defines == ["A", "B"]
        assert module.project.cc is None

    def test_missing_file_raises(self, loader):
        with pytest.raises(ModuleLoadError, match="not found"):
            loader.load(Path("missing.ini"))

    def test_malformed_file_raises(self, loader, project):
        (project / "main.ini").write_text("this is not ini\n")
        with pytest.raises(ModuleLoadError, match="Failed to parse"):
            loader.load(Path("main.ini"))


class TestResolveSubmodule:
    """Test submodule reference resolution."""

    def test_relative_to_module_directory(self, project, write_module):
        loader = ModuleLoader(project)
        write_module("lib/module.ini", submodules="sub/module.ini")
        module = loader.load(Path("lib/module.ini"))

        assert loader.resolve_submodule(module, "sub/module.ini") == Path("lib/sub/module.ini")

    def test_directory_reference(self, project, write_module):
        loader = ModuleLoader(project)
        write_module("main.ini", submodules="lib")
        write_module("lib/module.ini")
        module = loader.load(Path("main.ini"))

        assert loader.resolve_submodule(module, "lib") == Path("lib/module.ini")

    def test_parent_reference_normalized(self, project, write_module):
        loader = ModuleLoader(project)
        write_module("a/module.ini")
        module = loader.load(Path("a/module.ini"))

        assert loader.resolve_submodule(module, "../b/module.ini") == Path("b/module.ini")


def test_module_directory():
    assert module_directory(Path("main.ini")) == Path(".")
    assert module_directory(Path("./lib/module.ini")) == Path("lib")
