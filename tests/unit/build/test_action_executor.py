"""
Unit tests for ActionExecutor.

subprocess.run is replaced by a fake toolchain that writes every output
file (and a dependency listing for compiles), so these tests exercise
ordering, staleness and clean without a real compiler.
"""

import os
import subprocess
import time
from pathlib import Path
from unittest.mock import patch

import pytest

from modgraph.build.action_executor import ActionExecutionError, ActionExecutor, default_jobs
from modgraph.build.module_graph import ModuleGraphResolver
from modgraph.config.project_config import ProjectConfig


class FakeToolchain:
    """Stands in for subprocess.run; records every command it receives."""

    def __init__(self, fail_on=None):
        self.commands = []
        self.fail_on = fail_on

    def __call__(self, cmd, cwd, capture_output, text, check):
        self.commands.append(list(cmd))
        if self.fail_on and self.fail_on in cmd:
            return subprocess.CompletedProcess(cmd, 1, stdout="", stderr="error: boom")

        output = cmd[2] if cmd[1] == "r" else cmd[cmd.index("-o") + 1]
        out_path = Path(cwd) / output
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text("built")
        if "-c" in cmd:
            source = cmd[-1]
            out_path.with_suffix(".d").write_text(f"{output}: {source} common.h\n")
        return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")

    def outputs(self):
        return [cmd[2] if cmd[1] == "r" else cmd[cmd.index("-o") + 1] for cmd in self.commands]


@pytest.fixture
def sample_project(project, write_module):
    """App linking against an archive built from a sibling module."""
    write_module("main.ini", submodules="lib prog")
    write_module("lib/module.ini", target="libutil.a", sources="util.c")
    write_module("prog/module.ini", target="app", sources="main.c", prereqs="libutil.a", libs="libutil.a")
    (project / "lib" / "util.c").write_text("int util(void) { return 1; }\n")
    (project / "prog" / "main.c").write_text("int main(void) { return 0; }\n")
    (project / "common.h").write_text("#define COMMON 1\n")
    return project


def _resolve(project):
    return ModuleGraphResolver(project, config=ProjectConfig()).resolve()


def _build(project, toolchain, **kwargs):
    executor = ActionExecutor(project, jobs=2, show_progress=False, **kwargs)
    with patch("modgraph.build.action_executor.subprocess.run", side_effect=toolchain):
        return executor.build(_resolve(project))


def _age_outputs(project, seconds=10):
    """Move every produced file into the past so later touches are newer."""
    past = time.time() - seconds
    for path in project.rglob("*"):
        if path.is_file() and path.suffix in (".o", ".a", ".P", "") and path.name != "app":
            os.utime(path, (past, past))
    app = project / "app"
    if app.exists():
        os.utime(app, (past + 1, past + 1))


class TestBuild:
    """Test the 'all' goal."""

    def test_first_build(self, sample_project):
        toolchain = FakeToolchain()

        result = _build(sample_project, toolchain)

        assert sorted(result.compiled) == [Path("build/lib/util.o"), Path("build/prog/main.o")]
        assert result.realized == [Path("libutil.a"), Path("app")]
        outputs = toolchain.outputs()
        assert outputs.index("libutil.a") < outputs.index("app")
        assert outputs.index("build/lib/util.o") < outputs.index("libutil.a")

    def test_dependency_descriptors_written(self, sample_project):
        _build(sample_project, FakeToolchain())

        descriptor = sample_project / "build/lib/util.P"
        assert descriptor.exists()
        assert "common.h :" in descriptor.read_text()
        assert not (sample_project / "build/lib/util.d").exists()

    def test_link_command(self, sample_project):
        toolchain = FakeToolchain()
        _build(sample_project, toolchain)

        link = [cmd for cmd in toolchain.commands if cmd[:3] == ["cc", "-o", "app"]][0]
        assert link == ["cc", "-o", "app", "-L.", "build/prog/main.o", "-lutil"]

    def test_second_build_is_noop(self, sample_project):
        _build(sample_project, FakeToolchain())
        _age_outputs(sample_project)
        past = time.time() - 20
        for src in ("lib/util.c", "prog/main.c", "common.h"):
            os.utime(sample_project / src, (past, past))

        toolchain = FakeToolchain()
        result = _build(sample_project, toolchain)

        assert toolchain.commands == []
        assert result.compiled == []
        assert result.up_to_date == [Path("libutil.a"), Path("app")]

    def test_header_change_rebuilds_dependents(self, sample_project):
        _build(sample_project, FakeToolchain())
        _age_outputs(sample_project)
        past = time.time() - 20
        for src in ("lib/util.c", "prog/main.c"):
            os.utime(sample_project / src, (past, past))
        os.utime(sample_project / "common.h", None)

        result = _build(sample_project, FakeToolchain())

        assert sorted(result.compiled) == [Path("build/lib/util.o"), Path("build/prog/main.o")]
        assert result.realized == [Path("libutil.a"), Path("app")]

    def test_deleted_header_is_not_an_error(self, sample_project):
        _build(sample_project, FakeToolchain())
        (sample_project / "common.h").unlink()

        result = _build(sample_project, FakeToolchain())

        assert sorted(result.compiled) == [Path("build/lib/util.o"), Path("build/prog/main.o")]

    def test_missing_source(self, sample_project):
        (sample_project / "prog" / "main.c").unlink()

        with pytest.raises(ActionExecutionError, match="prog/main.c"):
            _build(sample_project, FakeToolchain())

    def test_compile_failure(self, sample_project):
        with pytest.raises(ActionExecutionError, match="boom"):
            _build(sample_project, FakeToolchain(fail_on="lib/util.c"))

        assert not (sample_project / "libutil.a").exists()

    def test_missing_tool(self, sample_project):
        def missing(cmd, **kwargs):
            raise FileNotFoundError(cmd[0])

        executor = ActionExecutor(sample_project, jobs=1, show_progress=False)
        with patch("modgraph.build.action_executor.subprocess.run", side_effect=missing):
            with pytest.raises(ActionExecutionError, match="cannot run cc"):
                executor.build(_resolve(sample_project))

    def test_external_prerequisite_missing(self, project, write_module):
        write_module("main.ini", target="app", sources="main.c", prereqs="libext.a")
        (project / "main.c").write_text("int main(void) { return 0; }\n")

        with pytest.raises(ActionExecutionError, match="libext.a"):
            _build(project, FakeToolchain())

    def test_selected_goal(self, sample_project):
        toolchain = FakeToolchain()
        executor = ActionExecutor(sample_project, jobs=1, show_progress=False)
        with patch("modgraph.build.action_executor.subprocess.run", side_effect=toolchain):
            result = executor.build(_resolve(sample_project), goals=[Path("libutil.a")])

        assert result.realized == [Path("libutil.a")]
        assert "app" not in toolchain.outputs()

    def test_unknown_goal(self, sample_project):
        executor = ActionExecutor(sample_project, jobs=1, show_progress=False)
        with pytest.raises(ActionExecutionError, match="No rule to make target"):
            executor.build(_resolve(sample_project), goals=[Path("nope")])


class TestClean:
    """Test the 'clean' goal."""

    def test_clean_removes_products(self, sample_project):
        _build(sample_project, FakeToolchain())
        executor = ActionExecutor(sample_project, show_progress=False)

        removed = executor.clean(_resolve(sample_project))

        assert set(removed) == {
            Path("libutil.a"), Path("app"),
            Path("build/lib/util.o"), Path("build/lib/util.P"),
            Path("build/prog/main.o"), Path("build/prog/main.P"),
        }
        assert (sample_project / "lib" / "util.c").exists()
        assert not (sample_project / "app").exists()

    def test_clean_then_build_reproduces_artifacts(self, sample_project):
        _build(sample_project, FakeToolchain())
        first = sorted(p.relative_to(sample_project) for p in sample_project.rglob("*") if p.is_file())

        ActionExecutor(sample_project, show_progress=False).clean(_resolve(sample_project))
        _build(sample_project, FakeToolchain())
        second = sorted(p.relative_to(sample_project) for p in sample_project.rglob("*") if p.is_file())

        assert first == second

    def test_clean_on_fresh_tree(self, sample_project):
        assert ActionExecutor(sample_project, show_progress=False).clean(_resolve(sample_project)) == []


def test_default_jobs():
    with patch("modgraph.build.action_executor.psutil.cpu_count", return_value=None):
        assert default_jobs() == 1
    with patch("modgraph.build.action_executor.psutil.cpu_count", return_value=8):
        assert default_jobs() == 8
