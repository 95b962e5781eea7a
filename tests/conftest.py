"""Shared fixtures for modgraph tests."""

from pathlib import Path
from typing import Dict, Optional

import pytest


@pytest.fixture
def project(tmp_path):
    """Temporary project root."""
    return tmp_path


@pytest.fixture
def write_module(project):
    """Factory writing a module descriptor into the temporary project.

    Usage:
        write_module("main.ini", target="app", sources="a.c")
        write_module("lib/module.ini", sources="x.c", project_section={"build_dir": "out"})
    """
    def _write(relpath: str, project_section: Optional[Dict[str, str]] = None,
               **fields: str) -> Path:
        path = project / relpath
        path.parent.mkdir(parents=True, exist_ok=True)
        lines = []
        if project_section is not None:
            lines.append("[project]")
            lines.extend(f"{key} = {value}" for key, value in project_section.items())
            lines.append("")
        lines.append("[module]")
        lines.extend(f"{key} = {value}" for key, value in fields.items())
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return path

    return _write
