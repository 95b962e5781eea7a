"""
Project-wide build configuration.

This module collects the settings that apply to the whole build rather than
to a single module: toolchain programs, global flags, global defines and
include directories, and the build/target output directories.

Settings come from three places, later ones winning:
1. Built-in defaults
2. Environment variables (CC, CXX, AR, LNK, CFLAGS, CXXFLAGS, LDFLAGS,
   BUILD_DIR, TARGET_DIR)
3. The [project] section of the root module descriptor
Command-line overrides are applied on top of all three.
"""

import os
import shlex
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Dict, List, Mapping, Optional

DEFAULT_CC = 'cc'
DEFAULT_CXX = 'g++'
DEFAULT_AR = 'ar'
DEFAULT_BUILD_DIR = 'build'
DEFAULT_TARGET_DIR = '.'


def split_list(value: Optional[str]) -> List[str]:
    """Split a descriptor list value on whitespace, newlines and commas.

    Example:
        >>> split_list("a.c, b.c\\n  c.c")
        ['a.c', 'b.c', 'c.c']
    """
    if not value:
        return []
    return [item for item in value.replace(',', ' ').split() if item]


def split_flags(value: Optional[str]) -> List[str]:
    """Split a flag string, keeping quoted values together.

    Example:
        >>> split_flags('-DNAME="a b" -O2')
        ['-DNAME=a b', '-O2']
    """
    if not value:
        return []
    try:
        return shlex.split(value)
    except ValueError:
        return value.split()


@dataclass(frozen=True)
class ProjectSection:
    """Settings from a root descriptor's [project] section.

    None means the section did not set the value.
    """

    build_dir: Optional[str] = None
    target_dir: Optional[str] = None
    cc: Optional[str] = None
    cxx: Optional[str] = None
    ar: Optional[str] = None
    lnk: Optional[str] = None
    cflags: Optional[List[str]] = None
    cxxflags: Optional[List[str]] = None
    ldflags: Optional[List[str]] = None
    defines: Optional[List[str]] = None
    include_dirs: Optional[List[str]] = None

    @staticmethod
    def parse(section: Mapping[str, str]) -> 'ProjectSection':
        """
        Build a ProjectSection from raw INI key/value pairs.

        Args:
            section: Key/value pairs of the [project] section

        Returns:
            Parsed section; unknown keys are ignored
        """
        def text(key: str) -> Optional[str]:
            value = section.get(key)
            if value is None:
                return None
            value = value.strip()
            return value or None

        def flags(key: str) -> Optional[List[str]]:
            return split_flags(section[key]) if key in section else None

        def items(key: str) -> Optional[List[str]]:
            return split_list(section[key]) if key in section else None

        return ProjectSection(
            build_dir=text('build_dir'),
            target_dir=text('target_dir'),
            cc=text('cc'),
            cxx=text('cxx'),
            ar=text('ar'),
            lnk=text('lnk'),
            cflags=flags('cflags'),
            cxxflags=flags('cxxflags'),
            ldflags=flags('ldflags'),
            defines=items('defines'),
            include_dirs=items('include_dirs'),
        )


@dataclass(frozen=True)
class ProjectConfig:
    """Resolved project-wide settings."""

    cc: str = DEFAULT_CC
    cxx: str = DEFAULT_CXX
    ar: str = DEFAULT_AR
    lnk: Optional[str] = None          # None: choose CC or CXX automatically
    cflags: List[str] = field(default_factory=list)
    cxxflags: List[str] = field(default_factory=list)
    ldflags: List[str] = field(default_factory=list)
    defines: List[str] = field(default_factory=list)
    include_dirs: List[str] = field(default_factory=list)
    build_dir: Path = Path(DEFAULT_BUILD_DIR)
    target_dir: Path = Path(DEFAULT_TARGET_DIR)

    @property
    def define_flags(self) -> List[str]:
        return [f'-D{define}' for define in self.defines]

    @property
    def include_flags(self) -> List[str]:
        return [f'-I{inc}' for inc in self.include_dirs]

    @staticmethod
    def from_environment(environ: Optional[Mapping[str, str]] = None) -> 'ProjectConfig':
        """
        Create configuration from environment variables.

        Empty variables are treated as unset.

        Args:
            environ: Environment mapping (defaults to os.environ)

        Returns:
            ProjectConfig with environment values over the defaults
        """
        env = os.environ if environ is None else environ

        def get(name: str, default: Optional[str]) -> Optional[str]:
            value = env.get(name, '').strip()
            return value or default

        return ProjectConfig(
            cc=get('CC', DEFAULT_CC),
            cxx=get('CXX', DEFAULT_CXX),
            ar=get('AR', DEFAULT_AR),
            lnk=get('LNK', None),
            cflags=split_flags(env.get('CFLAGS')),
            cxxflags=split_flags(env.get('CXXFLAGS')),
            ldflags=split_flags(env.get('LDFLAGS')),
            build_dir=Path(get('BUILD_DIR', DEFAULT_BUILD_DIR)),
            target_dir=Path(get('TARGET_DIR', DEFAULT_TARGET_DIR)),
        )

    def with_section(self, section: Optional[ProjectSection]) -> 'ProjectConfig':
        """Return a copy with every value the [project] section sets applied."""
        if section is None:
            return self

        changes: Dict[str, object] = {}
        for f in fields(ProjectSection):
            value = getattr(section, f.name)
            if value is None:
                continue
            if f.name in ('build_dir', 'target_dir'):
                value = Path(value)
            changes[f.name] = value
        return replace(self, **changes)

    def with_overrides(self, **overrides: object) -> 'ProjectConfig':
        """Return a copy with explicit (command-line) overrides applied.

        Overrides whose value is None are ignored.
        """
        changes = {key: value for key, value in overrides.items() if value is not None}
        for key in ('build_dir', 'target_dir'):
            if key in changes:
                changes[key] = Path(str(changes[key]))
        return replace(self, **changes)
