"""
Module descriptor loader.

A module descriptor is an INI file describing one directory of the project:

    [module]
    target = app
    sources = main.c util.cpp
    submodules = lib/module.ini
    libs = m
    prereqs = libutil.a
    cflags = -O2 -Wall
    cxxflags = -std=c++17
    defines = DEBUG VERSION=2
    include_dirs = include

Every field is optional and defaults to empty. Unknown keys and sections are
ignored. The root descriptor may also carry a [project] section with
project-wide settings (see project_config).

Loading is a pure step: each call builds a fresh ModuleDescriptor, so no
value can leak from one module into the next.
"""

import configparser
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from ..errors import ModgraphError
from .project_config import ProjectSection, split_flags, split_list

MODULE_SECTION = 'module'
PROJECT_SECTION = 'project'
DEFAULT_MODULE_FILE = 'module.ini'
DEFAULT_ROOT_MODULE = 'main.ini'


class ModuleLoadError(ModgraphError):
    """Raised when a module descriptor is missing or cannot be parsed."""
    pass


@dataclass(frozen=True)
class ModuleDescriptor:
    """Fields declared by one module descriptor.

    Paths are relative to the project root. A target of None means the
    module's values apply to the target inherited from its enclosing module.
    """

    path: Path
    directory: Path
    target: Optional[str] = None
    sources: Tuple[str, ...] = ()
    submodules: Tuple[str, ...] = ()
    libs: Tuple[str, ...] = ()
    prereqs: Tuple[str, ...] = ()
    cflags: Tuple[str, ...] = ()
    cxxflags: Tuple[str, ...] = ()
    defines: Tuple[str, ...] = ()
    include_dirs: Tuple[str, ...] = ()
    project: Optional[ProjectSection] = None


class ModuleLoader:
    """
    Reads module descriptors relative to a project root.

    Usage:
        loader = ModuleLoader(Path("."))
        root = loader.load(Path("main.ini"))
        for ref in root.submodules:
            child = loader.load(loader.resolve_submodule(root, ref))
    """

    def __init__(self, project_dir: Path):
        """
        Initialize module loader.

        Args:
            project_dir: Project root; descriptor paths are relative to it
        """
        self.project_dir = Path(project_dir)

    def load(self, module_path: Path) -> ModuleDescriptor:
        """
        Load one module descriptor.

        Args:
            module_path: Descriptor path relative to the project root

        Returns:
            ModuleDescriptor with every unset field empty

        Raises:
            ModuleLoadError: If the file does not exist or is not valid INI
        """
        module_path = Path(module_path)
        file_path = self.project_dir / module_path

        if not file_path.is_file():
            raise ModuleLoadError(f"Module descriptor not found: {module_path}")

        parser = configparser.ConfigParser(interpolation=None)
        try:
            with open(file_path, encoding='utf-8') as f:
                parser.read_file(f, source=str(module_path))
        except (configparser.Error, UnicodeDecodeError) as e:
            raise ModuleLoadError(f"Failed to parse module {module_path}: {e}") from e

        section = parser[MODULE_SECTION] if parser.has_section(MODULE_SECTION) else {}
        project = None
        if parser.has_section(PROJECT_SECTION):
            project = ProjectSection.parse(parser[PROJECT_SECTION])

        target = section.get('target', '').strip() or None

        return ModuleDescriptor(
            path=module_path,
            directory=module_directory(module_path),
            target=target,
            sources=tuple(split_list(section.get('sources'))),
            submodules=tuple(split_list(section.get('submodules'))),
            libs=tuple(split_list(section.get('libs'))),
            prereqs=tuple(split_list(section.get('prereqs'))),
            cflags=tuple(split_flags(section.get('cflags'))),
            cxxflags=tuple(split_flags(section.get('cxxflags'))),
            defines=tuple(split_list(section.get('defines'))),
            include_dirs=tuple(split_list(section.get('include_dirs'))),
            project=project,
        )

    def resolve_submodule(self, module: ModuleDescriptor, reference: str) -> Path:
        """
        Turn a submodule reference into a descriptor path.

        References are relative to the referencing module's directory. A
        reference naming a directory resolves to its module.ini.

        Args:
            module: Module that lists the reference
            reference: Entry from the module's submodules field

        Returns:
            Descriptor path relative to the project root
        """
        path = _normalize(module.directory / reference)
        if (self.project_dir / path).is_dir():
            path = path / DEFAULT_MODULE_FILE
        return path


def module_directory(module_path: Path) -> Path:
    """Directory of a descriptor, relative to the project root ('.' for the root)."""
    return _normalize(Path(module_path).parent)


def _normalize(path: Path) -> Path:
    # Collapse '.' and 'a/..' segments so identities do not depend on spelling.
    parts: List[str] = []
    for part in Path(path).parts:
        if part == '.':
            continue
        if part == '..' and parts and parts[-1] != '..':
            parts.pop()
            continue
        parts.append(part)
    return Path(*parts) if parts else Path('.')
