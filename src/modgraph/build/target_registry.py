"""
Target registry.

This module tracks every target declared while the module tree is walked.
Each target accumulates, in traversal order and without duplicates:
- the object files contributed while it was the ambient target
- prerequisite targets
- link libraries and linker flags

A target is classified as a static archive when its output path ends in
'.a'; every other target is an executable.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, Iterator, List

from ..errors import ModgraphError

ARCHIVE_SUFFIX = '.a'


class DuplicateTargetError(ModgraphError):
    """Raised when a module declares a target that was already declared."""
    pass


class TargetKind(Enum):
    """How a target is realized."""

    ARCHIVE = 'archive'
    EXECUTABLE = 'executable'


def classify(path: Path) -> TargetKind:
    """Archive if the output name ends in '.a', executable otherwise."""
    return TargetKind.ARCHIVE if str(path).endswith(ARCHIVE_SUFFIX) else TargetKind.EXECUTABLE


def library_flag(name: str) -> str:
    """
    Render a library name as a linker directive.

    Example:
        >>> library_flag('libfoo.a')
        '-lfoo'
        >>> library_flag('m')
        '-lm'
    """
    if name.startswith('lib') and name.endswith(ARCHIVE_SUFFIX) and len(name) > 5:
        name = name[3:-len(ARCHIVE_SUFFIX)]
    return f'-l{name}'


def _append_unique(items: List, values: Iterable) -> None:
    for value in values:
        if value not in items:
            items.append(value)


@dataclass
class Target:
    """A final build artifact and everything attributed to it."""

    path: Path
    objects: List[Path] = field(default_factory=list)
    prereqs: List[Path] = field(default_factory=list)
    libs: List[str] = field(default_factory=list)
    ldflags: List[str] = field(default_factory=list)

    @property
    def kind(self) -> TargetKind:
        return classify(self.path)

    @property
    def is_archive(self) -> bool:
        return self.kind is TargetKind.ARCHIVE

    @property
    def ldlibs(self) -> List[str]:
        """Library names rendered as -l directives."""
        return [library_flag(lib) for lib in self.libs]

    def to_dict(self) -> Dict[str, object]:
        return {
            'path': self.path.as_posix(),
            'kind': self.kind.value,
            'objects': [obj.as_posix() for obj in self.objects],
            'prereqs': [pre.as_posix() for pre in self.prereqs],
            'libs': list(self.libs),
            'ldflags': list(self.ldflags),
        }


class TargetRegistry:
    """
    Ordered set of declared targets.

    Usage:
        registry = TargetRegistry(Path("."))
        app = registry.declare_target("app")
        registry.attach_objects(app.path, [Path("build/main.o")])
    """

    def __init__(self, target_dir: Path):
        """
        Initialize target registry.

        Args:
            target_dir: Directory every target (and prerequisite) name is
                relative to
        """
        self.target_dir = Path(target_dir)
        self._targets: Dict[Path, Target] = {}

    def target_path(self, name: str) -> Path:
        """Output path of the target called name."""
        return self.target_dir / name

    def declare_target(self, name: str) -> Target:
        """
        Declare a new target.

        Args:
            name: Target name from a module descriptor

        Returns:
            The new, empty target

        Raises:
            DuplicateTargetError: If the target was already declared
        """
        path = self.target_path(name)
        if path in self._targets:
            raise DuplicateTargetError(f"Target '{path.as_posix()}' is declared more than once")

        target = Target(path=path)
        self._targets[path] = target
        logging.debug(f"Declared {target.kind.value} target {path.as_posix()}")
        return target

    def get(self, path: Path) -> Target:
        return self._targets[path]

    def classify(self, path: Path) -> TargetKind:
        return self._targets[path].kind

    def attach_objects(self, path: Path, objects: Iterable[Path]) -> None:
        _append_unique(self._targets[path].objects, objects)

    def attach_prereqs(self, path: Path, names: Iterable[str]) -> None:
        """
        Add prerequisite targets.

        Prerequisite names are relative to the target directory. If any of
        them is an archive, an executable target also gets a library search
        path pointing at the target directory. Archives only record the
        ordering.
        """
        target = self._targets[path]
        names = list(names)
        _append_unique(target.prereqs, [self.target_path(name) for name in names])
        if target.is_archive:
            return
        if any(classify(Path(name)) is TargetKind.ARCHIVE for name in names):
            _append_unique(target.ldflags, [f'-L{self.target_dir.as_posix()}'])

    def attach_libs(self, path: Path, names: Iterable[str]) -> None:
        """Add link libraries. Archives are never linked, so they take none."""
        target = self._targets[path]
        names = list(names)
        if target.is_archive:
            if names:
                logging.debug(
                    f"Ignoring libraries {' '.join(names)} for archive {path.as_posix()}"
                )
            return
        _append_unique(target.libs, names)

    def __contains__(self, path: object) -> bool:
        return path in self._targets

    def __iter__(self) -> Iterator[Target]:
        return iter(self._targets.values())

    def __len__(self) -> int:
        return len(self._targets)
