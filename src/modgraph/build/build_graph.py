"""
Resolved build graph.

The graph is the only thing handed to an executor. It holds:
- every declared target with its classification
- every object with its bound flags and compile action
- one archive or link action per target
- one generic compile rule per recognized source extension
- header dependency edges merged from dependency descriptors
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List

from .source_resolver import Language, ObjectRecord
from .target_registry import Target


class ActionKind(Enum):
    """What a target action does."""

    ARCHIVE = 'archive'
    LINK = 'link'


@dataclass(frozen=True)
class CompileRule:
    """Generic compile template for one source extension."""

    extension: str
    language: Language
    compiler: str

    def matches(self, source: Path) -> bool:
        return source.suffix == self.extension


@dataclass(frozen=True)
class CompileAction:
    """Compile one source into one object (plus a raw dependency listing)."""

    object: ObjectRecord
    command: List[str]

    @property
    def output(self) -> Path:
        return self.object.path

    @property
    def source(self) -> Path:
        return self.object.source


@dataclass(frozen=True)
class TargetAction:
    """Archive or link action realizing one target."""

    target: Path
    kind: ActionKind
    command: List[str]
    objects: List[Path] = field(default_factory=list)
    prereqs: List[Path] = field(default_factory=list)

    @property
    def inputs(self) -> List[Path]:
        return list(self.objects) + list(self.prereqs)


@dataclass
class BuildGraph:
    """Everything an executor needs to realize the project."""

    targets: Dict[Path, Target] = field(default_factory=dict)
    objects: Dict[Path, ObjectRecord] = field(default_factory=dict)
    compile_rules: List[CompileRule] = field(default_factory=list)
    compile_actions: Dict[Path, CompileAction] = field(default_factory=dict)
    target_actions: Dict[Path, TargetAction] = field(default_factory=dict)
    dependency_edges: Dict[Path, List[Path]] = field(default_factory=dict)
    linker: str = ''

    @property
    def default_goal(self) -> List[Path]:
        """Targets realized by 'all', in declaration order."""
        return list(self.targets)

    def object_inputs(self, obj: Path) -> List[Path]:
        """Source plus known header dependencies of an object."""
        inputs = [self.objects[obj].source]
        for header in self.dependency_edges.get(obj, []):
            if header not in inputs:
                inputs.append(header)
        return inputs

    def clean_paths(self) -> List[Path]:
        """Every file 'clean' removes: targets, objects and dependency files."""
        paths = list(self.targets)
        for record in self.objects.values():
            paths.extend([record.path, record.dependency_file, record.raw_dependency_file])
        return paths

    def to_dict(self) -> Dict[str, object]:
        return {
            'linker': self.linker,
            'targets': [target.to_dict() for target in self.targets.values()],
            'objects': [record.to_dict() for record in self.objects.values()],
            'compile_rules': [
                {'extension': rule.extension, 'language': rule.language.value,
                 'compiler': rule.compiler}
                for rule in self.compile_rules
            ],
            'compile_actions': {
                path.as_posix(): action.command for path, action in self.compile_actions.items()
            },
            'target_actions': {
                path.as_posix(): {'kind': action.kind.value, 'command': action.command}
                for path, action in self.target_actions.items()
            },
            'dependency_edges': {
                path.as_posix(): [header.as_posix() for header in headers]
                for path, headers in self.dependency_edges.items()
            },
        }
