"""
Header dependency descriptors.

Compiling with -MD leaves a raw listing (foo.d) next to each object:

    build/src/foo.o: src/foo.c include/foo.h \\
      include/bar.h

This module handles:
- Sanitizing the listing into phony rules ("include/foo.h :") so that a
  deleted header makes the object stale instead of breaking the build
- Writing the sanitized descriptor (foo.P) and removing the raw listing
- Reading descriptors back and merging their headers into the build graph
"""

import logging
import re
from pathlib import Path
from typing import List, Optional

from .build_graph import BuildGraph
from .source_resolver import ObjectRecord

_COMMENT = re.compile(r'#.*')
_RULE_TARGET = re.compile(r'^[^:]*: *')
_CONTINUATION = re.compile(r' *\\$')
_UNESCAPED_SPACE = re.compile(r'(?<!\\)\s+')


def sanitize_dependency_listing(text: str) -> str:
    """
    Rewrite a raw dependency listing into phony rules.

    For every line: drop comments, drop the leading 'target:' part, drop a
    trailing line continuation, skip it if nothing is left, and append ' :'.

    Example:
        >>> sanitize_dependency_listing("a.o: a.c \\\\\\n a.h\\n")
        'a.c :\\n a.h :\\n'
    """
    lines = []
    for line in text.splitlines():
        line = _COMMENT.sub('', line)
        line = _RULE_TARGET.sub('', line, count=1)
        line = _CONTINUATION.sub('', line).rstrip()
        if not line.strip():
            continue
        lines.append(f'{line} :')
    return ''.join(f'{line}\n' for line in lines)


def _split_paths(text: str) -> List[str]:
    return [
        token.replace('\\ ', ' ').replace('$$', '$')
        for token in _UNESCAPED_SPACE.split(text.strip())
        if token
    ]


def parse_dependency_descriptor(text: str) -> List[Path]:
    """
    Collect every path a descriptor lists as a prerequisite.

    Handles both the original rule ('obj: src hdr ...', possibly continued
    over several lines) and the appended phony rules ('hdr :').

    Returns:
        Paths in first-seen order, without duplicates; rule targets excluded
    """
    joined = re.sub(r'\\\n', ' ', text)
    targets: List[str] = []
    paths: List[str] = []

    for line in joined.splitlines():
        line = _COMMENT.sub('', line)
        if ':' not in line:
            continue
        head, _, tail = line.partition(':')
        if tail.strip():
            targets.extend(_split_paths(head))
            candidates = _split_paths(tail)
        else:
            candidates = _split_paths(head)
        for candidate in candidates:
            if candidate not in paths:
                paths.append(candidate)

    return [Path(p) for p in paths if p not in targets]


class DependencySanitizer:
    """Turns the compiler's raw listing into a dependency descriptor."""

    def __init__(self, project_dir: Path):
        """
        Initialize sanitizer.

        Args:
            project_dir: Directory object paths are relative to
        """
        self.project_dir = Path(project_dir)

    def finalize(self, record: ObjectRecord) -> Optional[Path]:
        """
        Write the sanitized descriptor for a freshly compiled object.

        The descriptor holds the raw listing followed by one phony rule per
        listed file. The raw listing is removed afterwards.

        Args:
            record: Object that was just compiled

        Returns:
            Path of the descriptor, or None if the compiler left no listing
        """
        raw_path = self.project_dir / record.raw_dependency_file
        if not raw_path.exists():
            logging.debug(f"No dependency listing for {record.path.as_posix()}")
            return None

        raw = raw_path.read_text(encoding='utf-8')
        if raw and not raw.endswith('\n'):
            raw += '\n'

        descriptor = self.project_dir / record.dependency_file
        descriptor.write_text(raw + sanitize_dependency_listing(raw), encoding='utf-8')
        raw_path.unlink()
        return descriptor


class DependencyIncluder:
    """Merges existing dependency descriptors into a build graph."""

    def __init__(self, project_dir: Path):
        self.project_dir = Path(project_dir)

    def include(self, graph: BuildGraph) -> int:
        """
        Add header edges for every object with a descriptor.

        Objects without a descriptor (first build) are skipped silently.

        Args:
            graph: Graph to update in place

        Returns:
            Number of descriptors merged
        """
        merged = 0
        for path, record in graph.objects.items():
            descriptor = self.project_dir / record.dependency_file
            if not descriptor.is_file():
                continue

            listed = parse_dependency_descriptor(descriptor.read_text(encoding='utf-8'))
            edges = [p for p in listed if p != record.path and p != record.source]
            graph.dependency_edges[path] = edges
            merged += 1

        logging.debug(f"Included {merged} dependency descriptors")
        return merged
