"""
Source validation and object derivation.

This module handles:
- Validating module sources against the recognized C and C++ extensions
- Deriving one object file per source under the module's output directory
- Rejecting distinct sources that would share one object file
- Binding the module's compiler flags, defines and include directories to
  each object at resolution time
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Dict, List, Optional, Tuple

from ..config.module_loader import ModuleDescriptor
from ..errors import ModgraphError

OBJECT_SUFFIX = '.o'
DEPENDENCY_SUFFIX = '.P'
RAW_DEPENDENCY_SUFFIX = '.d'


class Language(Enum):
    """Language class of a source file."""

    C = 'c'
    CXX = 'cxx'


C_SOURCE_EXTENSIONS = ('.c',)
CXX_SOURCE_EXTENSIONS = ('.C', '.cc', '.cp', '.cpp', '.CPP', '.cxx', '.c++')

SOURCE_EXTENSIONS: Dict[str, Language] = {
    **{ext: Language.C for ext in C_SOURCE_EXTENSIONS},
    **{ext: Language.CXX for ext in CXX_SOURCE_EXTENSIONS},
}


class SourceValidationError(ModgraphError):
    """Raised when a module lists sources that cannot be compiled.

    Attributes:
        module: Descriptor of the offending module
        sources: The offending source paths
    """

    def __init__(self, module: Path, sources: List[str],
                 problem: str = "Unsupported source file(s)"):
        self.module = module
        self.sources = sources
        super().__init__(
            f"{problem} in module {module.as_posix()} [{' '.join(sources)}]"
        )


def source_language(source: str) -> Optional[Language]:
    """Language of a source path, or None if its extension is not recognized."""
    return SOURCE_EXTENSIONS.get(PurePosixPath(source).suffix)


def object_path(output_dir: Path, source: str) -> Path:
    """
    Object file identity for a source.

    Args:
        output_dir: Module output directory (build dir + module directory)
        source: Source path relative to the module directory

    Returns:
        output_dir/source with the extension replaced by '.o'
    """
    return Path(output_dir) / PurePosixPath(source).with_suffix(OBJECT_SUFFIX)


@dataclass(frozen=True)
class ObjectRecord:
    """An object file and the module-scoped flags bound to it."""

    path: Path
    source: Path
    language: Language
    cflags: Tuple[str, ...] = ()
    cxxflags: Tuple[str, ...] = ()
    defines: Tuple[str, ...] = ()
    include_flags: Tuple[str, ...] = ()

    @property
    def dependency_file(self) -> Path:
        """Sanitized dependency descriptor kept next to the object."""
        return self.path.with_suffix(DEPENDENCY_SUFFIX)

    @property
    def raw_dependency_file(self) -> Path:
        """Listing written by the compiler's -MD option."""
        return self.path.with_suffix(RAW_DEPENDENCY_SUFFIX)

    @property
    def language_flags(self) -> List[str]:
        return list(self.cflags if self.language is Language.C else self.cxxflags)

    def to_dict(self) -> Dict[str, object]:
        return {
            'path': self.path.as_posix(),
            'source': self.source.as_posix(),
            'language': self.language.value,
            'flags': self.language_flags,
            'defines': list(self.defines),
            'includes': list(self.include_flags),
        }


class SourceResolver:
    """
    Turns module sources into object records.

    The resolver remembers which languages it has seen across every module,
    which decides the linker driver for the whole project, and which source
    produced each object path.
    """

    def __init__(self, build_dir: Path):
        """
        Initialize source resolver.

        Args:
            build_dir: Root build-output directory
        """
        self.build_dir = Path(build_dir)
        self.languages_seen: set = set()
        self._object_sources: Dict[Path, Path] = {}

    @property
    def has_cxx_sources(self) -> bool:
        return Language.CXX in self.languages_seen

    def output_dir(self, module: ModuleDescriptor) -> Path:
        """Directory the module's objects are written to."""
        return self.build_dir / module.directory

    def validate(self, module: ModuleDescriptor) -> List[Tuple[str, Language]]:
        """
        Check every source of a module against the recognized extensions.

        Returns:
            (source, language) pairs in source order

        Raises:
            SourceValidationError: Naming the module and each bad source
        """
        valid: List[Tuple[str, Language]] = []
        bad_sources: List[str] = []
        for src in module.sources:
            language = source_language(src)
            if language is None:
                bad_sources.append(src)
            else:
                valid.append((src, language))

        if bad_sources:
            raise SourceValidationError(module.path, bad_sources)
        return valid

    def _check_object_collisions(self, module: ModuleDescriptor,
                                 pairs: List[Tuple[Path, Path]]) -> None:
        # The same source seen again (a shared submodule) is fine.
        owners = dict(self._object_sources)
        for obj, source in pairs:
            owner = owners.setdefault(obj, source)
            if owner != source:
                raise SourceValidationError(
                    module.path,
                    [owner.as_posix(), source.as_posix()],
                    problem=f"Sources share the object file {obj.as_posix()}",
                )

    def resolve(self, module: ModuleDescriptor) -> List[ObjectRecord]:
        """
        Derive the object records of a module.

        Args:
            module: Loaded module descriptor

        Returns:
            One ObjectRecord per source, in source order

        Raises:
            SourceValidationError: If any source has an unsupported extension,
                or two distinct sources would produce the same object file
        """
        sources = self.validate(module)

        output_dir = self.output_dir(module)
        pairs = [(object_path(output_dir, src), module.directory / src) for src, _ in sources]
        self._check_object_collisions(module, pairs)

        defines = tuple(f'-D{define}' for define in module.defines)
        includes = tuple(f'-I{inc}' for inc in module.include_dirs)

        records = []
        for (_, language), (obj, source) in zip(sources, pairs):
            self.languages_seen.add(language)
            self._object_sources[obj] = source
            records.append(ObjectRecord(
                path=obj,
                source=source,
                language=language,
                cflags=tuple(module.cflags),
                cxxflags=tuple(module.cxxflags),
                defines=defines,
                include_flags=includes,
            ))
        return records
