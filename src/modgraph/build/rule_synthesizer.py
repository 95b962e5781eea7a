"""Rule Synthesizer.

This module turns the accumulated targets and objects into actions once the
whole module tree has been walked.

Design:
    - Archive targets get one 'ar r' action over their full object set
    - Executable targets get one link action through a single linker driver
      chosen for the whole project
    - Each recognized source extension gets one generic compile rule, which
      is instantiated for every object
"""

import logging
from pathlib import Path
from typing import Dict, Iterable, List

from ..config.project_config import ProjectConfig
from .build_graph import ActionKind, BuildGraph, CompileAction, CompileRule, TargetAction
from .source_resolver import SOURCE_EXTENSIONS, Language, ObjectRecord
from .target_registry import Target


class RuleSynthesizer:
    """Synthesizes archive, link and compile actions.

    This class handles:
    - Choosing the linker driver (LNK, else CXX if any C++ source, else CC)
    - Building archive and link command lines per target
    - Building compile rules and per-object compile commands
    """

    def __init__(self, config: ProjectConfig):
        """Initialize rule synthesizer.

        Args:
            config: Project-wide toolchain and flag settings
        """
        self.config = config

    def choose_linker(self, has_cxx_sources: bool) -> str:
        """Pick the linker driver for every executable in the project.

        Args:
            has_cxx_sources: Whether any module anywhere listed a C++ source

        Returns:
            The configured linker, or the C++ compiler if C++ sources exist,
            or the C compiler
        """
        if self.config.lnk:
            return self.config.lnk
        return self.config.cxx if has_cxx_sources else self.config.cc

    def compiler_for(self, language: Language) -> str:
        return self.config.cc if language is Language.C else self.config.cxx

    def compile_rules(self) -> List[CompileRule]:
        """One compile rule per recognized extension, C extensions first."""
        return [
            CompileRule(extension=ext, language=language, compiler=self.compiler_for(language))
            for ext, language in SOURCE_EXTENSIONS.items()
        ]

    def compile_command(self, rule: CompileRule, record: ObjectRecord) -> List[str]:
        """Command line compiling one object with its bound flags.

        Flag order: object language flags, global language flags, global
        include dirs, object include dirs, global defines, object defines.
        """
        global_flags = self.config.cflags if rule.language is Language.C else self.config.cxxflags
        return [
            rule.compiler,
            '-o', record.path.as_posix(),
            '-c', '-MD',
            *record.language_flags,
            *global_flags,
            *self.config.include_flags,
            *record.include_flags,
            *self.config.define_flags,
            *record.defines,
            record.source.as_posix(),
        ]

    def archive_action(self, target: Target) -> TargetAction:
        command = [self.config.ar, 'r', target.path.as_posix()]
        command.extend(obj.as_posix() for obj in target.objects)
        return TargetAction(
            target=target.path,
            kind=ActionKind.ARCHIVE,
            command=command,
            objects=list(target.objects),
            prereqs=list(target.prereqs),
        )

    def link_action(self, target: Target, linker: str) -> TargetAction:
        command = [linker, '-o', target.path.as_posix()]
        command.extend(target.ldflags)
        command.extend(self.config.ldflags)
        command.extend(obj.as_posix() for obj in target.objects)
        command.extend(target.ldlibs)
        return TargetAction(
            target=target.path,
            kind=ActionKind.LINK,
            command=command,
            objects=list(target.objects),
            prereqs=list(target.prereqs),
        )

    def synthesize(
        self,
        targets: Iterable[Target],
        objects: Dict[Path, ObjectRecord],
        has_cxx_sources: bool
    ) -> BuildGraph:
        """Produce the build graph.

        Args:
            targets: Every declared target, fully accumulated
            objects: Every object record keyed by its path
            has_cxx_sources: Whether the project contains any C++ source

        Returns:
            BuildGraph without dependency edges (see dependency_file)
        """
        linker = self.choose_linker(has_cxx_sources)
        rules = self.compile_rules()
        rule_by_ext = {rule.extension: rule for rule in rules}

        graph = BuildGraph(linker=linker, compile_rules=rules)

        for target in targets:
            graph.targets[target.path] = target
            if target.is_archive:
                graph.target_actions[target.path] = self.archive_action(target)
            else:
                graph.target_actions[target.path] = self.link_action(target, linker)

        for path, record in objects.items():
            graph.objects[path] = record
            rule = rule_by_ext[record.source.suffix]
            graph.compile_actions[path] = CompileAction(
                object=record,
                command=self.compile_command(rule, record),
            )

        logging.debug(
            f"Synthesized {len(graph.target_actions)} target actions and "
            f"{len(graph.compile_actions)} compile actions (linker: {linker})"
        )
        return graph
