"""
Module graph resolution.

This module walks the module tree and produces the build graph. It
integrates all resolution components:
- Module loading (module_loader)
- Project configuration (project_config)
- Target accumulation (target_registry)
- Source validation and flag binding (source_resolver)
- Action synthesis (rule_synthesizer)
- Header dependency inclusion (dependency_file)

The walk is depth-first and pre-order, in declaration order. Each module is
processed with the context of its enclosing module: a module that declares a
target makes it the ambient target for itself and its submodules; a module
without a target contributes to the nearest ancestor's target.
"""

import logging
from pathlib import Path
from typing import Dict, Mapping, Optional

from ..config.module_loader import DEFAULT_ROOT_MODULE, ModuleDescriptor, ModuleLoader
from ..config.project_config import ProjectConfig
from ..errors import ModgraphError
from .build_graph import BuildGraph
from .context import ModuleContext
from .dependency_file import DependencyIncluder
from .rule_synthesizer import RuleSynthesizer
from .source_resolver import ObjectRecord, SourceResolver
from .target_registry import TargetRegistry


class ModuleCycleError(ModgraphError):
    """Raised when a module includes itself, directly or transitively."""
    pass


class _Traversal:
    """State accumulated during one walk of the module tree."""

    def __init__(self, loader: ModuleLoader, registry: TargetRegistry,
                 resolver: SourceResolver):
        self.loader = loader
        self.registry = registry
        self.resolver = resolver
        self.objects: Dict[Path, ObjectRecord] = {}

    def visit(self, module: ModuleDescriptor, context: ModuleContext) -> None:
        declared = None
        if module.target:
            declared = self.registry.declare_target(module.target).path

        context = context.enter(module.path, module.directory, declared)
        target = context.current_target
        logging.debug(
            f"{'  ' * (context.depth - 1)}Module {module.path.as_posix()} "
            f"(target: {target.as_posix() if target else 'none'})"
        )

        records = self.resolver.resolve(module)
        for record in records:
            self.objects[record.path] = record

        if target is None:
            if records or module.libs or module.prereqs:
                logging.warning(
                    f"Module {module.path.as_posix()} contributes to no target; "
                    + "declare a target in it or an enclosing module"
                )
        else:
            if records:
                self.registry.attach_objects(target, [record.path for record in records])
            if module.libs:
                self.registry.attach_libs(target, module.libs)
            if module.prereqs:
                self.registry.attach_prereqs(target, module.prereqs)

        for reference in module.submodules:
            child_path = self.loader.resolve_submodule(module, reference)
            if child_path in context.modules:
                chain = ' -> '.join(p.as_posix() for p in context.modules)
                raise ModuleCycleError(
                    f"Module {child_path.as_posix()} includes itself: {chain} -> {child_path.as_posix()}"
                )
            self.visit(self.loader.load(child_path), context)


class ModuleGraphResolver:
    """
    Resolves a module tree into a BuildGraph.

    Example usage:
        resolver = ModuleGraphResolver(Path("."))
        graph = resolver.resolve()
        for target in graph.targets.values():
            print(target.path, target.kind.value)
    """

    def __init__(
        self,
        project_dir: Path,
        root_module: Path = Path(DEFAULT_ROOT_MODULE),
        config: Optional[ProjectConfig] = None,
        overrides: Optional[Mapping[str, object]] = None,
        include_dependencies: bool = True
    ):
        """
        Initialize resolver.

        Args:
            project_dir: Project root; all graph paths are relative to it
            root_module: Root descriptor, relative to project_dir
            config: Base configuration (defaults to the environment)
            overrides: Command-line overrides applied after the root
                module's [project] section
            include_dependencies: Merge existing dependency descriptors
        """
        self.project_dir = Path(project_dir)
        self.root_module = Path(root_module)
        self.base_config = config if config is not None else ProjectConfig.from_environment()
        self.overrides = dict(overrides or {})
        self.include_dependencies = include_dependencies
        self.config = self.base_config

    def resolve(self) -> BuildGraph:
        """
        Walk the whole module tree and build the graph.

        Returns:
            Fully resolved BuildGraph

        Raises:
            ModuleLoadError: If a descriptor is missing or malformed
            ModuleCycleError: If a module includes itself
            SourceValidationError: If any source has an unsupported extension
            DuplicateTargetError: If a target is declared twice
        """
        loader = ModuleLoader(self.project_dir)
        root = loader.load(self.root_module)

        self.config = self.base_config.with_section(root.project).with_overrides(**self.overrides)

        registry = TargetRegistry(self.config.target_dir)
        resolver = SourceResolver(self.config.build_dir)
        traversal = _Traversal(loader, registry, resolver)
        traversal.visit(root, ModuleContext())

        synthesizer = RuleSynthesizer(self.config)
        graph = synthesizer.synthesize(registry, traversal.objects, resolver.has_cxx_sources)

        if self.include_dependencies:
            DependencyIncluder(self.project_dir).include(graph)

        logging.info(
            f"Resolved {len(graph.targets)} targets and {len(graph.objects)} objects "
            f"from {self.root_module.as_posix()}"
        )
        return graph
