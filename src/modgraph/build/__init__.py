"""
Build graph components for modgraph.

This module provides the resolver and its collaborators:
- Scoped traversal context
- Target accumulation and classification
- Source validation and per-object flag binding
- Archive/link/compile action synthesis
- Header dependency sanitization and inclusion
- Action execution (all/clean)
"""

from .action_executor import ActionExecutionError, ActionExecutor, ExecutionResult
from .build_graph import ActionKind, BuildGraph, CompileAction, CompileRule, TargetAction
from .context import ModuleContext, StackContext, StackContextError
from .dependency_file import (
    DependencyIncluder,
    DependencySanitizer,
    parse_dependency_descriptor,
    sanitize_dependency_listing,
)
from .module_graph import ModuleCycleError, ModuleGraphResolver
from .rule_synthesizer import RuleSynthesizer
from .source_resolver import Language, ObjectRecord, SourceResolver, SourceValidationError
from .target_registry import DuplicateTargetError, Target, TargetKind, TargetRegistry

__all__ = [
    'ActionExecutionError',
    'ActionExecutor',
    'ExecutionResult',
    'ActionKind',
    'BuildGraph',
    'CompileAction',
    'CompileRule',
    'TargetAction',
    'ModuleContext',
    'StackContext',
    'StackContextError',
    'DependencyIncluder',
    'DependencySanitizer',
    'parse_dependency_descriptor',
    'sanitize_dependency_listing',
    'ModuleCycleError',
    'ModuleGraphResolver',
    'RuleSynthesizer',
    'Language',
    'ObjectRecord',
    'SourceResolver',
    'SourceValidationError',
    'DuplicateTargetError',
    'Target',
    'TargetKind',
    'TargetRegistry',
]
