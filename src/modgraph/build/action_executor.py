"""Action Executor.

This module realizes a resolved BuildGraph by running its actions with
subprocess.

Design:
    - Compiles stale objects concurrently (thread pool, one compiler process
      per worker)
    - Sanitizes each object's dependency listing right after it compiles
    - Archives and links targets in prerequisite order
    - Treats a deleted header as "object is stale", never as an error
    - Removes every produced file on clean
"""

import logging
import subprocess
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Set

import psutil
from tqdm import tqdm

from ..errors import ModgraphError
from .build_graph import BuildGraph, CompileAction, TargetAction
from .dependency_file import DependencySanitizer


class ActionExecutionError(ModgraphError):
    """Raised when an action fails or cannot be run."""
    pass


@dataclass
class ExecutionResult:
    """What a build run did."""

    compiled: List[Path] = field(default_factory=list)
    realized: List[Path] = field(default_factory=list)
    up_to_date: List[Path] = field(default_factory=list)


def default_jobs() -> int:
    """Number of parallel compile jobs: one per logical CPU."""
    return psutil.cpu_count(logical=True) or 1


class ActionExecutor:
    """Runs compile, archive and link actions.

    This class handles:
    - Deciding which outputs are stale from file modification times
    - Running compile actions in parallel
    - Running target actions in prerequisite order
    - Removing build products
    """

    def __init__(
        self,
        project_dir: Path,
        jobs: Optional[int] = None,
        show_progress: bool = True,
        verbose: bool = False
    ):
        """Initialize action executor.

        Args:
            project_dir: Directory commands run in; graph paths are relative to it
            jobs: Maximum concurrent compile processes (default: CPU count)
            show_progress: Whether to show a progress bar while compiling
            verbose: Whether to echo every command
        """
        self.project_dir = Path(project_dir)
        self.jobs = jobs or default_jobs()
        self.show_progress = show_progress
        self.verbose = verbose
        self.sanitizer = DependencySanitizer(self.project_dir)

    def build(self, graph: BuildGraph, goals: Optional[Iterable[Path]] = None) -> ExecutionResult:
        """Realize targets.

        Args:
            graph: Resolved build graph
            goals: Targets to realize (default: every target)

        Returns:
            ExecutionResult listing compiled objects and realized targets

        Raises:
            ActionExecutionError: If any action fails or an input has no rule
        """
        result = ExecutionResult()
        order = self._target_order(graph, list(goals) if goals is not None else graph.default_goal)

        objects: List[Path] = []
        for target in order:
            for obj in graph.targets[target].objects:
                if obj not in objects:
                    objects.append(obj)

        stale = [graph.compile_actions[obj] for obj in objects if self._object_is_stale(graph, obj)]
        self._compile_all(stale)
        result.compiled.extend(action.output for action in stale)

        for target in order:
            action = graph.target_actions[target]
            if self._target_is_stale(action, set(result.compiled) | set(result.realized)):
                self._run_target_action(action)
                result.realized.append(target)
            else:
                result.up_to_date.append(target)

        logging.info(
            f"Compiled {len(result.compiled)} objects, realized {len(result.realized)} targets, "
            f"{len(result.up_to_date)} up to date"
        )
        return result

    def clean(self, graph: BuildGraph) -> List[Path]:
        """Remove every target, object and dependency descriptor.

        Returns:
            Paths that existed and were removed
        """
        removed = []
        for path in graph.clean_paths():
            full_path = self.project_dir / path
            if full_path.is_file() or full_path.is_symlink():
                full_path.unlink()
                removed.append(path)
                if self.verbose:
                    print(f"Removed {path.as_posix()}")
        logging.info(f"Removed {len(removed)} build products")
        return removed

    def _target_order(self, graph: BuildGraph, goals: List[Path]) -> List[Path]:
        """Goals and their in-graph prerequisites, prerequisites first."""
        order: List[Path] = []
        visiting: Set[Path] = set()

        def visit(target: Path, needed_by: Optional[Path]) -> None:
            if target in order:
                return
            if target not in graph.targets:
                if needed_by is None:
                    raise ActionExecutionError(f"No rule to make target '{target.as_posix()}'")
                return
            if target in visiting:
                raise ActionExecutionError(
                    f"Circular prerequisite: {target.as_posix()} depends on itself"
                )
            visiting.add(target)
            for prereq in graph.targets[target].prereqs:
                visit(prereq, target)
            visiting.discard(target)
            order.append(target)

        for goal in goals:
            visit(Path(goal), None)
        return order

    def _mtime(self, path: Path) -> Optional[float]:
        full_path = self.project_dir / path
        try:
            return full_path.stat().st_mtime
        except FileNotFoundError:
            return None

    def _object_is_stale(self, graph: BuildGraph, obj: Path) -> bool:
        out_mtime = self._mtime(obj)
        source = graph.objects[obj].source

        for dependency in graph.object_inputs(obj):
            dep_mtime = self._mtime(dependency)
            if dep_mtime is None:
                if dependency == source:
                    raise ActionExecutionError(
                        f"No rule to make '{source.as_posix()}', needed by '{obj.as_posix()}'"
                    )
                logging.debug(f"{dependency.as_posix()} vanished; rebuilding {obj.as_posix()}")
                return True
            if out_mtime is not None and dep_mtime > out_mtime:
                return True
        return out_mtime is None

    def _target_is_stale(self, action: TargetAction, rebuilt: Set[Path]) -> bool:
        out_mtime = self._mtime(action.target)
        stale = out_mtime is None
        for dependency in action.inputs:
            dep_mtime = self._mtime(dependency)
            if dep_mtime is None:
                raise ActionExecutionError(
                    f"No rule to make '{dependency.as_posix()}', needed by '{action.target.as_posix()}'"
                )
            if dependency in rebuilt or (out_mtime is not None and dep_mtime > out_mtime):
                stale = True
        return stale

    def _compile_all(self, actions: List[CompileAction]) -> None:
        if not actions:
            return

        progress = tqdm(
            total=len(actions),
            desc="Compiling",
            unit="obj",
            disable=not self.show_progress,
        )
        try:
            with ThreadPoolExecutor(max_workers=self.jobs) as pool:
                futures = [pool.submit(self._compile_one, action) for action in actions]
                pending = set(futures)
                while pending:
                    done, pending = wait(pending, return_when=FIRST_EXCEPTION)
                    for future in done:
                        error = future.exception()
                        if error is not None:
                            for other in pending:
                                other.cancel()
                            raise error
                        progress.update(1)
        finally:
            progress.close()

    def _compile_one(self, action: CompileAction) -> Path:
        (self.project_dir / action.output).parent.mkdir(parents=True, exist_ok=True)
        self._run(action.command, f"Compilation failed for {action.source.as_posix()}")
        self.sanitizer.finalize(action.object)
        return action.output

    def _run_target_action(self, action: TargetAction) -> None:
        (self.project_dir / action.target).parent.mkdir(parents=True, exist_ok=True)
        if self.show_progress:
            verb = 'Archiving' if action.kind.value == 'archive' else 'Linking'
            print(f"{verb} {action.target.as_posix()}...")
        self._run(action.command, f"{action.kind.value.capitalize()} failed for {action.target.as_posix()}")

    def _run(self, command: List[str], failure: str) -> subprocess.CompletedProcess:
        if self.verbose:
            print(' '.join(command))
        logging.debug(f"Running: {' '.join(command)}")

        try:
            result = subprocess.run(
                command,
                cwd=str(self.project_dir),
                capture_output=True,
                text=True,
                check=False
            )
        except OSError as e:
            raise ActionExecutionError(f"{failure}: cannot run {command[0]}: {e}") from e

        if result.returncode != 0:
            error_msg = f"{failure}\n"
            error_msg += f"stderr: {result.stderr}\n"
            error_msg += f"stdout: {result.stdout}"
            raise ActionExecutionError(error_msg)

        if self.verbose and result.stderr:
            print(result.stderr)
        return result

