"""CLI utility functions for modgraph.

This module provides the pieces shared by the `all`, `clean` and `graph`
commands:
- Logging setup
- Reporting resolution and execution errors, with a hint per error type
- Checking the project directory and root module before resolving
"""

import logging
import sys
import traceback
from pathlib import Path
from typing import Dict, Optional, Type

from modgraph.build.action_executor import ActionExecutionError
from modgraph.build.module_graph import ModuleCycleError
from modgraph.build.source_resolver import SOURCE_EXTENSIONS, SourceValidationError
from modgraph.build.target_registry import DuplicateTargetError
from modgraph.config.module_loader import ModuleLoadError
from modgraph.errors import ModgraphError

EXIT_BUILD_ERROR = 1
EXIT_BAD_PROJECT = 2
EXIT_INTERRUPTED = 130

ERROR_HINTS: Dict[Type[ModgraphError], str] = {
    ModuleLoadError: "Check the 'submodules' entries and the descriptor's INI syntax.",
    ModuleCycleError: "Remove the submodule reference that closes the loop.",
    SourceValidationError: f"Recognized source extensions: {' '.join(SOURCE_EXTENSIONS)}",
    DuplicateTargetError: "Declare each target in one module; submodules inherit it.",
    ActionExecutionError: "Re-run with -v to see every command.",
}


def configure_logging(verbose: bool = False) -> None:
    """Send log records to stderr; DEBUG when verbose, WARNING otherwise.

    Args:
        verbose: Whether to show debug output
    """
    logger = logging.getLogger()
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)

    for handler in list(logger.handlers):
        if getattr(handler, "_modgraph", False):
            logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(logging.Formatter("modgraph %(levelname)s: %(message)s"))
    console_handler._modgraph = True  # type: ignore[attr-defined]
    logger.addHandler(console_handler)


def error_hint(error: ModgraphError) -> Optional[str]:
    """Hint for the most specific known type of error, if any."""
    for error_type in type(error).__mro__:
        if error_type in ERROR_HINTS:
            return ERROR_HINTS[error_type]
    return None


class ErrorFormatter:
    """Prints command outcomes with ANSI colours."""

    RED = "\033[1;31m"
    GREEN = "\033[1;32m"
    YELLOW = "\033[1;33m"
    RESET = "\033[0m"

    @staticmethod
    def _colour(colour: str, text: str) -> str:
        return f"{colour}{text}{ErrorFormatter.RESET}"

    @staticmethod
    def print_failure(title: str, details: str, hint: Optional[str] = None) -> None:
        """Print a failed command's title, the error details and an optional hint.

        Args:
            title: What failed (e.g. "Build failed!")
            details: Error message
            hint: What to look at next
        """
        print()
        print(ErrorFormatter._colour(ErrorFormatter.RED, f"✗ {title}"))
        print()
        print(details)
        if hint:
            print(f"hint: {hint}")
        print()

    @staticmethod
    def print_success(message: str) -> None:
        print()
        print(ErrorFormatter._colour(ErrorFormatter.GREEN, f"✓ {message}"))

    @staticmethod
    def handle_build_error(title: str, error: ModgraphError) -> None:
        """Report a resolution or execution error and exit with status 1."""
        ErrorFormatter.print_failure(title, str(error), error_hint(error))
        sys.exit(EXIT_BUILD_ERROR)

    @staticmethod
    def handle_keyboard_interrupt() -> None:
        """Exit with 130 after Ctrl-C; finished objects stay for the next run."""
        print()
        print(ErrorFormatter._colour(
            ErrorFormatter.YELLOW,
            "✗ Interrupted. Objects compiled so far are kept and reused next run.",
        ))
        sys.exit(EXIT_INTERRUPTED)

    @staticmethod
    def handle_unexpected_error(error: Exception, verbose: bool = False) -> None:
        """Report an error that is not a ModgraphError and exit with status 1.

        Args:
            error: The exception to report
            verbose: Whether to print the traceback
        """
        details = f"{type(error).__name__}: {error}"
        if verbose:
            details += "\n\n" + traceback.format_exc()
        ErrorFormatter.print_failure(
            "Internal error",
            details,
            None if verbose else "Re-run with -v for a traceback.",
        )
        sys.exit(EXIT_BUILD_ERROR)


class PathValidator:
    """Checks the project layout before any module is loaded."""

    @staticmethod
    def _reject(message: str) -> None:
        print(ErrorFormatter._colour(ErrorFormatter.RED, f"✗ Error: {message}"))
        sys.exit(EXIT_BAD_PROJECT)

    @staticmethod
    def validate_project(project_dir: Path, root_module: Path) -> None:
        """Exit with status 2 unless project_dir holds the root module descriptor.

        Args:
            project_dir: Directory given on the command line
            root_module: Root descriptor, relative to project_dir
        """
        if not project_dir.exists():
            PathValidator._reject(f"Project directory does not exist: {project_dir}")
        if not project_dir.is_dir():
            PathValidator._reject(f"Project path is not a directory: {project_dir}")
        if not (project_dir / root_module).is_file():
            PathValidator._reject(
                f"Root module not found: {project_dir / root_module} "
                f"(use -f to name another descriptor)"
            )
