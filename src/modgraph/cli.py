"""
Command-line interface for modgraph.

This module provides the `modgraph` CLI tool for resolving and building a
module tree:
    modgraph [all]     Build every declared target (default)
    modgraph clean     Remove targets, objects and dependency descriptors
    modgraph graph     Print the resolved build graph as JSON
"""

import argparse
import json
import sys
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from modgraph import __version__
from modgraph.build import ActionExecutor, ModuleGraphResolver
from modgraph.cli_utils import ErrorFormatter, PathValidator, configure_logging
from modgraph.config.module_loader import DEFAULT_ROOT_MODULE
from modgraph.errors import ModgraphError


@dataclass
class CommandArgs:
    """Arguments shared by every command."""

    project_dir: Path
    root_module: Path = Path(DEFAULT_ROOT_MODULE)
    jobs: Optional[int] = None
    verbose: bool = False
    progress: bool = True
    overrides: Dict[str, object] = field(default_factory=dict)


def _resolver(args: CommandArgs, include_dependencies: bool = True) -> ModuleGraphResolver:
    return ModuleGraphResolver(
        project_dir=args.project_dir,
        root_module=args.root_module,
        overrides=args.overrides,
        include_dependencies=include_dependencies,
    )


def all_command(args: CommandArgs) -> None:
    """Build every declared target.

    Examples:
        modgraph                       # Build the project in the current directory
        modgraph all path/to/project   # Build another project
        modgraph all -j 4 -v           # Four compile jobs, verbose output
    """
    try:
        start_time = time.time()
        graph = _resolver(args).resolve()

        if args.verbose:
            print(f"Linker driver: {graph.linker}")
            print(f"Targets: {', '.join(t.as_posix() for t in graph.default_goal) or 'none'}")

        executor = ActionExecutor(
            args.project_dir,
            jobs=args.jobs,
            show_progress=args.progress,
            verbose=args.verbose,
        )
        result = executor.build(graph)
        build_time = time.time() - start_time

        if not result.compiled and not result.realized:
            print("Nothing to be done for 'all'.")
        else:
            ErrorFormatter.print_success("Build successful!")
            for target in result.realized:
                print(f"  {target.as_posix()}")
        print(f"Build time: {build_time:.2f}s")
        sys.exit(0)

    except ModgraphError as e:
        ErrorFormatter.handle_build_error("Build failed!", e)
    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e, args.verbose)


def clean_command(args: CommandArgs) -> None:
    """Remove every target, object and dependency descriptor.

    Examples:
        modgraph clean
        modgraph clean path/to/project -v
    """
    try:
        graph = _resolver(args, include_dependencies=False).resolve()
        executor = ActionExecutor(args.project_dir, show_progress=False, verbose=args.verbose)
        removed = executor.clean(graph)
        print(f"Removed {len(removed)} files.")
        sys.exit(0)

    except ModgraphError as e:
        ErrorFormatter.handle_build_error("Clean failed!", e)
    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e, args.verbose)


def graph_command(args: CommandArgs) -> None:
    """Print the resolved build graph as JSON."""
    try:
        graph = _resolver(args).resolve()
        print(json.dumps(graph.to_dict(), indent=2))
        sys.exit(0)

    except ModgraphError as e:
        ErrorFormatter.handle_build_error("Resolution failed!", e)
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e, args.verbose)


COMMANDS = {
    "all": all_command,
    "clean": clean_command,
    "graph": graph_command,
}


def _common_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "project_dir",
        nargs="?",
        type=Path,
        default=Path.cwd(),
        help="Project directory (default: current directory)",
    )
    common.add_argument(
        "-f",
        "--file",
        dest="root_module",
        type=Path,
        default=Path(DEFAULT_ROOT_MODULE),
        help=f"Root module descriptor, relative to the project (default: {DEFAULT_ROOT_MODULE})",
    )
    common.add_argument("--build-dir", default=None, help="Build output directory (default: build)")
    common.add_argument("--target-dir", default=None, help="Target output directory (default: .)")
    common.add_argument("--cc", default=None, help="C compiler")
    common.add_argument("--cxx", default=None, help="C++ compiler")
    common.add_argument("--ar", default=None, help="Archiver")
    common.add_argument("--lnk", default=None, help="Linker driver (default: CXX if any C++ source, else CC)")
    common.add_argument(
        "-j",
        "--jobs",
        type=int,
        default=None,
        help="Parallel compile jobs (default: number of CPUs)",
    )
    common.add_argument(
        "--no-progress",
        action="store_true",
        help="Do not show a progress bar",
    )
    common.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show commands and debug output",
    )
    return common


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="modgraph",
        description="modgraph - hierarchical module build system for C/C++",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"modgraph {__version__}",
    )

    common = _common_parser()
    subparsers = parser.add_subparsers(dest="command", help="Command to run")
    subparsers.add_parser("all", parents=[common], help="Build every declared target (default)")
    subparsers.add_parser("clean", parents=[common], help="Remove all build products")
    subparsers.add_parser("graph", parents=[common], help="Print the resolved build graph as JSON")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """modgraph - hierarchical module build system."""
    argv = list(sys.argv[1:] if argv is None else argv)
    parser = build_parser()

    # 'all' is the default goal
    if not argv or argv[0] not in COMMANDS and argv[0] not in ("-h", "--help", "--version"):
        argv.insert(0, "all")

    parsed_args = parser.parse_args(argv)
    configure_logging(parsed_args.verbose)

    PathValidator.validate_project(parsed_args.project_dir, parsed_args.root_module)

    args = CommandArgs(
        project_dir=parsed_args.project_dir,
        root_module=parsed_args.root_module,
        jobs=parsed_args.jobs,
        verbose=parsed_args.verbose,
        progress=not parsed_args.no_progress,
        overrides={
            "build_dir": parsed_args.build_dir,
            "target_dir": parsed_args.target_dir,
            "cc": parsed_args.cc,
            "cxx": parsed_args.cxx,
            "ar": parsed_args.ar,
            "lnk": parsed_args.lnk,
        },
    )
    COMMANDS[parsed_args.command](args)


if __name__ == "__main__":
    main()
