# SPDX-License-Identifier: MIT
"""Command-line interface for portc."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from portc.configure.config import Configure
from portc.configure.project import DEFAULT_PROJECT_FILE, build_specs, load_project
from portc.core.compilation import clean, compile_and_link
from portc.core.environment import construct
from portc.core.errors import PortcError
from portc.core.spec import PortSpec

# Set up logging
logger = logging.getLogger("portc")


def setup_logging(verbose: bool = False, debug: bool = False) -> None:
    """Configure logging based on verbosity level."""
    if debug:
        level = logging.DEBUG
        fmt = "%(levelname)s: %(name)s: %(message)s"
    elif verbose:
        level = logging.INFO
        fmt = "%(levelname)s: %(message)s"
    else:
        level = logging.WARNING
        fmt = "%(levelname)s: %(message)s"

    logging.basicConfig(level=level, format=fmt)


def _load_specs(args: argparse.Namespace) -> list[PortSpec]:
    project = load_project(args.file)
    config = Configure(build_dir=args.build_dir)
    runtime = config.find_erlang(erl=args.erl)
    config.save()
    return build_specs(project, runtime)


def cmd_compile(args: argparse.Namespace) -> int:
    """Compile and link every port spec of the project."""
    specs = _load_specs(args)
    if not specs:
        logger.info("No port specs for this platform")
        return 0
    relative_to = Path(args.file).parent if args.relative else None
    linked = compile_and_link(specs, relative_to=relative_to)
    logger.info("Linked %d target(s)", len(linked))
    return 0


def cmd_clean(args: argparse.Namespace) -> int:
    """Remove targets, objects and dependency files."""
    removed = clean(_load_specs(args))
    logger.info("Removed %d file(s)", len(removed))
    return 0


def cmd_env(args: argparse.Namespace) -> int:
    """Print the resolved port environment."""
    project = load_project(args.file)
    config = Configure(build_dir=args.build_dir)
    runtime = config.find_erlang(erl=args.erl)
    config.save()

    env = construct(runtime, project.port_env, defines=project.defines)
    for name, value in env.items():
        print(f"{name}={value}")
    return 0


def add_common_args(parser: argparse.ArgumentParser) -> None:
    """Add common arguments to a parser."""
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    parser.add_argument("--debug", action="store_true", help="Debug output")
    parser.add_argument(
        "-B",
        "--build-dir",
        default="_build",
        help="Directory for the configuration cache (default: _build)",
    )
    parser.add_argument(
        "-f",
        "--file",
        default=DEFAULT_PROJECT_FILE,
        help=f"Project file (default: {DEFAULT_PROJECT_FILE})",
    )
    parser.add_argument("--erl", help="Path to the erl executable")


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the portc CLI."""
    parser = argparse.ArgumentParser(
        prog="portc",
        description="Compile Erlang port drivers and executables.",
        epilog="Run 'portc <command> --help' for command-specific help.",
    )
    from portc import __version__

    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # portc compile
    compile_parser = subparsers.add_parser(
        "compile", help="Compile and link out-of-date ports"
    )
    add_common_args(compile_parser)
    compile_parser.add_argument(
        "--relative",
        action="store_true",
        help="Report failing sources relative to the project directory",
    )
    compile_parser.set_defaults(func=cmd_compile)

    # portc clean
    clean_parser = subparsers.add_parser(
        "clean", help="Remove targets, objects and dependency files"
    )
    add_common_args(clean_parser)
    clean_parser.set_defaults(func=cmd_clean)

    # portc env
    env_parser = subparsers.add_parser("env", help="Print the resolved environment")
    add_common_args(env_parser)
    env_parser.set_defaults(func=cmd_env)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    setup_logging(args.verbose, args.debug)

    try:
        result: int = args.func(args)
    except PortcError as e:
        logger.error("%s", e)
        return 1
    return result


if __name__ == "__main__":
    sys.exit(main())
