# SPDX-License-Identifier: MIT
"""Compiling and linking port specs.

A build runs in two phases. First every out-of-date source of every
spec is compiled, one at a time in declaration order; then every
target that is missing or depends on an object compiled in the first
phase is relinked. Finishing all compilation before any link decision
lets an object shared between specs relink each target that uses it.

The first failure stops the build. Nothing is retried and nothing that
was already produced is cleaned up.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path
from typing import Literal

from portc.core.depfile import depfile_path
from portc.core.errors import BuildError, CompileError, ConfigureError, ShellError
from portc.core.spec import PortSpec, TargetType, object_path, target_type
from portc.core.staleness import needs_compile, needs_rebuild
from portc.core.subst import expand_variable
from portc.util.shell import ShellRunner, sh

logger = logging.getLogger(__name__)

Compiler = Literal["CC", "CXX"]

CXX_EXTENSIONS = frozenset({".cc", ".cp", ".cxx", ".cpp", ".CPP", ".c++", ".C"})

_COMPILE_TEMPLATES: dict[tuple[TargetType, Compiler], str] = {
    ("drv", "CC"): "DRV_CC_TEMPLATE",
    ("drv", "CXX"): "DRV_CXX_TEMPLATE",
    ("exe", "CC"): "EXE_CC_TEMPLATE",
    ("exe", "CXX"): "EXE_CXX_TEMPLATE",
}

_LINK_TEMPLATES: dict[TargetType, str] = {
    "drv": "DRV_LINK_TEMPLATE",
    "exe": "EXE_LINK_TEMPLATE",
}


def compiler_for(source: str | Path) -> Compiler:
    """Return the compiler variable for source, chosen by extension."""
    if Path(source).suffix in CXX_EXTENSIONS:
        return "CXX"
    return "CC"


def select_compile_template(type: TargetType, compiler: Compiler) -> str:
    return _COMPILE_TEMPLATES[(type, compiler)]


def select_link_template(target: str | Path, type: TargetType | None = None) -> str:
    """Return the link template for target, chosen by its extension.

    type is used when the extension does not tell the target type.
    """
    try:
        return _LINK_TEMPLATES[target_type(target)]
    except ConfigureError:
        if type is None:
            raise
        return _LINK_TEMPLATES[type]


def expand_command(
    template_name: str,
    env: Mapping[str, str],
    in_files: str,
    out_file: str,
) -> str:
    """Expand a command template with its input and output files.

    Args:
        template_name: Template variable, e.g. "DRV_CC_TEMPLATE".
        env: Resolved port environment holding the template.
        in_files: Replaces $PORT_IN_FILES.
        out_file: Replaces $PORT_OUT_FILE.

    Raises:
        BuildError: If env has no such template.
    """
    try:
        template = env[template_name]
    except KeyError:
        raise BuildError(f"undefined command template: {template_name}") from None
    command = expand_variable(template, "PORT_IN_FILES", in_files)
    return expand_variable(command, "PORT_OUT_FILE", out_file)


def _reported_path(source: str, relative_to: str | Path | None) -> str:
    if relative_to is None:
        return os.path.abspath(source)
    return os.path.relpath(os.path.abspath(source), relative_to)


def _exec_compiler(
    source: str,
    command: str,
    env: Mapping[str, str],
    runner: ShellRunner,
    relative_to: str | Path | None,
) -> None:
    try:
        output = runner(command, env=env, capture=True)
    except ShellError as e:
        reported = _reported_path(source, relative_to)
        error = e.output.replace(source, reported)
        print(f"Compiling {reported}")
        print(error, end="")
        raise CompileError(reported, error) from e
    print(f"Compiling {source}")
    print(output, end="")


def compile_sources(
    specs: Iterable[PortSpec],
    *,
    runner: ShellRunner = sh,
    relative_to: str | Path | None = None,
) -> list[str]:
    """Compile every out-of-date source of specs.

    Args:
        specs: Specs to compile, in order.
        runner: Runs a command line, see portc.util.shell.sh().
        relative_to: Report failing sources relative to this directory
            instead of as absolute paths.

    Returns:
        The objects that were compiled, in order.

    Raises:
        CompileError: On the first source that fails to compile.
    """
    new_objects: list[str] = []
    for spec in specs:
        for source in spec.sources:
            obj = object_path(source)
            if not needs_compile(source, obj):
                logger.debug("%s is up to date", obj)
                continue
            template = select_compile_template(spec.type, compiler_for(source))
            command = expand_command(template, spec.environment, source, obj)
            _exec_compiler(source, command, spec.environment, runner, relative_to)
            new_objects.append(obj)
    return new_objects


def link_targets(
    specs: Sequence[PortSpec],
    new_objects: Iterable[str],
    *,
    runner: ShellRunner = sh,
) -> list[str]:
    """Relink every target that is missing or uses a new object.

    Declared objects that were not compiled in this run never force a
    relink on their own.

    Returns:
        The targets that were linked, in order.

    Raises:
        ShellError: If a link command fails.
    """
    for spec in specs:
        Path(spec.target).parent.mkdir(parents=True, exist_ok=True)

    fresh = set(new_objects)
    linked: list[str] = []
    for spec in specs:
        changed = [obj for obj in spec.objects if obj in fresh]
        if not needs_rebuild(spec.target, changed):
            logger.debug("%s is up to date", spec.target)
            continue
        logger.info("Linking %s", spec.target)
        command = expand_command(
            select_link_template(spec.target, spec.type),
            spec.environment,
            " ".join(spec.objects),
            spec.target,
        )
        runner(command, env=spec.environment, capture=False)
        linked.append(spec.target)
    return linked


def compile_and_link(
    specs: Sequence[PortSpec],
    *,
    runner: ShellRunner = sh,
    relative_to: str | Path | None = None,
) -> list[str]:
    """Bring every target of specs up to date.

    Returns:
        The targets that were linked.
    """
    new_objects = compile_sources(specs, runner=runner, relative_to=relative_to)
    return link_targets(specs, new_objects, runner=runner)


def clean(specs: Iterable[PortSpec]) -> list[str]:
    """Remove the targets, objects and dependency files of specs.

    Returns:
        The paths that were removed.
    """
    removed: list[str] = []
    for spec in specs:
        paths = [
            spec.target,
            *spec.objects,
            *(str(depfile_path(obj)) for obj in spec.objects),
        ]
        for path in paths:
            try:
                os.remove(path)
            except FileNotFoundError:
                continue
            logger.info("Removed %s", path)
            removed.append(path)
    return removed
