# SPDX-License-Identifier: MIT
"""Loading the project file.

A project is described by a portc.toml file:

    defines = ["NDEBUG"]

    port_env = [
        ["CFLAGS", "$CFLAGS -O2"],
        ["darwin", "LDFLAGS", "$LDFLAGS -flat_namespace"],
    ]

    [[port_specs]]
    target = "priv/my_nif.so"
    sources = ["c_src/*.c"]

    [[port_specs]]
    arch = "linux"
    target = "priv/helper"
    sources = ["c_src/helper/*.cc"]
    env = [["LDFLAGS", "$LDFLAGS -lrt"]]

port_env entries are (name, value) or (arch pattern, name, value);
a spec's env entries use the same shapes and are applied after the
project's port_env. Source patterns are globs relative to the
directory holding the project file.
"""

from __future__ import annotations

import glob
import logging
import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, cast

from portc.configure.platform import ErlangRuntime, is_arch
from portc.core.environment import construct
from portc.core.errors import ConfigureError
from portc.core.spec import PortSpec, TargetType
from portc.core.variables import EnvEntry, entry_from_tuple

logger = logging.getLogger(__name__)

DEFAULT_PROJECT_FILE = "portc.toml"


@dataclass
class PortSpecConfig:
    """A port spec as written in the project file.

    Attributes:
        target: Target path.
        sources: Source glob patterns.
        arch: Only build where this pattern matches the platform id.
        env: Extra entries for this spec's environment.
        type: Explicit "drv" or "exe"; inferred from target if None.
    """

    target: str
    sources: list[str]
    arch: str | None = None
    env: list[EnvEntry] = field(default_factory=list)
    type: TargetType | None = None


@dataclass
class ProjectConfig:
    root_dir: Path
    port_env: list[EnvEntry] = field(default_factory=list)
    defines: list[str] = field(default_factory=list)
    port_specs: list[PortSpecConfig] = field(default_factory=list)


def _entries(value: Any, where: str) -> list[EnvEntry]:
    if not isinstance(value, list):
        raise ConfigureError(f"{where} must be a list of entries")
    return [entry_from_tuple(item) for item in value]


def _string_list(value: Any, where: str) -> list[str]:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigureError(f"{where} must be a list of strings")
    return list(value)


def _port_spec(data: Any, index: int) -> PortSpecConfig:
    where = f"port_specs[{index}]"
    if not isinstance(data, dict):
        raise ConfigureError(f"{where} must be a table")
    target = data.get("target")
    if not isinstance(target, str) or not target:
        raise ConfigureError(f"{where}.target must be a non-empty string")
    spec_type = data.get("type")
    if spec_type not in (None, "drv", "exe"):
        raise ConfigureError(f"{where}.type must be 'drv' or 'exe'")
    arch = data.get("arch")
    if arch is not None and not isinstance(arch, str):
        raise ConfigureError(f"{where}.arch must be a string")
    return PortSpecConfig(
        target=target,
        sources=_string_list(data.get("sources", []), f"{where}.sources"),
        arch=arch,
        env=_entries(data.get("env", []), f"{where}.env"),
        type=cast("TargetType | None", spec_type),
    )


def parse_project(data: Mapping[str, Any], root_dir: Path | str = ".") -> ProjectConfig:
    """Build a ProjectConfig from parsed project file data.

    Raises:
        ConfigureError: If the data has the wrong shape.
    """
    specs = data.get("port_specs", [])
    if not isinstance(specs, list):
        raise ConfigureError("port_specs must be an array of tables")
    return ProjectConfig(
        root_dir=Path(root_dir),
        port_env=_entries(data.get("port_env", []), "port_env"),
        defines=_string_list(data.get("defines", []), "defines"),
        port_specs=[_port_spec(spec, i) for i, spec in enumerate(specs)],
    )


def load_project(path: Path | str = DEFAULT_PROJECT_FILE) -> ProjectConfig:
    """Load a project file.

    Raises:
        ConfigureError: If the file is missing, is not valid TOML or
            has the wrong shape.
    """
    path = Path(path)
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except FileNotFoundError:
        raise ConfigureError(f"project file not found: {path}") from None
    except tomllib.TOMLDecodeError as e:
        raise ConfigureError(f"{path}: {e}") from e
    return parse_project(data, path.parent)


def expand_sources(root_dir: Path, patterns: list[str]) -> list[str]:
    """Expand source glob patterns relative to root_dir.

    Matches of each pattern are sorted; patterns keep their order.
    """
    sources: list[str] = []
    for pattern in patterns:
        matches = sorted(glob.glob(os.path.join(root_dir, pattern)))
        if not matches:
            logger.warning("No sources match %s", pattern)
        for match in matches:
            path = os.path.normpath(match)
            if path not in sources:
                sources.append(path)
    return sources


def build_specs(
    project: ProjectConfig,
    runtime: ErlangRuntime,
    *,
    environ: Mapping[str, str] | None = None,
) -> list[PortSpec]:
    """Turn the project's spec entries into PortSpecs for runtime.

    Entries whose arch pattern does not match the runtime are skipped.
    Each remaining spec gets its own resolved environment.

    Raises:
        ConfigureError: If a spec has no sources or an unknown target type.
    """
    specs: list[PortSpec] = []
    for entry in project.port_specs:
        if entry.arch is not None and not is_arch(entry.arch, runtime.arch):
            logger.debug("Skipping %s on %s", entry.target, runtime.arch)
            continue
        sources = expand_sources(project.root_dir, entry.sources)
        if not sources:
            raise ConfigureError(f"no sources for {entry.target}")
        env = construct(
            runtime,
            project.port_env,
            entry.env,
            defines=project.defines,
            environ=environ,
        )
        target = os.path.normpath(os.path.join(project.root_dir, entry.target))
        specs.append(PortSpec.create(target, sources, env, type=entry.type))
    return specs
