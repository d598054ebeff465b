# SPDX-License-Identifier: MIT
"""Port specs: what to compile, and into what.

A port spec names a target (a driver shared object or an executable),
the sources it is built from and the environment the compiler and
linker run with. Objects are written next to their sources.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from portc.core.errors import ConfigureError

TargetType = Literal["drv", "exe"]

_TARGET_TYPES: dict[str, TargetType] = {
    ".so": "drv",
    ".dll": "drv",
    "": "exe",
    ".exe": "exe",
}


def target_type(target: str | Path) -> TargetType:
    """Infer the artifact type of target from its extension.

    Raises:
        ConfigureError: For extensions other than .so, .dll, .exe or none.
    """
    suffix = Path(target).suffix
    try:
        return _TARGET_TYPES[suffix]
    except KeyError:
        raise ConfigureError(
            f"cannot infer target type of {target}: "
            f"expected one of .so, .dll, .exe or no extension"
        ) from None


def object_path(source: str | Path) -> str:
    """Return the object file a source compiles to."""
    return str(Path(source).with_suffix(".o"))


@dataclass(frozen=True)
class PortSpec:
    """One unit of compilation.

    Attributes:
        sources: Source files, compiled in order.
        target: Output path of the driver or executable.
        type: "drv" or "exe", selects the compile templates.
        objects: Object files linked into target.
        environment: Resolved variables for the commands.
    """

    sources: tuple[str, ...]
    target: str
    type: TargetType
    objects: tuple[str, ...]
    environment: Mapping[str, str] = field(default_factory=dict, compare=False)

    @classmethod
    def create(
        cls,
        target: str | Path,
        sources: Iterable[str | Path],
        environment: Mapping[str, str],
        type: TargetType | None = None,
    ) -> PortSpec:
        """Create a spec, deriving objects and type from the paths."""
        source_list = tuple(str(source) for source in sources)
        return cls(
            sources=source_list,
            target=str(target),
            type=type or target_type(target),
            objects=tuple(object_path(source) for source in source_list),
            environment=dict(environment),
        )
