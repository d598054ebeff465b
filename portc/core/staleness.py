# SPDX-License-Identifier: MIT
"""Deciding whether an output is out of date."""

from __future__ import annotations

import os
from collections.abc import Iterable
from pathlib import Path

from portc.core.depfile import read_deps


def last_modified(path: str | Path) -> float:
    """Return the modification time of path, or 0 if it does not exist."""
    try:
        return os.path.getmtime(path)
    except OSError:
        return 0


def needs_rebuild(output: str | Path, prerequisites: Iterable[str | Path]) -> bool:
    """Return True if output must be rebuilt from prerequisites.

    With no prerequisites, output is rebuilt only when it is missing.
    Otherwise it is also rebuilt when the newest prerequisite is at
    least as new as output. Equal timestamps count as stale.
    """
    mtimes = [last_modified(path) for path in prerequisites]
    output_mtime = last_modified(output)
    if not mtimes or output_mtime == 0:
        return output_mtime == 0
    return max(mtimes) >= output_mtime


def needs_compile(source: str | Path, object_path: str | Path) -> bool:
    """Return True if source must be compiled to object_path.

    Headers listed in the object's dependency file count as
    prerequisites alongside the source itself.
    """
    return needs_rebuild(object_path, [source, *read_deps(object_path)])
