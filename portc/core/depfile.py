# SPDX-License-Identifier: MIT
"""Reading compiler-generated dependency files.

Compiling with -MMD leaves a make rule next to each object:

    c_src/foo.o: c_src/foo.c c_src/foo.h \\
      c_src/util.h

Compilers without such a flag (MSVC) leave nothing, in which case no
header dependencies are known and only the source itself is tracked.
"""

from __future__ import annotations

import re
from pathlib import Path

from portc.core.errors import DepfileError

# Escaped line continuations, or any other run of whitespace
_SEPARATOR = re.compile(r"\s*\\(?:\r\n|\r|\n)\s*|\s+")


def depfile_path(object_path: str | Path) -> Path:
    """Return the dependency file written alongside object_path."""
    return Path(object_path).with_suffix(".d")


def parse_deps(object_path: str | Path, content: str) -> list[str]:
    """Parse the dependencies of object_path out of a dependency file.

    Raises:
        DepfileError: If content does not start with "<object_path>: ".
    """
    prefix = f"{object_path}: "
    if not content.startswith(prefix):
        raise DepfileError(
            str(depfile_path(object_path)),
            f"expected dependencies of {object_path}",
        )
    rest = content[len(prefix) :]
    return list(dict.fromkeys(dep for dep in _SEPARATOR.split(rest) if dep))


def read_deps(object_path: str | Path) -> list[str]:
    """Return the dependencies recorded for object_path.

    A missing dependency file means no dependencies are known and
    yields an empty list.

    Raises:
        DepfileError: If the file is malformed or not valid UTF-8.
    """
    path = depfile_path(object_path)
    try:
        content = path.read_text(encoding="utf-8")
    except OSError:
        return []
    except UnicodeDecodeError as e:
        raise DepfileError(str(path), f"cannot decode: {e.reason}") from e
    return parse_deps(object_path, content)
