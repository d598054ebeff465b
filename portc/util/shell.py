# SPDX-License-Identifier: MIT
"""Running compiler and linker command lines.

Commands are complete shell command lines produced by expanding a
template, so they are run through the platform shell. The resolved
port environment is layered over the current process environment.
"""

from __future__ import annotations

import logging
import os
import subprocess
import sys
from collections.abc import Mapping
from typing import Protocol

from portc.core.errors import ShellError

logger = logging.getLogger(__name__)


class ShellRunner(Protocol):
    """Callable that runs a command line and returns its output."""

    def __call__(
        self, command: str, *, env: Mapping[str, str], capture: bool = True
    ) -> str: ...


def sh(
    command: str,
    *,
    env: Mapping[str, str],
    capture: bool = True,
) -> str:
    """Run command and return its combined stdout and stderr.

    Args:
        command: Shell command line.
        env: Variables to set on top of the current environment.
        capture: If False, output is also echoed as it arrives.

    Returns:
        The command output.

    Raises:
        ShellError: If the command exits with a non-zero status or
            cannot be started.
    """
    full_env = os.environ.copy()
    full_env.update(env)
    logger.debug("sh: %s", command)

    try:
        process = subprocess.Popen(
            command,
            shell=True,
            env=full_env,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
        )
    except OSError as e:
        raise ShellError(command, -1, str(e)) from e

    lines: list[str] = []
    with process:
        for line in process.stdout or ():
            lines.append(line)
            if not capture:
                sys.stdout.write(line)
                sys.stdout.flush()

    output = "".join(lines)
    if process.returncode != 0:
        raise ShellError(command, process.returncode, output)
    return output
