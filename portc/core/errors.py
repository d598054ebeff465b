# SPDX-License-Identifier: MIT
"""Custom exceptions for portc.

All portc exceptions inherit from PortcError. Every failure is fatal:
nothing in portc retries or continues after one of these is raised.
"""

from __future__ import annotations


class PortcError(Exception):
    """Base class for all portc exceptions.

    Attributes:
        message: The error message.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigureError(PortcError):
    """Error while configuring the build.

    Raised when the Erlang runtime cannot be located, the project
    file is invalid, or a target has an unknown type.
    """


class ToolNotFoundError(ConfigureError):
    """Required tool was not found.

    Attributes:
        tool: The name of the tool that was not found.
    """

    def __init__(self, tool: str) -> None:
        self.tool = tool
        super().__init__(f"tool not found: {tool}")


class ErlInterfaceNotFoundError(ConfigureError):
    """The erl_interface library directory could not be located.

    Attributes:
        subdir: The requested subdirectory ('include' or 'lib').
    """

    def __init__(self, subdir: str) -> None:
        self.subdir = subdir
        super().__init__(
            f"unable to find the erl_interface library ({subdir} directory)"
        )


class SubstitutionError(PortcError):
    """Error during variable substitution."""


class ExpansionLimitError(SubstitutionError):
    """Variable expansion did not settle within the pass limit.

    Attributes:
        max_passes: The number of passes that were attempted.
        pending: Names still changing when the limit was hit.
    """

    def __init__(self, max_passes: int, pending: list[str]) -> None:
        self.max_passes = max_passes
        self.pending = pending
        super().__init__(
            f"max. expansion reached for ENV vars after {max_passes} passes "
            f"(still expanding: {', '.join(pending)})"
        )


class DepfileError(PortcError):
    """Dependency file does not have the expected 'object: deps' shape.

    Attributes:
        path: The dependency file path.
    """

    def __init__(self, path: str, message: str) -> None:
        self.path = path
        super().__init__(f"{path}: {message}")


class BuildError(PortcError):
    """Error while compiling or linking."""


class CompileError(BuildError):
    """A source file failed to compile.

    Attributes:
        source: The source path as reported to the user.
        output: The compiler output, with source paths rewritten.
    """

    def __init__(self, source: str, output: str) -> None:
        self.source = source
        self.output = output
        super().__init__(f"failed to compile {source}")


class ShellError(PortcError):
    """A shell command exited with a non-zero status.

    Attributes:
        command: The command line that was run.
        returncode: Its exit status.
        output: Combined stdout/stderr of the command.
    """

    def __init__(self, command: str, returncode: int, output: str) -> None:
        self.command = command
        self.returncode = returncode
        self.output = output
        super().__init__(f"command failed with exit status {returncode}: {command}")
