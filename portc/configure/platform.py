# SPDX-License-Identifier: MIT
"""Erlang runtime and platform identification.

Ports are built against a specific Erlang runtime: its word size and
system architecture select the platform-specific defaults, and its
erl_interface and ERTS directories feed the default compiler and
linker flags.
"""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any


@dataclass(frozen=True)
class ErlangRuntime:
    """Facts about the Erlang runtime ports are compiled for.

    Attributes:
        root_dir: Root directory of the installation (code:root_dir()).
        erts_version: ERTS version, e.g. "13.2".
        otp_release: OTP release, e.g. "26".
        system_architecture: e.g. "x86_64-pc-linux-gnu" or "win32".
        wordsize: External word size in bits, e.g. "64".
        erl_interface_dir: erl_interface application directory, or None
            if the runtime ships without it.
    """

    root_dir: str
    erts_version: str
    otp_release: str
    system_architecture: str
    wordsize: str
    erl_interface_dir: str | None = None

    @property
    def arch(self) -> str:
        """Platform id used to filter arch-conditional entries.

        Example: "26-x86_64-pc-linux-gnu-64".
        """
        return f"{self.otp_release}-{self.system_architecture}-{self.wordsize}"

    @property
    def erts_include_dir(self) -> Path:
        return Path(self.root_dir) / f"erts-{self.erts_version}" / "include"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ErlangRuntime:
        return cls(
            root_dir=data["root_dir"],
            erts_version=data["erts_version"],
            otp_release=data["otp_release"],
            system_architecture=data["system_architecture"],
            wordsize=data["wordsize"],
            erl_interface_dir=data.get("erl_interface_dir") or None,
        )


def is_arch(pattern: str, arch: str) -> bool:
    """Return True if the regular expression pattern occurs in arch."""
    return re.search(pattern, arch) is not None
