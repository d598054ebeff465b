# SPDX-License-Identifier: MIT
"""
portc: compiles Erlang port drivers and executables.

portc resolves the compiler environment of each port spec from
built-in defaults, the process environment and project overrides,
then compiles out-of-date sources and relinks out-of-date targets.
"""

from __future__ import annotations

__version__ = "0.1.0"

# Re-export commonly used names for convenient imports
from portc.core.compilation import clean, compile_and_link  # noqa: E402
from portc.core.environment import construct, resolve  # noqa: E402
from portc.core.spec import PortSpec  # noqa: E402

__all__ = [
    # Version
    "__version__",
    # Environment
    "construct",
    "resolve",
    # Building
    "PortSpec",
    "compile_and_link",
    "clean",
]
