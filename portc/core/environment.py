# SPDX-License-Identifier: MIT
"""Port environment resolution.

The environment a port is compiled with is built from four layers,
lowest precedence first:

1. the process environment (minus a few variables that belong to the
   enclosing build tool),
2. the built-in defaults from default_env(), which may extend
   inherited values ("-m64 $CFLAGS"),
3. compile-time defines, then the project's port_env entries,
4. extra entries, typically the per-spec env of a port spec.

Later layers win; a later entry can chain onto an earlier one with a
self-reference. The result maps every name to one fully expanded
value and is what the command templates are expanded against.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path

from portc.configure.platform import ErlangRuntime
from portc.core.errors import ErlInterfaceNotFoundError
from portc.core.variables import (
    DEFAULT_MAX_PASSES,
    Conditional,
    EnvEntry,
    Unconditional,
    apply_defaults,
    expand_all,
    filter_by_platform,
    merge_sequential,
)

logger = logging.getLogger(__name__)

# Exported by the enclosing build tool for its own dependency
# resolution; inheriting them would repeat them in every port.
DEFAULT_EXCLUDED_VARS = ("ERL_LIBS", "REBAR_DEPS_DIR")


def os_env(
    environ: Mapping[str, str] | None = None,
    exclude: Iterable[str] = DEFAULT_EXCLUDED_VARS,
) -> list[tuple[str, str]]:
    """Return the inheritable process environment as (name, value) pairs.

    Args:
        environ: Environment to read, defaults to os.environ.
        exclude: Names that are never inherited.
    """
    if environ is None:
        environ = os.environ
    excluded = set(exclude)
    # Drop variables without a name (win32)
    return [
        (name, value)
        for name, value in environ.items()
        if name and name not in excluded
    ]


def _erl_interface_dir(runtime: ErlangRuntime, subdir: str) -> str:
    if not runtime.erl_interface_dir:
        raise ErlInterfaceNotFoundError(subdir)
    return (Path(runtime.erl_interface_dir) / subdir).as_posix()


def default_env(runtime: ErlangRuntime) -> list[EnvEntry]:
    """Return the built-in template table for runtime.

    Raises:
        ErlInterfaceNotFoundError: If the runtime has no erl_interface.
    """
    erl_cflags = (
        f' -I"{_erl_interface_dir(runtime, "include")}"'
        f' -I"{runtime.erts_include_dir.as_posix()}" '
    )
    erl_ei_libdir = f'"{_erl_interface_dir(runtime, "lib")}"'

    return [
        Unconditional("CC", "cc"),
        Unconditional("CXX", "c++"),
        Unconditional(
            "DRV_CXX_TEMPLATE",
            "$CXX -c $CXXFLAGS $DRV_CFLAGS $PORT_IN_FILES -o $PORT_OUT_FILE",
        ),
        Unconditional(
            "DRV_CC_TEMPLATE",
            "$CC -c $CFLAGS $DRV_CFLAGS $PORT_IN_FILES -o $PORT_OUT_FILE",
        ),
        Unconditional(
            "DRV_LINK_TEMPLATE",
            "$CC $PORT_IN_FILES $LDFLAGS $DRV_LDFLAGS -o $PORT_OUT_FILE",
        ),
        Unconditional(
            "EXE_CXX_TEMPLATE",
            "$CXX -c $CXXFLAGS $EXE_CFLAGS $PORT_IN_FILES -o $PORT_OUT_FILE",
        ),
        Unconditional(
            "EXE_CC_TEMPLATE",
            "$CC -c $CFLAGS $EXE_CFLAGS $PORT_IN_FILES -o $PORT_OUT_FILE",
        ),
        Unconditional(
            "EXE_LINK_TEMPLATE",
            "$CC $PORT_IN_FILES $LDFLAGS $EXE_LDFLAGS -o $PORT_OUT_FILE",
        ),
        Unconditional("DRV_CFLAGS", "-g -Wall -fPIC -MMD $ERL_CFLAGS"),
        Unconditional("DRV_LDFLAGS", "-shared $ERL_LDFLAGS"),
        Unconditional("EXE_CFLAGS", "-g -Wall -fPIC -MMD $ERL_CFLAGS"),
        Unconditional("EXE_LDFLAGS", "$ERL_LDFLAGS"),
        Unconditional("ERL_CFLAGS", erl_cflags),
        Unconditional("ERL_EI_LIBDIR", erl_ei_libdir),
        Unconditional("ERL_LDFLAGS", " -L$ERL_EI_LIBDIR -lerl_interface -lei"),
        Unconditional("ERLANG_ARCH", runtime.wordsize),
        Unconditional("ERLANG_TARGET", runtime.arch),
        Conditional(
            "darwin",
            "DRV_LDFLAGS",
            "-bundle -flat_namespace -undefined suppress $ERL_LDFLAGS",
        ),
        # Solaris
        Conditional("solaris.*-64$", "CFLAGS", "-D_REENTRANT -m64 $CFLAGS"),
        Conditional("solaris.*-64$", "CXXFLAGS", "-D_REENTRANT -m64 $CXXFLAGS"),
        Conditional("solaris.*-64$", "LDFLAGS", "-m64 $LDFLAGS"),
        # Linux multiarch
        Conditional("linux.*-64$", "CFLAGS", "-m64 $CFLAGS"),
        Conditional("linux.*-64$", "CXXFLAGS", "-m64 $CXXFLAGS"),
        Conditional("linux.*-64$", "LDFLAGS", "$LDFLAGS"),
        # OS X Leopard, 64-bit
        Conditional("darwin9.*-64$", "CFLAGS", "-m64 $CFLAGS"),
        Conditional("darwin9.*-64$", "CXXFLAGS", "-m64 $CXXFLAGS"),
        Conditional("darwin9.*-64$", "LDFLAGS", "-arch x86_64 $LDFLAGS"),
        # OS X Snow Leopard to Mountain Lion, 32-bit
        Conditional("darwin1[0-2].*-32", "CFLAGS", "-m32 $CFLAGS"),
        Conditional("darwin1[0-2].*-32", "CXXFLAGS", "-m32 $CXXFLAGS"),
        Conditional("darwin1[0-2].*-32", "LDFLAGS", "-arch i386 $LDFLAGS"),
        # Windows (MSVC); DRV_* and EXE_* templates are identical
        Conditional("win32", "CC", "cl.exe"),
        Conditional("win32", "CXX", "cl.exe"),
        Conditional("win32", "LINKER", "link.exe"),
        Conditional(
            "win32",
            "DRV_CXX_TEMPLATE",
            "$CXX /c $CXXFLAGS $DRV_CFLAGS $PORT_IN_FILES /Fo$PORT_OUT_FILE",
        ),
        Conditional(
            "win32",
            "DRV_CC_TEMPLATE",
            "$CC /c $CFLAGS $DRV_CFLAGS $PORT_IN_FILES /Fo$PORT_OUT_FILE",
        ),
        Conditional(
            "win32",
            "DRV_LINK_TEMPLATE",
            "$LINKER $PORT_IN_FILES $LDFLAGS $DRV_LDFLAGS /OUT:$PORT_OUT_FILE",
        ),
        Conditional(
            "win32",
            "EXE_CXX_TEMPLATE",
            "$CXX /c $CXXFLAGS $EXE_CFLAGS $PORT_IN_FILES /Fo$PORT_OUT_FILE",
        ),
        Conditional(
            "win32",
            "EXE_CC_TEMPLATE",
            "$CC /c $CFLAGS $EXE_CFLAGS $PORT_IN_FILES /Fo$PORT_OUT_FILE",
        ),
        Conditional(
            "win32",
            "EXE_LINK_TEMPLATE",
            "$LINKER $PORT_IN_FILES $LDFLAGS $EXE_LDFLAGS /OUT:$PORT_OUT_FILE",
        ),
        # -I is accepted by cl.exe, so ERL_CFLAGS is shared
        Conditional(
            "win32",
            "ERL_LDFLAGS",
            " /LIBPATH:$ERL_EI_LIBDIR erl_interface.lib ei.lib",
        ),
        Conditional("win32", "DRV_CFLAGS", "/Zi /Wall $ERL_CFLAGS"),
        Conditional("win32", "DRV_LDFLAGS", "/DLL $ERL_LDFLAGS"),
    ]


def define_overrides(defines: Iterable[str] = ()) -> list[tuple[str, str]]:
    """Return the override that appends -D flags to ERL_CFLAGS."""
    flags = " ".join(f"-D{define}" for define in defines)
    return [("ERL_CFLAGS", f"$ERL_CFLAGS {flags}")]


def resolve(
    process_env: Iterable[tuple[str, str]],
    user_entries: Iterable[EnvEntry | Sequence[str]],
    extra_entries: Iterable[EnvEntry | Sequence[str]],
    platform_id: str,
    *,
    defaults: Iterable[EnvEntry | Sequence[str]],
    defines: Iterable[str] = (),
    max_passes: int = DEFAULT_MAX_PASSES,
) -> dict[str, str]:
    """Resolve the final variables of a port environment.

    Args:
        process_env: Inherited (name, value) pairs, see os_env().
        user_entries: The project's port_env entries.
        extra_entries: Additional entries, applied last.
        platform_id: Platform id matched by conditional entries.
        defaults: Built-in defaults, see default_env().
        defines: Preprocessor defines added to ERL_CFLAGS.
        max_passes: Bound on cross-reference expansion passes.

    Returns:
        Name to value mapping, sorted by name.

    Raises:
        ExpansionLimitError: On cyclic or runaway references.
    """
    filtered_defaults = filter_by_platform(defaults, platform_id)
    overrides = (
        define_overrides(defines)
        + filter_by_platform(user_entries, platform_id)
        + filter_by_platform(extra_entries, platform_id)
    )

    base_vars = apply_defaults(process_env, filtered_defaults)
    raw_vars = list(base_vars.items()) + overrides
    logger.debug(
        "Resolving %d variables with %d overrides for %s",
        len(base_vars),
        len(overrides),
        platform_id,
    )
    return expand_all(merge_sequential(raw_vars), max_passes)


def construct(
    runtime: ErlangRuntime,
    port_env: Iterable[EnvEntry | Sequence[str]] = (),
    extra_env: Iterable[EnvEntry | Sequence[str]] = (),
    *,
    defines: Iterable[str] = (),
    environ: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Resolve the port environment for runtime.

    Convenience wrapper around resolve() using the runtime's defaults
    and its arch string as the platform id.
    """
    return resolve(
        os_env(environ),
        port_env,
        extra_env,
        runtime.arch,
        defaults=default_env(runtime),
        defines=defines,
    )
