# SPDX-License-Identifier: MIT
"""Configure context for portc.

The Configure class locates the programs and the Erlang runtime a
build needs and caches what it found in the build directory, so later
runs do not have to start an Erlang VM again.
"""

from __future__ import annotations

import json
import logging
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from portc.configure.platform import ErlangRuntime
from portc.core.errors import ConfigureError, ToolNotFoundError

logger = logging.getLogger(__name__)

# Prints one key=value line per runtime fact; erl_interface is empty
# when the runtime ships without it.
_ERLANG_QUERY = (
    "io:format(\"root_dir=~ts~n\", [code:root_dir()]),"
    "io:format(\"erts_version=~ts~n\", [erlang:system_info(version)]),"
    "io:format(\"otp_release=~ts~n\", [erlang:system_info(otp_release)]),"
    "io:format(\"system_architecture=~ts~n\","
    " [erlang:system_info(system_architecture)]),"
    "io:format(\"wordsize=~b~n\", [8 * erlang:system_info({wordsize, external})]),"
    "io:format(\"erl_interface_dir=~ts~n\","
    " [case code:lib_dir(erl_interface) of {error, _} -> \"\"; D -> D end]),"
    "halt()."
)


@dataclass
class ProgramInfo:
    """Information about a found program.

    Attributes:
        path: Path to the program executable.
    """

    path: Path


class Configure:
    """Context for locating tools and the Erlang runtime.

    Example:
        config = Configure(build_dir=Path("_build"))
        runtime = config.find_erlang()
        print(runtime.arch)
        config.save()

    Attributes:
        build_dir: Directory holding the cache file.
    """

    def __init__(
        self,
        *,
        build_dir: Path | str = "_build",
        cache_file: str = "portc_config.json",
    ) -> None:
        """Create a configure context.

        Args:
            build_dir: Directory for the cache.
            cache_file: Name of the cache file within build_dir.
        """
        self.build_dir = Path(build_dir)
        self._cache_file = cache_file
        self._cache: dict[str, Any] = {}

        self._load_cache()

    def _cache_path(self) -> Path:
        return self.build_dir / self._cache_file

    def _load_cache(self) -> None:
        cache_path = self._cache_path()
        if cache_path.exists():
            try:
                with open(cache_path) as f:
                    self._cache = json.load(f)
            except (json.JSONDecodeError, OSError):
                logger.warning("Ignoring unreadable cache %s", cache_path)
                self._cache = {}

    def save(self, path: Path | None = None) -> None:
        """Save the cache.

        Args:
            path: Optional path override for the cache file.
        """
        cache_path = path or self._cache_path()
        cache_path.parent.mkdir(parents=True, exist_ok=True)

        with open(cache_path, "w") as f:
            json.dump(self._cache, f, indent=2, default=str)
            f.write("\n")

    def set(self, key: str, value: Any) -> None:
        self._cache[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        return self._cache.get(key, default)

    def find_program(self, name: str) -> ProgramInfo | None:
        """Find a program on PATH, or return None."""
        cache_key = f"program:{name}"
        cached = self.get(cache_key)
        if cached and Path(cached["path"]).exists():
            return ProgramInfo(path=Path(cached["path"]))

        result = shutil.which(name)
        if result is None:
            return None

        found_path = Path(result)
        self.set(cache_key, {"path": str(found_path)})
        return ProgramInfo(path=found_path)

    def find_erlang(self, *, erl: Path | str | None = None) -> ErlangRuntime:
        """Return the Erlang runtime ports are built against.

        Uses the cached runtime if there is one, otherwise asks erl.

        Args:
            erl: The erl executable, defaults to erl on PATH.

        Raises:
            ToolNotFoundError: If erl cannot be found.
            ConfigureError: If erl fails or reports garbage.
        """
        cached = self.get("erlang")
        if cached and erl is None:
            return ErlangRuntime.from_dict(cached)

        if erl is None:
            program = self.find_program("erl")
            if program is None:
                raise ToolNotFoundError("erl")
            erl = program.path

        runtime = query_erlang(erl)
        logger.info("Found Erlang/OTP %s (%s)", runtime.otp_release, runtime.arch)
        self.set("erlang", runtime.to_dict())
        return runtime

    def __repr__(self) -> str:
        return f"Configure(build_dir={self.build_dir})"


def query_erlang(erl: Path | str) -> ErlangRuntime:
    """Ask the erl executable about its runtime.

    Raises:
        ConfigureError: If erl fails or its answer is incomplete.
    """
    cmd = [str(erl), "-noshell", "-eval", _ERLANG_QUERY]
    logger.debug("Running: %s", " ".join(cmd))
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=60)
    except (subprocess.TimeoutExpired, OSError) as e:
        raise ConfigureError(f"failed to run {erl}: {e}") from e
    if result.returncode != 0:
        raise ConfigureError(
            f"{erl} exited with status {result.returncode}: {result.stderr.strip()}"
        )

    facts: dict[str, str] = {}
    for line in result.stdout.splitlines():
        key, sep, value = line.partition("=")
        if sep:
            facts[key.strip()] = value.strip()
    try:
        return ErlangRuntime.from_dict(facts)
    except KeyError as e:
        raise ConfigureError(f"{erl} did not report {e.args[0]}") from None
