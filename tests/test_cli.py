# SPDX-License-Identifier: MIT
"""Tests for portc CLI."""

from __future__ import annotations

import os
import shutil
import subprocess
import sys
from pathlib import Path

import pytest

from portc.cli import main, setup_logging
from portc.configure.platform import ErlangRuntime

RUNTIME = ErlangRuntime(
    root_dir="/usr/lib/erlang",
    erts_version="14.2",
    otp_release="26",
    system_architecture="x86_64-pc-linux-gnu",
    wordsize="64",
    erl_interface_dir="/usr/lib/erlang/lib/erl_interface-5.5",
)

has_cc = shutil.which("cc") is not None


@pytest.fixture
def fake_erlang(monkeypatch: pytest.MonkeyPatch) -> None:
    """Skip the erl query and start from an empty process environment."""
    monkeypatch.setattr(
        "portc.cli.Configure.find_erlang", lambda self, erl=None: RUNTIME
    )
    monkeypatch.setattr(
        "portc.core.environment.os_env", lambda environ=None, exclude=(): []
    )


class TestSetupLogging:
    """Tests for setup_logging function."""

    def test_setup_logging_normal(self) -> None:
        setup_logging(verbose=False, debug=False)

    def test_setup_logging_verbose(self) -> None:
        setup_logging(verbose=True, debug=False)

    def test_setup_logging_debug(self) -> None:
        setup_logging(verbose=False, debug=True)


class TestCLICommands:
    """Tests for CLI commands."""

    def test_portc_help(self) -> None:
        result = subprocess.run(
            [sys.executable, "-m", "portc.cli", "--help"],
            capture_output=True,
            text=True,
        )
        assert result.returncode == 0
        assert "portc" in result.stdout
        assert "compile" in result.stdout
        assert "clean" in result.stdout
        assert "env" in result.stdout

    def test_portc_version(self) -> None:
        result = subprocess.run(
            [sys.executable, "-m", "portc.cli", "--version"],
            capture_output=True,
            text=True,
        )
        assert result.returncode == 0
        assert "0.1.0" in result.stdout

    def test_no_command(self, capsys) -> None:
        assert main([]) == 1
        assert "usage: portc" in capsys.readouterr().out

    def test_missing_project_file(self, tmp_path: Path, caplog) -> None:
        result = main(["compile", "-f", str(tmp_path / "portc.toml")])
        assert result == 1
        assert "project file not found" in caplog.text

    def test_env(self, tmp_path: Path, fake_erlang, capsys) -> None:
        project = tmp_path / "portc.toml"
        project.write_text('defines = ["NDEBUG"]\nport_env = [["CC", "clang"]]\n')

        result = main(
            ["env", "-f", str(project), "-B", str(tmp_path / "_build")]
        )

        assert result == 0
        lines = capsys.readouterr().out.splitlines()
        assert "CC=clang" in lines
        assert "ERLANG_TARGET=26-x86_64-pc-linux-gnu-64" in lines
        assert lines == sorted(lines)
        assert any(
            line.startswith("ERL_CFLAGS=") and line.endswith("-DNDEBUG")
            for line in lines
        )

    def test_env_expansion_failure(self, tmp_path: Path, fake_erlang, caplog) -> None:
        project = tmp_path / "portc.toml"
        project.write_text('port_env = [["A", "$B"], ["B", "$A"]]\n')

        result = main(["env", "-f", str(project), "-B", str(tmp_path / "_build")])

        assert result == 1
        assert "max. expansion reached" in caplog.text

    def test_compile_without_specs(self, tmp_path: Path, fake_erlang) -> None:
        project = tmp_path / "portc.toml"
        project.write_text('[[port_specs]]\narch = "win32"\ntarget = "x.exe"\n')

        result = main(["compile", "-f", str(project), "-B", str(tmp_path / "_build")])

        assert result == 0

    @pytest.mark.skipif(not has_cc, reason="No C compiler available")
    def test_compile_and_clean(self, tmp_path: Path, fake_erlang, capsys) -> None:
        project = tmp_path / "portc.toml"
        project.write_text(
            'port_env = [["CC", "cc"], ["CFLAGS", ""], ["EXE_LDFLAGS", ""]]\n'
            "\n"
            "[[port_specs]]\n"
            'target = "priv/hello"\n'
            'sources = ["c_src/*.c"]\n'
        )
        source = tmp_path / "c_src" / "hello.c"
        source.parent.mkdir()
        source.write_text("int main(void) { return 0; }\n")
        os.utime(source, (1000, 1000))
        args = ["-f", str(project), "-B", str(tmp_path / "_build")]

        assert main(["compile", *args]) == 0
        assert (tmp_path / "priv" / "hello").exists()
        assert (tmp_path / "c_src" / "hello.o").exists()
        assert (tmp_path / "c_src" / "hello.d").exists()
        assert "Compiling" in capsys.readouterr().out

        # Up to date: nothing is compiled
        assert main(["compile", *args]) == 0
        assert "Compiling" not in capsys.readouterr().out

        assert main(["clean", *args]) == 0
        assert not (tmp_path / "priv" / "hello").exists()
        assert not (tmp_path / "c_src" / "hello.o").exists()
        assert not (tmp_path / "c_src" / "hello.d").exists()
        assert source.exists()

    @pytest.mark.skipif(not has_cc, reason="No C compiler available")
    def test_compile_error(self, tmp_path: Path, fake_erlang, capsys) -> None:
        project = tmp_path / "portc.toml"
        project.write_text(
            'port_env = [["CC", "cc"], ["CFLAGS", ""]]\n'
            "\n"
            "[[port_specs]]\n"
            'target = "priv/broken"\n'
            'sources = ["c_src/broken.c"]\n'
        )
        source = tmp_path / "c_src" / "broken.c"
        source.parent.mkdir()
        source.write_text("int main(void) { return }\n")

        args = ["-f", str(project), "-B", str(tmp_path / "_build"), "--relative"]
        assert main(["compile", *args]) == 1
        out = capsys.readouterr().out
        assert out.startswith(f"Compiling {Path('c_src', 'broken.c')}")
        assert not (tmp_path / "priv" / "broken").exists()
