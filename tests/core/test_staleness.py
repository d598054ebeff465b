# SPDX-License-Identifier: MIT
"""Tests for portc.core.staleness."""

import os
from pathlib import Path

from portc.core.staleness import last_modified, needs_compile, needs_rebuild


def touch(path: Path, mtime: float) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.touch()
    os.utime(path, (mtime, mtime))
    return path


class TestLastModified:
    def test_missing_file(self, tmp_path: Path):
        assert last_modified(tmp_path / "missing") == 0

    def test_existing_file(self, tmp_path: Path):
        assert last_modified(touch(tmp_path / "a", 1000)) == 1000


class TestNeedsRebuild:
    def test_no_prerequisites_missing_output(self, tmp_path: Path):
        assert needs_rebuild(tmp_path / "out", [])

    def test_no_prerequisites_existing_output(self, tmp_path: Path):
        assert not needs_rebuild(touch(tmp_path / "out", 1000), [])

    def test_missing_output(self, tmp_path: Path):
        src = touch(tmp_path / "a.c", 1000)
        assert needs_rebuild(tmp_path / "a.o", [src])

    def test_older_prerequisites(self, tmp_path: Path):
        src = touch(tmp_path / "a.c", 1000)
        out = touch(tmp_path / "a.o", 2000)
        assert not needs_rebuild(out, [src])

    def test_newer_prerequisite(self, tmp_path: Path):
        old = touch(tmp_path / "a.h", 1000)
        new = touch(tmp_path / "a.c", 3000)
        out = touch(tmp_path / "a.o", 2000)
        assert needs_rebuild(out, [old, new])

    def test_equal_mtime_is_stale(self, tmp_path: Path):
        src = touch(tmp_path / "a.c", 2000)
        out = touch(tmp_path / "a.o", 2000)
        assert needs_rebuild(out, [src])

    def test_missing_prerequisite_counts_as_old(self, tmp_path: Path):
        out = touch(tmp_path / "a.o", 2000)
        assert not needs_rebuild(out, [tmp_path / "gone.h"])


class TestNeedsCompile:
    def test_header_change_forces_compile(self, tmp_path: Path):
        src = touch(tmp_path / "a.c", 1000)
        header = touch(tmp_path / "a.h", 1000)
        obj = touch(tmp_path / "a.o", 2000)
        (tmp_path / "a.d").write_text(f"{obj}: {src} {header}\n")

        assert not needs_compile(src, obj)
        touch(header, 3000)
        assert needs_compile(src, obj)

    def test_without_depfile(self, tmp_path: Path):
        src = touch(tmp_path / "a.c", 1000)
        obj = touch(tmp_path / "a.o", 2000)
        assert not needs_compile(src, obj)
        touch(src, 3000)
        assert needs_compile(src, obj)
