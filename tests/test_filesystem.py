"""Tests for filesystem module."""

from __future__ import annotations

from pathlib import Path

import pytest

from activity_clock.filesystem import RealFileSystem
from conftest import MockFileSystem


class TestMockFileSystem:
    """Tests for the in-memory MockFileSystem used across the suite."""

    def test_initial_state_empty(self) -> None:
        assert MockFileSystem().list_files() == []

    def test_write_creates_parents(self) -> None:
        """Verifies write_text registers every parent directory.

        Business context:
        Storage writes '/dir/file.json.tmp' and renames it, so the mock
        must behave like a disk where the parent exists after a write.
        """
        fs = MockFileSystem()
        fs.write_text("/a/b/c.json", "{}")

        assert fs.is_file("/a/b/c.json")
        assert fs.is_dir("/a/b")
        assert fs.is_dir("/a")

    def test_read_missing_raises(self) -> None:
        with pytest.raises(FileNotFoundError):
            MockFileSystem().read_text("/nope")

    def test_makedirs_exist_ok(self) -> None:
        fs = MockFileSystem()
        fs.makedirs("/x")
        fs.makedirs("/x", exist_ok=True)
        with pytest.raises(FileExistsError):
            fs.makedirs("/x")

    def test_rename_moves_content(self) -> None:
        fs = MockFileSystem()
        fs.write_text("/d/f.tmp", "data")
        fs.rename("/d/f.tmp", "/d/f")
        assert fs.get_file("/d/f") == "data"
        assert fs.get_file("/d/f.tmp") is None

    def test_failure_injection(self) -> None:
        fs = MockFileSystem()
        fs.set_read_only("/ro.json")
        with pytest.raises(PermissionError):
            fs.write_text("/ro.json", "x")
        fs.fail_writes = True
        with pytest.raises(OSError):
            fs.write_text("/other.json", "x")


class TestRealFileSystem:
    """Tests for RealFileSystem against a temporary directory."""

    def test_write_read_round_trip(self, tmp_path: Path) -> None:
        fs = RealFileSystem()
        path = str(tmp_path / "state.json")

        fs.write_text(path, '{"k": "é"}')

        assert fs.exists(path)
        assert fs.read_text(path) == '{"k": "é"}'

    def test_makedirs_and_exists(self, tmp_path: Path) -> None:
        fs = RealFileSystem()
        target = str(tmp_path / "a" / "b")
        assert not fs.exists(target)
        fs.makedirs(target)
        fs.makedirs(target, exist_ok=True)
        assert fs.exists(target)

    def test_rename_replaces_destination(self, tmp_path: Path) -> None:
        """Verifies rename overwrites an existing target file.

        Business context:
        Atomic saves rename a temp file over the live document, which
        already exists after the first save.
        """
        fs = RealFileSystem()
        src = tmp_path / "doc.json.tmp"
        dst = tmp_path / "doc.json"
        src.write_text("new")
        dst.write_text("old")

        fs.rename(str(src), str(dst))

        assert dst.read_text() == "new"
        assert not src.exists()

    def test_read_missing_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            RealFileSystem().read_text(str(tmp_path / "missing"))
