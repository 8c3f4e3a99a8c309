"""
FileSystem abstraction for Activity Clock.

PURPOSE: Injectable file operations for the JSON documents and the local state file.
AI CONTEXT: Tests swap in the in-memory MockFileSystem from tests/conftest.py.

USAGE:
    state = LocalState(filesystem=RealFileSystem())
    storage = StorageManager(storage_dir="/test", filesystem=mock_fs)
"""

from __future__ import annotations

import os
from typing import Protocol

__all__ = ["FileSystem", "RealFileSystem"]


class FileSystem(Protocol):
    """
    The five file operations storage and local state need.

    Business context: Documents are saved by writing '<file>.tmp' and
    renaming it over '<file>', so rename must replace an existing target.
    Read and write raise the usual OSError subclasses (FileNotFoundError,
    PermissionError); callers decide whether that is fatal.
    """

    def exists(self, path: str) -> bool: ...

    def makedirs(self, path: str, exist_ok: bool = False) -> None: ...

    def read_text(self, path: str, encoding: str = "utf-8") -> str: ...

    def write_text(self, path: str, content: str, encoding: str = "utf-8") -> None: ...

    def rename(self, src: str, dst: str) -> None:
        """Move src to dst, replacing dst when it exists."""
        ...


class RealFileSystem:
    """Disk-backed FileSystem."""

    def exists(self, path: str) -> bool:
        return os.path.exists(path)

    def makedirs(self, path: str, exist_ok: bool = False) -> None:
        os.makedirs(path, exist_ok=exist_ok)

    def read_text(self, path: str, encoding: str = "utf-8") -> str:
        with open(path, encoding=encoding) as f:
            return f.read()

    def write_text(self, path: str, content: str, encoding: str = "utf-8") -> None:
        """Write content; the parent directory must already exist."""
        with open(path, "w", encoding=encoding) as f:
            f.write(content)

    def rename(self, src: str, dst: str) -> None:
        os.replace(src, dst)
