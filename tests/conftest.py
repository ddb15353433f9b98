"""Shared fixtures for pyfoldersync tests."""

import os
from pathlib import Path
from typing import Callable, Optional

import pytest

from pyfoldersync.handles import LocalHandle


def write_file(
    root: Path, relative_path: str, content: str, mtime_ms: Optional[int] = None
) -> Path:
    """Create a file below root, optionally with a fixed modification time."""
    path = root / relative_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    if mtime_ms is not None:
        nanos = mtime_ms * 1_000_000
        os.utime(path, ns=(nanos, nanos))
    return path


def mtime_ms(path: Path) -> int:
    return path.stat().st_mtime_ns // 1_000_000


@pytest.fixture
def make_file() -> Callable[..., Path]:
    """Provide the write_file helper."""
    return write_file


@pytest.fixture
def source_dir(tmp_path: Path) -> Path:
    path = tmp_path / "source"
    path.mkdir()
    return path


@pytest.fixture
def dest_dir(tmp_path: Path) -> Path:
    path = tmp_path / "dest"
    path.mkdir()
    return path


@pytest.fixture
def source(source_dir: Path) -> LocalHandle:
    return LocalHandle(source_dir)


@pytest.fixture
def dest(dest_dir: Path) -> LocalHandle:
    return LocalHandle(dest_dir)
