"""
Shared fixtures for dupsweep tests.
Creates isolated temporary trees with controlled content and timestamps.
"""
import os
import tempfile
from pathlib import Path
from typing import Dict
from unittest import mock

import pytest

# Base timestamp for controlled discovery times (2024-01-01 00:00:00 UTC)
T0 = 1_704_067_200

# Where the OS exposes a real creation time, os.utime cannot control it
requires_mtime_clock = pytest.mark.skipif(
    hasattr(os.stat(tempfile.gettempdir()), "st_birthtime"),
    reason="creation time is recorded by the OS and cannot be set by tests"
)

requires_non_root = pytest.mark.skipif(
    hasattr(os, "geteuid") and os.geteuid() == 0,
    reason="root ignores directory permissions"
)


def deny_scandir(*denied):
    """Patches os.scandir so listing any of `denied` fails with EACCES, whoever runs the tests."""
    real_scandir = os.scandir
    denied = {str(p) for p in denied}

    def scandir(path="."):
        if str(path) in denied:
            raise PermissionError(13, "Permission denied", str(path))
        return real_scandir(path)

    return mock.patch("os.scandir", side_effect=scandir)


def write_file(path: Path, content: bytes, mtime: float = None) -> Path:
    """Creates parent dirs, writes content and optionally pins the modification time."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    if mtime is not None:
        os.utime(path, (mtime, mtime))
    return path


@pytest.fixture
def temp_dir():
    """Creates isolated temporary directory, auto-cleanup after test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def test_files(temp_dir) -> Dict[str, Path]:
    """
    Creates controlled test files for deduplication scenarios:
    - 3 identical 1KB files (root, root, subdir) with increasing timestamps
    - 2 identical 2KB files
    - 2 unique files whose sizes match nothing else
    - 1 file with the same size as the 1KB set but different content
    """
    files = {}

    content_a = b"A" * 1024
    files["dup1_a"] = write_file(temp_dir / "dup1_a.txt", content_a, T0)
    files["dup1_b"] = write_file(temp_dir / "dup1_b.txt", content_a, T0 + 10)
    files["sub_dup"] = write_file(temp_dir / "subdir" / "dup_in_subdir.txt", content_a, T0 + 20)

    content_b = b"B" * 2048
    files["dup2_a"] = write_file(temp_dir / "dup2_a.txt", content_b, T0 + 5)
    files["dup2_b"] = write_file(temp_dir / "dup2_b.txt", content_b, T0 + 1)

    files["unique1"] = write_file(temp_dir / "unique1.txt", b"C" * 1500, T0)
    files["unique2"] = write_file(temp_dir / "unique2.txt", b"D" * 2500, T0)

    # Same size as the "A" set, different content
    files["same_size"] = write_file(temp_dir / "same_size.txt", b"Z" * 1024, T0)

    return files
