"""
dupsweep finds files with identical content under a directory and keeps only one copy.

Core features:
- Size buckets, then an xxHash64 quick check, then a full SHA-256 digest
- Parallel hashing with one lock-guarded digest table per run
- Keep-oldest (default) or keep-newest policy, deterministic on equal timestamps
- Structured events for every duplicate, deletion, failure and scan error
- CLI interface with dry-run and confirmation
"""

# Get version
try:
    from importlib.metadata import version as _version, PackageNotFoundError
    __version__ = _version("dupsweep")
except PackageNotFoundError:
    import tomllib
    from pathlib import Path

    _pyproject = Path(__file__).resolve().parents[2] / "pyproject.toml"
    with open(_pyproject, "rb") as f:
        __version__ = tomllib.load(f)["project"]["version"]

# Public API: only what users should import directly
from dupsweep.commands import DeduplicationCommand
from dupsweep.core import (
    DeduplicationParams, DeduplicationStats, KeepPolicy, FileEntry, Event,
    DuplicateFound, Deleted, DeleteFailed, ScanError, UnhandledEntry, RaceAnomaly,
    RootDirectoryError)
from dupsweep.utils.convert_utils import ConvertUtils
from dupsweep.services.file_service import FileService

__all__ = [
    "DeduplicationCommand",
    "DeduplicationParams",
    "DeduplicationStats",
    "KeepPolicy",
    "FileEntry",
    "Event",
    "DuplicateFound",
    "Deleted",
    "DeleteFailed",
    "ScanError",
    "UnhandledEntry",
    "RaceAnomaly",
    "RootDirectoryError",
    "ConvertUtils",
    "FileService",
    "__version__",
]
