"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/models.py
Data models and domain logic for scanning, resolving and removing duplicates.
"""

import logging
import os
import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

logger = logging.getLogger(__name__)

# =============================
# Enums
# =============================

class KeepPolicy(Enum):
    """
    Which copy survives when two files share a digest.
    Ties on discovery time always keep the copy that was resolved first.
    """
    OLDEST = "oldest"
    NEWEST = "newest"


class Stage(str, Enum):
    WALK = "Walk"
    QUICK_CHECK = "Quick check"
    RESOLVE = "Hash and resolve"


# ======================
#  Core Data Models
# ======================

@dataclass(frozen=True)
class FileEntry:
    """
    A regular file found during the walk.
    discovered_at is the creation time where the platform exposes it,
    otherwise the last modification time.
    """
    path: str
    size: int  # in bytes
    discovered_at: float

    def __repr__(self):
        return f"<FileEntry path={self.path}, size={self.size}>"


@dataclass(frozen=True)
class Keep:
    """Resolution: the entry is the copy kept for its digest."""


@dataclass(frozen=True)
class Delete:
    """Resolution: `path` is a duplicate of `kept` and must be removed."""
    path: str
    kept: str


Resolution = Union[Keep, Delete]


# ======================
#  Events
# ======================

@dataclass(frozen=True)
class Event:
    """Base class for notifications emitted during a run."""

    @property
    def kind(self) -> str:
        return type(self).__name__


@dataclass(frozen=True)
class DuplicateFound(Event):
    kept: str
    removed: str


@dataclass(frozen=True)
class Deleted(Event):
    path: str
    size: int = 0


@dataclass(frozen=True)
class DeleteFailed(Event):
    path: str
    reason: str


@dataclass(frozen=True)
class ScanError(Event):
    path: str
    reason: str


@dataclass(frozen=True)
class UnhandledEntry(Event):
    """A filesystem object that is neither a regular file nor a directory."""
    path: str
    entry_type: str


@dataclass(frozen=True)
class RaceAnomaly(Event):
    """A file changed size between bucketing and hashing; it was not resolved."""
    path: str
    expected_size: int
    actual_size: int


DeletionOutcome = Union[Deleted, DeleteFailed]


# ======================
#  Statistics
# ======================

class DeduplicationStats:
    """
    Counters and stage timings collected during a run.
    Safe to update from worker threads.
    """

    COUNTERS = (
        "files_scanned",
        "size_groups",
        "candidates",
        "files_hashed",
        "bytes_hashed",
        "duplicates_found",
        "files_deleted",
        "bytes_freed",
        "delete_failures",
        "errors",
    )

    def __init__(self):
        self.total_time: float = 0.0
        self.counters: Dict[str, int] = {name: 0 for name in self.COUNTERS}
        self.stage_stats: Dict[str, Dict[str, Union[int, float]]] = {}
        self._listeners: List[Callable[[str, Dict], None]] = []
        self._lock = threading.Lock()

    def __getattr__(self, name):
        counters = self.__dict__.get("counters", {})
        if name in counters:
            return counters[name]
        raise AttributeError(name)

    def add_listener(self, listener: Callable[[str, Dict], None]):
        """Adds a listener to receive updates when stage stats are updated."""
        self._listeners.append(listener)

    def increment(self, name: str, amount: int = 1) -> None:
        with self._lock:
            self.counters[name] += amount

    def update_stage(self, stage_name: str, files_processed: int, duration: float) -> None:
        with self._lock:
            if stage_name not in self.stage_stats:
                self.stage_stats[stage_name] = {"files": 0, "time": 0.0}
            self.stage_stats[stage_name]["files"] += files_processed
            self.stage_stats[stage_name]["time"] += duration
            snapshot = dict(self.stage_stats[stage_name])

        for listener in self._listeners:
            try:
                listener(stage_name, snapshot)
            except Exception:
                logger.exception("Error in stats event handler")

    def print_summary(self) -> str:
        lines = [
            "Deduplication Statistics:",
            f"Total Execution Time: {self.total_time:.3f}s\n",
            "Stage: FILES / TIME",
        ]
        for stage, data in self.stage_stats.items():
            lines.append(f"{stage}: {data['files']} / {data['time']:.3f}s")

        lines.append("")
        for name in self.COUNTERS:
            lines.append(f"{name.replace('_', ' ').capitalize()}: {self.counters[name]}")
        return "\n".join(lines)


# ======================
#  Parameters
# ======================

def default_workers() -> int:
    return min(32, (os.cpu_count() or 1) + 4)


@dataclass
class DeduplicationParams:
    """Parameters for a scan-and-delete run, with validation. Used by both CLI and library callers."""
    root_dir: str
    workers: int = field(default_factory=default_workers)
    keep_policy: KeepPolicy = KeepPolicy.OLDEST
    quick_check: bool = True
    verify_size: bool = True
    dry_run: bool = False
    excluded_dirs: List[str] = field(default_factory=list)

    def __post_init__(self):
        """Validate parameters immediately after creation."""
        if not self.root_dir:
            raise ValueError("Root directory cannot be empty")

        if self.workers < 1:
            raise ValueError("Worker count must be at least 1")

        if not isinstance(self.keep_policy, KeepPolicy):
            self.keep_policy = KeepPolicy(self.keep_policy)

        # Normalize excluded directories to absolute resolved paths
        self.excluded_dirs = [
            str(Path(d.strip()).resolve()) for d in self.excluded_dirs if d and d.strip()
        ]

    @staticmethod
    def from_cli_values(
            root_dir: str,
            workers: Optional[int] = None,
            keep: str = "oldest",
            quick_check: bool = True,
            verify_size: bool = True,
            dry_run: bool = False,
            excluded_dirs: Optional[List[str]] = None,
    ) -> 'DeduplicationParams':
        """Factory method to create params from raw CLI strings."""
        return DeduplicationParams(
            root_dir=str(Path(root_dir).resolve()),
            workers=workers if workers is not None else default_workers(),
            keep_policy=KeepPolicy(keep),
            quick_check=quick_check,
            verify_size=verify_size,
            dry_run=dry_run,
            excluded_dirs=excluded_dirs or [],
        )
