"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/deduplicator.py
Drives a scan-and-delete run:
    walk → size buckets → (quick check) → full digest → resolve → delete

The walk runs on the calling thread. Quick checks, hashing, resolution and
deletion run on a thread pool; the DigestTable is the only structure those
workers write to concurrently, and the resolver holds its lock for the whole
read-compare-write. Events reach the caller one at a time through on_event.
"""
import logging
import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, List, Optional

from dupsweep.core.errors import ContentChangedError, HashError, RootDirectoryError
from dupsweep.core.grouper import SizeIndex, group_by_key
from dupsweep.core.hasher import HasherImpl
from dupsweep.core.interfaces import DeletionExecutor, DuplicateResolver, Hasher
from dupsweep.core.models import (
    DeduplicationParams, DeduplicationStats, Delete, Deleted, DuplicateFound, Event,
    FileEntry, RaceAnomaly, ScanError, Stage,
)
from dupsweep.core.resolver import DigestTable, DuplicateResolverImpl
from dupsweep.core.scanner import TreeWalkerImpl
from dupsweep.services.file_service import FileService

logger = logging.getLogger(__name__)


class DeduplicatorImpl:
    """
    Owns the state of one run: a fresh SizeIndex, a fresh DigestTable and the
    worker pool. Collaborators are injectable for testing.
    """

    def __init__(
            self,
            hasher: Optional[Hasher] = None,
            resolver: Optional[DuplicateResolver] = None,
            file_service: Optional[DeletionExecutor] = None,
    ):
        self.hasher = hasher or HasherImpl()
        self.resolver = resolver
        self.file_service = file_service or FileService()

    def run(
            self,
            params: DeduplicationParams,
            on_event: Optional[Callable[[Event], None]] = None,
            stopped_flag: Optional[Callable[[], bool]] = None,
    ) -> DeduplicationStats:
        """
        Scan params.root_dir and remove all but one copy of every duplicate set.

        Args:
            params: Validated run parameters
            on_event: Receives every event, never from two threads at once
            stopped_flag: Returns True when the run should stop early

        Returns:
            DeduplicationStats for the run

        Raises:
            RootDirectoryError: If the root is missing, not a directory or unreadable
        """
        root_path = Path(params.root_dir)
        if not root_path.exists():
            raise RootDirectoryError(f"Directory does not exist: {params.root_dir}", params.root_dir)
        if not root_path.is_dir():
            raise RootDirectoryError(f"Not a directory: {params.root_dir}", params.root_dir)
        try:
            with os.scandir(params.root_dir):
                pass
        except OSError as e:
            raise RootDirectoryError(f"Cannot read directory: {params.root_dir}", params.root_dir) from e

        run = _Run(self, params, on_event, stopped_flag)
        return run.execute()


class _Run:
    """State of a single run. Never reused."""

    def __init__(self, owner: DeduplicatorImpl, params: DeduplicationParams,
                 on_event: Optional[Callable[[Event], None]],
                 stopped_flag: Optional[Callable[[], bool]]):
        self.params = params
        self.hasher = owner.hasher
        self.resolver = owner.resolver or DuplicateResolverImpl(params.keep_policy)
        self.file_service = owner.file_service
        self.walker = TreeWalkerImpl(excluded_dirs=params.excluded_dirs)
        self.size_index = SizeIndex()
        self.table = DigestTable()
        self.stats = DeduplicationStats()
        self._on_event = on_event
        self._stopped_flag = stopped_flag
        self._emit_lock = threading.Lock()

    def stopped(self) -> bool:
        return bool(self._stopped_flag and self._stopped_flag())

    def emit(self, event: Event) -> None:
        if isinstance(event, (ScanError, RaceAnomaly)):
            self.stats.increment("errors")
        if self._on_event is None:
            return
        with self._emit_lock:
            self._on_event(event)

    def execute(self) -> DeduplicationStats:
        total_start = time.time()
        logger.debug(f"Starting run: root={self.params.root_dir}, workers={self.params.workers}, "
                     f"policy={self.params.keep_policy.value}, dry_run={self.params.dry_run}")

        self._walk()
        groups = self.size_index.eligible_groups()
        self.stats.increment("size_groups", len(groups))
        logger.debug(f"{len(groups)} size groups with 2+ files")

        with ThreadPoolExecutor(max_workers=self.params.workers) as pool:
            if self.params.quick_check and not self.stopped():
                groups = self._quick_check(pool, groups)

            candidates = [entry for group in groups for entry in group]
            self.stats.increment("candidates", len(candidates))

            start = time.time()
            if not self.stopped():
                # list() re-raises anything unexpected from a worker
                list(pool.map(self._process_entry, candidates))
            self.stats.update_stage(Stage.RESOLVE.value, len(candidates), time.time() - start)

        self.stats.total_time = time.time() - total_start
        logger.info(f"Run finished: {self.stats.duplicates_found} duplicates, "
                    f"{self.stats.files_deleted} deleted, {self.stats.errors} errors")
        return self.stats

    def _walk(self) -> None:
        start = time.time()
        scanned = 0
        for item in self.walker.walk(self.params.root_dir):
            if self.stopped():
                logger.debug("Walk interrupted by stopped_flag")
                break
            if isinstance(item, FileEntry):
                self.size_index.insert(item)
                scanned += 1
            else:
                self.emit(item)
        self.stats.increment("files_scanned", scanned)
        self.stats.update_stage(Stage.WALK.value, scanned, time.time() - start)

    def _quick_check(self, pool: ThreadPoolExecutor, groups: List[List[FileEntry]]) -> List[List[FileEntry]]:
        """Splits each size group by front-chunk key; only sub-groups with 2+ entries survive."""
        start = time.time()

        def on_error(entry: FileEntry, error: Exception) -> None:
            self.emit(ScanError(entry.path, str(error)))

        def split(group: List[FileEntry]) -> List[List[FileEntry]]:
            if self.stopped():
                return []
            return list(group_by_key(group, lambda e: self.hasher.front_hash(e.path), on_error).values())

        refined = [sub for subgroups in pool.map(split, groups) for sub in subgroups]
        files = sum(len(g) for g in groups)
        self.stats.update_stage(Stage.QUICK_CHECK.value, files, time.time() - start)
        logger.debug(f"Quick check kept {len(refined)} of {len(groups)} groups")
        return refined

    def _process_entry(self, entry: FileEntry) -> None:
        """Hash, resolve and, if needed, delete. Runs on a worker thread."""
        if self.stopped():
            return

        expected_size = entry.size if self.params.verify_size else None
        try:
            digest = self.hasher.hash(entry.path, expected_size=expected_size)
        except ContentChangedError as e:
            logger.warning(str(e))
            self.emit(RaceAnomaly(entry.path, e.expected_size, e.actual_size))
            return
        except HashError as e:
            logger.warning(str(e))
            self.emit(ScanError(entry.path, e.reason))
            return

        self.stats.increment("files_hashed")
        self.stats.increment("bytes_hashed", entry.size)

        resolution = self.resolver.resolve(entry, digest, self.table)
        if not isinstance(resolution, Delete):
            return

        self.stats.increment("duplicates_found")
        self.emit(DuplicateFound(kept=resolution.kept, removed=resolution.path))

        if self.params.dry_run:
            return

        outcome = self.file_service.delete(resolution.path)
        if isinstance(outcome, Deleted):
            self.stats.increment("files_deleted")
            self.stats.increment("bytes_freed", outcome.size)
        else:
            self.stats.increment("delete_failures")
        self.emit(outcome)
