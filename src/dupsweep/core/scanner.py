"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/scanner.py
Implements lazy recursive directory traversal.
Features:
- Uses os.scandir with an explicit stack (no recursion limit on deep trees)
- Never follows symbolic links; directories are also tracked by (device, inode)
- Problems are yielded as ScanError / UnhandledEntry values instead of raised
- Skips the OS trash and user-excluded directories
"""

import os
import stat
import sys
import logging
from pathlib import Path
from typing import Iterator, List, Optional, Union

from dupsweep.core.interfaces import TreeWalker
from dupsweep.core.models import FileEntry, ScanError, UnhandledEntry

logger = logging.getLogger(__name__)

WalkItem = Union[FileEntry, ScanError, UnhandledEntry]


def discovery_time(stat_result: os.stat_result) -> float:
    """Creation time where the platform exposes it, else last modification time."""
    birthtime = getattr(stat_result, 'st_birthtime', None)
    if birthtime:
        return birthtime
    return stat_result.st_mtime


def describe_mode(mode: int) -> str:
    """Short name of a non-regular, non-directory file type."""
    if stat.S_ISLNK(mode):
        return "symlink"
    if stat.S_ISCHR(mode):
        return "character device"
    if stat.S_ISBLK(mode):
        return "block device"
    if stat.S_ISFIFO(mode):
        return "fifo"
    if stat.S_ISSOCK(mode):
        return "socket"
    return "unknown"


class TreeWalkerImpl(TreeWalker):
    """
    Enumerates regular files under a root directory.

    Attributes:
        excluded_dirs: Absolute directories that are not descended into
    """

    def __init__(self, excluded_dirs: Optional[List[str]] = None):
        self.excluded_dirs = [str(Path(d).resolve()) for d in excluded_dirs] if excluded_dirs else []

    def walk(self, root: str) -> Iterator[WalkItem]:
        """
        Yields FileEntry for every regular file below `root`, plus ScanError and
        UnhandledEntry values for entries that could not be used.
        The caller is responsible for checking that `root` is a directory.
        """
        logger.debug(f"Walking directory: {root}")
        visited = set()
        pending = [root]

        while pending:
            current = pending.pop()

            try:
                dir_stat = os.stat(current, follow_symlinks=False)
            except OSError as e:
                logger.warning(f"Cannot stat directory {current}: {e}")
                yield ScanError(current, str(e))
                continue

            dir_key = (dir_stat.st_dev, dir_stat.st_ino)
            if dir_key in visited:
                logger.debug(f"Skipping already visited directory: {current}")
                continue
            visited.add(dir_key)

            try:
                with os.scandir(current) as it:
                    entries = list(it)
            except OSError as e:
                logger.warning(f"Cannot read directory {current}: {e}")
                yield ScanError(current, str(e))
                continue

            for entry in entries:
                yield from self._process_entry(entry, pending)

    def _process_entry(self, entry: os.DirEntry, pending: List[str]) -> Iterator[WalkItem]:
        try:
            entry_stat = entry.stat(follow_symlinks=False)
        except OSError as e:
            logger.warning(f"Cannot stat {entry.path}: {e}")
            yield ScanError(entry.path, str(e))
            return

        mode = entry_stat.st_mode
        if stat.S_ISDIR(mode):
            if self._prefilter_dir(entry.path):
                pending.append(entry.path)
        elif stat.S_ISREG(mode):
            yield FileEntry(
                path=entry.path,
                size=entry_stat.st_size,
                discovered_at=discovery_time(entry_stat),
            )
        else:
            entry_type = describe_mode(mode)
            logger.debug(f"Skipping {entry_type}: {entry.path}")
            yield UnhandledEntry(entry.path, entry_type)

    def _prefilter_dir(self, path: str) -> bool:
        """Skip system trash and excluded directories."""
        if TreeWalkerImpl._is_system_trash(path):
            logger.debug(f"Skipping system trash directory: {path}")
            return False

        if self.excluded_dirs and TreeWalkerImpl._is_excluded_directory(path, self.excluded_dirs):
            logger.debug(f"Skipping excluded directory: {path}")
            return False

        return True

    @staticmethod
    def _is_system_trash(path: str) -> bool:
        """
        Check if path belongs to OS trash/recycle bin (cross-platform).
        Returns False on any error (fail-safe: better to scan than skip valid data).
        """
        try:
            path_str = str(Path(path).resolve(strict=False))

            if sys.platform == "win32":
                return "$Recycle.Bin" in path_str or "\\Recycler\\" in path_str
            if sys.platform == "darwin":
                return "/.Trash/" in path_str or path_str.endswith("/.Trash")
            return path_str.endswith(".local/share/Trash") or ".local/share/Trash/" in path_str
        except (OSError, ValueError):
            return False

    @staticmethod
    def _is_excluded_directory(path: str, excluded_dirs: List[str]) -> bool:
        """Check if path is within an excluded directory."""
        try:
            path_str = str(Path(path).resolve(strict=False))
            for excluded_dir in excluded_dirs:
                normalized_excluded = os.path.normpath(excluded_dir)
                if path_str.startswith(normalized_excluded + os.sep) or \
                        path_str == normalized_excluded:
                    return True
            return False
        except (OSError, ValueError):
            return False
