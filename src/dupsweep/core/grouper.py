"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/grouper.py
Size buckets and quick-check regrouping for duplicate candidates.
"""

import logging
import threading
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional

from dupsweep.core.models import FileEntry

logger = logging.getLogger(__name__)


class SizeIndex:
    """
    Buckets discovered files by byte length.
    Only buckets with two or more entries can contain duplicates, so files of
    unique size are never hashed. Insertion is safe from several threads.
    """

    def __init__(self):
        self._groups: Dict[int, List[FileEntry]] = defaultdict(list)
        self._lock = threading.Lock()

    def insert(self, entry: FileEntry) -> int:
        """Appends entry to its size bucket and returns the bucket's new length."""
        with self._lock:
            group = self._groups[entry.size]
            group.append(entry)
            return len(group)

    def group(self, size: int) -> List[FileEntry]:
        with self._lock:
            return list(self._groups.get(size, []))

    def eligible_groups(self) -> List[List[FileEntry]]:
        """Buckets holding at least two entries, largest file size first."""
        with self._lock:
            return [
                list(files)
                for size, files in sorted(self._groups.items(), key=lambda item: -item[0])
                if len(files) >= 2
            ]

    def __len__(self):
        with self._lock:
            return len(self._groups)


def group_by_key(
        entries: List[FileEntry],
        key_func: Callable[[FileEntry], Any],
        on_error: Optional[Callable[[FileEntry, Exception], None]] = None
) -> Dict[Any, List[FileEntry]]:
    """
    Groups entries by any computed key and keeps only groups with 2+ entries.
    Entries whose key cannot be computed are reported to on_error and dropped.
    """
    groups = defaultdict(list)
    for entry in entries:
        try:
            key = key_func(entry)
        except Exception as e:
            logger.warning(f"Error processing {entry.path}: {e}")
            if on_error:
                on_error(entry, e)
            continue
        groups[key].append(entry)

    return {key: group for key, group in groups.items() if len(group) >= 2}
