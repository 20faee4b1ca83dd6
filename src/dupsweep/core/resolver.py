"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/resolver.py
Shared digest table and the keep/delete decision for content-identical files.

RESOLUTION POLICY
-----------------
The table maps each digest to the copy currently kept. When a new entry
arrives with a digest that is already tabled:
  • KeepPolicy.OLDEST: the entry with the later discovery time is deleted
  • KeepPolicy.NEWEST: the entry with the earlier discovery time is deleted
  • Equal discovery times: the tabled entry stays and the incoming one is
    deleted, for both policies (first resolved wins)

The whole read-compare-write runs under the table lock, so two identical
files resolved at the same time can never both be kept or both be deleted.
"""

import logging
import threading
from typing import Dict, Optional

from dupsweep.core.interfaces import DuplicateResolver
from dupsweep.core.models import Delete, FileEntry, Keep, KeepPolicy, Resolution

logger = logging.getLogger(__name__)


class DigestTable:
    """
    digest -> the FileEntry kept for that digest.
    One instance per run; `lock` must be held around any read-then-write.
    """

    def __init__(self):
        self.lock = threading.Lock()
        self._entries: Dict[bytes, FileEntry] = {}

    def get(self, digest: bytes) -> Optional[FileEntry]:
        return self._entries.get(digest)

    def put(self, digest: bytes, entry: FileEntry) -> None:
        self._entries[digest] = entry

    def __len__(self):
        with self.lock:
            return len(self._entries)


class DuplicateResolverImpl(DuplicateResolver):

    def __init__(self, policy: KeepPolicy = KeepPolicy.OLDEST):
        self.policy = policy

    def resolve(self, entry: FileEntry, digest: bytes, table: DigestTable) -> Resolution:
        with table.lock:
            original = table.get(digest)
            if original is None:
                table.put(digest, entry)
                return Keep()

            if self._replaces(entry, original):
                table.put(digest, entry)
                logger.debug(f"Keeping {entry.path}, replacing {original.path}")
                return Delete(path=original.path, kept=entry.path)

            logger.debug(f"Keeping {original.path}, dropping {entry.path}")
            return Delete(path=entry.path, kept=original.path)

    def _replaces(self, entry: FileEntry, original: FileEntry) -> bool:
        """True if the incoming entry should become the kept copy. Ties keep the original."""
        if self.policy == KeepPolicy.NEWEST:
            return entry.discovered_at > original.discovered_at
        return entry.discovered_at < original.discovered_at
