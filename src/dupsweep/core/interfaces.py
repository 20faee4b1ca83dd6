"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

interfaces.py

Defines core interfaces (Protocols) used throughout the deduplication engine.
Concrete implementations live next to this module; the coordinator only
depends on these shapes so tests can inject counting or failing doubles.

Key Components:
---------------
- HashAlgorithm: Incremental hash function (SHA-256 for digests, xxHash64 for quick checks).
- Hasher: Computes the full content digest and the front-chunk quick-check key.
- TreeWalker: Lazily enumerates regular files and reports problems as values.
- DuplicateResolver: Atomic keep/delete decision against the shared digest table.
- DeletionExecutor: Removes a file and reports the outcome.
"""

from typing import Protocol, Iterator, Optional, Union, TYPE_CHECKING
from dupsweep.core.models import (
    FileEntry,
    Resolution,
    ScanError,
    UnhandledEntry,
    DeletionOutcome,
)

if TYPE_CHECKING:
    from dupsweep.core.resolver import DigestTable


class HashAlgorithm(Protocol):
    """
    Interface for incremental hash functions.

    Allows plugging in different hashing functions without affecting the rest
    of the pipeline. `new()` returns an object with `update()` and `digest()`.
    """

    name: str

    def new(self): ...


class Hasher(Protocol):
    """Interface for hashing file content."""

    def hash(self, path: str, expected_size: Optional[int] = None) -> bytes:
        """
        Digest of the full byte stream of `path`.

        Raises:
            HashError: open or read failed; no digest is produced.
            ContentChangedError: `expected_size` given and bytes read differ.
        """
        ...

    def front_hash(self, path: str) -> bytes:
        """Quick-check key over the first chunk of `path`."""
        ...


class TreeWalker(Protocol):
    def walk(self, root: str) -> Iterator[Union[FileEntry, ScanError, UnhandledEntry]]:
        """
        Recursively enumerate `root`.

        Yields FileEntry for regular files and ScanError / UnhandledEntry values
        for anything that could not be used. Never raises for per-entry problems.
        """
        ...


class DuplicateResolver(Protocol):
    def resolve(self, entry: FileEntry, digest: bytes, table: "DigestTable") -> Resolution:
        """Decide Keep or Delete for `entry` as one atomic step on `table`."""
        ...


class DeletionExecutor(Protocol):
    def delete(self, path: str) -> DeletionOutcome:
        """Remove `path`; failures are returned, never raised."""
        ...
