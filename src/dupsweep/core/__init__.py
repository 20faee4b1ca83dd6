"""
Core deduplication engine: walker, hasher, size index, resolver and coordinator.

This package contains the foundation of dupsweep:
- TreeWalkerImpl: lazy recursive traversal, errors surfaced as values
- HasherImpl + Sha256AlgorithmImpl / XXHashAlgorithmImpl: chunked digests and quick checks
- SizeIndex: size buckets, the pre-filter before any hashing
- DigestTable + DuplicateResolverImpl: atomic keep/delete decisions
- DeduplicatorImpl: the coordinator running the pipeline on a thread pool
- Models: FileEntry, events, parameters and statistics

No presentation code: suitable for CLI and library usage.
"""

from .scanner import TreeWalkerImpl
from .grouper import SizeIndex
from .hasher import HasherImpl, Sha256AlgorithmImpl, XXHashAlgorithmImpl, DeduplicationConfig
from .resolver import DigestTable, DuplicateResolverImpl
from .deduplicator import DeduplicatorImpl
from .errors import DedupError, RootDirectoryError, HashError, ContentChangedError
from .models import (
    FileEntry, KeepPolicy, Keep, Delete, DeduplicationParams, DeduplicationStats,
    Event, DuplicateFound, Deleted, DeleteFailed, ScanError, UnhandledEntry, RaceAnomaly)

__all__ = [
    "TreeWalkerImpl",
    "SizeIndex",
    "HasherImpl",
    "Sha256AlgorithmImpl",
    "XXHashAlgorithmImpl",
    "DeduplicationConfig",
    "DigestTable",
    "DuplicateResolverImpl",
    "DeduplicatorImpl",
    "DedupError",
    "RootDirectoryError",
    "HashError",
    "ContentChangedError",
    "FileEntry",
    "KeepPolicy",
    "Keep",
    "Delete",
    "DeduplicationParams",
    "DeduplicationStats",
    "Event",
    "DuplicateFound",
    "Deleted",
    "DeleteFailed",
    "ScanError",
    "UnhandledEntry",
    "RaceAnomaly",
]
