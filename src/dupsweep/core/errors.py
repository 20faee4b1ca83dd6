"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/errors.py
Exception types raised by the deduplication engine.
"""


class DedupError(Exception):
    """Base class for all engine errors."""


class RootDirectoryError(DedupError):
    """The scan root is missing or is not a directory. Fatal for the run."""

    def __init__(self, message: str, path: str):
        super().__init__(message)
        self.path = path


class HashError(DedupError, OSError):
    """A file could not be opened or read while computing its digest."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Failed to hash {path}: {reason}")
        self.path = path
        self.reason = reason


class ContentChangedError(DedupError):
    """
    The number of bytes read while hashing differs from the size recorded
    during the walk: the file changed between bucketing and hashing.
    """

    def __init__(self, path: str, expected_size: int, actual_size: int):
        super().__init__(
            f"Size of {path} changed during scan: expected {expected_size}, read {actual_size}"
        )
        self.path = path
        self.expected_size = expected_size
        self.actual_size = actual_size
