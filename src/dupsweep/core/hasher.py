"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/hasher.py
Implements file hashing with pluggable hash algorithms.

- Full digests use SHA-256 and are the only content-equality proxy.
- Quick-check keys use xxHash64 over the first chunk of a file and are only
  used to split candidate groups before full hashing.
- Files are streamed in fixed-size chunks; a failed read never yields a digest.
"""

import hashlib
import logging
from typing import Optional

import xxhash

from dupsweep.core.errors import ContentChangedError, HashError
from dupsweep.core.interfaces import Hasher, HashAlgorithm

logger = logging.getLogger(__name__)


class DeduplicationConfig:
    CHUNK_SIZE = 1024 * 1024  # bytes per read while computing full digests
    FRONT_CHUNK_SIZE = 64 * 1024  # bytes covered by the quick-check key


# Use the same way to implement and use any other hashing algorithm
class Sha256AlgorithmImpl(HashAlgorithm):
    name = "sha256"

    def new(self):
        return hashlib.sha256()


class XXHashAlgorithmImpl(HashAlgorithm):
    name = "xxh64"

    def new(self):
        return xxhash.xxh64()


class HasherImpl(Hasher):
    """
    A hasher implementation that supports any algorithm via the HashAlgorithm interface.
    `algorithm` produces full digests, `quick_algorithm` produces front-chunk keys.
    """

    def __init__(self, algorithm: HashAlgorithm = None, quick_algorithm: HashAlgorithm = None):
        self.algorithm = algorithm or Sha256AlgorithmImpl()
        self.quick_algorithm = quick_algorithm or XXHashAlgorithmImpl()

    def hash(self, path: str, expected_size: Optional[int] = None) -> bytes:
        """
        Computes the digest of the whole file, reading it in CHUNK_SIZE pieces.

        Args:
            path: File to hash
            expected_size: Size recorded during the walk; checked against bytes read

        Returns:
            bytes: Digest of the full content

        Raises:
            HashError: If the file cannot be opened or a read fails mid-stream
            ContentChangedError: If expected_size is given and does not match
        """
        state = self.algorithm.new()
        bytes_read = 0
        try:
            with open(path, 'rb') as f:
                while True:
                    chunk = f.read(DeduplicationConfig.CHUNK_SIZE)
                    if not chunk:
                        break
                    state.update(chunk)
                    bytes_read += len(chunk)
        except OSError as e:
            raise HashError(path, str(e)) from e

        if expected_size is not None and bytes_read != expected_size:
            raise ContentChangedError(path, expected_size, bytes_read)

        logger.debug(f"Hashed {path} ({bytes_read} bytes, {self.algorithm.name})")
        return state.digest()

    def front_hash(self, path: str) -> bytes:
        """Computes the quick-check key over the first FRONT_CHUNK_SIZE bytes."""
        state = self.quick_algorithm.new()
        try:
            with open(path, 'rb') as f:
                state.update(f.read(DeduplicationConfig.FRONT_CHUNK_SIZE))
        except OSError as e:
            raise HashError(path, str(e)) from e
        return state.digest()
