"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

services/file_service.py
Permanent file removal with per-file outcome reporting.
Deletion here is final: there is no trash or undo.
"""
import logging
import os
from pathlib import Path

from dupsweep.core.interfaces import DeletionExecutor
from dupsweep.core.models import Deleted, DeleteFailed, DeletionOutcome

logger = logging.getLogger(__name__)


class FileService(DeletionExecutor):
    """
    Removes files and reports the result instead of raising.
    A failure for one path never affects the others.
    """

    def delete(self, path: str) -> DeletionOutcome:
        """Removes a single file from disk."""
        try:
            size = os.stat(path, follow_symlinks=False).st_size
        except FileNotFoundError:
            logger.debug(f"Already removed: {path}")
            return DeleteFailed(path, "already removed")
        except OSError as e:
            size = 0
            logger.debug(f"Could not stat {path} before removal: {e}")

        if Path(path).is_dir():
            logger.warning(f"Refusing to delete directory: {path}")
            return DeleteFailed(path, "is a directory")

        try:
            os.remove(path)
        except FileNotFoundError:
            logger.debug(f"Already removed: {path}")
            return DeleteFailed(path, "already removed")
        except OSError as e:
            reason = e.strerror or str(e)
            logger.warning(f"Failed to delete {path}: {reason}")
            return DeleteFailed(path, reason)

        logger.info(f"Deleted {path}")
        return Deleted(path, size)
