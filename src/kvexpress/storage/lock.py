"""Advisory ``.locked`` markers that suspend writes to a target.

The marker's existence is the whole state; its content is instructions for
the operator. Only ``lock`` and ``unlock`` create or remove it. The apply
path only checks for it.
"""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING

from kvexpress import exceptions, path_utils

if TYPE_CHECKING:
    from kvexpress.storage.writer import AtomicFileWriter

logger = logging.getLogger(__name__)

LOCK_SUFFIX = ".locked"


def lock_path(target_path: str) -> str:
    """Marker path for target_path."""
    return f"{target_path}{LOCK_SUFFIX}"


def lock_text(target_path: str, reason: str) -> str:
    return (
        f"To unlock '{target_path}' and allow kvexpress to write again:\n\n"
        f"sudo kvexpress unlock -f {target_path}\n\n"
        f"Reason Locked: {reason}\n\n"
    )


class LockGuard:
    """Create, remove and observe lock markers."""

    _writer: AtomicFileWriter

    def __init__(self, writer: AtomicFileWriter) -> None:
        self._writer = writer

    def is_locked(self, target_path: str) -> bool:
        return os.path.lexists(lock_path(target_path))

    def lock(self, target_path: str, reason: str, permission_mode: int, owner_spec: str) -> bool:
        """Write the marker unless one exists. Returns True if it was created."""
        path_utils.require_absolute(target_path)
        marker = lock_path(target_path)
        if self.is_locked(target_path):
            logger.info(f"file='locked' file='{marker}' does_not_exist='false'")
            return False
        logger.debug(f"file='locked' file='{marker}' does_not_exist='true'")
        self._writer.write(
            lock_text(target_path, reason).encode(), marker, permission_mode, owner_spec
        )
        logger.info(f"Locked '{target_path}': {reason}")
        return True

    def unlock(self, target_path: str) -> bool:
        """Remove the marker. Returns False if there was none."""
        path_utils.require_absolute(target_path)
        marker = lock_path(target_path)
        if os.path.isdir(marker):
            logger.info(f"Would NOT remove a directory {marker}")
            raise exceptions.TargetIsDirectoryError(marker, "remove_lock_file", "is a directory")
        try:
            os.remove(marker)
        except FileNotFoundError:
            logger.debug(f"Could NOT stat {marker}")
            return False
        logger.info(f"Removed {marker}")
        return True
