"""Last-applied content kept in ``<target>.last``.

The snapshot is bookkeeping for diffs and reporting. Change detection
compares against the live target, so a missing or stale snapshot never
changes what gets written.
"""

from __future__ import annotations

import difflib
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from kvexpress.storage.writer import AtomicFileWriter

logger = logging.getLogger(__name__)

SNAPSHOT_SUFFIX = ".last"


def snapshot_path(target_path: str) -> str:
    return f"{target_path}{SNAPSHOT_SUFFIX}"


class SnapshotStore:
    """Read and atomically replace snapshots."""

    _writer: AtomicFileWriter

    def __init__(self, writer: AtomicFileWriter) -> None:
        self._writer = writer

    def load(self, target_path: str) -> bytes | None:
        """Return the snapshot, or None when there is none yet (first run)."""
        path = snapshot_path(target_path)
        try:
            with open(path, "rb") as f:
                return f.read()
        except FileNotFoundError:
            logger.debug(f"file='last' file='{path}' does_not_exist='true'")
            return None

    def save(self, target_path: str, content: bytes, permission_mode: int, owner_spec: str) -> None:
        """Replace the snapshot. Call only after the target commit succeeded."""
        self._writer.write(content, snapshot_path(target_path), permission_mode, owner_spec)

    def diff(self, target_path: str, new_content: bytes) -> list[str]:
        """Unified diff from the snapshot (empty if absent) to new_content."""
        old = self.load(target_path) or b""
        return list(
            difflib.unified_diff(
                old.decode("utf-8", errors="replace").splitlines(),
                new_content.decode("utf-8", errors="replace").splitlines(),
                fromfile=snapshot_path(target_path),
                tofile=target_path,
                lineterm="",
            )
        )
