"""Atomic file writes with ownership transfer.

Content is staged in ``<target>.kvexpress``, given its final mode and owner,
and renamed over the target. The rename is the commit point: readers of the
target see either the old content or the new content, never a partial write.
"""

from __future__ import annotations

import contextlib
import logging
import os
from typing import TYPE_CHECKING

from kvexpress import exceptions, metrics

if TYPE_CHECKING:
    from kvexpress.identity import IdentityResolver

logger = logging.getLogger(__name__)

TEMP_SUFFIX = ".kvexpress"
DIRECTORY_MODE = 0o755


def temp_path(target_path: str) -> str:
    """Staging path used while writing target_path."""
    return f"{target_path}{TEMP_SUFFIX}"


def fatal[E: exceptions.FatalError](
    error_cls: type[E], path: str, reason: str, detail: object = ""
) -> E:
    """Log and count a fatal filesystem failure, returning the error to raise."""
    logger.error(f"function='{reason}' panic='true' file='{path}'")
    metrics.incr(f"fatal.{reason}")
    return error_cls(path, reason, str(detail))


def ensure_parent_dir(target_path: str) -> None:
    """Create the parent directory chain of target_path if missing.

    Never replaces a regular file that sits where a directory is needed.
    """
    parent = os.path.dirname(target_path)
    if not parent:
        return
    try:
        os.makedirs(parent, mode=DIRECTORY_MODE, exist_ok=True)
    except OSError as e:
        raise fatal(exceptions.DirectoryCreateError, parent, "create_directory", e) from e


def _fsync_dir(path: str) -> None:
    # Best effort: not every filesystem supports fsync on a directory fd.
    with contextlib.suppress(OSError):
        dir_fd = os.open(path, os.O_RDONLY)
        try:
            os.fsync(dir_fd)
        finally:
            os.close(dir_fd)


class AtomicFileWriter:
    """Write files via temp file, chown, rename.

    Args:
        identity: Resolves owner specs to numeric ids.
        strict_ownership: When False, a failed owner lookup or chown is logged
            and counted but the write still commits. Meant for hosts where
            kvexpress cannot control ownership (e.g. unprivileged containers).
    """

    _identity: IdentityResolver
    _strict_ownership: bool

    def __init__(self, identity: IdentityResolver, *, strict_ownership: bool = True) -> None:
        self._identity = identity
        self._strict_ownership = strict_ownership

    @property
    def strict_ownership(self) -> bool:
        return self._strict_ownership

    def write(self, content: bytes, target_path: str, permission_mode: int, owner_spec: str) -> None:
        """Atomically replace target_path with content.

        Raises:
            DirectoryCreateError: Parent directories could not be created.
            WriteError: The staging file could not be written.
            OwnershipError: The owner could not be applied (strict mode only).
            RenameError: The staging file could not be renamed over the target.
        """
        with metrics.timed("writer.write"):
            ensure_parent_dir(target_path)
            tmp = temp_path(target_path)
            self._write_temp(tmp, target_path, content, permission_mode)
            try:
                uid_gid = self._chown(tmp, owner_spec)
                self._apply_mode(tmp, target_path, permission_mode)
                self._commit(tmp, target_path)
            except BaseException:
                with contextlib.suppress(OSError):
                    os.unlink(tmp)
                raise
        _fsync_dir(os.path.dirname(target_path) or ".")
        logger.debug(
            f"file_wrote='true' location='{target_path}' permissions='{permission_mode:o}'"
        )
        if uid_gid is not None:
            logger.debug(
                f"file_chown='true' location='{target_path}' owner='{uid_gid[0]}' group='{uid_gid[1]}'"
            )

    def _write_temp(self, tmp: str, target_path: str, content: bytes, permission_mode: int) -> None:
        # A temp left behind by a killed run may carry a stale mode or owner.
        with contextlib.suppress(FileNotFoundError):
            os.unlink(tmp)
        try:
            fd = os.open(tmp, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, permission_mode)
        except OSError as e:
            raise fatal(exceptions.WriteError, target_path, "write_file", e) from e
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(content)
                f.flush()
                # Mode passed to open() is filtered by umask.
                os.fchmod(f.fileno(), permission_mode)
                os.fsync(f.fileno())
        except OSError as e:
            with contextlib.suppress(OSError):
                os.unlink(tmp)
            raise fatal(exceptions.WriteError, target_path, "write_file", e) from e

    def _chown(self, tmp: str, owner_spec: str) -> tuple[int, int] | None:
        try:
            uid_gid = self._identity.resolve(owner_spec)
            if uid_gid is not None:
                os.chown(tmp, *uid_gid)
        except (LookupError, OSError) as e:
            error = fatal(exceptions.OwnershipError, tmp, "chown_file", e)
            if self._strict_ownership:
                raise error from e
            logger.error(f"file_chown='false' location='{tmp}' owner='{owner_spec}' error='{e}'")
            return None
        return uid_gid

    def _apply_mode(self, tmp: str, target_path: str, permission_mode: int) -> None:
        # chown clears setuid/setgid, so the final mode goes on after it.
        try:
            os.chmod(tmp, permission_mode)
        except OSError as e:
            raise fatal(exceptions.WriteError, target_path, "chmod_file", e) from e

    def _commit(self, tmp: str, target_path: str) -> None:
        try:
            os.replace(tmp, target_path)
        except OSError as e:
            raise fatal(exceptions.RenameError, target_path, "rename_file", e) from e
