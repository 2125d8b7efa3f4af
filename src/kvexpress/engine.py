"""Safe apply: validate fetched content and commit it to a target file.

An apply walks a fixed sequence and stops at the first step that says no:

    length check -> checksum check -> lock check -> diff -> commit -> snapshot

Expected outcomes (too short, checksum mismatch, locked, unchanged) are
returned as an ``ApplyOutcome``. Environment failures raise ``FatalError``
and are never turned into a rejection.
"""

from __future__ import annotations

import dataclasses
import enum
import logging
import os
from typing import TYPE_CHECKING

from kvexpress import checksum, exceptions, hooks, metrics, path_utils
from kvexpress.storage import lock as lock_mod
from kvexpress.storage import snapshot as snapshot_mod
from kvexpress.storage import writer as writer_mod

if TYPE_CHECKING:
    from kvexpress.identity import IdentityResolver

logger = logging.getLogger(__name__)

DEFAULT_PERMISSIONS = 0o640
DEFAULT_MIN_LENGTH = 10


class ApplyOutcome(enum.StrEnum):
    """How an apply ended."""

    COMMITTED = "committed"
    REJECTED_TOO_SHORT = "rejected_too_short"
    REJECTED_CHECKSUM_MISMATCH = "rejected_checksum_mismatch"
    REJECTED_LOCKED = "rejected_locked"
    NO_CHANGE_SKIP = "no_change_skip"


@dataclasses.dataclass(frozen=True)
class DesiredState:
    """Content fetched from the KV store with its declared checksum."""

    content: bytes
    checksum: str
    min_length: int = DEFAULT_MIN_LENGTH


@dataclasses.dataclass(frozen=True)
class TargetFile:
    """The file under management. ``path`` must be absolute."""

    path: str
    permission_mode: int = DEFAULT_PERMISSIONS
    owner_spec: str = ""

    def __post_init__(self) -> None:
        path_utils.require_absolute(self.path)


@dataclasses.dataclass(frozen=True)
class ApplyConfig:
    """Settings for SafeApplyEngine.

    Attributes:
        post_commit: Command run after a successful commit; empty for none.
        strict_ownership: Treat owner lookup/chown failures as fatal.
    """

    post_commit: str = ""
    strict_ownership: bool = True


@dataclasses.dataclass(frozen=True)
class ApplyResult:
    outcome: ApplyOutcome
    path: str
    hook_status: int | None = None

    @property
    def committed(self) -> bool:
        return self.outcome is ApplyOutcome.COMMITTED


class SafeApplyEngine:
    """Apply desired state to target files, one target at a time.

    The engine does not serialize concurrent applies against the same
    target; callers must provide that mutual exclusion.
    """

    _config: ApplyConfig
    _writer: writer_mod.AtomicFileWriter
    _locks: lock_mod.LockGuard
    _snapshots: snapshot_mod.SnapshotStore

    def __init__(self, config: ApplyConfig, identity: IdentityResolver) -> None:
        self._config = config
        self._writer = writer_mod.AtomicFileWriter(
            identity, strict_ownership=config.strict_ownership
        )
        self._locks = lock_mod.LockGuard(self._writer)
        self._snapshots = snapshot_mod.SnapshotStore(self._writer)

    @property
    def locks(self) -> lock_mod.LockGuard:
        return self._locks

    @property
    def snapshots(self) -> snapshot_mod.SnapshotStore:
        return self._snapshots

    def apply(self, state: DesiredState, target: TargetFile) -> ApplyResult:
        """Reconcile target with state.

        Raises:
            InvalidPathError: target.path is relative.
            FatalError: A filesystem step failed; see AtomicFileWriter.write.
        """
        path = path_utils.require_absolute(target.path)

        outcome = self._check(state, path)
        if outcome is not None:
            return self._finish(outcome, path)

        for line in self._snapshots.diff(path, state.content):
            logger.debug(line)

        self._writer.write(state.content, path, target.permission_mode, target.owner_spec)
        self._snapshots.save(path, state.content, target.permission_mode, target.owner_spec)

        hook_status = None
        if self._config.post_commit.strip():
            hook_status = hooks.run_post_commit(self._config.post_commit)
        return self._finish(ApplyOutcome.COMMITTED, path, hook_status)

    def _check(self, state: DesiredState, path: str) -> ApplyOutcome | None:
        """Run the gates in order; None means the content should be written."""
        long_enough = len(state.content) >= state.min_length
        logger.info(f"longEnough='{str(long_enough).lower()}' length='{len(state.content)}'")
        if not long_enough:
            return ApplyOutcome.REJECTED_TOO_SHORT

        checksum_match = checksum.matches(state.content, state.checksum)
        logger.info(f"checksumMatch='{str(checksum_match).lower()}'")
        if not checksum_match:
            return ApplyOutcome.REJECTED_CHECKSUM_MISMATCH

        if self._locks.is_locked(path):
            logger.info(f"file='{path}' locked='true' marker='{lock_mod.lock_path(path)}'")
            return ApplyOutcome.REJECTED_LOCKED

        if os.path.isdir(path):
            logger.info(f"Can NOT write a directory {path}")
            raise exceptions.TargetIsDirectoryError(path, "write_file", "is a directory")

        try:
            current = checksum.file_checksum(path)
        except OSError as e:
            raise writer_mod.fatal(exceptions.ReadError, path, "read_file", e) from e
        if current is None:
            logger.debug(f"there is NO file at {path}")
        elif current == checksum.compute(state.content):
            logger.info(f"'{path}' has the same checksum. Stopping.")
            return ApplyOutcome.NO_CHANGE_SKIP
        return None

    def _finish(
        self, outcome: ApplyOutcome, path: str, hook_status: int | None = None
    ) -> ApplyResult:
        metrics.incr(f"apply.{outcome}")
        if outcome is ApplyOutcome.COMMITTED:
            logger.info(f"file='{path}' outcome='{outcome}'")
        elif outcome is ApplyOutcome.NO_CHANGE_SKIP:
            logger.debug(f"file='{path}' outcome='{outcome}'")
        else:
            logger.warning(f"Could not write file. file='{path}' outcome='{outcome}'")
        return ApplyResult(outcome=outcome, path=path, hook_status=hook_status)
