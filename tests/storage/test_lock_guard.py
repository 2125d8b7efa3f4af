from __future__ import annotations

import os
import pathlib

import pytest

from helpers import SelfIdentityResolver
from kvexpress import exceptions
from kvexpress.storage import lock, writer


@pytest.fixture
def guard(identity: SelfIdentityResolver) -> lock.LockGuard:
    return lock.LockGuard(writer.AtomicFileWriter(identity))


def test_lock_path_is_sibling_with_locked_suffix() -> None:
    assert lock.lock_path("/etc/hosts") == "/etc/hosts.locked"


def test_unlocked_by_default(guard: lock.LockGuard, target_path: str) -> None:
    assert not guard.is_locked(target_path)


def test_lock_creates_marker_with_instructions(guard: lock.LockGuard, target_path: str) -> None:
    created = guard.lock(target_path, "Incident 42: hand-editing", 0o640, "")

    assert created
    assert guard.is_locked(target_path)
    text = pathlib.Path(lock.lock_path(target_path)).read_text()
    assert f"sudo kvexpress unlock -f {target_path}" in text
    assert "Reason Locked: Incident 42: hand-editing" in text


def test_lock_marker_gets_requested_mode(guard: lock.LockGuard, target_path: str) -> None:
    guard.lock(target_path, "reason", 0o600, "")

    assert os.stat(lock.lock_path(target_path)).st_mode & 0o7777 == 0o600


def test_lock_is_idempotent(guard: lock.LockGuard, target_path: str) -> None:
    """Locking twice keeps the first reason."""
    guard.lock(target_path, "first", 0o640, "")

    created = guard.lock(target_path, "second", 0o640, "")

    assert not created
    assert "Reason Locked: first" in pathlib.Path(lock.lock_path(target_path)).read_text()


def test_lock_does_not_touch_target(guard: lock.LockGuard, target_path: str) -> None:
    guard.lock(target_path, "reason", 0o640, "")

    assert not os.path.exists(target_path)


def test_unlock_removes_marker(guard: lock.LockGuard, target_path: str) -> None:
    guard.lock(target_path, "reason", 0o640, "")

    assert guard.unlock(target_path)
    assert not guard.is_locked(target_path)


def test_unlock_without_marker_is_noop(guard: lock.LockGuard, target_path: str) -> None:
    assert not guard.unlock(target_path)


def test_marker_placed_by_hand_counts_as_lock(
    guard: lock.LockGuard, tmp_path: pathlib.Path
) -> None:
    """Only existence matters; content is never parsed."""
    target = tmp_path / "app.conf"
    pathlib.Path(lock.lock_path(str(target))).write_text("")

    assert guard.is_locked(str(target))


def test_unlock_refuses_directory(guard: lock.LockGuard, tmp_path: pathlib.Path) -> None:
    target = str(tmp_path / "app.conf")
    os.mkdir(lock.lock_path(target))

    with pytest.raises(exceptions.TargetIsDirectoryError):
        guard.unlock(target)

    assert os.path.isdir(lock.lock_path(target))


@pytest.mark.parametrize("method", ["lock", "unlock"])
def test_relative_paths_rejected(guard: lock.LockGuard, method: str) -> None:
    with pytest.raises(exceptions.InvalidPathError):
        if method == "lock":
            guard.lock("etc/hosts", "reason", 0o640, "")
        else:
            guard.unlock("etc/hosts")
