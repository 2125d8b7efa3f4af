from __future__ import annotations

import os
import pathlib

import pytest

from helpers import SelfIdentityResolver
from kvexpress.storage import snapshot, writer


@pytest.fixture
def store(identity: SelfIdentityResolver) -> snapshot.SnapshotStore:
    return snapshot.SnapshotStore(writer.AtomicFileWriter(identity))


def test_snapshot_path_is_sibling_with_last_suffix() -> None:
    assert snapshot.snapshot_path("/etc/hosts") == "/etc/hosts.last"


def test_load_missing_snapshot_returns_none(
    store: snapshot.SnapshotStore, target_path: str
) -> None:
    """First run has no snapshot, distinct from an empty one."""
    assert store.load(target_path) is None


def test_save_then_load(store: snapshot.SnapshotStore, target_path: str) -> None:
    store.save(target_path, b"applied content\n", 0o640, "")

    assert store.load(target_path) == b"applied content\n"
    assert pathlib.Path(f"{target_path}.last").stat().st_mode & 0o7777 == 0o640


def test_save_uses_atomic_writer(store: snapshot.SnapshotStore, target_path: str) -> None:
    store.save(target_path, b"one", 0o600, "")
    store.save(target_path, b"two", 0o600, "")

    assert store.load(target_path) == b"two"
    assert not os.path.exists(writer.temp_path(snapshot.snapshot_path(target_path)))


def test_load_empty_snapshot_returns_empty_bytes(
    store: snapshot.SnapshotStore, target_path: str
) -> None:
    store.save(target_path, b"", 0o600, "")

    assert store.load(target_path) == b""


def test_diff_against_missing_snapshot_shows_all_lines_added(
    store: snapshot.SnapshotStore, target_path: str
) -> None:
    lines = store.diff(target_path, b"alpha\nbeta\n")

    assert "+alpha" in lines
    assert "+beta" in lines


def test_diff_shows_changed_lines(store: snapshot.SnapshotStore, target_path: str) -> None:
    store.save(target_path, b"alpha\nbeta\n", 0o600, "")

    lines = store.diff(target_path, b"alpha\ngamma\n")

    assert "-beta" in lines
    assert "+gamma" in lines
    assert "+alpha" not in lines


def test_diff_identical_content_is_empty(store: snapshot.SnapshotStore, target_path: str) -> None:
    store.save(target_path, b"same\n", 0o600, "")

    assert store.diff(target_path, b"same\n") == []


def test_diff_tolerates_binary_content(store: snapshot.SnapshotStore, target_path: str) -> None:
    store.save(target_path, b"\xff\xfe\x00", 0o600, "")

    assert store.diff(target_path, b"text\n") != []
