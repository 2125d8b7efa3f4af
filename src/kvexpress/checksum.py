"""Content digests used to verify fetched data and detect changes.

The digest is the lowercase hex SHA-256 of the raw bytes, the same value
kvexpress-compatible writers store in the ``checksum`` key next to ``data``.
"""

from __future__ import annotations

import hashlib
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import os

CHUNK_SIZE = 1024 * 1024  # 1MB chunks for hashing


def compute(content: bytes) -> str:
    """Return the hex SHA-256 digest of content."""
    return hashlib.sha256(content).hexdigest()


def matches(content: bytes, expected: str) -> bool:
    """Check content against a declared digest.

    Whitespace around the declared digest is ignored (values fetched from a
    KV store often end with a newline), as is hex case.
    """
    return compute(content) == expected.strip().lower()


def file_checksum(path: str | os.PathLike[str]) -> str | None:
    """Digest of a file's content, or None if the file does not exist."""
    hasher = hashlib.sha256()
    try:
        with open(path, "rb") as f:
            while chunk := f.read(CHUNK_SIZE):
                hasher.update(chunk)
    except (FileNotFoundError, NotADirectoryError):
        return None
    return hasher.hexdigest()
