"""Path validation and sibling-file helpers."""

from __future__ import annotations

import hashlib
import os

from kvexpress import exceptions

# NAME_MAX is 255; 32 hex chars keep mutex names well inside it.
_MUTEX_NAME_HASH_LEN = 32


def require_absolute(path: str) -> str:
    """Reject relative paths; targets are always addressed absolutely."""
    if not os.path.isabs(path):
        raise exceptions.InvalidPathError(f"Please supply a complete file path: '{path}'")
    return path


def mutex_filename(target_path: str) -> str:
    """Filename for the per-target mutex, independent of the target's length."""
    digest = hashlib.sha256(target_path.encode()).hexdigest()[:_MUTEX_NAME_HASH_LEN]
    return f"{digest}.lock"
