"""Shared test doubles; importable because conftest puts tests/ on sys.path."""

from __future__ import annotations

import os


class SelfIdentityResolver:
    """Resolves every owner to the current uid/gid so chown always succeeds."""

    def __init__(self) -> None:
        self.calls = list[str]()

    def resolve(self, owner_spec: str) -> tuple[int, int]:
        self.calls.append(owner_spec)
        return os.getuid(), os.getgid()


class FailingIdentityResolver:
    """Raises for every owner, like a host without the requested user."""

    def resolve(self, owner_spec: str) -> tuple[int, int]:
        raise LookupError(f"unknown user '{owner_spec}'")


class DictFetcher:
    """In-memory KVFetcher."""

    def __init__(self, values: dict[str, bytes]) -> None:
        self.values = values
        self.fetched = list[str]()

    def fetch(self, key: str) -> bytes:
        from kvexpress import exceptions

        self.fetched.append(key)
        if key not in self.values:
            raise exceptions.KVFetchError(f"Key not found: '{key}'")
        return self.values[key]
