"""Owner-spec resolution.

An owner spec is ``user``, ``user:group``, or empty for the user running
kvexpress. Numeric ids are accepted in either position. Without an explicit
group the user's primary group is used.
"""

from __future__ import annotations

import getpass
import grp
import logging
import pwd
from typing import Protocol, override

logger = logging.getLogger(__name__)


class IdentityResolver(Protocol):
    """Resolves an owner spec to a numeric (uid, gid) pair."""

    def resolve(self, owner_spec: str) -> tuple[int, int] | None:
        """Return (uid, gid), or None when ownership should be left alone.

        Raises LookupError if the user or group does not exist.
        """
        ...


def default_owner() -> str:
    """Name of the user running this process."""
    return getpass.getuser()


class PosixIdentityResolver:
    """Resolve owners through the passwd and group databases."""

    def resolve(self, owner_spec: str) -> tuple[int, int]:
        user, _, group = (owner_spec or default_owner()).partition(":")
        entry = _lookup_user(user)
        gid = _lookup_group(group) if group else entry.pw_gid
        logger.debug(f"owner='{owner_spec}' uid='{entry.pw_uid}' gid='{gid}'")
        return entry.pw_uid, gid

    @override
    def __repr__(self) -> str:
        return "PosixIdentityResolver()"


class NullIdentityResolver:
    """Leaves ownership untouched, for platforms without chown."""

    def resolve(self, owner_spec: str) -> None:
        logger.debug(f"owner='{owner_spec}' chown='skipped'")
        return None


def _lookup_user(user: str) -> pwd.struct_passwd:
    try:
        if user.isdigit():
            return pwd.getpwuid(int(user))
        return pwd.getpwnam(user)
    except KeyError:
        raise LookupError(f"unknown user '{user}'") from None


def _lookup_group(group: str) -> int:
    try:
        if group.isdigit():
            return grp.getgrgid(int(group)).gr_gid
        return grp.getgrnam(group).gr_gid
    except KeyError:
        raise LookupError(f"unknown group '{group}'") from None
