from __future__ import annotations

import click

from kvexpress.cli import decorators
from kvexpress.identity import PosixIdentityResolver
from kvexpress.storage import lock as lock_mod
from kvexpress.storage import writer as writer_mod


def _lock_guard() -> lock_mod.LockGuard:
    config = decorators.get_config()
    writer = writer_mod.AtomicFileWriter(
        PosixIdentityResolver(), strict_ownership=config.core.strict_ownership
    )
    return lock_mod.LockGuard(writer)


@decorators.kvexpress_command("lock")
@click.option("--file", "-f", "file_path", required=True, help="File to lock")
@click.option("--reason", "-r", default="No reason given.", help="Why the file is locked")
@click.option(
    "--chmod",
    "-c",
    "permissions",
    type=decorators.permission_mode_type,
    default=None,
    help="Octal permissions for the lock file",
)
@click.option("--owner", "-o", default=None, help="Owner of the lock file")
def lock(file_path: str, reason: str, permissions: int | None, owner: str | None) -> None:
    """Lock a file so kvexpress will not write to it.

    Creates FILE.locked containing REASON and unlock instructions.
    """
    config = decorators.get_config()
    created = _lock_guard().lock(
        file_path,
        reason,
        config.out.permissions if permissions is None else permissions,
        config.out.owner if owner is None else owner,
    )
    state = "locked" if created else "already locked"
    click.echo(f"{file_path}: {state}")


@decorators.kvexpress_command("unlock")
@click.option("--file", "-f", "file_path", required=True, help="File to unlock")
def unlock(file_path: str) -> None:
    """Unlock a file so kvexpress can write to it again."""
    removed = _lock_guard().unlock(file_path)
    state = "unlocked" if removed else "was not locked"
    click.echo(f"{file_path}: {state}")
