from __future__ import annotations

import contextlib
import logging
from typing import TYPE_CHECKING

import click
import filelock

from kvexpress import engine, exceptions, kv, path_utils
from kvexpress.cli import decorators
from kvexpress.config import io as config_io
from kvexpress.identity import PosixIdentityResolver

if TYPE_CHECKING:
    from collections.abc import Generator

    from kvexpress.config.models import KvexpressConfig

logger = logging.getLogger(__name__)


@contextlib.contextmanager
def target_mutex(config: KvexpressConfig, target_path: str) -> Generator[None]:
    """Serialize ``out`` runs against one target across processes on this host."""
    lock_dir = config_io.get_state_dir(config) / "locks"
    lock_dir.mkdir(parents=True, exist_ok=True)
    lock = filelock.FileLock(
        lock_dir / path_utils.mutex_filename(target_path), timeout=config.core.lock_timeout
    )
    logger.debug(f"Acquiring target mutex: {lock.lock_file}")
    try:
        with lock:
            yield
    except filelock.Timeout:
        raise exceptions.LockTimeoutError(
            target_path, "acquire_target_mutex", f"held by another process: {lock.lock_file}"
        ) from None


@decorators.kvexpress_command("out")
@click.option("--key", "-k", "key", required=True, help="Key to pull data from")
@click.option("--file", "-f", "file_path", required=True, help="Where to write the data")
@click.option(
    "--chmod",
    "-c",
    "permissions",
    type=decorators.permission_mode_type,
    default=None,
    help="Octal permissions for the file (default 0640)",
)
@click.option(
    "--length",
    "-l",
    "min_length",
    type=click.IntRange(min=0),
    default=None,
    help="Minimum length of the data in bytes (default 10)",
)
@click.option("--owner", "-o", default=None, help="Owner of the file, user or user:group")
@click.option("--exec", "-e", "post_exec", default=None, help="Command to run after a write")
@click.option("--prefix", default=None, help="Key prefix in Consul (default kvexpress)")
@click.option("--consul", "address", default=None, help="Consul address")
@click.option("--token", "-t", default=None, help="Consul ACL token")
def out(
    key: str,
    file_path: str,
    permissions: int | None,
    min_length: int | None,
    owner: str | None,
    post_exec: str | None,
    prefix: str | None,
    address: str | None,
    token: str | None,
) -> None:
    """Write a file based on key data.

    Reads <prefix>/KEY/data and <prefix>/KEY/checksum from Consul and
    writes the data to FILE when it is long enough, matches its checksum,
    differs from what is on disk, and FILE is not locked.
    """
    config = decorators.get_config()
    target = engine.TargetFile(
        path=file_path,
        permission_mode=config.out.permissions if permissions is None else permissions,
        owner_spec=config.out.owner if owner is None else owner,
    )
    apply_config = engine.ApplyConfig(
        post_commit=config.out.exec if post_exec is None else post_exec,
        strict_ownership=config.core.strict_ownership,
    )
    apply_engine = engine.SafeApplyEngine(apply_config, PosixIdentityResolver())

    with kv.ConsulClient(
        address=address or config.consul.address,
        token=config.consul.token if token is None else token,
        timeout=config.consul.timeout,
    ) as client:
        state = kv.fetch_desired_state(
            client,
            key,
            prefix=config.consul.prefix if prefix is None else prefix,
            min_length=config.out.min_length if min_length is None else min_length,
        )

    with target_mutex(config, target.path):
        result = apply_engine.apply(state, target)

    click.echo(f"{result.path}: {result.outcome}")
