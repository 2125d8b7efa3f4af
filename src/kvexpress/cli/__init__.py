from __future__ import annotations

import importlib
import logging
from typing import TYPE_CHECKING, TypedDict, override

import click

from kvexpress import __version__

if TYPE_CHECKING:
    from kvexpress.config.models import KvexpressConfig

# Lazy command registry: command_name -> (module_path, attr_name, help_text)
_LAZY_COMMANDS: dict[str, tuple[str, str, str]] = {
    "out": ("kvexpress.cli.out", "out", "Write a file based on key data."),
    "lock": ("kvexpress.cli.lock", "lock", "Lock a file so kvexpress will not write to it."),
    "unlock": ("kvexpress.cli.lock", "unlock", "Unlock a file so kvexpress can write to it."),
}


class CliContext(TypedDict):
    """Context object for CLI commands."""

    verbose: bool
    quiet: bool
    config_path: str | None
    config: KvexpressConfig | None


class KvexpressGroup(click.Group):
    """Group with lazy command loading."""

    @override
    def list_commands(self, ctx: click.Context) -> list[str]:
        return sorted(_LAZY_COMMANDS.keys())

    @override
    def get_command(self, ctx: click.Context, cmd_name: str) -> click.Command | None:
        if cmd_name not in _LAZY_COMMANDS:
            return None

        module_path, attr_name, _help = _LAZY_COMMANDS[cmd_name]
        module = importlib.import_module(module_path)
        return getattr(module, attr_name)

    @override
    def format_commands(self, ctx: click.Context, formatter: click.HelpFormatter) -> None:
        """Format commands from cached help strings without importing them."""
        commands = [(name, _LAZY_COMMANDS[name][2]) for name in self.list_commands(ctx)]
        if commands:
            with formatter.section("Commands"):
                formatter.write_dl(commands)


def _setup_logging(verbose: bool, quiet: bool) -> None:
    """Configure logging for CLI output."""
    if quiet:
        level = logging.WARNING
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO
    logging.basicConfig(level=level, format="%(message)s", force=True)


@click.group(cls=KvexpressGroup)
@click.version_option(__version__, prog_name="kvexpress")
@click.option("--verbose", "-v", is_flag=True, help="Show detailed output")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Config file (default: $KVEXPRESS_CONFIG or ~/.config/kvexpress/config.yaml)",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, quiet: bool, config_path: str | None) -> None:
    """Safely apply configuration stored in Consul to files on disk.

    Files are only rewritten when the checksummed content changed, are
    replaced atomically, and are left alone while a .locked marker exists.
    """
    if verbose and quiet:
        raise click.UsageError("--verbose and --quiet are mutually exclusive")
    ctx.obj = CliContext(verbose=verbose, quiet=quiet, config_path=config_path, config=None)
    _setup_logging(verbose, quiet)


def main() -> None:
    """Main CLI entry point."""
    cli()


if __name__ == "__main__":
    main()
