from __future__ import annotations

import functools
import json
from typing import TYPE_CHECKING, Any

import click

from kvexpress import exceptions, metrics
from kvexpress.config import io as config_io
from kvexpress.config.models import parse_permission_mode

if TYPE_CHECKING:
    from collections.abc import Callable

    from kvexpress.config.models import KvexpressConfig


def _handle_kvexpress_error(e: exceptions.KvexpressError) -> click.ClickException:
    """Convert KvexpressError to user-friendly ClickException."""
    message = e.format_user_message()
    if suggestion := e.get_suggestion():
        message = f"{message}\n\nTip: {suggestion}"
    return click.ClickException(message)


def with_error_handling[**P, R](func: Callable[P, R]) -> Callable[P, R]:
    """Wrap function with kvexpress error handling."""

    @functools.wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        try:
            return func(*args, **kwargs)
        except click.ClickException:
            raise
        except exceptions.KvexpressError as e:
            raise _handle_kvexpress_error(e) from e
        except Exception as e:
            raise click.ClickException(repr(e)) from e

    return wrapper


def _print_metrics_summary() -> None:
    payload = {"counts": metrics.counts(), "timings": metrics.summary()}
    click.echo(json.dumps(payload, indent=2), err=True)


def kvexpress_command(
    name: str | None = None, **attrs: Any
) -> Callable[[Callable[..., Any]], click.Command]:
    """Create a Click command with kvexpress error handling.

    Prints the metrics summary to stderr after the command when metrics
    are enabled, whether the command succeeded or not.
    """

    def decorator(func: Callable[..., Any]) -> click.Command:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return func(*args, **kwargs)
            finally:
                if metrics.is_enabled():
                    _print_metrics_summary()

        return click.command(name=name, **attrs)(with_error_handling(wrapper))

    return decorator


def get_config() -> KvexpressConfig:
    """Load config once per invocation and cache it on the Click context."""
    ctx = click.get_current_context()
    obj = ctx.find_root().obj
    if obj is None:
        return config_io.load_config()
    if obj.get("config") is None:
        obj["config"] = config_io.load_config(obj.get("config_path"))
    return obj["config"]


def permission_mode_type(value: str | int) -> int:
    """Click converter for octal modes."""
    try:
        return parse_permission_mode(value)
    except ValueError as e:
        raise click.BadParameter(str(e)) from None
