from __future__ import annotations

from typing import TYPE_CHECKING

__version__ = "0.1.0-dev"

if TYPE_CHECKING:
    from kvexpress.engine import ApplyConfig as ApplyConfig
    from kvexpress.engine import ApplyOutcome as ApplyOutcome
    from kvexpress.engine import ApplyResult as ApplyResult
    from kvexpress.engine import DesiredState as DesiredState
    from kvexpress.engine import SafeApplyEngine as SafeApplyEngine
    from kvexpress.engine import TargetFile as TargetFile

# Lazy import mapping for runtime
_LAZY_IMPORTS: dict[str, tuple[str, str]] = {
    "ApplyConfig": ("kvexpress.engine", "ApplyConfig"),
    "ApplyOutcome": ("kvexpress.engine", "ApplyOutcome"),
    "ApplyResult": ("kvexpress.engine", "ApplyResult"),
    "DesiredState": ("kvexpress.engine", "DesiredState"),
    "SafeApplyEngine": ("kvexpress.engine", "SafeApplyEngine"),
    "TargetFile": ("kvexpress.engine", "TargetFile"),
}


def __getattr__(name: str) -> object:
    """Lazily import public API members on first access."""
    if name in _LAZY_IMPORTS:
        module_path, attr_name = _LAZY_IMPORTS[name]
        import importlib

        module = importlib.import_module(module_path)
        value = getattr(module, attr_name)
        globals()[name] = value
        return value
    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)


def __dir__() -> list[str]:
    """List available attributes including lazy imports."""
    return list(globals().keys()) + list(_LAZY_IMPORTS.keys())
