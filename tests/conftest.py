from __future__ import annotations

import pathlib
import sys
from collections.abc import Callable, Generator

import click.testing
import pytest

from kvexpress import checksum, engine, metrics

# Add tests directory to sys.path so helpers.py can be imported
_tests_dir = pathlib.Path(__file__).parent
if str(_tests_dir) not in sys.path:
    sys.path.insert(0, str(_tests_dir))

from helpers import SelfIdentityResolver  # noqa: E402

# Type alias for make_state fixture: (content, min_length) -> DesiredState
MakeState = Callable[..., engine.DesiredState]


@pytest.fixture(autouse=True)
def _isolate_environment(
    tmp_path: pathlib.Path, monkeypatch: pytest.MonkeyPatch
) -> Generator[None]:
    """Keep tests away from real config files and collected metrics."""
    monkeypatch.setenv("KVEXPRESS_CONFIG", str(tmp_path / "no-such-config.yaml"))
    monkeypatch.delenv("KVEXPRESS_METRICS", raising=False)
    metrics.disable()
    metrics.clear()
    yield
    metrics.disable()
    metrics.clear()


@pytest.fixture
def runner() -> click.testing.CliRunner:
    """Create a CLI runner for testing."""
    return click.testing.CliRunner()


@pytest.fixture
def identity() -> SelfIdentityResolver:
    return SelfIdentityResolver()


@pytest.fixture
def target_path(tmp_path: pathlib.Path) -> str:
    """Absolute path of a target that does not exist yet."""
    return str(tmp_path / "etc" / "hosts.conf")


@pytest.fixture
def apply_engine(identity: SelfIdentityResolver) -> engine.SafeApplyEngine:
    return engine.SafeApplyEngine(engine.ApplyConfig(), identity)


@pytest.fixture
def make_state() -> MakeState:
    """Build a DesiredState whose checksum matches its content."""

    def _make(content: bytes, min_length: int = 10) -> engine.DesiredState:
        return engine.DesiredState(
            content=content, checksum=checksum.compute(content), min_length=min_length
        )

    return _make
