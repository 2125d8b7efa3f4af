from __future__ import annotations

import pydantic
import pytest

from kvexpress.config import models


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (0o640, 0o640),
        ("640", 0o640),
        ("0640", 0o640),
        ("0o755", 0o755),
        (" 600 ", 0o600),
        ("4755", 0o4755),
    ],
)
def test_parse_permission_mode(value: str | int, expected: int) -> None:
    assert models.parse_permission_mode(value) == expected


@pytest.mark.parametrize("value", ["rw-r-----", "999", -1, 0o10000, True, 6.4])
def test_parse_permission_mode_rejects(value: object) -> None:
    with pytest.raises(ValueError):
        models.parse_permission_mode(value)


def test_min_length_must_not_be_negative() -> None:
    with pytest.raises(pydantic.ValidationError):
        models.OutConfig(min_length=-1)


def test_lock_timeout_accepts_forever_and_non_negative() -> None:
    assert models.CoreConfig(lock_timeout=-1).lock_timeout == -1
    assert models.CoreConfig(lock_timeout=0).lock_timeout == 0
    with pytest.raises(pydantic.ValidationError):
        models.CoreConfig(lock_timeout=-5)


def test_consul_timeout_must_be_positive() -> None:
    with pytest.raises(pydantic.ValidationError):
        models.ConsulConfig(timeout=0)
