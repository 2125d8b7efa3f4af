from typing import Annotated, Any, Self

import pydantic

MAX_PERMISSION_MODE = 0o7777


def parse_permission_mode(value: Any) -> int:
    """Accept 0o640, 416, "640", "0640" or "0o640"; strings are always octal."""
    if isinstance(value, bool):
        raise ValueError("permissions must be an octal mode, not a boolean")
    if isinstance(value, str):
        text = value.strip().lower().removeprefix("0o")
        try:
            value = int(text, 8)
        except ValueError:
            raise ValueError(f"permissions must be an octal mode, got: {text!r}") from None
    if not isinstance(value, int):
        raise ValueError(f"permissions must be an octal mode, got: {value!r}")
    if not 0 <= value <= MAX_PERMISSION_MODE:
        raise ValueError(f"permissions out of range: {value:o}")
    return value


class ConsulConfig(pydantic.BaseModel):
    """Where desired state is read from."""

    address: str = "http://localhost:8500"
    token: str = ""
    prefix: str = "kvexpress"
    timeout: Annotated[float, pydantic.Field(gt=0)] = 10.0


class CoreConfig(pydantic.BaseModel):
    """Behaviour shared by every command."""

    strict_ownership: bool = True
    state_dir: str = ""
    lock_timeout: float = -1

    @pydantic.field_validator("lock_timeout")
    @classmethod
    def validate_lock_timeout(cls, v: float) -> float:
        """-1 waits forever; otherwise seconds, zero meaning non-blocking."""
        if v < 0 and v != -1:
            raise ValueError("lock_timeout must be -1 or >= 0")
        return v


class OutConfig(pydantic.BaseModel):
    """Defaults for ``kvexpress out`` and ``kvexpress lock``."""

    permissions: int = 0o640
    owner: str = ""
    min_length: Annotated[int, pydantic.Field(ge=0)] = 10
    exec: str = ""

    @pydantic.field_validator("permissions", mode="before")
    @classmethod
    def parse_permissions(cls, v: Any) -> int:
        return parse_permission_mode(v)


class KvexpressConfig(pydantic.BaseModel):
    """Complete kvexpress configuration schema."""

    model_config = pydantic.ConfigDict(extra="forbid")

    consul: ConsulConfig = pydantic.Field(default_factory=ConsulConfig)
    core: CoreConfig = pydantic.Field(default_factory=CoreConfig)
    out: OutConfig = pydantic.Field(default_factory=OutConfig)

    @classmethod
    def get_default(cls) -> Self:
        """Get default configuration."""
        return cls()
