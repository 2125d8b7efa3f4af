import logging
import os
import pathlib
import tempfile
from typing import Any

import pydantic
import ruamel.yaml

from kvexpress import exceptions
from kvexpress.config import models

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "KVEXPRESS_CONFIG"


def get_default_config_path() -> pathlib.Path:
    """Get user-level config path (~/.config/kvexpress/config.yaml)."""
    return pathlib.Path.home() / ".config" / "kvexpress" / "config.yaml"


def resolve_config_path(explicit: str | None = None) -> pathlib.Path:
    """Pick the config file: explicit path, then $KVEXPRESS_CONFIG, then the default."""
    if explicit:
        return pathlib.Path(explicit)
    if env_path := os.environ.get(CONFIG_ENV_VAR):
        return pathlib.Path(env_path)
    return get_default_config_path()


def _load_yaml(path: pathlib.Path) -> dict[str, Any]:
    """Load YAML config as a plain dict; a missing file is an empty config."""
    if not path.exists():
        return {}

    try:
        yaml = ruamel.yaml.YAML(typ="safe")
        with path.open() as f:
            data = yaml.load(f)
    except ruamel.yaml.YAMLError as e:
        raise exceptions.ConfigError(f"Invalid YAML in {path}: {e}") from e
    except PermissionError:
        raise exceptions.ConfigError(f"Permission denied reading {path}") from None
    except OSError as e:
        raise exceptions.ConfigError(f"Error reading {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise exceptions.ConfigError(f"Config in {path} must be a mapping")
    return dict(data)


def load_config(path: str | None = None) -> models.KvexpressConfig:
    """Load and validate config, falling back to defaults for missing keys."""
    config_path = resolve_config_path(path)
    raw = _load_yaml(config_path)
    try:
        config = models.KvexpressConfig.model_validate(raw)
    except pydantic.ValidationError as e:
        raise exceptions.ConfigValidationError(f"Invalid config in {config_path}:\n{e}") from e
    logger.debug(f"config='{config_path}' exists='{str(config_path.exists()).lower()}'")
    return config


def get_state_dir(config: models.KvexpressConfig) -> pathlib.Path:
    """Directory for per-target mutex files."""
    if config.core.state_dir:
        return pathlib.Path(config.core.state_dir)
    return pathlib.Path(tempfile.gettempdir()) / "kvexpress"
