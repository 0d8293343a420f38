"""Configuration management for dirmutex.

Settings come from, in increasing precedence: built-in defaults, the
``[mutex]`` table of ``dirmutex.toml``, ``DIRMUTEX_*`` environment
variables, and explicit overrides (CLI options).
"""

import os
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .constants import (
    ACQUIRE_TIMEOUT,
    BACKOFF_MULTIPLIER,
    CONFIG_FILE,
    DEFAULT_ROOT,
    ENV_PREFIX,
    INITIAL_WAIT,
    LOCK_TIMEOUT,
    MAX_WAIT,
    POLL_INTERVAL,
    WAIT_TIMEOUT,
)
from .errors import ConfigError

# Environment variable suffix -> config field
ENV_FIELDS = {
    "ROOT": "root",
    "LOCK_TIMEOUT": "lock_timeout",
    "INITIAL_WAIT": "initial_wait",
    "MAX_WAIT": "max_wait",
    "BACKOFF_MULTIPLIER": "backoff_multiplier",
    "POLL_INTERVAL": "poll_interval",
    "ACQUIRE_TIMEOUT": "acquire_timeout",
    "WAIT_TIMEOUT": "wait_timeout",
}


class MutexConfig(BaseModel):
    """Lock namespace and timing settings."""

    model_config = ConfigDict(extra="forbid")

    root: Path = Field(default=Path(DEFAULT_ROOT), description="Lock namespace directory")
    lock_timeout: float = Field(
        default=LOCK_TIMEOUT, gt=0, description="Age in seconds after which a lock is stale"
    )
    initial_wait: float = Field(default=INITIAL_WAIT, gt=0, description="First retry wait")
    max_wait: float = Field(default=MAX_WAIT, gt=0, description="Cap on a single retry wait")
    backoff_multiplier: float = Field(
        default=BACKOFF_MULTIPLIER, ge=1, description="Growth factor between retry waits"
    )
    poll_interval: float = Field(
        default=POLL_INTERVAL, gt=0, description="Polling interval for wait_for_release"
    )
    acquire_timeout: float = Field(
        default=ACQUIRE_TIMEOUT, ge=0, description="Default acquire timeout for the CLI"
    )
    wait_timeout: float = Field(
        default=WAIT_TIMEOUT, ge=0, description="Default wait timeout for the CLI"
    )

    @model_validator(mode="after")
    def _check_backoff_bounds(self) -> "MutexConfig":
        if self.max_wait < self.initial_wait:
            raise ValueError("max_wait must be greater than or equal to initial_wait")
        return self


def _env_overrides(environ: Mapping[str, str]) -> dict[str, str]:
    overrides = {}
    for suffix, field in ENV_FIELDS.items():
        value = environ.get(f"{ENV_PREFIX}{suffix}")
        if value is not None and value != "":
            overrides[field] = value
    return overrides


def load_config(
    config_path: Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    **overrides: Any,
) -> MutexConfig:
    """Load configuration.

    Args:
        config_path: TOML file to read; defaults to ./dirmutex.toml if present
        environ: Environment mapping (defaults to os.environ)
        **overrides: Explicit values; None values are ignored

    Returns:
        Validated configuration

    Raises:
        ConfigError: If the file cannot be parsed or a value is invalid
    """
    data: dict[str, Any] = {}

    explicit = config_path is not None
    path = config_path if explicit else Path(CONFIG_FILE)
    if path.exists():
        try:
            with open(path, "rb") as f:
                document = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise ConfigError(f"Cannot read config {path}: {e}") from e
        section = document.get("mutex", {})
        if not isinstance(section, dict):
            raise ConfigError(f"Config {path}: [mutex] must be a table")
        data.update(section)
    elif explicit:
        raise ConfigError(f"Config file not found: {path}")

    data.update(_env_overrides(os.environ if environ is None else environ))
    data.update({key: value for key, value in overrides.items() if value is not None})

    try:
        return MutexConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


def write_config_template(config_path: Path) -> Path:
    """Write a config template holding the defaults.

    Args:
        config_path: Destination file

    Returns:
        Path to the written config file
    """
    defaults = MutexConfig()
    template = {
        "mutex": {
            "root": str(defaults.root),
            "lock_timeout": defaults.lock_timeout,
            "initial_wait": defaults.initial_wait,
            "max_wait": defaults.max_wait,
            "backoff_multiplier": defaults.backoff_multiplier,
            "poll_interval": defaults.poll_interval,
            "acquire_timeout": defaults.acquire_timeout,
            "wait_timeout": defaults.wait_timeout,
        }
    }
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "wb") as f:
        tomli_w.dump(template, f)
    return config_path


# Active configuration (set by cli.py main callback)
_active: MutexConfig | None = None


def get_active_config() -> MutexConfig:
    """Get the configuration selected by the CLI, or the defaults."""
    if _active is None:
        return load_config()
    return _active


def set_active_config(config: MutexConfig) -> None:
    """Set the active configuration. Called by CLI main callback."""
    global _active
    _active = config
