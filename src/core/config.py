"""
Client settings.

Read from environment variables, falling back to defaults that match a locally running server.
Command line flags (see src/main.py) take precedence over both.
"""

import os
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from src.core.exceptions import ConfigurationError

DEFAULT_SERVER_URL = "ws://localhost:999"
DEFAULT_CONNECT_TIMEOUT_S = 10.0
DEFAULT_LOG_LEVEL = "INFO"


@dataclass(frozen=True)
class Settings:
    server_url: str
    connect_timeout_s: float
    log_level: str


def _get(
    env: Mapping[str, str],
    name: str,
    default: Any,
    cast: Optional[Callable[[str], Any]] = None,
) -> Any:
    value = env.get(name)
    if value is None or value == "":
        return default
    if cast is None:
        return value
    try:
        return cast(value)
    except ValueError as e:
        raise ConfigurationError(f"Invalid value for {name}: {value!r}") from e


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Build the settings from the environment (os.environ unless another mapping is given)"""
    env = os.environ if env is None else env
    return Settings(
        server_url=_get(env, "MILL_SERVER_URL", DEFAULT_SERVER_URL),
        connect_timeout_s=_get(
            env, "MILL_CONNECT_TIMEOUT_S", DEFAULT_CONNECT_TIMEOUT_S, cast=float
        ),
        log_level=_get(env, "MILL_LOG_LEVEL", DEFAULT_LOG_LEVEL, cast=str.upper),
    )
