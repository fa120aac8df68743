"""Application settings with environment-based simple classes."""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from typing import Final

from dotenv import load_dotenv

# Public selector env var (keep neutral name to avoid collisions)
ENV_VAR: Final[str] = "APP_ENV"  # 'development' | 'testing' | 'production'

MEMORY_BACKEND: Final[str] = "memory"
REDIS_BACKEND: Final[str] = "redis"

_DURATION_RE = re.compile(r"^(\d+)([smhd]?)$")
_UNIT_SECONDS: Final[Mapping[str, int]] = {"": 1, "s": 1, "m": 60, "h": 60 * 60, "d": 24 * 60 * 60}

# Load .env in development (no-op when the file is missing)
load_dotenv()


def env_bool(name: str, default: bool = False) -> bool:
    """Parse a boolean flag from an environment variable.

    Parameters
    ----------
    name: str
        Environment variable to inspect.
    default: bool, optional
        Value returned when the variable is unset. Defaults to ``False``.

    Returns
    -------
    bool
        ``True`` if the value resembles ``{"1", "true", "yes", "y", "on"}``
        ignoring case; otherwise ``False`` or ``default`` when missing.
    """
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "y", "on"}


def parse_duration(value: str | int) -> int:
    """Convert a duration such as ``"15m"``, ``"7d"`` or ``"3600"`` to seconds.

    Parameters
    ----------
    value: str | int
        Integer seconds, or digits followed by one of ``s``, ``m``, ``h``, ``d``.

    Returns
    -------
    int
        Positive number of seconds.

    Raises
    ------
    ValueError
        When the value is malformed or not positive.
    """
    if isinstance(value, int) and not isinstance(value, bool):
        seconds = value
    else:
        match = _DURATION_RE.match(str(value).strip().lower())
        if not match:
            raise ValueError(f"Invalid duration: {value!r}")
        seconds = int(match.group(1)) * _UNIT_SECONDS[match.group(2)]
    if seconds <= 0:
        raise ValueError(f"Duration must be positive: {value!r}")
    return seconds


class BaseConfig:
    """Base configuration shared across environments.

    Attributes
    ----------
    TOKEN_STORE_BACKEND: str
        ``"memory"`` (single instance) or ``"redis"`` (shared, multi-instance).
    REDIS_URL: str | None
        Connection URL of the shared backend; required when it is selected.
    REFRESH_TOKEN_TTL: int
        Lifetime of a user's session group in seconds, read from
        ``JWT_REFRESH_EXPIRES_IN`` (``"7d"`` by default).
    TOKEN_SWEEP_ENABLED: bool
        Runs the in-process expiry sweeper of the memory backend.
    TOKEN_SWEEP_INTERVAL: int
        Seconds between two sweeper passes.
    TOKEN_SWEEP_BATCH_SIZE: int
        Keys handled per sweeper batch before yielding.
    LOG_LEVEL: str
        Root logging verbosity (``INFO`` by default).
    DEBUG: bool
        Toggles Flask debug mode.
    TESTING: bool
        Enables Flask testing mode when ``True``.

    Notes
    -----
    Values are primarily sourced from environment variables, enabling
    configuration without code changes.
    """

    # Token storage
    TOKEN_STORE_BACKEND = os.getenv("TOKEN_STORE_BACKEND", MEMORY_BACKEND).strip().lower()
    REDIS_URL = os.getenv("REDIS_URL")
    REFRESH_TOKEN_TTL = parse_duration(os.getenv("JWT_REFRESH_EXPIRES_IN", "7d"))

    # Expiry sweeper (memory backend only)
    TOKEN_SWEEP_ENABLED = env_bool("TOKEN_SWEEP_ENABLED", True)
    TOKEN_SWEEP_INTERVAL = parse_duration(os.getenv("TOKEN_SWEEP_INTERVAL", "5m"))
    TOKEN_SWEEP_BATCH_SIZE = int(os.getenv("TOKEN_SWEEP_BATCH_SIZE", "500"))

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Flask built-ins
    DEBUG = False
    TESTING = False


class DevelopmentConfig(BaseConfig):
    """Configuration tailored for local development.

    Notes
    -----
    Enables debug mode by default and keeps the in-process token store unless
    ``TOKEN_STORE_BACKEND`` says otherwise.
    """

    DEBUG = env_bool("FLASK_DEBUG", True)


class TestingConfig(BaseConfig):
    """Configuration for automated test runs.

    Notes
    -----
    - Forces ``TESTING`` mode and the memory backend.
    - Disables the sweeper thread; tests drive passes explicitly.
    """

    TESTING = True
    DEBUG = False
    TOKEN_STORE_BACKEND = MEMORY_BACKEND
    TOKEN_SWEEP_ENABLED = False


class ProductionConfig(BaseConfig):
    """Configuration defaults for production deployments.

    Notes
    -----
    Defaults to the Redis backend: sessions must survive restarts and be
    visible to every instance.
    """

    DEBUG = False
    TOKEN_STORE_BACKEND = os.getenv("TOKEN_STORE_BACKEND", REDIS_BACKEND).strip().lower()


# Map names -> classes (simple, explicit)
CONFIG_MAP: Mapping[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config() -> type[BaseConfig]:
    """Return the configuration class inferred from ``APP_ENV``.

    Returns
    -------
    type[BaseConfig]
        Class to pass to :meth:`flask.Config.from_object`.

    Notes
    -----
    Falls back to :class:`DevelopmentConfig` when ``APP_ENV`` is unset or
    unknown.
    """
    name = os.getenv(ENV_VAR, "development").strip().lower()
    return CONFIG_MAP.get(name, DevelopmentConfig)
