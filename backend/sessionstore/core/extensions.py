"""Token-store wiring: backend selection, Redis connection and accessors."""

from __future__ import annotations

import atexit
import logging
from typing import cast

import redis  # type: ignore[import-untyped]
from flask import Flask, current_app
from redis.exceptions import RedisError  # type: ignore[import-untyped]

from sessionstore.core.config import MEMORY_BACKEND, REDIS_BACKEND
from sessionstore.infra.memory.memory_token_repository import MemoryTokenRepository
from sessionstore.infra.redis.redis_token_repository import RedisTokenRepository
from sessionstore.services._shared.ports import TokenRepository
from sessionstore.services.sessions import SessionConfig, SessionService

log = logging.getLogger(__name__)

TOKEN_REPOSITORY_EXT = "token_repository"
SESSION_SERVICE_EXT = "session_service"


def connect_redis(redis_url: str | None) -> redis.Redis:
    """Create a Redis client and check it answers.

    Parameters
    ----------
    redis_url: str | None
        Connection URL (``redis://host:port/db``).

    Raises
    ------
    RuntimeError
        When the URL is missing or the server cannot be reached.
    """
    if not redis_url:
        raise RuntimeError("REDIS_URL must be set when TOKEN_STORE_BACKEND is 'redis'")
    client = redis.Redis.from_url(redis_url)
    try:
        client.ping()
    except RedisError as exc:
        raise RuntimeError(f"Failed to connect to Redis at {redis_url!r}") from exc
    return client


def build_token_repository(app: Flask) -> TokenRepository:
    """Instantiate the repository selected by ``TOKEN_STORE_BACKEND``."""
    backend = str(app.config.get("TOKEN_STORE_BACKEND", MEMORY_BACKEND)).strip().lower()
    if backend == MEMORY_BACKEND:
        return MemoryTokenRepository(
            sweep_interval=app.config.get("TOKEN_SWEEP_INTERVAL", 300),
            sweep_batch_size=app.config.get("TOKEN_SWEEP_BATCH_SIZE", 500),
            start_sweeper=bool(app.config.get("TOKEN_SWEEP_ENABLED", True)),
        )
    if backend == REDIS_BACKEND:
        return RedisTokenRepository(r=connect_redis(app.config.get("REDIS_URL")))
    raise RuntimeError(f"Unknown TOKEN_STORE_BACKEND {backend!r}")


def init_app(app: Flask) -> None:
    """Build the token repository and the session service for ``app``.

    Parameters
    ----------
    app: flask.Flask
        Application whose ``extensions`` registry receives both objects. The
        repository is disposed at interpreter exit unless
        :func:`teardown_app` releases it first.
    """
    repository = build_token_repository(app)
    app.extensions[TOKEN_REPOSITORY_EXT] = repository
    app.extensions[SESSION_SERVICE_EXT] = SessionService(
        repository=repository,
        cfg=SessionConfig(refresh_ttl=int(app.config.get("REFRESH_TOKEN_TTL", 7 * 24 * 60 * 60))),
    )
    atexit.register(repository.dispose)
    log.info(
        "Token repository ready: %s",
        type(repository).__name__,
        extra={"backend": app.config.get("TOKEN_STORE_BACKEND")},
    )


def teardown_app(app: Flask) -> None:
    """Dispose the repository of ``app`` now rather than at interpreter exit.

    Drops both registry entries and the exit hook registered by
    :func:`init_app`, so short-lived apps (tests, one-off scripts) release
    their store immediately. Calling it twice is harmless.
    """
    app.extensions.pop(SESSION_SERVICE_EXT, None)
    repository = app.extensions.pop(TOKEN_REPOSITORY_EXT, None)
    if repository is None:
        return
    atexit.unregister(repository.dispose)
    repository.dispose()


def get_token_repository() -> TokenRepository:
    """Return the repository of the current app."""
    repository = current_app.extensions.get(TOKEN_REPOSITORY_EXT)
    if repository is None:
        raise RuntimeError("Token repository is not initialized. Call init_app() first.")
    return cast(TokenRepository, repository)


def get_session_service() -> SessionService:
    """Return the session service of the current app."""
    service = current_app.extensions.get(SESSION_SERVICE_EXT)
    if service is None:
        raise RuntimeError("Session service is not initialized. Call init_app() first.")
    return cast(SessionService, service)
