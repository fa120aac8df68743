from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, cast

import redis  # type: ignore[import-untyped]

from sessionstore.services._shared.errors import StorageError
from sessionstore.services._shared.ports import (
    DEFAULT_SET_TTL,
    TokenRepository,
    require_key,
    require_ttl,
    require_value,
)

log = logging.getLogger(__name__)


def _s(value: Any) -> str:
    return value.decode() if isinstance(value, bytes | bytearray) else str(value)


@contextmanager
def _storage_errors(operation: str, key: str) -> Iterator[None]:
    """Translate redis-py failures into :class:`StorageError`."""
    try:
        yield
    except redis.RedisError as exc:
        log.error(
            "Redis %s failed for %s",
            operation,
            key,
            exc_info=True,
            extra={"store_key": key, "backend": "redis"},
        )
        raise StorageError(operation, key, str(exc) or type(exc).__name__) from exc


@dataclass(slots=True)
class RedisTokenRepository(TokenRepository):
    """
    Redis-backed token repository for multi-instance deployments.

    Redis is the single source of truth and expires keys natively, so no
    sweeper runs in-process and every service instance sees the same state.

    :param r: A Redis client (already connected). The repository owns it and
        closes it on :meth:`dispose`.
    :param max_watch_retries: Optimistic-lock attempts for :meth:`add_to_set`
        before giving up with :class:`StorageError`.
    """

    r: redis.Redis
    max_watch_retries: int = 16

    # -------------------- API ------------------------

    def set(self, key: str, value: str, ttl: int) -> None:
        require_key(key)
        require_value(value)
        require_ttl(ttl)
        with _storage_errors("set", key):
            self.r.set(key, value, ex=ttl)

    def get(self, key: str) -> str | None:
        require_key(key)
        with _storage_errors("get", key):
            raw = self.r.get(key)
        return None if raw is None else _s(raw)

    def delete(self, key: str) -> None:
        require_key(key)
        with _storage_errors("delete", key):
            self.r.delete(key)

    def add_to_set(self, key: str, value: str, ttl: int = DEFAULT_SET_TTL) -> None:
        """
        Add a member, setting the expiry only when this call creates the set.

        Uses WATCH/MULTI/EXEC (optimistic locking): if another client creates,
        expires or deletes the key between the existence check and EXEC, the
        transaction aborts and is retried, so the "did I create it" decision is
        atomic with the insert and concurrent first logins yield one expiry.
        """
        require_key(key)
        require_key(value, what="member")
        require_ttl(ttl)
        with _storage_errors("add_to_set", key):
            for attempt in range(1, self.max_watch_retries + 1):
                try:
                    with self.r.pipeline() as p:
                        p.watch(key)
                        created = not p.exists(key)
                        p.multi()
                        p.sadd(key, value)
                        if created:
                            p.expire(key, ttl)
                        p.execute()
                    return
                except redis.WatchError:
                    # Concurrent modification detected; retry
                    log.debug("add_to_set on %s raced (attempt %d)", key, attempt)
                    continue
        raise StorageError(
            "add_to_set", key, f"gave up after {self.max_watch_retries} concurrent modifications"
        )

    def get_set(self, key: str) -> list[str]:
        require_key(key)
        with _storage_errors("get_set", key):
            members = self.r.smembers(key)
        return sorted(_s(m) for m in members)

    def remove_from_set(self, key: str, value: str) -> None:
        require_key(key)
        require_key(value, what="member")
        # Redis drops a set once its last member is removed
        with _storage_errors("remove_from_set", key):
            self.r.srem(key, value)

    def remaining_ttl(self, key: str) -> int | None:
        require_key(key)
        with _storage_errors("remaining_ttl", key):
            ttl = cast(int, self.r.ttl(key))
        # -2: missing, -1: no expiry
        return ttl if ttl >= 0 else None

    def dispose(self) -> None:
        self.r.close()
