from __future__ import annotations

import logging
import math
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from types import TracebackType

from sessionstore.infra.memory.expiry_sweeper import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_SWEEP_INTERVAL,
    ExpirySweeper,
)
from sessionstore.services._shared.errors import StorageError
from sessionstore.services._shared.ports import (
    DEFAULT_SET_TTL,
    TokenRepository,
    require_key,
    require_ttl,
    require_value,
)

log = logging.getLogger(__name__)


@dataclass(slots=True)
class _Entry:
    value: str | set[str]
    expires_at: float


class MemoryTokenRepository(TokenRepository):
    """
    Process-local token repository for single-instance deployments.

    Records and sets share one namespace and are told apart by value shape,
    like keys of different types in Redis. Expiry is checked on every access;
    the background :class:`ExpirySweeper` only bounds memory growth.

    .. note::
       State lives in this process only. Run the Redis backend as soon as
       more than one instance serves requests.

    :param clock: Source of the current time in seconds (``time.time``).
    :param sweep_interval: Seconds between two sweeper passes.
    :param sweep_batch_size: Keys handled per sweeper batch.
    :param start_sweeper: Start the sweeper thread right away.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], float] = time.time,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL,
        sweep_batch_size: int = DEFAULT_BATCH_SIZE,
        start_sweeper: bool = True,
    ) -> None:
        self._entries: dict[str, _Entry] = {}
        self._lock = threading.Lock()
        self._clock = clock
        self.sweeper = ExpirySweeper(self, interval=sweep_interval, batch_size=sweep_batch_size)
        if start_sweeper:
            self.sweeper.start()

    # ------------------------- helpers -------------------------

    def _live(self, key: str, now: float) -> _Entry | None:
        """Return the entry at ``key`` or evict it when expired. Caller holds the lock."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at <= now:
            del self._entries[key]
            return None
        return entry

    @staticmethod
    def _wrong_type(operation: str, key: str, expected: str) -> StorageError:
        return StorageError(
            operation, key, f"WRONGTYPE operation against a key not holding a {expected}"
        )

    # -------------------------- API ----------------------------

    def set(self, key: str, value: str, ttl: int) -> None:
        require_key(key)
        require_value(value)
        require_ttl(ttl)
        with self._lock:
            self._entries[key] = _Entry(value=value, expires_at=self._clock() + ttl)

    def get(self, key: str) -> str | None:
        require_key(key)
        with self._lock:
            entry = self._live(key, self._clock())
            if entry is None:
                return None
            if not isinstance(entry.value, str):
                raise self._wrong_type("get", key, "record")
            return entry.value

    def delete(self, key: str) -> None:
        require_key(key)
        with self._lock:
            self._entries.pop(key, None)

    def add_to_set(self, key: str, value: str, ttl: int = DEFAULT_SET_TTL) -> None:
        require_key(key)
        require_key(value, what="member")
        require_ttl(ttl)
        with self._lock:
            now = self._clock()
            entry = self._live(key, now)
            if entry is None:
                # first member fixes the group's expiry for good
                self._entries[key] = _Entry(value={value}, expires_at=now + ttl)
                return
            if not isinstance(entry.value, set):
                raise self._wrong_type("add_to_set", key, "set")
            entry.value.add(value)

    def get_set(self, key: str) -> list[str]:
        require_key(key)
        with self._lock:
            entry = self._live(key, self._clock())
            if entry is None:
                return []
            if not isinstance(entry.value, set):
                raise self._wrong_type("get_set", key, "set")
            return sorted(entry.value)

    def remove_from_set(self, key: str, value: str) -> None:
        require_key(key)
        require_key(value, what="member")
        with self._lock:
            entry = self._live(key, self._clock())
            if entry is None:
                return
            if not isinstance(entry.value, set):
                raise self._wrong_type("remove_from_set", key, "set")
            entry.value.discard(value)
            if not entry.value:
                del self._entries[key]

    def remaining_ttl(self, key: str) -> int | None:
        require_key(key)
        with self._lock:
            now = self._clock()
            entry = self._live(key, now)
            return math.ceil(entry.expires_at - now) if entry is not None else None

    def dispose(self) -> None:
        """Stop the sweeper and drop every entry. Safe to call more than once."""
        self.sweeper.stop()
        with self._lock:
            dropped = len(self._entries)
            self._entries.clear()
        log.debug("Memory token repository disposed (%d entries dropped)", dropped)

    def __enter__(self) -> MemoryTokenRepository:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.dispose()

    # ---------------------- sweeper hooks ----------------------

    def snapshot_keys(self) -> list[str]:
        with self._lock:
            return list(self._entries)

    def evict_if_expired(self, key: str) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or entry.expires_at > self._clock():
                return False
            del self._entries[key]
            return True
