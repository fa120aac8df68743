"""Background eviction of expired entries for the in-process token store."""

from __future__ import annotations

import logging
import threading
import time
from enum import Enum
from typing import Final, Protocol

log = logging.getLogger(__name__)

DEFAULT_SWEEP_INTERVAL: Final[float] = 5 * 60
DEFAULT_BATCH_SIZE: Final[int] = 500


class SweeperState(Enum):
    """Lifecycle of a sweep pass."""

    IDLE = "idle"
    SWEEPING = "sweeping"


class Sweepable(Protocol):
    """Storage the sweeper can police."""

    def snapshot_keys(self) -> list[str]: ...

    def evict_if_expired(self, key: str) -> bool: ...


class ExpirySweeper:
    """
    Periodically evict expired entries from a :class:`Sweepable` store.

    The sweep is a memory-hygiene pass only: stores check expiry on every
    read, so eviction timing never changes what callers observe.

    :param target: Store to sweep.
    :param interval: Seconds between two passes.
    :param batch_size: Number of keys handled before yielding to other threads.
    """

    def __init__(
        self,
        target: Sweepable,
        *,
        interval: float = DEFAULT_SWEEP_INTERVAL,
        batch_size: int = DEFAULT_BATCH_SIZE,
        name: str = "token-expiry-sweeper",
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        self.target = target
        self.interval = interval
        self.batch_size = batch_size
        self.name = name
        self.state = SweeperState.IDLE
        self._stop = threading.Event()
        self._pass_lock = threading.Lock()
        self._thread: threading.Thread | None = None

    # ------------------------- lifecycle -------------------------

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the timer thread. Calling it twice is harmless."""
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()
        log.debug("Expiry sweeper started (interval=%ss)", self.interval)

    def stop(self, timeout: float | None = 5.0) -> None:
        """Signal the timer thread and wait for it to finish its current batch."""
        self._stop.set()
        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
            log.debug("Expiry sweeper stopped")

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                self._sweep(interruptible=True)
            except Exception:
                # keep the timer alive; the next tick retries
                log.exception("Expiry sweep pass failed")

    # --------------------------- pass ----------------------------

    def sweep(self) -> int:
        """
        Run one full pass synchronously.

        :returns: Number of evicted entries (``0`` if another pass is running).
        """
        return self._sweep(interruptible=False)

    def _sweep(self, *, interruptible: bool) -> int:
        if not self._pass_lock.acquire(blocking=False):
            return 0
        self.state = SweeperState.SWEEPING
        started = time.perf_counter()
        evicted = 0
        try:
            keys = self.target.snapshot_keys()
            for offset in range(0, len(keys), self.batch_size):
                if interruptible and offset and self._stop.is_set():
                    break
                for key in keys[offset : offset + self.batch_size]:
                    try:
                        if self.target.evict_if_expired(key):
                            evicted += 1
                    except Exception:
                        log.exception("Failed to evict %s", key, extra={"store_key": key})
                # the store lock is taken per entry; yield the thread between batches
                time.sleep(0)
        finally:
            self.state = SweeperState.IDLE
            self._pass_lock.release()

        elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
        log.debug(
            "Expiry sweep evicted %d entries",
            evicted,
            extra={"evicted": evicted, "elapsed_ms": elapsed_ms},
        )
        return evicted
