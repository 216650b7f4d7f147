"""
finreports/cache.py — In-memory TTL cache for report results.

One instance is built at startup and handed to the services that need it.
Every entry gets the same lifetime; get() treats an entry as gone the moment
its expiry passes, and a background sweep task periodically drops such
entries so memory does not grow with traffic.
"""
import asyncio
import logging
import threading
import time
from typing import Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

V = TypeVar("V")


class TTLCache(Generic[V]):
    """Thread-safe key → value store with a fixed per-entry time-to-live."""

    def __init__(
        self,
        ttl_seconds: float,
        sweep_interval_seconds: float = 60,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl = ttl_seconds
        self.sweep_interval = sweep_interval_seconds
        self._clock = clock
        self._store: dict[str, tuple[V, float]] = {}   # key → (value, expires_at)
        self._lock = threading.Lock()
        self._sweep_task: asyncio.Task | None = None

    # ── Entry operations ────────────────────────────────────────────────────

    def get(self, key: str) -> tuple[V | None, bool]:
        with self._lock:
            entry = self._store.get(key)
        if entry is None:
            return None, False
        value, expires_at = entry
        if self._clock() >= expires_at:
            return None, False
        return value, True

    def set(self, key: str, value: V) -> None:
        expires_at = self._clock() + self.ttl
        with self._lock:
            self._store[key] = (value, expires_at)

    def delete(self, key: str) -> None:
        with self._lock:
            self._store.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._store = {}

    def purge_expired(self) -> int:
        """Drop every entry whose expiry has passed. Returns how many went."""
        with self._lock:
            now = self._clock()
            expired = [k for k, (_, expires_at) in self._store.items() if now >= expires_at]
            for key in expired:
                del self._store[key]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    # ── Sweep lifecycle ─────────────────────────────────────────────────────

    def start(self) -> None:
        """Launch the sweep on the running event loop. Call once at startup."""
        if self._sweep_task is not None and not self._sweep_task.done():
            return
        self._sweep_task = asyncio.get_running_loop().create_task(
            self._sweep_loop(), name="ttl-cache-sweep"
        )

    async def close(self) -> None:
        task, self._sweep_task = self._sweep_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval)
            removed = self.purge_expired()
            if removed:
                logger.debug("Cache sweep removed %d expired entries", removed)
