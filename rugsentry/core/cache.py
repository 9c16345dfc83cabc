"""
Scan cache and deduplicator for RugSentry

Per key the state moves Absent -> InFlight -> Cached(expiry) -> Absent.
Expiry is checked lazily on access; nothing runs in the background.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Dict, Optional, Tuple

from .model import SecurityReport, Target
from .networks import cache_address

CacheKey = Tuple[str, str, str]


def make_key(target: Target, profile: str) -> CacheKey:
    """(network, canonical address, profile); EVM addresses compare case-insensitively."""
    return (target.network, cache_address(target), profile)


class ScanCache:
    """Short-TTL report cache with single-flight de-duplication.

    The only cross-scan mutable state in RugSentry. All bookkeeping happens
    between awaits on one event loop, so concurrent callers for the same key
    can never start a second execution.
    """

    def __init__(self, ttl: float = 300.0, clock: Callable[[], float] = time.monotonic):
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        self.ttl = float(ttl)
        self._clock = clock
        self._entries: Dict[CacheKey, Tuple[SecurityReport, float]] = {}
        self._inflight: Dict[CacheKey, "asyncio.Future[SecurityReport]"] = {}
        self._waiters: Dict["asyncio.Future[SecurityReport]", int] = {}
        self.hits = 0
        self.misses = 0
        self.joins = 0
        self.logger = logging.getLogger(__name__)

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: CacheKey) -> Optional[SecurityReport]:
        """Return the cached report if present and unexpired, evicting it otherwise."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        report, expires_at = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            self.logger.debug(f"Cache entry expired for {key}")
            return None
        return report

    def is_inflight(self, key: CacheKey) -> bool:
        return key in self._inflight

    async def get_or_run(self,
                         key: CacheKey,
                         factory: Callable[[], Awaitable[SecurityReport]]) -> SecurityReport:
        cached = self.get(key)
        if cached is not None:
            self.hits += 1
            self.logger.debug(f"Cache hit for {key}")
            return cached

        task = self._inflight.get(key)
        if task is not None:
            self.joins += 1
            self.logger.debug(f"Joining in-flight scan for {key}")
        else:
            self.misses += 1
            task = asyncio.ensure_future(self._execute(key, factory))
            task.add_done_callback(_consume_result)
            self._inflight[key] = task

        # Shielded while other callers remain; the last caller to leave cancels the run
        self._waiters[task] = self._waiters.get(task, 0) + 1
        try:
            return await asyncio.shield(task)
        finally:
            self._waiters[task] -= 1
            if not self._waiters[task]:
                del self._waiters[task]
                if not task.done():
                    self.logger.debug(f"Last caller for {key} cancelled; cancelling scan")
                    task.cancel()
                    self._release(key, task)

    async def _execute(self,
                       key: CacheKey,
                       factory: Callable[[], Awaitable[SecurityReport]]) -> SecurityReport:
        try:
            report = await factory()
            self._entries[key] = (report, self._clock() + self.ttl)
            return report
        finally:
            self._release(key, asyncio.current_task())

    def _release(self, key: CacheKey, task: Optional["asyncio.Future[SecurityReport]"]) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]

    def invalidate(self, key: CacheKey) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def stats(self) -> Dict[str, int]:
        return {
            "entries": len(self._entries),
            "inflight": len(self._inflight),
            "hits": self.hits,
            "misses": self.misses,
            "joins": self.joins,
        }


def _consume_result(task: "asyncio.Future[SecurityReport]") -> None:
    # Mark the exception retrieved when every waiter was cancelled first
    if not task.cancelled():
        task.exception()
