from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable, Dict, Optional, TypeVar

from fundflow.core.logger import get_logger

T = TypeVar("T")

logger = get_logger(__name__)


class RequestGate:
    """
    Serializes and spaces out calls per provider key.

    Callers on the same key dispatch in FIFO order, each at least
    `min_interval_ms` after the previous dispatch on that key. The key's lock is
    held across the throttle wait and the dispatch only, so responses may
    complete in any order. Different keys never wait on each other.
    """

    def __init__(
        self,
        clock: Optional[Callable[[], float]] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ) -> None:
        self._clock = clock or time.monotonic
        self._sleep = sleep or asyncio.sleep
        self._last_call: Dict[str, float] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    async def _throttle(self, key: str, min_interval_ms: int) -> None:
        min_interval = max(0, min_interval_ms) / 1000.0
        last = self._last_call.get(key)
        if last is not None:
            sleep_for = min_interval - (self._clock() - last)
            if sleep_for > 0:
                logger.debug("gate_wait", provider=key, wait_sec=round(sleep_for, 3))
                await self._sleep(sleep_for)
        # reset on every dispatch, successful or not
        self._last_call[key] = self._clock()

    async def enqueue(
        self,
        provider_key: str,
        min_interval_ms: int,
        operation: Callable[[], Awaitable[T]],
    ) -> T:
        async with self._lock_for(provider_key):
            await self._throttle(provider_key, min_interval_ms)
            logger.debug("gate_dispatch", provider=provider_key)
            # scheduled before the next waiter on this key is woken
            pending = asyncio.ensure_future(operation())
        return await pending

    def last_call(self, provider_key: str) -> Optional[float]:
        return self._last_call.get(provider_key)
