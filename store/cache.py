from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from normalize.incident import AggregationResult


logger = logging.getLogger(__name__)

AggregateFn = Callable[[], Awaitable[AggregationResult]]


@dataclass(frozen=True)
class CacheEntry:
    result: AggregationResult
    stored_at: float


class AggregationCache:
    """Time-windowed holder of the latest aggregation.

    Callers that find the entry missing or expired share a single in-flight
    refresh instead of each running the pipeline.
    """

    def __init__(
        self,
        aggregate: AggregateFn,
        *,
        ttl_seconds: float = 180.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._aggregate = aggregate
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = asyncio.Lock()
        self._entry: CacheEntry | None = None
        self._inflight: asyncio.Task[AggregationResult] | None = None

    def peek(self) -> AggregationResult | None:
        entry = self._entry
        return entry.result if entry is not None else None

    def age_seconds(self) -> float | None:
        entry = self._entry
        if entry is None:
            return None
        return self._clock() - entry.stored_at

    async def get(self) -> tuple[AggregationResult, bool]:
        async with self._lock:
            entry = self._entry
            if entry is not None and self._clock() - entry.stored_at < self._ttl_seconds:
                return entry.result, True
            task = self._start_refresh()
        return await asyncio.shield(task), False

    async def refresh(self) -> AggregationResult:
        async with self._lock:
            task = self._start_refresh()
        return await asyncio.shield(task)

    async def prewarm(self) -> None:
        try:
            result = await self.refresh()
        except Exception:
            logger.exception("Cache pre-warm failed")
            return
        logger.info("Cache pre-warmed with %d incidents", len(result.incidents))

    def _start_refresh(self) -> asyncio.Task[AggregationResult]:
        if self._inflight is None:
            self._inflight = asyncio.create_task(self._run_refresh())
            self._inflight.add_done_callback(_retrieve_failure)
        return self._inflight

    async def _run_refresh(self) -> AggregationResult:
        try:
            result = await self._aggregate()
            async with self._lock:
                self._entry = CacheEntry(result=result, stored_at=self._clock())
            return result
        finally:
            self._inflight = None


def _retrieve_failure(task: asyncio.Task[AggregationResult]) -> None:
    # every waiter may have been cancelled before the refresh finished
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.debug("Cache refresh failed: %s", exc)
