"""
Single-flight in-memory cache of the full dataset.

The dataset is read from the remote store at most once per process
lifetime. Callers arriving while a read is in flight await that read
instead of starting another one. A failed read is not cached.
"""

import asyncio
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Mapping, Optional, Tuple, TYPE_CHECKING

import structlog

from .records import Meteorite, records_from_store

if TYPE_CHECKING:
    from .metrics import MetricsCollector

logger = structlog.get_logger(__name__)

Loader = Callable[[], Awaitable[Optional[Mapping[str, Any]]]]


class CacheState(str, Enum):
    """Lifecycle of the dataset cache."""

    EMPTY = "empty"
    LOADING = "loading"
    READY = "ready"


class DatasetCache:
    """
    Owns the materialized dataset and its load lifecycle.

    empty -> loading on first get(), loading -> ready on success,
    loading -> empty on failure so the next get() retries.
    """

    def __init__(self, loader: Loader, metrics: Optional["MetricsCollector"] = None) -> None:
        self._loader = loader
        self._metrics = metrics
        self._records: Tuple[Meteorite, ...] = ()
        self._state = CacheState.EMPTY
        self._inflight: Optional["asyncio.Future[Tuple[Meteorite, ...]]"] = None
        self._lock = asyncio.Lock()
        self.loads_started = 0

    @property
    def state(self) -> CacheState:
        return self._state

    @property
    def size(self) -> int:
        return len(self._records)

    async def get(self) -> Tuple[Meteorite, ...]:
        """
        Return the full record collection.

        Returns an empty tuple when the load fails. The returned tuple is
        shared by every caller.
        """
        if self._state is CacheState.READY:
            return self._records

        async with self._lock:
            if self._state is CacheState.READY:
                return self._records
            if self._inflight is None:
                self._state = CacheState.LOADING
                self._inflight = asyncio.ensure_future(self._load())
                self._inflight.add_done_callback(self._discard_cancelled)
            inflight = self._inflight

        # shield: a cancelled caller must not cancel the load others await
        return await asyncio.shield(inflight)

    async def _load(self) -> Tuple[Meteorite, ...]:
        self.loads_started += 1
        started = time.perf_counter()
        logger.info("Loading dataset from remote store", attempt=self.loads_started)

        records: Tuple[Meteorite, ...] = ()
        try:
            data = await self._loader()
            records = records_from_store(data) if data else ()
        except Exception as e:
            logger.error(
                "Dataset load failed",
                error=str(e),
                error_type=type(e).__name__,
            )
        finally:
            # also runs when the load is cancelled, so the next get() retries
            self._settle(records, time.perf_counter() - started)

        return records

    def _discard_cancelled(self, task: "asyncio.Future[Tuple[Meteorite, ...]]") -> None:
        # a load cancelled before it started never reaches _settle
        if task.cancelled() and self._inflight is task:
            self._inflight = None
            self._state = CacheState.EMPTY
            logger.warning("Dataset load cancelled, cache stays empty")

    def _settle(self, records: Tuple[Meteorite, ...], duration: float) -> None:
        if records:
            self._records = records
            self._state = CacheState.READY
            logger.info(
                "Dataset loaded",
                records=len(records),
                duration_ms=round(duration * 1000, 1),
            )
        else:
            self._state = CacheState.EMPTY
            logger.warning("Dataset load returned no data, cache stays empty")

        self._inflight = None

        if self._metrics is not None:
            self._metrics.record_dataset_load(
                outcome="success" if records else "failure",
                duration_seconds=duration,
                records=len(records),
            )

    def invalidate(self) -> None:
        """Drop the materialized dataset so the next get() reloads it."""
        if self._state is CacheState.LOADING:
            # the in-flight load will settle the state on its own
            return
        self._records = ()
        self._state = CacheState.EMPTY
        logger.info("Dataset cache invalidated")
