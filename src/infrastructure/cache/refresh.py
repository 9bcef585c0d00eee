"""
Refresh-Ahead Scheduling

Background refreshes run outside the request that triggered them. The
scheduler bounds how many run at once and how many may wait, keeps a
handle on every job so shutdown can drain them, and never lets a job
failure reach the caller.

The RefreshLock is a short-lived set-if-absent key in the distributed
tier holding a per-holder token. Only the process holding it reloads a
given entry; everyone else keeps serving the current value. Release is a
compare-and-delete on that token, so a holder whose lock expired mid
refresh cannot free a lock taken since by another reader.

Author: Platform Team
Date: 2025-12-13
"""

import asyncio
import uuid
from collections.abc import Awaitable, Callable

from src.core.config.constants import Stage
from src.core.exceptions import CacheError
from src.core.interfaces.cache import KeyValueStore
from src.core.logging.logger import get_logger, log_stage
from src.infrastructure.monitoring.metrics_collector import get_metrics_collector

logger = get_logger(__name__)


class RefreshLock:
    """
    Mutual exclusion for one cache entry's refresh.

    Acquisition failures (including distributed tier errors) mean "not
    acquired"; release failures are logged and the TTL frees the lock.
    """

    def __init__(self, kv: KeyValueStore, key: str, ttl_ms: int):
        self._kv = kv
        self.key = key
        self._ttl_ms = ttl_ms
        self.token = uuid.uuid4().hex

    async def acquire(self) -> bool:
        try:
            return await self._kv.set_if_absent(self.key, self.token, self._ttl_ms)
        except CacheError as e:
            logger.warning("Refresh lock acquire failed", lock=self.key, error=e.message)
            return False

    async def release(self) -> None:
        try:
            released = await self._kv.delete_if_equals(self.key, self.token)
        except CacheError as e:
            logger.warning("Refresh lock release failed", lock=self.key, error=e.message)
            return
        if not released:
            logger.debug("Refresh lock no longer held", lock=self.key)


class RefreshScheduler:
    """
    Bounded pool for background refresh jobs.

    - At most ``max_workers`` jobs run concurrently (semaphore)
    - At most ``max_pending`` jobs exist at all; further schedules are refused
    - ``schedule`` returns the asyncio.Task so callers and tests can await it
    - ``drain`` waits for every job, ``close`` drains and refuses new work
    """

    def __init__(self, max_workers: int = 4, max_pending: int = 100):
        self._semaphore = asyncio.Semaphore(max_workers)
        self._max_pending = max_pending
        self._tasks: set[asyncio.Task] = set()
        self._closed = False
        self._metrics = get_metrics_collector()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    @property
    def closed(self) -> bool:
        return self._closed

    def schedule(
        self, job: Callable[[], Awaitable[None]], name: str = "refresh"
    ) -> asyncio.Task | None:
        """
        Start ``job`` in the background.

        Returns:
            The task, or None when the scheduler is closed or full. A refused
            job never runs, so the caller still owns any lock it took.
        """
        if self._closed:
            log_stage(logger, Stage.REFRESH_SKIPPED, "Scheduler closed, refresh refused", job=name)
            return None

        if len(self._tasks) >= self._max_pending:
            log_stage(
                logger, Stage.REFRESH_SKIPPED, "Refresh backlog full, refresh refused",
                level="warning", job=name, pending=len(self._tasks),
            )
            return None

        task = asyncio.get_running_loop().create_task(self._run(job, name), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._forget)
        self._metrics.set_refresh_pending(len(self._tasks))
        return task

    def _forget(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        self._metrics.set_refresh_pending(len(self._tasks))

    async def _run(self, job: Callable[[], Awaitable[None]], name: str) -> None:
        async with self._semaphore:
            try:
                await job()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Background refresh job crashed", stage=Stage.REFRESH_FAILED.value, job=name)

    async def drain(self) -> None:
        """Wait until every scheduled job has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        self._closed = True
        await self.drain()
