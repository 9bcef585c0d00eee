"""
Cached Repository Base

The three-tier read path shared by every cached collection:

    memory tier -> distributed tier (versioned key) -> source store

and, for repositories that opt in, refresh-ahead: a distributed hit whose
remaining TTL is under the threshold schedules one background reload,
guarded by a refresh lock so that only one process reloads a given entry.

Failure policy:
- distributed tier errors are logged and read as misses (or skipped writes)
- source store errors propagate to the caller
- a missing entity (loader returns None) is never cached

Author: Platform Team
Date: 2025-12-13
"""

import time
from collections.abc import Callable
from typing import Any, ClassVar

from src.core.config.constants import CacheTier, Stage
from src.core.config.settings import CacheSettings
from src.core.exceptions import CacheDeserializationError, CacheError
from src.core.interfaces.cache import KeyValueStore
from src.core.interfaces.store import SourceStore
from src.core.logging.logger import get_logger, log_stage
from src.infrastructure.cache.codec import PayloadCodec
from src.infrastructure.cache.memory_tier import ALL_SLOT, MemoryTier, monotonic_ms
from src.infrastructure.cache.refresh import RefreshLock, RefreshScheduler
from src.infrastructure.cache.versioned_keys import VersionedKeys, id_pattern, lock_key
from src.infrastructure.monitoring.metrics_collector import get_metrics_collector

logger = get_logger(__name__)


class CachedRepository:
    """
    Base class for cached collections.

    Subclasses declare:
        base_key: cache base key (``menu:list``)
        ttl_setting: name of the CacheSettings field holding the TTL
        codec: PayloadCodec for the cached value
        refresh_ahead: whether distributed hits may trigger background reloads
        per_id: whether values are cached per entity id
    and implement ``load(id)``.
    """

    base_key: ClassVar[str]
    ttl_setting: ClassVar[str]
    codec: ClassVar[PayloadCodec]
    refresh_ahead: ClassVar[bool] = False
    per_id: ClassVar[bool] = False

    def __init__(
        self,
        kv: KeyValueStore,
        store: SourceStore,
        scheduler: RefreshScheduler,
        settings: CacheSettings,
        clock: Callable[[], float] = monotonic_ms,
    ):
        self._kv = kv
        self._store = store
        self._scheduler = scheduler
        self._keys = VersionedKeys(kv)
        self._metrics = get_metrics_collector()

        self.ttl_ms: int = getattr(settings, self.ttl_setting)
        self.refresh_threshold_ms = settings.REFRESH_AHEAD_THRESHOLD_MS
        self.lock_ttl_ms = settings.REFRESH_LOCK_TTL_MS
        self.memory = MemoryTier(settings.memory_ttl_for(self.ttl_ms), clock=clock)

    @property
    def versions(self) -> VersionedKeys:
        return self._keys

    async def load(self, id: str | None = None) -> Any | None:
        """Load the value from the source store. None means not found."""
        raise NotImplementedError

    # -------------------------------------------------------------------------
    # Read path
    # -------------------------------------------------------------------------

    async def _read(self, id: str | None = None) -> Any | None:
        slot = id if id is not None else ALL_SLOT

        value = self.memory.get(slot)
        if value is not None:
            self._metrics.record_cache_hit(CacheTier.MEMORY.value, self.base_key)
            log_stage(logger, Stage.MEMORY_HIT, "Memory tier hit", level="debug", base_key=self.base_key, id=id)
            return value
        self._metrics.record_cache_miss(CacheTier.MEMORY.value, self.base_key)

        value, key = await self._read_distributed(id)
        if value is not None:
            self.memory.put(value, slot)
            if self.refresh_ahead:
                await self._maybe_refresh(key, id)
            return value

        value = await self._load_from_store(id)
        if value is None:
            return None

        self.memory.put(value, slot)
        await self._write_distributed(value, id, key)
        return value

    async def _read_distributed(self, id: str | None) -> tuple[Any | None, str | None]:
        """
        Look the value up under the current version.

        Returns:
            (value or None, physical key or None when the version was unreadable)
        """
        try:
            key = await self._keys.current_key(self.base_key, id)
            raw = await self._kv.get(key)
        except CacheError as e:
            self._metrics.record_cache_error("read")
            log_stage(
                logger, Stage.DISTRIBUTED_ERROR, "Distributed tier read failed",
                level="warning", base_key=self.base_key, id=id, error=e.message,
            )
            return None, None

        if raw is None:
            self._metrics.record_cache_miss(CacheTier.DISTRIBUTED.value, self.base_key)
            return None, key

        try:
            value = self.codec.decode(raw)
        except CacheDeserializationError as e:
            self._metrics.record_cache_error("decode")
            log_stage(
                logger, Stage.DISTRIBUTED_ERROR, "Cached payload rejected",
                level="warning", key=key, error=e.message, details=e.details,
            )
            return None, key

        self._metrics.record_cache_hit(CacheTier.DISTRIBUTED.value, self.base_key)
        log_stage(logger, Stage.DISTRIBUTED_HIT, "Distributed tier hit", level="debug", key=key)
        return value, key

    async def _load_from_store(self, id: str | None) -> Any | None:
        started = time.perf_counter()
        value = await self.load(id)
        duration = time.perf_counter() - started

        self._metrics.record_store_load(self.base_key, duration)
        log_stage(
            logger, Stage.STORE_LOAD, "Loaded from source store",
            base_key=self.base_key, id=id, found=value is not None,
            duration_ms=round(duration * 1000, 2),
        )
        return value

    async def _write_distributed(self, value: Any, id: str | None, key: str | None = None) -> None:
        """Write ``value`` under ``key`` (or the current version's key). Errors are absorbed."""
        try:
            if key is None:
                key = await self._keys.current_key(self.base_key, id)
            await self._kv.set(key, self.codec.encode(value), self.ttl_ms)
        except CacheError as e:
            self._metrics.record_cache_error("write")
            log_stage(
                logger, Stage.DISTRIBUTED_ERROR, "Distributed tier write failed",
                level="warning", base_key=self.base_key, id=id, error=e.message,
            )
            return
        log_stage(logger, Stage.CACHE_POPULATE, "Distributed tier populated", level="debug", key=key)

    # -------------------------------------------------------------------------
    # Refresh-ahead
    # -------------------------------------------------------------------------

    async def _maybe_refresh(self, key: str, id: str | None) -> None:
        try:
            remaining_s = await self._kv.ttl(key)
        except CacheError as e:
            self._metrics.record_cache_error("ttl")
            logger.warning("TTL lookup failed", stage=Stage.REFRESH_CHECK.value, key=key, error=e.message)
            return

        # -1 (no expiry) and -2 (gone) never trigger a refresh
        if remaining_s < 0:
            return
        remaining_ms = remaining_s * 1000
        if remaining_ms >= self.refresh_threshold_ms:
            return

        lock = RefreshLock(self._kv, lock_key(self.base_key, id), self.lock_ttl_ms)
        if not await lock.acquire():
            self._metrics.record_refresh(self.base_key, "locked")
            log_stage(
                logger, Stage.REFRESH_SKIPPED, "Refresh already in flight", level="debug",
                key=key, lock=lock.key,
            )
            return

        task = self._scheduler.schedule(
            lambda: self._refresh(id, lock), name=f"refresh:{lock.key}"
        )
        if task is None:
            await lock.release()
            self._metrics.record_refresh(self.base_key, "rejected")
            return

        self._metrics.record_refresh(self.base_key, "scheduled")
        log_stage(
            logger, Stage.REFRESH_SCHEDULED, "Refresh-ahead scheduled",
            key=key, remaining_ms=remaining_ms, threshold_ms=self.refresh_threshold_ms,
        )

    async def _refresh(self, id: str | None, lock: RefreshLock) -> None:
        slot = id if id is not None else ALL_SLOT
        try:
            value = await self.load(id)
            if value is None:
                self.memory.discard(slot)
            else:
                key = await self._keys.current_key(self.base_key, id)
                await self._kv.set(key, self.codec.encode(value), self.ttl_ms)
                self.memory.put(value, slot)
            self._metrics.record_refresh(self.base_key, "completed")
            log_stage(logger, Stage.REFRESH_DONE, "Refresh-ahead complete", base_key=self.base_key, id=id)
        except Exception as e:
            self._metrics.record_refresh(self.base_key, "failed")
            log_stage(
                logger, Stage.REFRESH_FAILED, "Refresh-ahead failed", level="error",
                base_key=self.base_key, id=id, error=str(e), error_type=type(e).__name__,
            )
        finally:
            await lock.release()

    # -------------------------------------------------------------------------
    # Maintenance
    # -------------------------------------------------------------------------

    async def invalidate(self, id: str | None = None) -> int | None:
        """
        Drop cached values.

        Without an id (or on collection-wide repositories) the version is
        bumped and this process's memory tier cleared; the new version is
        returned. With an id on a per-id repository, every physical key of
        that id is deleted across versions; the number deleted is returned.
        Distributed tier errors are logged and reported as None.
        """
        if id is None or not self.per_id:
            self.memory.clear()
            try:
                return await self._keys.bump(self.base_key)
            except CacheError as e:
                self._metrics.record_cache_error("invalidate")
                log_stage(
                    logger, Stage.INVALIDATE_ERROR, "Version bump failed", level="warning",
                    base_key=self.base_key, error=e.message,
                )
                return None

        self.memory.discard(id)
        try:
            keys = await self._kv.scan(id_pattern(self.base_key, id))
            return await self._kv.delete(*keys) if keys else 0
        except CacheError as e:
            self._metrics.record_cache_error("invalidate")
            log_stage(
                logger, Stage.INVALIDATE_ERROR, "Entity key delete failed", level="warning",
                base_key=self.base_key, id=id, error=e.message,
            )
            return None

    async def warm(self, id: str | None = None) -> Any | None:
        """
        Load from the store and write under the current version.

        Creates the version counter when it does not exist yet. Store errors
        propagate; distributed tier errors are absorbed.
        """
        value = await self._load_from_store(id)
        if value is None:
            return None
        self.memory.put(value, id if id is not None else ALL_SLOT)
        await self._write_distributed(value, id)
        return value


class CollectionRepository(CachedRepository):
    """Repository caching one collection-wide list."""

    async def list(self) -> tuple:
        return await self._read(None)
