"""
Write-Path Invalidation

Maps a mutated source store collection to the cache entries it may have
made stale, and applies those invalidations against the distributed tier.

Two kinds of action exist:
- BumpVersion: increment a collection's version counter, retiring every
  physical key of the previous version at once
- DeletePattern: scan for keys matching a glob and delete them

Invalidation never fails the write that triggered it: every cache error is
logged, counted and swallowed here.

Author: Platform Team
Date: 2025-12-13
"""

import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from src.core.config.constants import (
    CACHE_KEY_INGREDIENTS,
    CACHE_KEY_LAST_SYNC,
    CACHE_KEY_MENU_DETAIL,
    CACHE_KEY_MENU_LIST,
    CACHE_KEY_RESTAURANTS,
    COLLECTION_INGREDIENT,
    COLLECTION_MENU_ITEM,
    COLLECTION_MENU_ITEM_ON_RESTAURANT,
    COLLECTION_RESTAURANT,
    Stage,
)
from src.core.exceptions import CacheError
from src.core.interfaces.cache import KeyValueStore
from src.core.logging.logger import get_logger, log_stage
from src.infrastructure.cache.versioned_keys import VersionedKeys
from src.infrastructure.monitoring.metrics_collector import get_metrics_collector

logger = get_logger(__name__)


@dataclass(frozen=True)
class BumpVersion:
    base_key: str


@dataclass(frozen=True)
class DeletePattern:
    pattern: str


InvalidationAction = BumpVersion | DeletePattern


INVALIDATION_TABLE: dict[str, tuple[InvalidationAction, ...]] = {
    COLLECTION_MENU_ITEM: (
        BumpVersion(CACHE_KEY_MENU_LIST),
        DeletePattern(f"{CACHE_KEY_MENU_DETAIL}:v:*"),
    ),
    COLLECTION_INGREDIENT: (
        BumpVersion(CACHE_KEY_INGREDIENTS),
        BumpVersion(CACHE_KEY_MENU_DETAIL),
    ),
    COLLECTION_RESTAURANT: (
        BumpVersion(CACHE_KEY_RESTAURANTS),
        BumpVersion(CACHE_KEY_MENU_DETAIL),
    ),
    COLLECTION_MENU_ITEM_ON_RESTAURANT: (
        BumpVersion(CACHE_KEY_RESTAURANTS),
        BumpVersion(CACHE_KEY_MENU_LIST),
        BumpVersion(CACHE_KEY_MENU_DETAIL),
    ),
}


# Rows removed by ON DELETE CASCADE when a row of the key collection is deleted
DELETE_CASCADES: dict[str, tuple[str, ...]] = {
    COLLECTION_MENU_ITEM: (COLLECTION_INGREDIENT, COLLECTION_MENU_ITEM_ON_RESTAURANT),
    COLLECTION_RESTAURANT: (COLLECTION_MENU_ITEM_ON_RESTAURANT,),
}


def deleted_collections(collection: str) -> tuple[str, ...]:
    """The collection a delete targets plus every collection it cascades into."""
    return (collection, *DELETE_CASCADES.get(collection, ()))

def actions_for(collections: Iterable[str]) -> tuple[InvalidationAction, ...]:
    """
    Union of the actions for every collection, first occurrence order kept.

    Unknown collections contribute nothing.
    """
    seen: dict[InvalidationAction, None] = {}
    for collection in collections:
        for action in INVALIDATION_TABLE.get(collection, ()):
            seen.setdefault(action, None)
    return tuple(seen)


def wall_clock_ms() -> int:
    return int(time.time() * 1000)


class CacheInvalidator:
    """
    Applies invalidation actions after successful store mutations.

    Usage:
        invalidator = CacheInvalidator(kv)
        await invalidator.after_mutation("Restaurant")
    """

    def __init__(self, kv: KeyValueStore, clock: Callable[[], int] = wall_clock_ms):
        self._kv = kv
        self._keys = VersionedKeys(kv)
        self._clock = clock
        self._metrics = get_metrics_collector()

    async def after_mutation(self, *collections: str) -> tuple[InvalidationAction, ...]:
        """
        Invalidate everything the given collections feed.

        Each base key is bumped at most once per call, however many of the
        collections map to it. The last-sync marker is written when at least
        one action applies.

        Returns:
            The actions that were attempted
        """
        actions = actions_for(collections)
        if not actions:
            return actions

        for action in actions:
            try:
                if isinstance(action, BumpVersion):
                    version = await self._keys.bump(action.base_key)
                    log_stage(
                        logger, Stage.INVALIDATE_BUMP, "Cache version bumped",
                        base_key=action.base_key, version=version, collections=list(collections),
                    )
                    self._metrics.record_invalidation("bump", action.base_key)
                else:
                    deleted = await self.delete_pattern(action.pattern)
                    log_stage(
                        logger, Stage.INVALIDATE_DELETE, "Cache keys deleted",
                        pattern=action.pattern, deleted=deleted, collections=list(collections),
                    )
                    self._metrics.record_invalidation("delete", action.pattern)
            except CacheError as e:
                log_stage(
                    logger, Stage.INVALIDATE_ERROR, "Cache invalidation failed",
                    level="warning", action=repr(action), error=e.message,
                )
                self._metrics.record_cache_error("invalidate")

        await self.mark_last_sync()
        return actions

    async def delete_pattern(self, pattern: str) -> int:
        """Scan then bulk-delete. Raises CacheError subclasses."""
        keys = await self._kv.scan(pattern)
        if not keys:
            return 0
        return await self._kv.delete(*keys)

    async def mark_last_sync(self) -> int | None:
        """Record the current time as the last cache sync. Returns the timestamp written."""
        now_ms = self._clock()
        try:
            await self._kv.set(CACHE_KEY_LAST_SYNC, str(now_ms))
        except CacheError as e:
            log_stage(
                logger, Stage.INVALIDATE_ERROR, "Last sync marker write failed",
                level="warning", error=e.message,
            )
            self._metrics.record_cache_error("last_sync")
            return None
        log_stage(logger, Stage.INVALIDATE_SYNC, "Last sync marker updated", level="debug", last_sync=now_ms)
        return now_ms
