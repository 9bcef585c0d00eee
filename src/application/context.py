"""
Cache Context

Explicit wiring of the cache core. One CacheContext owns the distributed
tier, the wrapped source store, the refresh scheduler, the four cached
repositories and the maintenance inspector, and tears them down in order.

Store stack:
    InvalidatingStore( RetryingStore( raw SourceStore ) )

Usage:
    settings = get_settings()
    store = SqlAlchemySourceStore.from_settings(settings)

    async with await CacheContext.create(settings, store) as ctx:
        items = await ctx.menu_list.list()
        await ctx.store.update("Restaurant", rid, {"name": "Centro"})

Author: Platform Team
Date: 2025-12-13
"""

from collections.abc import Callable
from enum import Enum
from typing import Any

from src.application.cache_admin import CacheInspector
from src.core.config.settings import Settings
from src.core.interfaces.cache import KeyValueStore
from src.core.interfaces.store import SourceStore
from src.core.logging.logger import get_logger
from src.core.resilience.store_retry import RetryingStore
from src.infrastructure.cache.invalidation import CacheInvalidator
from src.infrastructure.cache.memory_tier import monotonic_ms
from src.infrastructure.cache.redis_client import open_key_value_store
from src.infrastructure.cache.refresh import RefreshScheduler
from src.infrastructure.monitoring.metrics_collector import get_metrics_collector
from src.infrastructure.store.invalidating_store import InvalidatingStore
from src.repositories import (
    CachedRepository,
    IngredientListCache,
    MenuDetailCache,
    MenuListCache,
    RestaurantListCache,
)

logger = get_logger(__name__)


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class CacheContext:
    """
    Owner of every cache core component.

    Build with ``create()``; repositories, the wrapped store and the
    inspector are plain attributes.
    """

    def __init__(
        self,
        settings: Settings,
        kv: KeyValueStore,
        raw_store: SourceStore,
        clock: Callable[[], float] = monotonic_ms,
    ):
        self.settings = settings
        self.kv = kv
        self.raw_store = raw_store

        cache_settings = settings.cache
        self.scheduler = RefreshScheduler(
            max_workers=cache_settings.REFRESH_MAX_WORKERS,
            max_pending=cache_settings.REFRESH_MAX_PENDING,
        )
        self.invalidator = CacheInvalidator(kv)
        self.store = InvalidatingStore(
            RetryingStore(raw_store, backoff_ms=settings.store.STORE_RETRY_BACKOFF_MS),
            self.invalidator,
        )

        repo_args = (kv, self.store, self.scheduler, cache_settings)
        self.menu_list = MenuListCache(*repo_args, clock=clock)
        self.menu_detail = MenuDetailCache(*repo_args, clock=clock)
        self.ingredients = IngredientListCache(*repo_args, clock=clock)
        self.restaurants = RestaurantListCache(*repo_args, clock=clock)

        self.inspector = CacheInspector(kv, self.invalidator, self.repositories)
        self._closed = False

    @classmethod
    async def create(
        cls,
        settings: Settings,
        store: SourceStore,
        kv: KeyValueStore | None = None,
        clock: Callable[[], float] = monotonic_ms,
    ) -> "CacheContext":
        """
        Wire a context.

        When ``kv`` is omitted the distributed tier is opened from settings,
        falling back to the disabled tier.
        """
        if kv is None:
            kv = await open_key_value_store(settings)

        context = cls(settings, kv, store, clock=clock)
        get_metrics_collector().set_app_info(
            settings.app.APP_NAME, settings.app.APP_VERSION, settings.app.ENVIRONMENT
        )
        logger.info(
            "Cache context created",
            stage="CTX.1",
            distributed_tier=kv.enabled,
            environment=settings.app.ENVIRONMENT,
        )
        return context

    async def start(self, warm: bool = False) -> "CacheContext":
        """
        Make sure the distributed tier is connected, optionally prewarming
        every collection.
        """
        if self.kv.enabled:
            await self.kv.connect()
        if warm:
            await self.inspector.prewarm()
        return self

    @property
    def repositories(self) -> dict[str, CachedRepository]:
        """Repositories keyed by cache base key."""
        return {
            repo.base_key: repo
            for repo in (self.menu_list, self.menu_detail, self.ingredients, self.restaurants)
        }

    async def close(self) -> None:
        """Drain background refreshes, then release the store and the distributed tier."""
        if self._closed:
            return
        self._closed = True

        await self.scheduler.close()
        await self.store.dispose()
        await self.kv.disconnect()
        logger.info("Cache context closed", stage="CTX.2")

    async def health_check(self) -> dict[str, Any]:
        """
        Aggregate health of the distributed tier and the source store.

        The distributed tier is optional, so losing it only degrades.
        """
        kv_health = await self.kv.health_check()

        store_health: dict[str, Any] = {"status": HealthStatus.HEALTHY.value}
        try:
            await self.store.find_many("MenuItem", limit=1)
        except Exception as e:
            store_health = {"status": HealthStatus.UNHEALTHY.value, "error": str(e)}

        if store_health["status"] != HealthStatus.HEALTHY.value:
            status = HealthStatus.UNHEALTHY
        elif self.kv.enabled and kv_health.get("status") == HealthStatus.HEALTHY.value:
            status = HealthStatus.HEALTHY
        else:
            status = HealthStatus.DEGRADED

        return {
            "status": status.value,
            "distributed_tier": kv_health,
            "store": store_health,
            "refresh_pending": self.scheduler.pending,
        }

    async def __aenter__(self) -> "CacheContext":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
