"""
Cache Inspection and Maintenance

Operator tooling over the distributed tier:

- status(): every key with its TTL plus the last-sync marker
- collection_info(): current version and live-key presence per collection
- delete_key() / refresh_key(): surgical fixes, both mark last sync
- prewarm() / bump(): populate or retire whole collections

Author: Platform Team
Date: 2025-12-13
"""

from typing import Any

from src.core.config.constants import CACHE_KEY_LAST_SYNC, TTL_KEY_MISSING
from src.core.exceptions import ConfigurationError
from src.core.interfaces.cache import KeyValueStore
from src.core.logging.logger import get_logger
from src.infrastructure.cache.invalidation import CacheInvalidator
from src.infrastructure.cache.versioned_keys import INITIAL_VERSION, physical_key
from src.repositories.base import CachedRepository

logger = get_logger(__name__)


class CacheInspector:
    """
    Read and repair the distributed tier.

    Distributed tier errors propagate from these methods: operators want to
    see them, unlike the request path.
    """

    def __init__(
        self,
        kv: KeyValueStore,
        invalidator: CacheInvalidator,
        repositories: dict[str, CachedRepository],
    ):
        self._kv = kv
        self._invalidator = invalidator
        self._repositories = repositories

    def _repository(self, base_key: str) -> CachedRepository:
        try:
            return self._repositories[base_key]
        except KeyError:
            raise ConfigurationError(
                f"Unknown cache collection: {base_key}", details={"collection": base_key}
            ).with_suggestion(f"Use one of: {', '.join(sorted(self._repositories))}") from None

    async def status(self, pattern: str = "*") -> dict[str, Any]:
        if not self._kv.enabled:
            return {"enabled": False, "keys": [], "last_sync": None}

        keys = sorted(await self._kv.scan(pattern))
        items = [{"key": key, "ttl_sec": await self._kv.ttl(key)} for key in keys]

        raw = await self._kv.get(CACHE_KEY_LAST_SYNC)
        last_sync = int(raw) if raw and raw.isdigit() else None

        return {"enabled": True, "keys": items, "last_sync": last_sync}

    async def collection_info(self) -> dict[str, dict[str, Any]]:
        """
        Current version per collection, and whether its collection-wide
        payload is present under that version.
        """
        info: dict[str, dict[str, Any]] = {}
        for base_key, repo in self._repositories.items():
            if not self._kv.enabled:
                info[base_key] = {"version": None, "key": None, "cached": False, "ttl_sec": None}
                continue

            # read-only: an absent counter reads as the initial version
            version = await repo.versions.peek_version(base_key)
            if version is None:
                version = INITIAL_VERSION
            if repo.per_id:
                live = await self._kv.scan(f"{physical_key(base_key, version)}:id:*")
                info[base_key] = {"version": version, "key": None, "cached": bool(live), "entries": len(live)}
                continue

            key = physical_key(base_key, version)
            ttl_sec = await self._kv.ttl(key)
            info[base_key] = {
                "version": version,
                "key": key,
                "cached": ttl_sec != TTL_KEY_MISSING,
                "ttl_sec": ttl_sec,
            }
        return info

    async def delete_key(self, key: str) -> int:
        deleted = await self._kv.delete(key)
        await self._invalidator.mark_last_sync()
        logger.info("Cache key deleted", stage="ADMIN.DELETE", key=key, deleted=deleted)
        return deleted

    async def refresh_key(self, key: str) -> bool:
        """
        Reload a collection-wide payload from the store into ``key``.

        Returns:
            False when the key does not belong to a collection-wide repository
        """
        for base_key, repo in self._repositories.items():
            if repo.per_id or not key.startswith(f"{base_key}:v:"):
                continue

            value = await repo.load(None)
            await self._kv.set(key, repo.codec.encode(value), repo.ttl_ms)
            await self._invalidator.mark_last_sync()
            logger.info("Cache key refreshed", stage="ADMIN.REFRESH", key=key)
            return True

        logger.info("Refresh not supported for key", stage="ADMIN.REFRESH", key=key)
        return False

    async def prewarm(self, collections: list[str] | None = None) -> dict[str, int]:
        """
        Warm the given collections (all by default).

        Returns:
            Number of entries written per collection
        """
        targets = collections or list(self._repositories)
        warmed: dict[str, int] = {}

        for base_key in targets:
            repo = self._repository(base_key)
            if repo.per_id:
                warmed[base_key] = await repo.warm_all()
            else:
                value = await repo.warm()
                warmed[base_key] = len(value) if value is not None else 0
            logger.info("Collection prewarmed", stage="ADMIN.PREWARM", collection=base_key, entries=warmed[base_key])

        return warmed

    async def bump(self, collection: str) -> int | None:
        """Retire the current version of one collection. Returns the new version."""
        version = await self._repository(collection).invalidate()
        await self._invalidator.mark_last_sync()
        logger.info("Collection version bumped", stage="ADMIN.BUMP", collection=collection, version=version)
        return version


async def prewarm(context, collections: list[str] | None = None) -> dict[str, int]:
    return await context.inspector.prewarm(collections)


async def bump(context, collection: str) -> int | None:
    return await context.inspector.bump(collection)
