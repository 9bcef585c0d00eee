"""
Versioned Cache Keys

Every cached collection has a monotonic version counter in the distributed
tier. Readers compose physical keys from the current version; invalidation
bumps the counter so that every physical key of older versions becomes
unreachable at once and later expires by TTL.

Key layout:
    {base}:version                      version counter (no TTL, never deleted)
    {base}:v:{version}                  collection-wide payload
    {base}:v:{version}:id:{id}          per-entity payload
    {base}:refreshing:{id|all}          refresh-ahead lock

Author: Platform Team
Date: 2025-12-13
"""

import re

from src.core.exceptions import CacheReadError
from src.core.interfaces.cache import KeyValueStore
from src.core.logging.logger import get_logger

logger = get_logger(__name__)

INITIAL_VERSION = 0

_GLOB_SPECIAL = re.compile(r"([*?\[\]\\])")


def version_key(base: str) -> str:
    return f"{base}:version"


def physical_key(base: str, version: int, id: str | None = None) -> str:
    """Compose the physical key of ``base`` at ``version``."""
    key = f"{base}:v:{version}"
    if id is not None:
        key = f"{key}:id:{id}"
    return key


def id_pattern(base: str, id: str) -> str:
    """
    Glob matching the physical keys of one id across all versions.

    Glob metacharacters in ``id`` are escaped, so ``*`` matches only an id
    that is literally ``*``.
    """
    escaped = _GLOB_SPECIAL.sub(r"\\\1", id)
    return f"{base}:v:*:id:{escaped}"


def lock_key(base: str, id: str | None = None) -> str:
    return f"{base}:refreshing:{id if id is not None else 'all'}"


class VersionedKeys:
    """
    Version counter operations against a KeyValueStore.

    All methods may raise CacheError subclasses; callers on the read path
    treat those as a distributed-tier miss.
    """

    def __init__(self, kv: KeyValueStore):
        self._kv = kv

    async def current_version(self, base: str) -> int:
        """
        Read the current version, creating the counter at 0 when absent.

        Raises:
            CacheReadError: If the counter holds a non-integer value
        """
        key = version_key(base)
        raw = await self._kv.get(key)

        if raw is None:
            # A concurrent creator may win; either way the counter now exists
            created = await self._kv.set_if_absent(key, str(INITIAL_VERSION))
            if created or not self._kv.enabled:
                return INITIAL_VERSION
            raw = await self._kv.get(key)
            if raw is None:
                return INITIAL_VERSION

        try:
            return int(raw)
        except (TypeError, ValueError) as e:
            raise CacheReadError.from_exception(
                e, message=f"Version counter {key} is not an integer", key=key, value=raw
            ) from e

    async def peek_version(self, base: str) -> int | None:
        """Read the current version without creating the counter. None when absent."""
        key = version_key(base)
        raw = await self._kv.get(key)
        if raw is None:
            return None
        try:
            return int(raw)
        except (TypeError, ValueError) as e:
            raise CacheReadError.from_exception(
                e, message=f"Version counter {key} is not an integer", key=key, value=raw
            ) from e

    async def current_key(self, base: str, id: str | None = None) -> str:
        version = await self.current_version(base)
        return physical_key(base, version, id)

    async def bump(self, base: str) -> int | None:
        """Increment the version counter. Returns None when the tier is disabled."""
        version = await self._kv.incr(version_key(base))
        logger.debug("Version bumped", base=base, version=version)
        return version
