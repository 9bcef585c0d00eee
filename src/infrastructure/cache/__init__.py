"""
Cache Module

Distributed tier client, process-local memory tier, versioned keys,
payload codec, refresh-ahead scheduling and write-path invalidation.
"""

from .codec import PayloadCodec
from .invalidation import INVALIDATION_TABLE, BumpVersion, CacheInvalidator, DeletePattern, actions_for
from .memory_tier import ALL_SLOT, MemoryTier
from .redis_client import RedisClient, open_key_value_store
from .refresh import RefreshLock, RefreshScheduler
from .versioned_keys import VersionedKeys, id_pattern, lock_key, physical_key, version_key

__all__ = [
    "PayloadCodec",
    "INVALIDATION_TABLE",
    "BumpVersion",
    "DeletePattern",
    "CacheInvalidator",
    "actions_for",
    "ALL_SLOT",
    "MemoryTier",
    "RedisClient",
    "open_key_value_store",
    "RefreshLock",
    "RefreshScheduler",
    "VersionedKeys",
    "id_pattern",
    "lock_key",
    "physical_key",
    "version_key",
]
