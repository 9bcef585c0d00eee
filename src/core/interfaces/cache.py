"""
Key-Value Store Protocol

This module defines the protocol for the distributed cache tier, plus the
no-op implementation used when the tier is disabled.

Architectural Decision: Protocol-based abstraction
- Repositories depend on the protocol, never on redis-py directly
- Disabled mode is an ordinary implementation, not a branch in every caller
- Facilitates testing with in-memory fakes

Author: Platform Team
Date: 2025-12-08
"""

from typing import Any, Protocol, runtime_checkable

from src.core.config.constants import TTL_KEY_MISSING


@runtime_checkable
class KeyValueStore(Protocol):
    """
    Protocol for the distributed cache tier.

    All TTL arguments are milliseconds; ``ttl()`` reports seconds the way
    Redis does (``-2`` missing key, ``-1`` no expiry).

    Implementations:
    - RedisClient: production Redis-backed tier
    - DisabledKeyValueStore: store-only mode
    """

    @property
    def enabled(self) -> bool:
        """True when operations reach a real backend."""
        ...

    async def connect(self) -> None:
        """
        Establish connection to the backend.

        Raises:
            CacheUnavailableError: If connection fails
        """
        ...

    async def disconnect(self) -> None:
        ...

    async def ping(self) -> bool:
        ...

    async def get(self, key: str) -> str | None:
        """
        Get a value.

        Raises:
            CacheReadError: If operation fails
        """
        ...

    async def set(self, key: str, value: str, ttl_ms: int | None = None) -> None:
        """
        Set a value, optionally expiring after ``ttl_ms``.

        Raises:
            CacheWriteError: If operation fails
        """
        ...

    async def delete(self, *keys: str) -> int:
        ...

    async def scan(self, pattern: str) -> list[str]:
        """Return every key matching a glob pattern (cursor based, never KEYS)."""
        ...

    async def ttl(self, key: str) -> int:
        ...

    async def incr(self, key: str) -> int | None:
        ...

    async def set_if_absent(self, key: str, value: str, ttl_ms: int | None = None) -> bool:
        """Atomically set a key only when it does not exist."""
        ...

    async def delete_if_equals(self, key: str, value: str) -> bool:
        """Atomically delete a key only while it still holds ``value``."""
        ...

    async def health_check(self) -> dict[str, Any]:
        ...


class DisabledKeyValueStore:
    """
    Key-value store used when the distributed tier is switched off.

    Every read reports a miss, every write is dropped, and nothing raises.
    The repositories run unchanged on top of it, so the system degrades to
    memory tier plus source store.
    """

    def __init__(self, reason: str = "disabled"):
        self.reason = reason

    @property
    def enabled(self) -> bool:
        return False

    async def connect(self) -> None:
        pass

    async def disconnect(self) -> None:
        pass

    async def ping(self) -> bool:
        return False

    async def get(self, key: str) -> str | None:
        return None

    async def set(self, key: str, value: str, ttl_ms: int | None = None) -> None:
        pass

    async def delete(self, *keys: str) -> int:
        return 0

    async def scan(self, pattern: str) -> list[str]:
        return []

    async def ttl(self, key: str) -> int:
        return TTL_KEY_MISSING

    async def incr(self, key: str) -> int | None:
        return None

    async def set_if_absent(self, key: str, value: str, ttl_ms: int | None = None) -> bool:
        return False

    async def delete_if_equals(self, key: str, value: str) -> bool:
        return False

    async def health_check(self) -> dict[str, Any]:
        return {"status": "disabled", "connected": False, "reason": self.reason}
