"""
Cache-Related Exceptions

All exceptions raised by the distributed (Redis) tier and the payload codec.
The repositories catch every ``CacheError`` and fall through to the next tier.

Author: Platform Team
Date: 2025-12-08
"""

from src.core.exceptions.base import CacheCoreError


class CacheError(CacheCoreError):
    """Base exception for cache-related errors."""
    pass


class CacheUnavailableError(CacheError):
    """
    Raised when the distributed cache cannot be reached.

    Common causes:
    - Redis server is down
    - Network connectivity issues
    - Authentication failure
    """
    pass


class CacheReadError(CacheError):
    """Raised when a read (GET, TTL, SCAN) fails or returns an unusable value."""
    pass


class CacheDeserializationError(CacheReadError):
    """
    Raised when a cached payload cannot be decoded.

    Common causes:
    - Payload written by an older schema version
    - Truncated or corrupted value
    - Envelope tag does not match the expected entity
    """
    pass


class CacheWriteError(CacheError):
    """Raised when a write (SET, DEL, INCR, SET NX) fails."""
    pass
