"""
Source Store Exceptions

Errors raised by the relational source of truth. Transient errors are
eligible for the single retry in ``RetryingStore``; fatal errors propagate.

Author: Platform Team
Date: 2025-12-08
"""

from src.core.exceptions.base import CacheCoreError


class StoreError(CacheCoreError):
    """Base exception for source store errors."""
    pass


class StoreTransientError(StoreError):
    """Raised for connection-level failures that a reconnect may fix."""
    pass


class StoreFatalError(StoreError):
    """Raised for failures a retry cannot fix."""
    pass


class StoreNotFoundError(StoreFatalError):
    """Raised when an update or delete targets a row that does not exist."""
    pass
