"""
Resilience Module

Store-side resilience for the cache core:

- RetryingStore: one reconnect-and-retry on transient source store failures
- is_transient_store_error: the closed classification used to decide a retry

Author: Platform Team
Date: 2025-12-13
"""

from .store_retry import RetryingStore, is_transient_store_error

__all__ = [
    "RetryingStore",
    "is_transient_store_error",
]
