"""
Core Module

Foundational components: configuration, logging, exceptions, interfaces
and store resilience.
"""

from .exceptions import (
    CacheCoreError,
    CacheError,
    CacheReadError,
    CacheUnavailableError,
    CacheWriteError,
    ConfigurationError,
    StoreError,
    StoreNotFoundError,
    StoreTransientError,
)
from .logging import (
    clear_request_id,
    get_logger,
    get_request_id,
    log_stage,
    set_request_id,
    setup_logging,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "set_request_id",
    "get_request_id",
    "clear_request_id",
    "log_stage",
    "CacheCoreError",
    "ConfigurationError",
    "CacheError",
    "CacheUnavailableError",
    "CacheReadError",
    "CacheWriteError",
    "StoreError",
    "StoreTransientError",
    "StoreNotFoundError",
]
