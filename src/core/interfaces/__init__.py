"""
Core Interfaces Module

Protocols for the two external systems the cache core talks to:

- **cache.py**: KeyValueStore protocol (distributed tier) and DisabledKeyValueStore
- **store.py**: SourceStore protocol (relational source of truth)

Interfaces follow the Protocol pattern (PEP 544) with @runtime_checkable,
so test fakes satisfy them without inheritance.

Author: Platform Team
Date: 2025-12-08
"""

from src.core.interfaces.cache import DisabledKeyValueStore, KeyValueStore
from src.core.interfaces.store import Row, SourceStore, StoreSession, Where

__all__ = [
    "KeyValueStore",
    "DisabledKeyValueStore",
    "SourceStore",
    "StoreSession",
    "Row",
    "Where",
]
