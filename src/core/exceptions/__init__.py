"""
Exception Module

Structured exception hierarchy for the catalogue cache core.

Module Structure:
-----------------
- **base.py**: CacheCoreError base class + ConfigurationError
- **cache.py**: Distributed tier and payload codec exceptions
- **store.py**: Source store exceptions

Hierarchy:
----------
CacheCoreError
├── ConfigurationError
├── CacheError
│   ├── CacheUnavailableError
│   ├── CacheReadError
│   │   └── CacheDeserializationError
│   └── CacheWriteError
└── StoreError
    ├── StoreTransientError
    └── StoreFatalError
        └── StoreNotFoundError

Usage:
------
```python
from src.core.exceptions import CacheError, StoreNotFoundError
```

Author: Platform Team
Date: 2025-12-08
"""

from src.core.exceptions.base import CacheCoreError, ConfigurationError
from src.core.exceptions.cache import (
    CacheDeserializationError,
    CacheError,
    CacheReadError,
    CacheUnavailableError,
    CacheWriteError,
)
from src.core.exceptions.store import (
    StoreError,
    StoreFatalError,
    StoreNotFoundError,
    StoreTransientError,
)

__all__ = [
    "CacheCoreError",
    "ConfigurationError",
    "CacheError",
    "CacheUnavailableError",
    "CacheReadError",
    "CacheDeserializationError",
    "CacheWriteError",
    "StoreError",
    "StoreTransientError",
    "StoreFatalError",
    "StoreNotFoundError",
]
