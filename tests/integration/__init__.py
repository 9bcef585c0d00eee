"""
Integration Tests

Tests that wire several components together:
- Read path through CacheContext over the fake distributed tier
- Write-path invalidation through the wrapped source store
- Refresh-ahead with the real scheduler
- The SQLAlchemy store on aiosqlite
"""
