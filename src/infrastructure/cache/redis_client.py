"""
Redis Client with Connection Pooling

Architecture:
    RedisClient (Public API, implements KeyValueStore)
        ├── ConnectionManager (Connection lifecycle)
        ├── OperationExecutor (Command execution with error translation)
        └── HealthMonitor (Health checks and pool metrics)

    open_key_value_store() decides between RedisClient and
    DisabledKeyValueStore at startup.

Error translation:
    - connection / timeout failures -> CacheUnavailableError
    - GET, TTL, SCAN failures       -> CacheReadError
    - SET, DEL, INCR, SET NX, CAD  -> CacheWriteError

Author: Platform Team
Date: 2025-12-13
"""

import time
from typing import Any

import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool
from redis.exceptions import ConnectionError, RedisError, TimeoutError

from src.core.config.constants import Stage
from src.core.exceptions import (
    CacheReadError,
    CacheUnavailableError,
    CacheWriteError,
)
from src.core.interfaces.cache import DisabledKeyValueStore, KeyValueStore
from src.core.logging.logger import get_logger, log_stage

logger = get_logger(__name__)

# DEL only while the key still holds the caller's token
COMPARE_AND_DELETE_SCRIPT = """
if redis.call("GET", KEYS[1]) == ARGV[1] then
    return redis.call("DEL", KEYS[1])
end
return 0
"""


# =============================================================================
# LAYER 1: CONNECTION MANAGEMENT
# Handles connection lifecycle, pooling, and reconnection
# =============================================================================


class ConnectionManager:
    """
    Manages Redis connection lifecycle and pooling.

    Responsibility: Connection establishment, pooling, and cleanup.

    Pool Configuration (from RedisSettings):
    - Max connections: REDIS_MAX_CONNECTIONS
    - Socket timeout: REDIS_SOCKET_TIMEOUT
    - Health check interval: REDIS_HEALTH_CHECK_INTERVAL
    - Decode responses: True (values are str, never bytes)
    """

    def __init__(self, settings):
        self._settings = settings
        self._pool: ConnectionPool | None = None
        self._client: redis.Redis | None = None
        self._is_connected = False

    async def connect(self) -> redis.Redis:
        """
        Establish connection to Redis with connection pooling.

        STAGE-KV.1: Connection establishment

        Returns:
            redis.Redis: Connected Redis client

        Raises:
            CacheUnavailableError: If connection fails
        """
        if self._is_connected and self._client:
            return self._client

        redis_settings = self._settings.redis

        try:
            self._pool = ConnectionPool.from_url(
                redis_settings.REDIS_URL,
                password=redis_settings.REDIS_PASSWORD,
                max_connections=redis_settings.REDIS_MAX_CONNECTIONS,
                socket_connect_timeout=redis_settings.REDIS_SOCKET_CONNECT_TIMEOUT,
                socket_timeout=redis_settings.REDIS_SOCKET_TIMEOUT,
                health_check_interval=redis_settings.REDIS_HEALTH_CHECK_INTERVAL,
                decode_responses=True,
            )
            self._client = redis.Redis(connection_pool=self._pool)

            # Verify the pool actually reaches a server
            await self._client.ping()

            self._is_connected = True

            log_stage(
                logger,
                Stage.KV_CONNECT,
                "Redis connected successfully",
                max_connections=redis_settings.REDIS_MAX_CONNECTIONS,
            )

            return self._client

        except (ConnectionError, TimeoutError, OSError) as e:
            log_stage(logger, Stage.KV_CONNECT, "Failed to connect to Redis", level="error", error=str(e))
            await self._release()
            raise CacheUnavailableError.from_exception(
                e, message=f"Failed to connect to Redis: {e}"
            )

    async def _release(self) -> None:
        if self._client:
            await self._client.aclose()
        if self._pool:
            await self._pool.disconnect()
        self._client = None
        self._pool = None

    async def disconnect(self) -> None:
        """
        Close Redis connection and pool.

        STAGE-KV.2: Connection cleanup
        """
        await self._release()
        self._is_connected = False

        log_stage(logger, Stage.KV_CLOSE, "Redis disconnected")

    async def ping(self) -> bool:
        """Check Redis connection health."""
        try:
            if self._client and self._is_connected:
                await self._client.ping()
                return True
        except (ConnectionError, TimeoutError):
            pass
        return False

    def get_client(self) -> redis.Redis | None:
        return self._client

    def get_pool(self) -> ConnectionPool | None:
        return self._pool

    def is_connected(self) -> bool:
        return self._is_connected


# =============================================================================
# LAYER 2: OPERATION EXECUTOR
# Executes Redis commands with error translation and logging
# =============================================================================


class OperationExecutor:
    """
    Executes Redis operations with consistent error handling.

    Responsibility: Command execution, millisecond TTLs, error translation.

    Error Handling Strategy:
    - Catch RedisError exceptions
    - Log with context (stage, key)
    - Raise the CacheError subclass matching the operation kind
    """

    def __init__(self, redis_client: redis.Redis, scan_count: int = 200):
        self._redis = redis_client
        self._scan_count = scan_count

    @staticmethod
    def _translate(op: str, exc: RedisError, error_cls: type, **context):
        logger.warning(f"Redis {op} failed", stage=f"REDIS.{op}", error=str(exc), **context)
        if isinstance(exc, (ConnectionError, TimeoutError)):
            error_cls = CacheUnavailableError
        return error_cls.from_exception(exc, message=f"Redis {op} failed: {exc}", operation=op, **context)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def get(self, key: str) -> str | None:
        """
        Get value from Redis.

        STAGE-REDIS.GET: Redis GET operation
        """
        try:
            return await self._redis.get(key)
        except RedisError as e:
            raise self._translate("GET", e, CacheReadError, key=key) from e

    async def ttl(self, key: str) -> int:
        """
        Get TTL of a key in seconds.

        Returns:
            TTL in seconds, -1 if no TTL, -2 if key doesn't exist
        """
        try:
            return await self._redis.ttl(key)
        except RedisError as e:
            raise self._translate("TTL", e, CacheReadError, key=key) from e

    async def scan(self, pattern: str) -> list[str]:
        """
        Collect every key matching ``pattern`` with SCAN cursors.

        SCAN may report a key more than once; duplicates are dropped.
        """
        try:
            keys = [
                key async for key in self._redis.scan_iter(match=pattern, count=self._scan_count)
            ]
        except RedisError as e:
            raise self._translate("SCAN", e, CacheReadError, pattern=pattern) from e
        return list(dict.fromkeys(keys))

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def set(self, key: str, value: str, ttl_ms: int | None = None) -> None:
        """
        Set value in Redis.

        STAGE-REDIS.SET: Redis SET operation (PX when a TTL is given)
        """
        try:
            await self._redis.set(key, value, px=ttl_ms)
        except RedisError as e:
            raise self._translate("SET", e, CacheWriteError, key=key) from e

    async def set_if_absent(self, key: str, value: str, ttl_ms: int | None = None) -> bool:
        """SET NX [PX]. Returns True only when this call created the key."""
        try:
            result = await self._redis.set(key, value, px=ttl_ms, nx=True)
        except RedisError as e:
            raise self._translate("SETNX", e, CacheWriteError, key=key) from e
        return bool(result)

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        try:
            return await self._redis.delete(*keys)
        except RedisError as e:
            raise self._translate("DEL", e, CacheWriteError, keys=list(keys)) from e

    async def delete_if_equals(self, key: str, value: str) -> bool:
        """Compare-and-delete in one server-side script."""
        try:
            result = await self._redis.eval(COMPARE_AND_DELETE_SCRIPT, 1, key, value)
        except RedisError as e:
            raise self._translate("CAD", e, CacheWriteError, key=key) from e
        return bool(result)

    async def incr(self, key: str) -> int:
        try:
            return await self._redis.incr(key)
        except RedisError as e:
            raise self._translate("INCR", e, CacheWriteError, key=key) from e


# =============================================================================
# LAYER 3: HEALTH MONITORING
# Health checks and connection pool metrics
# =============================================================================


class HealthMonitor:
    """
    Monitors Redis health and connection pool metrics.

    Metrics Tracked:
    - Connection status
    - Ping latency
    - Pool size and utilization
    - Pool exhaustion warnings (>80% utilized)
    """

    def __init__(self, connection_manager: ConnectionManager):
        self._conn_mgr = connection_manager

    async def health_check(self) -> dict[str, Any]:
        """
        Perform health check on Redis connection.

        Returns:
            Dict with health status and metrics
        """
        health = {
            "status": "healthy",
            "connected": self._conn_mgr.is_connected(),
            "pool_size": 0,
            "pool_available": 0,
            "pool_utilization_pct": 0,
            "pool_warning": False,
            "ping_latency_ms": None,
        }

        try:
            client = self._conn_mgr.get_client()
            if not client:
                health["status"] = "unhealthy"
                health["error"] = "Client not initialized"
                return health

            start = time.perf_counter()
            await client.ping()
            health["ping_latency_ms"] = round((time.perf_counter() - start) * 1000, 2)

            pool = self._conn_mgr.get_pool()
            if pool:
                health["pool_size"] = pool.max_connections

                if hasattr(pool, "_available_connections"):
                    available = len(pool._available_connections)
                    in_use = len(getattr(pool, "_in_use_connections", ()))
                    health["pool_available"] = available

                    utilization = 100.0 * in_use / pool.max_connections
                    health["pool_utilization_pct"] = round(utilization, 1)

                    if utilization > 80:
                        health["pool_warning"] = True
                        logger.warning(
                            "Redis pool utilization high",
                            pool_utilization=utilization,
                            max_connections=pool.max_connections,
                        )

        except RedisError as e:
            health["status"] = "unhealthy"
            health["error"] = str(e)

        return health


# =============================================================================
# LAYER 4: PUBLIC API
# KeyValueStore implementation coordinating the layers above
# =============================================================================


class RedisClient:
    """
    Async Redis-backed KeyValueStore.

    Usage:
        client = RedisClient(settings)
        await client.connect()

        await client.set("menu:list:v:0", payload, ttl_ms=60_000)
        value = await client.get("menu:list:v:0")

        await client.disconnect()

    Architecture:
        RedisClient (this class)
            ├── ConnectionManager (connection lifecycle)
            ├── OperationExecutor (command execution)
            └── HealthMonitor (health checks)
    """

    def __init__(self, settings):
        self._settings = settings
        self._conn_mgr = ConnectionManager(settings)
        self._executor: OperationExecutor | None = None
        self._health_monitor = HealthMonitor(self._conn_mgr)

    @property
    def enabled(self) -> bool:
        return True

    async def connect(self) -> None:
        """
        Raises:
            CacheUnavailableError: If connection fails
        """
        client = await self._conn_mgr.connect()
        self._executor = OperationExecutor(client, scan_count=self._settings.redis.SCAN_COUNT)

    async def disconnect(self) -> None:
        await self._conn_mgr.disconnect()
        self._executor = None

    async def ping(self) -> bool:
        return await self._conn_mgr.ping()

    def _require_executor(self) -> OperationExecutor:
        if self._executor is None:
            raise CacheUnavailableError("Redis client is not connected")
        return self._executor

    # -------------------------------------------------------------------------
    # Delegate to OperationExecutor
    # -------------------------------------------------------------------------

    async def get(self, key: str) -> str | None:
        return await self._require_executor().get(key)

    async def set(self, key: str, value: str, ttl_ms: int | None = None) -> None:
        await self._require_executor().set(key, value, ttl_ms)

    async def delete(self, *keys: str) -> int:
        return await self._require_executor().delete(*keys)

    async def scan(self, pattern: str) -> list[str]:
        return await self._require_executor().scan(pattern)

    async def ttl(self, key: str) -> int:
        return await self._require_executor().ttl(key)

    async def incr(self, key: str) -> int | None:
        return await self._require_executor().incr(key)

    async def set_if_absent(self, key: str, value: str, ttl_ms: int | None = None) -> bool:
        return await self._require_executor().set_if_absent(key, value, ttl_ms)

    async def delete_if_equals(self, key: str, value: str) -> bool:
        return await self._require_executor().delete_if_equals(key, value)

    async def health_check(self) -> dict[str, Any]:
        return await self._health_monitor.health_check()


# =============================================================================
# FACTORY
# =============================================================================


async def open_key_value_store(settings) -> KeyValueStore:
    """
    Build the distributed tier for the given settings.

    Returns a connected RedisClient when ENABLE_REDIS is on and REDIS_URL is
    set. Otherwise, or when the first connection fails, returns a
    DisabledKeyValueStore and the core runs in store-only mode.
    """
    if not settings.redis.ENABLE_REDIS:
        log_stage(logger, Stage.KV_DISABLED, "Distributed cache disabled", reason="ENABLE_REDIS is off")
        return DisabledKeyValueStore("ENABLE_REDIS is off")

    if not settings.redis.REDIS_URL:
        log_stage(
            logger, Stage.KV_DISABLED, "Distributed cache disabled", level="warning",
            reason="REDIS_URL is missing",
        )
        return DisabledKeyValueStore("REDIS_URL is missing")

    client = RedisClient(settings)
    try:
        await client.connect()
    except CacheUnavailableError as e:
        log_stage(
            logger, Stage.KV_DISABLED, "Distributed cache unreachable, continuing without it",
            level="warning", error=e.message,
        )
        return DisabledKeyValueStore("connection failed")

    return client
