"""
Transient-Failure Retry for the Source Store

A dropped or stale database connection usually fails exactly one call. The
RetryingStore retries such a call once, after recreating the store's
connections and a short pause; every other error, and a second failure,
reaches the caller unchanged.

Transient failures are a closed set:
- ConnectionResetError, ConnectionAbortedError, TimeoutError
- StoreTransientError
- SQLAlchemy DisconnectionError, pool TimeoutError, DBAPIError with an
  invalidated connection
- SQLSTATE class 08 (connection exception) and 57P01..57P03 (shutdown)
- ORM engine codes P1001, P1002, P1008, P1017
- messages matching TRANSIENT_MESSAGE

Author: Platform Team
Date: 2025-12-13
"""

import re
from collections.abc import Sequence
from contextlib import AbstractAsyncContextManager

from sqlalchemy import exc as sa_exc
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_fixed,
)

from src.core.config.constants import DEFAULT_STORE_RETRY_BACKOFF_MS, Stage
from src.core.exceptions import StoreFatalError, StoreTransientError
from src.core.interfaces.store import Row, SourceStore, StoreSession, Where
from src.core.logging.logger import get_logger, log_stage
from src.infrastructure.monitoring.metrics_collector import get_metrics_collector

logger = get_logger(__name__)

TRANSIENT_ENGINE_CODES = frozenset({"P1001", "P1002", "P1008", "P1017"})
TRANSIENT_SQLSTATES = frozenset({"57P01", "57P02", "57P03"})
TRANSIENT_MESSAGE = re.compile(
    r"connection.*closed|closed.*connection|ECONNRESET|ETIMEDOUT|Connection terminated",
    re.IGNORECASE,
)

MAX_ATTEMPTS = 2


def _sqlstate(exc: BaseException) -> str | None:
    for attr in ("sqlstate", "pgcode"):
        value = getattr(exc, attr, None)
        if isinstance(value, str):
            return value
    return None


def _has_transient_code(exc: BaseException) -> bool:
    code = getattr(exc, "code", None)
    if isinstance(code, str) and code in TRANSIENT_ENGINE_CODES:
        return True

    state = _sqlstate(exc)
    return state is not None and (state.startswith("08") or state in TRANSIENT_SQLSTATES)


def is_transient_store_error(exc: BaseException) -> bool:
    """True when one reconnect-and-retry may succeed."""
    if isinstance(exc, StoreTransientError):
        return True
    if isinstance(exc, StoreFatalError):
        return False
    if isinstance(exc, (ConnectionResetError, ConnectionAbortedError, TimeoutError)):
        return True
    if isinstance(exc, (sa_exc.DisconnectionError, sa_exc.TimeoutError)):
        return True
    if isinstance(exc, sa_exc.DBAPIError) and exc.connection_invalidated:
        return True

    candidates = [exc]
    orig = getattr(exc, "orig", None)
    if isinstance(orig, BaseException):
        candidates.append(orig)

    for candidate in candidates:
        if _has_transient_code(candidate):
            return True
        if TRANSIENT_MESSAGE.search(str(candidate)):
            return True

    return False


class RetryingStore:
    """
    SourceStore wrapper retrying each call once on a transient failure.

    Transactions pass through without retry: their body is caller code and
    re-running it is the caller's decision.
    """

    def __init__(self, store: SourceStore, backoff_ms: int = DEFAULT_STORE_RETRY_BACKOFF_MS):
        self._store = store
        self._backoff_ms = backoff_ms
        self._metrics = get_metrics_collector()

    @property
    def inner(self) -> SourceStore:
        return self._store

    def _before_retry(self, operation: str):
        def reset_connection(retry_state: RetryCallState) -> None:
            exc = retry_state.outcome.exception() if retry_state.outcome else None
            log_stage(
                logger, Stage.STORE_RETRY, "Transient store failure, reconnecting and retrying",
                level="warning", operation=operation, attempt=retry_state.attempt_number,
                error=str(exc), error_type=type(exc).__name__,
            )
            self._metrics.record_store_retry(operation)
            self._store.reset()
            log_stage(logger, Stage.STORE_RESET, "Store connection reset", level="debug", operation=operation)

        return reset_connection

    async def _call(self, operation: str, func, *args, **kwargs):
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(MAX_ATTEMPTS),
            wait=wait_fixed(self._backoff_ms / 1000),
            retry=retry_if_exception(is_transient_store_error),
            before_sleep=self._before_retry(operation),
            reraise=True,
        ):
            with attempt:
                return await func(*args, **kwargs)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def find_many(
        self,
        collection: str,
        where: Where | None = None,
        order_by: str | None = None,
        limit: int | None = None,
    ) -> list[Row]:
        return await self._call(
            "find_many", self._store.find_many, collection, where=where, order_by=order_by, limit=limit
        )

    async def find_unique(self, collection: str, id: str) -> Row | None:
        return await self._call("find_unique", self._store.find_unique, collection, id)

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    async def create(self, collection: str, data: Row) -> Row:
        return await self._call("create", self._store.create, collection, data)

    async def create_many(self, collection: str, rows: Sequence[Row]) -> int:
        return await self._call("create_many", self._store.create_many, collection, rows)

    async def update(self, collection: str, id: str, data: Row) -> Row:
        return await self._call("update", self._store.update, collection, id, data)

    async def upsert(self, collection: str, where: Where, create: Row, update: Row) -> Row:
        return await self._call("upsert", self._store.upsert, collection, where, create, update)

    async def delete(self, collection: str, id: str) -> Row:
        return await self._call("delete", self._store.delete, collection, id)

    async def delete_many(self, collection: str, where: Where | None = None) -> int:
        return await self._call("delete_many", self._store.delete_many, collection, where)

    # -------------------------------------------------------------------------
    # Pass-through
    # -------------------------------------------------------------------------

    def transaction(self) -> AbstractAsyncContextManager[StoreSession]:
        return self._store.transaction()

    def reset(self) -> None:
        self._store.reset()

    async def dispose(self) -> None:
        await self._store.dispose()
