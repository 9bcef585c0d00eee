"""
Invalidating Store

SourceStore wrapper that keeps the distributed cache honest: after every
successful mutation it hands the mutated collection to the
CacheInvalidator. Reads pass straight through.

Deletes also invalidate the collections the database cascades into.

Transactions are tracked as a whole. The collections touched inside the
block are invalidated once, after the commit; a rolled back transaction
invalidates nothing.

Invalidation never changes the outcome of a write. Its failures are logged
and dropped here.
"""

from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager

from src.core.config.constants import Stage
from src.core.interfaces.store import Row, SourceStore, StoreSession, Where
from src.core.logging.logger import get_logger
from src.infrastructure.cache.invalidation import CacheInvalidator, deleted_collections

logger = get_logger(__name__)


class TrackingSession:
    """Transaction session recording which collections were mutated."""

    def __init__(self, session: StoreSession):
        self._session = session
        self.touched: list[str] = []

    def _touch(self, collection: str) -> None:
        if collection not in self.touched:
            self.touched.append(collection)

    async def find_many(
        self,
        collection: str,
        where: Where | None = None,
        order_by: str | None = None,
        limit: int | None = None,
    ) -> list[Row]:
        return await self._session.find_many(collection, where=where, order_by=order_by, limit=limit)

    async def find_unique(self, collection: str, id: str) -> Row | None:
        return await self._session.find_unique(collection, id)

    async def create(self, collection: str, data: Row) -> Row:
        row = await self._session.create(collection, data)
        self._touch(collection)
        return row

    async def create_many(self, collection: str, rows: Sequence[Row]) -> int:
        count = await self._session.create_many(collection, rows)
        self._touch(collection)
        return count

    async def update(self, collection: str, id: str, data: Row) -> Row:
        row = await self._session.update(collection, id, data)
        self._touch(collection)
        return row

    async def upsert(self, collection: str, where: Where, create: Row, update: Row) -> Row:
        row = await self._session.upsert(collection, where, create, update)
        self._touch(collection)
        return row

    async def delete(self, collection: str, id: str) -> Row:
        row = await self._session.delete(collection, id)
        for touched in deleted_collections(collection):
            self._touch(touched)
        return row

    async def delete_many(self, collection: str, where: Where | None = None) -> int:
        count = await self._session.delete_many(collection, where)
        for touched in deleted_collections(collection):
            self._touch(touched)
        return count


class InvalidatingStore:
    """
    Usage:
        store = InvalidatingStore(RetryingStore(raw_store), CacheInvalidator(kv))
        await store.update("Restaurant", restaurant_id, {"name": "Centro"})
        # restaurant list and menu detail versions are now bumped
    """

    def __init__(self, store: SourceStore, invalidator: CacheInvalidator):
        self._store = store
        self._invalidator = invalidator

    @property
    def inner(self) -> SourceStore:
        return self._store

    async def _invalidate(self, *collections: str) -> None:
        try:
            await self._invalidator.after_mutation(*collections)
        except Exception:
            logger.exception(
                "Invalidation after store mutation failed",
                stage=Stage.INVALIDATE_ERROR.value,
                collections=list(collections),
            )

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
        return await self._store.find_many(collection, where=where, order_by=order_by, limit=limit)

    async def find_unique(self, collection: str, id: str) -> Row | None:
        return await self._store.find_unique(collection, id)

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    async def create(self, collection: str, data: Row) -> Row:
        row = await self._store.create(collection, data)
        await self._invalidate(collection)
        return row

    async def create_many(self, collection: str, rows: Sequence[Row]) -> int:
        count = await self._store.create_many(collection, rows)
        await self._invalidate(collection)
        return count

    async def update(self, collection: str, id: str, data: Row) -> Row:
        row = await self._store.update(collection, id, data)
        await self._invalidate(collection)
        return row

    async def upsert(self, collection: str, where: Where, create: Row, update: Row) -> Row:
        row = await self._store.upsert(collection, where, create, update)
        await self._invalidate(collection)
        return row

    async def delete(self, collection: str, id: str) -> Row:
        row = await self._store.delete(collection, id)
        await self._invalidate(*deleted_collections(collection))
        return row

    async def delete_many(self, collection: str, where: Where | None = None) -> int:
        count = await self._store.delete_many(collection, where)
        await self._invalidate(*deleted_collections(collection))
        return count

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[TrackingSession]:
        async with self._store.transaction() as session:
            tracking = TrackingSession(session)
            yield tracking
        # Only reached once the inner transaction committed
        if tracking.touched:
            await self._invalidate(*tracking.touched)

    def reset(self) -> None:
        self._store.reset()

    async def dispose(self) -> None:
        await self._store.dispose()
