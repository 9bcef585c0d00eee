"""
SQLAlchemy Source Store

SourceStore implementation on SQLAlchemy 2.0 asyncio (asyncpg in
production, aiosqlite for tests and local development).

Every top-level call runs in its own session and transaction;
``transaction()`` shares one session across several calls and commits on
clean exit.
"""

import asyncio
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import delete as sa_delete
from sqlalchemy import exc as sa_exc
from sqlalchemy import select
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from src.core.exceptions import StoreFatalError, StoreNotFoundError
from src.core.interfaces.store import Row, Where
from src.core.logging.logger import get_logger
from src.infrastructure.store.models import MODELS, Base

logger = get_logger(__name__)


def to_row(instance: Base) -> Row:
    return {column.key: getattr(instance, column.key) for column in instance.__table__.columns}


class SessionOperations:
    """StoreSession surface bound to one AsyncSession."""

    def __init__(self, session: AsyncSession, models: dict[str, type[Base]] = MODELS):
        self._session = session
        self._models = models

    def _model(self, collection: str) -> type[Base]:
        try:
            return self._models[collection]
        except KeyError:
            raise StoreFatalError(
                f"Unknown collection: {collection}", details={"collection": collection}
            ) from None

    @staticmethod
    def _column(model: type[Base], name: str):
        if name not in model.__table__.columns:
            raise StoreFatalError(
                f"Unknown column {name} on {model.__name__}",
                details={"collection": model.__name__, "column": name},
            )
        return getattr(model, name)

    def _conditions(self, model: type[Base], where: Where | None) -> list[Any]:
        conditions = []
        for name, value in (where or {}).items():
            column = self._column(model, name)
            if isinstance(value, (list, tuple, set, frozenset)):
                conditions.append(column.in_(list(value)))
            elif value is None:
                conditions.append(column.is_(None))
            else:
                conditions.append(column == value)
        return conditions

    async def _flush(self, collection: str) -> None:
        try:
            await self._session.flush()
        except sa_exc.IntegrityError as e:
            raise StoreFatalError.from_exception(
                e, message=f"Integrity violation on {collection}", collection=collection
            ) from e

    async def _get(self, collection: str, id: str) -> Base:
        instance = await self._session.get(self._model(collection), id)
        if instance is None:
            raise StoreNotFoundError(
                f"{collection} {id} not found", details={"collection": collection, "id": id}
            )
        return instance

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
        model = self._model(collection)
        stmt = select(model).where(*self._conditions(model, where))

        if order_by:
            descending = order_by.startswith("-")
            column = self._column(model, order_by.lstrip("-"))
            stmt = stmt.order_by(column.desc() if descending else column.asc())

        if limit is not None:
            stmt = stmt.limit(limit)

        result = await self._session.execute(stmt)
        return [to_row(instance) for instance in result.scalars()]

    async def find_unique(self, collection: str, id: str) -> Row | None:
        instance = await self._session.get(self._model(collection), id)
        return to_row(instance) if instance is not None else None

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    async def create(self, collection: str, data: Row) -> Row:
        instance = self._model(collection)(**data)
        self._session.add(instance)
        await self._flush(collection)
        return to_row(instance)

    async def create_many(self, collection: str, rows: Sequence[Row]) -> int:
        model = self._model(collection)
        self._session.add_all([model(**data) for data in rows])
        await self._flush(collection)
        return len(rows)

    async def update(self, collection: str, id: str, data: Row) -> Row:
        instance = await self._get(collection, id)
        for name, value in data.items():
            self._column(type(instance), name)
            setattr(instance, name, value)
        await self._flush(collection)
        return to_row(instance)

    async def upsert(self, collection: str, where: Where, create: Row, update: Row) -> Row:
        model = self._model(collection)
        stmt = select(model).where(*self._conditions(model, where)).limit(1)
        instance = (await self._session.execute(stmt)).scalars().first()

        if instance is None:
            scalar_where = {k: v for k, v in where.items() if not isinstance(v, (list, tuple, set))}
            return await self.create(collection, {**scalar_where, **create})

        for name, value in update.items():
            self._column(model, name)
            setattr(instance, name, value)
        await self._flush(collection)
        return to_row(instance)

    async def delete(self, collection: str, id: str) -> Row:
        instance = await self._get(collection, id)
        row = to_row(instance)
        await self._session.delete(instance)
        await self._flush(collection)
        return row

    async def delete_many(self, collection: str, where: Where | None = None) -> int:
        model = self._model(collection)
        result = await self._session.execute(
            sa_delete(model).where(*self._conditions(model, where))
        )
        return result.rowcount or 0


class SqlAlchemySourceStore:
    """
    SourceStore backed by an async SQLAlchemy engine.

    Usage:
        store = SqlAlchemySourceStore("postgresql+asyncpg://app@db/catalogue")
        rows = await store.find_many("MenuItem", order_by="name")

        async with store.transaction() as tx:
            await tx.create("Restaurant", {"name": "Centro"})
    """

    def __init__(self, url: str, echo: bool = False, models: dict[str, type[Base]] = MODELS):
        self._url = url
        self._echo = echo
        self._models = models
        self._retired: set[asyncio.Task] = set()
        self._engine: AsyncEngine = self._build_engine()
        self._sessions = async_sessionmaker(self._engine, expire_on_commit=False)

    @classmethod
    def from_settings(cls, settings) -> "SqlAlchemySourceStore":
        return cls(settings.store.DATABASE_URL, echo=settings.store.DATABASE_ECHO)

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    def _build_engine(self) -> AsyncEngine:
        return create_async_engine(self._url, echo=self._echo, pool_pre_ping=True)

    async def create_schema(self) -> None:
        """Create every table (tests and local development)."""
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def _run(self, operation: str, *args, **kwargs):
        async with self._sessions() as session, session.begin():
            ops = SessionOperations(session, self._models)
            return await getattr(ops, operation)(*args, **kwargs)

    async def find_many(
        self,
        collection: str,
        where: Where | None = None,
        order_by: str | None = None,
        limit: int | None = None,
    ) -> list[Row]:
        return await self._run("find_many", collection, where=where, order_by=order_by, limit=limit)

    async def find_unique(self, collection: str, id: str) -> Row | None:
        return await self._run("find_unique", collection, id)

    async def create(self, collection: str, data: Row) -> Row:
        return await self._run("create", collection, data)

    async def create_many(self, collection: str, rows: Sequence[Row]) -> int:
        return await self._run("create_many", collection, rows)

    async def update(self, collection: str, id: str, data: Row) -> Row:
        return await self._run("update", collection, id, data)

    async def upsert(self, collection: str, where: Where, create: Row, update: Row) -> Row:
        return await self._run("upsert", collection, where, create, update)

    async def delete(self, collection: str, id: str) -> Row:
        return await self._run("delete", collection, id)

    async def delete_many(self, collection: str, where: Where | None = None) -> int:
        return await self._run("delete_many", collection, where)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[SessionOperations]:
        """Commit on clean exit, roll back when the body raises."""
        async with self._sessions() as session, session.begin():
            yield SessionOperations(session, self._models)

    def reset(self) -> None:
        """
        Replace the engine so the next call opens fresh connections.

        The old engine is disposed in the background when a loop is running.
        """
        old_engine = self._engine
        self._engine = self._build_engine()
        self._sessions = async_sessionmaker(self._engine, expire_on_commit=False)

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return

        task = loop.create_task(old_engine.dispose())
        self._retired.add(task)
        task.add_done_callback(self._retired.discard)
        logger.debug("Store engine replaced", url=self._engine.url.render_as_string())

    async def dispose(self) -> None:
        if self._retired:
            await asyncio.gather(*list(self._retired), return_exceptions=True)
        await self._engine.dispose()
