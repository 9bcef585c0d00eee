"""
Source Store Protocol

The relational source of truth seen through a small collection-oriented
surface. Rows travel as plain dicts so that wrappers (retry, invalidation)
and test fakes do not depend on the ORM.

Conventions:
- ``where`` maps column to value; a list or tuple value means "IN"
- ``order_by`` is a column name, prefixed with ``-`` for descending
- ``id`` is the primary key column of every collection

Author: Platform Team
Date: 2025-12-08
"""

from collections.abc import Sequence
from contextlib import AbstractAsyncContextManager
from typing import Any, Protocol, runtime_checkable

Row = dict[str, Any]
Where = dict[str, Any]


@runtime_checkable
class StoreSession(Protocol):
    """Read and mutation surface shared by the store and its transactions."""

    async def find_many(
        self,
        collection: str,
        where: Where | None = None,
        order_by: str | None = None,
        limit: int | None = None,
    ) -> list[Row]:
        ...

    async def find_unique(self, collection: str, id: str) -> Row | None:
        ...

    async def create(self, collection: str, data: Row) -> Row:
        ...

    async def create_many(self, collection: str, rows: Sequence[Row]) -> int:
        ...

    async def update(self, collection: str, id: str, data: Row) -> Row:
        """
        Raises:
            StoreNotFoundError: If no row has this id
        """
        ...

    async def upsert(self, collection: str, where: Where, create: Row, update: Row) -> Row:
        ...

    async def delete(self, collection: str, id: str) -> Row:
        """
        Raises:
            StoreNotFoundError: If no row has this id
        """
        ...

    async def delete_many(self, collection: str, where: Where | None = None) -> int:
        ...


@runtime_checkable
class SourceStore(StoreSession, Protocol):
    """Source of truth with transactions and connection management."""

    def transaction(self) -> AbstractAsyncContextManager[StoreSession]:
        """Commit on clean exit, roll back when the body raises."""
        ...

    def reset(self) -> None:
        """Drop pooled connections so the next call reconnects."""
        ...

    async def dispose(self) -> None:
        ...
