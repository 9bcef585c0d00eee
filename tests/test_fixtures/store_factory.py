"""
Source Store Test Factory

In-memory SourceStore with call counters, queued failures and snapshot
based transactions, plus a small seeded catalogue.
"""

import copy
import uuid
from collections import Counter, defaultdict
from collections.abc import Sequence
from contextlib import asynccontextmanager
from datetime import UTC, datetime, timedelta
from typing import Any

from src.core.exceptions import StoreNotFoundError

Row = dict[str, Any]

EPOCH = datetime(2025, 1, 1, tzinfo=UTC)


def _matches(row: Row, where: dict[str, Any] | None) -> bool:
    for column, expected in (where or {}).items():
        if isinstance(expected, (list, tuple, set, frozenset)):
            if row.get(column) not in expected:
                return False
        elif row.get(column) != expected:
            return False
    return True


class InMemorySourceStore:
    def __init__(self):
        self.tables: dict[str, dict[str, Row]] = defaultdict(dict)
        self.calls: Counter = Counter()
        self.collection_calls: Counter = Counter()
        self.pending_failures: dict[str, list[Exception]] = defaultdict(list)
        self.reset_count = 0
        self.disposed = False
        self._tick = 0

    # -------------------------------------------------------------------------
    # Test helpers
    # -------------------------------------------------------------------------

    def fail_next(self, op: str, *errors: Exception) -> None:
        """Queue errors raised by the next calls of ``op``, one per call."""
        self.pending_failures[op].extend(errors)

    def _enter(self, op: str, collection: str) -> None:
        self.calls[op] += 1
        self.collection_calls[(op, collection)] += 1
        if self.pending_failures[op]:
            raise self.pending_failures[op].pop(0)

    def _next_timestamp(self) -> datetime:
        self._tick += 1
        return EPOCH + timedelta(seconds=self._tick)

    def _require(self, collection: str, id: str) -> Row:
        row = self.tables[collection].get(id)
        if row is None:
            raise StoreNotFoundError(f"{collection} {id} not found")
        return row

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def find_many(
        self,
        collection: str,
        where: dict[str, Any] | None = None,
        order_by: str | None = None,
        limit: int | None = None,
    ) -> list[Row]:
        self._enter("find_many", collection)
        rows = [dict(row) for row in self.tables[collection].values() if _matches(row, where)]
        if order_by:
            column = order_by.lstrip("-")
            rows.sort(key=lambda row: row.get(column), reverse=order_by.startswith("-"))
        if limit is not None:
            rows = rows[:limit]
        return rows

    async def find_unique(self, collection: str, id: str) -> Row | None:
        self._enter("find_unique", collection)
        row = self.tables[collection].get(id)
        return dict(row) if row is not None else None

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def _insert(self, collection: str, data: Row) -> Row:
        row = {"id": str(uuid.uuid4()), "created_at": self._next_timestamp(), **data}
        self.tables[collection][row["id"]] = row
        return dict(row)

    async def create(self, collection: str, data: Row) -> Row:
        self._enter("create", collection)
        return self._insert(collection, data)

    async def create_many(self, collection: str, rows: Sequence[Row]) -> int:
        self._enter("create_many", collection)
        for data in rows:
            self._insert(collection, data)
        return len(rows)

    async def update(self, collection: str, id: str, data: Row) -> Row:
        self._enter("update", collection)
        row = self._require(collection, id)
        row.update(data)
        return dict(row)

    async def upsert(self, collection: str, where: Row, create: Row, update: Row) -> Row:
        self._enter("upsert", collection)
        for row in self.tables[collection].values():
            if _matches(row, where):
                row.update(update)
                return dict(row)
        return self._insert(collection, {**where, **create})

    async def delete(self, collection: str, id: str) -> Row:
        self._enter("delete", collection)
        row = self._require(collection, id)
        del self.tables[collection][id]
        return dict(row)

    async def delete_many(self, collection: str, where: Row | None = None) -> int:
        self._enter("delete_many", collection)
        doomed = [id for id, row in self.tables[collection].items() if _matches(row, where)]
        for id in doomed:
            del self.tables[collection][id]
        return len(doomed)

    @asynccontextmanager
    async def transaction(self):
        snapshot = copy.deepcopy(self.tables)
        try:
            yield self
        except BaseException:
            self.tables = snapshot
            raise

    def reset(self) -> None:
        self.reset_count += 1

    async def dispose(self) -> None:
        self.disposed = True


def seed_catalogue(store: InMemorySourceStore) -> dict[str, Any]:
    """
    Two restaurants, three menu items, ingredients and links.

    Returns the ids by role for assertions.
    """
    centro = store._insert("Restaurant", {"name": "Centro", "slug": "centro", "logo_url": None})
    porto = store._insert("Restaurant", {"name": "Porto", "slug": "porto", "logo_url": "https://cdn/porto.png"})

    pizza = store._insert(
        "MenuItem",
        {"name": "Pizza", "slug": "pizza", "logo_url": None, "description": "Wood fired"},
    )
    burger = store._insert(
        "MenuItem",
        {"name": "Burger", "slug": "burger", "logo_url": None, "description": None},
    )
    salad = store._insert(
        "MenuItem",
        {"name": "Salad", "slug": "salad", "logo_url": None, "description": "Green"},
    )

    dough = store._insert("Ingredient", {"name": "Dough", "mandatory": True, "menu_item_id": pizza["id"]})
    basil = store._insert("Ingredient", {"name": "Basil", "mandatory": False, "menu_item_id": pizza["id"]})
    bun = store._insert("Ingredient", {"name": "Bun", "mandatory": True, "menu_item_id": burger["id"]})

    store._insert("MenuItemOnRestaurant", {"menu_item_id": pizza["id"], "restaurant_id": porto["id"]})
    store._insert("MenuItemOnRestaurant", {"menu_item_id": pizza["id"], "restaurant_id": centro["id"]})
    store._insert("MenuItemOnRestaurant", {"menu_item_id": burger["id"], "restaurant_id": centro["id"]})

    return {
        "restaurants": {"centro": centro["id"], "porto": porto["id"]},
        "menu_items": {"pizza": pizza["id"], "burger": burger["id"], "salad": salad["id"]},
        "ingredients": {"dough": dough["id"], "basil": basil["id"], "bun": bun["id"]},
    }
