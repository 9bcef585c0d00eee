"""
Unit Tests for the Invalidating Store

Tests that successful mutations invalidate, failed ones do not, and that
transactions invalidate once after commit.
"""

from unittest.mock import AsyncMock

import pytest

from src.core.exceptions import StoreNotFoundError
from src.infrastructure.cache.invalidation import CacheInvalidator
from src.infrastructure.store.invalidating_store import InvalidatingStore


@pytest.fixture
def invalidator():
    mock = AsyncMock(spec=CacheInvalidator)
    mock.after_mutation.return_value = ()
    return mock


@pytest.fixture
def store(source_store, invalidator):
    return InvalidatingStore(source_store, invalidator)


@pytest.mark.unit
class TestMutations:
    """Test single mutations."""

    async def test_create_invalidates_collection(self, store, invalidator):
        await store.create("Restaurant", {"name": "Lido"})
        invalidator.after_mutation.assert_awaited_once_with("Restaurant")

    async def test_update_invalidates_collection(self, store, invalidator, catalogue):
        await store.update("MenuItem", catalogue["menu_items"]["pizza"], {"name": "Pizza Napoletana"})
        invalidator.after_mutation.assert_awaited_once_with("MenuItem")

    async def test_delete_invalidates_cascaded_collections(self, store, invalidator, catalogue):
        await store.delete("MenuItem", catalogue["menu_items"]["pizza"])

        invalidator.after_mutation.assert_awaited_once_with(
            "MenuItem", "Ingredient", "MenuItemOnRestaurant"
        )

    async def test_restaurant_delete_many_invalidates_links(self, store, invalidator, catalogue):
        await store.delete_many("Restaurant", {"name": "Centro"})

        invalidator.after_mutation.assert_awaited_once_with("Restaurant", "MenuItemOnRestaurant")

    async def test_bulk_operations_invalidate(self, store, invalidator):
        await store.create_many("Ingredient", [{"name": "Salt"}, {"name": "Pepper"}])
        await store.delete_many("Ingredient", {"name": "Salt"})
        await store.upsert("Ingredient", {"name": "Oil"}, {"mandatory": False}, {"mandatory": True})

        assert invalidator.after_mutation.await_count == 3

    async def test_reads_do_not_invalidate(self, store, invalidator, catalogue):
        await store.find_many("MenuItem")
        await store.find_unique("MenuItem", catalogue["menu_items"]["pizza"])

        invalidator.after_mutation.assert_not_awaited()

    async def test_failed_mutation_does_not_invalidate(self, store, invalidator):
        with pytest.raises(StoreNotFoundError):
            await store.update("MenuItem", "missing", {"name": "Ghost"})

        invalidator.after_mutation.assert_not_awaited()

    async def test_invalidation_failure_does_not_fail_write(self, store, invalidator, source_store):
        invalidator.after_mutation.side_effect = RuntimeError("cache exploded")

        row = await store.create("Restaurant", {"name": "Lido"})

        assert row["name"] == "Lido"
        assert len(source_store.tables["Restaurant"]) == 1


@pytest.mark.unit
class TestTransactions:
    """Test transaction-scoped invalidation."""

    async def test_commit_invalidates_union_once(self, store, invalidator, catalogue):
        pizza = catalogue["menu_items"]["pizza"]

        async with store.transaction() as tx:
            restaurant = await tx.create("Restaurant", {"name": "Lido"})
            await tx.create(
                "MenuItemOnRestaurant", {"menu_item_id": pizza, "restaurant_id": restaurant["id"]}
            )
            await tx.create("Restaurant", {"name": "Molo"})
            invalidator.after_mutation.assert_not_awaited()

        invalidator.after_mutation.assert_awaited_once_with("Restaurant", "MenuItemOnRestaurant")

    async def test_rollback_invalidates_nothing(self, store, invalidator, source_store):
        with pytest.raises(RuntimeError):
            async with store.transaction() as tx:
                await tx.create("Restaurant", {"name": "Lido"})
                raise RuntimeError("abort")

        invalidator.after_mutation.assert_not_awaited()
        assert source_store.tables["Restaurant"] == {}

    async def test_delete_in_transaction_tracks_cascades(self, store, invalidator, catalogue):
        async with store.transaction() as tx:
            await tx.delete("MenuItem", catalogue["menu_items"]["pizza"])

        invalidator.after_mutation.assert_awaited_once_with(
            "MenuItem", "Ingredient", "MenuItemOnRestaurant"
        )

    async def test_read_only_transaction_invalidates_nothing(self, store, invalidator, catalogue):
        async with store.transaction() as tx:
            await tx.find_many("MenuItem")

        invalidator.after_mutation.assert_not_awaited()


@pytest.mark.unit
class TestWithRealInvalidator:
    """Test the wrapper end to end over the fake tier."""

    async def test_restaurant_update_bumps_versions(self, kv, source_store, catalogue):
        store = InvalidatingStore(source_store, CacheInvalidator(kv))

        await store.update("Restaurant", catalogue["restaurants"]["centro"], {"name": "Centro Storico"})

        assert kv.data["menu:restaurants:version"] == "1"
        assert kv.data["menu:detail:version"] == "1"
        assert "meta:last_sync" in kv.data

    async def test_menu_item_delete_bumps_ingredient_version(self, kv, source_store, catalogue):
        store = InvalidatingStore(source_store, CacheInvalidator(kv))
        kv.data["ingredients:version"] = "4"

        await store.delete("MenuItem", catalogue["menu_items"]["pizza"])

        assert kv.data["ingredients:version"] == "5"
        assert kv.data["menu:restaurants:version"] == "1"
        assert kv.data["menu:list:version"] == "1"
