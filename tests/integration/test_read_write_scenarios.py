"""
Integration Tests for the Cache Core

End-to-end scenarios through CacheContext: the real repositories,
invalidating and retrying store wrappers, refresh scheduler and codec,
over the fake distributed tier and either the in-memory or the aiosqlite
source store.
"""

import asyncio

import pytest
from prometheus_client import REGISTRY

from src.application.context import CacheContext
from src.core.interfaces.cache import DisabledKeyValueStore


def sample(name: str, **labels) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


async def seed_menu(store) -> dict[str, str]:
    ids = {}
    for name in ("Somsa", "Osh", "Mastava"):
        row = await store.create("MenuItem", {"name": name, "slug": name.lower()})
        ids[name] = row["id"]
    return ids


@pytest.mark.integration
class TestListScenarios:
    """Cold read, memory hit and write invalidation of the menu list."""

    async def test_cold_list_then_memory_hit(self, make_context, source_store):
        await seed_menu(source_store)
        ctx = await make_context()
        misses = sample("catalogue_cache_misses_total", tier="distributed", collection="menu:list")

        first = await ctx.menu_list.list()
        loads = source_store.calls["find_many"]
        kv_gets = ctx.kv.calls["get"]
        second = await ctx.menu_list.list()

        assert [item.name for item in first] == ["Mastava", "Osh", "Somsa"]
        assert sample("catalogue_cache_misses_total", tier="distributed", collection="menu:list") == misses + 1
        assert second is first
        assert source_store.calls["find_many"] == loads
        assert ctx.kv.calls["get"] == kv_gets

    async def test_update_is_visible_with_one_version_bump(self, make_context, source_store, kv):
        ids = await seed_menu(source_store)
        ctx = await make_context(MEMORY_CACHE_TTL_MS=0)
        await ctx.menu_list.list()
        before = int(kv.data["menu:list:version"])

        await ctx.store.update("MenuItem", ids["Osh"], {"name": "Osh Plov"})
        items = await ctx.menu_list.list()

        assert "Osh Plov" in [item.name for item in items]
        assert int(kv.data["menu:list:version"]) == before + 1

    async def test_disabled_tier_cycle_matches(self, make_context, source_store):
        ids = await seed_menu(source_store)
        ctx = await make_context(kv_store=DisabledKeyValueStore("ENABLE_REDIS is off"), MEMORY_CACHE_TTL_MS=0)

        before = await ctx.menu_list.list()
        await ctx.store.update("MenuItem", ids["Osh"], {"name": "Osh Plov"})
        after = await ctx.menu_list.list()

        assert [item.name for item in before] == ["Mastava", "Osh", "Somsa"]
        assert [item.name for item in after] == ["Mastava", "Osh Plov", "Somsa"]

    async def test_disabled_tier_returns_same_values_as_enabled(self, make_context, source_store, catalogue):
        enabled = await make_context()
        disabled = await make_context(kv_store=DisabledKeyValueStore())
        pizza = catalogue["menu_items"]["pizza"]

        assert await disabled.menu_list.list() == await enabled.menu_list.list()
        assert await disabled.ingredients.list() == await enabled.ingredients.list()
        assert await disabled.restaurants.list() == await enabled.restaurants.list()
        assert await disabled.menu_detail.get_by_id(pizza) == await enabled.menu_detail.get_by_id(pizza)


@pytest.mark.integration
class TestInvalidationProperties:
    """Version isolation and invalidation across collections."""

    @pytest.mark.parametrize(
        "collection, mutate, bumped",
        [
            ("Restaurant", "update", ["menu:restaurants", "menu:detail"]),
            ("Ingredient", "create", ["ingredients", "menu:detail"]),
            ("MenuItemOnRestaurant", "delete_many", ["menu:restaurants", "menu:list", "menu:detail"]),
            ("MenuItem", "update", ["menu:list"]),
        ],
    )
    async def test_mutation_bumps_dependent_versions(
        self, context, kv, catalogue, collection, mutate, bumped
    ):
        await context.start(warm=True)
        before = {base: int(kv.data[f"{base}:version"]) for base in context.repositories}

        if mutate == "update" and collection == "Restaurant":
            await context.store.update(collection, catalogue["restaurants"]["centro"], {"name": "Centro 2"})
        elif mutate == "update":
            await context.store.update(collection, catalogue["menu_items"]["pizza"], {"name": "Pizza 2"})
        elif mutate == "create":
            await context.store.create(collection, {"name": "Oregano", "mandatory": False})
        else:
            await context.store.delete_many(collection, {"restaurant_id": catalogue["restaurants"]["centro"]})

        after = {base: int(kv.data[f"{base}:version"]) for base in context.repositories}
        for base in context.repositories:
            expected = before[base] + 1 if base in bumped else before[base]
            assert after[base] == expected, base

    async def test_menu_item_change_drops_detail_keys(self, context, kv, catalogue):
        await context.menu_detail.warm_all()

        await context.store.update("MenuItem", catalogue["menu_items"]["burger"], {"description": "Smash"})

        assert not any(key.startswith("menu:detail:v:") for key in kv.data)

    async def test_old_version_never_read(self, make_context, kv, source_store, catalogue):
        ctx = await make_context(MEMORY_CACHE_TTL_MS=0)
        await ctx.restaurants.list()
        await ctx.store.create("Restaurant", {"name": "Arco", "slug": "arco"})

        # The version 0 payload is still alive but no longer addressed
        assert "menu:restaurants:v:0" in kv.data
        names = [item.name for item in await ctx.restaurants.list()]

        assert names == ["Arco", "Centro", "Porto"]
        assert "menu:restaurants:v:1" in kv.data

    async def test_invalidating_empty_collection(self, context, kv):
        assert kv.live_keys() == []

        assert await context.ingredients.invalidate() == 1
        assert await context.ingredients.invalidate() == 2

    async def test_transaction_invalidates_once(self, context, kv, catalogue):
        await context.start(warm=True)

        async with context.store.transaction() as tx:
            restaurant = await tx.create("Restaurant", {"name": "Arco", "slug": "arco"})
            await tx.create(
                "MenuItemOnRestaurant",
                {"menu_item_id": catalogue["menu_items"]["salad"], "restaurant_id": restaurant["id"]},
            )

        assert kv.data["menu:detail:version"] == "1"
        assert kv.data["menu:restaurants:version"] == "1"
        assert kv.data["menu:list:version"] == "1"


@pytest.mark.integration
class TestRefreshAheadScenarios:
    """Refresh-ahead under concurrent near-expiry reads."""

    async def test_concurrent_near_expiry_reads_refresh_once(self, make_context, clock, source_store, catalogue):
        ctx = await make_context(
            MENU_DETAIL_CACHE_TTL_MS=5 * 60 * 1000,
            REFRESH_AHEAD_THRESHOLD_MS=2 * 60 * 1000,
            MEMORY_CACHE_TTL_MS=0,
        )
        pizza = catalogue["menu_items"]["pizza"]
        await ctx.menu_detail.get_by_id(pizza)
        clock.advance(4 * 60 * 1000)

        first, second = await asyncio.gather(
            ctx.menu_detail.get_by_id(pizza), ctx.menu_detail.get_by_id(pizza)
        )
        await ctx.scheduler.drain()

        assert first == second
        assert source_store.collection_calls[("find_unique", "MenuItem")] == 2

    async def test_concurrent_cold_misses_are_not_deduplicated(self, make_context, source_store, catalogue):
        ctx = await make_context()
        pizza = catalogue["menu_items"]["pizza"]

        first, second = await asyncio.gather(
            ctx.menu_detail.get_by_id(pizza), ctx.menu_detail.get_by_id(pizza)
        )

        assert first == second
        assert 1 <= source_store.collection_calls[("find_unique", "MenuItem")] <= 2


@pytest.mark.integration
class TestSqlAlchemyBackedContext:
    """The same read and write cycle over a real database."""

    async def test_list_update_list(self, make_settings, sqlite_store, kv, clock):
        ids = await seed_menu(sqlite_store)
        pizza = await sqlite_store.create("MenuItem", {"name": "Pizza", "slug": "pizza"})
        restaurant = await sqlite_store.create("Restaurant", {"name": "Centro", "slug": "centro"})
        await sqlite_store.create("Ingredient", {"name": "Dough", "mandatory": True, "menu_item_id": pizza["id"]})
        await sqlite_store.create(
            "MenuItemOnRestaurant", {"menu_item_id": pizza["id"], "restaurant_id": restaurant["id"]}
        )

        async with await CacheContext.create(
            make_settings(MEMORY_CACHE_TTL_MS=0), sqlite_store, kv=kv, clock=clock
        ) as ctx:
            before = await ctx.menu_list.list()
            detail = await ctx.menu_detail.get_by_id(pizza["id"])

            await ctx.store.update("MenuItem", ids["Osh"], {"name": "Osh Plov"})
            after = await ctx.menu_list.list()

        assert [item.name for item in before] == ["Mastava", "Osh", "Pizza", "Somsa"]
        assert [item.name for item in after] == ["Mastava", "Osh Plov", "Pizza", "Somsa"]
        assert [i.name for i in detail.ingredients] == ["Dough"]
        assert [r.name for r in detail.restaurants] == ["Centro"]
        assert detail.id == pizza["id"]
