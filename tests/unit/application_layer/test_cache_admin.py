"""
Unit Tests for Cache Inspection and Maintenance
"""

import pytest

from src.application.cache_admin import bump, prewarm
from src.core.exceptions import CacheReadError, ConfigurationError


@pytest.mark.unit
class TestStatus:
    """Test status and collection_info."""

    async def test_status_lists_keys_with_ttl(self, context, kv):
        await context.menu_list.list()
        await context.invalidator.mark_last_sync()

        status = await context.inspector.status()

        keys = {item["key"]: item["ttl_sec"] for item in status["keys"]}
        assert status["enabled"] is True
        assert keys["menu:list:v:0"] == 3 * 24 * 60 * 60
        assert keys["menu:list:version"] == -1
        assert isinstance(status["last_sync"], int)

    async def test_status_pattern(self, context):
        await context.menu_list.list()
        await context.ingredients.list()

        status = await context.inspector.status("ingredients:*")

        assert [item["key"] for item in status["keys"]] == ["ingredients:v:0", "ingredients:version"]
        assert status["last_sync"] is None

    async def test_status_disabled(self, make_context, catalogue):
        from src.core.interfaces.cache import DisabledKeyValueStore

        ctx = await make_context(kv_store=DisabledKeyValueStore())
        assert await ctx.inspector.status() == {"enabled": False, "keys": [], "last_sync": None}

    async def test_status_propagates_tier_errors(self, context, kv):
        kv.fail("scan")

        with pytest.raises(CacheReadError):
            await context.inspector.status()

    async def test_collection_info_does_not_create_counters(self, context, kv):
        info = await context.inspector.collection_info()

        assert info["menu:list"]["version"] == 0
        assert info["menu:list"]["cached"] is False
        assert not [key for key in kv.data if key.endswith(":version")]
        assert kv.calls["set_if_absent"] == 0

    async def test_collection_info(self, context, catalogue):
        await context.menu_list.list()
        await context.menu_detail.get_by_id(catalogue["menu_items"]["pizza"])

        info = await context.inspector.collection_info()

        assert info["menu:list"]["cached"] is True
        assert info["menu:list"]["key"] == "menu:list:v:0"
        assert info["ingredients"]["cached"] is False
        assert info["menu:detail"]["entries"] == 1


@pytest.mark.unit
class TestRepairs:
    """Test delete_key and refresh_key."""

    async def test_delete_key_marks_sync(self, context, kv):
        await context.menu_list.list()

        deleted = await context.inspector.delete_key("menu:list:v:0")

        assert deleted == 1
        assert "menu:list:v:0" not in kv.data
        assert "meta:last_sync" in kv.data

    async def test_refresh_key_reloads_collection(self, context, kv, source_store):
        await context.restaurants.list()
        source_store._insert("Restaurant", {"name": "Arco", "slug": "arco", "logo_url": None})

        refreshed = await context.inspector.refresh_key("menu:restaurants:v:0")

        assert refreshed is True
        assert "Arco" in kv.data["menu:restaurants:v:0"]
        assert "meta:last_sync" in kv.data

    async def test_refresh_key_refuses_detail_keys(self, context, catalogue):
        pizza = catalogue["menu_items"]["pizza"]
        assert await context.inspector.refresh_key(f"menu:detail:v:0:id:{pizza}") is False

    async def test_refresh_key_refuses_unknown_keys(self, context):
        assert await context.inspector.refresh_key("orders:v:0") is False


@pytest.mark.unit
class TestCollections:
    """Test prewarm and bump."""

    async def test_prewarm_all(self, context, kv):
        warmed = await prewarm(context)

        assert warmed == {"menu:list": 3, "menu:detail": 3, "ingredients": 3, "menu:restaurants": 2}
        assert "menu:restaurants:v:0" in kv.data

    async def test_prewarm_selected(self, context, kv):
        warmed = await prewarm(context, ["ingredients"])

        assert warmed == {"ingredients": 3}
        assert "menu:list:v:0" not in kv.data

    async def test_bump(self, context, kv):
        version = await bump(context, "menu:list")

        assert version == 1
        assert kv.data["menu:list:version"] == "1"
        assert "meta:last_sync" in kv.data

    async def test_bump_unknown_collection(self, context):
        with pytest.raises(ConfigurationError) as exc_info:
            await bump(context, "orders")
        assert "suggestion" in exc_info.value.details
