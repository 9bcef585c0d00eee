"""
Unit Tests for the Memory Tier

Tests TTL expiry, the disabled mode and LRU eviction.
"""

import pytest

from src.infrastructure.cache.memory_tier import ALL_SLOT, MemoryTier
from tests.test_fixtures import ManualClock


@pytest.mark.unit
class TestMemoryTier:
    """Test MemoryTier slot handling."""

    def test_put_then_get(self):
        tier = MemoryTier(1_000, clock=ManualClock())
        tier.put(("a", "b"))

        assert tier.get() == ("a", "b")
        assert tier.get(ALL_SLOT) == ("a", "b")

    def test_slot_expires_at_ttl(self):
        clock = ManualClock()
        tier = MemoryTier(1_000, clock=clock)
        tier.put("value", "42")

        clock.advance(999)
        assert tier.get("42") == "value"

        clock.advance(1)
        assert tier.get("42") is None
        assert len(tier) == 0

    def test_zero_ttl_disables_tier(self):
        tier = MemoryTier(0, clock=ManualClock())
        tier.put("value")

        assert tier.enabled is False
        assert tier.get() is None
        assert len(tier) == 0

    def test_put_replaces_slot(self):
        clock = ManualClock()
        tier = MemoryTier(1_000, clock=clock)
        tier.put("old", "1")
        clock.advance(900)
        tier.put("new", "1")
        clock.advance(900)

        assert tier.get("1") == "new"

    def test_lru_eviction(self):
        tier = MemoryTier(10_000, max_slots=2, clock=ManualClock())
        tier.put("a", "1")
        tier.put("b", "2")
        tier.get("1")
        tier.put("c", "3")

        assert tier.get("1") == "a"
        assert tier.get("2") is None
        assert tier.get("3") == "c"

    def test_discard_and_clear(self):
        tier = MemoryTier(10_000, clock=ManualClock())
        tier.put("a", "1")
        tier.put("b", "2")

        assert tier.discard("1") is True
        assert tier.discard("1") is False
        tier.clear()
        assert len(tier) == 0
