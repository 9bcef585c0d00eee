"""
Test Fixtures Package

Shared fakes for the distributed tier and the source store.
"""

from .kv_factory import FakeKeyValueStore, ManualClock
from .store_factory import InMemorySourceStore, seed_catalogue

__all__ = ["FakeKeyValueStore", "ManualClock", "InMemorySourceStore", "seed_catalogue"]
