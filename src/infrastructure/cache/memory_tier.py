"""
Process-Local Memory Tier

The first tier of the read path. Each repository owns one MemoryTier; a
slot is either the collection-wide value (``ALL_SLOT``) or one entity id.

Rules:
- A slot older than the TTL is treated as absent (and dropped on read)
- TTL 0 disables the tier: reads miss and writes are ignored
- Writes replace the whole slot; slots are never mutated in place
- Store writes elsewhere do not touch this tier, so a process may serve a
  value up to one memory TTL old after another process changed the store

Author: Platform Team
Date: 2025-12-13
"""

import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

ALL_SLOT = "__all__"

DEFAULT_MAX_SLOTS = 10_000


def monotonic_ms() -> float:
    return time.monotonic() * 1000


@dataclass(frozen=True)
class MemorySlot:
    value: Any
    stored_at: float


class MemoryTier:
    """
    In-memory slot storage with TTL expiry and LRU eviction.

    Per-id repositories can accumulate many slots, so the oldest-used slot
    is evicted once ``max_slots`` is exceeded.
    """

    def __init__(
        self,
        ttl_ms: int,
        max_slots: int = DEFAULT_MAX_SLOTS,
        clock: Callable[[], float] = monotonic_ms,
    ):
        self._ttl_ms = ttl_ms
        self._max_slots = max_slots
        self._clock = clock
        self._slots: OrderedDict[str, MemorySlot] = OrderedDict()

    @property
    def enabled(self) -> bool:
        return self._ttl_ms > 0

    @property
    def ttl_ms(self) -> int:
        return self._ttl_ms

    def get(self, key: str = ALL_SLOT) -> Any | None:
        """Return the slot value, or None when absent or expired."""
        if not self.enabled:
            return None

        slot = self._slots.get(key)
        if slot is None:
            return None

        if self._clock() - slot.stored_at >= self._ttl_ms:
            del self._slots[key]
            return None

        self._slots.move_to_end(key)
        return slot.value

    def put(self, value: Any, key: str = ALL_SLOT) -> None:
        if not self.enabled:
            return

        self._slots[key] = MemorySlot(value=value, stored_at=self._clock())
        self._slots.move_to_end(key)

        while len(self._slots) > self._max_slots:
            self._slots.popitem(last=False)

    def discard(self, key: str = ALL_SLOT) -> bool:
        return self._slots.pop(key, None) is not None

    def clear(self) -> None:
        self._slots.clear()

    def __len__(self) -> int:
        return len(self._slots)
