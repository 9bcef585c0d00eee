"""
System Constants and Enumerations

This module defines system-wide constants and enumerations used across
the catalogue cache core.

Architectural Decision: Centralized constants for maintainability
- Single source of truth for cache key names and default TTLs
- Type-safe enums for stage identifiers and cache tiers
- Easy to update and track changes

Author: Platform Team
Date: 2025-12-05
"""

from enum import Enum

# ============================================================================
# Stage Identifiers (for structured logging)
# ============================================================================


class Stage(str, Enum):
    """
    Processing stages of the cache core.

    Format: {PREFIX}.{SEQUENCE}_{DESCRIPTIVE_NAME}

    Each stage names one step of the read path, the refresh-ahead protocol,
    the write-path invalidation or the store retry wrapper. Used as the
    ``stage`` field of every structured log entry.

    Examples:
        log_stage(logger, Stage.MEMORY_HIT, "Memory tier hit", collection="menu:list")
    """

    # Read path (R.*)
    MEMORY_HIT = "R.1_MEMORY_TIER_HIT"
    DISTRIBUTED_HIT = "R.2_DISTRIBUTED_TIER_HIT"
    DISTRIBUTED_ERROR = "R.2E_DISTRIBUTED_TIER_ERROR"
    STORE_LOAD = "R.3_STORE_LOAD"
    CACHE_POPULATE = "R.4_CACHE_POPULATE"

    # Refresh-ahead (F.*)
    REFRESH_CHECK = "F.1_REFRESH_AHEAD_CHECK"
    REFRESH_SCHEDULED = "F.2_REFRESH_SCHEDULED"
    REFRESH_SKIPPED = "F.2S_REFRESH_SKIPPED"
    REFRESH_DONE = "F.3_REFRESH_COMPLETE"
    REFRESH_FAILED = "F.3E_REFRESH_FAILED"

    # Invalidation (I.*)
    INVALIDATE_BUMP = "I.1_VERSION_BUMP"
    INVALIDATE_DELETE = "I.2_PATTERN_DELETE"
    INVALIDATE_SYNC = "I.3_LAST_SYNC"
    INVALIDATE_ERROR = "I.E_INVALIDATION_ERROR"

    # Store (S.*)
    STORE_RETRY = "S.1_TRANSIENT_RETRY"
    STORE_RESET = "S.2_CONNECTION_RESET"

    # Key-value adapter (KV.*)
    KV_CONNECT = "KV.1_CONNECT"
    KV_DISABLED = "KV.1D_DISABLED"
    KV_CLOSE = "KV.2_CLOSE"


# ============================================================================
# Cache Tiers
# ============================================================================


class CacheTier(str, Enum):
    """
    Cache tiers of the read path.

    MEMORY: process-local slots (fastest, never shared)
    DISTRIBUTED: Redis (shared across processes)
    STORE: source-of-truth relational store
    """

    MEMORY = "memory"
    DISTRIBUTED = "distributed"
    STORE = "store"


# ============================================================================
# Collections (source store entity names)
# ============================================================================

COLLECTION_MENU_ITEM = "MenuItem"
COLLECTION_INGREDIENT = "Ingredient"
COLLECTION_RESTAURANT = "Restaurant"
COLLECTION_MENU_ITEM_ON_RESTAURANT = "MenuItemOnRestaurant"

# ============================================================================
# Cache Base Keys
# ============================================================================

CACHE_KEY_MENU_LIST = "menu:list"
CACHE_KEY_MENU_DETAIL = "menu:detail"
CACHE_KEY_INGREDIENTS = "ingredients"
CACHE_KEY_RESTAURANTS = "menu:restaurants"
CACHE_KEY_LAST_SYNC = "meta:last_sync"

# ============================================================================
# Defaults (milliseconds)
# ============================================================================

DAY_MS = 24 * 60 * 60 * 1000

DEFAULT_MENU_CACHE_TTL_MS = 3 * DAY_MS
DEFAULT_MENU_DETAIL_CACHE_TTL_MS = DAY_MS
DEFAULT_INGREDIENTS_CACHE_TTL_MS = 3 * DAY_MS
DEFAULT_RESTAURANTS_CACHE_TTL_MS = 3 * DAY_MS
DEFAULT_REFRESH_AHEAD_THRESHOLD_MS = 2 * 60 * 1000
DEFAULT_REFRESH_LOCK_TTL_MS = 30 * 1000
DEFAULT_STORE_RETRY_BACKOFF_MS = 150

# Redis TTL sentinels
TTL_KEY_MISSING = -2
TTL_NO_EXPIRY = -1
