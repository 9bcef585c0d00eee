"""
Pytest Configuration and Shared Test Fixtures

This module provides pytest configuration and reusable fixtures for all tests.
All fixtures defined here are automatically available to all test files.
"""

import os
import sys

import pytest

# Add project root to sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from tests.test_fixtures import (  # noqa: E402
    FakeKeyValueStore,
    InMemorySourceStore,
    ManualClock,
    seed_catalogue,
)

# ============================================================================
# Pytest Configuration
# ============================================================================

# pytest-asyncio is automatically loaded via pyproject.toml configuration


@pytest.fixture(scope="session", autouse=True)
def structured_logging():
    """
    Route structlog through stdlib logging on stderr for the whole session.

    Unconfigured structlog prints to stdout, which would leak into captured
    CLI output.
    """
    from src.core.logging.logger import setup_logging

    setup_logging(log_level="DEBUG", log_format="console", stream=sys.stderr)


# ============================================================================
# Settings Fixtures
# ============================================================================


@pytest.fixture
def make_settings():
    """
    Factory for Settings isolated from the environment's .env file.

    Test defaults: no retry pause, store-only distributed tier unless a fake
    key-value store is passed to the context.
    """
    from src.core.config.settings import Settings

    def _make(**overrides):
        values = {
            "ENVIRONMENT": "test",
            "STORE_RETRY_BACKOFF_MS": 0,
            "LOG_FORMAT": "console",
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _make


@pytest.fixture
def settings(make_settings):
    """Default test settings."""
    return make_settings()


# ============================================================================
# Distributed Tier Fixtures
# ============================================================================


@pytest.fixture
def clock():
    """Manual millisecond clock shared by the fake tier and the memory tiers."""
    return ManualClock()


@pytest.fixture
def kv(clock):
    """Redis-like in-memory key-value store."""
    return FakeKeyValueStore(clock)


# ============================================================================
# Source Store Fixtures
# ============================================================================


@pytest.fixture
def source_store():
    """Empty in-memory source store."""
    return InMemorySourceStore()


@pytest.fixture
def catalogue(source_store):
    """Seed the in-memory store and return the ids by role."""
    return seed_catalogue(source_store)


@pytest.fixture
async def sqlite_store(tmp_path):
    """
    SQLAlchemy store on a throwaway aiosqlite database.

    The schema is created up front and the engine disposed afterwards.
    """
    from src.infrastructure.store.sqlalchemy_store import SqlAlchemySourceStore

    store = SqlAlchemySourceStore(f"sqlite+aiosqlite:///{tmp_path / 'catalogue.sqlite'}")
    await store.create_schema()
    yield store
    await store.dispose()


# ============================================================================
# Context Fixtures
# ============================================================================


@pytest.fixture
async def make_context(make_settings, kv, source_store, clock):
    """
    Factory building a CacheContext over the fakes.

    Every context created is closed after the test.
    """
    from src.application.context import CacheContext

    created = []

    async def _make(kv_store=None, **overrides):
        context = await CacheContext.create(
            make_settings(**overrides),
            source_store,
            kv=kv if kv_store is None else kv_store,
            clock=clock,
        )
        created.append(context)
        return context

    yield _make

    for context in created:
        await context.close()


@pytest.fixture
async def context(make_settings, kv, source_store, catalogue, clock):
    """CacheContext over the seeded in-memory store and the fake tier."""
    from src.application.context import CacheContext

    ctx = await CacheContext.create(make_settings(), source_store, kv=kv, clock=clock)
    yield ctx
    await ctx.close()
