#!/usr/bin/env python3
"""
Centralized Configuration Module using Pydantic Settings

This module provides type-safe, environment-based configuration for the
catalogue cache core. All configuration is centralized here to ensure
consistency across modules.

Architectural Decision: Pydantic Settings for type safety and validation
- Environment variable loading with .env support
- Type validation at startup (fail fast on misconfiguration)
- IDE autocomplete for all settings
- Easy testing with override mechanisms

Author: Platform Team
Date: 2025-12-05
"""

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.core.config.constants import (
    DEFAULT_INGREDIENTS_CACHE_TTL_MS,
    DEFAULT_MENU_CACHE_TTL_MS,
    DEFAULT_MENU_DETAIL_CACHE_TTL_MS,
    DEFAULT_REFRESH_AHEAD_THRESHOLD_MS,
    DEFAULT_REFRESH_LOCK_TTL_MS,
    DEFAULT_RESTAURANTS_CACHE_TTL_MS,
    DEFAULT_STORE_RETRY_BACKOFF_MS,
)


class RedisSettings(BaseSettings):
    """
    Redis configuration for the distributed cache tier.

    The distributed tier is optional: unless ENABLE_REDIS is set and a
    REDIS_URL is provided, the core runs in store-only mode.
    """

    ENABLE_REDIS: bool = Field(default=False, description="Enable the distributed cache tier")
    REDIS_URL: str | None = Field(default=None, description="Redis connection URL")
    REDIS_PASSWORD: str | None = Field(default=None, description="Redis password (if required)")

    REDIS_MAX_CONNECTIONS: int = Field(default=50, description="Maximum pooled connections")
    REDIS_SOCKET_TIMEOUT: int = Field(default=5, description="Socket timeout in seconds")
    REDIS_SOCKET_CONNECT_TIMEOUT: int = Field(default=5, description="Connection timeout in seconds")
    REDIS_HEALTH_CHECK_INTERVAL: int = Field(default=30, description="Health check interval in seconds")
    SCAN_COUNT: int = Field(default=200, description="COUNT hint for SCAN iteration")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)

    @property
    def is_configured(self) -> bool:
        """True when the distributed tier should be used."""
        return self.ENABLE_REDIS and bool(self.REDIS_URL)


class CacheSettings(BaseSettings):
    """
    Cache TTLs and refresh-ahead tuning.

    All durations are milliseconds. MEMORY_CACHE_TTL_MS falls back to each
    collection's own TTL when unset; 0 disables the memory tier.
    """

    MENU_CACHE_TTL_MS: int = Field(default=DEFAULT_MENU_CACHE_TTL_MS, description="Menu list TTL")
    MENU_DETAIL_CACHE_TTL_MS: int = Field(
        default=DEFAULT_MENU_DETAIL_CACHE_TTL_MS, description="Menu item detail TTL"
    )
    INGREDIENTS_CACHE_TTL_MS: int = Field(
        default=DEFAULT_INGREDIENTS_CACHE_TTL_MS, description="Ingredient list TTL"
    )
    RESTAURANTS_CACHE_TTL_MS: int = Field(
        default=DEFAULT_RESTAURANTS_CACHE_TTL_MS, description="Restaurant list TTL"
    )
    MEMORY_CACHE_TTL_MS: int | None = Field(
        default=None, description="Memory tier TTL (defaults to the collection TTL)"
    )
    REFRESH_AHEAD_THRESHOLD_MS: int = Field(
        default=DEFAULT_REFRESH_AHEAD_THRESHOLD_MS,
        description="Remaining TTL below which a background refresh is triggered",
    )
    REFRESH_LOCK_TTL_MS: int = Field(
        default=DEFAULT_REFRESH_LOCK_TTL_MS, description="Refresh lock TTL"
    )
    REFRESH_MAX_WORKERS: int = Field(default=4, description="Concurrent background refreshes")
    REFRESH_MAX_PENDING: int = Field(default=100, description="Queued background refreshes")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)

    @field_validator(
        "MENU_CACHE_TTL_MS",
        "MENU_DETAIL_CACHE_TTL_MS",
        "INGREDIENTS_CACHE_TTL_MS",
        "RESTAURANTS_CACHE_TTL_MS",
        "REFRESH_LOCK_TTL_MS",
        "REFRESH_MAX_WORKERS",
        "REFRESH_MAX_PENDING",
    )
    @classmethod
    def validate_positive(cls, v):
        """Reject zero or negative durations and pool sizes."""
        if v <= 0:
            raise ValueError("value must be positive")
        return v

    @field_validator("MEMORY_CACHE_TTL_MS", "REFRESH_AHEAD_THRESHOLD_MS")
    @classmethod
    def validate_non_negative(cls, v):
        """Allow 0 to switch the feature off."""
        if v is not None and v < 0:
            raise ValueError("value must not be negative")
        return v

    def memory_ttl_for(self, collection_ttl_ms: int) -> int:
        """Memory tier TTL for a collection."""
        if self.MEMORY_CACHE_TTL_MS is None:
            return collection_ttl_ms
        return self.MEMORY_CACHE_TTL_MS


class StoreSettings(BaseSettings):
    """Source-of-truth relational store configuration."""

    DATABASE_URL: str = Field(
        default="sqlite+aiosqlite:///./catalogue.sqlite", description="SQLAlchemy async URL"
    )
    DATABASE_ECHO: bool = Field(default=False, description="Echo SQL statements")
    STORE_RETRY_BACKOFF_MS: int = Field(
        default=DEFAULT_STORE_RETRY_BACKOFF_MS,
        description="Pause before the single transient-failure retry",
    )

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class LoggingSettings(BaseSettings):
    """
    Logging configuration for structured logging.

    Architectural Decision: structlog for production-grade logging
    """

    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: Literal["json", "console"] = Field(default="json", description="Log output format")

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v.upper()

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class ApplicationSettings(BaseSettings):
    """General application settings."""

    ENVIRONMENT: Literal["development", "staging", "production", "test"] = Field(
        default="development",
        description="Application environment"
    )
    APP_NAME: str = Field(default="Catalogue Cache Core", description="Application name")
    APP_VERSION: str = Field(default="1.0.0", description="Application version")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class Settings(BaseSettings):
    """
    Main settings class that aggregates all configuration sections.

    Usage:
        from src.core.config.settings import get_settings

        settings = get_settings()
        ttl = settings.cache.MENU_CACHE_TTL_MS
        enabled = settings.redis.is_configured

    Architectural Benefits:
    - Single source of truth for all configuration
    - Type-safe access with IDE autocomplete
    - Validation at startup (fail fast)
    - Easy testing with override mechanisms
    """

    # Redis settings
    ENABLE_REDIS: bool = Field(default=False, description="Enable the distributed cache tier")
    REDIS_URL: str | None = Field(default=None, description="Redis connection URL")
    REDIS_PASSWORD: str | None = Field(default=None, description="Redis password (if required)")
    REDIS_MAX_CONNECTIONS: int = Field(default=50, description="Maximum pooled connections")
    REDIS_SOCKET_TIMEOUT: int = Field(default=5, description="Socket timeout in seconds")
    REDIS_SOCKET_CONNECT_TIMEOUT: int = Field(default=5, description="Connection timeout in seconds")
    REDIS_HEALTH_CHECK_INTERVAL: int = Field(default=30, description="Health check interval in seconds")
    SCAN_COUNT: int = Field(default=200, description="COUNT hint for SCAN iteration")

    # Cache settings
    MENU_CACHE_TTL_MS: int = Field(default=DEFAULT_MENU_CACHE_TTL_MS)
    MENU_DETAIL_CACHE_TTL_MS: int = Field(default=DEFAULT_MENU_DETAIL_CACHE_TTL_MS)
    INGREDIENTS_CACHE_TTL_MS: int = Field(default=DEFAULT_INGREDIENTS_CACHE_TTL_MS)
    RESTAURANTS_CACHE_TTL_MS: int = Field(default=DEFAULT_RESTAURANTS_CACHE_TTL_MS)
    MEMORY_CACHE_TTL_MS: int | None = Field(default=None)
    REFRESH_AHEAD_THRESHOLD_MS: int = Field(default=DEFAULT_REFRESH_AHEAD_THRESHOLD_MS)
    REFRESH_LOCK_TTL_MS: int = Field(default=DEFAULT_REFRESH_LOCK_TTL_MS)
    REFRESH_MAX_WORKERS: int = Field(default=4)
    REFRESH_MAX_PENDING: int = Field(default=100)

    # Store settings
    DATABASE_URL: str = Field(default="sqlite+aiosqlite:///./catalogue.sqlite")
    DATABASE_ECHO: bool = Field(default=False)
    STORE_RETRY_BACKOFF_MS: int = Field(default=DEFAULT_STORE_RETRY_BACKOFF_MS)

    # Logging settings
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: Literal["json", "console"] = Field(default="json", description="Log output format")

    # Application settings
    ENVIRONMENT: Literal["development", "staging", "production", "test"] = Field(
        default="development",
        description="Application environment"
    )
    APP_NAME: str = Field(default="Catalogue Cache Core", description="Application name")
    APP_VERSION: str = Field(default="1.0.0", description="Application version")

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v.upper()

    # Nested configuration objects
    @property
    def redis(self) -> RedisSettings:
        """Get Redis settings."""
        return RedisSettings(
            ENABLE_REDIS=self.ENABLE_REDIS,
            REDIS_URL=self.REDIS_URL,
            REDIS_PASSWORD=self.REDIS_PASSWORD,
            REDIS_MAX_CONNECTIONS=self.REDIS_MAX_CONNECTIONS,
            REDIS_SOCKET_TIMEOUT=self.REDIS_SOCKET_TIMEOUT,
            REDIS_SOCKET_CONNECT_TIMEOUT=self.REDIS_SOCKET_CONNECT_TIMEOUT,
            REDIS_HEALTH_CHECK_INTERVAL=self.REDIS_HEALTH_CHECK_INTERVAL,
            SCAN_COUNT=self.SCAN_COUNT,
        )

    @property
    def cache(self) -> CacheSettings:
        """Get cache settings."""
        return CacheSettings(
            MENU_CACHE_TTL_MS=self.MENU_CACHE_TTL_MS,
            MENU_DETAIL_CACHE_TTL_MS=self.MENU_DETAIL_CACHE_TTL_MS,
            INGREDIENTS_CACHE_TTL_MS=self.INGREDIENTS_CACHE_TTL_MS,
            RESTAURANTS_CACHE_TTL_MS=self.RESTAURANTS_CACHE_TTL_MS,
            MEMORY_CACHE_TTL_MS=self.MEMORY_CACHE_TTL_MS,
            REFRESH_AHEAD_THRESHOLD_MS=self.REFRESH_AHEAD_THRESHOLD_MS,
            REFRESH_LOCK_TTL_MS=self.REFRESH_LOCK_TTL_MS,
            REFRESH_MAX_WORKERS=self.REFRESH_MAX_WORKERS,
            REFRESH_MAX_PENDING=self.REFRESH_MAX_PENDING,
        )

    @property
    def store(self) -> StoreSettings:
        """Get source store settings."""
        return StoreSettings(
            DATABASE_URL=self.DATABASE_URL,
            DATABASE_ECHO=self.DATABASE_ECHO,
            STORE_RETRY_BACKOFF_MS=self.STORE_RETRY_BACKOFF_MS,
        )

    @property
    def logging(self) -> LoggingSettings:
        """Get logging settings."""
        return LoggingSettings(LOG_LEVEL=self.LOG_LEVEL, LOG_FORMAT=self.LOG_FORMAT)

    @property
    def app(self) -> ApplicationSettings:
        """Get application settings."""
        return ApplicationSettings(
            ENVIRONMENT=self.ENVIRONMENT,
            APP_NAME=self.APP_NAME,
            APP_VERSION=self.APP_VERSION,
        )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"  # Ignore extra environment variables
    )


# Global settings instance (singleton pattern)
_settings: Settings | None = None


def get_settings() -> Settings:
    """
    Get the global settings instance (singleton).

    Returns:
        Settings: Global settings instance
    """
    global _settings

    if _settings is None:
        _settings = Settings()

    return _settings


def reload_settings() -> Settings:
    """
    Reload settings (useful for testing).

    Returns:
        Settings: New settings instance
    """
    global _settings
    _settings = Settings()
    return _settings
