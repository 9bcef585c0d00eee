#!/usr/bin/env python3
"""
Metrics Collector with Prometheus Integration

This module provides metrics for the cache core:
- Cache hit/miss counts by tier and collection
- Distributed tier errors by operation
- Refresh-ahead outcomes
- Invalidation actions
- Source store retries

Architectural Decision: prometheus-client for industry-standard metrics
- Compatible with Grafana dashboards
- Efficient storage and aggregation
- Histogram buckets for load latency percentiles

Author: Platform Team
Date: 2025-12-05
"""


from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)

from src.core.logging.logger import get_logger

logger = get_logger(__name__)


# ============================================================================
# Metric Definitions
# ============================================================================

# Cache metrics
CACHE_HITS = Counter(
    'catalogue_cache_hits_total',
    'Total cache hits',
    ['tier', 'collection']  # memory or distributed
)

CACHE_MISSES = Counter(
    'catalogue_cache_misses_total',
    'Total cache misses',
    ['tier', 'collection']
)

CACHE_ERRORS = Counter(
    'catalogue_cache_errors_total',
    'Distributed tier errors absorbed by the read and write paths',
    ['operation']
)

STORE_LOAD_DURATION = Histogram(
    'catalogue_store_load_seconds',
    'Source store load duration on cache miss',
    ['collection'],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5)
)

# Refresh-ahead metrics
REFRESH_OUTCOMES = Counter(
    'catalogue_refresh_total',
    'Refresh-ahead outcomes',
    ['collection', 'outcome']  # scheduled, locked, rejected, completed, failed
)

REFRESH_PENDING = Gauge(
    'catalogue_refresh_pending',
    'Background refresh jobs queued or running'
)

# Invalidation metrics
INVALIDATIONS = Counter(
    'catalogue_invalidations_total',
    'Invalidation actions applied after store mutations',
    ['action', 'target']  # bump or delete
)

# Store metrics
STORE_RETRIES = Counter(
    'catalogue_store_retries_total',
    'Source store calls retried after a transient failure',
    ['operation']
)

# App info
APP_INFO = Info(
    'catalogue_app',
    'Application information'
)


class MetricsCollector:
    """
    Centralized metrics collector.

    STAGE-M: Metrics collection

    Usage:
        metrics = get_metrics_collector()
        metrics.record_cache_hit("memory", "menu:list")
        output = metrics.get_prometheus_metrics()
    """

    def set_app_info(self, app_name: str, version: str, environment: str) -> None:
        APP_INFO.info({
            'version': version,
            'environment': environment,
            'app_name': app_name
        })

    # =========================================================================
    # Cache Metrics
    # =========================================================================

    def record_cache_hit(self, tier: str, collection: str) -> None:
        """Record cache hit."""
        CACHE_HITS.labels(tier=tier, collection=collection).inc()

    def record_cache_miss(self, tier: str, collection: str) -> None:
        """Record cache miss."""
        CACHE_MISSES.labels(tier=tier, collection=collection).inc()

    def record_cache_error(self, operation: str) -> None:
        """Record an absorbed distributed tier error."""
        CACHE_ERRORS.labels(operation=operation).inc()

    def record_store_load(self, collection: str, duration_seconds: float) -> None:
        STORE_LOAD_DURATION.labels(collection=collection).observe(duration_seconds)

    # =========================================================================
    # Refresh Metrics
    # =========================================================================

    def record_refresh(self, collection: str, outcome: str) -> None:
        """Record a refresh-ahead outcome."""
        REFRESH_OUTCOMES.labels(collection=collection, outcome=outcome).inc()

    def set_refresh_pending(self, count: int) -> None:
        REFRESH_PENDING.set(count)

    # =========================================================================
    # Invalidation / Store Metrics
    # =========================================================================

    def record_invalidation(self, action: str, target: str) -> None:
        INVALIDATIONS.labels(action=action, target=target).inc()

    def record_store_retry(self, operation: str) -> None:
        STORE_RETRIES.labels(operation=operation).inc()

    # =========================================================================
    # Export
    # =========================================================================

    def get_prometheus_metrics(self) -> bytes:
        """
        Get Prometheus metrics output.

        Returns:
            bytes: Prometheus text format metrics
        """
        return generate_latest(REGISTRY)

    def get_content_type(self) -> str:
        """Get Prometheus content type."""
        return CONTENT_TYPE_LATEST


# Global metrics collector
_metrics: MetricsCollector | None = None


def get_metrics_collector() -> MetricsCollector:
    """Get global metrics collector."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
        logger.debug("Metrics collector initialized", stage="M.0")
    return _metrics
