"""
Prometheus Metrics Module

This module provides Prometheus metrics for the embedding cache, the indexing
pass, retrieval and the turn loop.

The cache hit/miss counter is the primary signal for the content-addressed
cache: a healthy deployment restarting against a warm cache shows hits only.

Pattern: Metrics collection for observability
"""

from prometheus_client import REGISTRY, Counter, Histogram, generate_latest


# =============================================================================
# Embedding Cache Metrics
# =============================================================================

CACHE_OPERATIONS_TOTAL = Counter(
    name="bigtool_cache_operations_total",
    documentation="Total embedding cache lookups by result (hit/miss)",
    labelnames=["result"],
)

EMBEDDINGS_COMPUTED_TOTAL = Counter(
    name="bigtool_embeddings_computed_total",
    documentation="Total embeddings computed by the embedding provider",
)

# =============================================================================
# Indexing Metrics
# =============================================================================

INDEX_DURATION_SECONDS = Histogram(
    name="bigtool_index_duration_seconds",
    documentation="Duration of a full indexing pass in seconds",
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
)

# =============================================================================
# Retrieval and Turn Metrics
# =============================================================================

RETRIEVAL_REQUESTS_TOTAL = Counter(
    name="bigtool_retrieval_requests_total",
    documentation="Total tool searches by outcome (ok/empty_query/error)",
    labelnames=["outcome"],
)

TURN_ROUTES_TOTAL = Counter(
    name="bigtool_turn_routes_total",
    documentation="Total routing decisions taken by the turn state machine",
    labelnames=["route"],
)


# =============================================================================
# Helper Functions
# =============================================================================


def record_cache_operation(result: str, count: int = 1) -> None:
    """
    Record embedding cache lookups.

    Args:
        result: Cache operation result ("hit" or "miss")
        count: Number of lookups with this result
    """
    if count > 0:
        CACHE_OPERATIONS_TOTAL.labels(result=result).inc(count)


def record_embeddings_computed(count: int) -> None:
    """
    Record embeddings computed by the provider.

    Args:
        count: Number of texts embedded
    """
    if count > 0:
        EMBEDDINGS_COMPUTED_TOTAL.inc(count)


def record_index_duration(seconds: float) -> None:
    """Record the duration of an indexing pass."""
    INDEX_DURATION_SECONDS.observe(seconds)


def record_retrieval(outcome: str) -> None:
    """
    Record a search outcome.

    Args:
        outcome: "ok", "empty_query" or "error"
    """
    RETRIEVAL_REQUESTS_TOTAL.labels(outcome=outcome).inc()


def record_turn_route(route: str) -> None:
    """Record a routing decision of the turn state machine."""
    TURN_ROUTES_TOTAL.labels(route=route).inc()


def generate_metrics() -> str:
    """
    Render all registered metrics in Prometheus text format.

    Returns:
        Prometheus exposition text
    """
    return generate_latest(REGISTRY).decode("utf-8")
