"""
Observability Package

This package provides observability infrastructure:
- Structured JSON logging with a conversation correlation ID
- Prometheus metrics for the cache, indexing, retrieval and turn routing
"""

from bigtool.observability.logging import (
    clear_conversation_id,
    configure_logging,
    conversation_context,
    get_conversation_id,
    get_logger,
    set_conversation_id,
)
from bigtool.observability.metrics import (
    generate_metrics,
    record_cache_operation,
    record_embeddings_computed,
    record_index_duration,
    record_retrieval,
    record_turn_route,
)

__all__ = [
    # Logging
    "configure_logging",
    "get_logger",
    "set_conversation_id",
    "get_conversation_id",
    "clear_conversation_id",
    "conversation_context",
    # Metrics
    "generate_metrics",
    "record_cache_operation",
    "record_embeddings_computed",
    "record_index_duration",
    "record_retrieval",
    "record_turn_route",
]
