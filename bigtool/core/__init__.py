"""
Core module for bigtool.

This module contains configuration, exceptions, and shared utilities.
"""

from bigtool.core.config import EmptyQueryPolicy, Settings, get_settings
from bigtool.core.exceptions import (
    BigToolException,
    CacheStoreError,
    ConfigurationError,
    ConversationStoreError,
    EmbeddingProviderError,
    ErrorCode,
    IndexingError,
    MissingDependencyError,
    RetrievalError,
    ToolExecutionError,
    VectorIndexError,
)

__all__ = [
    # Config
    "Settings",
    "EmptyQueryPolicy",
    "get_settings",
    # Exceptions
    "ErrorCode",
    "BigToolException",
    "ConfigurationError",
    "EmbeddingProviderError",
    "CacheStoreError",
    "VectorIndexError",
    "IndexingError",
    "RetrievalError",
    "MissingDependencyError",
    "ToolExecutionError",
    "ConversationStoreError",
]
