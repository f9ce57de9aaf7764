"""
Custom exceptions for bigtool.

This module provides the exception hierarchy for the package. All exceptions
inherit from BigToolException and carry an error code plus typed context so
callers can tell transient I/O failures, configuration errors and logic
errors apart.

Propagation:
- Transient I/O (EmbeddingProviderError, CacheStoreError, VectorIndexError)
  is fatal for an indexing pass (wrapped in IndexingError) and absorbed by
  search() unless strict mode is on.
- ConfigurationError is raised from constructors, never deferred to first use.
- MissingDependencyError names the dependency a call needed but did not have.
"""

from enum import Enum
from typing import Any


# =============================================================================
# Error Codes
# =============================================================================


class ErrorCode(str, Enum):
    """
    Error codes for bigtool exceptions.

    These codes identify error types consistently in logs and in error
    messages surfaced to callers.
    """

    BIGTOOL_ERROR = "BIGTOOL_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    EMBEDDING_PROVIDER_ERROR = "EMBEDDING_PROVIDER_ERROR"
    CACHE_STORE_ERROR = "CACHE_STORE_ERROR"
    VECTOR_INDEX_ERROR = "VECTOR_INDEX_ERROR"
    INDEXING_ERROR = "INDEXING_ERROR"
    RETRIEVAL_ERROR = "RETRIEVAL_ERROR"
    MISSING_DEPENDENCY = "MISSING_DEPENDENCY"
    TOOL_EXECUTION_ERROR = "TOOL_EXECUTION_ERROR"
    CONVERSATION_STORE_ERROR = "CONVERSATION_STORE_ERROR"


# =============================================================================
# Base Exception
# =============================================================================


class BigToolException(Exception):
    """
    Base exception for all bigtool errors.

    Attributes:
        message: Human-readable error message.
        error_code: Machine-readable error code from ErrorCode enum.
    """

    def __init__(
        self,
        message: str,
        error_code: str = ErrorCode.BIGTOOL_ERROR,
        **kwargs: Any,
    ) -> None:
        """
        Initialize the exception.

        Args:
            message: Human-readable error message.
            error_code: Machine-readable error code.
            **kwargs: Additional attributes to set on the exception.
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code

        for key, value in kwargs.items():
            setattr(self, key, value)


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(BigToolException):
    """
    Exception for invalid or missing configuration.

    Raised at construction time, e.g. a missing embedding provider or a
    malformed connection target.

    Attributes:
        setting: Name of the offending setting or constructor argument.
    """

    def __init__(
        self,
        message: str,
        setting: str | None = None,
        error_code: str = ErrorCode.CONFIGURATION_ERROR,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_code, **kwargs)
        self.setting = setting


# =============================================================================
# Transient I/O Errors
# =============================================================================


class EmbeddingProviderError(BigToolException):
    """
    Exception for embedding provider failures.

    Raised when the provider is unreachable, times out, returns an error
    status, or returns a response that does not align with the input texts.

    Attributes:
        provider: Name of the embedding provider.
        status_code: HTTP status code from the provider (if applicable).
    """

    def __init__(
        self,
        message: str,
        provider: str,
        status_code: int | None = None,
        error_code: str = ErrorCode.EMBEDDING_PROVIDER_ERROR,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_code, **kwargs)
        self.provider = provider
        self.status_code = status_code


class CacheStoreError(BigToolException):
    """
    Exception for embedding cache substrate failures.

    Attributes:
        namespace: Cache namespace the operation ran against.
    """

    def __init__(
        self,
        message: str,
        namespace: str | None = None,
        error_code: str = ErrorCode.CACHE_STORE_ERROR,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_code, **kwargs)
        self.namespace = namespace


class VectorIndexError(BigToolException):
    """
    Exception for vector index backend failures.

    Attributes:
        backend: Name of the vector index backend.
    """

    def __init__(
        self,
        message: str,
        backend: str,
        error_code: str = ErrorCode.VECTOR_INDEX_ERROR,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_code, **kwargs)
        self.backend = backend


# =============================================================================
# Orchestration Errors
# =============================================================================


class IndexingError(BigToolException):
    """
    Exception for a failed indexing pass.

    The pass writes nothing to the cache or the index once this is raised
    from the embedding stage.

    Attributes:
        stage: Stage that failed (cache_read, embed, cache_write, index).
    """

    def __init__(
        self,
        message: str,
        stage: str,
        error_code: str = ErrorCode.INDEXING_ERROR,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_code, **kwargs)
        self.stage = stage


class RetrievalError(BigToolException):
    """
    Exception for a failed search in strict mode.

    Attributes:
        query: The query text that failed.
    """

    def __init__(
        self,
        message: str,
        query: str | None = None,
        error_code: str = ErrorCode.RETRIEVAL_ERROR,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_code, **kwargs)
        self.query = query


class MissingDependencyError(BigToolException):
    """
    Exception for an operation invoked without a required collaborator.

    Example: the retrieval meta-tool invoked on an agent that has neither a
    retriever nor a custom retrieval function.

    Attributes:
        dependency: Name of the missing dependency.
    """

    def __init__(
        self,
        message: str,
        dependency: str,
        error_code: str = ErrorCode.MISSING_DEPENDENCY,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_code, **kwargs)
        self.dependency = dependency


class ToolExecutionError(BigToolException):
    """
    Exception for tool execution failures.

    Attributes:
        tool_name: Name of the tool that failed.
        tool_call_id: ID of the tool call (for correlation).
    """

    def __init__(
        self,
        message: str,
        tool_name: str,
        tool_call_id: str | None = None,
        error_code: str = ErrorCode.TOOL_EXECUTION_ERROR,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_code, **kwargs)
        self.tool_name = tool_name
        self.tool_call_id = tool_call_id


class ConversationStoreError(BigToolException):
    """
    Exception for conversation persistence failures.

    Attributes:
        conversation_id: ID of the affected conversation (if known).
    """

    def __init__(
        self,
        message: str,
        conversation_id: str | None = None,
        error_code: str = ErrorCode.CONVERSATION_STORE_ERROR,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_code, **kwargs)
        self.conversation_id = conversation_id
