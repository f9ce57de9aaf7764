"""
Core configuration module for bigtool.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the BIGTOOL_ prefix.

Constructors across the package accept explicit values and only fall back to
get_settings() when a value is omitted, so tests and embedding applications
can wire components without touching the environment.

Pattern: Pydantic BaseSettings with field validators
Pattern: Cached settings accessor (one Settings instance per process)
"""

from enum import Enum
from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class EmptyQueryPolicy(str, Enum):
    """
    What search() returns when the query text is empty.

    SHOW_ALL returns up to `limit` known tools in insertion order with a
    neutral score. EMPTY returns nothing. Neither calls the similarity backend.
    """

    SHOW_ALL = "show_all"
    EMPTY = "empty"


class Settings(BaseSettings):
    """
    Settings loaded from environment variables.

    All fields use the BIGTOOL_ prefix for environment variables.
    Example: BIGTOOL_REDIS_URL=redis://cache:6379
    """

    # =========================================================================
    # Runtime
    # =========================================================================
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Deployment environment",
    )
    log_level: str = Field(
        default="INFO",
        description="Log level for structured logging",
    )

    # =========================================================================
    # Embedding Cache (Redis)
    # =========================================================================
    redis_url: str = Field(
        default="redis://localhost:6379",
        description="Redis connection URL for the embedding cache",
    )
    cache_namespace: str = Field(
        default="bigtool:embeddings",
        min_length=1,
        description="Key namespace for cached embeddings",
    )
    cache_ttl_seconds: int = Field(
        default=7 * 24 * 60 * 60,
        ge=1,
        description="Time-to-live for cached embeddings in seconds",
    )
    cache_operation_timeout_seconds: float = Field(
        default=5.0,
        gt=0.0,
        le=300.0,
        description="Timeout for a single cache round-trip",
    )
    cache_query_embeddings: bool = Field(
        default=True,
        description="Cache query embeddings computed by search()",
    )

    # =========================================================================
    # Vector Index (Redis backend)
    # =========================================================================
    vector_index_namespace: str = Field(
        default="bigtool:index",
        min_length=1,
        description="Key namespace for the durable Redis vector index",
    )

    # =========================================================================
    # Embedding Provider (HTTP)
    # =========================================================================
    embeddings_service_url: str = Field(
        default="http://localhost:8001",
        description="URL of the HTTP embeddings service",
    )
    embeddings_timeout_seconds: float = Field(
        default=30.0,
        ge=1.0,
        le=600.0,
        description="Timeout in seconds for embeddings service calls",
    )
    embeddings_batch_size: int = Field(
        default=128,
        ge=1,
        le=10_000,
        description="Maximum number of texts per embeddings request",
    )
    embeddings_retries: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Connection-level retries for the embeddings service",
    )

    # =========================================================================
    # Retrieval
    # =========================================================================
    retrieval_limit: int = Field(
        default=2,
        ge=1,
        description="Default number of tools returned by a retrieval",
    )
    strict_search: bool = Field(
        default=False,
        description="Propagate search failures instead of returning no results",
    )
    empty_query_policy: EmptyQueryPolicy = Field(
        default=EmptyQueryPolicy.SHOW_ALL,
        description="Behaviour of search() for an empty query",
    )

    # =========================================================================
    # Agent Turn Loop
    # =========================================================================
    max_turn_iterations: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Maximum model calls within a single turn",
    )

    # =========================================================================
    # Conversation Persistence
    # =========================================================================
    conversation_ttl_seconds: int = Field(
        default=3600,
        ge=60,
        description="Conversation state time-to-live in seconds",
    )
    conversation_key_prefix: str = Field(
        default="bigtool:conversations:",
        description="Key prefix for persisted conversation state",
    )

    model_config = {
        "env_prefix": "BIGTOOL_",
        "case_sensitive": False,
        "extra": "ignore",
    }

    # =========================================================================
    # Field Validators
    # =========================================================================
    @field_validator("redis_url")
    @classmethod
    def validate_redis_url(cls, v: str) -> str:
        """Validate Redis URL format."""
        if not v.startswith(("redis://", "rediss://")):
            raise ValueError("Redis URL must start with redis:// or rediss://")
        return v

    @field_validator("embeddings_service_url")
    @classmethod
    def validate_embeddings_service_url(cls, v: str) -> str:
        """Validate embeddings service URL format."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("Embeddings service URL must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize and validate the log level."""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


@lru_cache
def get_settings() -> Settings:
    """
    Get the settings singleton.

    Uses functools.lru_cache to ensure only one Settings instance is created.
    Call get_settings.cache_clear() in tests after changing the environment.

    Returns:
        Settings: The settings instance.
    """
    return Settings()
