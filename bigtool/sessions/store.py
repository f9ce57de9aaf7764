"""
Conversation Store

This module provides Redis-based persistence of per-conversation agent
state: the message history and the ordered selection of unlocked tool ids.

Each conversation is one JSON value under {key_prefix}{conversation_id},
refreshed with the configured TTL on every save.

Pattern: Repository pattern
Pattern: Dependency injection for Redis client
"""

from datetime import datetime, timezone
from typing import Optional

from redis.asyncio import Redis

from bigtool.core.config import get_settings
from bigtool.core.exceptions import ConfigurationError, ConversationStoreError
from bigtool.models.domain import ConversationState


class ConversationStore:
    """
    Redis-based conversation state storage.

    Attributes:
        _redis: The Redis client instance.
        _key_prefix: Prefix for Redis keys.
        _ttl_seconds: TTL applied on every save.

    Example:
        >>> import redis.asyncio as redis
        >>> store = ConversationStore(redis.from_url("redis://localhost:6379"))
        >>> await store.save("conv-1", ConversationState())
        >>> state = await store.get("conv-1")
    """

    def __init__(
        self,
        redis_client: Redis,
        key_prefix: Optional[str] = None,
        ttl_seconds: Optional[int] = None,
    ) -> None:
        """
        Initialize ConversationStore with Redis client.

        Args:
            redis_client: Async Redis client instance.
            key_prefix: Prefix for all conversation keys
                (default: settings.conversation_key_prefix).
            ttl_seconds: TTL for saved state
                (default: settings.conversation_ttl_seconds).
        """
        if redis_client is None:
            raise ConfigurationError(
                "ConversationStore requires a Redis client", setting="redis_client"
            )

        settings = get_settings()
        self._redis: Redis = redis_client
        self._key_prefix: str = (
            key_prefix if key_prefix is not None else settings.conversation_key_prefix
        )
        self._ttl_seconds: int = (
            ttl_seconds if ttl_seconds is not None else settings.conversation_ttl_seconds
        )

    def _make_key(self, conversation_id: str) -> str:
        return f"{self._key_prefix}{conversation_id}"

    async def save(self, conversation_id: str, state: ConversationState) -> None:
        """
        Save conversation state to Redis with the configured TTL.

        Raises:
            ConversationStoreError: If the save operation fails.
        """
        try:
            stamped = state.model_copy(update={"updated_at": datetime.now(timezone.utc)})
            await self._redis.setex(
                self._make_key(conversation_id),
                self._ttl_seconds,
                stamped.model_dump_json(),
            )
        except Exception as e:
            raise ConversationStoreError(
                f"Failed to save conversation {conversation_id}: {e}",
                conversation_id=conversation_id,
            ) from e

    async def get(self, conversation_id: str) -> Optional[ConversationState]:
        """
        Load conversation state.

        Returns:
            The saved state, or None if absent or expired.

        Raises:
            ConversationStoreError: If the read fails or the value is corrupt.
        """
        try:
            json_data = await self._redis.get(self._make_key(conversation_id))
            if json_data is None:
                return None
            return ConversationState.model_validate_json(json_data)
        except Exception as e:
            raise ConversationStoreError(
                f"Failed to get conversation {conversation_id}: {e}",
                conversation_id=conversation_id,
            ) from e

    async def delete(self, conversation_id: str) -> bool:
        """
        Delete conversation state.

        Returns:
            True if the conversation was deleted, False if it didn't exist.
        """
        try:
            deleted_count = await self._redis.delete(self._make_key(conversation_id))
            return deleted_count > 0
        except Exception as e:
            raise ConversationStoreError(
                f"Failed to delete conversation {conversation_id}: {e}",
                conversation_id=conversation_id,
            ) from e
