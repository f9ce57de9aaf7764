"""
Redis Client Factory

Builds the redis.asyncio client shared by the embedding cache, the Redis
vector index and the conversation store. from_url() does not connect, so a
bad URL is reported when the client is created and an unreachable server
only when it is first used.
"""

from typing import Optional

import redis.asyncio as redis

from bigtool.core.config import get_settings
from bigtool.core.exceptions import ConfigurationError


def create_redis_client(
    url: Optional[str] = None,
    decode_responses: bool = False,
) -> redis.Redis:
    """
    Create an async Redis client from a connection URL.

    Args:
        url: redis:// or rediss:// URL (default: settings.redis_url)
        decode_responses: Return str instead of bytes

    Returns:
        redis.asyncio.Redis client; the caller owns it and closes it
        with aclose()

    Raises:
        ConfigurationError: If the URL is malformed

    Example:
        >>> client = create_redis_client("redis://cache:6379/0")
        >>> cache = EmbeddingCache(client)
    """
    target = url if url is not None else get_settings().redis_url
    if not target.startswith(("redis://", "rediss://")):
        raise ConfigurationError(
            f"Redis URL must start with redis:// or rediss://: {target!r}",
            setting="redis_url",
        )

    try:
        return redis.from_url(target, decode_responses=decode_responses)
    except ValueError as e:
        raise ConfigurationError(f"Invalid Redis URL {target!r}: {e}", setting="redis_url") from e
