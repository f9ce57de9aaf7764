"""
Embedding Cache Service

This module provides the content-addressed embedding cache: per-tool
embeddings stored in Redis, validated by the fingerprint of the tool's
canonical document and retained for a fixed TTL.

Key layout (all under one namespace):
    {namespace}:tool:{tool_id}       -> CacheEntry JSON
    {namespace}:query:{fingerprint}  -> JSON list of floats

Reads are a single MGET round-trip; writes are one non-transactional
pipeline of SET ... EX. A write is atomic per entry, not across entries,
and values are a pure function of content, so concurrent writers need no
locking (last writer wins).

Pattern: Repository pattern with Redis storage
Pattern: Dependency injection for Redis client
"""

import asyncio
import json
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Awaitable, Optional, TypeVar

from pydantic import ValidationError
from redis.asyncio import Redis

from bigtool.clients.redis_client import create_redis_client
from bigtool.core.config import get_settings
from bigtool.core.exceptions import CacheStoreError, ConfigurationError
from bigtool.models.domain import BatchPutResult, CacheEntry, CacheStats
from bigtool.observability.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

SCAN_BATCH_SIZE = 100

GLOB_SPECIAL_CHARS = "\\*?[]"


def escape_glob(text: str) -> str:
    """Escape Redis glob metacharacters so text matches only itself."""
    return "".join(f"\\{char}" if char in GLOB_SPECIAL_CHARS else char for char in text)


# =============================================================================
# EmbeddingCache Service
# =============================================================================


class EmbeddingCache:
    """
    Redis-backed store of tool and query embeddings.

    Every Redis round-trip is bounded by timeout_seconds; a timeout or any
    Redis error surfaces as CacheStoreError. Unparseable or wrongly shaped
    values are reported as absent, so the caller recomputes and overwrites
    them.

    Attributes:
        namespace: Key prefix shared by every key this cache writes
        ttl_seconds: Retention applied to new entries

    Example:
        >>> import redis.asyncio as redis
        >>> cache = EmbeddingCache(redis.from_url("redis://localhost:6379"))
        >>> entries = await cache.batch_get(["sqrt", "add"])
        >>> entries["sqrt"] is None
        True
    """

    def __init__(
        self,
        redis_client: Redis,
        namespace: Optional[str] = None,
        ttl_seconds: Optional[int] = None,
        timeout_seconds: Optional[float] = None,
    ) -> None:
        """
        Initialize EmbeddingCache.

        Args:
            redis_client: Async Redis client
            namespace: Key namespace (default: settings.cache_namespace)
            ttl_seconds: Entry TTL (default: settings.cache_ttl_seconds)
            timeout_seconds: Per round-trip timeout
                (default: settings.cache_operation_timeout_seconds)

        Raises:
            ConfigurationError: If the client is missing or a value is invalid
        """
        if redis_client is None:
            raise ConfigurationError("EmbeddingCache requires a Redis client", setting="redis_client")

        settings = get_settings()
        self._redis = redis_client
        self._namespace = namespace if namespace is not None else settings.cache_namespace
        self._ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.cache_ttl_seconds
        self._timeout = (
            timeout_seconds
            if timeout_seconds is not None
            else settings.cache_operation_timeout_seconds
        )

        if not self._namespace:
            raise ConfigurationError("Cache namespace must not be empty", setting="cache_namespace")
        if self._ttl_seconds < 1:
            raise ConfigurationError("Cache TTL must be at least 1 second", setting="cache_ttl_seconds")
        if self._timeout <= 0:
            raise ConfigurationError(
                "Cache operation timeout must be positive",
                setting="cache_operation_timeout_seconds",
            )

    @classmethod
    def from_settings(cls) -> "EmbeddingCache":
        """Build a cache on a Redis client created from settings.redis_url."""
        return cls(create_redis_client())

    @property
    def redis(self) -> Redis:
        return self._redis

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def ttl_seconds(self) -> int:
        return self._ttl_seconds

    # =========================================================================
    # Key Helpers
    # =========================================================================

    def tool_key(self, tool_id: str) -> str:
        return f"{self._namespace}:tool:{tool_id}"

    def query_key(self, fingerprint: str) -> str:
        return f"{self._namespace}:query:{fingerprint}"

    async def _call(self, operation: str, awaitable: Awaitable[T]) -> T:
        """Await a Redis call under the operation timeout, mapping failures."""
        try:
            return await asyncio.wait_for(awaitable, timeout=self._timeout)
        except asyncio.TimeoutError as e:
            raise CacheStoreError(
                f"Cache {operation} timed out after {self._timeout}s",
                namespace=self._namespace,
            ) from e
        except CacheStoreError:
            raise
        except Exception as e:
            raise CacheStoreError(
                f"Cache {operation} failed: {e}", namespace=self._namespace
            ) from e

    # =========================================================================
    # Tool Embeddings
    # =========================================================================

    async def batch_get(self, tool_ids: list[str]) -> dict[str, Optional[CacheEntry]]:
        """
        Fetch cached entries for many tools in one MGET round-trip.

        Entries that are missing, unparseable, belong to another tool id or
        are past their TTL map to None.

        Args:
            tool_ids: Registry ids to look up

        Returns:
            Mapping of every requested id to its entry or None

        Raises:
            CacheStoreError: If the round-trip fails or times out
        """
        if not tool_ids:
            return {}

        keys = [self.tool_key(tool_id) for tool_id in tool_ids]
        values = await self._call("batch_get", self._redis.mget(keys))

        now = datetime.now(timezone.utc)
        entries: dict[str, Optional[CacheEntry]] = {}
        for tool_id, raw in zip(tool_ids, values):
            entry = self._parse_entry(tool_id, raw)
            if entry is not None and entry.is_expired(now):
                entry = None
            entries[tool_id] = entry
        return entries

    async def batch_put(self, entries: list[CacheEntry]) -> BatchPutResult:
        """
        Write many entries in one pipelined round-trip.

        Each entry is written with SET key value EX ttl. Failures of
        individual commands are collected rather than raised.

        Args:
            entries: Entries to write

        Returns:
            BatchPutResult listing written and failed tool ids

        Raises:
            CacheStoreError: If the round-trip as a whole fails or times out
        """
        if not entries:
            return BatchPutResult()

        async def write() -> list[Any]:
            async with self._redis.pipeline(transaction=False) as pipe:
                for entry in entries:
                    pipe.set(
                        self.tool_key(entry.tool_id),
                        entry.model_dump_json(),
                        ex=entry.ttl_seconds,
                    )
                return await pipe.execute(raise_on_error=False)

        replies = await self._call("batch_put", write())

        result = BatchPutResult()
        for entry, reply in zip(entries, replies):
            if isinstance(reply, Exception):
                result.failed[entry.tool_id] = str(reply)
            elif not reply:
                result.failed[entry.tool_id] = "SET was not acknowledged"
            else:
                result.written.append(entry.tool_id)

        if result.failed:
            logger.warning(
                "cache_batch_put_partial_failure",
                namespace=self._namespace,
                written=len(result.written),
                failed=len(result.failed),
            )
        return result

    async def delete(self, tool_ids: list[str]) -> int:
        """
        Delete the cached entries of the given tools.

        Returns:
            Number of keys removed
        """
        if not tool_ids:
            return 0
        keys = [self.tool_key(tool_id) for tool_id in tool_ids]
        return int(await self._call("delete", self._redis.delete(*keys)))

    async def clear(self) -> int:
        """
        Remove every key under the namespace (tool and query embeddings).

        Returns:
            Number of keys deleted
        """
        deleted = 0
        async for batch in self._scan(f"{escape_glob(self._namespace)}:*"):
            deleted += int(await self._call("clear", self._redis.delete(*batch)))

        logger.info("cache_cleared", namespace=self._namespace, deleted=deleted)
        return deleted

    async def stats(self) -> CacheStats:
        """
        Count the valid tool entries and report their age range.

        Returns:
            CacheStats; ages are None when the cache holds no entries
        """
        now = datetime.now(timezone.utc)
        prefix = f"{self._namespace}:tool:"
        ages: list[float] = []

        async for batch in self._scan(f"{escape_glob(prefix)}*"):
            values = await self._call("stats", self._redis.mget(batch))
            for key, raw in zip(batch, values):
                key_str = key.decode("utf-8") if isinstance(key, bytes) else key
                entry = self._parse_entry(key_str[len(prefix):], raw)
                if entry is None or entry.is_expired(now):
                    continue
                ages.append((now - entry.cached_at).total_seconds())

        if not ages:
            return CacheStats()
        return CacheStats(
            count=len(ages),
            oldest_age_seconds=max(ages),
            newest_age_seconds=min(ages),
        )

    async def _scan(self, pattern: str) -> AsyncIterator[list[Any]]:
        cursor = 0
        while True:
            cursor, keys = await self._call(
                "scan",
                self._redis.scan(cursor, match=pattern, count=SCAN_BATCH_SIZE),
            )
            if keys:
                yield keys
            if cursor == 0:
                break

    def _parse_entry(self, tool_id: str, raw: Any) -> Optional[CacheEntry]:
        if raw is None:
            return None
        try:
            entry = CacheEntry.model_validate_json(raw)
        except (ValidationError, ValueError) as e:
            logger.warning(
                "cache_entry_invalid", namespace=self._namespace, tool_id=tool_id, error=str(e)
            )
            return None
        if entry.tool_id != tool_id or not entry.embedding:
            logger.warning("cache_entry_invalid", namespace=self._namespace, tool_id=tool_id)
            return None
        if entry.cached_at.tzinfo is None:
            entry = entry.model_copy(update={"cached_at": entry.cached_at.replace(tzinfo=timezone.utc)})
        return entry

    # =========================================================================
    # Query Embeddings
    # =========================================================================

    async def get_query_vector(self, fingerprint: str) -> Optional[list[float]]:
        """
        Fetch a cached query embedding.

        Args:
            fingerprint: Fingerprint of the query text

        Returns:
            The vector, or None if absent or malformed
        """
        raw = await self._call("get_query_vector", self._redis.get(self.query_key(fingerprint)))
        if raw is None:
            return None
        try:
            vector = json.loads(raw)
        except ValueError:
            return None
        if not isinstance(vector, list) or not vector:
            return None
        if not all(isinstance(x, (int, float)) and not isinstance(x, bool) for x in vector):
            return None
        return [float(x) for x in vector]

    async def put_query_vector(self, fingerprint: str, vector: list[float]) -> None:
        """Cache a query embedding under its fingerprint with the cache TTL."""
        await self._call(
            "put_query_vector",
            self._redis.set(self.query_key(fingerprint), json.dumps(vector), ex=self._ttl_seconds),
        )
