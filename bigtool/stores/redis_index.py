"""
Redis Vector Index Adapter

A VectorIndex whose entries and vectors live in Redis, so an index built
by one process is served by the next without re-adding anything.

Key layout (all under one namespace):
    {namespace}:records     hash   tool_id -> IndexRecord JSON
    {namespace}:order       zset   tool_id -> insertion sequence
    {namespace}:seq         string insertion counter
    {namespace}:dimensions  string vector length held by the index

Similarity is computed client-side with numpy over every held vector, the
same exact cosine ranking as the in-memory adapter. Plain Redis commands
only, so no server module is needed.

The held dimensionality survives restarts. Switching to an embedding model
of another size needs clear() first.

Pattern: Ports and Adapters (adapter for the VectorIndex port)
Pattern: Repository pattern with Redis storage
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Awaitable, Optional, TypeVar

import numpy as np
from pydantic import BaseModel, ValidationError
from redis.asyncio import Redis

from bigtool.clients.redis_client import create_redis_client
from bigtool.core.config import get_settings
from bigtool.core.exceptions import ConfigurationError, VectorIndexError
from bigtool.models.domain import IndexEntry, IndexStats, SearchHit
from bigtool.observability.logging import get_logger
from bigtool.stores.vector_index import VectorIndex, rank_by_cosine

logger = get_logger(__name__)

T = TypeVar("T")


class IndexRecord(BaseModel):
    """Stored form of one index entry."""

    entry: IndexEntry
    vector: list[float]
    indexed_at: datetime


class RedisVectorIndex(VectorIndex):
    """
    Durable vector index stored in Redis.

    Re-adding a tool_id replaces its record and keeps its original position.
    Every Redis round-trip is bounded by timeout_seconds; failures surface
    as VectorIndexError.

    Example:
        >>> index = RedisVectorIndex(create_redis_client())
        >>> retriever = ToolRetriever(embeddings=embeddings, index=index, cache=cache)
        >>> await retriever.index(registry)
    """

    name = "redis"

    def __init__(
        self,
        redis_client: Redis,
        namespace: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
    ) -> None:
        """
        Initialize RedisVectorIndex.

        Args:
            redis_client: Async Redis client
            namespace: Key namespace (default: settings.vector_index_namespace)
            timeout_seconds: Per round-trip timeout
                (default: settings.cache_operation_timeout_seconds)

        Raises:
            ConfigurationError: If the client is missing or a value is invalid
        """
        if redis_client is None:
            raise ConfigurationError("RedisVectorIndex requires a Redis client", setting="redis_client")

        settings = get_settings()
        self._redis = redis_client
        self._namespace = namespace if namespace is not None else settings.vector_index_namespace
        self._timeout = (
            timeout_seconds
            if timeout_seconds is not None
            else settings.cache_operation_timeout_seconds
        )
        if not self._namespace:
            raise ConfigurationError(
                "Vector index namespace must not be empty", setting="vector_index_namespace"
            )
        if self._timeout <= 0:
            raise ConfigurationError(
                "Vector index operation timeout must be positive",
                setting="cache_operation_timeout_seconds",
            )

        self._records_key = f"{self._namespace}:records"
        self._order_key = f"{self._namespace}:order"
        self._seq_key = f"{self._namespace}:seq"
        self._dimensions_key = f"{self._namespace}:dimensions"
        self._dimensions: Optional[int] = None
        self._loaded = False

    @classmethod
    def from_settings(cls) -> "RedisVectorIndex":
        """Build an index on a Redis client created from settings.redis_url."""
        return cls(create_redis_client())

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def dimensions(self) -> Optional[int]:
        return self._dimensions

    @property
    def supports_delete(self) -> bool:
        return True

    async def _call(self, operation: str, awaitable: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self._timeout)
        except asyncio.TimeoutError as e:
            raise VectorIndexError(
                f"Vector index {operation} timed out after {self._timeout}s", backend=self.name
            ) from e
        except VectorIndexError:
            raise
        except Exception as e:
            raise VectorIndexError(f"Vector index {operation} failed: {e}", backend=self.name) from e

    # =========================================================================
    # State
    # =========================================================================

    async def load(self) -> None:
        raw = await self._call("load", self._redis.get(self._dimensions_key))
        self._dimensions = int(raw) if raw is not None else None
        self._loaded = True

    async def _ensure_loaded(self) -> None:
        if not self._loaded:
            await self.load()

    def _as_array(self, vector: list[float], dimensions: Optional[int]) -> np.ndarray:
        array = np.asarray(vector, dtype=np.float64)
        if array.ndim != 1 or array.size == 0:
            raise VectorIndexError("Vectors must be non-empty and one-dimensional", backend=self.name)
        if dimensions is not None and array.size != dimensions:
            raise VectorIndexError(
                f"Vector has {array.size} dimensions, index holds {dimensions}",
                backend=self.name,
            )
        return array

    # =========================================================================
    # Writes
    # =========================================================================

    async def add(self, vectors: list[list[float]], entries: list[IndexEntry]) -> None:
        if len(vectors) != len(entries):
            raise VectorIndexError(
                f"Got {len(vectors)} vectors for {len(entries)} entries",
                backend=self.name,
            )
        if not entries:
            return

        await self._ensure_loaded()
        dimensions = self._dimensions or len(vectors[0])
        arrays = [self._as_array(vector, dimensions) for vector in vectors]

        now = datetime.now(timezone.utc)
        records: dict[str, str] = {}
        for array, entry in zip(arrays, entries):
            records[entry.tool_id] = IndexRecord(
                entry=entry, vector=array.tolist(), indexed_at=now
            ).model_dump_json()

        last = int(await self._call("add", self._redis.incrby(self._seq_key, len(records))))
        first = last - len(records) + 1
        positions = {tool_id: first + i for i, tool_id in enumerate(records)}

        async def write() -> list[Any]:
            async with self._redis.pipeline(transaction=True) as pipe:
                pipe.set(self._dimensions_key, dimensions)
                pipe.hset(self._records_key, mapping=records)
                # NX keeps the position of ids that are already indexed
                pipe.zadd(self._order_key, positions, nx=True)
                return await pipe.execute()

        await self._call("add", write())
        self._dimensions = dimensions

    async def delete(self, tool_ids: list[str]) -> int:
        if not tool_ids:
            return 0

        async def remove() -> list[Any]:
            async with self._redis.pipeline(transaction=True) as pipe:
                pipe.hdel(self._records_key, *tool_ids)
                pipe.zrem(self._order_key, *tool_ids)
                pipe.hlen(self._records_key)
                return await pipe.execute()

        removed, _, remaining = await self._call("delete", remove())
        if int(remaining) == 0:
            await self._call("delete", self._redis.delete(self._dimensions_key))
            self._dimensions = None
        return int(removed)

    async def clear(self) -> int:
        """
        Drop every entry, the insertion order and the held dimensionality.

        Returns:
            Number of entries removed
        """

        async def drop() -> list[Any]:
            async with self._redis.pipeline(transaction=True) as pipe:
                pipe.hlen(self._records_key)
                pipe.delete(
                    self._records_key, self._order_key, self._seq_key, self._dimensions_key
                )
                return await pipe.execute()

        removed, _ = await self._call("clear", drop())
        self._dimensions = None
        self._loaded = True
        logger.info("vector_index_cleared", namespace=self._namespace, removed=int(removed))
        return int(removed)

    # =========================================================================
    # Reads
    # =========================================================================

    async def _records(self) -> list[IndexRecord]:
        """Every valid record in insertion order."""
        tool_ids = await self._call("read", self._redis.zrange(self._order_key, 0, -1))
        if not tool_ids:
            return []
        raws = await self._call("read", self._redis.hmget(self._records_key, tool_ids))

        records: list[IndexRecord] = []
        for tool_id, raw in zip(tool_ids, raws):
            if raw is None:
                continue
            try:
                record = IndexRecord.model_validate_json(raw)
            except (ValidationError, ValueError) as e:
                logger.warning(
                    "vector_index_record_invalid",
                    namespace=self._namespace,
                    tool_id=tool_id.decode("utf-8") if isinstance(tool_id, bytes) else tool_id,
                    error=str(e),
                )
                continue
            if self._dimensions is not None and len(record.vector) != self._dimensions:
                continue
            records.append(record)
        return records

    async def query(
        self,
        vector: list[float],
        k: int,
        filter: Optional[dict[str, str]] = None,
    ) -> list[SearchHit]:
        if k <= 0:
            return []

        await self._ensure_loaded()
        records = [record for record in await self._records() if record.entry.matches(filter)]
        if not records:
            return []

        query = self._as_array(vector, self._dimensions)
        arrays = [np.asarray(record.vector, dtype=np.float64) for record in records]
        return [
            SearchHit(entry=records[i].entry, score=score)
            for i, score in rank_by_cosine(query, arrays, k)
        ]

    async def list_entries(
        self,
        limit: int,
        filter: Optional[dict[str, str]] = None,
    ) -> list[IndexEntry]:
        if limit <= 0:
            return []
        await self._ensure_loaded()
        matched = [record.entry for record in await self._records() if record.entry.matches(filter)]
        return matched[:limit]

    async def count(self) -> int:
        return int(await self._call("count", self._redis.hlen(self._records_key)))

    async def stats(self) -> IndexStats:
        """Entry count and the oldest and newest indexing times."""
        records = await self._records()
        if not records:
            return IndexStats()
        times = [record.indexed_at for record in records]
        return IndexStats(
            total=len(records),
            oldest_indexed_at=min(times),
            newest_indexed_at=max(times),
        )
