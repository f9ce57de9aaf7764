"""
Tool Retriever Service

This module orchestrates the indexing pass over a tool registry and the
semantic search that backs the retrieval meta-tool.

Indexing pass:
1. Fingerprint every tool's canonical document.
2. Fetch cached entries in one batch.
3. Classify each tool: a hit needs an unexpired entry whose fingerprint
   and dimensionality match; everything else is a miss.
4. Embed the misses only, in as few provider calls as the provider allows.
5. Write the new entries back in one batch.
6. Feed hit and miss vectors into the vector index.

An embedding failure aborts the pass before anything is written.

Search degrades to an empty result on any failure unless strict mode is on.

Pattern: Service layer orchestrating injected ports (cache, index, provider)
"""

import time
from typing import TYPE_CHECKING, Optional

from bigtool.clients.embeddings import EmbeddingProvider
from bigtool.core.config import EmptyQueryPolicy, get_settings
from bigtool.core.exceptions import (
    CacheStoreError,
    ConfigurationError,
    IndexingError,
    RetrievalError,
)
from bigtool.indexing.document import canonicalize, fingerprint
from bigtool.models.domain import (
    CacheEntry,
    IndexEntry,
    IndexReport,
    ToolDescriptor,
)
from bigtool.observability.logging import get_logger
from bigtool.observability.metrics import (
    record_cache_operation,
    record_embeddings_computed,
    record_index_duration,
    record_retrieval,
)
from bigtool.services.cache import EmbeddingCache
from bigtool.stores.vector_index import VectorIndex

if TYPE_CHECKING:
    from bigtool.tools.registry import ToolRegistry

logger = get_logger(__name__)


# =============================================================================
# ToolRetriever Service
# =============================================================================


class ToolRetriever:
    """
    Indexes a tool registry and answers semantic tool searches.

    Attributes:
        embeddings: Provider used for tool documents and queries
        vector_index: Similarity backend holding one entry per tool
        cache: Optional embedding cache (None embeds every tool every pass)

    Example:
        >>> retriever = ToolRetriever(
        ...     embeddings=FakeEmbeddings(),
        ...     index=InMemoryVectorIndex(),
        ...     cache=EmbeddingCache(redis_client),
        ... )
        >>> report = await retriever.index(registry)
        >>> await retriever.search("calculate square root", limit=2)
        ['sqrt', 'power']
    """

    def __init__(
        self,
        embeddings: EmbeddingProvider,
        index: VectorIndex,
        cache: Optional[EmbeddingCache] = None,
        limit: Optional[int] = None,
        strict: Optional[bool] = None,
        empty_query_policy: Optional[EmptyQueryPolicy] = None,
        cache_query_embeddings: Optional[bool] = None,
    ) -> None:
        """
        Initialize ToolRetriever.

        Args:
            embeddings: Embedding provider
            index: Vector index
            cache: Embedding cache
            limit: Default search limit (default: settings.retrieval_limit)
            strict: Raise RetrievalError instead of returning [] on failure
                (default: settings.strict_search)
            empty_query_policy: Behaviour for empty queries
                (default: settings.empty_query_policy)
            cache_query_embeddings: Cache query vectors
                (default: settings.cache_query_embeddings)

        Raises:
            ConfigurationError: If the provider or index is missing
        """
        if embeddings is None:
            raise ConfigurationError("ToolRetriever requires an embedding provider", setting="embeddings")
        if index is None:
            raise ConfigurationError("ToolRetriever requires a vector index", setting="index")

        settings = get_settings()
        self.embeddings = embeddings
        self.vector_index = index
        self.cache = cache
        self._limit = limit if limit is not None else settings.retrieval_limit
        self._strict = strict if strict is not None else settings.strict_search
        self._empty_query_policy = EmptyQueryPolicy(
            empty_query_policy
            if empty_query_policy is not None
            else settings.empty_query_policy
        )
        self._cache_queries = (
            cache_query_embeddings
            if cache_query_embeddings is not None
            else settings.cache_query_embeddings
        )

        if self._limit < 1:
            raise ConfigurationError("Retrieval limit must be at least 1", setting="retrieval_limit")

    @property
    def limit(self) -> int:
        return self._limit

    # =========================================================================
    # Indexing
    # =========================================================================

    async def index(self, registry: "ToolRegistry") -> IndexReport:
        """
        Run an indexing pass over the registry.

        Args:
            registry: Tools to index

        Returns:
            IndexReport with hit/miss counts and elapsed time

        Raises:
            IndexingError: If any stage fails (stage names the failing step)
        """
        started = time.perf_counter()
        descriptors = registry.descriptors()
        if not descriptors:
            return IndexReport.empty()

        try:
            await self.vector_index.load()
        except Exception as e:
            raise IndexingError(f"Failed to load vector index state: {e}", stage="index") from e

        documents = {d.id: canonicalize(d) for d in descriptors}
        fingerprints = {tool_id: fingerprint(text) for tool_id, text in documents.items()}

        cached = await self._read_cache([d.id for d in descriptors])
        expected_dims = self.vector_index.dimensions or self.embeddings.dimensions

        vectors: dict[str, list[float]] = {}
        misses: list[ToolDescriptor] = []
        for descriptor in descriptors:
            entry = cached.get(descriptor.id)
            if (
                entry is not None
                and entry.fingerprint == fingerprints[descriptor.id]
                and (expected_dims is None or entry.dimensions == expected_dims)
            ):
                vectors[descriptor.id] = entry.embedding
            else:
                misses.append(descriptor)

        computed = await self._embed(misses, documents)

        if expected_dims is None:
            # dimensionality only becomes known once something is embedded
            sample = next(iter(computed.values()), None) or next(iter(vectors.values()))
            expected_dims = len(sample)
            stale = [d for d in descriptors if d.id in vectors and len(vectors[d.id]) != expected_dims]
            if stale:
                for descriptor in stale:
                    del vectors[descriptor.id]
                computed.update(await self._embed(stale, documents))
                misses.extend(stale)

        for tool_id, vector in computed.items():
            if len(vector) != expected_dims:
                raise IndexingError(
                    f"Embedding for {tool_id} has {len(vector)} dimensions, expected {expected_dims}",
                    stage="embed",
                )
        vectors.update(computed)

        if self.cache is not None and misses:
            await self._write_cache(misses, fingerprints, computed)

        await self._add_to_index(descriptors, vectors)

        elapsed = time.perf_counter() - started
        hit_count = len(descriptors) - len(misses)
        report = IndexReport(
            total=len(descriptors),
            hit_count=hit_count,
            miss_count=len(misses),
            elapsed_seconds=elapsed,
        )

        record_cache_operation("hit", report.hit_count)
        record_cache_operation("miss", report.miss_count)
        record_index_duration(elapsed)
        logger.info(
            "index_pass_completed",
            total=report.total,
            hit_count=report.hit_count,
            miss_count=report.miss_count,
            hit_rate=round(report.hit_rate, 4),
            elapsed_ms=round(elapsed * 1000, 2),
        )
        return report

    async def _read_cache(self, tool_ids: list[str]) -> dict[str, Optional[CacheEntry]]:
        if self.cache is None:
            return {}
        try:
            return await self.cache.batch_get(tool_ids)
        except CacheStoreError as e:
            raise IndexingError(f"Failed to read embedding cache: {e}", stage="cache_read") from e

    async def _embed(
        self, descriptors: list[ToolDescriptor], documents: dict[str, str]
    ) -> dict[str, list[float]]:
        if not descriptors:
            return {}
        texts = [documents[d.id] for d in descriptors]
        try:
            vectors = await self.embeddings.embed_many(texts)
        except Exception as e:
            logger.error("index_embedding_failed", count=len(texts), error=str(e))
            raise IndexingError(f"Failed to embed {len(texts)} tools: {e}", stage="embed") from e

        if len(vectors) != len(texts):
            raise IndexingError(
                f"Embedding provider returned {len(vectors)} vectors for {len(texts)} tools",
                stage="embed",
            )
        record_embeddings_computed(len(texts))
        return {d.id: list(vector) for d, vector in zip(descriptors, vectors)}

    async def _write_cache(
        self,
        misses: list[ToolDescriptor],
        fingerprints: dict[str, str],
        computed: dict[str, list[float]],
    ) -> None:
        entries = [
            CacheEntry(
                tool_id=d.id,
                display_name=d.display_name,
                description=d.description,
                fingerprint=fingerprints[d.id],
                embedding=computed[d.id],
                ttl_seconds=self.cache.ttl_seconds,
            )
            for d in misses
        ]
        try:
            result = await self.cache.batch_put(entries)
        except CacheStoreError as e:
            raise IndexingError(f"Failed to write embedding cache: {e}", stage="cache_write") from e

        if result.failed:
            # failed entries are recomputed on the next pass
            logger.warning("index_cache_write_incomplete", failed=sorted(result.failed))

    async def _add_to_index(
        self, descriptors: list[ToolDescriptor], vectors: dict[str, list[float]]
    ) -> None:
        entries = [
            IndexEntry(
                tool_id=d.id,
                display_name=d.display_name,
                description=d.description,
                metadata=d.metadata,
            )
            for d in descriptors
        ]
        try:
            await self.vector_index.add([vectors[d.id] for d in descriptors], entries)
        except Exception as e:
            raise IndexingError(f"Failed to add vectors to index: {e}", stage="index") from e

    # =========================================================================
    # Search
    # =========================================================================

    async def search(
        self,
        query: str,
        limit: Optional[int] = None,
        filter: Optional[dict[str, str]] = None,
        strict: Optional[bool] = None,
    ) -> list[str]:
        """
        Find the ids of the tools most relevant to a query.

        An empty or whitespace-only query never reaches the similarity
        backend; it follows the configured EmptyQueryPolicy.

        Args:
            query: Natural-language query
            limit: Maximum number of ids (default: retriever limit)
            filter: Metadata key/values every result must carry
            strict: Override the retriever's strict mode for this call

        Returns:
            Unique tool ids, best match first, at most limit long

        Raises:
            RetrievalError: On failure when strict mode is on
        """
        limit = self._limit if limit is None else limit
        strict = self._strict if strict is None else strict
        if limit <= 0:
            return []

        try:
            if not query or not query.strip():
                record_retrieval("empty_query")
                if self._empty_query_policy == EmptyQueryPolicy.EMPTY:
                    return []
                entries = await self.vector_index.list_entries(limit, filter)
                return _unique([entry.tool_id for entry in entries], limit)

            vector = await self._query_vector(query)
            hits = await self.vector_index.query(vector, k=limit, filter=filter)
        except Exception as e:
            record_retrieval("error")
            if strict:
                raise RetrievalError(f"Tool search failed: {e}", query=query) from e
            logger.warning("search_failed", query=query, error=str(e), error_type=type(e).__name__)
            return []

        record_retrieval("ok")
        return _unique([hit.entry.tool_id for hit in hits], limit)

    async def _query_vector(self, query: str) -> list[float]:
        use_cache = self.cache is not None and self._cache_queries
        key = fingerprint(query)
        expected_dims = self.vector_index.dimensions

        if use_cache:
            cached = await self.cache.get_query_vector(key)
            if cached is not None and (expected_dims is None or len(cached) == expected_dims):
                return cached

        vector = await self.embeddings.embed_one(query)
        if use_cache:
            await self.cache.put_query_vector(key, vector)
        return vector


def _unique(tool_ids: list[str], limit: int) -> list[str]:
    seen: set[str] = set()
    result: list[str] = []
    for tool_id in tool_ids:
        if tool_id not in seen:
            seen.add(tool_id)
            result.append(tool_id)
    return result[:limit]
