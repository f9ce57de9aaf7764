"""
Tests for ToolRetriever.

Indexing runs against fakeredis and FakeEmbeddings so cache hits and
provider calls can be counted exactly.
"""

from typing import Optional
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from bigtool.clients.fake import FakeEmbeddings
from bigtool.core.config import EmptyQueryPolicy
from bigtool.core.exceptions import (
    ConfigurationError,
    EmbeddingProviderError,
    IndexingError,
    RetrievalError,
)
from bigtool.indexing.document import fingerprint
from bigtool.services.cache import EmbeddingCache
from bigtool.services.retriever import ToolRetriever
from bigtool.stores.vector_index import InMemoryVectorIndex
from bigtool.tools.registry import ToolRegistry


def build_retriever(embeddings, cache, index=None, **kwargs):
    return ToolRetriever(
        embeddings=embeddings,
        index=index or InMemoryVectorIndex(),
        cache=cache,
        limit=kwargs.pop("limit", 2),
        strict=kwargs.pop("strict", False),
        empty_query_policy=kwargs.pop("empty_query_policy", EmptyQueryPolicy.SHOW_ALL),
        cache_query_embeddings=kwargs.pop("cache_query_embeddings", True),
    )


def broken_cache():
    client = AsyncMock()
    client.mget.side_effect = RedisConnectionError("Connection refused")
    client.get.side_effect = RedisConnectionError("Connection refused")
    client.set.side_effect = RedisConnectionError("Connection refused")
    return EmbeddingCache(client, namespace="broken", ttl_seconds=60, timeout_seconds=1.0)


class UnsizedEmbeddings(FakeEmbeddings):
    """Provider that only learns its dimensionality from responses."""

    @property
    def dimensions(self) -> Optional[int]:
        return None


# =============================================================================
# Construction
# =============================================================================


class TestToolRetrieverInit:
    def test_requires_embeddings(self, vector_index):
        with pytest.raises(ConfigurationError) as exc_info:
            ToolRetriever(embeddings=None, index=vector_index)
        assert exc_info.value.setting == "embeddings"

    def test_requires_index(self, fake_embeddings):
        with pytest.raises(ConfigurationError):
            ToolRetriever(embeddings=fake_embeddings, index=None)

    def test_rejects_zero_limit(self, fake_embeddings, vector_index):
        with pytest.raises(ConfigurationError):
            ToolRetriever(embeddings=fake_embeddings, index=vector_index, limit=0)

    def test_limit_defaults_to_settings(self, fake_embeddings, vector_index):
        assert ToolRetriever(embeddings=fake_embeddings, index=vector_index).limit == 2


# =============================================================================
# Indexing
# =============================================================================


class TestIndexing:
    """The indexing pass embeds only what the cache cannot serve."""

    @pytest.mark.asyncio
    async def test_cold_pass_embeds_everything_in_one_call(
        self, retriever, math_registry, fake_embeddings, embedding_cache
    ):
        report = await retriever.index(math_registry)

        assert report.total == 4
        assert report.miss_count == 4
        assert report.hit_count == 0
        assert len(fake_embeddings.calls) == 1
        assert fake_embeddings.calls[0][2] == "sqrt Calculate the square root of a number"
        assert (await embedding_cache.stats()).count == 4
        assert await retriever.vector_index.count() == 4

    @pytest.mark.asyncio
    async def test_warm_pass_embeds_nothing(self, math_registry, embedding_cache):
        """A restart against a warm cache serves every tool from the cache."""
        await build_retriever(FakeEmbeddings(), embedding_cache).index(math_registry)

        embeddings = FakeEmbeddings()
        retriever = build_retriever(embeddings, embedding_cache)
        report = await retriever.index(math_registry)

        assert report.hit_count == 4
        assert report.miss_count == 0
        assert report.hit_rate == 1.0
        assert embeddings.calls == []
        assert await retriever.vector_index.count() == 4

    @pytest.mark.asyncio
    async def test_description_change_is_a_miss(self, math_tools, embedding_cache, tool_factory):
        await build_retriever(FakeEmbeddings(), embedding_cache).index(ToolRegistry(math_tools))

        changed = [t for t in math_tools if t.name != "sqrt"] + [
            tool_factory("sqrt", "Compute the principal square root")
        ]
        embeddings = FakeEmbeddings()
        report = await build_retriever(embeddings, embedding_cache).index(ToolRegistry(changed))

        assert report.miss_count == 1
        assert report.hit_count == 3
        assert embeddings.calls == [["sqrt Compute the principal square root"]]

        entries = await embedding_cache.batch_get(["sqrt"])
        assert entries["sqrt"].fingerprint == fingerprint("sqrt Compute the principal square root")

    @pytest.mark.asyncio
    async def test_index_twice_in_one_process(self, retriever, math_registry, fake_embeddings):
        await retriever.index(math_registry)
        report = await retriever.index(math_registry)

        assert report.hit_count == 4
        assert len(fake_embeddings.calls) == 1
        assert await retriever.vector_index.count() == 4

    @pytest.mark.asyncio
    async def test_empty_registry_does_nothing(
        self, retriever, fake_embeddings, fake_redis
    ):
        report = await retriever.index(ToolRegistry())

        assert report.total == 0
        assert report.hit_rate == 0.0
        assert fake_embeddings.calls == []
        assert await fake_redis.dbsize() == 0

    @pytest.mark.asyncio
    async def test_embedding_failure_writes_nothing(
        self, math_registry, embedding_cache, fake_redis
    ):
        embeddings = FakeEmbeddings(error=EmbeddingProviderError("down", provider="fake"))
        retriever = build_retriever(embeddings, embedding_cache)

        with pytest.raises(IndexingError) as exc_info:
            await retriever.index(math_registry)

        assert exc_info.value.stage == "embed"
        assert isinstance(exc_info.value.__cause__, EmbeddingProviderError)
        assert await fake_redis.dbsize() == 0
        assert await retriever.vector_index.count() == 0

    @pytest.mark.asyncio
    async def test_corrupt_entry_is_recomputed(
        self, math_registry, embedding_cache, fake_redis
    ):
        await build_retriever(FakeEmbeddings(), embedding_cache).index(math_registry)
        await fake_redis.set(embedding_cache.tool_key("add"), b"\x00garbage")

        embeddings = FakeEmbeddings()
        report = await build_retriever(embeddings, embedding_cache).index(math_registry)

        assert report.miss_count == 1
        assert embeddings.calls == [["add Add two numbers together"]]
        entries = await embedding_cache.batch_get(["add"])
        assert entries["add"] is not None

    @pytest.mark.asyncio
    async def test_dimension_change_is_a_miss(self, math_registry, embedding_cache):
        """Switching to a provider with another dimensionality re-embeds every tool."""
        await build_retriever(FakeEmbeddings(dimensions=256), embedding_cache).index(math_registry)

        embeddings = FakeEmbeddings(dimensions=64)
        retriever = build_retriever(embeddings, embedding_cache)
        report = await retriever.index(math_registry)

        assert report.miss_count == 4
        assert retriever.vector_index.dimensions == 64
        entries = await embedding_cache.batch_get(["sqrt"])
        assert entries["sqrt"].dimensions == 64

    @pytest.mark.asyncio
    async def test_stale_dimensions_detected_after_first_embed(
        self, math_tools, embedding_cache, tool_factory
    ):
        """A provider that does not announce its size still never mixes dimensions."""
        await build_retriever(FakeEmbeddings(dimensions=256), embedding_cache).index(
            ToolRegistry(math_tools)
        )

        tools = math_tools + [tool_factory("log", "Natural logarithm of a number")]
        embeddings = UnsizedEmbeddings(dimensions=64)
        retriever = build_retriever(embeddings, embedding_cache)
        report = await retriever.index(ToolRegistry(tools))

        assert report.miss_count == 5
        assert report.hit_count == 0
        assert embeddings.texts_embedded == 5
        assert retriever.vector_index.dimensions == 64

    @pytest.mark.asyncio
    async def test_unknown_dimensions_with_all_hits(self, math_registry, embedding_cache):
        await build_retriever(FakeEmbeddings(dimensions=32), embedding_cache).index(math_registry)

        embeddings = UnsizedEmbeddings(dimensions=32)
        report = await build_retriever(embeddings, embedding_cache).index(math_registry)

        assert report.hit_count == 4
        assert embeddings.calls == []

    @pytest.mark.asyncio
    async def test_works_without_a_cache(self, math_registry):
        embeddings = FakeEmbeddings()
        retriever = build_retriever(embeddings, None)

        first = await retriever.index(math_registry)
        second = await retriever.index(math_registry)

        assert first.miss_count == 4
        assert second.miss_count == 4
        assert len(embeddings.calls) == 2

    @pytest.mark.asyncio
    async def test_cache_outage_fails_the_pass(self, math_registry):
        retriever = build_retriever(FakeEmbeddings(), broken_cache())

        with pytest.raises(IndexingError) as exc_info:
            await retriever.index(math_registry)
        assert exc_info.value.stage == "cache_read"

    @pytest.mark.asyncio
    async def test_registry_ids_are_used_as_cache_keys(self, math_tools, embedding_cache):
        registry = ToolRegistry({f"math.{t.name}": t for t in math_tools})

        await build_retriever(FakeEmbeddings(), embedding_cache).index(registry)

        entries = await embedding_cache.batch_get(["math.sqrt", "sqrt"])
        assert entries["math.sqrt"].display_name == "sqrt"
        assert entries["sqrt"] is None


# =============================================================================
# Search
# =============================================================================


class TestSearch:
    @pytest.mark.asyncio
    async def test_finds_most_relevant_tool_first(self, retriever, math_registry):
        await retriever.index(math_registry)

        results = await retriever.search("calculate square root", limit=2)

        assert results[0] == "sqrt"
        assert len(results) == 2
        assert len(set(results)) == 2

    @pytest.mark.asyncio
    async def test_uses_default_limit(self, retriever, math_registry):
        await retriever.index(math_registry)
        assert len(await retriever.search("numbers")) == 2

    @pytest.mark.asyncio
    async def test_non_positive_limit_returns_nothing(self, retriever, math_registry):
        await retriever.index(math_registry)
        assert await retriever.search("square root", limit=0) == []

    @pytest.mark.asyncio
    async def test_filter_restricts_results(self, retriever, math_registry):
        await retriever.index(math_registry)

        results = await retriever.search("add two numbers", limit=4, filter={"category": "algebra"})

        assert set(results) <= {"sqrt", "power"}
        assert "add" not in results

    @pytest.mark.asyncio
    async def test_empty_query_lists_tools_without_similarity_search(
        self, retriever, math_registry
    ):
        await retriever.index(math_registry)
        retriever.vector_index.query = AsyncMock()

        assert await retriever.search("   ", limit=2) == ["add", "multiply"]
        assert await retriever.search("", limit=3) == ["add", "multiply", "sqrt"]
        retriever.vector_index.query.assert_not_called()

    @pytest.mark.asyncio
    async def test_empty_query_policy_empty(self, fake_embeddings, embedding_cache, math_registry):
        retriever = build_retriever(
            fake_embeddings, embedding_cache, empty_query_policy=EmptyQueryPolicy.EMPTY
        )
        await retriever.index(math_registry)

        assert await retriever.search("", limit=2) == []

    @pytest.mark.asyncio
    async def test_query_embedding_is_cached(
        self, retriever, math_registry, fake_embeddings, embedding_cache
    ):
        await retriever.index(math_registry)

        first = await retriever.search("square root", limit=2)
        calls_after_first = len(fake_embeddings.calls)
        second = await retriever.search("square root", limit=2)

        assert first == second
        assert len(fake_embeddings.calls) == calls_after_first
        assert await embedding_cache.get_query_vector(fingerprint("square root")) is not None

    @pytest.mark.asyncio
    async def test_query_cache_can_be_disabled(
        self, fake_embeddings, embedding_cache, math_registry
    ):
        retriever = build_retriever(fake_embeddings, embedding_cache, cache_query_embeddings=False)
        await retriever.index(math_registry)

        await retriever.search("square root")
        await retriever.search("square root")

        assert fake_embeddings.calls[-2:] == [["square root"], ["square root"]]

    @pytest.mark.asyncio
    async def test_search_on_empty_index_returns_nothing(self, retriever):
        assert await retriever.search("square root") == []


class TestSearchFailures:
    """Search degrades to [] unless strict mode is on."""

    @pytest.mark.asyncio
    async def test_cache_outage_returns_nothing(self, retriever, math_registry):
        await retriever.index(math_registry)
        retriever.cache = broken_cache()

        assert await retriever.search("square root") == []

    @pytest.mark.asyncio
    async def test_cache_outage_raises_in_strict_mode(self, retriever, math_registry):
        await retriever.index(math_registry)
        retriever.cache = broken_cache()

        with pytest.raises(RetrievalError) as exc_info:
            await retriever.search("square root", strict=True)
        assert exc_info.value.query == "square root"

    @pytest.mark.asyncio
    async def test_provider_failure_returns_nothing(self, retriever, math_registry, fake_embeddings):
        await retriever.index(math_registry)
        fake_embeddings.error = EmbeddingProviderError("down", provider="fake")

        assert await retriever.search("something new") == []

    @pytest.mark.asyncio
    async def test_strict_retriever_raises(self, embedding_cache, math_registry):
        embeddings = FakeEmbeddings()
        retriever = build_retriever(embeddings, embedding_cache, strict=True)
        await retriever.index(math_registry)
        embeddings.error = EmbeddingProviderError("down", provider="fake")

        with pytest.raises(RetrievalError):
            await retriever.search("something new")
