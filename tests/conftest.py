"""
Pytest configuration for the bigtool test suite.

This configuration sets up:
- Test discovery paths
- Shared fixtures following the FakeRepository pattern (fakeredis,
  FakeEmbeddings, FakeChatModel) instead of mocking frameworks
- Test markers for categorization
"""

import math
import sys
from pathlib import Path

import fakeredis.aioredis
import pytest
import pytest_asyncio

# Add project root to Python path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from bigtool.clients.fake import FakeEmbeddings  # noqa: E402
from bigtool.core.config import EmptyQueryPolicy, Settings, get_settings  # noqa: E402
from bigtool.models.domain import RegisteredTool, ToolDefinition  # noqa: E402
from bigtool.services.cache import EmbeddingCache  # noqa: E402
from bigtool.services.retriever import ToolRetriever  # noqa: E402
from bigtool.stores.vector_index import InMemoryVectorIndex  # noqa: E402
from bigtool.tools.registry import ToolRegistry  # noqa: E402


# =============================================================================
# Test Markers
# =============================================================================


def pytest_configure(config):
    """
    Register custom markers for test categorization.

    - unit: Tests for individual components
    - integration: Tests wiring several components together
    - slow: Tests that take a long time to run
    """
    config.addinivalue_line("markers", "unit: Unit tests for individual components")
    config.addinivalue_line("markers", "integration: Tests wiring several components together")
    config.addinivalue_line("markers", "slow: Tests that take a long time to run")


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Drop the cached Settings so environment patches take effect."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# =============================================================================
# FakeRedis Fixture
# =============================================================================


@pytest_asyncio.fixture
async def fake_redis():
    """
    Provide a fake Redis client for testing.

    fakeredis implements the redis.asyncio interface in memory, including
    MGET, pipelines, SCAN and key expiry.
    """
    redis = fakeredis.aioredis.FakeRedis()
    yield redis
    await redis.aclose()


# =============================================================================
# Settings Fixture
# =============================================================================


@pytest.fixture
def test_settings():
    """Settings with safe test defaults (no real external services)."""
    return Settings(
        environment="development",
        log_level="DEBUG",
        redis_url="redis://localhost:6379",
        cache_namespace="test:embeddings",
        cache_ttl_seconds=3600,
        embeddings_service_url="http://embeddings.test",
        retrieval_limit=2,
    )


# =============================================================================
# Tool Fixtures
# =============================================================================


def make_tool(name, description, properties=None, handler=None, metadata=None):
    """Build a RegisteredTool with an object schema over the given properties."""
    properties = properties or {}
    return RegisteredTool(
        definition=ToolDefinition(
            name=name,
            description=description,
            parameters={
                "type": "object",
                "properties": properties,
                "required": list(properties),
            },
        ),
        handler=handler or (lambda args: f"{name} called"),
        metadata=metadata or {},
    )


@pytest.fixture
def tool_factory():
    """Expose make_tool to tests that build ad-hoc registries."""
    return make_tool


@pytest.fixture
def math_tools():
    """Four math tools: add, multiply, sqrt, power."""
    number = {"type": "number"}
    return [
        make_tool(
            "add",
            "Add two numbers together",
            {"a": number, "b": number},
            lambda args: args["a"] + args["b"],
            {"category": "arithmetic"},
        ),
        make_tool(
            "multiply",
            "Multiply two numbers",
            {"a": number, "b": number},
            lambda args: args["a"] * args["b"],
            {"category": "arithmetic"},
        ),
        make_tool(
            "sqrt",
            "Calculate the square root of a number",
            {"x": number},
            lambda args: math.sqrt(args["x"]),
            {"category": "algebra"},
        ),
        make_tool(
            "power",
            "Raise a number to a power",
            {"base": number, "exponent": number},
            lambda args: args["base"] ** args["exponent"],
            {"category": "algebra"},
        ),
    ]


@pytest.fixture
def math_registry(math_tools):
    return ToolRegistry(math_tools)


# =============================================================================
# Retrieval Fixtures
# =============================================================================


@pytest.fixture
def fake_embeddings():
    return FakeEmbeddings()


@pytest.fixture
def embedding_cache(fake_redis):
    return EmbeddingCache(
        redis_client=fake_redis,
        namespace="test:embeddings",
        ttl_seconds=3600,
        timeout_seconds=1.0,
    )


@pytest.fixture
def vector_index():
    return InMemoryVectorIndex()


@pytest.fixture
def retriever(fake_embeddings, vector_index, embedding_cache):
    return ToolRetriever(
        embeddings=fake_embeddings,
        index=vector_index,
        cache=embedding_cache,
        limit=2,
        strict=False,
        empty_query_policy=EmptyQueryPolicy.SHOW_ALL,
        cache_query_embeddings=True,
    )
