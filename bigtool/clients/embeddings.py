"""
Embeddings Client Module

This module defines the embedding provider port and the HTTP adapter that
talks to an external embeddings service.

Wire format:
    POST {service_url}/embed   {"texts": ["...", ...]}
    200 -> {"embeddings": [[...], ...], "model": "...", "dimensions": 384}
    GET  {service_url}/health  -> 2xx when the service is up

Pattern: Ports and Adapters (EmbeddingProvider is the port)
Pattern: Client adapter for microservice communication
"""

import time
from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx

from bigtool.clients.http import create_embeddings_http_client
from bigtool.core.config import get_settings
from bigtool.core.exceptions import ConfigurationError, EmbeddingProviderError
from bigtool.observability.logging import get_logger

logger = get_logger(__name__)


# =============================================================================
# EmbeddingProvider Port
# =============================================================================


class EmbeddingProvider(ABC):
    """
    Abstract base class for embedding providers.

    Implementations turn texts into vectors. Every vector returned by one
    provider instance has the same length.

    Errors are raised as EmbeddingProviderError naming the provider; a
    response whose length does not match the input is an error, never
    silently truncated.
    """

    name: str = "embeddings"

    @property
    def dimensions(self) -> Optional[int]:
        """Vector length if known up front (None until first response otherwise)."""
        return None

    @abstractmethod
    async def embed_many(self, texts: list[str]) -> list[list[float]]:
        """
        Embed a batch of texts.

        Args:
            texts: Texts to embed

        Returns:
            One vector per input text, in input order

        Raises:
            EmbeddingProviderError: If the provider fails or misaligns
        """
        ...

    async def embed_one(self, text: str) -> list[float]:
        """Embed a single text (query path)."""
        vectors = await self.embed_many([text])
        if len(vectors) != 1:
            raise EmbeddingProviderError(
                f"Expected 1 embedding, got {len(vectors)}",
                provider=self.name,
            )
        return vectors[0]

    async def check_health(self) -> bool:
        """Return True when the provider is reachable."""
        return True


# =============================================================================
# HTTPEmbeddings Adapter
# =============================================================================


class HTTPEmbeddings(EmbeddingProvider):
    """
    Embedding provider backed by an HTTP embeddings service.

    Large inputs are split into batch_size chunks, one POST per chunk.
    Connection failures are retried by the httpx transport; status errors
    and malformed bodies are not.

    Example:
        >>> embeddings = HTTPEmbeddings(service_url="http://localhost:8001")
        >>> vectors = await embeddings.embed_many(["sqrt Square root"])
        >>> await embeddings.close()
    """

    name = "http"

    def __init__(
        self,
        service_url: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        batch_size: Optional[int] = None,
        retries: Optional[int] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """
        Initialize HTTPEmbeddings.

        Args:
            service_url: Embeddings service URL (default: settings)
            timeout_seconds: Request timeout in seconds (default: settings)
            batch_size: Maximum texts per request (default: settings)
            retries: Connection-level retries (default: settings)
            http_client: Pre-configured client (for testing); not closed by close()

        Raises:
            ConfigurationError: If the service URL or batch size is invalid
        """
        settings = get_settings()
        url = service_url if service_url is not None else settings.embeddings_service_url
        if not url or not url.startswith(("http://", "https://")):
            raise ConfigurationError(
                f"Embeddings service URL must start with http:// or https://: {url!r}",
                setting="embeddings_service_url",
            )
        self._service_url = url.rstrip("/")
        self._batch_size = batch_size if batch_size is not None else settings.embeddings_batch_size
        if self._batch_size < 1:
            raise ConfigurationError(
                "Embeddings batch size must be at least 1",
                setting="embeddings_batch_size",
            )
        self._dimensions: Optional[int] = None
        self.model: Optional[str] = None

        if http_client is not None:
            self._client = http_client
            self._owns_client = False
        else:
            self._client = create_embeddings_http_client(
                self._service_url, timeout_seconds=timeout_seconds, retries=retries
            )
            self._owns_client = True

    @property
    def service_url(self) -> str:
        return self._service_url

    @property
    def dimensions(self) -> Optional[int]:
        return self._dimensions

    async def close(self) -> None:
        """Close the HTTP client if owned by this instance."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HTTPEmbeddings":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    # =========================================================================
    # Embedding
    # =========================================================================

    async def embed_many(self, texts: list[str]) -> list[list[float]]:
        """
        Embed texts via POST /embed, batch_size texts per request.

        Args:
            texts: Texts to embed

        Returns:
            One vector per input text, in input order

        Raises:
            EmbeddingProviderError: On transport failure, error status,
                malformed body or misaligned response
        """
        if not texts:
            return []

        vectors: list[list[float]] = []
        for start in range(0, len(texts), self._batch_size):
            batch = texts[start : start + self._batch_size]
            vectors.extend(await self._embed_batch(batch))
        return vectors

    async def _embed_batch(self, texts: list[str]) -> list[list[float]]:
        started = time.perf_counter()
        try:
            response = await self._client.post(
                f"{self._service_url}/embed", json={"texts": texts}
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            self._log_failure(started, e)
            raise EmbeddingProviderError(
                f"Embeddings service error: {e.response.status_code}",
                provider=self.name,
                status_code=e.response.status_code,
            ) from e
        except httpx.TimeoutException as e:
            self._log_failure(started, e)
            raise EmbeddingProviderError(
                f"Embeddings request timed out: {e}", provider=self.name
            ) from e
        except httpx.HTTPError as e:
            self._log_failure(started, e)
            raise EmbeddingProviderError(
                f"Embeddings service unavailable at {self._service_url}: {e}",
                provider=self.name,
            ) from e
        except ValueError as e:
            raise EmbeddingProviderError(
                f"Embeddings service returned invalid JSON: {e}", provider=self.name
            ) from e

        vectors = self._parse_embeddings(data, expected=len(texts))
        latency_ms = (time.perf_counter() - started) * 1000
        logger.debug(
            "embeddings_generated",
            count=len(texts),
            latency_ms=round(latency_ms, 2),
            per_text_ms=round(latency_ms / len(texts), 2),
            model=self.model,
        )
        return vectors

    def _parse_embeddings(self, data: Any, expected: int) -> list[list[float]]:
        if not isinstance(data, dict) or not isinstance(data.get("embeddings"), list):
            raise EmbeddingProviderError(
                "Embeddings response is missing the 'embeddings' list",
                provider=self.name,
            )
        embeddings = data["embeddings"]
        if len(embeddings) != expected:
            raise EmbeddingProviderError(
                f"Embeddings response misaligned: sent {expected} texts, "
                f"received {len(embeddings)} vectors",
                provider=self.name,
            )

        if not all(isinstance(vector, list) for vector in embeddings):
            raise EmbeddingProviderError(
                "Embeddings response contains a vector that is not a list",
                provider=self.name,
            )

        try:
            vectors = [[float(x) for x in vector] for vector in embeddings]
        except (TypeError, ValueError) as e:
            raise EmbeddingProviderError(
                f"Embeddings response contains non-numeric vectors: {e}",
                provider=self.name,
            ) from e

        lengths = {len(vector) for vector in vectors}
        if len(lengths) > 1 or 0 in lengths:
            raise EmbeddingProviderError(
                f"Embeddings response has inconsistent dimensions: {sorted(lengths)}",
                provider=self.name,
            )

        if data.get("model"):
            self.model = str(data["model"])
        if vectors:
            self._dimensions = len(vectors[0])
        return vectors

    def _log_failure(self, started: float, error: Exception) -> None:
        logger.warning(
            "embeddings_request_failed",
            service_url=self._service_url,
            latency_ms=round((time.perf_counter() - started) * 1000, 2),
            error=str(error),
        )

    # =========================================================================
    # Health
    # =========================================================================

    async def check_health(self) -> bool:
        """
        Check whether the embeddings service answers GET /health.

        Returns:
            True on a 2xx response, False on any transport or status error
        """
        try:
            response = await self._client.get(f"{self._service_url}/health")
        except httpx.HTTPError as e:
            logger.warning("embeddings_health_check_failed", error=str(e))
            return False
        return response.is_success
