"""
Fake Embedding Provider - Test Double Implementation

This module provides FakeEmbeddings, a deterministic EmbeddingProvider that
needs no network access.

Each text becomes a hashed bag of words: every lowercase alphanumeric token
is hashed into one of `dimensions` buckets and the resulting count vector is
L2-normalized. Texts that share words therefore have positive cosine
similarity, which is enough for retrieval to behave sensibly in local
development and tests.

This is NOT mocking - it's a proper implementation of the interface.
"""

import hashlib
import math
import re
from typing import Optional

from bigtool.clients.embeddings import EmbeddingProvider

_TOKEN_RE = re.compile(r"[a-z0-9]+")


class FakeEmbeddings(EmbeddingProvider):
    """
    Deterministic embedding provider for tests and local development.

    Attributes:
        calls: Every batch passed to embed_many, for test assertions
        error: Exception to raise on embed_many (for error testing)

    Example:
        >>> embeddings = FakeEmbeddings()
        >>> [vector] = await embeddings.embed_many(["sqrt Square root"])
        >>> len(vector)
        256
    """

    name = "fake"

    def __init__(
        self,
        dimensions: int = 256,
        error: Optional[Exception] = None,
    ) -> None:
        self._dimensions = dimensions
        self.error = error
        self.calls: list[list[str]] = []

    @property
    def dimensions(self) -> int:
        return self._dimensions

    @property
    def texts_embedded(self) -> int:
        """Total number of texts embedded so far."""
        return sum(len(batch) for batch in self.calls)

    async def embed_many(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        if self.error is not None:
            raise self.error
        return [self._vectorize(text) for text in texts]

    def _vectorize(self, text: str) -> list[float]:
        vector = [0.0] * self._dimensions
        for token in _TOKEN_RE.findall(text.lower()):
            digest = hashlib.md5(token.encode("utf-8")).digest()
            vector[int.from_bytes(digest[:4], "big") % self._dimensions] += 1.0

        norm = math.sqrt(sum(x * x for x in vector))
        if norm == 0.0:
            return vector
        return [x / norm for x in vector]
