"""
Vector Index Adapter

This module defines the VectorIndex port used by the retriever and an
in-memory adapter that ranks entries by cosine similarity with numpy.

Contract:
- add(vectors, entries) appends; the in-memory adapter replaces an entry
  with the same tool_id in place, keeping its original position.
- query(vector, k, filter) returns at most k (entry, score) hits sorted by
  descending cosine similarity.
- list_entries(limit, filter) returns entries in insertion order, used for
  the empty-query path without touching similarity search.
- supports_delete tells callers whether delete(ids) works; callers never
  assume it does.

Pattern: Ports and Adapters (VectorIndex is the port)
"""

from abc import ABC, abstractmethod
from typing import Optional

import numpy as np

from bigtool.core.exceptions import VectorIndexError
from bigtool.models.domain import IndexEntry, SearchHit


# =============================================================================
# Similarity
# =============================================================================


def rank_by_cosine(
    query: np.ndarray, vectors: list[np.ndarray], k: int
) -> list[tuple[int, float]]:
    """
    Rank vectors by cosine similarity to query.

    Returns up to k (position, score) pairs, best first. Zero vectors score
    0.0, and equal scores keep their input order.
    """
    matrix = np.vstack(vectors)
    norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
    dots = matrix @ query
    scores = np.divide(dots, norms, out=np.zeros_like(dots), where=norms > 0)

    order = np.argsort(-scores, kind="stable")[:k]
    return [(int(i), float(scores[i])) for i in order]


# =============================================================================
# VectorIndex Port
# =============================================================================


class VectorIndex(ABC):
    """Abstract base class for vector similarity backends."""

    name: str = "vector_index"

    @property
    def dimensions(self) -> Optional[int]:
        """Vector length held by the index (None while empty or unknown)."""
        return None

    @property
    def supports_delete(self) -> bool:
        return False

    @abstractmethod
    async def add(self, vectors: list[list[float]], entries: list[IndexEntry]) -> None:
        """
        Add vectors with their entries.

        Raises:
            VectorIndexError: If the lengths differ or a vector is malformed
        """
        ...

    @abstractmethod
    async def query(
        self,
        vector: list[float],
        k: int,
        filter: Optional[dict[str, str]] = None,
    ) -> list[SearchHit]:
        """Return the k entries most similar to vector, best first."""
        ...

    @abstractmethod
    async def list_entries(
        self,
        limit: int,
        filter: Optional[dict[str, str]] = None,
    ) -> list[IndexEntry]:
        """Return up to limit entries in insertion order."""
        ...

    async def load(self) -> None:
        """Read backend state (such as the held dimensionality) before indexing."""

    async def delete(self, tool_ids: list[str]) -> int:
        """Remove entries by tool id; returns the number removed."""
        raise VectorIndexError(f"{self.name} does not support delete", backend=self.name)

    async def count(self) -> int:
        """Number of entries held by the index."""
        return len(await self.list_entries(limit=2**31 - 1))


# =============================================================================
# InMemoryVectorIndex Adapter
# =============================================================================


class InMemoryVectorIndex(VectorIndex):
    """
    In-process vector index with exact cosine similarity.

    Suitable for registries of thousands of tools; a query is one matrix
    product over all held vectors.

    Example:
        >>> index = InMemoryVectorIndex()
        >>> await index.add([[1.0, 0.0]], [IndexEntry(tool_id="sqrt", display_name="sqrt")])
        >>> [hit.entry.tool_id for hit in await index.query([1.0, 0.0], k=1)]
        ['sqrt']
    """

    name = "memory"

    def __init__(self) -> None:
        self._entries: list[IndexEntry] = []
        self._vectors: list[np.ndarray] = []
        self._positions: dict[str, int] = {}
        self._dimensions: Optional[int] = None

    @property
    def dimensions(self) -> Optional[int]:
        return self._dimensions

    @property
    def supports_delete(self) -> bool:
        return True

    async def add(self, vectors: list[list[float]], entries: list[IndexEntry]) -> None:
        if len(vectors) != len(entries):
            raise VectorIndexError(
                f"Got {len(vectors)} vectors for {len(entries)} entries",
                backend=self.name,
            )

        prepared = [self._prepare(vector) for vector in vectors]
        for vector, entry in zip(prepared, entries):
            position = self._positions.get(entry.tool_id)
            if position is None:
                self._positions[entry.tool_id] = len(self._entries)
                self._entries.append(entry)
                self._vectors.append(vector)
            else:
                self._entries[position] = entry
                self._vectors[position] = vector

    def _prepare(self, vector: list[float]) -> np.ndarray:
        array = np.asarray(vector, dtype=np.float64)
        if array.ndim != 1 or array.size == 0:
            raise VectorIndexError("Vectors must be non-empty and one-dimensional", backend=self.name)
        if self._dimensions is None:
            self._dimensions = int(array.size)
        elif array.size != self._dimensions:
            raise VectorIndexError(
                f"Vector has {array.size} dimensions, index holds {self._dimensions}",
                backend=self.name,
            )
        return array

    async def query(
        self,
        vector: list[float],
        k: int,
        filter: Optional[dict[str, str]] = None,
    ) -> list[SearchHit]:
        if k <= 0 or not self._entries:
            return []

        candidates = [i for i, entry in enumerate(self._entries) if entry.matches(filter)]
        if not candidates:
            return []

        query = self._prepare(vector)
        return [
            SearchHit(entry=self._entries[candidates[i]], score=score)
            for i, score in rank_by_cosine(query, [self._vectors[c] for c in candidates], k)
        ]

    async def list_entries(
        self,
        limit: int,
        filter: Optional[dict[str, str]] = None,
    ) -> list[IndexEntry]:
        if limit <= 0:
            return []
        matched = [entry for entry in self._entries if entry.matches(filter)]
        return matched[:limit]

    async def delete(self, tool_ids: list[str]) -> int:
        doomed = {tool_id for tool_id in tool_ids if tool_id in self._positions}
        if not doomed:
            return 0

        kept = [
            (entry, vector)
            for entry, vector in zip(self._entries, self._vectors)
            if entry.tool_id not in doomed
        ]
        self._entries = [entry for entry, _ in kept]
        self._vectors = [vector for _, vector in kept]
        self._positions = {entry.tool_id: i for i, entry in enumerate(self._entries)}
        if not self._entries:
            self._dimensions = None
        return len(doomed)

    async def count(self) -> int:
        return len(self._entries)
