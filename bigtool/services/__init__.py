"""
Services Package

This package provides the embedding cache and the tool retriever that
orchestrates indexing and semantic search.
"""

from bigtool.services.cache import EmbeddingCache
from bigtool.services.retriever import ToolRetriever

__all__ = ["EmbeddingCache", "ToolRetriever"]
