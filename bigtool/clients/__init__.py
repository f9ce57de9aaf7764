"""
Clients Package

This package provides the embedding providers used to vectorize tool
descriptions and queries, and the connection factories for the services
they depend on.
"""

from bigtool.clients.embeddings import EmbeddingProvider, HTTPEmbeddings
from bigtool.clients.fake import FakeEmbeddings
from bigtool.clients.http import create_embeddings_http_client, embeddings_timeout
from bigtool.clients.redis_client import create_redis_client

__all__ = [
    # Connections
    "create_embeddings_http_client",
    "embeddings_timeout",
    "create_redis_client",
    # Embeddings
    "EmbeddingProvider",
    "HTTPEmbeddings",
    "FakeEmbeddings",
]
