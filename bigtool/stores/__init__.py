"""
Stores Package

Vector similarity backends behind the VectorIndex port: an in-process
index and a durable Redis-backed one.
"""

from bigtool.stores.redis_index import RedisVectorIndex
from bigtool.stores.vector_index import InMemoryVectorIndex, VectorIndex, rank_by_cosine

__all__ = ["VectorIndex", "InMemoryVectorIndex", "RedisVectorIndex", "rank_by_cosine"]
