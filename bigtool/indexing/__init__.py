"""
Indexing Package

Canonical document construction and content fingerprinting for tool
descriptors.
"""

from bigtool.indexing.document import canonicalize, describe, fingerprint

__all__ = ["canonicalize", "describe", "fingerprint"]
