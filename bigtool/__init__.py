"""bigtool - semantic tool retrieval for tool-calling agents.

Note: Import `create_agent` from `bigtool.agent` directly; this module keeps
no imports so that `bigtool.core` can be loaded without the rest.
"""

__version__ = "0.1.0"

__all__ = [
    "agent",
    "clients",
    "core",
    "indexing",
    "models",
    "observability",
    "providers",
    "services",
    "sessions",
    "stores",
    "tools",
]
