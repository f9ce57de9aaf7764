"""
Sessions Package

Redis persistence of per-conversation agent state.
"""

from bigtool.sessions.store import ConversationStore

__all__ = ["ConversationStore"]
