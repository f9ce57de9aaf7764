"""
Providers Package

The chat model port driven by the agent, plus a scripted fake for tests and
local development.
"""

from bigtool.providers.base import ChatModel
from bigtool.providers.fake import FakeChatModel

__all__ = ["ChatModel", "FakeChatModel"]
