"""
Tool Document Builder and Content Hasher

This module turns a tool descriptor into the single canonical text that is
both embedded and hashed, and computes the content fingerprint used to
validate cached embeddings.

The canonical document is "{display_name} {description}". An empty
description yields a trailing space; the fingerprint must stay stable for
the same (name, description) pair across processes, so the format never
changes without invalidating every cached entry.

Pattern: Pure functions (no I/O, no state)
"""

import hashlib

from bigtool.models.domain import RegisteredTool, ToolDescriptor


def canonicalize(descriptor: ToolDescriptor) -> str:
    """
    Build the canonical document for a descriptor.

    Args:
        descriptor: Tool descriptor

    Returns:
        "{display_name} {description}"

    Example:
        >>> canonicalize(ToolDescriptor(id="sqrt", display_name="sqrt",
        ...                             description="Square root"))
        'sqrt Square root'
    """
    return f"{descriptor.display_name} {descriptor.description or ''}"


def fingerprint(text: str) -> str:
    """
    Compute the SHA-256 content fingerprint of a canonical document.

    Text that cannot be encoded as UTF-8 (lone surrogates) raises
    UnicodeEncodeError.

    Args:
        text: Canonical document

    Returns:
        Lowercase hex digest (64 characters)
    """
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def describe(tool_id: str, tool: RegisteredTool) -> ToolDescriptor:
    """Derive the descriptor of a registered tool under its registry id."""
    return ToolDescriptor(
        id=tool_id,
        display_name=tool.name,
        description=tool.description or "",
        metadata=dict(tool.metadata),
    )
