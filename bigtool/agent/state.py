"""
Conversation Selection State

This module holds the reducer that merges newly retrieved tool ids into a
conversation's selection. The selection is ordered, unique and append-only:
merging never duplicates, drops or reorders an id already present.

Pattern: Pure reducer function (no I/O, inputs never mutated)
"""

from typing import Iterable


def merge_selected_tool_ids(left: list[str], right: Iterable[str]) -> list[str]:
    """
    Merge retrieved ids into the current selection.

    Args:
        left: Current selection
        right: Newly retrieved ids, in retrieval order

    Returns:
        left followed by every id of right not already present; a repeated
        id within right keeps its first occurrence

    Example:
        >>> merge_selected_tool_ids(["a", "b"], ["b", "c", "c", "a"])
        ['a', 'b', 'c']
    """
    merged = list(left)
    seen = set(merged)
    for tool_id in right:
        if tool_id not in seen:
            seen.add(tool_id)
            merged.append(tool_id)
    return merged
