"""
Tests for the selection reducer.
"""

import pytest

from bigtool.agent.state import merge_selected_tool_ids


class TestMergeSelectedToolIds:
    def test_appends_new_ids_in_order(self):
        assert merge_selected_tool_ids(["a"], ["b", "c"]) == ["a", "b", "c"]

    def test_skips_ids_already_selected(self):
        assert merge_selected_tool_ids(["a", "b"], ["b", "c"]) == ["a", "b", "c"]

    def test_repeated_new_ids_keep_first_occurrence(self):
        assert merge_selected_tool_ids([], ["c", "a", "c", "a"]) == ["c", "a"]

    def test_merging_nothing_is_identity(self):
        assert merge_selected_tool_ids(["a", "b"], []) == ["a", "b"]

    def test_does_not_mutate_inputs(self):
        left = ["a"]
        right = ["b"]

        merge_selected_tool_ids(left, right)

        assert left == ["a"]
        assert right == ["b"]

    def test_accepts_any_iterable(self):
        assert merge_selected_tool_ids(["a"], (i for i in ["b", "a"])) == ["a", "b"]

    @pytest.mark.parametrize(
        "left,right",
        [
            ([], []),
            (["a"], ["a"]),
            (["x", "y"], ["y", "z", "x", "w"]),
            (["a", "b", "c"], ["c", "b", "a"]),
        ],
    )
    def test_selection_only_grows(self, left, right):
        """The result starts with left unchanged and holds no duplicates."""
        merged = merge_selected_tool_ids(left, right)

        assert merged[: len(left)] == left
        assert len(merged) == len(set(merged))
        assert set(merged) == set(left) | set(right)

    def test_merge_is_idempotent(self):
        once = merge_selected_tool_ids(["a"], ["b", "c"])
        assert merge_selected_tool_ids(once, ["b", "c"]) == once
