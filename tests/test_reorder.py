"""Tests for data_ops.reorder: order-imposing transforms."""

import pandas as pd

from data_ops.reorder import (
    category_levels, first_appearance, reorder_bars, reorder_dodged, reorder_heat, reorder_stacked,
    sort_by_levels,
)


def _make_frame():
    return pd.DataFrame({
        "x": ["b", "a", "c", "a", "b"],
        "fill": ["P", "Q", "P", "P", "Q"],
        "v": [1, 2, 3, 4, 5],
    })


class TestCategoryLevels:
    def test_sorted_for_plain_values(self):
        assert category_levels(["b", "a", "c", "a"]) == ["a", "b", "c"]

    def test_categorical_keeps_declared_order(self):
        values = pd.Series(pd.Categorical(["lo", "hi", "mid"], categories=["hi", "mid", "lo", "unused"]))
        assert category_levels(values) == ["hi", "mid", "lo"]

    def test_mixed_types_fall_back_to_string_sort(self):
        assert category_levels([2, "a", 1]) == [1, 2, "a"]

    def test_missing_values_dropped(self):
        assert category_levels([None, "b", "a"]) == ["a", "b"]

    def test_first_appearance(self):
        assert first_appearance(["b", "a", "b", "c"]) == ["b", "a", "c"]


class TestSortByLevels:
    def test_input_untouched(self):
        data = _make_frame()
        before = data.copy()
        reorder_bars(data, "x")
        pd.testing.assert_frame_equal(data, before)

    def test_stable_for_ties(self):
        out = reorder_bars(_make_frame(), "x")
        assert list(out["x"]) == ["a", "a", "b", "b", "c"]
        # rows with equal x keep their input order
        assert list(out["v"]) == [2, 4, 1, 5, 3]

    def test_index_preserved(self):
        out = reorder_bars(_make_frame(), "x")
        assert list(out.index) == [1, 3, 0, 4, 2]

    def test_empty_frame(self):
        empty = pd.DataFrame({"x": []})
        assert sort_by_levels(empty, ["x"]).empty

    def test_unknown_values_sort_last(self):
        data = pd.DataFrame({"x": ["z", "a", "b"]})
        out = sort_by_levels(data, ["x"], levels={"x": ["b", "a"]})
        assert list(out["x"]) == ["b", "a", "z"]


class TestLayerReorders:
    def test_dodged_fill_descending_within_x(self):
        out = reorder_dodged(_make_frame(), "x", "fill")
        assert list(zip(out["x"], out["fill"])) == [
            ("a", "Q"), ("a", "P"), ("b", "Q"), ("b", "P"), ("c", "P"),
        ]

    def test_stacked_top_segment_first(self):
        # stacking bottom -> top: Q, P  => rows list P (top) before Q
        out = reorder_stacked(_make_frame(), "x", "fill", ["Q", "P"])
        assert list(zip(out["x"], out["fill"])) == [
            ("a", "P"), ("a", "Q"), ("b", "P"), ("b", "Q"), ("c", "P"),
        ]

    def test_heat_x_then_y(self):
        data = pd.DataFrame({"x": ["b", "a", "b", "a"], "y": ["2", "2", "1", "1"], "v": [1, 2, 3, 4]})
        out = reorder_heat(data, "x", "y")
        assert list(zip(out["x"], out["y"])) == [("a", "1"), ("a", "2"), ("b", "1"), ("b", "2")]
