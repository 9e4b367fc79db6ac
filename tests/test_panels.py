"""Tests for engine.panels: aligning logical panels with rendered ones."""

import pandas as pd
import pytest

from engine.errors import PanelMismatchError
from engine.panels import (
    LogicalPanel, composition_layout, discover_panels, facet_layout, unresolved_panels,
)
from rendering.base import BuiltPlot
from rendering.spec import CompositionSpec, PlotSpec
from rendering.tree import Bounds, NodeKind, VisualNode


def _make_tree(panels):
    """panels: list of (name, top, left) in document order."""
    root = VisualNode(NodeKind.CONTAINER, "figure")
    for name, top, left in panels:
        bounds = Bounds(top, left, 100, 80) if top is not None else None
        root.add(VisualNode(NodeKind.PANEL, name, bounds=bounds))
    return root


def _make_layout(shape):
    rows, cols = shape
    return [LogicalPanel(row=r, col=c, panel_id=(r - 1) * cols + c)
            for r in range(1, rows + 1) for c in range(1, cols + 1)]


class TestByName:
    def test_exact_names(self):
        # drawn column-major
        tree = _make_tree([("panel-1-1", 0, 0), ("panel-2-1", 100, 0),
                           ("panel-1-2", 0, 120), ("panel-2-2", 100, 120)])
        contexts = discover_panels(tree, _make_layout((2, 2)))
        assert [(c.row, c.col, c.panel_name) for c in contexts] == [
            (1, 1, "panel-1-1"), (1, 2, "panel-1-2"), (2, 1, "panel-2-1"), (2, 2, "panel-2-2"),
        ]
        assert [c.panel_id for c in contexts] == [1, 2, 3, 4]

    def test_suffixed_names(self):
        tree = _make_tree([("panel-1-1-a", None, None), ("panel-1-2-a", None, None)])
        contexts = discover_panels(tree, _make_layout((1, 2)))
        assert [c.panel_name for c in contexts] == ["panel-1-1-a", "panel-1-2-a"]


class TestByPosition:
    def test_ranked_by_bounds(self):
        # names carry no row/col; document order is scrambled
        tree = _make_tree([("panel-4", 200.4, 130.2), ("panel-1", 10.0, 10.0),
                           ("panel-3", 200.0, 10.3), ("panel-2", 9.8, 129.9)])
        contexts = discover_panels(tree, _make_layout((2, 2)))
        assert [c.panel_name for c in contexts] == ["panel-1", "panel-2", "panel-3", "panel-4"]

    def test_deterministic(self):
        tree = _make_tree([("panel-2", 0, 120), ("panel-1", 0, 0)])
        first = discover_panels(tree, _make_layout((1, 2)))
        second = discover_panels(tree, _make_layout((1, 2)))
        assert first == second
        assert [c.panel_name for c in first] == ["panel-1", "panel-2"]

    def test_incomplete_last_row(self):
        tree = _make_tree([("panel-1", 0, 0), ("panel-2", 0, 120), ("panel-3", 100, 0)])
        layout = [LogicalPanel(1, 1, 1), LogicalPanel(1, 2, 2), LogicalPanel(2, 1, 3)]
        assert [c.panel_name for c in discover_panels(tree, layout)] == ["panel-1", "panel-2", "panel-3"]

    def test_missing_bounds_raises(self):
        tree = _make_tree([("a", None, None), ("b", None, None)])
        with pytest.raises(PanelMismatchError):
            discover_panels(tree, _make_layout((1, 2)))

    def test_overlapping_panels_raise(self):
        tree = _make_tree([("a", 0, 0), ("b", 0, 0)])
        with pytest.raises(PanelMismatchError):
            discover_panels(tree, _make_layout((1, 2)))


class TestMismatch:
    def test_count_mismatch(self):
        tree = _make_tree([("panel-1-1", 0, 0)])
        with pytest.raises(PanelMismatchError) as info:
            discover_panels(tree, _make_layout((1, 2)))
        assert info.value.expected == 2
        assert info.value.found == 1

    def test_unresolved_panels_have_no_name(self):
        contexts = unresolved_panels(_make_layout((1, 2)))
        assert [c.panel_name for c in contexts] == [None, None]
        assert [(c.row, c.col) for c in contexts] == [(1, 1), (1, 2)]


class TestLayouts:
    def test_facet_layout_carries_facet_values(self):
        panels = pd.DataFrame({"PANEL": [1, 2], "ROW": [1, 1], "COL": [1, 2], "sex": ["f", "m"]})
        built = BuiltPlot(PlotSpec(), [], panels, {})
        layout = facet_layout(built)
        assert [(p.row, p.col, p.panel_id, p.facets) for p in layout] == [
            (1, 1, 1, {"sex": "f"}), (1, 2, 2, {"sex": "m"}),
        ]

    def test_composition_layout_row_major(self):
        spec = CompositionSpec(plots=(PlotSpec(), PlotSpec(), PlotSpec()), ncol=2)
        layout = composition_layout(spec)
        assert [(p.row, p.col, p.panel_id) for p in layout] == [(1, 1, 1), (1, 2, 2), (2, 1, 3)]
