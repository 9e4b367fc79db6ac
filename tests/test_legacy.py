"""Tests for engine.legacy: turning recorded pyplot calls into chart descriptions."""

import pandas as pd
import pytest

from data_ops.call_log import CallLog
from engine.legacy import CallClass, classify, group_calls, merge_runs, translate_call_log
from engine.orchestrator import Orchestrator
from rendering.spec import CompositionSpec, PlotSpec, Position


def _make_log(*calls):
    log = CallLog()
    for function, args in calls:
        log.record(function, args)
    return log


class TestClassify:
    @pytest.mark.parametrize("function,expected", [
        ("plt.bar", CallClass.PLOT),
        ("ax.imshow", CallClass.PLOT),
        ("plt.xlabel", CallClass.DECORATION),
        ("plt.subplots", CallClass.LAYOUT),
        ("plt.savefig", CallClass.UNKNOWN),
    ])
    def test_classes(self, function, expected):
        assert classify(function) == expected


class TestGrouping:
    def test_calls_without_layout_share_one_panel(self):
        panels, ncol = group_calls([
            {"function": "bar", "args": {}},
            {"function": "title", "args": {"label": "t"}},
        ])
        assert len(panels) == 1 and ncol is None
        assert [c["function"] for c in panels[0].plots] == ["bar"]
        assert [c["function"] for c in panels[0].decorations] == ["title"]

    def test_subplot_starts_panel(self):
        panels, ncol = group_calls([
            {"function": "subplots", "args": {"ncols": 3}},
            {"function": "subplot", "args": {}},
            {"function": "plot", "args": {}},
            {"function": "subplot", "args": {}},
            {"function": "scatter", "args": {}},
            {"function": "savefig", "args": {}},
        ])
        assert ncol == 3
        assert [[c["function"] for c in p.plots] for p in panels] == [["plot"], ["scatter"]]

    def test_merge_consecutive_runs_only(self):
        calls = [{"function": f} for f in ("bar", "bar", "plot", "plot", "bar", "scatter", "scatter")]
        runs = merge_runs(calls)
        assert [[c["function"] for c in run] for run in runs] == [
            ["bar", "bar"], ["plot", "plot"], ["bar"], ["scatter"], ["scatter"],
        ]


class TestTranslate:
    def test_empty_log(self):
        assert translate_call_log(CallLog()) == PlotSpec()

    def test_single_bar_with_decorations(self):
        spec = translate_call_log(_make_log(
            ("plt.bar", {"x": ["a", "b"], "height": [1, 2]}),
            ("plt.title", {"label": "Totals"}),
            ("plt.xlabel", {"xlabel": "Letter"}),
        ))
        assert isinstance(spec, PlotSpec)
        assert spec.title == "Totals"
        assert spec.labels.x == "Letter"
        (layer,) = spec.layers
        assert layer.geom == "col"
        assert layer.data.to_dict("list") == {"x": ["a", "b"], "y": [1, 2]}

    def test_stacked_bars(self):
        spec = translate_call_log(_make_log(
            ("bar", {"x": ["p"], "height": [1], "label": "low", "color": "#123456"}),
            ("bar", {"x": ["p"], "height": [2], "bottom": [1], "label": "high"}),
        ))
        (layer,) = spec.layers
        assert layer.position == Position.STACK
        assert layer.aes.fill == "series"
        assert list(layer.data["series"].cat.categories) == ["high", "low"]
        assert layer.params["palette"] == {"low": "#123456"}

    def test_labelled_bars_dodge(self):
        spec = translate_call_log(_make_log(
            ("bar", {"x": ["p"], "height": [1], "label": "one"}),
            ("bar", {"x": ["p"], "height": [2], "label": "two"}),
        ))
        (layer,) = spec.layers
        assert layer.position == Position.DODGE
        assert list(layer.data["series"].cat.categories) == ["one", "two"]

    def test_unlabelled_bars_overlap(self):
        spec = translate_call_log(_make_log(
            ("bar", {"x": ["p"], "height": [1]}),
            ("bar", {"x": ["q"], "height": [2]}),
        ))
        (layer,) = spec.layers
        assert layer.position == Position.IDENTITY
        assert layer.aes.fill is None

    def test_barh_is_vertical_bar(self):
        spec = translate_call_log(_make_log(("barh", {"y": ["a", "b"], "width": [3, 4]})))
        assert spec.layers[0].data.to_dict("list") == {"x": ["a", "b"], "y": [3, 4]}

    def test_multi_line(self):
        spec = translate_call_log(_make_log(
            ("plot", {"x": [1, 2], "y": [3, 4]}),
            ("plot", {"x": [1, 2], "y": [5, 6], "label": "second"}),
        ))
        (layer,) = spec.layers
        assert layer.aes.color == "series"
        assert list(pd.unique(layer.data["series"])) == ["line 1", "second"]

    def test_plot_values_only(self):
        spec = translate_call_log(_make_log(("plot", {"x": [7, 8, 9]})))
        assert spec.layers[0].data.to_dict("list") == {"x": [0, 1, 2], "y": [7, 8, 9]}

    def test_hist_and_scatter(self):
        spec = translate_call_log(_make_log(
            ("hist", {"x": [1, 2, 2, 3], "bins": 3}),
            ("scatter", {"x": [1, 2], "y": [3, 4]}),
        ))
        hist, scatter = spec.layers
        assert hist.geom == "histogram" and hist.params == {"bins": 3}
        assert scatter.geom == "point"

    def test_boxplot_groups(self):
        spec = translate_call_log(_make_log(("boxplot", {"x": [[1, 2, 3], [4, 5]], "labels": ["a", "b"]})))
        (layer,) = spec.layers
        assert (layer.aes.x, layer.aes.y) == ("group", "value")
        assert list(layer.data["group"]) == ["a", "a", "a", "b", "b"]

    def test_several_panels_make_composition(self):
        spec = translate_call_log(_make_log(
            ("subplots", {"ncols": 2}),
            ("subplot", {}),
            ("bar", {"x": ["a"], "height": [1]}),
            ("subplot", {}),
            ("plot", {"y": [1, 2]}),
        ))
        assert isinstance(spec, CompositionSpec)
        assert spec.ncol == 2
        assert [leaf.layers[0].geom for leaf in spec.leaves()] == ["col", "line"]

    def test_imshow_first_row_on_top(self, renderer):
        log = _make_log(("imshow", {"X": [[1, 2], [3, 4]]}))
        layer = Orchestrator(renderer=renderer, config={}).run(log).payload["subplots"][0][0]["layers"][0]
        assert layer["type"] == "heat"
        assert layer["data"]["points"] == [[1.0, 2.0], [3.0, 4.0]]
        assert layer["data"]["y"] == ["0", "1"]
