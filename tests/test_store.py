"""
Tests for data_ops.store: dataset loading, DatasetStore, load_chart.

Run with: python -m pytest tests/test_store.py
"""

import json

import pandas as pd
import pytest

from data_ops.store import DataEntry, DatasetStore, load_chart, load_dataset
from rendering.spec import CompositionSpec, PlotSpec


def _make_entry(label="scores", n=4):
    data = pd.DataFrame({"name": [f"n{i}" for i in range(n)], "score": list(range(n))})
    return DataEntry(label=label, data=data, description="test entry")


class TestLoadDataset:
    def test_csv(self, tmp_path):
        path = tmp_path / "d.csv"
        path.write_text("a,b\n1,x\n2,y\n", encoding="utf-8")
        frame = load_dataset(path)
        assert list(frame.columns) == ["a", "b"]
        assert len(frame) == 2

    def test_tsv(self, tmp_path):
        path = tmp_path / "d.tsv"
        path.write_text("a\tb\n1\tx\n", encoding="utf-8")
        assert list(load_dataset(path).columns) == ["a", "b"]

    def test_json_records(self, tmp_path):
        path = tmp_path / "d.json"
        path.write_text(json.dumps([{"a": 1}, {"a": 2}]), encoding="utf-8")
        assert list(load_dataset(path)["a"]) == [1, 2]

    def test_unsupported_extension(self, tmp_path):
        with pytest.raises(ValueError):
            load_dataset(tmp_path / "d.xlsx")


class TestDataEntry:
    def test_summary(self):
        s = _make_entry(n=3).summary()
        assert s["label"] == "scores"
        assert s["rows"] == 3
        assert s["columns"] == ["name", "score"]
        assert s["source"] == "inline"


class TestDatasetStore:
    def test_put_get_has_remove(self):
        store = DatasetStore()
        store.put(_make_entry())
        assert store.has("scores")
        assert store.get("scores").label == "scores"
        assert len(store) == 1
        assert store.remove("scores") is True
        assert store.remove("scores") is False
        assert store.get("scores") is None

    def test_list_entries(self):
        store = DatasetStore()
        store.put(_make_entry("a"))
        store.put(_make_entry("b"))
        assert [e["label"] for e in store.list_entries()] == ["a", "b"]

    def test_resolve_label_inline_and_file(self, tmp_path):
        store = DatasetStore()
        store.put(_make_entry())
        assert len(store.resolve("scores")) == 4
        assert list(store.resolve([{"q": 1}])["q"]) == [1]
        (tmp_path / "extra.csv").write_text("q\n5\n", encoding="utf-8")
        assert list(store.resolve("extra.csv", base_dir=tmp_path)["q"]) == [5]
        assert store.has("extra.csv")

    def test_resolve_unknown_raises(self):
        with pytest.raises(KeyError):
            DatasetStore().resolve("nope")

    def test_resolve_none(self):
        assert DatasetStore().resolve(None) is None


class TestLoadChart:
    def test_plot_with_default_data(self):
        data = pd.DataFrame({"x": ["a", "b"], "y": [1, 2]})
        spec = load_chart({"layers": [{"geom": "col", "aes": {"x": "x", "y": "y"}}]}, data=data)
        assert isinstance(spec, PlotSpec)
        assert spec.data is data
        assert spec.layers[0].data is None

    def test_layer_data_from_store(self):
        store = DatasetStore()
        store.put(_make_entry())
        spec = load_chart(
            {"layers": [{"geom": "point", "aes": {"x": "name", "y": "score"}, "data": "scores"}]},
            store=store,
        )
        assert len(spec.layers[0].data) == 4

    def test_composition_from_file(self, tmp_path):
        (tmp_path / "d.csv").write_text("x,y\na,1\nb,2\n", encoding="utf-8")
        description = {
            "ncol": 2,
            "plots": [
                {"data": "d.csv", "layers": [{"geom": "col", "aes": {"x": "x", "y": "y"}}]},
                {"data": "d.csv", "layers": [{"geom": "line", "aes": {"x": "x", "y": "y"}}]},
            ],
        }
        path = tmp_path / "chart.json"
        path.write_text(json.dumps(description), encoding="utf-8")
        spec = load_chart(path)
        assert isinstance(spec, CompositionSpec)
        assert spec.grid_shape() == (1, 2)
        assert [len(p.data) for p in spec.leaves()] == [2, 2]
