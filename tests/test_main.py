"""Tests for the command-line entry point."""

import json
import sys

import pytest

import main


def _write(path, obj):
    path.write_text(json.dumps(obj), encoding="utf-8")
    return path


@pytest.fixture
def chart(tmp_path):
    return _write(tmp_path / "chart.json", {
        "data": [{"k": "a"}, {"k": "b"}, {"k": "a"}],
        "layers": [{"geom": "bar", "aes": {"x": "k"}}],
        "title": "Counts",
    })


def _run(monkeypatch, *argv):
    monkeypatch.setattr(sys, "argv", ["maidr", *argv])
    return main.main()


class TestValidateDescription:
    def test_valid(self):
        assert main.validate_description({"aes": {"x": "k"}, "layers": [{"geom": "bar"}]}) == []

    def test_composition_prefixes_plot(self):
        errors = main.validate_description({"plots": [
            {"layers": [{"geom": "bar", "aes": {"x": "k"}}]},
            {"layers": [{"geom": "violin"}]},
        ]})
        assert errors == ["plot 2, layer 1: Unknown geom: violin"]

    def test_call_logs_not_validated(self):
        assert main.validate_description([{"function": "bar", "args": {}}]) == []


class TestMain:
    def test_payload_to_stdout(self, monkeypatch, capsys, chart):
        assert _run(monkeypatch, str(chart)) == 0
        payload = json.loads(capsys.readouterr().out)
        layer = payload["subplots"][0][0]["layers"][0]
        assert layer["title"] == "Counts"
        assert layer["data"] == [{"x": "a", "y": 2.0}, {"x": "b", "y": 1.0}]

    def test_output_files(self, monkeypatch, chart, tmp_path):
        html_path, payload_path, svg_path = tmp_path / "c.html", tmp_path / "p.json", tmp_path / "c.svg"
        code = _run(monkeypatch, str(chart), "-o", str(html_path), "-p", str(payload_path), "--svg", str(svg_path))
        assert code == 0
        assert "maidr-data=" in html_path.read_text(encoding="utf-8")
        assert json.loads(payload_path.read_text(encoding="utf-8"))["subplots"]
        assert 'id="bar.rect.1"' in svg_path.read_text(encoding="utf-8")

    def test_external_dataset(self, monkeypatch, capsys, tmp_path):
        (tmp_path / "rows.csv").write_text("k\nb\nb\na\n", encoding="utf-8")
        spec = _write(tmp_path / "chart.json", {"layers": [{"geom": "bar", "aes": {"x": "k"}}]})
        assert _run(monkeypatch, str(spec), "--data", str(tmp_path / "rows.csv")) == 0
        layer = json.loads(capsys.readouterr().out)["subplots"][0][0]["layers"][0]
        assert layer["data"] == [{"x": "a", "y": 1.0}, {"x": "b", "y": 2.0}]

    def test_unknown_geom_degrades(self, monkeypatch, capsys, tmp_path):
        spec = _write(tmp_path / "chart.json", {"data": [{"k": 1}], "layers": [{"geom": "violin"}]})
        assert _run(monkeypatch, str(spec)) == 0
        captured = capsys.readouterr()
        assert json.loads(captured.out)["subplots"][0][0]["layers"][0]["type"] == "unknown"
        assert "Unknown geom: violin" in captured.err

    def test_strict_rejects(self, monkeypatch, capsys, tmp_path):
        spec = _write(tmp_path / "chart.json", {"layers": [{"geom": "violin"}]})
        assert _run(monkeypatch, str(spec), "--strict") == 1
        assert "Unknown geom: violin" in capsys.readouterr().out

    def test_call_log_file(self, monkeypatch, capsys, tmp_path):
        spec = _write(tmp_path / "calls.json", [
            {"function": "plt.scatter", "args": {"x": [1, 2], "y": [3, 4]}},
        ])
        assert _run(monkeypatch, str(spec)) == 0
        layer = json.loads(capsys.readouterr().out)["subplots"][0][0]["layers"][0]
        assert layer["type"] == "point"

    def test_unreadable_file(self, monkeypatch, tmp_path):
        assert _run(monkeypatch, str(tmp_path / "missing.json")) == 1

    def test_list_geoms(self, monkeypatch, capsys):
        assert _run(monkeypatch, "--list-geoms") == 0
        assert "boxplot" in capsys.readouterr().out
