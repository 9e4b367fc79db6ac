"""Tests for engine.detection: geometry kind precedence."""

import pytest

from engine.detection import detect_kind
from processors import LayerInfo, create_processor
from rendering import naming
from rendering.spec import Aesthetics, GeometryKind, LayerSpec, PlotSpec, Position


def _make_layer(geom, position=None, stat=None, **aes):
    return LayerSpec(geom, Aesthetics(**aes), stat=stat, position=position)


class TestDetectKind:
    @pytest.mark.parametrize("geom", ["line", "path", "step"])
    def test_lines(self, geom):
        assert detect_kind(_make_layer(geom)) == GeometryKind.LINE

    @pytest.mark.parametrize("geom", ["smooth", "density"])
    def test_smooth(self, geom):
        assert detect_kind(_make_layer(geom)) == GeometryKind.SMOOTH

    def test_density_stat_wins_over_geom(self):
        assert detect_kind(_make_layer("area", stat="density")) == GeometryKind.SMOOTH

    def test_histogram(self):
        assert detect_kind(_make_layer("histogram", x="v")) == GeometryKind.HISTOGRAM

    def test_bar_with_bin_stat_is_histogram(self):
        assert detect_kind(_make_layer("bar", stat="bin", x="v")) == GeometryKind.HISTOGRAM

    def test_dodged(self):
        layer = _make_layer("bar", position=Position.DODGE, x="a", fill="b")
        assert detect_kind(layer) == GeometryKind.DODGED_BAR

    def test_stacked_requires_fill(self):
        assert detect_kind(_make_layer("col", x="a", y="n", fill="b")) == GeometryKind.STACKED_BAR
        assert detect_kind(_make_layer("col", x="a", y="n")) == GeometryKind.BAR

    def test_fill_position_is_stacked(self):
        layer = _make_layer("bar", position=Position.FILL, x="a", fill="b")
        assert detect_kind(layer) == GeometryKind.STACKED_BAR

    def test_identity_bar_with_fill_is_plain(self):
        layer = _make_layer("col", position=Position.IDENTITY, x="a", y="n", fill="b")
        assert detect_kind(layer) == GeometryKind.BAR

    def test_fill_inherited_from_plot(self):
        plot = PlotSpec(aes=Aesthetics(x="a", fill="b"))
        assert detect_kind(_make_layer("bar"), plot) == GeometryKind.STACKED_BAR
        assert detect_kind(_make_layer("bar")) == GeometryKind.BAR

    @pytest.mark.parametrize("geom,kind", [
        ("tile", GeometryKind.HEAT),
        ("raster", GeometryKind.HEAT),
        ("point", GeometryKind.POINT),
        ("scatter", GeometryKind.POINT),
        ("boxplot", GeometryKind.BOX),
        ("text", GeometryKind.SKIP),
        ("label", GeometryKind.SKIP),
        ("violin", GeometryKind.UNKNOWN),
    ])
    def test_remaining_geoms(self, geom, kind):
        assert detect_kind(_make_layer(geom)) == kind

    def test_geom_name_case_insensitive(self):
        assert detect_kind(_make_layer("Point")) == GeometryKind.POINT

    def test_density_stat_on_bar_geoms(self):
        for geom in ("bar", "col", "histogram"):
            assert detect_kind(_make_layer(geom, stat="density", x="v")) == GeometryKind.SMOOTH


_GEOMS = ["bar", "col", "histogram", "line", "path", "step", "point", "scatter", "boxplot",
          "smooth", "density", "tile", "raster", "text", "label", "area", "violin"]
_STATS = [None, "identity", "count", "bin", "density", "smooth", "boxplot"]


class TestKindMatchesDrawnContainer:
    """A processor searches the container family its layer is drawn into."""

    @pytest.mark.parametrize("stat", _STATS)
    @pytest.mark.parametrize("geom", _GEOMS)
    def test_processor_prefix(self, geom, stat):
        layer = _make_layer(geom, stat=stat, x="a", y="b", fill="c")
        kind = detect_kind(layer)
        if kind in (GeometryKind.SKIP, GeometryKind.UNKNOWN):
            return
        info = LayerInfo(index=0, kind=kind, layer=layer, plot=PlotSpec(layers=(layer,)))
        assert create_processor(kind, info).node_prefix == naming.container_for_geom(geom, layer.stat)
