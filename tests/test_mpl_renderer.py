"""Tests for rendering.mpl_renderer: computed frames, node naming and SVG ids."""

import pandas as pd
import pytest

from rendering.mpl_renderer import Palette, box_category_axis
from rendering.spec import Aesthetics, FacetSpec, LayerSpec, PlotSpec, Position
from rendering.tree import NodeKind, find_nodes, panels_of


def _make_plot(data, *layers, facet=None, title="", **aes):
    return PlotSpec(layers=tuple(layers), data=data, aes=Aesthetics(**aes), facet=facet, title=title)


@pytest.fixture
def penguins():
    return pd.DataFrame({
        "species": ["Adelie", "Gentoo", "Adelie", "Chinstrap", "Gentoo", "Adelie"],
        "sex": ["f", "m", "m", "f", "f", "m"],
        "mass": [3.5, 5.2, 3.9, 3.6, 4.9, 4.1],
        "flipper": [181.0, 217.0, 190.0, 195.0, 212.0, 186.0],
    })


class TestPalette:
    def test_first_appearance(self):
        palette = Palette(["#000", "#111"])
        assert palette.color_for("b") == "#000"
        assert palette.color_for("a") == "#111"
        assert palette.color_for("c") == "#000"
        assert palette.color_for("b") == "#000"

    def test_fixed_colours(self):
        palette = Palette({"a": "#abcdef"})
        assert palette.color_for("a") == "#abcdef"
        assert palette.color_for("z") == "#cc6633"


class TestBuild:
    def test_build_draws_nothing(self, renderer, penguins):
        built = renderer.build(_make_plot(penguins, LayerSpec("bar", Aesthetics(x="species"))))
        assert len(built.layers) == 1
        assert built.scales["x"] == ["Adelie", "Chinstrap", "Gentoo"]
        assert list(built.panels.columns) == ["PANEL", "ROW", "COL"]

    def test_stack_puts_highest_code_at_bottom(self, renderer, sales):
        layer = LayerSpec("col", Aesthetics(x="region", y="units", fill="product"))
        frame = renderer.build(_make_plot(sales, layer)).layer_frame(0)
        north = frame[frame["x"] == "north"].set_index("group")
        assert north.loc[3, "ymin"] == 0.0
        assert north.loc[2, "ymin"] == 2.0
        assert north.loc[1, "ymin"] == 5.0
        assert north.loc[1, "ymax"] == 10.0

    def test_fill_position_normalizes(self, renderer, sales):
        layer = LayerSpec("col", Aesthetics(x="region", y="units", fill="product"), position=Position.FILL)
        frame = renderer.build(_make_plot(sales, layer)).layer_frame(0)
        assert frame.groupby("x")["ymax"].max().tolist() == pytest.approx([1.0, 1.0, 1.0])

    def test_dodge_splits_width(self, renderer, sales):
        layer = LayerSpec("col", Aesthetics(x="region", y="units", fill="product"), position=Position.DODGE)
        frame = renderer.build(_make_plot(sales, layer)).layer_frame(0)
        assert frame["width"].iloc[0] == pytest.approx(0.3)
        assert (frame["ymin"] == 0).all()

    def test_facet_frames_carry_panel(self, renderer, penguins):
        plot = _make_plot(penguins, LayerSpec("point"), x="flipper", y="mass", facet=FacetSpec(cols="sex"))
        built = renderer.build(plot)
        assert list(built.panels["sex"]) == ["f", "m"]
        assert len(built.layer_frame(0, panel_id=1)) == 3
        assert len(built.layer_frame(0, panel_id=2)) == 3

    def test_missing_facet_column(self, renderer, penguins):
        plot = _make_plot(penguins, LayerSpec("point"), x="flipper", y="mass", facet=FacetSpec(cols="island"))
        with pytest.raises(KeyError):
            renderer.build(plot)

    def test_missing_aesthetic_draws_empty(self, renderer, penguins):
        built = renderer.build(_make_plot(penguins, LayerSpec("col", Aesthetics(x="species"))))
        assert built.layer_frame(0).empty

    def test_box_category_axis(self, penguins):
        plot = _make_plot(penguins)
        assert box_category_axis(LayerSpec("boxplot", Aesthetics(x="species", y="mass")), plot, penguins) == "x"
        assert box_category_axis(LayerSpec("boxplot", Aesthetics(x="mass", y="species")), plot, penguins) == "y"
        assert box_category_axis(LayerSpec("boxplot", Aesthetics(y="mass")), plot, penguins) is None


class TestRender:
    def test_single_panel_tree(self, renderer, penguins):
        plot = _make_plot(penguins, LayerSpec("point"), LayerSpec("smooth"), x="flipper", y="mass")
        output = renderer.render(plot)
        panels = panels_of(output.tree)
        assert [p.name for p in panels] == ["panel-1-1"]
        assert panels[0].bounds is not None
        names = [child.name for child in panels[0].children]
        assert names == ["point.markers.1", "smooth.group.2"]
        assert len(panels[0].children[0].children) == 6

    def test_svg_carries_node_ids(self, renderer, penguins):
        output = renderer.render(_make_plot(penguins, LayerSpec("bar", Aesthetics(x="species"))))
        assert output.export.lstrip().startswith("<?xml")
        for name in ("panel-1-1", "bar.rect.1", "bar.rect.1.1", "bar.rect.1.3"):
            assert f'id="{name}"' in output.export

    def test_export_is_deterministic(self, renderer, penguins):
        plot = _make_plot(penguins, LayerSpec("bar", Aesthetics(x="species")))
        assert renderer.render(plot).export == renderer.render(plot).export

    def test_facet_panels_drawn_column_major(self, renderer, penguins):
        plot = _make_plot(penguins, LayerSpec("point"), x="flipper", y="mass",
                          facet=FacetSpec(rows="sex", cols="species"))
        output = renderer.render(plot)
        names = [p.name for p in panels_of(output.tree)]
        assert names == ["panel-1-1", "panel-2-1", "panel-1-2", "panel-2-2", "panel-1-3", "panel-2-3"]
        # container counters follow draw order
        containers = [p.children[0].name for p in panels_of(output.tree)]
        assert containers == [f"point.markers.{i}" for i in range(1, 7)]

    def test_facet_panel_bounds(self, renderer, penguins):
        plot = _make_plot(penguins, LayerSpec("point"), x="flipper", y="mass", facet=FacetSpec(cols="sex"))
        first, second = panels_of(renderer.render(plot).tree)
        assert first.bounds.top == pytest.approx(second.bounds.top)
        assert first.bounds.left < second.bounds.left

    def test_composition_named_column_major(self, renderer, penguins):
        a = _make_plot(penguins, LayerSpec("bar", Aesthetics(x="species")), title="a")
        b = _make_plot(penguins, LayerSpec("point"), x="flipper", y="mass", title="b")
        c = _make_plot(penguins, LayerSpec("line"), x="flipper", y="mass", title="c")
        output = renderer.render((a | b) / c)
        panels = panels_of(output.tree)
        # a at (1,1), c at (2,1), b at (1,2)
        assert [p.name for p in panels] == ["panel-1", "panel-2", "panel-3"]
        assert [p.children[0].name for p in panels] == ["bar.rect.1", "line.polyline.2", "point.markers.3"]
        assert len(output.plots) == 3

    def test_composition_pads_upper_block(self, renderer, penguins):
        a = _make_plot(penguins, LayerSpec("bar", Aesthetics(x="species")))
        b = _make_plot(penguins, LayerSpec("point"), x="flipper", y="mass")
        c = _make_plot(penguins, LayerSpec("line"), x="flipper", y="mass")
        output = renderer.render(c / (a | b))
        panels = panels_of(output.tree)
        # c at (1,1), a at (2,1), padding at (1,2), b at (2,2)
        assert [p.children[0].name if p.children else None for p in panels] == [
            "line.polyline.1", "bar.rect.2", None, "point.markers.3",
        ]
        assert len(output.plots) == 4

    def test_every_layer_gets_a_container_even_when_empty(self, renderer, penguins):
        subset = penguins[penguins["species"] == "Adelie"]
        plot = _make_plot(subset, LayerSpec("point"), LayerSpec("smooth", params={"method": "poly", "degree": 5}),
                          x="flipper", y="mass")
        output = renderer.render(plot)
        smooth = find_nodes(output.tree, r"^smooth\.group\.\d+$", kind=NodeKind.CONTAINER)
        assert len(smooth) == 1
        assert smooth[0].children == []

    def test_unsupported_geom_not_drawn(self, renderer, penguins):
        plot = _make_plot(penguins, LayerSpec("violin"), LayerSpec("point"), x="species", y="mass")
        panel = panels_of(renderer.render(plot).tree)[0]
        assert [child.name for child in panel.children] == ["point.markers.1"]

    def test_axis_format_on_tick_labels(self, renderer):
        data = pd.DataFrame({"x": [1.0, 2.0, 3.0], "share": [0.1, 0.2, 0.4]})
        plot = PlotSpec(layers=(LayerSpec("point"),), data=data, aes=Aesthetics(x="x", y="share"),
                        formats={"y": {"type": "percent", "decimals": 0}})
        export = renderer.render(plot).export
        assert ">30%<" in export

    def test_format_skipped_on_discrete_axis(self, renderer, penguins):
        plot = PlotSpec(layers=(LayerSpec("col"),), data=penguins, aes=Aesthetics(x="species", y="mass"),
                        formats={"x": {"type": "percent"}})
        assert ">Adelie<" in renderer.render(plot).export
