"""
Matplotlib renderer.

Draws a PlotSpec (or a CompositionSpec) onto a matplotlib Figure and
exports it as SVG.  Every drawable is wrapped in a :class:`NodeGroup`
whose ``gid`` becomes the SVG ``id`` of a ``<g>`` element, so the names
listed in ``rendering.naming`` are addressable by CSS selectors in the
export.  The same structure is returned as a :class:`VisualNode` tree.

Computation (``build``) and drawing (``render``) are separate: ``build``
produces per-layer frames with the geometry the renderer will draw, and
``render`` draws exactly those frames.

Frame columns per geometry (all frames also carry ``PANEL``):

    bar/col/histogram  x, y, xpos, width, ymin, ymax, fill, group
                       (histogram adds xmin, xmax)
    line/path/step     x, y, xpos, group, colour
    point              x, y, xpos, ypos, colour
    boxplot            x, y (one of them holds the category code),
                       min, lower, middle, upper, max, outliers, flipped
    smooth             x, y, ymin, ymax, se
    density            x, y, ymin, ymax
    tile               x, y, xpos, ypos, value, fill
    text               x, y, xpos, ypos, label

The renderer never touches pyplot, so concurrent runs share no figure
manager state.
"""

from __future__ import annotations

import io
import logging
import math
from dataclasses import replace
from typing import Optional, Union

import numpy as np
import pandas as pd
from matplotlib import cbook, colormaps, rc_context
from matplotlib.artist import Artist, allow_rasterization
from matplotlib.backends.backend_svg import FigureCanvasSVG
from matplotlib.colors import Normalize, to_hex
from matplotlib.figure import Figure
from matplotlib.lines import Line2D
from matplotlib.patches import Polygon, Rectangle
from matplotlib.text import Text
from matplotlib.ticker import FuncFormatter

import config
from data_ops.reorder import category_levels, first_appearance

from . import naming
from .base import BuiltPlot, RenderOutput
from .formats import axes_format, format_tick
from .spec import CompositionSpec, LayerSpec, PlotSpec, Position, facet_layout, facet_subset
from .tree import Bounds, NodeKind, VisualNode

logger = logging.getLogger("maidr")

# Default colour sequence (golden-ratio HSL spacing, pre-computed hex)
_DEFAULT_COLORS = [
    "#cc6633",  # hue=0.000
    "#55cc33",  # hue=0.618
    "#3384cc",  # hue=0.236
    "#a833cc",  # hue=0.854
    "#33cc98",  # hue=0.472
    "#cc3340",  # hue=0.090
    "#33cccc",  # hue=0.708
    "#ccbe33",  # hue=0.326
]

_BAR_WIDTH = 0.9
_BOX_WIDTH = 0.6
_SMOOTH_POINTS = 80
_DENSITY_POINTS = 512
_SE_Z = 1.96


# ---------------------------------------------------------------------------
# Palette
# ---------------------------------------------------------------------------

class Palette:
    """Assigns colours to categories in order of first appearance.

    ``colors`` may be a list (cycled) or a dict of fixed category colours;
    categories missing from the dict take the next default colour.
    """

    def __init__(self, colors: Union[list, dict, None] = None):
        if isinstance(colors, dict):
            self._fixed = dict(colors)
            self._cycle = list(_DEFAULT_COLORS)
        else:
            self._fixed = {}
            self._cycle = list(colors) if colors else list(_DEFAULT_COLORS)
        self._assigned: dict = {}

    def color_for(self, category) -> str:
        if category in self._fixed:
            return self._fixed[category]
        if category not in self._assigned:
            self._assigned[category] = self._cycle[len(self._assigned) % len(self._cycle)]
        return self._assigned[category]

    @property
    def default(self) -> str:
        return self._cycle[0]


# ---------------------------------------------------------------------------
# Named SVG group
# ---------------------------------------------------------------------------

class NodeGroup(Artist):
    """Artist drawing its children inside one ``<g id=gid>`` element."""

    def __init__(self, gid: str, children=()):
        super().__init__()
        self.set_gid(gid)
        self._members: list[Artist] = list(children)

    def add(self, artist: Artist) -> Artist:
        self._members.append(artist)
        return artist

    def get_children(self):
        return list(self._members)

    @allow_rasterization
    def draw(self, renderer):
        if not self.get_visible():
            return
        renderer.open_group("nodegroup", gid=self.get_gid())
        for member in self._members:
            member.draw(renderer)
        renderer.close_group("nodegroup")
        self.stale = False


def _attach(ax, group: NodeGroup) -> None:
    ax.add_artist(group)
    _bind_members(ax, group)


def _bind_members(ax, group: NodeGroup) -> None:
    for member in group.get_children():
        member.set_figure(ax.figure)
        member.axes = ax
        if not member.is_transform_set():
            member.set_transform(ax.transData)
        member.set_clip_path(ax.patch)
        if isinstance(member, NodeGroup):
            _bind_members(ax, member)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _is_numeric(series: pd.Series) -> bool:
    return (pd.api.types.is_numeric_dtype(series)
            and not isinstance(series.dtype, pd.CategoricalDtype)
            and not pd.api.types.is_bool_dtype(series))


def _positions(values: pd.Series, levels: Optional[list]) -> np.ndarray:
    """Drawing coordinate of each value: level index + 1 on discrete axes."""
    if levels is None:
        return values.to_numpy(dtype=float)
    lookup = {level: i + 1 for i, level in enumerate(levels)}
    return np.array([lookup.get(v, np.nan) for v in values], dtype=float)


def _empty_frame(columns=("PANEL",)) -> pd.DataFrame:
    return pd.DataFrame({c: pd.Series(dtype=object) for c in columns})


def _codes(values: pd.Series, levels: list) -> np.ndarray:
    lookup = {level: i + 1 for i, level in enumerate(levels)}
    return np.array([lookup.get(v, len(levels) + 1) for v in values], dtype=int)


def _compute_key(layer: LayerSpec) -> Optional[str]:
    return naming.compute_key(layer.geom, layer.stat)


_REQUIRED_AES = {
    "histogram": ("x",),
    "line": ("x", "y"),
    "point": ("x", "y"),
    "box": (),
    "smooth": ("x", "y"),
    "density": ("x",),
    "tile": ("x", "y", "fill"),
    "text": ("x", "y", "label"),
}


def _required_aes(key: str, layer: LayerSpec) -> tuple:
    if key == "bar":
        return ("x",) if layer.stat == "count" else ("x", "y")
    return _REQUIRED_AES[key]


def box_category_axis(layer: LayerSpec, plot: PlotSpec, data: pd.DataFrame) -> Optional[str]:
    """Axis holding box categories ('x', 'y') or None for a single box."""
    x = layer.binding("x", plot)
    y = layer.binding("y", plot)
    if x and y:
        if x in data.columns and y in data.columns and _is_numeric(data[x]) and not _is_numeric(data[y]):
            return "y"
        return "x"
    return None


def _discrete_axis(layer: LayerSpec, plot: PlotSpec, axis: str, data: pd.DataFrame) -> bool:
    col = layer.binding(axis, plot)
    if col is None or col not in data.columns:
        return False
    key = _compute_key(layer)
    if key == "bar":
        return axis == "x"
    if key == "box":
        return box_category_axis(layer, plot, data) == axis
    if key == "tile":
        return True
    if key in ("histogram", "density", "smooth"):
        return False
    return not _is_numeric(data[col])


# ---------------------------------------------------------------------------
# Renderer
# ---------------------------------------------------------------------------

class MatplotlibRenderer:
    """Renders plot descriptions to SVG with named element groups.

    Args:
        width, height: Figure size in inches for a single panel grid.
        dpi: Output resolution; SVG coordinates are in pixels at this dpi.
        histogram_bins: Default bin count for histogram layers.
        whisker_range: Whisker reach in IQR multiples for box layers.
    """

    def __init__(
        self,
        width: Optional[float] = None,
        height: Optional[float] = None,
        dpi: Optional[int] = None,
        histogram_bins: Optional[int] = None,
        whisker_range: Optional[float] = None,
    ):
        settings = config.snapshot()
        self.width = float(width or settings["figure_width"])
        self.height = float(height or settings["figure_height"])
        self.dpi = int(dpi or settings["figure_dpi"])
        self.histogram_bins = int(histogram_bins or settings["histogram_bins"])
        self.whisker_range = float(whisker_range or settings["box_whisker_range"])
        self._computers = {
            "bar": self._compute_bar,
            "histogram": self._compute_histogram,
            "line": self._compute_line,
            "point": self._compute_point,
            "box": self._compute_box,
            "smooth": self._compute_smooth,
            "density": self._compute_density,
            "tile": self._compute_tile,
            "text": self._compute_text,
        }
        self._drawers = {
            naming.BAR_CONTAINER: self._draw_bars,
            naming.LINE_CONTAINER: self._draw_lines,
            naming.POINT_CONTAINER: self._draw_points,
            naming.BOX_MASTER: self._draw_boxes,
            naming.SMOOTH_CONTAINER: self._draw_smooth,
            naming.TILE_CONTAINER: self._draw_tiles,
            naming.TEXT_CONTAINER: self._draw_text,
        }

    # ---- Computation --------------------------------------------------------

    def build(self, spec: PlotSpec, dataset: Optional[pd.DataFrame] = None) -> BuiltPlot:
        """Compute the geometry of every layer without drawing anything."""
        if dataset is not None:
            spec = spec.with_data(dataset)
        panels = self._panels(spec)
        scales = self._scales(spec)
        frames = [self._compute_layer(spec, layer, panels, scales) for layer in spec.layers]
        return BuiltPlot(spec, frames, panels, scales)

    def _panels(self, spec: PlotSpec) -> pd.DataFrame:
        if spec.is_faceted and not spec.data.empty:
            missing = [v for v in spec.facet.variables if v not in spec.data.columns]
            if missing:
                raise KeyError(f"Facet variable(s) not in dataset: {', '.join(missing)}")
            return facet_layout(spec.facet, spec.data)
        return pd.DataFrame({"PANEL": [1], "ROW": [1], "COL": [1]})

    def _scales(self, spec: PlotSpec) -> dict:
        scales: dict = {"x": None, "y": None}
        for axis in ("x", "y"):
            values = []
            for layer in spec.layers:
                data = layer.dataset(spec)
                if _discrete_axis(layer, spec, axis, data):
                    values.append(data[layer.binding(axis, spec)])
            if values:
                scales[axis] = category_levels(pd.concat(values, ignore_index=True))
        return scales

    def _compute_layer(self, plot: PlotSpec, layer: LayerSpec, panels: pd.DataFrame, scales: dict) -> pd.DataFrame:
        key = _compute_key(layer)
        if key is None:
            logger.warning(f"[Render] Unsupported geom '{layer.geom}'; layer not drawn")
            return _empty_frame()
        data = layer.dataset(plot)
        aes = layer.bindings(plot)
        unbound = [name for name in _required_aes(key, layer) if aes.get(name) is None]
        if unbound or (key == "box" and aes.x is None and aes.y is None):
            logger.warning(f"[Render] {layer.geom} layer lacks aesthetic(s) {unbound or ['x or y']}; drawn empty")
            return _empty_frame()
        missing = [col for col in aes.to_dict().values() if col not in data.columns]
        if missing:
            logger.warning(f"[Render] {layer.geom} layer binds missing column(s) {missing}; drawn empty")
            return _empty_frame()
        compute = self._computers[key]
        shared = self._layer_shared(key, layer, plot, data, aes)
        facet_columns = [c for c in panels.columns if c not in ("PANEL", "ROW", "COL")]
        parts = []
        for _, panel in panels.iterrows():
            subset = data
            if facet_columns:
                subset = facet_subset(data, {c: panel[c] for c in facet_columns})
            frame = compute(layer, plot, aes, subset, scales, shared)
            frame["PANEL"] = int(panel["PANEL"])
            parts.append(frame)
        non_empty = [p for p in parts if not p.empty]
        if not non_empty:
            return parts[0] if parts else _empty_frame()
        return pd.concat(non_empty, ignore_index=True)

    def _layer_shared(self, key, layer, plot, data, aes) -> dict:
        """Layer-wide state every panel must agree on (colours, bins, levels)."""
        palette = Palette(layer.params.get("palette"))
        category_col = aes.fill if key in ("bar", "histogram") else (aes.group or aes.color)
        if key == "tile":
            category_col = None
        levels: list = []
        if category_col:
            levels = category_levels(data[category_col])
            for category in first_appearance(data[category_col]):
                palette.color_for(category)
        shared = {"palette": palette, "category": category_col, "levels": levels}
        if key == "histogram":
            shared["edges"] = self._histogram_edges(layer, data[aes.x])
        if key == "tile" and aes.fill:
            values = pd.to_numeric(data[aes.fill], errors="coerce")
            shared["norm"] = Normalize(vmin=values.min(), vmax=values.max())
            shared["cmap"] = colormaps[layer.params.get("cmap", "viridis")]
        return shared

    def _histogram_edges(self, layer: LayerSpec, values: pd.Series) -> np.ndarray:
        finite = pd.to_numeric(values, errors="coerce").dropna().to_numpy(dtype=float)
        if finite.size == 0:
            return np.array([])
        binwidth = layer.params.get("binwidth")
        if binwidth:
            start = math.floor(finite.min() / binwidth) * binwidth
            stop = finite.max() + binwidth
            return np.arange(start, stop + binwidth / 2, binwidth)
        bins = int(layer.params.get("bins", self.histogram_bins))
        return np.histogram_bin_edges(finite, bins=bins)

    def _compute_bar(self, layer, plot, aes, data, scales, shared) -> pd.DataFrame:
        x, fill = aes.x, aes.fill
        if layer.stat == "count":
            keys = [x] + ([fill] if fill else [])
            rows = data.dropna(subset=keys).groupby(keys, sort=False, observed=True).size()
            rows = rows.reset_index(name="__count")
            heights = rows["__count"].to_numpy(dtype=float)
        else:
            rows = data.dropna(subset=[x, aes.y])
            heights = rows[aes.y].to_numpy(dtype=float)
        if rows.empty:
            return _empty_frame(("x", "y", "xpos", "width", "ymin", "ymax", "fill", "group"))
        palette: Palette = shared["palette"]
        frame = pd.DataFrame({
            "x": rows[x].to_numpy(dtype=object),
            "y": heights,
            "xpos": _positions(rows[x], scales["x"]),
            "width": float(layer.params.get("width", _BAR_WIDTH)),
        })
        if fill:
            frame["group"] = _codes(rows[fill], shared["levels"])
            frame["fill"] = [palette.color_for(v) for v in rows[fill]]
        else:
            frame["group"] = 1
            frame["fill"] = palette.default

        if fill and layer.position == Position.DODGE:
            k = max(1, len(shared["levels"]))
            full = frame["width"].iloc[0]
            frame["width"] = full / k
            frame["xpos"] = frame["xpos"] - full / 2 + (frame["group"] - 0.5) * full / k
            frame["ymin"] = 0.0
            frame["ymax"] = frame["y"]
        elif layer.position in (Position.STACK, Position.FILL):
            frame = _stack(frame, normalize=layer.position == Position.FILL)
        else:
            frame["ymin"] = 0.0
            frame["ymax"] = frame["y"]
        return frame

    def _compute_histogram(self, layer, plot, aes, data, scales, shared) -> pd.DataFrame:
        edges = shared["edges"]
        if edges.size < 2:
            return _empty_frame(("x", "y", "xmin", "xmax"))
        values = pd.to_numeric(data[aes.x], errors="coerce").dropna().to_numpy(dtype=float)
        counts, _ = np.histogram(values, bins=edges)
        centers = (edges[:-1] + edges[1:]) / 2
        return pd.DataFrame({
            "x": centers,
            "y": counts.astype(float),
            "xmin": edges[:-1],
            "xmax": edges[1:],
            "xpos": centers,
            "width": np.diff(edges),
            "ymin": 0.0,
            "ymax": counts.astype(float),
            "fill": shared["palette"].default,
            "group": 1,
        })

    def _compute_line(self, layer, plot, aes, data, scales, shared) -> pd.DataFrame:
        rows = data.dropna(subset=[aes.x, aes.y])
        category = shared["category"]
        palette: Palette = shared["palette"]
        frame = pd.DataFrame({
            "x": rows[aes.x].to_numpy(dtype=object),
            "y": rows[aes.y].to_numpy(dtype=float),
            "xpos": _positions(rows[aes.x], scales["x"]),
        })
        if category:
            frame["group"] = _codes(rows[category], shared["levels"])
            frame["colour"] = [palette.color_for(v) for v in rows[category]]
        else:
            frame["group"] = 1
            frame["colour"] = palette.default
        keys = ["group"] if layer.geom == "path" else ["group", "xpos"]
        return frame.sort_values(keys, kind="mergesort").reset_index(drop=True)

    def _compute_point(self, layer, plot, aes, data, scales, shared) -> pd.DataFrame:
        rows = data.dropna(subset=[aes.x, aes.y])
        palette: Palette = shared["palette"]
        category = shared["category"]
        return pd.DataFrame({
            "x": rows[aes.x].to_numpy(dtype=object),
            "y": rows[aes.y].to_numpy(dtype=object),
            "xpos": _positions(rows[aes.x], scales["x"]),
            "ypos": _positions(rows[aes.y], scales["y"]),
            "colour": [palette.color_for(v) for v in rows[category]] if category else palette.default,
        })

    def _compute_box(self, layer, plot, aes, data, scales, shared) -> pd.DataFrame:
        cat_axis = box_category_axis(layer, plot, data)
        if cat_axis == "x":
            cat_col, val_col = aes.x, aes.y
        elif cat_axis == "y":
            cat_col, val_col = aes.y, aes.x
        else:
            cat_col, val_col = None, aes.y or aes.x
        horizontal = cat_axis == "y" or (cat_axis is None and aes.y is None)
        levels = (scales.get(cat_axis) or []) if cat_axis else [None]
        records = []
        for code, level in enumerate(levels, start=1):
            subset = data if cat_col is None else data[data[cat_col] == level]
            values = pd.to_numeric(subset[val_col], errors="coerce").dropna().to_numpy(dtype=float)
            if values.size == 0:
                continue
            whis = float(layer.params.get("whisker_range", self.whisker_range))
            stats = cbook.boxplot_stats(values, whis=whis)[0]
            record = {
                "min": float(stats["whislo"]),
                "lower": float(stats["q1"]),
                "middle": float(stats["med"]),
                "upper": float(stats["q3"]),
                "max": float(stats["whishi"]),
                "outliers": sorted(float(v) for v in stats["fliers"]),
                "flipped": horizontal,
            }
            if horizontal:
                record["x"], record["y"] = record["middle"], code
            else:
                record["x"], record["y"] = code, record["middle"]
            records.append(record)
        if not records:
            return _empty_frame(("x", "y", "min", "lower", "middle", "upper", "max", "outliers"))
        return pd.DataFrame.from_records(records)

    def _compute_smooth(self, layer, plot, aes, data, scales, shared) -> pd.DataFrame:
        rows = data.dropna(subset=[aes.x, aes.y])
        xs = rows[aes.x].to_numpy(dtype=float)
        ys = rows[aes.y].to_numpy(dtype=float)
        method = layer.params.get("method", "lm")
        if method == "lm":
            degree = 1
        elif method == "poly":
            degree = int(layer.params.get("degree", 2))
        else:
            logger.warning(f"[Render] Smoothing method '{method}' not available; using lm")
            degree = 1
        if xs.size < degree + 1 or np.ptp(xs) == 0:
            return _empty_frame(("x", "y", "ymin", "ymax", "se"))
        coef = np.polyfit(xs, ys, degree)
        grid = np.linspace(xs.min(), xs.max(), int(layer.params.get("n", _SMOOTH_POINTS)))
        fit = np.polyval(coef, grid)
        show_se = bool(layer.params.get("se", True))
        half = np.zeros_like(fit)
        dof = xs.size - (degree + 1)
        if show_se and dof > 0:
            design = np.vander(xs, degree + 1)
            residual = ys - design @ coef
            sigma2 = float(residual @ residual) / dof
            cov = sigma2 * np.linalg.pinv(design.T @ design)
            grid_design = np.vander(grid, degree + 1)
            half = _SE_Z * np.sqrt(np.einsum("ij,jk,ik->i", grid_design, cov, grid_design))
        return pd.DataFrame({
            "x": grid,
            "y": fit,
            "ymin": fit - half,
            "ymax": fit + half,
            "se": show_se and dof > 0,
        })

    def _compute_density(self, layer, plot, aes, data, scales, shared) -> pd.DataFrame:
        xs = pd.to_numeric(data[aes.x], errors="coerce").dropna().to_numpy(dtype=float)
        if xs.size < 2:
            return _empty_frame(("x", "y", "ymin", "ymax"))
        bw = layer.params.get("bw")
        if not bw:
            # Silverman's rule of thumb
            iqr = np.subtract(*np.percentile(xs, [75, 25]))
            spread = min(xs.std(ddof=1), iqr / 1.34) if iqr > 0 else xs.std(ddof=1)
            bw = 0.9 * spread * xs.size ** -0.2 if spread > 0 else 1.0
        grid = np.linspace(xs.min(), xs.max(), int(layer.params.get("n", _DENSITY_POINTS)))
        z = (grid[:, None] - xs[None, :]) / bw
        density = np.exp(-0.5 * z ** 2).sum(axis=1) / (xs.size * bw * math.sqrt(2 * math.pi))
        return pd.DataFrame({"x": grid, "y": density, "ymin": 0.0, "ymax": density})

    def _compute_tile(self, layer, plot, aes, data, scales, shared) -> pd.DataFrame:
        rows = data.dropna(subset=[aes.x, aes.y])
        values = pd.to_numeric(rows[aes.fill], errors="coerce") if aes.fill else pd.Series(1.0, index=rows.index)
        if "norm" in shared:
            fills = [to_hex(shared["cmap"](shared["norm"](v))) if pd.notna(v) else "none" for v in values]
        else:
            fills = shared["palette"].default
        return pd.DataFrame({
            "x": rows[aes.x].to_numpy(dtype=object),
            "y": rows[aes.y].to_numpy(dtype=object),
            "xpos": _positions(rows[aes.x], scales["x"]),
            "ypos": _positions(rows[aes.y], scales["y"]),
            "value": values.to_numpy(dtype=float),
            "fill": fills,
        })

    def _compute_text(self, layer, plot, aes, data, scales, shared) -> pd.DataFrame:
        rows = data.dropna(subset=[aes.x, aes.y])
        labels = rows[aes.label].astype(str) if aes.label else pd.Series("", index=rows.index)
        return pd.DataFrame({
            "x": rows[aes.x].to_numpy(dtype=object),
            "y": rows[aes.y].to_numpy(dtype=object),
            "xpos": _positions(rows[aes.x], scales["x"]),
            "ypos": _positions(rows[aes.y], scales["y"]),
            "label": labels.to_numpy(dtype=object),
        })

    # ---- Drawing ------------------------------------------------------------

    def render(
        self,
        spec: Union[PlotSpec, CompositionSpec],
        dataset: Optional[pd.DataFrame] = None,
    ) -> RenderOutput:
        """Draw once and export; see module docstring for naming."""
        if isinstance(spec, CompositionSpec):
            return self._render_composition(spec)
        if dataset is not None:
            spec = spec.with_data(dataset)
        built = self.build(spec)
        panels = built.panels
        nrow, ncol = int(panels["ROW"].max()), int(panels["COL"].max())
        fig = self._figure(nrow, ncol)
        root = VisualNode(NodeKind.CONTAINER, "figure")
        alloc = naming.NameAllocator()
        facet_columns = [c for c in panels.columns if c not in ("PANEL", "ROW", "COL")]
        # Facet panels are drawn column by column.
        for _, panel in panels.sort_values(["COL", "ROW"], kind="mergesort").iterrows():
            row, col = int(panel["ROW"]), int(panel["COL"])
            ax = fig.add_subplot(nrow, ncol, (row - 1) * ncol + col)
            title = " & ".join(str(panel[c]) for c in facet_columns)
            self._draw_panel(fig, ax, naming.facet_panel_name(row, col), built,
                             int(panel["PANEL"]), alloc, root, title)
        if spec.title:
            fig.suptitle(spec.title)
        return RenderOutput(root, self._export(fig), [built])

    def _render_composition(self, spec: CompositionSpec) -> RenderOutput:
        leaves = spec.leaves()
        positions = spec.positions()
        nrow, ncol = spec.grid_shape()
        built_plots = []
        for leaf in leaves:
            if leaf.is_faceted:
                logger.warning("[Render] Facets inside a composition cell are ignored")
                leaf = replace(leaf, facet=None)
            built_plots.append(self.build(leaf))
        fig = self._figure(nrow, ncol)
        root = VisualNode(NodeKind.CONTAINER, "figure")
        alloc = naming.NameAllocator()
        draw_order = sorted(range(len(leaves)), key=lambda i: (positions[i][1], positions[i][0]))
        for k, i in enumerate(draw_order, start=1):
            row, col = positions[i]
            ax = fig.add_subplot(nrow, ncol, (row - 1) * ncol + col)
            self._draw_panel(fig, ax, naming.composition_panel_name(k), built_plots[i],
                             1, alloc, root, leaves[i].title)
            if not leaves[i].layers:
                ax.set_axis_off()
        if spec.title:
            fig.suptitle(spec.title)
        return RenderOutput(root, self._export(fig), built_plots)

    def _figure(self, nrow: int, ncol: int) -> Figure:
        fig = Figure(
            figsize=(self.width * max(1.0, ncol / 2), self.height * max(1.0, nrow / 2)),
            dpi=self.dpi,
        )
        FigureCanvasSVG(fig)
        return fig

    def _export(self, fig: Figure) -> str:
        buf = io.StringIO()
        with rc_context({"svg.fonttype": "none", "svg.hashsalt": "maidr"}):
            fig.savefig(buf, format="svg", metadata={"Date": None})
        return buf.getvalue()

    @staticmethod
    def _bounds(fig: Figure, ax) -> Bounds:
        pos = ax.get_position()
        width_px = fig.get_figwidth() * fig.dpi
        height_px = fig.get_figheight() * fig.dpi
        return Bounds(
            top=(1.0 - pos.y1) * height_px,
            left=pos.x0 * width_px,
            width=pos.width * width_px,
            height=pos.height * height_px,
        )

    def _draw_panel(self, fig, ax, panel_name, built: BuiltPlot, panel_id, alloc, root, title) -> None:
        ax.set_gid(panel_name)
        panel_node = root.add(VisualNode(NodeKind.PANEL, panel_name, bounds=self._bounds(fig, ax)))
        extents = []
        for index, layer in enumerate(built.spec.layers):
            prefix = naming.container_for_geom(layer.geom, layer.stat)
            draw = self._drawers.get(prefix)
            if draw is None or _compute_key(layer) is None:
                continue
            frame = built.layer_frame(index, panel_id)
            name = alloc.container(prefix)
            group, node, points = draw(frame, name, layer)
            _attach(ax, group)
            panel_node.add(node)
            if points is not None and len(points):
                extents.append(np.asarray(points, dtype=float))
        self._finish_axes(ax, built, extents, title)

    def _finish_axes(self, ax, built: BuiltPlot, extents: list, title: str) -> None:
        if extents:
            points = np.vstack(extents)
            points = points[np.isfinite(points).all(axis=1)]
            if len(points):
                ax.update_datalim(points)
                ax.autoscale_view()
        for axis in ("x", "y"):
            levels = built.scales.get(axis)
            if not levels:
                continue
            ticks = list(range(1, len(levels) + 1))
            labels = [str(level) for level in levels]
            if axis == "x":
                ax.set_xticks(ticks, labels)
                ax.set_xlim(0.4, len(levels) + 0.6)
            else:
                ax.set_yticks(ticks, labels)
                ax.set_ylim(0.4, len(levels) + 0.6)
        for axis, entry in axes_format(built.spec.formats).items():
            if built.scales.get(axis):
                continue
            target = ax.xaxis if axis == "x" else ax.yaxis
            target.set_major_formatter(FuncFormatter(
                lambda value, _pos, entry=entry: format_tick(value, entry)))
        first = built.spec.layers[0] if built.spec.layers else None
        ax.set_xlabel(built.spec.axis_label("x", first))
        ax.set_ylabel(built.spec.axis_label("y", first))
        if title:
            ax.set_title(title)

    def _draw_bars(self, frame, name, layer):
        group = NodeGroup(name)
        node = VisualNode(NodeKind.CONTAINER, name)
        points = []
        for i, row in enumerate(frame.to_dict("records"), start=1):
            child = naming.NameAllocator.child(name, i)
            left = row["xmin"] if "xmin" in row else row["xpos"] - row["width"] / 2
            right = row["xmax"] if "xmax" in row else row["xpos"] + row["width"] / 2
            group.add(Rectangle((left, row["ymin"]), right - left, row["ymax"] - row["ymin"],
                                facecolor=row["fill"], edgecolor="none", gid=child))
            node.add(VisualNode(NodeKind.RECT, child, label=str(row["x"])))
            points.extend([(left, row["ymin"]), (right, row["ymax"])])
        return group, node, points

    def _draw_lines(self, frame, name, layer):
        group = NodeGroup(name)
        node = VisualNode(NodeKind.CONTAINER, name)
        points = []
        if frame.empty:
            return group, node, points
        drawstyle = "steps-post" if layer.geom == "step" else "default"
        for i, (_, series) in enumerate(frame.groupby("group", sort=True), start=1):
            child = naming.NameAllocator.child(name, i)
            group.add(Line2D(series["xpos"].to_numpy(), series["y"].to_numpy(),
                             color=series["colour"].iloc[0], linewidth=1.2,
                             drawstyle=drawstyle, gid=child))
            node.add(VisualNode(NodeKind.POLYLINE, child))
            points.extend(zip(series["xpos"], series["y"]))
        return group, node, points

    def _draw_points(self, frame, name, layer):
        group = NodeGroup(name)
        node = VisualNode(NodeKind.CONTAINER, name)
        points = []
        for i, row in enumerate(frame.to_dict("records"), start=1):
            child = naming.NameAllocator.child(name, i)
            group.add(Line2D([row["xpos"]], [row["ypos"]], linestyle="None", marker="o",
                             markersize=4, markerfacecolor=row["colour"],
                             markeredgecolor=row["colour"], gid=child))
            node.add(VisualNode(NodeKind.MARKER, child))
            points.append((row["xpos"], row["ypos"]))
        return group, node, points

    def _draw_boxes(self, frame, name, layer):
        master = NodeGroup(name)
        node = VisualNode(NodeKind.CONTAINER, name)
        points = []
        n = naming.counter_of(name)
        for i, row in enumerate(frame.to_dict("records"), start=1):
            horizontal = bool(row["flipped"])
            pos = row["y"] if horizontal else row["x"]

            def xy(along, value):
                return (value, along) if horizontal else (along, value)

            box_name = f"{naming.BOX_MASTER}.{n}.{i}"
            box_group = master.add(NodeGroup(box_name))
            box_node = node.add(VisualNode(NodeKind.CONTAINER, box_name))

            whisker_name = f"{naming.BOX_WHISKERS}.{n}.{i}"
            whiskers = box_group.add(NodeGroup(whisker_name))
            whisker_node = box_node.add(VisualNode(NodeKind.CONTAINER, whisker_name))
            for j, (start, end) in enumerate(((row["upper"], row["max"]), (row["lower"], row["min"])), start=1):
                (x0, y0), (x1, y1) = xy(pos, start), xy(pos, end)
                child = f"{whisker_name}.{j}"
                whiskers.add(Line2D([x0, x1], [y0, y1], color="#333333", linewidth=1.0, gid=child))
                whisker_node.add(VisualNode(NodeKind.POLYLINE, child))

            iqr_name = f"{naming.BOX_IQR}.{n}.{i}"
            (left, bottom) = xy(pos - _BOX_WIDTH / 2, row["lower"])
            (right, top) = xy(pos + _BOX_WIDTH / 2, row["upper"])
            box_group.add(Rectangle((min(left, right), min(bottom, top)), abs(right - left), abs(top - bottom),
                                    facecolor="white", edgecolor="#333333", gid=iqr_name))
            box_node.add(VisualNode(NodeKind.POLYGON, iqr_name))

            median_name = f"{naming.BOX_MEDIAN}.{n}.{i}"
            (x0, y0), (x1, y1) = xy(pos - _BOX_WIDTH / 2, row["middle"]), xy(pos + _BOX_WIDTH / 2, row["middle"])
            box_group.add(Line2D([x0, x1], [y0, y1], color="#333333", linewidth=2.0, gid=median_name))
            box_node.add(VisualNode(NodeKind.POLYLINE, median_name))

            outliers = list(row["outliers"])
            if outliers:
                outlier_name = f"{naming.BOX_OUTLIERS}.{n}.{i}"
                coords = [xy(pos, v) for v in outliers]
                box_group.add(Line2D([c[0] for c in coords], [c[1] for c in coords], linestyle="None",
                                     marker="o", markersize=3, color="#333333", gid=outlier_name))
                outlier_node = box_node.add(VisualNode(NodeKind.CONTAINER, outlier_name))
                for k in range(1, len(outliers) + 1):
                    outlier_node.add(VisualNode(NodeKind.MARKER, f"{outlier_name}.{k}"))
                points.extend(coords)
            points.extend([xy(pos - _BOX_WIDTH / 2, row["min"]), xy(pos + _BOX_WIDTH / 2, row["max"])])
        return master, node, points

    def _draw_smooth(self, frame, name, layer):
        group = NodeGroup(name)
        node = VisualNode(NodeKind.CONTAINER, name)
        if frame.empty:
            return group, node, []
        xs, ys = frame["x"].to_numpy(dtype=float), frame["y"].to_numpy(dtype=float)
        index = 0
        if "se" in frame.columns and bool(frame["se"].iloc[0]):
            index += 1
            band_name = naming.NameAllocator.child(name, index)
            lower, upper = frame["ymin"].to_numpy(dtype=float), frame["ymax"].to_numpy(dtype=float)
            vertices = np.vstack([np.column_stack([xs, lower]), np.column_stack([xs[::-1], upper[::-1]])])
            group.add(Polygon(vertices, closed=True, facecolor="#999999", alpha=0.3,
                              edgecolor="none", gid=band_name))
            node.add(VisualNode(NodeKind.POLYGON, band_name))
        index += 1
        line_name = naming.NameAllocator.child(name, index)
        group.add(Line2D(xs, ys, color=_DEFAULT_COLORS[2], linewidth=1.5, gid=line_name))
        node.add(VisualNode(NodeKind.POLYLINE, line_name))
        points = np.vstack([np.column_stack([xs, frame["ymin"]]), np.column_stack([xs, frame["ymax"]])])
        return group, node, points

    def _draw_tiles(self, frame, name, layer):
        group = NodeGroup(name)
        node = VisualNode(NodeKind.CONTAINER, name)
        points = []
        for i, row in enumerate(frame.to_dict("records"), start=1):
            child = naming.NameAllocator.child(name, i)
            group.add(Rectangle((row["xpos"] - 0.5, row["ypos"] - 0.5), 1.0, 1.0,
                                facecolor=row["fill"], edgecolor="none", gid=child))
            node.add(VisualNode(NodeKind.RECT, child, label=f"{row['x']}, {row['y']}"))
            points.extend([(row["xpos"] - 0.5, row["ypos"] - 0.5), (row["xpos"] + 0.5, row["ypos"] + 0.5)])
        return group, node, points

    def _draw_text(self, frame, name, layer):
        group = NodeGroup(name)
        node = VisualNode(NodeKind.CONTAINER, name)
        points = []
        for i, row in enumerate(frame.to_dict("records"), start=1):
            child = naming.NameAllocator.child(name, i)
            group.add(Text(row["xpos"], row["ypos"], row["label"], ha="center", va="center",
                           fontsize=8, gid=child))
            node.add(VisualNode(NodeKind.TEXT, child, label=row["label"]))
            points.append((row["xpos"], row["ypos"]))
        return group, node, points


def _stack(frame: pd.DataFrame, normalize: bool = False) -> pd.DataFrame:
    """Stack bar segments per x; the highest group code sits at the bottom."""
    frame = frame.copy()
    frame["ymin"] = 0.0
    frame["ymax"] = 0.0
    for _, index in frame.groupby("x", sort=False).groups.items():
        segments = frame.loc[index]
        order = segments.sort_values("group", ascending=False, kind="mergesort").index
        total = float(segments["y"].sum())
        base = 0.0
        for i in order:
            height = frame.at[i, "y"]
            if normalize:
                height = height / total if total else 0.0
            frame.at[i, "ymin"] = base
            base += height
            frame.at[i, "ymax"] = base
    return frame
