"""
Declarative plot description consumed by renderers and the engine.

A PlotSpec is a grammar-of-graphics style chart description: a dataset,
plot-level aesthetic bindings, an ordered tuple of layers, optional
faceting, and labels.  Specs are frozen; reordering produces a new spec
through ``with_data()`` and never touches the caller's DataFrame.

Compositions arrange several PlotSpecs in a grid:

    composed = (plot_a | plot_b) / plot_c   # 2 columns, then a new row
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Optional, Union

import pandas as pd

from .formats import axes_format
from .naming import BAR_GEOMS


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class Position(str, Enum):
    """How overlapping geometry of one layer is arranged."""

    IDENTITY = "identity"
    STACK = "stack"
    DODGE = "dodge"
    FILL = "fill"


class GeometryKind(str, Enum):
    """Closed set of layer kinds the engine knows how to process.

    Values are the layer ``type`` strings of the accessibility runtime.
    """

    BAR = "bar"
    STACKED_BAR = "stacked_bar"
    DODGED_BAR = "dodged_bar"
    HISTOGRAM = "hist"
    LINE = "line"
    POINT = "point"
    BOX = "box"
    SMOOTH = "smooth"
    HEAT = "heat"
    SKIP = "skip"
    UNKNOWN = "unknown"


_DEFAULT_STATS = {
    "bar": "count",
    "col": "identity",
    "histogram": "bin",
    "boxplot": "boxplot",
    "smooth": "smooth",
    "density": "density",
}

_AES_ALIASES = {"colour": "color"}


# ---------------------------------------------------------------------------
# Aesthetics / labels
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Aesthetics:
    """Column bindings. Each field names a dataset column or is None."""

    x: Optional[str] = None
    y: Optional[str] = None
    fill: Optional[str] = None
    color: Optional[str] = None
    group: Optional[str] = None
    label: Optional[str] = None

    def get(self, name: str) -> Optional[str]:
        return getattr(self, _AES_ALIASES.get(name, name), None)

    def merged(self, fallback: Aesthetics) -> Aesthetics:
        """Return a copy where unset fields fall back to *fallback*."""
        return Aesthetics(**{
            name: getattr(self, name) if getattr(self, name) is not None else getattr(fallback, name)
            for name in ("x", "y", "fill", "color", "group", "label")
        })

    def to_dict(self) -> dict:
        return {k: v for k, v in self.__dict__.items() if v is not None}

    @classmethod
    def from_dict(cls, d: dict | None) -> Aesthetics:
        d = d or {}
        return cls(**{_AES_ALIASES.get(k, k): v for k, v in d.items()})


@dataclass(frozen=True)
class AxisLabels:
    x: Optional[str] = None
    y: Optional[str] = None
    fill: Optional[str] = None


# ---------------------------------------------------------------------------
# Layers
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LayerSpec:
    """One geometric layer of a chart.

    Attributes:
        geom: Renderer geometry name ('bar', 'col', 'histogram', 'line',
            'point', 'boxplot', 'smooth', 'density', 'tile', 'text', ...).
        aes: Layer-level bindings; unset fields fall back to the plot's.
        stat: Statistical transform; defaults per geom.
        position: Position adjustment; bar-like geoms default to stack.
        data: Optional layer-owned dataset replacing the plot dataset.
        params: Free renderer parameters (bins, palette, method, se, ...).
    """

    geom: str
    aes: Aesthetics = field(default_factory=Aesthetics)
    stat: Optional[str] = None
    position: Optional[Position] = None
    data: Optional[pd.DataFrame] = field(default=None, compare=False, repr=False)
    params: dict = field(default_factory=dict, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "geom", self.geom.lower())
        if self.stat is None:
            object.__setattr__(self, "stat", _DEFAULT_STATS.get(self.geom, "identity"))
        if self.position is None:
            default = Position.STACK if self.geom in BAR_GEOMS else Position.IDENTITY
            object.__setattr__(self, "position", default)
        elif not isinstance(self.position, Position):
            object.__setattr__(self, "position", Position(self.position))

    def bindings(self, plot: Optional[PlotSpec] = None) -> Aesthetics:
        """Effective bindings: layer aesthetics over the plot's."""
        if plot is None:
            return self.aes
        return self.aes.merged(plot.aes)

    def binding(self, name: str, plot: Optional[PlotSpec] = None) -> Optional[str]:
        return self.bindings(plot).get(name)

    def dataset(self, plot: PlotSpec) -> pd.DataFrame:
        """The rows this layer draws: its own data or the plot's."""
        return self.data if self.data is not None else plot.data

    def with_data(self, data: pd.DataFrame) -> LayerSpec:
        return replace(self, data=data)

    @classmethod
    def from_dict(cls, d: dict) -> LayerSpec:
        position = d.get("position")
        return cls(
            geom=d["geom"],
            aes=Aesthetics.from_dict(d.get("aes")),
            stat=d.get("stat"),
            position=Position(position) if position else None,
            data=_frame(d.get("data")),
            params=dict(d.get("params", {})),
        )


# ---------------------------------------------------------------------------
# Faceting
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FacetSpec:
    """Row/column faceting (grid) or a wrapped single variable."""

    rows: Optional[str] = None
    cols: Optional[str] = None
    wrap: Optional[str] = None
    ncol: Optional[int] = None

    @property
    def variables(self) -> list[str]:
        if self.wrap:
            return [self.wrap]
        return [v for v in (self.rows, self.cols) if v]

    @classmethod
    def from_dict(cls, d: dict | None) -> Optional[FacetSpec]:
        if not d:
            return None
        return cls(rows=d.get("rows"), cols=d.get("cols"), wrap=d.get("wrap"), ncol=d.get("ncol"))


def facet_layout(facet: FacetSpec, data: pd.DataFrame) -> pd.DataFrame:
    """Compute the logical panel table: PANEL, ROW, COL plus facet values.

    Panels are numbered row-major starting at 1.  Facet levels are sorted
    (categorical columns keep their declared category order).
    """
    from data_ops.reorder import category_levels

    rows: list[dict] = []
    if facet.wrap:
        levels = category_levels(data[facet.wrap])
        ncol = facet.ncol or max(1, math.ceil(math.sqrt(len(levels))))
        for i, level in enumerate(levels):
            rows.append({"PANEL": i + 1, "ROW": i // ncol + 1, "COL": i % ncol + 1, facet.wrap: level})
    else:
        row_levels = category_levels(data[facet.rows]) if facet.rows else [None]
        col_levels = category_levels(data[facet.cols]) if facet.cols else [None]
        panel = 0
        for r, row_level in enumerate(row_levels):
            for c, col_level in enumerate(col_levels):
                panel += 1
                entry = {"PANEL": panel, "ROW": r + 1, "COL": c + 1}
                if facet.rows:
                    entry[facet.rows] = row_level
                if facet.cols:
                    entry[facet.cols] = col_level
                rows.append(entry)
    return pd.DataFrame(rows)


def facet_subset(data: pd.DataFrame, facets: dict[str, Any]) -> pd.DataFrame:
    """Rows of *data* belonging to the panel identified by *facets*."""
    mask = pd.Series(True, index=data.index)
    for column, value in facets.items():
        if column in data.columns:
            mask &= data[column] == value
    return data[mask]


# ---------------------------------------------------------------------------
# Plots and compositions
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PlotSpec:
    """Full description of one chart.

    ``formats`` maps "x" / "y" to axis value format options (see
    ``rendering.formats``); unknown format types raise ValueError here.
    """

    layers: tuple[LayerSpec, ...] = ()
    data: pd.DataFrame = field(default_factory=pd.DataFrame, compare=False, repr=False)
    aes: Aesthetics = field(default_factory=Aesthetics)
    facet: Optional[FacetSpec] = None
    title: str = ""
    labels: AxisLabels = field(default_factory=AxisLabels)
    formats: dict = field(default_factory=dict, compare=False)

    def __post_init__(self):
        if not isinstance(self.layers, tuple):
            object.__setattr__(self, "layers", tuple(self.layers))
        axes_format(self.formats)

    @property
    def is_faceted(self) -> bool:
        return self.facet is not None and bool(self.facet.variables)

    def with_data(self, data: pd.DataFrame) -> PlotSpec:
        return replace(self, data=data)

    def with_layers(self, layers) -> PlotSpec:
        return replace(self, layers=tuple(layers))

    def axis_label(self, axis: str, layer: Optional[LayerSpec] = None) -> str:
        """Axis title: explicit label, else the bound column name, else ''."""
        explicit = getattr(self.labels, axis, None)
        if explicit:
            return explicit
        if layer is not None:
            bound = layer.binding(axis, self)
        else:
            bound = self.aes.get(axis)
        return bound or ""

    def __or__(self, other):
        return CompositionSpec.beside(self, other)

    def __truediv__(self, other):
        return CompositionSpec.stacked(self, other)

    @classmethod
    def from_dict(cls, d: dict, data: Optional[pd.DataFrame] = None) -> PlotSpec:
        """Build a PlotSpec from a JSON-style dict.

        ``data`` overrides any inline ``"data"`` records in *d*.
        """
        if data is None:
            data = _frame(d.get("data"))
        if data is None:
            data = pd.DataFrame()
        labels = d.get("labels", {})
        return cls(
            layers=tuple(LayerSpec.from_dict(layer) for layer in d.get("layers", [])),
            data=data,
            aes=Aesthetics.from_dict(d.get("aes")),
            facet=FacetSpec.from_dict(d.get("facet")),
            title=d.get("title", ""),
            labels=AxisLabels(x=labels.get("x"), y=labels.get("y"), fill=labels.get("fill")),
            formats=dict(d.get("formats") or {}),
        )


@dataclass(frozen=True)
class CompositionSpec:
    """Several plots arranged in a grid, filled row-major.

    Nested compositions are flattened to their leaf plots in visual order;
    only the outermost ``ncol``/``nrow`` governs placement.
    """

    plots: tuple[Union[PlotSpec, CompositionSpec], ...] = ()
    ncol: Optional[int] = None
    nrow: Optional[int] = None
    title: str = ""

    def __post_init__(self):
        if not isinstance(self.plots, tuple):
            object.__setattr__(self, "plots", tuple(self.plots))

    def leaves(self) -> list[PlotSpec]:
        out: list[PlotSpec] = []
        for plot in self.plots:
            if isinstance(plot, CompositionSpec):
                out.extend(plot.leaves())
            else:
                out.append(plot)
        return out

    def grid_shape(self) -> tuple[int, int]:
        """(rows, cols) of the composition grid."""
        n = max(1, len(self.leaves()))
        if self.ncol:
            ncol = self.ncol
            nrow = self.nrow or math.ceil(n / ncol)
        elif self.nrow:
            nrow = self.nrow
            ncol = math.ceil(n / nrow)
        else:
            ncol = math.ceil(math.sqrt(n))
            nrow = math.ceil(n / ncol)
        return nrow, ncol

    def positions(self) -> list[tuple[int, int]]:
        """1-based (row, col) of each leaf."""
        _, ncol = self.grid_shape()
        return [(i // ncol + 1, i % ncol + 1) for i in range(len(self.leaves()))]

    def with_leaves(self, leaves: list[PlotSpec]) -> CompositionSpec:
        """Same grid, leaves replaced (nesting is flattened)."""
        nrow, ncol = self.grid_shape()
        return CompositionSpec(plots=tuple(leaves), ncol=ncol, nrow=nrow, title=self.title)

    @classmethod
    def beside(cls, left, right) -> CompositionSpec:
        plots = _flat(left) + _flat(right)
        return cls(plots=tuple(plots), nrow=1, ncol=len(plots))

    @classmethod
    def stacked(cls, top, bottom) -> CompositionSpec:
        top_plots, bottom_plots = _flat(top), _flat(bottom)
        ncol = max(_width(top), _width(bottom))
        # Pad the upper block so the lower block starts on a new row.
        padded = list(top_plots)
        remainder = len(padded) % ncol
        if remainder:
            padded.extend(PlotSpec() for _ in range(ncol - remainder))
        return cls(plots=tuple(padded + bottom_plots), ncol=ncol)

    def __or__(self, other):
        return CompositionSpec.beside(self, other)

    def __truediv__(self, other):
        return CompositionSpec.stacked(self, other)

    @classmethod
    def from_dict(cls, d: dict, datasets: Optional[list[pd.DataFrame]] = None) -> CompositionSpec:
        plots = []
        for i, plot in enumerate(d.get("plots", [])):
            if "plots" in plot:
                plots.append(CompositionSpec.from_dict(plot))
                continue
            data = datasets[i] if datasets and i < len(datasets) else None
            plots.append(PlotSpec.from_dict(plot, data=data))
        return cls(plots=tuple(plots), ncol=d.get("ncol"), nrow=d.get("nrow"), title=d.get("title", ""))


def _flat(spec) -> list[PlotSpec]:
    return spec.leaves() if isinstance(spec, CompositionSpec) else [spec]


def _width(spec) -> int:
    if isinstance(spec, CompositionSpec):
        return spec.grid_shape()[1]
    return 1


def _frame(value) -> Optional[pd.DataFrame]:
    """Inline records / columns -> DataFrame; DataFrames pass through."""
    if isinstance(value, pd.DataFrame):
        return value
    if isinstance(value, (dict, list)):
        return pd.DataFrame(value)
    return None
