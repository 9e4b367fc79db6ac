"""Plot description model, renderer boundary, matplotlib renderer and rendered-tree search."""

from .base import BuiltPlot, Renderer, RenderOutput
from .mpl_renderer import MatplotlibRenderer
from .registry import GEOMS, get_geom, render_geom_catalog, validate_layer
from .spec import (
    Aesthetics,
    AxisLabels,
    CompositionSpec,
    FacetSpec,
    GeometryKind,
    LayerSpec,
    PlotSpec,
    Position,
)
from .tree import Bounds, NodeKind, VisualNode

__all__ = [
    "BuiltPlot",
    "Renderer",
    "RenderOutput",
    "MatplotlibRenderer",
    "GEOMS",
    "get_geom",
    "render_geom_catalog",
    "validate_layer",
    "Aesthetics",
    "AxisLabels",
    "CompositionSpec",
    "FacetSpec",
    "GeometryKind",
    "LayerSpec",
    "PlotSpec",
    "Position",
    "Bounds",
    "NodeKind",
    "VisualNode",
]
