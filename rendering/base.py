"""
Renderer boundary.

The engine talks to renderers only through the :class:`Renderer` protocol:

- ``build(spec)`` runs the statistical and positional computation for one
  plot and returns the per-layer geometry (a :class:`BuiltPlot`) without
  drawing anything.
- ``render(spec)`` draws the plot (or composition) once and returns the
  rendered tree, the serialized export, and the BuiltPlot of every leaf
  plot in composition order.

Computed layer frames follow one column convention per geometry (see
``mpl_renderer``); every frame carries a ``PANEL`` column.
"""

from __future__ import annotations

from typing import Optional, Protocol, Union, runtime_checkable

import pandas as pd

from .spec import CompositionSpec, PlotSpec
from .tree import VisualNode


class BuiltPlot:
    """Computed geometry for one plot."""

    __slots__ = ("spec", "layers", "panels", "scales")

    def __init__(
        self,
        spec: PlotSpec,
        layers: list[pd.DataFrame],
        panels: pd.DataFrame,
        scales: dict,
    ):
        self.spec = spec
        self.layers = layers
        self.panels = panels
        self.scales = scales

    def layer_frame(self, index: int, panel_id: Optional[int] = None) -> pd.DataFrame:
        """Frame of layer *index*, optionally restricted to one panel."""
        frame = self.layers[index]
        if panel_id is None or frame.empty:
            return frame
        return frame[frame["PANEL"] == panel_id].reset_index(drop=True)


class RenderOutput:
    """Result of one render pass."""

    __slots__ = ("tree", "export", "plots")

    def __init__(self, tree: VisualNode, export: str, plots: list[BuiltPlot]):
        self.tree = tree
        self.export = export
        self.plots = plots


@runtime_checkable
class Renderer(Protocol):
    def build(self, spec: PlotSpec, dataset: Optional[pd.DataFrame] = None) -> BuiltPlot:
        ...

    def render(
        self,
        spec: Union[PlotSpec, CompositionSpec],
        dataset: Optional[pd.DataFrame] = None,
    ) -> RenderOutput:
        ...
