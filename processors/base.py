"""
Layer processor contract.

A processor handles one layer of one plot.  The orchestrator drives it in
a fixed order:

    validate()            -> raises SpecificationError on missing bindings
    needs_reordering()    -> does the dataset need a new row order?
    reorder_dataset()     -> new DataFrame, before the single render pass
    process()             -> extract_data() then generate_selectors()

Selector search is scoped to the panel subtree when a PanelContext is
given.  The layer's own container is the N-th container matching
``node_prefix`` in that scope, N being ``LayerInfo.ordinal``.  Zero
matches yield an empty selector list and a logged warning.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

import pandas as pd

from engine.errors import SpecificationError
from engine.logging import get_logger, tagged
from rendering import naming
from rendering.base import BuiltPlot
from rendering.formats import axes_format
from rendering.selectors import build_selector
from rendering.spec import GeometryKind, LayerSpec, PlotSpec
from rendering.tree import NodeKind, VisualNode, find_master_and_children, find_nodes, find_panel

from .types import LayerResult, PanelContext

logger = get_logger()


@dataclass(frozen=True)
class LayerInfo:
    """Where a layer sits in its plot.

    Attributes:
        index: 0-based layer index.
        kind: Detected geometry kind.
        layer: The layer description.
        plot: The owning plot (before reordering).
        ordinal: Position among the plot's layers drawn into the same
            container family.
    """

    index: int
    kind: GeometryKind
    layer: LayerSpec
    plot: PlotSpec
    ordinal: int = 0


class LayerProcessor:
    kind: GeometryKind = GeometryKind.UNKNOWN
    node_prefix: Optional[str] = None
    element_tag: Optional[str] = "path"

    def __init__(self, info: LayerInfo):
        self.info = info
        self.scales: dict = {}

    # ---- Bindings ------------------------------------------------------------

    def binding(self, name: str) -> Optional[str]:
        return self.info.layer.binding(name, self.info.plot)

    def layer_dataset(self) -> pd.DataFrame:
        return self.info.layer.dataset(self.info.plot)

    def required_bindings(self) -> tuple[str, ...]:
        return ()

    def validate(self) -> None:
        """Check required bindings exist and name dataset columns.

        Raises:
            SpecificationError: naming the first missing binding.
        """
        data = self.layer_dataset()
        for name in self.required_bindings():
            column = self.binding(name)
            if column is None:
                raise SpecificationError(
                    f"{self.kind.value} layer {self.info.index} requires a '{name}' binding",
                    layer_index=self.info.index, binding=name,
                )
            if len(data.columns) and column not in data.columns:
                raise SpecificationError(
                    f"{self.kind.value} layer {self.info.index}: column '{column}' bound to "
                    f"'{name}' is not in the dataset",
                    layer_index=self.info.index, binding=name,
                )

    # ---- Reordering ----------------------------------------------------------

    def needs_reordering(self) -> bool:
        return False

    def reorder_dataset(self, dataset: pd.DataFrame, context=None) -> pd.DataFrame:
        return dataset

    def plot_with(self, dataset: pd.DataFrame) -> PlotSpec:
        """The owning plot with this layer's rows replaced by *dataset*."""
        plot = self.info.plot
        layer = self.info.layer
        if layer.data is not None:
            layers = list(plot.layers)
            layers[self.info.index] = layer.with_data(dataset)
            return plot.with_layers(layers)
        return plot.with_data(dataset)

    # ---- Extraction ----------------------------------------------------------

    def extract_data(self, dataset: pd.DataFrame, frame: pd.DataFrame):
        raise NotImplementedError

    def generate_selectors(self, tree: Optional[VisualNode], panel: Optional[PanelContext] = None) -> list:
        container = self.find_container(tree, panel)
        if container is None or not container.children:
            return []
        return [build_selector(container.name, self.element_tag)]

    def axes(self) -> dict:
        plot, layer = self.info.plot, self.info.layer
        axes = {"x": plot.axis_label("x", layer), "y": plot.axis_label("y", layer)}
        if not axes["y"] and layer.stat in ("count", "bin"):
            axes["y"] = "count"
        formats = axes_format(plot.formats)
        if formats:
            axes["format"] = formats
        return axes

    def process(
        self,
        dataset: Optional[pd.DataFrame],
        built: Optional[BuiltPlot],
        tree: Optional[VisualNode],
        panel: Optional[PanelContext] = None,
        title: str = "",
    ) -> LayerResult:
        """Extract data and selectors for this layer (in one panel).

        An empty dataset short-circuits to an empty result without any
        tree search.
        """
        axes = self.axes()
        if dataset is None or dataset.empty:
            return LayerResult.empty(self.kind, title, axes)
        frame = pd.DataFrame()
        if built is not None:
            self.scales = built.scales
            frame = built.layer_frame(self.info.index, panel.panel_id if panel else None)
        data = self.extract_data(dataset, frame)
        selectors = self.generate_selectors(tree, panel)
        return LayerResult(self.kind, data, selectors, title, axes)

    # ---- Tree search ---------------------------------------------------------

    def search_scope(self, tree: Optional[VisualNode], panel: Optional[PanelContext]) -> tuple[bool, Optional[VisualNode]]:
        """(found, scope) for the panel; scope None means the whole tree."""
        if panel is None:
            return True, None
        if panel.panel_name is None:
            return False, None
        scope = find_panel(tree, panel.panel_name)
        if scope is None:
            logger.warning(
                f"Panel '{panel.panel_name}' not in rendered tree; layer {self.info.index} gets no selectors",
                extra=tagged("structure"),
            )
            return False, None
        return True, scope

    def find_container(self, tree: Optional[VisualNode], panel: Optional[PanelContext] = None) -> Optional[VisualNode]:
        if self.node_prefix is None:
            return None
        found, scope = self.search_scope(tree, panel)
        if not found:
            return None
        containers = find_nodes(tree, naming.container_pattern(self.node_prefix), scope=scope,
                                kind=NodeKind.CONTAINER)
        if self.info.ordinal >= len(containers):
            where = f" in panel '{panel.panel_name}'" if panel else ""
            logger.warning(
                f"No '{self.node_prefix}' container #{self.info.ordinal + 1}{where} "
                f"for layer {self.info.index} ({len(containers)} found)",
                extra=tagged("structure"),
            )
            return None
        return containers[self.info.ordinal]

    def find_master(self, tree: Optional[VisualNode], panel: Optional[PanelContext] = None):
        """Master container of this layer plus its per-element children."""
        container = self.find_container(tree, panel)
        if container is None:
            return None
        found, scope = self.search_scope(tree, panel)
        pattern = re.compile("^" + re.escape(container.name) + "$")
        return find_master_and_children(tree, pattern, scope=scope)
