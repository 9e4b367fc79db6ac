"""Smoothed curves and density estimates."""

from __future__ import annotations

from typing import Optional

import pandas as pd

from rendering import naming
from rendering.selectors import build_selector
from rendering.spec import GeometryKind
from rendering.tree import NodeKind, VisualNode

from .base import LayerProcessor
from .types import PanelContext, SmoothPoint


class SmoothProcessor(LayerProcessor):
    kind = GeometryKind.SMOOTH
    node_prefix = naming.SMOOTH_CONTAINER

    def _is_density(self) -> bool:
        layer = self.info.layer
        return layer.geom == "density" or layer.stat == "density"

    def required_bindings(self) -> tuple[str, ...]:
        return ("x",) if self._is_density() else ("x", "y")

    def axes(self) -> dict:
        axes = super().axes()
        if not axes["y"] and self._is_density():
            axes["y"] = "density"
        return axes

    def extract_data(self, dataset: pd.DataFrame, frame: pd.DataFrame) -> list[SmoothPoint]:
        if frame.empty:
            return []
        return [SmoothPoint(x=row["x"], y=row["y"]) for row in frame.to_dict("records")]

    def generate_selectors(self, tree: Optional[VisualNode], panel: Optional[PanelContext] = None) -> list:
        container = self.find_container(tree, panel)
        if container is None:
            return []
        # The fitted line is drawn after the confidence band.
        polylines = [child for child in container.children if child.kind == NodeKind.POLYLINE]
        if not polylines:
            return []
        return [build_selector(polylines[-1].name, "path")]
