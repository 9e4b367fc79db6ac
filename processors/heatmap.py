"""
Heatmap (tile) layers.

Tiles are drawn in x level order, then y level order.  The payload is a
matrix whose rows run from the top of the chart (last y level) down.
"""

from __future__ import annotations

import pandas as pd

from data_ops.reorder import category_levels, reorder_heat
from rendering import naming
from rendering.spec import GeometryKind

from .base import LayerProcessor
from .types import HeatmapData


class HeatmapProcessor(LayerProcessor):
    kind = GeometryKind.HEAT
    node_prefix = naming.TILE_CONTAINER

    def required_bindings(self) -> tuple[str, ...]:
        return ("x", "y", "fill")

    def needs_reordering(self) -> bool:
        return True

    def reorder_dataset(self, dataset: pd.DataFrame, context=None) -> pd.DataFrame:
        return reorder_heat(dataset, self.binding("x"), self.binding("y"))

    def axes(self) -> dict:
        axes = super().axes()
        axes["fill"] = self.info.plot.labels.fill or self.binding("fill") or ""
        return axes

    def extract_data(self, dataset: pd.DataFrame, frame: pd.DataFrame):
        if frame.empty:
            return []
        x_levels = self.scales.get("x") or category_levels(frame["x"])
        y_levels = list(reversed(self.scales.get("y") or category_levels(frame["y"])))
        values = {(row["x"], row["y"]): row["value"] for row in frame.to_dict("records")}
        points = [[values.get((x, y)) for x in x_levels] for y in y_levels]
        return HeatmapData(points=points, x=list(x_levels), y=y_levels)
