"""Scatter layers: one point per complete row, in row order."""

from __future__ import annotations

import pandas as pd

from rendering import naming
from rendering.spec import GeometryKind

from .base import LayerProcessor
from .types import ScatterPoint


class PointProcessor(LayerProcessor):
    kind = GeometryKind.POINT
    node_prefix = naming.POINT_CONTAINER
    element_tag = "use"

    def required_bindings(self) -> tuple[str, ...]:
        return ("x", "y")

    def extract_data(self, dataset: pd.DataFrame, frame: pd.DataFrame) -> list[ScatterPoint]:
        x, y = self.binding("x"), self.binding("y")
        # the renderer colours markers by group first, then by colour
        category = self.binding("group") or self.binding("color")
        rows = dataset.dropna(subset=[x, y])
        points = []
        for row in rows.to_dict("records"):
            value = row[category] if category else None
            points.append(ScatterPoint(x=row[x], y=row[y], color=None if pd.isna(value) else value))
        return points
