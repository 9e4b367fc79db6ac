"""
Line and multi-line layers.

The renderer draws one polyline per group, groups in ascending code
order.  Group codes index the sorted levels of the group column over the
whole layer, so a code is turned back into its category the same way in
every panel.  One selector per polyline, addressed by position under the
layer's container.
"""

from __future__ import annotations

from typing import Optional

import pandas as pd

from data_ops.reorder import category_levels
from rendering import naming
from rendering.selectors import build_selector
from rendering.spec import GeometryKind
from rendering.tree import NodeKind, VisualNode

from .base import LayerProcessor
from .types import LinePoint, PanelContext, SeriesGroup


class LineProcessor(LayerProcessor):
    kind = GeometryKind.LINE
    node_prefix = naming.LINE_CONTAINER

    def required_bindings(self) -> tuple[str, ...]:
        return ("x", "y")

    def group_column(self) -> Optional[str]:
        return self.binding("group") or self.binding("color")

    def extract_data(self, dataset: pd.DataFrame, frame: pd.DataFrame) -> list[SeriesGroup]:
        if frame.empty:
            return []
        column = self.group_column()
        levels = category_levels(self.layer_dataset()[column]) if column else []
        codes = sorted(frame["group"].unique())
        multi = column is not None and len(codes) > 1
        groups = []
        for code in codes:
            series = frame[frame["group"] == code]
            category = None
            if multi and 0 < code <= len(levels):
                category = levels[code - 1]
            points = [LinePoint(x=row["x"], y=row["y"], fill=category) for row in series.to_dict("records")]
            groups.append(SeriesGroup(category, points))
        return groups

    def generate_selectors(self, tree: Optional[VisualNode], panel: Optional[PanelContext] = None) -> list:
        container = self.find_container(tree, panel)
        if container is None:
            return []
        polylines = [child for child in container.children if child.kind == NodeKind.POLYLINE]
        return [
            build_selector(container.name, "path", nth_child=i)
            for i in range(1, len(polylines) + 1)
        ]
