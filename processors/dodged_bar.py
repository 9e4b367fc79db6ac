"""
Dodged (side by side) bar layers.

Rows are sorted by x ascending and fill descending, so within each x the
rendered bars are drawn highest fill level first.  The payload still
lists groups in ascending fill order; the draw order and the payload
order differ on purpose.
"""

from __future__ import annotations

import pandas as pd

from data_ops.reorder import category_levels, reorder_dodged
from rendering.spec import GeometryKind

from .bar import BarProcessor, row_categories, x_order
from .types import BarPoint, SeriesGroup


class DodgedBarProcessor(BarProcessor):
    kind = GeometryKind.DODGED_BAR

    def required_bindings(self) -> tuple[str, ...]:
        return super().required_bindings() + ("fill",)

    def reorder_dataset(self, dataset: pd.DataFrame, context=None) -> pd.DataFrame:
        return reorder_dodged(dataset, self.binding("x"), self.binding("fill"))

    def extract_data(self, dataset: pd.DataFrame, frame: pd.DataFrame) -> list[SeriesGroup]:
        if frame.empty:
            return []
        fill = self.binding("fill")
        categories = row_categories(dataset, self.binding("x"), self.binding("y"), fill,
                                    self.info.layer.stat)
        heights: dict = {}
        for category, row in zip(categories, frame.to_dict("records")):
            key = (category, row["x"])
            heights[key] = heights.get(key, 0.0) + float(row["y"])
        x_levels = x_order(self.scales, dataset, self.binding("x"))
        groups = []
        for category in category_levels(dataset[fill]):
            points = [BarPoint(x=x, y=heights[(category, x)], fill=category)
                      for x in x_levels if (category, x) in heights]
            if points:
                groups.append(SeriesGroup(category, points))
        return groups
