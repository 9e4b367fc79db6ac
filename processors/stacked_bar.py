"""
Stacked bar layers.

The renderer decides which fill category sits at the bottom of each
stack.  To learn that order the layer is built once (computation only,
nothing is drawn), each computed segment's colour is mapped back to its
fill category, and categories are ranked by the mean lower bound of
their segments.  Rows are then sorted by x and, within x, from the top
segment down.  The payload lists one group per category, top to bottom.

Colour to category mapping: colours are handed out in first-appearance
order, so pairing each computed row's colour with the category of the
row that produced it recovers the mapping.  When two categories share a
colour the first category (in order of appearance) owns it, and any
category left without a colour goes on top of the stack in order of
appearance.
"""

from __future__ import annotations

from typing import Sequence

import pandas as pd

from data_ops.reorder import first_appearance, reorder_stacked
from engine.logging import get_logger
from rendering.spec import GeometryKind

from .bar import BarProcessor, panel_subsets, row_categories, x_order
from .types import BarPoint, SeriesGroup

logger = get_logger()


def map_colors_to_categories(categories: Sequence, colors: Sequence) -> dict:
    """Map each rendered colour to the fill category that produced it.

    Rows are paired one to one when both sequences have the same length;
    otherwise distinct categories and distinct colours are paired in order
    of first appearance.  The first category seen for a colour wins.
    """
    if len(categories) == len(colors):
        pairs = zip(categories, colors)
    else:
        pairs = zip(first_appearance(pd.Series(list(categories), dtype=object)),
                    first_appearance(pd.Series(list(colors), dtype=object)))
    mapping: dict = {}
    for category, color in pairs:
        mapping.setdefault(color, category)
    return mapping


def stacking_order(categories: Sequence, frame: pd.DataFrame) -> list:
    """Fill categories from the bottom of the stack to the top.

    Args:
        categories: Category of each computed row (see ``row_categories``).
        frame: Computed bar frame with ``fill`` colours and ``ymin``.
    """
    if frame.empty:
        return first_appearance(pd.Series(list(categories), dtype=object))
    mapping = map_colors_to_categories(categories, list(frame["fill"]))
    mean_lower = frame.groupby("fill", sort=False)["ymin"].mean()
    ranked = sorted(mean_lower.index, key=lambda color: mean_lower[color])
    order = []
    for color in ranked:
        category = mapping.get(color)
        if category is not None and category not in order:
            order.append(category)
    for category in first_appearance(pd.Series(list(categories), dtype=object)):
        if category not in order:
            order.append(category)
    return order


class StackedBarProcessor(BarProcessor):
    kind = GeometryKind.STACKED_BAR

    def __init__(self, info):
        super().__init__(info)
        self.stacking: list | None = None

    def required_bindings(self) -> tuple[str, ...]:
        return super().required_bindings() + ("fill",)

    def _categories(self, dataset: pd.DataFrame) -> list:
        return row_categories(dataset, self.binding("x"), self.binding("y"), self.binding("fill"),
                              self.info.layer.stat)

    def reorder_dataset(self, dataset: pd.DataFrame, context=None) -> pd.DataFrame:
        built = context.renderer.build(self.plot_with(dataset))
        frame = built.layer_frame(self.info.index)
        categories = []
        for subset in panel_subsets(built, dataset):
            categories.extend(self._categories(subset))
        order = stacking_order(categories, frame)
        self.stacking = order
        logger.debug(f"Layer {self.info.index} stacking order (bottom to top): {order}")
        return reorder_stacked(dataset, self.binding("x"), self.binding("fill"), order)

    def extract_data(self, dataset: pd.DataFrame, frame: pd.DataFrame) -> list[SeriesGroup]:
        if frame.empty:
            return []
        categories = self._categories(dataset)
        if len(categories) != len(frame):
            mapping = map_colors_to_categories(categories, list(frame["fill"]))
            categories = [mapping.get(color) for color in frame["fill"]]
        order = self.stacking if self.stacking is not None else stacking_order(categories, frame)
        x_levels = x_order(self.scales, dataset, self.binding("x"))
        heights: dict = {}
        for category, row in zip(categories, frame.to_dict("records")):
            key = (category, row["x"])
            heights[key] = heights.get(key, 0.0) + float(row["y"])
        groups = []
        for category in reversed(order):
            points = [BarPoint(x=x, y=heights[(category, x)], fill=category)
                      for x in x_levels if (category, x) in heights]
            if points:
                groups.append(SeriesGroup(category, points))
        return groups

