"""Simple bar layers, plus helpers shared by stacked and dodged bars."""

from __future__ import annotations

import pandas as pd

from data_ops.reorder import category_levels, reorder_bars
from rendering import naming
from rendering.spec import GeometryKind, facet_subset

from .base import LayerProcessor
from .types import BarPoint


def row_categories(dataset: pd.DataFrame, x: str, y: str | None, fill: str, stat: str) -> list:
    """Fill category of every computed bar row, in computed-frame order.

    A count stat yields one bar per distinct (x, fill) pair in order of
    first appearance; an identity stat yields one bar per complete row.
    """
    if stat == "count":
        pairs = dataset[[x, fill]].dropna().drop_duplicates()
        return list(pairs[fill])
    return list(dataset.dropna(subset=[x, y])[fill])


def x_order(scales: dict, dataset: pd.DataFrame, x: str) -> list:
    return scales.get("x") or category_levels(dataset[x])


class BarProcessor(LayerProcessor):
    kind = GeometryKind.BAR
    node_prefix = naming.BAR_CONTAINER

    def required_bindings(self) -> tuple[str, ...]:
        if self.info.layer.stat == "count":
            return ("x",)
        return ("x", "y")

    def needs_reordering(self) -> bool:
        return True

    def reorder_dataset(self, dataset: pd.DataFrame, context=None) -> pd.DataFrame:
        return reorder_bars(dataset, self.binding("x"))

    def extract_data(self, dataset: pd.DataFrame, frame: pd.DataFrame) -> list[BarPoint]:
        if frame.empty:
            return []
        return [BarPoint(x=row["x"], y=row["y"]) for row in frame.to_dict("records")]


def panel_subsets(built, dataset: pd.DataFrame) -> list[pd.DataFrame]:
    """Dataset rows of each panel, in the order panels appear in computed frames."""
    facet_columns = [c for c in built.panels.columns if c not in ("PANEL", "ROW", "COL")]
    if not facet_columns:
        return [dataset]
    return [facet_subset(dataset, {c: panel[c] for c in facet_columns})
            for _, panel in built.panels.iterrows()]
