"""Histogram layers: one point per renderer-computed bin."""

from __future__ import annotations

import pandas as pd

from rendering import naming
from rendering.spec import GeometryKind

from .base import LayerProcessor
from .types import HistogramPoint


class HistogramProcessor(LayerProcessor):
    kind = GeometryKind.HISTOGRAM
    node_prefix = naming.BAR_CONTAINER

    def required_bindings(self) -> tuple[str, ...]:
        return ("x",)

    def extract_data(self, dataset: pd.DataFrame, frame: pd.DataFrame) -> list[HistogramPoint]:
        if frame.empty:
            return []
        return [
            HistogramPoint(
                x=row["x"], y=row["y"],
                x_min=row["xmin"], x_max=row["xmax"],
                y_min=row["ymin"], y_max=row["ymax"],
            )
            for row in frame.to_dict("records")
        ]
