"""
Box-and-whisker layers.

Each computed row is one box.  Whichever axis of the computed frame
carries the small-integer category codes is the category axis: codes on
y mean horizontal boxes, otherwise boxes are vertical.  Outliers are
split at the whiskers into lower and upper lists.

Rendered structure per box ``i`` of container ``n``::

    box.group.n.i
        box.whiskers.n.i   (child 1: upper whisker, child 2: lower)
        box.iqr.n.i
        box.median.n.i
        box.outliers.n.i   (only when the box has outliers, drawn ascending)
"""

from __future__ import annotations

import re
from typing import Optional

import numpy as np
import pandas as pd

from engine.errors import SpecificationError
from rendering import naming
from rendering.selectors import build_selector
from rendering.spec import GeometryKind
from rendering.tree import VisualNode, find_node

from .base import LayerProcessor
from .types import BoxPoint, PanelContext


_MAX_CODE = 100


def _small_integer_codes(values: pd.Series) -> bool:
    numeric = pd.to_numeric(values, errors="coerce")
    if numeric.isna().any() or numeric.empty:
        return False
    array = numeric.to_numpy(dtype=float)
    return bool(np.all(array == np.round(array)) and array.min() >= 1 and array.max() <= _MAX_CODE)


def box_orientation(frame: pd.DataFrame, scales: dict) -> str:
    """'horz' when categories are on y, else 'vert'."""
    if scales.get("y") and not scales.get("x"):
        return "horz"
    if scales.get("x") and not scales.get("y"):
        return "vert"
    if "y" in frame.columns and _small_integer_codes(frame["y"]) and not _small_integer_codes(frame["x"]):
        return "horz"
    return "vert"


class BoxProcessor(LayerProcessor):
    kind = GeometryKind.BOX
    node_prefix = naming.BOX_MASTER

    def __init__(self, info):
        super().__init__(info)
        self._lower_counts: list[int] = []
        self._upper_counts: list[int] = []

    def validate(self) -> None:
        if self.binding("x") is None and self.binding("y") is None:
            raise SpecificationError(
                f"box layer {self.info.index} requires an 'x' or 'y' binding",
                layer_index=self.info.index, binding="y",
            )
        super().validate()

    def extract_data(self, dataset: pd.DataFrame, frame: pd.DataFrame) -> list[BoxPoint]:
        self._lower_counts, self._upper_counts = [], []
        if frame.empty:
            return []
        orientation = box_orientation(frame, self.scales)
        code_axis = "y" if orientation == "horz" else "x"
        levels = self.scales.get(code_axis) or []
        points = []
        for row in frame.to_dict("records"):
            code = int(row[code_axis]) if pd.notna(row[code_axis]) else 0
            category = levels[code - 1] if 0 < code <= len(levels) else ""
            outliers = list(row["outliers"])
            lower = [v for v in outliers if v < row["min"]]
            upper = [v for v in outliers if v > row["max"]]
            self._lower_counts.append(len(lower))
            self._upper_counts.append(len(upper))
            points.append(BoxPoint(
                fill=category,
                min=row["min"], q1=row["lower"], q2=row["middle"], q3=row["upper"], max=row["max"],
                lower_outliers=lower, upper_outliers=upper,
            ))
        return points

    def generate_selectors(self, tree: Optional[VisualNode], panel: Optional[PanelContext] = None) -> list:
        """One selector object per box.

        Outlier selectors use the lower/upper split found by
        :meth:`extract_data`; lower outliers are the first markers drawn.
        """
        found = self.find_master(tree, panel)
        if found is None or found.master is None:
            return []
        counter = naming.counter_of(found.master.name)
        selectors = []
        for i, box in enumerate(found.children, start=1):
            suffix = f"{counter}.{i}"
            whiskers = find_node(tree, _exact(naming.BOX_WHISKERS, suffix), scope=box)
            iqr = find_node(tree, _exact(naming.BOX_IQR, suffix), scope=box)
            median = find_node(tree, _exact(naming.BOX_MEDIAN, suffix), scope=box)
            outliers = find_node(tree, _exact(naming.BOX_OUTLIERS, suffix), scope=box)
            entry: dict = {"lowerOutliers": [], "upperOutliers": []}
            if whiskers is not None:
                entry["min"] = build_selector(whiskers.name, "path", nth_child=2)
                entry["max"] = build_selector(whiskers.name, "path", nth_child=1)
            if iqr is not None:
                entry["iq"] = build_selector(iqr.name, "path")
            if median is not None:
                entry["q2"] = build_selector(median.name, "path")
            if outliers is not None:
                lower = self._lower_counts[i - 1] if i - 1 < len(self._lower_counts) else 0
                upper = self._upper_counts[i - 1] if i - 1 < len(self._upper_counts) else 0
                if lower:
                    entry["lowerOutliers"] = [
                        build_selector(outliers.name, "use", qualifier=f":nth-of-type(-n+{lower})")]
                if upper:
                    entry["upperOutliers"] = [
                        build_selector(outliers.name, "use", qualifier=f":nth-of-type(n+{lower + 1})")]
            selectors.append(entry)
        return selectors


def _exact(prefix: str, suffix: str) -> "re.Pattern[str]":
    return re.compile("^" + re.escape(f"{prefix}.{suffix}") + "$")
