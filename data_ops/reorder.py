"""
Order-imposing dataset transforms.

Every function returns a new DataFrame; the input is never modified.
Sorts are stable (mergesort) so rows that compare equal keep their
relative input order, which keeps facet panels and ties deterministic.
"""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np
import pandas as pd


def category_levels(values) -> list:
    """Ordered distinct levels of a column.

    A pandas Categorical keeps its declared category order (only levels
    that actually occur).  Anything else is sorted; mixed types that
    cannot be compared fall back to sorting by their string form.
    Missing values are dropped.
    """
    series = values if isinstance(values, pd.Series) else pd.Series(values)
    if isinstance(series.dtype, pd.CategoricalDtype):
        present = set(series.dropna().unique())
        return [c for c in series.cat.categories if c in present]
    unique = list(pd.unique(series.dropna()))
    try:
        return sorted(unique)
    except TypeError:
        return sorted(unique, key=str)


def first_appearance(values) -> list:
    """Distinct non-missing values in order of first appearance."""
    series = values if isinstance(values, pd.Series) else pd.Series(values)
    return list(pd.unique(series.dropna()))


def level_rank(values: pd.Series, levels: Sequence, descending: bool = False) -> pd.Series:
    """Map each value to its position in *levels* (unknown values sort last)."""
    lookup = {level: i for i, level in enumerate(levels)}
    n = len(levels)
    ranks = values.map(lambda v: lookup.get(v, n))
    if descending:
        ranks = ranks.map(lambda r: n - 1 - r if r < n else n)
    return ranks.astype(int)


def sort_by_levels(
    data: pd.DataFrame,
    keys: Sequence[str],
    levels: Optional[dict] = None,
    descending: Sequence[str] = (),
) -> pd.DataFrame:
    """Stable sort of *data* by the level order of several columns.

    Args:
        data: Dataset to sort (left untouched).
        keys: Columns to sort by, most significant first.
        levels: Optional explicit level order per column; columns without
            one use :func:`category_levels`.
        descending: Columns whose level order is reversed.

    Returns:
        A reordered copy with its original index preserved.
    """
    if data.empty or not keys:
        return data.copy()
    levels = levels or {}
    rank_frame = pd.DataFrame(index=data.index)
    for key in keys:
        order = levels.get(key)
        if order is None:
            order = category_levels(data[key])
        rank_frame[key] = level_rank(data[key], order, descending=key in descending)
    order_idx = np.lexsort([rank_frame[k].to_numpy() for k in reversed(keys)])
    return data.iloc[order_idx].copy()


def reorder_bars(data: pd.DataFrame, x: str) -> pd.DataFrame:
    """Bars drawn in ascending x level order."""
    return sort_by_levels(data, [x])


def reorder_dodged(data: pd.DataFrame, x: str, fill: str) -> pd.DataFrame:
    """x ascending, fill descending within each x."""
    return sort_by_levels(data, [x, fill], descending=[fill])


def reorder_stacked(data: pd.DataFrame, x: str, fill: str, stacking: Sequence) -> pd.DataFrame:
    """x ascending, then fill in reverse stacking order (top segment first).

    Args:
        stacking: Fill categories bottom to top.
    """
    return sort_by_levels(data, [x, fill], levels={fill: list(reversed(list(stacking)))})


def reorder_heat(data: pd.DataFrame, x: str, y: str) -> pd.DataFrame:
    """Tiles by x level, then y level."""
    return sort_by_levels(data, [x, y])
