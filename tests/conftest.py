"""Shared fixtures. Log files go to a throwaway data directory."""

import os
import tempfile

os.environ.setdefault("MAIDR_HOME", tempfile.mkdtemp(prefix="maidr-tests-"))

import matplotlib  # noqa: E402

matplotlib.use("Agg")

import pandas as pd  # noqa: E402
import pytest  # noqa: E402

from rendering.mpl_renderer import MatplotlibRenderer  # noqa: E402


@pytest.fixture
def renderer():
    return MatplotlibRenderer(width=6.0, height=4.0, dpi=72, histogram_bins=5, whisker_range=1.5)


@pytest.fixture
def counter_ids():
    """Deterministic id factory: id-1, id-2, ..."""
    state = {"n": 0}

    def _next():
        state["n"] += 1
        return f"id-{state['n']}"

    return _next


@pytest.fixture
def sales():
    """Long-format counts: 3 regions x 3 products."""
    return pd.DataFrame({
        "region": ["north", "north", "north", "south", "south", "south", "west", "west", "west"],
        "product": ["A", "B", "C", "A", "B", "C", "A", "B", "C"],
        "units": [5.0, 3.0, 2.0, 4.0, 6.0, 1.0, 2.0, 2.0, 7.0],
    })
