"""
Node naming conventions shared by the renderer and the layer processors.

Every drawable group gets a dotted name ``<geom>.<role>.<n>`` where ``n``
is a counter owned by one render pass (it is not the layer index).  Child
elements append ``.<i>`` in draw order.  Panels are named
``panel-<row>-<col>`` for facets and ``panel-<k>`` for composition cells.

The regular expressions here are what processors search for, so changing
a name format in the renderer means changing it here as well.
"""

from __future__ import annotations

import itertools
import re

BAR_CONTAINER = "bar.rect"
LINE_CONTAINER = "line.polyline"
POINT_CONTAINER = "point.markers"
BOX_MASTER = "box.group"
BOX_WHISKERS = "box.whiskers"
BOX_IQR = "box.iqr"
BOX_MEDIAN = "box.median"
BOX_OUTLIERS = "box.outliers"
SMOOTH_CONTAINER = "smooth.group"
TILE_CONTAINER = "tile.rect"
TEXT_CONTAINER = "text.labels"


LINE_GEOMS = frozenset({"line", "path", "step"})
BAR_GEOMS = frozenset({"bar", "col", "histogram"})
HEAT_GEOMS = frozenset({"tile", "raster"})
POINT_GEOMS = frozenset({"point", "scatter"})
TEXT_GEOMS = frozenset({"text", "label"})

# compute key -> container family it is drawn into
_CONTAINERS = {
    "bar": BAR_CONTAINER,
    "histogram": BAR_CONTAINER,
    "line": LINE_CONTAINER,
    "point": POINT_CONTAINER,
    "box": BOX_MASTER,
    "smooth": SMOOTH_CONTAINER,
    "density": SMOOTH_CONTAINER,
    "tile": TILE_CONTAINER,
    "text": TEXT_CONTAINER,
}


def compute_key(geom: str, stat: str | None = None) -> str | None:
    """How a geom/stat pair is computed and drawn, or None if it is not drawn.

    The same precedence classifies layers into geometry kinds, so a layer
    is always searched for in the family it was drawn into.
    """
    if geom in LINE_GEOMS:
        return "line"
    if geom == "density" or stat == "density":
        return "density"
    if geom == "smooth":
        return "smooth"
    if geom in BAR_GEOMS:
        return "histogram" if stat == "bin" or geom == "histogram" else "bar"
    if geom in HEAT_GEOMS:
        return "tile"
    if geom in POINT_GEOMS:
        return "point"
    if geom == "boxplot":
        return "box"
    if geom in TEXT_GEOMS:
        return "text"
    return None


def container_for_geom(geom: str, stat: str | None = None) -> str | None:
    """Container prefix the renderer uses for a layer, or None if not drawn."""
    return _CONTAINERS.get(compute_key(geom, stat))


def container_pattern(prefix: str) -> "re.Pattern[str]":
    """Regex matching a layer container ``<prefix>.<n>`` and nothing deeper."""
    return re.compile(r"^" + re.escape(prefix) + r"\.\d+$")


def counter_of(name: str) -> int | None:
    """Trailing counter of a container name (``bar.rect.7`` -> 7)."""
    match = re.search(r"\.(\d+)$", name)
    return int(match.group(1)) if match else None


def facet_panel_name(row: int, col: int) -> str:
    return f"panel-{row}-{col}"


def composition_panel_name(index: int) -> str:
    return f"panel-{index}"


class NameAllocator:
    """Hands out container names for one render pass."""

    def __init__(self):
        self._counter = itertools.count(1)

    def container(self, prefix: str) -> str:
        return f"{prefix}.{next(self._counter)}"

    @staticmethod
    def child(container: str, index: int) -> str:
        return f"{container}.{index}"
