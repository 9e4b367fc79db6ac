"""
Geometry kind detection.

Precedence, first match wins:

    1. line / path / step                       -> LINE
    2. density geom or density stat, smooth     -> SMOOTH
    3. bar / col / histogram:
         bin stat or histogram geom             -> HISTOGRAM
         dodge position                         -> DODGED_BAR
         stack / fill position with a fill      -> STACKED_BAR
         anything else                          -> BAR
    4. tile / raster                            -> HEAT
    5. point / scatter                          -> POINT
    6. boxplot                                  -> BOX
    7. text / label                             -> SKIP
    8. anything else                            -> UNKNOWN

The precedence lives in ``rendering.naming.compute_key`` so that the kind
and the container family a layer is drawn into cannot disagree.
"""

from __future__ import annotations

from typing import Optional

from rendering.naming import compute_key
from rendering.spec import GeometryKind, LayerSpec, PlotSpec, Position

_KINDS = {
    "line": GeometryKind.LINE,
    "density": GeometryKind.SMOOTH,
    "smooth": GeometryKind.SMOOTH,
    "histogram": GeometryKind.HISTOGRAM,
    "tile": GeometryKind.HEAT,
    "point": GeometryKind.POINT,
    "box": GeometryKind.BOX,
    "text": GeometryKind.SKIP,
}


def detect_kind(layer: LayerSpec, plot: Optional[PlotSpec] = None) -> GeometryKind:
    """Classify *layer*; plot-level bindings count when *plot* is given."""
    key = compute_key(layer.geom, layer.stat)
    if key == "bar":
        if layer.position == Position.DODGE:
            return GeometryKind.DODGED_BAR
        if layer.position in (Position.STACK, Position.FILL) and layer.binding("fill", plot):
            return GeometryKind.STACKED_BAR
        return GeometryKind.BAR
    return _KINDS.get(key, GeometryKind.UNKNOWN)
