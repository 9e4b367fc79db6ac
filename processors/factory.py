"""Geometry kind -> processor class lookup."""

from __future__ import annotations

from rendering.spec import GeometryKind

from .bar import BarProcessor
from .base import LayerInfo, LayerProcessor
from .box import BoxProcessor
from .dodged_bar import DodgedBarProcessor
from .heatmap import HeatmapProcessor
from .histogram import HistogramProcessor
from .line import LineProcessor
from .point import PointProcessor
from .smooth import SmoothProcessor
from .stacked_bar import StackedBarProcessor
from .unknown import SkipProcessor, UnknownProcessor

PROCESSORS: dict[GeometryKind, type[LayerProcessor]] = {
    GeometryKind.BAR: BarProcessor,
    GeometryKind.STACKED_BAR: StackedBarProcessor,
    GeometryKind.DODGED_BAR: DodgedBarProcessor,
    GeometryKind.HISTOGRAM: HistogramProcessor,
    GeometryKind.LINE: LineProcessor,
    GeometryKind.POINT: PointProcessor,
    GeometryKind.BOX: BoxProcessor,
    GeometryKind.SMOOTH: SmoothProcessor,
    GeometryKind.HEAT: HeatmapProcessor,
    GeometryKind.SKIP: SkipProcessor,
    GeometryKind.UNKNOWN: UnknownProcessor,
}

_missing = set(GeometryKind) - set(PROCESSORS)
if _missing:
    raise RuntimeError(f"No processor registered for: {sorted(k.value for k in _missing)}")


def create_processor(kind: GeometryKind, info: LayerInfo) -> LayerProcessor:
    """Instantiate the processor for *kind*."""
    return PROCESSORS[kind](info)


def fallback_processor(info: LayerInfo) -> LayerProcessor:
    """Processor used when a layer degrades to unknown."""
    return UnknownProcessor(info)
