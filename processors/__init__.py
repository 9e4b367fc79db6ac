"""Layer processors: one per geometry kind, selected through the factory."""

from .base import LayerInfo, LayerProcessor
from .factory import PROCESSORS, create_processor, fallback_processor
from .types import LayerResult, PanelContext, SeriesGroup

__all__ = [
    "LayerInfo",
    "LayerProcessor",
    "PROCESSORS",
    "create_processor",
    "fallback_processor",
    "LayerResult",
    "PanelContext",
    "SeriesGroup",
]
