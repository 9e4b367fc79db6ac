"""Fallback processors: always empty, never raise."""

from __future__ import annotations

from typing import Optional

import pandas as pd

from rendering.spec import GeometryKind
from rendering.tree import VisualNode

from .base import LayerProcessor
from .types import LayerResult, PanelContext


class UnknownProcessor(LayerProcessor):
    kind = GeometryKind.UNKNOWN

    def validate(self) -> None:
        return None

    def extract_data(self, dataset: pd.DataFrame, frame: pd.DataFrame) -> list:
        return []

    def generate_selectors(self, tree: Optional[VisualNode], panel: Optional[PanelContext] = None) -> list:
        return []

    def process(self, dataset, built, tree, panel=None, title: str = "") -> LayerResult:
        return LayerResult.empty(self.kind, title, self.axes())


class SkipProcessor(UnknownProcessor):
    """Annotation layers (text, labels) that contribute no payload layer."""

    kind = GeometryKind.SKIP
