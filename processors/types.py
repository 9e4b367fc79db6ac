"""
Payload data types.

Every point type serializes through ``to_dict()`` using the key names the
accessibility runtime expects (``xMin``, ``lowerOutliers``, ...).  Values
are converted to plain Python scalars so payloads are JSON-serializable.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Optional, Union

import numpy as np

from rendering.spec import GeometryKind


def plain(value: Any) -> Any:
    """numpy scalars -> Python scalars; NaN -> None."""
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float) and math.isnan(value):
        return None
    return value


@dataclass
class BarPoint:
    x: Any
    y: Any
    fill: Optional[Any] = None

    def to_dict(self) -> dict:
        d = {"x": plain(self.x), "y": plain(self.y)}
        if self.fill is not None:
            d["fill"] = plain(self.fill)
        return d


@dataclass
class HistogramPoint:
    x: float
    y: float
    x_min: float
    x_max: float
    y_min: float
    y_max: float

    def to_dict(self) -> dict:
        return {
            "x": plain(self.x),
            "y": plain(self.y),
            "xMin": plain(self.x_min),
            "xMax": plain(self.x_max),
            "yMin": plain(self.y_min),
            "yMax": plain(self.y_max),
        }


@dataclass
class LinePoint:
    x: Any
    y: Any
    fill: Optional[Any] = None

    def to_dict(self) -> dict:
        d = {"x": plain(self.x), "y": plain(self.y)}
        if self.fill is not None:
            d["fill"] = plain(self.fill)
        return d


@dataclass
class ScatterPoint:
    x: Any
    y: Any
    color: Optional[Any] = None

    def to_dict(self) -> dict:
        d = {"x": plain(self.x), "y": plain(self.y)}
        if self.color is not None:
            d["color"] = plain(self.color)
        return d


@dataclass
class BoxPoint:
    """Five-number summary of one box; ``q2`` is the median."""

    fill: Any
    min: float
    q1: float
    q2: float
    q3: float
    max: float
    lower_outliers: list = field(default_factory=list)
    upper_outliers: list = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "fill": plain(self.fill),
            "min": plain(self.min),
            "q1": plain(self.q1),
            "q2": plain(self.q2),
            "q3": plain(self.q3),
            "max": plain(self.max),
            "lowerOutliers": [plain(v) for v in self.lower_outliers],
            "upperOutliers": [plain(v) for v in self.upper_outliers],
        }


@dataclass
class SmoothPoint:
    x: float
    y: float

    def to_dict(self) -> dict:
        return {"x": plain(self.x), "y": plain(self.y)}


@dataclass
class HeatmapData:
    """Cell values with rows listed top to bottom."""

    points: list[list]
    x: list
    y: list

    def to_dict(self) -> dict:
        return {
            "points": [[plain(v) for v in row] for row in self.points],
            "x": [plain(v) for v in self.x],
            "y": [plain(v) for v in self.y],
        }


Point = Union[BarPoint, HistogramPoint, LinePoint, ScatterPoint, BoxPoint, SmoothPoint]


@dataclass
class SeriesGroup:
    """Points sharing one fill/group value, in navigation order."""

    category: Any
    points: list = field(default_factory=list)

    def to_list(self) -> list[dict]:
        return [p.to_dict() for p in self.points]


def serialize_data(data) -> Any:
    if isinstance(data, HeatmapData):
        return data.to_dict()
    out = []
    for item in data:
        if isinstance(item, SeriesGroup):
            out.append(item.to_list())
        else:
            out.append(item.to_dict())
    return out


@dataclass(frozen=True)
class PanelContext:
    """Which rendered panel a layer is processed against.

    ``panel_name`` is None when the panel could not be aligned with the
    rendered tree; selectors are then left empty for that panel.
    """

    panel_name: Optional[str]
    row: int
    col: int
    layer_index: int = 0
    panel_id: int = 1
    facets: dict = field(default_factory=dict, compare=False)

    @property
    def label(self) -> str:
        return " & ".join(str(v) for v in self.facets.values())


@dataclass
class LayerResult:
    kind: GeometryKind
    data: Any = field(default_factory=list)
    selectors: list = field(default_factory=list)
    title: str = ""
    axes: dict = field(default_factory=dict)

    @classmethod
    def empty(cls, kind: GeometryKind = GeometryKind.UNKNOWN, title: str = "", axes: Optional[dict] = None) -> LayerResult:
        return cls(kind=kind, data=[], selectors=[], title=title, axes=dict(axes or {}))

    def to_payload(self, layer_id: str) -> dict:
        return {
            "id": layer_id,
            "type": self.kind.value,
            "title": self.title,
            "axes": self.axes,
            "data": serialize_data(self.data),
            "selectors": self.selectors,
        }
