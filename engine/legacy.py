"""
Translate a log of imperative plotting calls into a chart description.

Calls are classified as

    PLOT        bar, barh, hist, plot, scatter, boxplot, imshow
    DECORATION  title, xlabel, ylabel, legend, text, grid
    LAYOUT      figure, subplot, subplots

Every ``subplot`` call starts a new panel.  Within a panel, consecutive
``bar`` calls merge into one layer (stacked when a later call passes
``bottom``, dodged when the calls carry distinct labels, plain
otherwise) and consecutive ``plot`` calls merge into one multi-line
layer.  One panel gives a PlotSpec, several give a CompositionSpec.

Argument names follow pyplot (``x``/``height`` for bars, ``x``/``y`` for
lines and scatter, ``X`` for imshow); see the ``_layer_*`` builders.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

import pandas as pd

from data_ops.call_log import CallLog
from rendering.spec import Aesthetics, AxisLabels, CompositionSpec, LayerSpec, PlotSpec, Position

from .logging import get_logger, tagged

logger = get_logger()


class CallClass(str, Enum):
    PLOT = "plot"
    DECORATION = "decoration"
    LAYOUT = "layout"
    UNKNOWN = "unknown"


FUNCTION_CLASSES: dict[CallClass, frozenset] = {
    CallClass.PLOT: frozenset({"bar", "barh", "hist", "plot", "scatter", "boxplot", "imshow"}),
    CallClass.DECORATION: frozenset({"title", "xlabel", "ylabel", "legend", "text", "grid"}),
    CallClass.LAYOUT: frozenset({"figure", "subplot", "subplots"}),
}

# Calls of these functions merge with an immediately preceding call of the same function.
_MERGEABLE = frozenset({"bar", "plot"})


def base_name(function: str) -> str:
    """``plt.bar`` / ``ax.bar`` / ``bar`` -> ``bar``."""
    return function.rsplit(".", 1)[-1].lower()


def classify(function: str) -> CallClass:
    name = base_name(function)
    for call_class, names in FUNCTION_CLASSES.items():
        if name in names:
            return call_class
    return CallClass.UNKNOWN


@dataclass
class PanelCalls:
    """Calls that target one panel, in call order."""

    plots: list[dict] = field(default_factory=list)
    decorations: list[dict] = field(default_factory=list)


def group_calls(records: list[dict]) -> tuple[list[PanelCalls], Optional[int]]:
    """Split call records into panels.

    Returns:
        (panels, ncol) where ncol comes from the last layout call that set
        one, or None.
    """
    panels: list[PanelCalls] = []
    current: Optional[PanelCalls] = None
    ncol = None
    for rec in records:
        name = base_name(rec.get("function", ""))
        call_class = classify(name)
        args = rec.get("args") or {}
        if call_class == CallClass.LAYOUT:
            if args.get("ncols"):
                ncol = int(args["ncols"])
            if name == "subplot":
                current = PanelCalls()
                panels.append(current)
            continue
        if call_class == CallClass.UNKNOWN:
            logger.debug(f"Ignoring unrecognised call '{rec.get('function')}'", extra=tagged("legacy"))
            continue
        if current is None:
            current = PanelCalls()
            panels.append(current)
        target = current.plots if call_class == CallClass.PLOT else current.decorations
        target.append({"function": name, "args": args, "id": rec.get("id")})
    return panels, ncol


def merge_runs(calls: list[dict]) -> list[list[dict]]:
    """Group consecutive calls of a mergeable function together."""
    runs: list[list[dict]] = []
    for call in calls:
        if runs and call["function"] in _MERGEABLE and runs[-1][0]["function"] == call["function"]:
            runs[-1].append(call)
        else:
            runs.append([call])
    return runs


# ---- Layer builders -----------------------------------------------------------

def _values(args: dict, *names: str) -> list:
    for name in names:
        if args.get(name) is not None:
            value = args[name]
            return list(value) if isinstance(value, (list, tuple)) else [value]
    return []


def _bar_frame(call: dict, series: str) -> pd.DataFrame:
    args = call["args"]
    if call["function"] == "barh":
        x, y = _values(args, "y", "x"), _values(args, "width", "height")
    else:
        x, y = _values(args, "x"), _values(args, "height", "y")
    return pd.DataFrame({"x": x, "y": y, "series": [series] * len(x)})


def _series_label(call: dict, i: int, prefix: str) -> str:
    label = call["args"].get("label")
    return str(label) if label is not None else f"{prefix} {i + 1}"


def _palette(run: list[dict], labels: list[str]) -> dict:
    colors = {}
    for call, label in zip(run, labels):
        color = call["args"].get("color")
        if isinstance(color, str):
            colors[label] = color
    return colors


def _layer_bars(run: list[dict]) -> LayerSpec:
    labels = [_series_label(call, i, "series") for i, call in enumerate(run)]
    data = pd.concat([_bar_frame(call, label) for call, label in zip(run, labels)], ignore_index=True)
    if len(run) == 1:
        return LayerSpec("col", Aesthetics(x="x", y="y"), data=data[["x", "y"]])
    params = {}
    palette = _palette(run, labels)
    if palette:
        params["palette"] = palette
    if any(call["args"].get("bottom") is not None for call in run[1:]):
        position = Position.STACK
    elif all(call["args"].get("label") is not None for call in run) and len(set(labels)) == len(labels):
        position = Position.DODGE
    else:
        return LayerSpec("col", Aesthetics(x="x", y="y"), position=Position.IDENTITY, data=data[["x", "y"]])
    categories = list(dict.fromkeys(labels))
    if position == Position.STACK:
        # the first call is drawn at the bottom; the highest level stacks lowest
        categories.reverse()
    data["series"] = pd.Categorical(data["series"], categories=categories)
    return LayerSpec("col", Aesthetics(x="x", y="y", fill="series"), position=position, data=data, params=params)


def _layer_lines(run: list[dict]) -> LayerSpec:
    frames = []
    for i, call in enumerate(run):
        args = call["args"]
        y = _values(args, "y")
        x = _values(args, "x") or list(range(len(y)))
        if not y:
            # plot(values) records the values as x
            y, x = x, list(range(len(x)))
        frames.append(pd.DataFrame({"x": x, "y": y, "series": _series_label(call, i, "line")}))
    data = pd.concat(frames, ignore_index=True)
    if len(run) == 1:
        return LayerSpec("line", Aesthetics(x="x", y="y"), data=data[["x", "y"]])
    return LayerSpec("line", Aesthetics(x="x", y="y", color="series"), data=data)


def _layer_hist(call: dict) -> LayerSpec:
    args = call["args"]
    params = {"bins": int(args["bins"])} if isinstance(args.get("bins"), int) else {}
    return LayerSpec("histogram", Aesthetics(x="x"), data=pd.DataFrame({"x": _values(args, "x")}), params=params)


def _layer_scatter(call: dict) -> LayerSpec:
    args = call["args"]
    return LayerSpec("point", Aesthetics(x="x", y="y"),
                     data=pd.DataFrame({"x": _values(args, "x"), "y": _values(args, "y")}))


def _layer_boxplot(call: dict) -> LayerSpec:
    args = call["args"]
    values = _values(args, "x", "data")
    if values and isinstance(values[0], (list, tuple)):
        labels = _values(args, "labels") or [str(i + 1) for i in range(len(values))]
        rows = [(str(label), v) for label, group in zip(labels, values) for v in group]
        data = pd.DataFrame(rows, columns=["group", "value"])
        data["group"] = pd.Categorical(data["group"], categories=[str(label) for label in labels])
        return LayerSpec("boxplot", Aesthetics(x="group", y="value"), data=data)
    return LayerSpec("boxplot", Aesthetics(y="value"), data=pd.DataFrame({"value": values}))


def _layer_imshow(call: dict) -> LayerSpec:
    args = call["args"]
    matrix = args.get("X") or args.get("data") or []
    n_cols = len(matrix[0]) if matrix else 0
    x_labels = [str(v) for v in (_values(args, "xlabels") or range(n_cols))]
    y_labels = [str(v) for v in (_values(args, "ylabels") or range(len(matrix)))]
    rows = [(x_labels[j], y_labels[i], value)
            for i, row in enumerate(matrix) for j, value in enumerate(row)]
    data = pd.DataFrame(rows, columns=["x", "y", "value"])
    # First matrix row is drawn at the top, so it is the highest y level.
    data["y"] = pd.Categorical(data["y"], categories=list(reversed(y_labels)))
    data["x"] = pd.Categorical(data["x"], categories=x_labels)
    return LayerSpec("tile", Aesthetics(x="x", y="y", fill="value"), data=data)


def _layer(run: list[dict]) -> LayerSpec:
    name = run[0]["function"]
    if name in ("bar", "barh"):
        return _layer_bars(run)
    if name == "plot":
        return _layer_lines(run)
    builders = {
        "hist": _layer_hist,
        "scatter": _layer_scatter,
        "boxplot": _layer_boxplot,
        "imshow": _layer_imshow,
    }
    return builders[name](run[0])


def _panel_plot(panel: PanelCalls) -> PlotSpec:
    layers = [_layer(run) for run in merge_runs(panel.plots)]
    title, labels = "", {}
    for call in panel.decorations:
        name, args = call["function"], call["args"]
        text = args.get("label", args.get("s", args.get(name)))
        if name == "title" and text is not None:
            title = str(text)
        elif name in ("xlabel", "ylabel") and text is not None:
            labels[name[0]] = str(text)
    return PlotSpec(layers=tuple(layers), title=title, labels=AxisLabels(**labels))


def translate_call_log(log: Union[CallLog, list[dict]]) -> Union[PlotSpec, CompositionSpec]:
    """Build the chart description a sequence of plotting calls drew.

    Args:
        log: A CallLog or its records.

    Returns:
        A PlotSpec for a single panel, else a CompositionSpec with one
        leaf per panel.
    """
    records = log.get_records() if isinstance(log, CallLog) else list(log)
    panels, ncol = group_calls(records)
    plots = [_panel_plot(panel) for panel in panels]
    logger.debug(f"Translated {len(records)} call(s) into {len(plots)} panel(s)", extra=tagged("legacy"))
    if len(plots) <= 1:
        return plots[0] if plots else PlotSpec()
    return CompositionSpec(plots=tuple(plots), ncol=ncol)
