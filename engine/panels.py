"""
Panel / composition discovery.

Maps each logical panel (1-based row, col) of a faceted plot or a
composition onto the rendered panel subtree it was drawn into:

    1. exact name ``panel-<row>-<col>``
    2. the same name followed by a renderer suffix (``panel-1-2-a``)
    3. otherwise every rendered panel is ranked by its rounded top and left
       coordinates; the n-th distinct top is row n, the n-th distinct left
       is column n

Discovery is a pure function of the tree, so running it twice on the
same tree gives the same assignment.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from processors.types import PanelContext
from rendering.base import BuiltPlot
from rendering.naming import facet_panel_name
from rendering.spec import CompositionSpec
from rendering.tree import VisualNode, find_panel, panels_of

from .errors import PanelMismatchError
from .logging import get_logger, tagged

logger = get_logger()


@dataclass(frozen=True)
class LogicalPanel:
    row: int
    col: int
    panel_id: int = 1
    facets: dict = field(default_factory=dict, compare=False)

    @property
    def expected_name(self) -> str:
        return facet_panel_name(self.row, self.col)


def facet_layout(built: BuiltPlot) -> list[LogicalPanel]:
    """Logical panels of a faceted plot, in PANEL order."""
    facet_columns = [c for c in built.panels.columns if c not in ("PANEL", "ROW", "COL")]
    return [
        LogicalPanel(
            row=int(panel["ROW"]),
            col=int(panel["COL"]),
            panel_id=int(panel["PANEL"]),
            facets={c: panel[c] for c in facet_columns},
        )
        for _, panel in built.panels.iterrows()
    ]


def composition_layout(spec: CompositionSpec) -> list[LogicalPanel]:
    """One logical panel per leaf plot, leaves numbered from 1."""
    return [LogicalPanel(row=row, col=col, panel_id=i + 1)
            for i, (row, col) in enumerate(spec.positions())]


def _by_name(tree: VisualNode, layout: list[LogicalPanel]) -> Optional[list[VisualNode]]:
    nodes = []
    for logical in layout:
        node = find_panel(tree, logical.expected_name)
        if node is None:
            return None
        nodes.append(node)
    if len({id(n) for n in nodes}) != len(nodes):
        return None
    return nodes


def _by_position(rendered: list[VisualNode], layout: list[LogicalPanel]) -> list[VisualNode]:
    if any(node.bounds is None for node in rendered):
        raise PanelMismatchError("Rendered panels carry neither row/col names nor bounds",
                                 expected=len(layout), found=len(rendered))
    tops = sorted({round(node.bounds.top) for node in rendered})
    lefts = sorted({round(node.bounds.left) for node in rendered})
    placed: dict[tuple[int, int], VisualNode] = {}
    for node in rendered:
        key = (tops.index(round(node.bounds.top)) + 1, lefts.index(round(node.bounds.left)) + 1)
        if key in placed:
            raise PanelMismatchError(
                f"Panels '{placed[key].name}' and '{node.name}' share row {key[0]}, column {key[1]}",
                expected=len(layout), found=len(rendered),
            )
        placed[key] = node
    nodes = []
    for logical in layout:
        node = placed.get((logical.row, logical.col))
        if node is None:
            raise PanelMismatchError(
                f"No rendered panel at row {logical.row}, column {logical.col}",
                expected=len(layout), found=len(rendered),
            )
        nodes.append(node)
    return nodes


def discover_panels(tree: VisualNode, layout: list[LogicalPanel]) -> list[PanelContext]:
    """Align logical panels with rendered panel subtrees.

    Args:
        tree: Rendered tree of one render pass.
        layout: Logical panels with 1-based, unique (row, col).

    Returns:
        One PanelContext per logical panel, in layout order.

    Raises:
        PanelMismatchError: panel counts differ or a panel cannot be placed.
    """
    rendered = panels_of(tree)
    if len(rendered) != len(layout):
        raise PanelMismatchError(
            f"Expected {len(layout)} panels, rendered tree has {len(rendered)}",
            expected=len(layout), found=len(rendered),
        )
    nodes = _by_name(tree, layout)
    if nodes is None:
        logger.debug("Panel names do not encode row/col; ranking by position", extra=tagged("panels"))
        nodes = _by_position(rendered, layout)
    return [
        PanelContext(
            panel_name=node.name,
            row=logical.row,
            col=logical.col,
            panel_id=logical.panel_id,
            facets=dict(logical.facets),
        )
        for logical, node in zip(layout, nodes)
    ]


def unresolved_panels(layout: list[LogicalPanel]) -> list[PanelContext]:
    """Contexts for panels that could not be aligned; they get no selectors."""
    return [
        PanelContext(panel_name=None, row=logical.row, col=logical.col,
                     panel_id=logical.panel_id, facets=dict(logical.facets))
        for logical in layout
    ]
