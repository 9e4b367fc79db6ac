"""
Rendered visual-node tree and the generic search over it.

A renderer describes what it drew as a tree of VisualNode objects.  Each
node has a kind tag, a renderer-assigned name (the basis for selectors),
ordered children in draw order, and optionally the category label it
represents and its on-canvas bounds.

Search is one depth-first pre-order walk parameterised by a predicate.
Every helper returns an empty result instead of raising when nothing
matches; callers decide what an empty match means.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterator, Optional, Union


class NodeKind(str, Enum):
    CONTAINER = "container"
    PANEL = "panel"
    RECT = "rect"
    POLYLINE = "polyline"
    POLYGON = "polygon"
    MARKER = "marker"
    TEXT = "text"


@dataclass(frozen=True)
class Bounds:
    """Placement on the canvas in pixels, origin at the top-left corner."""

    top: float
    left: float
    width: float = 0.0
    height: float = 0.0


@dataclass
class VisualNode:
    kind: NodeKind
    name: str
    children: list[VisualNode] = field(default_factory=list)
    label: Optional[str] = None
    bounds: Optional[Bounds] = None

    def add(self, child: VisualNode) -> VisualNode:
        self.children.append(child)
        return child

    def __iter__(self) -> Iterator[VisualNode]:
        return iter(self.children)

    def __len__(self) -> int:
        return len(self.children)


@dataclass
class MasterChildren:
    """A master container plus its direct per-element child containers."""

    master: Optional[VisualNode] = None
    children: list[VisualNode] = field(default_factory=list)


Pattern = Union[str, "re.Pattern[str]"]


def _compile(pattern: Pattern) -> "re.Pattern[str]":
    if isinstance(pattern, re.Pattern):
        return pattern
    return re.compile(pattern)


# ---------------------------------------------------------------------------
# Walking
# ---------------------------------------------------------------------------

def walk(tree: Optional[VisualNode]) -> Iterator[VisualNode]:
    """Yield every node depth-first, pre-order, in document order."""
    if tree is None:
        return
    stack = [tree]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def search(
    tree: Optional[VisualNode],
    predicate: Callable[[VisualNode], bool],
    scope: Optional[VisualNode] = None,
) -> list[VisualNode]:
    """Return nodes satisfying *predicate* under *scope* (or the whole tree)."""
    root = scope if scope is not None else tree
    return [node for node in walk(root) if predicate(node)]


def find_nodes(
    tree: Optional[VisualNode],
    pattern: Pattern,
    scope: Optional[VisualNode] = None,
    kind: Optional[NodeKind] = None,
) -> list[VisualNode]:
    """Find nodes whose name matches *pattern* (``re.search`` semantics).

    Args:
        tree: Root of the rendered tree.
        pattern: Regex string or compiled pattern matched against names.
        scope: Optional subtree to restrict the search to.
        kind: Optional node kind the matches must have.

    Returns:
        Matching nodes in document order; empty when nothing matches.
    """
    regex = _compile(pattern)

    def _match(node: VisualNode) -> bool:
        if kind is not None and node.kind != kind:
            return False
        return bool(node.name) and regex.search(node.name) is not None

    return search(tree, _match, scope)


def find_node(
    tree: Optional[VisualNode],
    pattern: Pattern,
    scope: Optional[VisualNode] = None,
    kind: Optional[NodeKind] = None,
) -> Optional[VisualNode]:
    """First match of :func:`find_nodes`, or None."""
    matches = find_nodes(tree, pattern, scope, kind)
    return matches[0] if matches else None


def find_panel(tree: Optional[VisualNode], name: str) -> Optional[VisualNode]:
    """Locate a panel subtree by exact name, then by prefix.

    The prefix fallback tolerates renderer suffixes (``panel-1-2-a``) but not
    a longer number (``panel-1-23`` never matches ``panel-1-2``).
    """
    panels = search(tree, lambda n: n.kind == NodeKind.PANEL)
    for node in panels:
        if node.name == name:
            return node
    prefix = re.compile(re.escape(name) + r"(?!\d)")
    for node in panels:
        if prefix.match(node.name):
            return node
    return None


def find_master_and_children(
    tree: Optional[VisualNode],
    container_pattern: Pattern,
    scope: Optional[VisualNode] = None,
) -> MasterChildren:
    """Find a master container and its child containers.

    The master is the first node whose name fully matches
    *container_pattern*; children are its direct children whose names
    extend the master's name with a dotted suffix.
    """
    regex = _compile(container_pattern)
    root = scope if scope is not None else tree
    for node in walk(root):
        if node.name and regex.fullmatch(node.name):
            children = [c for c in node.children if c.name.startswith(node.name + ".")]
            return MasterChildren(master=node, children=children)
    return MasterChildren()


def panels_of(tree: Optional[VisualNode]) -> list[VisualNode]:
    """All panel nodes in document order."""
    return search(tree, lambda n: n.kind == NodeKind.PANEL)


def describe(tree: Optional[VisualNode], indent: int = 0) -> str:
    """Indented text outline of a tree, for logs and debugging."""
    if tree is None:
        return ""
    lines = [f"{'  ' * indent}{tree.kind.value} {tree.name}"
             + (f" [{tree.label}]" if tree.label is not None else "")]
    for child in tree.children:
        lines.append(describe(child, indent + 1))
    return "\n".join(lines)
