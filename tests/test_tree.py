"""Tests for rendering.tree: walking and searching rendered trees."""

import re

from rendering.tree import (
    Bounds, NodeKind, VisualNode,
    describe, find_master_and_children, find_node, find_nodes, find_panel, panels_of, walk,
)


def _make_tree():
    """figure > two panels, each with a bar container; a box master in panel 2."""
    root = VisualNode(NodeKind.CONTAINER, "figure")
    p1 = root.add(VisualNode(NodeKind.PANEL, "panel-1-1", bounds=Bounds(10, 10, 100, 100)))
    bars1 = p1.add(VisualNode(NodeKind.CONTAINER, "bar.rect.1"))
    bars1.add(VisualNode(NodeKind.RECT, "bar.rect.1.1", label="a"))
    bars1.add(VisualNode(NodeKind.RECT, "bar.rect.1.2", label="b"))
    p2 = root.add(VisualNode(NodeKind.PANEL, "panel-1-2", bounds=Bounds(10, 120, 100, 100)))
    bars2 = p2.add(VisualNode(NodeKind.CONTAINER, "bar.rect.2"))
    bars2.add(VisualNode(NodeKind.RECT, "bar.rect.2.1", label="a"))
    box = p2.add(VisualNode(NodeKind.CONTAINER, "box.group.3"))
    box.add(VisualNode(NodeKind.CONTAINER, "box.group.3.1"))
    box.add(VisualNode(NodeKind.CONTAINER, "box.group.3.2"))
    box.add(VisualNode(NodeKind.POLYGON, "legend"))
    return root


class TestWalk:
    def test_pre_order_document_order(self):
        names = [n.name for n in walk(_make_tree())]
        assert names[:5] == ["figure", "panel-1-1", "bar.rect.1", "bar.rect.1.1", "bar.rect.1.2"]
        assert names[5] == "panel-1-2"

    def test_none_tree_yields_nothing(self):
        assert list(walk(None)) == []


class TestFindNodes:
    def test_regex_search_semantics(self):
        tree = _make_tree()
        found = find_nodes(tree, r"^bar\.rect\.\d+$")
        assert [n.name for n in found] == ["bar.rect.1", "bar.rect.2"]

    def test_scope_restricts_search(self):
        tree = _make_tree()
        scope = find_panel(tree, "panel-1-2")
        found = find_nodes(tree, r"^bar\.rect\.\d+$", scope=scope)
        assert [n.name for n in found] == ["bar.rect.2"]

    def test_kind_filter(self):
        tree = _make_tree()
        assert find_nodes(tree, "bar", kind=NodeKind.RECT)[0].name == "bar.rect.1.1"
        assert find_nodes(tree, "panel", kind=NodeKind.RECT) == []

    def test_no_match_is_empty_not_error(self):
        assert find_nodes(_make_tree(), "nothing-here") == []
        assert find_node(_make_tree(), "nothing-here") is None

    def test_compiled_pattern_accepted(self):
        found = find_nodes(_make_tree(), re.compile(r"rect\.2\.1$"))
        assert [n.name for n in found] == ["bar.rect.2.1"]


class TestFindPanel:
    def test_exact_match(self):
        assert find_panel(_make_tree(), "panel-1-2").name == "panel-1-2"

    def test_prefix_match_with_suffix(self):
        root = VisualNode(NodeKind.CONTAINER, "figure")
        root.add(VisualNode(NodeKind.PANEL, "panel-2-1-main"))
        assert find_panel(root, "panel-2-1").name == "panel-2-1-main"

    def test_prefix_does_not_match_longer_number(self):
        root = VisualNode(NodeKind.CONTAINER, "figure")
        root.add(VisualNode(NodeKind.PANEL, "panel-1-23"))
        assert find_panel(root, "panel-1-2") is None

    def test_panels_of_in_document_order(self):
        assert [p.name for p in panels_of(_make_tree())] == ["panel-1-1", "panel-1-2"]


class TestMasterAndChildren:
    def test_children_extend_master_name(self):
        found = find_master_and_children(_make_tree(), r"box\.group\.\d+")
        assert found.master.name == "box.group.3"
        assert [c.name for c in found.children] == ["box.group.3.1", "box.group.3.2"]

    def test_fullmatch_required(self):
        found = find_master_and_children(_make_tree(), r"box\.group")
        assert found.master is None
        assert found.children == []


class TestDescribe:
    def test_outline_includes_labels(self):
        text = describe(_make_tree())
        assert "rect bar.rect.1.1 [a]" in text
        assert text.splitlines()[0] == "container figure"
