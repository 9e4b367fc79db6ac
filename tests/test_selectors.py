"""Tests for rendering.selectors: identifier escaping and selector building."""

import pytest

from rendering.selectors import build_selector, escape_identifier, selector_node_name, unescape_identifier


class TestEscapeIdentifier:
    def test_dots_are_escaped(self):
        assert escape_identifier("bar.rect.1") == r"bar\.rect\.1"

    def test_leading_digit_becomes_code_point(self):
        assert escape_identifier("1abc") == "\\31 abc"

    def test_digit_after_leading_hyphen(self):
        assert escape_identifier("-1a") == "-\\31 a"

    def test_lone_hyphen(self):
        assert escape_identifier("-") == "\\-"

    def test_plain_identifier_unchanged(self):
        assert escape_identifier("panel-1_a") == "panel-1_a"

    def test_non_ascii_kept(self):
        assert escape_identifier("größe") == "größe"

    def test_control_character(self):
        assert escape_identifier("a\x01b") == "a\\1 b"

    def test_nul_replaced(self):
        assert escape_identifier("a\x00") == "a�"

    def test_special_characters(self):
        assert escape_identifier("a b#c:d") == r"a\ b\#c\:d"


class TestRoundTrip:
    @pytest.mark.parametrize("name", [
        "bar.rect.1",
        "box.whiskers.12.3",
        "9lives",
        "-5x",
        "a b(c)",
        "tab\there",
        "ünïcode.1",
    ])
    def test_unescape_recovers_name(self, name):
        assert unescape_identifier(escape_identifier(name)) == name

    @pytest.mark.parametrize("name", ["bar.rect.7", "line.polyline.2", "3d.plot", "a:b"])
    def test_selector_node_name_recovers_name(self, name):
        assert selector_node_name(build_selector(name, "path", nth_child=2)) == name


class TestBuildSelector:
    def test_container_with_tag(self):
        assert build_selector("bar.rect.3", "path") == r"#bar\.rect\.3 path"

    def test_nth_child(self):
        assert build_selector("line.polyline.1", "path", nth_child=2) == r"#line\.polyline\.1 > g:nth-child(2) path"

    def test_qualifier(self):
        sel = build_selector("box.outliers.1.1", "use", qualifier=":nth-of-type(-n+2)")
        assert sel == r"#box\.outliers\.1\.1 use:nth-of-type(-n+2)"

    def test_node_itself(self):
        assert build_selector("panel-1-1") == "#panel-1-1"

    def test_selector_node_name_rejects_non_id(self):
        with pytest.raises(ValueError):
            selector_node_name("g path")
