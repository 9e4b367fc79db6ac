"""
Selector builder.

Turns a rendered node name into a CSS selector the accessibility runtime
can evaluate against the exported SVG.  Node names such as ``bar.rect.3``
contain characters that are reserved in selectors, so identifiers are
escaped with the CSSOM ``CSS.escape()`` rules and can be recovered with
:func:`unescape_identifier`.

Pure functions only; nothing here looks at a tree.
"""

from __future__ import annotations

import re
from typing import Optional

_HEX = "0123456789abcdefABCDEF"
_WHITESPACE = " \t\n\r\f"


def escape_identifier(name: str) -> str:
    """Escape *name* so it can be used as a CSS identifier.

    Follows CSSOM ``CSS.escape``: control characters and a leading digit
    become code-point escapes, a lone ``-`` is backslash-escaped, and every
    other character outside ``[A-Za-z0-9_-]`` and non-ASCII gets a
    backslash.  NUL becomes U+FFFD.
    """
    out: list[str] = []
    first = name[:1]
    for i, ch in enumerate(name):
        code = ord(ch)
        if code == 0:
            out.append("�")
        elif 0x01 <= code <= 0x1F or code == 0x7F:
            out.append(f"\\{code:x} ")
        elif i == 0 and ch.isdigit() and ch.isascii():
            out.append(f"\\{code:x} ")
        elif i == 1 and first == "-" and ch.isdigit() and ch.isascii():
            out.append(f"\\{code:x} ")
        elif i == 0 and ch == "-" and len(name) == 1:
            out.append("\\-")
        elif code >= 0x80 or ch in "-_" or (ch.isascii() and ch.isalnum()):
            out.append(ch)
        else:
            out.append("\\" + ch)
    return "".join(out)


def unescape_identifier(escaped: str) -> str:
    """Inverse of :func:`escape_identifier`."""
    out: list[str] = []
    i = 0
    n = len(escaped)
    while i < n:
        ch = escaped[i]
        if ch != "\\" or i + 1 >= n:
            out.append(ch)
            i += 1
            continue
        j = i + 1
        while j < n and j - i <= 6 and escaped[j] in _HEX:
            j += 1
        if j > i + 1:
            out.append(chr(int(escaped[i + 1:j], 16)))
            # A single whitespace terminates a code-point escape.
            if j < n and escaped[j] in _WHITESPACE:
                j += 1
            i = j
        else:
            out.append(escaped[i + 1])
            i += 2
    return "".join(out)


def build_selector(
    node_name: str,
    element_tag: Optional[str] = None,
    *,
    nth_child: Optional[int] = None,
    qualifier: str = "",
) -> str:
    """Build a selector addressing a named node or its drawable descendants.

    Args:
        node_name: Renderer-assigned node name (SVG ``id``).
        element_tag: Descendant element to address instead of the node
            itself (``path``, ``use``).
        nth_child: 1-based position of a child group under the node,
            rendered as ``> g:nth-child(N)``.
        qualifier: Pseudo-class appended to the last compound selector,
            e.g. ``:nth-of-type(-n+3)``.

    Returns:
        Selector string such as ``#bar\\.rect\\.1 path``.
    """
    parts = ["#" + escape_identifier(node_name)]
    if nth_child is not None:
        parts.append(f"> g:nth-child({int(nth_child)})")
    if element_tag:
        parts.append(element_tag)
    return " ".join(parts) + qualifier


_IDENT_END = re.compile(r"[\s>+~:\[.#,()]")


def selector_node_name(selector: str) -> str:
    """Recover the node name from a selector built by :func:`build_selector`.

    Raises:
        ValueError: If *selector* does not start with an id selector.
    """
    if not selector.startswith("#"):
        raise ValueError(f"Not an id selector: {selector!r}")
    i = 1
    n = len(selector)
    while i < n:
        ch = selector[i]
        if ch == "\\" and i + 1 < n:
            j = i + 1
            while j < n and j - i <= 6 and selector[j] in _HEX:
                j += 1
            if j > i + 1:
                if j < n and selector[j] in _WHITESPACE:
                    j += 1
                i = j
            else:
                i += 2
            continue
        if _IDENT_END.match(ch):
            break
        i += 1
    return unescape_identifier(selector[1:i])
