"""
HTML document assembly.

The payload travels with the chart as a JSON attribute on the root
``<svg>`` element; the accessibility runtime reads it from there.  The
runtime's script and stylesheet are referenced by URL (configurable).
"""

from __future__ import annotations

import html
import json
import re
from pathlib import Path
from typing import Optional

import config

from .logging import get_logger, tagged

logger = get_logger()

_SVG_OPEN = re.compile(r"<svg\b[^>]*?(/?)>", re.DOTALL)

_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>{title}</title>
<link rel="stylesheet" href="{style_url}">
<script type="text/javascript" src="{script_url}"></script>
</head>
<body>
<div class="maidr-container">
{svg}
</div>
</body>
</html>
"""


def _strip_prolog(svg: str) -> str:
    """Drop the XML declaration and DOCTYPE so the SVG can be inlined."""
    start = svg.find("<svg")
    return svg[start:] if start > 0 else svg


def embed_payload(svg: str, payload: dict, attribute: Optional[str] = None) -> str:
    """Set *payload* as a JSON attribute on the root ``<svg>`` element.

    Raises:
        ValueError: *svg* has no ``<svg>`` element.
    """
    attribute = attribute or config.PAYLOAD_ATTRIBUTE
    match = _SVG_OPEN.search(svg)
    if match is None:
        raise ValueError("Export contains no <svg> element")
    value = html.escape(json.dumps(payload, separators=(",", ":")), quote=True)
    insert_at = match.start(1)
    return f'{svg[:insert_at]} {attribute}="{value}"{svg[insert_at:]}'


def build_html(svg: str, payload: dict, settings: Optional[dict] = None, title: str = "") -> str:
    """Wrap an SVG export and its payload into a standalone HTML page.

    Args:
        svg: SVG text as produced by the renderer.
        payload: The run's payload.
        settings: Run settings (``config.snapshot()`` keys); keys it lacks
            come from the current configuration.
        title: Page title.
    """
    settings = dict(config.snapshot(), **(settings or {}))
    body = embed_payload(_strip_prolog(svg), payload, settings.get("payload_attribute"))
    return _TEMPLATE.format(
        title=html.escape(title or "Chart"),
        style_url=html.escape(settings["runtime_style_url"], quote=True),
        script_url=html.escape(settings["runtime_script_url"], quote=True),
        svg=body,
    )


def save_html(result, path, title: str = "") -> Path:
    """Write a run result (payload + SVG export) as an HTML page.

    The page uses the settings the run carried, when it carries any.

    Returns:
        The path written.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    page = build_html(result.export, result.payload, getattr(result, "settings", None), title)
    path.write_text(page, encoding="utf-8")
    logger.debug(f"Saved HTML document: {path}", extra=tagged("document"))
    return path
