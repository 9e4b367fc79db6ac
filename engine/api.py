"""Convenience entry points for callers that only want the end product."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import config
from rendering.base import Renderer

from .document import save_html
from .orchestrator import ChartSpec, Orchestrator


def _run_settings(settings: Optional[dict]) -> Optional[dict]:
    return dict(config.snapshot(), **settings) if settings else None


def maidr_payload(spec: ChartSpec, renderer: Optional[Renderer] = None, settings: Optional[dict] = None) -> dict:
    """Payload for *spec* (renders once with *renderer* or the default)."""
    return Orchestrator(renderer=renderer, config=_run_settings(settings)).run(spec).payload


def render_html(
    spec: ChartSpec,
    path,
    renderer: Optional[Renderer] = None,
    title: str = "",
    settings: Optional[dict] = None,
) -> Path:
    """Render *spec* and write the accessible HTML page to *path*.

    *settings* override ``config.snapshot()`` for both the run and the page.
    """
    result = Orchestrator(renderer=renderer, config=_run_settings(settings)).run(spec)
    return save_html(result, path, title=title)
