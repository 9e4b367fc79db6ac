"""
Run-scoped state.

One RunContext is created per Orchestrator run and passed down the call
chain.  Nothing in it outlives the run; concurrent runs each own their
own context.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Callable, Optional

from rendering.base import Renderer


def _uuid() -> str:
    return str(uuid.uuid4())


@dataclass
class Diagnostic:
    """A recoverable problem noticed during a run."""

    level: str
    message: str
    layer_index: Optional[int] = None
    panel: Optional[str] = None

    def to_dict(self) -> dict:
        return {k: v for k, v in self.__dict__.items() if v is not None}


@dataclass
class RunContext:
    renderer: Renderer
    settings: dict
    id_factory: Callable[[], str] = _uuid
    run_id: str = ""
    diagnostics: list[Diagnostic] = field(default_factory=list)

    def __post_init__(self):
        if not self.run_id:
            self.run_id = self.id_factory()

    def new_id(self) -> str:
        return self.id_factory()

    def warn(self, message: str, layer_index: Optional[int] = None, panel: Optional[str] = None) -> None:
        self.diagnostics.append(Diagnostic("warning", message, layer_index, panel))

    def error(self, message: str, layer_index: Optional[int] = None, panel: Optional[str] = None) -> None:
        self.diagnostics.append(Diagnostic("error", message, layer_index, panel))
