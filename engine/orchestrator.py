"""
Orchestrator: one chart description in, one payload (plus export) out.

A run goes through these stages, each logged under the run's id:

    1. detect the geometry kind of every layer and build its processor
    2. validate bindings; a failing layer degrades to ``unknown``
    3. reorder layer datasets (on copies) for processors that ask for it
    4. render exactly once
    5. align logical panels with the rendered tree (facets, compositions)
    6. run every processor against that one tree and assemble the grid

Per-layer failures never abort a run.  Renderer failures do: they are
logged and re-raised unchanged.
"""

from __future__ import annotations

import json
from collections import Counter
from dataclasses import dataclass, field, replace
from typing import Callable, Optional, Union

import config as config_module
from data_ops.call_log import CallLog
from processors import LayerInfo, LayerProcessor, LayerResult, PanelContext, create_processor, fallback_processor
from rendering import naming
from rendering.base import BuiltPlot, Renderer, RenderOutput
from rendering.mpl_renderer import MatplotlibRenderer
from rendering.spec import CompositionSpec, GeometryKind, PlotSpec, facet_subset
from rendering.tree import VisualNode

from .context import Diagnostic, RunContext
from .detection import detect_kind
from .errors import PanelMismatchError, SpecificationError
from .legacy import translate_call_log
from .logging import get_logger, log_error, log_layer_event, set_run_id, tagged
from .panels import LogicalPanel, composition_layout, discover_panels, facet_layout, unresolved_panels

logger = get_logger()

ChartSpec = Union[PlotSpec, CompositionSpec, CallLog]


@dataclass
class RunResult:
    """Everything one run produced.

    Attributes:
        payload: ``{id, subplots: [[{id, layers: [...]}]]}``.
        export: Serialized rendering (SVG text for the matplotlib renderer).
        tree: The rendered tree the selectors were generated against.
        diagnostics: Recoverable problems (degraded layers, missing nodes).
        run_id: Identifier used in this run's log lines.
        settings: The settings the run used; documents built from the
            result read their payload attribute and runtime URLs here.
    """

    payload: dict
    export: str
    tree: VisualNode
    diagnostics: list[Diagnostic] = field(default_factory=list)
    run_id: str = ""
    settings: dict = field(default_factory=dict)

    def to_json(self, indent: Optional[int] = None) -> str:
        return json.dumps(self.payload, indent=indent)


@dataclass
class _PreparedPlot:
    """A leaf plot after reordering, with one processor per layer."""

    plot: PlotSpec
    processors: list[LayerProcessor]


class Orchestrator:
    """Drives detection, reordering, rendering and extraction for one chart.

    Args:
        renderer: Anything implementing the Renderer protocol; defaults to
            the matplotlib renderer.
        config: Settings for the run; defaults to ``config.snapshot()``.
        id_factory: Callable returning fresh ids (uuid4 strings by default).
    """

    def __init__(
        self,
        renderer: Optional[Renderer] = None,
        config: Optional[dict] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        self.renderer = renderer if renderer is not None else MatplotlibRenderer()
        self.config = dict(config) if config is not None else config_module.snapshot()
        self.id_factory = id_factory

    def _context(self) -> RunContext:
        if self.id_factory is not None:
            return RunContext(self.renderer, dict(self.config), id_factory=self.id_factory)
        return RunContext(self.renderer, dict(self.config))

    # ---- Entry point ---------------------------------------------------------

    def run(self, spec: ChartSpec) -> RunResult:
        """Produce the payload and export for *spec*.

        Raises:
            Whatever the renderer raised, unchanged.
        """
        if isinstance(spec, CallLog):
            spec = translate_call_log(spec)
        ctx = self._context()
        set_run_id(ctx.run_id[:8])
        logger.debug(f"Run started: {type(spec).__name__}", extra=tagged("run"))

        if isinstance(spec, CompositionSpec):
            prepared = [self._prepare(self._leaf(leaf, ctx), ctx) for leaf in spec.leaves()]
            render_spec: Union[PlotSpec, CompositionSpec] = spec.with_leaves([p.plot for p in prepared])
        else:
            prepared = [self._prepare(spec, ctx)]
            render_spec = prepared[0].plot

        output = self._render(render_spec, ctx)

        payload_id = ctx.new_id()
        if isinstance(render_spec, CompositionSpec):
            subplots = self._assemble_composition(render_spec, prepared, output, ctx)
        elif render_spec.is_faceted:
            subplots = self._assemble_facets(prepared[0], output, ctx)
        else:
            subplots = [[self._subplot(prepared[0], output.plots[0], output.tree, None,
                                       prepared[0].plot.title, ctx)]]
        payload = {"id": payload_id, "subplots": subplots}

        logger.debug(
            f"Run finished: {sum(len(row) for row in subplots)} subplot(s), "
            f"{len(ctx.diagnostics)} diagnostic(s)",
            extra=tagged("run"),
        )
        return RunResult(payload, output.export, output.tree, list(ctx.diagnostics),
                         ctx.run_id, dict(ctx.settings))

    # ---- Preparation ---------------------------------------------------------

    @staticmethod
    def _leaf(plot: PlotSpec, ctx: RunContext) -> PlotSpec:
        if plot.is_faceted:
            message = "Facets inside a composition cell are ignored"
            logger.warning(message, extra=tagged("structure"))
            ctx.warn(message)
            return replace(plot, facet=None)
        return plot

    def _prepare(self, plot: PlotSpec, ctx: RunContext) -> _PreparedPlot:
        """Detect, validate and reorder every layer of *plot*."""
        seen: Counter = Counter()
        processors = []
        working = plot
        for index, layer in enumerate(plot.layers):
            kind = detect_kind(layer, plot)
            prefix = naming.container_for_geom(layer.geom, layer.stat)
            ordinal = seen[prefix] if prefix else 0
            if prefix:
                seen[prefix] += 1
            info = LayerInfo(index=index, kind=kind, layer=layer, plot=plot, ordinal=ordinal)
            log_layer_event("detected", index, kind.value, f"geom={layer.geom} ordinal={ordinal}")

            processor = self._validated(create_processor(kind, info), ctx)
            if processor.needs_reordering():
                working, processor = self._reorder(processor, working, ctx)
            processors.append(processor)
        return _PreparedPlot(working, processors)

    @staticmethod
    def _degrade(processor: LayerProcessor) -> LayerProcessor:
        return fallback_processor(replace(processor.info, kind=GeometryKind.UNKNOWN))

    def _validated(self, processor: LayerProcessor, ctx: RunContext) -> LayerProcessor:
        index = processor.info.index
        try:
            processor.validate()
        except SpecificationError as e:
            logger.warning(f"Layer {index} degraded to unknown: {e}", extra=tagged("layer"))
            ctx.warn(str(e), layer_index=index)
            log_layer_event("degraded", index, processor.kind.value, f"binding={e.binding}")
            return self._degrade(processor)
        except Exception as e:
            log_error(f"Validating layer {index} failed", e, {"kind": processor.kind.value})
            ctx.error(str(e), layer_index=index)
            return self._degrade(processor)
        return processor

    def _reorder(self, processor: LayerProcessor, working: PlotSpec, ctx: RunContext):
        """Apply the processor's row order to a copy of the layer's dataset.

        Returns:
            (plot to render, processor), the processor being the fallback
            when reordering failed.
        """
        index = processor.info.index
        layer = working.layers[index]
        dataset = layer.dataset(working).copy()
        try:
            reordered = processor.reorder_dataset(dataset, ctx)
        except Exception as e:
            log_error(f"Reordering layer {index} failed", e, {"kind": processor.kind.value})
            ctx.error(str(e), layer_index=index)
            return working, self._degrade(processor)
        log_layer_event("reordered", index, processor.kind.value, f"{len(reordered)} rows")
        if layer.data is not None:
            layers = list(working.layers)
            layers[index] = layer.with_data(reordered)
            return working.with_layers(layers), processor
        return working.with_data(reordered), processor

    # ---- Rendering -----------------------------------------------------------

    @staticmethod
    def _render(spec: Union[PlotSpec, CompositionSpec], ctx: RunContext) -> RenderOutput:
        try:
            output = ctx.renderer.render(spec)
        except Exception as e:
            log_error("Render failed", e, {"run_id": ctx.run_id, "spec": type(spec).__name__})
            raise
        logger.debug(f"Rendered {len(output.plots)} plot(s)", extra=tagged("render"))
        return output

    # ---- Assembly ------------------------------------------------------------

    @staticmethod
    def _discover(tree: VisualNode, layout: list[LogicalPanel], ctx: RunContext) -> list[PanelContext]:
        try:
            return discover_panels(tree, layout)
        except PanelMismatchError as e:
            log_error("Panel discovery failed; selectors left empty", e,
                      {"expected": e.expected, "found": e.found})
            ctx.error(str(e))
            return unresolved_panels(layout)

    @staticmethod
    def _grid(cells: dict) -> list[list[dict]]:
        rows = sorted({row for row, _ in cells})
        return [[cells[key] for key in sorted(k for k in cells if k[0] == row)] for row in rows]

    def _assemble_facets(self, prepared: _PreparedPlot, output: RenderOutput, ctx: RunContext) -> list[list[dict]]:
        built = output.plots[0]
        contexts = self._discover(output.tree, facet_layout(built), ctx)
        cells = {}
        for panel in contexts:
            cells[(panel.row, panel.col)] = self._subplot(prepared, built, output.tree, panel, panel.label, ctx)
        return self._grid(cells)

    def _assemble_composition(
        self,
        spec: CompositionSpec,
        prepared: list[_PreparedPlot],
        output: RenderOutput,
        ctx: RunContext,
    ) -> list[list[dict]]:
        contexts = self._discover(output.tree, composition_layout(spec), ctx)
        cells = {}
        for panel, leaf, built in zip(contexts, prepared, output.plots):
            # each leaf is built as a single-panel plot
            panel = replace(panel, panel_id=1)
            cells[(panel.row, panel.col)] = self._subplot(leaf, built, output.tree, panel, leaf.plot.title, ctx)
        return self._grid(cells)

    def _subplot(
        self,
        prepared: _PreparedPlot,
        built: BuiltPlot,
        tree: VisualNode,
        panel: Optional[PanelContext],
        title: str,
        ctx: RunContext,
    ) -> dict:
        subplot_id = ctx.new_id()
        layers = []
        for processor in prepared.processors:
            if processor.kind == GeometryKind.SKIP:
                continue
            result = self._process_layer(processor, prepared.plot, built, tree, panel, title, ctx)
            layers.append(result.to_payload(ctx.new_id()))
        return {"id": subplot_id, "layers": layers}

    @staticmethod
    def _process_layer(
        processor: LayerProcessor,
        plot: PlotSpec,
        built: BuiltPlot,
        tree: VisualNode,
        panel: Optional[PanelContext],
        title: str,
        ctx: RunContext,
    ) -> LayerResult:
        index = processor.info.index
        panel_name = panel.panel_name if panel else None
        dataset = plot.layers[index].dataset(plot)
        if panel is not None:
            panel = replace(panel, layer_index=index)
            if panel.facets:
                dataset = facet_subset(dataset, panel.facets)
        try:
            result = processor.process(dataset, built, tree, panel, title)
        except Exception as e:
            log_error(f"Layer {index} ({processor.kind.value}) failed; emitted as unknown", e,
                      {"geom": processor.info.layer.geom, "panel": panel_name})
            ctx.error(str(e), layer_index=index, panel=panel_name)
            return LayerResult.empty(GeometryKind.UNKNOWN, title)
        if result.data and not result.selectors and processor.kind != GeometryKind.UNKNOWN:
            ctx.warn("No rendered elements matched this layer", layer_index=index, panel=panel_name)
        log_layer_event("processed", index, processor.kind.value,
                        f"panel={panel_name or '-'} selectors={len(result.selectors)}")
        return result
