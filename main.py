#!/usr/bin/env python3
"""
Maidr - Main Entry Point

Turn a chart description file into an accessible HTML page (SVG chart
with its payload embedded), or just the payload.

Usage:
    python main.py chart.json                          # Payload JSON to stdout
    python main.py chart.json --data penguins.csv      # Dataset for plots without one
    python main.py chart.json --output chart.html      # Accessible HTML page
    python main.py chart.json --payload p.json --svg chart.svg
    python main.py calls.json                          # A recorded call log (JSON list)
    python main.py --list-geoms                        # Supported geometries

Description files are JSON: a plot ``{"layers": [...], "aes": {...},
"facet": {...}, "data": ...}``, a composition ``{"plots": [...], "ncol": 2}``,
or a list of recorded plotting calls ``[{"function": "bar", "args": {...}}]``.
"""

import argparse
import json
import sys
from pathlib import Path


def validate_description(description) -> list[str]:
    """Check every layer of a plot / composition description against the geometry catalog."""
    from rendering.registry import validate_layer

    if isinstance(description, list):
        return []
    errors = []
    plots = description.get("plots") or [description]
    for p, plot in enumerate(plots):
        if "plots" in plot:
            errors.extend(validate_description(plot))
            continue
        for i, layer in enumerate(plot.get("layers", [])):
            for message in validate_layer(layer, plot.get("aes")):
                prefix = f"plot {p + 1}, layer {i + 1}" if len(plots) > 1 else f"layer {i + 1}"
                errors.append(f"{prefix}: {message}")
    return errors


def main():
    parser = argparse.ArgumentParser(description="Accessible chart payload generator")
    parser.add_argument(
        "spec",
        nargs="?",
        default=None,
        help="Chart description JSON file (plot, composition, or call log)",
    )
    parser.add_argument(
        "--data", "-d",
        default=None,
        help="Dataset (.csv, .tsv or .json) for plots that do not name one",
    )
    parser.add_argument(
        "--output", "-o",
        default=None,
        help="Write an accessible HTML page to this path",
    )
    parser.add_argument(
        "--payload", "-p",
        default=None,
        help="Write the payload JSON to this path",
    )
    parser.add_argument(
        "--svg",
        default=None,
        help="Write the SVG export to this path",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Show per-layer processing details",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Reject descriptions with unknown geoms or missing aesthetics instead of degrading those layers",
    )
    parser.add_argument(
        "--list-geoms",
        action="store_true",
        help="List supported geometries and exit",
    )
    args = parser.parse_args()

    if args.list_geoms:
        from rendering.registry import render_geom_catalog
        print(render_geom_catalog())
        return 0

    if not args.spec:
        parser.error("a chart description file is required")

    from engine.logging import get_current_log_path, setup_logging
    logger = setup_logging(verbose=args.verbose)

    import config
    for path in config.unreadable_config_files:
        logger.warning(f"Ignored unreadable config file {path}")

    spec_path = Path(args.spec)
    try:
        with open(spec_path, "r", encoding="utf-8") as f:
            description = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        print(f"Could not read {spec_path}: {e}")
        return 1

    errors = validate_description(description)
    if errors and args.strict:
        print("Invalid chart description:")
        for message in errors:
            print(f"  - {message}")
        return 1
    for message in errors:
        print(f"  [warning] {message}", file=sys.stderr)

    from data_ops.call_log import CallLog
    from data_ops.store import DatasetStore, load_chart, load_dataset
    from engine.document import save_html
    from engine.orchestrator import Orchestrator

    try:
        if isinstance(description, list):
            spec = CallLog(description)
        else:
            data = load_dataset(args.data) if args.data else None
            spec = load_chart(spec_path, store=DatasetStore(), data=data)
    except (OSError, KeyError, ValueError) as e:
        print(f"Could not load data: {e}")
        return 1

    result = Orchestrator().run(spec)

    if args.output:
        path = save_html(result, args.output, title=spec_path.stem)
        print(f"HTML written to {path}")
    if args.payload:
        Path(args.payload).write_text(result.to_json(indent=2), encoding="utf-8")
        print(f"Payload written to {args.payload}")
    if args.svg:
        Path(args.svg).write_text(result.export, encoding="utf-8")
        print(f"SVG written to {args.svg}")
    if not (args.output or args.payload or args.svg):
        print(result.to_json(indent=2))

    if result.diagnostics:
        print(f"{len(result.diagnostics)} problem(s) noted; see {get_current_log_path()}", file=sys.stderr)
        for diagnostic in result.diagnostics:
            where = f"layer {diagnostic.layer_index}" if diagnostic.layer_index is not None else "run"
            print(f"  [{diagnostic.level}] {where}: {diagnostic.message}", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
