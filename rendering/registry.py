"""
Geometry catalog.

Describes every geometry the bundled renderer draws as structured data:
which aesthetics it needs, which parameters it understands, and which
payload layer type it ends up as.  The command line uses it to validate
chart description files before a run and to print ``--list-geoms``.

Adding a geometry:
    1. Add an entry to GEOMS below
    2. Add a compute and a draw function in mpl_renderer.py
    3. Map it to a container prefix in naming.py
"""

_POSITIONS = ["identity", "stack", "dodge", "fill"]

GEOMS = [
    {
        "name": "bar",
        "payload": "bar / stacked_bar / dodged_bar",
        "description": "Bars of row counts per x category. With a fill binding, stacked (default) or dodged.",
        "aes": {"required": ["x"], "optional": ["fill"]},
        "parameters": [
            {"name": "position", "type": "string", "required": False, "default": "stack", "enum": _POSITIONS,
             "description": "How bars sharing an x category are arranged"},
            {"name": "palette", "type": "array", "required": False,
             "description": "Fill colours in order of category appearance, or {category: colour}"},
        ],
    },
    {
        "name": "col",
        "payload": "bar / stacked_bar / dodged_bar",
        "description": "Bars whose heights are taken from the y column.",
        "aes": {"required": ["x", "y"], "optional": ["fill"]},
        "parameters": [
            {"name": "position", "type": "string", "required": False, "default": "stack", "enum": _POSITIONS,
             "description": "How bars sharing an x category are arranged"},
            {"name": "palette", "type": "array", "required": False,
             "description": "Fill colours in order of category appearance, or {category: colour}"},
        ],
    },
    {
        "name": "histogram",
        "payload": "hist",
        "description": "Binned counts of a continuous x column.",
        "aes": {"required": ["x"], "optional": []},
        "parameters": [
            {"name": "bins", "type": "integer", "required": False, "default": 30,
             "description": "Number of equal-width bins"},
            {"name": "binwidth", "type": "number", "required": False,
             "description": "Bin width; overrides bins"},
        ],
    },
    {
        "name": "line",
        "payload": "line",
        "description": "One polyline per group, points joined in x order.",
        "aes": {"required": ["x", "y"], "optional": ["color", "group"]},
        "parameters": [],
    },
    {
        "name": "path",
        "payload": "line",
        "description": "One polyline per group, points joined in row order.",
        "aes": {"required": ["x", "y"], "optional": ["color", "group"]},
        "parameters": [],
    },
    {
        "name": "step",
        "payload": "line",
        "description": "Stairstep line per group.",
        "aes": {"required": ["x", "y"], "optional": ["color", "group"]},
        "parameters": [],
    },
    {
        "name": "point",
        "payload": "point",
        "description": "One marker per row.",
        "aes": {"required": ["x", "y"], "optional": ["color"]},
        "parameters": [],
    },
    {
        "name": "boxplot",
        "payload": "box",
        "description": "Box-and-whisker summary per category; categories on y give horizontal boxes.",
        "aes": {"required": [], "optional": ["x", "y", "fill"]},
        "parameters": [
            {"name": "whisker_range", "type": "number", "required": False, "default": 1.5,
             "description": "Whisker reach in multiples of the interquartile range"},
        ],
    },
    {
        "name": "smooth",
        "payload": "smooth",
        "description": "Fitted trend line with an optional confidence band.",
        "aes": {"required": ["x", "y"], "optional": []},
        "parameters": [
            {"name": "method", "type": "string", "required": False, "default": "lm", "enum": ["lm", "poly"],
             "description": "Linear fit or polynomial fit"},
            {"name": "degree", "type": "integer", "required": False, "default": 2,
             "description": "Polynomial degree for method='poly'"},
            {"name": "se", "type": "boolean", "required": False, "default": True,
             "description": "Draw the confidence band"},
        ],
    },
    {
        "name": "density",
        "payload": "smooth",
        "description": "Gaussian kernel density estimate of a continuous x column.",
        "aes": {"required": ["x"], "optional": []},
        "parameters": [],
    },
    {
        "name": "tile",
        "payload": "heat",
        "description": "Heat map cells coloured by the fill column.",
        "aes": {"required": ["x", "y", "fill"], "optional": []},
        "parameters": [],
    },
    {
        "name": "text",
        "payload": "(none)",
        "description": "Text annotations; drawn but not part of the payload.",
        "aes": {"required": ["x", "y", "label"], "optional": []},
        "parameters": [],
    },
]

_ALIASES = {"scatter": "point", "raster": "tile", "label": "text"}


def get_geom(name: str) -> dict | None:
    """Look up a geometry by name (aliases accepted).

    Args:
        name: Geometry name, e.g. "bar" or "scatter".

    Returns:
        Geometry dict or None if not found.
    """
    name = _ALIASES.get(name.lower(), name.lower())
    for geom in GEOMS:
        if geom["name"] == name:
            return geom
    return None


def validate_layer(layer: dict, plot_aes: dict | None = None) -> list[str]:
    """Validate one layer dict of a chart description file.

    Args:
        layer: Layer dict with "geom" and optional "aes", "position", "params".
        plot_aes: Plot-level bindings the layer inherits.

    Returns:
        List of error messages. Empty list means valid.
    """
    name = layer.get("geom")
    if not name:
        return ["Layer has no 'geom'"]
    geom = get_geom(name)
    if geom is None:
        return [f"Unknown geom: {name}"]

    aes = dict(plot_aes or {})
    aes.update(layer.get("aes") or {})
    if "colour" in aes:
        aes["color"] = aes.pop("colour")
    errors = []
    for required in geom["aes"]["required"]:
        if not aes.get(required):
            errors.append(f"{geom['name']}: missing required aesthetic '{required}'")

    settings = dict(layer.get("params") or {})
    if "position" in layer:
        settings["position"] = layer["position"]
    for param in geom["parameters"]:
        value = settings.get(param["name"])
        if value is not None and "enum" in param and value not in param["enum"]:
            errors.append(
                f"Invalid value for {param['name']}: '{value}'. "
                f"Must be one of: {', '.join(str(v) for v in param['enum'])}"
            )
    return errors


def render_geom_catalog() -> str:
    """Render the catalog as markdown.

    Returns:
        Markdown string listing all geometries with aesthetics and parameters.
    """
    lines = ["## Geometries", ""]

    for geom in GEOMS:
        required = ", ".join(geom["aes"]["required"]) or "-"
        optional = ", ".join(geom["aes"]["optional"]) or "-"
        lines.append(f"### **{geom['name']}** -> {geom['payload']}")
        lines.append(geom["description"])
        lines.append(f"- aesthetics: required {required}; optional {optional}")
        for p in geom["parameters"]:
            line = f"- `{p['name']}` ({p['type']}): {p['description']}"
            if "default" in p:
                line += f" Default: `{p['default']}`."
            if "enum" in p:
                vals = ", ".join(f"`{v}`" for v in p["enum"])
                line += f" Values: {vals}"
            lines.append(line)
        lines.append("")

    return "\n".join(lines)
