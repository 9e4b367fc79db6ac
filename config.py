"""
User configuration.

Settings come from two JSON files: the project-root ``config.json`` and the
per-user ``~/.maidr/config.json``.  The user file wins key by key (nested
sections are merged, not replaced).  ``.env`` is loaded first so that
``MAIDR_HOME`` can be set there.
"""

import json
import os
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv

load_dotenv()

CONFIG_PATH = Path.home() / ".maidr" / "config.json"
_LOCAL_CONFIG_PATH = Path(__file__).resolve().parent / "config.json"
_user_config: dict = {}

# Config files that exist but could not be parsed; main.py warns about them
unreadable_config_files: list[Path] = []


def _merge(base: dict, overlay: dict) -> dict:
    for key, value in overlay.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value
    return base


def _load_config() -> dict:
    merged: dict = {}
    for path in (_LOCAL_CONFIG_PATH, CONFIG_PATH):
        if not path.exists():
            continue
        try:
            with open(path, "r", encoding="utf-8") as f:
                _merge(merged, json.load(f))
        except (json.JSONDecodeError, OSError):
            unreadable_config_files.append(path)
    return merged


def get(key: str, default=None):
    """Look up a dot-separated key, e.g. ``get("figure.width", 7.0)``.

    Returns *default* when any segment is missing or the value is null.
    """
    val = _user_config
    for part in key.split("."):
        if not isinstance(val, dict):
            return default
        val = val.get(part)
    return default if val is None else val


_user_config = _load_config()


# ---- Data directory -----------------------------------------------------------
# Base directory for logs and exported documents.
# Priority: MAIDR_HOME env var > "data_dir" config key > ~/.maidr

_data_dir: Optional[Path] = None


def get_data_dir() -> Path:
    """Return the resolved base data directory.

    Resolution order:
    1. ``MAIDR_HOME`` environment variable (highest, useful for CI/Docker)
    2. ``"data_dir"`` key in config.json
    3. ``~/.maidr`` (default)
    """
    global _data_dir
    if _data_dir is not None:
        return _data_dir
    env_val = os.environ.get("MAIDR_HOME")
    if env_val:
        _data_dir = Path(env_val).expanduser().resolve()
    else:
        configured = get("data_dir")
        if configured:
            _data_dir = Path(configured).expanduser().resolve()
        else:
            _data_dir = Path.home() / ".maidr"
    return _data_dir


def _reset_data_dir() -> None:
    """Reset the cached data directory (for testing only)."""
    global _data_dir
    _data_dir = None


# ---- Runtime / document config ------------------------------------------------
PAYLOAD_ATTRIBUTE = get("payload_attribute", "maidr-data")
RUNTIME_SCRIPT_URL = get("runtime.script_url", "https://cdn.jsdelivr.net/npm/maidr@latest/dist/maidr.js")
RUNTIME_STYLE_URL = get("runtime.style_url", "https://cdn.jsdelivr.net/npm/maidr@latest/dist/maidr_style.css")

# ---- Renderer config ----------------------------------------------------------
FIGURE_WIDTH = get("figure.width", 7.0)     # inches
FIGURE_HEIGHT = get("figure.height", 5.0)   # inches
FIGURE_DPI = get("figure.dpi", 72)
HISTOGRAM_BINS = get("histogram.bins", 30)
BOX_WHISKER_RANGE = get("box.whisker_range", 1.5)


def snapshot() -> dict:
    """Return the settings a single run depends on as a plain dict.

    The orchestrator copies this into its run context so a run never reads
    module globals half-way through.
    """
    return {
        "payload_attribute": PAYLOAD_ATTRIBUTE,
        "runtime_script_url": RUNTIME_SCRIPT_URL,
        "runtime_style_url": RUNTIME_STYLE_URL,
        "figure_width": float(FIGURE_WIDTH),
        "figure_height": float(FIGURE_HEIGHT),
        "figure_dpi": int(FIGURE_DPI),
        "histogram_bins": int(HISTOGRAM_BINS),
        "box_whisker_range": float(BOX_WHISKER_RANGE),
    }
