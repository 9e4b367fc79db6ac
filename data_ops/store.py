"""
Dataset loading and named dataset store.

DataEntry holds one tabular dataset as a pandas DataFrame.
DatasetStore is a dict-like container keyed by label strings; chart
description files refer to its entries (or to files) by name through
their ``"data"`` fields.
"""

import json
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import pandas as pd

from rendering.spec import CompositionSpec, PlotSpec

_READERS = {
    ".csv": lambda path: pd.read_csv(path),
    ".tsv": lambda path: pd.read_csv(path, sep="\t"),
    ".txt": lambda path: pd.read_csv(path, sep=None, engine="python"),
}


def load_dataset(path: Union[str, Path]) -> pd.DataFrame:
    """Read a CSV, TSV or JSON file into a DataFrame.

    JSON may hold a list of records or a dict of columns.

    Raises:
        ValueError: Unsupported file extension.
    """
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix == ".json":
        with open(path, "r", encoding="utf-8") as f:
            return pd.DataFrame(json.load(f))
    reader = _READERS.get(suffix)
    if reader is None:
        raise ValueError(f"Unsupported dataset format '{suffix}' ({path.name}); use .csv, .tsv or .json")
    return reader(path)


@dataclass
class DataEntry:
    """A single dataset held in memory.

    Attributes:
        label: Unique identifier used by chart descriptions.
        data: The rows.
        source: Origin, a file path or "inline".
        description: Human-readable description.
    """

    label: str
    data: pd.DataFrame
    source: str = "inline"
    description: str = ""

    def summary(self) -> dict:
        return {
            "label": self.label,
            "rows": len(self.data),
            "columns": list(self.data.columns),
            "source": self.source,
            "description": self.description,
        }


class DatasetStore:
    """Thread-safe label -> DataEntry mapping."""

    def __init__(self):
        self._entries: dict[str, DataEntry] = {}
        self._lock = threading.Lock()

    def put(self, entry: DataEntry) -> None:
        with self._lock:
            self._entries[entry.label] = entry

    def add_file(self, path: Union[str, Path], label: Optional[str] = None) -> DataEntry:
        """Load *path* and store it under *label* (default: the file stem)."""
        path = Path(path)
        entry = DataEntry(label=label or path.stem, data=load_dataset(path), source=str(path))
        self.put(entry)
        return entry

    def get(self, label: str) -> Optional[DataEntry]:
        with self._lock:
            return self._entries.get(label)

    def has(self, label: str) -> bool:
        with self._lock:
            return label in self._entries

    def remove(self, label: str) -> bool:
        with self._lock:
            return self._entries.pop(label, None) is not None

    def list_entries(self) -> list[dict]:
        with self._lock:
            return [entry.summary() for entry in self._entries.values()]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def resolve(self, ref, base_dir: Optional[Path] = None) -> Optional[pd.DataFrame]:
        """Turn a ``"data"`` field into a DataFrame.

        Args:
            ref: Inline records/columns, a stored label, or a file path
                (relative paths are taken from *base_dir*).

        Raises:
            KeyError: *ref* is a string naming neither a label nor a file.
        """
        if ref is None:
            return None
        if isinstance(ref, pd.DataFrame):
            return ref
        if isinstance(ref, (list, dict)):
            return pd.DataFrame(ref)
        entry = self.get(str(ref))
        if entry is not None:
            return entry.data
        path = Path(ref)
        if not path.is_absolute() and base_dir is not None:
            path = Path(base_dir) / path
        if path.exists():
            return self.add_file(path, label=str(ref)).data
        raise KeyError(f"Dataset '{ref}' is neither a stored label nor an existing file")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def _resolve_plot(d: dict, store: DatasetStore, base_dir: Optional[Path], default: Optional[pd.DataFrame]) -> dict:
    d = dict(d)
    data = store.resolve(d.get("data"), base_dir)
    d["data"] = data if data is not None else default
    d["layers"] = [
        dict(layer, data=store.resolve(layer.get("data"), base_dir))
        for layer in d.get("layers", [])
    ]
    return d


def load_chart(
    description: Union[dict, str, Path],
    store: Optional[DatasetStore] = None,
    data: Optional[pd.DataFrame] = None,
) -> Union[PlotSpec, CompositionSpec]:
    """Build a chart description from a JSON file or dict.

    A dict with ``"plots"`` is a composition; anything else is one plot.
    Dataset references are resolved through *store*; *data* is used for
    plots that name no dataset of their own.
    """
    base_dir = None
    if not isinstance(description, dict):
        path = Path(description)
        base_dir = path.parent
        with open(path, "r", encoding="utf-8") as f:
            description = json.load(f)
    store = store if store is not None else DatasetStore()

    def build(d: dict):
        if "plots" in d:
            plots = [build(p) for p in d["plots"]]
            return CompositionSpec(plots=tuple(plots), ncol=d.get("ncol"), nrow=d.get("nrow"),
                                   title=d.get("title", ""))
        resolved = _resolve_plot(d, store, base_dir, data)
        return PlotSpec.from_dict(resolved, data=resolved["data"])

    return build(description)
