"""
Call log for imperative plotting sessions.

Records every plotting call (``bar``, ``plot``, ``subplot``, ``title`` ...)
as a JSON-serializable dict so a pyplot-style script can be turned into a
declarative chart description afterwards (see ``engine.legacy``).

A log belongs to whoever created it; there is no process-wide instance.
"""

import json
import threading
from pathlib import Path
from typing import Any, Iterator, Optional

import numpy as np
import pandas as pd


def _jsonable(value: Any) -> Any:
    """Convert numpy / pandas containers in call arguments to plain lists."""
    if isinstance(value, (np.ndarray, pd.Series, pd.Index)):
        return [_jsonable(v) for v in value.tolist()]
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    return value


class CallLog:
    """Ordered, thread-safe log of plotting calls."""

    def __init__(self, records: Optional[list[dict]] = None):
        self._records: list[dict] = []
        self._counter: int = 0
        self._lock = threading.Lock()
        if records:
            self.load_from_records(records)

    def record(self, function: str, args: Optional[dict[str, Any]] = None, **kwargs: Any) -> dict:
        """Append a call record and return it.

        Args:
            function: Plotting function name (e.g. "bar", "subplot").
            args: Call arguments; keyword arguments are merged in.

        Returns:
            The recorded call dict ``{id, function, args}``.
        """
        merged = dict(args or {})
        merged.update(kwargs)
        with self._lock:
            self._counter += 1
            record = {
                "id": f"call_{self._counter:03d}",
                "function": function,
                "args": _jsonable(merged),
            }
            self._records.append(record)
            return record

    def get_records(self) -> list[dict]:
        """Return a copy of all records."""
        with self._lock:
            return list(self._records)

    def save_to_file(self, path: Path) -> None:
        """Write records to a JSON file."""
        with self._lock:
            data = list(self._records)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)

    def load_from_records(self, records: list[dict]) -> int:
        """Replace the log with *records* and resume the counter.

        Returns:
            Number of records loaded.
        """
        with self._lock:
            self._records = [dict(r, args=dict(r.get("args") or {})) for r in records]
            self._counter = self._max_counter_from_records(self._records)
            return len(self._records)

    def load_from_file(self, path: Path) -> int:
        """Load records from a JSON file and resume the counter.

        Returns:
            Number of records loaded.
        """
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return self.load_from_records(data)

    @staticmethod
    def _max_counter_from_records(records: list[dict]) -> int:
        """Extract the highest numeric ID from call_NNN-style IDs."""
        max_id = 0
        for rec in records:
            call_id = str(rec.get("id", ""))
            if call_id.startswith("call_") and call_id[5:].isdigit():
                max_id = max(max_id, int(call_id[5:]))
        return max_id

    def clear(self) -> None:
        """Reset records and counter."""
        with self._lock:
            self._records.clear()
            self._counter = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __iter__(self) -> Iterator[dict]:
        return iter(self.get_records())
