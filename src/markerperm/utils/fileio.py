"""
Atomic JSON output.

Summaries are written to a temporary file in the destination directory and
moved into place with ``os.replace()``, so an interrupted run never leaves a
truncated summary behind.
"""

from __future__ import annotations

import json
import os
import tempfile
from typing import Any

import numpy as np

__all__ = ['atomic_write_json']


def _to_builtin(obj: Any) -> Any:
    """json ``default`` hook for numpy scalars and arrays."""
    if isinstance(obj, np.integer):
        return int(obj)
    if isinstance(obj, np.floating):
        value = float(obj)
        return None if np.isnan(value) else value
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def atomic_write_json(path: str | os.PathLike, data: Any, *, indent: int = 2) -> None:
    """Write *data* as JSON atomically via temp-file + rename.

    Parameters
    ----------
    path:
        Destination file path.
    data:
        JSON-serializable object; numpy scalars and arrays are converted.
    indent:
        JSON indentation (default 2).
    """
    path = os.fspath(path)
    dir_path = os.path.dirname(path) or "."
    tmp_path: str | None = None
    try:
        with tempfile.NamedTemporaryFile(
            mode="w", dir=dir_path, suffix=".tmp", delete=False
        ) as tmp:
            tmp_path = tmp.name
            json.dump(data, tmp, indent=indent, default=_to_builtin)
        os.replace(tmp_path, path)
    except BaseException:
        if tmp_path is not None and os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise
