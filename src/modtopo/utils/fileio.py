"""
Atomic file-write utilities.

Disk matrix sidecars and result files are written to a temporary file in the
destination directory and moved into place with ``os.replace()``, so readers
see either the previous file or the complete new one.
"""

from __future__ import annotations

import json
import os
import tempfile
from typing import Any, Callable, IO

import numpy as np

__all__ = ['atomic_write_json', 'atomic_write_text', 'to_jsonable']


def to_jsonable(obj: Any) -> Any:
    """``json.dump`` fallback for NumPy scalars and arrays.

    NaN values become ``None`` so the output is strict JSON.
    """
    if obj is None or isinstance(obj, (str, bool, int)):
        return obj
    if isinstance(obj, np.ndarray):
        return [to_jsonable(v) for v in obj.tolist()]
    if isinstance(obj, (np.floating, float)):
        value = float(obj)
        return None if np.isnan(value) else value
    if isinstance(obj, np.integer):
        return int(obj)
    if isinstance(obj, np.bool_):
        return bool(obj)
    if isinstance(obj, (list, tuple)):
        return [to_jsonable(v) for v in obj]
    if isinstance(obj, dict):
        return {str(k): to_jsonable(v) for k, v in obj.items()}
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def _atomic_write(path: str | os.PathLike, write: Callable[[IO[str]], None]) -> None:
    path = str(path)
    dir_path = os.path.dirname(path) or "."
    tmp_path: str | None = None
    try:
        with tempfile.NamedTemporaryFile(
            mode="w", dir=dir_path, suffix=".tmp", delete=False
        ) as tmp:
            tmp_path = tmp.name
            write(tmp)
        os.replace(tmp_path, path)
    except BaseException:
        if tmp_path is not None and os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


def atomic_write_json(path: str | os.PathLike, data: Any, *, indent: int = 2) -> None:
    """Write *data* as JSON atomically via temp-file + rename.

    NumPy values are converted with :func:`to_jsonable`, with NaN written as
    ``null``.

    Parameters
    ----------
    path:
        Destination file path.
    data:
        JSON-serializable object (NumPy scalars/arrays allowed).
    indent:
        JSON indentation (default 2).
    """
    payload = to_jsonable(data) if isinstance(data, (dict, list, tuple, np.ndarray)) else data
    _atomic_write(path, lambda f: json.dump(payload, f, indent=indent, allow_nan=False))


def atomic_write_text(path: str | os.PathLike, content: str) -> None:
    """Write *content* as text atomically via temp-file + rename."""
    _atomic_write(path, lambda f: f.write(content))
