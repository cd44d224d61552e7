"""
Disk-backed matrices for datasets too large to keep in RAM.

PROBLEM:
    Network and correlation matrices grow quadratically with the number of
    nodes. With several datasets of 20K+ nodes, holding every matrix in memory
    at once is not feasible.

SOLUTION:
    Store each matrix as a binary ``.npy`` file with a small JSON sidecar that
    declares its shape and labels. A ``DiskMatrix`` handle exposes labels and
    shape from the sidecar alone; values are only read when the matrix store
    loads the dataset, or through memory-mapped submatrix reads.

FILE STRUCTURE:
    {stem}.npy   values (NumPy binary format, memory-mappable)
    {stem}.meta  JSON: shape, row_labels, col_labels, dtype, created_at

USAGE:
    >>> from modtopo.io.disk_matrix import DiskMatrix, save_disk_matrix
    >>>
    >>> save_disk_matrix(network, "cache/discovery_network.npy")
    >>> handle = DiskMatrix("cache/discovery_network.npy")
    >>> handle.shape              # read from sidecar, no values loaded
    (20000, 20000)
    >>> resident = handle.load()  # LabeledMatrix in RAM
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence

import numpy as np
import pandas as pd

from modtopo.core.errors import DataAccessError
from modtopo.core.labeled_matrix import LabeledMatrix, MatrixSource
from modtopo.utils.fileio import atomic_write_json

logger = logging.getLogger(__name__)

__all__ = ['DiskMatrix', 'save_disk_matrix', 'metadata_path']


def metadata_path(path: str | Path) -> Path:
    """Sidecar metadata path for a ``.npy`` values file."""
    return Path(path).with_suffix(".meta")


def save_disk_matrix(matrix: MatrixSource, path: str | Path) -> DiskMatrix:
    """
    Write a matrix to disk in the disk-backed format.

    Values are written with ``np.save``; the sidecar is written atomically
    afterwards so a sidecar never describes a partially written values file.

    Args:
        matrix: Any matrix source (values are read in full)
        path: Destination ``.npy`` path

    Returns:
        DiskMatrix handle for the written file
    """
    path = Path(path)
    if path.suffix != ".npy":
        path = path.with_suffix(".npy")
    path.parent.mkdir(parents=True, exist_ok=True)

    values = np.ascontiguousarray(matrix.read_submatrix())
    np.save(path, values)

    metadata = {
        'shape': list(values.shape),
        'dtype': str(values.dtype),
        'row_labels': matrix.row_labels.tolist(),
        'col_labels': matrix.col_labels.tolist(),
        'created_at': datetime.now().isoformat(),
    }
    atomic_write_json(metadata_path(path), metadata)
    logger.debug(f"Wrote disk matrix {path} ({values.shape[0]} × {values.shape[1]})")

    return DiskMatrix(path, name=matrix.name)


class DiskMatrix(MatrixSource):
    """
    Handle to a matrix stored on disk.

    Only the sidecar metadata is read on construction. Values are read by
    ``load`` (full matrix into RAM) or ``read_submatrix`` (memory-mapped).

    Raises:
        DataAccessError: If the sidecar is missing or malformed
    """

    def __init__(self, path: str | Path, name: str = "matrix"):
        self.path = Path(path)
        self.name = name
        meta_path = metadata_path(self.path)

        try:
            with open(meta_path, 'r') as f:
                metadata = json.load(f)
            declared = tuple(int(n) for n in metadata['shape'])
            row_labels = pd.Index(metadata['row_labels'])
            col_labels = pd.Index(metadata['col_labels'])
        except FileNotFoundError:
            raise DataAccessError(name, f"metadata file not found: {meta_path}")
        except (OSError, json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            raise DataAccessError(name, f"malformed metadata in {meta_path}: {e}")

        if len(declared) != 2:
            raise DataAccessError(name, f"declared shape must be 2D, got {declared}")
        if (len(row_labels), len(col_labels)) != declared:
            raise DataAccessError(
                name,
                f"declared shape {declared} does not match label counts "
                f"({len(row_labels)}, {len(col_labels)})"
            )
        for axis, labels in (("row", row_labels), ("column", col_labels)):
            if labels.has_duplicates:
                duplicated = labels[labels.duplicated()].unique().tolist()
                raise DataAccessError(
                    name, f"duplicate {axis} labels in {meta_path}: {duplicated[:5]}"
                )

        self._shape = declared
        self._row_labels = row_labels
        self._col_labels = col_labels

    @property
    def shape(self) -> tuple[int, int]:
        return self._shape

    @property
    def row_labels(self) -> pd.Index:
        return self._row_labels

    @property
    def col_labels(self) -> pd.Index:
        return self._col_labels

    @property
    def is_disk_backed(self) -> bool:
        return True

    def _open(self) -> np.ndarray:
        """Memory-map the values file and check it against the declared shape."""
        try:
            values = np.load(self.path, mmap_mode='r')
        except FileNotFoundError:
            raise DataAccessError(self.name, f"values file not found: {self.path}")
        except (OSError, ValueError) as e:
            raise DataAccessError(self.name, f"cannot read {self.path}: {e}")

        if values.shape != self._shape:
            raise DataAccessError(
                self.name,
                f"declared dimensions {self._shape} do not match dimensions "
                f"{values.shape} read from {self.path}"
            )
        return values

    def read_submatrix(
        self,
        rows: Optional[Sequence[int]] = None,
        cols: Optional[Sequence[int]] = None,
    ) -> np.ndarray:
        values = self._open()
        if rows is not None:
            values = values[np.asarray(rows, dtype=np.intp), :]
        if cols is not None:
            values = values[:, np.asarray(cols, dtype=np.intp)]
        return np.array(values)

    def load(self) -> LabeledMatrix:
        """Read the full matrix into RAM."""
        return LabeledMatrix(
            np.array(self._open()),
            row_labels=self._row_labels,
            col_labels=self._col_labels,
            name=self.name,
        )

    def __repr__(self) -> str:
        return f"DiskMatrix({self.name}: {self._shape[0]} × {self._shape[1]}, {self.path})"
