"""
Bounds-checked row/column selection.

Every user-supplied subset is resolved against the matrix labels before any
values are read. Subsets may be given as labels or as 1-based positions; an
index that is ≤ 0, larger than the matrix extent, or a label that does not
exist raises ``OutOfRangeError`` listing the offending identifiers and the
valid range. Nothing is read or computed for a request that fails this check,
which matters when the matrix is a 20K × 20K network on disk.
"""

from __future__ import annotations

from numbers import Integral
from typing import Hashable, Literal, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from modtopo.core.errors import OutOfRangeError
from modtopo.core.labeled_matrix import LabeledMatrix, MatrixSource

__all__ = ['resolve_positions', 'check_bounds', 'restrict']

IndexMode = Literal["auto", "label", "position"]


def _is_position(value) -> bool:
    return isinstance(value, Integral) and not isinstance(value, (bool, np.bool_))


def resolve_positions(
    labels: pd.Index,
    subset: Sequence[Hashable],
    matrix_name: str = "matrix",
    axis: str = "column",
    by: IndexMode = "auto",
) -> np.ndarray:
    """
    Translate a subset of labels or 1-based positions into 0-based positions.

    Args:
        labels: Labels along the indexed axis
        subset: Requested labels or 1-based positions
        matrix_name: Matrix name for error messages
        axis: "row" or "column", for error messages
        by: "label", "position", or "auto" (all integers -> positions)

    Returns:
        0-based integer positions, in request order

    Raises:
        OutOfRangeError: If any requested entry does not exist
        ValueError: If the subset requests an entry more than once
    """
    subset = list(subset)
    extent = len(labels)

    if by == "auto":
        by = "position" if subset and all(_is_position(s) for s in subset) else "label"

    if by == "position":
        if not all(_is_position(s) for s in subset):
            raise TypeError(f"Positions for {matrix_name} must be integers")
        requested = np.asarray(subset, dtype=np.int64)
        bad = (requested <= 0) | (requested > extent)
        if bad.any():
            invalid = sorted(set(requested[bad].tolist()))
            raise OutOfRangeError(matrix_name, axis, invalid, extent)
        positions = requested - 1
    else:
        positions = labels.get_indexer(pd.Index(subset)) if subset else np.array([], dtype=np.int64)
        missing = positions < 0
        if missing.any():
            invalid = [s for s, m in zip(subset, missing) if m]
            raise OutOfRangeError(matrix_name, axis, list(dict.fromkeys(invalid)), extent)

    if len(np.unique(positions)) != len(positions):
        raise ValueError(f"Requested {axis} subset of {matrix_name} contains duplicates")

    return positions.astype(np.intp)


def check_bounds(
    matrix: MatrixSource,
    rows: Optional[Sequence[Hashable]] = None,
    cols: Optional[Sequence[Hashable]] = None,
    by: IndexMode = "auto",
) -> Tuple[Optional[np.ndarray], Optional[np.ndarray]]:
    """Validate a row/column request against a matrix without reading values."""
    row_pos = None if rows is None else resolve_positions(
        matrix.row_labels, rows, matrix.name, "row", by
    )
    col_pos = None if cols is None else resolve_positions(
        matrix.col_labels, cols, matrix.name, "column", by
    )
    return row_pos, col_pos


def restrict(
    matrix: MatrixSource,
    rows: Optional[Sequence[Hashable]] = None,
    cols: Optional[Sequence[Hashable]] = None,
    by: IndexMode = "auto",
) -> LabeledMatrix:
    """
    Restrict a matrix to a row/column subset, validating first.

    Args:
        matrix: Resident or disk-backed matrix
        rows: Row labels or 1-based positions (all rows when None)
        cols: Column labels or 1-based positions (all columns when None)
        by: How to interpret subsets ("auto", "label", "position")

    Returns:
        LabeledMatrix holding only the requested rows and columns

    Raises:
        OutOfRangeError: Before any values are read, if a requested index
            does not exist

    Examples:
        >>> sub = restrict(network, rows=["A", "B"], cols=["A", "B"])
        >>> restrict(data, cols=[0, 5])   # 4 columns
        Traceback (most recent call last):
        ...
        OutOfRangeError: Requested column indices {0, 5} are outside of ...
    """
    row_pos, col_pos = check_bounds(matrix, rows, cols, by)

    if isinstance(matrix, LabeledMatrix):
        return matrix.take(row_pos, col_pos)

    values = matrix.read_submatrix(row_pos, col_pos)
    return LabeledMatrix(
        values,
        row_labels=matrix.row_labels if row_pos is None else matrix.row_labels[row_pos],
        col_labels=matrix.col_labels if col_pos is None else matrix.col_labels[col_pos],
        name=matrix.name,
    )
