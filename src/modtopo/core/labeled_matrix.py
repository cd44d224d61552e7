"""
Labelled matrices and the read interface shared by in-memory and on-disk sources.

Network, data, and correlation matrices all flow through the same two types:

    MatrixSource   the minimal read contract (shape, labels, submatrix reads)
                   satisfied by both resident matrices and disk-backed handles
    LabeledMatrix  an in-memory 2D array tied to its row and column labels

Data Model:
    - network:     nodes × nodes edge weights
    - correlation: nodes × nodes pairwise correlation coefficients
    - data:        samples × nodes observations

Engineering Design:
    - Immutable by convention: subsetting returns new instances
    - Validated: constructor checks shape/label consistency and uniqueness
    - Labels are pandas Index objects so label lookups are vectorized

Examples:
    >>> import numpy as np
    >>> import pandas as pd
    >>> from modtopo.core.labeled_matrix import LabeledMatrix
    >>>
    >>> net = LabeledMatrix(
    ...     np.eye(3),
    ...     row_labels=pd.Index(["A", "B", "C"]),
    ...     col_labels=pd.Index(["A", "B", "C"]),
    ...     name="network",
    ... )
    >>> net.take([0, 2], [0, 2]).shape
    (2, 2)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional, Sequence

import numpy as np
import pandas as pd

__all__ = ['MatrixSource', 'LabeledMatrix']


class MatrixSource(ABC):
    """
    Read-only contract every matrix input satisfies.

    Positions passed to ``read_submatrix`` are 0-based and assumed valid;
    user-facing index validation happens in ``modtopo.stats.indexing`` before
    any read is attempted.
    """

    name: str = "matrix"

    @property
    @abstractmethod
    def shape(self) -> tuple[int, int]:
        """Matrix dimensions (n_rows, n_cols)."""

    @property
    @abstractmethod
    def row_labels(self) -> pd.Index:
        """Row identifiers."""

    @property
    @abstractmethod
    def col_labels(self) -> pd.Index:
        """Column identifiers."""

    @property
    def is_disk_backed(self) -> bool:
        """Whether values must be loaded from disk before use."""
        return False

    @abstractmethod
    def read_submatrix(
        self,
        rows: Optional[Sequence[int]] = None,
        cols: Optional[Sequence[int]] = None,
    ) -> np.ndarray:
        """Read values at 0-based positions (all rows/cols when None)."""


def _as_index(labels, what: str) -> pd.Index:
    if isinstance(labels, pd.Index):
        return labels
    if labels is None:
        raise TypeError(f"{what} must be provided")
    return pd.Index(list(labels))


class LabeledMatrix(MatrixSource):
    """
    In-memory matrix with row and column labels.

    Attributes:
        values: 2D numeric array
        row_labels: Row identifiers (unique)
        col_labels: Column identifiers (unique)
        name: Role of the matrix, used in error messages

    Shape Invariants:
        - values.ndim == 2
        - values.shape == (len(row_labels), len(col_labels))
        - labels contain no duplicates
    """

    def __init__(
        self,
        values: np.ndarray,
        row_labels: Sequence | pd.Index,
        col_labels: Sequence | pd.Index,
        name: str = "matrix",
    ):
        if not isinstance(values, np.ndarray):
            raise TypeError(f"values must be np.ndarray, got {type(values)}")
        if values.ndim != 2:
            raise ValueError(f"{name} values must be 2D, got shape {values.shape}")

        row_labels = _as_index(row_labels, "row_labels")
        col_labels = _as_index(col_labels, "col_labels")

        n_rows, n_cols = values.shape
        if len(row_labels) != n_rows:
            raise ValueError(
                f"{name} row_labels length ({len(row_labels)}) must match rows ({n_rows})"
            )
        if len(col_labels) != n_cols:
            raise ValueError(
                f"{name} col_labels length ({len(col_labels)}) must match columns ({n_cols})"
            )
        if row_labels.has_duplicates:
            raise ValueError(f"{name} row labels must be unique")
        if col_labels.has_duplicates:
            raise ValueError(f"{name} column labels must be unique")

        self._values = values
        self._row_labels = row_labels
        self._col_labels = col_labels
        self.name = name

    @classmethod
    def from_frame(cls, frame: pd.DataFrame, name: str = "matrix") -> LabeledMatrix:
        """Build from a DataFrame, using its index and columns as labels."""
        return cls(
            frame.to_numpy(dtype=np.float64),
            row_labels=frame.index,
            col_labels=frame.columns,
            name=name,
        )

    @property
    def values(self) -> np.ndarray:
        """Underlying 2D array."""
        return self._values

    @property
    def shape(self) -> tuple[int, int]:
        return self._values.shape

    @property
    def row_labels(self) -> pd.Index:
        return self._row_labels

    @property
    def col_labels(self) -> pd.Index:
        return self._col_labels

    def read_submatrix(
        self,
        rows: Optional[Sequence[int]] = None,
        cols: Optional[Sequence[int]] = None,
    ) -> np.ndarray:
        out = self._values
        if rows is not None:
            out = out[np.asarray(rows, dtype=np.intp), :]
        if cols is not None:
            out = out[:, np.asarray(cols, dtype=np.intp)]
        return out

    def take(
        self,
        rows: Optional[Sequence[int]] = None,
        cols: Optional[Sequence[int]] = None,
    ) -> LabeledMatrix:
        """
        Subset by 0-based positions, keeping labels attached.

        Positions are not validated here; use
        ``modtopo.stats.indexing.restrict`` for user-supplied subsets.
        """
        row_labels = self._row_labels if rows is None else self._row_labels[np.asarray(rows, dtype=np.intp)]
        col_labels = self._col_labels if cols is None else self._col_labels[np.asarray(cols, dtype=np.intp)]
        return LabeledMatrix(
            self.read_submatrix(rows, cols),
            row_labels=row_labels,
            col_labels=col_labels,
            name=self.name,
        )

    def to_frame(self) -> pd.DataFrame:
        """Labelled copy as a DataFrame."""
        return pd.DataFrame(self._values, index=self._row_labels, columns=self._col_labels)

    def __repr__(self) -> str:
        return f"LabeledMatrix({self.name}: {self.shape[0]} × {self.shape[1]})"
