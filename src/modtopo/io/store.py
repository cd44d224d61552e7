"""
Out-of-core matrix store with a single-resident-dataset policy.

Only one dataset's network, correlation, and data matrices are held in RAM at
any time. Requesting a different dataset evicts the current one before the new
one is loaded, and every computation acquires its dataset through a scoped
context manager so eviction happens on all exit paths, including errors.

Residency is tracked by an explicit ``ResidencyState`` owned by the caller and
passed to the store; there is no module-level cache.

Usage:
    >>> store = MatrixStore(datasets)
    >>> with store.acquire("discovery") as matrices:
    ...     net = matrices.network          # LabeledMatrix in RAM
    >>> store.state.dataset is None         # evicted on exit
    True
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, List, Optional

from modtopo.core.dataset import DatasetCollection, DatasetRef
from modtopo.core.errors import DataAccessError
from modtopo.core.labeled_matrix import LabeledMatrix, MatrixSource
from modtopo.io.disk_matrix import DiskMatrix

logger = logging.getLogger(__name__)

__all__ = ['ResidentMatrixSet', 'ResidencyState', 'MatrixStore']


@dataclass(frozen=True)
class ResidentMatrixSet:
    """In-memory matrices of one dataset."""

    dataset: str
    network: LabeledMatrix
    correlation: LabeledMatrix
    data: Optional[LabeledMatrix] = None


@dataclass
class ResidencyState:
    """
    Which dataset is currently resident, and its matrices.

    Attributes:
        dataset: Name of the resident dataset, or None
        matrices: The resident matrices, or None
        loads: Names of datasets loaded so far, in order (for diagnostics)
    """

    dataset: Optional[str] = None
    matrices: Optional[ResidentMatrixSet] = None
    loads: List[str] = field(default_factory=list)

    def is_resident(self, name: str) -> bool:
        return self.dataset == name and self.matrices is not None

    def clear(self) -> None:
        self.dataset = None
        self.matrices = None


def _to_resident(source: MatrixSource, name: str) -> LabeledMatrix:
    if isinstance(source, DiskMatrix):
        try:
            resident = source.load()
        except DataAccessError as e:
            raise DataAccessError(name, e.reason) from e
        return LabeledMatrix(resident.values, resident.row_labels, resident.col_labels, name=name)
    if isinstance(source, LabeledMatrix):
        return LabeledMatrix(source.values, source.row_labels, source.col_labels, name=name)
    return LabeledMatrix(source.read_submatrix(), source.row_labels, source.col_labels, name=name)


class MatrixStore:
    """
    Loads datasets into RAM on demand, keeping at most one resident.

    Args:
        datasets: Collection the store resolves dataset references against
        state: Residency state to mutate (a fresh one if not given)
    """

    def __init__(self, datasets: DatasetCollection, state: Optional[ResidencyState] = None):
        self.datasets = datasets
        self.state = state if state is not None else ResidencyState()

    def resolve(self, ref: DatasetRef) -> ResidentMatrixSet:
        """
        Ensure the referenced dataset is resident and return its matrices.

        Any other resident dataset is evicted first.

        Raises:
            DataAccessError: If a disk-backed matrix cannot be read
        """
        name = self.datasets.resolve_name(ref)
        if self.state.is_resident(name):
            return self.state.matrices

        if self.state.dataset is not None:
            self.evict(self.state.dataset)

        dataset = self.datasets[name]
        if dataset.is_disk_backed:
            logger.info(f"Loading dataset {name!r} into RAM...")

        matrices = ResidentMatrixSet(
            dataset=name,
            network=_to_resident(dataset.network, f"network ({name})"),
            correlation=_to_resident(dataset.correlation, f"correlation ({name})"),
            data=None if dataset.data is None else _to_resident(dataset.data, f"data ({name})"),
        )

        self.state.dataset = name
        self.state.matrices = matrices
        self.state.loads.append(name)
        return matrices

    def evict(self, ref: Optional[DatasetRef] = None) -> None:
        """
        Release the resident matrices.

        If ``ref`` is given, only evicts when that dataset is the resident one.
        """
        if self.state.dataset is None:
            return
        if ref is not None and self.datasets.resolve_name(ref) != self.state.dataset:
            return
        name = self.state.dataset
        if self.datasets[name].is_disk_backed:
            logger.info(f"Unloading dataset {name!r} from RAM...")
        self.state.clear()

    @contextmanager
    def acquire(self, ref: DatasetRef) -> Iterator[ResidentMatrixSet]:
        """Resolve a dataset for the duration of a ``with`` block."""
        try:
            yield self.resolve(ref)
        finally:
            self.evict()

    @contextmanager
    def session(self) -> Iterator[MatrixStore]:
        """
        Scope spanning several resolves; whatever is resident at exit is evicted.

        Used when a computation walks through multiple datasets one after the
        other and must leave nothing resident whether it succeeds or fails.
        """
        try:
            yield self
        finally:
            self.evict()
