"""
Datasets, module assignments, and the canonical multi-dataset collection.

A Dataset bundles the three matrices describing one measured system:

    network      node × node edge weights            (required)
    correlation  node × node correlation coefficients (required)
    data         sample × node observations          (optional)

Each matrix is any ``MatrixSource``: a resident ``LabeledMatrix`` or a
disk-backed ``DiskMatrix``. Only labels are inspected at construction time so
building a Dataset never loads values from disk.

A ModuleAssignment maps node labels to module labels within one discovery
dataset. Nodes carrying the background label are unassigned and never
analysed.

Datasets are addressed through a DatasetCollection by name or by 1-based
position, the same convention used for row/column positions throughout.
"""

from __future__ import annotations

from collections import OrderedDict
from typing import Dict, Hashable, Iterator, List, Mapping, Optional, Sequence, Union

import pandas as pd

from modtopo.core.labeled_matrix import MatrixSource

__all__ = ['Dataset', 'ModuleAssignment', 'DatasetCollection', 'DatasetRef']

DatasetRef = Union[str, int]


class Dataset:
    """
    Network, correlation, and (optionally) data matrices for one dataset.

    Attributes:
        name: Dataset identifier
        network: Edge weights (nodes × nodes)
        correlation: Correlation coefficients (nodes × nodes)
        data: Observations (samples × nodes), or None

    Raises:
        TypeError: If a matrix does not implement MatrixSource
        ValueError: If node labels are inconsistent between matrices
    """

    def __init__(
        self,
        name: str,
        network: MatrixSource,
        correlation: MatrixSource,
        data: Optional[MatrixSource] = None,
    ):
        for role, matrix in (("network", network), ("correlation", correlation), ("data", data)):
            if matrix is None and role == "data":
                continue
            if not isinstance(matrix, MatrixSource):
                raise TypeError(f"{role} must be a MatrixSource, got {type(matrix)}")

        _check_square(network, "network", name)
        _check_square(correlation, "correlation", name)

        _check_nested(correlation, "correlation", network, "network", name)
        if data is not None:
            _check_nested(data, "data", network, "network", name)
            _check_nested(data, "data", correlation, "correlation", name)

        self.name = name
        self.network = network
        self.correlation = correlation
        self.data = data

    @property
    def nodes(self) -> pd.Index:
        """Node labels of the network."""
        return self.network.col_labels

    @property
    def samples(self) -> Optional[pd.Index]:
        """Sample labels of the data matrix, or None if no data supplied."""
        return None if self.data is None else self.data.row_labels

    @property
    def has_data(self) -> bool:
        return self.data is not None

    @property
    def is_disk_backed(self) -> bool:
        """Whether any of the matrices must be loaded from disk."""
        return any(
            m is not None and m.is_disk_backed
            for m in (self.network, self.correlation, self.data)
        )

    def __repr__(self) -> str:
        n_samples = "no data" if self.data is None else f"{self.data.shape[0]} samples"
        return f"Dataset({self.name!r}: {len(self.nodes)} nodes, {n_samples})"


def _check_square(matrix: MatrixSource, role: str, dataset: str) -> None:
    n_rows, n_cols = matrix.shape
    if n_rows != n_cols:
        raise ValueError(f"Dataset {dataset!r}: {role} matrix must be square, got {matrix.shape}")
    if not matrix.row_labels.equals(matrix.col_labels):
        raise ValueError(
            f"Dataset {dataset!r}: {role} matrix row and column labels must be identical"
        )


def _check_nested(
    matrix: MatrixSource, role: str, other: MatrixSource, other_role: str, dataset: str
) -> None:
    """Node labels of two matrices must be a subset or superset of each other."""
    nodes = set(matrix.col_labels)
    other_nodes = set(other.col_labels)
    if not (nodes <= other_nodes or other_nodes <= nodes):
        raise ValueError(
            f"Dataset {dataset!r}: {role} nodes must be a subset or superset of "
            f"the {other_role} nodes"
        )


class ModuleAssignment:
    """
    Node-to-module mapping for a discovery dataset.

    Module labels are compared as strings so that ``1`` and ``"1"`` refer to
    the same module, matching how labels round-trip through CSV and YAML.

    Attributes:
        labels: Series mapping node label -> module label (as str)
        background: Label marking unassigned nodes
    """

    def __init__(self, labels: Mapping[Hashable, Hashable] | pd.Series, background: Hashable = "0"):
        if isinstance(labels, pd.Series):
            series = labels.astype(str)
        else:
            series = pd.Series({node: str(module) for node, module in labels.items()}, dtype=object)
        if series.index.has_duplicates:
            raise ValueError("Each node may be assigned to exactly one module")
        self.labels = series
        self.background = str(background)

    def modules(self) -> List[str]:
        """Assigned module labels (background excluded), in natural sort order."""
        found = pd.unique(self.labels[self.labels != self.background])
        return sorted(found, key=_natural_key)

    def nodes_in(self, module: Hashable) -> List[Hashable]:
        """Nodes assigned to ``module``, in assignment order."""
        module = str(module)
        if module == self.background:
            raise ValueError(f"Module {module!r} is the background label")
        nodes = self.labels.index[self.labels == module].tolist()
        if not nodes:
            raise ValueError(f"Module {module!r} has no assigned nodes")
        return nodes

    def module_of(self, node: Hashable) -> str:
        return self.labels[node]

    def __len__(self) -> int:
        return len(self.labels)

    def __repr__(self) -> str:
        return f"ModuleAssignment({len(self)} nodes, {len(self.modules())} modules)"


def _natural_key(label: str):
    try:
        return (0, float(label), label)
    except ValueError:
        return (1, 0.0, label)


class DatasetCollection:
    """
    Ordered, name-indexed collection of datasets.

    This is the canonical multi-dataset form the statistics engine works
    with. Datasets are looked up by name or by 1-based position.
    """

    def __init__(self, datasets: Sequence[Dataset]):
        self._datasets: "OrderedDict[str, Dataset]" = OrderedDict()
        for ds in datasets:
            if ds.name in self._datasets:
                raise ValueError(f"Duplicate dataset name: {ds.name!r}")
            self._datasets[ds.name] = ds

    def resolve_name(self, ref: DatasetRef) -> str:
        """Translate a dataset name or 1-based position into a dataset name."""
        if isinstance(ref, bool):
            raise TypeError("Dataset references must be names or positions")
        if isinstance(ref, int):
            names = list(self._datasets)
            if ref < 1 or ref > len(names):
                raise ValueError(
                    f"Dataset position {ref} is out of range: valid range is [1, {len(names)}]"
                )
            return names[ref - 1]
        if ref not in self._datasets:
            raise ValueError(f"Unknown dataset {ref!r}; available: {list(self._datasets)}")
        return ref

    def __getitem__(self, ref: DatasetRef) -> Dataset:
        return self._datasets[self.resolve_name(ref)]

    def __contains__(self, ref: object) -> bool:
        return ref in self._datasets

    def __iter__(self) -> Iterator[Dataset]:
        return iter(self._datasets.values())

    def __len__(self) -> int:
        return len(self._datasets)

    @property
    def names(self) -> List[str]:
        return list(self._datasets)

    def as_dict(self) -> Dict[str, Dataset]:
        return dict(self._datasets)
