"""
Topological properties of network modules.

For each module in a (test) dataset this computes:

    weighted degree     sum of a node's edge weights to the other module nodes
    average edge weight mean off-diagonal edge weight within the module
    summary vector      the module eigengene (see ``modtopo.stats.eigengene``)
    variance explained  proportion of module data variance the summary explains
    node contribution   correlation of each node's data with the summary

Node Presence:
    Modules are defined in a discovery dataset. When their properties are
    measured in a test dataset, some nodes may not exist there. Such nodes are
    recorded in ``missing_nodes`` and excluded from every statistic; all
    statistics are computed from the same submatrices restricted to the nodes
    present in the network, correlation, and (if supplied) data matrices.

Examples:
    >>> stats = compute_module_stats(network, data, correlation, ["A", "B", "C"])
    >>> stats.weighted_degree
    array([1.3, 0.9, 1.1])
    >>> stats.degree_series()      # NaN for absent nodes
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, Hashable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from numpy.typing import NDArray
from tqdm import tqdm

from modtopo.core.dataset import ModuleAssignment
from modtopo.core.labeled_matrix import MatrixSource
from modtopo.stats.eigengene import eigengene, standardize_columns
from modtopo.stats.indexing import IndexMode, check_bounds, restrict

logger = logging.getLogger(__name__)

__all__ = [
    'ModuleStatistics',
    'weighted_degree',
    'average_edge_weight',
    'node_contribution',
    'compute_module_stats',
    'present_nodes',
    'module_statistics',
]


@dataclass(frozen=True)
class ModuleStatistics:
    """
    Topological properties of one module in one dataset.

    Attributes:
        module: Module label
        dataset: Dataset the properties were measured in
        nodes: Nodes present in the dataset, in module order
        missing_nodes: Module nodes absent from the dataset
        weighted_degree: One value per entry of ``nodes``
        average_edge_weight: Mean off-diagonal edge weight (NaN for 1 node)
        contribution: One value per entry of ``nodes``; None without data
        summary: Summary value per sample; None without data
        variance_explained: In [0, 1]; None without data
    """

    module: str
    dataset: Optional[str]
    nodes: Tuple[Hashable, ...]
    weighted_degree: NDArray[np.float64]
    average_edge_weight: float
    missing_nodes: Tuple[Hashable, ...] = ()
    contribution: Optional[NDArray[np.float64]] = None
    summary: Optional[pd.Series] = None
    variance_explained: Optional[float] = None
    module_nodes: Tuple[Hashable, ...] = field(default=())

    def __post_init__(self):
        if len(self.weighted_degree) != len(self.nodes):
            raise ValueError("weighted_degree must have one value per node")
        if self.contribution is not None and len(self.contribution) != len(self.nodes):
            raise ValueError("contribution must have one value per node")
        if not self.module_nodes:
            object.__setattr__(self, 'module_nodes', tuple(self.nodes) + tuple(self.missing_nodes))
        # Results are immutable once created
        self.weighted_degree.setflags(write=False)
        if self.contribution is not None:
            self.contribution.setflags(write=False)
        if self.summary is not None:
            values = self.summary.to_numpy(dtype=np.float64, copy=True)
            values.setflags(write=False)
            summary = pd.Series(values, index=self.summary.index, name=self.summary.name, copy=False)
            object.__setattr__(self, 'summary', summary)

    @property
    def has_data(self) -> bool:
        return self.summary is not None

    @property
    def samples(self) -> Optional[pd.Index]:
        return None if self.summary is None else self.summary.index

    def is_present(self, node: Hashable) -> bool:
        return node in set(self.nodes)

    def degree_series(self) -> pd.Series:
        """Weighted degree for every module node, NaN where absent."""
        s = pd.Series(self.weighted_degree, index=pd.Index(self.nodes, dtype=object), dtype=float)
        return s.reindex(pd.Index(self.module_nodes, dtype=object))

    def contribution_series(self) -> Optional[pd.Series]:
        """Node contribution for every module node, NaN where absent."""
        if self.contribution is None:
            return None
        s = pd.Series(self.contribution, index=pd.Index(self.nodes, dtype=object), dtype=float)
        return s.reindex(pd.Index(self.module_nodes, dtype=object))

    def to_dict(self) -> dict:
        """Plain representation for JSON output."""
        out = {
            'module': self.module,
            'dataset': self.dataset,
            'nodes': list(self.nodes),
            'missing_nodes': list(self.missing_nodes),
            'weighted_degree': self.weighted_degree.tolist(),
            'average_edge_weight': self.average_edge_weight,
        }
        if self.has_data:
            out['contribution'] = self.contribution.tolist()
            out['samples'] = self.summary.index.tolist()
            out['summary'] = self.summary.to_numpy().tolist()
            out['variance_explained'] = self.variance_explained
        return out


def weighted_degree(network: NDArray[np.float64]) -> NDArray[np.float64]:
    """Row sums of a square edge-weight matrix, excluding self-loops."""
    network = np.asarray(network, dtype=np.float64)
    return network.sum(axis=1) - np.diag(network)


def average_edge_weight(network: NDArray[np.float64]) -> float:
    """Mean of the off-diagonal entries of a square edge-weight matrix."""
    n = network.shape[0]
    if n < 2:
        return float('nan')
    total = float(np.sum(network) - np.trace(network))
    return total / (n * (n - 1))


def node_contribution(
    data: NDArray[np.float64],
    summary: NDArray[np.float64],
) -> NDArray[np.float64]:
    """
    Pearson correlation between each column of ``data`` and ``summary``.

    Constant columns have no defined correlation and yield NaN.
    """
    data = np.asarray(data, dtype=np.float64)
    n = data.shape[0]
    z = standardize_columns(data)
    constant = np.all(z == 0, axis=0)

    s = summary - summary.mean()
    s_sd = s.std(ddof=1)
    if s_sd == 0:
        return np.full(data.shape[1], np.nan)
    s = s / s_sd

    contribution = (z.T @ s) / (n - 1)
    contribution = np.clip(contribution, -1.0, 1.0)
    contribution[constant] = np.nan
    return contribution


def compute_module_stats(
    network: MatrixSource,
    data: Optional[MatrixSource],
    correlation: Optional[MatrixSource],
    module_nodes: Sequence[Hashable],
    module: Hashable = "module",
    dataset: Optional[str] = None,
    missing_nodes: Sequence[Hashable] = (),
    by: IndexMode = "auto",
    scale: bool = True,
) -> ModuleStatistics:
    """
    Compute the topological properties of one module.

    Every requested node is validated against all supplied matrices before
    any values are read or computed.

    Args:
        network: Edge weights (nodes × nodes)
        data: Observations (samples × nodes), or None
        correlation: Correlation coefficients (nodes × nodes), or None
        module_nodes: Labels or 1-based positions of the module's nodes
        module: Module label for the result
        dataset: Dataset name for the result
        missing_nodes: Module nodes known to be absent from this dataset
        by: How to interpret ``module_nodes`` ("auto", "label", "position")
        scale: Standardize module data before computing the summary

    Returns:
        ModuleStatistics for the module

    Raises:
        OutOfRangeError: If a node does not exist in one of the matrices
        DegenerateModuleError: If data is supplied but the module has fewer
            than 2 nodes or the data fewer than 2 samples
    """
    _, node_pos = check_bounds(network, rows=None, cols=module_nodes, by=by)
    labels = list(network.col_labels[node_pos])

    # Labels are validated against every matrix before any values are read
    if correlation is not None:
        check_bounds(correlation, labels, labels, by="label")
    if data is not None:
        check_bounds(data, None, labels, by="label")

    net_sub = restrict(network, labels, labels, by="label")
    degree = weighted_degree(net_sub.values)
    avg_weight = average_edge_weight(net_sub.values)

    contribution = None
    summary = None
    variance_explained = None
    if data is not None:
        data_sub = restrict(data, None, labels, by="label")
        result = eigengene(data_sub.values, scale=scale, module=module)
        summary = pd.Series(result.summary, index=data_sub.row_labels, name=str(module))
        variance_explained = result.variance_explained
        contribution = node_contribution(data_sub.values, result.summary)
        if np.isnan(contribution).any():
            logger.warning(
                f"Module {module!r}: {int(np.isnan(contribution).sum())} node(s) have "
                f"constant data; their contribution is undefined"
            )

    return ModuleStatistics(
        module=str(module),
        dataset=dataset,
        nodes=tuple(labels),
        missing_nodes=tuple(missing_nodes),
        weighted_degree=degree,
        average_edge_weight=avg_weight,
        contribution=contribution,
        summary=summary,
        variance_explained=variance_explained,
    )


def present_nodes(
    module_nodes: Sequence[Hashable],
    network: MatrixSource,
    correlation: Optional[MatrixSource] = None,
    data: Optional[MatrixSource] = None,
) -> Tuple[List[Hashable], List[Hashable]]:
    """
    Split module nodes into those present in every supplied matrix and the rest.

    Order of ``module_nodes`` is preserved in both lists.
    """
    available = set(network.col_labels)
    if correlation is not None:
        available &= set(correlation.col_labels)
    if data is not None:
        available &= set(data.col_labels)
    present = [n for n in module_nodes if n in available]
    missing = [n for n in module_nodes if n not in available]
    return present, missing


def module_statistics(
    matrices,
    assignment: ModuleAssignment,
    modules: Sequence[Hashable],
    scale: bool = True,
    verbose: bool = False,
) -> Dict[str, ModuleStatistics]:
    """
    Compute properties of several discovery modules in one resident dataset.

    Args:
        matrices: ResidentMatrixSet of the dataset to measure in
        assignment: Module assignment from the discovery dataset
        modules: Module labels to analyse
        scale: Standardize module data before computing summaries
        verbose: Show a progress bar

    Returns:
        Dict mapping module label -> ModuleStatistics
    """
    results: Dict[str, ModuleStatistics] = {}
    iterator = tqdm(modules, desc=f"Modules in {matrices.dataset}", unit="module") if verbose else modules

    for module in iterator:
        module = str(module)
        nodes = assignment.nodes_in(module)
        present, missing = present_nodes(
            nodes, matrices.network, matrices.correlation, matrices.data
        )
        if missing:
            logger.debug(
                f"Module {module!r}: {len(missing)}/{len(nodes)} nodes absent from "
                f"dataset {matrices.dataset!r}"
            )
        stats = compute_module_stats(
            matrices.network,
            matrices.data,
            matrices.correlation,
            present,
            module=module,
            dataset=matrices.dataset,
            missing_nodes=missing,
            by="label",
            scale=scale,
        )
        results[module] = replace(stats, module_nodes=tuple(nodes))

    logger.info(f"Computed properties of {len(results)} module(s) in dataset {matrices.dataset!r}")
    return results
