"""
Cross-dataset ordering of nodes, samples, and modules.

Module properties computed in a discovery dataset and in one or more test
datasets are only comparable side by side when nodes, samples, and modules
are laid out in the same order. This module derives those orders and records,
for every node and sample, whether it exists in the test dataset being shown.

Node order:
    Within each module, nodes are sorted by decreasing weighted degree in the
    ``order_nodes_by`` dataset(s). With several datasets, each dataset's
    degrees are scaled to their maximum within the module and averaged. A node
    absent from any of those datasets has no average and sorts last.
    ``order_nodes_by=None`` keeps the assignment order.

Module order:
    With more than one module, modules are ordered by complete-linkage
    hierarchical clustering of their summary vectors (concatenated across the
    ``order_nodes_by`` datasets) under correlation distance 1 - r.

Sample order:
    Samples are sorted by decreasing summary of the first module in module
    order. Ordering by the test dataset (default) uses its own summary.
    Ordering by the discovery dataset keeps discovery samples that are absent
    from the test dataset as placeholders in place. Ordering by any other
    dataset puts shared samples first, then test-only samples (sorted by the
    test summary) after a boundary, then placeholders for samples only found
    in the ordering dataset.

No entity is ever dropped: every ordering covers the union of entities of
the datasets it references, each exactly once.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Hashable, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from scipy.cluster.hierarchy import leaves_list, linkage
from scipy.spatial.distance import squareform

from modtopo.core.dataset import ModuleAssignment
from modtopo.core.errors import InconsistentAlignmentError
from modtopo.stats.topology import ModuleStatistics

logger = logging.getLogger(__name__)

__all__ = [
    'AlignmentResult',
    'StatsByDataset',
    'order_modules',
    'order_nodes',
    'order_samples',
    'align',
]

StatsByDataset = Mapping[str, Mapping[str, ModuleStatistics]]


@dataclass(frozen=True)
class AlignmentResult:
    """
    Orders of nodes, samples, and modules with presence flags.

    Attributes:
        node_order: Node labels across all modules, grouped by module
        node_modules: Module label of each entry in ``node_order``
        node_present: Whether each node exists in the test dataset
        sample_order: Sample labels
        sample_present: Whether each sample exists in the test dataset
        module_order: Module labels
        sample_boundary: Position in ``sample_order`` where samples found
            only in the test dataset begin, or None
        n_new_samples: Number of samples after ``sample_boundary`` that are
            present only in the test dataset
    """

    node_order: Tuple[Hashable, ...]
    node_modules: Tuple[str, ...]
    node_present: Tuple[bool, ...]
    sample_order: Tuple[Hashable, ...]
    sample_present: Tuple[bool, ...]
    module_order: Tuple[str, ...]
    sample_boundary: Optional[int] = None
    n_new_samples: int = 0

    @property
    def present_nodes(self) -> List[Hashable]:
        return [n for n, p in zip(self.node_order, self.node_present) if p]

    @property
    def missing_nodes(self) -> List[Hashable]:
        return [n for n, p in zip(self.node_order, self.node_present) if not p]

    @property
    def present_samples(self) -> List[Hashable]:
        return [s for s, p in zip(self.sample_order, self.sample_present) if p]

    @property
    def missing_samples(self) -> List[Hashable]:
        return [s for s, p in zip(self.sample_order, self.sample_present) if not p]

    @property
    def missing_node_positions(self) -> List[int]:
        """0-based positions of absent nodes in ``node_order``."""
        return [i for i, p in enumerate(self.node_present) if not p]

    @property
    def missing_sample_positions(self) -> List[int]:
        """0-based positions of absent samples in ``sample_order``."""
        return [i for i, p in enumerate(self.sample_present) if not p]

    def to_dict(self) -> dict:
        return {
            'module_order': list(self.module_order),
            'node_order': list(self.node_order),
            'node_modules': list(self.node_modules),
            'node_present': list(self.node_present),
            'sample_order': list(self.sample_order),
            'sample_present': list(self.sample_present),
            'sample_boundary': self.sample_boundary,
            'n_new_samples': self.n_new_samples,
        }


def _lookup(stats: StatsByDataset, dataset: str, module: str) -> ModuleStatistics:
    try:
        return stats[dataset][module]
    except KeyError:
        raise InconsistentAlignmentError(module, dataset) from None


def _descending(values: np.ndarray) -> np.ndarray:
    """Stable order of positions by decreasing value; NaN last."""
    values = np.asarray(values, dtype=np.float64)
    keys = np.where(np.isnan(values), np.inf, -values)
    return np.argsort(keys, kind="stable")


def order_modules(
    stats: StatsByDataset,
    modules: Sequence[Hashable],
    order_by: Optional[Sequence[str]],
    enabled: bool = True,
) -> List[str]:
    """
    Order modules by the similarity of their summary vectors.

    Returns the input order when disabled, when fewer than two modules are
    given, or when none of the ``order_by`` datasets has a data matrix.

    Raises:
        InconsistentAlignmentError: If a module has no statistics in one of
            the ``order_by`` datasets
    """
    modules = [str(m) for m in modules]
    if not enabled or len(modules) < 2 or not order_by:
        return modules

    blocks = []
    for dataset in order_by:
        per_module = [_lookup(stats, dataset, m) for m in modules]
        if not all(s.has_data for s in per_module):
            logger.warning(
                f"Dataset {dataset!r} has no data matrix; its summaries cannot "
                f"inform module order"
            )
            continue
        blocks.append(np.column_stack([s.summary.to_numpy() for s in per_module]))

    if not blocks:
        logger.warning("No module summaries available; keeping input module order")
        return modules

    summaries = np.vstack(blocks)
    corr = np.corrcoef(summaries, rowvar=False)
    dist = np.clip(1.0 - np.nan_to_num(corr, nan=0.0), 0.0, 2.0)
    np.fill_diagonal(dist, 0.0)
    tree = linkage(squareform(dist, checks=False), method="complete")
    return [modules[i] for i in leaves_list(tree)]


def order_nodes(
    stats: StatsByDataset,
    assignment: ModuleAssignment,
    module_order: Sequence[str],
    order_by: Optional[Sequence[str]],
    test: str,
) -> Tuple[List[Hashable], List[str], List[bool]]:
    """
    Order nodes within each module by (averaged) weighted degree.

    Returns:
        (node_order, node_modules, node_present) where presence is relative
        to the ``test`` dataset

    Raises:
        InconsistentAlignmentError: If statistics are missing for a module in
            ``test`` or one of the ``order_by`` datasets
    """
    node_order: List[Hashable] = []
    node_modules: List[str] = []
    node_present: List[bool] = []

    for module in module_order:
        nodes = assignment.nodes_in(module)
        in_test = set(_lookup(stats, test, module).nodes)

        if order_by:
            degrees = []
            for dataset in order_by:
                deg = _lookup(stats, dataset, module).degree_series().reindex(
                    pd.Index(nodes, dtype=object)
                ).to_numpy(dtype=np.float64)
                if len(order_by) > 1 and np.any(deg > 0):
                    deg = deg / np.nanmax(deg)
                degrees.append(deg)
            stacked = np.vstack(degrees)
            counts = np.sum(~np.isnan(stacked), axis=0)
            totals = np.nansum(stacked, axis=0)
            average = np.where(counts > 0, totals / np.maximum(counts, 1), np.nan)
            # absent from any ordering dataset: sort last
            average[counts < len(order_by)] = np.nan
            nodes = [nodes[i] for i in _descending(average)]

        node_order.extend(nodes)
        node_modules.extend([module] * len(nodes))
        node_present.extend(n in in_test for n in nodes)

    return node_order, node_modules, node_present


def order_samples(
    stats: StatsByDataset,
    module_order: Sequence[str],
    test: str,
    discovery: str,
    order_by: Optional[str],
) -> Tuple[List[Hashable], List[bool], Optional[int], int]:
    """
    Order samples by the summary of the first module.

    Returns:
        (sample_order, sample_present, sample_boundary, n_new_samples)

    Raises:
        InconsistentAlignmentError: If the ordering dataset has no statistics
            or no data matrix for the first module
    """
    if not module_order:
        return [], [], None, 0

    first = module_order[0]
    test_stats = _lookup(stats, test, first)
    if not test_stats.has_data:
        return [], [], None, 0

    test_summary = test_stats.summary
    test_samples = list(test_summary.index)

    if order_by is None:
        return test_samples, [True] * len(test_samples), None, 0

    if order_by == test:
        ordered = [test_samples[i] for i in _descending(test_summary.to_numpy())]
        return ordered, [True] * len(ordered), None, 0

    by_stats = _lookup(stats, order_by, first)
    if not by_stats.has_data:
        raise InconsistentAlignmentError(first, order_by, "dataset has no data matrix")

    by_summary = by_stats.summary
    by_samples = list(by_summary.index)
    by_sorted = [by_samples[i] for i in _descending(by_summary.to_numpy())]

    in_test = set(test_samples)
    in_by = set(by_samples)

    new = test_summary[np.array([s not in in_by for s in test_samples], dtype=bool)]
    new_sorted = [new.index[i] for i in _descending(new.to_numpy())]

    if order_by == discovery:
        head = by_sorted
        head_present = [s in in_test for s in by_sorted]
        tail: List[Hashable] = []
    else:
        head = [s for s in by_sorted if s in in_test]
        head_present = [True] * len(head)
        tail = [s for s in by_sorted if s not in in_test]

    order = head + new_sorted + tail
    present = head_present + [True] * len(new_sorted) + [False] * len(tail)
    boundary = len(head) if new_sorted else None
    return order, present, boundary, len(new_sorted)


def align(
    stats: StatsByDataset,
    assignment: ModuleAssignment,
    modules: Sequence[Hashable],
    discovery: str,
    test: str,
    order_nodes_by: Optional[Sequence[str]] = None,
    order_samples_by: Optional[str] = None,
    order_modules_flag: bool = True,
) -> AlignmentResult:
    """
    Derive node, sample, and module orders for displaying ``test``.

    Args:
        stats: Module statistics keyed by dataset name then module label;
            must cover ``test`` and every dataset named in the ordering
            arguments
        assignment: Discovery module assignment
        modules: Modules to lay out
        discovery: Discovery dataset name
        test: Dataset whose properties are being shown
        order_nodes_by: Datasets to order nodes (and modules) by, or None to
            keep assignment order
        order_samples_by: Dataset to order samples by, or None to keep the
            test data order
        order_modules_flag: Cluster modules by summary similarity

    Returns:
        AlignmentResult

    Raises:
        InconsistentAlignmentError: If a referenced module/dataset pair has
            no statistics
    """
    modules = [str(m) for m in modules]
    for module in modules:
        _lookup(stats, test, module)

    module_order = order_modules(stats, modules, order_nodes_by, order_modules_flag)
    nodes, node_modules, node_present = order_nodes(
        stats, assignment, module_order, order_nodes_by, test
    )
    samples, sample_present, boundary, n_new = order_samples(
        stats, module_order, test, discovery, order_samples_by
    )

    logger.debug(
        f"Aligned {len(nodes)} nodes ({node_present.count(False)} missing), "
        f"{len(samples)} samples ({sample_present.count(False)} missing), "
        f"{len(module_order)} modules"
    )

    return AlignmentResult(
        node_order=tuple(nodes),
        node_modules=tuple(node_modules),
        node_present=tuple(node_present),
        sample_order=tuple(samples),
        sample_present=tuple(sample_present),
        module_order=tuple(module_order),
        sample_boundary=boundary,
        n_new_samples=n_new,
    )
