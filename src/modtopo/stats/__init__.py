"""
Statistics engine: bounds-checked indexing, module summaries, topology
statistics, and cross-dataset alignment.
"""

from modtopo.stats.alignment import (
    AlignmentResult,
    align,
    order_modules,
    order_nodes,
    order_samples,
)
from modtopo.stats.eigengene import EigengeneResult, eigengene, standardize_columns
from modtopo.stats.indexing import check_bounds, resolve_positions, restrict
from modtopo.stats.topology import (
    ModuleStatistics,
    average_edge_weight,
    compute_module_stats,
    module_statistics,
    node_contribution,
    weighted_degree,
)

__all__ = [
    'resolve_positions',
    'check_bounds',
    'restrict',
    'EigengeneResult',
    'eigengene',
    'standardize_columns',
    'ModuleStatistics',
    'weighted_degree',
    'average_edge_weight',
    'node_contribution',
    'compute_module_stats',
    'module_statistics',
    'AlignmentResult',
    'order_modules',
    'order_nodes',
    'order_samples',
    'align',
]
