"""
modtopo: topology statistics of network modules across datasets.

Computes, for modules of co-expressed nodes defined in a discovery dataset,
their weighted degree, module summary profile, and node contributions in any
test dataset, and aligns nodes, samples, and modules across datasets for
display. Datasets may be held on disk; at most one is resident in RAM at a
time.

Example:
    >>> from modtopo import module_topology
    >>> result = module_topology(network=net, correlation=cor, data=dat,
    ...                          module_assignments=labels)
    >>> result.statistics["1"].variance_explained
"""

__version__ = "0.1.0"

from modtopo.core import (
    DataAccessError,
    Dataset,
    DatasetCollection,
    DegenerateModuleError,
    InconsistentAlignmentError,
    LabeledMatrix,
    ModuleAssignment,
    ModuleTopologyError,
    OutOfRangeError,
)
from modtopo.io import DiskMatrix, MatrixStore, ResidencyState
from modtopo.pipeline import TopologyResult, module_topology, network_properties
from modtopo.stats import AlignmentResult, ModuleStatistics, eigengene

__all__ = [
    '__version__',
    'LabeledMatrix',
    'Dataset',
    'DatasetCollection',
    'ModuleAssignment',
    'DiskMatrix',
    'MatrixStore',
    'ResidencyState',
    'ModuleStatistics',
    'AlignmentResult',
    'TopologyResult',
    'eigengene',
    'network_properties',
    'module_topology',
    'ModuleTopologyError',
    'OutOfRangeError',
    'DataAccessError',
    'DegenerateModuleError',
    'InconsistentAlignmentError',
]
