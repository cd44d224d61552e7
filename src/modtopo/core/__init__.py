"""
Core data structures for module topology analysis.

1. LabeledMatrix / MatrixSource: labelled matrices and the shared read contract
2. Dataset / DatasetCollection: the matrices of one or more datasets
3. ModuleAssignment: node-to-module labels for a discovery dataset
4. Error taxonomy raised by the statistics engine
"""

from modtopo.core.dataset import Dataset, DatasetCollection, ModuleAssignment
from modtopo.core.errors import (
    DataAccessError,
    DegenerateModuleError,
    InconsistentAlignmentError,
    ModuleTopologyError,
    OutOfRangeError,
)
from modtopo.core.labeled_matrix import LabeledMatrix, MatrixSource

__all__ = [
    'LabeledMatrix',
    'MatrixSource',
    'Dataset',
    'DatasetCollection',
    'ModuleAssignment',
    'ModuleTopologyError',
    'OutOfRangeError',
    'DataAccessError',
    'DegenerateModuleError',
    'InconsistentAlignmentError',
]
