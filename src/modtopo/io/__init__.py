"""
Matrix input/output: disk-backed matrices, file loaders, the single-resident
matrix store, and input normalization.
"""

from modtopo.io.disk_matrix import DiskMatrix, save_disk_matrix
from modtopo.io.inputs import NormalizedInput, normalize_inputs
from modtopo.io.loaders import load_csv_matrix, load_matrix, load_module_assignment
from modtopo.io.store import MatrixStore, ResidencyState, ResidentMatrixSet

__all__ = [
    'DiskMatrix',
    'save_disk_matrix',
    'load_csv_matrix',
    'load_matrix',
    'load_module_assignment',
    'MatrixStore',
    'ResidencyState',
    'ResidentMatrixSet',
    'NormalizedInput',
    'normalize_inputs',
]
