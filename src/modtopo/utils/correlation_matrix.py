"""
Chunked Pearson correlation matrices, optionally written straight to disk.

PROBLEM:
    A node × node correlation matrix for 20K+ nodes takes gigabytes. Computing
    it with ``np.corrcoef`` needs the whole result (plus temporaries) in RAM.

SOLUTION:
    Standardize the data once, then fill the output a block of rows at a time
    (corr = Z'Z / (n - 1)). The output may be a memory-mapped ``.npy`` file,
    in which case the finished matrix is immediately usable as a disk-backed
    correlation matrix via ``DiskMatrix``.

MEMORY:
    - Standardized data: n_samples × n_nodes × 8 bytes
    - Per chunk: chunk_size × n_nodes × 8 bytes
    - Output: n_nodes² × 4 bytes, on disk when ``path`` is given

USAGE:
    >>> from modtopo.utils.correlation_matrix import correlation_disk_matrix
    >>> corr = correlation_disk_matrix(data, "cache/discovery_correlation.npy")
    >>> corr.shape
    (20000, 20000)
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

import numpy as np
from tqdm import tqdm

from modtopo.core.labeled_matrix import LabeledMatrix, MatrixSource
from modtopo.io.disk_matrix import DiskMatrix, metadata_path
from modtopo.stats.eigengene import standardize_columns
from modtopo.utils.fileio import atomic_write_json

logger = logging.getLogger(__name__)

__all__ = [
    'compute_correlation_matrix_chunked',
    'correlation_matrix',
    'correlation_disk_matrix',
]


def compute_correlation_matrix_chunked(
    data: np.ndarray,
    chunk_size: int = 500,
    verbose: bool = False,
    output: Optional[np.ndarray] = None,
) -> np.ndarray:
    """
    Pearson correlation between the columns of a samples × nodes matrix.

    Args:
        data: Observations (n_samples × n_nodes)
        chunk_size: Number of nodes (output rows) per block
        verbose: Show progress bar
        output: Optional pre-allocated (n_nodes × n_nodes) array, e.g. a
            memmap. If None, a float32 array is allocated in RAM.

    Returns:
        Correlation matrix (n_nodes × n_nodes)

    Notes:
        - Constant nodes have correlation 0 with every other node
        - The diagonal is set to 1.0
    """
    data = np.asarray(data, dtype=np.float64)
    n_samples, n_nodes = data.shape
    if n_samples < 2:
        raise ValueError(f"Need at least 2 samples to compute correlations, got {n_samples}")

    logger.info(
        f"Computing Pearson correlation matrix: {n_nodes:,} nodes, {n_samples:,} samples, "
        f"chunk size {chunk_size:,}"
    )

    if output is None:
        output = np.zeros((n_nodes, n_nodes), dtype=np.float32)
    elif output.shape != (n_nodes, n_nodes):
        raise ValueError(f"output shape {output.shape} must be {(n_nodes, n_nodes)}")

    z = standardize_columns(data)

    n_chunks = (n_nodes + chunk_size - 1) // chunk_size
    chunk_iter = tqdm(range(n_chunks), desc="Computing correlations", unit="chunk") if verbose else range(n_chunks)

    for chunk_idx in chunk_iter:
        start = chunk_idx * chunk_size
        end = min(start + chunk_size, n_nodes)
        block = (z[:, start:end].T @ z) / (n_samples - 1)
        output[start:end, :] = np.clip(block, -1.0, 1.0)

    np.fill_diagonal(output, 1.0)
    return output


def correlation_matrix(
    data: MatrixSource,
    chunk_size: int = 500,
    verbose: bool = False,
) -> LabeledMatrix:
    """In-memory node × node correlation matrix of a data matrix."""
    values = compute_correlation_matrix_chunked(
        data.read_submatrix(), chunk_size=chunk_size, verbose=verbose
    )
    return LabeledMatrix(values, data.col_labels, data.col_labels, name="correlation")


def correlation_disk_matrix(
    data: MatrixSource,
    path: str | Path,
    chunk_size: int = 500,
    verbose: bool = False,
) -> DiskMatrix:
    """
    Compute a correlation matrix directly into a disk-backed ``.npy`` file.

    The output is written through a memory map, so the full matrix is never
    resident. The sidecar metadata is written last.

    Returns:
        DiskMatrix handle for the correlation matrix
    """
    path = Path(path)
    if path.suffix != ".npy":
        path = path.with_suffix(".npy")
    path.parent.mkdir(parents=True, exist_ok=True)

    n_nodes = data.shape[1]
    output = np.lib.format.open_memmap(
        path, mode='w+', dtype=np.float32, shape=(n_nodes, n_nodes)
    )
    compute_correlation_matrix_chunked(
        data.read_submatrix(), chunk_size=chunk_size, verbose=verbose, output=output
    )
    output.flush()
    del output

    labels = data.col_labels.tolist()
    atomic_write_json(metadata_path(path), {
        'shape': [n_nodes, n_nodes],
        'dtype': 'float32',
        'row_labels': labels,
        'col_labels': labels,
        'created_at': datetime.now().isoformat(),
    })
    logger.info(f"Wrote correlation matrix to {path} ({path.stat().st_size / 1e9:.2f} GB)")
    return DiskMatrix(path, name="correlation")
