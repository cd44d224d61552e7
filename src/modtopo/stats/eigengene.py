"""
Module summary vectors (eigengenes) and the variance they explain.

The summary of a module in a dataset is the first left singular vector of the
module's samples × nodes data matrix: a single value per sample capturing the
dominant shared pattern across the module's nodes.

Algorithm:
    1. Optionally standardize each node (column) to mean 0, sd 1
    2. Thin SVD: X = U diag(d) V'
    3. summary = U[:, 0]
    4. variance explained = d[0]² / ||X||²_F, clamped to [0, 1]
    5. Orient the summary so it correlates positively with the per-sample
       average of X across the module's nodes

Sign convention:
    Singular vectors are only defined up to sign. Step 5 reproduces the
    orientation used by WGCNA's ``moduleEigengenes``: a high summary value
    means the module's nodes are, on average, high in that sample. Without it
    summaries from different datasets or runs cannot be compared.

References:
    - Langfelder & Horvath (2008) WGCNA: BMC Bioinformatics 9:559
    - Ritchie et al. (2016) A Scalable Permutation Approach Reveals
      Replication and Preservation Patterns of Network Modules in Large
      Datasets. Cell Systems 3(1):71-82
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Hashable, Optional

import numpy as np
from numpy.typing import NDArray
from scipy import linalg

from modtopo.core.errors import DegenerateModuleError

logger = logging.getLogger(__name__)

__all__ = ['EigengeneResult', 'standardize_columns', 'eigengene']


@dataclass(frozen=True)
class EigengeneResult:
    """Result of the eigengene computation.

    Attributes:
        summary: Module summary vector, one value per sample (unit norm)
        variance_explained: Proportion of the module data's variance the
            summary explains, in [0, 1]
        flipped: Whether the raw singular vector was negated by the sign
            convention
    """

    summary: NDArray[np.float64]
    variance_explained: float
    flipped: bool


def standardize_columns(data: NDArray[np.float64]) -> NDArray[np.float64]:
    """
    Center each column and scale it to unit sample standard deviation.

    Constant columns become all zeros rather than NaN.
    """
    centered = data - data.mean(axis=0, keepdims=True)
    sd = centered.std(axis=0, ddof=1, keepdims=True)
    sd[sd == 0] = 1.0
    return centered / sd


def eigengene(
    data: NDArray[np.float64],
    scale: bool = True,
    module: Optional[Hashable] = None,
) -> EigengeneResult:
    """
    Compute the summary vector of a module and the variance it explains.

    Args:
        data: 2D array (n_samples, n_nodes) restricted to one module's nodes.
        scale: Standardize each node before the decomposition. Set False when
            the caller has already centered/scaled the data.
        module: Module label, only used in error messages.

    Returns:
        EigengeneResult with the oriented summary and variance explained.

    Raises:
        DegenerateModuleError: If there are fewer than 2 samples or nodes, or
            the module data has no variance at all.
        ValueError: If the data contains NaN or infinite values.
    """
    values = np.asarray(data, dtype=np.float64)
    if values.ndim != 2:
        raise ValueError(f"Expected 2D array, got {values.ndim}D")

    n_samples, n_nodes = values.shape
    if n_samples < 2 or n_nodes < 2:
        raise DegenerateModuleError(n_samples, n_nodes, module=module)

    if not np.all(np.isfinite(values)):
        raise ValueError("Module data contains missing or infinite values")

    if scale:
        values = standardize_columns(values)

    total_ss = float(np.sum(values ** 2))
    if total_ss == 0.0:
        raise DegenerateModuleError(
            n_samples, n_nodes, module=module, reason="all module data is constant"
        )

    u, d, _ = linalg.svd(values, full_matrices=False)
    summary = u[:, 0].copy()
    variance_explained = float(np.clip(d[0] ** 2 / total_ss, 0.0, 1.0))

    # Orient with the average profile across the module's nodes
    average = values.mean(axis=1)
    alignment = np.dot(summary - summary.mean(), average - average.mean())
    flipped = bool(alignment < 0)
    if flipped:
        summary = -summary

    logger.debug(
        f"Eigengene for {module if module is not None else 'module'}: "
        f"{n_nodes} nodes × {n_samples} samples, "
        f"variance explained {variance_explained:.3f}"
    )

    return EigengeneResult(
        summary=summary,
        variance_explained=variance_explained,
        flipped=flipped,
    )
