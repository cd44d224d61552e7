"""
Loaders for network, correlation, and data matrices and module assignments.

Supported matrix files:
    .csv / .tsv / .txt  delimited text; first column holds row labels, header
                        holds column labels; loaded fully into RAM
    .npy                disk-backed format written by ``save_disk_matrix``;
                        returned as a ``DiskMatrix`` handle (values stay on
                        disk until the matrix store loads the dataset)

Module assignment files are two-column delimited text: node label, module
label. A header row is detected and skipped.

Examples:
    >>> from modtopo.io.loaders import load_matrix, load_module_assignment
    >>> network = load_matrix("discovery_network.npy")     # DiskMatrix
    >>> data = load_matrix("discovery_data.csv")           # LabeledMatrix
    >>> labels = load_module_assignment("modules.csv", background="0")
"""

from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Hashable

import numpy as np
import pandas as pd

from modtopo.core.dataset import ModuleAssignment
from modtopo.core.labeled_matrix import LabeledMatrix, MatrixSource
from modtopo.io.disk_matrix import DiskMatrix

logger = logging.getLogger(__name__)

__all__ = ['sniff_delimiter', 'load_csv_matrix', 'load_matrix', 'load_module_assignment']


def sniff_delimiter(path: Path, sample_size: int = 8192) -> str:
    """
    Auto-detect delimiter from file content.

    Uses csv.Sniffer with a first-line count fallback.

    Raises:
        ValueError: If delimiter cannot be determined
    """
    with open(path, 'r', encoding='utf-8', errors='ignore') as f:
        sample = f.read(sample_size)

    try:
        dialect = csv.Sniffer().sniff(sample, delimiters='\t,;|')
        return dialect.delimiter
    except csv.Error:
        pass

    first_line = sample.split('\n')[0]
    counts = {
        '\t': first_line.count('\t'),
        ',': first_line.count(','),
        ';': first_line.count(';'),
    }

    if max(counts.values()) == 0:
        raise ValueError(f"Could not detect delimiter in {path}")

    return max(counts, key=counts.get)


def _check_path(path: str | Path) -> Path:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    if not path.is_file():
        raise ValueError(f"Path is not a file: {path}")
    return path


def load_csv_matrix(path: str | Path, name: str = "matrix") -> LabeledMatrix:
    """
    Load a delimited text matrix into RAM.

    Expected layout:
    ```
    "","A","B","C"
    "A",1.0,0.4,0.1
    "B",0.4,1.0,0.7
    "C",0.1,0.7,1.0
    ```

    Raises:
        FileNotFoundError: If path does not exist
        ValueError: If the file is empty or holds non-numeric values
    """
    path = _check_path(path)
    delimiter = sniff_delimiter(path)

    try:
        frame = pd.read_csv(path, sep=delimiter, index_col=0)
    except pd.errors.EmptyDataError:
        raise ValueError(f"Matrix file is empty: {path}")

    try:
        values = frame.to_numpy(dtype=np.float64)
    except ValueError as e:
        raise ValueError(f"Matrix file {path} contains non-numeric values: {e}")

    if frame.columns.has_duplicates or frame.index.has_duplicates:
        raise ValueError(f"Matrix file {path} has duplicate row or column labels")

    logger.info(f"Loaded {name} matrix {path.name}: {values.shape[0]} × {values.shape[1]}")
    return LabeledMatrix(values, frame.index.astype(str), frame.columns.astype(str), name=name)


def load_matrix(path: str | Path, name: str = "matrix") -> MatrixSource:
    """
    Load a matrix, dispatching on file suffix.

    ``.npy`` files become disk-backed handles; everything else is parsed as
    delimited text and held in RAM.
    """
    path = Path(path)
    if path.suffix == ".npy":
        return DiskMatrix(path, name=name)
    return load_csv_matrix(path, name=name)


def load_module_assignment(path: str | Path, background: Hashable = "0") -> ModuleAssignment:
    """
    Load node -> module labels from a two-column delimited file.

    Raises:
        FileNotFoundError: If path does not exist
        ValueError: If the file does not have exactly two columns
    """
    path = _check_path(path)
    delimiter = sniff_delimiter(path)

    with open(path, 'r', encoding='utf-8') as f:
        sample = f.read(4096)
    try:
        has_header = csv.Sniffer().has_header(sample)
    except csv.Error:
        has_header = False

    frame = pd.read_csv(
        path, sep=delimiter, header=0 if has_header else None, dtype=str
    )
    if frame.shape[1] != 2:
        raise ValueError(
            f"Module assignment file {path} must have 2 columns (node, module), "
            f"got {frame.shape[1]}"
        )

    labels = pd.Series(frame.iloc[:, 1].to_numpy(), index=pd.Index(frame.iloc[:, 0]), dtype=object)
    assignment = ModuleAssignment(labels, background=background)
    logger.info(
        f"Loaded module assignment {path.name}: {len(assignment)} nodes in "
        f"{len(assignment.modules())} modules"
    )
    return assignment
