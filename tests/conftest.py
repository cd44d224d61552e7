"""
Pytest configuration and shared fixtures.

Synthetic datasets follow the layout the statistics engine expects:

    data         samples × nodes observations
    correlation  node × node Pearson correlation of ``data``
    network      node × node edge weights, |correlation| ** 6

Nodes N01-N15 form three modules of five nodes; N16-N18 are background.
Module "3" shares most of its latent pattern with module "1".
"""

from typing import Dict, List, Optional

import numpy as np
import pandas as pd
import pytest

from modtopo.core.labeled_matrix import LabeledMatrix
from modtopo.io.disk_matrix import save_disk_matrix

NODES = [f"N{i:02d}" for i in range(1, 19)]
MODULE_LABELS = {
    **{n: "1" for n in NODES[0:5]},
    **{n: "2" for n in NODES[5:10]},
    **{n: "3" for n in NODES[10:15]},
    **{n: "0" for n in NODES[15:18]},
}

DISCOVERY_SAMPLES = [f"D{i:02d}" for i in range(1, 21)] + [f"S{i:02d}" for i in range(1, 11)]
TEST_SAMPLES = [f"S{i:02d}" for i in range(1, 11)] + [f"T{i:02d}" for i in range(1, 9)]
REPLICATION_SAMPLES = [f"S{i:02d}" for i in range(1, 6)] + [f"R{i:02d}" for i in range(1, 7)]


def generate_modular_data(
    samples: List[str],
    nodes: List[str],
    labels: Dict[str, str] = MODULE_LABELS,
    noise: float = 0.5,
    seed: int = 42,
) -> pd.DataFrame:
    """
    Generate samples × nodes data with module structure.

    Each module has a latent pattern across samples; every module node is a
    positive multiple of it plus Gaussian noise. Background nodes are noise.
    """
    rng = np.random.default_rng(seed)
    n = len(samples)
    patterns = {"1": rng.standard_normal(n), "2": rng.standard_normal(n)}
    patterns["3"] = patterns["1"] + 0.3 * rng.standard_normal(n)

    columns = {}
    for node in nodes:
        module = labels.get(node, "0")
        if module in patterns:
            loading = rng.uniform(0.8, 1.5)
            columns[node] = loading * patterns[module] + noise * rng.standard_normal(n)
        else:
            columns[node] = rng.standard_normal(n)
    return pd.DataFrame(columns, index=pd.Index(samples), columns=nodes)


def dataset_frames(data: pd.DataFrame, power: int = 6) -> Dict[str, pd.DataFrame]:
    """Correlation and network frames derived from a data frame."""
    cor = data.corr()
    net = cor.abs() ** power
    return {"data": data, "correlation": cor, "network": net}


def as_matrices(frames: Dict[str, pd.DataFrame], name: str) -> Dict[str, LabeledMatrix]:
    return {
        role: LabeledMatrix.from_frame(frame, name=f"{role} ({name})")
        for role, frame in frames.items()
    }


@pytest.fixture
def discovery_frames():
    """Discovery dataset: all 18 nodes, 30 samples."""
    return dataset_frames(generate_modular_data(DISCOVERY_SAMPLES, NODES, seed=1))


@pytest.fixture
def test_frames():
    """Test dataset: node N03 absent; 10 samples shared with discovery, 8 new."""
    nodes = [n for n in NODES if n != "N03"]
    return dataset_frames(generate_modular_data(TEST_SAMPLES, nodes, seed=2))


@pytest.fixture
def replication_frames():
    """Third dataset: 5 samples shared with test, 6 of its own."""
    return dataset_frames(generate_modular_data(REPLICATION_SAMPLES, NODES, seed=3))


@pytest.fixture
def module_labels():
    return dict(MODULE_LABELS)


@pytest.fixture
def three_datasets(discovery_frames, test_frames, replication_frames):
    """Keyword arguments for the pipeline covering three datasets."""
    frames = {
        "discovery": discovery_frames,
        "test": test_frames,
        "replication": replication_frames,
    }
    return {
        "network": {name: f["network"] for name, f in frames.items()},
        "correlation": {name: f["correlation"] for name, f in frames.items()},
        "data": {name: f["data"] for name, f in frames.items()},
    }


def write_disk_dataset(
    frames: Dict[str, pd.DataFrame],
    directory,
    prefix: str,
    roles: Optional[List[str]] = None,
):
    """Save a dataset's frames as disk matrices; returns {role: DiskMatrix}."""
    roles = roles or list(frames)
    return {
        role: save_disk_matrix(
            LabeledMatrix.from_frame(frames[role], name=role),
            directory / f"{prefix}_{role}.npy",
        )
        for role in roles
    }


@pytest.fixture
def small_network():
    """
    Four-node network where A, B, C form a module and X is outside it.

    Weighted degree within {A, B, C}: A=0.7, B=0.9, C=0.6.
    """
    labels = ["A", "B", "C", "X"]
    values = np.array([
        [1.0, 0.5, 0.2, 0.9],
        [0.5, 1.0, 0.4, 0.9],
        [0.2, 0.4, 1.0, 0.9],
        [0.9, 0.9, 0.9, 1.0],
    ])
    return LabeledMatrix(values, labels, labels, name="network")


@pytest.fixture
def disk_writer():
    """``write_disk_dataset`` as a fixture."""
    return write_disk_dataset
