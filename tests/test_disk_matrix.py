"""Tests for disk-backed matrices and their label sidecars."""

import json

import numpy as np
import pytest

from modtopo.core.errors import DataAccessError
from modtopo.core.labeled_matrix import LabeledMatrix
from modtopo.io.disk_matrix import DiskMatrix, metadata_path, save_disk_matrix


@pytest.fixture
def matrix():
    labels = ["A", "B", "C"]
    values = np.array([[1.0, 0.2, 0.3], [0.2, 1.0, 0.4], [0.3, 0.4, 1.0]])
    return LabeledMatrix(values, labels, labels, name="network")


class TestDiskMatrix:
    def test_save_and_load(self, matrix, tmp_path):
        disk = save_disk_matrix(matrix, tmp_path / "net.npy")
        assert disk.is_disk_backed
        assert disk.shape == (3, 3)
        assert list(disk.row_labels) == ["A", "B", "C"]
        loaded = disk.load()
        np.testing.assert_array_equal(loaded.values, matrix.values)
        assert loaded.name == "network"

    def test_suffix_added(self, matrix, tmp_path):
        disk = save_disk_matrix(matrix, tmp_path / "net")
        assert disk.path.suffix == ".npy"
        assert metadata_path(disk.path).exists()

    def test_sidecar_contents(self, matrix, tmp_path):
        save_disk_matrix(matrix, tmp_path / "net.npy")
        with open(tmp_path / "net.meta") as f:
            meta = json.load(f)
        assert meta["shape"] == [3, 3]
        assert meta["col_labels"] == ["A", "B", "C"]
        assert "created_at" in meta

    def test_read_submatrix(self, matrix, tmp_path):
        disk = save_disk_matrix(matrix, tmp_path / "net.npy")
        np.testing.assert_array_equal(disk.read_submatrix([0, 2], [1]), [[0.2], [0.4]])

    def test_construction_reads_sidecar_only(self, matrix, tmp_path):
        save_disk_matrix(matrix, tmp_path / "net.npy")
        (tmp_path / "net.npy").unlink()
        disk = DiskMatrix(tmp_path / "net.npy", name="network")
        assert disk.shape == (3, 3)
        with pytest.raises(DataAccessError, match="values file not found"):
            disk.load()


class TestDataAccessErrors:
    def test_missing_sidecar(self, tmp_path):
        np.save(tmp_path / "net.npy", np.eye(2))
        with pytest.raises(DataAccessError, match="metadata file not found"):
            DiskMatrix(tmp_path / "net.npy")

    def test_malformed_sidecar(self, tmp_path):
        np.save(tmp_path / "net.npy", np.eye(2))
        (tmp_path / "net.meta").write_text("{not json")
        with pytest.raises(DataAccessError, match="malformed"):
            DiskMatrix(tmp_path / "net.npy")

    def test_label_count_mismatch(self, tmp_path):
        np.save(tmp_path / "net.npy", np.eye(2))
        (tmp_path / "net.meta").write_text(json.dumps({
            "shape": [2, 2], "row_labels": ["A"], "col_labels": ["A", "B"],
        }))
        with pytest.raises(DataAccessError, match="label counts"):
            DiskMatrix(tmp_path / "net.npy")

    def test_duplicate_labels(self, tmp_path):
        np.save(tmp_path / "net.npy", np.eye(2))
        (tmp_path / "net.meta").write_text(json.dumps({
            "shape": [2, 2], "row_labels": ["A", "B"], "col_labels": ["A", "A"],
        }))
        with pytest.raises(DataAccessError, match="duplicate column labels") as exc_info:
            DiskMatrix(tmp_path / "net.npy", name="network (test)")
        assert exc_info.value.matrix_name == "network (test)"

    def test_values_disagree_with_declared_shape(self, matrix, tmp_path):
        disk = save_disk_matrix(matrix, tmp_path / "net.npy")
        np.save(tmp_path / "net.npy", np.eye(4))
        with pytest.raises(DataAccessError) as exc_info:
            disk.read_submatrix()
        assert "(3, 3)" in exc_info.value.reason
        assert "(4, 4)" in exc_info.value.reason
