"""Tests for matrix and module assignment loaders."""

import numpy as np
import pandas as pd
import pytest

from modtopo.core.labeled_matrix import LabeledMatrix
from modtopo.io.disk_matrix import DiskMatrix, save_disk_matrix
from modtopo.io.loaders import load_csv_matrix, load_matrix, load_module_assignment, sniff_delimiter


@pytest.fixture
def frame():
    return pd.DataFrame(
        [[1.0, 0.4, 0.1], [0.4, 1.0, 0.7], [0.1, 0.7, 1.0]],
        index=["A", "B", "C"], columns=["A", "B", "C"],
    )


class TestMatrixLoaders:
    def test_csv(self, frame, tmp_path):
        path = tmp_path / "net.csv"
        frame.to_csv(path)
        matrix = load_csv_matrix(path, name="network")
        assert isinstance(matrix, LabeledMatrix)
        assert list(matrix.col_labels) == ["A", "B", "C"]
        np.testing.assert_array_equal(matrix.values, frame.to_numpy())

    def test_tsv_numeric_labels_become_strings(self, tmp_path):
        path = tmp_path / "net.tsv"
        pd.DataFrame(np.eye(2), index=[1, 2], columns=[1, 2]).to_csv(path, sep="\t")
        assert sniff_delimiter(path) == "\t"
        matrix = load_csv_matrix(path)
        assert list(matrix.row_labels) == ["1", "2"]
        assert list(matrix.col_labels) == ["1", "2"]

    def test_non_numeric(self, tmp_path):
        path = tmp_path / "bad.csv"
        path.write_text(",A,B\nA,1.0,x\nB,0.5,1.0\n")
        with pytest.raises(ValueError, match="non-numeric"):
            load_csv_matrix(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_csv_matrix(tmp_path / "absent.csv")

    def test_npy_dispatches_to_disk_matrix(self, frame, tmp_path):
        save_disk_matrix(LabeledMatrix.from_frame(frame), tmp_path / "net.npy")
        matrix = load_matrix(tmp_path / "net.npy", name="network")
        assert isinstance(matrix, DiskMatrix)
        assert matrix.name == "network"


class TestModuleAssignmentLoader:
    def test_with_header(self, tmp_path):
        path = tmp_path / "modules.csv"
        path.write_text("node,module\nA,1\nB,1\nC,2\nD,0\n")
        assignment = load_module_assignment(path)
        assert assignment.modules() == ["1", "2"]
        assert assignment.nodes_in("1") == ["A", "B"]

    def test_without_header(self, tmp_path):
        path = tmp_path / "modules.tsv"
        path.write_text("A\tblue\nB\tgrey\nC\tblue\n")
        assignment = load_module_assignment(path, background="grey")
        assert assignment.modules() == ["blue"]
        assert len(assignment) == 3

    def test_wrong_column_count(self, tmp_path):
        path = tmp_path / "modules.csv"
        path.write_text("node,module,extra\nA,1,x\nB,2,y\n")
        with pytest.raises(ValueError, match="2 columns"):
            load_module_assignment(path)
