"""Tests for chunked correlation matrices."""

import numpy as np
import pytest

from modtopo.core.labeled_matrix import LabeledMatrix
from modtopo.io.disk_matrix import DiskMatrix
from modtopo.utils.correlation_matrix import (
    compute_correlation_matrix_chunked,
    correlation_disk_matrix,
    correlation_matrix,
)


@pytest.fixture
def data():
    rng = np.random.default_rng(11)
    values = rng.standard_normal((25, 7))
    values[:, 1] += values[:, 0]
    return LabeledMatrix(values, [f"s{i}" for i in range(25)], list("abcdefg"), name="data")


class TestChunkedCorrelation:
    @pytest.mark.parametrize("chunk_size", [1, 3, 7, 100])
    def test_matches_corrcoef(self, data, chunk_size):
        result = compute_correlation_matrix_chunked(data.values, chunk_size=chunk_size)
        np.testing.assert_allclose(result, np.corrcoef(data.values, rowvar=False), atol=1e-5)

    def test_constant_node(self):
        values = np.column_stack([np.arange(6.0), np.ones(6), np.arange(6.0) ** 2])
        result = compute_correlation_matrix_chunked(values)
        np.testing.assert_array_equal(result[1], [0.0, 1.0, 0.0])
        np.testing.assert_array_equal(np.diag(result), [1.0, 1.0, 1.0])

    def test_too_few_samples(self):
        with pytest.raises(ValueError, match="at least 2 samples"):
            compute_correlation_matrix_chunked(np.ones((1, 3)))

    def test_wrong_output_shape(self, data):
        with pytest.raises(ValueError, match="output shape"):
            compute_correlation_matrix_chunked(data.values, output=np.zeros((3, 3)))

    def test_labelled_result(self, data):
        cor = correlation_matrix(data, chunk_size=2)
        assert list(cor.row_labels) == list("abcdefg")
        assert cor.name == "correlation"


class TestCorrelationDiskMatrix:
    def test_written_to_disk(self, data, tmp_path):
        disk = correlation_disk_matrix(data, tmp_path / "out" / "cor.npy", chunk_size=3)
        assert isinstance(disk, DiskMatrix)
        assert (tmp_path / "out" / "cor.meta").exists()
        assert list(disk.col_labels) == list("abcdefg")

        reopened = DiskMatrix(tmp_path / "out" / "cor.npy")
        np.testing.assert_allclose(
            reopened.load().values, np.corrcoef(data.values, rowvar=False), atol=1e-5
        )
