"""Tests for bounds-checked row/column selection."""

import numpy as np
import pandas as pd
import pytest

from modtopo.core.errors import DataAccessError, OutOfRangeError
from modtopo.core.labeled_matrix import LabeledMatrix
from modtopo.io.disk_matrix import save_disk_matrix
from modtopo.stats.indexing import check_bounds, resolve_positions, restrict


@pytest.fixture
def data():
    """3 samples × 4 nodes."""
    return LabeledMatrix(
        np.arange(12.0).reshape(3, 4),
        ["s1", "s2", "s3"],
        ["a", "b", "c", "d"],
        name="data",
    )


class TestPositions:
    """1-based positions are checked against the axis extent."""

    def test_zero_and_past_end_rejected(self, data):
        with pytest.raises(OutOfRangeError) as exc_info:
            restrict(data, cols=[0, 5])
        err = exc_info.value
        assert err.invalid == (0, 5)
        assert err.valid_range == (1, 4)
        assert err.axis == "column"
        assert err.matrix_name == "data"

    def test_positions_are_one_based(self, data):
        sub = restrict(data, cols=[1, 3])
        assert list(sub.col_labels) == ["a", "c"]
        np.testing.assert_array_equal(sub.values[:, 0], [0.0, 4.0, 8.0])

    def test_row_positions(self, data):
        with pytest.raises(OutOfRangeError, match="row"):
            restrict(data, rows=[4])
        assert list(restrict(data, rows=[3]).row_labels) == ["s3"]

    def test_invalid_reported_once_sorted(self):
        labels = pd.Index(["a", "b"])
        with pytest.raises(OutOfRangeError) as exc_info:
            resolve_positions(labels, [7, 0, 7], by="position")
        assert exc_info.value.invalid == (0, 7)

    def test_resolve_returns_zero_based(self):
        positions = resolve_positions(pd.Index(["a", "b", "c"]), [3, 1])
        np.testing.assert_array_equal(positions, [2, 0])


class TestLabels:
    """Labels must exist on the axis."""

    def test_label_subset(self, data):
        sub = restrict(data, rows=["s2"], cols=["d", "b"])
        assert list(sub.col_labels) == ["d", "b"]
        np.testing.assert_array_equal(sub.values, [[7.0, 5.0]])

    def test_unknown_label(self, data):
        with pytest.raises(OutOfRangeError) as exc_info:
            restrict(data, cols=["a", "zz"])
        assert exc_info.value.invalid == ("zz",)
        assert exc_info.value.valid_range == (1, 4)

    def test_integer_labels_by_label(self):
        labels = pd.Index([10, 20, 30])
        np.testing.assert_array_equal(resolve_positions(labels, [20], by="label"), [1])
        with pytest.raises(OutOfRangeError):
            resolve_positions(labels, [2], by="label")

    def test_duplicates_rejected(self, data):
        with pytest.raises(ValueError, match="duplicates"):
            restrict(data, cols=["a", "a"])


class TestNoReadsBeforeValidation:
    """An invalid request against a disk matrix fails without touching its values."""

    def test_out_of_range_before_data_access(self, data, tmp_path):
        disk = save_disk_matrix(data, tmp_path / "data.npy")
        (tmp_path / "data.npy").unlink()

        with pytest.raises(OutOfRangeError):
            check_bounds(disk, cols=[0, 5])
        with pytest.raises(OutOfRangeError):
            restrict(disk, cols=["zz"])

        # A valid request does need the values
        with pytest.raises(DataAccessError):
            restrict(disk, cols=["a"])

    def test_restrict_disk_matrix(self, data, tmp_path):
        disk = save_disk_matrix(data, tmp_path / "data.npy")
        sub = restrict(disk, rows=[1, 3], cols=["b"])
        assert isinstance(sub, LabeledMatrix)
        assert list(sub.row_labels) == ["s1", "s3"]
        np.testing.assert_array_equal(sub.values, [[1.0], [9.0]])
