"""Tests for the single-resident matrix store."""

import pytest

from modtopo.core.dataset import Dataset, DatasetCollection
from modtopo.core.errors import DataAccessError
from modtopo.core.labeled_matrix import LabeledMatrix
from modtopo.io.store import MatrixStore, ResidencyState


@pytest.fixture
def disk_collection(discovery_frames, test_frames, disk_writer, tmp_path):
    datasets = []
    for name, frames in (("discovery", discovery_frames), ("test", test_frames)):
        disk = disk_writer(frames, tmp_path, name)
        datasets.append(Dataset(name, disk["network"], disk["correlation"], disk["data"]))
    return DatasetCollection(datasets)


class TestResidency:
    """At most one dataset is resident at a time."""

    def test_switching_evicts_previous(self, disk_collection):
        store = MatrixStore(disk_collection)
        first = store.resolve("discovery")
        assert isinstance(first.network, LabeledMatrix)
        assert store.state.dataset == "discovery"

        second = store.resolve("test")
        assert store.state.dataset == "test"
        assert store.state.matrices is second
        assert store.state.loads == ["discovery", "test"]

    def test_resolve_resident_does_not_reload(self, disk_collection):
        store = MatrixStore(disk_collection)
        store.resolve("test")
        store.resolve(2)
        assert store.state.loads == ["test"]

    def test_resident_matrices_carry_dataset_names(self, disk_collection):
        matrices = MatrixStore(disk_collection).resolve("test")
        assert matrices.network.name == "network (test)"
        assert matrices.data.name == "data (test)"
        assert "N03" not in matrices.network.col_labels

    def test_shared_state(self, disk_collection):
        state = ResidencyState()
        MatrixStore(disk_collection, state).resolve("discovery")
        assert state.is_resident("discovery")
        MatrixStore(disk_collection, state).evict("discovery")
        assert state.dataset is None

    def test_evict_other_dataset_is_noop(self, disk_collection):
        store = MatrixStore(disk_collection)
        store.resolve("discovery")
        store.evict("test")
        assert store.state.dataset == "discovery"


class TestScopedAcquisition:
    """Scopes release residency on every exit path."""

    def test_acquire_evicts_on_exit(self, disk_collection):
        store = MatrixStore(disk_collection)
        with store.acquire("discovery") as matrices:
            assert matrices.dataset == "discovery"
            assert store.state.dataset == "discovery"
        assert store.state.dataset is None

    def test_acquire_evicts_on_error(self, disk_collection):
        store = MatrixStore(disk_collection)
        with pytest.raises(RuntimeError):
            with store.acquire("test"):
                raise RuntimeError("boom")
        assert store.state.dataset is None

    def test_session_spans_several_datasets(self, disk_collection):
        store = MatrixStore(disk_collection)
        with store.session():
            store.resolve("discovery")
            store.resolve("test")
            assert store.state.dataset == "test"
        assert store.state.dataset is None
        assert store.state.loads == ["discovery", "test"]

    def test_unreadable_dataset(self, disk_collection, tmp_path):
        (tmp_path / "test_network.npy").unlink()
        store = MatrixStore(disk_collection)
        with pytest.raises(DataAccessError) as exc_info:
            with store.session():
                store.resolve("discovery")
                store.resolve("test")
        assert exc_info.value.matrix_name == "network (test)"
        assert store.state.dataset is None
        assert store.state.loads == ["discovery"]
