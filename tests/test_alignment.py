"""Tests for node, sample, and module ordering across datasets."""

import numpy as np
import pytest

from modtopo.core.dataset import ModuleAssignment
from modtopo.core.errors import InconsistentAlignmentError
from modtopo.pipeline import network_properties
from modtopo.stats.alignment import align, order_modules, order_nodes, order_samples
from modtopo.stats.topology import ModuleStatistics

from_discovery = dict(discovery="discovery", test="test")


@pytest.fixture
def assignment(module_labels):
    return ModuleAssignment(module_labels)


@pytest.fixture
def stats(three_datasets, module_labels):
    """Module statistics keyed by dataset, then module."""
    results = network_properties(
        **three_datasets,
        module_assignments=module_labels,
        discovery="discovery",
        test=["discovery", "test", "replication"],
    )
    return results["discovery"]


def degree_stats(dataset, nodes, degrees, missing=()):
    return ModuleStatistics(
        module="1",
        dataset=dataset,
        nodes=tuple(nodes),
        weighted_degree=np.asarray(degrees, dtype=float),
        average_edge_weight=0.5,
        missing_nodes=tuple(missing),
    )


class TestNodeOrder:
    """Every module node appears exactly once, grouped by module."""

    def test_covers_all_nodes_once(self, stats, assignment):
        result = align(stats, assignment, ["1", "2", "3"], order_nodes_by=["discovery"], **from_discovery)
        expected = {n for m in ("1", "2", "3") for n in assignment.nodes_in(m)}
        assert len(result.node_order) == 15
        assert set(result.node_order) == expected

    def test_grouped_by_module_order(self, stats, assignment):
        result = align(stats, assignment, ["1", "2", "3"], order_nodes_by=["discovery"], **from_discovery)
        groups = []
        for module in result.node_modules:
            if not groups or groups[-1] != module:
                groups.append(module)
        assert tuple(groups) == result.module_order
        for node, module in zip(result.node_order, result.node_modules):
            assert assignment.module_of(node) == module

    def test_missing_node_flagged(self, stats, assignment):
        result = align(stats, assignment, ["1"], order_nodes_by=["discovery"], **from_discovery)
        assert "N03" in result.node_order
        assert result.missing_nodes == ["N03"]
        assert result.missing_node_positions == [result.node_order.index("N03")]

    def test_missing_node_sorts_last_when_ordered_by_test(self, stats, assignment):
        result = align(stats, assignment, ["1"], order_nodes_by=["test"], **from_discovery)
        assert result.node_order[-1] == "N03"
        assert result.node_present[-1] is False

    def test_decreasing_degree(self, stats, assignment):
        result = align(stats, assignment, ["2"], order_nodes_by=["discovery"], **from_discovery)
        degree = stats["discovery"]["2"].degree_series()
        values = degree[list(result.node_order)].to_numpy()
        assert np.all(np.diff(values) <= 0)

    def test_unordered_keeps_assignment_order(self, stats, assignment):
        result = align(stats, assignment, ["1"], order_nodes_by=None, **from_discovery)
        assert list(result.node_order) == assignment.nodes_in("1")

    def test_scaled_average_across_datasets(self):
        stats = {
            "a": {"1": degree_stats("a", ["A", "B", "C"], [10.0, 5.0, 0.0])},
            "b": {"1": degree_stats("b", ["A", "B"], [0.1, 0.4], missing=["C"])},
        }
        assignment = ModuleAssignment({"A": "1", "B": "1", "C": "1"})
        order, modules, present = order_nodes(stats, assignment, ["1"], ["a", "b"], test="b")
        # scaled: a = (1, 0.5, 0), b = (0.25, 1, -); averages A=0.625, B=0.75, C=none
        assert order == ["B", "A", "C"]
        assert modules == ["1", "1", "1"]
        assert present == [True, True, False]

    def test_node_absent_from_one_dataset_sorts_last(self):
        stats = {
            "a": {"1": degree_stats("a", ["A", "B", "C"], [10.0, 5.0, 1.0])},
            "b": {"1": degree_stats("b", ["B", "C"], [4.0, 1.0], missing=["A"])},
        }
        assignment = ModuleAssignment({"A": "1", "B": "1", "C": "1"})
        order, _, present = order_nodes(stats, assignment, ["1"], ["a", "b"], test="b")
        assert order == ["B", "C", "A"]
        assert present == [True, True, False]

    def test_single_dataset_uses_raw_degree(self):
        stats = {"a": {"1": degree_stats("a", ["A", "B"], [2.0, 3.0])}}
        assignment = ModuleAssignment({"A": "1", "B": "1"})
        order, _, _ = order_nodes(stats, assignment, ["1"], ["a"], test="a")
        assert order == ["B", "A"]


class TestSampleOrder:
    """Samples follow the summary of the first module in module order."""

    def test_ordered_by_test(self, stats, assignment):
        result = align(stats, assignment, ["2"], order_samples_by="test", **from_discovery)
        summary = stats["test"]["2"].summary
        assert set(result.sample_order) == set(summary.index)
        assert np.all(np.diff(summary[list(result.sample_order)].to_numpy()) <= 0)
        assert all(result.sample_present)
        assert result.sample_boundary is None
        assert result.n_new_samples == 0

    def test_ordered_by_discovery(self, stats, assignment):
        result = align(stats, assignment, ["2"], order_samples_by="discovery", **from_discovery)
        order = list(result.sample_order)
        assert len(order) == len(set(order)) == 38
        assert result.sample_boundary == 30
        assert result.n_new_samples == 8
        assert set(order[30:]) == {f"T{i:02d}" for i in range(1, 9)}
        # Discovery-only samples stay in place as absent placeholders
        for sample, present in zip(order[:30], result.sample_present[:30]):
            assert present == sample.startswith("S")
        disc = stats["discovery"]["2"].summary
        assert np.all(np.diff(disc[order[:30]].to_numpy()) <= 0)
        test = stats["test"]["2"].summary
        assert np.all(np.diff(test[order[30:]].to_numpy()) <= 0)

    def test_ordered_by_other_dataset(self, stats, assignment):
        result = align(stats, assignment, ["2"], order_samples_by="replication", **from_discovery)
        order = list(result.sample_order)
        assert len(order) == len(set(order)) == 24
        assert result.sample_boundary == 5
        assert result.n_new_samples == 13
        assert set(order[:5]) == {f"S{i:02d}" for i in range(1, 6)}
        assert set(order[-6:]) == {f"R{i:02d}" for i in range(1, 7)}
        assert result.sample_present == (True,) * 18 + (False,) * 6
        assert result.missing_samples == order[-6:]

    def test_unordered(self, stats, assignment):
        result = align(stats, assignment, ["2"], order_samples_by=None, **from_discovery)
        assert list(result.sample_order) == list(stats["test"]["2"].summary.index)

    def test_ordering_dataset_without_data(self, stats):
        no_data = {"x": {"1": degree_stats("x", ["A", "B"], [1.0, 2.0])}}
        with pytest.raises(InconsistentAlignmentError, match="no data matrix"):
            order_samples({**stats, **no_data}, ["1"], "test", "discovery", "x")


class TestModuleOrder:
    """Modules with similar summaries end up next to each other."""

    def test_similar_modules_adjacent(self, stats):
        order = order_modules(stats, ["1", "2", "3"], ["discovery"])
        assert sorted(order) == ["1", "2", "3"]
        assert abs(order.index("1") - order.index("3")) == 1

    def test_disabled(self, stats):
        assert order_modules(stats, ["3", "2", "1"], ["discovery"], enabled=False) == ["3", "2", "1"]

    def test_single_module(self, stats):
        assert order_modules(stats, ["2"], ["discovery"]) == ["2"]

    def test_no_data_keeps_input_order(self, three_datasets, module_labels):
        no_data = network_properties(
            network=three_datasets["network"],
            correlation=three_datasets["correlation"],
            module_assignments=module_labels,
            discovery="discovery",
        )["discovery"]
        assert order_modules(no_data, ["3", "1", "2"], ["discovery"]) == ["3", "1", "2"]


class TestInconsistentAlignment:
    def test_missing_test_statistics(self, stats, assignment):
        partial = {name: dict(per_module) for name, per_module in stats.items()}
        del partial["test"]["2"]
        with pytest.raises(InconsistentAlignmentError) as exc_info:
            align(partial, assignment, ["1", "2"], **from_discovery)
        assert exc_info.value.module == "2"
        assert exc_info.value.dataset == "test"

    def test_missing_ordering_dataset(self, stats, assignment):
        with pytest.raises(InconsistentAlignmentError):
            align(stats, assignment, ["1"], order_nodes_by=["elsewhere"], **from_discovery)

    def test_to_dict(self, stats, assignment):
        result = align(stats, assignment, ["1", "2"], order_nodes_by=["discovery"],
                       order_samples_by="discovery", **from_discovery)
        out = result.to_dict()
        assert out["sample_boundary"] == 30
        assert len(out["node_present"]) == 10
