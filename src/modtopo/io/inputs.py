"""
Normalization of user input into the canonical multi-dataset form.

Callers may pass a single matrix when working with one dataset, or a mapping
(or list) of matrices, one per dataset. Module assignments, module lists, and
test datasets may likewise be given for a single discovery dataset or per
discovery dataset. This module resolves all of those shapes once, at the
boundary, so the statistics engine only ever sees:

    datasets     DatasetCollection, indexed by name
    assignments  {discovery name: ModuleAssignment}
    modules      {discovery name: [module labels]}
    discovery    [discovery names]
    test         {discovery name: [test names]}

Unnamed datasets (single matrices, lists) are named by their 1-based
position: "1", "2", ...
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Hashable, List, Mapping, Optional, Sequence

import numpy as np
import pandas as pd

from modtopo.core.dataset import Dataset, DatasetCollection, DatasetRef, ModuleAssignment
from modtopo.core.labeled_matrix import LabeledMatrix, MatrixSource

logger = logging.getLogger(__name__)

__all__ = ['NormalizedInput', 'as_matrix_source', 'normalize_inputs']


@dataclass(frozen=True)
class NormalizedInput:
    """Canonical form of the statistics engine's inputs."""

    datasets: DatasetCollection
    assignments: Dict[str, ModuleAssignment]
    modules: Dict[str, List[str]]
    discovery: List[str]
    test: Dict[str, List[str]]


def as_matrix_source(value: Any, name: str = "matrix") -> Optional[MatrixSource]:
    """Accept a MatrixSource or labelled DataFrame; None passes through."""
    if value is None or isinstance(value, MatrixSource):
        return value
    if isinstance(value, pd.DataFrame):
        return LabeledMatrix.from_frame(value, name=name)
    if isinstance(value, np.ndarray):
        raise TypeError(
            f"{name} must carry row and column labels; wrap arrays in a "
            f"LabeledMatrix or DataFrame"
        )
    raise TypeError(f"{name} must be a MatrixSource or DataFrame, got {type(value)}")


def _is_single_matrix(value: Any) -> bool:
    return value is None or isinstance(value, (MatrixSource, pd.DataFrame, np.ndarray))


def _per_dataset(value: Any, role: str) -> Dict[str, Any]:
    """Turn a single matrix, list, or mapping into {dataset name: matrix}."""
    if _is_single_matrix(value):
        return {"1": value}
    if isinstance(value, Mapping):
        return {str(k): v for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return {str(i + 1): v for i, v in enumerate(value)}
    raise TypeError(f"Cannot interpret {role} input of type {type(value)}")


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple, pd.Index, np.ndarray)):
        return list(value)
    return [value]


def _is_assignment_like(value: Any) -> bool:
    return isinstance(value, (pd.Series, ModuleAssignment))


def normalize_inputs(
    network: Any,
    correlation: Any,
    data: Any = None,
    module_assignments: Any = None,
    modules: Any = None,
    background_label: Hashable = "0",
    discovery: Any = None,
    test: Any = None,
) -> NormalizedInput:
    """
    Resolve loosely shaped inputs into a NormalizedInput.

    Args:
        network: Matrix, list of matrices, or {name: matrix}
        correlation: Same shape as ``network``
        data: Same shape as ``network``; None or None entries allowed
        module_assignments: Node -> module mapping for a single discovery
            dataset, or {discovery name: mapping}. None puts every node of
            each discovery dataset in module "1".
        modules: Module labels for a single discovery dataset, or
            {discovery name: labels}. None selects every non-background module.
        background_label: Label of unassigned nodes
        discovery: Discovery dataset name(s)/position(s); defaults to the
            first dataset
        test: Test dataset(s) for a single discovery dataset, or
            {discovery name: test(s)}; defaults to within-dataset analysis

    Returns:
        NormalizedInput

    Raises:
        TypeError: If an input cannot be interpreted
        ValueError: If names are inconsistent or modules are unknown
    """
    networks = _per_dataset(network, "network")
    correlations = _per_dataset(correlation, "correlation")
    datas = _per_dataset(data, "data") if data is not None else {n: None for n in networks}

    if set(networks) != set(correlations):
        raise ValueError("network and correlation inputs must name the same datasets")
    unknown = set(datas) - set(networks)
    if unknown:
        raise ValueError(f"data input names unknown datasets: {sorted(unknown)}")

    datasets = DatasetCollection([
        Dataset(
            name,
            network=as_matrix_source(networks[name], f"network ({name})"),
            correlation=as_matrix_source(correlations[name], f"correlation ({name})"),
            data=as_matrix_source(datas.get(name), f"data ({name})"),
        )
        for name in networks
    ])

    # Discovery datasets
    discovery_refs: List[DatasetRef] = _as_list(discovery) or [datasets.names[0]]
    discovery_names = [datasets.resolve_name(ref) for ref in discovery_refs]
    if len(set(discovery_names)) != len(discovery_names):
        raise ValueError("discovery datasets must be unique")

    # Test datasets per discovery
    if isinstance(test, Mapping):
        tests = {datasets.resolve_name(k): _as_list(v) for k, v in test.items()}
    else:
        tests = {name: _as_list(test) for name in discovery_names}
    test_names = {}
    for name in discovery_names:
        refs = tests.get(name) or [name]
        test_names[name] = list(dict.fromkeys(datasets.resolve_name(r) for r in refs))

    # Module assignments per discovery
    if module_assignments is None:
        assignments = {
            name: ModuleAssignment({n: "1" for n in datasets[name].nodes}, background_label)
            for name in discovery_names
        }
    elif _is_assignment_like(module_assignments) or (
        isinstance(module_assignments, Mapping)
        and not all(isinstance(v, (Mapping, pd.Series, ModuleAssignment)) for v in module_assignments.values())
    ):
        if len(discovery_names) > 1:
            raise ValueError("module_assignments must be given per discovery dataset")
        assignments = {discovery_names[0]: _as_assignment(module_assignments, background_label)}
    else:
        assignments = {
            datasets.resolve_name(k): _as_assignment(v, background_label)
            for k, v in module_assignments.items()
        }

    for name in discovery_names:
        if name not in assignments:
            raise ValueError(f"No module assignment for discovery dataset {name!r}")
        absent = set(assignments[name].labels.index) - set(datasets[name].nodes)
        if absent:
            raise ValueError(
                f"{len(absent)} node(s) in the module assignment for {name!r} are not "
                f"in its network, e.g. {sorted(map(str, absent))[:5]}"
            )

    # Modules per discovery
    if isinstance(modules, Mapping):
        module_lists = {datasets.resolve_name(k): [str(m) for m in _as_list(v)] for k, v in modules.items()}
    else:
        module_lists = {name: [str(m) for m in _as_list(modules)] for name in discovery_names}

    selected: Dict[str, List[str]] = {}
    for name in discovery_names:
        available = assignments[name].modules()
        requested = module_lists.get(name) or available
        bad = [m for m in requested if m not in available]
        if bad:
            raise ValueError(
                f"Modules {bad} are not assigned in discovery dataset {name!r} "
                f"(background label {assignments[name].background!r} is excluded)"
            )
        selected[name] = list(dict.fromkeys(requested))

    logger.debug(
        f"Normalized input: {len(datasets)} dataset(s), discovery={discovery_names}, "
        f"test={test_names}"
    )

    return NormalizedInput(
        datasets=datasets,
        assignments=assignments,
        modules=selected,
        discovery=discovery_names,
        test=test_names,
    )


def _as_assignment(value: Any, background: Hashable) -> ModuleAssignment:
    if isinstance(value, ModuleAssignment):
        return value
    if isinstance(value, (pd.Series, Mapping)):
        return ModuleAssignment(value, background=background)
    raise TypeError(f"Cannot interpret module assignment of type {type(value)}")
