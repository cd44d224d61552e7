"""
End-to-end module topology computation.

Two entry points:

    network_properties  statistics of every requested module in every
                        discovery/test combination
    module_topology     statistics of modules in one test dataset, plus the
                        node/sample/module orders (and optionally the
                        plot-ready frame) needed to display them

Both walk through datasets one at a time using a ``MatrixStore``; at most one
dataset is resident at any point and nothing is left resident when the call
returns or raises.

Example:
    >>> result = module_topology(
    ...     network={"discovery": d_net, "test": t_net},
    ...     correlation={"discovery": d_cor, "test": t_cor},
    ...     data={"discovery": d_dat, "test": t_dat},
    ...     module_assignments={"discovery": labels},
    ...     modules=["1", "4"],
    ...     discovery="discovery",
    ...     test="test",
    ...     order_nodes_by=["discovery", "test"],
    ... )
    >>> result.alignment.node_order[:3]
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Hashable, List, Optional, Sequence

from modtopo.io.inputs import NormalizedInput, normalize_inputs
from modtopo.io.store import MatrixStore, ResidencyState
from modtopo.stats.alignment import AlignmentResult, align
from modtopo.stats.topology import ModuleStatistics, module_statistics
from modtopo.viz.frame import TopologyFrame, build_topology_frame
from modtopo.viz.styles import PlotConfig

logger = logging.getLogger(__name__)

__all__ = ['DEFAULT', 'TopologyResult', 'network_properties', 'module_topology']


class _Default:
    def __repr__(self) -> str:
        return "DEFAULT"


# Marks "use the standard ordering" as distinct from None ("do not order")
DEFAULT: Any = _Default()


@dataclass(frozen=True)
class TopologyResult:
    """
    Module statistics in a test dataset and how to lay them out.

    Attributes:
        discovery: Discovery dataset name
        test: Dataset the statistics were measured in
        statistics: Module label -> ModuleStatistics in ``test``
        alignment: Node/sample/module orders with presence flags
        order_nodes_by: Datasets nodes were ordered by (None: unordered)
        order_samples_by: Dataset samples were ordered by (None: unordered)
        frame: Plot-ready values, when requested
    """

    discovery: str
    test: str
    statistics: Dict[str, ModuleStatistics]
    alignment: AlignmentResult
    order_nodes_by: Optional[List[str]]
    order_samples_by: Optional[str]
    frame: Optional[TopologyFrame] = None

    def to_dict(self) -> dict:
        out = {
            'discovery': self.discovery,
            'test': self.test,
            'order_nodes_by': self.order_nodes_by,
            'order_samples_by': self.order_samples_by,
            'alignment': self.alignment.to_dict(),
            'modules': {m: s.to_dict() for m, s in self.statistics.items()},
        }
        if self.frame is not None:
            out['frame'] = self.frame.to_dict()
        return out


def _normalize(inputs: Optional[NormalizedInput], kwargs: Dict[str, Any]) -> NormalizedInput:
    if inputs is not None:
        return inputs
    return normalize_inputs(**kwargs)


def network_properties(
    network: Any = None,
    correlation: Any = None,
    data: Any = None,
    module_assignments: Any = None,
    modules: Any = None,
    background_label: Hashable = "0",
    discovery: Any = None,
    test: Any = None,
    scale: bool = True,
    verbose: bool = False,
    state: Optional[ResidencyState] = None,
    inputs: Optional[NormalizedInput] = None,
) -> Dict[str, Dict[str, Dict[str, ModuleStatistics]]]:
    """
    Compute module statistics for every discovery/test combination.

    Inputs are interpreted as by ``normalize_inputs``; pass ``inputs`` to
    skip normalization.

    Returns:
        {discovery: {test: {module: ModuleStatistics}}}

    Raises:
        OutOfRangeError, DataAccessError, DegenerateModuleError: Abort the
            whole request; nothing is left resident
    """
    norm = _normalize(inputs, dict(
        network=network, correlation=correlation, data=data,
        module_assignments=module_assignments, modules=modules,
        background_label=background_label, discovery=discovery, test=test,
    ))
    store = MatrixStore(norm.datasets, state)

    # Group by test dataset so each dataset is loaded once
    by_test: Dict[str, List[str]] = {}
    for disc in norm.discovery:
        for t in norm.test[disc]:
            by_test.setdefault(t, []).append(disc)

    results: Dict[str, Dict[str, Dict[str, ModuleStatistics]]] = {d: {} for d in norm.discovery}
    with store.session():
        for t, discoveries in by_test.items():
            matrices = store.resolve(t)
            for disc in discoveries:
                results[disc][t] = module_statistics(
                    matrices, norm.assignments[disc], norm.modules[disc],
                    scale=scale, verbose=verbose,
                )
    return results


def _dataset_list(value: Any, norm: NormalizedInput) -> Optional[List[str]]:
    if value is None:
        return None
    refs = value if isinstance(value, (list, tuple)) else [value]
    return list(dict.fromkeys(norm.datasets.resolve_name(r) for r in refs))


def module_topology(
    network: Any = None,
    correlation: Any = None,
    data: Any = None,
    module_assignments: Any = None,
    modules: Any = None,
    background_label: Hashable = "0",
    discovery: Any = None,
    test: Any = None,
    order_nodes_by: Any = DEFAULT,
    order_samples_by: Any = DEFAULT,
    order_modules: bool = True,
    scale: bool = True,
    with_frame: bool = False,
    plot_config: Optional[PlotConfig] = None,
    verbose: bool = False,
    state: Optional[ResidencyState] = None,
    inputs: Optional[NormalizedInput] = None,
) -> TopologyResult:
    """
    Compute module statistics in one test dataset and align them for display.

    Args:
        network, correlation, data, module_assignments, modules,
        background_label, discovery, test: As for ``normalize_inputs``.
            Exactly one discovery dataset and one test dataset must result.
        order_nodes_by: Dataset(s) whose weighted degree orders nodes;
            DEFAULT is the discovery dataset, None keeps assignment order
        order_samples_by: Dataset whose module summary orders samples;
            DEFAULT is the test dataset, None keeps data order
        order_modules: Cluster modules by summary similarity
        scale: Standardize module data before computing summaries
        with_frame: Also build the plot-ready TopologyFrame
        plot_config: Presentation configuration for the frame
        verbose: Show progress bars
        state: Residency state to use (a fresh one if None)
        inputs: Already normalized inputs

    Returns:
        TopologyResult

    Raises:
        ValueError: If the inputs do not name exactly one discovery and test
        OutOfRangeError, DataAccessError, DegenerateModuleError,
        InconsistentAlignmentError: Abort the request; nothing is left
            resident
    """
    norm = _normalize(inputs, dict(
        network=network, correlation=correlation, data=data,
        module_assignments=module_assignments, modules=modules,
        background_label=background_label, discovery=discovery, test=test,
    ))
    if len(norm.discovery) != 1:
        raise ValueError("module_topology requires exactly one discovery dataset")
    disc = norm.discovery[0]
    if len(norm.test[disc]) != 1:
        raise ValueError("module_topology requires exactly one test dataset")
    tst = norm.test[disc][0]

    nodes_by = [disc] if order_nodes_by is DEFAULT else _dataset_list(order_nodes_by, norm)
    samples_by = tst if order_samples_by is DEFAULT else (
        None if order_samples_by is None else norm.datasets.resolve_name(order_samples_by)
    )

    assignment = norm.assignments[disc]
    mods = norm.modules[disc]

    # The test dataset goes last so it is still resident for the frame
    needed = [d for d in dict.fromkeys((nodes_by or []) + ([samples_by] if samples_by else [])) if d != tst]
    needed.append(tst)

    store = MatrixStore(norm.datasets, state)
    stats: Dict[str, Dict[str, ModuleStatistics]] = {}
    frame = None
    with store.session():
        for name in needed:
            matrices = store.resolve(name)
            stats[name] = module_statistics(matrices, assignment, mods, scale=scale, verbose=verbose)

        alignment = align(
            stats, assignment, mods,
            discovery=disc, test=tst,
            order_nodes_by=nodes_by,
            order_samples_by=samples_by,
            order_modules_flag=order_modules,
        )

        if with_frame:
            frame = build_topology_frame(alignment, stats[tst], store.resolve(tst), plot_config)

    logger.info(
        f"Module topology of {len(mods)} module(s) from {disc!r} in {tst!r}: "
        f"{len(alignment.missing_nodes)} missing node(s), "
        f"{len(alignment.missing_samples)} missing sample(s)"
    )

    return TopologyResult(
        discovery=disc,
        test=tst,
        statistics=stats[tst],
        alignment=alignment,
        order_nodes_by=nodes_by,
        order_samples_by=samples_by,
        frame=frame,
    )
