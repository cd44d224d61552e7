"""
Renderer-ready view of module topology.

A ``TopologyFrame`` lays every quantity a module topology plot shows out in
the aligned node/sample/module order, with NaN wherever a node or sample is
absent from the dataset being shown:

    correlation   node × node heatmap values
    network       node × node heatmap values
    degree        weighted degree scaled to its module maximum
    contribution  node contribution
    data          sample × node heatmap values
    summaries     sample × module summary values

It also resolves the data heatmap gradient from the data's sign. Drawing is
left to the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Tuple

import numpy as np
import pandas as pd

from modtopo.io.store import ResidentMatrixSet
from modtopo.stats.alignment import AlignmentResult
from modtopo.stats.topology import ModuleStatistics
from modtopo.viz.styles import PlotConfig

logger = logging.getLogger(__name__)

__all__ = ['DataGradient', 'TopologyFrame', 'data_gradient', 'build_topology_frame']

_WHITE = "#FFFFFF"
_GREEN = "#1B7837"
_PURPLE = "#762A83"


@dataclass(frozen=True)
class DataGradient:
    """
    Color gradient for the data heatmap.

    Attributes:
        colors: Colors to interpolate between
        legend_range: Range shown on the legend
        gradient_range: Values mapped to the ends of ``colors``
        value_range: Range of the values actually shown
    """

    colors: Tuple[str, ...]
    legend_range: Tuple[float, float]
    gradient_range: Tuple[float, float]
    value_range: Tuple[float, float]


def data_gradient(
    value_range: Tuple[float, float],
    config: PlotConfig,
) -> DataGradient:
    """
    Pick the data heatmap gradient.

    Without explicit ``data_colors``: all values ≥ 0 map white→green, all ≤ 0
    map purple→white, and mixed data maps purple/white/green over a range
    symmetric about zero so that white stays at 0.
    """
    legend = tuple(config.data_range) if config.data_range is not None else tuple(value_range)

    if config.data_colors is not None:
        return DataGradient(tuple(config.data_colors), legend, legend, tuple(value_range))

    low, high = legend
    if low >= 0 and high >= 0:
        return DataGradient((_WHITE, _GREEN), legend, legend, tuple(value_range))
    if low <= 0 and high <= 0:
        return DataGradient((_PURPLE, _WHITE), legend, legend, tuple(value_range))
    bound = max(abs(low), abs(high))
    return DataGradient((_PURPLE, _WHITE, _GREEN), legend, (-bound, bound), tuple(value_range))


@dataclass(frozen=True)
class TopologyFrame:
    """Plot-ready values in aligned order (see module docstring)."""

    alignment: AlignmentResult
    correlation: pd.DataFrame
    network: pd.DataFrame
    network_range: Tuple[float, float]
    degree: pd.Series
    contribution: Optional[pd.Series] = None
    data: Optional[pd.DataFrame] = None
    summaries: Optional[pd.DataFrame] = None
    summary_ranges: Optional[Dict[str, Tuple[float, float]]] = None
    gradient: Optional[DataGradient] = None

    @property
    def has_data(self) -> bool:
        return self.data is not None

    def to_dict(self) -> dict:
        """Per-node and per-sample values for JSON output (NaN for absent entries)."""
        out = {
            'network_range': list(self.network_range),
            'degree': self.degree.to_numpy().tolist(),
        }
        if self.contribution is not None:
            out['contribution'] = self.contribution.to_numpy().tolist()
        if self.summaries is not None:
            out['summaries'] = {m: self.summaries[m].to_numpy().tolist() for m in self.summaries.columns}
            out['summary_ranges'] = {m: list(r) for m, r in self.summary_ranges.items()}
        if self.gradient is not None:
            out['data_gradient'] = {
                'colors': list(self.gradient.colors),
                'legend_range': list(self.gradient.legend_range),
                'gradient_range': list(self.gradient.gradient_range),
            }
        return out


def _square(matrix, order: pd.Index, present: list) -> pd.DataFrame:
    shown = matrix.to_frame().loc[present, present]
    return shown.reindex(index=order, columns=order)


def build_topology_frame(
    alignment: AlignmentResult,
    statistics: Mapping[str, ModuleStatistics],
    matrices: ResidentMatrixSet,
    config: Optional[PlotConfig] = None,
) -> TopologyFrame:
    """
    Assemble a TopologyFrame for the dataset in ``matrices``.

    Args:
        alignment: Node/sample/module orders
        statistics: Module statistics in the shown dataset
        matrices: Resident matrices of the shown dataset
        config: Presentation configuration

    Returns:
        TopologyFrame
    """
    config = config if config is not None else PlotConfig()

    node_index = pd.Index(list(alignment.node_order), dtype=object)
    present_nodes = alignment.present_nodes

    correlation = _square(matrices.correlation, node_index, present_nodes)
    network = _square(matrices.network, node_index, present_nodes)
    if config.network_range is not None:
        network_range = tuple(config.network_range)
    else:
        shown = network.to_numpy()
        peak = float(np.nanmax(shown)) if np.any(~np.isnan(shown)) else 1.0
        network_range = (0.0, peak if peak > 0 else 1.0)

    degree = pd.Series(np.nan, index=node_index, dtype=float)
    contribution = None if matrices.data is None else pd.Series(np.nan, index=node_index, dtype=float)
    if not config.dry_run:
        for module in alignment.module_order:
            stats = statistics[module]
            deg = stats.degree_series()
            if deg.notna().any() and deg.max() > 0:
                deg = deg / deg.max()
            degree.loc[deg.index] = deg.to_numpy()
            if contribution is not None and stats.has_data:
                contrib = stats.contribution_series()
                contribution.loc[contrib.index] = contrib.to_numpy()
    else:
        degree.loc[:] = 0.0
        if contribution is not None:
            contribution.loc[:] = 0.0

    frame_kwargs = {}
    if matrices.data is not None:
        sample_index = pd.Index(list(alignment.sample_order), dtype=object)
        present_samples = alignment.present_samples

        if config.dry_run:
            data = pd.DataFrame(0.0, index=sample_index, columns=node_index)
            value_range = tuple(config.data_range) if config.data_range is not None else (-1.0, 1.0)
        else:
            data = matrices.data.to_frame().loc[present_samples, present_nodes]
            value_range = (float(data.to_numpy().min()), float(data.to_numpy().max())) if data.size else (0.0, 0.0)
            data = data.reindex(index=sample_index, columns=node_index)

        summaries = pd.DataFrame(np.nan, index=sample_index, columns=list(alignment.module_order))
        summary_ranges: Dict[str, Tuple[float, float]] = {}
        for module in alignment.module_order:
            if config.dry_run:
                summaries[module] = 0.0
                summary_ranges[module] = (-1.0, 1.0)
                continue
            summary = statistics[module].summary
            summaries[module] = summary.reindex(sample_index).to_numpy()
            shown = summaries[module].dropna()
            summary_ranges[module] = (float(shown.min()), float(shown.max())) if len(shown) else (0.0, 0.0)

        frame_kwargs = dict(
            data=data,
            summaries=summaries,
            summary_ranges=summary_ranges,
            gradient=data_gradient(value_range, config),
        )

    logger.debug(
        f"Built topology frame: {len(node_index)} nodes, "
        f"{len(alignment.sample_order)} samples, {len(alignment.module_order)} modules"
    )

    return TopologyFrame(
        alignment=alignment,
        correlation=correlation,
        network=network,
        network_range=network_range,
        degree=degree,
        contribution=contribution,
        **frame_kwargs,
    )
