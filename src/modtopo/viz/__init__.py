"""
Presentation boundary for module topology plots.

Drawing is done by external renderers; this package hands them explicit
configuration (``PlotConfig``) and aligned, plot-ready values
(``TopologyFrame``).
"""

from modtopo.viz.frame import DataGradient, TopologyFrame, build_topology_frame, data_gradient
from modtopo.viz.styles import CORRELATION_PALETTE, NETWORK_PALETTE, PlotConfig

__all__ = [
    'PlotConfig',
    'CORRELATION_PALETTE',
    'NETWORK_PALETTE',
    'DataGradient',
    'TopologyFrame',
    'build_topology_frame',
    'data_gradient',
]
