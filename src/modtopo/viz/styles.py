"""
Presentation configuration for module topology plots.

Renderers receive a ``PlotConfig`` value instead of reading global graphics
state. It carries the palettes and value ranges for each plot component.

Domain Conventions
------------------
- Correlation heatmap: diverging blue (-1) / white (0) / red (+1)
- Network heatmap: white (no edge) to red (strong edge)
- Data heatmap: purple (negative) / white (0) / green (positive), chosen from
  the sign of the data when not set explicitly
- Weighted degree: single orange bar color
- Node contribution / module summary: one color for positive values, one for
  negative values
- Missing nodes and samples: grey
"""

from __future__ import annotations

import re
from dataclasses import dataclass, fields
from typing import Any, Dict, Optional, Tuple

__all__ = [
    'CORRELATION_PALETTE',
    'NETWORK_PALETTE',
    'PlotConfig',
]

# RdBu (ColorBrewer), reversed so that positive correlations are red
CORRELATION_PALETTE: Tuple[str, ...] = (
    "#053061", "#2166AC", "#4393C3", "#92C5DE", "#D1E5F0", "#FFFFFF",
    "#FDDBC7", "#F4A582", "#D6604D", "#B2182B", "#67001F",
)

# Reds (ColorBrewer) starting from white
NETWORK_PALETTE: Tuple[str, ...] = (
    "#FFFFFF", "#FFF5F0", "#FEE0D2", "#FCBBA1", "#FC9272",
    "#FB6A4A", "#EF3B2C", "#CB181D", "#A50F15", "#67000D",
)

_HEX_COLOR = re.compile(r"^#(?:[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")


def _check_colors(colors, name: str, min_len: int = 1, max_len: Optional[int] = None) -> None:
    if isinstance(colors, str):
        colors = (colors,)
    if len(colors) < min_len or (max_len is not None and len(colors) > max_len):
        bound = f"{min_len}" if max_len is None else f"{min_len}-{max_len}"
        raise ValueError(f"{name} must contain {bound} colors, got {len(colors)}")
    for color in colors:
        if not isinstance(color, str) or not _HEX_COLOR.match(color):
            raise ValueError(f"{name}: {color!r} is not a hex color (#RRGGBB)")


def _check_range(value, name: str) -> None:
    if value is None:
        return
    if len(value) != 2 or not value[0] < value[1]:
        raise ValueError(f"{name} must be an increasing pair (low, high), got {value}")


@dataclass(frozen=True)
class PlotConfig:
    """
    Palettes and value ranges for module topology plots.

    Attributes
    ----------
    correlation_colors : tuple of str
        Gradient for the correlation heatmap
    correlation_range : (float, float)
        Values mapped to the ends of the correlation gradient
    network_colors : tuple of str
        Gradient for the network edge weight heatmap
    network_range : (float, float) or None
        Values mapped to the network gradient; None uses 0 to the largest
        edge weight shown
    data_colors : tuple of str or None
        Gradient for the data heatmap; None picks one from the data's sign
    data_range : (float, float) or None
        Range shown on the data legend; None uses the data's range
    degree_color : str
        Weighted degree bars
    contribution_colors : (str, str)
        Node contribution bars (positive, negative)
    summary_colors : (str, str)
        Module summary bars (positive, negative)
    na_color : str
        Missing nodes and samples
    dry_run : bool
        Skip statistics; renderers draw axes and legends only
    """

    correlation_colors: Tuple[str, ...] = CORRELATION_PALETTE
    correlation_range: Tuple[float, float] = (-1.0, 1.0)
    network_colors: Tuple[str, ...] = NETWORK_PALETTE
    network_range: Optional[Tuple[float, float]] = (0.0, 1.0)
    data_colors: Optional[Tuple[str, ...]] = None
    data_range: Optional[Tuple[float, float]] = None
    degree_color: str = "#feb24c"
    contribution_colors: Tuple[str, ...] = ("#A50026", "#313695")
    summary_colors: Tuple[str, ...] = ("#1B7837", "#762A83")
    na_color: str = "#bdbdbd"
    dry_run: bool = False

    def __post_init__(self):
        _check_colors(self.correlation_colors, "correlation_colors", 2)
        _check_colors(self.network_colors, "network_colors", 2)
        if self.data_colors is not None:
            _check_colors(self.data_colors, "data_colors", 2)
        _check_colors(self.degree_color, "degree_color", 1, 1)
        _check_colors(self.contribution_colors, "contribution_colors", 1, 2)
        _check_colors(self.summary_colors, "summary_colors", 1, 2)
        _check_colors(self.na_color, "na_color", 1, 1)
        _check_range(self.correlation_range, "correlation_range")
        _check_range(self.network_range, "network_range")
        _check_range(self.data_range, "data_range")

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> PlotConfig:
        """
        Build from a config-file mapping (lists become tuples).

        Raises:
            ValueError: On unknown keys or invalid values
        """
        known = {f.name for f in fields(cls)}
        unknown = set(values) - known
        if unknown:
            raise ValueError(f"Unknown plot options: {sorted(unknown)}")
        converted = {
            k: tuple(v) if isinstance(v, list) else v
            for k, v in values.items()
        }
        return cls(**converted)
