"""
Error taxonomy for module topology computations.

Every failure the statistics engine can raise once inputs have passed
boundary validation belongs to one of four kinds:

    OutOfRangeError            requested row/column does not exist
    DataAccessError            disk-backed matrix unreadable or mis-shaped
    DegenerateModuleError      too few nodes/samples for a module summary
    InconsistentAlignmentError ordering references statistics never computed

None of these are transient; callers should not retry. Each error carries the
structured fields needed to build a user-facing message without parsing the
string representation.
"""

from __future__ import annotations

from typing import Any, Hashable, Optional, Sequence, Tuple

__all__ = [
    'ModuleTopologyError',
    'OutOfRangeError',
    'DataAccessError',
    'DegenerateModuleError',
    'InconsistentAlignmentError',
]


class ModuleTopologyError(Exception):
    """Base class for all errors raised by the statistics engine."""
    pass


class OutOfRangeError(ModuleTopologyError, IndexError):
    """
    Raised when requested indices or labels do not exist in a matrix.

    Attributes:
        matrix_name: Name of the matrix that was indexed (e.g. "network")
        axis: "row" or "column"
        invalid: Offending positions (1-based) or labels
        extent: Size of the indexed axis
    """

    def __init__(
        self,
        matrix_name: str,
        axis: str,
        invalid: Sequence[Any],
        extent: int,
    ):
        self.matrix_name = matrix_name
        self.axis = axis
        self.invalid = tuple(invalid)
        self.extent = extent
        shown = ", ".join(repr(i) for i in self.invalid[:10])
        if len(self.invalid) > 10:
            shown += f", ... ({len(self.invalid)} total)"
        super().__init__(
            f"Requested {axis} indices {{{shown}}} are outside of the {matrix_name} "
            f"matrix: valid {axis} range is [1, {extent}]"
        )

    @property
    def valid_range(self) -> Tuple[int, int]:
        """Inclusive 1-based range of valid positions."""
        return (1, self.extent)


class DataAccessError(ModuleTopologyError, OSError):
    """Raised when a disk-backed matrix cannot be read or has the wrong shape."""

    def __init__(self, matrix_name: str, reason: str):
        self.matrix_name = matrix_name
        self.reason = reason
        super().__init__(f"Cannot access {matrix_name} matrix: {reason}")


class DegenerateModuleError(ModuleTopologyError, ValueError):
    """Raised when a module summary is requested for fewer than 2 nodes or samples."""

    def __init__(
        self,
        n_samples: int,
        n_nodes: int,
        module: Optional[Hashable] = None,
        reason: Optional[str] = None,
    ):
        self.n_samples = n_samples
        self.n_nodes = n_nodes
        self.module = module
        where = f"module {module!r}" if module is not None else "module"
        if reason is None:
            reason = (
                f"need at least 2 nodes and 2 samples, got {n_nodes} nodes and "
                f"{n_samples} samples"
            )
        self.reason = reason
        super().__init__(f"Cannot compute a summary vector for {where}: {reason}")


class InconsistentAlignmentError(ModuleTopologyError, KeyError):
    """Raised when an ordering needs statistics that were never computed."""

    def __init__(self, module: Hashable, dataset: Hashable, reason: str = "no statistics computed"):
        self.module = module
        self.dataset = dataset
        self.reason = reason
        super().__init__(module, dataset, reason)

    def __str__(self) -> str:
        return f"Cannot order by module {self.module!r} in dataset {self.dataset!r}: {self.reason}"
