"""Exceptions raised by the JAX-CCK solver.

Only InvalidTopologyError escapes to callers in normal operation, and only
from graph edits. The others are raised by numeric code and recovered inside
a solve, unless SolverConfig.strict is set.
"""

from typing import Any, Iterable, Optional


class SolverError(Exception):
    """Base class for circuit solver errors."""


class SingularSystemError(SolverError):
    """An island's MNA matrix could not be factored.

    Typical causes are a loop of ideal voltage sources or a node with no
    path to the reference vertex.
    """

    def __init__(self, message: str, min_pivot: Optional[float] = None):
        super().__init__(message)
        self.min_pivot = min_pivot


class NonConvergenceError(SolverError):
    """Non-linear iteration hit the iteration cap.

    Attributes:
        result: The best-effort SolveResult built from the last iterate.
    """

    def __init__(self, message: str, result: Any = None):
        super().__init__(message)
        self.result = result


class InvalidTopologyError(SolverError, ValueError):
    """An element references a missing vertex, or both of its ends are the same vertex."""

    def __init__(self, message: str, element_ids: Iterable[int] = ()):
        super().__init__(message)
        self.element_ids = tuple(element_ids)
