"""JAX-CCK: circuit solver for a Circuit Construction Kit style simulation

Builds a circuit as a graph of vertices and two-terminal elements, solves it
with modified nodal analysis and steps it through time:

    from jax_cck import Circuit, TimeStepper

    circuit = Circuit()
    a, b = circuit.add_vertex(), circuit.add_vertex((50.0, 0.0))
    circuit.add_battery(a.id, b.id, voltage=9.0)
    circuit.add_resistor(b.id, a.id, resistance=10.0)
    TimeStepper(circuit).step(1 / 60)
"""

import jax

# Solves are tiny and need float64 for the wire/insulator conductance range
jax.config.update("jax_enable_x64", True)

from jax_cck.analysis import (  # noqa: E402
    SolverConfig,
    SolveResult,
    TimeStepper,
    light_bulb_brightness,
    measure_current,
    measure_voltage,
    solve,
)
from jax_cck.circuit import Circuit, CircuitElement, ElementKind, Vertex  # noqa: E402
from jax_cck.errors import (  # noqa: E402
    InvalidTopologyError,
    NonConvergenceError,
    SingularSystemError,
    SolverError,
)
from jax_cck.utils import format_current, format_voltage  # noqa: E402

__all__ = [
    "Circuit",
    "Vertex",
    "CircuitElement",
    "ElementKind",
    "SolverConfig",
    "SolveResult",
    "solve",
    "TimeStepper",
    "measure_voltage",
    "measure_current",
    "light_bulb_brightness",
    "format_current",
    "format_voltage",
    "SolverError",
    "SingularSystemError",
    "NonConvergenceError",
    "InvalidTopologyError",
]
