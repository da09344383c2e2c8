"""Analysis engines for JAX-CCK

Provides the per-island MNA solve, the light bulb iteration driver, the
whole-circuit solve and the time-stepper.
"""

from jax_cck.analysis.context import AnalysisContext, SolverConfig
from jax_cck.analysis.integration import IntegrationMethod, compute_coefficients
from jax_cck.analysis.mna import MNASolution, MNASystem, stamp_element
from jax_cck.analysis.dc import IslandSolution, IterationState, solve_island
from jax_cck.analysis.solver import IslandReport, SolveResult, solve
from jax_cck.analysis.transient import TimeStepper
from jax_cck.analysis.meters import (
    light_bulb_brightness,
    measure_current,
    measure_voltage,
    stored_energy,
)

__all__ = [
    "AnalysisContext",
    "SolverConfig",
    "IntegrationMethod",
    "compute_coefficients",
    "MNASystem",
    "MNASolution",
    "stamp_element",
    "IterationState",
    "IslandSolution",
    "solve_island",
    "SolveResult",
    "IslandReport",
    "solve",
    "TimeStepper",
    # Meters
    "measure_voltage",
    "measure_current",
    "light_bulb_brightness",
    "stored_energy",
]
