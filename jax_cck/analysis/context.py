"""Analysis context for JAX-CCK

Holds the per-solve state passed to element stamps, and the solver settings.
"""

from dataclasses import dataclass
from typing import Optional

from jax_cck.analysis.integration import (
    IntegrationCoefficients,
    IntegrationMethod,
    compute_coefficients,
)
from jax_cck.config import (
    DEFAULT_ABSTOL,
    DEFAULT_DAMPING,
    DEFAULT_GMIN,
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_RELTOL,
    DEFAULT_RMIN,
    MAX_DT,
    MAX_RECOVERED_VOLTAGE,
    PAUSE_THRESHOLD,
)


@dataclass
class AnalysisContext:
    """Context passed to element stamps during one solve

    Attributes:
        time: Simulation time the sources are evaluated at
        dt: Elapsed time since the last committed step (0 for a refresh)
        iteration: Current non-linear iteration number
        coefficients: Companion-model coefficients, None when dt <= 0
    """
    time: float = 0.0
    dt: float = 0.0
    iteration: int = 0
    coefficients: Optional[IntegrationCoefficients] = None

    @classmethod
    def for_step(cls, time: float, dt: float,
                 method: IntegrationMethod = IntegrationMethod.BACKWARD_EULER) -> 'AnalysisContext':
        coefficients = compute_coefficients(method, dt) if dt > 0 else None
        return cls(time=time, dt=dt, coefficients=coefficients)

    def is_dc(self) -> bool:
        """Check if no time elapses in this solve"""
        return self.dt <= 0

    def is_transient(self) -> bool:
        """Check if dynamic elements advance in this solve"""
        return self.dt > 0


@dataclass
class SolverConfig:
    """Configuration for the circuit solver and time-stepper

    Attributes:
        max_iterations: Cap on non-linear (light bulb) iterations per island
        abstol: Absolute current tolerance for bulb convergence (A)
        reltol: Relative current tolerance for bulb convergence
        damping: Fraction of each bulb resistance update applied (0 < d <= 1)
        gmin: Node-to-reference conductance used to recover singular systems (S)
        rmin: Series resistance added to sources to recover singular systems (Ohm)
        max_recovered_voltage: A regularized solve reaching this voltage is
            treated as singular (V)
        max_dt: Largest timestep the stepper will take (s)
        pause_threshold: Frames with a longer dt are skipped (s)
        integration: Companion-model integration method
        strict: Raise NonConvergenceError instead of returning the last iterate
    """
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    abstol: float = DEFAULT_ABSTOL
    reltol: float = DEFAULT_RELTOL
    damping: float = DEFAULT_DAMPING
    gmin: float = DEFAULT_GMIN
    rmin: float = DEFAULT_RMIN
    max_recovered_voltage: float = MAX_RECOVERED_VOLTAGE
    max_dt: float = MAX_DT
    pause_threshold: float = PAUSE_THRESHOLD
    integration: IntegrationMethod = IntegrationMethod.BACKWARD_EULER
    strict: bool = False

    def __post_init__(self):
        if self.max_iterations < 1:
            raise ValueError(f"max_iterations must be at least 1, got {self.max_iterations}")
        if not 0 < self.damping <= 1:
            raise ValueError(f"damping must be in (0, 1], got {self.damping}")
