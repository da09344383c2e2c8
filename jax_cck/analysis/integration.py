"""Integration methods for capacitor and inductor companion models.

Each method discretizes i = C dv/dt (or v = L di/dt) over one step of
length dt. The coefficient c0 is the factor in front of the unknown:

    backward Euler:  i(n+1) = c0 * C * (v(n+1) - v(n)),             c0 = 1/dt
    trapezoidal:     i(n+1) = c0 * C * (v(n+1) - v(n)) - i(n),      c0 = 2/dt

Trapezoidal also needs the previous current as history. Backward Euler is
the default: it damps the ringing trapezoidal shows on LC and switched
circuits.
"""

from dataclasses import dataclass
from enum import Enum


class IntegrationMethod(Enum):
    """Supported companion-model integration methods"""
    BACKWARD_EULER = 'be'
    TRAPEZOIDAL = 'trap'


@dataclass(frozen=True)
class IntegrationCoefficients:
    """Coefficients for one timestep of a given method.

    Attributes:
        method: The integration method these coefficients belong to
        dt: Timestep in seconds
        c0: Factor applied to C (capacitor conductance C*c0) and to
            1/L (inductor conductance 1/(L*c0))
        uses_current_history: True if the previous current enters the
            history source (trapezoidal)
    """
    method: IntegrationMethod
    dt: float
    c0: float
    uses_current_history: bool


def compute_coefficients(method: IntegrationMethod, dt: float) -> IntegrationCoefficients:
    """Compute companion-model coefficients for a timestep.

    Args:
        method: Integration method
        dt: Timestep in seconds, must be positive

    Returns:
        IntegrationCoefficients for the step
    """
    if dt <= 0:
        raise ValueError(f"Timestep must be positive, got {dt}")

    if method == IntegrationMethod.TRAPEZOIDAL:
        return IntegrationCoefficients(method, dt, 2.0 / dt, True)
    return IntegrationCoefficients(method, dt, 1.0 / dt, False)
