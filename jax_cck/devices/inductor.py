"""Inductor device model for JAX-CCK

The dual of the capacitor: V = L * dI/dt.

Backward Euler:
    I(n+1) = I(n) + dt/L * V(n+1)

Companion model (Norton equivalent):
    G_eq = dt / L
    I_eq = I(n)
    I = G_eq * V(n+1) + I_eq

Trapezoidal uses G_eq = dt / (2L) and I_eq = I(n) + G_eq * V(n).
"""

from typing import Optional, Tuple, TYPE_CHECKING

from jax_cck.config import MIN_INDUCTANCE
from jax_cck.devices.base import BranchStamp

if TYPE_CHECKING:
    from jax_cck.analysis.integration import IntegrationCoefficients


def inductor_companion(
    V_prev: float,
    I_prev: float,
    L: float,
    coefficients: "IntegrationCoefficients",
) -> Tuple[float, float]:
    """Norton companion model for an inductor

    Args:
        V_prev: Voltage across the inductor at the previous step (start - end)
        I_prev: Current through the inductor at the previous step
        L: Inductance in Henries
        coefficients: Integration coefficients for this step

    Returns:
        Tuple of (equivalent_conductance, history_current)
    """
    L_safe = max(L, MIN_INDUCTANCE)

    G_eq = 1.0 / (L_safe * coefficients.c0)
    I_eq = I_prev
    if coefficients.uses_current_history:
        I_eq += G_eq * V_prev

    return G_eq, I_eq


def inductor_stamp(
    L: float,
    V_prev: float,
    I_prev: float,
    coefficients: Optional["IntegrationCoefficients"],
) -> BranchStamp:
    """Stamp for an inductor at one solve

    With no elapsed time the inductor current cannot change, so it is
    stamped as a current source of I_prev.
    """
    if coefficients is None:
        return BranchStamp.conductor(0.0, I_prev)

    G_eq, I_eq = inductor_companion(V_prev, I_prev, L, coefficients)
    return BranchStamp.conductor(G_eq, I_eq)


def inductor_energy(L: float, I: float) -> float:
    """Stored energy 0.5 * L * I^2 in Joules"""
    return 0.5 * max(L, MIN_INDUCTANCE) * I * I
