"""Capacitor device model for JAX-CCK

Two-terminal capacitor, critical for the AC/RC part of the kit.
"""

from typing import Optional, Tuple, TYPE_CHECKING

from jax_cck.config import MIN_CAPACITANCE
from jax_cck.devices.base import BranchStamp

if TYPE_CHECKING:
    from jax_cck.analysis.integration import IntegrationCoefficients


def capacitor_companion(
    V_prev: float,
    I_prev: float,
    C: float,
    coefficients: "IntegrationCoefficients",
) -> Tuple[float, float]:
    """Companion model (Norton equivalent) for a capacitor

    Using backward Euler discretization:
        Q(n+1) = C * V(n+1)
        I(n+1) = (Q(n+1) - Q(n)) / dt = C * (V(n+1) - V(n)) / dt

    So that:
        G_eq = C / dt (equivalent conductance)
        I_eq = G_eq * V(n) (history current source)
        I = G_eq * V(n+1) - I_eq

    Trapezoidal doubles G_eq and adds the previous current to I_eq.

    Args:
        V_prev: Voltage across the capacitor at the previous step (start - end)
        I_prev: Current through the capacitor at the previous step
        C: Capacitance in Farads
        coefficients: Integration coefficients for this step

    Returns:
        Tuple of (equivalent_conductance, history_current)
    """
    C_safe = max(C, MIN_CAPACITANCE)

    G_eq = C_safe * coefficients.c0
    I_eq = G_eq * V_prev  # History current source
    if coefficients.uses_current_history:
        I_eq += I_prev

    return G_eq, I_eq


def capacitor_stamp(
    C: float,
    V_prev: float,
    I_prev: float,
    coefficients: Optional["IntegrationCoefficients"],
) -> BranchStamp:
    """Stamp for a capacitor at one solve

    With no elapsed time (coefficients is None) the capacitor cannot change
    its charge, so it holds V_prev like an ideal source.

    Args:
        C: Capacitance in Farads
        V_prev: Voltage across the capacitor at the previous step (start - end)
        I_prev: Current through the capacitor at the previous step
        coefficients: Integration coefficients, or None for a zero-time solve

    Returns:
        BranchStamp for the MNA system
    """
    if coefficients is None:
        # V_end - V_start = -V_prev
        return BranchStamp.source(-V_prev)

    G_eq, I_eq = capacitor_companion(V_prev, I_prev, C, coefficients)
    return BranchStamp.conductor(G_eq, -I_eq)


def capacitor_energy(C: float, V: float) -> float:
    """Stored energy 0.5 * C * V^2 in Joules"""
    return 0.5 * max(C, MIN_CAPACITANCE) * V * V
