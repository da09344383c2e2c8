"""Resistive elements: resistors, wires, series ammeters, switches and fuses.

All of these stamp a plain conductance G = 1/R. Resistance is clamped to
[MIN_RESISTANCE, MAX_RESISTANCE] first, so ideal wires and insulators keep
the matrix well conditioned.
"""

import math
from typing import Optional, Tuple

from jax_cck.config import MAX_RESISTANCE, MIN_RESISTANCE
from jax_cck.devices.base import BranchStamp


def clamp_resistance(resistance: float) -> float:
    """Clamp a resistance to solver-safe bounds.

    NaN is treated as an open path (MAX_RESISTANCE).
    """
    if math.isnan(resistance):
        return MAX_RESISTANCE
    return min(max(resistance, MIN_RESISTANCE), MAX_RESISTANCE)


def resistor_stamp(resistance: float) -> BranchStamp:
    """Conductance stamp for an ohmic element"""
    return BranchStamp.conductor(1.0 / clamp_resistance(resistance))


def wire_resistance(resistivity: float, start: Tuple[float, float], end: Tuple[float, float]) -> float:
    """Resistance of a stretchy wire from its resistivity and endpoint positions

    Args:
        resistivity: Ohms per unit of distance
        start: (x, y) position of the start vertex
        end: (x, y) position of the end vertex

    Returns:
        Clamped resistance in Ohms
    """
    length = math.hypot(end[0] - start[0], end[1] - start[1])
    return clamp_resistance(resistivity * length)


def switch_stamp(closed: bool) -> Optional[BranchStamp]:
    """A closed switch is an ideal wire; an open switch stamps nothing."""
    if not closed:
        return None
    return resistor_stamp(MIN_RESISTANCE)


def fuse_stamp(resistance: float, tripped: bool) -> Optional[BranchStamp]:
    """A fuse conducts like a resistor until it trips."""
    if tripped:
        return None
    return resistor_stamp(resistance)


def fuse_overload(current: float, current_rating: float) -> bool:
    """True if the current magnitude exceeds the fuse rating"""
    return abs(current) > current_rating
