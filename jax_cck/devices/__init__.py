"""Device models for JAX-CCK

Stamp providers for every element of the kit. Each model is a set of pure
functions from element parameters (and, for dynamic elements, history) to a
BranchStamp; the MNA builder dispatches on the element kind.
"""

from jax_cck.devices.base import BranchStamp
from jax_cck.devices.capacitor import capacitor_companion, capacitor_energy, capacitor_stamp
from jax_cck.devices.inductor import inductor_companion, inductor_energy, inductor_stamp
from jax_cck.devices.light_bulb import (
    DEFAULT_BULB_CURVE,
    BulbCurve,
    PowerLawBulbCurve,
    light_bulb_stamp,
    next_resistance,
)
from jax_cck.devices.resistor import (
    clamp_resistance,
    fuse_overload,
    fuse_stamp,
    resistor_stamp,
    switch_stamp,
    wire_resistance,
)
from jax_cck.devices.sources import ac_voltage, ac_voltage_stamp, battery_stamp, matched_phase

__all__ = [
    "BranchStamp",
    # Resistive elements
    "clamp_resistance",
    "resistor_stamp",
    "wire_resistance",
    "switch_stamp",
    "fuse_stamp",
    "fuse_overload",
    # Sources
    "battery_stamp",
    "ac_voltage",
    "ac_voltage_stamp",
    "matched_phase",
    # Dynamic elements
    "capacitor_companion",
    "capacitor_stamp",
    "capacitor_energy",
    "inductor_companion",
    "inductor_stamp",
    "inductor_energy",
    # Light bulbs
    "BulbCurve",
    "PowerLawBulbCurve",
    "DEFAULT_BULB_CURVE",
    "light_bulb_stamp",
    "next_resistance",
]
