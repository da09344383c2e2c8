"""Circuit graph and element data model for JAX-CCK"""

from jax_cck.circuit.elements import (
    ACVoltageParams,
    BatteryParams,
    BatteryType,
    CapacitorParams,
    CircuitElement,
    CurrentSense,
    ElementHistory,
    ElementKind,
    FuseParams,
    InductorParams,
    LightBulbParams,
    ResistorParams,
    ResistorType,
    SeriesAmmeterParams,
    SwitchParams,
    WireParams,
)
from jax_cck.circuit.graph import Circuit, Vertex

__all__ = [
    "Circuit",
    "Vertex",
    "CircuitElement",
    "ElementKind",
    "ElementHistory",
    "CurrentSense",
    # Parameters
    "WireParams",
    "ResistorParams",
    "ResistorType",
    "BatteryParams",
    "BatteryType",
    "ACVoltageParams",
    "LightBulbParams",
    "CapacitorParams",
    "InductorParams",
    "SwitchParams",
    "FuseParams",
    "SeriesAmmeterParams",
]
