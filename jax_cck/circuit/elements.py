"""Circuit element data model for JAX-CCK

Elements are a closed set of kinds (ElementKind). Each kind carries its own
frozen parameter dataclass; the solver dispatches on `kind` rather than on a
class hierarchy. Elements refer to their vertices by ID only, so the Circuit
arena owns every vertex and element.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import NamedTuple, Optional, Union

from jax_cck.config import (
    DEFAULT_AC_FREQUENCY,
    DEFAULT_BATTERY_VOLTAGE,
    DEFAULT_BULB_RESISTANCE,
    DEFAULT_CAPACITANCE,
    DEFAULT_FUSE_RATING,
    DEFAULT_FUSE_RESISTANCE,
    DEFAULT_FUSE_TRIP_DELAY,
    DEFAULT_INDUCTANCE,
    DEFAULT_RESISTANCE,
    DEFAULT_WIRE_RESISTIVITY,
    FIRE_CURRENT_THRESHOLD,
    HIGH_RESISTANCE_BULB_RESISTANCE,
    HIGH_VOLTAGE_BATTERY_VOLTAGE,
    MAX_RESISTANCE,
)
from jax_cck.devices.light_bulb import DEFAULT_BULB_CURVE, BulbCurve


class ElementKind(Enum):
    """Enumeration of circuit element kinds"""
    WIRE = 'wire'
    RESISTOR = 'resistor'
    BATTERY = 'battery'
    AC_VOLTAGE = 'ac_voltage'
    LIGHT_BULB = 'light_bulb'
    CAPACITOR = 'capacitor'
    INDUCTOR = 'inductor'
    SWITCH = 'switch'
    FUSE = 'fuse'
    SERIES_AMMETER = 'series_ammeter'


class CurrentSense(Enum):
    """Direction of the last committed current relative to start -> end"""
    FORWARD = 'forward'
    BACKWARD = 'backward'
    UNSPECIFIED = 'unspecified'


class ResistorTypeInfo(NamedTuple):
    label: str
    default_resistance: float
    min_resistance: float
    max_resistance: float
    is_metallic: bool = False
    is_insulator: bool = False


class ResistorType(Enum):
    """Resistors and household items from the toolbox"""
    RESISTOR = ResistorTypeInfo("resistor", DEFAULT_RESISTANCE, 0.0, 120.0)
    HIGH_RESISTANCE_RESISTOR = ResistorTypeInfo("high resistance resistor", 1000.0, 100.0, 10000.0)
    COIN = ResistorTypeInfo("coin", 0.0, 0.0, 0.0, is_metallic=True)
    PAPER_CLIP = ResistorTypeInfo("paper clip", 0.0, 0.0, 0.0, is_metallic=True)
    PENCIL = ResistorTypeInfo("pencil", 25.0, 25.0, 25.0)
    ERASER = ResistorTypeInfo("eraser", 0.0, 0.0, 0.0, is_insulator=True)
    HAND = ResistorTypeInfo("hand", 100000.0, 100000.0, 100000.0)
    DOG = ResistorTypeInfo("dog", 100000.0, 100000.0, 100000.0)
    DOLLAR_BILL = ResistorTypeInfo("dollar bill", 0.0, 0.0, 0.0, is_insulator=True)

    @property
    def is_editable(self) -> bool:
        """Only the two real resistors have an editable resistance"""
        return self in (ResistorType.RESISTOR, ResistorType.HIGH_RESISTANCE_RESISTOR)


class BatteryType(Enum):
    NORMAL = 'normal'
    HIGH_VOLTAGE = 'high-voltage'


# =============================================================================
# Per-kind parameters
# =============================================================================


@dataclass(frozen=True)
class WireParams:
    resistivity: float = DEFAULT_WIRE_RESISTIVITY


@dataclass(frozen=True)
class ResistorParams:
    resistance: float = ResistorType.RESISTOR.value.default_resistance
    resistor_type: ResistorType = ResistorType.RESISTOR

    @classmethod
    def of_type(cls, resistor_type: ResistorType) -> 'ResistorParams':
        return cls(resistance=resistor_type.value.default_resistance, resistor_type=resistor_type)

    @property
    def effective_resistance(self) -> float:
        """Resistance seen by the solver; insulators never conduct"""
        if self.resistor_type.value.is_insulator:
            return MAX_RESISTANCE
        return self.resistance


@dataclass(frozen=True)
class BatteryParams:
    voltage: float = DEFAULT_BATTERY_VOLTAGE
    internal_resistance: float = 0.0
    battery_type: BatteryType = BatteryType.NORMAL

    @classmethod
    def high_voltage(cls, internal_resistance: float = 0.0) -> 'BatteryParams':
        return cls(HIGH_VOLTAGE_BATTERY_VOLTAGE, internal_resistance, BatteryType.HIGH_VOLTAGE)


@dataclass(frozen=True)
class ACVoltageParams:
    maximum_voltage: float = DEFAULT_BATTERY_VOLTAGE
    frequency: float = DEFAULT_AC_FREQUENCY
    phase: float = 0.0
    internal_resistance: float = 0.0


@dataclass(frozen=True)
class LightBulbParams:
    resistance: float = DEFAULT_BULB_RESISTANCE
    real: bool = False
    high_resistance: bool = False
    curve: BulbCurve = DEFAULT_BULB_CURVE

    @classmethod
    def high_resistance_bulb(cls) -> 'LightBulbParams':
        return cls(resistance=HIGH_RESISTANCE_BULB_RESISTANCE, high_resistance=True)

    @classmethod
    def real_bulb(cls, curve: BulbCurve = DEFAULT_BULB_CURVE) -> 'LightBulbParams':
        return cls(resistance=curve.cold_resistance, real=True, curve=curve)


@dataclass(frozen=True)
class CapacitorParams:
    capacitance: float = DEFAULT_CAPACITANCE


@dataclass(frozen=True)
class InductorParams:
    inductance: float = DEFAULT_INDUCTANCE


@dataclass(frozen=True)
class SwitchParams:
    closed: bool = False


@dataclass(frozen=True)
class FuseParams:
    current_rating: float = DEFAULT_FUSE_RATING
    resistance: float = DEFAULT_FUSE_RESISTANCE
    trip_delay: float = DEFAULT_FUSE_TRIP_DELAY


@dataclass(frozen=True)
class SeriesAmmeterParams:
    pass


ElementParams = Union[
    WireParams, ResistorParams, BatteryParams, ACVoltageParams, LightBulbParams,
    CapacitorParams, InductorParams, SwitchParams, FuseParams, SeriesAmmeterParams,
]

PARAMS_BY_KIND = {
    ElementKind.WIRE: WireParams,
    ElementKind.RESISTOR: ResistorParams,
    ElementKind.BATTERY: BatteryParams,
    ElementKind.AC_VOLTAGE: ACVoltageParams,
    ElementKind.LIGHT_BULB: LightBulbParams,
    ElementKind.CAPACITOR: CapacitorParams,
    ElementKind.INDUCTOR: InductorParams,
    ElementKind.SWITCH: SwitchParams,
    ElementKind.FUSE: FuseParams,
    ElementKind.SERIES_AMMETER: SeriesAmmeterParams,
}


# =============================================================================
# Element
# =============================================================================


@dataclass
class ElementHistory:
    """Solver state carried from one time step to the next

    Written only by the time-stepper after a solve (and by resets).

    Attributes:
        previous_voltage: Voltage drop (start - end) at the last committed step
        previous_current: Current (start -> end) at the last committed step
        previous_resistance: Last converged resistance of a real bulb
        time_over_rating: Seconds a fuse has continuously exceeded its rating
        tripped: True once a fuse has blown
    """
    previous_voltage: float = 0.0
    previous_current: float = 0.0
    previous_resistance: Optional[float] = None
    time_over_rating: float = 0.0
    tripped: bool = False


@dataclass(eq=False)
class CircuitElement:
    """A two-terminal element between two vertices of a Circuit

    Attributes:
        id: Arena index of the element
        kind: Element kind, selects the stamp
        start_vertex_id: Vertex at the start (negative terminal of sources)
        end_vertex_id: Vertex at the end
        params: Kind-specific parameters
        current: Solved current, positive from start to end
        voltage_drop: Solved V(start) - V(end)
        current_sense: Direction of the committed current
        history: Companion-model and fuse state
    """
    id: int
    kind: ElementKind
    start_vertex_id: int
    end_vertex_id: int
    params: ElementParams
    current: float = 0.0
    voltage_drop: float = 0.0
    current_sense: CurrentSense = CurrentSense.UNSPECIFIED
    history: ElementHistory = field(default_factory=ElementHistory)

    @property
    def vertex_ids(self):
        return (self.start_vertex_id, self.end_vertex_id)

    def opposite_vertex_id(self, vertex_id: int) -> int:
        if vertex_id == self.start_vertex_id:
            return self.end_vertex_id
        if vertex_id == self.end_vertex_id:
            return self.start_vertex_id
        raise ValueError(f"Vertex {vertex_id} is not an end of element {self.id}")

    @property
    def is_fixed_length(self) -> bool:
        """Everything but wires has a rigid body"""
        return self.kind != ElementKind.WIRE

    @property
    def is_dynamic(self) -> bool:
        return self.kind in (ElementKind.CAPACITOR, ElementKind.INDUCTOR)

    @property
    def is_non_ohmic(self) -> bool:
        return self.kind == ElementKind.LIGHT_BULB and self.params.real

    @property
    def is_flammable(self) -> bool:
        if self.kind == ElementKind.RESISTOR:
            # The dog disconnects itself instead of burning
            return self.params.resistor_type != ResistorType.DOG
        return self.kind in (ElementKind.BATTERY, ElementKind.AC_VOLTAGE)

    @property
    def is_on_fire(self) -> bool:
        return self.is_flammable and abs(self.current) > FIRE_CURRENT_THRESHOLD

    @property
    def conducts(self) -> bool:
        """False for elements that currently form an open circuit"""
        if self.kind == ElementKind.SWITCH:
            return self.params.closed
        if self.kind == ElementKind.FUSE:
            return not self.history.tripped
        return True

    @property
    def power(self) -> float:
        """Power absorbed by the element (negative when it delivers power)"""
        return self.current * self.voltage_drop
