"""Light bulb device model for JAX-CCK

Ideal bulbs are plain resistors. Real (non-ohmic) bulbs have a filament
whose resistance rises as it heats up, so the resistance is a function of
the power dissipated:

    R = curve.resistance(P),  P = I^2 * R

Solving for a consistent (R, I) pair needs the fixed-point iteration in
jax_cck.analysis.dc. The calibration curve is pluggable: anything with a
`cold_resistance` attribute and a `resistance(power)` method works.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from jax_cck.devices.base import BranchStamp
from jax_cck.devices.resistor import clamp_resistance, resistor_stamp


class BulbCurve(ABC):
    """Resistance-vs-power calibration of a non-ohmic filament"""

    cold_resistance: float

    @abstractmethod
    def resistance(self, power: float) -> float:
        """Filament resistance in Ohms at a dissipated power in Watts"""


@dataclass(frozen=True)
class PowerLawBulbCurve(BulbCurve):
    """Filament resistance growing as a power of dissipated power

        R(P) = cold + (hot - cold) * (P / rated_power) ** exponent

    The defaults describe a bulb that reaches 12 Ohms at 6.75 W, i.e. one
    rated for a 9 V battery.

    Attributes:
        cold_resistance: Resistance with no current (Ohms)
        hot_resistance: Resistance at the rated power (Ohms)
        rated_power: Power at which the bulb reaches hot_resistance (Watts)
        exponent: Shape of the heating curve
    """
    cold_resistance: float = 2.0
    hot_resistance: float = 12.0
    rated_power: float = 6.75
    exponent: float = 0.5

    def __post_init__(self):
        if self.rated_power <= 0:
            raise ValueError(f"rated_power must be positive, got {self.rated_power}")

    def resistance(self, power: float) -> float:
        ratio = max(power, 0.0) / self.rated_power
        return self.cold_resistance + (self.hot_resistance - self.cold_resistance) * ratio ** self.exponent


DEFAULT_BULB_CURVE = PowerLawBulbCurve()


def light_bulb_stamp(resistance: float) -> BranchStamp:
    """Conductance stamp for a bulb at a given (possibly iterated) resistance"""
    return resistor_stamp(resistance)


def next_resistance(curve: BulbCurve, current: float, resistance: float, damping: float = 1.0) -> float:
    """One successive-substitution update of a real bulb's resistance

    Args:
        curve: Calibration curve of the bulb
        current: Current found with the present resistance (Amps)
        resistance: Resistance used for the present solve (Ohms)
        damping: Fraction of the step toward the curve value (0 < damping <= 1)

    Returns:
        Clamped resistance for the next solve
    """
    power = current * current * resistance
    target = curve.resistance(power)
    return clamp_resistance(resistance + damping * (target - resistance))
