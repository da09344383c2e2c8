"""Voltage sources: DC batteries and AC voltage sources.

Both are ideal EMFs with an optional internal resistance, stamped with the
MNA extension (one branch current unknown each). The EMF is measured from
the start vertex (negative terminal) to the end vertex (positive terminal).

AC source waveform:
    V(t) = Vmax * sin(2*pi*f*t + phase)
"""

import math

from jax_cck.config import MAX_RESISTANCE
from jax_cck.devices.base import BranchStamp


def _internal_resistance(resistance: float) -> float:
    # Zero means ideal; negative values are not physical
    return min(max(resistance, 0.0), MAX_RESISTANCE)


def battery_stamp(voltage: float, internal_resistance: float = 0.0) -> BranchStamp:
    """Source stamp for a DC battery"""
    return BranchStamp.source(voltage, _internal_resistance(internal_resistance))


def ac_voltage(maximum_voltage: float, frequency: float, phase: float, time: float) -> float:
    """Instantaneous voltage of an AC source

    Args:
        maximum_voltage: Amplitude Vmax in Volts
        frequency: Frequency in Hz
        phase: Phase offset in radians
        time: Simulation time in seconds

    Returns:
        V(t) in Volts
    """
    return maximum_voltage * math.sin(2 * math.pi * frequency * time + phase)


def ac_voltage_stamp(maximum_voltage: float, frequency: float, phase: float,
                     time: float, internal_resistance: float = 0.0) -> BranchStamp:
    """Source stamp for an AC source evaluated at the stamping time"""
    return BranchStamp.source(
        ac_voltage(maximum_voltage, frequency, phase, time),
        _internal_resistance(internal_resistance),
    )


def matched_phase(old_frequency: float, old_phase: float, new_frequency: float, time: float) -> float:
    """Phase that keeps the sine argument continuous across a frequency change.

    Solves 2*pi*f_new*t + phase_new = 2*pi*f_old*t + phase_old, so the
    waveform does not jump when the frequency is edited mid-simulation.
    """
    old_argument = 2 * math.pi * old_frequency * time + old_phase
    return old_argument - 2 * math.pi * new_frequency * time
