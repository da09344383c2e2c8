"""Common stamp type for two-terminal circuit elements.

Every element in the kit has exactly two terminals, start and end. Its
contribution to the MNA system for one solve is a BranchStamp in one of
two forms:

Conductance (Norton) form, current flowing start -> end through the element:

    i = conductance * (V_start - V_end) + current

Source form, which adds a branch current unknown to the MNA system:

    V_end - V_start = voltage - series_resistance * i

An element that contributes nothing (open switch, tripped fuse) has no
stamp at all; callers use None for that.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class BranchStamp:
    """Contribution of one two-terminal element to the linear system.

    Attributes:
        conductance: Conductance between start and end (Siemens)
        current: Norton history current, start -> end (Amps)
        voltage: Source EMF V_end - V_start, or None for conductance form
        series_resistance: Internal resistance of a source (Ohms)
    """
    conductance: float = 0.0
    current: float = 0.0
    voltage: Optional[float] = None
    series_resistance: float = 0.0

    @property
    def is_source(self) -> bool:
        """True if this stamp needs an MNA branch current unknown"""
        return self.voltage is not None

    @classmethod
    def conductor(cls, conductance: float, current: float = 0.0) -> 'BranchStamp':
        return cls(conductance=conductance, current=current)

    @classmethod
    def source(cls, voltage: float, series_resistance: float = 0.0) -> 'BranchStamp':
        return cls(voltage=voltage, series_resistance=series_resistance)

    def branch_current(self, v_start: float, v_end: float) -> float:
        """Current through a conductance-form stamp given its terminal voltages"""
        return self.conductance * (v_start - v_end) + self.current
