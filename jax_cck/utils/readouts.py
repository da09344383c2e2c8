"""Readout formatting for meters and labels."""

from typing import Optional


def decimal_places(value: float) -> int:
    """Two decimals normally, three for small values below 0.02"""
    return 3 if abs(value) < 0.02 else 2


def format_current(current: float) -> str:
    """Ammeter readout; the magnitude only, direction is shown separately"""
    magnitude = abs(current)
    return f"{magnitude:.{decimal_places(magnitude)}f} A"


def format_voltage(voltage: Optional[float]) -> str:
    """Voltmeter readout, keeping the sign; "?" when there is no reading"""
    if voltage is None:
        return "?"
    return f"{voltage:.{decimal_places(voltage)}f} V"
