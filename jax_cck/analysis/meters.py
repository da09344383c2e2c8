"""Voltmeter, ammeter and light bulb readings for JAX-CCK

Readings are taken from the committed state of the circuit (vertex voltages
and element currents written by the TimeStepper), the way the kit's probes
and meters read them.
"""

from typing import Optional

from jax_cck.circuit.elements import CircuitElement, ElementKind
from jax_cck.devices import capacitor_energy, inductor_energy

# Brightness heuristics of the kit's bulb view
MAX_BULB_POWER = 60.0
MIN_BULB_POWER = 1e-6
BRIGHTNESS_EXPONENT = 0.354
BRIGHTNESS_SCALE = 0.4


def measure_voltage(circuit, red_vertex_id: int, black_vertex_id: int) -> Optional[float]:
    """Voltmeter reading V(red) - V(black)

    Returns:
        Voltage in Volts, or None if a probe is off the circuit, hidden in a
        black box, or the probes are not in the same conducting island
    """
    red = circuit.vertices.get(red_vertex_id)
    black = circuit.vertices.get(black_vertex_id)
    if red is None or black is None:
        return None
    if red.inside_true_black_box or black.inside_true_black_box:
        return None

    for component in circuit.find_connected_components(conducting_only=True):
        if red_vertex_id in component:
            if black_vertex_id not in component:
                return None
            break

    return red.voltage - black.voltage


def measure_current(circuit, element_id: int) -> Optional[float]:
    """Ammeter reading through an element, positive from start to end"""
    element = circuit.elements.get(element_id)
    if element is None:
        return None
    return element.current


def light_bulb_brightness(element: CircuitElement) -> float:
    """Brightness in [0, 1] of a light bulb from its dissipated power"""
    if element.kind != ElementKind.LIGHT_BULB:
        raise ValueError(f"Element {element.id} is a {element.kind.value}, not a light bulb")

    power = abs(element.power)
    if power <= MIN_BULB_POWER:
        return 0.0
    power = min(power, MAX_BULB_POWER * 15)
    brightness = (power / MAX_BULB_POWER) ** BRIGHTNESS_EXPONENT * BRIGHTNESS_SCALE
    return min(max(brightness, 0.0), 1.0)


def stored_energy(element: CircuitElement) -> float:
    """Energy held by a capacitor or inductor; 0 for everything else"""
    if element.kind == ElementKind.CAPACITOR:
        return capacitor_energy(element.params.capacitance, element.voltage_drop)
    if element.kind == ElementKind.INDUCTOR:
        return inductor_energy(element.params.inductance, element.current)
    return 0.0
