"""Tests for voltmeter/ammeter readings, bulb brightness and readout formatting"""

import pytest

from jax_cck.analysis.meters import (
    light_bulb_brightness,
    measure_current,
    measure_voltage,
    stored_energy,
)
from jax_cck.analysis.transient import TimeStepper
from jax_cck.circuit import LightBulbParams
from jax_cck.utils import decimal_places, format_current, format_voltage


class TestVoltmeter:
    """Test probe readings on committed vertex voltages"""

    def test_reads_difference(self, series_circuit):
        circuit, *_ = series_circuit
        TimeStepper(circuit).refresh()

        assert measure_voltage(circuit, 1, 0) == pytest.approx(9.0)
        assert measure_voltage(circuit, 2, 1) == pytest.approx(-3.0)

    def test_different_islands_read_none(self, series_circuit):
        circuit, *_ = series_circuit
        lone = circuit.add_vertex()
        TimeStepper(circuit).refresh()

        assert measure_voltage(circuit, 1, lone.id) is None
        assert measure_voltage(circuit, 1, 1234) is None

    def test_black_box_hidden(self, series_circuit):
        circuit, *_ = series_circuit
        TimeStepper(circuit).refresh()
        circuit.vertices[2].inside_true_black_box = True

        assert measure_voltage(circuit, 2, 0) is None
        assert measure_voltage(circuit, 1, 0) == pytest.approx(9.0)


class TestAmmeter:
    def test_reads_element_current(self, series_circuit):
        circuit, battery, *_ = series_circuit
        TimeStepper(circuit).refresh()

        assert measure_current(circuit, battery.id) == pytest.approx(0.3)
        assert measure_current(circuit, 999) is None


class TestLightBulbBrightness:
    """Test the brightness heuristic"""

    def test_dark_without_current(self, circuit):
        a, b = circuit.add_vertex(), circuit.add_vertex()
        bulb = circuit.add_light_bulb(a.id, b.id)
        assert light_bulb_brightness(bulb) == 0.0

    def test_brightness_rises_with_power(self, circuit):
        a, b = circuit.add_vertex(), circuit.add_vertex()
        battery = circuit.add_battery(a.id, b.id, voltage=9.0)
        bulb = circuit.add_light_bulb(b.id, a.id, LightBulbParams())
        stepper = TimeStepper(circuit)
        stepper.refresh()
        dim = light_bulb_brightness(bulb)

        circuit.update_params(battery.id, voltage=90.0)
        stepper.refresh()
        bright = light_bulb_brightness(bulb)

        # 8.1 W at 9 V
        assert dim == pytest.approx((8.1 / 60.0) ** 0.354 * 0.4)
        assert 0.0 < dim < bright <= 1.0

    def test_not_a_bulb(self, circuit):
        a, b = circuit.add_vertex(), circuit.add_vertex()
        resistor = circuit.add_resistor(a.id, b.id)
        with pytest.raises(ValueError):
            light_bulb_brightness(resistor)


class TestStoredEnergy:
    def test_capacitor_and_inductor(self, circuit):
        a, b = circuit.add_vertex(), circuit.add_vertex()
        capacitor = circuit.add_capacitor(a.id, b.id, capacitance=0.1)
        inductor = circuit.add_inductor(a.id, b.id, inductance=5.0)
        resistor = circuit.add_resistor(a.id, b.id)
        capacitor.voltage_drop = 3.0
        inductor.current = 0.2

        assert stored_energy(capacitor) == pytest.approx(0.45)
        assert stored_energy(inductor) == pytest.approx(0.1)
        assert stored_energy(resistor) == 0.0


class TestReadouts:
    """Test readout formatting"""

    @pytest.mark.parametrize("value,places", [(0.0, 3), (0.019, 3), (-0.015, 3), (0.02, 2), (9.0, 2)])
    def test_decimal_places(self, value, places):
        assert decimal_places(value) == places

    def test_format_current_drops_sign(self):
        assert format_current(-0.3) == "0.30 A"
        assert format_current(0.0123) == "0.012 A"

    def test_format_voltage_keeps_sign(self):
        assert format_voltage(-9.0) == "-9.00 V"
        assert format_voltage(0.005) == "0.005 V"
        assert format_voltage(None) == "?"
