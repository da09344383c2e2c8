"""Tests for whole-circuit solves: islands, conservation laws and robustness"""

from collections import defaultdict

import pytest

from jax_cck.analysis.context import SolverConfig
from jax_cck.analysis.dc import IterationState
from jax_cck.analysis.solver import held_open_element_ids, solve
from jax_cck.analysis.transient import TimeStepper
from jax_cck.circuit import Circuit, CircuitElement, ElementKind, LightBulbParams, ResistorParams, ResistorType
from jax_cck.config import MAX_RESISTANCE
from jax_cck.errors import NonConvergenceError


def _kcl_residuals(circuit, result):
    """Net current leaving each vertex"""
    net = defaultdict(float)
    for element_id, current in result.element_currents.items():
        element = circuit.elements[element_id]
        net[element.start_vertex_id] += current
        net[element.end_vertex_id] -= current
    return net


class TestBasicCircuits:
    """Test textbook DC circuits"""

    def test_series(self, series_circuit):
        circuit, battery, r10, r20 = series_circuit
        result = solve(circuit, dt=0.0, time=0.0)

        assert result.converged
        for element in (battery, r10, r20):
            assert result.element_currents[element.id] == pytest.approx(0.3)
        assert result.element_voltage_drops[r20.id] == pytest.approx(6.0)

    def test_parallel(self, circuit):
        a, b = circuit.add_vertex(), circuit.add_vertex()
        battery = circuit.add_battery(a.id, b.id, voltage=9.0)
        r1 = circuit.add_resistor(b.id, a.id, resistance=10.0)
        r2 = circuit.add_resistor(b.id, a.id, resistance=10.0)

        result = solve(circuit, dt=0.0, time=0.0)

        assert result.element_currents[battery.id] == pytest.approx(1.8)
        assert result.element_currents[r1.id] == pytest.approx(0.9)
        assert result.element_currents[r2.id] == pytest.approx(0.9)

    def test_wires_carry_series_current(self, circuit):
        v = [circuit.add_vertex((100.0 * i, 0.0)) for i in range(4)]
        battery = circuit.add_battery(v[0].id, v[1].id, voltage=9.0)
        wire = circuit.add_wire(v[1].id, v[2].id)
        ammeter = circuit.add_series_ammeter(v[2].id, v[3].id)
        circuit.add_resistor(v[3].id, v[0].id, resistance=10.0)

        result = solve(circuit, dt=0.0, time=0.0)

        assert result.element_currents[wire.id] == pytest.approx(0.9)
        assert result.element_currents[ammeter.id] == pytest.approx(0.9)
        assert result.element_currents[battery.id] == pytest.approx(0.9)

    def test_insulator_blocks_current(self, circuit):
        a, b = circuit.add_vertex(), circuit.add_vertex()
        circuit.add_battery(a.id, b.id, voltage=9.0)
        eraser = circuit.add_resistor(b.id, a.id, resistor_type=ResistorType.ERASER)

        result = solve(circuit, dt=0.0, time=0.0)

        assert result.element_currents[eraser.id] == pytest.approx(9.0 / MAX_RESISTANCE)


class TestIslands:
    """Test partitioning into independently solved islands"""

    def test_open_switch_carries_no_current(self, circuit):
        v = [circuit.add_vertex() for _ in range(3)]
        battery = circuit.add_battery(v[0].id, v[1].id, voltage=9.0)
        switch = circuit.add_switch(v[1].id, v[2].id, closed=False)
        resistor = circuit.add_resistor(v[2].id, v[0].id, resistance=10.0)

        result = solve(circuit, dt=0.0, time=0.0)

        assert result.element_currents[switch.id] == 0.0
        assert result.element_currents[battery.id] == 0.0
        assert result.element_currents[resistor.id] == 0.0
        # The battery EMF appears across the open switch
        assert result.element_voltage_drops[switch.id] == pytest.approx(9.0)
        assert len(result.islands) == 1

        circuit.set_switch(switch.id, True)
        result = solve(circuit, dt=0.0, time=0.0)
        assert result.element_currents[switch.id] == pytest.approx(0.9)
        assert len(result.islands) == 1

    def test_open_element_between_islands_reads_zero(self, circuit):
        a, b, c = circuit.add_vertex(), circuit.add_vertex(), circuit.add_vertex()
        circuit.add_battery(a.id, b.id, voltage=9.0)
        circuit.add_resistor(b.id, a.id, resistance=10.0)
        switch = circuit.add_switch(b.id, c.id, closed=False)

        result = solve(circuit, dt=0.0, time=0.0)

        # The lone vertex is not solved as an island of its own
        assert len(result.islands) == 1
        assert result.vertex_voltages[c.id] == 0.0
        assert result.element_currents[switch.id] == 0.0
        assert result.element_voltage_drops[switch.id] == 0.0

    def test_separate_islands_each_grounded(self, series_circuit):
        circuit, *_ = series_circuit
        a, b = circuit.add_vertex(), circuit.add_vertex()
        battery = circuit.add_battery(a.id, b.id, voltage=1.5)
        circuit.add_resistor(b.id, a.id, resistance=3.0)

        result = solve(circuit, dt=0.0, time=0.0)

        assert [island.reference_vertex_id for island in result.islands] == [0, a.id]
        assert result.vertex_voltages[a.id] == 0.0
        assert result.vertex_voltages[b.id] == pytest.approx(1.5)
        assert result.element_currents[battery.id] == pytest.approx(0.5)
        assert result.island_of(b.id).reference_vertex_id == a.id

    def test_isolated_vertex(self, circuit):
        v = circuit.add_vertex()
        result = solve(circuit, dt=0.0, time=0.0)
        assert result.vertex_voltages == {v.id: 0.0}
        assert result.islands == []
        assert result.converged


def _bridge_circuit(circuit):
    v = [circuit.add_vertex() for _ in range(4)]
    circuit.add_battery(v[0].id, v[1].id, voltage=12.0, internal_resistance=0.5)
    circuit.add_resistor(v[1].id, v[2].id, resistance=10.0)
    circuit.add_resistor(v[1].id, v[3].id, resistance=20.0)
    circuit.add_resistor(v[2].id, v[3].id, resistance=30.0)
    circuit.add_resistor(v[2].id, v[0].id, resistance=40.0)
    circuit.add_resistor(v[3].id, v[0].id, resistance=50.0)
    return circuit


def _static_bridge():
    circuit = _bridge_circuit(Circuit())
    return circuit, solve(circuit, dt=0.0, time=0.0)


def _rc_stepped():
    circuit = Circuit()
    v0, v1, v2 = circuit.add_vertex(), circuit.add_vertex(), circuit.add_vertex()
    circuit.add_battery(v0.id, v1.id, voltage=9.0)
    circuit.add_resistor(v1.id, v2.id, resistance=10.0)
    circuit.add_capacitor(v2.id, v0.id, capacitance=0.1)
    stepper = TimeStepper(circuit)
    for _ in range(5):
        stepper.step(0.1)
    return circuit, stepper.last_result


def _rl_loop():
    """9 V battery, switch, 10 ohm and 5 H in one loop, stepped for 0.5 s"""
    circuit = Circuit()
    v = [circuit.add_vertex() for _ in range(4)]
    circuit.add_battery(v[0].id, v[1].id, voltage=9.0)
    switch = circuit.add_switch(v[1].id, v[2].id, closed=True)
    circuit.add_resistor(v[2].id, v[3].id, resistance=10.0)
    circuit.add_inductor(v[3].id, v[0].id, inductance=5.0)
    stepper = TimeStepper(circuit)
    for _ in range(10):
        stepper.step(0.05)
    return circuit, switch, stepper


def _rl_stepped():
    circuit, _, stepper = _rl_loop()
    return circuit, stepper.last_result


def _rl_refreshed():
    circuit, _, stepper = _rl_loop()
    return circuit, stepper.refresh()


def _rl_opened_while_paused():
    circuit, switch, stepper = _rl_loop()
    circuit.set_switch(switch.id, False)
    return circuit, stepper.refresh()


def _parallel_batteries():
    circuit = Circuit()
    a, b = circuit.add_vertex(), circuit.add_vertex()
    circuit.add_battery(a.id, b.id, voltage=9.0)
    circuit.add_battery(a.id, b.id, voltage=9.0)
    circuit.add_resistor(b.id, a.id, resistance=10.0)
    return circuit, solve(circuit, dt=0.0, time=0.0)


class TestConservation:
    """Test Kirchhoff's laws on static, transient and recovered islands"""

    @pytest.mark.parametrize("build", [
        _static_bridge,
        _rc_stepped,
        _rl_stepped,
        _rl_refreshed,
        _rl_opened_while_paused,
        _parallel_batteries,
    ])
    def test_kcl(self, build):
        circuit, result = build()
        for vertex_id, net in _kcl_residuals(circuit, result).items():
            assert abs(net) < 1e-6, f"KCL violated at vertex {vertex_id}: {net:.3e} A"

    def test_kvl(self, circuit):
        bridge = _bridge_circuit(circuit)
        result = solve(bridge, dt=0.0, time=0.0)
        for element_id, drop in result.element_voltage_drops.items():
            element = bridge.elements[element_id]
            expected = (result.vertex_voltages[element.start_vertex_id]
                        - result.vertex_voltages[element.end_vertex_id])
            assert drop == pytest.approx(expected, abs=1e-9)
        # Around the loop 1 -> 2 -> 3 -> 1
        drops = result.element_voltage_drops
        loop = drops[1] + drops[3] - drops[2]
        assert abs(loop) < 1e-9


class TestZeroTimeHolds:
    """Test which dynamic elements a zero-time solve leaves open"""

    def test_dead_end_inductor_held_open(self, circuit):
        v = [circuit.add_vertex() for _ in range(4)]
        circuit.add_battery(v[0].id, v[1].id, voltage=9.0)
        circuit.add_resistor(v[1].id, v[2].id, resistance=10.0)
        inductor = circuit.add_inductor(v[2].id, v[3].id)

        assert held_open_element_ids(circuit.elements.values()) == {inductor.id}

    def test_inductor_in_loop_kept(self, circuit):
        v = [circuit.add_vertex() for _ in range(3)]
        circuit.add_battery(v[0].id, v[1].id, voltage=9.0)
        circuit.add_resistor(v[1].id, v[2].id, resistance=10.0)
        circuit.add_inductor(v[2].id, v[0].id)

        assert held_open_element_ids(circuit.elements.values()) == set()

    def test_parallel_inductors_kept(self, circuit):
        a, b = circuit.add_vertex(), circuit.add_vertex()
        circuit.add_inductor(a.id, b.id)
        circuit.add_inductor(b.id, a.id)

        assert held_open_element_ids(circuit.elements.values()) == set()

    def test_capacitor_across_battery_held_open(self, circuit):
        a, b = circuit.add_vertex(), circuit.add_vertex()
        circuit.add_battery(a.id, b.id, voltage=9.0)
        capacitor = circuit.add_capacitor(b.id, a.id)

        assert held_open_element_ids(circuit.elements.values()) == {capacitor.id}

    def test_series_capacitor_kept(self, circuit):
        v0, v1, v2 = circuit.add_vertex(), circuit.add_vertex(), circuit.add_vertex()
        circuit.add_battery(v0.id, v1.id, voltage=9.0)
        circuit.add_resistor(v1.id, v2.id, resistance=10.0)
        circuit.add_capacitor(v2.id, v0.id)

        assert held_open_element_ids(circuit.elements.values()) == set()

    def test_second_parallel_capacitor_held_open(self, circuit):
        a, b = circuit.add_vertex(), circuit.add_vertex()
        circuit.add_resistor(a.id, b.id)
        circuit.add_capacitor(a.id, b.id)
        second = circuit.add_capacitor(a.id, b.id)

        assert held_open_element_ids(circuit.elements.values()) == {second.id}

    def test_opened_rl_loop_reads_zero(self):
        circuit, switch, stepper = _rl_loop()
        inductor = next(e for e in circuit.elements.values() if e.kind == ElementKind.INDUCTOR)
        assert inductor.current > 0.1

        circuit.set_switch(switch.id, False)
        result = stepper.refresh()

        assert inductor.current == pytest.approx(0.0, abs=1e-12)
        assert switch.current == 0.0
        assert all(abs(v) <= 9.0 + 1e-6 for v in result.vertex_voltages.values())
        assert result.element_voltage_drops[switch.id] == pytest.approx(9.0)
        assert not result.islands[0].singular


class TestSolveContract:
    """Test purity, idempotence and robustness of solve()"""

    def test_solve_does_not_mutate(self, series_circuit):
        circuit, battery, *_ = series_circuit
        solve(circuit, dt=0.01, time=0.01)
        assert battery.current == 0.0
        assert circuit.vertices[1].voltage == 0.0

    def test_idempotent(self, circuit):
        a, b, c = circuit.add_vertex(), circuit.add_vertex(), circuit.add_vertex()
        circuit.add_battery(a.id, b.id, voltage=9.0)
        circuit.add_resistor(b.id, c.id, resistance=10.0)
        circuit.add_capacitor(c.id, a.id)
        circuit.add_light_bulb(b.id, a.id, LightBulbParams.real_bulb())

        first = solve(circuit, dt=0.0, time=0.0)
        second = solve(circuit, dt=0.0, time=0.0)

        assert first.element_currents == second.element_currents
        assert first.vertex_voltages == second.vertex_voltages

    def test_invalid_element_ignored(self, series_circuit):
        circuit, battery, *_ = series_circuit
        broken = CircuitElement(50, ElementKind.RESISTOR, 1, 99, ResistorParams())
        circuit.elements[broken.id] = broken

        result = solve(circuit, dt=0.0, time=0.0)

        assert result.ignored_element_ids == [broken.id]
        assert broken.id not in result.element_currents
        assert result.element_currents[battery.id] == pytest.approx(0.3)

    def test_parallel_batteries_recover(self, circuit):
        a, b = circuit.add_vertex(), circuit.add_vertex()
        circuit.add_battery(a.id, b.id, voltage=9.0)
        circuit.add_battery(a.id, b.id, voltage=9.0)
        resistor = circuit.add_resistor(b.id, a.id, resistance=10.0)

        result = solve(circuit, dt=0.0, time=0.0)

        island = result.islands[0]
        assert island.regularized and not island.singular
        assert result.element_currents[resistor.id] == pytest.approx(0.9, rel=1e-4)


class TestRealBulbs:
    """Test non-ohmic bulbs through the full solve"""

    def test_real_bulb_resistance_reported(self, circuit):
        a, b = circuit.add_vertex(), circuit.add_vertex()
        circuit.add_battery(a.id, b.id, voltage=9.0)
        bulb = circuit.add_light_bulb(b.id, a.id, LightBulbParams.real_bulb())

        result = solve(circuit, dt=0.0, time=0.0)

        assert result.converged
        assert result.bulb_resistances[bulb.id] == pytest.approx(12.0, rel=1e-4)
        assert result.element_currents[bulb.id] == pytest.approx(0.75, rel=1e-4)
        assert result.islands[0].iterations > 1

    def test_strict_mode_raises_with_partial_result(self, circuit):
        a, b = circuit.add_vertex(), circuit.add_vertex()
        circuit.add_battery(a.id, b.id, voltage=9.0)
        bulb = circuit.add_light_bulb(b.id, a.id, LightBulbParams.real_bulb())

        config = SolverConfig(max_iterations=2, strict=True)
        with pytest.raises(NonConvergenceError) as exc_info:
            solve(circuit, dt=0.0, time=0.0, config=config)

        partial = exc_info.value.result
        assert not partial.converged
        assert partial.islands[0].state == IterationState.DIVERGED
        assert bulb.id in partial.element_currents

    def test_non_strict_returns_last_iterate(self, circuit):
        a, b = circuit.add_vertex(), circuit.add_vertex()
        circuit.add_battery(a.id, b.id, voltage=9.0)
        circuit.add_light_bulb(b.id, a.id, LightBulbParams.real_bulb())

        result = solve(circuit, dt=0.0, time=0.0, config=SolverConfig(max_iterations=2))

        assert not result.converged
