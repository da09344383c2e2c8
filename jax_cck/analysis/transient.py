"""Time-stepping for JAX-CCK

The TimeStepper is driven by the UI clock, one step per animation frame:

    stepper = TimeStepper(circuit)
    result = stepper.step(1 / 60)

Each step solves the circuit at time + dt, then commits the readings and
the history that capacitors, inductors, real bulbs and fuses carry to the
next step.
"""

from typing import Callable, List, Optional

from jax_cck.analysis.context import SolverConfig
from jax_cck.analysis.dc import IterationState
from jax_cck.analysis.solver import SolveResult, solve
from jax_cck.circuit.elements import CurrentSense, ElementKind
from jax_cck.config import ZERO_EPSILON
from jax_cck.devices.resistor import fuse_overload
from jax_cck.logging import logger


def current_sense(current: float) -> CurrentSense:
    """Direction of a current, UNSPECIFIED when it is effectively zero"""
    if current > ZERO_EPSILON:
        return CurrentSense.FORWARD
    if current < -ZERO_EPSILON:
        return CurrentSense.BACKWARD
    return CurrentSense.UNSPECIFIED


class TimeStepper:
    """Advances a circuit through time and commits each solve

    Attributes:
        circuit: Circuit being simulated
        config: Solver configuration
        time: Simulation clock in seconds, only moves forward between resets
        last_result: Most recently committed SolveResult
        stats: Counters of steps, skipped frames and refreshes
    """

    def __init__(self, circuit, config: Optional[SolverConfig] = None):
        self.circuit = circuit
        self.config = config or SolverConfig()
        self.time = 0.0
        self.last_result: Optional[SolveResult] = None
        self.stats = {'steps': 0, 'skipped': 0, 'refreshes': 0, 'fuses_tripped': 0}
        self._listeners: List[Callable[[SolveResult], None]] = []

    def add_listener(self, listener: Callable[[SolveResult], None]) -> None:
        """Register a callback invoked with each committed SolveResult"""
        self._listeners.append(listener)

    def step(self, dt: float) -> Optional[SolveResult]:
        """Advance the simulation by dt seconds

        Args:
            dt: Wall-clock time since the last frame

        Returns:
            The committed SolveResult, or None if the frame was skipped
        """
        if dt > self.config.pause_threshold:
            # Tab switched or debugger paused; a huge step would blow up companion models
            logger.info(f"Skipping frame with dt={dt:.3f}s (> {self.config.pause_threshold}s)")
            self.stats['skipped'] += 1
            return None
        if dt <= 0:
            return self.refresh()

        dt = min(dt, self.config.max_dt)
        result = solve(self.circuit, dt, self.time + dt, self.config)
        self._commit(result, update_history=True)
        self.time += dt
        self.stats['steps'] += 1
        return result

    def refresh(self) -> SolveResult:
        """Re-solve without advancing time, e.g. after an edit while paused"""
        result = solve(self.circuit, 0.0, self.time, self.config)
        self._commit(result, update_history=False)
        self.stats['refreshes'] += 1
        return result

    def reset(self) -> None:
        """Rewind the clock and forget all element history"""
        self.time = 0.0
        self.last_result = None
        self.circuit.reset_history()
        logger.info("Time-stepper reset")

    def _commit(self, result: SolveResult, update_history: bool) -> None:
        circuit = self.circuit
        # History only advances from converged islands
        diverged = {vertex_id for island in result.islands if island.state != IterationState.CONVERGED
                    for vertex_id in island.vertex_ids}

        for vertex_id, voltage in result.vertex_voltages.items():
            circuit.vertices[vertex_id].voltage = voltage

        for element_id, current in result.element_currents.items():
            element = circuit.elements[element_id]
            element.current = current
            element.voltage_drop = result.element_voltage_drops[element_id]
            element.current_sense = current_sense(current)

            if not update_history or element.start_vertex_id in diverged:
                continue

            history = element.history
            if element.is_dynamic:
                history.previous_voltage = element.voltage_drop
                history.previous_current = current
            elif element.is_non_ohmic:
                history.previous_resistance = result.bulb_resistances.get(element_id)
            elif element.kind == ElementKind.FUSE and not history.tripped:
                self._update_fuse(element, result.dt)

        self.last_result = result
        for listener in list(self._listeners):
            listener(result)

    def _update_fuse(self, element, dt: float) -> None:
        history = element.history
        if not fuse_overload(element.current, element.params.current_rating):
            history.time_over_rating = 0.0
            return

        history.time_over_rating += dt
        if history.time_over_rating >= element.params.trip_delay:
            history.tripped = True
            self.stats['fuses_tripped'] += 1
            logger.info(f"Fuse {element.id} tripped at t={self.time + dt:.3f}s "
                        f"({abs(element.current):.2f} A > {element.params.current_rating} A)")
