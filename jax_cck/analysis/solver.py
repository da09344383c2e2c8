"""Whole-circuit solve for JAX-CCK

Partitions the circuit into islands, solves each island independently and
gathers the readings into a SolveResult. solve() never mutates the circuit;
committing readings and history is the TimeStepper's job.
"""

import time as time_module
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set, Tuple

from jax_cck.analysis.context import AnalysisContext, SolverConfig
from jax_cck.analysis.dc import IterationState, solve_island
from jax_cck.analysis.mna import MNASystem, stamp_element
from jax_cck.circuit.elements import CircuitElement, ElementKind
from jax_cck.errors import NonConvergenceError
from jax_cck.logging import logger


@dataclass
class IslandReport:
    """Per-island summary of a solve

    Attributes:
        vertex_ids: Island vertices in ascending ID order
        reference_vertex_id: Vertex held at 0 V
        state: Final iteration state
        iterations: Number of linear solves
        singular: Island could not be solved and reads 0 V / 0 A
        regularized: gmin/rmin were needed to solve the island
    """
    vertex_ids: Tuple[int, ...]
    reference_vertex_id: int
    state: IterationState
    iterations: int
    singular: bool = False
    regularized: bool = False


@dataclass
class SolveResult:
    """Readings of one solve, keyed by vertex or element ID

    Attributes:
        time: Time the sources were evaluated at
        dt: Timestep of the solve (0 for a zero-time solve)
        vertex_voltages: Voltage of each vertex relative to its island's reference
        element_currents: Current start -> end of each solved element
        element_voltage_drops: V(start) - V(end) of each solved element
        bulb_resistances: Converged resistance of each real light bulb
        islands: One report per island
        ignored_element_ids: Invalid elements left out of the solve
        converged: True if every island converged
    """
    time: float
    dt: float
    vertex_voltages: Dict[int, float] = field(default_factory=dict)
    element_currents: Dict[int, float] = field(default_factory=dict)
    element_voltage_drops: Dict[int, float] = field(default_factory=dict)
    bulb_resistances: Dict[int, float] = field(default_factory=dict)
    islands: List[IslandReport] = field(default_factory=list)
    ignored_element_ids: List[int] = field(default_factory=list)
    converged: bool = True

    def island_of(self, vertex_id: int) -> Optional[IslandReport]:
        for island in self.islands:
            if vertex_id in island.vertex_ids:
                return island
        return None


def _bridge_element_ids(elements: Iterable[CircuitElement]) -> Set[int]:
    """Elements on no closed loop, which carry no current by KCL

    Iterative Tarjan lowlink over the element multigraph, so parallel
    elements are never bridges.
    """
    adjacency = defaultdict(list)
    for element in elements:
        start, end = element.vertex_ids
        adjacency[start].append((end, element.id))
        adjacency[end].append((start, element.id))

    order: Dict[int, int] = {}
    low: Dict[int, int] = {}
    bridges = set()
    for root in sorted(adjacency):
        if root in order:
            continue
        order[root] = low[root] = len(order)
        stack = [(root, None, iter(adjacency[root]))]
        while stack:
            vertex_id, via, edges = stack[-1]
            for neighbor, element_id in edges:
                if element_id == via:
                    continue
                if neighbor in order:
                    low[vertex_id] = min(low[vertex_id], order[neighbor])
                else:
                    order[neighbor] = low[neighbor] = len(order)
                    stack.append((neighbor, element_id, iter(adjacency[neighbor])))
                    break
            else:
                stack.pop()
                if stack:
                    parent = stack[-1][0]
                    low[parent] = min(low[parent], low[vertex_id])
                    if low[vertex_id] > order[parent]:
                        bridges.add(via)
    return bridges


def _pinned_capacitor_ids(elements: Iterable[CircuitElement]) -> Set[int]:
    """Capacitors whose ends are already tied together by voltage sources

    Sources claim their vertices first, then capacitors in ID order; a
    capacitor closing a loop of sources and held capacitors is pinned.
    """
    parent: Dict[int, int] = {}

    def find(vertex_id):
        parent.setdefault(vertex_id, vertex_id)
        while parent[vertex_id] != vertex_id:
            parent[vertex_id] = parent[parent[vertex_id]]
            vertex_id = parent[vertex_id]
        return vertex_id

    elements = sorted(elements, key=lambda e: e.id)
    for element in elements:
        if element.kind in (ElementKind.BATTERY, ElementKind.AC_VOLTAGE):
            parent[find(element.start_vertex_id)] = find(element.end_vertex_id)

    pinned = set()
    for element in elements:
        if element.kind != ElementKind.CAPACITOR:
            continue
        start, end = find(element.start_vertex_id), find(element.end_vertex_id)
        if start == end:
            pinned.add(element.id)
        else:
            parent[start] = end
    return pinned


def held_open_element_ids(elements: Iterable[CircuitElement]) -> Set[int]:
    """Dynamic elements left out of a zero-time solve

    With no elapsed time a capacitor holds its voltage like a source and an
    inductor holds its current. An inductor on no closed loop cannot keep
    a current, and a capacitor across sources would short them, so both
    are solved as open instead.
    """
    elements = list(elements)
    inductors = {e.id for e in elements if e.kind == ElementKind.INDUCTOR}
    return (_bridge_element_ids(elements) & inductors) | _pinned_capacitor_ids(elements)


def solve(circuit, dt: float, time: float, config: Optional[SolverConfig] = None) -> SolveResult:
    """Solve every island of the circuit at one instant

    Args:
        circuit: Circuit to solve (not modified)
        dt: Time since the last committed step; dt <= 0 holds capacitor
            voltages and inductor currents at their committed values
        time: Time to evaluate AC sources at
        config: Solver configuration

    Returns:
        SolveResult with readings for every vertex and valid element

    Raises:
        NonConvergenceError: only with config.strict, if an island diverged
    """
    config = config or SolverConfig()
    context = AnalysisContext.for_step(time, dt, config.integration)
    t_start = time_module.perf_counter()

    ignored = circuit.invalid_element_ids()
    if ignored:
        logger.warning(f"Ignoring invalid element(s) {ignored}")
    ignored_set = set(ignored)
    valid = [e for e in circuit.elements.values() if e.id not in ignored_set]

    result = SolveResult(time=time, dt=dt, ignored_element_ids=ignored)
    island_by_vertex = {}

    for vertex_ids in circuit.find_connected_components(conducting_only=True):
        island_elements = [e for e in valid if e.conducts and e.start_vertex_id in vertex_ids]
        if not island_elements:
            # A lone vertex has nothing to solve
            for vertex_id in vertex_ids:
                result.vertex_voltages[vertex_id] = 0.0
                island_by_vertex[vertex_id] = vertex_id
            continue

        system = MNASystem.from_island(vertex_ids, island_elements)

        bulbs = {}
        for element in island_elements:
            if element.is_non_ohmic:
                resistance = element.history.previous_resistance
                if resistance is None:
                    resistance = element.params.curve.cold_resistance
                bulbs[element.id] = (element.params.curve, resistance)

        held_open = held_open_element_ids(island_elements) if context.is_dc() else set()
        if held_open:
            logger.debug(f"Holding element(s) {sorted(held_open)} open for zero-time solve")

        def stamp_fn(resistances, elements=island_elements, held_open=held_open):
            return {e.id: None if e.id in held_open else stamp_element(e, circuit, context, resistances.get(e.id))
                    for e in elements}

        island = solve_island(system, stamp_fn, bulbs, config)

        result.vertex_voltages.update(island.solution.vertex_voltages)
        result.element_currents.update(island.solution.element_currents)
        result.element_voltage_drops.update(island.solution.element_voltage_drops)
        result.bulb_resistances.update(island.bulb_resistances)
        result.islands.append(IslandReport(
            vertex_ids=tuple(system.vertex_ids),
            reference_vertex_id=system.reference_vertex_id,
            state=island.state,
            iterations=island.iterations,
            singular=island.singular,
            regularized=island.regularized,
        ))
        for vertex_id in vertex_ids:
            island_by_vertex[vertex_id] = system.reference_vertex_id

    # Open elements carry no current; their drop is only meaningful within one island
    for element in valid:
        if element.conducts:
            continue
        start, end = element.vertex_ids
        result.element_currents[element.id] = 0.0
        if island_by_vertex[start] == island_by_vertex[end]:
            drop = result.vertex_voltages[start] - result.vertex_voltages[end]
        else:
            drop = 0.0
        result.element_voltage_drops[element.id] = drop

    result.converged = all(island.state == IterationState.CONVERGED for island in result.islands)

    elapsed = time_module.perf_counter() - t_start
    logger.debug(f"Solved {len(result.islands)} island(s) at t={time:.4f}s, dt={dt:.4f}s "
                 f"in {elapsed * 1000:.1f}ms")

    if not result.converged and config.strict:
        diverged = [island.reference_vertex_id for island in result.islands
                    if island.state == IterationState.DIVERGED]
        raise NonConvergenceError(
            f"Island(s) at vertex {diverged} did not converge in {config.max_iterations} iterations",
            result,
        )

    return result
