"""Island solve with non-ohmic iteration for JAX-CCK

Linear islands are solved once. Islands with real light bulbs use
successive substitution on the bulb resistances:

    R_0     = committed resistance (or the cold resistance)
    I_k     = solve(R_k)
    R_{k+1} = R_k + damping * (curve(I_k^2 * R_k) - R_k)

until every bulb current changes by less than abstol + reltol * |I|.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from jax_cck.analysis.context import SolverConfig
from jax_cck.analysis.mna import MNASolution, MNASystem, Stamps
from jax_cck.devices.light_bulb import BulbCurve, next_resistance
from jax_cck.errors import SingularSystemError
from jax_cck.logging import logger

StampFunction = Callable[[Mapping[int, float]], Stamps]


class IterationState(Enum):
    """Progress of the iteration driver for one island"""
    STAMPING = 'stamping'
    SOLVING = 'solving'
    CONVERGED = 'converged'
    DIVERGED = 'diverged'


@dataclass
class IslandSolution:
    """Result of solving one island

    Attributes:
        solution: Voltages and currents of the last iterate
        state: CONVERGED or DIVERGED
        iterations: Number of linear solves performed
        bulb_resistances: Resistance each real bulb was solved with
        singular: True if the island could not be solved and was zeroed
        regularized: True if gmin/rmin were needed to factor the matrix
        delta_history: Largest bulb current change after each solve
    """
    solution: MNASolution
    state: IterationState
    iterations: int
    bulb_resistances: Dict[int, float] = field(default_factory=dict)
    singular: bool = False
    regularized: bool = False
    delta_history: List[float] = field(default_factory=list)

    @property
    def converged(self) -> bool:
        return self.state == IterationState.CONVERGED


def _solve_with_recovery(
    system: MNASystem,
    stamps: Stamps,
    config: SolverConfig,
) -> Tuple[Optional[MNASolution], bool]:
    """Solve, retrying once with gmin/rmin regularization if singular

    A regularized solution with a vertex beyond config.max_recovered_voltage
    counts as still singular.

    Returns:
        Tuple of (solution or None if still singular, regularized)
    """
    try:
        return system.solve(stamps), False
    except SingularSystemError as e:
        logger.warning(f"{e}; retrying with gmin={config.gmin:.1e}, rmin={config.rmin:.1e}")

    try:
        solution = system.solve(stamps, gmin=config.gmin, rmin=config.rmin)
    except SingularSystemError as e:
        logger.warning(f"{e}; island zeroed")
        return None, True

    # A current with no return path can only flow through gmin
    peak = max((abs(v) for v in solution.vertex_voltages.values()), default=0.0)
    if peak > config.max_recovered_voltage:
        logger.warning(f"Regularized solve of island at vertex {system.reference_vertex_id} "
                       f"reached {peak:.3e} V; island zeroed")
        return None, True
    return solution, True


def solve_island(
    system: MNASystem,
    stamp_fn: StampFunction,
    bulbs: Optional[Mapping[int, Tuple[BulbCurve, float]]] = None,
    config: Optional[SolverConfig] = None,
) -> IslandSolution:
    """Solve one island, iterating on real light bulb resistances

    Args:
        system: MNA system of the island
        stamp_fn: Maps bulb resistances (by element ID) to the island stamps
        bulbs: Real bulbs of the island as element ID -> (curve, initial resistance)
        config: Solver configuration

    Returns:
        IslandSolution with the last iterate
    """
    config = config or SolverConfig()
    bulbs = dict(bulbs or {})

    resistances = {element_id: resistance for element_id, (_, resistance) in bulbs.items()}
    currents = {element_id: 0.0 for element_id in bulbs}
    delta_history = []
    regularized = False
    solution = None
    solved_with = {}

    for iteration in range(1, config.max_iterations + 1):
        state = IterationState.STAMPING
        solved_with = dict(resistances)
        stamps = stamp_fn(solved_with)

        state = IterationState.SOLVING
        solution, recovered = _solve_with_recovery(system, stamps, config)
        regularized = regularized or recovered
        if solution is None:
            return IslandSolution(
                solution=system.zero_solution(),
                state=IterationState.CONVERGED,
                iterations=iteration,
                bulb_resistances=solved_with,
                singular=True,
                regularized=True,
                delta_history=delta_history,
            )

        if not bulbs:
            return IslandSolution(solution, IterationState.CONVERGED, iteration, regularized=regularized)

        new_currents = {element_id: solution.element_currents[element_id] for element_id in bulbs}
        delta = max(abs(new_currents[i] - currents[i]) for i in bulbs)
        delta_history.append(delta)
        logger.debug(f"  Iter {iteration}: max bulb current change {delta:.3e}")

        # The seed current is a guess, so at least two solves are compared
        if iteration > 1 and all(
            abs(new_currents[i] - currents[i]) <= config.abstol + config.reltol * abs(new_currents[i])
            for i in bulbs
        ):
            return IslandSolution(
                solution=solution,
                state=IterationState.CONVERGED,
                iterations=iteration,
                bulb_resistances=solved_with,
                regularized=regularized,
                delta_history=delta_history,
            )

        currents = new_currents
        resistances = {
            element_id: next_resistance(curve, currents[element_id], resistances[element_id], config.damping)
            for element_id, (curve, _) in bulbs.items()
        }

    logger.warning(f"Light bulb iteration did not converge in {config.max_iterations} iterations "
                   f"for island at vertex {system.reference_vertex_id} "
                   f"(last change {delta_history[-1]:.3e} A)")
    state = IterationState.DIVERGED

    return IslandSolution(
        solution=solution,
        state=state,
        iterations=config.max_iterations,
        bulb_resistances=solved_with,
        regularized=regularized,
        delta_history=delta_history,
    )
