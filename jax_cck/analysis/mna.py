"""Modified Nodal Analysis (MNA) matrix assembly for JAX-CCK

One MNASystem is built per island (conducting connected component). Its
unknowns are the voltages of every non-reference vertex followed by one
branch current per voltage-source stamp:

    [ G   B ] [ V ]   [ I ]
    [ B^T D ] [ J ] = [ E ]

Where:
    G = conductance matrix (resistive and companion stamps)
    B = source incidence (+1 at the start vertex, -1 at the end vertex)
    D = minus the internal resistance of each source
    I = Norton history currents
    E = minus each source EMF

The branch row reads V_start - V_end - R * J = -EMF, i.e.
V_end - V_start = EMF - R * J, keeping the matrix symmetric.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

import jax
import jax.numpy as jnp
from jax import Array
from jax.scipy.linalg import lu_factor, lu_solve
import numpy as np

from jax_cck.analysis.context import AnalysisContext
from jax_cck.circuit.elements import CircuitElement, ElementKind
from jax_cck.config import MIN_RESISTANCE, SINGULAR_PIVOT_TOLERANCE, ZERO_EPSILON
from jax_cck.devices import (
    BranchStamp,
    ac_voltage_stamp,
    battery_stamp,
    capacitor_stamp,
    fuse_stamp,
    inductor_stamp,
    light_bulb_stamp,
    resistor_stamp,
    switch_stamp,
    wire_resistance,
)
from jax_cck.errors import SingularSystemError
from jax_cck.logging import logger

Stamps = Mapping[int, Optional[BranchStamp]]


# =============================================================================
# Element stamps
# =============================================================================


def stamp_element(
    element: CircuitElement,
    circuit,
    context: AnalysisContext,
    bulb_resistance: Optional[float] = None,
) -> Optional[BranchStamp]:
    """Evaluate the stamp of one element for one solve

    Args:
        element: Element to stamp
        circuit: Owning Circuit, for vertex positions (wire length)
        context: Time, timestep and integration coefficients
        bulb_resistance: Iterated resistance of a real light bulb

    Returns:
        BranchStamp, or None if the element is open
    """
    kind = element.kind
    params = element.params
    history = element.history

    if kind == ElementKind.WIRE:
        start = circuit.vertices[element.start_vertex_id].position
        end = circuit.vertices[element.end_vertex_id].position
        return resistor_stamp(wire_resistance(params.resistivity, start, end))
    elif kind == ElementKind.RESISTOR:
        return resistor_stamp(params.effective_resistance)
    elif kind == ElementKind.SERIES_AMMETER:
        return resistor_stamp(MIN_RESISTANCE)
    elif kind == ElementKind.BATTERY:
        return battery_stamp(params.voltage, params.internal_resistance)
    elif kind == ElementKind.AC_VOLTAGE:
        return ac_voltage_stamp(params.maximum_voltage, params.frequency, params.phase,
                                context.time, params.internal_resistance)
    elif kind == ElementKind.LIGHT_BULB:
        if params.real and bulb_resistance is not None:
            return light_bulb_stamp(bulb_resistance)
        return light_bulb_stamp(params.resistance)
    elif kind == ElementKind.CAPACITOR:
        return capacitor_stamp(params.capacitance, history.previous_voltage,
                               history.previous_current, context.coefficients)
    elif kind == ElementKind.INDUCTOR:
        return inductor_stamp(params.inductance, history.previous_voltage,
                              history.previous_current, context.coefficients)
    elif kind == ElementKind.SWITCH:
        return switch_stamp(params.closed)
    elif kind == ElementKind.FUSE:
        return fuse_stamp(params.resistance, history.tripped)
    else:
        raise ValueError(f"Unknown element kind: {kind}")


# =============================================================================
# Dense solve
# =============================================================================


@jax.jit
def _factor_and_solve(A: Array, b: Array) -> Tuple[Array, Array]:
    """LU-factor A with partial pivoting and solve A x = b

    Returns:
        Tuple of (x, smallest absolute pivot)
    """
    lu, piv = lu_factor(A)
    x = lu_solve((lu, piv), b)
    return x, jnp.min(jnp.abs(jnp.diag(lu)))


def _snap(value: float) -> float:
    return 0.0 if abs(value) < ZERO_EPSILON else value


@dataclass
class MNASolution:
    """Solved voltages and currents of one island

    Attributes:
        vertex_voltages: Voltage of every island vertex (reference at 0 V)
        element_currents: Current start -> end of every island element
        element_voltage_drops: V(start) - V(end) of every island element
        min_pivot: Smallest absolute LU pivot of the factored matrix
    """
    vertex_voltages: Dict[int, float] = field(default_factory=dict)
    element_currents: Dict[int, float] = field(default_factory=dict)
    element_voltage_drops: Dict[int, float] = field(default_factory=dict)
    min_pivot: float = float('inf')


@dataclass
class MNASystem:
    """MNA system for one island

    Manages the mapping between island topology and matrix rows.

    Attributes:
        vertex_ids: Island vertices in ascending ID order
        reference_vertex_id: Vertex held at 0 V
        elements: Island elements (start and end both in the island)
        node_index: Matrix row of every non-reference vertex
    """
    vertex_ids: List[int]
    reference_vertex_id: int
    elements: List[CircuitElement] = field(default_factory=list)
    node_index: Dict[int, int] = field(default_factory=dict)

    @classmethod
    def from_island(
        cls,
        vertex_ids: Iterable[int],
        elements: Iterable[CircuitElement],
        reference_vertex_id: Optional[int] = None,
    ) -> 'MNASystem':
        """Create the MNA system of one island

        Args:
            vertex_ids: Vertices of the island
            elements: Elements whose ends are both island vertices
            reference_vertex_id: Ground vertex, defaults to the lowest ID

        Returns:
            MNASystem ready for stamping
        """
        vertex_ids = sorted(vertex_ids)
        if not vertex_ids:
            raise ValueError("An island needs at least one vertex")
        if reference_vertex_id is None:
            reference_vertex_id = vertex_ids[0]
        elif reference_vertex_id not in vertex_ids:
            raise ValueError(f"Reference vertex {reference_vertex_id} is not in the island")

        elements = list(elements)
        members = set(vertex_ids)
        for element in elements:
            if not set(element.vertex_ids) <= members:
                raise ValueError(f"Element {element.id} leaves the island")

        node_index = {}
        for vertex_id in vertex_ids:
            if vertex_id != reference_vertex_id:
                node_index[vertex_id] = len(node_index)

        return cls(
            vertex_ids=vertex_ids,
            reference_vertex_id=reference_vertex_id,
            elements=elements,
            node_index=node_index,
        )

    @property
    def num_nodes(self) -> int:
        """Number of voltage unknowns (vertices minus the reference)"""
        return len(self.node_index)

    def branch_index(self, stamps: Stamps) -> Dict[int, int]:
        """Matrix row of every source stamp's branch current, by element ID"""
        index = {}
        for element in self.elements:
            stamp = stamps.get(element.id)
            if stamp is not None and stamp.is_source:
                index[element.id] = self.num_nodes + len(index)
        return index

    def build(self, stamps: Stamps, gmin: float = 0.0, rmin: float = 0.0) -> Tuple[np.ndarray, np.ndarray]:
        """Assemble the dense MNA matrix and right-hand side

        Args:
            stamps: Stamp per element ID (None or missing means open)
            gmin: Conductance from every vertex to the reference
            rmin: Extra series resistance on every source branch

        Returns:
            Tuple of (matrix, rhs) as float64 numpy arrays
        """
        branches = self.branch_index(stamps)
        size = self.num_nodes + len(branches)
        A = np.zeros((size, size), dtype=np.float64)
        b = np.zeros(size, dtype=np.float64)

        for element in self.elements:
            stamp = stamps.get(element.id)
            if stamp is None:
                continue
            s = self.node_index.get(element.start_vertex_id)
            e = self.node_index.get(element.end_vertex_id)

            if stamp.is_source:
                k = branches[element.id]
                if s is not None:
                    A[s, k] += 1.0
                    A[k, s] += 1.0
                if e is not None:
                    A[e, k] -= 1.0
                    A[k, e] -= 1.0
                A[k, k] -= stamp.series_resistance + rmin
                b[k] = -stamp.voltage
            else:
                g = stamp.conductance
                if s is not None:
                    A[s, s] += g
                    b[s] -= stamp.current
                if e is not None:
                    A[e, e] += g
                    b[e] += stamp.current
                if s is not None and e is not None:
                    A[s, e] -= g
                    A[e, s] -= g

        # Small conductance from each node to the reference
        for i in range(self.num_nodes):
            A[i, i] += gmin

        return A, b

    def solve(self, stamps: Stamps, gmin: float = 0.0, rmin: float = 0.0) -> MNASolution:
        """Assemble, factor and solve the island

        Raises:
            SingularSystemError: if a pivot is below SINGULAR_PIVOT_TOLERANCE
                or the solution is not finite
        """
        A, b = self.build(stamps, gmin, rmin)
        branches = self.branch_index(stamps)

        if A.shape[0] == 0:
            x = np.zeros(0)
            min_pivot = float('inf')
        else:
            x, min_pivot = _factor_and_solve(jnp.asarray(A), jnp.asarray(b))
            x = np.asarray(x)
            min_pivot = float(min_pivot)
            if not (min_pivot >= SINGULAR_PIVOT_TOLERANCE and np.all(np.isfinite(x))):
                raise SingularSystemError(
                    f"Singular MNA matrix for island at vertex {self.reference_vertex_id} "
                    f"(min pivot {min_pivot:.3e})",
                    min_pivot,
                )

        voltages = {self.reference_vertex_id: 0.0}
        for vertex_id, row in self.node_index.items():
            voltages[vertex_id] = _snap(float(x[row]))

        solution = MNASolution(vertex_voltages=voltages, min_pivot=min_pivot)
        for element in self.elements:
            stamp = stamps.get(element.id)
            v_start = voltages[element.start_vertex_id]
            v_end = voltages[element.end_vertex_id]
            if stamp is None:
                current = 0.0
            elif stamp.is_source:
                current = float(x[branches[element.id]])
            else:
                current = stamp.branch_current(v_start, v_end)
            solution.element_currents[element.id] = _snap(current)
            solution.element_voltage_drops[element.id] = _snap(v_start - v_end)

        logger.debug(f"Solved island at vertex {self.reference_vertex_id}: "
                     f"{A.shape[0]} unknowns, min pivot {min_pivot:.3e}")
        return solution

    def zero_solution(self) -> MNASolution:
        """All vertices at 0 V and all elements at 0 A"""
        return MNASolution(
            vertex_voltages={vertex_id: 0.0 for vertex_id in self.vertex_ids},
            element_currents={element.id: 0.0 for element in self.elements},
            element_voltage_drops={element.id: 0.0 for element in self.elements},
            min_pivot=0.0,
        )
