"""Circuit graph for JAX-CCK

The Circuit is an arena: vertices and elements live in dicts keyed by dense
integer IDs, and elements store vertex IDs instead of references. All
topology edits go through Circuit methods, which keep two invariants:

- every element's start and end vertices exist, and
- an element never has the same vertex at both ends.

Edits are meant to happen between solves, never during one. Observers can
subscribe with add_listener() to learn about each edit.
"""

import dataclasses
from collections import deque
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple

from jax_cck.circuit.elements import (
    PARAMS_BY_KIND,
    ACVoltageParams,
    BatteryParams,
    CapacitorParams,
    CircuitElement,
    ElementHistory,
    ElementKind,
    ElementParams,
    FuseParams,
    InductorParams,
    LightBulbParams,
    ResistorParams,
    ResistorType,
    SeriesAmmeterParams,
    SwitchParams,
    WireParams,
)
from jax_cck.devices.sources import matched_phase
from jax_cck.errors import InvalidTopologyError

Listener = Callable[..., None]


@dataclass(eq=False)
class Vertex:
    """A connection point between circuit elements

    Attributes:
        id: Arena index of the vertex
        position: (x, y) in view coordinates, only used for wire length
        voltage: Solved voltage relative to the island's reference vertex
        is_dragged: Set by the interaction layer while the user drags it
        inside_true_black_box: Hidden from probes in black box challenges
    """
    id: int
    position: Tuple[float, float] = (0.0, 0.0)
    voltage: float = 0.0
    is_dragged: bool = False
    inside_true_black_box: bool = False


class Circuit:
    """Owner of every vertex and element of a simulated circuit"""

    def __init__(self):
        self.vertices: Dict[int, Vertex] = {}
        self.elements: Dict[int, CircuitElement] = {}
        self.revision = 0
        self._next_vertex_id = 0
        self._next_element_id = 0
        self._listeners: List[Listener] = []

    # -------------------------------------------------------------------------
    # Change notification
    # -------------------------------------------------------------------------

    def add_listener(self, listener: Listener) -> None:
        """Register a callback invoked as listener(event, **payload) after each edit"""
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        self._listeners.remove(listener)

    def _notify(self, event: str, **payload) -> None:
        self.revision += 1
        for listener in list(self._listeners):
            listener(event, **payload)

    # -------------------------------------------------------------------------
    # Vertices
    # -------------------------------------------------------------------------

    def add_vertex(self, position: Tuple[float, float] = (0.0, 0.0)) -> Vertex:
        vertex = Vertex(self._next_vertex_id, tuple(position))
        self._next_vertex_id += 1
        self.vertices[vertex.id] = vertex
        self._notify('vertex_added', vertex_id=vertex.id)
        return vertex

    def remove_vertex(self, vertex_id: int) -> None:
        """Remove an isolated vertex

        Raises:
            InvalidTopologyError: if elements are still attached
        """
        self._require_vertex(vertex_id)
        attached = self.neighbors_of(vertex_id)
        if attached:
            raise InvalidTopologyError(
                f"Vertex {vertex_id} still has {len(attached)} attached element(s)",
                [e.id for e in attached],
            )
        del self.vertices[vertex_id]
        self._notify('vertex_removed', vertex_id=vertex_id)

    def _require_vertex(self, vertex_id: int) -> Vertex:
        vertex = self.vertices.get(vertex_id)
        if vertex is None:
            raise InvalidTopologyError(f"Unknown vertex: {vertex_id}")
        return vertex

    # -------------------------------------------------------------------------
    # Elements
    # -------------------------------------------------------------------------

    def add_element(
        self,
        kind: ElementKind,
        start_vertex_id: int,
        end_vertex_id: int,
        params: Optional[ElementParams] = None,
    ) -> CircuitElement:
        """Place an element between two existing vertices

        Args:
            kind: Element kind
            start_vertex_id: Start vertex (negative terminal for sources)
            end_vertex_id: End vertex
            params: Kind-specific parameters, defaults when None

        Returns:
            The new element

        Raises:
            InvalidTopologyError: if a vertex is missing, both ends are the
                same vertex, or params do not match the kind
        """
        self._require_vertex(start_vertex_id)
        self._require_vertex(end_vertex_id)
        if start_vertex_id == end_vertex_id:
            raise InvalidTopologyError(
                f"Element cannot start and end at the same vertex ({start_vertex_id})"
            )

        params_type = PARAMS_BY_KIND[kind]
        if params is None:
            params = params_type()
        elif not isinstance(params, params_type):
            raise InvalidTopologyError(
                f"{kind.value} expects {params_type.__name__}, got {type(params).__name__}"
            )

        element = CircuitElement(
            id=self._next_element_id,
            kind=kind,
            start_vertex_id=start_vertex_id,
            end_vertex_id=end_vertex_id,
            params=params,
        )
        self._next_element_id += 1
        self.elements[element.id] = element
        self._notify('element_added', element_id=element.id)
        return element

    def add_wire(self, start_vertex_id: int, end_vertex_id: int, resistivity: Optional[float] = None) -> CircuitElement:
        params = WireParams() if resistivity is None else WireParams(resistivity)
        return self.add_element(ElementKind.WIRE, start_vertex_id, end_vertex_id, params)

    def add_resistor(
        self,
        start_vertex_id: int,
        end_vertex_id: int,
        resistance: Optional[float] = None,
        resistor_type: ResistorType = ResistorType.RESISTOR,
    ) -> CircuitElement:
        params = ResistorParams.of_type(resistor_type)
        if resistance is not None:
            params = dataclasses.replace(params, resistance=resistance)
        return self.add_element(ElementKind.RESISTOR, start_vertex_id, end_vertex_id, params)

    def add_battery(self, start_vertex_id: int, end_vertex_id: int, voltage: Optional[float] = None,
                    internal_resistance: float = 0.0) -> CircuitElement:
        params = BatteryParams(internal_resistance=internal_resistance)
        if voltage is not None:
            params = dataclasses.replace(params, voltage=voltage)
        return self.add_element(ElementKind.BATTERY, start_vertex_id, end_vertex_id, params)

    def add_ac_voltage(self, start_vertex_id: int, end_vertex_id: int, params: Optional[ACVoltageParams] = None) -> CircuitElement:
        return self.add_element(ElementKind.AC_VOLTAGE, start_vertex_id, end_vertex_id, params)

    def add_light_bulb(self, start_vertex_id: int, end_vertex_id: int, params: Optional[LightBulbParams] = None) -> CircuitElement:
        return self.add_element(ElementKind.LIGHT_BULB, start_vertex_id, end_vertex_id, params)

    def add_capacitor(self, start_vertex_id: int, end_vertex_id: int, capacitance: Optional[float] = None) -> CircuitElement:
        params = CapacitorParams() if capacitance is None else CapacitorParams(capacitance)
        return self.add_element(ElementKind.CAPACITOR, start_vertex_id, end_vertex_id, params)

    def add_inductor(self, start_vertex_id: int, end_vertex_id: int, inductance: Optional[float] = None) -> CircuitElement:
        params = InductorParams() if inductance is None else InductorParams(inductance)
        return self.add_element(ElementKind.INDUCTOR, start_vertex_id, end_vertex_id, params)

    def add_switch(self, start_vertex_id: int, end_vertex_id: int, closed: bool = False) -> CircuitElement:
        return self.add_element(ElementKind.SWITCH, start_vertex_id, end_vertex_id, SwitchParams(closed))

    def add_fuse(self, start_vertex_id: int, end_vertex_id: int, params: Optional[FuseParams] = None) -> CircuitElement:
        return self.add_element(ElementKind.FUSE, start_vertex_id, end_vertex_id, params)

    def add_series_ammeter(self, start_vertex_id: int, end_vertex_id: int) -> CircuitElement:
        return self.add_element(ElementKind.SERIES_AMMETER, start_vertex_id, end_vertex_id, SeriesAmmeterParams())

    def remove_element(self, element_id: int, remove_isolated: bool = True) -> None:
        """Delete an element, and by default any vertex it leaves isolated"""
        element = self.elements.pop(element_id, None)
        if element is None:
            raise InvalidTopologyError(f"Unknown element: {element_id}")
        self._notify('element_removed', element_id=element_id)

        if remove_isolated:
            for vertex_id in element.vertex_ids:
                if vertex_id in self.vertices and not self.neighbors_of(vertex_id):
                    self.remove_vertex(vertex_id)

    def _require_element(self, element_id: int, kind: Optional[ElementKind] = None) -> CircuitElement:
        element = self.elements.get(element_id)
        if element is None:
            raise InvalidTopologyError(f"Unknown element: {element_id}")
        if kind is not None and element.kind != kind:
            raise ValueError(f"Element {element_id} is a {element.kind.value}, not a {kind.value}")
        return element

    def update_params(self, element_id: int, **changes) -> CircuitElement:
        """Edit parameters of an element, e.g. update_params(3, resistance=20.0)"""
        element = self._require_element(element_id)
        element.params = dataclasses.replace(element.params, **changes)
        self._notify('parameter_changed', element_id=element_id, changes=changes)
        return element

    def set_switch(self, element_id: int, closed: bool) -> CircuitElement:
        self._require_element(element_id, ElementKind.SWITCH)
        return self.update_params(element_id, closed=closed)

    def reset_fuse(self, element_id: int) -> CircuitElement:
        """Repair a blown fuse"""
        element = self._require_element(element_id, ElementKind.FUSE)
        element.history = ElementHistory()
        self._notify('fuse_reset', element_id=element_id)
        return element

    def retune_ac_voltage(self, element_id: int, frequency: float, time: float) -> CircuitElement:
        """Change an AC source's frequency without a jump in its waveform at `time`"""
        element = self._require_element(element_id, ElementKind.AC_VOLTAGE)
        params = element.params
        phase = matched_phase(params.frequency, params.phase, frequency, time)
        return self.update_params(element_id, frequency=frequency, phase=phase)

    # -------------------------------------------------------------------------
    # Topology edits
    # -------------------------------------------------------------------------

    def connect(self, vertex_id: int, target_id: int) -> Vertex:
        """Merge vertex_id into target_id, moving its elements over

        Raises:
            InvalidTopologyError: if an element already joins both vertices,
                since it would end at the same vertex twice
        """
        self._require_vertex(vertex_id)
        target = self._require_vertex(target_id)
        if vertex_id == target_id:
            return target

        shared = [e.id for e in self.neighbors_of(vertex_id) if target_id in e.vertex_ids]
        if shared:
            raise InvalidTopologyError(
                f"Connecting vertex {vertex_id} to {target_id} would short element(s) onto one vertex",
                shared,
            )

        for element in self.neighbors_of(vertex_id):
            if element.start_vertex_id == vertex_id:
                element.start_vertex_id = target_id
            else:
                element.end_vertex_id = target_id
        del self.vertices[vertex_id]
        self._notify('vertices_connected', vertex_id=vertex_id, target_id=target_id)
        return target

    def cut_vertex(self, vertex_id: int) -> List[int]:
        """Split a vertex so each attached element gets its own vertex

        The first attached element keeps the original vertex.

        Returns:
            IDs of the vertices now at the cut point, original first
        """
        vertex = self._require_vertex(vertex_id)
        attached = self.neighbors_of(vertex_id)
        result = [vertex_id]
        for element in attached[1:]:
            new_vertex = Vertex(self._next_vertex_id, vertex.position)
            self._next_vertex_id += 1
            self.vertices[new_vertex.id] = new_vertex
            if element.start_vertex_id == vertex_id:
                element.start_vertex_id = new_vertex.id
            else:
                element.end_vertex_id = new_vertex.id
            result.append(new_vertex.id)
        if len(result) > 1:
            self._notify('vertex_cut', vertex_id=vertex_id, new_vertex_ids=result[1:])
        return result

    # -------------------------------------------------------------------------
    # Connectivity queries
    # -------------------------------------------------------------------------

    def neighbors_of(self, vertex_id: int) -> List[CircuitElement]:
        """Elements attached to a vertex, in element ID order"""
        return [e for e in self.elements.values() if vertex_id in e.vertex_ids]

    def neighbor_vertex_ids(self, vertex_id: int) -> List[int]:
        return sorted({e.opposite_vertex_id(vertex_id) for e in self.neighbors_of(vertex_id)})

    def _adjacency(self, elements: Iterable[CircuitElement]) -> Dict[int, Set[int]]:
        adjacency: Dict[int, Set[int]] = {vertex_id: set() for vertex_id in self.vertices}
        for element in elements:
            start, end = element.vertex_ids
            if start in adjacency and end in adjacency:
                adjacency[start].add(end)
                adjacency[end].add(start)
        return adjacency

    @staticmethod
    def _components(adjacency: Dict[int, Set[int]], skip: Optional[int] = None) -> List[Set[int]]:
        seen: Set[int] = set()
        components = []
        for root in sorted(adjacency):
            if root in seen or root == skip:
                continue
            component = {root}
            queue = deque([root])
            while queue:
                vertex_id = queue.popleft()
                for neighbor in adjacency[vertex_id]:
                    if neighbor not in component and neighbor != skip:
                        component.add(neighbor)
                        queue.append(neighbor)
            seen |= component
            components.append(component)
        return components

    def find_connected_components(self, conducting_only: bool = False) -> List[Set[int]]:
        """Partition vertices into connected components

        Args:
            conducting_only: Ignore elements that are currently open
                (open switches, tripped fuses), as the solver does

        Returns:
            Vertex-ID sets ordered by their smallest vertex ID; an isolated
            vertex is its own component
        """
        elements = self.elements.values()
        if conducting_only:
            elements = [e for e in elements if e.conducts]
        return self._components(self._adjacency(elements))

    def is_cut_vertex(self, vertex_id: int) -> bool:
        """True if removing the vertex disconnects its neighbours from each other"""
        self._require_vertex(vertex_id)
        neighbors = self.neighbor_vertex_ids(vertex_id)
        if len(neighbors) < 2:
            return False
        components = self._components(self._adjacency(self.elements.values()), skip=vertex_id)
        touched = {i for i, component in enumerate(components) if component & set(neighbors)}
        return len(touched) > 1

    def find_all_fixed_vertices(
        self,
        vertex_id: int,
        ok_to_visit: Optional[Callable[[Vertex], bool]] = None,
    ) -> Set[int]:
        """Vertices rigidly attached to vertex_id through fixed-length elements

        Wires stretch, so they do not propagate. Used by drag logic to move
        a rigid sub-circuit as one body.

        Args:
            vertex_id: Starting vertex (always included)
            ok_to_visit: Optional filter; vertices it rejects are not entered
        """
        self._require_vertex(vertex_id)
        fixed = {vertex_id}
        queue = deque([vertex_id])
        while queue:
            current = queue.popleft()
            for element in self.neighbors_of(current):
                if not element.is_fixed_length:
                    continue
                other = element.opposite_vertex_id(current)
                if other in fixed:
                    continue
                if ok_to_visit is not None and not ok_to_visit(self.vertices[other]):
                    continue
                fixed.add(other)
                queue.append(other)
        return fixed

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def invalid_element_ids(self) -> List[int]:
        """Elements breaking the graph invariants (missing or repeated vertex)"""
        invalid = []
        for element in self.elements.values():
            start, end = element.vertex_ids
            if start not in self.vertices or end not in self.vertices or start == end:
                invalid.append(element.id)
        return invalid

    def check_topology(self) -> None:
        """Raise InvalidTopologyError if any element breaks the graph invariants"""
        invalid = self.invalid_element_ids()
        if invalid:
            raise InvalidTopologyError(f"Invalid element(s): {invalid}", invalid)

    def reset_history(self) -> None:
        """Forget companion-model, bulb and fuse state on every element"""
        for element in self.elements.values():
            element.history = ElementHistory()
