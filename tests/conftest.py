"""Pytest configuration for JAX-CCK tests

Handles platform-specific JAX configuration:
- macOS: Forces CPU backend since Metal doesn't support triangular_solve
- Everywhere: float64, which the solver needs for ideal wires

Uses pytest_configure hook to ensure backend setup happens before any test imports.
"""

import os
import sys

import pytest


def pytest_configure(config):
    """
    Pytest hook that runs before test collection.

    This ensures JAX is configured BEFORE any test modules are imported.
    """
    if sys.platform == 'darwin':
        # macOS: Force CPU backend - Metal doesn't support triangular_solve
        os.environ['JAX_PLATFORMS'] = 'cpu'

    # Import JAX and configure it
    import jax

    # Enable float64 for numerical precision in tests
    jax.config.update('jax_enable_x64', True)


@pytest.fixture
def circuit():
    from jax_cck.circuit import Circuit
    return Circuit()


@pytest.fixture
def series_circuit(circuit):
    """9 V battery driving 10 ohm and 20 ohm resistors in series

    Returns:
        Tuple of (circuit, battery, r10, r20)
    """
    v0, v1, v2 = (circuit.add_vertex((x, 0.0)) for x in (0.0, 100.0, 200.0))
    battery = circuit.add_battery(v0.id, v1.id, voltage=9.0)
    r10 = circuit.add_resistor(v1.id, v2.id, resistance=10.0)
    r20 = circuit.add_resistor(v2.id, v0.id, resistance=20.0)
    return circuit, battery, r10, r20
