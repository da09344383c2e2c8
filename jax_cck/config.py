"""Default configuration values for JAX-CCK simulations.

This module centralizes configuration constants used throughout the solver.
"""

# Solver-safe parameter bounds, applied before stamping
MIN_RESISTANCE = 1e-8  # Ohms, floor for ideal wires and closed switches
MAX_RESISTANCE = 1e9  # Ohms, used for insulators
MIN_CAPACITANCE = 1e-12  # Farads
MIN_INDUCTANCE = 1e-9  # Henries

# Linear solve
SINGULAR_PIVOT_TOLERANCE = 1e-12
ZERO_EPSILON = 1e-11  # Solved values below this are reported as exactly 0
DEFAULT_GMIN = 1e-9  # Node-to-reference conductance for singular recovery
DEFAULT_RMIN = 1e-6  # Series resistance added to sources for singular recovery
MAX_RECOVERED_VOLTAGE = 1e6  # Volts, a regularized solve above this is treated as singular

# Non-linear iteration (real light bulbs)
DEFAULT_MAX_ITERATIONS = 100
DEFAULT_ABSTOL = 1e-9  # Amps
DEFAULT_RELTOL = 1e-6
DEFAULT_DAMPING = 1.0

# Time stepping (seconds)
MAX_DT = 0.1  # Larger frame times are clamped to this
PAUSE_THRESHOLD = 1.0  # Larger frame times are treated as a pause and skipped

# Element defaults
DEFAULT_WIRE_RESISTIVITY = 1e-10  # Ohms per unit of vertex distance
DEFAULT_RESISTANCE = 10.0
DEFAULT_BATTERY_VOLTAGE = 9.0
HIGH_VOLTAGE_BATTERY_VOLTAGE = 10000.0
DEFAULT_AC_FREQUENCY = 0.5  # Hz
DEFAULT_BULB_RESISTANCE = 10.0
HIGH_RESISTANCE_BULB_RESISTANCE = 1000.0
DEFAULT_CAPACITANCE = 0.1
DEFAULT_INDUCTANCE = 5.0
DEFAULT_FUSE_RATING = 4.0  # Amps
DEFAULT_FUSE_RESISTANCE = 0.005
DEFAULT_FUSE_TRIP_DELAY = 0.1  # Seconds over rating before the fuse opens

# Flammable elements catch fire above this current (Amps)
FIRE_CURRENT_THRESHOLD = 15.0
