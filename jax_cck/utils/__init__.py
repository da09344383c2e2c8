"""JAX-CCK utilities."""

from jax_cck.utils.readouts import decimal_places, format_current, format_voltage

__all__ = [
    # Readouts
    'decimal_places',
    'format_current',
    'format_voltage',
]
