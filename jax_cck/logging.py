"""Package logger for JAX-CCK.

The solver runs once per animation frame, so the "jax_cck" logger only
reports warnings by default: non-convergence, singular islands and ignored
elements. Per-island and per-iteration detail is logged at DEBUG; raise the
level on the logger to see it:

    import logging
    from jax_cck.logging import logger

    logger.setLevel(logging.DEBUG)
"""

import logging
import sys

logger = logging.getLogger("jax_cck")
logger.setLevel(logging.WARNING)

if not logger.handlers:
    _handler = logging.StreamHandler(sys.stdout)
    _handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(_handler)
