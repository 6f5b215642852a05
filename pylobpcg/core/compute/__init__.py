"""
Shared compute infrastructure for pylobpcg.

This module provides timing utilities, precision constants and the dense
linear algebra kernels that the iterative solvers are built on.

IMPORTANT: This is NOT where the eigensolvers live. Those go in
pylobpcg/lobpcg, pylobpcg/eig and pylobpcg/svd. This module contains shared
NUMERIC infrastructure.

Submodules:
    timing: Execution timing utilities
    tolerances: Precision tiers and named numeric constants
    linalg: Dense Cholesky, triangular solve and symmetric eigensolver
"""

from pylobpcg.core.compute.timing import Timer
from pylobpcg.core.compute.tolerances import (
    FP32,
    FP64,
    PrecisionTier,
    select_precision,
)

__all__ = [
    # Timing
    "Timer",
    # Precision
    "FP32",
    "FP64",
    "PrecisionTier",
    "select_precision",
]
