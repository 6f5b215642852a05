"""
Core infrastructure for pylobpcg.

This module provides shared abstractions, utilities, and dense linear algebra
infrastructure used by the solver subpackages (lobpcg, eig, svd).

Key components:
    protocols: LinearOperator, Preconditioner protocols
    result: Generic Result[P] envelope
    exceptions: Exception hierarchy
    validation: Input validators
    compute: Timing, precision constants, dense linear algebra primitives
"""

from pylobpcg.core.protocols import LinearOperator, Preconditioner
from pylobpcg.core.result import Result
from pylobpcg.core.exceptions import (
    PyLobpcgError,
    ValidationError,
    DimensionError,
    ConfigurationError,
    NumericalError,
    NotPositiveDefiniteError,
    EigendecompositionError,
    ConvergenceError,
)

__all__ = [
    # Protocols
    "LinearOperator",
    "Preconditioner",
    # Result
    "Result",
    # Exceptions
    "PyLobpcgError",
    "ValidationError",
    "DimensionError",
    "ConfigurationError",
    "NumericalError",
    "NotPositiveDefiniteError",
    "EigendecompositionError",
    "ConvergenceError",
]
