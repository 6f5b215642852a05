"""
PyLobpcg: block eigensolvers for large symmetric problems.

Computes a few extremal eigenpairs of a symmetric operator with LOBPCG,
and builds truncated eigen- and singular value decompositions on top.

Submodules:
    lobpcg: The LOBPCG driver and its building blocks
    eig: Truncated eigendecomposition and deflating iteration
    svd: Truncated singular value decomposition
"""

__version__ = "0.1.0"

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
from pylobpcg.lobpcg.driver import LobpcgDriver
from pylobpcg.lobpcg.solution import (
    LobpcgResult,
    LobpcgOk,
    LobpcgErr,
    LobpcgNoResult,
)
from pylobpcg.lobpcg.solvers import lobpcg
from pylobpcg.eig import TruncatedEig, TruncatedEigIterator
from pylobpcg.svd import TruncatedSvd, TruncatedSvdResult

__all__ = [
    "__version__",
    # Solvers
    "lobpcg",
    "LobpcgDriver",
    "TruncatedEig",
    "TruncatedEigIterator",
    "TruncatedSvd",
    "TruncatedSvdResult",
    # Results
    "LobpcgResult",
    "LobpcgOk",
    "LobpcgErr",
    "LobpcgNoResult",
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
