"""
Locally Optimal Block Preconditioned Conjugate Gradient (LOBPCG).

Public API:
    lobpcg(A, X, ...) -> LobpcgResult
    LobpcgDriver: step-wise access to the iteration
"""

from pylobpcg.lobpcg.driver import LobpcgDriver
from pylobpcg.lobpcg.operators import (
    CallableOperator,
    ConstraintSet,
    IdentityPreconditioner,
    MatrixOperator,
    NoConstraints,
    as_constraints,
    as_operator,
    as_preconditioner,
)
from pylobpcg.lobpcg.orthonormalize import orthonormalize
from pylobpcg.lobpcg.ritz import RitzSolver
from pylobpcg.lobpcg.solution import (
    LobpcgErr,
    LobpcgNoResult,
    LobpcgOk,
    LobpcgParams,
    LobpcgResult,
)
from pylobpcg.lobpcg.solvers import lobpcg
from pylobpcg.lobpcg.state import BestResult, Continue, Done, IterationState

__all__ = [
    "lobpcg",
    "LobpcgDriver",
    # Results
    "LobpcgResult",
    "LobpcgOk",
    "LobpcgErr",
    "LobpcgNoResult",
    "LobpcgParams",
    # State
    "IterationState",
    "BestResult",
    "Continue",
    "Done",
    # Building blocks
    "orthonormalize",
    "RitzSolver",
    "MatrixOperator",
    "CallableOperator",
    "IdentityPreconditioner",
    "ConstraintSet",
    "NoConstraints",
    "as_operator",
    "as_preconditioner",
    "as_constraints",
]
