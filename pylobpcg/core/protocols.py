"""
Core protocols for pylobpcg.

These define structural interfaces that operator implementations must satisfy.
We use Protocol (structural typing) rather than ABC (nominal typing) so that
any object with the right method can be handed to the solvers, including
user classes that know nothing about this library.

Design Principles:
    - Minimal contracts: a single apply() method
    - Blocks in, blocks out: operators act on (n, k) arrays, never vectors
    - Operators are immutable for the duration of a solve
"""

from typing import Protocol, Any, runtime_checkable

import numpy as np
from numpy.typing import NDArray


@runtime_checkable
class LinearOperator(Protocol):
    """
    Minimal protocol for the symmetric operator of an eigenproblem.

    The operator maps an (n, k) block of column vectors to an (n, k) block,
    i.e. computes A @ block. It may be the target matrix itself or a derived
    operator such as the normal-equations product A^T A.

    Implementations must not modify the input block and must return a new
    array of the same shape.
    """

    def apply(self, block: NDArray[np.floating[Any]]) -> NDArray[np.floating[Any]]:
        """
        Apply the operator to every column of block.

        Args:
            block: Array of shape (n, k)

        Returns:
            Array of shape (n, k)
        """
        ...


@runtime_checkable
class Preconditioner(Protocol):
    """
    Protocol for a preconditioner approximating the inverse of the operator.

    Shares the LinearOperator contract. The identity preconditioner is the
    default so solvers never have to branch on its absence.
    """

    def apply(self, block: NDArray[np.floating[Any]]) -> NDArray[np.floating[Any]]:
        """
        Apply the preconditioner to every column of block.

        Args:
            block: Array of shape (n, k)

        Returns:
            Array of shape (n, k)
        """
        ...
