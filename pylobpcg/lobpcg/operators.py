"""
Operator adapters, preconditioners and constraint sets.

The driver never branches on optional inputs: a missing preconditioner is the
identity and missing constraints are a no-op projector.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

import numpy as np
from numpy.typing import NDArray

from pylobpcg.core.compute.linalg import CholeskyFactor, factorize
from pylobpcg.core.exceptions import ValidationError
from pylobpcg.core.protocols import LinearOperator, Preconditioner
from pylobpcg.core.validation import (
    check_2d,
    check_array,
    check_finite,
    check_square,
)


@dataclass(frozen=True, eq=False)
class MatrixOperator:
    """Dense symmetric matrix acting on blocks by left multiplication."""
    matrix: NDArray[np.floating[Any]]

    @property
    def shape(self) -> tuple[int, int]:
        return self.matrix.shape

    def apply(self, block: NDArray[np.floating[Any]]) -> NDArray[np.floating[Any]]:
        return self.matrix @ block


@dataclass(frozen=True)
class CallableOperator:
    """Adapter turning a function ``block -> block`` into a LinearOperator."""
    func: Callable[[NDArray[np.floating[Any]]], NDArray[np.floating[Any]]]

    def apply(self, block: NDArray[np.floating[Any]]) -> NDArray[np.floating[Any]]:
        return np.asarray(self.func(block))


class IdentityPreconditioner:
    """Preconditioner that returns its input unchanged."""

    def apply(self, block: NDArray[np.floating[Any]]) -> NDArray[np.floating[Any]]:
        return block

    def __repr__(self) -> str:
        return "IdentityPreconditioner()"


def as_operator(obj: Any, name: str = 'A') -> LinearOperator:
    """
    Coerce a matrix, callable or operator object into a LinearOperator.

    Args:
        obj: Square ndarray (or array-like), object with an apply() method,
             or callable mapping an (n, k) block to an (n, k) block
        name: Parameter name for error messages

    Returns:
        LinearOperator

    Raises:
        ValidationError: If obj is none of the accepted forms
        DimensionError: If a matrix is not square
    """
    if isinstance(obj, LinearOperator):
        return obj
    if callable(obj):
        return CallableOperator(obj)
    if obj is None:
        raise ValidationError(f"{name}: an operator is required")
    matrix = check_array(obj, name)
    check_square(matrix, name)
    check_finite(matrix, name)
    return MatrixOperator(matrix)


def as_preconditioner(obj: Any) -> Preconditioner:
    """
    Coerce None, a matrix, a callable or an operator object into a Preconditioner.

    None becomes the identity.
    """
    if obj is None:
        return IdentityPreconditioner()
    return as_operator(obj, name='M')


def operator_dimension(operator: LinearOperator) -> int | None:
    """Problem dimension of an operator, or None if it does not expose a shape."""
    shape = getattr(operator, 'shape', None)
    if shape is None:
        return None
    return int(shape[0])


# ---------------------------------------------------------------------------
# Constraints
# ---------------------------------------------------------------------------

class NoConstraints:
    """Null constraint set: projection is the identity."""

    count = 0
    block = None

    def project(self, block: NDArray[np.floating[Any]]) -> NDArray[np.floating[Any]]:
        return block

    def __repr__(self) -> str:
        return "NoConstraints()"


class ConstraintSet:
    """
    Fixed block Y of directions the solution must stay orthogonal to.

    The Cholesky factorization of Y^T Y is computed once at construction and
    reused for every projection of the run.

    Parameters
    ----------
    block : ndarray, shape (n, c)
        Full column rank constraint block. Read-only to the solver.

    Raises
    ------
    NotPositiveDefiniteError
        If Y does not have full column rank.
    """

    def __init__(self, block: NDArray[np.floating[Any]]):
        self._block = block
        self._gram_factor: CholeskyFactor = factorize(
            block.T @ block, matrix_name='Y^T Y'
        )

    @property
    def block(self) -> NDArray[np.floating[Any]]:
        return self._block

    @property
    def count(self) -> int:
        return self._block.shape[1]

    def project(self, block: NDArray[np.floating[Any]]) -> NDArray[np.floating[Any]]:
        """
        Remove the component of every column along the column space of Y.

        Computes V - Y (Y^T Y)^{-1} Y^T V and returns a new array.
        """
        coeffs = self._gram_factor.solve(self._block.T @ block)
        return block - self._block @ coeffs

    def __repr__(self) -> str:
        n, c = self._block.shape
        return f"ConstraintSet(n={n}, c={c})"


def as_constraints(obj: Any) -> ConstraintSet | NoConstraints:
    """
    Build the constraint set for a solve.

    Args:
        obj: None, an existing constraint set, or an (n, c) array-like

    Returns:
        ConstraintSet, or NoConstraints when obj is None or has no columns

    Raises:
        ValidationError: If the block is not a finite 2D real array
        NotPositiveDefiniteError: If the block is rank deficient
    """
    if obj is None:
        return NoConstraints()
    if isinstance(obj, (ConstraintSet, NoConstraints)):
        return obj
    block = check_array(obj, 'Y')
    check_2d(block, 'Y')
    check_finite(block, 'Y')
    if block.shape[1] == 0:
        return NoConstraints()
    return ConstraintSet(block)
