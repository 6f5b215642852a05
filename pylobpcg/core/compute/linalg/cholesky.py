"""
Cholesky factorization and triangular solves.

Thin wrappers over LAPACK (via SciPy) that translate factorization failures
into NotPositiveDefiniteError. Used by the orthonormalizer on every LOBPCG
iteration and by the constraint projector once per solve.
"""

from dataclasses import dataclass
from typing import Any

import numpy as np
from numpy.typing import NDArray
from scipy.linalg import LinAlgError, cho_factor, cho_solve, cholesky, solve_triangular

from pylobpcg.core.exceptions import NotPositiveDefiniteError


@dataclass(frozen=True, eq=False)
class CholeskyFactor:
    """
    Cached Cholesky factorization of a symmetric positive definite matrix.

    Attributes:
        factor: Packed factor as returned by scipy.linalg.cho_factor
        lower: Whether the lower triangle holds the factor
    """
    factor: NDArray[np.floating[Any]]
    lower: bool

    def solve(self, rhs: NDArray[np.floating[Any]]) -> NDArray[np.floating[Any]]:
        """Solve G @ Z = rhs for Z, where G is the factorized matrix."""
        return cho_solve((self.factor, self.lower), rhs, check_finite=False)


def cholesky_lower(
    gram: NDArray[np.floating[Any]],
    matrix_name: str = 'gram',
) -> NDArray[np.floating[Any]]:
    """
    Lower-triangular Cholesky factor L with gram = L @ L.T.

    Args:
        gram: Symmetric positive definite matrix (k x k)
        matrix_name: Name used in error messages

    Returns:
        L, lower triangular (k x k)

    Raises:
        NotPositiveDefiniteError: If gram is not positive definite or
            contains non-finite values
    """
    try:
        return cholesky(gram, lower=True)
    except (LinAlgError, ValueError) as e:
        raise NotPositiveDefiniteError(
            f"Cholesky factorization of {matrix_name} failed "
            f"(size {gram.shape[0]}): {e}",
            matrix_name=matrix_name,
            block_size=gram.shape[0],
        ) from e


def factorize(
    gram: NDArray[np.floating[Any]],
    matrix_name: str = 'gram',
) -> CholeskyFactor:
    """
    Factorize a symmetric positive definite matrix for repeated solves.

    Args:
        gram: Symmetric positive definite matrix (c x c)
        matrix_name: Name used in error messages

    Returns:
        CholeskyFactor

    Raises:
        NotPositiveDefiniteError: If gram is not positive definite
    """
    try:
        factor, lower = cho_factor(gram, lower=True)
    except (LinAlgError, ValueError) as e:
        raise NotPositiveDefiniteError(
            f"Cholesky factorization of {matrix_name} failed "
            f"(size {gram.shape[0]}): {e}",
            matrix_name=matrix_name,
            block_size=gram.shape[0],
        ) from e
    return CholeskyFactor(factor=factor, lower=lower)


def solve_lower(
    L: NDArray[np.floating[Any]],
    rhs: NDArray[np.floating[Any]],
) -> NDArray[np.floating[Any]]:
    """
    Forward substitution: solve L @ Z = rhs for lower-triangular L.

    Args:
        L: Lower-triangular matrix (k x k) with non-zero diagonal
        rhs: Right-hand side (k x m)

    Returns:
        Z (k x m)

    Raises:
        NotPositiveDefiniteError: If L is singular
    """
    try:
        return solve_triangular(L, rhs, lower=True, check_finite=False)
    except LinAlgError as e:
        raise NotPositiveDefiniteError(
            f"Triangular solve failed: {e}",
            matrix_name='cholesky factor',
            block_size=L.shape[0],
        ) from e
