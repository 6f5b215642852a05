"""
Cholesky-based orthonormalization of a block of column vectors.

Given V (n x k) with linearly independent columns, computes
    G = V^T V = L L^T
    U^T = L^{-1} V^T
so that U^T U = I and V = U L^T. Cheaper than a Householder QR for tall,
thin blocks, at the price of squaring the condition number of V.

This is the most frequently executed kernel of LOBPCG: once for the initial
guess and once or twice per iteration.
"""

from typing import Any

import numpy as np
from numpy.typing import NDArray

from pylobpcg.core.compute.linalg import cholesky_lower, solve_lower


def orthonormalize(
    block: NDArray[np.floating[Any]],
    name: str = 'block',
) -> tuple[NDArray[np.floating[Any]], NDArray[np.floating[Any]]]:
    """
    Orthonormalize the columns of a block.

    Args:
        block: V, shape (n, k)
        name: Block name used in error messages

    Returns:
        (U, L): U with orthonormal columns, shape (n, k), and the
        lower-triangular Cholesky factor L of V^T V, shape (k, k).
        V = U @ L.T, i.e. L.T is the R factor of a QR decomposition.

    Raises:
        NotPositiveDefiniteError: If the columns of V are linearly dependent
            within working precision
    """
    gram = block.T @ block
    L = cholesky_lower(gram, matrix_name=f'{name}^T {name}')
    U = solve_lower(L, block.T).T
    return U, L
