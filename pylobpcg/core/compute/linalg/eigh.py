"""
Sorted symmetric eigendecomposition.

Solves the standard (A v = lambda v) or generalized (A v = lambda B v)
symmetric eigenproblem with LAPACK (via SciPy), then keeps the `size`
extremal eigenpairs in the requested order.
"""

from typing import Any, Literal

import numpy as np
from numpy.typing import NDArray
from scipy.linalg import LinAlgError, eigh

from pylobpcg.core.exceptions import EigendecompositionError

Order = Literal['largest', 'smallest']


def sorted_eigh(
    a: NDArray[np.floating[Any]],
    b: NDArray[np.floating[Any]] | None,
    size: int,
    order: Order,
) -> tuple[NDArray[np.floating[Any]], NDArray[np.floating[Any]]]:
    """
    Eigendecomposition truncated to `size` extremal pairs.

    Args:
        a: Symmetric matrix (m x m)
        b: Symmetric positive definite mass matrix (m x m), or None
        size: Number of eigenpairs to keep (size <= m)
        order: 'largest' returns eigenvalues in descending order,
               'smallest' in ascending order

    Returns:
        (eigenvalues, eigenvectors) with shapes (size,) and (m, size).
        Ties keep LAPACK's ordering.

    Raises:
        EigendecompositionError: If LAPACK fails or b is not positive definite
    """
    m = a.shape[0]
    try:
        vals, vecs = eigh(a, b)
    except (LinAlgError, ValueError) as e:
        raise EigendecompositionError(
            f"{'Generalized' if b is not None else 'Standard'} symmetric "
            f"eigenproblem of size {m} failed: {e}",
            basis_size=m,
            generalized=b is not None,
        ) from e

    if order == 'largest':
        return vals[m - size:][::-1], vecs[:, m - size:][:, ::-1]
    return vals[:size], vecs[:, :size]
