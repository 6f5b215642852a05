"""
Dense linear algebra kernels for pylobpcg.

These are the small dense factorizations LOBPCG performs every iteration on
k x k (or 3k x 3k) Gram matrices.

All functions follow these conventions:
    - Use SciPy (LAPACK under the hood)
    - LAPACK failures are raised immediately as NumericalError subclasses
      with clear messages

Submodules:
    cholesky: Cholesky factorization, cached factor, forward substitution
    eigh: Sorted standard/generalized symmetric eigendecomposition
"""

from pylobpcg.core.compute.linalg.cholesky import (
    CholeskyFactor,
    cholesky_lower,
    factorize,
    solve_lower,
)
from pylobpcg.core.compute.linalg.eigh import Order, sorted_eigh

__all__ = [
    # Cholesky
    "CholeskyFactor",
    "cholesky_lower",
    "factorize",
    "solve_lower",
    # Symmetric eigendecomposition
    "Order",
    "sorted_eigh",
]
