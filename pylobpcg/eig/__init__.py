"""
Truncated symmetric eigendecomposition.

Public API:
    TruncatedEig: configurable k-eigenpair solver
    TruncatedEigIterator: deflating iterator over eigenpair batches
"""

from pylobpcg.eig.solvers import TruncatedEig, TruncatedEigIterator

__all__ = [
    "TruncatedEig",
    "TruncatedEigIterator",
]
