"""
Truncated singular value decomposition.

Public API:
    TruncatedSvd(A, ...).decompose(k) -> TruncatedSvdResult
"""

from pylobpcg.svd.solvers import NormalOperator, TruncatedSvd, TruncatedSvdResult

__all__ = [
    "TruncatedSvd",
    "TruncatedSvdResult",
    "NormalOperator",
]
