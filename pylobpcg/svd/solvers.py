"""
Truncated singular value decomposition.

The singular values of A are the square roots of the eigenvalues of A^T A
(or A A^T). LOBPCG is run on whichever of the two is smaller, and the
singular vectors of the other side are reconstructed from the operator.

Public API:
    TruncatedSvd(A, ...).decompose(k) -> TruncatedSvdResult
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

import numpy as np
from numpy.typing import NDArray

from pylobpcg.core.compute.linalg import Order
from pylobpcg.core.compute.tolerances import DEFAULT_PRECISION, select_precision
from pylobpcg.core.exceptions import ConfigurationError
from pylobpcg.core.validation import (
    check_2d,
    check_array,
    check_choice,
    check_finite,
    check_max_iter,
    check_tolerance,
)
from pylobpcg.lobpcg.solution import LobpcgResult
from pylobpcg.lobpcg.solvers import lobpcg


@dataclass(frozen=True, eq=False)
class NormalOperator:
    """
    Normal-equations operator of a rectangular matrix.

    Applies A^T A if ``transpose_first`` is True and A A^T otherwise,
    without forming the product.
    """
    matrix: NDArray[np.floating[Any]]
    transpose_first: bool

    @property
    def shape(self) -> tuple[int, int]:
        rows, cols = self.matrix.shape
        dim = cols if self.transpose_first else rows
        return (dim, dim)

    def apply(self, block: NDArray[np.floating[Any]]) -> NDArray[np.floating[Any]]:
        if self.transpose_first:
            return self.matrix.T @ (self.matrix @ block)
        return self.matrix @ (self.matrix.T @ block)


@dataclass(frozen=True, eq=False)
class TruncatedSvdResult:
    """
    Eigenpairs of the normal operator together with the source matrix.

    Attributes:
        eigenvalues: Eigenvalues of A^T A or A A^T, in solver order
        eigenvectors: Matching eigenvectors as columns
        problem: The decomposed matrix A
        transpose_first: True if the eigenvectors are right singular vectors
            (A^T A was decomposed), False if they are left ones
        result: The underlying LOBPCG result, for diagnostics
    """
    eigenvalues: NDArray[np.floating[Any]]
    eigenvectors: NDArray[np.floating[Any]]
    problem: NDArray[np.floating[Any]]
    transpose_first: bool
    result: LobpcgResult

    @property
    def error(self) -> Exception | None:
        """Error that stopped the eigensolver early, if any."""
        return self.result.error

    @property
    def converged(self) -> bool:
        return self.result.converged

    def _retained(self) -> tuple[NDArray[np.floating[Any]], NDArray[np.intp]]:
        """
        Singular values above the magnitude cut-off and their column indices.

        Eigenvalues are sorted descending; those not strictly above
        eps * correction * max_eigenvalue are treated as zero and dropped.
        """
        vals = self.eigenvalues
        if vals.size == 0:
            return np.sqrt(vals), np.arange(0, dtype=np.intp)

        order = np.argsort(-vals, kind='stable')
        tier = select_precision(vals.dtype)
        cutoff = tier.eps * tier.magnitude_correction * vals[order[0]]

        keep = order[vals[order] > cutoff]
        return np.sqrt(vals[keep]), keep

    def values(self) -> NDArray[np.floating[Any]]:
        """
        Singular values in descending order.

        Values indistinguishable from zero at the working precision are
        omitted, so fewer than k values may be returned.
        """
        sigma, _ = self._retained()
        return sigma

    def values_vectors(self) -> tuple[
        NDArray[np.floating[Any]],
        NDArray[np.floating[Any]],
        NDArray[np.floating[Any]],
    ]:
        """
        Return (U, sigma, Vt) with A ~= U @ diag(sigma) @ Vt.

        U has shape (rows, r), Vt has shape (r, cols), where r is the number
        of retained singular values.
        """
        sigma, keep = self._retained()
        vecs = self.eigenvectors[:, keep]

        if self.transpose_first:
            v = vecs
            u = (self.problem @ v) / sigma[np.newaxis, :]
        else:
            u = vecs
            v = (self.problem.T @ u) / sigma[np.newaxis, :]

        return u, sigma, v.T


@dataclass(frozen=True, eq=False)
class TruncatedSvd:
    """
    Truncated singular value decomposition.

    Computes the k largest (or smallest) singular values of a matrix with
    LOBPCG on the normal equations.

    Parameters
    ----------
    problem : array-like of shape (rows, cols)
        Matrix to decompose.
    order : str
        'largest' (default) or 'smallest'.
    precision : float
        Target accuracy of the singular values. The eigensolver runs with
        tolerance precision ** 2.
    maxiter : int or None
        Iteration budget. If None, uses 2 * rows.
    seed : int, numpy.random.Generator or None
        Random source for the initial block.

    Examples
    --------
    >>> import numpy as np
    >>> from pylobpcg import TruncatedSvd
    >>> A = np.array([[3., 2., 2.], [2., 3., -2.]])
    >>> result = TruncatedSvd(A, 'largest').decompose(2)
    >>> np.round(result.values(), 6)
    array([5., 3.])
    """
    problem: Any
    order: Order = 'largest'
    precision: float = DEFAULT_PRECISION
    maxiter: int | None = None
    seed: int | np.random.Generator | None = None

    def __post_init__(self):
        matrix = check_array(self.problem, 'problem')
        check_2d(matrix, 'problem')
        check_finite(matrix, 'problem')
        object.__setattr__(self, 'problem', matrix)

        check_choice(self.order, ('largest', 'smallest'), 'order')
        check_tolerance(self.precision, 'precision')
        if self.maxiter is not None:
            check_max_iter(self.maxiter, 'maxiter')

    def with_precision(self, precision: float) -> TruncatedSvd:
        """Set the target accuracy of the singular values."""
        return replace(self, precision=precision)

    def with_maxiter(self, maxiter: int) -> TruncatedSvd:
        return replace(self, maxiter=maxiter)

    def with_seed(self, seed: int | np.random.Generator | None) -> TruncatedSvd:
        return replace(self, seed=seed)

    def decompose(
        self,
        num: int,
        *,
        rng: int | np.random.Generator | None = None,
    ) -> TruncatedSvdResult:
        """
        Compute num singular triplets.

        Parameters
        ----------
        num : int
            Number of singular values requested; at most min(rows, cols).
        rng : int, numpy.random.Generator or None
            Random source for the initial block. Overrides the configured seed.

        Returns
        -------
        TruncatedSvdResult
            If the eigensolver stopped on a numerical error, the best iterate
            is kept and the error is available as ``result.error``.

        Raises
        ------
        ConfigurationError
            If num < 1 or num exceeds min(rows, cols).
        NumericalError
            If the eigensolver produced no usable iterate.
        """
        if num < 1:
            raise ConfigurationError(
                f"num must be >= 1, got {num}",
                parameter='num',
                value=num,
            )

        matrix = self.problem
        rows, cols = matrix.shape
        operator = NormalOperator(matrix, transpose_first=rows > cols)
        dim = operator.shape[0]

        generator = np.random.default_rng(self.seed if rng is None else rng)
        x = generator.standard_normal((dim, num)).astype(matrix.dtype, copy=False)

        max_iter = self.maxiter if self.maxiter is not None else 2 * rows
        result = lobpcg(
            operator,
            x,
            tol=self.precision ** 2,
            max_iter=max_iter,
            order=self.order,
        )
        if not result.has_result:
            raise result.error

        return TruncatedSvdResult(
            eigenvalues=result.eigenvalues,
            eigenvectors=result.eigenvectors,
            problem=matrix,
            transpose_first=operator.transpose_first,
            result=result,
        )
