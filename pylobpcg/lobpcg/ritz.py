"""
Rayleigh-Ritz procedure over the LOBPCG trial basis.

The trial basis is the concatenation [X, R] or [X, R, P] of the current
approximation X (k columns), the orthonormalized active residuals R and the
orthonormalized active conjugate directions P. The projected problem

    gram_A v = lambda gram_B v,   gram_A = S^T A S,   gram_B = S^T S

is small (at most 3k x 3k) and solved densely.

Two regimes assemble the Gram matrices:
    explicit: every block product is computed, diagonal blocks symmetrized
    implicit: X^T A X is replaced by diag(lambda), X^T X, R^T R and P^T P
              by identities and X^T R by zero, relying on the blocks being
              orthonormal and R orthogonal to X
"""

from typing import Any

import numpy as np
from numpy.typing import NDArray

from pylobpcg.core.compute.linalg import Order, sorted_eigh


def _sym(a: NDArray[np.floating[Any]]) -> NDArray[np.floating[Any]]:
    return (a + a.T) / 2


class RitzSolver:
    """
    Solves the projected eigenproblem and returns Ritz values and coefficients.

    Parameters
    ----------
    size : int
        Number of Ritz pairs to keep (the block size k).
    order : {'largest', 'smallest'}
        Which end of the spectrum to keep. Ties follow LAPACK's ordering.
    """

    def __init__(self, size: int, order: Order):
        self.size = size
        self.order = order

    def seed(
        self,
        x: NDArray[np.floating[Any]],
        ax: NDArray[np.floating[Any]],
    ) -> tuple[NDArray[np.floating[Any]], NDArray[np.floating[Any]]]:
        """
        Rayleigh-Ritz over the orthonormal block X alone.

        Returns:
            (eigenvalues, coefficients) with coefficients of shape (k, k),
            used to rotate X and AX into the Ritz basis.

        Raises:
            EigendecompositionError
        """
        return sorted_eigh(_sym(x.T @ ax), None, self.size, self.order)

    def solve(
        self,
        x: NDArray[np.floating[Any]],
        ax: NDArray[np.floating[Any]],
        eigenvalues: NDArray[np.floating[Any]],
        r: NDArray[np.floating[Any]],
        ar: NDArray[np.floating[Any]],
        p: NDArray[np.floating[Any]] | None = None,
        ap: NDArray[np.floating[Any]] | None = None,
        explicit: bool = True,
    ) -> tuple[NDArray[np.floating[Any]], NDArray[np.floating[Any]]]:
        """
        Rayleigh-Ritz over span{X, R} or span{X, R, P}.

        Args:
            x, ax: Current approximation and its image, shape (n, k)
            eigenvalues: Current Ritz values, used on the diagonal in the
                implicit regime
            r, ar: Orthonormal active residuals and their image, shape (n, a)
            p, ap: Orthonormal active directions and their image, shape (n, b),
                or None for the two-block basis
            explicit: Gram assembly regime

        Returns:
            (eigenvalues, coefficients) where coefficients has shape
            (k + a [+ b], k); rows are grouped by basis block in the order
            X, R, P.

        Raises:
            EigendecompositionError: If the projected problem cannot be solved
        """
        gram_a, gram_b = self.gram_matrices(x, ax, eigenvalues, r, ar, p, ap, explicit)
        return sorted_eigh(gram_a, gram_b, self.size, self.order)

    def gram_matrices(
        self,
        x: NDArray[np.floating[Any]],
        ax: NDArray[np.floating[Any]],
        eigenvalues: NDArray[np.floating[Any]],
        r: NDArray[np.floating[Any]],
        ar: NDArray[np.floating[Any]],
        p: NDArray[np.floating[Any]] | None = None,
        ap: NDArray[np.floating[Any]] | None = None,
        explicit: bool = True,
    ) -> tuple[NDArray[np.floating[Any]], NDArray[np.floating[Any]]]:
        """Assemble the stiffness and mass matrices of the trial basis."""
        k = x.shape[1]
        a = r.shape[1]

        xar = x.T @ ar
        rar = _sym(r.T @ ar)

        if explicit:
            xax = _sym(x.T @ ax)
            xx = x.T @ x
            rr = r.T @ r
            xr = x.T @ r
        else:
            xax = np.diag(eigenvalues)
            xx = np.eye(k, dtype=x.dtype)
            rr = np.eye(a, dtype=x.dtype)
            xr = np.zeros((k, a), dtype=x.dtype)

        if p is None:
            gram_a = np.block([
                [xax, xar],
                [xar.T, rar],
            ])
            gram_b = np.block([
                [xx, xr],
                [xr.T, rr],
            ])
            return gram_a, gram_b

        xap = x.T @ ap
        rap = r.T @ ap
        xp = x.T @ p
        rp = r.T @ p
        if explicit:
            pap = _sym(p.T @ ap)
            pp = p.T @ p
        else:
            pap = p.T @ ap
            pp = np.eye(p.shape[1], dtype=x.dtype)

        gram_a = np.block([
            [xax, xar, xap],
            [xar.T, rar, rap],
            [xap.T, rap.T, pap],
        ])
        gram_b = np.block([
            [xx, xr, xp],
            [xr.T, rr, rp],
            [xp.T, rp.T, pp],
        ])
        return gram_a, gram_b
