"""
Truncated symmetric eigendecomposition.

Public API:
    TruncatedEig(problem, ...).decompose(k) -> LobpcgResult
    iter(TruncatedEig(problem, ...)) -> TruncatedEigIterator
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass, field, replace
from typing import Any, Literal

import numpy as np
from numpy.typing import ArrayLike, NDArray

from pylobpcg.core.compute.linalg import Order
from pylobpcg.core.compute.tolerances import (
    DEFAULT_PRECISION,
    DEFLATION_RESIDUAL_THRESHOLD,
)
from pylobpcg.core.exceptions import ConfigurationError, ConvergenceError, ValidationError
from pylobpcg.core.protocols import LinearOperator
from pylobpcg.core.validation import (
    check_2d,
    check_array,
    check_choice,
    check_finite,
    check_max_iter,
    check_tolerance,
)
from pylobpcg.lobpcg.operators import as_operator, operator_dimension
from pylobpcg.lobpcg.solution import LobpcgResult
from pylobpcg.lobpcg.solvers import lobpcg


DivergencePolicy = Literal['warn', 'stop', 'raise']


@dataclass(frozen=True, eq=False)
class TruncatedEig:
    """
    Truncated eigenproblem solver.

    Wraps LOBPCG for the k largest or smallest eigenpairs of a symmetric
    operator. Configuration is immutable; the with_* methods return updated
    copies so calls can be chained. Iterating over the solver yields one
    eigenpair batch at a time, deflating every found eigenvector.

    Parameters
    ----------
    problem : ndarray or LinearOperator
        Symmetric matrix of shape (n, n), or an operator exposing ``shape``
        and ``apply``.
    order : str
        'largest' (default) or 'smallest'.
    precision : float
        Residual L2 norm at which an eigenpair counts as converged.
    maxiter : int or None
        Iteration budget per solve. If None, uses 2 * n.
    constraints : array-like of shape (n, c) or None
        Known eigenvectors (or other directions) the solution must be
        orthogonal to.
    preconditioner : ndarray, callable, Preconditioner or None
        Approximation of the inverse of the problem.
    seed : int, numpy.random.Generator or None
        Random source for the initial block.

    Examples
    --------
    >>> import numpy as np
    >>> from pylobpcg import TruncatedEig
    >>> A = np.diag(np.arange(1.0, 21.0))
    >>> eig = TruncatedEig(A, 'largest').with_precision(1e-5).with_maxiter(500)
    >>> result = eig.decompose(3)
    >>> np.round(result.eigenvalues, 3)
    array([20., 19., 18.])
    """
    problem: Any
    order: Order = 'largest'
    precision: float = DEFAULT_PRECISION
    maxiter: int | None = None
    constraints: NDArray[np.floating[Any]] | None = None
    preconditioner: Any = None
    seed: int | np.random.Generator | None = None
    _operator: LinearOperator = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        check_choice(self.order, ('largest', 'smallest'), 'order')
        check_tolerance(self.precision, 'precision')
        if self.maxiter is not None:
            check_max_iter(self.maxiter, 'maxiter')

        operator = as_operator(self.problem, name='problem')
        if operator_dimension(operator) is None:
            raise ValidationError(
                "problem: operator must expose a shape to size the initial block"
            )
        object.__setattr__(self, '_operator', operator)

        if self.constraints is not None:
            block = check_array(self.constraints, 'constraints')
            check_2d(block, 'constraints')
            check_finite(block, 'constraints')
            object.__setattr__(self, 'constraints', block)

    @property
    def dimension(self) -> int:
        """Problem dimension n."""
        return operator_dimension(self._operator)

    @property
    def n_constraints(self) -> int:
        return 0 if self.constraints is None else self.constraints.shape[1]

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def with_precision(self, precision: float) -> TruncatedEig:
        """
        Set the desired precision.

        The precision is applied to every eigenpair with respect to the L2
        norm of its residual. If it can't be reached within maxiter, the
        best iterate is returned with its residual norms.
        """
        return replace(self, precision=precision)

    def with_maxiter(self, maxiter: int) -> TruncatedEig:
        """Set the maximal number of iterations per solve."""
        return replace(self, maxiter=maxiter)

    def orthogonal_to(self, constraints: ArrayLike) -> TruncatedEig:
        """
        Search in the orthogonal complement of the given columns.

        If a number of eigenvectors are already known, this restricts the
        solve to the remaining ones. Also used by the deflating iterator.
        """
        return replace(self, constraints=constraints)

    def precondition_with(self, preconditioner: Any) -> TruncatedEig:
        """
        Apply a preconditioner.

        A good approximation of the inverse of the problem improves the
        spectral distribution and speeds up convergence.
        """
        return replace(self, preconditioner=preconditioner)

    def with_seed(self, seed: int | np.random.Generator | None) -> TruncatedEig:
        """Set the random source of the initial block."""
        return replace(self, seed=seed)

    # ------------------------------------------------------------------
    # Solving
    # ------------------------------------------------------------------

    def decompose(
        self,
        num: int,
        *,
        rng: int | np.random.Generator | None = None,
    ) -> LobpcgResult:
        """
        Calculate num eigenpairs at the configured end of the spectrum.

        Parameters
        ----------
        num : int
            Number of eigenpairs.
        rng : int, numpy.random.Generator or None
            Random source for the initial block. Overrides the configured seed.

        Returns
        -------
        LobpcgResult
        """
        n = self.dimension
        generator = np.random.default_rng(self.seed if rng is None else rng)
        x = generator.standard_normal((n, num))

        return lobpcg(
            self._operator,
            x,
            M=self.preconditioner,
            Y=self.constraints,
            tol=self.precision,
            max_iter=self.maxiter,
            order=self.order,
        )

    def iterate(
        self,
        step_size: int = 1,
        *,
        on_divergence: DivergencePolicy = 'warn',
        rng: int | np.random.Generator | None = None,
    ) -> TruncatedEigIterator:
        """
        Deflating iterator yielding step_size eigenpairs per solve.

        See TruncatedEigIterator.
        """
        return TruncatedEigIterator(
            self, step_size=step_size, on_divergence=on_divergence, rng=rng
        )

    def __iter__(self) -> TruncatedEigIterator:
        return self.iterate()


class TruncatedEigIterator:
    """
    Truncated eigenproblem iterator.

    Each step runs one complete solve for the next step_size eigenpairs,
    yields (eigenvalues, eigenvectors), and appends the eigenvectors to the
    constraint block so later solves are deflated past them. Useful for
    generating pairs until a condition is met.

    Iteration ends once every eigenpair of the unconstrained complement has
    been produced, when a solve returns no result, or when any residual
    norm of a batch exceeds DEFLATION_RESIDUAL_THRESHOLD. The last two
    cases are handled by on_divergence:
        'warn'  (default) emit a RuntimeWarning and stop
        'stop'  stop silently
        'raise' raise ConvergenceError

    Examples
    --------
    >>> import numpy as np
    >>> from pylobpcg import TruncatedEig
    >>> A = np.diag([1., 2., 3., 4., 5.])
    >>> teig = TruncatedEig(A, 'largest', seed=0)
    >>> # solve until eigenvalues get smaller than 2.5
    >>> from itertools import takewhile
    >>> vals = [v[0] for v, _ in takewhile(lambda pair: pair[0][0] > 2.5, teig)]
    >>> len(vals)
    3
    """

    def __init__(
        self,
        eig: TruncatedEig,
        step_size: int = 1,
        on_divergence: DivergencePolicy = 'warn',
        rng: int | np.random.Generator | None = None,
    ):
        if step_size < 1:
            raise ConfigurationError(
                f"step_size must be >= 1, got {step_size}",
                parameter='step_size',
                value=step_size,
            )
        check_choice(on_divergence, ('warn', 'stop', 'raise'), 'on_divergence')

        self._eig = eig
        self._step_size = step_size
        self._on_divergence = on_divergence
        self._rng = np.random.default_rng(eig.seed if rng is None else rng)
        self._remaining = eig.dimension - eig.n_constraints
        self._n_solves = 0

    @property
    def constraints(self) -> NDArray[np.floating[Any]] | None:
        """Accumulated deflation block."""
        return self._eig.constraints

    @property
    def remaining(self) -> int:
        """Number of eigenpairs that can still be produced."""
        return self._remaining

    def __iter__(self) -> TruncatedEigIterator:
        return self

    def __next__(self) -> tuple[NDArray[np.floating[Any]], NDArray[np.floating[Any]]]:
        if self._remaining == 0:
            raise StopIteration

        step_size = min(self._step_size, self._remaining)
        with warnings.catch_warnings():
            # the divergence policy below decides what the caller sees
            warnings.simplefilter('ignore', RuntimeWarning)
            result = self._eig.decompose(step_size, rng=self._rng)
        self._n_solves += 1

        if not result.has_result:
            self._stop(
                f"Deflation stopped: solve {self._n_solves} produced no result "
                f"({result.error})",
                reason='no_result',
                residual_norm=None,
            )

        norms = result.residual_norms
        if not np.all(norms <= DEFLATION_RESIDUAL_THRESHOLD):
            worst = float(np.nanmax(norms)) if np.any(np.isfinite(norms)) else float('nan')
            self._stop(
                f"Deflation stopped: solve {self._n_solves} has residual norm "
                f"{worst:.2e} above {DEFLATION_RESIDUAL_THRESHOLD}",
                reason='residual_threshold',
                residual_norm=worst,
            )

        vecs = result.eigenvectors
        if self._eig.constraints is None:
            constraints = vecs.copy()
        else:
            constraints = np.hstack([self._eig.constraints, vecs])
        self._eig = self._eig.orthogonal_to(constraints)
        self._remaining -= step_size

        return result.eigenvalues, vecs

    def _stop(self, message: str, reason: str, residual_norm: float | None):
        self._remaining = 0
        if self._on_divergence == 'raise':
            raise ConvergenceError(
                message,
                iterations=self._n_solves,
                residual_norm=residual_norm,
                reason=reason,
                threshold=DEFLATION_RESIDUAL_THRESHOLD,
            )
        if self._on_divergence == 'warn':
            warnings.warn(message, RuntimeWarning, stacklevel=3)
        raise StopIteration
