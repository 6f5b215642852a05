"""
LOBPCG driver.

Implements the Locally Optimal Block Preconditioned Conjugate Gradient method
(Knyazev, 2001) for the extremal eigenpairs of a symmetric operator as an
explicit state machine:

    Init -> Iterating -> {Converged | Exhausted | Failed}

initialize() builds the IterationState from an initial block, step() performs
one full iteration and returns Continue(state) or Done(result), and run()
loops step() until Done. The best iterate seen so far is tracked separately
from the current one and is what every result reports.

References:
    - Knyazev, "Toward the Optimal Preconditioned Eigensolver: Locally Optimal
      Block Preconditioned Conjugate Gradient Method", SISC 23 (2001)
    - Knyazev, Argentati, Lashuk, Ovtchinnikov, "Block Locally Optimal
      Preconditioned Eigenvalue Xolvers (BLOPEX) in hypre and PETSc" (2007)
"""

from __future__ import annotations

from contextlib import nullcontext
from dataclasses import replace
from typing import Any

import numpy as np
from numpy.typing import ArrayLike, NDArray

from pylobpcg.core.compute.linalg import Order, solve_lower
from pylobpcg.core.compute.timing import Timer
from pylobpcg.core.compute.tolerances import (
    ITERATION_CAP_FACTOR,
    select_precision,
)
from pylobpcg.core.exceptions import DimensionError, NumericalError
from pylobpcg.core.validation import (
    check_2d,
    check_array,
    check_block_shape,
    check_block_size,
    check_choice,
    check_consistent_length,
    check_finite,
    check_max_iter,
    check_tolerance,
)
from pylobpcg.lobpcg.operators import (
    ConstraintSet,
    NoConstraints,
    as_constraints,
    as_operator,
    as_preconditioner,
    operator_dimension,
)
from pylobpcg.lobpcg.orthonormalize import orthonormalize
from pylobpcg.lobpcg.ritz import RitzSolver
from pylobpcg.lobpcg.solution import (
    LobpcgErr,
    LobpcgNoResult,
    LobpcgOk,
    LobpcgParams,
    LobpcgResult,
)
from pylobpcg.lobpcg.state import Continue, Done, IterationState


def _section(timer: Timer | None, name: str):
    return timer.section(name) if timer is not None else nullcontext()


class LobpcgDriver:
    """
    LOBPCG eigensolver for a symmetric operator.

    Parameters
    ----------
    operator : ndarray, callable or LinearOperator
        The symmetric operator A. Callables and operators receive an (n, m)
        block and must return an (n, m) block.
    preconditioner : ndarray, callable, Preconditioner or None
        Approximation of A^{-1} applied to the residuals. Identity if None.
    constraints : array-like of shape (n, c), ConstraintSet or None
        Full-rank block Y; iterations stay in the orthogonal complement of
        its column space.
    tol : float
        Residual L2 norm at or below which an eigenpair stops iterating.
    max_iter : int or None
        Iteration budget. Always capped at 10 * n.
    order : {'largest', 'smallest'}
        Which end of the spectrum to compute.
    explicit_gram : bool
        Initial value of the Gram assembly latch. When False, Gram matrices
        are approximated (see RitzSolver) until the largest residual norm
        drops below the precision-dependent threshold, after which they are
        always computed explicitly.
    """

    def __init__(
        self,
        operator: Any,
        preconditioner: Any = None,
        constraints: Any = None,
        *,
        tol: float = 1e-5,
        max_iter: int | None = None,
        order: Order = 'largest',
        explicit_gram: bool = True,
    ):
        check_tolerance(tol)
        if max_iter is not None:
            check_max_iter(max_iter)
        check_choice(order, ('largest', 'smallest'), 'order')

        self.operator = as_operator(operator)
        self.preconditioner = as_preconditioner(preconditioner)
        self.tol = float(tol)
        self.max_iter = max_iter
        self.order = order
        self.explicit_gram = explicit_gram

        if constraints is None or isinstance(constraints, (ConstraintSet, NoConstraints)):
            self._constraint_input = constraints
        else:
            block = check_array(constraints, 'Y')
            check_2d(block, 'Y')
            check_finite(block, 'Y')
            self._constraint_input = block
        self._constraint_set: ConstraintSet | NoConstraints | None = None

    @property
    def name(self) -> str:
        return 'cpu_lobpcg'

    @property
    def constraints(self) -> ConstraintSet | NoConstraints:
        """
        Constraint set of the run, factorized on first access.

        Raises:
            NotPositiveDefiniteError: If the constraint block is rank deficient
        """
        if self._constraint_set is None:
            self._constraint_set = as_constraints(self._constraint_input)
        return self._constraint_set

    @property
    def n_constraints(self) -> int:
        block = self._constraint_input
        if block is None:
            return 0
        if isinstance(block, (ConstraintSet, NoConstraints)):
            return block.count
        return block.shape[1]

    def iteration_budget(self, n: int) -> int:
        """Number of update steps allowed for a problem of dimension n."""
        cap = ITERATION_CAP_FACTOR * n
        if self.max_iter is None:
            return cap
        return min(cap, int(self.max_iter))

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    def run(self, x0: ArrayLike) -> LobpcgResult:
        """
        Solve for the eigenpairs approximated by the columns of x0.

        Parameters
        ----------
        x0 : array-like, shape (n, k)
            Initial block with linearly independent columns.

        Returns
        -------
        LobpcgOk, LobpcgErr or LobpcgNoResult

        Raises
        ------
        DimensionError
            If x0, the constraints and the operator disagree on n.
        ConfigurationError
            If k does not fit into the problem.
        """
        timer = Timer()
        timer.start()

        with timer.section('initialization'):
            state = self.initialize(x0)

        if isinstance(state, LobpcgResult):
            timer.stop()
            return replace(state, timing=timer.result())

        while True:
            outcome = self.step(state, timer=timer)
            if isinstance(outcome, Done):
                break
            state = outcome.state

        timer.stop()
        return replace(outcome.result, timing=timer.result())

    def initialize(self, x0: ArrayLike) -> IterationState | LobpcgNoResult:
        """
        Build the initial iteration state.

        Projects x0 against the constraints, orthonormalizes it, and rotates
        it into the Ritz basis of span{x0}.

        Returns:
            IterationState, or LobpcgNoResult if the constraints or x0 cannot
            be factorized

        Raises:
            DimensionError, ConfigurationError, ValidationError
        """
        x0 = check_array(x0, 'X')
        check_2d(x0, 'X')
        check_finite(x0, 'X')
        n, k = x0.shape

        dim = operator_dimension(self.operator)
        if dim is not None and dim != n:
            raise DimensionError(
                f"X has {n} rows but the operator has dimension {dim}"
            )
        m_dim = operator_dimension(self.preconditioner)
        if m_dim is not None and m_dim != n:
            raise DimensionError(
                f"X has {n} rows but the preconditioner has dimension {m_dim}"
            )
        if isinstance(self._constraint_input, np.ndarray):
            check_consistent_length(x0, self._constraint_input, names=('X', 'Y'))
        check_block_size(n, k, self.n_constraints)

        try:
            constraints = self.constraints
        except NumericalError as e:
            return self._no_result(e, n, k)
        if constraints.block is not None and constraints.block.shape[0] != n:
            raise DimensionError(
                f"Inconsistent lengths: X={n}, Y={constraints.block.shape[0]}"
            )

        try:
            x, _ = orthonormalize(constraints.project(x0), name='X')
        except NumericalError as e:
            return self._no_result(e, n, k)

        ax = self._apply(x)

        try:
            eigenvalues, coeffs = RitzSolver(k, self.order).seed(x, ax)
        except NumericalError as e:
            return self._no_result(e, n, k)

        return IterationState(
            x=x @ coeffs,
            ax=ax @ coeffs,
            eigenvalues=eigenvalues,
            active_mask=np.ones(k, dtype=bool),
            explicit_gram=self.explicit_gram,
        )

    def step(
        self,
        state: IterationState,
        timer: Timer | None = None,
    ) -> Continue | Done:
        """
        Perform one LOBPCG iteration.

        Computes residuals, updates the best iterate and the active mask,
        and either finishes or expands the trial basis with the
        preconditioned residuals and previous directions, solves the
        Rayleigh-Ritz problem and recombines X, AX, P and AP. The state is
        updated in place.

        Returns:
            Continue(state) to iterate again, or Done(result)
        """
        n, k = state.x.shape

        with _section(timer, 'residuals'):
            r = state.ax - state.x * state.eigenvalues[np.newaxis, :]
            norms = np.linalg.norm(r, axis=0)

        state.residual_norms = norms
        state.residual_norms_history.append(norms)
        state.best.update(state.eigenvalues, state.x, norms)

        # NaN residuals stay active; converged columns never come back
        state.active_mask = state.active_mask & ~(norms <= self.tol)

        if state.n_active == 0 or state.iteration >= self.iteration_budget(n):
            return Done(self._finish(state))

        precision = select_precision(state.x.dtype)
        if np.max(norms) <= precision.explicit_gram_threshold:
            state.explicit_gram = True

        mask = state.active_mask

        with _section(timer, 'precondition'):
            r_active = r[:, mask]
            r_active = np.asarray(self.preconditioner.apply(r_active))
            check_block_shape(r_active, (n, state.n_active), 'M')
            r_active = self.constraints.project(r_active)
            r_active = r_active - state.x @ (state.x.T @ r_active)

        with _section(timer, 'orthonormalize'):
            try:
                r_active, _ = orthonormalize(r_active, name='R')
            except NumericalError as e:
                return Done(self._finish(state, e))
            directions = self._restrict_directions(state)

        ar = self._apply(r_active)

        with _section(timer, 'rayleigh_ritz'):
            try:
                eigenvalues, coeffs, directions = self._rayleigh_ritz(
                    state, r_active, ar, directions
                )
            except NumericalError as e:
                return Done(self._finish(state, e))

        a = r_active.shape[1]
        tau = coeffs[:k]
        alpha = coeffs[k:k + a]

        p = r_active @ alpha
        ap = ar @ alpha
        if directions is not None:
            active_p, active_ap = directions
            gamma = coeffs[k + a:]
            p = p + active_p @ gamma
            ap = ap + active_ap @ gamma

        state.x = state.x @ tau + p
        state.ax = state.ax @ tau + ap
        state.p = p
        state.ap = ap
        state.eigenvalues = eigenvalues
        state.iteration += 1

        return Continue(state)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _apply(self, block: NDArray[np.floating[Any]]) -> NDArray[np.floating[Any]]:
        """Apply the operator and check the returned shape."""
        out = np.asarray(self.operator.apply(block))
        check_block_shape(out, block.shape, 'A')
        return out

    def _restrict_directions(
        self,
        state: IterationState,
    ) -> tuple[NDArray[np.floating[Any]], NDArray[np.floating[Any]]] | None:
        """
        Active columns of P, orthonormalized, with AP transformed to match.

        With P = U L^T, the image of U is AP L^{-T}. If P cannot be
        orthonormalized the history is dropped.
        """
        if state.p is None:
            return None

        active_p = state.p[:, state.active_mask]
        active_ap = state.ap[:, state.active_mask]
        try:
            active_p, L = orthonormalize(active_p, name='P')
            active_ap = solve_lower(L, active_ap.T).T
        except NumericalError:
            state.n_restarts += 1
            return None
        return active_p, active_ap

    def _rayleigh_ritz(
        self,
        state: IterationState,
        r: NDArray[np.floating[Any]],
        ar: NDArray[np.floating[Any]],
        directions: tuple[NDArray[np.floating[Any]], NDArray[np.floating[Any]]] | None,
    ):
        """
        Rayleigh-Ritz over span{X, R, P}, falling back to span{X, R}.

        Returns:
            (eigenvalues, coefficients, directions) where directions is None
            if the two-block basis was used

        Raises:
            EigendecompositionError: If the two-block problem fails as well
        """
        ritz = RitzSolver(state.block_size, self.order)

        if directions is not None:
            active_p, active_ap = directions
            try:
                eigenvalues, coeffs = ritz.solve(
                    state.x, state.ax, state.eigenvalues, r, ar,
                    active_p, active_ap, explicit=state.explicit_gram,
                )
                return eigenvalues, coeffs, directions
            except NumericalError:
                state.n_restarts += 1

        eigenvalues, coeffs = ritz.solve(
            state.x, state.ax, state.eigenvalues, r, ar,
            explicit=state.explicit_gram,
        )
        return eigenvalues, coeffs, None

    def _info(self, n: int, k: int, **extra) -> dict[str, Any]:
        info = {
            'algorithm': 'lobpcg',
            'order': self.order,
            'tol': self.tol,
            'max_iter': self.iteration_budget(n),
            'n': n,
            'block_size': k,
            'n_constraints': self.n_constraints,
        }
        info.update(extra)
        return info

    def _no_result(self, error: NumericalError, n: int, k: int) -> LobpcgNoResult:
        return LobpcgNoResult(
            params=None,
            info=self._info(n, k, n_iter=0),
            timing=None,
            method=self.name,
            error=error,
        )

    def _finish(
        self,
        state: IterationState,
        error: NumericalError | None = None,
    ) -> LobpcgResult:
        """Turn the best iterate into the final result."""
        n, k = state.x.shape
        best = state.best
        converged = bool(np.all(best.residual_norms <= self.tol))

        params = LobpcgParams(
            eigenvalues=best.eigenvalues,
            eigenvectors=best.eigenvectors,
            residual_norms=best.residual_norms,
            n_iter=state.iteration,
            converged=converged,
        )

        warnings_list = []
        if error is None and not converged:
            warnings_list.append(
                f"LOBPCG did not converge after {state.iteration} iterations "
                f"(max residual norm: {float(np.max(best.residual_norms)):.2e}, "
                f"tol: {self.tol:.2e})"
            )
        if state.n_restarts:
            warnings_list.append(
                f"Conjugate direction history was dropped {state.n_restarts} "
                f"time(s) after a failed Rayleigh-Ritz step"
            )

        info = self._info(
            n, k,
            n_iter=state.iteration,
            n_restarts=state.n_restarts,
            explicit_gram=state.explicit_gram,
            residual_norms_history=list(state.residual_norms_history),
        )

        result_cls = LobpcgOk if error is None else LobpcgErr
        return result_cls(
            params=params,
            info=info,
            timing=None,
            method=self.name,
            warnings=tuple(warnings_list),
            error=error,
        )
