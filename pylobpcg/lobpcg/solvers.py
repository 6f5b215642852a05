"""
Solver dispatch for LOBPCG.

Public API: lobpcg(A, X, ...) -> LobpcgResult
"""

import warnings
from typing import Any, Literal

import numpy as np
from numpy.typing import ArrayLike
from scipy.linalg import null_space

from pylobpcg.core.compute.linalg import Order, sorted_eigh
from pylobpcg.core.compute.timing import Timer
from pylobpcg.core.compute.tolerances import DENSE_FALLBACK_RATIO
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
from pylobpcg.lobpcg.driver import LobpcgDriver
from pylobpcg.lobpcg.operators import as_operator, as_preconditioner, operator_dimension
from pylobpcg.lobpcg.solution import (
    LobpcgNoResult,
    LobpcgOk,
    LobpcgParams,
    LobpcgResult,
)


MethodChoice = Literal['auto', 'lobpcg', 'dense']


def lobpcg(
    A: Any,
    X: ArrayLike,
    *,
    M: Any = None,
    Y: ArrayLike | None = None,
    tol: float = 1e-5,
    max_iter: int | None = None,
    order: Order = 'largest',
    method: MethodChoice = 'auto',
    explicit_gram: bool = True,
    verbose: bool = False,
) -> LobpcgResult:
    """
    Extremal eigenpairs of a symmetric operator.

    Parameters
    ----------
    A : ndarray, callable or LinearOperator
        Symmetric operator of shape (n, n). Callables map an (n, m) block
        to an (n, m) block.
    X : array-like, shape (n, k)
        Initial approximation of the k eigenvectors. Its columns must be
        linearly independent.
    M : ndarray, callable, Preconditioner or None
        Preconditioner approximating A^{-1}. Identity if None.
    Y : array-like, shape (n, c), or None
        Constraints. Iterations are performed in the orthogonal complement
        of the column space of Y, which must have full rank.
    tol : float
        Residual L2 norm at which an eigenpair counts as converged.
    max_iter : int or None
        Iteration budget. If None, uses 2 * n. Always capped at 10 * n.
    order : str
        'largest' (default) or 'smallest' eigenvalues.
    method : str
        - 'auto' (default): LOBPCG, unless the block is large compared to
          the problem ((n - c) < 5k), where a dense eigensolver is used.
        - 'lobpcg': always iterate.
        - 'dense': materialize A and solve densely.
    explicit_gram : bool
        Initial Gram assembly regime of the Rayleigh-Ritz step
        (see LobpcgDriver).
    verbose : bool
        Print progress information.

    Returns
    -------
    LobpcgResult
        LobpcgOk, LobpcgErr (best iterate plus the error that stopped
        iteration) or LobpcgNoResult.

    Examples
    --------
    >>> import numpy as np
    >>> from pylobpcg import lobpcg
    >>> A = np.diag(np.arange(1.0, 101.0))
    >>> X = np.random.default_rng(0).standard_normal((100, 3))
    >>> result = lobpcg(A, X, tol=1e-8)
    >>> np.round(result.eigenvalues, 6)
    array([100.,  99.,  98.])
    """
    X = check_array(X, 'X')
    check_2d(X, 'X')
    check_finite(X, 'X')
    n, k = X.shape

    if Y is not None:
        Y = check_array(Y, 'Y')
        check_2d(Y, 'Y')
        check_finite(Y, 'Y')
        check_consistent_length(X, Y, names=('X', 'Y'))
    n_constraints = 0 if Y is None else Y.shape[1]

    check_block_size(n, k, n_constraints)
    check_tolerance(tol)
    check_choice(order, ('largest', 'smallest'), 'order')
    check_choice(method, ('auto', 'lobpcg', 'dense'), 'method')

    effective_max_iter = max_iter if max_iter is not None else 2 * n
    check_max_iter(effective_max_iter)

    if verbose:
        print(f"LOBPCG: n={n}, block size {k}, {n_constraints} constraints, "
              f"order={order}, tol={tol:.1e}")

    fallback = False
    if method == 'auto':
        fallback = (n - n_constraints) < DENSE_FALLBACK_RATIO * k
        method = 'dense' if fallback else 'lobpcg'

    if method == 'dense':
        result = _solve_dense(A, M, X, Y, tol, order, fallback)
    else:
        driver = LobpcgDriver(
            A, M, Y,
            tol=tol,
            max_iter=effective_max_iter,
            order=order,
            explicit_gram=explicit_gram,
        )
        result = driver.run(X)

    if not result.converged:
        reason = result.error if result.error is not None else 'residual norms above tol'
        warnings.warn(
            f"Eigensolver ({result.method}) did not converge after "
            f"{result.n_iter} iterations: {reason}",
            RuntimeWarning,
            stacklevel=2,
        )

    if verbose:
        if result.has_result:
            print(f"Backend: {result.method}, converged: {result.converged} "
                  f"(iterations: {result.n_iter}, "
                  f"max residual: {float(np.max(result.residual_norms)):.2e})")
        else:
            print(f"Backend: {result.method}, no result: {result.error}")

    return result


def _solve_dense(A, M, X, Y, tol, order, fallback) -> LobpcgResult:
    """
    Dense path: materialize A and solve on the complement of Y.

    X only fixes the block size; the dense solve needs no initial guess.
    M is unused but must still fit the problem.
    """
    timer = Timer()
    timer.start()
    n, k = X.shape
    operator = as_operator(A)

    dim = operator_dimension(operator)
    if dim is not None and dim != n:
        raise DimensionError(
            f"X has {n} rows but the operator has dimension {dim}"
        )
    m_dim = operator_dimension(as_preconditioner(M))
    if m_dim is not None and m_dim != n:
        raise DimensionError(
            f"X has {n} rows but the preconditioner has dimension {m_dim}"
        )

    info = {
        'algorithm': 'dense',
        'order': order,
        'tol': float(tol),
        'n': n,
        'block_size': k,
        'n_constraints': 0 if Y is None else Y.shape[1],
        'n_iter': 0,
    }

    with timer.section('materialize'):
        identity = np.eye(n, dtype=X.dtype)
        dense = np.asarray(operator.apply(identity))
        check_block_shape(dense, (n, n), 'A')
        dense = (dense + dense.T) / 2

    try:
        with timer.section('eigh'):
            if Y is None:
                eigenvalues, vecs = sorted_eigh(dense, None, k, order)
            else:
                # Orthonormal basis of the complement of span(Y)
                basis = null_space(Y.T)
                projected = basis.T @ dense @ basis
                eigenvalues, coeffs = sorted_eigh(projected, None, k, order)
                vecs = basis @ coeffs
    except NumericalError as e:
        timer.stop()
        return LobpcgNoResult(
            params=None,
            info=info,
            timing=timer.result(),
            method='cpu_dense',
            error=e,
        )

    residual_norms = np.linalg.norm(dense @ vecs - vecs * eigenvalues[np.newaxis, :], axis=0)
    converged = bool(np.all(residual_norms <= tol))
    timer.stop()

    warnings_list = []
    if fallback:
        warnings_list.append(
            f"Block size {k} is large compared to the problem size {n}; "
            f"used a dense eigensolver instead of LOBPCG"
        )
    if not converged:
        warnings_list.append(
            f"Dense residual norms exceed tol (max {float(np.max(residual_norms)):.2e})"
        )

    return LobpcgOk(
        params=LobpcgParams(
            eigenvalues=eigenvalues,
            eigenvectors=vecs,
            residual_norms=residual_norms,
            n_iter=0,
            converged=converged,
        ),
        info=info,
        timing=timer.result(),
        method='cpu_dense',
        warnings=tuple(warnings_list),
    )
