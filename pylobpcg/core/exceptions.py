"""
Exception hierarchy for pylobpcg.

All exceptions inherit from PyLobpcgError to allow catching any
library-specific error. Solver-specific exceptions should inherit from
the appropriate base class here.

Design principles:
    - Exceptions carry diagnostic information as attributes
    - Error messages are actionable with actual vs expected values
    - Never catch and re-raise with less information
"""


class PyLobpcgError(Exception):
    """Base exception for all pylobpcg errors."""
    pass


class ValidationError(PyLobpcgError):
    """
    Input validation failed.

    Raised when user-provided inputs fail validation checks.
    """
    pass


class DimensionError(ValidationError):
    """
    Array dimensions are incorrect or inconsistent.

    Raised when block shapes don't match the operator dimension, when a
    constraint block has the wrong number of rows, or when an operator
    returns a block of a different shape than it was given.
    """
    pass


class ConfigurationError(ValidationError):
    """
    Solver configuration cannot be satisfied.

    Raised when the requested number of eigenpairs does not fit into the
    problem (k > n, k + constraints > n), or when tolerance, iteration
    budget, order or method are out of range.

    Attributes:
        parameter: Name of the offending parameter, if known
        value: The rejected value, if known
    """

    def __init__(
        self,
        message: str,
        parameter: str | None = None,
        value: object = None,
    ):
        super().__init__(message)
        self.parameter = parameter
        self.value = value


class NumericalError(PyLobpcgError):
    """
    Numerical computation failed.

    Base class for errors arising from numerical issues during computation,
    typically a dense factorization of a small Gram matrix.
    """
    pass


class NotPositiveDefiniteError(NumericalError):
    """
    Matrix is not positive definite.

    Raised when a Cholesky factorization fails. Inside LOBPCG this means the
    columns of a block are linearly dependent within working precision.

    Attributes:
        matrix_name: Name/description of the problematic matrix
        block_size: Number of columns of the block whose Gram matrix failed
    """

    def __init__(
        self,
        message: str,
        matrix_name: str | None = None,
        block_size: int | None = None,
    ):
        super().__init__(message)
        self.matrix_name = matrix_name
        self.block_size = block_size


class EigendecompositionError(NumericalError):
    """
    Dense symmetric eigendecomposition failed.

    Raised when the Rayleigh-Ritz eigenproblem cannot be solved, e.g. the
    mass matrix of the trial basis is not positive definite.

    Attributes:
        basis_size: Dimension of the projected eigenproblem
        generalized: Whether a mass matrix was supplied
    """

    def __init__(
        self,
        message: str,
        basis_size: int | None = None,
        generalized: bool = False,
    ):
        super().__init__(message)
        self.basis_size = basis_size
        self.generalized = generalized


class ConvergenceError(PyLobpcgError):
    """
    Iterative algorithm failed to converge.

    Raised by the deflating eigenpair iterator when configured to fail
    loudly instead of stopping once a residual exceeds its threshold.

    Attributes:
        iterations: Number of completed steps (solves or iterations)
        residual_norm: Largest residual norm observed at failure
        reason: Why convergence failed (e.g., 'residual_threshold', 'no_result')
        threshold: The convergence threshold that was not met
    """

    def __init__(
        self,
        message: str,
        iterations: int,
        residual_norm: float | None = None,
        reason: str | None = None,
        threshold: float | None = None
    ):
        super().__init__(message)
        self.iterations = iterations
        self.residual_norm = residual_norm
        self.reason = reason
        self.threshold = threshold
