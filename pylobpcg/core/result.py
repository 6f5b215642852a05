"""
Generic result container for all pylobpcg computations.

The Result class provides a standardized envelope that all solver results
use. This enables shared tooling for timing, diagnostics and reproducibility
while allowing each solver to define its own parameter payload.

Design decisions:
    - Generic over parameter payload P for type safety
    - info dict for flexible metadata (converged, iterations, diagnostics)
    - timing is optional (don't burden unit tests)
    - error slot so a best-effort payload can travel with the failure
      that stopped the computation
    - Immutable (frozen=True) for reproducibility
"""

from dataclasses import dataclass, field
from typing import TypeVar, Generic, Any

P = TypeVar('P')  # Parameter payload type


@dataclass(frozen=True, eq=False)
class Result(Generic[P]):
    """
    Immutable result envelope for numerical computations.

    Type Parameters:
        P: The solver-specific parameter payload type

    Attributes:
        params: Solver payload (eigenvalues, eigenvectors, ...), or None if
            the computation failed before producing anything usable
        info: Structured metadata (method, convergence, diagnostics)
        timing: Execution timing breakdown, or None if not measured
        method: Identifier of the algorithm that produced this result
        warnings: Non-fatal issues encountered during computation
        error: The error that stopped the computation, if any

    Examples:
        >>> # Direct method (no convergence notion)
        >>> Result(
        ...     params=params,
        ...     info={'n_iter': 0},
        ...     timing={'total_seconds': 0.01},
        ...     method='cpu_dense'
        ... )

        >>> # Iterative method stopped by a factorization failure
        >>> Result(
        ...     params=best_params,
        ...     info={'n_iter': 23, 'n_restarts': 1},
        ...     timing={'total_seconds': 0.5, 'rayleigh_ritz': 0.3},
        ...     method='cpu_lobpcg',
        ...     error=NotPositiveDefiniteError('...')
        ... )
    """
    params: P | None
    info: dict[str, Any]
    timing: dict[str, float] | None
    method: str
    warnings: tuple[str, ...] = field(default_factory=tuple)
    error: Exception | None = None

    def has_warning(self, substring: str) -> bool:
        """Check if any warning contains the given substring."""
        return any(substring in w for w in self.warnings)
