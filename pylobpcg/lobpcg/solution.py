"""
LOBPCG solution types.

Contains the parameter payload and the tagged result variants:

    LobpcgOk        converged, or budget exhausted with residuals intact
    LobpcgErr       best-effort payload plus the error that stopped iteration
    LobpcgNoResult  failed before any usable iterate existed

All three are Result envelopes; callers dispatch with isinstance() or use
the shared accessors.
"""

from dataclasses import dataclass
from typing import Any

import numpy as np
from numpy.typing import NDArray

from pylobpcg.core.result import Result


@dataclass(frozen=True, eq=False)
class LobpcgParams:
    """
    Parameter payload for LOBPCG.

    Immutable data computed by the driver or the dense fallback.
    """
    eigenvalues: NDArray[np.floating[Any]]
    eigenvectors: NDArray[np.floating[Any]]
    residual_norms: NDArray[np.floating[Any]]
    n_iter: int
    converged: bool


class LobpcgResult(Result[LobpcgParams]):
    """
    Common accessors of the tagged LOBPCG results.

    Accessors return None on LobpcgNoResult, which carries no payload.
    """

    @property
    def has_result(self) -> bool:
        """Whether an eigenpair payload is available."""
        return self.params is not None

    @property
    def eigenvalues(self) -> NDArray[np.floating[Any]] | None:
        """Ritz values in the requested order."""
        return None if self.params is None else self.params.eigenvalues

    @property
    def eigenvectors(self) -> NDArray[np.floating[Any]] | None:
        """Ritz vectors as columns, shape (n, k)."""
        return None if self.params is None else self.params.eigenvectors

    @property
    def residual_norms(self) -> NDArray[np.floating[Any]] | None:
        """L2 norms of A v - lambda v for every returned pair."""
        return None if self.params is None else self.params.residual_norms

    @property
    def converged(self) -> bool:
        """Whether every residual norm met the tolerance."""
        return self.params is not None and self.params.converged

    @property
    def n_iter(self) -> int:
        """Number of completed iterations."""
        return 0 if self.params is None else self.params.n_iter

    def unwrap(self) -> tuple[
        NDArray[np.floating[Any]],
        NDArray[np.floating[Any]],
        NDArray[np.floating[Any]],
    ]:
        """
        Return (eigenvalues, eigenvectors, residual_norms).

        LobpcgErr returns its best-effort payload. LobpcgNoResult raises the
        error that prevented a result.
        """
        if self.params is None:
            raise self.error
        return self.params.eigenvalues, self.params.eigenvectors, self.params.residual_norms


class LobpcgOk(LobpcgResult):
    """Clean exit: converged or out of iterations. Inspect residual_norms."""


class LobpcgErr(LobpcgResult):
    """Iteration stopped by a numerical error; the best iterate is kept."""


class LobpcgNoResult(LobpcgResult):
    """No usable iterate; only the error is available."""
