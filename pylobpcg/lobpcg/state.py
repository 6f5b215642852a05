"""
Mutable state of one LOBPCG run and the best-iterate accumulator.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

if TYPE_CHECKING:
    from pylobpcg.lobpcg.solution import LobpcgResult


class BestResult:
    """
    Best (eigenvalues, eigenvectors, residual norms) seen across iterations.

    Iterates are compared by their total squared residual norm. The snapshot
    is only replaced by a strictly better one, so it never degrades even if
    the iteration diverges near the end of the budget.
    """

    def __init__(self):
        self.eigenvalues: NDArray[np.floating[Any]] | None = None
        self.eigenvectors: NDArray[np.floating[Any]] | None = None
        self.residual_norms: NDArray[np.floating[Any]] | None = None
        self.score = np.inf

    @property
    def is_empty(self) -> bool:
        return self.eigenvalues is None

    def update(
        self,
        eigenvalues: NDArray[np.floating[Any]],
        eigenvectors: NDArray[np.floating[Any]],
        residual_norms: NDArray[np.floating[Any]],
    ) -> bool:
        """
        Record the iterate if it improves on the best one.

        Returns:
            True if the snapshot was replaced
        """
        score = float(np.sum(residual_norms ** 2))
        if not np.isfinite(score):
            score = np.inf
        if not self.is_empty and not score < self.score:
            return False
        self.eigenvalues = np.array(eigenvalues, copy=True)
        self.eigenvectors = np.array(eigenvectors, copy=True)
        self.residual_norms = np.array(residual_norms, copy=True)
        self.score = score
        return True


@dataclass
class IterationState:
    """
    Working buffers of a LOBPCG run.

    Attributes:
        x: Current Ritz vectors, orthonormal columns, shape (n, k)
        ax: Operator applied to x, shape (n, k)
        eigenvalues: Current Ritz values, shape (k,)
        active_mask: Columns still iterating; entries only ever turn False
        p, ap: Conjugate directions from the previous step and their image,
            shape (n, k); None before the first update
        explicit_gram: One-way latch selecting the Gram assembly regime
        iteration: Number of completed update steps
        n_restarts: Number of times the direction history was dropped
            because the three-block Rayleigh-Ritz problem failed
        residual_norms: Residual norms of the current iterate, or None
            before the first residual computation
        residual_norms_history: Residual norms of every iterate
        best: Best iterate seen so far
    """
    x: NDArray[np.floating[Any]]
    ax: NDArray[np.floating[Any]]
    eigenvalues: NDArray[np.floating[Any]]
    active_mask: NDArray[np.bool_]
    p: NDArray[np.floating[Any]] | None = None
    ap: NDArray[np.floating[Any]] | None = None
    explicit_gram: bool = True
    iteration: int = 0
    n_restarts: int = 0
    residual_norms: NDArray[np.floating[Any]] | None = None
    residual_norms_history: list[NDArray[np.floating[Any]]] = field(default_factory=list)
    best: BestResult = field(default_factory=BestResult)

    @property
    def block_size(self) -> int:
        return self.x.shape[1]

    @property
    def n_active(self) -> int:
        return int(np.count_nonzero(self.active_mask))


@dataclass(frozen=True)
class Continue:
    """The step finished an update; iterate again with state."""
    state: IterationState


@dataclass(frozen=True)
class Done:
    """The run is over; result is final."""
    result: 'LobpcgResult'
