"""
Precision tiers and numeric constants for the eigensolvers.

Defines the constants whose value depends on the working precision:
- FP64: double precision (default for all float64 inputs)
- FP32: single precision

plus the precision-independent scheduling constants. These are empirical
values that agree with reference LOBPCG implementations; they are kept as
named constants so they can be tuned in one place.
"""

from dataclasses import dataclass
from typing import Any

import numpy as np


@dataclass(frozen=True)
class PrecisionTier:
    """Precision-dependent constants for one floating point type."""
    name: str
    dtype: Any
    # Residual norm at or below which Gram matrices are always formed explicitly
    explicit_gram_threshold: float
    # Multiplier of machine epsilon in the singular value cut-off
    magnitude_correction: float
    description: str

    @property
    def eps(self) -> float:
        """Machine epsilon of the tier's dtype."""
        return float(np.finfo(self.dtype).eps)


FP64 = PrecisionTier(
    name='fp64',
    dtype=np.float64,
    explicit_gram_threshold=1e-8,
    magnitude_correction=1e6,
    description='Double precision',
)

FP32 = PrecisionTier(
    name='fp32',
    dtype=np.float32,
    explicit_gram_threshold=1.0,
    magnitude_correction=1e3,
    description='Single precision',
)

# LOBPCG needs (n - constraints) >= DENSE_FALLBACK_RATIO * k to be worthwhile;
# below that a dense eigensolver is used instead.
DENSE_FALLBACK_RATIO = 5

# The iteration budget is capped at ITERATION_CAP_FACTOR * n.
ITERATION_CAP_FACTOR = 10

# Residual norm above which the deflating iterator treats a batch as diverged.
DEFLATION_RESIDUAL_THRESHOLD = 0.1

# Default residual tolerance for the truncated solvers.
DEFAULT_PRECISION = 1e-5


def select_precision(dtype: Any) -> PrecisionTier:
    """Select the precision tier for a floating point dtype."""
    if np.finfo(dtype).eps > 1e-8:
        return FP32
    return FP64
