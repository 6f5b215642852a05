"""
pytest configuration and shared fixtures.
"""

import pytest
import numpy as np


@pytest.fixture
def rng():
    """Seeded random number generator for reproducible tests."""
    return np.random.default_rng(42)


@pytest.fixture
def diag20():
    """Diagonal operator with eigenvalues 1..20."""
    return np.diag(np.arange(1.0, 21.0))


@pytest.fixture
def spd_matrix(rng):
    """Random symmetric positive definite matrix with well separated spectrum."""
    n = 60
    q, _ = np.linalg.qr(rng.standard_normal((n, n)))
    eigenvalues = np.linspace(1.0, 100.0, n)
    a = (q * eigenvalues) @ q.T
    return (a + a.T) / 2, eigenvalues


@pytest.fixture
def random_symmetric(rng):
    """Random dense symmetric matrix (indefinite)."""
    n = 20
    m = rng.standard_normal((n, n))
    return (m + m.T) / 2
