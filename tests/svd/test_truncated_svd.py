"""
Tests for the truncated singular value decomposition.
"""

from dataclasses import FrozenInstanceError

import numpy as np
import pytest

from pylobpcg import TruncatedSvd, TruncatedSvdResult
from pylobpcg.core.exceptions import ConfigurationError, ValidationError
from pylobpcg.svd import NormalOperator


@pytest.fixture
def small():
    return np.array([[3.0, 2.0, 2.0], [2.0, 3.0, -2.0]])


@pytest.fixture
def tall(rng):
    """200 x 30 matrix with singular values 10 ... 1."""
    u, _ = np.linalg.qr(rng.standard_normal((200, 30)))
    v, _ = np.linalg.qr(rng.standard_normal((30, 30)))
    sigma = np.linspace(10.0, 1.0, 30)
    return (u * sigma) @ v.T, sigma


# ═══════════════════════════════════════════════════════════════════════
# Normal operator
# ═══════════════════════════════════════════════════════════════════════


class TestNormalOperator:

    def test_gram_of_columns(self, small):
        op = NormalOperator(small, transpose_first=True)
        assert op.shape == (3, 3)
        np.testing.assert_allclose(op.apply(np.eye(3)), small.T @ small)

    def test_gram_of_rows(self, small):
        op = NormalOperator(small, transpose_first=False)
        assert op.shape == (2, 2)
        np.testing.assert_allclose(op.apply(np.eye(2)), small @ small.T)


# ═══════════════════════════════════════════════════════════════════════
# Configuration
# ═══════════════════════════════════════════════════════════════════════


class TestConfiguration:

    def test_fluent_methods(self, small):
        svd = TruncatedSvd(small).with_precision(1e-3).with_maxiter(10).with_seed(1)
        assert (svd.precision, svd.maxiter, svd.seed) == (1e-3, 10, 1)

    def test_frozen(self, small):
        with pytest.raises(FrozenInstanceError):
            TruncatedSvd(small).order = 'smallest'

    def test_identity_equality(self, small):
        svd = TruncatedSvd(small)
        assert svd == svd
        assert svd != TruncatedSvd(small)
        assert len({svd, svd.with_seed(1)}) == 2

    def test_vector_rejected(self):
        with pytest.raises(ValidationError):
            TruncatedSvd(np.ones(4))

    def test_non_finite_rejected(self, small):
        small[0, 0] = np.nan
        with pytest.raises(ValidationError):
            TruncatedSvd(small)

    def test_zero_values_rejected(self, small):
        with pytest.raises(ConfigurationError) as exc_info:
            TruncatedSvd(small).decompose(0)
        assert exc_info.value.parameter == 'num'

    def test_too_many_values_rejected(self, small):
        with pytest.raises(ConfigurationError):
            TruncatedSvd(small).decompose(3)


# ═══════════════════════════════════════════════════════════════════════
# Decomposition
# ═══════════════════════════════════════════════════════════════════════


class TestDecompose:

    def test_small_matrix(self, small):
        result = TruncatedSvd(small, 'largest', seed=0).decompose(2)
        assert isinstance(result, TruncatedSvdResult)
        np.testing.assert_allclose(result.values(), [5.0, 3.0], atol=1e-5)
        assert result.error is None
        assert result.converged

    def test_small_matrix_reconstruction(self, small):
        u, sigma, vt = TruncatedSvd(small, seed=0).decompose(2).values_vectors()
        assert u.shape == (2, 2)
        assert vt.shape == (2, 3)
        np.testing.assert_allclose((u * sigma) @ vt, small, atol=1e-8)

    def test_smallest_order_values_descending(self, small):
        result = TruncatedSvd(small, 'smallest', seed=0).decompose(1)
        np.testing.assert_allclose(result.values(), [3.0], atol=1e-5)

    def test_uses_smaller_side(self, small):
        wide = TruncatedSvd(small, seed=0).decompose(1)
        assert not wide.transpose_first
        assert wide.eigenvectors.shape == (2, 1)
        tall = TruncatedSvd(small.T, seed=0).decompose(1)
        assert tall.transpose_first
        assert tall.eigenvectors.shape == (2, 1)

    def test_tall_iterative(self, tall):
        a, sigma = tall
        result = TruncatedSvd(a, seed=0).decompose(3)
        assert result.result.method == 'cpu_lobpcg'
        np.testing.assert_allclose(result.values(), sigma[:3], rtol=1e-6)

        u, s, vt = result.values_vectors()
        np.testing.assert_allclose(u.T @ u, np.eye(3), atol=1e-6)
        np.testing.assert_allclose(vt @ vt.T, np.eye(3), atol=1e-6)
        np.testing.assert_allclose(a @ vt.T, u * s, atol=1e-5)

    def test_full_reconstruction(self, rng):
        a = rng.standard_normal((50, 10))
        u, sigma, vt = TruncatedSvd(a, seed=0).decompose(10).values_vectors()
        np.testing.assert_allclose(sigma, np.linalg.svd(a, compute_uv=False), rtol=1e-10)
        np.testing.assert_allclose((u * sigma) @ vt, a, atol=1e-10)

    def test_rank_deficient_values_dropped(self):
        a = np.outer([1.0, 2.0, 3.0, 4.0], [1.0, -1.0, 2.0])
        result = TruncatedSvd(a, seed=0).decompose(2)
        values = result.values()
        assert values.shape == (1,)
        np.testing.assert_allclose(values, [np.sqrt(30.0 * 6.0)], rtol=1e-10)
        u, sigma, vt = result.values_vectors()
        assert u.shape == (4, 1)
        assert vt.shape == (1, 3)
        assert np.all(np.isfinite(u))
        np.testing.assert_allclose((u * sigma) @ vt, a, atol=1e-10)

    def test_float32(self, small):
        result = TruncatedSvd(small.astype(np.float32), seed=0).with_precision(1e-2).decompose(2)
        assert result.eigenvalues.dtype == np.float32
        np.testing.assert_allclose(result.values(), [5.0, 3.0], rtol=1e-4)
