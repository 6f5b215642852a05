"""
Tests for the LOBPCG driver state machine.

Validates:
    - initialize(): orthonormal Ritz basis, NoResult on degenerate inputs
    - step(): monotone active mask, iteration counting, Gram latch
    - Two-block fallback when the three-block Rayleigh-Ritz problem fails
    - run(): tagged results, info and timing metadata
"""

import numpy as np
import pytest

from pylobpcg.core.exceptions import (
    ConfigurationError,
    DimensionError,
    NotPositiveDefiniteError,
)
from pylobpcg.lobpcg import (
    Continue,
    Done,
    IterationState,
    LobpcgDriver,
    LobpcgErr,
    LobpcgNoResult,
    LobpcgOk,
)


# ═══════════════════════════════════════════════════════════════════════
# Initialization
# ═══════════════════════════════════════════════════════════════════════


class TestInitialize:

    def test_state_is_orthonormal_ritz_basis(self, rng, diag20):
        driver = LobpcgDriver(diag20, tol=1e-8)
        state = driver.initialize(rng.standard_normal((20, 3)))
        assert isinstance(state, IterationState)
        np.testing.assert_allclose(state.x.T @ state.x, np.eye(3), atol=1e-12)
        np.testing.assert_allclose(state.ax, diag20 @ state.x, atol=1e-12)
        assert np.all(np.diff(state.eigenvalues) <= 0)
        assert state.active_mask.all()
        assert state.iteration == 0

    def test_initial_block_projected(self, rng, diag20):
        y = rng.standard_normal((20, 2))
        driver = LobpcgDriver(diag20, constraints=y)
        state = driver.initialize(rng.standard_normal((20, 3)))
        assert np.max(np.abs(y.T @ state.x)) < 1e-10

    def test_dependent_initial_block_no_result(self, diag20):
        x0 = np.zeros((20, 2))
        x0[0, :] = 1.0
        result = LobpcgDriver(diag20).run(x0)
        assert isinstance(result, LobpcgNoResult)
        assert not result.has_result
        assert result.eigenvalues is None
        assert isinstance(result.error, NotPositiveDefiniteError)
        with pytest.raises(NotPositiveDefiniteError):
            result.unwrap()

    def test_rank_deficient_constraints_no_result(self, rng, diag20):
        y = np.zeros((20, 2))
        y[0, :] = [1.0, 2.0]
        result = LobpcgDriver(diag20, constraints=y).run(rng.standard_normal((20, 2)))
        assert isinstance(result, LobpcgNoResult)
        assert result.error.matrix_name == 'Y^T Y'

    def test_operator_dimension_mismatch(self, rng, diag20):
        with pytest.raises(DimensionError):
            LobpcgDriver(diag20).run(rng.standard_normal((19, 2)))

    def test_preconditioner_dimension_mismatch(self, rng, diag20):
        driver = LobpcgDriver(diag20, preconditioner=np.eye(19))
        with pytest.raises(DimensionError, match="preconditioner"):
            driver.initialize(rng.standard_normal((20, 2)))

    def test_unshaped_preconditioner_accepted(self, rng, diag20):
        driver = LobpcgDriver(diag20, preconditioner=lambda block: block)
        assert isinstance(driver.initialize(rng.standard_normal((20, 2))), IterationState)

    def test_constraint_rows_mismatch(self, rng, diag20):
        driver = LobpcgDriver(diag20, constraints=rng.standard_normal((10, 1)))
        with pytest.raises(DimensionError):
            driver.run(rng.standard_normal((20, 2)))

    def test_operator_returning_wrong_shape(self, rng):
        driver = LobpcgDriver(lambda block: block[:, :1])
        with pytest.raises(DimensionError, match="A: returned block"):
            driver.run(rng.standard_normal((20, 2)))

    def test_block_too_large(self, rng, diag20):
        driver = LobpcgDriver(diag20, constraints=rng.standard_normal((20, 18)))
        with pytest.raises(ConfigurationError):
            driver.run(rng.standard_normal((20, 3)))


# ═══════════════════════════════════════════════════════════════════════
# Single steps
# ═══════════════════════════════════════════════════════════════════════


class TestStep:

    def test_step_advances(self, rng, diag20):
        driver = LobpcgDriver(diag20, tol=1e-12)
        state = driver.initialize(rng.standard_normal((20, 3)))
        outcome = driver.step(state)
        assert isinstance(outcome, Continue)
        assert outcome.state.iteration == 1
        assert outcome.state.p is not None
        assert len(outcome.state.residual_norms_history) == 1

    def test_active_mask_monotone(self, rng, diag20):
        driver = LobpcgDriver(diag20, tol=1e-6)
        state = driver.initialize(rng.standard_normal((20, 3)))
        previous = state.active_mask.copy()
        for _ in range(200):
            outcome = driver.step(state)
            if isinstance(outcome, Done):
                break
            state = outcome.state
            # a column that stopped iterating never becomes active again
            assert not np.any(state.active_mask & ~previous)
            previous = state.active_mask.copy()
        assert isinstance(outcome, Done)

    def test_budget_exhausted(self, rng, diag20):
        driver = LobpcgDriver(diag20, tol=1e-14, max_iter=2)
        state = driver.initialize(rng.standard_normal((20, 2)))
        outcomes = []
        for _ in range(3):
            outcome = driver.step(state)
            outcomes.append(outcome)
            if isinstance(outcome, Done):
                break
            state = outcome.state
        assert isinstance(outcomes[-1], Done)
        assert outcomes[-1].result.n_iter == 2

    def test_iteration_budget_capped(self, diag20):
        assert LobpcgDriver(diag20, max_iter=10_000).iteration_budget(20) == 200
        assert LobpcgDriver(diag20, max_iter=5).iteration_budget(20) == 5
        assert LobpcgDriver(diag20).iteration_budget(20) == 200


class TestGramLatch:

    def test_latch_flips_on_small_residuals(self, rng):
        a = np.diag(np.arange(1.0, 51.0))
        x0 = np.eye(50)[:, -3:] + 1e-12 * rng.standard_normal((50, 3))
        driver = LobpcgDriver(a, tol=1e-15, explicit_gram=False)
        state = driver.initialize(x0)
        assert state.explicit_gram is False
        driver.step(state)
        assert state.explicit_gram is True

    def test_latch_stays_off_on_large_residuals(self, rng, diag20):
        driver = LobpcgDriver(diag20, tol=1e-12, explicit_gram=False)
        state = driver.initialize(rng.standard_normal((20, 2)))
        driver.step(state)
        assert state.explicit_gram is False

    def test_latch_never_resets(self, rng, diag20):
        driver = LobpcgDriver(diag20, tol=1e-12, explicit_gram=True)
        state = driver.initialize(rng.standard_normal((20, 2)))
        for _ in range(3):
            driver.step(state)
        assert state.explicit_gram is True


# ═══════════════════════════════════════════════════════════════════════
# Robustness
# ═══════════════════════════════════════════════════════════════════════


class TestTwoBlockFallback:

    def test_singular_three_block_problem_falls_back(self, random_symmetric):
        """
        Directions duplicating X make the three-block mass matrix exactly
        singular; the step must drop them and continue with [X, R].
        """
        a = random_symmetric
        x = np.eye(20)[:, :3]
        ax = a @ x
        state = IterationState(
            x=x,
            ax=ax,
            eigenvalues=np.diag(a)[:3].copy(),
            active_mask=np.ones(3, dtype=bool),
            p=x.copy(),
            ap=ax.copy(),
        )
        driver = LobpcgDriver(a, tol=1e-10)
        outcome = driver.step(state)
        assert isinstance(outcome, Continue)
        assert outcome.state.n_restarts == 1
        assert outcome.state.iteration == 1
        np.testing.assert_allclose(
            outcome.state.x.T @ outcome.state.x, np.eye(3), atol=1e-10
        )

    def test_restarts_reported(self, random_symmetric):
        a = random_symmetric
        x = np.eye(20)[:, :3]
        state = IterationState(
            x=x,
            ax=a @ x,
            eigenvalues=np.diag(a)[:3].copy(),
            active_mask=np.ones(3, dtype=bool),
            p=x.copy(),
            ap=a @ x,
        )
        driver = LobpcgDriver(a, tol=1e-10, max_iter=1)
        driver.step(state)
        outcome = driver.step(state)
        assert isinstance(outcome, Done)
        assert outcome.result.info['n_restarts'] == 1
        assert outcome.result.has_warning("dropped")

    def test_degenerate_residuals_give_err(self, rng, diag20):
        """A preconditioner that annihilates residuals stops with the best iterate."""
        driver = LobpcgDriver(diag20, preconditioner=np.zeros((20, 20)), tol=1e-10)
        result = driver.run(rng.standard_normal((20, 2)))
        assert isinstance(result, LobpcgErr)
        assert result.has_result
        assert isinstance(result.error, NotPositiveDefiniteError)
        vals, vecs, norms = result.unwrap()
        assert vals.shape == (2,)
        assert vecs.shape == (20, 2)
        assert norms.shape == (2,)


# ═══════════════════════════════════════════════════════════════════════
# Full runs
# ═══════════════════════════════════════════════════════════════════════


class TestRun:

    def test_converges(self, rng, diag20):
        result = LobpcgDriver(diag20, tol=1e-8, max_iter=200).run(
            rng.standard_normal((20, 2))
        )
        assert isinstance(result, LobpcgOk)
        assert result.converged
        np.testing.assert_allclose(result.eigenvalues, [20.0, 19.0], rtol=1e-10)
        assert np.all(result.residual_norms <= 1e-8)

    def test_info_and_timing(self, rng, diag20):
        result = LobpcgDriver(diag20, tol=1e-8).run(rng.standard_normal((20, 2)))
        assert result.method == 'cpu_lobpcg'
        assert result.info['n'] == 20
        assert result.info['block_size'] == 2
        assert result.info['n_iter'] == result.n_iter
        assert len(result.info['residual_norms_history']) == result.n_iter + 1
        assert result.timing['total_seconds'] >= 0.0
        assert 'rayleigh_ritz' in result.timing

    def test_budget_exhausted_is_ok_not_converged(self, rng):
        a = np.diag(np.arange(1.0, 201.0))
        result = LobpcgDriver(a, tol=1e-14, max_iter=2).run(rng.standard_normal((200, 2)))
        assert isinstance(result, LobpcgOk)
        assert not result.converged
        assert result.n_iter == 2
        assert result.has_warning("did not converge")

    def test_best_iterate_reported(self, rng, diag20):
        result = LobpcgDriver(diag20, tol=1e-12, max_iter=5).run(
            rng.standard_normal((20, 2))
        )
        history = result.info['residual_norms_history']
        best_score = min(float(np.sum(norms ** 2)) for norms in history)
        assert float(np.sum(result.residual_norms ** 2)) == pytest.approx(best_score)
