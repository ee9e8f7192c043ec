"""Tests for the gain design helpers."""

import numpy as np
import pytest

from state_space_control.control import (
    check_stability,
    integral_gain,
    lqe,
    lqr,
    observer_gains,
    pole_placement,
)


A = np.array([[0.0, 1.0], [-2.0, -3.0]])
B = np.array([[0.0], [1.0]])
C = np.array([[1.0, 0.0]])


# ============================================================================
# Regulator Gains
# ============================================================================


class TestRegulatorGains:
    """Tests for K design."""

    def test_lqr_basic(self):
        """Test LQR gain shape, stability and the Riccati residual."""
        Q = np.diag([10.0, 1.0])
        R = np.array([[1.0]])

        K, S, E = lqr(A, B, Q, R)

        assert K.shape == (1, 2)
        assert np.all(np.real(E) < 0)

        residual = A.T @ S + S @ A - S @ B @ np.linalg.inv(R) @ B.T @ S + Q
        assert np.allclose(residual, 0, atol=1e-8)

    def test_lqr_higher_Q_faster_response(self):
        """Test that a heavier state weight pushes poles further left."""
        _, _, E_low = lqr(A, B, np.diag([1.0, 1.0]), [[1.0]])
        _, _, E_high = lqr(A, B, np.diag([100.0, 1.0]), [[1.0]])

        assert np.max(np.real(E_high)) < np.max(np.real(E_low))

    def test_pole_placement(self):
        """Test that A - B*K has the requested poles."""
        K = pole_placement(A, B, [-5.0, -6.0])

        actual = np.sort(np.linalg.eigvals(A - B @ K).real)
        assert np.allclose(actual, [-6.0, -5.0], atol=1e-6)

    def test_pole_placement_complex(self):
        """Test placement of a complex conjugate pair."""
        K = pole_placement(A, B, [-5 + 5j, -5 - 5j])

        poles = np.linalg.eigvals(A - B @ K)
        assert np.allclose(np.real(poles), [-5.0, -5.0], atol=1e-6)
        assert np.allclose(np.sort(np.abs(np.imag(poles))), [5.0, 5.0], atol=1e-6)


# ============================================================================
# Estimator Gains
# ============================================================================


class TestEstimatorGains:
    """Tests for L design."""

    def test_observer_gains(self):
        """Test that A - L*C has the requested poles."""
        L = observer_gains(A, C, [-10.0, -12.0])

        assert L.shape == (2, 1)
        actual = np.sort(np.linalg.eigvals(A - L @ C).real)
        assert np.allclose(actual, [-12.0, -10.0], atol=1e-6)

    def test_lqe(self):
        """Test the steady-state Kalman gain gives a stable estimator."""
        L, P, E = lqe(A, C, np.diag([0.1, 1.0]), [[0.1]])

        assert L.shape == (2, 1)
        assert P.shape == (2, 2)
        assert np.all(np.real(E) < 0)


# ============================================================================
# Utility Function Tests
# ============================================================================


class TestUtilityFunctions:
    """Tests for stability check and integral gain."""

    def test_check_stability_continuous(self):
        """Test stability check for continuous-time systems."""
        is_stable, poles = check_stability(A, B, [[8.0, 2.0]])
        assert is_stable
        assert np.all(np.real(poles) < 0)

        is_stable, _ = check_stability(A, B, [[-10.0, -5.0]])
        assert not is_stable

    def test_check_stability_discrete(self):
        """Test stability check for discrete-time systems."""
        Ad = np.array([[0.9, 0.1], [-0.1, 0.8]])
        Bd = np.array([[0.01], [0.1]])

        is_stable, poles = check_stability(Ad, Bd, [[0.5, 0.1]], continuous=False)
        assert is_stable
        assert np.all(np.abs(poles) < 1)

    def test_integral_gain_sign(self):
        """Test that positive gains come back negated for w_hat += I*(y - r)."""
        I = integral_gain(1, 1, 0.5)
        assert I.shape == (1, 1)
        assert I[0, 0] == -0.5

    def test_integral_gain_shapes(self):
        """Test U x Y shapes with per-channel gains."""
        I = integral_gain(2, 2, [0.3, 0.7])
        assert np.allclose(I, [[-0.3, 0.0], [0.0, -0.7]])

        I = integral_gain(3, 2, 1.0)
        assert I.shape == (3, 2)
        assert np.allclose(I, [[-1.0, 0.0], [0.0, -1.0], [0.0, 0.0]])

    def test_integral_gain_wrong_length(self):
        """Test that a wrong number of gains is rejected."""
        with pytest.raises(ValueError):
            integral_gain(2, 2, [1.0, 2.0, 3.0])
