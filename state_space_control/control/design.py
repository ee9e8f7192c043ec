"""
Gain design helpers using scipy.

Produces the K, L and I matrices consumed by StateSpaceController. None of
these run inside the control loop; they are meant for offline design or for
resolving gain recipes in a configuration file.
"""

from __future__ import annotations

from typing import Optional, Tuple, Union

import numpy as np
from numpy.typing import ArrayLike
from scipy.linalg import solve_continuous_are
from scipy.signal import place_poles


def _mat(value: ArrayLike) -> np.ndarray:
    return np.atleast_2d(np.asarray(value, dtype=np.float64))


def lqr(
    A: ArrayLike,
    B: ArrayLike,
    Q: ArrayLike,
    R: ArrayLike,
    N: Optional[ArrayLike] = None,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Compute the continuous-time LQR regulator gain K.

    Minimizes J = integral(x'Qx + u'Ru + 2x'Nu) dt

    Args:
        A: State matrix (X x X)
        B: Input matrix (X x U)
        Q: State cost (X x X), positive semi-definite
        R: Input cost (U x U), positive definite
        N: Cross-term (X x U), defaults to zero

    Returns:
        K: Regulator gain (U x X), for u = -K @ x_hat
        S: Solution of the algebraic Riccati equation
        E: Closed-loop eigenvalues of A - B*K

    Example:
        A = np.array([[0, 1], [-10, -0.5]])
        B = np.array([[0], [1]])
        K, S, E = lqr(A, B, np.diag([100, 1]), [[1]])
    """
    A, B, Q, R = _mat(A), _mat(B), _mat(Q), _mat(R)
    N = np.zeros((A.shape[0], B.shape[1])) if N is None else _mat(N)

    # A'S + SA - (SB + N)R^-1(B'S + N') + Q = 0
    S = solve_continuous_are(A, B, Q, R, s=N)

    K = np.linalg.solve(R, B.T @ S + N.T)
    E = np.linalg.eigvals(A - B @ K)

    return K, S, E


def pole_placement(
    A: ArrayLike,
    B: ArrayLike,
    poles: ArrayLike,
) -> np.ndarray:
    """
    Regulator gain K placing the eigenvalues of A - B*K at the given poles.

    Returns:
        K: Gain matrix (U x X)
    """
    result = place_poles(_mat(A), _mat(B), np.asarray(poles, dtype=np.complex128))
    return result.gain_matrix


def observer_gains(
    A: ArrayLike,
    C: ArrayLike,
    poles: ArrayLike,
) -> np.ndarray:
    """
    Estimator gain L placing the eigenvalues of A - L*C at the given poles.

    Solved as the dual problem: place the poles of A' - C'*L'.

    Returns:
        L: Estimator gain (X x Y)

    Note:
        Observer poles are usually chosen 3-5x faster than the regulator poles.
    """
    return pole_placement(_mat(A).T, _mat(C).T, poles).T


def lqe(
    A: ArrayLike,
    C: ArrayLike,
    Q: ArrayLike,
    R: ArrayLike,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Steady-state Kalman estimator gain.

    Args:
        A: State matrix (X x X)
        C: Output matrix (Y x X)
        Q: Process noise covariance (X x X)
        R: Measurement noise covariance (Y x Y)

    Returns:
        L: Estimator gain (X x Y)
        P: Estimation error covariance
        E: Eigenvalues of A - L*C
    """
    A, C, Q, R = _mat(A), _mat(C), _mat(Q), _mat(R)

    # A*P + P*A' - P*C'*R^-1*C*P + Q = 0
    P = solve_continuous_are(A.T, C.T, Q, R)

    L = P @ C.T @ np.linalg.inv(R)
    E = np.linalg.eigvals(A - L @ C)

    return L, P, E


def check_stability(
    A: ArrayLike,
    B: ArrayLike,
    K: ArrayLike,
    continuous: bool = True,
) -> Tuple[bool, np.ndarray]:
    """
    Check whether A - B*K is stable.

    Args:
        continuous: True for continuous-time (poles in the left half-plane),
                    False for discrete-time (poles inside the unit circle)

    Returns:
        Tuple of (is_stable, poles)
    """
    poles = np.linalg.eigvals(_mat(A) - _mat(B) @ _mat(K))

    if continuous:
        return bool(np.all(np.real(poles) < 0)), poles
    return bool(np.all(np.abs(poles) < 1)), poles


def integral_gain(
    n_inputs: int,
    n_outputs: int,
    ki: Union[float, ArrayLike],
) -> np.ndarray:
    """
    Diagonal integral gain I (U x Y).

    The controller winds up w_hat += I*(y - r)*dt and adds w_hat to u, so a
    positive ki must appear with a negative sign for the correction to
    oppose the tracking error. The sign is applied here: pass positive
    gains.

    Args:
        n_inputs: Number of control inputs (U)
        n_outputs: Number of measured outputs (Y)
        ki: Scalar gain or one gain per input/output pair (min(U, Y) values)

    Example:
        I = integral_gain(1, 1, 5.0)   # [[-5.0]]
    """
    k = min(n_inputs, n_outputs)
    ki = np.atleast_1d(np.asarray(ki, dtype=np.float64))

    if ki.size == 1:
        ki = np.full(k, ki[0])

    if ki.size != k:
        raise ValueError(f"ki must have {k} elements, got {ki.size}")

    I = np.zeros((n_inputs, n_outputs))
    I[np.arange(k), np.arange(k)] = -ki
    return I
