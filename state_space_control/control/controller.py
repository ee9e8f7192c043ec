"""
Observer-based state-feedback controller.

The controller combines three pieces around a shared plant model:

- a Luenberger-style estimator integrated with forward Euler,
  dx_hat/dt = (A - L*C) x_hat + B*u + L*y
- a regulator u = -K*x_hat offset by a reference feedforward N_bar*r
- an integral term w_hat accumulating I*(y - r) to reject constant disturbances

All vectors and matrices are preallocated at construction with the
dimensions of the model, and update() works entirely in place, so a control
tick never allocates arrays.

Example:
    model = StateSpaceModel(A, B, C)
    ctrl = StateSpaceController(model)
    ctrl.K = pole_placement(A, B, [-5, -6])
    ctrl.L = observer_gains(A, C, [-20, -25])
    ctrl.initialise()

    ctrl.r = [1.0]
    u = ctrl.update(y, dt=0.01)
"""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np
from numpy.typing import ArrayLike

from .model import StateSpaceModel

log = logging.getLogger(__name__)


def _copy_into(buf: np.ndarray, value: ArrayLike, name: str) -> None:
    """Copy value into a fixed-shape buffer, accepting squeezable shapes."""
    arr = np.asarray(value, dtype=np.float64)
    if arr.shape != buf.shape:
        if arr.size != buf.size or np.squeeze(arr).shape != np.squeeze(buf).shape:
            raise ValueError(f"{name} must have shape {buf.shape}, got {arr.shape}")
        arr = arr.reshape(buf.shape)
    np.copyto(buf, arr)


def _as_vector(value: ArrayLike, n: int, name: str) -> np.ndarray:
    arr = np.asarray(value, dtype=np.float64)
    if arr.shape != (n,):
        if arr.size != n:
            raise ValueError(f"{name} must have {n} elements, got shape {arr.shape}")
        arr = arr.reshape(n)
    return arr


class StateSpaceController:
    """
    State-feedback controller with estimator, reference tracking and integral action.

    Attributes:
        model: Plant model (borrowed, must outlive the controller)
        x_hat: State estimate (X)
        u: Last computed control input (U)
        r: Reference, same dimension as the measured output (Y)
        w_hat: Disturbance estimate accumulated by the integral term (U)
        K: Regulator gain (U x X)
        L: Estimator gain (X x Y), zero disables estimator correction
        I: Integral gain (U x Y), zero disables integral action

    Assigning to any of these copies into the existing buffer after a shape
    check; reading returns the live buffer.

    ALC and N_bar are derived by initialise() and are zero until then. They
    are not refreshed automatically: call initialise() again after changing
    K, L or the model.
    """

    def __init__(
        self,
        model: StateSpaceModel,
        K: Optional[ArrayLike] = None,
        L: Optional[ArrayLike] = None,
        I: Optional[ArrayLike] = None,
    ) -> None:
        self.model = model

        n = model.num_states
        m = model.inputs
        p = model.outputs

        self._x_hat = np.zeros(n)
        self._u = np.zeros(m)
        self._r = np.zeros(p)
        self._w_hat = np.zeros(m)

        self._K = np.zeros((m, n))
        self._L = np.zeros((n, p))
        self._I = np.zeros((m, p))

        self._ALC = np.zeros((n, n))
        self._N_bar = np.zeros((m, p))

        # Scratch space for update()
        self._dx = np.zeros(n)
        self._tmp_x = np.zeros(n)
        self._tmp_u = np.zeros(m)
        self._err = np.zeros(p)

        self.pseudo_inverse: Optional[str] = None

        if K is not None:
            self.K = K
        if L is not None:
            self.L = L
        if I is not None:
            self.I = I

    # ------------------------------------------------------------------
    # Control variables
    # ------------------------------------------------------------------

    @property
    def x_hat(self) -> np.ndarray:
        return self._x_hat

    @x_hat.setter
    def x_hat(self, value: ArrayLike) -> None:
        _copy_into(self._x_hat, value, "x_hat")

    @property
    def u(self) -> np.ndarray:
        return self._u

    @u.setter
    def u(self, value: ArrayLike) -> None:
        _copy_into(self._u, value, "u")

    @property
    def r(self) -> np.ndarray:
        return self._r

    @r.setter
    def r(self, value: ArrayLike) -> None:
        _copy_into(self._r, value, "r")

    @property
    def w_hat(self) -> np.ndarray:
        return self._w_hat

    @w_hat.setter
    def w_hat(self, value: ArrayLike) -> None:
        _copy_into(self._w_hat, value, "w_hat")

    # ------------------------------------------------------------------
    # Gains
    # ------------------------------------------------------------------

    @property
    def K(self) -> np.ndarray:
        return self._K

    @K.setter
    def K(self, value: ArrayLike) -> None:
        _copy_into(self._K, value, "K")

    @property
    def L(self) -> np.ndarray:
        return self._L

    @L.setter
    def L(self, value: ArrayLike) -> None:
        _copy_into(self._L, value, "L")

    @property
    def I(self) -> np.ndarray:
        return self._I

    @I.setter
    def I(self, value: ArrayLike) -> None:
        _copy_into(self._I, value, "I")

    @property
    def ALC(self) -> np.ndarray:
        """Cached A - L*C (read-only view)."""
        view = self._ALC.view()
        view.flags.writeable = False
        return view

    @property
    def N_bar(self) -> np.ndarray:
        """Reference feedforward gain (read-only view)."""
        view = self._N_bar.view()
        view.flags.writeable = False
        return view

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def initialise(self) -> None:
        """
        Precompute the reference feedforward gain N_bar and A - L*C.

        N_bar is found from the steady-state requirement

            [A B] [x_ss]   [0]
            [C D] [u_ss] = [r]

        by taking a pseudo-inverse of the aggregated matrix. With fewer
        outputs than inputs the right inverse sys'(sys sys')^-1 is used,
        otherwise the left inverse (sys' sys)^-1 sys'; either way the smaller
        square matrix is the one inverted. The columns of the inverse that
        multiply r give P_top (X x Y) and P_bot (U x Y), and

            N_bar = K*P_top + P_bot

        Raises:
            ValueError: if the matrix to invert is singular. The model and
                gains are expected to satisfy the rank condition; nearly
                singular systems are not detected.
        """
        model = self.model
        n = model.num_states

        sys = np.block([[model.A, model.B], [model.C, model.D]])

        try:
            if model.outputs < model.inputs:
                sys_inv = sys.T @ np.linalg.inv(sys @ sys.T)
                branch = "right"
            else:
                sys_inv = np.linalg.inv(sys.T @ sys) @ sys.T
                branch = "left"
        except np.linalg.LinAlgError as e:
            log.error("Feedforward gain derivation failed for %r: %s", model, e)
            raise ValueError(
                "Cannot compute reference feedforward: aggregated system matrix is singular"
            ) from e

        P_top = sys_inv[:n, n:]
        P_bot = sys_inv[n:, n:]

        np.copyto(self._N_bar, self._K @ P_top + P_bot)
        np.copyto(self._ALC, model.A - self._L @ model.C)

        self.pseudo_inverse = branch
        log.debug("Initialised controller (%s inverse): N_bar=%s", branch, self._N_bar.tolist())

    def reset(self) -> None:
        """Zero the estimate, control input and disturbance estimate."""
        self._x_hat.fill(0.0)
        self._u.fill(0.0)
        self._w_hat.fill(0.0)

    # ------------------------------------------------------------------
    # Control tick
    # ------------------------------------------------------------------

    def update(self, y: ArrayLike, dt: float = 0.0) -> np.ndarray:
        """
        Run one control tick.

        Args:
            y: Measured plant output (Y)
            dt: Time since the previous tick in seconds. 0 freezes the
                estimator and integrator but still recomputes u.

        Returns:
            The control input to apply (the controller's own u buffer)
        """
        y = _as_vector(y, self.model.outputs, "y")
        B = self.model.B

        # x_hat += (ALC*x_hat + B*u + L*y) * dt, u still holds the previous input
        np.matmul(self._ALC, self._x_hat, out=self._dx)
        np.matmul(B, self._u, out=self._tmp_x)
        self._dx += self._tmp_x
        np.matmul(self._L, y, out=self._tmp_x)
        self._dx += self._tmp_x
        self._dx *= dt
        self._x_hat += self._dx

        # Drive the state to zero
        np.matmul(self._K, self._x_hat, out=self._u)
        np.negative(self._u, out=self._u)

        # Offset towards the reference
        np.matmul(self._N_bar, self._r, out=self._tmp_u)
        self._u += self._tmp_u

        # Wind up against a (presumably) constant disturbance
        np.subtract(y, self._r, out=self._err)
        np.matmul(self._I, self._err, out=self._tmp_u)
        self._tmp_u *= dt
        self._w_hat += self._tmp_u
        self._u += self._w_hat

        return self._u

    def __repr__(self) -> str:
        m = self.model
        state = "initialised" if self.pseudo_inverse else "uninitialised"
        return f"StateSpaceController(X={m.num_states}, U={m.inputs}, Y={m.outputs}, {state})"
