"""
State-space plant model.

Provides a StateSpaceModel class that wraps numpy arrays for the A, B, C, D
matrices of a continuous-time LTI plant, with dimension validation. The
controller and simulation only ever read from a model, so one instance can
be shared by every loop bound to the same physical plant.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

import numpy as np


def _as_matrix(value: Any) -> np.ndarray:
    return np.atleast_2d(np.array(value, dtype=np.float64))


@dataclass
class StateSpaceModel:
    """
    Continuous-time state-space model: dx/dt = Ax + Bu, y = Cx + Du

    Attributes:
        A: State matrix (X x X)
        B: Input matrix (X x U)
        C: Output matrix (Y x X), defaults to identity (Y = X)
        D: Feedthrough matrix (Y x U), defaults to zero

    The matrices are frozen (read-only) after construction. A model must
    outlive every controller or simulation holding it; they keep a
    reference and never copy it.

    Example:
        # Mass-spring-damper: M*x'' + b*x' + k*x = u
        M, b, k = 1.0, 0.5, 10.0
        A = np.array([[0, 1], [-k/M, -b/M]])
        B = np.array([[0], [1/M]])
        C = np.array([[1, 0]])  # Measure position

        model = StateSpaceModel(A, B, C)
        print(model.inputs, model.outputs)  # 1 1
    """

    A: np.ndarray
    B: np.ndarray
    C: Optional[np.ndarray] = None
    D: Optional[np.ndarray] = None

    def __post_init__(self) -> None:
        """Convert to numpy arrays and validate dimensions."""
        self.A = _as_matrix(self.A)
        self.B = _as_matrix(self.B)

        n = self.A.shape[0]
        m = self.B.shape[1]

        if self.C is None:
            self.C = np.eye(n, dtype=np.float64)
        else:
            self.C = _as_matrix(self.C)

        p = self.C.shape[0]

        if self.D is None:
            self.D = np.zeros((p, m), dtype=np.float64)
        else:
            self.D = _as_matrix(self.D)

        self._validate()

        for mat in (self.A, self.B, self.C, self.D):
            mat.flags.writeable = False

    def _validate(self) -> None:
        """Validate matrix dimensions are consistent."""
        n = self.num_states
        m = self.inputs
        p = self.outputs

        if self.A.shape != (n, n):
            raise ValueError(f"A must be square, got shape {self.A.shape}")
        if self.B.shape != (n, m):
            raise ValueError(f"B shape {self.B.shape} inconsistent with A ({n}x{n}) and {m} inputs")
        if self.C.shape != (p, n):
            raise ValueError(f"C shape {self.C.shape} inconsistent with {p} outputs and {n} states")
        if self.D.shape != (p, m):
            raise ValueError(f"D shape {self.D.shape} inconsistent with {p} outputs and {m} inputs")

    @property
    def num_states(self) -> int:
        """Number of state variables (X)."""
        return self.A.shape[0]

    @property
    def inputs(self) -> int:
        """Number of control inputs (U)."""
        return self.B.shape[1]

    @property
    def outputs(self) -> int:
        """Number of outputs (Y)."""
        return self.C.shape[0]

    @property
    def poles(self) -> np.ndarray:
        """Eigenvalues of A (open-loop poles)."""
        return np.linalg.eigvals(self.A)

    @property
    def is_stable(self) -> bool:
        """
        Check if the open-loop plant is stable.

        A continuous-time system is stable if all poles have negative real parts.
        """
        return bool(np.all(np.real(self.poles) < 0))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "A": self.A.tolist(),
            "B": self.B.tolist(),
            "C": self.C.tolist(),
            "D": self.D.tolist(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StateSpaceModel":
        """
        Build a model from a mapping with keys A, B and optionally C, D.

        Raises:
            ValueError: if data is not a mapping, A or B is missing or the
                dimensions disagree
        """
        if not isinstance(data, dict):
            raise ValueError(f"model must be a mapping of matrices, got {type(data).__name__}")
        missing = [key for key in ("A", "B") if key not in data]
        if missing:
            raise ValueError(f"model is missing matrices: {', '.join(missing)}")
        return cls(data["A"], data["B"], data.get("C"), data.get("D"))

    def __repr__(self) -> str:
        return (
            f"StateSpaceModel(X={self.num_states}, U={self.inputs}, Y={self.outputs}, "
            f"stable={self.is_stable})"
        )
