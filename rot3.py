"""Rot3: 3D rotation stored as an orthonormal matrix, with analytic Jacobians.

Jacobians follow one convention throughout: they are taken with respect to a
right (body frame) perturbation ``R * Exp(d)`` of each rotation argument, and
with respect to the tangent of the result for rotation-valued outputs.
A Jacobian is requested by passing a writable (3, 3) array as ``H``/``H1``/
``H2``; it is filled in place. Passing ``None`` skips the computation.
"""

from __future__ import annotations

from typing import Optional, Sequence, Union

import numpy as np
from scipy.spatial.transform import Rotation

import so3
from retraction import ModeLike, get_chart
from so3_config import get_config

Array = np.ndarray
Jacobian = Optional[np.ndarray]

_I3 = np.eye(3)
_I3.flags.writeable = False


def _as_point(p) -> Array:
    p = np.asarray(p, dtype=float)
    if p.shape != (3,):
        raise ValueError(f"Expected a 3-vector, got shape {p.shape}")
    return p


class Rot3:
    """Immutable rotation in SO(3), columns r1, r2, r3 of a 3x3 matrix."""

    __slots__ = ("_R",)

    def __init__(self, matrix: Optional[Array] = None) -> None:
        if matrix is None:
            R = np.eye(3)
        else:
            R = np.array(matrix, dtype=float)
            if R.shape != (3, 3):
                raise ValueError(f"Rot3 expects a 3x3 matrix, got shape {R.shape}")
        R.flags.writeable = False
        self._R = R

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def identity(cls) -> Rot3:
        return cls()

    @classmethod
    def from_matrix(cls, matrix: Array) -> Rot3:
        """Take columns of `matrix` as they are; orthonormality is not checked."""
        return cls(matrix)

    @classmethod
    def from_columns(cls, r1: Sequence[float], r2: Sequence[float], r3: Sequence[float]) -> Rot3:
        return cls(np.column_stack([_as_point(r1), _as_point(r2), _as_point(r3)]))

    @classmethod
    def from_entries(
        cls,
        R11: float, R12: float, R13: float,
        R21: float, R22: float, R23: float,
        R31: float, R32: float, R33: float,
    ) -> Rot3:
        """Build from nine entries given row by row."""
        return cls(np.array([[R11, R12, R13], [R21, R22, R23], [R31, R32, R33]], dtype=float))

    @classmethod
    def from_quaternion(cls, q: Union[Rotation, Sequence[float]]) -> Rot3:
        """Build from a unit quaternion.

        Args:
            q: scipy Rotation, or scalar-last [x, y, z, w] coefficients.
        """
        if not isinstance(q, Rotation):
            q = np.asarray(q, dtype=float)
            if q.shape != (4,):
                raise ValueError(f"Quaternion must have 4 coefficients, got shape {q.shape}")
            q = Rotation.from_quat(q)
        return cls(q.as_matrix())

    @classmethod
    def Rx(cls, t: float) -> Rot3:
        return cls(so3.rot_x(t))

    @classmethod
    def Ry(cls, t: float) -> Rot3:
        return cls(so3.rot_y(t))

    @classmethod
    def Rz(cls, t: float) -> Rot3:
        return cls(so3.rot_z(t))

    @classmethod
    def RzRyRx(cls, x: float, y: float, z: float) -> Rot3:
        """Rz(z) * Ry(y) * Rx(x) from expanded trigonometric products."""
        return cls(so3.rz_ry_rx(x, y, z))

    # ------------------------------------------------------------------
    # Exponential and logarithm maps
    # ------------------------------------------------------------------

    @classmethod
    def rodriguez(cls, axis: Sequence[float], angle: float) -> Rot3:
        """Rotation by `angle` about a unit `axis`."""
        return cls(so3.rodrigues(axis, angle))

    @classmethod
    def Expmap(cls, omega: Sequence[float], H: Jacobian = None) -> Rot3:
        """Exponential map of a rotation vector.

        H, if given, receives the right Jacobian Jr(omega).
        """
        if H is not None:
            H[...] = so3.right_jacobian(omega)
        return cls(so3.exp_so3(omega))

    @staticmethod
    def Logmap(R: Rot3, H: Jacobian = None) -> Array:
        """Logarithm map; inverse of Expmap for angles below pi.

        H, if given, receives Jr^{-1}(Logmap(R)).
        """
        omega = so3.log_so3(R._R)
        if H is not None:
            H[...] = so3.right_jacobian_inv(omega)
        return omega

    # ------------------------------------------------------------------
    # Group operations
    # ------------------------------------------------------------------

    def compose(self, R2: Rot3, H1: Jacobian = None, H2: Jacobian = None) -> Rot3:
        if H1 is not None:
            H1[...] = R2._R.T
        if H2 is not None:
            H2[...] = _I3
        return Rot3(self._R @ R2._R)

    def inverse(self, H: Jacobian = None) -> Rot3:
        if H is not None:
            H[...] = -self._R
        return Rot3(self._R.T)

    def between(self, R2: Rot3, H1: Jacobian = None, H2: Jacobian = None) -> Rot3:
        """Relative rotation self^T * R2."""
        if H1 is not None:
            H1[...] = -(R2._R.T @ self._R)
        if H2 is not None:
            H2[...] = _I3
        return Rot3(self._R.T @ R2._R)

    def rotate(self, p: Sequence[float], H1: Jacobian = None, H2: Jacobian = None) -> Array:
        """Rotate point p: R * p."""
        p = _as_point(p)
        if H1 is not None:
            H1[...] = self._R @ so3.hat(-p)
        if H2 is not None:
            H2[...] = self._R
        return self._R @ p

    def unrotate(self, p: Sequence[float], H1: Jacobian = None, H2: Jacobian = None) -> Array:
        """Rotate point p by the inverse rotation: R^T * p."""
        q = self._R.T @ _as_point(p)
        if H1 is not None:
            H1[...] = so3.hat(q)
        if H2 is not None:
            H2[...] = self._R.T
        return q

    def __mul__(self, other):
        if isinstance(other, Rot3):
            return self.compose(other)
        try:
            return self.rotate(other)
        except ValueError:
            return NotImplemented

    # ------------------------------------------------------------------
    # Manifold
    # ------------------------------------------------------------------

    dim = 3

    def retract(self, omega: Sequence[float], mode: Optional[ModeLike] = None) -> Rot3:
        """Rotation at tangent coordinates `omega` in the chart centred here."""
        chart = get_chart(get_config().default_mode if mode is None else mode)
        return Rot3(self._R @ chart.increment(omega))

    def local_coordinates(self, R2: Rot3, mode: Optional[ModeLike] = None) -> Array:
        """Tangent coordinates of R2 in the chart centred here."""
        chart = get_chart(get_config().default_mode if mode is None else mode)
        return chart.coordinates(self._R.T @ R2._R)

    # ------------------------------------------------------------------
    # Euler angles
    # ------------------------------------------------------------------

    def xyz(self) -> Array:
        """Angles (x, y, z) such that self == RzRyRx(x, y, z)."""
        _, q = so3.rq(self._R)
        return q

    def ypr(self) -> Array:
        x, y, z = self.xyz()
        return np.array([z, y, x])

    def rpy(self) -> Array:
        return self.xyz()

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def matrix(self) -> Array:
        return self._R.copy()

    def transpose(self) -> Array:
        return self._R.T.copy()

    def r1(self) -> Array:
        return self._R[:, 0].copy()

    def r2(self) -> Array:
        return self._R[:, 1].copy()

    def r3(self) -> Array:
        return self._R[:, 2].copy()

    def column(self, index: int) -> Array:
        """Column 1, 2 or 3."""
        if index not in (1, 2, 3):
            raise ValueError(f"Argument to Rot3.column must be 1, 2, or 3, got {index!r}")
        return self._R[:, index - 1].copy()

    def to_quaternion(self) -> Rotation:
        return Rotation.from_matrix(self._R)

    def equals(self, other: Rot3, tol: float = 1e-9) -> bool:
        return bool(np.all(np.abs(self._R - other._R) <= tol))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Rot3):
            return NotImplemented
        return self.equals(other)

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        rows = np.array2string(self._R, precision=6, separator=", ", suppress_small=True)
        return f"{self.__class__.__name__}({rows})"


__all__ = ["Rot3", "Jacobian"]
