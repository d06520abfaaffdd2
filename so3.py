"""Matrix-level SO(3) primitives: Rodrigues/log maps, Jacobians, Cayley and RQ."""

from __future__ import annotations

import logging
import math
from typing import Tuple

import numpy as np
import scipy.linalg

from so3_config import get_config

log = logging.getLogger(__name__)

_EXPMAP_IDENTITY = 1e-10
_TRACE_NEAR_PI = 1e-10
_TRACE_NEAR_ZERO = 1e-7
_SMALL_ANGLE = 1e-8


class DomainError(ValueError):
    """Raised when an argument is outside the mathematical domain of a map."""


def hat(phi: np.ndarray) -> np.ndarray:
    """Return skew-symmetric matrix (hat operator) of a 3-vector.

    Args:
        phi: Array-like shape (3,).

    Returns:
        3x3 skew-symmetric matrix.
    """
    phi = np.asarray(phi, dtype=float).reshape(3)
    return np.array(
        [
            [0.0, -phi[2], phi[1]],
            [phi[2], 0.0, -phi[0]],
            [-phi[1], phi[0], 0.0],
        ]
    )


def vee(Phi: np.ndarray) -> np.ndarray:
    """Return vector (vee operator) of a skew-symmetric matrix.

    Args:
        Phi: 3x3 skew-symmetric matrix.

    Returns:
        Vector shape (3,).
    """
    Phi = np.asarray(Phi, dtype=float).reshape(3, 3)
    return np.array([Phi[2, 1], Phi[0, 2], Phi[1, 0]], dtype=float)


def rot_x(t: float) -> np.ndarray:
    st, ct = math.sin(t), math.cos(t)
    return np.array([[1.0, 0.0, 0.0], [0.0, ct, -st], [0.0, st, ct]])


def rot_y(t: float) -> np.ndarray:
    st, ct = math.sin(t), math.cos(t)
    return np.array([[ct, 0.0, st], [0.0, 1.0, 0.0], [-st, 0.0, ct]])


def rot_z(t: float) -> np.ndarray:
    st, ct = math.sin(t), math.cos(t)
    return np.array([[ct, -st, 0.0], [st, ct, 0.0], [0.0, 0.0, 1.0]])


def rz_ry_rx(x: float, y: float, z: float) -> np.ndarray:
    """Return Rz(z) @ Ry(y) @ Rx(x) without forming the three factors."""
    cx, sx = math.cos(x), math.sin(x)
    cy, sy = math.cos(y), math.sin(y)
    cz, sz = math.cos(z), math.sin(z)
    ss_ = sx * sy
    cs_ = cx * sy
    sc_ = sx * cy
    cc_ = cx * cy
    c_s = cx * sz
    s_s = sx * sz
    _cs = cy * sz
    _cc = cy * cz
    s_c = sx * cz
    c_c = cx * cz
    ssc, csc, sss, css = ss_ * cz, cs_ * cz, ss_ * sz, cs_ * sz
    return np.array(
        [
            [_cc, -c_s + ssc, s_s + csc],
            [_cs, c_c + sss, -s_c + css],
            [-sy, sc_, cc_],
        ]
    )


def rodrigues(axis: np.ndarray, angle: float) -> np.ndarray:
    """Rotation of `angle` radians about a unit `axis` (Rodrigues formula).

    R = I + sin(t) K + (1 - cos(t)) K^2, written out entry by entry from the
    outer product of the axis. The axis is not renormalised; with
    ``check_preconditions`` enabled a non-unit axis raises DomainError.
    """
    wx, wy, wz = np.asarray(axis, dtype=float).reshape(3)
    wwTxx, wwTyy, wwTzz = wx * wx, wy * wy, wz * wz

    config = get_config()
    if config.check_preconditions:
        l_n = wwTxx + wwTyy + wwTzz
        if abs(l_n - 1.0) > config.unit_axis_tol:
            raise DomainError(f"rodrigues: axis must have unit length, got squared norm {l_n!r}")

    c, s = math.cos(angle), math.sin(angle)
    c_1 = 1.0 - c
    swx, swy, swz = wx * s, wy * s, wz * s
    C00, C01, C02 = c_1 * wwTxx, c_1 * wx * wy, c_1 * wx * wz
    C11, C12 = c_1 * wwTyy, c_1 * wy * wz
    C22 = c_1 * wwTzz

    return np.array(
        [
            [c + C00, -swz + C01, swy + C02],
            [swz + C01, c + C11, -swx + C12],
            [-swy + C02, swx + C12, c + C22],
        ]
    )


def exp_so3(phi: np.ndarray) -> np.ndarray:
    """SO(3) exponential map of a rotation vector."""
    phi = np.asarray(phi, dtype=float).reshape(3)
    theta = float(np.linalg.norm(phi))
    if theta < _EXPMAP_IDENTITY:
        log.debug("exp_so3: |phi|=%g below %g, returning identity", theta, _EXPMAP_IDENTITY)
        return np.eye(3)
    return rodrigues(phi / theta, theta)


def log_so3(R: np.ndarray) -> np.ndarray:
    """SO(3) logarithm map.

    Three cases on the trace: angle near pi (axis recovered from a column
    whose diagonal entry is not -1), angle near zero (second order Taylor
    expansion of theta / (2 sin theta)), and the generic closed form.

    Args:
        R: Rotation matrix shape (3, 3).

    Returns:
        Axis-angle vector phi in R^3.
    """
    R = np.asarray(R, dtype=float).reshape(3, 3)
    tr = R[0, 0] + R[1, 1] + R[2, 2]

    if abs(tr + 1.0) < _TRACE_NEAR_PI:
        log.debug("log_so3: trace %r at -1, using pi branch", tr)
        for i in (2, 1):
            if abs(R[i, i] + 1.0) > _TRACE_NEAR_PI:
                break
        else:
            i = 0
        axis = R[:, i].copy()
        axis[i] += 1.0
        return (math.pi / math.sqrt(2.0 + 2.0 * R[i, i])) * axis

    tr_3 = tr - 3.0  # never positive for a rotation
    if tr_3 < -_TRACE_NEAR_ZERO:
        cos_theta = min(max((tr - 1.0) / 2.0, -1.0), 1.0)
        theta = math.acos(cos_theta)
        magnitude = theta / (2.0 * math.sin(theta))
    else:
        log.debug("log_so3: trace %r near 3, using Taylor expansion", tr)
        magnitude = 0.5 - tr_3 * tr_3 / 12.0

    return magnitude * np.array([R[2, 1] - R[1, 2], R[0, 2] - R[2, 0], R[1, 0] - R[0, 1]])


def right_jacobian(phi: np.ndarray) -> np.ndarray:
    """Right Jacobian of SO(3), J_r(phi)."""
    phi = np.asarray(phi, dtype=float).reshape(3)
    theta = float(np.linalg.norm(phi))
    Phi = hat(phi)
    Phi2 = Phi @ Phi

    if theta < _SMALL_ANGLE:
        return np.eye(3) - 0.5 * Phi + (1.0 / 6.0) * Phi2

    a = (1.0 - np.cos(theta)) / (theta**2)
    b = (theta - np.sin(theta)) / (theta**3)
    return np.eye(3) - a * Phi + b * Phi2


def right_jacobian_inv(phi: np.ndarray) -> np.ndarray:
    """Inverse of right Jacobian of SO(3), J_r(phi)^{-1}."""
    phi = np.asarray(phi, dtype=float).reshape(3)
    theta = float(np.linalg.norm(phi))
    Phi = hat(phi)
    Phi2 = Phi @ Phi

    if theta < _SMALL_ANGLE:
        return np.eye(3) + 0.5 * Phi + (1.0 / 12.0) * Phi2

    half_theta = 0.5 * theta
    cot_half = 1.0 / np.tan(half_theta)
    c = (1.0 / theta**2) * (1.0 - half_theta * cot_half)
    return np.eye(3) + 0.5 * Phi + c * Phi2


def cayley(A: np.ndarray) -> np.ndarray:
    """Generic Cayley transform (I - A)(I + A)^{-1} of a square matrix.

    The two factors commute, so this is solved as (I + A) X = (I - A).
    The transform is its own inverse wherever I + A is invertible.
    """
    A = np.asarray(A, dtype=float)
    n = A.shape[0]
    if A.shape != (n, n):
        raise ValueError(f"cayley expects a square matrix, got shape {A.shape}")
    I = np.eye(n)
    return scipy.linalg.solve(I + A, I - A)


def rq(A: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Decompose A into an upper triangular R and angles (x, y, z).

    Eliminates A[2,1], A[2,0] and A[1,0] in that order by right-multiplying
    with Rx(-x), Ry(-y) and Rz(-z). For a rotation the returned R is the
    identity up to round-off and A == Rz(z) Ry(y) Rx(x).

    Returns:
        R: 3x3 matrix left after elimination.
        xyz: Angles shape (3,).
    """
    A = np.asarray(A, dtype=float).reshape(3, 3)

    x = -math.atan2(-A[2, 1], A[2, 2])
    B = A @ rot_x(-x)

    y = -math.atan2(B[2, 0], B[2, 2])
    C = B @ rot_y(-y)

    z = -math.atan2(-C[1, 0], C[1, 1])
    R = C @ rot_z(-z)

    return R, np.array([x, y, z])
