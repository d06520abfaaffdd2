"""Local coordinate charts on SO(3) used for retraction and linearization.

Each chart maps a tangent vector to a rotation increment applied on the right
(``R * increment(omega)``) and maps a relative rotation ``A = R^T R2`` back to
tangent coordinates. Charts only see plain 3x3 arrays; `rot3.Rot3` wraps them.
"""

from __future__ import annotations

import enum
import logging
from typing import Dict, Union

import numpy as np

from so3 import cayley, exp_so3, hat, log_so3, vee

log = logging.getLogger(__name__)


class ChartModeError(RuntimeError):
    """Unknown chart mode. This is a programming error, not bad input."""


class CoordinatesMode(enum.Enum):
    EXPMAP = "EXPMAP"
    CAYLEY = "CAYLEY"
    SLOW_CAYLEY = "SLOW_CAYLEY"


class Chart:
    """Interface of a local chart around a rotation."""

    mode: CoordinatesMode

    def increment(self, omega: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    def coordinates(self, A: np.ndarray) -> np.ndarray:
        raise NotImplementedError


class ExpmapChart(Chart):
    """Exact chart given by the exponential map."""

    mode = CoordinatesMode.EXPMAP

    def increment(self, omega: np.ndarray) -> np.ndarray:
        return exp_so3(omega)

    def coordinates(self, A: np.ndarray) -> np.ndarray:
        return log_so3(A)


class FastCayleyChart(Chart):
    """Closed-form Cayley chart, no trigonometry.

    Agrees with the exponential map only to first order around the origin.
    """

    mode = CoordinatesMode.CAYLEY

    def increment(self, omega: np.ndarray) -> np.ndarray:
        x, y, z = np.asarray(omega, dtype=float).reshape(3)
        x2, y2, z2 = x * x, y * y, z * z
        xy, xz, yz = x * y, x * z, y * z
        f = 1.0 / (4.0 + x2 + y2 + z2)
        _2f = 2.0 * f
        return np.array(
            [
                [(4 + x2 - y2 - z2) * f, (xy - 2 * z) * _2f, (xz + 2 * y) * _2f],
                [(xy + 2 * z) * _2f, (4 - x2 + y2 - z2) * f, (yz - 2 * x) * _2f],
                [(xz - 2 * y) * _2f, (yz + 2 * x) * _2f, (4 - x2 - y2 + z2) * f],
            ]
        )

    def coordinates(self, A: np.ndarray) -> np.ndarray:
        A = np.asarray(A, dtype=float).reshape(3, 3)
        a, b, c = A[0]
        d, e, f = A[1]
        g, h, i = A[2]
        di, ce, cd, fg = d * i, c * e, c * d, f * g
        M = 1 + e - f * h + i + e * i
        K = 2.0 / (cd * h + M + a * M - g * (c + ce) - b * (d + di - fg))
        x = (a * f - cd + f) * K
        y = (b * f - ce - c) * K
        z = (fg - di - d) * K
        return -2.0 * np.array([x, y, z])


class ReferenceCayleyChart(Chart):
    """Cayley chart through the generic matrix transform.

    Slower than FastCayleyChart but written directly from the definition,
    so the two can be checked against each other.
    """

    mode = CoordinatesMode.SLOW_CAYLEY

    def increment(self, omega: np.ndarray) -> np.ndarray:
        return cayley(-hat(omega) / 2.0)

    def coordinates(self, A: np.ndarray) -> np.ndarray:
        Omega = cayley(A)
        return -2.0 * vee(Omega)


_CHARTS: Dict[CoordinatesMode, Chart] = {
    chart.mode: chart for chart in (ExpmapChart(), FastCayleyChart(), ReferenceCayleyChart())
}

ModeLike = Union[CoordinatesMode, str]


def get_chart(mode: ModeLike) -> Chart:
    """Return the chart for a mode given as enum member or its name."""
    try:
        key = mode if isinstance(mode, CoordinatesMode) else CoordinatesMode(mode)
        return _CHARTS[key]
    except (ValueError, KeyError):
        log.critical("Invalid coordinates mode %r", mode)
        raise ChartModeError(f"Invalid coordinates mode {mode!r}") from None
