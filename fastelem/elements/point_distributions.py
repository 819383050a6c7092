"""
Node distributions for Lagrange elements. Every function returns `num_points`
strictly increasing coordinates in `[left, right]`, endpoints included.
"""

import numpy as np
from numpy.typing import NDArray

__all__ = ["equispaced_points", "chebyshev_points", "lobatto_points"]


def __dir__() -> list[str]:
    return __all__


def _check_count(num_points: int):
    if num_points < 2:
        raise ValueError(
            f"A node distribution needs at least 2 points, not {num_points}."
        )


def _rescale(x: NDArray, left: float, right: float) -> NDArray:
    """Maps points from [-1,1] onto [left,right]."""
    return left + (right - left) * (x + 1) * 0.5


def equispaced_points(
    num_points: int, left: float = -1.0, right: float = 1.0
) -> NDArray:
    """Evenly spaced nodes."""
    _check_count(num_points)
    return np.linspace(left, right, num_points)


def chebyshev_points(
    num_points: int, left: float = -1.0, right: float = 1.0
) -> NDArray:
    """Chebyshev-Gauss-Lobatto nodes (extrema of the Chebyshev polynomial
    $T_{n}$, `n = num_points - 1`), which cluster toward the endpoints.
    """
    _check_count(num_points)
    n = num_points - 1
    x = -np.cos(np.pi * np.arange(num_points) / n)
    # cos(pi/2) is not exactly zero
    if num_points % 2 == 1:
        x[n // 2] = 0
    return _rescale(x, left, right)


def lobatto_points(num_points: int, left: float = -1.0, right: float = 1.0) -> NDArray:
    """Gauss-Lobatto-Legendre nodes: the endpoints together with the roots of
    $P_n'$, the derivative of the degree `n = num_points - 1` Legendre polynomial.
    """
    _check_count(num_points)
    n = num_points - 1
    if n == 1:
        return np.array([left, right], dtype=np.float64)

    leg_x = np.polynomial.legendre.Legendre.basis(n).deriv().roots()
    x = np.array([-1, *np.sort(np.real(leg_x)), 1])
    return _rescale(x, left, right)
