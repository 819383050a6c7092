"""
Gauss-Jacobi quadrature on [-1,1]. The rule with `n` points integrates
$\\int_{-1}^{1} (1-x)^\\alpha (1+x)^\\beta f(x) ~dx$ exactly whenever `f` is a
polynomial of degree at most `2n - 1`.

Gauss-Legendre is recovered with `alpha = beta = 0`, Gauss-Gegenbauer with
`alpha = beta`, and Gauss-Chebyshev of the first (second) kind with
`alpha = beta = -0.5` (`0.5`).
"""

from dataclasses import dataclass
import math

import numpy as np
from numpy.typing import NDArray

__all__ = ["GaussJacobiQuadrature", "gauss_legendre"]


def __dir__() -> list[str]:
    return __all__


def _jacobi_recurrence(n: int, alpha: float, beta: float) -> tuple[NDArray, NDArray]:
    """Diagonal and off-diagonal of the symmetric Jacobi matrix for the orthonormal
    Jacobi polynomials."""
    ab = alpha + beta
    k = np.arange(1, n, dtype=np.float64)

    diag = np.empty(n)
    diag[0] = (beta - alpha) / (ab + 2)
    diag[1:] = (beta**2 - alpha**2) / ((2 * k + ab) * (2 * k + ab + 2))

    offdiag_sq = np.empty(n - 1)
    if n > 1:
        # the general expression is 0/0 at k=1 when alpha+beta == -1
        offdiag_sq[0] = 4 * (1 + alpha) * (1 + beta) / ((2 + ab) ** 2 * (3 + ab))
        k = k[1:]
        offdiag_sq[1:] = (
            4
            * k
            * (k + alpha)
            * (k + beta)
            * (k + ab)
            / ((2 * k + ab) ** 2 * (2 * k + ab + 1) * (2 * k + ab - 1))
        )
    return diag, np.sqrt(offdiag_sq)


@dataclass(eq=False, frozen=True, init=False)
class GaussJacobiQuadrature:
    """
    An `n`-point Gauss-Jacobi rule for the weight function
    $W(x) = (1-x)^\\alpha (1+x)^\\beta$, built with the Golub-Welsch algorithm: the
    points are the eigenvalues of the Jacobi matrix and the weights come from the
    first components of its eigenvectors.

    A quadrature of a vectorized function `f` is `sum(f(points) * weights)`.
    """

    n: int
    alpha: float
    beta: float
    points: NDArray
    weights: NDArray

    def __init__(self, n: int, alpha: float = 0.0, beta: float = 0.0):
        if n < 1:
            raise ValueError(f"A quadrature rule needs at least one point, not {n}.")
        if alpha <= -1 or beta <= -1:
            raise ValueError(
                f"Jacobi parameters must be > -1; got alpha={alpha}, beta={beta}."
            )
        diag, offdiag = _jacobi_recurrence(n, alpha, beta)
        jacobi_mat = np.diag(diag) + np.diag(offdiag, 1) + np.diag(offdiag, -1)
        points, vecs = np.linalg.eigh(jacobi_mat)

        # integral of the weight function over [-1,1]
        mu0 = (
            2 ** (alpha + beta + 1)
            * math.gamma(alpha + 1)
            * math.gamma(beta + 1)
            / math.gamma(alpha + beta + 2)
        )
        weights = mu0 * vecs[0, :] ** 2

        points.setflags(write=False)
        weights.setflags(write=False)
        object.__setattr__(self, "n", n)
        object.__setattr__(self, "alpha", alpha)
        object.__setattr__(self, "beta", beta)
        object.__setattr__(self, "points", points)
        object.__setattr__(self, "weights", weights)


def gauss_legendre(n: int) -> GaussJacobiQuadrature:
    """The `n`-point Gauss-Legendre rule (unit weight function)."""
    return GaussJacobiQuadrature(n, 0.0, 0.0)
