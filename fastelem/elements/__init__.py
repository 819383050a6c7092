"""
The `fastelem.elements` package contains the reference elements and the node and
quadrature rules they are built from.
"""

from .element import (
    DegenerateJacobianException,
    ElementShapeError,
    TensorProductElement,
)
from .lagrange_element import LagrangeElement
from .point_distributions import chebyshev_points, equispaced_points, lobatto_points
from .quadrature import GaussJacobiQuadrature, gauss_legendre

__all__ = [
    "TensorProductElement",
    "LagrangeElement",
    "DegenerateJacobianException",
    "ElementShapeError",
    "equispaced_points",
    "chebyshev_points",
    "lobatto_points",
    "GaussJacobiQuadrature",
    "gauss_legendre",
]


def __dir__() -> list[str]:
    return __all__
