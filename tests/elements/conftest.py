import numpy as np
import pytest

from fastelem.elements import (
    LagrangeElement,
    chebyshev_points,
    equispaced_points,
    lobatto_points,
)


def transform_vertices(vertices, mod, *args):
    """Applies an affine modifier to an array of positions of shape (..., ndims)."""
    ndims = vertices.shape[-1]
    if mod == "translate":
        if len(args) < ndims:
            raise ValueError(f"modifier '{mod}' expects {ndims} arguments!")
        vertices = vertices + np.array(args[:ndims])  # no in-place op, since we want a copy
    elif mod == "rotate":
        if len(args) < 1:
            raise ValueError(f"modifier '{mod}' expects 1 argument! (angle)")
        if ndims < 2:
            return vertices.copy()
        # rotation in the plane of the first two axes
        t = args[0]
        rotmat = np.eye(ndims)
        rotmat[:2, :2] = [[np.cos(t), -np.sin(t)], [np.sin(t), np.cos(t)]]
        vertices = (rotmat @ np.expand_dims(vertices, -1)).squeeze(-1)
    elif mod == "scale":
        if len(args) < ndims:
            raise ValueError(f"modifier '{mod}' expects {ndims} arguments!")
        vertices = vertices * np.array(args[:ndims])
    elif mod == "lin_trans":
        if len(args) < 1:
            raise ValueError(f"modifier '{mod}' expects 1 argument! (matrix)")
        A = np.asarray(args[0])[:ndims, :ndims]
        vertices = (A @ np.expand_dims(vertices, -1)).squeeze(-1)
    else:
        raise ValueError(f"'{mod}' not acceptable element modifier!")
    return vertices


# diagonally dominant, so every leading block is invertible
_SHEAR = np.array(
    [
        [1.5, 0.3, -0.2, 0.1],
        [-0.4, 1.5, 0.3, 0.2],
        [0.2, -0.3, 1.5, -0.1],
        [0.1, 0.2, -0.3, 1.5],
    ]
)

_PRESET_TRANSFORMS = {
    "ref": lambda x: x,
    "translated": lambda x: transform_vertices(x, "translate", 5, -2, 3, 1),
    "rotated": lambda x: transform_vertices(x, "rotate", 1),
    "scaled": lambda x: transform_vertices(x, "scale", 2, 0.5, 3, 1),
    "combo": lambda x: transform_vertices(
        transform_vertices(x, "lin_trans", _SHEAR), "translate", 300, 600, -20, 7
    ),
}


def affine_part(transformation, ndims):
    """Recovers (A, t) with transformation(x) == A @ x + t."""
    t = transformation(np.zeros(ndims))
    A = np.stack([transformation(np.eye(ndims)[b]) - t for b in range(ndims)], -1)
    return A, t


@pytest.fixture(scope="module", params=_PRESET_TRANSFORMS.keys())
def transformation(request):
    name = request.param
    return _PRESET_TRANSFORMS[name]


_ELEMENT_CONFIGS = {
    "order1-1d-equi": (1, 1, equispaced_points),
    "order5-1d-cheb": (5, 1, chebyshev_points),
    "order3-2d-lobatto": (3, 2, lobatto_points),
    "order4-2d-cheb": (4, 2, chebyshev_points),
    "order3-3d-equi": (3, 3, equispaced_points),
    "order2-4d-lobatto": (2, 4, lobatto_points),
}


@pytest.fixture(scope="module", params=_ELEMENT_CONFIGS.keys())
def element(request):
    order, ndims, distribution = _ELEMENT_CONFIGS[request.param]
    return LagrangeElement(order, distribution(order + 1), ndims=ndims)


@pytest.fixture(scope="module")
def transformed_element(element, transformation):
    return element, transformation(element.reference_nodes()), transformation


@pytest.fixture
def rng():
    return np.random.default_rng(20201017)


@pytest.fixture
def interior_point(element, rng):
    return rng.uniform(-1, 1, element.ndims)


@pytest.fixture
def node_point(element, rng):
    return element.nodes[rng.integers(0, element.num_nodes, element.ndims)]


@pytest.fixture(params=["interior", "node"])
def eval_point(request, interior_point, node_point):
    return interior_point if request.param == "interior" else node_point


@pytest.fixture(scope="module")
def affine_map(transformed_element):
    elem, _, transformation = transformed_element
    return affine_part(transformation, elem.ndims)
