import pytest
import numpy as np

from fastelem.elements import _barycentric
from fastelem.elements.point_distributions import (
    chebyshev_points,
    equispaced_points,
    lobatto_points,
)


@pytest.fixture(
    scope="module",
    params=[
        ("equi", 2),
        ("equi", 5),
        ("equi", 9),
        ("cheb", 7),
        ("lobatto", 6),
        ("lobatto", 11),
    ],
    ids=lambda p: f"{p[0]}{p[1]}",
)
def nodes(request):
    kind, count = request.param
    dist = {
        "equi": equispaced_points,
        "cheb": chebyshev_points,
        "lobatto": lobatto_points,
    }[kind]
    return dist(count)


def _product_form(i, x, nodes):
    others = np.delete(nodes, i)
    return np.prod((x - others) / (nodes[i] - others))


def _product_form_deriv(i, x, nodes):
    # d/dx prod_j (x - x_j)/(x_i - x_j) by the product rule
    others = np.delete(nodes, i)
    total = 0
    for m in range(others.shape[0]):
        rest = np.delete(others, m)
        total += np.prod(x - rest) / np.prod(nodes[i] - others)
    return total


def test_weights(nodes):
    weights = _barycentric.build_weights(nodes)
    for i, xi in enumerate(nodes):
        assert weights[i] == pytest.approx(1 / np.prod(xi - np.delete(nodes, i)))


def test_eval_matches_product_form(nodes):
    weights = _barycentric.build_weights(nodes)
    for x in np.linspace(-0.97, 0.97, 23):
        for i in range(nodes.shape[0]):
            assert _barycentric.eval_1d(i, x, nodes, weights) == pytest.approx(
                _product_form(i, x, nodes), abs=1e-12
            )
        np.testing.assert_allclose(
            _barycentric.eval_all_1d(x, nodes, weights),
            [_barycentric.eval_1d(i, x, nodes, weights) for i in range(len(nodes))],
            rtol=1e-14,
            atol=1e-15,
        )


def test_kronecker_at_nodes(nodes):
    weights = _barycentric.build_weights(nodes)
    for k, xk in enumerate(nodes):
        for i in range(nodes.shape[0]):
            assert _barycentric.eval_1d(i, xk, nodes, weights) == (
                1.0 if i == k else 0.0
            )
        np.testing.assert_array_equal(
            _barycentric.eval_all_1d(xk, nodes, weights), np.arange(len(nodes)) == k
        )


def test_derivative_matches_product_form(nodes):
    weights = _barycentric.build_weights(nodes)
    # includes every node, so the coincident branches are checked too
    xs = np.concatenate([nodes, np.linspace(-0.95, 0.95, 17)])
    for x in xs:
        for i in range(nodes.shape[0]):
            assert _barycentric.eval_derivative_1d(
                i, x, nodes, weights
            ) == pytest.approx(_product_form_deriv(i, x, nodes), rel=1e-9, abs=1e-9)


def test_derivative_complex_step(nodes):
    weights = _barycentric.build_weights(nodes)
    h = 1e-30
    for x in np.concatenate([nodes, np.linspace(-0.9, 0.9, 11)]):
        cs = np.imag(
            _barycentric.eval_all_1d(complex(x, h), nodes, weights)
        ) / h
        np.testing.assert_allclose(
            _barycentric.eval_derivative_all_1d(x, nodes, weights),
            cs,
            rtol=1e-10,
            atol=1e-10,
        )


def test_derivative_central_difference(nodes):
    weights = _barycentric.build_weights(nodes)
    sigfigs = 5
    h = 10 ** -((sigfigs + 3) // 2)
    for x in np.linspace(-0.9, 0.9, 9):
        for i in range(nodes.shape[0]):
            fd = (
                _barycentric.eval_1d(i, x + h, nodes, weights)
                - _barycentric.eval_1d(i, x - h, nodes, weights)
            ) / (2 * h)
            # error scales with the third derivative, which grows with the order
            assert _barycentric.eval_derivative_1d(
                i, x, nodes, weights
            ) == pytest.approx(fd, rel=1e-4, abs=10**-sigfigs * len(nodes) ** 3)


def test_differentiation_matrix(nodes):
    D = _barycentric.differentiation_matrix(nodes)
    n = nodes.shape[0]
    assert D.shape == (n, n)

    # derivatives of constants vanish, derivatives of x are one
    np.testing.assert_allclose(D @ np.ones(n), 0, atol=1e-12)
    np.testing.assert_allclose(D @ nodes, 1, rtol=1e-10)

    weights = _barycentric.build_weights(nodes)
    for k, xk in enumerate(nodes):
        np.testing.assert_array_equal(
            D[k], _barycentric.eval_derivative_all_1d(xk, nodes, weights)
        )


def test_differentiation_matrix_reproduces_polynomials():
    nodes = lobatto_points(8)
    D = _barycentric.differentiation_matrix(nodes)
    for deg in range(8):
        np.testing.assert_allclose(
            D @ nodes**deg, deg * nodes ** max(deg - 1, 0), atol=1e-11
        )


def test_complex_argument_off_axis():
    nodes = chebyshev_points(5)
    weights = _barycentric.build_weights(nodes)
    z = 0.3 + 0.2j
    for i in range(5):
        assert _barycentric.eval_1d(i, z, nodes, weights) == pytest.approx(
            _product_form(i, z, nodes)
        )
    assert np.sum(_barycentric.eval_all_1d(z, nodes, weights)) == pytest.approx(1)


def test_coincidence_tol():
    nodes = equispaced_points(4)
    weights = _barycentric.build_weights(nodes)
    x = nodes[2] + 1e-13

    assert _barycentric.eval_1d(2, x, nodes, weights, coincidence_tol=1e-12) == 1.0
    assert _barycentric.eval_1d(0, x, nodes, weights, coincidence_tol=1e-12) == 0.0
    assert _barycentric.eval_1d(2, x, nodes, weights) != 1.0
    assert _barycentric.eval_1d(2, x, nodes, weights) == pytest.approx(1)

    exact = _barycentric.eval_derivative_all_1d(nodes[2], nodes, weights)
    np.testing.assert_array_equal(
        _barycentric.eval_derivative_all_1d(x, nodes, weights, coincidence_tol=1e-12),
        exact,
    )
    # points outside the tolerance take the general branch
    assert _barycentric.eval_1d(
        2, nodes[2] + 1e-6, nodes, weights, coincidence_tol=1e-12
    ) == pytest.approx(1, abs=1e-5)


def test_subnormal_distance_from_node():
    nodes = equispaced_points(3)
    weights = _barycentric.build_weights(nodes)
    with np.errstate(over="raise", divide="raise", invalid="raise"):
        np.testing.assert_array_equal(
            _barycentric.eval_all_1d(1e-310, nodes, weights), [0, 1, 0]
        )
        assert _barycentric.eval_1d(1, 1e-310, nodes, weights) == 1.0
        np.testing.assert_array_equal(
            _barycentric.eval_derivative_all_1d(1e-160, nodes, weights),
            _barycentric.eval_derivative_all_1d(0.0, nodes, weights),
        )
        assert _barycentric.eval_derivative_1d(
            0, 1e-160, nodes, weights
        ) == _barycentric.eval_derivative_1d(0, 0.0, nodes, weights)


def test_coincidence_tol_keeps_complex_step():
    nodes = lobatto_points(5)
    weights = _barycentric.build_weights(nodes)
    h = 1e-30
    for xk in nodes:
        cs = np.imag(
            _barycentric.eval_all_1d(complex(xk, h), nodes, weights, 1e-12)
        ) / h
        np.testing.assert_allclose(
            cs,
            _barycentric.eval_derivative_all_1d(xk, nodes, weights, 1e-12),
            rtol=1e-10,
            atol=1e-10,
        )
