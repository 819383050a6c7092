from fastelem.elements import (
    LagrangeElement,
    chebyshev_points,
    equispaced_points,
    gauss_legendre,
    lobatto_points,
)
import numpy as np
import argparse


DISTRIBUTIONS = {
    "equi": equispaced_points,
    "cheb": chebyshev_points,
    "lobatto": lobatto_points,
}


def run_demo(
    max_order: int,
    ndims: int,
    distribution: str,
    warp: float = 0.1,
    nsamples: int = 200,
):
    """Interpolates a smooth field on a curved element for orders 1 through
    `max_order`, and measures how the error decays.

    The element is the reference cube $[-1,1]^D$ with its nodes pushed along a
    sine wave of amplitude `warp`. The field is prescribed in physical
    coordinates, sampled at the nodes, and compared against the exact value at
    random reference points mapped onto the element.

    For each order, the tuple (`order`, `max_err`, `grad_err`, `volume`) is
    yielded, where `max_err` is the largest interpolation error over the
    samples, `grad_err` the largest error of the physical gradient (using the
    inverse Jacobian), and `volume` the integral of 1 over the element.

    Args:
        max_order (int): the largest polynomial order to try
        ndims (int): the dimension of the element
        distribution (str): the node distribution; a key of `DISTRIBUTIONS`
        warp (float, optional): amplitude of the node perturbation.
            Defaults to 0.1.
        nsamples (int, optional): the number of sample points. Defaults to 200.
    """
    rng = np.random.default_rng(0)
    samples = rng.uniform(-1, 1, (nsamples, ndims))

    def field(x):
        return np.sin(2 * x[..., 0]) * np.exp(0.5 * np.sum(x[..., 1:], axis=-1))

    def grad_field(x):
        grad = np.empty(x.shape)
        f = field(x)
        grad[..., 0] = 2 * np.cos(2 * x[..., 0]) * np.exp(
            0.5 * np.sum(x[..., 1:], axis=-1)
        )
        grad[..., 1:] = 0.5 * f[..., np.newaxis]
        return grad

    def warp_positions(X):
        x = X.copy()
        x[..., 0] += warp * np.sin(np.pi * X[..., -1]) * (1 - X[..., 0] ** 2)
        return x

    for order in range(1, max_order + 1):
        elem = LagrangeElement(
            order, DISTRIBUTIONS[distribution](order + 1), ndims=ndims
        )
        vertices = warp_positions(elem.reference_nodes())
        coeffs = field(vertices)

        max_err = 0
        grad_err = 0
        for X in samples:
            x = elem.reference_to_real(X, vertices)
            max_err = max(max_err, abs(elem.eval_approx(coeffs, X) - field(x)))

            # chain rule: grad_x f = J^{-T} grad_X f
            grad_X = elem.eval_grad_approx(coeffs, X)
            grad_x = elem.eval_inv_jac(X, vertices).T @ grad_X
            grad_err = max(grad_err, np.max(np.abs(grad_x - grad_field(x))))

        volume = elem.integrate_approx(
            np.ones(elem.num_basis()), vertices, gauss_legendre(order + 2)
        )
        yield order, max_err, grad_err, volume


def build_argparse():
    parser = argparse.ArgumentParser(
        prog="demo_lagrange_interp",
        description="""
Example code for the Lagrange elements: p-convergence of the interpolation of a
smooth field on a single curved element.
                    """,
        epilog="""
The field is f(x) = sin(2 x₀) exp((x₁ + ... + x_{D-1}) / 2). Equispaced nodes
stop converging at high order (Runge's phenomenon); the others do not.
        """,
    )
    parser.add_argument(
        "-o",
        "--order",
        help="""
Largest element order to try.
    """,
        action="store",
        default=12,
        type=int,
        metavar="MAX_ORDER",
    )
    parser.add_argument(
        "-d",
        "--ndims",
        help="""
Dimension of the element.
    """,
        action="store",
        default=2,
        type=int,
        metavar="NDIMS",
    )
    parser.add_argument(
        "-n",
        "--nodes",
        help="""
Node distribution.
    """,
        action="store",
        default="lobatto",
        choices=list(DISTRIBUTIONS),
    )
    parser.add_argument(
        "-w",
        "--warp",
        help="""
Amplitude of the node perturbation that curves the element.
    """,
        action="store",
        default=0.1,
        type=float,
        metavar="WARP",
    )
    return parser


if __name__ == "__main__":
    args = build_argparse().parse_args()
    print(
        f"Demo-ing Lagrange elements: {args.nodes} nodes in {args.ndims}D,"
        + f" orders 1 to {args.order}"
    )
    print(f"{'order':>6} {'max |f - f_h|':>16} {'max |grad err|':>16} {'volume':>12}")
    for order, max_err, grad_err, volume in run_demo(
        args.order, args.ndims, args.nodes, args.warp
    ):
        print(f"{order:6d} {max_err:16.3e} {grad_err:16.3e} {volume:12.8f}")
