import numpy as np
import fastelem.elements.element as element


from numpy.typing import ArrayLike, NDArray
import typing

from fastelem.elements import _barycentric
from fastelem.elements._barycentric import Scalar
from fastelem.elements._multi_index import flat_to_multi
from fastelem.elements.point_distributions import equispaced_points


def _contract(tensor: NDArray, factors: list[NDArray]) -> Scalar:
    """Computes `sum T[i_0,...,i_{D-1}] f_0[i_0] ... f_{D-1}[i_{D-1}]` one axis at a
    time (sum factorization)."""
    for factor in factors:
        tensor = np.tensordot(factor, tensor, axes=(0, 0))
    return tensor[()]


class LagrangeElement(element.TensorProductElement):
    """A tensor-product Lagrange element of order N in D dimensions, leading to
    (N+1)^D nodes. The 1D Lagrange polynomials are evaluated in barycentric form,
    which is stable for arbitrary order and works for complex arguments, so
    derivatives can be checked with a complex step.

    Basis functions are enumerated by flat index with the first dimension varying
    fastest (see `flat_to_multi()`).
    """

    def __init__(
        self,
        order: int,
        nodes: ArrayLike | None = None,
        ndims: int = 3,
        coincidence_tol: float = 0.0,
        jacobian_badness_tol: float | None = None,
    ):
        """
        Args:
            order (int): the polynomial order N of the element (N+1 nodes per
                dimension).
            nodes (ArrayLike | None, optional): N+1 distinct, increasing 1D node
                coordinates. This is not checked. When None, equispaced nodes on
                [-1,1] are used. Defaults to None.
            ndims (int, optional): the dimension D of the element. Defaults to 3.
            coincidence_tol (float, optional): distance under which a real
                evaluation coordinate is treated as lying on a node. Defaults to 0.0,
                meaning only exact equality counts.
            jacobian_badness_tol (float | None, optional): the smallest allowable
                `jacobian_badness()` before `eval_inv_jac()` raises. When None, the
                class default is kept. Defaults to None.

        Raises:
            ValueError: if `order < 1`, `ndims < 1`, or `nodes` does not hold
                `order + 1` values.
        """
        super().__init__()
        if order < 1:
            raise ValueError(f"Element order must be at least 1, not {order}.")
        if ndims < 1:
            raise ValueError(f"Element dimension must be at least 1, not {ndims}.")
        if nodes is None:
            nodes = equispaced_points(order + 1)
        nodes = np.array(nodes, dtype=np.float64)
        if nodes.shape != (order + 1,):
            raise ValueError(
                f"An element of order {order} needs {order + 1} nodes;"
                f" got an array of shape {nodes.shape}."
            )

        self._order = order  # poly degree (#nodes - 1)
        self._ndims = ndims
        self._coincidence_tol = coincidence_tol
        if jacobian_badness_tol is None:
            jacobian_badness_tol = element.TensorProductElement.jacobian_badness_tol
        self._jacobian_badness_tol = jacobian_badness_tol

        weights = _barycentric.build_weights(nodes)
        nodes.setflags(write=False)
        weights.setflags(write=False)
        self._nodes = nodes
        self._weights = weights

    # the element is immutable: its parameters are exposed read-only

    @property
    @typing.override
    def ndims(self) -> int:
        return self._ndims

    @property
    def order(self) -> int:
        return self._order

    @property
    def num_nodes(self) -> int:
        return self._order + 1

    @property
    def nodes(self) -> NDArray:
        """The 1D node coordinates (read-only)."""
        return self._nodes

    @property
    def weights(self) -> NDArray:
        """The barycentric weights of `nodes` (read-only)."""
        return self._weights

    @property
    def coincidence_tol(self) -> float:
        return self._coincidence_tol

    @property
    def jacobian_badness_tol(self) -> float:
        return self._jacobian_badness_tol

    @typing.override
    def basis_shape(self) -> tuple[int, ...]:
        return (self.num_nodes,) * self.ndims

    @typing.override
    def reference_nodes(self) -> NDArray:
        multi = np.unravel_index(
            np.arange(self.num_basis()), self.basis_shape(), order="F"
        )
        return np.stack([self.nodes[inds] for inds in multi], axis=-1)

    def _values_1d(self, point: NDArray) -> list[NDArray]:
        return [
            _barycentric.eval_all_1d(x, self.nodes, self.weights, self.coincidence_tol)
            for x in point
        ]

    def _derivatives_1d(self, point: NDArray) -> list[NDArray]:
        return [
            _barycentric.eval_derivative_all_1d(
                x, self.nodes, self.weights, self.coincidence_tol
            )
            for x in point
        ]

    @typing.override
    def eval_basis(self, index: int, point: ArrayLike) -> Scalar:
        """Evaluates $\\phi_{index}(X) = \\prod_d L_{i_d}(X_d)$, where
        `(i_0,...,i_{D-1})` is the multi-index of `index`.

        Args:
            index (int): the flat index of the basis function.
            point (ArrayLike): reference coordinates, of length `ndims`. Real or
                complex.

        Returns:
            Scalar: the basis function value.
        """
        point = self._as_point(point)
        value = 1.0
        for i, x in zip(flat_to_multi(index, self.order, self.ndims), point):
            value = value * _barycentric.eval_1d(
                i, x, self.nodes, self.weights, self.coincidence_tol
            )
        return value

    @typing.override
    def eval_grad_basis(
        self, index: int, point: ArrayLike, out: NDArray | None = None
    ) -> NDArray:
        """Evaluates the gradient of basis function `index`. Component `b` is
        $L_{i_b}'(X_b) \\prod_{d \\neq b} L_{i_d}(X_d)$.

        Args:
            index (int): the flat index of the basis function.
            point (ArrayLike): reference coordinates, of length `ndims`.
            out (NDArray | None, optional): If set, the gradient is written here.
                Defaults to None.

        Returns:
            NDArray: the gradient, of shape `(ndims,)`.
        """
        point = self._as_point(point)
        multi = flat_to_multi(index, self.order, self.ndims)
        args = (self.nodes, self.weights, self.coincidence_tol)
        values = [_barycentric.eval_1d(i, x, *args) for i, x in zip(multi, point)]
        derivs = [
            _barycentric.eval_derivative_1d(i, x, *args) for i, x in zip(multi, point)
        ]

        grad = np.empty(self.ndims, dtype=np.result_type(point, self.nodes))
        for b in range(self.ndims):
            grad[b] = derivs[b] * np.prod(values[:b] + values[b + 1 :])
        return self._write_out(grad, out)

    @typing.override
    def eval_approx(self, coeffs: ArrayLike, point: ArrayLike) -> Scalar:
        """Evaluates the field $f = \\sum_e c_e \\phi_e$ at a reference point.

        The coefficients are arranged into a tensor `C[i_0,...,i_{D-1}]` and
        contracted with the 1D values one dimension at a time, which costs
        O((N+1)^D) instead of the O(D (N+1)^{D+1}) of summing `eval_basis()`.

        Args:
            coeffs (ArrayLike): the nodal coefficients, of shape `(num_basis(),)`.
                Real or complex.
            point (ArrayLike): reference coordinates, of length `ndims`.

        Returns:
            Scalar: $f(X)$
        """
        coeffs = self._as_coeffs(coeffs)
        point = self._as_point(point)
        tensor = coeffs.reshape(self.basis_shape(), order="F")
        return _contract(tensor, self._values_1d(point))

    @typing.override
    def eval_grad_approx(
        self, coeffs: ArrayLike, point: ArrayLike, out: NDArray | None = None
    ) -> NDArray:
        """Evaluates the reference-space gradient of $f = \\sum_e c_e \\phi_e$,
        sum-factorized like `eval_approx()`.

        Args:
            coeffs (ArrayLike): the nodal coefficients, of shape `(num_basis(),)`.
            point (ArrayLike): reference coordinates, of length `ndims`.
            out (NDArray | None, optional): If set, the gradient is written here.
                Defaults to None.

        Returns:
            NDArray: the gradient, of shape `(ndims,)`.
        """
        coeffs = self._as_coeffs(coeffs)
        point = self._as_point(point)
        tensor = coeffs.reshape(self.basis_shape(), order="F")
        values = self._values_1d(point)
        derivs = self._derivatives_1d(point)

        grad = np.empty(
            self.ndims, dtype=np.result_type(coeffs, point, self.nodes)
        )
        for b in range(self.ndims):
            grad[b] = _contract(tensor, values[:b] + [derivs[b]] + values[b + 1 :])
        return self._write_out(grad, out)

    def lagrange_eval1D(
        self,
        deriv_order: int,
        lag_index: ArrayLike | None = None,
        x: ArrayLike | None = None,
    ) -> NDArray:
        """
        Calculates $[(\\frac{d}{dx})^{deriv\\_order} L_{lag\\_index}(x)]$ for the 1D
        Lagrange polynomials of this element.

        lag_index and x must be broadcastable to the same shape, following
        standard numpy broadcasting rules.

        Args:
            deriv_order (int): the order of the derivative to compute, 0 or 1.
            lag_index (ArrayLike | None, optional): an array of indices for sampling
                the Lagrange polynomials. If None, then
                `np.arange(order+1)[:,...]` is used.
                Defaults to None.
            x (ArrayLike | None, optional): an array of points to sample the Lagrange
                polynomials. If None, then `self.nodes` is used, and the result is
                indexed `[lag_index, node]`. Defaults to None.

        Raises:
            ValueError: if `deriv_order` is not 0 or 1.

        Returns:
            NDArray: the result of the evaluation.
        """
        if deriv_order not in (0, 1):
            raise ValueError(
                f"Only deriv_order 0 and 1 are supported, not {deriv_order}."
            )
        if x is None:
            if deriv_order == 0:
                table = np.eye(self.num_nodes)
            else:
                # differentiation_matrix() is [node, basis]
                table = _barycentric.differentiation_matrix(self.nodes, self.weights).T
            if lag_index is None:
                return table
            return table[np.asarray(lag_index), np.arange(self.num_nodes)]

        x = np.asarray(x)
        if lag_index is None:
            lag_index = np.arange(self.num_nodes)[
                :, *(np.newaxis for _ in range(x.ndim))
            ]
        lag_index, x = np.broadcast_arrays(np.asarray(lag_index), x)

        func = _barycentric.eval_1d if deriv_order == 0 else _barycentric.eval_derivative_1d
        out = np.empty(x.shape, dtype=np.result_type(x, self.nodes))
        for ind in np.ndindex(x.shape):
            out[ind] = func(
                int(lag_index[ind]),
                x[ind],
                self.nodes,
                self.weights,
                self.coincidence_tol,
            )
        return out
