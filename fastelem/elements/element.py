import abc
import itertools
import warnings

import numpy as np
from numpy.typing import ArrayLike, NDArray

from fastelem.elements import _jacobian
from fastelem.elements._barycentric import Scalar
from fastelem.elements.quadrature import GaussJacobiQuadrature, gauss_legendre


class ElementShapeError(ValueError):
    """Raised when an argument does not have the shape the element expects."""

    def __init__(self, name: str, expected: tuple[int, ...], got: tuple[int, ...]):
        super().__init__(
            f"Argument '{name}' should have shape {expected}, but has shape {got}."
        )
        self.name = name
        self.expected = expected
        self.got = got


class DegenerateJacobianException(Exception):
    """An exception raised when the Jacobian of the reference-to-physical map is too
    poor for invertibility.

    Args:
        val (float): the badness parameter |det(J)| / prod_b (char_b / ref_char_b) for
            characteristic lengths `char_b` of the element and `ref_char_b` of the
            reference element. This does not change when the element is scaled, so
            it measures the shape of the element, not its size.
        point (NDArray): the reference coordinates at which J was evaluated.
    """

    def __init__(self, val: float, point: NDArray):
        coords = ",".join(f"{c:.6f}" for c in np.real(point))
        super().__init__(
            "Element has too poor of a shape!\n"
            + f"   jacobian badness = {val:e} at local coordinates ({coords})"
        )

        self.point = point
        self.val = val


class TensorProductElement(abc.ABC):
    """
    Handles basis evaluation on a tensor-product reference element $[-1,1]^D$.
    Fields and positions are handled as arrays of coefficients of the shape
    functions, indexed by a flat basis index. As isoparametric elements, positions
    and fields use the same set of shape functions.

    An element is immutable after construction: evaluation methods only read the
    element's state and allocate their own temporaries, so one instance may be used
    by many threads at once.
    """

    jacobian_badness_tol: float = 1e-8

    def _dev_warn(self, message: str):
        """To be used by developers, only.

        This method is called by the base `TensorProductElement` class to warn the use
        of default (most likely unoptimized) strategies to compute certain values.

        For example, `eval_approx()` is computed by default as the sum of
        `eval_basis()` over every basis function, which does much more work than a
        sum-factorized evaluation.

        This method can be overridden by the developer to suppress these warnings.

        Args:
            message (str): the message to pass on to `warnings.warn`.
        """
        warnings.warn(f"Element developer message: {message}")

    @property
    @abc.abstractmethod
    def ndims(self) -> int:
        """The dimension D of the reference element."""
        pass

    @abc.abstractmethod
    def basis_shape(self) -> tuple[int, ...]:
        """
        The shape of the multi-index of the basis. A basis function with multi-index
        `(i_0,...,i_{D-1})` has flat index
        `np.ravel_multi_index(multi, basis_shape(), order="F")`.

        Returns:
            tuple[int, ...]: the number of nodes along each dimension.
        """
        pass

    def num_basis(self) -> int:
        """The number of basis functions, `prod(basis_shape())`."""
        return int(np.prod(self.basis_shape(), dtype=int))

    @abc.abstractmethod
    def reference_nodes(self) -> NDArray:
        """
        The node positions of the reference (un-transformed) element.

        Returns:
            NDArray: An array of shape `(num_basis(), ndims)`. Used as `vertices`,
                it gives the identity map.
        """
        pass

    @abc.abstractmethod
    def eval_basis(self, index: int, point: ArrayLike) -> Scalar:
        """Evaluates basis function `index` at the reference point `point`.

        Args:
            index (int): the flat index of the basis function.
            point (ArrayLike): reference coordinates, of length `ndims`. Real or
                complex.

        Returns:
            Scalar: $\\phi_{index}(X)$
        """
        pass

    @abc.abstractmethod
    def eval_grad_basis(
        self, index: int, point: ArrayLike, out: NDArray | None = None
    ) -> NDArray:
        """Evaluates the reference-space gradient of basis function `index`.

        Args:
            index (int): the flat index of the basis function.
            point (ArrayLike): reference coordinates, of length `ndims`.
            out (NDArray | None, optional): If set, the gradient is written here.
                Defaults to None.

        Returns:
            NDArray: the gradient, of shape `(ndims,)`.
        """
        pass

    # ==================================================================================
    #   argument handling
    # ==================================================================================

    def _as_point(self, point: ArrayLike) -> NDArray:
        point = np.asarray(point)
        if point.shape != (self.ndims,):
            raise ElementShapeError("point", (self.ndims,), point.shape)
        return point

    def _as_coeffs(self, coeffs: ArrayLike, name: str = "coeffs") -> NDArray:
        coeffs = np.asarray(coeffs)
        if coeffs.shape != (self.num_basis(),):
            raise ElementShapeError(name, (self.num_basis(),), coeffs.shape)
        return coeffs

    def _as_vertices(self, vertices: ArrayLike) -> NDArray:
        vertices = np.asarray(vertices)
        expected = (self.num_basis(), self.ndims)
        if vertices.shape != expected:
            raise ElementShapeError("vertices", expected, vertices.shape)
        return vertices

    @staticmethod
    def _write_out(value: NDArray, out: NDArray | None) -> NDArray:
        if out is None:
            return value
        out[...] = value
        return out

    # ==================================================================================
    #   field interpolation
    # ==================================================================================

    def eval_approx(self, coeffs: ArrayLike, point: ArrayLike) -> Scalar:
        """Evaluates the field $f = \\sum_e c_e \\phi_e$ at a reference point.

        Args:
            coeffs (ArrayLike): the nodal coefficients, of shape `(num_basis(),)`.
            point (ArrayLike): reference coordinates, of length `ndims`.

        Returns:
            Scalar: $f(X)$
        """
        self._dev_warn(
            "TensorProductElement.eval_approx() called, "
            + "which sums eval_basis() over every basis function"
        )
        coeffs = self._as_coeffs(coeffs)
        point = self._as_point(point)
        return sum(c * self.eval_basis(e, point) for e, c in enumerate(coeffs))

    def eval_grad_approx(
        self, coeffs: ArrayLike, point: ArrayLike, out: NDArray | None = None
    ) -> NDArray:
        """Evaluates the reference-space gradient of $f = \\sum_e c_e \\phi_e$.

        Args:
            coeffs (ArrayLike): the nodal coefficients, of shape `(num_basis(),)`.
            point (ArrayLike): reference coordinates, of length `ndims`.
            out (NDArray | None, optional): If set, the gradient is written here.
                Defaults to None.

        Returns:
            NDArray: the gradient, of shape `(ndims,)`.
        """
        self._dev_warn(
            "TensorProductElement.eval_grad_approx() called, "
            + "which sums eval_grad_basis() over every basis function"
        )
        coeffs = self._as_coeffs(coeffs)
        point = self._as_point(point)
        grad = sum(c * self.eval_grad_basis(e, point) for e, c in enumerate(coeffs))
        return self._write_out(grad, out)

    # ==================================================================================
    #   isoparametric map
    # ==================================================================================

    def reference_to_real(self, point: ArrayLike, vertices: ArrayLike) -> NDArray:
        """Maps a reference point to its physical position,
        $x_a = \\sum_e v_{e,a} \\phi_e(X)$.

        Args:
            point (ArrayLike): reference coordinates, of length `ndims`.
            vertices (ArrayLike): physical node positions, of shape
                `(num_basis(), ndims)`.

        Returns:
            NDArray: the physical position, of shape `(ndims,)`.
        """
        vertices = self._as_vertices(vertices)
        return np.array([self.eval_approx(column, point) for column in vertices.T])

    def eval_jac(
        self, point: ArrayLike, vertices: ArrayLike, out: NDArray | None = None
    ) -> NDArray:
        """
        Evaluates the Jacobian of the reference-to-physical map,
        $J_{ab} = \\partial x_a / \\partial X_b = \\sum_e v_{e,a} \\partial_b \\phi_e(X)$.

        Each row is the gradient of one physical coordinate, interpolated from the
        vertex positions like any other field.

        Args:
            point (ArrayLike): reference coordinates, of length `ndims`.
            vertices (ArrayLike): physical node positions, of shape
                `(num_basis(), ndims)`.
            out (NDArray | None, optional): If set, J is written here.
                Defaults to None.

        Returns:
            NDArray: J, of shape `(ndims, ndims)`.
        """
        vertices = self._as_vertices(vertices)
        jac = np.stack([self.eval_grad_approx(column, point) for column in vertices.T])
        return self._write_out(jac, out)

    def eval_det_jac(self, point: ArrayLike, vertices: ArrayLike) -> Scalar:
        """
        The determinant of `eval_jac(point, vertices)`. For a degenerate element
        (vertices collapsed onto a lower-dimensional set) this is zero up to rounding.
        """
        return _jacobian.determinant(self.eval_jac(point, vertices))

    def _characteristic_lengths(self, positions: NDArray) -> NDArray:
        """For each reference direction b, the length of the longest node polyline
        running along b. This is zero only when every b-line collapses."""
        grid = positions.reshape(self.basis_shape() + positions.shape[-1:], order="F")
        lengths = np.empty(self.ndims)
        for b in range(self.ndims):
            # along each b-line, add the distances between nodes
            segments = np.linalg.norm(np.diff(grid, axis=b), axis=-1)
            # take max across the other directions, of b-line sums
            lengths[b] = np.max(np.sum(segments, axis=b))
        return lengths

    def _badness(self, jac: NDArray, vertices: NDArray) -> float:
        return _jacobian.badness(
            jac,
            self._characteristic_lengths(vertices),
            self._characteristic_lengths(self.reference_nodes()),
        )

    def jacobian_badness(self, point: ArrayLike, vertices: ArrayLike) -> float:
        """
        A scale-free measure of the element shape at `point`:
        $|\\det J| / \\prod_b (\\ell_b / \\ell_b^{ref})$, where $\\ell_b$ is the length
        of the longest node polyline along reference direction b, and
        $\\ell_b^{ref}$ the same length on the reference element.

        This is 1 for a scaled copy of the reference element, stays the same when
        the element is scaled, and goes to 0 as the element degenerates.
        """
        vertices = self._as_vertices(vertices)
        return self._badness(self.eval_jac(point, vertices), vertices)

    def eval_inv_jac(
        self, point: ArrayLike, vertices: ArrayLike, out: NDArray | None = None
    ) -> NDArray:
        """
        Evaluates the inverse Jacobian $J^{-1} = \\mathrm{adj}(J) / \\det J$.

        Args:
            point (ArrayLike): reference coordinates, of length `ndims`.
            vertices (ArrayLike): physical node positions, of shape
                `(num_basis(), ndims)`.
            out (NDArray | None, optional): If set, the inverse is written here.
                Defaults to None.

        Raises:
            DegenerateJacobianException: if `jacobian_badness()` at `point` is below
                `jacobian_badness_tol`.

        Returns:
            NDArray: the inverse Jacobian, of shape `(ndims, ndims)`.
        """
        point = self._as_point(point)
        vertices = self._as_vertices(vertices)
        jac = self.eval_jac(point, vertices)
        badness = self._badness(jac, vertices)
        if badness < self.jacobian_badness_tol:
            raise DegenerateJacobianException(badness, point)
        inv = _jacobian.adjugate(jac) / _jacobian.determinant(jac)
        return self._write_out(inv, out)

    def locate_point(
        self,
        vertices: ArrayLike,
        target: ArrayLike,
        tol: float = 1e-12,
        max_iters: int = 50,
    ) -> tuple[NDArray, bool]:
        """
        Attempts to find the reference coordinates of the physical point `target`.
        Returns `(local_pt, success)`.

        The initial guess is the reference position of the node closest to `target`,
        which is then refined with Newton-Raphson steps $X \\leftarrow X - J^{-1} e$
        on the error $e = x(X) - target$. The iteration stops when
        $\\frac{1}{2}|e|^2 <$ `tol`. The steps are not constrained to the reference
        element, so points outside the element are located on the extension of the
        map.

        Args:
            vertices (ArrayLike): physical node positions, of shape
                `(num_basis(), ndims)`.
            target (ArrayLike): the physical point, of length `ndims`.
            tol (float, optional): Tolerance of the error function. Defaults to 1e-12.
            max_iters (int, optional): The maximum number of Newton steps.
                Defaults to 50.

        Raises:
            DegenerateJacobianException: if the element is poorly shaped along the
                path of the iteration.

        Returns:
            tuple[NDArray, bool]: (local_pt, success), where success is true
            if the error function is less than tol.
        """
        vertices = self._as_vertices(vertices)
        target = self._as_point(target)

        node_errs = np.sum((vertices - target) ** 2, axis=-1)
        local = np.array(self.reference_nodes()[np.argmin(node_errs)], dtype=np.float64)

        e = self.reference_to_real(local, vertices) - target
        F = 0.5 * np.sum(e**2)
        iter_ = 0
        while F > tol and iter_ < max_iters:
            iter_ += 1
            local -= self.eval_inv_jac(local, vertices) @ e
            e = self.reference_to_real(local, vertices) - target
            F = 0.5 * np.sum(e**2)
        return local, bool(F < tol)

    def integrate_approx(
        self,
        coeffs: ArrayLike,
        vertices: ArrayLike,
        quadrature: GaussJacobiQuadrature | None = None,
    ) -> Scalar:
        """
        Integrates the field $f = \\sum_e c_e \\phi_e$ over the physical element,
        $\\int f ~dV = \\int f(X) |\\det J(X)| ~dX$, with a tensor product of a 1D
        quadrature rule.

        Args:
            coeffs (ArrayLike): the nodal coefficients, of shape `(num_basis(),)`.
            vertices (ArrayLike): physical node positions, of shape
                `(num_basis(), ndims)`.
            quadrature (GaussJacobiQuadrature | None, optional): the 1D rule to use
                along every dimension. Its weight function is not divided out, so
                anything but Gauss-Legendre integrates $W(X) f$ instead. When None,
                Gauss-Legendre with one point more than the largest node count of
                the basis is used. Defaults to None.

        Returns:
            Scalar: the integral.
        """
        coeffs = self._as_coeffs(coeffs)
        vertices = self._as_vertices(vertices)
        if quadrature is None:
            quadrature = gauss_legendre(max(self.basis_shape()) + 1)

        total = 0
        for inds in itertools.product(range(quadrature.n), repeat=self.ndims):
            point = quadrature.points[list(inds)]
            w = np.prod(quadrature.weights[list(inds)])
            total += (
                w
                * self.eval_approx(coeffs, point)
                * np.abs(self.eval_det_jac(point, vertices))
            )
        return total
