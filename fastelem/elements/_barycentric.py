import numpy as np
from numpy.typing import ArrayLike, NDArray

# Any scalar with field arithmetic: float64 for ordinary evaluation, complex128 when
# the caller checks derivatives with a complex step.
Scalar = float | complex | np.number


def build_weights(nodes: ArrayLike) -> NDArray:
    """Builds the barycentric weights `w_i = 1 / prod_{j != i} (x_i - x_j)`.

    The nodes are expected to be distinct. This is not checked: repeated nodes
    give infinite weights.

    Args:
        nodes (ArrayLike): the 1D node coordinates.

    Returns:
        NDArray: the weights, one per node.
    """
    nodes = np.asarray(nodes, dtype=np.float64)
    diffs = nodes[:, np.newaxis] - nodes[np.newaxis, :]
    np.fill_diagonal(diffs, 1)
    return 1 / np.prod(diffs, axis=1)


def _coincident_node(
    x: Scalar,
    nodes: NDArray,
    weights: NDArray,
    coincidence_tol: float,
    power: int = 1,
) -> int | None:
    """Returns the index of the node that `x` lands on, or None.

    `x` lands on node k when it equals x_k, when it is real and within
    `coincidence_tol` of x_k, or when it is so close that `w_k / (x - x_k)**power`
    overflows. A complex `x` with a nonzero imaginary part is only snapped in
    the last case, so a complex step off a node keeps its derivative information.
    """
    if coincidence_tol > 0 and np.imag(x) == 0:
        dist = np.abs(np.real(x) - nodes)
        k = int(np.argmin(dist))
        if dist[k] <= coincidence_tol:
            return k
    hits = np.flatnonzero(x == nodes)
    if hits.size:
        return int(hits[0])
    with np.errstate(all="ignore"):
        overflow = np.isinf(weights / (x - nodes) ** power)
    return int(np.argmax(overflow)) if overflow.any() else None


def _derivative_row(k: int, nodes: NDArray, weights: NDArray) -> NDArray:
    """Derivatives of every basis function at node `k`; `D[k,:]` of the
    differentiation matrix."""
    others = np.arange(nodes.shape[0]) != k
    row = np.empty(nodes.shape[0], dtype=np.result_type(nodes, weights))
    row[others] = (weights[others] / weights[k]) / (nodes[k] - nodes[others])
    # the basis sums to one, so its derivatives sum to zero
    row[k] = -np.sum(row[others])
    return row


def eval_1d(
    i: int,
    x: Scalar,
    nodes: NDArray,
    weights: NDArray,
    coincidence_tol: float = 0.0,
) -> Scalar:
    """Evaluates the Lagrange polynomial $L_i(x)$ in the second barycentric form

    $L_i(x) = \\frac{w_i / (x - x_i)}{\\sum_j w_j / (x - x_j)}$

    When `x` lands on a node, the quotient is 0/0, so the Kronecker delta is
    returned instead.

    Args:
        i (int): index of the basis function.
        x (Scalar): the evaluation point. May be complex.
        nodes (NDArray): the 1D nodes.
        weights (NDArray): the barycentric weights of `nodes`.
        coincidence_tol (float, optional): distance under which `x` is considered
            to be on a node. Defaults to 0.0, which is an exact equality test.

    Returns:
        Scalar: $L_i(x)$
    """
    k = _coincident_node(x, nodes, weights, coincidence_tol)
    if k is not None:
        return 1.0 if i == k else 0.0

    terms = weights / (x - nodes)
    return terms[i] / np.sum(terms)


def eval_derivative_1d(
    i: int,
    x: Scalar,
    nodes: NDArray,
    weights: NDArray,
    coincidence_tol: float = 0.0,
) -> Scalar:
    """Evaluates $L_i'(x)$.

    Away from the nodes, this is the quotient rule applied to the second barycentric
    form:

    $L_i'(x) = L_i(x) \\left(\\frac{\\sum_j w_j / (x - x_j)^2}{\\sum_j w_j / (x - x_j)}
    - \\frac{1}{x - x_i}\\right)$

    On node `k`, the derivative is the differentiation matrix entry
    $(w_i / w_k) / (x_k - x_i)$, or minus the sum of the other entries in the row
    when `k == i`.

    Args:
        i (int): index of the basis function.
        x (Scalar): the evaluation point. May be complex.
        nodes (NDArray): the 1D nodes.
        weights (NDArray): the barycentric weights of `nodes`.
        coincidence_tol (float, optional): distance under which `x` is considered
            to be on a node. Defaults to 0.0, which is an exact equality test.

    Returns:
        Scalar: $L_i'(x)$
    """
    k = _coincident_node(x, nodes, weights, coincidence_tol, power=2)
    if k == i:
        others = np.arange(nodes.shape[0]) != i
        return -np.sum(weights[others] / weights[i] / (nodes[i] - nodes[others]))
    if k is not None:
        return (weights[i] / weights[k]) / (nodes[k] - nodes[i])

    diffs = x - nodes
    terms = weights / diffs
    denom = np.sum(terms)
    return (terms[i] / denom) * (np.sum(terms / diffs) / denom - 1 / diffs[i])


def eval_all_1d(
    x: Scalar, nodes: NDArray, weights: NDArray, coincidence_tol: float = 0.0
) -> NDArray:
    """Vector of $L_i(x)$ for every `i`. See `eval_1d()`."""
    k = _coincident_node(x, nodes, weights, coincidence_tol)
    if k is not None:
        out = np.zeros(nodes.shape[0], dtype=np.result_type(x, nodes))
        out[k] = 1
        return out

    terms = weights / (x - nodes)
    return terms / np.sum(terms)


def eval_derivative_all_1d(
    x: Scalar, nodes: NDArray, weights: NDArray, coincidence_tol: float = 0.0
) -> NDArray:
    """Vector of $L_i'(x)$ for every `i`. See `eval_derivative_1d()`."""
    k = _coincident_node(x, nodes, weights, coincidence_tol, power=2)
    if k is not None:
        return _derivative_row(k, nodes, weights).astype(np.result_type(x, nodes))

    diffs = x - nodes
    terms = weights / diffs
    denom = np.sum(terms)
    return (terms / denom) * (np.sum(terms / diffs) / denom - 1 / diffs)


def differentiation_matrix(nodes: ArrayLike, weights: ArrayLike | None = None) -> NDArray:
    """Returns the matrix `D` with `D[k,i]` $= L_i'(x_k)$, so that `D @ f` holds the
    derivative of the interpolant of `f` at the nodes.

    Args:
        nodes (ArrayLike): the 1D nodes.
        weights (ArrayLike | None, optional): the barycentric weights of `nodes`.
            Computed when None. Defaults to None.

    Returns:
        NDArray: an array of shape `(len(nodes), len(nodes))`
    """
    nodes = np.asarray(nodes, dtype=np.float64)
    weights = build_weights(nodes) if weights is None else np.asarray(weights)
    return np.stack([_derivative_row(k, nodes, weights) for k in range(nodes.shape[0])])
