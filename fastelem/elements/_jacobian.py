import numpy as np
from numpy.typing import NDArray


def _minor(mat: NDArray, row: int, col: int) -> NDArray:
    return np.delete(np.delete(mat, row, axis=0), col, axis=1)


def determinant(mat: NDArray):
    """Determinant of a square matrix by cofactor expansion, with the closed forms
    for 1x1, 2x2 and 3x3. Works for real and complex entries alike.
    """
    n = mat.shape[0]
    if n == 1:
        return mat[0, 0]
    if n == 2:
        return mat[0, 0] * mat[1, 1] - mat[0, 1] * mat[1, 0]
    if n == 3:
        return (
            mat[0, 0] * (mat[1, 1] * mat[2, 2] - mat[1, 2] * mat[2, 1])
            - mat[0, 1] * (mat[1, 0] * mat[2, 2] - mat[1, 2] * mat[2, 0])
            + mat[0, 2] * (mat[1, 0] * mat[2, 1] - mat[1, 1] * mat[2, 0])
        )
    # expand along the first row
    return sum(
        (-1) ** col * mat[0, col] * determinant(_minor(mat, 0, col)) for col in range(n)
    )


def adjugate(mat: NDArray) -> NDArray:
    """The adjugate (transposed cofactor matrix), so that
    `mat @ adjugate(mat) == determinant(mat) * I`.
    """
    n = mat.shape[0]
    if n == 1:
        return np.ones((1, 1), dtype=mat.dtype)
    if n == 2:
        return np.array([[mat[1, 1], -mat[0, 1]], [-mat[1, 0], mat[0, 0]]])
    adj = np.empty_like(mat)
    for row in range(n):
        for col in range(n):
            adj[col, row] = (-1) ** (row + col) * determinant(_minor(mat, row, col))
    return adj


def badness(mat: NDArray, lengths: NDArray, ref_lengths: NDArray) -> float:
    """Scale-free measure of how close `mat` is to singular:
    `|det(mat)| / prod_b (lengths[b] / ref_lengths[b])`.

    `lengths` are characteristic lengths of the physical element along each reference
    direction, and `ref_lengths` those of the reference element, so the value does not
    change when the element is scaled. It is 1 for a scaled copy of the reference
    element and 0 when the element collapses.
    """
    scale = np.prod(lengths / ref_lengths)
    if scale == 0:
        return 0.0
    return float(np.abs(determinant(mat)) / scale)
