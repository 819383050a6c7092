import collections.abc as colltypes


def flat_to_multi(index: int, order: int, ndims: int) -> tuple[int, ...]:
    """Splits a flat basis index into its per-dimension node indices.

    The digits are taken in base `order + 1` with the first dimension varying
    fastest, so `index == i_0 + (order+1) * i_1 + (order+1)**2 * i_2 + ...`.
    This is the same enumeration as
    `np.unravel_index(index, (order+1,)*ndims, order="F")`.

    Args:
        index (int): the flat index, in `[0, (order+1)**ndims)`.
        order (int): the polynomial order of the element.
        ndims (int): the number of dimensions.

    Raises:
        IndexError: if `index` is out of range.

    Returns:
        tuple[int, ...]: the multi-index `(i_0, ..., i_{ndims-1})`.
    """
    base = order + 1
    if not 0 <= index < base**ndims:
        raise IndexError(
            f"Basis index {index} out of range for an element of order {order}"
            f" in {ndims} dimensions ({base**ndims} basis functions)."
        )
    multi = []
    for _ in range(ndims):
        index, digit = divmod(index, base)
        multi.append(digit)
    return tuple(multi)


def multi_to_flat(multi: colltypes.Sequence[int], order: int, ndims: int) -> int:
    """Inverse of `flat_to_multi()`. Raises `IndexError` if `multi` does not hold
    `ndims` digits in `[0, order]`."""
    if len(multi) != ndims:
        raise IndexError(
            f"Multi-index {tuple(multi)} should have {ndims} entries, not {len(multi)}."
        )
    base = order + 1
    index = 0
    for digit in reversed(multi):
        if not 0 <= digit < base:
            raise IndexError(
                f"Multi-index {tuple(multi)} has a digit out of range for order {order}."
            )
        index = index * base + digit
    return index
