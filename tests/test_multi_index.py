import itertools

import pytest
import numpy as np

from fastelem.elements._multi_index import flat_to_multi, multi_to_flat


@pytest.mark.parametrize("order,ndims", [(1, 1), (1, 3), (2, 2), (3, 3), (8, 3), (2, 5)])
def test_bijection(order, ndims):
    count = (order + 1) ** ndims
    seen = set()
    for index in range(count):
        multi = flat_to_multi(index, order, ndims)
        assert len(multi) == ndims
        assert all(0 <= i <= order for i in multi)
        assert multi_to_flat(multi, order, ndims) == index
        seen.add(multi)
    assert len(seen) == count
    assert seen == set(itertools.product(range(order + 1), repeat=ndims))


@pytest.mark.parametrize("order,ndims", [(1, 2), (3, 3), (4, 2)])
def test_matches_fortran_order(order, ndims):
    shape = (order + 1,) * ndims
    for index in range(np.prod(shape)):
        expected = tuple(int(i) for i in np.unravel_index(index, shape, order="F"))
        assert flat_to_multi(index, order, ndims) == expected


def test_first_dimension_fastest():
    assert flat_to_multi(0, 2, 3) == (0, 0, 0)
    assert flat_to_multi(1, 2, 3) == (1, 0, 0)
    assert flat_to_multi(3, 2, 3) == (0, 1, 0)
    assert flat_to_multi(9, 2, 3) == (0, 0, 1)
    assert flat_to_multi(26, 2, 3) == (2, 2, 2)
    assert multi_to_flat((1, 2, 0), 2, 3) == 7


@pytest.mark.parametrize("index", [-1, 27, 100])
def test_flat_out_of_range(index):
    with pytest.raises(IndexError):
        flat_to_multi(index, 2, 3)


@pytest.mark.parametrize("multi", [(3, 0, 0), (0, -1, 0), (0, 0, 5)])
def test_multi_out_of_range(multi):
    with pytest.raises(IndexError):
        multi_to_flat(multi, 2, 3)


@pytest.mark.parametrize("multi", [(), (1,), (1, 2), (0, 1, 2, 0)])
def test_multi_wrong_length(multi):
    with pytest.raises(IndexError):
        multi_to_flat(multi, 2, 3)
