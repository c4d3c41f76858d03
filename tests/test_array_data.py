import numpy as np
import pytest
from hypothesis import given
from hypothesis.strategies import DataObject, data

from deepthought import (
    AllocationFailed,
    IndexingError,
    Layout,
    LayoutError,
    ShapeMismatch,
    WORD_SIZE,
    aligned_size,
    allocate,
    check_shape,
    index_to_position,
    shape_broadcast,
    shape_size,
    slots_needed,
    strides_aligned,
    strides_for,
    strides_packed,
    to_index,
)

from .strategies import shapes


def test_packed_strides() -> None:
    assert strides_packed((2, 3, 4), 2) == (24, 8, 2)
    assert strides_packed((5,), 8) == (8,)
    assert strides_packed((), 8) == ()


def test_aligned_strides() -> None:
    assert strides_aligned((2, 3, 4), 2, 8) == (96, 32, 8)
    assert strides_aligned((2, 3), 8, 8) == (24, 8)
    assert strides_aligned((2, 3), 12, 8) == (48, 16)


def test_aligned_size() -> None:
    assert aligned_size(1, 8) == 8
    assert aligned_size(8, 8) == 8
    assert aligned_size(9, 8) == 16
    assert aligned_size(2, 4) == 4


def test_strides_for_layout() -> None:
    assert strides_for((2, 3), 8, Layout.PACKED) == (24, 8)
    assert strides_for((2, 3), 2, Layout.ALIGNED) == strides_aligned((2, 3), 2, WORD_SIZE)
    # a 3 byte element can't be placed in whole slots of a padded word
    with pytest.raises(LayoutError):
        strides_for((2, 3), 3, Layout.ALIGNED)


@given(shapes())
def test_packed_strides_are_row_major(shape: tuple) -> None:
    assert strides_packed(shape, 8) == tuple(
        s for s in np.empty(shape, dtype=np.float64).strides
    )


@given(data())
def test_to_index_inverts_position(d: DataObject) -> None:
    shape = d.draw(shapes())
    strides = strides_packed(shape, 1)
    index = [0] * len(shape)
    for ordinal in range(shape_size(shape)):
        to_index(ordinal, shape, index)
        assert index_to_position(index, strides) == ordinal


def test_shape_broadcast() -> None:
    assert shape_broadcast((2, 1), (1, 3)) == (2, 3)
    assert shape_broadcast((4, 3), (4, 3)) == (4, 3)
    assert shape_broadcast((1, 1), (5, 2)) == (5, 2)
    assert shape_broadcast((), ()) == ()


def test_shape_broadcast_mismatch() -> None:
    with pytest.raises(ShapeMismatch) as exc:
        shape_broadcast((2, 3), (2, 4))
    assert exc.value.left == (2, 3)
    assert exc.value.right == (2, 4)

    # no rank promotion
    with pytest.raises(ShapeMismatch):
        shape_broadcast((2, 3), (3,))


def test_check_shape() -> None:
    assert check_shape([2, np.int64(3)]) == (2, 3)
    with pytest.raises(IndexingError):
        check_shape((2, -1))


def test_slots_needed() -> None:
    assert slots_needed((2, 3), (24, 8), 8) == 6
    assert slots_needed((2, 3), (48, 16), 8) == 11
    assert slots_needed((0, 3), (24, 8), 8) == 0
    assert slots_needed((), (), 8) == 1


def test_allocate() -> None:
    block = allocate(5, np.dtype(np.int16))
    assert block.shape == (5,)
    assert block.dtype == np.int16


def test_allocate_failure() -> None:
    with pytest.raises(AllocationFailed) as exc:
        allocate(2**62, np.dtype(np.float64))
    assert exc.value.nbytes == 2**62 * 8
    assert "Failed to allocate" in str(exc.value)
