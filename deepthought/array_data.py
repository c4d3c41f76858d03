from __future__ import annotations

import enum
import struct
from typing import Sequence, Tuple

import numpy as np
import numpy.typing as npt
from typing_extensions import TypeAlias

from . import debug_allocator
from .errors import AllocationFailed, IndexingError, LayoutError, ShapeMismatch

# Size of a pointer on the host: 8 on 64-bit, 4 on 32-bit.
WORD_SIZE = struct.calcsize("P")


Storage: TypeAlias = npt.NDArray
OutIndex: TypeAlias = npt.NDArray[np.int64]
Index: TypeAlias = npt.NDArray[np.int64]
Shape: TypeAlias = npt.NDArray[np.int64]
Strides: TypeAlias = npt.NDArray[np.int64]

UserIndex: TypeAlias = Sequence[int]
UserShape: TypeAlias = Tuple[int, ...]
UserStrides: TypeAlias = Tuple[int, ...]


class Layout(enum.Enum):
    """How elements are placed in their block."""

    # elements are as tight as possible, no padding
    PACKED = "packed"
    # every element starts on a word boundary
    ALIGNED = "aligned"


def index_to_position(index: Index, strides: Strides) -> int:
    """Convert a multi-dimensional index to a byte offset based on strides."""
    pos = 0
    for a, b in zip(index, strides):
        pos += a * b
    return pos


def to_index(ordinal: int, shape: Shape, out_index: OutIndex) -> None:
    """Convert a row-major ordinal value to a multi-dimensional index."""
    cur_ord = ordinal + 0
    for i in range(len(shape) - 1, -1, -1):
        sh = shape[i]
        out_index[i] = int(cur_ord % sh)
        cur_ord = cur_ord // sh


def broadcast_index(
    big_index: Index, big_shape: Shape, shape: Shape, out_index: OutIndex
) -> None:
    """Map an index of the broadcast shape to an index of a smaller one."""
    start = big_shape.size - shape.size
    for i in range(shape.size):
        # axes of size 1 are repeated along the broadcast axis
        out_index[i] = big_index[i + start] if shape[i] != 1 else 0


def shape_broadcast(shape1: UserShape, shape2: UserShape) -> UserShape:
    """Broadcast two shapes of the same rank.

    Only axes of size 1 are stretched; shapes of different rank never
    broadcast.
    """
    if len(shape1) != len(shape2):
        raise ShapeMismatch(shape1, shape2)
    shape = []
    for a, b in zip(shape1, shape2):
        if a == b or b == 1:
            shape.append(a)
        elif a == 1:
            shape.append(b)
        else:
            raise ShapeMismatch(shape1, shape2)
    return tuple(shape)


def strides_packed(shape: UserShape, elem_size: int) -> UserStrides:
    """Pack elements as tight as possible into one continuous block.

    >>> strides_packed((2, 3, 4), 2)
    (24, 8, 2)
    """
    stride = [elem_size] * len(shape)
    for i in range(len(shape) - 2, -1, -1):
        stride[i] = shape[i + 1] * stride[i + 1]
    return tuple(stride)


def aligned_size(elem_size: int, word_size: int = WORD_SIZE) -> int:
    """Round an element size up to the next multiple of the word size."""
    return -(-elem_size // word_size) * word_size


def strides_aligned(
    shape: UserShape, elem_size: int, word_size: int = WORD_SIZE
) -> UserStrides:
    """Align elements to word boundaries.

    >>> strides_aligned((2, 3, 4), 2, 8)
    (96, 32, 8)
    """
    return strides_packed(shape, aligned_size(elem_size, word_size))


def strides_for(shape: UserShape, elem_size: int, layout: Layout) -> UserStrides:
    if layout is Layout.PACKED:
        return strides_packed(shape, elem_size)
    padded = aligned_size(elem_size)
    if padded % elem_size != 0:
        raise LayoutError(
            f"Element size {elem_size} does not divide the aligned width {padded}"
        )
    return strides_packed(shape, padded)


def check_shape(shape: UserShape) -> UserShape:
    """Validate a user shape and return it as a tuple of ints."""
    out = tuple(int(s) for s in shape)
    for s in out:
        if s < 0:
            raise IndexingError(f"Negative axis length in shape {out}.")
    return out


def shape_size(shape: UserShape) -> int:
    size = 1
    for s in shape:
        size *= s
    return size


def slots_needed(shape: UserShape, strides: UserStrides, elem_size: int) -> int:
    """Number of `elem_size` slots addressed by `shape` and `strides`.

    Large enough to address `stride · (shape - 1)` plus one element.
    """
    if shape_size(shape) == 0:
        return 0
    last = 0
    for s, st in zip(shape, strides):
        last += (s - 1) * st
    return last // elem_size + 1


def allocate(nslots: int, dtype: np.dtype) -> Storage:
    """Allocate one uninitialized block of `nslots` elements.

    Raises `AllocationFailed` if numpy cannot provide the memory.
    """
    tracer = debug_allocator.installed()
    try:
        block = np.empty(nslots, dtype=dtype)
    except (MemoryError, ValueError, OverflowError) as exc:
        nbytes = nslots * dtype.itemsize
        if tracer is not None:
            tracer.on_failed_alloc(nbytes, dtype.alignment)
        raise AllocationFailed(nbytes) from exc
    if tracer is not None:
        tracer.on_alloc(block)
    return block
