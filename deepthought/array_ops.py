"""Element-wise combinators over arrays.

Two backends share one interface. `FastOps` runs numba kernels and is used
when every operand holds a numeric numpy dtype. `SimpleOps` runs plain Python
loops and handles everything else, in particular arrays of `Dual`.
"""

from __future__ import annotations

import operator
from typing import TYPE_CHECKING

import numpy as np

from . import fast_ops, operators
from .array_data import (
    broadcast_index,
    index_to_position,
    shape_broadcast,
    to_index,
)
from .errors import ShapeMismatch

if TYPE_CHECKING:
    from typing import Any, Callable, Optional

    from .array import ArrayBase

NUMERIC_KINDS = "biuf"


def is_numeric(*arrays: ArrayBase) -> bool:
    """Whether every array holds a dtype the numba kernels can handle."""
    return all(a.dtype.kind in NUMERIC_KINDS for a in arrays)


def result_dtype(*arrays: ArrayBase) -> np.dtype:
    if not is_numeric(*arrays):
        return np.dtype(object)
    return np.result_type(*(a.dtype for a in arrays))


def _slots(a: ArrayBase) -> tuple:
    """Arguments describing `a` to a slot-based kernel."""
    w = a.itemsize
    return (
        a._storage,
        a._start // w,
        np.array(a.shape, dtype=np.int64),
        np.array([s // w for s in a.strides], dtype=np.int64),
    )


class SimpleOps:
    @staticmethod
    def map(fn: Callable[[Any], Any], a: ArrayBase, dtype: Optional[Any] = None) -> ArrayBase:
        """Apply `fn` to every element of `a` in flattened order."""
        out = a._new_owned(a.shape, a.dtype if dtype is None else dtype)
        if a.is_packed():
            start = a._start // a.itemsize
            src = a._storage
            for i in range(a.size):
                out._storage[i] = fn(src[start + i])
        else:
            for i in range(a.size):
                out._storage[i] = fn(a._get_unchecked(i))
        return out

    @staticmethod
    def zip(
        fn: Callable[[Any, Any], Any],
        a: ArrayBase,
        b: ArrayBase,
        dtype: Optional[Any] = None,
    ) -> ArrayBase:
        """Combine `a` and `b` element-wise, stretching axes of size 1."""
        out_shape = shape_broadcast(a.shape, b.shape)
        out = a._new_owned(out_shape, result_dtype(a, b) if dtype is None else dtype)
        if a.shape == b.shape and a.is_packed() and b.is_packed():
            a_start = a._start // a.itemsize
            b_start = b._start // b.itemsize
            for i in range(out.size):
                out._storage[i] = fn(
                    a._storage[a_start + i], b._storage[b_start + i]
                )
            return out

        out_index = [0] * len(out_shape)
        a_index = np.zeros(len(a.shape), dtype=np.int64)
        b_index = np.zeros(len(b.shape), dtype=np.int64)
        o_shape = np.array(out_shape, dtype=np.int64)
        a_shape = np.array(a.shape, dtype=np.int64)
        b_shape = np.array(b.shape, dtype=np.int64)
        for i in range(out.size):
            to_index(i, out_shape, out_index)
            broadcast_index(out_index, o_shape, a_shape, a_index)
            broadcast_index(out_index, o_shape, b_shape, b_index)
            x_a = a._storage[a._slot(index_to_position(a_index, a.strides))]
            x_b = b._storage[b._slot(index_to_position(b_index, b.strides))]
            out._storage[i] = fn(x_a, x_b)
        return out

    @staticmethod
    def reduce(
        fn: Callable[[Any, Any], Any], a: ArrayBase, start: Any, dim: int
    ) -> ArrayBase:
        """Fold axis `dim` of `a`, keeping it with length 1."""
        out_shape = list(a.shape)
        out_shape[dim] = 1
        out = a._new_owned(tuple(out_shape), a.dtype)
        out_index = [0] * len(out_shape)
        step = a.strides[dim]
        for i in range(out.size):
            to_index(i, out_shape, out_index)
            pos = index_to_position(out_index, a.strides)
            acc = start
            for j in range(a.shape[dim]):
                acc = fn(acc, a._storage[a._slot(pos + j * step)])
            out._storage[i] = acc
        return out

    @staticmethod
    def matrix_multiply(a: ArrayBase, b: ArrayBase) -> ArrayBase:
        """Matrix product of two rank 2 arrays."""
        N, K, M = a.shape[0], a.shape[1], b.shape[1]
        out = a._new_owned((N, M), result_dtype(a, b))
        a_start, a_s0, a_s1 = (
            a._start // a.itemsize,
            a.strides[0] // a.itemsize,
            a.strides[1] // a.itemsize,
        )
        b_start, b_s0, b_s1 = (
            b._start // b.itemsize,
            b.strides[0] // b.itemsize,
            b.strides[1] // b.itemsize,
        )
        for n in range(N):
            for m in range(M):
                acc: Any = 0.0
                for k in range(K):
                    x_a = a._storage[a_start + n * a_s0 + k * a_s1]
                    x_b = b._storage[b_start + k * b_s0 + m * b_s1]
                    acc = x_a * x_b if k == 0 else acc + x_a * x_b
                out._storage[n * M + m] = acc
        return out


class FastOps:
    """Numeric arrays only. See `fast_ops.py` for the kernels."""

    @staticmethod
    def map(kernel: Callable[..., None], a: ArrayBase) -> ArrayBase:
        out = a._new_owned(a.shape, a.dtype)
        kernel(out._storage, np.array(out.shape, dtype=np.int64), *_slots(a))
        return out

    @staticmethod
    def zip(
        kernel: Callable[..., None],
        a: ArrayBase,
        b: ArrayBase,
        dtype: Optional[Any] = None,
    ) -> ArrayBase:
        out_shape = shape_broadcast(a.shape, b.shape)
        out = a._new_owned(out_shape, result_dtype(a, b) if dtype is None else dtype)
        kernel(
            out._storage,
            np.array(out_shape, dtype=np.int64),
            *_slots(a),
            *_slots(b),
        )
        return out

    @staticmethod
    def reduce(
        kernel: Callable[..., None], a: ArrayBase, start: Any, dim: int
    ) -> ArrayBase:
        out_shape = list(a.shape)
        out_shape[dim] = 1
        out = a._new_owned(tuple(out_shape), a.dtype)
        out._storage[:] = start
        kernel(out._storage, np.array(out_shape, dtype=np.int64), *_slots(a), dim)
        return out

    @staticmethod
    def matrix_multiply(a: ArrayBase, b: ArrayBase) -> ArrayBase:
        out = a._new_owned((a.shape[0], b.shape[1]), result_dtype(a, b))
        out._storage[:] = 0
        fast_ops.matrix_multiply(
            out._storage,
            np.array(out.shape, dtype=np.int64),
            *_slots(a),
            *_slots(b),
        )
        return out


_BINARY = {
    "add": (operator.add, fast_ops.add_zip),
    "sub": (operator.sub, fast_ops.sub_zip),
    "mul": (operator.mul, fast_ops.mul_zip),
    "div": (operator.truediv, fast_ops.div_zip),
}


def binary(name: str, a: ArrayBase, b: ArrayBase) -> ArrayBase:
    """Element-wise `a <name> b` with size 1 broadcasting."""
    simple, kernel = _BINARY[name]
    if is_numeric(a, b):
        dtype = None
        if name == "div":
            dtype = np.result_type(a.dtype, b.dtype, np.float64)
        with np.errstate(all="ignore"):
            return FastOps.zip(kernel, a, b, dtype)
    return SimpleOps.zip(simple, a, b)


def negate(a: ArrayBase) -> ArrayBase:
    if is_numeric(a):
        return FastOps.map(fast_ops.neg_map, a)
    return SimpleOps.map(operator.neg, a)


def copy(a: ArrayBase) -> ArrayBase:
    """Packed owning copy of `a`."""
    if is_numeric(a):
        return FastOps.map(fast_ops.id_map, a)
    return SimpleOps.map(operators.id, a)


def sum(a: ArrayBase, dim: int) -> ArrayBase:
    if is_numeric(a):
        return FastOps.reduce(fast_ops.add_reduce, a, 0, dim)
    return SimpleOps.reduce(operator.add, a, 0.0, dim)


def max(a: ArrayBase, dim: int) -> ArrayBase:
    if is_numeric(a):
        if a.dtype.kind == "f":
            start = -np.inf
        elif a.dtype.kind == "b":
            start = False
        else:
            start = np.iinfo(a.dtype).min
        return FastOps.reduce(fast_ops.max_reduce, a, start, dim)
    return SimpleOps.reduce(operators.max, a, -np.inf, dim)


def matrix_multiply(a: ArrayBase, b: ArrayBase) -> ArrayBase:
    if a.dims != 2 or b.dims != 2 or a.shape[1] != b.shape[0]:
        raise ShapeMismatch(a.shape, b.shape)
    if is_numeric(a, b):
        with np.errstate(all="ignore"):
            return FastOps.matrix_multiply(a, b)
    return SimpleOps.matrix_multiply(a, b)
