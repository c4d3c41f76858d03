from __future__ import annotations

from typing import TYPE_CHECKING, Any, TypeVar

import numpy as np
from numba import njit as _njit

from . import operators
from .array_data import (
    broadcast_index,
    index_to_position,
    to_index,
)

if TYPE_CHECKING:
    from typing import Callable

    from .array_data import Shape, Storage, Strides

# TIP: Use `NUMBA_DISABLE_JIT=1 pytest tests/` to run these kernels without JIT.
#
# Kernels work on slots, not bytes: callers pass `start` and `strides`
# already divided by the element size. Everything is compiled without
# `parallel=True`; the array core never spawns threads.
Fn = TypeVar("Fn")


def njit(fn: Fn, **kwargs: Any) -> Fn:
    """JIT-compile `fn` with numpy's floating point error model, always inlined.

    Args:
    ----
        fn (Fn): The function to compile.
        **kwargs (Any): Additional options for numba.

    Returns:
    -------
        Fn: The compiled function.

    """
    return _njit(inline="always", error_model="numpy", **kwargs)(fn)  # type: ignore


to_index = njit(to_index)
index_to_position = njit(index_to_position)
broadcast_index = njit(broadcast_index)


def array_map(
    fn: Callable[[float], float],
) -> Callable[[Storage, Shape, Storage, int, Shape, Strides], None]:
    """NUMBA low level map over one strided input into a packed output.

    Args:
    ----
        fn: function mapping one element to another.

    Returns:
    -------
        Array map kernel.

    """

    def _map(
        out: Storage,
        out_shape: Shape,
        in_storage: Storage,
        in_start: int,
        in_shape: Shape,
        in_strides: Strides,
    ) -> None:
        out_index = np.zeros(len(out_shape), np.int64)
        in_index = np.zeros(len(in_shape), np.int64)
        for ordinal in range(len(out)):
            to_index(ordinal, out_shape, out_index)
            broadcast_index(out_index, out_shape, in_shape, in_index)
            x = in_storage[in_start + index_to_position(in_index, in_strides)]
            out[ordinal] = fn(x)

    return njit(_map)  # type: ignore


def array_zip(
    fn: Callable[[float, float], float],
) -> Callable[
    [Storage, Shape, Storage, int, Shape, Strides, Storage, int, Shape, Strides], None
]:
    """NUMBA low level zip of two broadcastable strided inputs into a packed output.

    Args:
    ----
        fn: function combining two elements into one.

    Returns:
    -------
        Array zip kernel.

    """

    def _zip(
        out: Storage,
        out_shape: Shape,
        a_storage: Storage,
        a_start: int,
        a_shape: Shape,
        a_strides: Strides,
        b_storage: Storage,
        b_start: int,
        b_shape: Shape,
        b_strides: Strides,
    ) -> None:
        out_index = np.zeros(len(out_shape), np.int64)
        a_index = np.zeros(len(a_shape), np.int64)
        b_index = np.zeros(len(b_shape), np.int64)
        for ordinal in range(len(out)):
            to_index(ordinal, out_shape, out_index)
            broadcast_index(out_index, out_shape, a_shape, a_index)
            broadcast_index(out_index, out_shape, b_shape, b_index)
            x_a = a_storage[a_start + index_to_position(a_index, a_strides)]
            x_b = b_storage[b_start + index_to_position(b_index, b_strides)]
            out[ordinal] = fn(x_a, x_b)

    return njit(_zip)  # type: ignore


def array_reduce(
    fn: Callable[[float, float], float],
) -> Callable[[Storage, Shape, Storage, int, Shape, Strides, int], None]:
    """NUMBA low level reduction of one axis of a strided input.

    `out` must be packed, have the input's shape with `reduce_dim` set to 1,
    and be pre-filled with the start value.

    Args:
    ----
        fn: reduction function mapping two elements to one.

    Returns:
    -------
        Array reduce kernel.

    """

    def _reduce(
        out: Storage,
        out_shape: Shape,
        a_storage: Storage,
        a_start: int,
        a_shape: Shape,
        a_strides: Strides,
        reduce_dim: int,
    ) -> None:
        out_index = np.zeros(len(out_shape), np.int64)
        step = a_strides[reduce_dim]
        for ordinal in range(len(out)):
            to_index(ordinal, out_shape, out_index)
            pos = a_start + index_to_position(out_index, a_strides)
            acc = out[ordinal]
            for j in range(a_shape[reduce_dim]):
                acc = fn(acc, a_storage[pos + j * step])
            out[ordinal] = acc

    return njit(_reduce)  # type: ignore


def _matrix_multiply(
    out: Storage,
    out_shape: Shape,
    a_storage: Storage,
    a_start: int,
    a_shape: Shape,
    a_strides: Strides,
    b_storage: Storage,
    b_start: int,
    b_shape: Shape,
    b_strides: Strides,
) -> None:
    """NUMBA matrix multiply of `(n, k) x (k, m)` into a packed `(n, m)` output.

    Args:
    ----
        out (Storage): packed storage for `out`
        out_shape (Shape): shape for `out`
        a_storage (Storage): storage for `a`
        a_start (int): slot of the first element of `a`
        a_shape (Shape): shape for `a`
        a_strides (Strides): slot strides for `a`
        b_storage (Storage): storage for `b`
        b_start (int): slot of the first element of `b`
        b_shape (Shape): shape for `b`
        b_strides (Strides): slot strides for `b`

    Returns:
    -------
        None : Fills in `out`

    """
    N, K, M = a_shape[0], a_shape[1], b_shape[1]
    for n in range(N):
        for m in range(M):
            tmp = out[n * M + m]
            for k in range(K):
                a_pos = a_start + n * a_strides[0] + k * a_strides[1]
                b_pos = b_start + k * b_strides[0] + m * b_strides[1]
                tmp += a_storage[a_pos] * b_storage[b_pos]
            out[n * M + m] = tmp


matrix_multiply = njit(_matrix_multiply)


add_zip = array_zip(njit(operators.add))
sub_zip = array_zip(njit(operators.sub))
mul_zip = array_zip(njit(operators.mul))
div_zip = array_zip(njit(operators.div))
neg_map = array_map(njit(operators.neg))
id_map = array_map(njit(operators.id))
add_reduce = array_reduce(njit(operators.add))
max_reduce = array_reduce(njit(operators.max))
