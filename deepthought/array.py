from __future__ import annotations

import copy
import numbers
from typing import TYPE_CHECKING

import numpy as np

from . import array_ops
from .array_data import (
    Layout,
    allocate,
    check_shape,
    index_to_position,
    shape_size,
    slots_needed,
    strides_for,
    strides_packed,
    to_index,
)
from .errors import (
    IndexingError,
    IndexOutOfBounds,
    LayoutError,
    OffsetOutOfBounds,
    ReshapeIncompatibleShape,
)

if TYPE_CHECKING:
    from typing import Any, Callable, Iterable, Iterator, List, Optional, Type, Union

    import numpy.typing as npt

    from .array_data import Storage, UserIndex, UserShape, UserStrides
    from .dual_random import DualDistribution

    ArrayLike = Union["ArrayBase", float, int, Any]


def _infer_dtype(value: Any) -> np.dtype:
    if isinstance(value, (numbers.Number, np.generic)):
        return np.asarray(value).dtype
    return np.dtype(object)


class ArrayBase:
    """Behaviour shared by owning arrays and borrowed views.

    Elements live in a one-dimensional block of `itemsize` wide slots.
    `strides` are in bytes, `_start` is the byte offset of the first element
    inside the block.
    """

    rank: Optional[int] = None
    owns_data: bool

    _storage: Storage
    _start: int
    shape: UserShape
    strides: UserStrides
    dims: int
    size: int
    layout: Layout

    __hash__ = None  # type: ignore

    def __init__(
        self,
        storage: Storage,
        shape: UserShape,
        strides: UserStrides,
        start: int = 0,
        layout: Layout = Layout.PACKED,
    ):
        shape = check_shape(shape)
        strides = tuple(int(s) for s in strides)
        if len(strides) != len(shape):
            raise IndexingError(f"Len of strides {strides} must match {shape}.")
        if self.rank is not None and len(shape) != self.rank:
            raise IndexingError(
                f"{type(self).__name__} has rank {self.rank}, got shape {shape}."
            )
        self._storage = storage
        self._start = start
        self.shape = shape
        self.strides = strides
        self.dims = len(shape)
        self.size = shape_size(shape)
        self.layout = layout
        self._packed = strides == strides_packed(shape, self.itemsize)

    @property
    def dtype(self) -> np.dtype:
        return self._storage.dtype

    @property
    def itemsize(self) -> int:
        """Size of one element in bytes."""
        return self._storage.dtype.itemsize

    def is_packed(self) -> bool:
        """Whether elements are contiguous, without padding, in row-major order."""
        return self._packed

    def _slot(self, position: int) -> int:
        return (self._start + position) // self.itemsize

    def _new_owned(self, shape: UserShape, dtype: Any) -> Array:
        return array_class(len(shape)).uninitialized(shape, dtype)

    # Element access

    def _get_internal_ix(self, ix: Union[int, UserIndex]) -> int:
        """Byte offset of the element at `ix`, relative to the first element.

        Raises `IndexOutOfBounds` if any index is outside of its axis.
        """
        aindex = (ix,) if isinstance(ix, (int, np.integer)) else tuple(ix)
        if len(aindex) != self.dims:
            raise IndexingError(f"Index {aindex} must be size of {self.shape}.")
        pos = 0
        for axis, (i, bound) in enumerate(zip(aindex, self.shape)):
            if i < 0:
                raise IndexingError(f"Negative indexing for {aindex} not supported.")
            if i >= bound:
                raise IndexOutOfBounds(axis, int(i), bound)
            pos += i * self.strides[axis]
        return pos

    def get(self, ix: Union[int, UserIndex]) -> Any:
        """Return the element at a multi-dimensional index."""
        return self._storage[self._slot(self._get_internal_ix(ix))]

    def set(self, ix: Union[int, UserIndex], val: Any) -> None:
        """Replace the element at a multi-dimensional index."""
        self._storage[self._slot(self._get_internal_ix(ix))] = val

    def __getitem__(self, key: Union[int, UserIndex]) -> Any:
        return self.get(key)

    def __setitem__(self, key: Union[int, UserIndex], val: Any) -> None:
        self.set(key, val)

    def _ordinal_slot(self, offset: int) -> int:
        if self._packed:
            return self._start // self.itemsize + offset
        index = [0] * self.dims
        to_index(offset, self.shape, index)
        return self._slot(index_to_position(index, self.strides))

    def _get_unchecked(self, offset: int) -> Any:
        """Element at a flattened offset. The offset is not checked."""
        return self._storage[self._ordinal_slot(offset)]

    def _set_unchecked(self, offset: int, val: Any) -> None:
        """Replace the element at a flattened offset. The offset is not checked."""
        self._storage[self._ordinal_slot(offset)] = val

    def _check_offset(self, offset: int) -> None:
        if not 0 <= offset < self.size:
            raise OffsetOutOfBounds(offset, self.size)

    def _get(self, offset: int) -> Any:
        """Element at a row-major offset, `0 <= offset < size`."""
        self._check_offset(offset)
        return self._get_unchecked(offset)

    def _set(self, offset: int, val: Any) -> None:
        self._check_offset(offset)
        self._set_unchecked(offset, val)

    def indices(self) -> Iterable[UserIndex]:
        """Yield all possible indices in row-major order."""
        out_index = [0] * self.dims
        for i in range(self.size):
            to_index(i, self.shape, out_index)
            yield tuple(out_index)

    def __iter__(self) -> Iterator[Any]:
        for i in range(self.size):
            yield self._get_unchecked(i)

    def __len__(self) -> int:
        return self.shape[0] if self.dims else 1

    # Views and copies

    def borrow(self, i1: UserIndex, i2: UserIndex) -> BorrowedArray:
        """Create a view of the rectangular region `[i1, i2)`.

        The view shares this array's block and strides, so writes through it
        show up here. `i1` must be an in-range index; it may equal `i2` along
        an axis, giving an empty view.
        """
        lo, hi = tuple(i1), tuple(i2)
        if len(lo) != self.dims or len(hi) != self.dims:
            raise IndexingError(f"View bounds {lo}, {hi} must be size of {self.shape}.")
        for axis, (a, b, bound) in enumerate(zip(lo, hi, self.shape)):
            if a < 0:
                raise IndexingError(f"Negative indexing for {lo} not supported.")
            if a >= bound and bound > 0:
                raise IndexOutOfBounds(axis, a, bound)
            if b > bound:
                raise IndexOutOfBounds(axis, b, bound)
            if a > b:
                raise IndexingError(
                    f"Lower bound {lo} exceeds upper bound {hi} on axis {axis}."
                )
        shape = tuple(b - a for a, b in zip(lo, hi))
        return BorrowedArray(
            self,
            shape,
            self.strides,
            self._start + index_to_position(lo, self.strides),
        )

    def permute(self, *order: int) -> BorrowedArray:
        """View with the axes reordered."""
        assert list(sorted(order)) == list(
            range(self.dims)
        ), f"Must give a position to each dimension. Shape: {self.shape} Order: {order}"
        shape = tuple([self.shape[i] for i in order])
        strides = tuple([self.strides[i] for i in order])
        return BorrowedArray(self, shape, strides, self._start)

    def to_owned(self) -> Array:
        """Return a packed owning copy."""
        out = array_ops.copy(self)
        if out.dtype == np.dtype(object):
            for i in range(out.size):
                out._storage[i] = copy.copy(out._storage[i])
        return out

    def clone(self) -> Array:
        return self.to_owned()

    def reshape(self, *shape: Union[int, UserShape]) -> ArrayBase:
        """Return an array sharing this block under a new shape.

        Raises `ReshapeIncompatibleShape` if the element count changes and
        `LayoutError` unless the array is densely packed.
        """
        new_shape = check_shape(_flatten_shape(shape))
        if shape_size(new_shape) != self.size:
            raise ReshapeIncompatibleShape(self.size, new_shape)
        if not self._packed:
            raise LayoutError(
                "reshape requires a densely packed array, call to_owned() first"
            )
        return self._reshaped(new_shape, strides_packed(new_shape, self.itemsize))

    def _reshaped(self, shape: UserShape, strides: UserStrides) -> ArrayBase:
        raise NotImplementedError

    # Inspection

    def tolist(self) -> Any:
        def build(prefix: List[int]) -> Any:
            axis = len(prefix)
            if axis == self.dims:
                return self.get(prefix)
            return [build(prefix + [i]) for i in range(self.shape[axis])]

        return build([])

    def to_numpy(self) -> npt.NDArray:
        out = np.empty(self.shape, dtype=self.dtype)
        for ix in self.indices():
            out[ix] = self.get(ix)
        return out

    def to_string(self) -> str:
        """Return a string representation of the array."""
        s = ""
        for index in self.indices():
            m = ""
            for i in range(len(index) - 1, -1, -1):
                if index[i] == 0:
                    m = "\n%s[" % ("\t" * i) + m
                else:
                    break
            s += m
            v = self.get(index)
            s += f"{v:3.2f}" if self.dtype.kind == "f" else f"{v}"
            m = ""
            for i in range(len(index) - 1, -1, -1):
                if index[i] == self.shape[i] - 1:
                    m += "]"
                else:
                    break
            if m:
                s += m
            else:
                s += " "
        return s

    def __repr__(self) -> str:
        return self.to_string()

    def __eq__(self, other: object) -> bool:  # type: ignore[override]
        if not isinstance(other, ArrayBase):
            return NotImplemented
        if self.shape != other.shape:
            return False
        for offset in range(self.size):
            if not self._get_unchecked(offset) == other._get_unchecked(offset):
                return False
        return True

    def __ne__(self, other: object) -> bool:  # type: ignore[override]
        eq = self.__eq__(other)
        if eq is NotImplemented:
            return NotImplemented
        return not eq

    # Arithmetic

    def _ensure_array(self, b: ArrayLike) -> ArrayBase:
        """Turn a scalar into an array of ones along every axis for broadcasting."""
        if isinstance(b, ArrayBase):
            return b
        return array_class(self.dims).fill(b, (1,) * self.dims)

    def map(self, fn: Callable[[Any], Any], dtype: Optional[Any] = None) -> Array:
        """Apply `fn` to every element."""
        return array_ops.SimpleOps.map(fn, self, dtype)

    def zip_with(
        self, other: ArrayLike, fn: Callable[[Any, Any], Any], dtype: Optional[Any] = None
    ) -> Array:
        """Combine with `other` element-wise, stretching axes of size 1."""
        return array_ops.SimpleOps.zip(fn, self, self._ensure_array(other), dtype)

    def reduce(self, fn: Callable[[Any, Any], Any], start: Any, dim: Optional[int] = None) -> Any:
        """Fold `fn` over axis `dim`, or over every element when `dim` is None."""
        if dim is None:
            acc = start
            for x in self:
                acc = fn(acc, x)
            return acc
        return array_ops.SimpleOps.reduce(fn, self, start, dim)

    def __add__(self, b: ArrayLike) -> Array:
        return array_ops.binary("add", self, self._ensure_array(b))

    def __radd__(self, b: ArrayLike) -> Array:
        return array_ops.binary("add", self._ensure_array(b), self)

    def __sub__(self, b: ArrayLike) -> Array:
        return array_ops.binary("sub", self, self._ensure_array(b))

    def __rsub__(self, b: ArrayLike) -> Array:
        return array_ops.binary("sub", self._ensure_array(b), self)

    def __mul__(self, b: ArrayLike) -> Array:
        return array_ops.binary("mul", self, self._ensure_array(b))

    def __rmul__(self, b: ArrayLike) -> Array:
        return array_ops.binary("mul", self._ensure_array(b), self)

    def __truediv__(self, b: ArrayLike) -> Array:
        return array_ops.binary("div", self, self._ensure_array(b))

    def __rtruediv__(self, b: ArrayLike) -> Array:
        return array_ops.binary("div", self._ensure_array(b), self)

    def __neg__(self) -> Array:
        return array_ops.negate(self)

    def __matmul__(self, b: ArrayBase) -> Array:
        return array_ops.matrix_multiply(self, b)

    def matmul(self, b: ArrayBase) -> Array:
        return array_ops.matrix_multiply(self, b)

    def sum(self, dim: Optional[int] = None) -> Any:
        """Sum over `dim` (kept with length 1), or of every element when `dim` is None."""
        if dim is not None:
            return array_ops.sum(self, dim)
        if self.size == 0:
            return 0.0
        flat = self if self._packed else self.to_owned()
        return array_ops.sum(flat.reshape(self.size), 0)._get_unchecked(0)

    def mean(self, dim: Optional[int] = None) -> Any:
        if dim is not None:
            return self.sum(dim) / self.shape[dim]
        return self.sum() / self.size

    def max(self, dim: Optional[int] = None) -> Any:
        """Maximum over `dim` (kept with length 1), or of every element."""
        if dim is not None:
            return array_ops.max(self, dim)
        if self.size == 0:
            return -np.inf
        flat = self if self._packed else self.to_owned()
        return array_ops.max(flat.reshape(self.size), 0)._get_unchecked(0)


class Array(ArrayBase):
    """An owning n-dimensional array.

    Exactly one block is allocated per construction; arrays created by
    `reshape` share it through numpy's reference counting, so it is released
    once, when its last user is gone.
    """

    owns_data = True

    @classmethod
    def uninitialized(
        cls,
        shape: UserShape,
        dtype: Any = np.float64,
        layout: Layout = Layout.PACKED,
    ) -> Array:
        """Create an array whose contents are left unspecified.

        Reading an element before writing it returns whatever the block held.
        Raises `AllocationFailed` if no memory could be allocated.
        """
        shape = check_shape(shape)
        if cls.rank is not None and len(shape) != cls.rank:
            raise IndexingError(f"{cls.__name__} has rank {cls.rank}, got shape {shape}.")
        dtype = np.dtype(dtype)
        strides = strides_for(shape, dtype.itemsize, layout)
        storage = allocate(slots_needed(shape, strides, dtype.itemsize), dtype)
        return cls(storage, shape, strides, 0, layout)

    @classmethod
    def fill(
        cls,
        value: Any,
        shape: UserShape,
        dtype: Optional[Any] = None,
        layout: Layout = Layout.PACKED,
    ) -> Array:
        """Create an array where every element equals `value`.

        Object elements are copied, so that in-place updates of one element
        never leak into another.
        """
        a = cls.uninitialized(shape, _infer_dtype(value) if dtype is None else dtype, layout)
        if a.dtype == np.dtype(object):
            for offset in range(a.size):
                a._set_unchecked(offset, copy.copy(value))
        else:
            a._storage[:] = value
        return a

    @classmethod
    def zeros(cls, shape: UserShape, dtype: Any = np.float64) -> Array:
        return cls.fill(0, shape, dtype)

    @classmethod
    def from_numpy(
        cls, data: npt.ArrayLike, dtype: Optional[Any] = None, layout: Layout = Layout.PACKED
    ) -> Array:
        arr = np.asarray(data, dtype=dtype)
        a = cls.uninitialized(arr.shape, arr.dtype, layout)
        if layout is Layout.PACKED:
            a._storage[:] = arr.ravel()
        else:
            for ix in a.indices():
                a.set(ix, arr[ix])
        return a

    @classmethod
    def from_list(cls, data: Any, dtype: Optional[Any] = None) -> Array:
        return cls.from_numpy(data, dtype)

    @classmethod
    def random(
        cls,
        shape: UserShape,
        distribution: DualDistribution,
        rng: Optional[np.random.Generator] = None,
        width: int = 0,
    ) -> Array:
        """Array of `Dual` constants drawn from `distribution`."""
        rng = np.random.default_rng() if rng is None else rng
        a = cls.uninitialized(shape, object)
        for offset in range(a.size):
            a._set_unchecked(offset, distribution.sample(rng, width))
        return a

    def clone(self) -> Array:
        """Copy the whole block, preserving shape and stride."""
        block = allocate(len(self._storage), self.dtype)
        if self.dtype == np.dtype(object):
            for i, x in enumerate(self._storage):
                block[i] = copy.copy(x)
        else:
            block[:] = self._storage
        return type(self)(block, self.shape, self.strides, self._start, self.layout)

    def _reshaped(self, shape: UserShape, strides: UserStrides) -> ArrayBase:
        return array_class(len(shape))(self._storage, shape, strides, self._start, self.layout)


class BorrowedArray(ArrayBase):
    """A view into another array's block.

    Holds a reference to its parent, so the block stays alive for as long as
    the view does. A view never releases the block.
    """

    owns_data = False

    def __init__(
        self,
        parent: ArrayBase,
        shape: UserShape,
        strides: UserStrides,
        start: int,
    ):
        super().__init__(parent._storage, shape, strides, start, parent.layout)
        self.parent = parent

    def _reshaped(self, shape: UserShape, strides: UserStrides) -> ArrayBase:
        return BorrowedArray(self.parent, shape, strides, self._start)


class Array1(Array):
    rank = 1


class Array2(Array):
    rank = 2


class Array3(Array):
    rank = 3


_RANKED: dict = {1: Array1, 2: Array2, 3: Array3}


def array_class(rank: int) -> Type[Array]:
    """Owning array class for a rank, using the named alias where there is one."""
    return _RANKED.get(rank, Array)


def _flatten_shape(shape: tuple) -> tuple:
    if len(shape) == 1 and not isinstance(shape[0], (int, np.integer)):
        return tuple(shape[0])
    return shape


def array(data: Any, dtype: Optional[Any] = None) -> Array:
    """Build an owning array of the matching rank from nested lists."""
    arr = np.asarray(data, dtype=dtype)
    return array_class(arr.ndim).from_numpy(arr)
