from __future__ import annotations

from typing import Sequence


class ArrayError(RuntimeError):
    """Base class for errors raised by the array core."""

    pass


class IndexingError(ArrayError):
    """Exception raised for malformed indices and shapes."""

    pass


class IndexOutOfBounds(IndexingError):
    """An index exceeds the size of its axis."""

    def __init__(self, axis: int, index: int, bound: int):
        self.axis = axis
        self.index = index
        self.bound = bound
        super().__init__(
            f"Index {index} is out of bounds for axis {axis} with size {bound}"
        )


class OffsetOutOfBounds(IndexingError):
    """A flattened element offset exceeds the array size."""

    def __init__(self, offset: int, bound: int):
        self.offset = offset
        self.bound = bound
        super().__init__(
            f"Element offset {offset} exceeds number of elements in the array ({bound})"
        )


class ShapeMismatch(ArrayError):
    """Two arrays taking part in one operation have incompatible shapes."""

    def __init__(self, left: Sequence[int], right: Sequence[int]):
        self.left = tuple(left)
        self.right = tuple(right)
        super().__init__(f"Mismatched shapes: {self.left} and {self.right}")


class ReshapeIncompatibleShape(ShapeMismatch):
    """Trying to reshape into a shape with a different number of elements."""

    def __init__(self, size: int, new_shape: Sequence[int]):
        self.size = size
        self.new_shape = tuple(new_shape)
        ArrayError.__init__(
            self, f"Cannot reshape array of size {size} into shape {self.new_shape}"
        )
        self.left = (size,)
        self.right = self.new_shape


class LayoutError(ArrayError):
    """The operation needs a different memory layout than the array has."""

    pass


class AllocationFailed(ArrayError):
    """The allocator returned no memory."""

    def __init__(self, nbytes: int):
        self.nbytes = nbytes
        super().__init__(f"Failed to allocate {nbytes} bytes")


class DatasetError(RuntimeError):
    """Base class for dataset errors."""

    pass


class NoData(DatasetError):
    def __init__(self) -> None:
        super().__init__("Expected some data but there is none")
