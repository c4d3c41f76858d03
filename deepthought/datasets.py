from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Tuple

import numpy as np

from .array import Array1, Array2, ArrayBase
from .errors import NoData, ShapeMismatch

if TYPE_CHECKING:
    from os import PathLike
    from typing import Any, Callable, Iterator, Optional, Sequence, Union

    import numpy.typing as npt

    from .array import BorrowedArray

    Batch = Tuple[BorrowedArray, BorrowedArray]


class BatchSize:
    """Number of samples fed to the network before each optimizer step.

    If the samples do not divide evenly into batches, the trailing partial
    batch is dropped.
    """

    def __init__(self, n: int = 0):
        # 0 means the whole split
        if n < 0:
            raise ValueError(f"Batch size must not be negative, got {n}")
        self.n = n

    @classmethod
    def all(cls) -> BatchSize:
        """Batch gradient descent."""
        return cls(0)

    @classmethod
    def one(cls) -> BatchSize:
        """Stochastic gradient descent, the same as `number(1)`."""
        return cls(1)

    @classmethod
    def number(cls, n: int) -> BatchSize:
        """Mini-batch gradient descent."""
        if n < 1:
            raise ValueError(f"Batch size must be positive, got {n}")
        return cls(n)

    def resolve(self, num_samples: int) -> int:
        return num_samples if self.n == 0 else self.n

    def __repr__(self) -> str:
        return "BatchSize.all()" if self.n == 0 else f"BatchSize.number({self.n})"


def _as_table(data: Any) -> Array2:
    if isinstance(data, ArrayBase):
        if data.dims != 2:
            raise ShapeMismatch(data.shape, (-1, -1))
        return Array2.from_numpy(data.to_numpy().astype(np.float64))
    arr = np.asarray(data, dtype=np.float64)
    if arr.ndim == 1:
        arr = arr.reshape(-1, 1)
    return Array2.from_numpy(arr)


class Dataset:
    """Records and labels, split into a training and a testing part.

    Args:
    ----
        records: one row per sample, one column per field.
        labels: one row per sample.
        train_test_split (float): fraction of the rows used for training.
        batch_size (BatchSize): how to batch the rows.

    Records and labels are divided by their column means; use
    `denormalize_record` and `denormalize_label` to undo it, or `Dataset.raw`
    to keep the data as given.
    """

    def __init__(
        self,
        records: Any,
        labels: Any,
        train_test_split: float = 0.8,
        batch_size: BatchSize = BatchSize.all(),
        normalize: bool = True,
    ):
        records = _as_table(records)
        labels = _as_table(labels)
        if records.size == 0 or labels.size == 0:
            raise NoData()
        if records.shape[0] != labels.shape[0]:
            raise ShapeMismatch(records.shape, labels.shape)
        if not 0.0 <= train_test_split <= 1.0:
            raise ValueError(f"Split must be within [0, 1], got {train_test_split}")

        if normalize:
            self.record_means = records.mean(0)
            self.label_means = labels.mean(0)
            records = records / self.record_means
            labels = labels / self.label_means
        else:
            self.record_means = Array2.fill(1.0, (1, records.shape[1]))
            self.label_means = Array2.fill(1.0, (1, labels.shape[1]))

        self.records: Array2 = records  # type: ignore
        self.labels: Array2 = labels  # type: ignore
        self.train_test_split = train_test_split
        self.batch_size = batch_size

    @classmethod
    def raw(
        cls,
        records: Any,
        labels: Any,
        train_test_split: float = 0.8,
        batch_size: BatchSize = BatchSize.all(),
    ) -> Dataset:
        """A dataset that is not normalized."""
        return cls(records, labels, train_test_split, batch_size, normalize=False)

    def length(self) -> int:
        """Number of samples."""
        return self.records.shape[0]

    def __len__(self) -> int:
        return self.length()

    @property
    def num_train(self) -> int:
        return int(self.length() * self.train_test_split)

    def denormalize_record(self, normalized: Any) -> ArrayBase:
        """Undo the normalization of one record of shape `(fields,)`."""
        return _as_row(normalized) * self.record_means.reshape(self.record_means.size)

    def denormalize_label(self, normalized: Any) -> ArrayBase:
        return _as_row(normalized) * self.label_means.reshape(self.label_means.size)

    def _batches(self, lo: int, hi: int) -> Iterator[Batch]:
        n = hi - lo
        size = self.batch_size.resolve(n)
        if size == 0:
            return
        fields, label_fields = self.records.shape[1], self.labels.shape[1]
        for i in range(n // size):
            start, stop = lo + i * size, lo + (i + 1) * size
            samples = self.records.borrow((start, 0), (stop, fields))
            labels = self.labels.borrow((start, 0), (stop, label_fields))
            yield samples.permute(1, 0), labels.permute(1, 0)

    def iter_train(self) -> Iterator[Batch]:
        """Yield `(samples, labels)` batches of shape `(fields, batch)`."""
        return self._batches(0, self.num_train)

    def iter_test(self) -> Iterator[Batch]:
        return self._batches(self.num_train, self.length())

    def num_batches(self, train: bool = True) -> int:
        n = self.num_train if train else self.length() - self.num_train
        size = self.batch_size.resolve(n)
        return n // size if size else 0


def _as_row(data: Any) -> ArrayBase:
    if isinstance(data, ArrayBase):
        return data.reshape(data.size) if data.is_packed() else data.to_owned().reshape(data.size)
    return Array1.from_numpy(np.asarray(data, dtype=np.float64).reshape(-1))


def load_csv(
    path: Union[str, PathLike],
    label_columns: Sequence[int],
    train_test_split: float = 0.8,
    batch_size: BatchSize = BatchSize.all(),
    delimiter: str = ",",
    skip_header: int = 1,
) -> Dataset:
    """Read a numeric CSV file into a normalized dataset.

    `label_columns` selects the label fields; every other column is a record
    field.
    """
    data = np.genfromtxt(path, delimiter=delimiter, skip_header=skip_header, dtype=np.float64)
    if data.size == 0:
        raise NoData()
    if data.ndim == 1:
        data = data.reshape(1, -1)
    label_columns = list(label_columns)
    labels = data[:, label_columns]
    records = np.delete(data, label_columns, axis=1)
    return Dataset(records, labels, train_test_split, batch_size)


XOR_INPUTS = [[0.0, 0.0], [0.0, 1.0], [1.0, 0.0], [1.0, 1.0]]
XOR_LABELS = [[0.0], [1.0], [1.0], [0.0]]


def xor_table(batch_size: BatchSize = BatchSize.one()) -> Dataset:
    """The XOR truth table, all four rows used for training."""
    return Dataset.raw(XOR_INPUTS, XOR_LABELS, 1.0, batch_size)


# Synthetic 2-D classification problems. Points are drawn from `rng`, a fresh
# default generator when none is given.


def make_pts(N: int, rng: Optional[np.random.Generator] = None) -> List[Tuple[float, float]]:
    """Generates a list of N random 2D points within the range [0, 1)."""
    rng = np.random.default_rng() if rng is None else rng
    return [(float(x_1), float(x_2)) for x_1, x_2 in rng.random((N, 2))]


@dataclass
class Graph:
    """A set of 2D points with binary labels.

    Attributes
    ----------
        N (int): The number of points in the graph.
        X (List[Tuple[float, float]]): A list of tuples representing 2D points.
        y (List[int]): A list of integer labels associated with each point.

    """

    N: int
    X: List[Tuple[float, float]]
    y: List[int]

    def to_dataset(
        self, train_test_split: float = 1.0, batch_size: BatchSize = BatchSize.all()
    ) -> Dataset:
        """Unnormalized dataset with one label column."""
        return Dataset.raw(self.X, [[float(v)] for v in self.y], train_test_split, batch_size)


def _labelled(
    N: int, rng: Optional[np.random.Generator], rule: Callable[[float, float], bool]
) -> Graph:
    X = make_pts(N, rng)
    return Graph(N, X, [1 if rule(x_1, x_2) else 0 for x_1, x_2 in X])


def simple(N: int, rng: Optional[np.random.Generator] = None) -> Graph:
    """Label 1 when the x-coordinate is below 0.5."""
    return _labelled(N, rng, lambda x_1, x_2: x_1 < 0.5)


def diag(N: int, rng: Optional[np.random.Generator] = None) -> Graph:
    """Label 1 when the point lies below the diagonal `x_1 + x_2 = 0.5`."""
    return _labelled(N, rng, lambda x_1, x_2: x_1 + x_2 < 0.5)


def split(N: int, rng: Optional[np.random.Generator] = None) -> Graph:
    """Label 1 when the x-coordinate is below 0.2 or above 0.8."""
    return _labelled(N, rng, lambda x_1, x_2: x_1 < 0.2 or x_1 > 0.8)


def xor(N: int, rng: Optional[np.random.Generator] = None) -> Graph:
    """Label 1 for points in opposite quadrants around (0.5, 0.5)."""
    return _labelled(
        N, rng, lambda x_1, x_2: (x_1 < 0.5 and x_2 > 0.5) or (x_1 > 0.5 and x_2 < 0.5)
    )


def circle(N: int, rng: Optional[np.random.Generator] = None) -> Graph:
    """Label 1 outside the circle of radius sqrt(0.1) around (0.5, 0.5)."""
    return _labelled(
        N, rng, lambda x_1, x_2: (x_1 - 0.5) ** 2 + (x_2 - 0.5) ** 2 > 0.1
    )


def spiral(N: int, rng: Optional[np.random.Generator] = None) -> Graph:
    """Two interleaved spirals with opposite labels.

    The points are fixed; `rng` is accepted so every generator shares one
    signature.
    """
    def x(t: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        return t * np.cos(t) / 20.0

    def y(t: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        return t * np.sin(t) / 20.0

    half = N // 2
    t = 10.0 * np.arange(5, 5 + half) / half
    X = [(float(a) + 0.5, float(b) + 0.5) for a, b in zip(x(t), y(t))]
    # the second arm runs through -t with the coordinates swapped
    X += [(float(a) + 0.5, float(b) + 0.5) for a, b in zip(y(-t), x(-t))]
    return Graph(N, X, [0] * half + [1] * half)


datasets = {
    "Simple": simple,
    "Diag": diag,
    "Split": split,
    "Xor": xor,
    "Circle": circle,
    "Spiral": spiral,
}
