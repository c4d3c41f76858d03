"""Element-wise activation functions for arrays of `Dual` (or plain floats)."""

from __future__ import annotations

from typing import TYPE_CHECKING

from . import operators
from .dual import Dual

if TYPE_CHECKING:
    from typing import Any

    from .array import Array, ArrayBase


def _relu(x: Any) -> Any:
    return x.relu() if isinstance(x, Dual) else operators.relu(x)


def _sigmoid(x: Any) -> Any:
    return x.sigmoid() if isinstance(x, Dual) else operators.sigmoid(x)


def _tanh(x: Any) -> Any:
    return x.tanh() if isinstance(x, Dual) else operators.tanh(x)


def _exp(x: Any) -> Any:
    return x.exp() if isinstance(x, Dual) else operators.exp(x)


class Activation:
    """Base class for activations. `compute` returns a new owning array."""

    def compute(self, inp: ArrayBase) -> Array:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class Linear(Activation):
    """The identity."""

    def compute(self, inp: ArrayBase) -> Array:
        return inp.to_owned()


class ReLU(Activation):
    def compute(self, inp: ArrayBase) -> Array:
        return inp.map(_relu)


class LeakyReLU(Activation):
    """`x` for positive inputs, `slope * x` otherwise."""

    def __init__(self, slope: float = 0.01):
        self.slope = slope

    def compute(self, inp: ArrayBase) -> Array:
        slope = self.slope
        return inp.map(lambda x: x if x > 0 else x * slope)

    def __repr__(self) -> str:
        return f"LeakyReLU({self.slope})"


class Sigmoid(Activation):
    """Squash every input into `(0, 1)`: f(x) = 1 / (1 + e^-x)."""

    def compute(self, inp: ArrayBase) -> Array:
        return inp.map(_sigmoid)


class Tanh(Activation):
    def compute(self, inp: ArrayBase) -> Array:
        return inp.map(_tanh)


class Softmax(Activation):
    """Softmax over the whole batch.

    The batch maximum is subtracted before exponentiating, so large inputs do
    not overflow. Every output is divided by the sum over the batch.
    """

    def compute(self, inp: ArrayBase) -> Array:
        shifted = inp - inp.max()
        e = shifted.map(_exp)
        return e / e.sum()
