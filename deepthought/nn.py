"""Fully connected layers and networks built from arrays of `Dual`.

Gradients come from forward mode: `NeuralNetwork.track_parameters` registers
every weight and bias as a dual variable with its own slot, so the loss
computed from a forward pass carries its derivative with respect to every
parameter in `loss.e`.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

import numpy as np

from .activation import Activation, Linear
from .array import Array2, ArrayBase
from .dual import Dual
from .dual_random import DualDistribution
from .errors import ShapeMismatch

if TYPE_CHECKING:
    from typing import Iterator, List, Optional

    import numpy.typing as npt

    from .array import Array


def _as_duals(a: ArrayBase) -> Array:
    if a.dtype == np.dtype(object):
        return a.to_owned()
    return a.map(lambda x: Dual.constant(float(x)), dtype=object)


class Layer:
    """A dense layer computing `activation(W @ x + B)`.

    Args:
    ----
        input_dim (int): number of input features.
        output_dim (int): number of neurons.
        rng (np.random.Generator, optional): source of the initial weights.

    Attributes:
    ----------
        W: weights of shape `(output_dim, input_dim)`, Glorot normal.
        B: biases of shape `(output_dim, 1)`, zero.

    """

    def __init__(
        self,
        input_dim: int,
        output_dim: int,
        rng: Optional[np.random.Generator] = None,
    ):
        std = math.sqrt(2.0 / (input_dim + output_dim))
        self.W = Array2.random(
            (output_dim, input_dim), DualDistribution.normal(0.0, std), rng
        )
        self.B = Array2.fill(Dual.zero(), (output_dim, 1))
        self.input_dim = input_dim
        self.output_dim = output_dim
        self.act: Activation = Linear()

    @classmethod
    def from_parameters(cls, W: ArrayBase, B: ArrayBase) -> Layer:
        """Build a layer from given weights and biases.

        Raises `ShapeMismatch` unless `B` has shape `(W.shape[0], 1)`.
        """
        if W.dims != 2 or B.shape != (W.shape[0], 1):
            raise ShapeMismatch(W.shape, B.shape)
        layer = cls.__new__(cls)
        layer.W = _as_duals(W)
        layer.B = _as_duals(B)
        layer.output_dim, layer.input_dim = W.shape
        layer.act = Linear()
        return layer

    def activation(self, act: Activation) -> Layer:
        """Set the activation applied after the affine map."""
        self.act = act
        return self

    @property
    def num_parameters(self) -> int:
        return self.W.size + self.B.size

    def parameters(self) -> List[Array]:
        return [self.W, self.B]

    def forward(self, x: ArrayBase) -> Array:
        """`x` has shape `(input_dim, batch)`, the result `(output_dim, batch)`."""
        if x.dims != 2 or x.shape[0] != self.input_dim:
            raise ShapeMismatch(self.W.shape, x.shape)
        return self.act.compute(self.W @ x + self.B)

    def __repr__(self) -> str:
        return f"Layer({self.input_dim}, {self.output_dim}, {self.act!r})"


class NeuralNetwork:
    """A stack of layers, applied in the order they were added."""

    def __init__(self) -> None:
        self.layers: List[Layer] = []

    def add_layer(self, layer: Layer) -> NeuralNetwork:
        if self.layers and self.layers[-1].output_dim != layer.input_dim:
            raise ShapeMismatch(
                (self.layers[-1].output_dim,), (layer.input_dim,)
            )
        self.layers.append(layer)
        return self

    def build(self) -> NeuralNetwork:
        """Finish construction by tracking every parameter."""
        self.track_parameters()
        return self

    @property
    def num_parameters(self) -> int:
        """Number of weights and biases, the width of every dual in the network."""
        return sum(layer.num_parameters for layer in self.layers)

    def parameters(self) -> Iterator[Array]:
        """Parameter arrays in slot order: per layer, weights then biases."""
        for layer in self.layers:
            yield from layer.parameters()

    def track_parameters(self) -> None:
        """Register every parameter as a dual variable.

        Slots are assigned in layer order, weights before biases, row-major
        within each array.
        """
        width = self.num_parameters
        slot = 0
        for p in self.parameters():
            for offset in range(p.size):
                value = float(p._get_unchecked(offset))
                p._set_unchecked(offset, Dual.variable(value, slot, width))
                slot += 1

    def is_tracked(self) -> bool:
        """Whether every parameter is a dual of the full network width."""
        width = self.num_parameters
        return all(
            isinstance(x, Dual) and x.width == width
            for p in self.parameters()
            for x in p
        )

    def apply_update(self, delta: npt.NDArray[np.float64]) -> None:
        """Move every parameter by `-delta[slot]`."""
        width = self.num_parameters
        if len(delta) != width:
            raise ValueError(f"Expected {width} updates, got {len(delta)}")
        slot = 0
        for p in self.parameters():
            for offset in range(p.size):
                value = float(p._get_unchecked(offset)) - float(delta[slot])
                p._set_unchecked(offset, Dual.variable(value, slot, width))
                slot += 1

    def forward(self, x: ArrayBase) -> Array:
        for layer in self.layers:
            x = layer.forward(x)
        return x  # type: ignore

    def predict(self, x: ArrayBase) -> npt.NDArray[np.float64]:
        """Forward pass returning plain float outputs."""
        out = self.forward(x)
        return np.array([[float(v) for v in row] for row in out.tolist()])
