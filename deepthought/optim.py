from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from typing import Optional

    import numpy.typing as npt

    from .dual import Dual
    from .nn import NeuralNetwork


class Optimizer:
    """Base class for optimizers updating a network from the loss derivatives."""

    def step(self, net: NeuralNetwork, loss: Dual) -> None:
        raise NotImplementedError


class SGD(Optimizer):
    """Stochastic gradient descent, optionally with momentum.

        v     = momentum * v + lr * dloss/dparams
        param = param - v

    `loss.e` holds the derivative of the loss with respect to every tracked
    parameter of `net`, indexed by slot.

    Args:
    ----
        lr (float): learning rate, must not be negative.
        momentum (float): velocity decay, must not be negative.

    """

    def __init__(self, lr: float = 0.01, momentum: float = 0.0):
        self.lr = 0.0
        self.mu = 0.0
        self.velocity: Optional[npt.NDArray[np.float64]] = None
        self.learning_rate(lr)
        self.momentum(momentum)

    def learning_rate(self, lr: float) -> SGD:
        """Set the learning rate. Raises `ValueError` if it is below 0."""
        if lr < 0:
            raise ValueError(f"learning rate must be >= 0, got {lr}")
        self.lr = lr
        return self

    def momentum(self, momentum: float) -> SGD:
        """Set the momentum. Raises `ValueError` if it is below 0."""
        if momentum < 0:
            raise ValueError(f"momentum must be >= 0, got {momentum}")
        self.mu = momentum
        return self

    def zero_velocity(self) -> None:
        self.velocity = None

    def step(self, net: NeuralNetwork, loss: Dual) -> None:
        grad = np.asarray(loss.e, dtype=np.float64)
        if grad.shape[0] != net.num_parameters:
            raise ValueError(
                f"Loss tracks {grad.shape[0]} derivatives but the network has "
                f"{net.num_parameters} parameters; call track_parameters() first"
            )
        if self.velocity is None or self.velocity.shape != grad.shape:
            self.velocity = np.zeros_like(grad)
        self.velocity = self.mu * self.velocity + self.lr * grad
        net.apply_update(self.velocity)

    def __repr__(self) -> str:
        return f"SGD(lr={self.lr}, momentum={self.mu})"
