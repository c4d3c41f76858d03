from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from . import operators
from .array import Array2
from .loss import Loss
from .optim import SGD

if TYPE_CHECKING:
    from typing import Callable, List, Optional, Tuple

    import numpy.typing as npt

    from .array import ArrayBase
    from .datasets import Dataset
    from .nn import NeuralNetwork
    from .optim import Optimizer

    LogFn = Callable[[int, float, int, List[float]], None]


def default_log_fn(epoch: int, total_loss: float, correct: int, losses: List[float]) -> None:
    print("Epoch ", epoch, " loss ", total_loss, "correct", correct)


def count_correct(out: ArrayBase, labels: ArrayBase) -> int:
    """Number of outputs that round (half away from zero) to their label."""
    correct = 0
    for o, y in zip(out, labels):
        if operators.round_half_away(float(o)) == operators.round_half_away(float(y)):
            correct += 1
    return correct


class Trainer:
    """Runs the epoch loop of a network on a dataset.

    Every batch of `data.iter_train()` is fed forward, the mean of the
    per-element loss gives a dual whose derivative part drives one optimizer
    step.
    """

    def __init__(
        self,
        net: NeuralNetwork,
        optimizer: Optional[Optimizer] = None,
        loss: Loss = Loss.MSE,
    ):
        self.net = net
        self.optimizer = SGD() if optimizer is None else optimizer
        self.loss = loss

    def run_one(self, x: List[float]) -> npt.NDArray[np.float64]:
        """Predict a single sample."""
        sample = Array2.from_numpy(np.asarray(x, dtype=np.float64).reshape(-1, 1))
        return self.net.predict(sample)[:, 0]

    def train(
        self,
        data: Dataset,
        max_epochs: int = 500,
        log_fn: LogFn = default_log_fn,
        log_every: int = 10,
    ) -> List[float]:
        """Train for `max_epochs` epochs and return the loss of every epoch."""
        if not self.net.is_tracked():
            self.net.track_parameters()
        losses: List[float] = []
        for epoch in range(1, max_epochs + 1):
            total_loss = 0.0
            correct = 0
            for samples, labels in data.iter_train():
                # Forward
                out = self.net.forward(samples)
                loss = self.loss.compute(out, labels).mean()
                total_loss += float(loss)
                correct += count_correct(out, labels)

                # Update
                self.optimizer.step(self.net, loss)
            losses.append(total_loss)

            # Logging
            if epoch % log_every == 0 or epoch == max_epochs:
                log_fn(epoch, total_loss, correct, losses)
        return losses

    def evaluate(
        self, data: Dataset, train: bool = False
    ) -> Tuple[float, npt.NDArray[np.float64]]:
        """Mean loss per batch and rounded predictions, on the test split by default."""
        batches = data.iter_train() if train else data.iter_test()
        total_loss = 0.0
        count = 0
        predictions = []
        for samples, labels in batches:
            out = self.net.forward(samples)
            total_loss += float(self.loss.compute(out, labels).mean())
            count += 1
            outputs = np.array([[float(v) for v in row] for row in out.tolist()])
            predictions.append(operators.round_half_away(outputs))
        if not predictions:
            return 0.0, np.zeros((0, 0))
        return total_loss / count, np.concatenate(predictions, axis=1)
