from __future__ import annotations

import enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .array import Array, ArrayBase


class Loss(enum.Enum):
    """Loss functions comparing a network output with its target."""

    MSE = "mse"

    def compute(self, output: ArrayBase, target: ArrayBase) -> Array:
        """Per-element loss, same shape as `output`.

        Take `.mean()` of the result for the scalar loss of a batch.
        """
        if self is Loss.MSE:
            diff = output - target
            return diff * diff
        raise NotImplementedError(self)
