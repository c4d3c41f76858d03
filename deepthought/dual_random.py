"""Sampling `Dual` numbers.

Samples are always constants: turning one into a variable needs a slot
index, which only the caller knows.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from .dual import Dual

if TYPE_CHECKING:
    from typing import Callable, Optional

    Sampler = Callable[[np.random.Generator], float]


def standard(rng: Optional[np.random.Generator] = None, width: int = 0) -> Dual:
    """A constant drawn uniformly from `[0, 1)`."""
    rng = np.random.default_rng() if rng is None else rng
    return Dual.constant(rng.random(), width)


class DualDistribution:
    """Lifts a real-valued distribution to one over constant duals.

    Args:
    ----
        sampler: draws one float from a `numpy.random.Generator`.

    """

    def __init__(self, sampler: Sampler):
        self.sampler = sampler

    @classmethod
    def normal(cls, loc: float = 0.0, scale: float = 1.0) -> DualDistribution:
        if scale < 0:
            raise ValueError(f"Standard deviation must be non-negative, got {scale}")
        return cls(lambda rng: rng.normal(loc, scale))

    @classmethod
    def uniform(cls, low: float = 0.0, high: float = 1.0) -> DualDistribution:
        return cls(lambda rng: rng.uniform(low, high))

    def sample(self, rng: Optional[np.random.Generator] = None, width: int = 0) -> Dual:
        rng = np.random.default_rng() if rng is None else rng
        return Dual.constant(self.sampler(rng), width)

    def sample_n(
        self, n: int, rng: Optional[np.random.Generator] = None, width: int = 0
    ) -> list:
        rng = np.random.default_rng() if rng is None else rng
        return [self.sample(rng, width) for _ in range(n)]
