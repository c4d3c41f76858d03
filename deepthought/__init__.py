"""Forward-mode Neural Network Toolkit

This package provides n-dimensional strided arrays, dual numbers for
forward-mode automatic differentiation, and a small neural network layer
built on top of both.

Modules
-------

- `array_data`: Stride layouts, index arithmetic, broadcasting and block allocation.
- `array`: Owning arrays, borrowed views and the rank aliases `Array1`, `Array2`, `Array3`.
- `array_ops`: Map, zip, reduce and matrix multiply, in plain Python or with numba.
- `fast_ops`: The numba kernels used for arrays of numeric dtype (only CPU).
- `operators`: Core mathematical operations and derivative rules for scalars.
- `dual`: The `Dual` number and its arithmetic.
- `dual_functions`: Differentiable float functions (e.g., Exp, Ln, Sin, Atan2) on duals.
- `dual_random`: Sampling constant duals from distributions.
- `debug_allocator`: Opt-in tracing of block allocations.
- `errors`: Exceptions raised by arrays and datasets.
- `activation`: Activation functions such as ReLU, Sigmoid and Softmax.
- `loss`: Loss functions (MSE).
- `nn`: Dense layers and networks.
- `optim`: Optimization algorithms like Stochastic Gradient Descent (SGD).
- `datasets`: Batched datasets, CSV loading and synthetic 2D problems.
- `training`: The epoch loop.
"""

from .errors import *  # noqa: F401,F403
from .array_data import *  # noqa: F401,F403
from .array import *  # noqa: F401,F403
from .dual import *  # noqa: F401,F403
from .dual_random import *  # noqa: F401,F403
from .activation import *  # noqa: F401,F403
from .loss import *  # noqa: F401,F403
from .nn import *  # noqa: F401,F403
from .optim import *  # noqa: F401,F403
from .datasets import *  # noqa: F401,F403
from .training import *  # noqa: F401,F403
from . import array_ops, debug_allocator, dual_functions, fast_ops, operators  # noqa: F401
