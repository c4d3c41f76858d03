"""Float functions on `Dual` numbers.

Each function is a static class grouping the value computation (`forward`)
with its derivative rule (`derivative`), the way scalar functions are written
for reverse mode. `apply` pushes the derivative part through the chain rule:

    f(a).val = f(a.val)
    f(a).e   = f'(a.val) * a.e
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

import numpy as np

from . import operators

if TYPE_CHECKING:
    from typing import Tuple, Union

    from .dual import Dual

    DualLike = Union[Dual, float, int]


DEGREES = 180.0 / math.pi


class DualFunction:
    """A wrapper for a differentiable function of one Dual.

    This is a static class and is never instantiated.
    """

    @classmethod
    def apply(cls, a: Dual) -> Dual:
        """Apply the function to the value and scale the derivative part."""
        with np.errstate(all="ignore"):
            v = a.val
            return a._new(cls.forward(v), cls.derivative(v) * a.e)

    @staticmethod
    def forward(v: float) -> float:
        raise NotImplementedError

    @staticmethod
    def derivative(v: float) -> float:
        raise NotImplementedError


class PiecewiseConstant(DualFunction):
    """Functions whose derivative is zero wherever it exists."""

    @classmethod
    def apply(cls, a: Dual) -> Dual:
        with np.errstate(all="ignore"):
            return a._new(cls.forward(a.val), np.zeros_like(a.e))


class Exp(DualFunction):
    """Exponential function: f(x) = e^x."""

    forward = staticmethod(operators.exp)
    derivative = staticmethod(operators.exp_deriv)


class Exp2(DualFunction):
    forward = staticmethod(np.exp2)
    derivative = staticmethod(operators.exp2_deriv)


class ExpM1(DualFunction):
    """f(x) = e^x - 1, accurate near zero."""

    forward = staticmethod(np.expm1)
    derivative = staticmethod(operators.exp_deriv)


class Ln(DualFunction):
    """Natural logarithm: f(x) = ln(x)."""

    forward = staticmethod(operators.log)
    derivative = staticmethod(operators.log_deriv)


class Log2(DualFunction):
    forward = staticmethod(np.log2)
    derivative = staticmethod(operators.log2_deriv)


class Log10(DualFunction):
    forward = staticmethod(np.log10)
    derivative = staticmethod(operators.log10_deriv)


class Ln1p(DualFunction):
    """f(x) = ln(1 + x), accurate near zero."""

    forward = staticmethod(np.log1p)
    derivative = staticmethod(operators.ln_1p_deriv)


class Sqrt(DualFunction):
    forward = staticmethod(np.sqrt)
    derivative = staticmethod(operators.sqrt_deriv)


class Cbrt(DualFunction):
    forward = staticmethod(np.cbrt)
    derivative = staticmethod(operators.cbrt_deriv)


class Recip(DualFunction):
    """Reciprocal: f(x) = 1 / x."""

    forward = staticmethod(operators.inv)
    derivative = staticmethod(operators.inv_deriv)


class Sin(DualFunction):
    forward = staticmethod(np.sin)
    derivative = staticmethod(operators.sin_deriv)


class Cos(DualFunction):
    forward = staticmethod(np.cos)
    derivative = staticmethod(operators.cos_deriv)


class Tan(DualFunction):
    forward = staticmethod(np.tan)
    derivative = staticmethod(operators.tan_deriv)


class Asin(DualFunction):
    forward = staticmethod(np.arcsin)
    derivative = staticmethod(operators.asin_deriv)


class Acos(DualFunction):
    forward = staticmethod(np.arccos)
    derivative = staticmethod(operators.acos_deriv)


class Atan(DualFunction):
    forward = staticmethod(np.arctan)
    derivative = staticmethod(operators.atan_deriv)


class Sinh(DualFunction):
    forward = staticmethod(np.sinh)
    derivative = staticmethod(operators.sinh_deriv)


class Cosh(DualFunction):
    forward = staticmethod(np.cosh)
    derivative = staticmethod(operators.cosh_deriv)


class Tanh(DualFunction):
    forward = staticmethod(np.tanh)
    derivative = staticmethod(operators.tanh_deriv)


class Asinh(DualFunction):
    forward = staticmethod(np.arcsinh)
    derivative = staticmethod(operators.asinh_deriv)


class Acosh(DualFunction):
    forward = staticmethod(np.arccosh)
    derivative = staticmethod(operators.acosh_deriv)


class Atanh(DualFunction):
    forward = staticmethod(np.arctanh)
    derivative = staticmethod(operators.atanh_deriv)


class Sigmoid(DualFunction):
    """Sigmoid function: f(x) = 1 / (1 + e^-x)."""

    forward = staticmethod(operators.sigmoid)
    derivative = staticmethod(operators.sigmoid_deriv)


class ReLU(DualFunction):
    forward = staticmethod(operators.relu)
    derivative = staticmethod(operators.relu_deriv)


class Abs(DualFunction):
    """Absolute value. The derivative is the sign of `x`, zero at zero."""

    forward = staticmethod(np.abs)
    derivative = staticmethod(operators.signum)


class Fract(DualFunction):
    forward = staticmethod(operators.fract)

    @staticmethod
    def derivative(v: float) -> float:
        return 1.0


class ToDegrees(DualFunction):
    @staticmethod
    def forward(v: float) -> float:
        return v * DEGREES

    @staticmethod
    def derivative(v: float) -> float:
        return DEGREES


class ToRadians(DualFunction):
    @staticmethod
    def forward(v: float) -> float:
        return v / DEGREES

    @staticmethod
    def derivative(v: float) -> float:
        return 1.0 / DEGREES


class Signum(PiecewiseConstant):
    forward = staticmethod(operators.signum)


class Floor(PiecewiseConstant):
    forward = staticmethod(np.floor)


class Ceil(PiecewiseConstant):
    forward = staticmethod(np.ceil)


class Round(PiecewiseConstant):
    """Round to the nearest integer, half-way cases away from zero."""

    forward = staticmethod(operators.round_half_away)


class Trunc(PiecewiseConstant):
    forward = staticmethod(np.trunc)


# Functions of more than one argument. Real arguments are constant duals.


def powi(a: Dual, n: int) -> Dual:
    """`a` raised to an integer power: d(a^n) = n * a^(n-1) * d_a."""
    n = int(n)
    with np.errstate(all="ignore"):
        v = a.val
        return a._new(np.power(v, float(n)), operators.powi_deriv(v, n) * a.e)


def powf(a: Dual, b: DualLike) -> Dual:
    """`a` raised to a Dual power.

    d(a^b) = b * a^(b-1) * d_a + a^b * ln(a) * d_b. The second term is only
    added when `b` carries a derivative, so that a negative base with a
    constant exponent stays finite.
    """
    b = a._coerce(b)
    with np.errstate(all="ignore"):
        va, vb = a.val, b.val
        val = np.power(va, vb)
        e = vb * np.power(va, vb - 1) * a.e
        if np.any(b.e != 0):
            e = e + val * np.log(va) * b.e
        return a._new(val, e)


def log(a: Dual, base: DualLike) -> Dual:
    """Logarithm of `a` in an arbitrary base."""
    if isinstance(base, type(a)):
        return a.ln() / base.ln()
    with np.errstate(all="ignore"):
        v = a.val
        return a._new(
            np.log(v) / np.log(base), operators.log_base_deriv(v, base) * a.e
        )


def atan2(a: Dual, b: DualLike) -> Dual:
    """Four quadrant arctangent of `a / b`.

    d atan2(a, b) = (b * d_a - a * d_b) / (a^2 + b^2)
    """
    b = a._coerce(b)
    with np.errstate(all="ignore"):
        va, vb = a.val, b.val
        return a._new(
            np.arctan2(va, vb), (vb * a.e - va * b.e) / (va * va + vb * vb)
        )


def hypot(a: Dual, b: DualLike) -> Dual:
    """Length of the hypotenuse, sqrt(a^2 + b^2)."""
    b = a._coerce(b)
    with np.errstate(all="ignore"):
        va, vb = a.val, b.val
        h = np.hypot(va, vb)
        return a._new(h, (va * a.e + vb * b.e) / h)


def maximum(a: Dual, b: DualLike) -> Dual:
    """The larger operand, with its derivatives. A NaN operand is ignored."""
    b = a._coerce(b)
    if a.val != a.val:
        return b.copy()
    return (a if a.val >= b.val or b.val != b.val else b).copy()


def minimum(a: Dual, b: DualLike) -> Dual:
    """The smaller operand, with its derivatives. A NaN operand is ignored."""
    b = a._coerce(b)
    if a.val != a.val:
        return b.copy()
    return (a if a.val <= b.val or b.val != b.val else b).copy()


def mul_add(a: Dual, b: DualLike, c: DualLike) -> Dual:
    """`a * b + c`."""
    return a * a._coerce(b) + a._coerce(c)


def sin_cos(a: Dual) -> Tuple[Dual, Dual]:
    return Sin.apply(a), Cos.apply(a)
