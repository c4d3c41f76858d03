"""Collection of the core scalar operators used throughout the code base.

Every function here follows IEEE-754: it is written with numpy scalar math so
that a division by zero or a domain error yields `inf` or `nan` instead of an
exception. They are all plain enough to be compiled by numba.
"""

import math

import numpy as np

LN_2 = math.log(2.0)
LN_10 = math.log(10.0)


def id(x: float) -> float:
    """Returns the input unchanged."""
    return x


def add(x: float, y: float) -> float:
    """Adds two numbers and returns their sum.

    Args:
    ----
        x (float): The first number.
        y (float): The second number.

    Returns:
    -------
        float: The sum of x and y.

    """
    return x + y


def sub(x: float, y: float) -> float:
    """Subtracts `y` from `x`."""
    return x - y


def mul(x: float, y: float) -> float:
    """Multiplies two numbers and returns their product.

    Args:
    ----
        x (float): The first number.
        y (float): The second number.

    Returns:
    -------
        float: The product of x and y.

    """
    return x * y


def div(x: float, y: float) -> float:
    """Divides `x` by `y`; a zero divisor gives `inf` or `nan`."""
    return np.divide(np.float64(x), np.float64(y))


def neg(x: float) -> float:
    """Returns the negation of the input number."""
    return -x


def max(x: float, y: float) -> float:
    """Returns the larger of two numbers, ignoring a NaN operand.

    Args:
    ----
        x (float): The first number.
        y (float): The second number.

    Returns:
    -------
        float: The maximum of x and y, or the other operand if one of them is NaN.

    """
    if x != x:
        return y
    if x >= y or y != y:
        return x
    return y


def sigmoid(x: float) -> float:
    """Computes the sigmoid function for the input number.

    Args:
    ----
        x (float): The input number.

    Returns:
    -------
        float: The sigmoid of x.

    """
    if x >= 0:
        return 1.0 / (1.0 + np.exp(-x))
    else:
        a = np.exp(x)
        return a / (1.0 + a)


def relu(x: float) -> float:
    """Applies the ReLU (Rectified Linear Unit) function."""
    if x < 0:
        return 0.0
    return x


def tanh(x: float) -> float:
    return np.tanh(x)


def exp(x: float) -> float:
    """Computes the exponential of the input number."""
    return np.exp(x)


def log(x: float) -> float:
    """Computes the natural logarithm; negative input gives NaN."""
    return np.log(x)


def inv(x: float) -> float:
    """Computes the multiplicative inverse of the input number."""
    return np.divide(1.0, np.float64(x))


def signum(x: float) -> float:
    """Sign of `x`: -1, 0 or 1, NaN for NaN."""
    return np.sign(x)


def round_half_away(x: float) -> float:
    """Round to the nearest integer, ties away from zero."""
    return np.copysign(np.floor(np.abs(x) + 0.5), x)


def fract(x: float) -> float:
    """Fractional part of `x`, with the sign of `x`."""
    return x - np.trunc(x)


# Derivative rules f'(x), one per differentiable function.


def exp_deriv(x: float) -> float:
    return np.exp(x)


def exp2_deriv(x: float) -> float:
    return np.exp2(x) * LN_2


def log_deriv(x: float) -> float:
    return np.divide(1.0, x)


def log2_deriv(x: float) -> float:
    return np.divide(1.0, x * LN_2)


def log10_deriv(x: float) -> float:
    return np.divide(1.0, x * LN_10)


def log_base_deriv(x: float, base: float) -> float:
    return np.divide(1.0, x * np.log(base))


def ln_1p_deriv(x: float) -> float:
    return np.divide(1.0, 1.0 + x)


def sqrt_deriv(x: float) -> float:
    return np.divide(1.0, 2.0 * np.sqrt(x))


def cbrt_deriv(x: float) -> float:
    c = np.cbrt(x)
    return np.divide(1.0, 3.0 * c * c)


def powi_deriv(x: float, n: int) -> float:
    if n == 0:
        return 0.0 * x
    return n * np.power(x, n - 1)


def inv_deriv(x: float) -> float:
    return np.divide(-1.0, x * x)


def sin_deriv(x: float) -> float:
    return np.cos(x)


def cos_deriv(x: float) -> float:
    return -np.sin(x)


def tan_deriv(x: float) -> float:
    c = np.cos(x)
    return np.divide(1.0, c * c)


def asin_deriv(x: float) -> float:
    return np.divide(1.0, np.sqrt(1.0 - x * x))


def acos_deriv(x: float) -> float:
    return np.divide(-1.0, np.sqrt(1.0 - x * x))


def atan_deriv(x: float) -> float:
    return np.divide(1.0, 1.0 + x * x)


def sinh_deriv(x: float) -> float:
    return np.cosh(x)


def cosh_deriv(x: float) -> float:
    return np.sinh(x)


def tanh_deriv(x: float) -> float:
    t = np.tanh(x)
    return 1.0 - t * t


def asinh_deriv(x: float) -> float:
    return np.divide(1.0, np.sqrt(x * x + 1.0))


def acosh_deriv(x: float) -> float:
    return np.divide(1.0, np.sqrt(x * x - 1.0))


def atanh_deriv(x: float) -> float:
    return np.divide(1.0, 1.0 - x * x)


def sigmoid_deriv(x: float) -> float:
    s = sigmoid(x)
    return s * (1.0 - s)


def relu_deriv(x: float) -> float:
    if x > 0:
        return 1.0
    return 0.0
