from __future__ import annotations

import functools
import numbers
from typing import TYPE_CHECKING

import numpy as np

from . import dual_functions as F
from . import operators

if TYPE_CHECKING:
    from typing import Any, Callable, Iterable, Optional, Tuple, TypeVar, Union

    import numpy.typing as npt

    DualLike = Union["Dual", float, int]
    Fn = TypeVar("Fn", bound=Callable[..., Any])


def _ieee(fn: Fn) -> Fn:
    """Run `fn` with IEEE-754 float semantics: no warnings, no exceptions."""

    @functools.wraps(fn)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        with np.errstate(all="ignore"):
            return fn(*args, **kwargs)

    return wrapper  # type: ignore


def _float_dtype(dtype: Optional[npt.DTypeLike], e: Any) -> np.dtype:
    if dtype is not None:
        return np.dtype(dtype)
    kind = getattr(e, "dtype", None)
    if kind is not None and kind.kind == "f":
        return kind
    return np.dtype(np.float64)


def _is_normal(x: Any) -> Any:
    tiny = np.finfo(np.asarray(x).dtype).tiny
    return np.isfinite(x) & (np.abs(x) >= tiny)


class Dual:
    """A dual number `val + e[0]·ε₀ + ... + e[N-1]·εₙ₋₁` with `εᵢ·εⱼ = 0`.

    `val` is the real part and `e` holds one partial derivative per tracked
    variable. Arithmetic on duals carries the derivatives along with the
    value, so after a computation `e[i]` is the derivative of the result with
    respect to the variable registered at slot `i`.

    Reals mixed into any operation are treated as constants (all partial
    derivatives zero). The width `N = len(e)` of two operands must agree.

    Values behave as immutable, except under compound assignment
    (`a += b` and friends), which updates `a` in place.
    """

    __slots__ = ("val", "e")
    __hash__ = None  # type: ignore
    # Let numpy scalars defer to the reflected Dual operators.
    __array_ufunc__ = None

    val: np.floating
    e: npt.NDArray[np.floating]

    def __init__(
        self,
        val: float,
        e: Iterable[float] = (),
        dtype: Optional[npt.DTypeLike] = None,
    ):
        dt = _float_dtype(dtype, e)
        self.e = np.array(e, dtype=dt).reshape(-1)
        self.val = dt.type(val)

    # Construction

    @classmethod
    def new(cls, val: float, e: Iterable[float], dtype: Optional[npt.DTypeLike] = None) -> Dual:
        return cls(val, e, dtype)

    @classmethod
    def constant(cls, val: float, width: int = 0, dtype: npt.DTypeLike = np.float64) -> Dual:
        """A dual whose partial derivatives are all zero."""
        return cls(val, np.zeros(width, dtype=dtype))

    @classmethod
    def variable(
        cls, val: float, index: int, width: int, dtype: npt.DTypeLike = np.float64
    ) -> Dual:
        """A dual tracking itself at slot `index`: `e` is the unit vector there."""
        if not 0 <= index < width:
            raise IndexError(f"Variable slot {index} is outside of width {width}")
        e = np.zeros(width, dtype=dtype)
        e[index] = 1
        return cls(val, e)

    @classmethod
    def zero(cls, width: int = 0, dtype: npt.DTypeLike = np.float64) -> Dual:
        return cls.constant(0.0, width, dtype)

    @classmethod
    def one(cls, width: int = 0, dtype: npt.DTypeLike = np.float64) -> Dual:
        return cls.constant(1.0, width, dtype)

    @classmethod
    def parse(cls, text: str, width: int = 0, dtype: npt.DTypeLike = np.float64) -> Dual:
        """Parse the real part with `float`. Raises `ValueError` on bad input."""
        return cls.constant(float(text), width, dtype)

    @classmethod
    def from_primitive(
        cls, x: Union[int, float], width: int = 0, dtype: npt.DTypeLike = np.float64
    ) -> Dual:
        return cls.constant(x, width, dtype)

    def to_primitive(self, kind: Callable[[Any], Any] = float) -> Any:
        """Cast the real part, dropping the derivatives: `to_primitive(int)`."""
        return kind(self.val)

    @property
    def width(self) -> int:
        return self.e.shape[0]

    @property
    def dtype(self) -> np.dtype:
        return self.e.dtype

    def _new(self, val: Any, e: Any) -> Dual:
        return type(self)(val, e, dtype=np.result_type(self.e.dtype, np.asarray(e).dtype))

    def _coerce(self, other: Any) -> Dual:
        """Turn `other` into a Dual of this width, or raise `TypeError`."""
        if isinstance(other, Dual):
            if other.e.shape != self.e.shape:
                raise ValueError(
                    f"Dual widths do not match: {self.width} and {other.width}"
                )
            return other
        if isinstance(other, numbers.Real):
            return Dual.constant(other, self.width, self.e.dtype)
        raise TypeError(f"Cannot combine Dual with {type(other).__name__}")

    def _coerce_or_none(self, other: Any) -> Optional[Dual]:
        if isinstance(other, (Dual, numbers.Real)):
            return self._coerce(other)
        return None

    def copy(self) -> Dual:
        return type(self)(self.val, self.e.copy())

    def __copy__(self) -> Dual:
        return self.copy()

    def __deepcopy__(self, memo: dict) -> Dual:
        return self.copy()

    def __reduce__(self) -> Tuple[Any, ...]:
        return (type(self), (self.val, self.e))

    # Arithmetic

    @_ieee
    def __add__(self, b: DualLike) -> Dual:
        other = self._coerce_or_none(b)
        if other is None:
            return NotImplemented
        return self._new(self.val + other.val, self.e + other.e)

    __radd__ = __add__

    @_ieee
    def __sub__(self, b: DualLike) -> Dual:
        other = self._coerce_or_none(b)
        if other is None:
            return NotImplemented
        return self._new(self.val - other.val, self.e - other.e)

    @_ieee
    def __rsub__(self, b: DualLike) -> Dual:
        other = self._coerce_or_none(b)
        if other is None:
            return NotImplemented
        return self._new(other.val - self.val, other.e - self.e)

    @_ieee
    def __mul__(self, b: DualLike) -> Dual:
        other = self._coerce_or_none(b)
        if other is None:
            return NotImplemented
        va, vb = self.val, other.val
        return self._new(va * vb, vb * self.e + va * other.e)

    __rmul__ = __mul__

    @staticmethod
    def _divide(a: Dual, b: Dual) -> Dual:
        va, vb = a.val, b.val
        return a._new(va / vb, (vb * a.e - va * b.e) / (vb * vb))

    @_ieee
    def __truediv__(self, b: DualLike) -> Dual:
        other = self._coerce_or_none(b)
        if other is None:
            return NotImplemented
        return self._divide(self, other)

    @_ieee
    def __rtruediv__(self, b: DualLike) -> Dual:
        other = self._coerce_or_none(b)
        if other is None:
            return NotImplemented
        return self._divide(other, self)

    @_ieee
    def __mod__(self, b: DualLike) -> Dual:
        """Truncated remainder. The derivative is that of the dividend."""
        other = self._coerce_or_none(b)
        if other is None:
            return NotImplemented
        return self._new(np.fmod(self.val, other.val), self.e.copy())

    @_ieee
    def __rmod__(self, b: DualLike) -> Dual:
        other = self._coerce_or_none(b)
        if other is None:
            return NotImplemented
        return self._new(np.fmod(other.val, self.val), other.e.copy())

    @_ieee
    def __neg__(self) -> Dual:
        return self._new(-self.val, -self.e)

    def __pos__(self) -> Dual:
        return self.copy()

    def __abs__(self) -> Dual:
        return self.abs()

    def __pow__(self, b: DualLike) -> Dual:
        if isinstance(b, (numbers.Integral, np.integer)) and not isinstance(b, bool):
            return self.powi(int(b))
        if isinstance(b, (Dual, numbers.Real)):
            return self.powf(b)
        return NotImplemented

    def __rpow__(self, b: DualLike) -> Dual:
        if not isinstance(b, numbers.Real):
            return NotImplemented
        return F.powf(self._coerce(b), self)

    def _assign(self, result: Dual) -> Dual:
        if result is NotImplemented:
            return NotImplemented
        self.val, self.e = result.val, result.e
        return self

    def __iadd__(self, b: DualLike) -> Dual:
        return self._assign(self.__add__(b))

    def __isub__(self, b: DualLike) -> Dual:
        return self._assign(self.__sub__(b))

    def __imul__(self, b: DualLike) -> Dual:
        return self._assign(self.__mul__(b))

    def __itruediv__(self, b: DualLike) -> Dual:
        return self._assign(self.__truediv__(b))

    def __imod__(self, b: DualLike) -> Dual:
        return self._assign(self.__mod__(b))

    # Comparison, by real part only

    def _real(self, other: Any) -> Any:
        if isinstance(other, Dual):
            return other.val
        if isinstance(other, numbers.Real):
            return other
        return None

    def __eq__(self, b: object) -> bool:  # type: ignore[override]
        v = self._real(b)
        if v is None:
            return NotImplemented
        return bool(self.val == v)

    def __ne__(self, b: object) -> bool:  # type: ignore[override]
        v = self._real(b)
        if v is None:
            return NotImplemented
        return bool(self.val != v)

    def __lt__(self, b: DualLike) -> bool:
        v = self._real(b)
        if v is None:
            return NotImplemented
        return bool(self.val < v)

    def __le__(self, b: DualLike) -> bool:
        v = self._real(b)
        if v is None:
            return NotImplemented
        return bool(self.val <= v)

    def __gt__(self, b: DualLike) -> bool:
        v = self._real(b)
        if v is None:
            return NotImplemented
        return bool(self.val > v)

    def __ge__(self, b: DualLike) -> bool:
        v = self._real(b)
        if v is None:
            return NotImplemented
        return bool(self.val >= v)

    # Numeric protocol

    def __float__(self) -> float:
        return float(self.val)

    def __int__(self) -> int:
        return int(self.val)

    def __floor__(self) -> Dual:
        return self.floor()

    def __ceil__(self) -> Dual:
        return self.ceil()

    def __trunc__(self) -> Dual:
        return self.trunc()

    def __round__(self, ndigits: Optional[int] = None) -> Dual:
        """`round(d)` and `round(d, ndigits)`, half-way cases away from zero."""
        if ndigits is None:
            return self.round()
        with np.errstate(all="ignore"):
            scale = 10.0 ** int(ndigits)
            val = operators.round_half_away(self.val * scale) / scale
            return self._new(val, np.zeros_like(self.e))

    def is_zero(self) -> bool:
        return bool(self.val == 0 and not np.any(self.e))

    def is_one(self) -> bool:
        return bool(self.val == 1 and not np.any(self.e))

    def is_nan(self) -> bool:
        """True if the value or any partial derivative is NaN."""
        return bool(np.isnan(self.val) or np.isnan(self.e).any())

    def is_infinite(self) -> bool:
        return bool(np.isinf(self.val) or np.isinf(self.e).any())

    def is_finite(self) -> bool:
        return bool(np.isfinite(self.val) and np.isfinite(self.e).all())

    def is_normal(self) -> bool:
        """True if the value and every partial derivative are normal floats.

        Zero is not normal, so a constant of non-zero width never is.
        """
        return bool(_is_normal(self.val) and _is_normal(self.e).all())

    # Float functions

    def exp(self) -> Dual:
        return F.Exp.apply(self)

    def exp2(self) -> Dual:
        return F.Exp2.apply(self)

    def exp_m1(self) -> Dual:
        return F.ExpM1.apply(self)

    def ln(self) -> Dual:
        return F.Ln.apply(self)

    def log(self, base: DualLike) -> Dual:
        return F.log(self, base)

    def log2(self) -> Dual:
        return F.Log2.apply(self)

    def log10(self) -> Dual:
        return F.Log10.apply(self)

    def ln_1p(self) -> Dual:
        return F.Ln1p.apply(self)

    def sqrt(self) -> Dual:
        return F.Sqrt.apply(self)

    def cbrt(self) -> Dual:
        return F.Cbrt.apply(self)

    def powi(self, n: int) -> Dual:
        return F.powi(self, n)

    def powf(self, b: DualLike) -> Dual:
        return F.powf(self, b)

    def recip(self) -> Dual:
        return F.Recip.apply(self)

    def sin(self) -> Dual:
        return F.Sin.apply(self)

    def cos(self) -> Dual:
        return F.Cos.apply(self)

    def tan(self) -> Dual:
        return F.Tan.apply(self)

    def sin_cos(self) -> Tuple[Dual, Dual]:
        return F.sin_cos(self)

    def asin(self) -> Dual:
        return F.Asin.apply(self)

    def acos(self) -> Dual:
        return F.Acos.apply(self)

    def atan(self) -> Dual:
        return F.Atan.apply(self)

    def atan2(self, b: DualLike) -> Dual:
        return F.atan2(self, b)

    def sinh(self) -> Dual:
        return F.Sinh.apply(self)

    def cosh(self) -> Dual:
        return F.Cosh.apply(self)

    def tanh(self) -> Dual:
        return F.Tanh.apply(self)

    def asinh(self) -> Dual:
        return F.Asinh.apply(self)

    def acosh(self) -> Dual:
        return F.Acosh.apply(self)

    def atanh(self) -> Dual:
        return F.Atanh.apply(self)

    def hypot(self, b: DualLike) -> Dual:
        return F.hypot(self, b)

    def sigmoid(self) -> Dual:
        return F.Sigmoid.apply(self)

    def relu(self) -> Dual:
        return F.ReLU.apply(self)

    def abs(self) -> Dual:
        return F.Abs.apply(self)

    def signum(self) -> Dual:
        return F.Signum.apply(self)

    def floor(self) -> Dual:
        return F.Floor.apply(self)

    def ceil(self) -> Dual:
        return F.Ceil.apply(self)

    def round(self) -> Dual:
        return F.Round.apply(self)

    def trunc(self) -> Dual:
        return F.Trunc.apply(self)

    def fract(self) -> Dual:
        return F.Fract.apply(self)

    def max(self, b: DualLike) -> Dual:
        return F.maximum(self, b)

    def min(self, b: DualLike) -> Dual:
        return F.minimum(self, b)

    def mul_add(self, b: DualLike, c: DualLike) -> Dual:
        return F.mul_add(self, b, c)

    def to_degrees(self) -> Dual:
        return F.ToDegrees.apply(self)

    def to_radians(self) -> Dual:
        return F.ToRadians.apply(self)

    def conj(self) -> Dual:
        """Complex conjugate; a dual over the reals is its own conjugate."""
        return self.copy()

    def __repr__(self) -> str:
        parts = ", ".join(repr(float(x)) for x in self.e)
        if parts:
            return f"Dual({float(self.val)!r}, [{parts}])"
        return f"Dual({float(self.val)!r})"

    def __str__(self) -> str:
        return f"{float(self.val)}"

    def __format__(self, spec: str) -> str:
        return format(float(self.val), spec)
