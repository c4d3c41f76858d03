import copy
import math
import warnings

import numpy as np
import pytest
from hypothesis import assume, given

from deepthought import Dual

from .strategies import assert_close_dual, duals, small_floats


# Construction


def test_constant() -> None:
    c = Dual.constant(2.5, 3)
    assert c.val == 2.5
    assert c.width == 3
    assert c.e.tolist() == [0.0, 0.0, 0.0]
    assert c.dtype == np.float64


def test_variable() -> None:
    v = Dual.variable(1.5, 1, 3)
    assert v.val == 1.5
    assert v.e.tolist() == [0.0, 1.0, 0.0]
    with pytest.raises(IndexError):
        Dual.variable(1.0, 3, 3)


def test_new() -> None:
    d = Dual.new(1.0, [2, 3])
    assert d.e.dtype == np.float64
    assert d.e.tolist() == [2.0, 3.0]


def test_zero_one() -> None:
    assert Dual.zero(2).is_zero()
    assert Dual.one(2).is_one()
    assert not Dual.variable(0.0, 0, 2).is_zero()
    assert not Dual.variable(1.0, 0, 2).is_one()


def test_parse() -> None:
    d = Dual.parse("  -2.75 ", 2)
    assert d.val == -2.75
    assert d.e.tolist() == [0.0, 0.0]
    assert math.isnan(Dual.parse("nan").val)
    with pytest.raises(ValueError):
        Dual.parse("two")


def test_primitive_casts() -> None:
    d = Dual(3.75, [1.0, 2.0])
    assert Dual.from_primitive(4, 2) == Dual.constant(4.0, 2)
    assert d.to_primitive(int) == 3
    assert d.to_primitive() == 3.75
    assert float(d) == 3.75
    assert int(d) == 3


def test_float32() -> None:
    d = Dual(1.0, np.ones(2, dtype=np.float32))
    assert d.dtype == np.float32
    assert isinstance(d.val, np.float32)
    out = d * 2.0 + 1.0
    assert out.dtype == np.float32
    assert out.e.tolist() == [2.0, 2.0]
    assert Dual.constant(1.0, 2, np.float32).exp().dtype == np.float32


def test_width_mismatch() -> None:
    with pytest.raises(ValueError):
        Dual.variable(1.0, 0, 2) + Dual.variable(1.0, 0, 3)


def test_unsupported_operand() -> None:
    with pytest.raises(TypeError):
        Dual.one(1) + "1"
    with pytest.raises(TypeError):
        Dual.one(1) * [1.0]
    assert (Dual.one(1) == "1") is False


# Arithmetic laws


@given(duals())
def test_additive_identity(a: Dual) -> None:
    assert_close_dual(a + Dual.constant(0.0, 3), a)
    assert_close_dual(a + 0, a)


@given(duals(), duals())
def test_additive_commutativity(a: Dual, b: Dual) -> None:
    assert_close_dual(a + b, b + a)
    assert_close_dual(a * b, b * a)


@given(duals())
def test_multiplicative_identity(a: Dual) -> None:
    assert_close_dual(a * Dual.constant(1.0, 3), a)
    assert_close_dual(1.0 * a, a)


@given(duals(), duals(), duals())
def test_distributivity(a: Dual, b: Dual, c: Dual) -> None:
    assert_close_dual(a * (b + c), a * b + a * c, rtol=1e-6, atol=1e-6)


@given(duals(), duals())
def test_product_rule(a: Dual, b: Dual) -> None:
    out = a * b
    np.testing.assert_allclose(out.val, a.val * b.val)
    np.testing.assert_allclose(out.e, b.val * a.e + a.val * b.e)


@given(duals(), duals())
def test_quotient_rule(a: Dual, b: Dual) -> None:
    assume(abs(b.val) > 1e-3)
    out = a / b
    np.testing.assert_allclose(out.val, a.val / b.val)
    np.testing.assert_allclose(
        out.e, (b.val * a.e - a.val * b.e) / (b.val * b.val), rtol=1e-7, atol=1e-7
    )


@given(duals())
def test_negation(a: Dual) -> None:
    n = -a
    assert n.val == -a.val
    assert (n.e == -a.e).all()
    assert_close_dual(a - a, Dual.zero(3))
    assert_close_dual(+a, a)


@given(duals(), small_floats)
def test_real_operands_are_constants(a: Dual, r: float) -> None:
    c = Dual.constant(r, 3)
    assert_close_dual(a + r, a + c)
    assert_close_dual(r + a, c + a)
    assert_close_dual(a - r, a - c)
    assert_close_dual(a * r, a * c)
    assert_close_dual(r * a, c * a)


@given(duals(), small_floats)
def test_real_minus_dual(a: Dual, r: float) -> None:
    out = r - a
    np.testing.assert_allclose(out.val, r - a.val)
    np.testing.assert_allclose(out.e, -a.e)


@given(duals(), small_floats)
def test_real_over_dual(a: Dual, r: float) -> None:
    assume(abs(a.val) > 1e-3)
    out = r / a
    np.testing.assert_allclose(out.val, r / a.val)
    np.testing.assert_allclose(out.e, -r * a.e / (a.val * a.val), rtol=1e-7, atol=1e-7)


def test_numpy_scalar_on_the_left() -> None:
    a = Dual.variable(2.0, 0, 1)
    out = np.float64(3.0) * a
    assert isinstance(out, Dual)
    assert out.e.tolist() == [3.0]
    assert isinstance(np.float64(1.0) - a, Dual)
    assert np.float64(1.0) < a


def test_remainder() -> None:
    a = Dual(5.5, [1.0, 2.0])
    out = a % 2.0
    assert out.val == 1.5
    assert out.e.tolist() == [1.0, 2.0]

    # truncated, sign of the dividend
    assert (Dual(-5.5, [1.0, 0.0]) % 2.0).val == -1.5

    out = 7.0 % Dual(2.0, [1.0, 1.0])
    assert out.val == 1.0
    assert out.e.tolist() == [0.0, 0.0]


def test_division_by_zero_is_ieee() -> None:
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        out = Dual.variable(1.0, 0, 1) / 0.0
        assert out.val == np.inf
        assert out.is_infinite()
        nan = Dual.constant(0.0, 1) / Dual.constant(0.0, 1)
        assert nan.is_nan()
        assert Dual.variable(-1.0, 0, 1).ln().is_nan()


def test_power() -> None:
    x = Dual.variable(3.0, 0, 1)
    out = x**2
    assert out.val == 9.0
    assert out.e.tolist() == [6.0]

    out = x**0.5
    assert out.val == pytest.approx(math.sqrt(3.0))
    assert out.e[0] == pytest.approx(0.5 / math.sqrt(3.0))

    out = 2.0**x
    assert out.val == pytest.approx(8.0)
    assert out.e[0] == pytest.approx(8.0 * math.log(2.0))

    a = Dual.variable(2.0, 0, 2)
    b = Dual.variable(3.0, 1, 2)
    out = a**b
    assert out.val == pytest.approx(8.0)
    np.testing.assert_allclose(out.e, [12.0, 8.0 * math.log(2.0)])


# Compound assignment


def test_compound_assignment_mutates_in_place() -> None:
    a = Dual.variable(2.0, 0, 2)
    alias = a
    a += 1.0
    assert alias is a
    assert alias.val == 3.0

    a *= Dual.variable(4.0, 1, 2)
    assert a.val == 12.0
    assert a.e.tolist() == [4.0, 3.0]

    a -= a
    assert a.is_zero()

    b = Dual.variable(8.0, 0, 1)
    b /= 2.0
    assert b.val == 4.0
    assert b.e.tolist() == [0.5]
    b %= 3.0
    assert b.val == 1.0


def test_compound_assignment_does_not_leak_into_copies() -> None:
    a = Dual.variable(2.0, 0, 2)
    e = a.e
    b = copy.copy(a)
    a += Dual.variable(1.0, 1, 2)
    assert b.val == 2.0
    assert b.e.tolist() == [1.0, 0.0]
    assert e.tolist() == [1.0, 0.0]


# Comparison


@given(duals(), duals())
def test_ordering_by_real_part(a: Dual, b: Dual) -> None:
    assert (a < b) == (a.val < b.val)
    assert (a <= b) == (a.val <= b.val)
    assert (a > b) == (a.val > b.val)
    assert (a >= b) == (a.val >= b.val)
    assert (a == b) == (a.val == b.val)
    assert (a != b) == (a.val != b.val)


def test_equality_ignores_derivatives() -> None:
    assert Dual.variable(1.0, 0, 2) == Dual.variable(1.0, 1, 2)
    assert Dual.variable(1.0, 0, 2) == 1.0
    assert 1.0 == Dual.variable(1.0, 0, 2)
    assert Dual.constant(1.0, 2) < 2
    assert 3 > Dual.constant(1.0, 2)
    assert sorted([Dual.constant(3.0), Dual.constant(1.0)])[0].val == 1.0


def test_unhashable() -> None:
    with pytest.raises(TypeError):
        hash(Dual.zero(1))


# Predicates


def test_predicates() -> None:
    finite = Dual.variable(1.0, 0, 2)
    assert finite.is_finite()
    assert not finite.is_nan()
    assert not finite.is_infinite()

    nan_e = Dual(1.0, [np.nan, 0.0])
    assert nan_e.is_nan()
    assert not nan_e.is_finite()

    inf = Dual(np.inf, [0.0, 0.0])
    assert inf.is_infinite()
    assert not inf.is_finite()
    assert not inf.is_normal()

    assert Dual(1.0, [2.0, -3.0]).is_normal()
    # zero partial derivatives are not normal
    assert not Dual.constant(1.0, 2).is_normal()
    assert not Dual(1.0, [1e-320, 1.0]).is_normal()


def test_rounding_protocol() -> None:
    d = Dual(2.5, [1.0])
    assert math.floor(d).val == 2.0
    assert math.ceil(d).val == 3.0
    assert math.trunc(Dual(-2.5, [1.0])).val == -2.0
    assert round(d).val == 3.0
    assert round(d).e.tolist() == [0.0]

    digits = round(Dual(2.567, [1.0]), 2)
    assert digits.val == pytest.approx(2.57)
    assert digits.e.tolist() == [0.0]
    assert round(Dual(-0.125, [1.0]), 2).val == pytest.approx(-0.13)
    assert round(Dual(1234.5, [1.0]), -2).val == pytest.approx(1200.0)
    assert abs(Dual(-2.0, [1.0])).e.tolist() == [-1.0]


def test_copy() -> None:
    a = Dual.variable(1.0, 0, 2)
    b = copy.copy(a)
    c = copy.deepcopy(a)
    assert b is not a and c is not a
    assert b.e is not a.e
    assert_close_dual(b, a)
    assert_close_dual(c, a)
    assert_close_dual(a.conj(), a)


def test_repr() -> None:
    assert repr(Dual(1.5, [0.0, 2.0])) == "Dual(1.5, [0.0, 2.0])"
    assert repr(Dual.constant(1.0)) == "Dual(1.0)"
    assert f"{Dual(1.2345, [1.0]):.2f}" == "1.23"


def test_sigmoid_derivative() -> None:
    x = Dual.variable(0.0, 0, 1)
    s = 1.0 / (1.0 + (-x).exp())
    assert s.val == pytest.approx(0.5)
    assert s.e[0] == pytest.approx(0.25)

    s = x.sigmoid()
    assert s.val == pytest.approx(0.5)
    assert s.e[0] == pytest.approx(0.25)
