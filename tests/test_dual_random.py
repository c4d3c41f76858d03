import numpy as np
import pytest

from deepthought import Dual, DualDistribution, standard


def test_standard_is_constant_in_unit_interval() -> None:
    rng = np.random.default_rng(0)
    for _ in range(100):
        d = standard(rng, 3)
        assert isinstance(d, Dual)
        assert 0.0 <= d.val < 1.0
        assert d.e.tolist() == [0.0, 0.0, 0.0]


def test_standard_is_seeded() -> None:
    a = standard(np.random.default_rng(42), 1)
    b = standard(np.random.default_rng(42), 1)
    assert a == b
    assert standard().width == 0


def test_lifted_distribution() -> None:
    dist = DualDistribution(lambda rng: 3.0)
    d = dist.sample(np.random.default_rng(), 2)
    assert d.val == 3.0
    assert d.e.tolist() == [0.0, 0.0]


def test_normal() -> None:
    rng = np.random.default_rng(1)
    samples = DualDistribution.normal(2.0, 0.5).sample_n(4000, rng)
    vals = np.array([float(s) for s in samples])
    assert vals.mean() == pytest.approx(2.0, abs=0.05)
    assert vals.std() == pytest.approx(0.5, abs=0.05)
    assert all(not s.e.any() for s in samples)


def test_normal_rejects_negative_scale() -> None:
    with pytest.raises(ValueError):
        DualDistribution.normal(0.0, -1.0)


def test_uniform() -> None:
    rng = np.random.default_rng(2)
    for s in DualDistribution.uniform(-2.0, -1.0).sample_n(200, rng, 4):
        assert -2.0 <= s.val < -1.0
        assert s.width == 4
