import numpy as np
import pytest

from rl_learning_tool.common.seeding import make_rng, sample_index, seed_everything


def test_make_rng_passes_generators_through() -> None:
    rng = np.random.default_rng(0)
    assert make_rng(rng) is rng


def test_make_rng_same_seed_same_stream() -> None:
    a = make_rng(42)
    b = make_rng(42)
    assert np.allclose(a.random(5), b.random(5))


def test_sample_index_bounds() -> None:
    rng = make_rng(0)
    draws = [sample_index(rng, 3) for _ in range(300)]

    assert set(draws) == {0, 1, 2}
    assert sample_index(rng, 1) == 0

    with pytest.raises(ValueError):
        sample_index(rng, 0)


def test_seed_everything_is_reproducible() -> None:
    seed_everything(123)
    x = np.random.rand(3)
    seed_everything(123)
    y = np.random.rand(3)
    assert np.allclose(x, y)
