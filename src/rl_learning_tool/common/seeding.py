from __future__ import annotations
import random
import numpy as np

SeedLike = int | None | np.random.Generator


def seed_everything(seed: int) -> None:
    """
    Seed common RNGs for reproducibility.

    Seeds:
    - Python's random
    - NumPy's global RNG

    Algorithms in this package own their own Generator (see make_rng), so this is only
    needed by scripts that also use the global RNGs.

    :param seed: Master seed.
        :type seed: int

    :return: None.
        :rtype: None
    """
    seed = int(seed)
    random.seed(seed)
    np.random.seed(seed)


def make_rng(seed: SeedLike = None) -> np.random.Generator:
    """
    Build (or pass through) the random source used by an algorithm.

    Passing an existing Generator lets several algorithms share one random stream.

    :param seed: Integer seed, None for fresh entropy, or an existing Generator.
        :type seed: int | None | np.random.Generator

    :return: A NumPy Generator.
        :rtype: np.random.Generator
    """
    if isinstance(seed, np.random.Generator):
        return seed
    return np.random.default_rng(seed)


def sample_index(rng: np.random.Generator, n: int) -> int:
    """
    Sample an index uniformly in [0, n-1] from a single uniform [0, 1) draw.

    Every algorithm samples "a uniformly random valid action" through this helper,
    so they all consume the random source in the same way: floor(u * n).

    :param rng: Random source.
        :type rng: np.random.Generator
    :param n: Number of items (>= 1).
        :type n: int

    :return: Index in [0, n-1].
        :rtype: int
    """
    if n < 1:
        raise ValueError(f"n must be >= 1, got {n}")
    return min(int(rng.random() * n), n - 1)
