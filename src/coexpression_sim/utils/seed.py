"""
Reproducibility utilities for deterministic execution.

Every stochastic step takes an explicit random stream instead of relying
on process-wide seeding, so independent simulations never share state.
"""

from typing import Optional, Union

import numpy as np
from sklearn.utils import check_random_state

SeedLike = Optional[Union[int, np.integer, np.random.RandomState]]


def get_rng(seed: SeedLike) -> np.random.RandomState:
    """Get a random stream for a seed.

    Integers open a fresh stream, an existing RandomState is returned as-is
    so that consecutive calls keep consuming the same stream, and None
    gives an unseeded stream.

    Args:
        seed: Integer seed, RandomState instance, or None

    Returns:
        NumPy RandomState instance
    """
    return check_random_state(seed)


def spawn_seeds(seed: Optional[int], n: int) -> list:
    """Derive ``n`` independent integer seeds from a base seed.

    Used to give repeated simulations distinct but reproducible streams.
    """
    rng = get_rng(seed)
    return [int(s) for s in rng.randint(0, 2**31 - 1, size=n)]
